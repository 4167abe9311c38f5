"""
Adapters layer - Storage and HTTP integrations.
"""

from .memory_store import InMemoryStore
from .slots_client import SlotsApiClient

__all__ = ["InMemoryStore", "SlotsApiClient"]
