"""
HTTP client for a running slotbook API.
"""

from typing import Any, Dict, List

import requests

from ..domain.exceptions import ApiError


class SlotsApiClient:
    """
    Client for the slotbook ``/slots`` endpoint.

    Used by ``slotbook query`` to ask a remote server instead of computing
    slots from a local data file.
    """

    def __init__(self, base_url: str, timeout: float = 30):
        """
        Initialize the API client.

        Args:
            base_url: Server root, e.g. ``http://127.0.0.1:8000``
            timeout: Request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.headers = {"Accept": "application/json"}

    def get_slots(self, provider_id: str, service_id: str, date: str) -> List[Dict[str, Any]]:
        """
        Fetch bookable slots.

        Args:
            provider_id: Provider identifier
            service_id: Service identifier
            date: Date as ``YYYY-MM-DD``

        Returns:
            List of slot payloads (``start``, ``end``, ``startTime``, ...)

        Raises:
            ApiError: If the server is unreachable or rejects the request
        """
        data = self._get(
            "/slots",
            params={"providerId": provider_id, "serviceId": service_id, "date": date},
        )
        return data.get("slots", [])

    def health(self) -> Dict[str, Any]:
        """Check that the server is up."""
        return self._get("/health")

    def _get(self, path: str, params: Dict[str, str] | None = None) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"

        try:
            response = requests.get(url, headers=self.headers, params=params, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise ApiError(f"Failed to reach slotbook API at {url}: {e}") from e

        if response.status_code >= 400:
            raise ApiError(self._error_message(response), status_code=response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise ApiError(f"Invalid JSON from {url}: {e}", status_code=response.status_code) from e

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return f"HTTP {response.status_code}"
        if isinstance(body, dict) and body.get("error"):
            return str(body["error"])
        return f"HTTP {response.status_code}"
