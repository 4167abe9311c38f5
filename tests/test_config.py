"""
Tests for configuration loading.
"""

import logging
from pathlib import Path

import pytest

from slotbook.config import AppConfig


def test_defaults():
    config = AppConfig()

    assert config.step_minutes == 30
    assert config.port == 8000
    assert config.logging_level == logging.INFO


def test_load_from_yaml(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("data_file: seed.yaml\nstep_minutes: 15\nlog_level: debug\n", encoding="utf-8")

    config = AppConfig.load_from_yaml(path)

    assert config.step_minutes == 15
    assert config.log_level == "DEBUG"
    assert config.resolve_data_file(tmp_path) == tmp_path / "seed.yaml"


def test_absolute_data_file_is_kept(tmp_path):
    config = AppConfig(data_file=tmp_path / "seed.yaml")

    assert config.resolve_data_file(Path("/elsewhere")) == tmp_path / "seed.yaml"


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError, match="config.example.yaml"):
        AppConfig.load_from_yaml(tmp_path / "config.yaml")


def test_invalid_yaml(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("step_minutes: [", encoding="utf-8")

    with pytest.raises(ValueError, match="Invalid YAML"):
        AppConfig.load_from_yaml(path)


def test_non_mapping_root(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("- 1\n- 2\n", encoding="utf-8")

    with pytest.raises(ValueError, match="mapping"):
        AppConfig.load_from_yaml(path)


@pytest.mark.parametrize(
    "field, value",
    [("step_minutes", 0), ("port", 70000), ("log_level", "chatty")],
)
def test_invalid_values(field, value):
    with pytest.raises(ValueError):
        AppConfig(**{field: value})


def test_load_or_default_without_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("slotbook.config.get_default_config_path", lambda: tmp_path / "config.yaml")

    assert AppConfig.load_or_default(None) == AppConfig()
