"""
Tests for the Typer CLI.
"""

import json

import pendulum
import pytest
import yaml
from typer.testing import CliRunner

from slotbook.cli.app import app

from helpers import at, availability_blob

runner = CliRunner()


@pytest.fixture
def data_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(pendulum, "now", lambda tz=None: at("06:00"))

    (tmp_path / "config.yaml").write_text("data_file: data.yaml\nlog_level: WARNING\n", encoding="utf-8")

    path = tmp_path / "data.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "providers": [{"id": "provider-1", "availability": availability_blob()}],
                "services": [
                    {"id": "haircut", "providerId": "provider-1", "name": "Haircut", "durationMinutes": 60}
                ],
                "bookings": [],
            }
        ),
        encoding="utf-8",
    )
    return path


def test_slots_as_json(data_file):
    result = runner.invoke(
        app, ["slots", "provider-1", "haircut", "2030-01-07", "--data", str(data_file), "--json"]
    )

    assert result.exit_code == 0
    slots = json.loads(result.stdout)["slots"]
    assert slots[0]["startTime"] == "09:00"
    assert slots[-1]["startTime"] == "16:00"
    assert len(slots) == 15


def test_slots_table(data_file):
    result = runner.invoke(app, ["slots", "provider-1", "haircut", "2030-01-07", "--data", str(data_file)])

    assert result.exit_code == 0
    assert "15 slot(s) available" in result.stdout


def test_weekend_has_no_slots(data_file):
    result = runner.invoke(app, ["slots", "provider-1", "haircut", "2030-01-12", "--data", str(data_file)])

    assert result.exit_code == 0
    assert "No bookable slots" in result.stdout


def test_unknown_service_exits_with_2(data_file):
    result = runner.invoke(app, ["slots", "provider-1", "massage", "2030-01-07", "--data", str(data_file)])

    assert result.exit_code == 2
    assert "Service not found" in result.stdout


def test_zero_step_is_rejected(data_file):
    result = runner.invoke(
        app, ["slots", "provider-1", "haircut", "2030-01-07", "--data", str(data_file), "--step", "0"]
    )

    assert result.exit_code == 1
    assert "step_minutes" in result.stdout


def test_bad_date_exits_with_1(data_file):
    result = runner.invoke(app, ["slots", "provider-1", "haircut", "07.01.2030", "--data", str(data_file)])

    assert result.exit_code == 1
    assert "YYYY-MM-DD" in result.stdout


def test_missing_data_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    result = runner.invoke(
        app, ["slots", "provider-1", "haircut", "2030-01-07", "--data", str(tmp_path / "nope.yaml")]
    )

    assert result.exit_code == 1
    assert "Data file not found" in result.stdout


def test_version():
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert "slotbook" in result.stdout
