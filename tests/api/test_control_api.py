from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from conftest import NOW_MS
from tankwatch.dependencies import get_now_ms

pytestmark = pytest.mark.api

MINUTE = 60_000


def _at(client: TestClient, now_ms: int) -> None:
    client.app.dependency_overrides[get_now_ms] = lambda: now_ms


def test_pump_activate_and_deactivate(client: TestClient) -> None:
    _at(client, NOW_MS - 30 * MINUTE)
    first = client.post("/pump/activate")
    assert first.status_code == 200
    assert first.json()["success"] is True
    assert client.post("/pump/activate").status_code == 409

    _at(client, NOW_MS - 10 * MINUTE)
    status = client.get("/pump/status").json()
    assert status["is_on"] is True
    assert status["on_since_ms"] == NOW_MS - 30 * MINUTE
    assert status["running_for"] == "00:20:00"

    _at(client, NOW_MS)
    off = client.post("/pump/deactivate").json()
    assert off["duration_ms"] == 30 * MINUTE
    assert off["duration"] == "00:30:00"
    assert client.post("/pump/deactivate").status_code == 409

    status = client.get("/pump/status").json()
    assert status["is_on"] is False
    assert status["last_run"] == {"start_ms": NOW_MS - 30 * MINUTE, "end_ms": NOW_MS}
    assert status["last_run_duration"] == "00:30:00"


def test_pump_toggle_flips_state(client: TestClient) -> None:
    _at(client, NOW_MS - MINUTE)
    assert client.post("/pump/toggle").json()["duration_ms"] is None
    assert client.get("/pump/status").json()["is_on"] is True

    _at(client, NOW_MS)
    assert client.post("/pump/toggle").json()["duration_ms"] == MINUTE
    assert client.get("/pump/status").json()["is_on"] is False


def test_pump_run_shows_on_dashboard(client: TestClient) -> None:
    assert client.get("/state/dashboard").json()["pump_intervals"] == []

    _at(client, NOW_MS - 5 * MINUTE)
    client.post("/pump/activate")
    _at(client, NOW_MS)
    client.post("/pump/deactivate")

    # the write dropped the cached empty pump list
    intervals = client.get("/state/dashboard").json()["pump_intervals"]
    assert intervals == [{"start_ms": NOW_MS - 5 * MINUTE, "end_ms": NOW_MS}]


def test_refill_marks_pair_into_interval(client: TestClient) -> None:
    start = {"timestamp_ms": NOW_MS - 2 * 60 * MINUTE, "previous_level": 20, "new_level": 20, "water_ended": False}
    end = {"timestamp_ms": NOW_MS - 60 * MINUTE, "previous_level": 20, "new_level": 85, "water_ended": True}
    legacy = {"timestamp_ms": NOW_MS - 3 * 60 * MINUTE, "previous_level": 30, "new_level": 60}
    for body in (start, end, legacy):
        assert client.post("/refills", json=body).status_code == 200

    body = client.get("/state/dashboard").json()
    assert body["refill_intervals"] == [{"start_ms": start["timestamp_ms"], "end_ms": end["timestamp_ms"]}]
    assert body["markers"] == [{"timestamp_ms": legacy["timestamp_ms"], "level": 60.0}]

    latest = client.get("/state/latest").json()
    assert latest["last_refill_ms"] == end["timestamp_ms"]
    assert latest["last_refill_level"] == 85.0


def test_refill_defaults_to_now(client: TestClient) -> None:
    response = client.post("/refills", json={"previous_level": 10, "new_level": 90})
    assert response.json()["timestamp_ms"] == NOW_MS


def test_refill_levels_are_validated(client: TestClient) -> None:
    assert client.post("/refills", json={"previous_level": 10, "new_level": 150}).status_code == 422
    assert client.post("/refills", json={"previous_level": 10}).status_code == 422
    assert client.post("/refills", json={"timestamp_ms": 0, "previous_level": 1, "new_level": 2}).status_code == 422


def test_delete_refill(client: TestClient) -> None:
    client.post("/refills", json={"previous_level": 10, "new_level": 90})
    assert client.delete(f"/refills/{NOW_MS + 1}").status_code == 404

    response = client.delete(f"/refills/{NOW_MS}")
    assert response.status_code == 200
    assert client.get("/state/latest").json()["last_refill_ms"] is None
