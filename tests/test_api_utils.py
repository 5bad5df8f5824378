# file: tests/test_api_utils.py
from unittest.mock import AsyncMock

from economic_calendar import DEMO_NOTE, default_window, demo_response


def test_ping(test_app_client):
    response = test_app_client.get("/ping")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_calendar_without_key_returns_demo(test_app_client):
    response = test_app_client.get("/api/economic-calendar", params={"from": "2024-05-01", "to": "2024-05-07"})

    assert response.status_code == 200
    data = response.json()
    assert data["from"] == "2024-05-01"
    assert data["to"] == "2024-05-07"
    assert data["note"] == DEMO_NOTE
    assert len(data["events"]) == 3
    assert {"datetime", "country", "event", "impact"} <= set(data["events"][0])


def test_calendar_defaults_to_current_week(test_app_client):
    data = test_app_client.get("/api/economic-calendar").json()
    assert (data["from"], data["to"]) == default_window()


def test_calendar_passes_dates_and_settings(test_app_client, mocker, monkeypatch):
    monkeypatch.setenv("FINNHUB_API_KEY", "fh-test")
    fetch = mocker.patch(
        "main.fetch_calendar", new_callable=AsyncMock,
        return_value=demo_response("2024-06-01", "2024-06-02", note="stubbed"),
    )

    data = test_app_client.get("/api/economic-calendar", params={"from": "2024-06-01", "to": "2024-06-02"}).json()

    assert data["note"] == "stubbed"
    date_from, date_to, settings = fetch.await_args.args
    assert (date_from, date_to) == ("2024-06-01", "2024-06-02")
    assert settings.FINNHUB_API_KEY == "fh-test"
