# file: tests/test_economic_calendar.py
from dataclasses import replace
from datetime import date

import httpx
import pytest

from config import get_settings
from economic_calendar import DEMO_NOTE, default_window, fetch_calendar


@pytest.fixture
def settings():
    return replace(get_settings(), FINNHUB_API_KEY="fh-test")


def client_for(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_default_window():
    assert default_window(date(2024, 3, 1)) == ("2024-02-29", "2024-03-07")


@pytest.mark.asyncio
async def test_missing_key_returns_demo_events():
    result = await fetch_calendar("2024-05-01", "2024-05-07", get_settings())

    assert result.note == DEMO_NOTE
    assert len(result.events) == 3
    assert result.date_from == "2024-05-01"
    assert result.events[0].event_time.startswith("2024-05-01")
    assert result.events[-1].event_time.startswith("2024-05-07")


@pytest.mark.asyncio
async def test_missing_dates_use_default_window():
    result = await fetch_calendar(None, "", get_settings())
    assert (result.date_from, result.date_to) == default_window()


@pytest.mark.asyncio
async def test_live_events_are_mapped(settings):
    seen = {}

    def handler(request: httpx.Request):
        seen.update(request.url.params)
        return httpx.Response(200, json={"economicCalendar": [
            {"time": "2024-05-02 12:30:00", "country": "US", "event": "Nonfarm Payrolls",
             "impact": "high", "prev": 303, "actual": None, "estimate": 240},
            {"country": "JP", "event": "BoJ Minutes"},
            "not an event",
        ]})

    async with client_for(handler) as client:
        result = await fetch_calendar("2024-05-01", "2024-05-07", settings, client=client)

    assert seen == {"from": "2024-05-01", "to": "2024-05-07", "token": "fh-test"}
    assert result.note is None
    assert len(result.events) == 2
    payrolls = result.events[0]
    assert payrolls.event_time == "2024-05-02 12:30:00"
    assert payrolls.impact == "high"
    assert payrolls.previous == 303
    assert payrolls.forecast == 240
    assert result.events[1].event_time == ""
    assert result.events[1].impact is None


@pytest.mark.asyncio
async def test_provider_status_error_returns_demo(settings):
    async with client_for(lambda request: httpx.Response(401, json={"error": "bad token"})) as client:
        result = await fetch_calendar("2024-05-01", "2024-05-07", settings, client=client)

    assert len(result.events) == 3
    assert "401" in result.note


@pytest.mark.asyncio
async def test_provider_failure_returns_demo(settings):
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    async with client_for(handler) as client:
        result = await fetch_calendar("2024-05-01", "2024-05-07", settings, client=client)

    assert len(result.events) == 3
    assert "error occurred" in result.note


@pytest.mark.asyncio
async def test_calendar_serializes_with_wire_names():
    result = await fetch_calendar("2024-05-01", "2024-05-07", get_settings())
    body = result.model_dump(by_alias=True)
    assert body["from"] == "2024-05-01"
    assert body["to"] == "2024-05-07"
    assert "datetime" in body["events"][0]
