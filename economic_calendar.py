# file: economic_calendar.py
from datetime import date, timedelta
from typing import List, Optional

import httpx

from config import Settings
from models import CalendarEvent, CalendarResponse
from trade_logger import log_event

FINNHUB_CALENDAR_URL = "https://finnhub.io/api/v1/calendar/economic"

DEMO_NOTE = (
    "Static demo data returned because the live economic calendar provider "
    "was unavailable or not configured."
)


def default_window(today: Optional[date] = None):
    """Yesterday through six days ahead, as ISO dates."""
    today = today or date.today()
    return (today - timedelta(days=1)).isoformat(), (today + timedelta(days=6)).isoformat()


def demo_response(date_from: str, date_to: str, note: str = DEMO_NOTE) -> CalendarResponse:
    events = [
        CalendarEvent(event_time=f"{date_from}T08:30:00Z", country="US", event="CPI m/m",
                      impact="High", previous="0.3%", forecast="0.2%"),
        CalendarEvent(event_time=f"{date_from}T12:00:00Z", country="EU", event="ECB Rate Decision",
                      impact="High", previous="4.50%", forecast="4.50%"),
        CalendarEvent(event_time=f"{date_to}T14:00:00Z", country="US", event="FOMC Press Conference",
                      impact="High", previous="", forecast=""),
    ]
    return CalendarResponse(events=events, date_from=date_from, date_to=date_to, note=note)


def _text_or_none(value):
    return None if value is None else str(value)


def _to_event(item: dict) -> CalendarEvent:
    return CalendarEvent(
        event_time=str(item.get("time") or item.get("date") or ""),
        country=str(item.get("country") or ""),
        event=str(item.get("event") or item.get("title") or item.get("name") or ""),
        impact=_text_or_none(item.get("impact")) or None,
        previous=item.get("prev"),
        actual=item.get("actual"),
        forecast=item.get("estimate"),
    )


async def fetch_calendar(
    date_from: Optional[str],
    date_to: Optional[str],
    settings: Settings,
    client: Optional[httpx.AsyncClient] = None,
) -> CalendarResponse:
    """Upcoming macro events from Finnhub. Any provider problem returns demo events instead of an error."""
    if not date_from or not date_to:
        date_from, date_to = default_window()

    if not settings.FINNHUB_API_KEY:
        log_event("CALENDAR_DEMO", {"reason": "FINNHUB_API_KEY missing", "from": date_from, "to": date_to})
        return demo_response(date_from, date_to)

    owns_client = client is None
    if owns_client:
        client = httpx.AsyncClient(timeout=settings.OUTBOUND_TIMEOUT_SECONDS)
    try:
        r = await client.get(
            FINNHUB_CALENDAR_URL,
            params={"from": date_from, "to": date_to, "token": settings.FINNHUB_API_KEY},
        )
        if r.status_code != 200:
            log_event("CALENDAR_DEMO", {"reason": f"HTTP {r.status_code}"})
            return demo_response(
                date_from, date_to,
                f"Static demo data returned because the provider responded with {r.status_code}.",
            )
        raw = r.json()
        items = raw.get("economicCalendar") if isinstance(raw, dict) else None
        events: List[CalendarEvent] = [_to_event(i) for i in (items or []) if isinstance(i, dict)]
    except (httpx.HTTPError, ValueError) as e:
        log_event("CALENDAR_DEMO", {"reason": type(e).__name__})
        return demo_response(
            date_from, date_to,
            "Static demo data returned because an error occurred while fetching the live calendar.",
        )
    finally:
        if owns_client:
            await client.aclose()

    log_event("CALENDAR_LOADED", {"count": len(events)})
    return CalendarResponse(events=events, date_from=date_from, date_to=date_to)
