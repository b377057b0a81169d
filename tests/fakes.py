"""In-memory calendar and event builders shared by the tests."""

from datetime import date, datetime, time, timedelta
from typing import Any

from app.core.errors import CalendarAPIError

TZ = "Australia/Adelaide"
MEET_LINK = "https://meet.google.com/abc-defg-hij"
CATALOG_TIMES = ["09:00", "10:00", "11:00", "13:00", "14:00", "15:00", "16:00"]


def timed_event(event_id: str, day: str, start: str, end: str, summary: str = "Busy", offset: str = "+09:30") -> dict:
    return {
        "id": event_id,
        "summary": summary,
        "start": {"dateTime": f"{day}T{start}:00{offset}"},
        "end": {"dateTime": f"{day}T{end}:00{offset}"},
    }


def all_day_event(event_id: str, day: str) -> dict:
    next_day = (date.fromisoformat(day) + timedelta(days=1)).isoformat()
    return {"id": event_id, "summary": "Public holiday", "start": {"date": day}, "end": {"date": next_day}}


class FakeCalendar:
    """In-memory stand-in for GoogleCalendarClient with Google's range semantics."""

    def __init__(self, events: list[dict] | None = None):
        self.events: list[dict] = list(events or [])
        self.inserted: list[dict] = []
        self.insert_kwargs: list[dict] = []
        self.list_calls: list[tuple] = []
        self.list_error: Exception | None = None
        self.insert_error: Exception | None = None

    @staticmethod
    def _bounds(event: dict, tzinfo) -> tuple[datetime, datetime]:
        if "dateTime" in event["start"]:
            return (
                datetime.fromisoformat(event["start"]["dateTime"]),
                datetime.fromisoformat(event["end"]["dateTime"]),
            )
        start = datetime.combine(date.fromisoformat(event["start"]["date"]), time.min, tzinfo=tzinfo)
        end = datetime.combine(date.fromisoformat(event["end"]["date"]), time.min, tzinfo=tzinfo)
        return start, end

    async def list_events(self, time_min: str, time_max: str, time_zone: str | None = None) -> list[dict]:
        self.list_calls.append((time_min, time_max, time_zone))
        if self.list_error is not None:
            raise self.list_error
        lo, hi = datetime.fromisoformat(time_min), datetime.fromisoformat(time_max)
        hits = []
        for event in self.events:
            start, end = self._bounds(event, lo.tzinfo)
            if end > lo and start < hi:
                hits.append((start, event))
        return [e for _, e in sorted(hits, key=lambda pair: pair[0])]

    async def get_event(self, event_id: str) -> dict | None:
        return next((e for e in self.events if e.get("id") == event_id), None)

    async def insert_event(
        self, event_data: dict[str, Any], conference_data_version: int = 0, send_updates: str = "all"
    ) -> dict:
        self.insert_kwargs.append(
            {"conference_data_version": conference_data_version, "send_updates": send_updates}
        )
        if self.insert_error is not None:
            raise self.insert_error
        if any(e.get("id") == event_data.get("id") for e in self.events):
            raise CalendarAPIError("The requested identifier already exists.", status_code=409)
        event = dict(event_data)
        event.pop("conferenceData", None)
        if conference_data_version and "conferenceData" in event_data:
            event["conferenceData"] = {
                "entryPoints": [
                    {"entryPointType": "phone", "uri": "tel:+61-2-0000-0000"},
                    {"entryPointType": "video", "uri": MEET_LINK},
                ]
            }
        self.events.append(event)
        self.inserted.append(event)
        return event
