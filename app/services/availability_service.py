import logging
from datetime import date, datetime, time
from typing import Any
from zoneinfo import ZoneInfo

from app.core.config import settings
from app.core.errors import CalendarAPIError, ValidationError
from app.models.slot import AvailabilityResult, BookedSlot, TimeSlot
from app.services.calendar_client import GoogleCalendarClient

logger = logging.getLogger(__name__)


def _parse_event_datetime(value: dict[str, Any], default_tz: ZoneInfo) -> datetime | None:
    raw = value.get("dateTime")
    if not raw:
        return None
    dt = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        tz_name = value.get("timeZone")
        dt = dt.replace(tzinfo=ZoneInfo(tz_name) if tz_name else default_tz)
    return dt.astimezone(default_tz)


def event_to_booked_slot(event: dict[str, Any], tz: ZoneInfo) -> BookedSlot | None:
    """Timed event -> BookedSlot in the calendar timezone; None for all-day or cancelled events."""
    if event.get("status") == "cancelled":
        return None
    start = _parse_event_datetime(event.get("start") or {}, tz)
    if start is None:
        return None
    end = _parse_event_datetime(event.get("end") or {}, tz) or start
    return BookedSlot(
        date=start.date(),
        start_time=TimeSlot(hour=start.hour, minute=start.minute),
        end_time=TimeSlot(hour=end.hour, minute=end.minute),
        title=event.get("summary") or "Appointment",
        event_id=event.get("id"),
    )


class AvailabilityFetcher:
    """Reads booked slots for [start, end) from the calendar. Never raises on upstream failure."""

    def __init__(self, calendar: GoogleCalendarClient | None, timezone: str | None = None):
        self._calendar = calendar
        self.tz = ZoneInfo(timezone or settings.calendar_timezone)

    def _midnight(self, d: date) -> str:
        return datetime.combine(d, time.min, tzinfo=self.tz).isoformat()

    async def fetch(self, start: date, end: date) -> AvailabilityResult:
        if end <= start:
            raise ValidationError(["endDate"], "endDate must be after startDate")
        if self._calendar is None:
            logger.error("Availability requested but Google Calendar is not configured")
            return AvailabilityResult.failed("Google Calendar is not configured")
        try:
            events = await self._calendar.list_events(
                self._midnight(start), self._midnight(end), time_zone=self.tz.key
            )
        except (CalendarAPIError, ValueError) as e:
            logger.error("Fetching calendar availability failed: %s", e)
            return AvailabilityResult.failed(str(e))

        booked: list[BookedSlot] = []
        for event in events:
            try:
                slot = event_to_booked_slot(event, self.tz)
            except (ValueError, TypeError, AttributeError, KeyError) as e:
                logger.warning("Skipping event %s with unreadable times: %s", event.get("id"), e)
                continue
            # Google also returns events that started earlier and overlap start
            if slot is not None and start <= slot.date < end:
                booked.append(slot)
        logger.info("Found %d booked slots between %s and %s", len(booked), start, end)
        return AvailabilityResult.ok(booked)
