import calendar
from collections import defaultdict
from collections.abc import Iterable
from datetime import date, datetime
from zoneinfo import ZoneInfo

from app.core.config import settings
from app.models.slot import (
    AvailabilityResult,
    BookedSlot,
    CalendarDay,
    DayStatus,
    MonthView,
    SlotState,
    TimeSlot,
)


class SlotCatalog:
    """Ordered start times offered on every calendar day, plus the fixed duration."""

    def __init__(self, times: Iterable[TimeSlot | str], duration_minutes: int):
        parsed = {t if isinstance(t, TimeSlot) else TimeSlot.parse(t) for t in times}
        self._slots = tuple(sorted(parsed, key=lambda s: s.minutes))
        self._duration = duration_minutes

    @classmethod
    def from_settings(cls) -> "SlotCatalog":
        return cls(settings.slot_times_list, settings.slot_duration_minutes)

    def slots_for_day(self, d: date | None = None) -> tuple[TimeSlot, ...]:
        # Same offer every day; the date is accepted so per-day rules can slot in here.
        return self._slots

    def duration(self) -> int:
        return self._duration

    def contains(self, time: TimeSlot, d: date | None = None) -> bool:
        return time in self.slots_for_day(d)


def today_in_calendar_tz(now: datetime | None = None) -> date:
    """Current date where the calendar lives, which is what "past" is measured against."""
    tz = ZoneInfo(settings.calendar_timezone)
    if now is None:
        return datetime.now(tz).date()
    if now.tzinfo is None:
        return now.date()
    return now.astimezone(tz).date()


def group_by_date(booked: Iterable[BookedSlot]) -> dict[date, list[BookedSlot]]:
    grouped: dict[date, list[BookedSlot]] = defaultdict(list)
    for slot in booked:
        grouped[slot.date].append(slot)
    return dict(grouped)


def _distinct_starts(booked_for_day: Iterable[BookedSlot]) -> set[int]:
    return {b.start_time.minutes for b in booked_for_day}


def classify_day(
    d: date, today: date, catalog: SlotCatalog, booked_for_day: Iterable[BookedSlot]
) -> DayStatus:
    if d < today:
        return DayStatus.PAST
    count = len(_distinct_starts(booked_for_day))
    if count >= len(catalog.slots_for_day(d)):
        return DayStatus.FULLY_BOOKED
    if count > 0:
        return DayStatus.PARTIALLY_BOOKED
    return DayStatus.AVAILABLE


def slot_availability(
    d: date, catalog: SlotCatalog, booked_for_day: Iterable[BookedSlot]
) -> list[SlotState]:
    """Mark each catalog slot booked when some event starts at that exact minute."""
    taken = _distinct_starts(booked_for_day)
    return [SlotState(time=s, booked=s.minutes in taken) for s in catalog.slots_for_day(d)]


def is_slot_booked(d: date, time: TimeSlot, booked: Iterable[BookedSlot]) -> bool:
    return any(b.date == d and b.start_time.minutes == time.minutes for b in booked)


def build_month_view(
    today: date,
    year: int,
    month: int,
    catalog: SlotCatalog,
    availability: AvailabilityResult,
    selected_date: date | None = None,
    selected_time: TimeSlot | None = None,
) -> MonthView:
    """Classify every day of the month and, for a selectable chosen day, every slot.

    Selections that are not (or no longer) selectable are dropped rather than
    carried forward.
    """
    by_date = group_by_date(availability.booked_slots)
    _, last_day = calendar.monthrange(year, month)
    days = []
    for day_num in range(1, last_day + 1):
        d = date(year, month, day_num)
        booked_for_day = by_date.get(d, [])
        days.append(
            CalendarDay(
                date=d,
                status=classify_day(d, today, catalog, booked_for_day),
                booked_count=len(_distinct_starts(booked_for_day)),
            )
        )

    slots: list[SlotState] = []
    if selected_date is not None and (selected_date.year, selected_date.month) != (year, month):
        # Bookings were only fetched for this month
        selected_date = None
    if selected_date is not None:
        if classify_day(selected_date, today, catalog, by_date.get(selected_date, [])).selectable:
            slots = slot_availability(selected_date, catalog, by_date.get(selected_date, []))
        else:
            selected_date = None
    if selected_time is not None:
        free = {s.time for s in slots if not s.booked}
        if selected_time not in free:
            selected_time = None

    return MonthView(
        year=year,
        month=month,
        today=today,
        days=tuple(days),
        selected_date=selected_date,
        selected_time=selected_time,
        slots=tuple(slots),
        degraded=availability.fetch_failed,
    )
