import re
from datetime import date
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

# "10:00", "9:00", "10:00:00", "10:00 AM", "4:00pm"
_TIME_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})(?::\d{2})?\s*([AaPp][Mm])?\s*$")

MINUTES_PER_DAY = 24 * 60


class TimeSlot(BaseModel):
    """A time of day at minute precision. Compared by value, never by string form."""

    model_config = ConfigDict(frozen=True)

    hour: int = Field(ge=0, le=23)
    minute: int = Field(ge=0, le=59)

    @classmethod
    def parse(cls, value: str) -> "TimeSlot":
        """Parse 24-hour or 12-hour text into a TimeSlot. Raises ValueError."""
        match = _TIME_RE.match(value or "")
        if not match:
            raise ValueError(f"Invalid time: {value!r}")
        hour, minute = int(match.group(1)), int(match.group(2))
        meridiem = (match.group(3) or "").lower()
        if meridiem:
            if not 1 <= hour <= 12:
                raise ValueError(f"Invalid 12-hour time: {value!r}")
            hour = hour % 12 + (12 if meridiem == "pm" else 0)
        if hour > 23 or minute > 59:
            raise ValueError(f"Invalid time: {value!r}")
        return cls(hour=hour, minute=minute)

    @classmethod
    def from_minutes(cls, minutes: int) -> "TimeSlot":
        minutes %= MINUTES_PER_DAY
        return cls(hour=minutes // 60, minute=minutes % 60)

    @property
    def minutes(self) -> int:
        return self.hour * 60 + self.minute

    def plus(self, minutes: int) -> "TimeSlot":
        return TimeSlot.from_minutes(self.minutes + minutes)

    def __str__(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"


class BookedSlot(BaseModel):
    """A timed calendar event, reduced to its local date and start/end minute."""

    model_config = ConfigDict(frozen=True)

    date: date
    start_time: TimeSlot
    end_time: TimeSlot
    title: str = "Appointment"
    event_id: str | None = None


class DayStatus(str, Enum):
    PAST = "past"
    AVAILABLE = "available"
    PARTIALLY_BOOKED = "partially-booked"
    FULLY_BOOKED = "fully-booked"

    @property
    def selectable(self) -> bool:
        return self in (DayStatus.AVAILABLE, DayStatus.PARTIALLY_BOOKED)


class CalendarDay(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: date
    status: DayStatus
    booked_count: int = 0


class SlotState(BaseModel):
    model_config = ConfigDict(frozen=True)

    time: TimeSlot
    booked: bool


class AvailabilityResult(BaseModel):
    """Booked slots for a range, or a marker that the calendar could not be read.

    An empty ``booked_slots`` with ``fetch_failed`` set means availability is
    unknown, not that every slot is free.
    """

    model_config = ConfigDict(frozen=True)

    booked_slots: tuple[BookedSlot, ...] = ()
    fetch_failed: bool = False
    error: str | None = None

    @classmethod
    def ok(cls, booked_slots: list[BookedSlot]) -> "AvailabilityResult":
        return cls(booked_slots=tuple(booked_slots))

    @classmethod
    def failed(cls, error: str) -> "AvailabilityResult":
        return cls(fetch_failed=True, error=error)


class MonthView(BaseModel):
    """Immutable calendar view-state, rebuilt on every interaction."""

    model_config = ConfigDict(frozen=True)

    year: int
    month: int
    today: date
    days: tuple[CalendarDay, ...]
    selected_date: date | None = None
    selected_time: TimeSlot | None = None
    slots: tuple[SlotState, ...] = ()
    degraded: bool = False
