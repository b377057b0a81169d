from app.models.appointment import AppointmentRequest, AppointmentResult, MeetingType
from app.models.slot import (
    AvailabilityResult,
    BookedSlot,
    CalendarDay,
    DayStatus,
    MonthView,
    SlotState,
    TimeSlot,
)

__all__ = [
    "AppointmentRequest",
    "AppointmentResult",
    "MeetingType",
    "AvailabilityResult",
    "BookedSlot",
    "CalendarDay",
    "DayStatus",
    "MonthView",
    "SlotState",
    "TimeSlot",
]
