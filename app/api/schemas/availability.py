from datetime import date

from app.api.schemas.common import CamelModel
from app.models.slot import BookedSlot, DayStatus, MonthView


class BookedSlotInfo(CamelModel):
    date: str  # YYYY-MM-DD in the calendar timezone
    start_time: str  # HH:MM, 24-hour
    end_time: str
    title: str
    id: str | None = None

    @classmethod
    def from_slot(cls, slot: BookedSlot) -> "BookedSlotInfo":
        return cls(
            date=slot.date.isoformat(),
            start_time=str(slot.start_time),
            end_time=str(slot.end_time),
            title=slot.title,
            id=slot.event_id,
        )


class DateRange(CamelModel):
    start: str
    end: str  # exclusive


class AvailabilityResponse(CamelModel):
    success: bool = True
    booked_slots: list[BookedSlotInfo]
    date_range: DateRange


class DayInfo(CamelModel):
    date: str
    status: DayStatus
    booked_count: int
    selectable: bool


class SlotStateInfo(CamelModel):
    time: str
    booked: bool


class MonthViewResponse(CamelModel):
    year: int
    month: int
    today: date
    days: list[DayInfo]
    selected_date: date | None = None
    selected_time: str | None = None
    slots: list[SlotStateInfo]
    slot_duration_minutes: int
    degraded: bool

    @classmethod
    def from_view(cls, view: MonthView, duration_minutes: int) -> "MonthViewResponse":
        return cls(
            year=view.year,
            month=view.month,
            today=view.today,
            days=[
                DayInfo(
                    date=d.date.isoformat(),
                    status=d.status,
                    booked_count=d.booked_count,
                    selectable=d.status.selectable,
                )
                for d in view.days
            ],
            selected_date=view.selected_date,
            selected_time=str(view.selected_time) if view.selected_time else None,
            slots=[SlotStateInfo(time=str(s.time), booked=s.booked) for s in view.slots],
            slot_duration_minutes=duration_minutes,
            degraded=view.degraded,
        )
