import logging
from datetime import date

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_availability_fetcher, get_slot_catalog
from app.api.schemas.availability import (
    AvailabilityResponse,
    BookedSlotInfo,
    DateRange,
    MonthViewResponse,
)
from app.api.schemas.common import ErrorResponse
from app.core.errors import FetchFailed, ValidationError
from app.models.slot import TimeSlot
from app.services.availability_service import AvailabilityFetcher
from app.services.slot_service import SlotCatalog, build_month_view, today_in_calendar_tz

logger = logging.getLogger(__name__)
router = APIRouter(tags=["calendar"])


@router.get(
    "/calendar-availability",
    response_model=AvailabilityResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def calendar_availability(
    start_date: date = Query(..., alias="startDate"),
    end_date: date = Query(..., alias="endDate"),
    fetcher: AvailabilityFetcher = Depends(get_availability_fetcher),
):
    """Booked slots whose start falls in [startDate, endDate), dates in the calendar timezone.

    When the calendar cannot be read the response is a 500 with an empty list and
    ``availabilityKnown: false`` so the UI can tell "unknown" from "all free".
    """
    result = await fetcher.fetch(start_date, end_date)
    if result.fetch_failed:
        raise FetchFailed("Failed to fetch calendar availability", result.error)
    return AvailabilityResponse(
        booked_slots=[BookedSlotInfo.from_slot(s) for s in result.booked_slots],
        date_range=DateRange(start=start_date.isoformat(), end=end_date.isoformat()),
    )


@router.get("/calendar-month", response_model=MonthViewResponse, responses={400: {"model": ErrorResponse}})
async def calendar_month(
    year: int = Query(..., ge=1970, le=9998),
    month: int = Query(..., ge=1, le=12),
    selected_date: date | None = Query(None, alias="selectedDate"),
    selected_time: str | None = Query(None, alias="selectedTime"),
    fetcher: AvailabilityFetcher = Depends(get_availability_fetcher),
    catalog: SlotCatalog = Depends(get_slot_catalog),
) -> MonthViewResponse:
    """Day statuses for a month plus slot states for the selected day.

    A selectedDate outside year/month is a 400. Otherwise always 200: a failed
    fetch is reported as ``degraded: true`` so the calendar still renders.
    Years stop at 9998 so the exclusive end of December stays a valid date.
    """
    time_slot = None
    if selected_time:
        try:
            time_slot = TimeSlot.parse(selected_time)
        except ValueError as e:
            raise ValidationError(["selectedTime"]) from e
    if selected_date is not None and (selected_date.year, selected_date.month) != (year, month):
        raise ValidationError(["selectedDate"], "selectedDate must fall inside the requested month")
    first = date(year, month, 1)
    next_month = date(year + month // 12, month % 12 + 1, 1)
    availability = await fetcher.fetch(first, next_month)
    view = build_month_view(
        today_in_calendar_tz(),
        year,
        month,
        catalog,
        availability,
        selected_date=selected_date,
        selected_time=time_slot,
    )
    return MonthViewResponse.from_view(view, catalog.duration())
