import logging
from typing import Any

from fastapi import APIRouter, BackgroundTasks, Body, Depends

from app.api.deps import get_booking_writer, idempotency_header
from app.api.schemas.appointment import BookAppointmentResponse
from app.api.schemas.common import ErrorResponse
from app.models.appointment import AppointmentRequest, AppointmentResult
from app.services.appointment_service import BookingWriter
from app.services.email_service import send_booking_notifications

logger = logging.getLogger(__name__)
router = APIRouter(tags=["appointments"])


@router.post(
    "/book-appointment",
    response_model=BookAppointmentResponse,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def book_appointment(
    background_tasks: BackgroundTasks,
    payload: dict[str, Any] = Body(...),
    idempotency_key: str | None = Depends(idempotency_header),
    writer: BookingWriter = Depends(get_booking_writer),
) -> BookAppointmentResponse:
    """Create the calendar event for a selected slot.

    Validation, slot conflicts and calendar failures surface as 400, 409 and 500
    through the BookingError handler.
    """

    def notify(request: AppointmentRequest, result: AppointmentResult) -> None:
        # Requester confirmation + operator notice, sent after the response (sync SMTP)
        background_tasks.add_task(send_booking_notifications, request, result)

    result = await writer.book(payload, idempotency_key=idempotency_key, notify=notify)
    return BookAppointmentResponse.from_result(result)
