import hashlib
import logging
from collections.abc import Callable
from datetime import date, datetime, time, timedelta
from typing import Any
from uuid import uuid4
from zoneinfo import ZoneInfo

from pydantic import ValidationError as PydanticValidationError

from app.core.config import settings
from app.core.errors import BookingFailed, CalendarAPIError, SlotConflict, ValidationError
from app.models.appointment import AppointmentRequest, AppointmentResult, MeetingType
from app.services.availability_service import AvailabilityFetcher, event_to_booked_slot
from app.services.calendar_client import GoogleCalendarClient
from app.services.slot_service import SlotCatalog, is_slot_booked, today_in_calendar_tz

logger = logging.getLogger(__name__)

Notifier = Callable[[AppointmentRequest, AppointmentResult], None]

BOOKING_FAILED_MESSAGE = "Failed to book appointment. Please try again or contact us directly."
UNREACHABLE_MESSAGE = (
    "We couldn't reach the calendar system to confirm this time. Please try again shortly."
)


def idempotency_event_id(key: str) -> str:
    """Deterministic Google event id for a submission key.

    Hex digits are a subset of the base32hex alphabet Google accepts for ids,
    so a repeated key targets the same event and the second insert gets a 409.
    """
    return hashlib.sha256(key.encode("utf-8")).hexdigest()


def format_appointment_date(dt: datetime) -> str:
    return f"{dt:%A}, {dt.day} {dt:%B %Y}"


def format_appointment_time(dt: datetime) -> str:
    return dt.strftime("%I:%M %p")


def extract_meeting_link(event: dict[str, Any]) -> str | None:
    entry_points = (event.get("conferenceData") or {}).get("entryPoints") or []
    for ep in entry_points:
        if ep.get("entryPointType") == "video" and ep.get("uri"):
            return ep["uri"]
    for ep in entry_points:
        if ep.get("uri"):
            return ep["uri"]
    return event.get("hangoutLink")


def _validation_fields(exc: PydanticValidationError) -> list[str]:
    fields: list[str] = []
    for err in exc.errors():
        name = str(err["loc"][0]) if err["loc"] else "body"
        if name not in fields:
            fields.append(name)
    return fields


def build_event_description(request: AppointmentRequest, duration_minutes: int) -> str:
    meeting = "Video Call (Google Meet)" if request.meeting_type is MeetingType.VIDEO_CALL else "In-Person Meeting"
    return (
        f"Consultation with {request.name}\n\n"
        "Contact Details:\n"
        f"- Email: {request.email}\n"
        f"- Phone: {request.phone}\n"
        f"- Meeting Type: {request.meeting_type.value}\n"
        f"- Project Type: {request.project_type}\n\n"
        "Project Description:\n"
        f"{request.description or '(none provided)'}\n\n"
        "Meeting Details:\n"
        f"- Duration: {duration_minutes} minutes\n"
        f"- Type: {meeting}"
    )


class BookingWriter:
    """Validates an appointment request and writes it to the calendar.

    Attempts move Validating -> Submitting -> Succeeded, or stop at
    ValidationError, SlotConflict or BookingFailed. Nothing is retried here;
    a failed attempt is resubmitted by the caller.
    """

    def __init__(
        self,
        calendar: GoogleCalendarClient | None,
        fetcher: AvailabilityFetcher,
        catalog: SlotCatalog,
        timezone: str | None = None,
        operator_email: str | None = None,
        today: Callable[[], date] = today_in_calendar_tz,
    ):
        self._calendar = calendar
        self._fetcher = fetcher
        self._catalog = catalog
        self.tz = ZoneInfo(timezone or settings.calendar_timezone)
        self._operator_email = operator_email if operator_email is not None else settings.operator_mailbox
        self._today = today

    def validate(self, payload: dict[str, Any] | AppointmentRequest) -> AppointmentRequest:
        if isinstance(payload, AppointmentRequest):
            request = payload
        else:
            try:
                request = AppointmentRequest.model_validate(payload)
            except PydanticValidationError as e:
                raise ValidationError(_validation_fields(e)) from e
        invalid: list[str] = []
        if request.date < self._today():
            invalid.append("date")
        if not self._catalog.contains(request.time, request.date):
            invalid.append("time")
        if invalid:
            raise ValidationError(invalid)
        return request

    def _start(self, request: AppointmentRequest) -> datetime:
        return datetime.combine(request.date, time(request.time.hour, request.time.minute), tzinfo=self.tz)

    def build_event(self, request: AppointmentRequest, event_id: str) -> dict[str, Any]:
        start = self._start(request)
        end = start + timedelta(minutes=self._catalog.duration())
        attendees = [{"email": str(request.email)}]
        if self._operator_email and self._operator_email.lower() != str(request.email).lower():
            attendees.append({"email": self._operator_email})
        event: dict[str, Any] = {
            "id": event_id,
            "summary": f"{settings.site_name} Consultation - {request.name}",
            "description": build_event_description(request, self._catalog.duration()),
            "start": {"dateTime": start.isoformat(), "timeZone": self.tz.key},
            "end": {"dateTime": end.isoformat(), "timeZone": self.tz.key},
            "attendees": attendees,
        }
        if request.meeting_type is MeetingType.VIDEO_CALL:
            event["conferenceData"] = {
                "createRequest": {
                    "requestId": event_id,
                    "conferenceSolutionKey": {"type": "hangoutsMeet"},
                }
            }
        return event

    def _receipt(self, request: AppointmentRequest, event: dict[str, Any]) -> AppointmentResult:
        start = self._start(request)
        link = extract_meeting_link(event) if request.meeting_type is MeetingType.VIDEO_CALL else None
        return AppointmentResult(
            calendar_event_id=event["id"],
            formatted_date=format_appointment_date(start),
            formatted_time=format_appointment_time(start),
            meeting_type=request.meeting_type,
            meeting_link=link,
        )

    def _replay(self, request: AppointmentRequest, event_id: str, event: dict[str, Any]) -> AppointmentResult:
        """Receipt for an event already on the calendar, described from the event itself."""
        try:
            held = event_to_booked_slot(event, self.tz)
        except (ValueError, TypeError, AttributeError, KeyError):
            held = None
        if held is None or (held.date, held.start_time) != (request.date, request.time):
            raise ValidationError(
                ["Idempotency-Key"], "This Idempotency-Key was already used for a different appointment"
            )
        start = datetime.combine(held.date, time(held.start_time.hour, held.start_time.minute), tzinfo=self.tz)
        link = extract_meeting_link(event)
        video = bool(link or event.get("conferenceData"))
        logger.info("Replaying booking %s for repeated submission", event_id)
        return AppointmentResult(
            calendar_event_id=event.get("id") or event_id,
            formatted_date=format_appointment_date(start),
            formatted_time=format_appointment_time(start),
            meeting_type=MeetingType.VIDEO_CALL if video else MeetingType.IN_PERSON,
            meeting_link=link if video else None,
            replayed=True,
        )

    async def _existing_event(self, event_id: str) -> dict[str, Any] | None:
        try:
            return await self._calendar.get_event(event_id)
        except CalendarAPIError as e:
            raise BookingFailed(BOOKING_FAILED_MESSAGE, str(e)) from e

    async def _verify_slot_free(self, request: AppointmentRequest) -> None:
        availability = await self._fetcher.fetch(request.date, request.date + timedelta(days=1))
        if availability.fetch_failed:
            raise BookingFailed(UNREACHABLE_MESSAGE, availability.error)
        if is_slot_booked(request.date, request.time, availability.booked_slots):
            raise SlotConflict(request.date.isoformat(), str(request.time))

    async def book(
        self,
        payload: dict[str, Any] | AppointmentRequest,
        idempotency_key: str | None = None,
        notify: Notifier | None = None,
    ) -> AppointmentResult:
        request = self.validate(payload)
        if self._calendar is None:
            raise BookingFailed(BOOKING_FAILED_MESSAGE, "Google Calendar is not configured")

        event_id = idempotency_event_id(idempotency_key or uuid4().hex)
        if idempotency_key:
            existing = await self._existing_event(event_id)
            if existing is not None:
                return self._replay(request, event_id, existing)

        await self._verify_slot_free(request)

        video = request.meeting_type is MeetingType.VIDEO_CALL
        try:
            created = await self._calendar.insert_event(
                self.build_event(request, event_id),
                conference_data_version=1 if video else 0,
            )
        except CalendarAPIError as e:
            if e.status_code == 409:
                # Same submission landed concurrently
                existing = await self._existing_event(event_id)
                if existing is not None:
                    return self._replay(request, event_id, existing)
            logger.error("Booking %s on %s at %s failed: %s", event_id, request.date, request.time, e)
            raise BookingFailed(BOOKING_FAILED_MESSAGE, str(e)) from e

        result = self._receipt(request, created)
        logger.info("Booked %s on %s at %s (event %s)", request.name, request.date, request.time, result.calendar_event_id)
        if notify is not None:
            try:
                notify(request, result)
            except Exception as e:
                logger.exception("Scheduling booking notifications failed: %s", e)
        return result
