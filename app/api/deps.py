from fastapi import Depends, Header

from app.core.config import settings
from app.services.appointment_service import BookingWriter
from app.services.availability_service import AvailabilityFetcher
from app.services.calendar_client import GoogleCalendarClient
from app.services.slot_service import SlotCatalog

_calendar_client: GoogleCalendarClient | None = None


def get_calendar_client() -> GoogleCalendarClient | None:
    """Shared client so the cached access token survives across requests. None when unconfigured."""
    global _calendar_client
    if not settings.calendar_configured:
        return None
    if _calendar_client is None:
        _calendar_client = GoogleCalendarClient.from_settings()
    return _calendar_client


def get_slot_catalog() -> SlotCatalog:
    return SlotCatalog.from_settings()


def get_availability_fetcher(
    calendar: GoogleCalendarClient | None = Depends(get_calendar_client),
) -> AvailabilityFetcher:
    return AvailabilityFetcher(calendar)


def get_booking_writer(
    calendar: GoogleCalendarClient | None = Depends(get_calendar_client),
    fetcher: AvailabilityFetcher = Depends(get_availability_fetcher),
    catalog: SlotCatalog = Depends(get_slot_catalog),
) -> BookingWriter:
    return BookingWriter(calendar, fetcher, catalog)


def idempotency_header(idempotency_key: str | None = Header(default=None, alias="Idempotency-Key")) -> str | None:
    """Extract Idempotency-Key header so duplicate submissions collapse to one booking."""
    if idempotency_key is not None:
        idempotency_key = idempotency_key.strip() or None
    return idempotency_key
