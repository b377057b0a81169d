"""Pytest fixtures for the booking API tests."""

from datetime import date

import pytest
from fastapi.testclient import TestClient

from app.api.deps import get_calendar_client
from app.main import app
from app.services.appointment_service import BookingWriter
from app.services.availability_service import AvailabilityFetcher
from app.services.slot_service import SlotCatalog
from fakes import CATALOG_TIMES, TZ, FakeCalendar


@pytest.fixture
def catalog():
    return SlotCatalog(CATALOG_TIMES, 45)


@pytest.fixture
def fake_calendar():
    return FakeCalendar()


@pytest.fixture
def fetcher(fake_calendar):
    return AvailabilityFetcher(fake_calendar, TZ)


@pytest.fixture
def writer(fake_calendar, fetcher, catalog):
    return BookingWriter(
        fake_calendar,
        fetcher,
        catalog,
        timezone=TZ,
        operator_email="ops@example.com",
        today=lambda: date(2025, 6, 1),
    )


@pytest.fixture
def booking_payload():
    return {
        "name": "Jane Client",
        "email": "jane@example.com",
        "phone": "+61 400 000 000",
        "meetingType": "video-call",
        "projectType": "Web Development",
        "description": "New storefront",
        "date": "2025-06-10",
        "time": "10:00",
    }


@pytest.fixture
def client(fake_calendar):
    app.dependency_overrides[get_calendar_client] = lambda: fake_calendar
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
