"""Tests for the booking writer."""

from datetime import date, datetime
from unittest.mock import MagicMock

import pytest

from app.core.errors import BookingFailed, CalendarAPIError, SlotConflict, ValidationError
from app.models.appointment import MeetingType
from app.models.slot import AvailabilityResult
from app.services.appointment_service import (
    BookingWriter,
    extract_meeting_link,
    format_appointment_date,
    format_appointment_time,
    idempotency_event_id,
)
from fakes import MEET_LINK, timed_event


class TestValidation:
    @pytest.mark.asyncio
    async def test_missing_phone_is_named_and_nothing_is_written(self, writer, fake_calendar, booking_payload):
        del booking_payload["phone"]
        with pytest.raises(ValidationError) as exc:
            await writer.book(booking_payload)
        assert exc.value.fields == ["phone"]
        assert fake_calendar.inserted == []
        assert fake_calendar.list_calls == []

    @pytest.mark.asyncio
    async def test_blank_strings_count_as_missing(self, writer, booking_payload):
        booking_payload["name"] = "   "
        booking_payload["projectType"] = ""
        with pytest.raises(ValidationError) as exc:
            await writer.book(booking_payload)
        assert set(exc.value.fields) == {"name", "projectType"}

    @pytest.mark.asyncio
    async def test_malformed_values(self, writer, booking_payload):
        booking_payload.update(email="not-an-email", date="10/06/2025", meetingType="phone")
        with pytest.raises(ValidationError) as exc:
            await writer.book(booking_payload)
        assert set(exc.value.fields) == {"email", "date", "meetingType"}

    @pytest.mark.asyncio
    async def test_time_outside_catalog(self, writer, fake_calendar, booking_payload):
        booking_payload["time"] = "12:00"
        with pytest.raises(ValidationError) as exc:
            await writer.book(booking_payload)
        assert exc.value.fields == ["time"]
        assert fake_calendar.inserted == []

    @pytest.mark.asyncio
    async def test_past_date(self, writer, booking_payload):
        booking_payload["date"] = "2025-05-31"
        with pytest.raises(ValidationError) as exc:
            await writer.book(booking_payload)
        assert exc.value.fields == ["date"]

    def test_twelve_hour_time_is_accepted(self, writer, booking_payload):
        booking_payload["time"] = "1:00 PM"
        request = writer.validate(booking_payload)
        assert str(request.time) == "13:00"

    def test_description_is_optional(self, writer, booking_payload):
        del booking_payload["description"]
        assert writer.validate(booking_payload).description == ""


class TestBooking:
    @pytest.mark.asyncio
    async def test_video_call_booking(self, writer, fake_calendar, booking_payload):
        result = await writer.book(booking_payload, idempotency_key="attempt-1")

        assert result.calendar_event_id == idempotency_event_id("attempt-1")
        assert result.formatted_date == "Tuesday, 10 June 2025"
        assert result.formatted_time == "10:00 AM"
        assert result.meeting_type is MeetingType.VIDEO_CALL
        assert result.meeting_link == MEET_LINK
        assert not result.replayed

        (event,) = fake_calendar.inserted
        assert event["start"] == {"dateTime": "2025-06-10T10:00:00+09:30", "timeZone": "Australia/Adelaide"}
        assert event["end"] == {"dateTime": "2025-06-10T10:45:00+09:30", "timeZone": "Australia/Adelaide"}
        assert event["attendees"] == [{"email": "jane@example.com"}, {"email": "ops@example.com"}]
        assert "Phone: +61 400 000 000" in event["description"]
        assert fake_calendar.insert_kwargs == [{"conference_data_version": 1, "send_updates": "all"}]

    def test_video_call_requests_meet_conference(self, writer, booking_payload):
        request = writer.validate(booking_payload)
        body = writer.build_event(request, "abc123")
        create = body["conferenceData"]["createRequest"]
        assert create == {"requestId": "abc123", "conferenceSolutionKey": {"type": "hangoutsMeet"}}

    @pytest.mark.asyncio
    async def test_in_person_booking_has_no_link(self, writer, fake_calendar, booking_payload):
        booking_payload["meetingType"] = "in-person"
        result = await writer.book(booking_payload)

        assert result.meeting_link is None
        assert "conferenceData" not in fake_calendar.inserted[0]
        assert fake_calendar.insert_kwargs[0]["conference_data_version"] == 0

    @pytest.mark.asyncio
    async def test_booked_slot_shows_up_on_next_fetch(self, writer, fetcher, booking_payload):
        await writer.book(booking_payload)
        availability = await fetcher.fetch(date(2025, 6, 1), date(2025, 7, 1))
        assert [(s.date, str(s.start_time)) for s in availability.booked_slots] == [
            (date(2025, 6, 10), "10:00")
        ]

    @pytest.mark.asyncio
    async def test_conflicting_slot_is_rejected_without_write(self, writer, fake_calendar, booking_payload):
        fake_calendar.events.append(timed_event("other", "2025-06-10", "10:00", "10:45"))
        with pytest.raises(SlotConflict) as exc:
            await writer.book(booking_payload)
        assert (exc.value.date, exc.value.time) == ("2025-06-10", "10:00")
        assert fake_calendar.inserted == []

    @pytest.mark.asyncio
    async def test_second_booking_of_same_slot_conflicts(self, writer, fake_calendar, booking_payload):
        await writer.book(booking_payload)
        with pytest.raises(SlotConflict):
            await writer.book(booking_payload)
        assert len(fake_calendar.inserted) == 1

    @pytest.mark.asyncio
    async def test_repeated_idempotency_key_writes_once(self, writer, fake_calendar, booking_payload):
        first = await writer.book(booking_payload, idempotency_key="double-click")
        second = await writer.book(booking_payload, idempotency_key="double-click")

        assert len(fake_calendar.inserted) == 1
        assert second.calendar_event_id == first.calendar_event_id
        assert second.meeting_link == first.meeting_link
        assert second.replayed

    @pytest.mark.asyncio
    async def test_concurrent_duplicate_insert_is_replayed(self, writer, fake_calendar, booking_payload):
        event_id = idempotency_event_id("race")
        existing = timed_event(event_id, "2025-06-10", "10:00", "10:45")
        calls = {"n": 0}
        real_get = fake_calendar.get_event

        async def get_event(eid):
            # First lookup misses, the other request's insert lands before ours
            calls["n"] += 1
            if calls["n"] == 1:
                fake_calendar.events.append(existing)
                return None
            return await real_get(eid)

        async def no_conflict_fetch(start, end):
            return AvailabilityResult.ok([])

        fake_calendar.get_event = get_event
        writer._fetcher.fetch = no_conflict_fetch

        result = await writer.book(booking_payload, idempotency_key="race")
        assert result.replayed
        assert result.calendar_event_id == event_id
        assert fake_calendar.inserted == []

    @pytest.mark.asyncio
    async def test_key_reused_for_a_different_slot_is_rejected(self, writer, fake_calendar, booking_payload):
        await writer.book(booking_payload, idempotency_key="reused")
        with pytest.raises(ValidationError) as exc:
            await writer.book({**booking_payload, "time": "11:00"}, idempotency_key="reused")
        assert exc.value.fields == ["Idempotency-Key"]
        assert len(fake_calendar.inserted) == 1

    @pytest.mark.asyncio
    async def test_replay_describes_the_stored_event(self, writer, fake_calendar, booking_payload):
        await writer.book({**booking_payload, "meetingType": "in-person"}, idempotency_key="in-person-first")
        replay = await writer.book(booking_payload, idempotency_key="in-person-first")

        assert replay.replayed
        assert replay.meeting_type is MeetingType.IN_PERSON
        assert replay.meeting_link is None
        assert (replay.formatted_date, replay.formatted_time) == ("Tuesday, 10 June 2025", "10:00 AM")
        assert len(fake_calendar.inserted) == 1

    @pytest.mark.asyncio
    async def test_unreachable_calendar_on_verify_fails_booking(self, writer, fake_calendar, booking_payload):
        fake_calendar.list_error = CalendarAPIError("timed out")
        with pytest.raises(BookingFailed) as exc:
            await writer.book(booking_payload)
        assert exc.value.detail == "timed out"
        assert fake_calendar.inserted == []

    @pytest.mark.asyncio
    async def test_insert_failure_is_booking_failed(self, writer, fake_calendar, booking_payload):
        fake_calendar.insert_error = CalendarAPIError("insert event failed: Forbidden", status_code=403)
        with pytest.raises(BookingFailed) as exc:
            await writer.book(booking_payload)
        assert "Forbidden" in exc.value.detail

    @pytest.mark.asyncio
    async def test_unconfigured_calendar(self, fetcher, catalog, booking_payload):
        writer = BookingWriter(None, fetcher, catalog, timezone="Australia/Adelaide", today=lambda: date(2025, 6, 1))
        with pytest.raises(BookingFailed):
            await writer.book(booking_payload)


class TestNotification:
    @pytest.mark.asyncio
    async def test_notifier_receives_request_and_result(self, writer, booking_payload):
        notify = MagicMock()
        result = await writer.book(booking_payload, notify=notify)
        request, passed = notify.call_args.args
        assert passed == result
        assert request.name == "Jane Client"

    @pytest.mark.asyncio
    async def test_notifier_failure_does_not_fail_booking(self, writer, fake_calendar, booking_payload):
        notify = MagicMock(side_effect=RuntimeError("smtp down"))
        result = await writer.book(booking_payload, notify=notify)
        assert result.calendar_event_id
        assert len(fake_calendar.inserted) == 1

    @pytest.mark.asyncio
    async def test_notifier_not_called_on_failure(self, writer, booking_payload):
        notify = MagicMock()
        del booking_payload["email"]
        with pytest.raises(ValidationError):
            await writer.book(booking_payload, notify=notify)
        notify.assert_not_called()


def test_idempotency_event_id_is_valid_google_id():
    event_id = idempotency_event_id("some key")
    assert event_id == idempotency_event_id("some key")
    assert event_id != idempotency_event_id("other key")
    assert 5 <= len(event_id) <= 1024
    assert set(event_id) <= set("0123456789abcdefghijklmnopqrstuv")


def test_extract_meeting_link_prefers_video_entry_point():
    event = {
        "conferenceData": {
            "entryPoints": [
                {"entryPointType": "phone", "uri": "tel:+1"},
                {"entryPointType": "video", "uri": MEET_LINK},
            ]
        }
    }
    assert extract_meeting_link(event) == MEET_LINK
    assert extract_meeting_link({"hangoutLink": "https://meet.google.com/x"}) == "https://meet.google.com/x"
    assert extract_meeting_link({}) is None


def test_formatting():
    dt = datetime(2025, 6, 10, 14, 0)
    assert format_appointment_date(dt) == "Tuesday, 10 June 2025"
    assert format_appointment_time(dt) == "02:00 PM"
