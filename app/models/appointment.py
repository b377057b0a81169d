from datetime import date
from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, EmailStr, StringConstraints, field_validator
from pydantic.alias_generators import to_camel

from app.models.slot import TimeSlot

RequiredText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class MeetingType(str, Enum):
    VIDEO_CALL = "video-call"
    IN_PERSON = "in-person"

    @property
    def label(self) -> str:
        return "Video Call" if self is MeetingType.VIDEO_CALL else "In-Person Meeting"


class AppointmentRequest(BaseModel):
    """Client details plus the selected slot. Consumed once by the booking writer."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    name: RequiredText
    email: EmailStr
    phone: RequiredText
    meeting_type: MeetingType
    project_type: RequiredText
    description: str = ""
    date: date
    time: TimeSlot

    @field_validator("time", mode="before")
    @classmethod
    def _parse_time(cls, value: object) -> object:
        if isinstance(value, str):
            return TimeSlot.parse(value)
        return value

    @field_validator("description", mode="before")
    @classmethod
    def _blank_description(cls, value: object) -> object:
        return "" if value is None else value


class AppointmentResult(BaseModel):
    """Receipt for a calendar event created (or replayed) by the booking writer."""

    model_config = ConfigDict(frozen=True)

    calendar_event_id: str
    formatted_date: str
    formatted_time: str
    meeting_type: MeetingType
    meeting_link: str | None = None
    replayed: bool = False
