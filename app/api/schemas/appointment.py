from app.api.schemas.common import CamelModel
from app.models.appointment import AppointmentResult


class AppointmentDetails(CamelModel):
    date: str
    time: str
    meeting_type: str


class BookAppointmentResponse(CamelModel):
    success: bool = True
    message: str = "Appointment booked successfully"
    appointment_details: AppointmentDetails
    meeting_link: str | None = None
    calendar_event_id: str

    @classmethod
    def from_result(cls, result: AppointmentResult) -> "BookAppointmentResponse":
        return cls(
            appointment_details=AppointmentDetails(
                date=result.formatted_date,
                time=result.formatted_time,
                meeting_type=result.meeting_type.label,
            ),
            meeting_link=result.meeting_link,
            calendar_event_id=result.calendar_event_id,
        )
