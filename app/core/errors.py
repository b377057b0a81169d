"""Typed failures raised by the booking core. Each carries its HTTP status."""


class BookingError(Exception):
    """Base for failures the caller can act on."""

    status_code = 500

    def __init__(self, message: str, detail: str | None = None):
        super().__init__(message)
        self.message = message
        self.detail = detail


class ValidationError(BookingError):
    """Caller-supplied data is missing or malformed."""

    status_code = 400

    def __init__(self, fields: list[str], message: str | None = None):
        self.fields = fields
        super().__init__(message or f"Missing or invalid fields: {', '.join(fields)}")


class SlotConflict(BookingError):
    """The requested slot is already taken on the calendar."""

    status_code = 409

    def __init__(self, date_str: str, time_str: str):
        self.date = date_str
        self.time = time_str
        super().__init__(
            f"The {time_str} slot on {date_str} has just been booked. Please choose another time."
        )


class FetchFailed(BookingError):
    """Availability could not be read from the calendar."""


class BookingFailed(BookingError):
    """The calendar rejected or never answered the event write."""


class CalendarAPIError(Exception):
    """Transport-level failure talking to Google Calendar."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
