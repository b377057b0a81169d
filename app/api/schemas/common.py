from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire (the frontend's convention)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ErrorResponse(CamelModel):
    success: bool = False
    message: str
    fields: list[str] | None = None
    error: str | None = None
    # Only on availability failures
    booked_slots: list | None = None
    availability_known: bool | None = None
