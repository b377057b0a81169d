import logging
from datetime import UTC, datetime

from fastapi import APIRouter, BackgroundTasks
from pydantic import EmailStr, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from app.api.schemas.common import ErrorResponse
from app.api.schemas.contact import (
    ContactRequest,
    ContactResponse,
    NewsletterRequest,
    NewsletterResponse,
    Subscriber,
)
from app.core.config import settings
from app.core.errors import ValidationError
from app.services.email_service import send_contact_emails, send_newsletter_emails

logger = logging.getLogger(__name__)
router = APIRouter(tags=["contact"])

_email = TypeAdapter(EmailStr)


@router.post("/contact", response_model=ContactResponse, responses={400: {"model": ErrorResponse}})
async def contact(body: ContactRequest, background_tasks: BackgroundTasks) -> ContactResponse:
    if not settings.email_enabled:
        logger.warning("Contact form received from %s but SMTP is not configured", body.email)
    background_tasks.add_task(
        send_contact_emails,
        email=str(body.email),
        full_name=body.full_name,
        service_label=body.service_label,
        fields=body.display_fields(),
        message=body.message,
    )
    logger.info("Contact form submitted by %s (%s)", body.full_name, body.email)
    return ContactResponse()


@router.post("/newsletter", response_model=NewsletterResponse, responses={400: {"model": ErrorResponse}})
async def newsletter(body: NewsletterRequest, background_tasks: BackgroundTasks) -> NewsletterResponse:
    raw = (body.email or "").strip()
    if not raw:
        raise ValidationError(["email"], "Email address is required")
    try:
        email = _email.validate_python(raw)
    except PydanticValidationError as e:
        raise ValidationError(["email"], "Please enter a valid email address") from e
    subscribed_at = datetime.now(UTC)
    logger.info("Newsletter subscription request: %s", email)
    background_tasks.add_task(send_newsletter_emails, email, subscribed_at)
    return NewsletterResponse(subscriber=Subscriber(email=email, subscribed_at=subscribed_at))
