from datetime import datetime
from typing import Annotated

from pydantic import EmailStr, StringConstraints

from app.api.schemas.common import CamelModel

RequiredText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]

SERVICE_NAMES = {
    "web-development": "Web Design & Development",
    "software-development": "Custom Software Development",
    "mobile-development": "Mobile App Development",
    "digital-marketing": "Digital Marketing",
    "ui-ux-design": "UI/UX Design",
    "analytics-optimization": "Analytics & Optimization",
    "consultation": "General Consultation",
}

BUDGET_NAMES = {
    "under-10k": "Under $10,000",
    "10k-25k": "$10,000 - $25,000",
    "25k-50k": "$25,000 - $50,000",
    "50k-100k": "$50,000 - $100,000",
    "over-100k": "Over $100,000",
    "not-sure": "Not sure yet",
}

TIMELINE_NAMES = {
    "asap": "ASAP",
    "1-3-months": "1-3 months",
    "3-6-months": "3-6 months",
    "6-12-months": "6-12 months",
    "flexible": "Flexible",
}


class ContactRequest(CamelModel):
    first_name: RequiredText
    last_name: RequiredText
    email: EmailStr
    message: RequiredText
    phone: str | None = None
    company: str | None = None
    service: str | None = None
    budget: str | None = None
    timeline: str | None = None
    newsletter: bool = False

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def service_label(self) -> str | None:
        return SERVICE_NAMES.get(self.service, self.service) if self.service else None

    def display_fields(self) -> dict[str, str]:
        """Labelled values for the operator notification."""
        return {
            "Name": self.full_name,
            "Email": str(self.email),
            "Phone": self.phone or "",
            "Company": self.company or "",
            "Service": self.service_label or "",
            "Budget": BUDGET_NAMES.get(self.budget, self.budget) if self.budget else "Not specified",
            "Timeline": TIMELINE_NAMES.get(self.timeline, self.timeline) if self.timeline else "Not specified",
            "Newsletter signup": "Yes" if self.newsletter else "No",
        }


class ContactResponse(CamelModel):
    success: bool = True
    message: str = "Thank you for your inquiry! We'll contact you within 24 hours."


class NewsletterRequest(CamelModel):
    # Checked in the route so blank and malformed get distinct messages
    email: str | None = None


class Subscriber(CamelModel):
    email: str
    subscribed_at: datetime


class NewsletterResponse(CamelModel):
    success: bool = True
    message: str = "Thank you for subscribing! Check your email for a welcome message."
    subscriber: Subscriber
