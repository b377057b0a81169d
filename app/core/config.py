from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve .env from project root so it loads regardless of cwd
_BACKEND_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _BACKEND_ROOT / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=(str(_ENV_FILE), ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Env
    env: str = "development"

    # CORS (comma separated, "*" for any origin)
    cors_origins: str = "*"

    # Google OAuth client used for Calendar (refresh token from setup_google_auth)
    google_client_id: str = ""
    google_client_secret: str = ""
    google_redirect_uri: str = "http://localhost:3000/auth/google/callback"
    google_refresh_token: str = ""
    google_calendar_id: str = "primary"
    google_api_timeout_seconds: float = 8.0

    # Slot/appointment business rules
    calendar_timezone: str = "Australia/Adelaide"
    slot_times: str = "09:00,10:00,11:00,13:00,14:00,15:00,16:00"
    slot_duration_minutes: int = 45

    # Email (Gmail SMTP). Leave smtp_host empty to disable sending.
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_timeout_seconds: float = 10.0
    from_email: str = ""
    from_name: str = "VSS Global"
    # Mailbox that receives booking/contact/newsletter notifications
    operator_email: str = ""

    # Branding and contact in footer
    site_name: str = "VSS Global"
    site_url: str = "https://vssglobal.biz"
    contact_email: str = "admin@vssglobal.biz"
    contact_phone: str = ""

    @property
    def is_production(self) -> bool:
        return self.env.lower() == "production"

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def slot_times_list(self) -> list[str]:
        return [t.strip() for t in self.slot_times.split(",") if t.strip()]

    @property
    def calendar_configured(self) -> bool:
        return bool(
            self.google_client_id
            and self.google_client_secret
            and self.google_refresh_token
            and self.google_calendar_id
        )

    @property
    def email_enabled(self) -> bool:
        return bool(self.smtp_host and self.smtp_user and self.smtp_password and self.from_email)

    @property
    def operator_mailbox(self) -> str:
        return self.operator_email or self.from_email or self.contact_email


settings = Settings()
