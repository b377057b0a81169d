import logging
import time
from urllib.parse import urlencode

import httpx

from app.core.config import settings
from app.core.errors import CalendarAPIError

logger = logging.getLogger(__name__)

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"

SCOPES = [
    "https://www.googleapis.com/auth/calendar",
]

# Refresh a little before Google's stated expiry
_EXPIRY_MARGIN_SECONDS = 60


def get_google_authorization_url(state: str | None = None) -> str:
    params = {
        "client_id": settings.google_client_id,
        "redirect_uri": settings.google_redirect_uri,
        "response_type": "code",
        "scope": " ".join(SCOPES),
        "access_type": "offline",
        "prompt": "consent",  # forces a refresh_token on every consent
    }
    if state:
        params["state"] = state
    return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"


async def exchange_code_for_tokens(code: str, transport: httpx.AsyncBaseTransport | None = None) -> dict | None:
    if not settings.google_client_id or not settings.google_client_secret:
        logger.warning("Google OAuth not configured")
        return None
    if not settings.google_redirect_uri:
        logger.warning("GOOGLE_REDIRECT_URI not set")
        return None
    async with httpx.AsyncClient(transport=transport, timeout=settings.google_api_timeout_seconds) as client:
        resp = await client.post(
            GOOGLE_TOKEN_URL,
            data={
                "code": code,
                "client_id": settings.google_client_id,
                "client_secret": settings.google_client_secret,
                "redirect_uri": settings.google_redirect_uri,
                "grant_type": "authorization_code",
            },
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        if resp.status_code != 200:
            logger.warning(
                "Google token exchange failed: status=%s body=%s redirect_uri=%s",
                resp.status_code,
                resp.text[:500],
                settings.google_redirect_uri,
            )
            return None
        return resp.json()


class AccessTokenProvider:
    """Trades the long-lived refresh token for short-lived access tokens, cached until expiry."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        refresh_token: str,
        clock=time.monotonic,
    ):
        self._client_id = client_id
        self._client_secret = client_secret
        self._refresh_token = refresh_token
        self._clock = clock
        self._token: str | None = None
        self._expires_at = 0.0

    @classmethod
    def from_settings(cls) -> "AccessTokenProvider":
        return cls(
            settings.google_client_id,
            settings.google_client_secret,
            settings.google_refresh_token,
        )

    def invalidate(self) -> None:
        self._token = None
        self._expires_at = 0.0

    async def get_token(self, client: httpx.AsyncClient) -> str:
        if self._token and self._clock() < self._expires_at:
            return self._token
        if not (self._client_id and self._client_secret and self._refresh_token):
            raise CalendarAPIError("Google Calendar credentials are not configured")
        try:
            resp = await client.post(
                GOOGLE_TOKEN_URL,
                data={
                    "client_id": self._client_id,
                    "client_secret": self._client_secret,
                    "refresh_token": self._refresh_token,
                    "grant_type": "refresh_token",
                },
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
        except httpx.HTTPError as e:
            raise CalendarAPIError(f"Token refresh failed: {type(e).__name__}: {e}") from e
        if resp.status_code != 200:
            logger.warning("Google token refresh failed: status=%s body=%s", resp.status_code, resp.text[:500])
            raise CalendarAPIError("Token refresh rejected by Google", status_code=resp.status_code)
        try:
            payload = resp.json()
            token = payload["access_token"]
            expires_in = int(payload.get("expires_in", 3600))
        except (ValueError, TypeError, KeyError, AttributeError) as e:
            logger.warning("Google token refresh returned an unreadable body: %s", resp.text[:500])
            raise CalendarAPIError("Token refresh returned an unreadable response", status_code=resp.status_code) from e
        if not isinstance(token, str) or not token:
            raise CalendarAPIError("Token refresh returned no access token", status_code=resp.status_code)
        self._token = token
        self._expires_at = self._clock() + max(expires_in - _EXPIRY_MARGIN_SECONDS, 0)
        return self._token
