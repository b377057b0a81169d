"""Thin async client for the Google Calendar v3 REST API."""

import logging
from typing import Any
from urllib.parse import quote

import httpx

from app.core.config import settings
from app.core.errors import CalendarAPIError
from app.services.google_auth_service import AccessTokenProvider

logger = logging.getLogger(__name__)

CALENDAR_API_BASE = "https://www.googleapis.com/calendar/v3"

# Hard stop on pagination for a single listing
_MAX_PAGES = 20


class GoogleCalendarClient:
    def __init__(
        self,
        calendar_id: str,
        token_provider: AccessTokenProvider,
        timeout: float = 8.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.calendar_id = calendar_id
        self._tokens = token_provider
        self._timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls) -> "GoogleCalendarClient":
        return cls(
            settings.google_calendar_id,
            AccessTokenProvider.from_settings(),
            timeout=settings.google_api_timeout_seconds,
        )

    def _events_url(self, event_id: str | None = None) -> str:
        url = f"{CALENDAR_API_BASE}/calendars/{quote(self.calendar_id, safe='')}/events"
        if event_id:
            url += f"/{quote(event_id, safe='')}"
        return url

    async def _request(
        self,
        client: httpx.AsyncClient,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> httpx.Response:
        token = await self._tokens.get_token(client)
        try:
            resp = await client.request(
                method,
                url,
                params=params,
                json=json,
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.TimeoutException as e:
            raise CalendarAPIError(f"Google Calendar timed out after {self._timeout}s") from e
        except httpx.HTTPError as e:
            raise CalendarAPIError(f"Google Calendar request failed: {type(e).__name__}: {e}") from e
        if resp.status_code == 401:
            # Revoked or expired mid-flight; next call refreshes
            self._tokens.invalidate()
        return resp

    @staticmethod
    def _raise_for_status(resp: httpx.Response, action: str) -> None:
        if resp.status_code < 400:
            return
        try:
            error = resp.json().get("error")
        except (ValueError, AttributeError):
            error = None
        # Google sends {"error": {"message": ...}}; proxies and the token endpoint send {"error": "code"}
        if isinstance(error, dict):
            error = error.get("message")
        message = error if isinstance(error, str) and error else resp.text[:300]
        logger.warning("Google Calendar %s failed: status=%s message=%s", action, resp.status_code, message)
        raise CalendarAPIError(f"{action} failed: {message}", status_code=resp.status_code)

    @staticmethod
    def _json(resp: httpx.Response, action: str) -> dict[str, Any]:
        try:
            data = resp.json()
        except ValueError as e:
            raise CalendarAPIError(f"{action} returned a non-JSON body", status_code=resp.status_code) from e
        if not isinstance(data, dict):
            raise CalendarAPIError(f"{action} returned unexpected JSON", status_code=resp.status_code)
        return data

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    async def list_events(self, time_min: str, time_max: str, time_zone: str | None = None) -> list[dict[str, Any]]:
        """Events with end > time_min and start < time_max, expanded and ordered by start."""
        params: dict[str, Any] = {
            "timeMin": time_min,
            "timeMax": time_max,
            "singleEvents": "true",
            "orderBy": "startTime",
            "maxResults": 250,
        }
        if time_zone:
            params["timeZone"] = time_zone
        items: list[dict[str, Any]] = []
        async with self._client() as client:
            for _ in range(_MAX_PAGES):
                resp = await self._request(client, "GET", self._events_url(), params=params)
                self._raise_for_status(resp, "list events")
                data = self._json(resp, "list events")
                page = data.get("items") or []
                if not isinstance(page, list):
                    raise CalendarAPIError("list events returned unexpected JSON", status_code=resp.status_code)
                items.extend(e for e in page if isinstance(e, dict))
                page_token = data.get("nextPageToken")
                if not page_token:
                    break
                params["pageToken"] = page_token
        return items

    async def get_event(self, event_id: str) -> dict[str, Any] | None:
        async with self._client() as client:
            resp = await self._request(client, "GET", self._events_url(event_id))
        if resp.status_code in (404, 410):
            return None
        self._raise_for_status(resp, "get event")
        event = self._json(resp, "get event")
        if event.get("status") == "cancelled":
            return None
        return event

    async def insert_event(
        self,
        event_data: dict[str, Any],
        conference_data_version: int = 0,
        send_updates: str = "all",
    ) -> dict[str, Any]:
        """Create an event. A 409 means an event with the same client-supplied id exists."""
        async with self._client() as client:
            resp = await self._request(
                client,
                "POST",
                self._events_url(),
                params={"conferenceDataVersion": conference_data_version, "sendUpdates": send_updates},
                json=event_data,
            )
        self._raise_for_status(resp, "insert event")
        event = self._json(resp, "insert event")
        if not event.get("id"):
            raise CalendarAPIError("insert event returned no event id", status_code=resp.status_code)
        logger.info("Created event %s: %s", event.get("id"), event.get("htmlLink"))
        return event
