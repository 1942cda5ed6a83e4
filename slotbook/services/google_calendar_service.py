"""
Google Calendar Service
Writes confirmed reservations to the shop calendar.

Credentials are resolved once at startup: a service account is preferred,
an OAuth refresh token is the fallback, and without either the client is not
built at all (callers treat a missing client as "skip").
"""
import logging
import time
from datetime import datetime
from typing import Optional

import httpx
from jose import jwt

from ..config import (
    GOOGLE_CALENDAR_ID,
    GOOGLE_CLIENT_ID,
    GOOGLE_CLIENT_SECRET,
    GOOGLE_REFRESH_TOKEN,
    GOOGLE_SERVICE_ACCOUNT_EMAIL,
    GOOGLE_SERVICE_ACCOUNT_PRIVATE_KEY,
)

logger = logging.getLogger(__name__)

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"  # noqa: S105 - OAuth endpoint URL
GOOGLE_CALENDAR_API = "https://www.googleapis.com/calendar/v3"
CALENDAR_SCOPE = "https://www.googleapis.com/auth/calendar"
REQUEST_TIMEOUT = 15.0
# Refresh a cached token this many seconds before Google says it expires
TOKEN_EXPIRY_MARGIN = 300


class CalendarError(Exception):
    """Calendar API call failed"""


class TokenProvider:
    """Caches an access token until shortly before it expires"""

    mode = "unknown"

    def __init__(self):
        self._access_token: Optional[str] = None
        self._expires_at: float = 0.0

    async def get_access_token(self, client: httpx.AsyncClient) -> str:
        if self._access_token and time.time() < self._expires_at - TOKEN_EXPIRY_MARGIN:
            return self._access_token

        logger.info(f"🔄 Requesting Google access token ({self.mode})")
        response = await client.post(GOOGLE_TOKEN_URL, data=self._token_request())
        if response.status_code != 200:
            raise CalendarError(f"Token request failed ({response.status_code}): {response.text}")

        tokens = response.json()
        access_token = tokens.get("access_token")
        if not access_token:
            raise CalendarError("No access token in token response")

        self._access_token = access_token
        self._expires_at = time.time() + int(tokens.get("expires_in", 3600))
        return access_token

    def _token_request(self) -> dict:
        raise NotImplementedError


class ServiceAccountTokenProvider(TokenProvider):
    """JWT bearer grant signed with the service account key"""

    mode = "service"

    def __init__(self, service_account_email: str, private_key: str):
        super().__init__()
        self.service_account_email = service_account_email
        # Keys pasted into env vars usually carry literal "\n" sequences
        self.private_key = private_key.replace("\\n", "\n")

    def _token_request(self) -> dict:
        issued_at = int(time.time())
        claims = {
            "iss": self.service_account_email,
            "scope": CALENDAR_SCOPE,
            "aud": GOOGLE_TOKEN_URL,
            "iat": issued_at,
            "exp": issued_at + 3600,
        }
        assertion = jwt.encode(claims, self.private_key, algorithm="RS256")
        return {
            "grant_type": "urn:ietf:params:oauth:grant-type:jwt-bearer",
            "assertion": assertion,
        }


class RefreshTokenProvider(TokenProvider):
    mode = "oauth"

    def __init__(self, client_id: str, client_secret: str, refresh_token: str):
        super().__init__()
        self.client_id = client_id
        self.client_secret = client_secret
        self.refresh_token = refresh_token

    def _token_request(self) -> dict:
        return {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "refresh_token": self.refresh_token,
            "grant_type": "refresh_token",
        }


class GoogleCalendarClient:
    """Creates events on a single calendar"""

    def __init__(self, calendar_id: str, token_provider: TokenProvider, timeout: float = REQUEST_TIMEOUT):
        self.calendar_id = calendar_id
        self.token_provider = token_provider
        self.timeout = timeout

    @classmethod
    def from_config(cls) -> Optional["GoogleCalendarClient"]:
        """Build from environment; None when the calendar is not configured"""
        if not GOOGLE_CALENDAR_ID:
            logger.info("ℹ️ GOOGLE_CALENDAR_ID not set - calendar sync disabled")
            return None

        if GOOGLE_SERVICE_ACCOUNT_EMAIL and GOOGLE_SERVICE_ACCOUNT_PRIVATE_KEY:
            provider: TokenProvider = ServiceAccountTokenProvider(
                GOOGLE_SERVICE_ACCOUNT_EMAIL, GOOGLE_SERVICE_ACCOUNT_PRIVATE_KEY
            )
        elif GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET and GOOGLE_REFRESH_TOKEN:
            provider = RefreshTokenProvider(GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET, GOOGLE_REFRESH_TOKEN)
        else:
            logger.info("ℹ️ No Google credentials configured - calendar sync disabled")
            return None

        logger.info(f"📅 Google Calendar sync enabled ({provider.mode})")
        return cls(GOOGLE_CALENDAR_ID, provider)

    async def create_event(
        self,
        summary: str,
        description: str,
        start: datetime,
        end: datetime,
        timezone: str,
    ) -> Optional[str]:
        """Insert an event and return its Google id"""
        event_data = {
            "summary": summary,
            "description": description,
            "start": {"dateTime": start.isoformat(), "timeZone": timezone},
            "end": {"dateTime": end.isoformat(), "timeZone": timezone},
        }

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            access_token = await self.token_provider.get_access_token(client)
            response = await client.post(
                f"{GOOGLE_CALENDAR_API}/calendars/{self.calendar_id}/events",
                headers={"Authorization": f"Bearer {access_token}"},
                json=event_data,
            )

        if response.status_code not in (200, 201):
            raise CalendarError(f"Failed to create calendar event ({response.status_code}): {response.text}")

        event_id = response.json().get("id")
        logger.info(f"✅ Google Calendar event created: {event_id}")
        return event_id
