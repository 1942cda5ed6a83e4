"""
Google OAuth helper routes
One-time setup flow for obtaining the refresh token the calendar client uses
when no service account is configured.

The callback only displays the (masked) code; the exchange is a separate
call so the code is redeemed exactly once.
"""

import logging
import uuid
from typing import Optional
from urllib.parse import urlencode

import httpx
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel

from ..config import GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET, GOOGLE_REDIRECT_URI
from ..services.google_calendar_service import CALENDAR_SCOPE, GOOGLE_TOKEN_URL

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["google-oauth"])

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
STATE_COOKIE = "oauth_state"
STATE_MAX_AGE = 60 * 10
NO_STORE = {"Cache-Control": "no-store, no-cache, must-revalidate, max-age=0", "Pragma": "no-cache"}


class CodeExchangeRequest(BaseModel):
    code: Optional[str] = None


@router.get("/google/auth")
async def start_google_oauth():
    """Redirect to the Google consent screen with a fresh state cookie"""
    if not GOOGLE_CLIENT_ID:
        return JSONResponse(status_code=500, content={"error": "missing_GOOGLE_CLIENT_ID"})

    state = str(uuid.uuid4())
    params = {
        "client_id": GOOGLE_CLIENT_ID,
        "redirect_uri": GOOGLE_REDIRECT_URI,
        "response_type": "code",
        "scope": CALENDAR_SCOPE,
        "access_type": "offline",
        "prompt": "consent",
        "state": state,
    }
    response = RedirectResponse(url=f"{GOOGLE_AUTH_URL}?{urlencode(params)}", status_code=302)
    response.set_cookie(
        STATE_COOKIE,
        state,
        max_age=STATE_MAX_AGE,
        httponly=True,
        samesite="strict",
        secure=GOOGLE_REDIRECT_URI.startswith("https://"),
        path="/",
    )
    response.headers["Cache-Control"] = "no-store"
    logger.info("🔐 Google OAuth consent flow started")
    return response


@router.get("/oauth2callback")
async def google_oauth_callback(
    request: Request,
    code: Optional[str] = None,
    error: Optional[str] = None,
    error_description: Optional[str] = None,
    state: Optional[str] = None,
):
    """Display-only landing for the consent redirect; never exchanges the code"""
    expected_state = request.cookies.get(STATE_COOKIE)
    state_ok = state == expected_state if expected_state else True

    body = {
        "code": f"{code[:8]}***" if code else None,
        "error": error,
        "error_description": error_description,
        "state_ok": state_ok,
    }
    status_code = 400 if error or not state_ok else 200
    if status_code != 200:
        logger.warning(f"⚠️ Google OAuth callback rejected: error={error} state_ok={state_ok}")
    return JSONResponse(status_code=status_code, content=body, headers=NO_STORE)


@router.post("/google/exchange")
async def exchange_google_code(data: CodeExchangeRequest):
    """Redeem an authorization code once; Google's answer is passed through"""
    if not data.code:
        return JSONResponse(status_code=400, content={"error": "code_required"})
    if not GOOGLE_CLIENT_ID or not GOOGLE_CLIENT_SECRET:
        return JSONResponse(status_code=500, content={"error": "missing_client_env"})

    try:
        async with httpx.AsyncClient(timeout=15.0) as client:
            token_response = await client.post(
                GOOGLE_TOKEN_URL,
                auth=(GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET),
                data={
                    "grant_type": "authorization_code",
                    "code": data.code,
                    "redirect_uri": GOOGLE_REDIRECT_URI,
                },
            )
        payload = token_response.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.error(f"❌ Google code exchange failed: {e}")
        return JSONResponse(status_code=500, content={"error": "exchange_failed"}, headers=NO_STORE)

    if token_response.status_code != 200:
        logger.error(f"❌ Google code exchange rejected ({token_response.status_code}): {payload.get('error')}")
    else:
        logger.info("✅ Google authorization code exchanged")
    return JSONResponse(status_code=token_response.status_code, content=payload, headers=NO_STORE)
