"""Auth Routes: register, login, logout.

Invariants:
    - Successful register/login always establish a fresh session and set the cookie
    - Login failure redirects with a generic error flag; never says which part was wrong
    - Logout is idempotent: an unknown or dead token still clears the cookie

Design Decisions:
    - 303 See Other after POST: browsers follow with GET
    - Cookie is HTTP-only and SameSite=Lax; Secure toggled by settings
"""

import logging

from fastapi import APIRouter, Depends, Form, status
from fastapi.responses import RedirectResponse

from pixnest.api.dependencies import (
    get_credential_store, get_session_manager, read_session_token,
)
from pixnest.config import Settings, get_settings
from pixnest.core.errors import InvalidCredentialsError
from pixnest.schemas.user import (
    EMAIL_PATTERN, FULL_NAME_MAX, PASSWORD_MAX, PASSWORD_MIN, USERNAME_PATTERN,
)
from pixnest.services.credential_store import CredentialStore
from pixnest.services.session_manager import SessionManager

logger = logging.getLogger(__name__)
router = APIRouter(tags=["auth"])


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url, status_code=status.HTTP_303_SEE_OTHER)


def _set_session_cookie(
    response: RedirectResponse, token: str, settings: Settings,
) -> None:
    response.set_cookie(
        settings.session_cookie_name,
        token,
        max_age=settings.session_ttl_seconds,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )


@router.post("/register")
async def register(
    username: str = Form(..., pattern=USERNAME_PATTERN),
    email: str = Form(..., pattern=EMAIL_PATTERN, max_length=254),
    fullname: str = Form("", max_length=FULL_NAME_MAX),
    password: str = Form(..., min_length=PASSWORD_MIN, max_length=PASSWORD_MAX),
    credentials: CredentialStore = Depends(get_credential_store),
    sessions: SessionManager = Depends(get_session_manager),
    settings: Settings = Depends(get_settings),
):
    """Create an account and log it in. 409 DUPLICATE_IDENTITY on collision."""
    user_id = await credentials.register(username, email, fullname, password)
    token = await sessions.establish(user_id)
    response = _redirect("/profile")
    _set_session_cookie(response, token, settings)
    return response


@router.post("/login")
async def login(
    username: str = Form(..., max_length=254),
    password: str = Form(..., max_length=256),
    credentials: CredentialStore = Depends(get_credential_store),
    sessions: SessionManager = Depends(get_session_manager),
    settings: Settings = Depends(get_settings),
):
    """Verify credentials (username or email) and start a session."""
    try:
        user_id = await credentials.verify(username, password)
    except InvalidCredentialsError as e:
        logger.info("Login failed", extra={"error_code": e.code})
        return _redirect("/login?error=invalid_credentials")
    token = await sessions.establish(user_id)
    response = _redirect("/profile")
    _set_session_cookie(response, token, settings)
    return response


@router.get("/logout")
async def logout(
    token: str | None = Depends(read_session_token),
    sessions: SessionManager = Depends(get_session_manager),
    settings: Settings = Depends(get_settings),
):
    await sessions.invalidate(token)
    response = _redirect("/")
    response.delete_cookie(settings.session_cookie_name)
    return response
