"""Site password gating with a signed session cookie."""

import logging
import secrets
import time
from typing import Annotated

from fastapi import APIRouter, Cookie, HTTPException, Request, Response
from jose import JWTError, jwt
from pydantic import BaseModel
from slowapi import Limiter
from slowapi.util import get_remote_address

from subfeed.config import get_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])
limiter = Limiter(key_func=get_remote_address)

SESSION_COOKIE = "subfeed_session"
OPEN_SESSION = "open"
OPEN_SESSION_MAX_AGE = 60 * 60 * 24 * 365  # 1 year


class LoginRequest(BaseModel):
    """Request model for logging in with the site password."""

    password: str | None = None


def _create_session_token() -> str:
    """Create a signed JWT session token."""
    settings = get_settings()
    now = int(time.time())
    payload = {
        "sub": "subfeed",
        "iat": now,
        "exp": now + 86400 * settings.session_max_age_days,
    }
    return jwt.encode(payload, settings.app_secret_key, algorithm="HS256")


def _verify_session_token(token: str) -> bool:
    """Check that a session token was signed by us and has not expired."""
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.app_secret_key, algorithms=["HS256"])
    except JWTError:
        return False
    return payload.get("sub") == "subfeed"


def _set_session_cookie(response: Response, value: str, max_age: int) -> None:
    settings = get_settings()
    response.set_cookie(
        SESSION_COOKIE,
        value,
        httponly=True,
        secure=settings.env == "prod",
        samesite="lax",
        path="/",
        max_age=max_age,
    )


async def require_session(
    session_cookie: Annotated[str | None, Cookie(alias=SESSION_COOKIE)] = None,
) -> None:
    """
    FastAPI dependency that gates a route behind the site password.

    When no site password is configured every request is allowed.

    Raises:
        HTTPException: 401 if the session is missing or invalid
    """
    settings = get_settings()
    if not settings.site_password:
        return

    if not session_cookie:
        raise HTTPException(status_code=401, detail="Not authenticated")

    if not _verify_session_token(session_cookie):
        raise HTTPException(status_code=401, detail="Invalid session")


@router.get("")
async def auth_status(response: Response):
    """
    Report whether password protection is enabled.

    When no site password is set, grants an open session cookie so the
    frontend can proceed without a login screen.
    """
    settings = get_settings()
    if not settings.site_password:
        _set_session_cookie(response, OPEN_SESSION, OPEN_SESSION_MAX_AGE)
        return {"required": False}
    return {"required": True}


@router.post("")
@limiter.limit("10/minute")
async def login(request: Request, body: LoginRequest, response: Response):
    """
    Log in with the site password.

    Rate limit: 10 requests per minute per IP to slow down guessing.
    """
    settings = get_settings()
    ip_address = request.client.host if request.client else "unknown"

    if not body.password:
        raise HTTPException(status_code=400, detail="Password is required")

    if not settings.site_password:
        raise HTTPException(
            status_code=500, detail="Auth is not configured on the server"
        )

    if not secrets.compare_digest(
        body.password.encode(), settings.site_password.encode()
    ):
        logger.warning(f"Failed login attempt from IP: {ip_address}")
        raise HTTPException(status_code=401, detail="Invalid password")

    _set_session_cookie(
        response, _create_session_token(), 86400 * settings.session_max_age_days
    )
    logger.info(f"Successful login from IP: {ip_address}")
    return {"success": True}


@router.delete("")
async def logout(response: Response):
    """Log out by clearing the session cookie."""
    response.delete_cookie(SESSION_COOKIE, path="/")
    return {"success": True}
