"""
Authentication endpoints.

- POST /login  — login id / password; sets session + CSRF cookies
- POST /logout — revoke the current session
- GET  /me     — the authenticated user
"""

from __future__ import annotations

from datetime import datetime, timezone

import jwt
import structlog
from fastapi import APIRouter, Depends, Request, Response
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import (
    CSRF_COOKIE,
    SESSION_COOKIE,
    Actor,
    bearer_scheme,
    create_jwt,
    decode_jwt,
    extract_token,
    generate_csrf_token,
    get_current_actor,
    revoke_jwt,
)
from app.core.config import get_settings
from app.core.database import get_session
from app.services import users as user_service
from teamchat_shared.schemas.users import AuthResponse, LoginRequest, UserResponse

log = structlog.get_logger()
settings = get_settings()
router = APIRouter()

# Cookie config
COOKIE_KWARGS = {
    "httponly": True,
    "secure": not settings.debug,  # allow non-HTTPS in dev
    "samesite": "lax",
    "path": "/",
    "max_age": settings.jwt_expire_minutes * 60,
}


def _set_session_cookies(response: Response, token: str, csrf: str) -> None:
    """Set the session JWT and CSRF cookies on a response."""
    response.set_cookie(key=SESSION_COOKIE, value=token, **COOKIE_KWARGS)
    response.set_cookie(key=CSRF_COOKIE, value=csrf, **{**COOKIE_KWARGS, "httponly": False})


@router.post("/login", response_model=AuthResponse)
async def login(
    body: LoginRequest,
    response: Response,
    session: AsyncSession = Depends(get_session),
):
    user = await user_service.authenticate(session, body.login_id, body.password)
    token, _ = create_jwt(user.id, user.role)
    _set_session_cookies(response, token, generate_csrf_token())
    return AuthResponse(user=UserResponse(**user_service.user_to_dict(user)), access_token=token)


@router.post("/logout", status_code=204)
async def logout(
    request: Request,
    response: Response,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
):
    """Revoke the presented session token (if still valid) and clear cookies."""
    token = extract_token(request, credentials)
    if token:
        try:
            payload = decode_jwt(token)
        except jwt.PyJWTError:
            payload = None
        if payload and payload.get("jti"):
            remaining = int(payload["exp"] - datetime.now(timezone.utc).timestamp())
            await revoke_jwt(payload["jti"], ttl_seconds=max(remaining, 1))
            log.info("auth.logout", user_id=payload.get("sub"))

    response.delete_cookie(SESSION_COOKIE, path="/")
    response.delete_cookie(CSRF_COOKIE, path="/")


@router.get("/me", response_model=UserResponse)
async def me(
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_session),
):
    user = await user_service.get_user_or_404(session, actor.id)
    return UserResponse(**user_service.user_to_dict(user))
