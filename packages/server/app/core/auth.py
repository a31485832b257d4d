"""
Authentication for Teamchat.

Supports:
- Login id / password with bcrypt hashes
- JWT sessions, presented as a Bearer token or the ``tc_session`` cookie
- JWT revocation list in Redis (logout)
- Rejection of deactivated users on every request

Produces the ``Actor`` (id + role) every channel-scoped check runs against.
"""

from __future__ import annotations

import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
import structlog
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.config import get_settings
from app.core.database import get_session
from app.core.errors import Unauthenticated
from app.core.redis import get_redis
from app.models.user import User
from teamchat_shared.schemas.common import Role

log = structlog.get_logger()
settings = get_settings()

bearer_scheme = HTTPBearer(auto_error=False)

SESSION_COOKIE = "tc_session"
CSRF_COOKIE = "tc_csrf"

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------

def hash_password(password: str) -> str:
    """Hash a password using bcrypt with cost factor 12."""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=12)).decode()


def verify_password(password: str, hashed: str) -> bool:
    """Verify a password against a bcrypt hash."""
    return bcrypt.checkpw(password.encode(), hashed.encode())


# ---------------------------------------------------------------------------
# JWT
# ---------------------------------------------------------------------------

def create_jwt(
    user_id: int,
    role: str,
    *,
    expires_delta: timedelta | None = None,
) -> tuple[str, str]:
    """Create a signed JWT. Returns (token, jti)."""
    jti = str(uuid.uuid4())
    now = datetime.now(timezone.utc)
    exp = now + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    payload = {
        "sub": str(user_id),
        "role": role,
        "iat": now,
        "exp": exp,
        "jti": jti,
    }
    token = jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)
    return token, jti


def decode_jwt(token: str) -> dict:
    """Decode and verify a JWT. Raises jwt.PyJWTError on failure."""
    return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])


# ---------------------------------------------------------------------------
# JWT Revocation (Redis)
# ---------------------------------------------------------------------------

async def revoke_jwt(jti: str, ttl_seconds: int = 3600) -> None:
    """Add a JWT ID to the revocation list in Redis."""
    redis = await get_redis()
    await redis.setex(f"jwt:revoked:{jti}", ttl_seconds, "1")


async def is_jwt_revoked(jti: str) -> bool:
    """Check if a JWT ID has been revoked."""
    redis = await get_redis()
    return await redis.exists(f"jwt:revoked:{jti}") > 0


# ---------------------------------------------------------------------------
# CSRF Token
# ---------------------------------------------------------------------------

def generate_csrf_token() -> str:
    """Generate a random CSRF token."""
    return secrets.token_urlsafe(32)


# ---------------------------------------------------------------------------
# Actor resolution
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Actor:
    """The authenticated principal of a request."""

    id: int
    role: Role

    @classmethod
    def from_user(cls, user: User) -> "Actor":
        return cls(id=user.id, role=Role(user.role))


def extract_token(
    request: Request, credentials: Optional[HTTPAuthorizationCredentials]
) -> str | None:
    """Bearer header wins over the session cookie."""
    if credentials and credentials.scheme.lower() == "bearer":
        return credentials.credentials.strip()
    return request.cookies.get(SESSION_COOKIE)


async def load_active_user(session: AsyncSession, token: str) -> tuple[User, dict]:
    """Resolve a session token to an active user. Returns (user, claims)."""
    try:
        payload = decode_jwt(token)
    except jwt.PyJWTError:
        raise Unauthenticated("Invalid or expired session.") from None

    jti = payload.get("jti")
    if jti and await is_jwt_revoked(jti):
        raise Unauthenticated("Session has been revoked.")

    try:
        user_id = int(payload["sub"])
    except (KeyError, ValueError):
        raise Unauthenticated("Invalid or expired session.") from None

    result = await session.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise Unauthenticated("User not found.")
    if not user.is_active:
        log.info("auth.inactive_user_rejected", user_id=user.id)
        raise Unauthenticated("This account has been deactivated.")
    return user, payload


async def get_current_actor(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    session: AsyncSession = Depends(get_session),
) -> Actor:
    """Main authentication dependency. Raises Unauthenticated when no actor resolves."""
    token = extract_token(request, credentials)
    if not token:
        raise Unauthenticated()
    user, payload = await load_active_user(session, token)
    request.state.jti = payload.get("jti")
    return Actor.from_user(user)
