"""
User service: login and user listing.
"""

from __future__ import annotations

from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import verify_password
from app.core.errors import NotFound, Unauthenticated
from app.models.user import User

log = structlog.get_logger()


def user_to_dict(user: User) -> dict:
    return {
        "id": user.id,
        "login_id": user.login_id,
        "name": user.name,
        "role": user.role,
        "icon_name": user.icon_name,
        "avatar_path": user.avatar_path,
        "created_at": user.created_at,
    }


async def list_active_users(session: AsyncSession) -> list[dict]:
    result = await session.execute(
        select(User).where(User.is_active == True).order_by(User.name)  # noqa: E712
    )
    return [user_to_dict(u) for u in result.scalars().all()]


async def get_user_or_404(session: AsyncSession, user_id: int) -> User:
    result = await session.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise NotFound("User not found.")
    return user


async def authenticate(session: AsyncSession, login_id: str, password: str) -> User:
    """Check a login id / password pair. Raises Unauthenticated on any mismatch."""
    result = await session.execute(select(User).where(User.login_id == login_id))
    user: Optional[User] = result.scalar_one_or_none()
    if not user or not user.password_hash or not verify_password(password, user.password_hash):
        log.info("auth.login_failed", login_id=login_id)
        raise Unauthenticated("Invalid login id or password.")
    if not user.is_active:
        raise Unauthenticated("This account has been deactivated.")
    log.info("auth.login", user_id=user.id)
    return user
