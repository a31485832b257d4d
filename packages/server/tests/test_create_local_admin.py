"""
Tests for the local admin bootstrap script.
"""

from contextlib import asynccontextmanager
from unittest.mock import patch

from sqlmodel import select

from app.core.auth import verify_password
from app.models.user import User
from app.scripts.create_local_admin import create_admin

from conftest import make_user


def _session_context(session):
    @asynccontextmanager
    async def _ctx():
        yield session
        await session.commit()

    return _ctx


async def _load(session, login_id: str) -> User:
    result = await session.execute(select(User).where(User.login_id == login_id))
    return result.scalar_one()


async def test_creates_admin(session):
    with patch("app.scripts.create_local_admin.get_session_context", _session_context(session)):
        await create_admin("root", "s3cret", "Root")

    user = await _load(session, "root")
    assert user.role == "admin"
    assert user.name == "Root"
    assert verify_password("s3cret", user.password_hash)


async def test_promotes_existing_user(session):
    await make_user(session, 5, login_id="bob", is_active=False)
    with patch("app.scripts.create_local_admin.get_session_context", _session_context(session)):
        await create_admin("bob", "newpass")

    user = await _load(session, "bob")
    assert user.id == 5
    assert user.role == "admin"
    assert user.is_active is True
    assert verify_password("newpass", user.password_hash)
