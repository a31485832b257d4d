"""
Shared fixtures for server tests.

Tests run against an in-memory SQLite database (aiosqlite). Authentication
is replaced by an ``actor`` override and Redis event publishing is mocked.
"""

import os

os.environ.setdefault("TC_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("TC_LOG_FORMAT", "text")

from unittest.mock import AsyncMock, patch

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel

from app.core.auth import Actor, get_current_actor
from app.core.database import build_engine, get_session
from app.core.errors import Unauthenticated
from app.main import app
from app.models import Channel, ChannelMember, User
from teamchat_shared.schemas.common import Role


@pytest.fixture
async def engine():
    eng = build_engine("sqlite+aiosqlite://")
    async with eng.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
async def session(engine):
    async with AsyncSession(engine, expire_on_commit=False) as s:
        yield s


async def make_user(session: AsyncSession, user_id: int, role: Role = Role.MEMBER, **kwargs) -> User:
    user = User(
        id=user_id,
        login_id=kwargs.pop("login_id", f"user{user_id}"),
        name=kwargs.pop("name", f"User {user_id}"),
        role=role.value,
        **kwargs,
    )
    session.add(user)
    await session.commit()
    return user


async def make_channel(
    session: AsyncSession,
    name: str,
    *,
    channel_id: int | None = None,
    is_private: bool = False,
    posting_restricted: bool = False,
    members: tuple[int, ...] = (),
) -> Channel:
    channel = Channel(
        id=channel_id,
        name=name,
        is_private=is_private,
        posting_restricted=posting_restricted,
    )
    session.add(channel)
    await session.flush()
    for uid in members:
        session.add(ChannelMember(channel_id=channel.id, user_id=uid))
    await session.commit()
    return channel


@pytest.fixture
async def users(session):
    """Users 1-9 plus an admin (100) and a manager (101)."""
    for uid in range(1, 10):
        await make_user(session, uid, Role.VIEWER if uid == 8 else Role.MEMBER)
    await make_user(session, 100, Role.ADMIN)
    await make_user(session, 101, Role.MANAGER)
    return session


class ActorSwitch:
    """Sets which actor the API sees for subsequent requests."""

    def __init__(self):
        self.current: Actor | None = None

    def __call__(self, user_id: int, role: Role = Role.MEMBER) -> Actor:
        self.current = Actor(id=user_id, role=role)
        return self.current


@pytest.fixture
def act_as():
    return ActorSwitch()


@pytest.fixture
def published():
    """Captures channel events instead of publishing them to Redis."""
    mock = AsyncMock()
    with patch("app.api.v1.channels.publish_channel_event", mock), patch(
        "app.api.v1.messages.publish_channel_event", mock
    ):
        yield mock


@pytest.fixture
async def client(session, act_as, published):
    async def _session_override():
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise

    def _actor_override() -> Actor:
        if act_as.current is None:
            raise Unauthenticated()
        return act_as.current

    app.dependency_overrides[get_session] = _session_override
    app.dependency_overrides[get_current_actor] = _actor_override
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
