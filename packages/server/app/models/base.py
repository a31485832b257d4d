"""Base mixins for SQLModel tables."""

from datetime import datetime, timezone
from typing import Optional
import sqlalchemy as sa
from sqlmodel import Field, SQLModel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TimestampMixin(SQLModel):
    created_at: datetime = Field(
        default_factory=_utcnow,
        nullable=False,
        sa_column_kwargs={"server_default": sa.func.now()},
        sa_type=sa.DateTime(timezone=True),
    )
    updated_at: datetime = Field(
        default_factory=_utcnow,
        nullable=False,
        sa_column_kwargs={"server_default": sa.func.now(), "onupdate": _utcnow},
        sa_type=sa.DateTime(timezone=True),
    )


class IntIdMixin(SQLModel):
    id: Optional[int] = Field(default=None, primary_key=True)
