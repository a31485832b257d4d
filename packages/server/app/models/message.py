"""Message model."""

from sqlmodel import Field

from .base import IntIdMixin, TimestampMixin


class Message(IntIdMixin, TimestampMixin, table=True):
    __tablename__ = "messages"

    channel_id: int = Field(foreign_key="channels.id", nullable=False, index=True, ondelete="CASCADE")
    user_id: int = Field(foreign_key="users.id", nullable=False, index=True)
    content: str = Field(nullable=False)
