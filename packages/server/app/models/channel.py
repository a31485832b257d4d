"""Channel model.

A channel named ``dm:<low>-<high>`` is a direct-message channel between two
users; see ``app.services.dm``.
"""

from sqlmodel import Field

from .base import IntIdMixin, TimestampMixin


class Channel(IntIdMixin, TimestampMixin, table=True):
    __tablename__ = "channels"

    name: str = Field(nullable=False, unique=True, max_length=255)
    is_private: bool = Field(default=False, nullable=False, index=True)
    posting_restricted: bool = Field(default=False, nullable=False)
