# SQLModel definitions, imported here so the metadata is populated for Alembic.
from .base import IntIdMixin, TimestampMixin  # noqa: F401
from .user import User  # noqa: F401
from .channel import Channel  # noqa: F401
from .channel_member import ChannelMember  # noqa: F401
from .message import Message  # noqa: F401
