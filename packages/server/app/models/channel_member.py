"""Channel membership (join table).

Only meaningful while the channel is private; rows are replaced wholesale on
every privacy change.
"""

from sqlmodel import Field, SQLModel


class ChannelMember(SQLModel, table=True):
    __tablename__ = "channel_members"

    channel_id: int = Field(
        foreign_key="channels.id", primary_key=True, ondelete="CASCADE"
    )
    user_id: int = Field(
        foreign_key="users.id", primary_key=True, index=True, ondelete="CASCADE"
    )
