"""Channel and channel-privacy schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, Field, StrictBool, StrictInt


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class ChannelCreateRequest(BaseModel):
    """Create an ordinary (public) channel."""
    name: str = Field(min_length=1, max_length=255)


class ChannelUpdateRequest(BaseModel):
    """Rename a channel."""
    name: str = Field(min_length=1, max_length=255)


class ChannelPrivacyUpdateRequest(BaseModel):
    """Replace a channel's privacy flag and its member list.

    ``posting_restricted`` may only be supplied by admins and managers.
    ``member_ids`` is ignored (and membership cleared) when ``is_private`` is false.
    """
    is_private: StrictBool
    member_ids: List[StrictInt] = Field(default_factory=list)
    posting_restricted: Optional[StrictBool] = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class ChannelResponse(BaseModel):
    id: int
    name: str
    is_private: bool
    posting_restricted: bool
    is_dm: bool = False
    created_at: datetime


class ChannelListResponse(BaseModel):
    data: List[ChannelResponse]


class ChannelMembersResponse(BaseModel):
    """Members of a channel (admin/manager only)."""
    is_private: bool
    member_ids: List[int]
