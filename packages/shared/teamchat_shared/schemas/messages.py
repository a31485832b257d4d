"""Message schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, Field


class PostMessageRequest(BaseModel):
    content: str = Field(min_length=1)


class MessageUpdateRequest(BaseModel):
    content: str = Field(min_length=1)


class MessageResponse(BaseModel):
    id: int
    channel_id: int
    user_id: int
    sender_name: Optional[str] = None
    content: str
    created_at: datetime
    updated_at: datetime


class Pagination(BaseModel):
    next_cursor: Optional[str] = None
    has_more: bool
    limit: int


class MessageListResponse(BaseModel):
    data: List[MessageResponse]
    pagination: Pagination
