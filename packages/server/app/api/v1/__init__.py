"""
API v1 Router
"""

from fastapi import APIRouter
from . import channels, dm, messages, users

router = APIRouter()

router.include_router(channels.router, prefix="/channels", tags=["Channels"])
router.include_router(messages.router, prefix="/channels", tags=["Messages"])
router.include_router(dm.router, prefix="/dm", tags=["Direct Messages"])
router.include_router(users.router, prefix="/users", tags=["Users"])


@router.get("/", tags=["API"])
async def api_root():
    """API root: version and available endpoints."""
    return {
        "api": "v1",
        "version": "0.1.0",
        "endpoints": [
            "/channels",
            "/channels/{channel_id}/members",
            "/channels/{channel_id}/privacy",
            "/channels/{channel_id}/messages",
            "/dm/{user_id}",
            "/users",
        ],
    }
