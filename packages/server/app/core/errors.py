"""
Error taxonomy for channel-scoped requests.

Every error renders with the same envelope as the CSRF middleware:
``{"error": {"code": ..., "message": ..., "status": ...}}``.

``Forbidden`` carries a ``DenialReason`` for logging only. The reason is
never rendered, so a denied caller cannot learn who the participants of a
DM channel are or which rule rejected them.
"""

from __future__ import annotations

from enum import Enum

from fastapi import Request
from fastapi.responses import JSONResponse
import structlog

from teamchat_shared.schemas.common import ErrorBody, ErrorResponse

log = structlog.get_logger()


class DenialReason(str, Enum):
    NOT_PRIVILEGED = "not_privileged"
    CHANNEL_NOT_VISIBLE = "channel_not_visible"
    POSTING_RESTRICTED = "posting_restricted"
    NOT_DM_PARTICIPANT = "not_dm_participant"
    DM_MUST_STAY_PRIVATE = "dm_must_stay_private"
    DM_MEMBERSHIP_FIXED = "dm_membership_fixed"
    POSTING_FLAG_PRIVILEGED = "posting_flag_privileged"
    NOT_MESSAGE_AUTHOR = "not_message_author"
    READ_ONLY_ROLE = "read_only_role"


class TeamchatError(Exception):
    status_code = 500
    code = "INTERNAL_ERROR"
    message = "Internal server error."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        if message is not None:
            self.message = message


class Unauthenticated(TeamchatError):
    status_code = 401
    code = "UNAUTHENTICATED"
    message = "Authentication required."


class NotFound(TeamchatError):
    status_code = 404
    code = "NOT_FOUND"
    message = "Resource not found."


class Forbidden(TeamchatError):
    status_code = 403
    code = "FORBIDDEN"
    message = "You do not have permission to perform this action."

    def __init__(self, reason: DenialReason):
        super().__init__()
        self.reason = reason


class ValidationFailed(TeamchatError):
    status_code = 422
    code = "VALIDATION_FAILED"
    message = "The request is invalid."


async def teamchat_error_handler(request: Request, exc: TeamchatError) -> JSONResponse:
    """Render a TeamchatError with the standard error envelope."""
    if isinstance(exc, Forbidden):
        log.info(
            "channel.access_denied",
            path=request.url.path,
            method=request.method,
            reason=exc.reason.value,
        )
    body = ErrorResponse(
        error=ErrorBody(code=exc.code, message=exc.message, status=exc.status_code)
    )
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())
