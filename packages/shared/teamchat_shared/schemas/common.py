from enum import Enum
from pydantic import BaseModel

class Role(str, Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    MEMBER = "member"
    VIEWER = "viewer"

# Roles that bypass channel membership for viewing and mutation
PRIVILEGED_ROLES: frozenset["Role"] = frozenset({Role.ADMIN, Role.MANAGER})

class ErrorBody(BaseModel):
    code: str
    message: str
    status: int

class ErrorResponse(BaseModel):
    error: ErrorBody
