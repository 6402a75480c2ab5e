# app/core/errors.py
"""
Error taxonomy shared by the mentorship and messaging services.

Every service failure is a ServiceError carrying an HTTP-equivalent status
and a machine-readable code. Routers never translate these by hand: main.py
registers one exception handler that renders them as
{"detail": {"code": ..., "message": ...}}, and the WebSocket router pushes
the same pair back as an "error" event.
"""
import logging
from contextlib import asynccontextmanager

from tortoise.exceptions import BaseORMException

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    status_code: int = 500
    code: str = "SERVER_ERROR"

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class ValidationError(ServiceError):
    """Missing or malformed input."""
    status_code = 400
    code = "VALIDATION_ERROR"


class NotFound(ServiceError):
    """Referenced mentor/request/mentorship is absent or no longer in a usable state."""
    status_code = 404
    code = "NOT_FOUND"


class Conflict(ServiceError):
    status_code = 400
    code = "CONFLICT"


class AlreadyMentor(Conflict):
    code = "ALREADY_MENTOR"


class DuplicateRequest(Conflict):
    code = "DUPLICATE_REQUEST"


class MentorAtCapacity(Conflict):
    code = "MENTOR_AT_CAPACITY"


class Unauthorized(ServiceError):
    """Caller is not the mentor, mentee or an admin for the resource."""
    status_code = 403
    code = "FORBIDDEN"


class PersistenceError(ServiceError):
    status_code = 500
    code = "PERSISTENCE_ERROR"


class AuthError(ServiceError):
    """Credential missing, invalid, or pointing at a user that no longer exists."""
    status_code = 401
    code = "AUTH_INVALID_TOKEN"


@asynccontextmanager
async def persistence_guard(operation: str):
    """
    Wrap a primary write so ORM failures surface as PersistenceError.

    Service errors raised inside the block pass through untouched. When the
    block contains an in_transaction(), the transaction has already been
    rolled back by the time the exception reaches this guard.
    """
    try:
        yield
    except BaseORMException as e:
        logger.exception("[store] %s failed", operation)
        raise PersistenceError(f"Failed to {operation}") from e
