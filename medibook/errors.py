"""
Error taxonomy for the MediBook API.

Every error is an HTTPException so FastAPI renders it as {"detail": ...}
without extra handlers. Storage and identity-provider failures are mapped
onto these at the service boundary; raw driver errors never reach callers.
"""

import logging
from contextlib import contextmanager
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


class ValidationError(HTTPException):
    """Missing or malformed input (400)"""

    def __init__(self, message: str, field: Optional[str] = None):
        detail = {"message": message}
        if field:
            detail["field"] = field
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)
        self.field = field
        self.message = message


class AuthenticationError(HTTPException):
    def __init__(self, detail: str = "Not authenticated"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class PermissionDeniedError(HTTPException):
    def __init__(self, detail: str = "You do not have permission to perform this action"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class NotFoundError(HTTPException):
    def __init__(self, detail: str = "Not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class ConflictError(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class InvalidTransitionError(ConflictError):
    """Appointment status change not allowed by the state machine"""

    def __init__(self, current: str, requested: str):
        super().__init__(f"Cannot change appointment status from '{current}' to '{requested}'")
        self.current = current
        self.requested = requested


class UpstreamError(HTTPException):
    """Storage or identity provider unavailable; not retried by the service"""

    def __init__(self, detail: str = "Service temporarily unavailable. Please try again."):
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)


@contextmanager
def storage_errors(db: Session, action: str):
    """Roll back and translate SQLAlchemy failures into UpstreamError"""
    try:
        yield
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"❌ Storage failure while trying to {action}: {type(e).__name__}: {e}")
        raise UpstreamError(f"Failed to {action}. Please try again.") from e


def is_unique_violation(exc: SQLAlchemyError) -> bool:
    """True if exc is a duplicate-key failure (PostgreSQL 23505 or SQLite UNIQUE)"""
    orig = getattr(exc, "orig", None)
    if getattr(orig, "pgcode", None) == "23505":
        return True
    message = str(orig or exc).lower()
    return "duplicate key" in message or "unique constraint" in message
