"""
Domain errors raised by services and rendered by the API layer.
"""

from typing import Optional


class ControlRoomError(Exception):
    """Base class for errors reported to the caller."""

    status_code = 400
    error = "error"

    def __init__(self, message: str, field: Optional[str] = None, fields: Optional[list[str]] = None):
        super().__init__(message)
        self.message = message
        self.fields = list(fields) if fields else ([field] if field else [])

    @property
    def field(self) -> Optional[str]:
        return self.fields[0] if self.fields else None

    def to_detail(self) -> dict:
        detail = {"error": self.error, "message": self.message}
        if self.fields:
            detail["fields"] = self.fields
        return detail


class ValidationError(ControlRoomError):
    """A required field is missing, empty, or has an invalid value."""

    status_code = 400
    error = "validation_error"


class AssignmentRequiredError(ControlRoomError):
    """A non-admin draft has no admin reviewer assigned."""

    status_code = 400
    error = "assignment_required"

    def __init__(self, message: str = "At least one admin must be assigned to review this policy"):
        super().__init__(message, field="assigned_users")


class PermissionDeniedError(ControlRoomError):
    """The actor's role or relationship to the record is insufficient."""

    status_code = 403
    error = "forbidden"


class NotFoundError(ControlRoomError):
    status_code = 404
    error = "not_found"


class ConflictError(ControlRoomError):
    """The record changed underneath the caller, or a unique key is taken."""

    status_code = 409
    error = "conflict"
