# task_api/errors.py
"""Error taxonomy for the task API and its JSON envelope."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class FieldError:
    """A single violated constraint on one input field."""

    field: str
    message: str

    def to_dict(self) -> dict:
        return {"field": self.field, "message": self.message}


class TaskAPIError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code = 500
    default_message = "Server error"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_body(self) -> dict:
        return {"success": False, "message": self.message}


class ValidationFailure(TaskAPIError):
    """Input failed validation. Carries every violated field, not just the first."""

    status_code = 400
    default_message = "Validation failed"

    def __init__(self, errors: list[FieldError], message: Optional[str] = None) -> None:
        super().__init__(message)
        self.errors = list(errors)

    def to_body(self) -> dict:
        body = super().to_body()
        body["errors"] = [e.to_dict() for e in self.errors]
        return body


class Unauthorized(TaskAPIError):
    status_code = 401
    default_message = "Not authorized"


class NotFound(TaskAPIError):
    """The resource does not exist or belongs to someone else."""

    status_code = 404
    default_message = "Task not found"


class ServerFault(TaskAPIError):
    """Persistence or infrastructure failure. The cause is logged, not returned."""

    status_code = 500
    default_message = "Server error"
