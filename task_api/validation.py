# task_api/validation.py
"""Payload validation for tasks and user credentials.

Each ``collect_*`` function is pure: it inspects a raw JSON payload and
returns every violated constraint as a :class:`FieldError`, never stopping
at the first one. The ``validate_*`` wrappers raise
:class:`ValidationFailure` when that list is non-empty.
"""

import math
import re
from datetime import datetime
from typing import Any, Optional

from task_api.errors import FieldError, ValidationFailure
from task_api.models import TaskFields, TaskPriority, TaskStatus, as_utc

TITLE_MAX = 100
DESCRIPTION_MAX = 1000
HOURS_MAX = 1000
TAG_MAX = 50

USERNAME_MIN = 3
USERNAME_MAX = 30
PASSWORD_MIN = 6

_USERNAME_RE = re.compile(r"^[A-Za-z0-9_]+$")
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

_STATUS_VALUES = [s.value for s in TaskStatus]
_PRIORITY_VALUES = [p.value for p in TaskPriority]


def _check_text(
    payload: dict, field: str, label: str, max_len: int, errors: list[FieldError]
) -> Optional[str]:
    value = payload.get(field)
    if value is None or (isinstance(value, str) and not value.strip()):
        errors.append(FieldError(field, f"{label} is required"))
        return None
    if not isinstance(value, str):
        errors.append(FieldError(field, f"{label} must be a string"))
        return None
    value = value.strip()
    if len(value) > max_len:
        errors.append(FieldError(field, f"{label} cannot exceed {max_len} characters"))
        return None
    return value


def _check_choice(payload: dict, field: str, allowed: list[str], default: str,
                  errors: list[FieldError]) -> Optional[str]:
    value = payload.get(field)
    if value is None:
        return default
    if value not in allowed:
        errors.append(FieldError(field, f"Invalid {field} value"))
        return None
    return value


def _parse_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if not isinstance(value, (int, float, str)):
        return None
    try:
        number = float(value.strip() if isinstance(value, str) else value)
    except (ValueError, OverflowError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def _check_hours(payload: dict, field: str, label: str,
                 errors: list[FieldError]) -> Optional[float]:
    value = payload.get(field)
    if value is None:
        return 0.0
    number = _parse_number(value)
    if number is None or not 0 <= number <= HOURS_MAX:
        errors.append(FieldError(field, f"{label} must be between 0 and {HOURS_MAX}"))
        return None
    return number


def parse_datetime(value: str) -> Optional[datetime]:
    """Parse an ISO-8601 date or datetime. Naive values are taken as UTC."""
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    return as_utc(parsed)


def _check_due_date(payload: dict, now: datetime,
                    errors: list[FieldError]) -> Optional[datetime]:
    value = payload.get("dueDate")
    if value is None or value == "":
        return None
    parsed = parse_datetime(value) if isinstance(value, str) else None
    if parsed is None:
        errors.append(FieldError("dueDate", "Due date must be a valid ISO-8601 date"))
        return None
    if parsed <= as_utc(now):
        errors.append(FieldError("dueDate", "Due date must be in the future"))
        return None
    return parsed


def _check_tags(payload: dict, errors: list[FieldError]) -> list[str]:
    value = payload.get("tags")
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(t, str) for t in value):
        errors.append(FieldError("tags", "Tags must be a list of strings"))
        return []
    tags = [t.strip() for t in value if t.strip()]
    if any(len(t) > TAG_MAX for t in tags):
        errors.append(FieldError("tags", f"Tags cannot exceed {TAG_MAX} characters"))
        return []
    return tags


def _check_object(payload: Any) -> list[FieldError]:
    if isinstance(payload, dict):
        return []
    return [FieldError("body", "Request body must be a JSON object")]


def _clean_task(payload: Any, now: datetime) -> tuple[dict, list[FieldError]]:
    errors = _check_object(payload)
    if errors:
        return {}, errors

    is_urgent = payload.get("isUrgent", False)
    if is_urgent is None:
        is_urgent = False
    if not isinstance(is_urgent, bool):
        errors.append(FieldError("isUrgent", "isUrgent must be a boolean"))

    cleaned = {
        "title": _check_text(payload, "title", "Title", TITLE_MAX, errors),
        "description": _check_text(
            payload, "description", "Description", DESCRIPTION_MAX, errors
        ),
        "status": _check_choice(
            payload, "status", _STATUS_VALUES, TaskStatus.pending.value, errors
        ),
        "priority": _check_choice(
            payload, "priority", _PRIORITY_VALUES, TaskPriority.medium.value, errors
        ),
        "is_urgent": is_urgent,
        "estimated_hours": _check_hours(
            payload, "estimatedHours", "Estimated hours", errors
        ),
        "actual_hours": _check_hours(payload, "actualHours", "Actual hours", errors),
        "due_date": _check_due_date(payload, now, errors),
        "tags": _check_tags(payload, errors),
    }
    return cleaned, errors


def collect_task_errors(payload: Any, now: datetime) -> list[FieldError]:
    """Return every constraint a task payload violates, in field order."""
    _, errors = _clean_task(payload, now)
    return errors


def validate_task(payload: Any, now: datetime) -> TaskFields:
    """Validate a task payload and return its cleaned fields.

    Raises:
        ValidationFailure: listing one message per violated field.
    """
    cleaned, errors = _clean_task(payload, now)
    if errors:
        raise ValidationFailure(errors)
    return TaskFields(
        title=cleaned["title"],
        description=cleaned["description"],
        status=TaskStatus(cleaned["status"]),
        priority=TaskPriority(cleaned["priority"]),
        is_urgent=cleaned["is_urgent"],
        estimated_hours=cleaned["estimated_hours"],
        actual_hours=cleaned["actual_hours"],
        due_date=cleaned["due_date"],
        tags=cleaned["tags"],
    )


def _check_email(payload: dict, errors: list[FieldError]) -> Optional[str]:
    email = payload.get("email")
    if not isinstance(email, str) or not _EMAIL_RE.match(email.strip()):
        errors.append(FieldError("email", "Please provide a valid email"))
        return None
    return email.strip().lower()


def collect_registration_errors(payload: Any) -> list[FieldError]:
    errors = _check_object(payload)
    if errors:
        return errors

    username = payload.get("username")
    if not isinstance(username, str) or not (
        USERNAME_MIN <= len(username) <= USERNAME_MAX
    ):
        errors.append(FieldError(
            "username",
            f"Username must be between {USERNAME_MIN} and {USERNAME_MAX} characters",
        ))
    elif not _USERNAME_RE.match(username):
        errors.append(FieldError(
            "username", "Username can only contain letters, numbers and underscores"
        ))

    _check_email(payload, errors)

    password = payload.get("password")
    if not isinstance(password, str) or len(password) < PASSWORD_MIN:
        errors.append(FieldError(
            "password", f"Password must be at least {PASSWORD_MIN} characters long"
        ))
    return errors


def validate_registration(payload: Any) -> tuple[str, str, str]:
    """Return ``(username, email, password)`` or raise ValidationFailure."""
    errors = collect_registration_errors(payload)
    if errors:
        raise ValidationFailure(errors)
    return payload["username"], payload["email"].strip().lower(), payload["password"]


def validate_login(payload: Any) -> tuple[str, str]:
    """Return ``(email, password)`` or raise ValidationFailure."""
    errors = _check_object(payload)
    if errors:
        raise ValidationFailure(errors)
    email = _check_email(payload, errors)
    password = payload.get("password")
    if not isinstance(password, str) or not password:
        errors.append(FieldError("password", "Password is required"))
    if errors:
        raise ValidationFailure(errors)
    return email, password
