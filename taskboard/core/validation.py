import logging
import re
from typing import Any, Dict, Iterable, Mapping, Optional

from fastapi import HTTPException


logger = logging.getLogger(__name__)

PRIORITIES = ('LOW', 'MEDIUM', 'HIGH')
STATUSES = ('TO DO', 'IN PROGRESS', 'DONE')
ROLES = ('User', 'Project manager', 'Administrator')

FIELD_LABELS: Dict[str, str] = {
    'title': 'Title',
    'description': 'Description',
    'project_id': 'Project',
    'due_date': 'Due date',
}

EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
USER_ID_PATTERN = re.compile(r'^[a-zA-Z0-9_-]+$')

ValidationErrors = Dict[str, str]


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    return str(value).strip() == ''


def validate_required_fields(
    values: Mapping[str, Any],
    required_fields: Iterable[str],
    labels: Optional[Mapping[str, str]] = None,
) -> ValidationErrors:
    """Return a message for every required field whose value is blank.

    A value is blank when it is missing, ``None`` or only whitespace once
    converted to a string. Messages read ``"<Label> is required."`` where the
    label falls back to the raw field name.
    """
    labels = FIELD_LABELS if labels is None else labels
    errors: ValidationErrors = {}
    for field in required_fields:
        if is_blank(values.get(field)):
            errors[field] = f"{labels.get(field) or field} is required."
    return errors


def validate_choice(name: str, value: Optional[str], choices: Iterable[str]) -> None:
    if value and value not in choices:
        logger.warning(f"Rejected {name}={value!r}")
        raise HTTPException(status_code=400, detail=f"Invalid {name}. Allowed: {', '.join(choices)}")


def validate_email(email: Optional[str]) -> str:
    email = (email or '').strip()
    if not email:
        logger.warning("Rejected magic link request without email")
        raise HTTPException(status_code=400, detail="email is required")
    if not EMAIL_PATTERN.match(email):
        logger.warning(f"Rejected malformed email {email!r}")
        raise HTTPException(status_code=400, detail="Invalid email format")
    return email


def validate_user_id(name: str, value: Optional[str]) -> None:
    if value and not USER_ID_PATTERN.match(value):
        logger.warning(f"Rejected {name}={value!r}")
        raise HTTPException(status_code=400, detail=f"Invalid {name} format")


def validate_numeric_id(name: str, value: Optional[str]) -> None:
    if value and not str(value).strip().isdigit():
        logger.warning(f"Rejected {name}={value!r}")
        raise HTTPException(status_code=400, detail=f"Invalid {name} format")
