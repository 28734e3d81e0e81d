"""
Validation shared by every screen that creates or edits a student, and by the
import normalizer for the fields both paths have in common.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, Mapping, Optional

import pandas as pd

from madrassa.config import GENDERS, STUDENT_STATUSES

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

# Belgian exports write day-first dates; ISO is tried first so that
# yyyy-mm-dd is never read as a day-first value.
_DATE_FORMATS: tuple[str, ...] = (
    "%Y-%m-%d",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
    "%d/%m/%Y",
    "%d-%m-%Y",
    "%d.%m.%Y",
    "%Y/%m/%d",
    "%d/%m/%y",
)


class StudentValidationError(ValueError):
    """Raised when a create/update payload fails form validation."""

    def __init__(self, errors: dict[str, str]):
        self.errors = errors
        detail = "; ".join(f"{k}: {v}" for k, v in errors.items())
        super().__init__(f"Invalid student data ({detail})")


def is_valid_email(value: str) -> bool:
    return bool(_EMAIL_RE.match(value.strip()))


def parse_date(val) -> Optional[date]:
    """Parse a date value tolerantly. Return None if unparseable."""
    if val is None or (not isinstance(val, str) and pd.isna(val)):
        return None
    if isinstance(val, (date, datetime)):
        return val.date() if isinstance(val, datetime) else val
    s = str(val).strip()
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(s, fmt).date()
        except ValueError:
            continue
    return None


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def validate_student_form(
    data: Mapping[str, Any],
    partial: bool = False,
) -> dict[str, str]:
    """
    Check a student create/update payload.

    Returns a mapping of field name to message; empty when the payload is
    valid. With partial=True only the fields present in data are checked
    (used for updates).
    """
    errors: dict[str, str] = {}

    def check(name: str) -> bool:
        return not partial or name in data

    if check("firstName") and _blank(data.get("firstName")):
        errors["firstName"] = "First name is required"
    if check("lastName") and _blank(data.get("lastName")):
        errors["lastName"] = "Last name is required"

    if check("email"):
        email = data.get("email")
        if _blank(email):
            errors["email"] = "Email is required"
        elif not is_valid_email(str(email)):
            errors["email"] = "Invalid email address"

    # Date of birth is optional; a value that is given must parse.
    dob = data.get("dateOfBirth")
    if not _blank(dob) and parse_date(dob) is None:
        errors["dateOfBirth"] = f"Unrecognised date '{dob}'"

    if "gender" in data and data["gender"] not in GENDERS:
        errors["gender"] = f"Gender must be one of: {', '.join(GENDERS)}"
    if "status" in data and data["status"] not in STUDENT_STATUSES:
        errors["status"] = f"Status must be one of: {', '.join(STUDENT_STATUSES)}"

    return errors
