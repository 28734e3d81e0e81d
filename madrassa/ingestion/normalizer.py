"""
Record normalizer: resolved import row -> StudentDraft or RowRejection.

Pure transformation, no I/O. Applying it to a draft's own as_row() output
returns the same draft, so defaults never stack.
"""

from __future__ import annotations

import math
from datetime import date, datetime
from typing import Mapping, Optional, Union

from madrassa.config import DEFAULT_COUNTRY, DEFAULT_STATUS
from madrassa.students.models import Gender, RowRejection, StudentDraft, StudentStatus
from madrassa.students.validation import is_valid_email, parse_date

FEMALE_TOKENS: frozenset[str] = frozenset({"female", "f", "vrouw", "v", "vrouwelijk", "meisje"})

# Dutch labels used on the school's own forms, plus the canonical values.
STATUS_TOKENS: dict[str, str] = {
    "active": StudentStatus.ACTIVE,
    "actief": StudentStatus.ACTIVE,
    "inactive": StudentStatus.INACTIVE,
    "inactief": StudentStatus.INACTIVE,
    "graduated": StudentStatus.GRADUATED,
    "afgestudeerd": StudentStatus.GRADUATED,
    "transferred": StudentStatus.TRANSFERRED,
    "overgeplaatst": StudentStatus.TRANSFERRED,
}

_TEXT_FIELDS: tuple[str, ...] = (
    "studentId",
    "firstName",
    "lastName",
    "email",
    "phone",
    "street",
    "houseNumber",
    "postalCode",
    "city",
    "country",
)

NormalizeOutcome = Union[StudentDraft, RowRejection]


def clean_text(value) -> Optional[str]:
    """Trim a cell to text. Empty, NaN and None become None."""
    if value is None:
        return None
    if isinstance(value, float):
        if math.isnan(value):
            return None
        # Excel stores phone numbers and postcodes as floats
        if value.is_integer():
            value = int(value)
    if isinstance(value, datetime):
        value = value.date()
    if isinstance(value, date):
        return value.isoformat()
    text = str(value).strip()
    return text or None


def normalize_gender(value) -> str:
    token = clean_text(value)
    if token and token.lower() in FEMALE_TOKENS:
        return Gender.FEMALE
    return Gender.MALE


def normalize_status(value) -> Optional[str]:
    """Map a status cell to a canonical status; None when unrecognised."""
    token = clean_text(value)
    if token is None:
        return DEFAULT_STATUS
    return STATUS_TOKENS.get(token.lower())


def normalize_row(resolved: Mapping[str, object], row_number: int) -> NormalizeOutcome:
    """
    Build a StudentDraft from one resolved row.

    Parameters
    ----------
    resolved : mapping
        {canonical_field: raw_value} as returned by resolve_row().
    row_number : int
        1-based data row number, used in the rejection reason.

    Returns
    -------
    StudentDraft, or RowRejection when a required name is missing, the
    email is malformed or the status is not recognised.
    """
    text = {name: clean_text(resolved.get(name)) for name in _TEXT_FIELDS}

    missing = [name for name in ("firstName", "lastName") if text[name] is None]
    if missing:
        return RowRejection(row_number, f"Missing required field(s): {', '.join(missing)}")

    if text["email"] is not None and not is_valid_email(text["email"]):
        return RowRejection(row_number, f"Invalid email address '{text['email']}'")

    status = normalize_status(resolved.get("status"))
    if status is None:
        return RowRejection(row_number, f"Unknown status '{clean_text(resolved.get('status'))}'")

    return StudentDraft(
        studentId=text["studentId"],
        firstName=text["firstName"],
        lastName=text["lastName"],
        email=text["email"],
        phone=text["phone"],
        gender=normalize_gender(resolved.get("gender")),
        dateOfBirth=parse_date(resolved.get("dateOfBirth")),
        street=text["street"],
        houseNumber=text["houseNumber"],
        postalCode=text["postalCode"],
        city=text["city"],
        country=text["country"] or DEFAULT_COUNTRY,
        status=status,
    )
