"""
Student record types shared by the importer, the REST client and the roster.

Field names follow the API's camelCase wire format so that a draft can be
posted as-is and a row exported from the API re-imports without renaming.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import date
from typing import Any, Optional

from madrassa.config import DEFAULT_COUNTRY, DEFAULT_GENDER, DEFAULT_STATUS


class Gender:
    MALE = "male"
    FEMALE = "female"


class StudentStatus:
    ACTIVE = "active"
    INACTIVE = "inactive"
    GRADUATED = "graduated"
    TRANSFERRED = "transferred"


# Canonical field order; also the column order of a preview table.
STUDENT_FIELDS: tuple[str, ...] = (
    "studentId",
    "firstName",
    "lastName",
    "email",
    "phone",
    "gender",
    "dateOfBirth",
    "street",
    "houseNumber",
    "postalCode",
    "city",
    "country",
    "status",
)

REQUIRED_FIELDS: tuple[str, ...] = ("firstName", "lastName")


@dataclass(frozen=True)
class StudentDraft:
    """One normalized spreadsheet row, ready to be submitted."""

    firstName: str
    lastName: str
    studentId: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    gender: str = DEFAULT_GENDER
    dateOfBirth: Optional[date] = None
    street: Optional[str] = None
    houseNumber: Optional[str] = None
    postalCode: Optional[str] = None
    city: Optional[str] = None
    country: str = DEFAULT_COUNTRY
    status: str = DEFAULT_STATUS

    @property
    def full_name(self) -> str:
        return f"{self.firstName} {self.lastName}"

    def as_row(self) -> dict[str, str]:
        """Present fields as a raw import row (canonical headers, text values)."""
        row: dict[str, str] = {}
        for name in STUDENT_FIELDS:
            value = getattr(self, name)
            if value is None:
                continue
            row[name] = value.isoformat() if isinstance(value, date) else str(value)
        return row

    def as_payload(self) -> dict[str, Any]:
        """JSON body for the API. Absent optional fields are sent as null."""
        payload: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            payload[f.name] = value.isoformat() if isinstance(value, date) else value
        return payload


@dataclass(frozen=True)
class RowRejection:
    """A data row excluded from the batch. row_number is 1-based, header excluded."""

    row_number: int
    reason: str


@dataclass(frozen=True)
class RowError:
    row: int
    message: str


@dataclass
class ImportResult:
    imported: int
    updated: int = 0
    errors: list[RowError] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "ImportResult":
        errors = [
            RowError(row=int(err.get("row", 0)), message=str(err.get("message", "")))
            for err in payload.get("errors") or []
        ]
        return cls(
            imported=int(payload.get("imported", 0)),
            updated=int(payload.get("updated") or 0),
            errors=errors,
        )

    def summary(self) -> str:
        text = f"{self.imported} imported, {self.updated} updated"
        if self.errors:
            text += f", {len(self.errors)} rejected by server"
        return text
