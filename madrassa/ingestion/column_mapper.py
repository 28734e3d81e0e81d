"""
Madrassa Column Mapping

Static alias library for student roster headers.

RULES:
- Exact string matching only. Case-sensitive. No fuzzy matching.
- Headers are stripped of surrounding whitespace by the file reader before
  they reach this module; nothing else is altered.
- For each canonical field, aliases are tried in declared order and the
  first header present in the row wins.
- A header that matches no alias is reported as unmatched, never silently
  dropped from the operator's view.

Public API:
  resolve_row(row) -> dict[str, object]
  resolve_columns(columns, file_label) -> dict[str, str]
  get_unmatched_columns(columns, resolved_map) -> list[str]
"""

from __future__ import annotations

import logging
from typing import Iterable, Mapping

from madrassa.students.models import STUDENT_FIELDS

logger = logging.getLogger(__name__)

CANONICAL_FIELDS: tuple[str, ...] = STUDENT_FIELDS

# ---------------------------------------------------------------------------
# Alias libraries
# ---------------------------------------------------------------------------
# Each section maps a header spelling to a canonical field. A spelling may
# appear in several sections provided it maps to the same field. Sections
# are merged in _ALL_SOURCES order, which is also the alias search order.
# ---------------------------------------------------------------------------

# ── Canonical (API / CSV export) ────────────────────────────────────────────
_CANONICAL_VARIANTS: dict[str, str] = {name: name for name in CANONICAL_FIELDS}

# ── English ─────────────────────────────────────────────────────────────────
_ENGLISH_VARIANTS: dict[str, str] = {
    # studentId
    "StudentId":                "studentId",
    "StudentID":                "studentId",
    "Student ID":               "studentId",
    "Student Id":               "studentId",
    "student_id":               "studentId",
    "Student Number":           "studentId",
    # firstName
    "FirstName":                "firstName",
    "First Name":               "firstName",
    "First name":               "firstName",
    "first_name":               "firstName",
    "Given Name":               "firstName",
    # lastName
    "LastName":                 "lastName",
    "Last Name":                "lastName",
    "Last name":                "lastName",
    "last_name":                "lastName",
    "Surname":                  "lastName",
    "Family Name":              "lastName",
    # email
    "Email":                    "email",
    "E-mail":                   "email",
    "Email Address":            "email",
    "email_address":            "email",
    # phone
    "Phone":                    "phone",
    "Phone Number":             "phone",
    "phone_number":             "phone",
    "Mobile":                   "phone",
    # gender
    "Gender":                   "gender",
    "Sex":                      "gender",
    # dateOfBirth
    "DateOfBirth":              "dateOfBirth",
    "Date of Birth":            "dateOfBirth",
    "Date Of Birth":            "dateOfBirth",
    "date_of_birth":            "dateOfBirth",
    "Birth Date":               "dateOfBirth",
    "DOB":                      "dateOfBirth",
    # street
    "Street":                   "street",
    "Address":                  "street",
    # houseNumber
    "HouseNumber":              "houseNumber",
    "House Number":             "houseNumber",
    "house_number":             "houseNumber",
    # postalCode
    "PostalCode":               "postalCode",
    "Postal Code":              "postalCode",
    "postal_code":              "postalCode",
    "Zip":                      "postalCode",
    "ZIP Code":                 "postalCode",
    # city
    "City":                     "city",
    "Town":                     "city",
    # country
    "Country":                  "country",
    # status
    "Status":                   "status",
}

# ── Dutch ───────────────────────────────────────────────────────────────────
_DUTCH_VARIANTS: dict[str, str] = {
    # studentId
    "Studentnummer":            "studentId",
    "Student nummer":           "studentId",
    "Leerlingnummer":           "studentId",
    # firstName
    "Voornaam":                 "firstName",
    "voornaam":                 "firstName",
    # lastName
    "Achternaam":               "lastName",
    "achternaam":               "lastName",
    "Familienaam":              "lastName",
    # email
    "E-mailadres":              "email",
    "Emailadres":               "email",
    # phone
    "Telefoon":                 "phone",
    "Telefoonnummer":           "phone",
    "GSM":                      "phone",
    "Gsm":                      "phone",
    # gender
    "Geslacht":                 "gender",
    "geslacht":                 "gender",
    # dateOfBirth
    "Geboortedatum":            "dateOfBirth",
    "geboortedatum":            "dateOfBirth",
    # street
    "Straat":                   "street",
    "Adres":                    "street",
    # houseNumber
    "Huisnummer":               "houseNumber",
    "Nr":                       "houseNumber",
    # postalCode
    "Postcode":                 "postalCode",
    # city
    "Gemeente":                 "city",
    "Woonplaats":               "city",
    "Stad":                     "city",
    # country
    "Land":                     "country",
    # status
    "Statuut":                  "status",
}

# ---------------------------------------------------------------------------
# Source registry: ordered list of (label, dict)
# ---------------------------------------------------------------------------

_ALL_SOURCES: list[tuple[str, dict[str, str]]] = [
    ("Canonical", _CANONICAL_VARIANTS),
    ("English",   _ENGLISH_VARIANTS),
    ("Dutch",     _DUTCH_VARIANTS),
]


# ---------------------------------------------------------------------------
# Build the combined tables at module load time
# ---------------------------------------------------------------------------

def _build_alias_lookup() -> dict[str, str]:
    """
    Merge all variant dicts into a single flat {spelling: field} lookup.

    Raises ValueError if the same spelling maps to different fields in
    different sections (unresolvable conflict).
    """
    lookup: dict[str, str] = {}
    for source_name, variants in _ALL_SOURCES:
        for spelling, field_name in variants.items():
            if field_name not in CANONICAL_FIELDS:
                raise ValueError(
                    f"Alias library error in '{source_name}': '{spelling}' maps to "
                    f"unknown field '{field_name}'."
                )
            if spelling in lookup:
                existing = lookup[spelling]
                if existing != field_name:
                    raise ValueError(
                        f"Alias library conflict detected in '{source_name}': "
                        f"'{spelling}' maps to '{field_name}' but was already "
                        f"mapped to '{existing}'. Remove or reconcile the conflicting entry."
                    )
                # Same spelling, same field: harmless overlap, skip
                continue
            lookup[spelling] = field_name
    return lookup


def _build_field_aliases(lookup: Mapping[str, str]) -> dict[str, tuple[str, ...]]:
    """Invert the lookup into {field: (alias, ...)} keeping declaration order."""
    aliases: dict[str, list[str]] = {name: [] for name in CANONICAL_FIELDS}
    for spelling, field_name in lookup.items():
        aliases[field_name].append(spelling)
    return {name: tuple(spellings) for name, spellings in aliases.items()}


# Module-level tables, built once and never mutated.
_ALIAS_LOOKUP: dict[str, str] = _build_alias_lookup()
FIELD_ALIASES: dict[str, tuple[str, ...]] = _build_field_aliases(_ALIAS_LOOKUP)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def resolve_row(
    row: Mapping[str, object],
    field_aliases: Mapping[str, tuple[str, ...]] = FIELD_ALIASES,
) -> dict[str, object]:
    """
    Map one raw import row to {canonical_field: raw_value}.

    For each canonical field the row's keys are searched against the field's
    aliases in declared order; the first alias present wins. Fields with no
    matching column are left out of the result.
    """
    resolved: dict[str, object] = {}
    for field_name, spellings in field_aliases.items():
        for spelling in spellings:
            if spelling in row:
                resolved[field_name] = row[spelling]
                break
    return resolved


def resolve_columns(
    columns: Iterable[str],
    file_label: str,
    field_aliases: Mapping[str, tuple[str, ...]] = FIELD_ALIASES,
) -> dict[str, str]:
    """
    Resolve a file's headers to canonical field names.

    Applies the same first-alias-wins rule as resolve_row, so a header that
    loses to an earlier alias of the same field is reported as unmatched.

    Parameters
    ----------
    columns : iterable of str
        Headers of the file, in file order.
    file_label : str
        Human-readable label for the file. Used only in log messages.

    Returns
    -------
    dict[str, str]
        Mapping of {raw_header: canonical_field} for every header that is
        used during resolution.
    """
    present = list(columns)
    present_set = set(present)
    chosen: dict[str, str] = {}
    for field_name, spellings in field_aliases.items():
        for spelling in spellings:
            if spelling in present_set:
                chosen[spelling] = field_name
                break

    resolved: dict[str, str] = {}
    for col in present:
        if col in chosen:
            resolved[col] = chosen[col]
            logger.info(
                "[column_mapper] %s: '%s' → '%s'",
                file_label, col, chosen[col],
            )
    return resolved


def get_unmatched_columns(
    columns: Iterable[str],
    resolved_map: Mapping[str, str],
) -> list[str]:
    """Return headers that were not used by resolve_columns()."""
    return [col for col in columns if col not in resolved_map]
