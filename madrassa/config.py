"""
Madrassa configuration.

Module-level constants are fixed defaults shared by the importer, the student
service and the roster screens. Deployment-specific values (API location,
token) come from the environment through load_settings().
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

# ---------------------------------------------------------------------------
# Student defaults
# ---------------------------------------------------------------------------

DEFAULT_COUNTRY: str = "België"
DEFAULT_STATUS: str = "active"
DEFAULT_GENDER: str = "male"

STUDENT_STATUSES: tuple[str, ...] = ("active", "inactive", "graduated", "transferred")
GENDERS: tuple[str, ...] = ("male", "female")

# ---------------------------------------------------------------------------
# Import / roster
# ---------------------------------------------------------------------------

CSV_EXTENSIONS: frozenset[str] = frozenset({".csv"})
SPREADSHEET_EXTENSIONS: frozenset[str] = frozenset({".xlsx", ".xls"})
SUPPORTED_EXTENSIONS: frozenset[str] = CSV_EXTENSIONS | SPREADSHEET_EXTENSIONS

PREVIEW_ROWS: int = 10
ROSTER_PAGE_SIZE: int = 25

# ---------------------------------------------------------------------------
# REST API
# ---------------------------------------------------------------------------

STUDENTS_ENDPOINT: str = "/api/students"
STUDENT_IMPORT_ENDPOINT: str = "/api/students/import"

DEFAULT_API_URL: str = "http://localhost:5000"


@dataclass(frozen=True)
class ApiSettings:
    """Where the student API lives and how to authenticate against it."""

    base_url: str = DEFAULT_API_URL
    token: Optional[str] = None
    # None = wait for the transport to resolve or fail
    timeout: Optional[float] = None


def load_settings(environ: Optional[Mapping[str, str]] = None) -> ApiSettings:
    """Build ApiSettings from MADRASSA_API_URL / _TOKEN / _TIMEOUT."""
    env = os.environ if environ is None else environ

    timeout_raw = env.get("MADRASSA_API_TIMEOUT", "").strip()
    try:
        timeout = float(timeout_raw) if timeout_raw else None
    except ValueError:
        raise ValueError(
            f"MADRASSA_API_TIMEOUT must be a number of seconds, got '{timeout_raw}'"
        )

    return ApiSettings(
        base_url=env.get("MADRASSA_API_URL", DEFAULT_API_URL).rstrip("/"),
        token=env.get("MADRASSA_API_TOKEN") or None,
        timeout=timeout,
    )
