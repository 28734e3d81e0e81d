"""
Roster Import Pipeline

File -> raw rows -> alias resolution -> normalized drafts -> ImportBatch.

CONTRACT
--------
- Unsupported extension or unparsable content: halt, no batch.
- A file without a first-name or last-name column: halt, no batch.
- Rows missing a first or last name: excluded and counted; the rest proceed.
- Every rejection, unmatched column and in-file duplicate is surfaced in the
  readiness report. Nothing is dropped silently.
- No network access. Submission happens only through the confirmation gate.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

import pandas as pd

from madrassa.ingestion.column_mapper import (
    get_unmatched_columns,
    resolve_columns,
    resolve_row,
)
from madrassa.ingestion.errors import IngestionError
from madrassa.ingestion.file_reader import Source, read_numbered_rows, source_name
from madrassa.ingestion.normalizer import normalize_row
from madrassa.students.models import (
    REQUIRED_FIELDS,
    STUDENT_FIELDS,
    RowRejection,
    StudentDraft,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------


@dataclass
class ImportReadinessReport:
    """
    Produced before the preview is shown.
    Surfaces all flags; none are suppressed.
    """
    timestamp: str
    file_name: str
    row_count: int
    accepted_count: int
    rejections: list[RowRejection]
    alias_map: dict[str, str]
    unmatched_columns: list[str]
    flags: list[str] = field(default_factory=list)

    @property
    def rejected_count(self) -> int:
        return len(self.rejections)

    def as_text(self) -> str:
        lines = [
            "═" * 60,
            "ROSTER IMPORT READINESS REPORT",
            "═" * 60,
            f"Generated       : {self.timestamp}",
            f"File            : {self.file_name}",
            "",
            "ROW COUNTS",
            f"  Rows in file  : {self.row_count}",
            f"  Accepted      : {self.accepted_count}",
            f"  Skipped       : {self.rejected_count}",
            "",
            "SKIPPED ROWS",
        ]
        if not self.rejections:
            lines.append("  None")
        for rej in self.rejections:
            lines.append(f"  Row {rej.row_number}: {rej.reason}")
        lines += ["", "COLUMN ALIAS MAP"]
        for raw, canonical in self.alias_map.items():
            lines.append(f"    '{raw}' → '{canonical}'")
        if self.unmatched_columns:
            lines += ["", "UNMATCHED COLUMNS (not imported)"]
            for col in self.unmatched_columns:
                lines.append(f"    '{col}'")
        if self.flags:
            lines += ["", "FLAGS (all surfaced)"]
            for flag in self.flags:
                lines.append(f"  ⚑ {flag}")
        lines.append("═" * 60)
        return "\n".join(lines)


@dataclass
class ImportBatch:
    """Normalized drafts from one file, awaiting confirmation."""
    drafts: list[StudentDraft]
    report: ImportReadinessReport

    @property
    def rejections(self) -> list[RowRejection]:
        return self.report.rejections

    def __len__(self) -> int:
        return len(self.drafts)

    def to_frame(self, limit: Optional[int] = None) -> pd.DataFrame:
        drafts = self.drafts if limit is None else self.drafts[:limit]
        return pd.DataFrame(
            [d.as_payload() for d in drafts],
            columns=list(STUDENT_FIELDS),
        )


# ---------------------------------------------------------------------------
# Internal utilities
# ---------------------------------------------------------------------------


def _validate_required_columns(alias_map: dict[str, str], file_name: str) -> None:
    """Halt if a required field has no column at all."""
    present = set(alias_map.values())
    missing = [f for f in REQUIRED_FIELDS if f not in present]
    if missing:
        raise IngestionError(
            reason="Required columns missing",
            affected_file=file_name,
            missing_or_invalid_fields=missing,
            operator_fix_steps=[
                f"Add or rename missing column(s): {', '.join(missing)}",
                "Use headers such as 'First Name' / 'Voornaam' and 'Last Name' / 'Achternaam'.",
            ],
        )


def _duplicate_flags(drafts: list[StudentDraft]) -> list[str]:
    """Flag drafts sharing a student ID or email. The backend merges them."""
    flags: list[str] = []
    for label, key in (("student ID", "studentId"), ("email", "email")):
        seen: dict[str, list[str]] = defaultdict(list)
        for draft in drafts:
            value = getattr(draft, key)
            if value:
                seen[value.lower()].append(draft.full_name)
        for value, names in seen.items():
            if len(names) > 1:
                flags.append(
                    f"Duplicate {label} '{value}' in file ({', '.join(names)}); "
                    "the server will merge these into one record"
                )
    return flags


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------


def run_import(source: Source, filename: Optional[str] = None) -> ImportBatch:
    """
    Read and normalize a roster file.

    Parameters
    ----------
    source : path, bytes or binary file-like
        The uploaded CSV or Excel file.
    filename : str, optional
        Name of the upload; needed when source is raw bytes.

    Returns
    -------
    ImportBatch
        Accepted drafts in file order plus the readiness report.

    Raises
    ------
    IngestionError
        Unsupported format, unparsable content, no data rows or no name
        columns. No batch is produced.
    """
    file_name = source_name(source, filename)
    timestamp = datetime.now().isoformat(timespec="seconds")
    flags: list[str] = []

    # ------------------------------------------------------------------
    # STEP 1: Read the file (format errors halt here)
    # ------------------------------------------------------------------
    rows = read_numbered_rows(source, file_name)
    if not rows:
        raise IngestionError(
            reason="File contains no data rows",
            affected_file=file_name,
            operator_fix_steps=[
                "Add at least one student below the header row.",
            ],
        )

    # ------------------------------------------------------------------
    # STEP 2: Resolve headers
    # ------------------------------------------------------------------
    columns = list(rows[0][1].keys())
    alias_map = resolve_columns(columns, file_name)
    unmatched = get_unmatched_columns(columns, alias_map)
    _validate_required_columns(alias_map, file_name)
    if unmatched:
        flags.append(f"{len(unmatched)} column(s) not recognised and not imported: {', '.join(unmatched)}")

    # ------------------------------------------------------------------
    # STEP 3: Normalize rows
    # ------------------------------------------------------------------
    drafts: list[StudentDraft] = []
    rejections: list[RowRejection] = []
    unparsed_dates = 0
    for row_number, row in rows:
        resolved = resolve_row(row)
        outcome = normalize_row(resolved, row_number)
        if isinstance(outcome, RowRejection):
            rejections.append(outcome)
            continue
        if outcome.dateOfBirth is None and str(resolved.get("dateOfBirth", "")).strip():
            unparsed_dates += 1
        drafts.append(outcome)

    if rejections:
        logger.warning("[ingestion] %s: %d rows skipped", file_name, len(rejections))
        flags.append(f"{len(rejections)} rows skipped")
    if unparsed_dates:
        flags.append(f"{unparsed_dates} date(s) of birth not recognised; imported without a date")
    flags.extend(_duplicate_flags(drafts))

    report = ImportReadinessReport(
        timestamp=timestamp,
        file_name=file_name,
        row_count=len(rows),
        accepted_count=len(drafts),
        rejections=rejections,
        alias_map=alias_map,
        unmatched_columns=unmatched,
        flags=flags,
    )
    logger.info(
        "[ingestion] %s: %d of %d rows ready for preview",
        file_name, len(drafts), len(rows),
    )
    return ImportBatch(drafts=drafts, report=report)
