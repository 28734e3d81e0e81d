"""File-level import errors. Row-level problems are never raised; see RowRejection."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(eq=False)
class IngestionError(Exception):
    """Structured halt notice: the current file produces no batch."""
    reason: str
    affected_file: str
    missing_or_invalid_fields: list[str] = field(default_factory=list)
    operator_fix_steps: list[str] = field(default_factory=list)

    def __str__(self) -> str:
        lines = [
            "═" * 60,
            "ROSTER IMPORT HALT",
            "═" * 60,
            f"Reason          : {self.reason}",
            f"Affected File   : {self.affected_file}",
        ]
        if self.missing_or_invalid_fields:
            lines.append(f"Missing/Invalid : {', '.join(self.missing_or_invalid_fields)}")
        if self.operator_fix_steps:
            lines.append("Fix Steps:")
            for i, step in enumerate(self.operator_fix_steps, 1):
                lines.append(f"  {i}. {step}")
        lines.append("═" * 60)
        return "\n".join(lines)


class UnsupportedFormatError(IngestionError):
    """The file extension is not one we can read. Raised before any parsing."""


class FileParseError(IngestionError):
    """The file has a supported extension but its content could not be parsed."""
