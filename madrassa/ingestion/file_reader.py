"""
Tabular file reader.

Turns an uploaded CSV or Excel file into an ordered list of raw import rows
({header: cell}). One call reads the whole file; any parse failure aborts the
file so that no partial set of rows is ever handed on.
"""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import BinaryIO, Optional, Union

import pandas as pd

from madrassa.config import CSV_EXTENSIONS, SPREADSHEET_EXTENSIONS, SUPPORTED_EXTENSIONS
from madrassa.ingestion.errors import FileParseError, UnsupportedFormatError

logger = logging.getLogger(__name__)

RawImportRow = dict[str, object]
Source = Union[str, Path, bytes, BinaryIO]

KIND_CSV = "csv"
KIND_SPREADSHEET = "spreadsheet"

_INVISIBLE = "\ufeff\u200b\u200c\u200d"


def detect_kind(filename: str) -> str:
    """Return 'csv' or 'spreadsheet' for a file name; reject anything else."""
    suffix = Path(filename).suffix.lower()
    if suffix in CSV_EXTENSIONS:
        return KIND_CSV
    if suffix in SPREADSHEET_EXTENSIONS:
        return KIND_SPREADSHEET
    raise UnsupportedFormatError(
        reason="Unsupported file format",
        affected_file=filename,
        missing_or_invalid_fields=[suffix or "(no extension)"],
        operator_fix_steps=[
            f"Upload one of: {', '.join(sorted(SUPPORTED_EXTENSIONS))}.",
            "Export the roster from your spreadsheet program as CSV or Excel.",
        ],
    )


def source_name(source: Source, filename: Optional[str]) -> str:
    if filename:
        return filename
    if isinstance(source, (str, Path)):
        return Path(source).name
    name = getattr(source, "name", None)
    if name:
        return Path(str(name)).name
    raise ValueError("filename is required when reading from raw bytes")


def _read_bytes(source: Source) -> bytes:
    if isinstance(source, bytes):
        return source
    if isinstance(source, (str, Path)):
        return Path(source).read_bytes()
    if hasattr(source, "seek"):
        source.seek(0)
    return source.read()


def _clean_header(raw) -> str:
    return str(raw).strip(_INVISIBLE + " \t\r\n")


def _decode_csv(data: bytes) -> str:
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError:
        logger.info("[file_reader] CSV is not UTF-8; falling back to latin-1")
        return data.decode("latin-1")


def _read_csv_frame(data: bytes, name: str) -> pd.DataFrame:
    try:
        return pd.read_csv(
            io.StringIO(_decode_csv(data)),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=False,
        )
    except (pd.errors.ParserError, pd.errors.EmptyDataError, ValueError) as e:
        raise FileParseError(
            reason="CSV file is not parseable",
            affected_file=name,
            operator_fix_steps=[
                "Verify the file is a comma-separated CSV with a header row.",
                f"Parse error: {e}",
            ],
        )


def _read_spreadsheet_frame(data: bytes, name: str) -> pd.DataFrame:
    engine = "xlrd" if Path(name).suffix.lower() == ".xls" else "openpyxl"
    try:
        df = pd.read_excel(io.BytesIO(data), sheet_name=0, dtype=object, engine=engine)
    except Exception as e:
        raise FileParseError(
            reason="Spreadsheet file is not parseable",
            affected_file=name,
            operator_fix_steps=[
                "Verify the file opens in a spreadsheet program.",
                "The first worksheet must start with a header row.",
                f"Parse error: {e}",
            ],
        )
    return df.astype(object).where(pd.notna(df), "")


def _drop_blank_rows(df: pd.DataFrame) -> pd.DataFrame:
    """Remove rows whose every cell is empty. The frame index is kept."""
    if df.empty:
        return df
    blank = df.apply(lambda col: col.isna() | (col.astype(str).str.strip() == ""))
    return df[~blank.all(axis=1)]


def read_numbered_rows(
    source: Source,
    filename: Optional[str] = None,
) -> list[tuple[int, RawImportRow]]:
    """
    Read a CSV or Excel file into (row_number, raw import row) pairs.

    row_number is the 1-based position of the data row below the header,
    counted before fully empty rows are dropped, so it matches the line the
    operator sees in the file.

    Parameters
    ----------
    source : path, bytes or binary file-like
        The uploaded file. File-like objects are read from the start.
    filename : str, optional
        Name used to pick the reader. Defaults to the path or the file
        object's ``name`` attribute; required for raw bytes.

    Raises
    ------
    UnsupportedFormatError
        Extension is not .csv / .xlsx / .xls. Raised before reading.
    FileParseError
        The content could not be parsed.
    """
    name = source_name(source, filename)
    kind = detect_kind(name)
    data = _read_bytes(source)

    if kind == KIND_CSV:
        df = _read_csv_frame(data, name)
    else:
        df = _read_spreadsheet_frame(data, name)

    df.columns = [_clean_header(c) for c in df.columns]
    df = df.reset_index(drop=True)
    df = _drop_blank_rows(df)
    records: list[RawImportRow] = df.to_dict(orient="records")
    numbered = [(int(index) + 1, row) for index, row in zip(df.index, records)]
    logger.info("[file_reader] %s: read %d rows (%s)", name, len(numbered), kind)
    return numbered


def read_table(source: Source, filename: Optional[str] = None) -> list[RawImportRow]:
    """Read a CSV or Excel file into raw import rows, in file order."""
    return [row for _, row in read_numbered_rows(source, filename)]
