"""
Workbook loading for uploaded bank statement files.

Turns raw upload bytes into an ordered {sheet name: rows} mapping, where each
row is a plain list of cell values (None for empty cells, trailing empties
trimmed). Excel files go through pandas.read_excel (openpyxl for .xlsx,
xlrd for legacy .xls); anything else is read as a single sheet named "CSV".
"""

import csv
import io
import logging
from typing import Optional

import pandas as pd

from ... import config

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = (".xls", ".xlsx", ".csv")
CSV_SHEET_NAME = "CSV"

# Magic numbers: .xlsx is a zip container, legacy .xls is an OLE2 compound file
_ZIP_SIGNATURE = b"PK\x03\x04"
_OLE_SIGNATURE = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"


class WorkbookError(ValueError):
    """The upload cannot be read as a workbook, or breaks an import limit."""


def validate_upload(filename: Optional[str], content: bytes) -> None:
    """Reject uploads with a bad extension, an empty body or an oversized body."""
    name = (filename or "").lower()
    if not name.endswith(ALLOWED_EXTENSIONS):
        raise WorkbookError("Only Excel (.xls, .xlsx) or CSV (.csv) files are allowed")
    if not content:
        raise WorkbookError("The uploaded file is empty")
    if len(content) > config.IMPORT_MAX_FILE_BYTES:
        limit_mb = config.IMPORT_MAX_FILE_BYTES // (1024 * 1024)
        raise WorkbookError(f"The file exceeds the maximum allowed size ({limit_mb}MB)")


def is_excel(content: bytes) -> bool:
    return content.startswith(_ZIP_SIGNATURE) or content.startswith(_OLE_SIGNATURE)


def load_workbook(content: bytes, filename: Optional[str] = None) -> dict[str, list[list]]:
    """Read upload bytes into {sheet_name: rows}, preserving sheet order."""
    if is_excel(content):
        try:
            frames = pd.read_excel(io.BytesIO(content), sheet_name=None, header=None)
        except Exception as e:
            # pandas and its engines raise a wide range of types for corrupt files
            raise WorkbookError(f"Could not read the file: {e}") from e
        sheets = {str(name): frame_to_rows(df) for name, df in frames.items()}
    else:
        # Fixed name so a file called "marzo.csv" is not taken for a ledger sheet
        sheets = {CSV_SHEET_NAME: _read_csv_rows(content)}

    if len(sheets) > config.IMPORT_MAX_SHEETS:
        raise WorkbookError(f"Too many sheets in the workbook (max {config.IMPORT_MAX_SHEETS})")
    for sheet_name, rows in sheets.items():
        if len(rows) > config.IMPORT_MAX_ROWS:
            raise WorkbookError(f"Too many rows in sheet '{sheet_name}' (max {config.IMPORT_MAX_ROWS})")

    logger.debug(f"Loaded {filename or 'upload'} with sheets: {list(sheets)}")
    return sheets


def frame_to_rows(df: pd.DataFrame) -> list[list]:
    """Convert a header-less DataFrame into lists of Python values."""
    if df.empty:
        return []
    clean = df.astype(object).where(pd.notna(df), None)
    return [_trim_row(values) for values in clean.values.tolist()]


def _trim_row(values) -> list:
    row = [None if isinstance(v, str) and not v.strip() else v for v in values]
    while row and row[-1] is None:
        row.pop()
    return row


def _read_csv_rows(content: bytes) -> list[list]:
    # Spanish bank exports are often Latin-1
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError:
        text = content.decode("latin-1")

    try:
        dialect = csv.Sniffer().sniff(text[:4096], delimiters=",;\t")
    except csv.Error:
        dialect = csv.excel

    try:
        return [_trim_row(line) for line in csv.reader(io.StringIO(text), dialect)]
    except csv.Error as e:
        raise WorkbookError(f"Could not read the CSV file: {e}") from e