"""
Row parsing for detected bank exports.

Walks the rows after the header, coerces dates and amounts into canonical
forms, and collects the distinct bank (category, subcategory) pairs seen in
the file. One bad row never aborts the sheet: it is reported in `errors`
and parsing moves on.

Parsed transactions are plain dicts:
    {"date": "YYYY-MM-DD", "description": str, "amount": float,
     "bank_category": str, "bank_subcategory": str}
"""

import logging
import math
import numbers
import re
from datetime import date, datetime, timedelta
from typing import Optional

from .detection import (
    FORMAT_MONTHLY_LEDGER,
    LEDGER_COLUMNS,
    DetectionFailure,
    detect_and_locate,
)
from .sanitize import sanitize

logger = logging.getLogger(__name__)

NO_DESCRIPTION = "no description"

# Spreadsheet serial day 25569 is 1970-01-01 (serial 0 = 1899-12-30)
EXCEL_UNIX_EPOCH_OFFSET = 25569
_UNIX_EPOCH = date(1970, 1, 1)

_ISO_DATE = re.compile(r"^(\d{4}-\d{2}-\d{2})(?:[T ].*)?$")
_DAY_FIRST_DATE = re.compile(r"^(\d{1,2})[/-](\d{1,2})[/-](\d{4})$")
_AMOUNT_JUNK = re.compile(r"[^\d+\-.,]")


def excel_serial_to_iso(serial: float) -> str:
    """Convert a spreadsheet date serial into a YYYY-MM-DD string (UTC)."""
    days = math.floor(serial - EXCEL_UNIX_EPOCH_OFFSET)
    try:
        return (_UNIX_EPOCH + timedelta(days=days)).isoformat()
    except OverflowError:
        raise ValueError(f"date serial {serial} out of range")


def coerce_date(value) -> Optional[str]:
    """
    Canonical date string for a cell, or None if the cell type can't hold a date.

    Numeric cells are spreadsheet serials. Date/datetime cells (what the
    Excel readers return for date-formatted cells) are rendered directly.
    ISO strings pass through; day-first strings (31/12/2024) are the common
    Spanish export format and are rewritten to ISO. Any other string raises
    ValueError.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, numbers.Real):
        if not math.isfinite(value):
            raise ValueError(f"invalid date serial {value}")
        return excel_serial_to_iso(value)
    if isinstance(value, str):
        text = value.strip()
        match = _ISO_DATE.match(text)
        if match:
            date.fromisoformat(match.group(1))  # validates month/day ranges
            return match.group(1)
        match = _DAY_FIRST_DATE.match(text)
        if match:
            day, month, year = (int(g) for g in match.groups())
            return date(year, month, day).isoformat()
        raise ValueError(f"unrecognized date '{text}'")
    return None


def coerce_amount(value) -> Optional[float]:
    """Float amount for a cell, or None when it isn't a usable number."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, numbers.Real):
        amount = float(value)
    elif isinstance(value, str):
        amount = parse_amount_text(value)
    else:
        return None
    if amount is None or not math.isfinite(amount):
        return None
    return amount


def parse_amount_text(text: str) -> Optional[float]:
    """
    Parse an amount string, tolerating currency symbols and both
    "1,234.56" and "1.234,56" styles. A lone comma is a decimal comma.
    """
    cleaned = _AMOUNT_JUNK.sub("", text)
    if not cleaned:
        return None

    if "," in cleaned and "." in cleaned:
        if cleaned.rfind(",") > cleaned.rfind("."):
            cleaned = cleaned.replace(".", "").replace(",", ".")
        else:
            cleaned = cleaned.replace(",", "")
    elif cleaned.count(",") == 1:
        cleaned = cleaned.replace(",", ".")
    elif "," in cleaned:
        cleaned = cleaned.replace(",", "")
    elif cleaned.count(".") > 1:
        cleaned = cleaned.replace(".", "")

    try:
        return float(cleaned)
    except ValueError:
        return None


def parse_rows(
    rows: list[list],
    header_row_index: int,
    file_format: str,
    column_map: Optional[dict[str, int]] = None,
) -> dict:
    """
    Parse every row after the header.

    Returns {"transactions": [...], "categories": [...], "errors": [...]}.
    Error messages number rows from 1 starting at the first data row.
    """
    if column_map is None:
        column_map = dict(LEDGER_COLUMNS)
    is_ledger = file_format == FORMAT_MONTHLY_LEDGER

    transactions = []
    observed = {}
    errors = []

    for row_number, row in enumerate(rows[header_row_index + 1:], start=1):
        try:
            txn = _parse_row(row or [], column_map, is_ledger)
        except (ValueError, TypeError) as e:
            errors.append(f"row {row_number}: {e}")
            continue

        if txn is None:
            continue  # Blank or summary row

        transactions.append(txn)
        pair = (txn["bank_category"], txn["bank_subcategory"])
        if any(pair) and pair not in observed:
            observed[pair] = {"category": pair[0], "subcategory": pair[1]}

    return {
        "transactions": transactions,
        "categories": list(observed.values()),
        "errors": errors,
    }


def parse_statement(workbook: dict[str, list[list]], sheet_name: Optional[str] = None) -> dict:
    """
    Detect the format of a loaded workbook and parse it.

    Always returns the full parse result shape; detection problems come back
    as success=False with the reason in `errors`.
    """
    location = detect_and_locate(workbook, sheet_name)
    if isinstance(location, DetectionFailure):
        logger.info(f"Statement detection failed ({location.format}): {location.errors}")
        return {
            "success": False,
            "file_type": location.format,
            "sheet_name": location.sheet_name,
            "available_sheets": location.available_sheets,
            "transactions": [],
            "categories": [],
            "errors": location.errors,
        }

    parsed = parse_rows(
        workbook[location.sheet_name],
        location.header_row_index,
        location.format,
        location.column_map,
    )
    logger.info(
        f"Parsed {location.format} sheet '{location.sheet_name}': "
        f"{len(parsed['transactions'])} transactions, "
        f"{len(parsed['categories'])} categories, {len(parsed['errors'])} errors"
    )
    return {
        "success": True,
        "file_type": location.format,
        "sheet_name": location.sheet_name,
        "available_sheets": location.available_sheets,
        **parsed,
    }


def _parse_row(row: list, column_map: dict[str, int], is_ledger: bool) -> Optional[dict]:
    category = _cell(row, column_map.get("category"))
    subcategory = _cell(row, column_map.get("subcategory"))
    date_value = _cell(row, column_map.get("date"))
    description = _cell(row, column_map.get("description"))
    amount_value = _cell(row, column_map.get("amount"))

    if date_value is None or amount_value is None:
        return None
    if is_ledger and (category is None or not isinstance(category, str)):
        return None

    date_str = coerce_date(date_value)
    if date_str is None:
        return None

    amount = coerce_amount(amount_value)
    if amount is None:
        return None

    if is_ledger:
        # The ledger only records outflows, whatever sign the sheet uses
        amount = -abs(amount)

    return {
        "date": date_str,
        "description": sanitize(description) or NO_DESCRIPTION,
        "amount": amount,
        "bank_category": sanitize(category),
        "bank_subcategory": sanitize(subcategory),
    }


def _cell(row: list, index: Optional[int]):
    if index is None or index >= len(row):
        return None
    return row[index]
