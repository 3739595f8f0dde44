"""
Bank export format detection.

Two layouts are recognised, by content rather than filename:

- Monthly ledger ("control de gastos"): one sheet per month named Enero …
  Diciembre, header row marked by a CATEGORÍA cell, fixed column order
  CATEGORÍA | SUBCATEGORÍA | FECHA | DETALLE | IMPORTE. Expenses only.
- Checking-account movements ("movimientos cc"): single sheet, header row
  marked by an F. VALOR cell, column roles resolved from header text.
  Mixes income and expenses.
"""

from dataclasses import dataclass, field
from typing import Optional, Union

FORMAT_MONTHLY_LEDGER = "control_gastos"
FORMAT_ACCOUNT_MOVEMENTS = "movimientos_cc"
FORMAT_UNKNOWN = "unknown"

MONTH_SHEETS = (
    "Enero", "Febrero", "Marzo", "Abril", "Mayo", "Junio",
    "Julio", "Agosto", "Septiembre", "Octubre", "Noviembre", "Diciembre",
)
_MONTHS_LOWER = {m.lower() for m in MONTH_SHEETS}

LEDGER_HEADER_MARKERS = ("CATEGORÍA", "CATEGORIA")
LEDGER_HEADER_SCAN_ROWS = 20
LEDGER_COLUMNS = {"category": 0, "subcategory": 1, "date": 2, "description": 3, "amount": 4}

MOVEMENTS_HEADER_MARKERS = ("F. VALOR",)
MOVEMENTS_HEADER_SCAN_ROWS = 15

# Role → header tokens, in resolution order. Subcategory must come before
# category because "SUBCATEGORÍA" contains "CATEGORÍA".
COLUMN_VOCABULARY = (
    ("date", ("F. VALOR", "FECHA VALOR", "FECHA", "DATE")),
    ("subcategory", ("SUBCATEGORÍA", "SUBCATEGORIA", "SUBCATEGORY")),
    ("category", ("CATEGORÍA", "CATEGORIA", "CATEGORY")),
    ("description", ("DESCRIPCIÓN", "DESCRIPCION", "CONCEPTO", "DESCRIPTION")),
    ("amount", ("IMPORTE", "CANTIDAD", "AMOUNT")),
)


@dataclass
class SheetLocation:
    format: str
    sheet_name: str
    available_sheets: list[str]
    header_row_index: int
    column_map: dict[str, int]


@dataclass
class DetectionFailure:
    format: str
    errors: list[str]
    sheet_name: Optional[str] = None
    available_sheets: list[str] = field(default_factory=list)


def detect_and_locate(
    workbook: dict[str, list[list]],
    requested_sheet: Optional[str] = None,
) -> Union[SheetLocation, DetectionFailure]:
    """Identify the export format and find the sheet and header row to parse."""
    month_sheets = [name for name in workbook if name.strip().lower() in _MONTHS_LOWER]
    if month_sheets:
        return _locate_monthly_ledger(workbook, month_sheets, requested_sheet)
    return _locate_account_movements(workbook, requested_sheet)


def find_header_row(rows: list[list], markers: tuple[str, ...], max_rows: int) -> Optional[int]:
    """Index of the first row (within max_rows) with a cell containing a marker."""
    for i, row in enumerate(rows[:max_rows]):
        if row and any(_cell_contains(cell, markers) for cell in row):
            return i
    return None


def resolve_columns(header_row: list) -> dict[str, int]:
    """Map column roles to indexes by matching header cell text."""
    labels = {i: cell.strip().upper() for i, cell in enumerate(header_row) if isinstance(cell, str)}
    column_map = {}
    for role, tokens in COLUMN_VOCABULARY:
        for token in tokens:
            match = next(
                (i for i, label in labels.items()
                 if token in label and i not in column_map.values()),
                None,
            )
            if match is not None:
                column_map[role] = match
                break
    return column_map


def _locate_monthly_ledger(workbook, month_sheets, requested_sheet):
    target = requested_sheet or month_sheets[0]
    if target not in workbook:
        return DetectionFailure(
            format=FORMAT_MONTHLY_LEDGER,
            errors=[f"Sheet \"{target}\" not found"],
            available_sheets=month_sheets,
        )

    header_row_index = find_header_row(workbook[target], LEDGER_HEADER_MARKERS, LEDGER_HEADER_SCAN_ROWS)
    if header_row_index is None:
        return DetectionFailure(
            format=FORMAT_MONTHLY_LEDGER,
            errors=["Header row not found"],
            sheet_name=target,
            available_sheets=month_sheets,
        )

    return SheetLocation(
        format=FORMAT_MONTHLY_LEDGER,
        sheet_name=target,
        available_sheets=month_sheets,
        header_row_index=header_row_index,
        column_map=dict(LEDGER_COLUMNS),
    )


def _locate_account_movements(workbook, requested_sheet):
    sheet_names = list(workbook)
    if not sheet_names:
        return DetectionFailure(format=FORMAT_UNKNOWN, errors=["The workbook has no sheets"])

    target = requested_sheet or sheet_names[0]
    if target not in workbook:
        return DetectionFailure(
            format=FORMAT_UNKNOWN,
            errors=[f"Sheet \"{target}\" not found"],
            available_sheets=sheet_names,
        )

    rows = workbook[target]
    header_row_index = find_header_row(rows, MOVEMENTS_HEADER_MARKERS, MOVEMENTS_HEADER_SCAN_ROWS)
    if header_row_index is None:
        return DetectionFailure(
            format=FORMAT_UNKNOWN,
            errors=[
                "Unrecognized file format. Use a monthly expense ledger (.xlsx) "
                "or a checking account movements export (.xls)"
            ],
            available_sheets=sheet_names,
        )

    column_map = resolve_columns(rows[header_row_index])
    if "amount" not in column_map:
        return DetectionFailure(
            format=FORMAT_ACCOUNT_MOVEMENTS,
            errors=["Amount column not found"],
            sheet_name=target,
            available_sheets=sheet_names,
        )

    return SheetLocation(
        format=FORMAT_ACCOUNT_MOVEMENTS,
        sheet_name=target,
        available_sheets=sheet_names,
        header_row_index=header_row_index,
        column_map=column_map,
    )


def _cell_contains(cell, markers: tuple[str, ...]) -> bool:
    if not isinstance(cell, str):
        return False
    text = cell.upper()
    return any(marker in text for marker in markers)
