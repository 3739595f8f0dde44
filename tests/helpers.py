"""Test helpers shared by the import pipeline tests."""

import io

from openpyxl import Workbook

OWNER_ID = "user-owner"
MEMBER_ID = "user-member"
STRANGER_ID = "user-stranger"

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def build_xlsx(sheets: dict[str, list[list]]) -> bytes:
    """Write {sheet name: rows} into an in-memory .xlsx file."""
    wb = Workbook()
    wb.remove(wb.active)
    for name, rows in sheets.items():
        ws = wb.create_sheet(title=name)
        for row in rows:
            ws.append(row)
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def auth(user_id: str = OWNER_ID) -> dict:
    return {"X-User-Id": user_id}


def movements_rows(*data_rows) -> list[list]:
    """A checking-account movements sheet with a title row and the usual header."""
    return [
        ["Movimientos de la cuenta"],
        [],
        ["F. VALOR", "CATEGORÍA", "SUBCATEGORÍA", "DESCRIPCIÓN", "COMENTARIO", "IMPORTE"],
        *data_rows,
    ]


def ledger_rows(*data_rows) -> list[list]:
    """A monthly ledger sheet with a title row and the usual header."""
    return [
        ["Control de gastos"],
        ["CATEGORÍA", "SUBCATEGORÍA", "FECHA", "DETALLE", "IMPORTE"],
        *data_rows,
    ]
