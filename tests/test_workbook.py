"""Tests for upload validation and workbook loading."""

from datetime import datetime

import pandas as pd
import pytest

from household_finance import config
from household_finance.services.importer.parser import parse_statement
from household_finance.services.importer.workbook import (
    WorkbookError,
    frame_to_rows,
    is_excel,
    load_workbook,
    validate_upload,
)

from helpers import build_xlsx, ledger_rows, movements_rows


class TestValidateUpload:
    @pytest.mark.parametrize("name", ["a.xlsx", "B.XLS", "movimientos.csv"])
    def test_allowed_extensions(self, name):
        validate_upload(name, b"data")

    @pytest.mark.parametrize("name", ["a.pdf", "a.xlsx.exe", None])
    def test_rejected_extensions(self, name):
        with pytest.raises(WorkbookError):
            validate_upload(name, b"data")

    def test_empty_file(self):
        with pytest.raises(WorkbookError, match="empty"):
            validate_upload("a.csv", b"")

    def test_size_limit(self, monkeypatch):
        monkeypatch.setattr(config, "IMPORT_MAX_FILE_BYTES", 10)
        with pytest.raises(WorkbookError, match="maximum allowed size"):
            validate_upload("a.csv", b"x" * 11)


class TestLoadWorkbook:
    def test_xlsx_sheets_in_order(self):
        content = build_xlsx({"Enero": ledger_rows(), "Febrero": ledger_rows()})

        assert is_excel(content)
        workbook = load_workbook(content, "gastos.xlsx")
        assert list(workbook) == ["Enero", "Febrero"]
        assert workbook["Enero"][1] == ["CATEGORÍA", "SUBCATEGORÍA", "FECHA", "DETALLE", "IMPORTE"]

    def test_xlsx_date_cells_parse(self):
        content = build_xlsx({"Movimientos": movements_rows(
            [datetime(2024, 3, 1), "Ocio", "Restaurantes", "Cena", None, -45.5],
        )})
        result = parse_statement(load_workbook(content, "movimientos.xlsx"))

        assert result["success"] is True
        assert result["transactions"] == [{
            "date": "2024-03-01",
            "description": "Cena",
            "amount": -45.5,
            "bank_category": "Ocio",
            "bank_subcategory": "Restaurantes",
        }]

    def test_csv_is_a_single_sheet(self):
        content = (
            "F. VALOR;CATEGORIA;SUBCATEGORIA;DESCRIPCION;IMPORTE\n"
            "01/03/2024;Ocio;Restaurantes;Cena;-45,50\n"
        ).encode("utf-8")
        workbook = load_workbook(content, "movimientos.csv")

        assert list(workbook) == ["CSV"]
        result = parse_statement(workbook)
        assert result["transactions"][0]["date"] == "2024-03-01"
        assert result["transactions"][0]["amount"] == -45.5

    @pytest.mark.parametrize("filename", ["marzo.csv", "Enero.csv", "diciembre.CSV"])
    def test_csv_named_after_a_month_is_still_movements(self, filename):
        content = (
            "F. VALOR;CATEGORIA;SUBCATEGORIA;DESCRIPCION;IMPORTE\n"
            "01/03/2024;Ingresos;Nomina;Transferencia;2100,00\n"
            "02/03/2024;Ocio;Restaurantes;Cena;-45,50\n"
        ).encode("utf-8")

        expected = parse_statement(load_workbook(content, "movimientos.csv"))
        result = parse_statement(load_workbook(content, filename))

        assert result == expected
        assert result["file_type"] == "movimientos_cc"
        assert [t["amount"] for t in result["transactions"]] == [2100.0, -45.5]
        assert result["errors"] == []

    def test_latin1_csv(self):
        content = "F. VALOR,CATEGORÍA,IMPORTE\n2024-03-01,Alimentación,-3\n".encode("latin-1")
        workbook = load_workbook(content, "x.csv")
        assert workbook["CSV"][1][1] == "Alimentación"

    def test_corrupt_excel(self):
        with pytest.raises(WorkbookError):
            load_workbook(b"PK\x03\x04not really a zip", "a.xlsx")

    def test_sheet_limit(self, monkeypatch):
        monkeypatch.setattr(config, "IMPORT_MAX_SHEETS", 1)
        content = build_xlsx({"Enero": ledger_rows(), "Febrero": ledger_rows()})
        with pytest.raises(WorkbookError, match="Too many sheets"):
            load_workbook(content, "a.xlsx")

    def test_row_limit(self, monkeypatch):
        monkeypatch.setattr(config, "IMPORT_MAX_ROWS", 2)
        with pytest.raises(WorkbookError, match="Too many rows"):
            load_workbook(b"a,b\n1,2\n3,4\n", "a.csv")


def test_frame_to_rows_cleans_missing_cells():
    df = pd.DataFrame([["a", None, float("nan")], [" ", 1.5, None]])
    assert frame_to_rows(df) == [["a"], [None, 1.5]]
