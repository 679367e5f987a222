"""
Unit tests for the tabular decoder.

Covers delimited text (CSV/TSV), XLSX workbooks, spreadsheet-API rows and
the input error taxonomy.
"""

from datetime import datetime
from unittest.mock import MagicMock

import pytest
import xlrd

from libs.errors import EmptyInput, InputError, MissingHeader, UnsupportedFormat
from libs.tabular import SUPPORTED_FORMATS, decode_rows, decode_tabular, detect_format


class TestDetectFormat:
    """Test format detection from file names."""

    @pytest.mark.parametrize(
        "filename, expected",
        [
            ("sales.csv", "csv"),
            ("user_1/Sales.CSV", "csv"),
            ("data.tsv", "tsv"),
            ("book.xlsx", "xlsx"),
            ("macro.xlsm", "xlsm"),
            ("legacy.xls", "xls"),
        ],
    )
    def test_supported(self, filename, expected):
        assert detect_format(filename) == expected
        assert expected in SUPPORTED_FORMATS

    @pytest.mark.parametrize("filename", ["notes.txt", "archive.zip", "no_extension"])
    def test_unsupported(self, filename):
        with pytest.raises(UnsupportedFormat):
            detect_format(filename)


class TestDecodeCsv:
    """Test delimited text decoding."""

    def test_records_and_headers(self, sales_csv_bytes):
        table = decode_tabular(sales_csv_bytes, "csv")

        assert table.total_rows == 3
        assert table.columns == ["order_id", "customer", "amount", "paid", "order_date"]
        assert table.records[0] == {
            "order_id": "1",
            "customer": "Alice",
            "amount": "$1,234.56",
            "paid": "true",
            "order_date": "2024-01-31",
        }

    def test_values_are_trimmed_and_empty_is_null(self, sales_csv_bytes):
        table = decode_tabular(sales_csv_bytes, "csv")

        carol = table.records[2]
        assert carol["customer"] == "Carol"
        assert carol["amount"] is None

    def test_values_stay_text(self):
        table = decode_tabular(b"zip,code\n00501,007\n", "csv")

        assert table.records == [{"zip": "00501", "code": "007"}]

    def test_advisory_metadata(self, sales_csv_bytes):
        table = decode_tabular(sales_csv_bytes, "csv")
        profiles = {c.name: c for c in table.metadata.columns}

        assert profiles["order_id"].data_type == "int"
        assert profiles["amount"].data_type == "double"
        assert profiles["amount"].null_count == 1
        assert profiles["paid"].data_type == "boolean"
        assert profiles["order_date"].data_type == "date"
        assert profiles["customer"].data_type == "string"

    def test_fully_empty_rows_are_dropped(self):
        table = decode_tabular(b"a,b\n1,2\n,\n3,4\n", "csv")

        assert table.total_rows == 2
        assert [r["a"] for r in table.records] == ["1", "3"]

    def test_header_only(self):
        table = decode_tabular(b"a,b\n", "csv")

        assert table.total_rows == 0
        assert table.columns == ["a", "b"]

    def test_short_rows_are_padded_with_null(self):
        table = decode_tabular(b"a,b,c\n1,2\n3,4,5\n", "csv")

        assert table.records == [
            {"a": "1", "b": "2", "c": None},
            {"a": "3", "b": "4", "c": "5"},
        ]

    def test_extra_cells_are_dropped(self, caplog):
        table = decode_tabular(b"a,b\n1,2\n3,4,5\n6,7\n", "csv")

        assert table.records == [
            {"a": "1", "b": "2"},
            {"a": "3", "b": "4"},
            {"a": "6", "b": "7"},
        ]
        assert "extra cells dropped" in caplog.text

    def test_ragged_rows_keep_file_order(self):
        table = decode_tabular(b"a,b,c\n1\n2,x,y\n3,z\n\n4,w,v\n", "csv")

        assert [r["a"] for r in table.records] == ["1", "2", "3", "4"]
        assert table.records[2] == {"a": "3", "b": "z", "c": None}

    def test_utf8_bom_is_stripped(self):
        table = decode_tabular("\ufeffName,City\nAna,Köln\n".encode("utf-8"), "csv")

        assert table.columns == ["name", "city"]
        assert table.records[0]["city"] == "Köln"

    def test_latin1_fallback(self, caplog):
        source = "name,city\nJosé,Zürich\n".encode("latin-1")

        table = decode_tabular(source, "csv")

        assert table.records == [{"name": "José", "city": "Zürich"}]
        assert "falling back to latin-1" in caplog.text

    def test_tsv(self):
        table = decode_tabular(b"Full Name\tAge\nAda Lovelace\t36\n", "tsv")

        assert table.records == [{"full_name": "Ada Lovelace", "age": "36"}]

    def test_format_from_filename(self, sales_csv_bytes):
        table = decode_tabular(sales_csv_bytes, "uploads/sales.csv")
        assert table.total_rows == 3

    def test_duplicate_headers_last_column_wins(self):
        table = decode_tabular(b"Order ID,order_id\n1,2\n", "csv")

        assert table.records == [{"order_id": "2"}]
        assert table.columns == ["order_id"]


class TestDecodeXlsx:
    """Test workbook decoding."""

    def test_first_sheet(self, make_xlsx):
        source = make_xlsx(
            [
                ["Order ID", "Amount", "Order Date", "Note"],
                [1, 10.5, datetime(2024, 1, 31), "  first  "],
                [2, 20, datetime(2024, 2, 1), None],
            ]
        )

        table = decode_tabular(source, "xlsx")

        assert table.columns == ["order_id", "amount", "order_date", "note"]
        assert table.records[0] == {
            "order_id": 1,
            "amount": 10.5,
            "order_date": datetime(2024, 1, 31),
            "note": "first",
        }
        assert table.records[1]["note"] is None
        profiles = {c.name: c for c in table.metadata.columns}
        assert profiles["order_date"].data_type == "date"
        assert profiles["amount"].data_type == "double"

    def test_empty_sheet(self, make_xlsx):
        with pytest.raises(MissingHeader):
            decode_tabular(make_xlsx([]), "xlsx")

    def test_short_rows_are_padded(self, make_xlsx):
        source = make_xlsx([["a", "b", "c"], [1]])

        table = decode_tabular(source, "xlsx")

        assert table.records == [{"a": 1, "b": None, "c": None}]


class TestDecodeErrors:
    """Test the input error taxonomy."""

    def test_empty_input(self):
        with pytest.raises(EmptyInput):
            decode_tabular(b"", "csv")

    def test_blank_text_has_no_header(self):
        with pytest.raises(MissingHeader):
            decode_tabular(b"   \n\n", "csv")

    def test_unsupported_format(self):
        with pytest.raises(UnsupportedFormat):
            decode_tabular(b"a,b\n1,2\n", "parquet")

    def test_errors_are_input_errors(self):
        with pytest.raises(InputError):
            decode_tabular(b"", "csv")
        with pytest.raises(ValueError):
            decode_tabular(b"a", "json")


class TestDecodeRows:
    """Test spreadsheet-API row decoding."""

    def test_rows(self):
        table = decode_rows(
            ["Customer Name", "Total"],
            [["Alice", "10"], ["Bob"], ["", ""]],
        )

        assert table.records == [
            {"customer_name": "Alice", "total": "10"},
            {"customer_name": "Bob", "total": None},
        ]
        assert table.metadata.total_rows == 2

    def test_missing_header(self):
        with pytest.raises(MissingHeader):
            decode_rows([], [["a"]])

    def test_no_rows(self):
        table = decode_rows(["a"], None)
        assert table.total_rows == 0


class TestDecodeXls:
    """Test legacy workbook decoding with a stubbed xlrd book."""

    @staticmethod
    def _book(cells, types):
        sheet = MagicMock()
        sheet.nrows = len(cells)
        sheet.row_values.side_effect = lambda r: list(cells[r])
        sheet.cell_type.side_effect = lambda r, c: types[r][c]
        book = MagicMock()
        book.nsheets = 1
        book.datemode = 0
        book.sheet_by_index.return_value = sheet
        return book

    def test_date_cells_become_datetimes(self, monkeypatch):
        text, number, date = xlrd.XL_CELL_TEXT, xlrd.XL_CELL_NUMBER, xlrd.XL_CELL_DATE
        book = self._book(
            [["Order ID", "Order Date"], [1.0, 45322.0]],
            [[text, text], [number, date]],
        )
        monkeypatch.setattr(
            "libs.tabular.decoder.xlrd.open_workbook", lambda **kwargs: book
        )

        table = decode_tabular(b"\xd0\xcf\x11\xe0", "xls")

        assert table.records == [
            {"order_id": 1.0, "order_date": datetime(2024, 1, 31)}
        ]
        profiles = {c.name: c for c in table.metadata.columns}
        assert profiles["order_date"].data_type == "date"

    def test_empty_sheet(self, monkeypatch):
        book = self._book([], [])
        monkeypatch.setattr(
            "libs.tabular.decoder.xlrd.open_workbook", lambda **kwargs: book
        )

        with pytest.raises(MissingHeader):
            decode_tabular(b"\xd0\xcf\x11\xe0", "xls")
