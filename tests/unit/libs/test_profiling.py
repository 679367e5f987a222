"""Unit tests for advisory column profiling."""

from datetime import date, datetime

import pytest

from libs.tabular import classify_value, clean_numeric_text, profile_records
from libs.tabular.profiling import parse_date, parse_number


class TestCleanNumericText:
    """Test numeric text cleanup."""

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("$1,234.56", "1234.56"),
            ("€ 1 000", "1000"),
            ("£12", "12"),
            ("¥500", "500"),
            ("₹2,50,000", "250000"),
            ("-42", "-42"),
        ],
    )
    def test_strips_noise(self, text, expected):
        assert clean_numeric_text(text) == expected


class TestParseNumber:
    """Test number parsing."""

    def test_numbers(self):
        assert parse_number("$1,234.56") == 1234.56
        assert parse_number("1,000") == 1000
        assert parse_number(7) == 7
        assert parse_number("1e3") == 1000.0

    def test_not_numbers(self):
        assert parse_number(True) is None
        assert parse_number("12abc") is None
        assert parse_number("") is None
        assert parse_number(float("nan")) is None


class TestParseDate:
    """Test date parsing."""

    def test_strings(self):
        assert parse_date("2024-01-31") == datetime(2024, 1, 31)
        assert parse_date("Jan 31, 2024") == datetime(2024, 1, 31)

    def test_date_is_promoted(self):
        assert parse_date(date(2024, 1, 31)) == datetime(2024, 1, 31)

    def test_rejects(self):
        assert parse_date("not a date") is None
        assert parse_date(20240131) is None
        assert parse_date(None) is None


class TestClassifyValue:
    """Test per-value classification."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            (None, "null"),
            ("   ", "null"),
            ("42", "int"),
            ("1,000", "int"),
            ("42.0", "int"),
            ("$1,234.56", "double"),
            (3.25, "double"),
            (True, "boolean"),
            ("TRUE", "boolean"),
            ("false", "boolean"),
            ("2024-01-31", "date"),
            ("31/01/2024", "date"),
            (datetime(2024, 1, 31), "date"),
            ("Alice", "string"),
            ("2024-99-99", "string"),
        ],
    )
    def test_classification(self, value, expected):
        assert classify_value(value) == expected

    def test_numeric_checked_before_date(self):
        # A bare year parses as a date too, but is classified as a number
        assert classify_value("2024") == "int"


class TestProfileRecords:
    """Test dataset profiling."""

    def test_first_non_empty_value_decides_type(self):
        records = [
            {"a": None, "b": "x"},
            {"a": "12", "b": "y"},
            {"a": "hello", "b": None},
        ]

        metadata = profile_records(records, ["a", "b"], sample_size=100)
        profiles = {c.name: c for c in metadata.columns}

        assert profiles["a"].data_type == "int"
        assert profiles["a"].null_count == 1
        assert profiles["a"].samples == ["12", "hello"]
        assert profiles["b"].data_type == "string"
        assert profiles["b"].null_count == 1

    def test_all_null_column(self):
        metadata = profile_records([{"a": None}, {"a": ""}], ["a"])

        assert metadata.columns[0].data_type == "null"
        assert metadata.columns[0].null_count == 2

    def test_sample_window(self):
        records = [{"id": str(i)} for i in range(250)]

        metadata = profile_records(records, ["id"], sample_size=100)

        assert metadata.total_rows == 250
        assert metadata.sample_size == 100
        assert len(metadata.sample_data) == 100
        assert len(metadata.columns[0].samples) == 5

    def test_null_counts_cover_all_rows(self):
        records = [{"a": "1"}] * 3 + [{"a": None}] * 7

        metadata = profile_records(records, ["a"], sample_size=2)

        assert metadata.columns[0].null_count == 7
        assert metadata.columns[0].data_type == "int"

    def test_empty_dataset(self):
        metadata = profile_records([], ["a", "b"])

        assert metadata.total_rows == 0
        assert [c.data_type for c in metadata.columns] == ["null", "null"]
