"""Unit tests for type coercion against a SchemaDescriptor."""

from datetime import datetime
from unittest.mock import patch

import pytest

from libs.models import FieldSpec, FieldType, SchemaDescriptor
from libs.tabular import coerce_record, coerce_records, coerce_value
from libs.tabular.coercion import to_boolean, to_int


class TestCoerceValue:
    """Test single-value conversion."""

    @pytest.mark.parametrize(
        "value, declared, expected",
        [
            ("$1,234.56", "double", 1234.56),
            ("1,234", "int", 1234),
            ("12.9", "int", 12),
            ("abc", "int", None),
            ("abc", "double", None),
            ("true", "boolean", True),
            ("TRUE", "Boolean", True),
            ("1", "bool", True),
            ("0", "boolean", False),
            ("yes", "boolean", None),
            ("2024-01-31", "date", datetime(2024, 1, 31)),
            ("garbage", "date", None),
            (42, "string", "42"),
            (datetime(2024, 1, 31), "string", "2024-01-31T00:00:00"),
            (" Alice ", "text", " Alice "),
            (3.0, "integer", 3),
        ],
    )
    def test_conversions(self, value, declared, expected):
        assert coerce_value(value, declared) == expected

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_empty_is_none(self, value):
        assert coerce_value(value, "string") is None

    def test_unknown_type_keeps_raw_value(self):
        raw = {"nested": True}
        assert coerce_value(raw, "object") is raw

    def test_converter_failure_keeps_raw_value(self, caplog):
        def explode(value):
            raise ValueError("bad value")

        with patch.dict(
            "libs.tabular.coercion.CONVERTERS", {FieldType.INT: explode}
        ):
            assert coerce_value("12", "int", "qty") == "12"
        assert "Could not convert qty" in caplog.text


class TestConverters:
    """Test individual converters."""

    def test_to_int_truncates(self):
        assert to_int("-7.8") == -7

    def test_to_boolean_numbers(self):
        assert to_boolean(1) is True
        assert to_boolean(0.0) is False
        assert to_boolean(2) is None


class TestCoerceRecord:
    """Test document construction."""

    def test_declared_fields_only(self, sales_descriptor):
        record = {
            "order_id": "1",
            "customer": "Alice",
            "amount": "$1,234.56",
            "paid": "true",
            "order_date": "2024-01-31",
            "undeclared": "dropped",
        }

        document = coerce_record(record, sales_descriptor.fields)

        assert document == {
            "order_id": 1,
            "customer": "Alice",
            "amount": 1234.56,
            "paid": True,
            "order_date": datetime(2024, 1, 31),
        }

    def test_none_values_are_omitted(self, sales_descriptor):
        document = coerce_record(
            {"order_id": "2", "amount": "n/a", "paid": None}, sales_descriptor.fields
        )

        assert document == {"order_id": 2}

    def test_declaration_order(self):
        fields = [
            FieldSpec(name="b", type="string"),
            FieldSpec(name="a", type="string"),
        ]

        document = coerce_record({"a": "1", "b": "2"}, fields)

        assert list(document) == ["b", "a"]

    def test_descriptor_from_original_headers_matches_records(self):
        descriptor = SchemaDescriptor.model_validate(
            {"collection_name": "c", "schema": {"Unit Price ($)": {"type": "double"}}}
        )

        documents = coerce_records([{"unit_price": "$9.99"}], descriptor)

        assert documents == [{"unit_price": 9.99}]

    def test_coerce_records(self, sales_descriptor):
        documents = coerce_records(
            [{"order_id": "1"}, {"order_id": "x"}], sales_descriptor
        )
        assert documents == [{"order_id": 1}, {}]
