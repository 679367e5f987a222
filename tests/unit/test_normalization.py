"""Unit tests for header normalization."""

import pytest

from libs.normalization import INVALID_HEADER, normalize_header, normalize_headers


class TestNormalizeHeader:
    """Test normalize_header function."""

    @pytest.mark.parametrize(
        "label, expected",
        [
            ("Order ID", "order_id"),
            ("Market Value ($M)", "market_value_m"),
            ("  padded  ", "padded"),
            ("Email.Address", "email_address"),
            ("First  Name", "first_name"),
            ("__Name__", "name"),
            ("Año 2024", "a_o_2024"),
            ("already_clean", "already_clean"),
        ],
    )
    def test_canonical_names(self, label, expected):
        assert normalize_header(label) == expected

    @pytest.mark.parametrize("label", ["", "___", "$$$", "   "])
    def test_nothing_left_gives_sentinel(self, label):
        assert normalize_header(label) == INVALID_HEADER

    def test_non_string_passes_through(self):
        assert normalize_header(42) == 42
        assert normalize_header(None) is None

    @pytest.mark.parametrize(
        "label", ["Order ID", "Market Value ($M)", "___", "x", "ÜBER-größe"]
    )
    def test_idempotent(self, label):
        once = normalize_header(label)
        assert normalize_header(once) == once

    def test_output_alphabet(self):
        result = normalize_header("Weird!! Header -- (with) [stuff] 99")
        assert result == "weird_header_with_stuff_99"
        assert not result.startswith("_")
        assert not result.endswith("_")
        assert "__" not in result


class TestNormalizeHeaders:
    """Test normalize_headers function."""

    def test_mapping_and_order(self):
        mapping, cleaned = normalize_headers(["First Name", "Last Name", "Age"])

        assert cleaned == ["first_name", "last_name", "age"]
        assert mapping == {
            "First Name": "first_name",
            "Last Name": "last_name",
            "Age": "age",
        }

    def test_none_and_numbers_become_text(self):
        mapping, cleaned = normalize_headers([None, 2024, "Name"])

        assert cleaned == [INVALID_HEADER, "2024", "name"]
        assert mapping[""] == INVALID_HEADER

    def test_collisions_are_kept(self, caplog):
        mapping, cleaned = normalize_headers(["Order ID", "order_id"])

        assert cleaned == ["order_id", "order_id"]
        assert "already in use" in caplog.text
