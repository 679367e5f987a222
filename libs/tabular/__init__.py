"""Tabular decoding, profiling and type coercion."""

from .coercion import Document, coerce_record, coerce_records, coerce_value
from .decoder import (
    SUPPORTED_FORMATS,
    DecodedTable,
    decode_rows,
    decode_tabular,
    detect_format,
)
from .profiling import classify_value, clean_numeric_text, profile_records

__all__ = [
    "Document",
    "coerce_record",
    "coerce_records",
    "coerce_value",
    "SUPPORTED_FORMATS",
    "DecodedTable",
    "decode_rows",
    "decode_tabular",
    "detect_format",
    "classify_value",
    "clean_numeric_text",
    "profile_records",
]
