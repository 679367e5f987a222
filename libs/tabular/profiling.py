"""Advisory column profiling for decoded tabular data.

The inferred types feed the schema-inference collaborator only. Coercion
always uses the declared types of the SchemaDescriptor.
"""

import logging
import math
import re
from datetime import date, datetime
from typing import Any, Optional, Sequence

from dateutil import parser as date_parser

from libs.models import ColumnProfile, InferredType, TabularMetadata

__all__ = [
    "clean_numeric_text",
    "parse_number",
    "parse_date",
    "is_empty",
    "classify_value",
    "profile_records",
]

logger = logging.getLogger(__name__)

# Thousands separators, whitespace and currency symbols
_NUMERIC_NOISE = re.compile(r"[,\s$€£¥₹]")
_NUMERIC_TEXT = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")
_INTEGER_TEXT = re.compile(r"^[+-]?\d+$")
_DATE_LIKE = re.compile(
    r"^\d{4}-\d{1,2}-\d{1,2}"  # 2024-01-31, 2024-01-31T10:00
    r"|^\d{1,2}[/.-]\d{1,2}[/.-]\d{2,4}"  # 31/01/2024, 01-31-24
    r"|^\d{4}/\d{1,2}/\d{1,2}"  # 2024/01/31
    r"|^[A-Za-z]{3,9}\.? \d{1,2},? \d{4}"  # Jan 31, 2024
    r"|^\d{1,2} [A-Za-z]{3,9}\.? \d{4}"  # 31 January 2024
)

SAMPLE_VALUES_PER_COLUMN = 5


def clean_numeric_text(text: str) -> str:
    """Strip thousands separators, whitespace and currency symbols."""
    return _NUMERIC_NOISE.sub("", text)


def is_empty(value: Any) -> bool:
    """None and blank strings count as empty cells."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, float):
        return math.isnan(value)
    return False


def parse_number(value: Any) -> Optional[int | float]:
    """
    Parse a raw cell into an int or float.

    Strings are cleaned with ``clean_numeric_text`` first, so "$1,234.56"
    parses to 1234.56. Booleans and non-finite values are not numbers.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None

    text = clean_numeric_text(str(value))
    if not _NUMERIC_TEXT.match(text):
        return None
    if _INTEGER_TEXT.match(text):
        return int(text)
    number = float(text)
    return number if math.isfinite(number) else None


def parse_date(value: Any) -> Optional[datetime]:
    """
    Parse a raw cell into a datetime.

    ``date`` values are promoted to midnight datetimes (BSON has no date-only
    type). Anything dateutil cannot parse returns None.
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if is_empty(value) or isinstance(value, (bool, int, float)):
        return None
    try:
        return date_parser.parse(str(value).strip())
    except (date_parser.ParserError, ValueError, OverflowError):
        return None


def _looks_like_date(text: str) -> bool:
    return bool(_DATE_LIKE.match(text)) and parse_date(text) is not None


def classify_value(value: Any) -> InferredType:
    """
    Classify one raw value as null/int/double/boolean/date/string.

    Numeric strings are normalized (separators and currency stripped) before
    numeric classification; numeric checks run before date checks.
    """
    if is_empty(value):
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (datetime, date)):
        return "date"

    number = parse_number(value)
    if number is not None:
        if isinstance(number, int) or float(number).is_integer():
            return "int"
        return "double"

    if isinstance(value, str):
        text = value.strip()
        if text.lower() in ("true", "false"):
            return "boolean"
        if _looks_like_date(text):
            return "date"
    return "string"


def profile_records(
    records: Sequence[dict[str, Any]],
    columns: Sequence[str],
    sample_size: int = 100,
) -> TabularMetadata:
    """
    Build advisory metadata for decoded records.

    For each column, the first non-empty value within the first
    ``sample_size`` rows decides the inferred type. Null counts cover every
    row.

    Args:
        records: Decoded RawRecords
        columns: Normalized column names in source order (duplicates collapsed)
        sample_size: Rows to scan for type inference and sample data

    Returns:
        TabularMetadata for the dataset
    """
    sample = [dict(record) for record in records[: max(sample_size, 0)]]
    profiles: list[ColumnProfile] = []

    for column in dict.fromkeys(columns):
        non_empty = [row.get(column) for row in sample if not is_empty(row.get(column))]
        data_type = classify_value(non_empty[0]) if non_empty else "null"
        null_count = sum(1 for row in records if is_empty(row.get(column)))
        profiles.append(
            ColumnProfile(
                name=column,
                data_type=data_type,
                null_count=null_count,
                samples=non_empty[:SAMPLE_VALUES_PER_COLUMN],
            )
        )

    logger.debug(
        f"Profiled {len(profiles)} columns over {len(sample)} sample rows "
        f"({len(records)} total)"
    )
    return TabularMetadata(
        total_rows=len(records),
        columns=profiles,
        sample_size=len(sample),
        sample_data=sample,
    )
