"""Type coercion of RawRecords into documents shaped by a SchemaDescriptor."""

import logging
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

from libs.models import FieldSpec, FieldType, SchemaDescriptor, resolve_field_type

from .profiling import is_empty, parse_date, parse_number

__all__ = [
    "Document",
    "CONVERTERS",
    "to_date",
    "to_int",
    "to_double",
    "to_boolean",
    "to_string",
    "coerce_value",
    "coerce_record",
    "coerce_records",
]

logger = logging.getLogger(__name__)

Document = Dict[str, Any]

_TRUE_TEXT = frozenset({"true", "1"})
_FALSE_TEXT = frozenset({"false", "0"})


def to_date(value: Any) -> Optional[datetime]:
    return parse_date(value)


def to_int(value: Any) -> Optional[int]:
    """Parse after stripping separators/currency; fractions are truncated."""
    number = parse_number(value)
    if number is None:
        return None
    return int(number)


def to_double(value: Any) -> Optional[float]:
    number = parse_number(value)
    if number is None:
        return None
    return float(number)


def to_boolean(value: Any) -> Optional[bool]:
    """true/1 -> True, false/0 -> False (case-insensitive), otherwise None."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        if value == 1:
            return True
        if value == 0:
            return False
        return None
    text = str(value).strip().lower()
    if text in _TRUE_TEXT:
        return True
    if text in _FALSE_TEXT:
        return False
    return None


def to_string(value: Any) -> str:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


CONVERTERS: Dict[FieldType, Callable[[Any], Any]] = {
    FieldType.DATE: to_date,
    FieldType.INT: to_int,
    FieldType.DOUBLE: to_double,
    FieldType.BOOLEAN: to_boolean,
    FieldType.STRING: to_string,
}


def coerce_value(value: Any, declared_type: str, field_name: str = "") -> Any:
    """
    Convert one raw value to its declared type.

    Empty values and unparsable values become None. Declared types without
    a converter keep the raw value. A converter that raises keeps the raw
    value and logs a warning.
    """
    if is_empty(value):
        return None

    field_type = resolve_field_type(declared_type)
    if field_type is None:
        return value

    try:
        return CONVERTERS[field_type](value)
    except (ValueError, TypeError, OverflowError) as e:
        logger.warning(
            f"Could not convert {field_name} ({value!r}) to {field_type.value}: {e}"
        )
        return value


def coerce_record(record: Dict[str, Any], fields: Sequence[FieldSpec]) -> Document:
    """
    Build a document holding only the declared fields.

    Fields are walked in declaration order. Keys of ``record`` that are not
    declared are dropped, and fields whose coerced value is None are omitted.
    """
    document: Document = {}
    for idx in range(len(fields)):
        spec = fields[idx]
        coerced = coerce_value(record.get(spec.name), spec.type, spec.name)
        if coerced is not None:
            document[spec.name] = coerced
    return document


def coerce_records(
    records: Sequence[Dict[str, Any]], descriptor: SchemaDescriptor
) -> List[Document]:
    """Coerce every record against ``descriptor``."""
    fields = descriptor.fields
    documents = [coerce_record(record, fields) for record in records]
    logger.debug(
        f"Coerced {len(documents)} records against {len(fields)} declared fields"
    )
    return documents
