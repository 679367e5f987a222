"""Header normalization for tabular imports.

Every column label coming from a file or a spreadsheet is passed through
``normalize_header`` before it is used as a document field name, so the same
canonical name is used for RawRecord keys, schema field names and index keys.
"""

import logging
import re
from typing import Any, Dict, Iterable, List, Tuple

__all__ = [
    "INVALID_HEADER",
    "normalize_header",
    "normalize_headers",
]

logger = logging.getLogger(__name__)

INVALID_HEADER = "_invalid_header_"

_NON_ALNUM_RUN = re.compile(r"[^a-z0-9]+")


def normalize_header(label: Any) -> Any:
    """
    Canonicalize a raw column label into a storage-safe field name.

    - lowercases the label
    - collapses every run of non-alphanumeric characters into one underscore
    - strips leading/trailing underscores
    - returns ``INVALID_HEADER`` if nothing is left

    Non-string input is returned unchanged. The function is idempotent.

    Examples:
        >>> normalize_header("Order ID")
        'order_id'
        >>> normalize_header("Market Value ($M)")
        'market_value_m'
        >>> normalize_header("___")
        '_invalid_header_'
    """
    if not isinstance(label, str):
        return label

    if label == INVALID_HEADER:
        return label

    cleaned = _NON_ALNUM_RUN.sub("_", label.lower()).strip("_")
    if not cleaned:
        return INVALID_HEADER
    return cleaned


def normalize_headers(labels: Iterable[Any]) -> Tuple[Dict[str, str], List[str]]:
    """
    Normalize a header row.

    Returns:
        Tuple of:
        - header_mapping: original label (as string) -> normalized name
        - cleaned_headers: normalized names in column order

    Labels that normalize to the same name are not de-duplicated; later
    columns overwrite earlier ones when records are built.
    """
    header_mapping: Dict[str, str] = {}
    cleaned_headers: List[str] = []

    for label in labels:
        text = "" if label is None else str(label)
        cleaned = normalize_header(text)
        if cleaned in cleaned_headers:
            logger.warning(
                f"Header '{text}' normalizes to '{cleaned}', which is already in use"
            )
        header_mapping[text] = cleaned
        cleaned_headers.append(cleaned)

    return header_mapping, cleaned_headers
