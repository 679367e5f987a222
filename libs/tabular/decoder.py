# =============================================================================
# Tabular Decoder
# =============================================================================
# Parses delimited text (CSV/TSV) or spreadsheet binaries (XLSX/XLS) into
# RawRecords keyed by normalized header names, plus advisory column metadata.
# Only the first sheet of a workbook is read.
# =============================================================================

import csv as text_csv
import io
import logging
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import openpyxl
import pyarrow as pa
import pyarrow.csv as csv
import xlrd

from libs.errors import EmptyInput, MissingHeader, UnsupportedFormat
from libs.models import TabularMetadata
from libs.normalization import normalize_headers

from .profiling import is_empty, profile_records

__all__ = [
    "DecodedTable",
    "SUPPORTED_FORMATS",
    "detect_format",
    "decode_tabular",
    "decode_rows",
]

log = logging.getLogger(__name__)

RawRecord = Dict[str, Any]

# format -> delimiter (None for spreadsheet binaries)
_DELIMITED_FORMATS = {"csv": ",", "tsv": "\t"}
_SPREADSHEET_FORMATS = {"xlsx", "xlsm", "xls"}
SUPPORTED_FORMATS = frozenset(_DELIMITED_FORMATS) | frozenset(_SPREADSHEET_FORMATS)

# Text decodings tried in order; latin-1 maps every byte and cannot fail
_PRIMARY_ENCODING = "utf-8-sig"
_FALLBACK_ENCODING = "latin-1"


@dataclass
class DecodedTable:
    """
    Result of decoding a source.

    Attributes:
        records: One RawRecord per kept source row
        metadata: Advisory column metadata
    """

    records: List[RawRecord]
    metadata: TabularMetadata

    @property
    def total_rows(self) -> int:
        return len(self.records)

    @property
    def columns(self) -> List[str]:
        return self.metadata.column_names


def detect_format(filename: str) -> str:
    """
    Derive the format identifier from a file name.

    Raises:
        UnsupportedFormat: If the extension is not a supported format
    """
    suffix = PurePosixPath(filename).suffix.lower().lstrip(".")
    if suffix not in SUPPORTED_FORMATS:
        raise UnsupportedFormat(
            f"Unsupported file format '{suffix or filename}'. "
            f"Please provide one of: {', '.join(sorted(SUPPORTED_FORMATS))}"
        )
    return suffix


def _normalize_format(fmt: str) -> str:
    key = fmt.strip().lower().lstrip(".")
    if key not in SUPPORTED_FORMATS:
        # Accept a filename as well as a bare format
        return detect_format(fmt)
    return key


# -----------------------------------------------------------------------------
# Record building
# -----------------------------------------------------------------------------


def _clean_cell(value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip()
    return None if is_empty(value) else value


def _build_records(
    headers: Sequence[str], rows: Iterable[Sequence[Any]]
) -> List[RawRecord]:
    """Zip rows with headers, null-filling missing cells and dropping empty rows."""
    records: List[RawRecord] = []
    dropped = 0
    for row in rows:
        record: RawRecord = {}
        for idx, header in enumerate(headers):
            record[header] = _clean_cell(row[idx]) if idx < len(row) else None
        if all(value is None for value in record.values()):
            dropped += 1
            continue
        records.append(record)
    if dropped:
        log.info(f"Dropped {dropped} empty rows")
    return records


def _finish(
    original_headers: Sequence[Any],
    rows: Iterable[Sequence[Any]],
    sample_size: int,
) -> DecodedTable:
    if not original_headers or all(is_empty(h) for h in original_headers):
        raise MissingHeader("No header row found in source")

    _, cleaned_headers = normalize_headers(original_headers)
    log.info(f"Original headers: {list(original_headers)}")
    log.info(f"Cleaned headers: {cleaned_headers}")

    records = _build_records(cleaned_headers, rows)
    if not records:
        log.warning("No data rows found after processing and filtering")

    metadata = profile_records(records, cleaned_headers, sample_size)
    log.info(
        f"Decoded {metadata.total_rows} rows, {len(metadata.columns)} columns"
    )
    return DecodedTable(records=records, metadata=metadata)


# -----------------------------------------------------------------------------
# Delimited text
# -----------------------------------------------------------------------------


def _decode_text(source: bytes) -> str:
    try:
        return source.decode(_PRIMARY_ENCODING)
    except UnicodeDecodeError as e:
        log.warning(
            f"Source is not valid UTF-8 ({e}); falling back to {_FALLBACK_ENCODING}"
        )
        return source.decode(_FALLBACK_ENCODING)


class _RaggedRowCollector:
    """
    pyarrow ``invalid_row_handler`` keeping rows whose cell count differs
    from the header: missing trailing cells become None, extra cells are
    dropped.
    """

    def __init__(self, delimiter: str, width: int):
        self.delimiter = delimiter
        self.width = width
        self.rows: List[Tuple[int, List[Any]]] = []

    def __call__(self, row) -> str:
        cells = next(text_csv.reader([row.text], delimiter=self.delimiter), [])
        if len(cells) > self.width:
            log.warning(
                f"Row {row.number} has {len(cells)} cells, expected {self.width}; "
                f"extra cells dropped"
            )
        cells = (cells + [None] * self.width)[: self.width]
        self.rows.append((row.number if row.number is not None else -1, cells))
        return "skip"

    def merge_into(self, rows: List[List[Any]]) -> List[List[Any]]:
        """Insert the collected rows back at their position in the file."""
        # Row numbers are physical lines with the header on line 1
        for number, cells in sorted(self.rows, key=lambda item: item[0]):
            position = number - 2 if number > 1 else len(rows)
            rows.insert(min(position, len(rows)), cells)
        if self.rows:
            log.info(f"Kept {len(self.rows)} rows whose cell count differs from the header")
        return rows


def _read_delimited(source: bytes, delimiter: str) -> tuple[List[str], List[List[Any]]]:
    text = _decode_text(source).lstrip("\r\n")
    if not text.strip():
        raise MissingHeader("No header row found in delimited text")

    data = text.encode("utf-8")

    # First pass only reads the header so every column can be forced to string
    header_reader = csv.open_csv(
        io.BytesIO(data),
        parse_options=csv.ParseOptions(
            delimiter=delimiter,
            invalid_row_handler=lambda row: "skip",
        ),
    )
    column_names = header_reader.schema.names
    ragged = _RaggedRowCollector(delimiter, len(column_names))

    # Serial parsing keeps row numbers known; empty lines reach the collector
    # and are dropped later as all-null rows
    table = csv.read_csv(
        io.BytesIO(data),
        read_options=csv.ReadOptions(use_threads=False),
        parse_options=csv.ParseOptions(
            delimiter=delimiter,
            invalid_row_handler=ragged,
            ignore_empty_lines=False,
        ),
        convert_options=csv.ConvertOptions(
            column_types={name: pa.string() for name in column_names},
            null_values=[""],
            strings_can_be_null=True,
        ),
    )

    columns = [table.column(i).to_pylist() for i in range(table.num_columns)]
    rows = [list(values) for values in zip(*columns)] if columns else []
    return list(table.column_names), ragged.merge_into(rows)


# -----------------------------------------------------------------------------
# Spreadsheets
# -----------------------------------------------------------------------------


def _read_xlsx(source: bytes) -> tuple[List[Any], List[Sequence[Any]]]:
    workbook = openpyxl.load_workbook(io.BytesIO(source), read_only=True, data_only=True)
    try:
        if not workbook.worksheets:
            raise MissingHeader("No sheets found in workbook")
        sheet = workbook.worksheets[0]
        rows = list(sheet.iter_rows(values_only=True))
    finally:
        workbook.close()

    if not rows:
        raise MissingHeader("No header row found in first sheet")
    return list(rows[0]), rows[1:]


def _read_xls(source: bytes) -> tuple[List[Any], List[Sequence[Any]]]:
    book = xlrd.open_workbook(file_contents=source)
    if book.nsheets == 0:
        raise MissingHeader("No sheets found in workbook")
    sheet = book.sheet_by_index(0)
    if sheet.nrows == 0:
        raise MissingHeader("No header row found in first sheet")
    rows = [_xls_row_values(book, sheet, i) for i in range(sheet.nrows)]
    return rows[0], rows[1:]


def _xls_row_values(book, sheet, row_idx: int) -> List[Any]:
    # Date cells are stored as serial numbers relative to the workbook epoch
    values = sheet.row_values(row_idx)
    for col_idx, value in enumerate(values):
        if sheet.cell_type(row_idx, col_idx) == xlrd.XL_CELL_DATE:
            values[col_idx] = xlrd.xldate_as_datetime(value, book.datemode)
    return values


# -----------------------------------------------------------------------------
# Public API
# -----------------------------------------------------------------------------


def decode_tabular(
    source: bytes,
    fmt: str,
    sample_size: int = 100,
) -> DecodedTable:
    """
    Decode a tabular source into RawRecords and advisory metadata.

    The first row is the header row; headers are normalized and used as
    record keys. Empty cells become None and rows with no values are dropped.

    Args:
        source: Raw file bytes
        fmt: Format identifier ("csv", "tsv", "xlsx", "xlsm", "xls") or a
            file name to derive it from
        sample_size: Rows scanned for type inference

    Returns:
        DecodedTable

    Raises:
        EmptyInput: If the source has zero bytes
        UnsupportedFormat: If the format is unknown
        MissingHeader: If no header row can be found
    """
    if not source:
        raise EmptyInput("File is empty")

    fmt = _normalize_format(fmt)
    log.info(f"Decoding {len(source)} bytes as {fmt}")

    if fmt in _DELIMITED_FORMATS:
        headers, rows = _read_delimited(source, _DELIMITED_FORMATS[fmt])
    elif fmt == "xls":
        headers, rows = _read_xls(source)
    else:
        headers, rows = _read_xlsx(source)

    return _finish(headers, rows, sample_size)


def decode_rows(
    headers: Optional[Sequence[Any]],
    rows: Optional[Iterable[Sequence[Any]]],
    sample_size: int = 100,
) -> DecodedTable:
    """
    Decode header + row lists, as returned by a spreadsheet API.

    Uses the same normalization and empty-cell rules as ``decode_tabular``.

    Raises:
        MissingHeader: If ``headers`` is empty
    """
    if not headers:
        raise MissingHeader("Sheet contains no header row")
    return _finish(list(headers), rows or [], sample_size)
