"""Resolution of a SourceRef into a decoded table."""

import logging
from typing import Any, List, Optional, Protocol, Sequence, Tuple

from libs.errors import InputError
from libs.models import SourceKind, SourceRef
from libs.tabular import DecodedTable, decode_rows, decode_tabular, detect_format

__all__ = ["UploadStore", "SpreadsheetClient", "SourceLoader"]


class UploadStore(Protocol):
    """Anything that can return the bytes of an uploaded file."""

    def read_upload(self, upload_id: str) -> bytes: ...


class SpreadsheetClient(Protocol):
    """Spreadsheet API client returning a header row and data rows for one tab."""

    def get_sheet_rows(
        self, spreadsheet_id: str, sheet_name: str
    ) -> Tuple[Sequence[Any], List[Sequence[Any]]]: ...


class SourceLoader:
    """
    Loads and decodes the source behind a SourceRef.

    Uploads are read through ``upload_store`` and decoded by file extension;
    spreadsheet tabs are fetched through ``spreadsheet_client``.
    """

    def __init__(
        self,
        upload_store: Optional[UploadStore] = None,
        spreadsheet_client: Optional[SpreadsheetClient] = None,
        *,
        sample_size: int = 100,
        log: Optional[logging.Logger] = None,
    ):
        self.upload_store = upload_store
        self.spreadsheet_client = spreadsheet_client
        self.sample_size = sample_size
        self.log = log or logging.getLogger(__name__)

    def load(self, source_ref: SourceRef) -> DecodedTable:
        """
        Decode the full dataset for ``source_ref``.

        Raises:
            InputError: If the source cannot be decoded, or no client is
                configured for its kind
        """
        if source_ref.kind == SourceKind.UPLOAD:
            return self._load_upload(source_ref.upload_id)
        return self._load_sheet(source_ref.spreadsheet_id, source_ref.sheet_name)

    def _load_upload(self, upload_id: str) -> DecodedTable:
        if self.upload_store is None:
            raise InputError("No upload store configured for upload sources")
        fmt = detect_format(upload_id)
        self.log.info(f"Loading upload {upload_id} as {fmt}")
        source = self.upload_store.read_upload(upload_id)
        return decode_tabular(source, fmt, sample_size=self.sample_size)

    def _load_sheet(self, spreadsheet_id: str, sheet_name: str) -> DecodedTable:
        if self.spreadsheet_client is None:
            raise InputError("No spreadsheet client configured for spreadsheet sources")
        self.log.info(f"Loading sheet {sheet_name} of spreadsheet {spreadsheet_id}")
        headers, rows = self.spreadsheet_client.get_sheet_rows(spreadsheet_id, sheet_name)
        return decode_rows(headers, rows, sample_size=self.sample_size)
