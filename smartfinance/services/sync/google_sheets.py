"""
Google Sheets Sync Backend

DESIGN DECISION: Google Sheets is the file-based cloud backend because:
1. The user can open the spreadsheet and see their backup is there
2. No database setup required
3. Service account credentials are shared with the Firestore backend

The snapshot is the same JSON document every other path produces, split
into ordered chunks, one per row (a single cell holds at most 50,000
characters):

    | chunk | payload              |
    |-------|----------------------|
    | 0     | {"appState":{"tra... |
    | 1     | ...}                 |

TRADEOFFS:
- No live updates; push and pull are user-triggered
- A push is not atomic: rows are written first, then leftovers are
  cleared, so a crash in between leaves a document that fails to decode
  (reported as a failed pull, never applied)
"""

import asyncio
import json
from typing import Any, Optional

import gspread
import structlog
from google.auth import exceptions as auth_exceptions
from google.oauth2.service_account import Credentials
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from smartfinance.config.settings import GoogleSheetsSettings
from smartfinance.models.backup import BackupData
from smartfinance.services.sync.interface import (
    AuthorizationError,
    NetworkError,
    QuotaError,
    SyncError,
    SyncGateway,
)


SNAPSHOT_COLUMNS = ["chunk", "payload"]
CHUNK_SIZE = 45_000


def split_document(document: dict, chunk_size: int = CHUNK_SIZE) -> list[str]:
    """Serialize a document compactly and cut it into cell-sized pieces."""
    text = json.dumps(document, separators=(",", ":"))
    return [text[i:i + chunk_size] for i in range(0, len(text), chunk_size)]


def join_rows(rows: list[list[str]]) -> Optional[dict]:
    """
    Reassemble a document from snapshot rows (header excluded).

    Returns:
        The parsed document, or None if no chunks are stored

    Raises:
        SyncError: If the stored text is not a JSON object
    """
    chunks: list[tuple[int, str]] = []
    for row in rows:
        if len(row) < 2 or not row[0]:
            continue
        try:
            index = int(row[0])
        except ValueError:
            raise SyncError(f"Snapshot sheet has a bad chunk index: {row[0]!r}")
        chunks.append((index, row[1]))

    if not chunks:
        return None

    chunks.sort(key=lambda item: item[0])
    text = "".join(payload for _, payload in chunks)
    try:
        document = json.loads(text)
    except ValueError as e:
        raise SyncError(f"Snapshot sheet does not hold valid JSON: {e}")
    if not isinstance(document, dict):
        raise SyncError("Snapshot sheet does not hold a JSON object")
    return document


def translate_error(error: Exception, action: str) -> SyncError:
    """Map gspread / google-auth exceptions onto the SyncError hierarchy."""
    if isinstance(error, SyncError):
        return error
    if isinstance(error, gspread.exceptions.APIError):
        status = getattr(error.response, "status_code", None)
        if status in (401, 403):
            return AuthorizationError(f"Not authorized to {action}: {error}")
        if status == 429:
            return QuotaError(f"Sheets quota exceeded while trying to {action}: {error}")
        if status is not None and status >= 500:
            return NetworkError(f"Sheets unavailable while trying to {action}: {error}")
        return SyncError(f"Failed to {action}: {error}")
    if isinstance(error, auth_exceptions.GoogleAuthError):
        return AuthorizationError(f"Credentials rejected while trying to {action}: {error}")
    if isinstance(error, OSError):
        return NetworkError(f"Sheets unreachable while trying to {action}: {error}")
    return SyncError(f"Failed to {action}: {error}")


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for connecting.
    """

    def __init__(self, settings: GoogleSheetsSettings):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(NetworkError),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise AuthorizationError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise translate_error(e, "connect to Google Sheets")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(self._settings.spreadsheet_id)
            except gspread.SpreadsheetNotFound:
                raise SyncError(f"Spreadsheet not found: {self._settings.spreadsheet_id}")
        return self._spreadsheet

    def get_snapshot_sheet(self) -> gspread.Worksheet:
        """Get or create the snapshot worksheet."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(self._settings.snapshot_sheet_name)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=self._settings.snapshot_sheet_name,
                rows=100,
                cols=len(SNAPSHOT_COLUMNS),
            )
            sheet.append_row(SNAPSHOT_COLUMNS)
        return sheet


class GoogleSheetsSyncGateway(SyncGateway):
    """
    Manual sync gateway storing the snapshot in a worksheet.

    Args:
        settings: Sheets settings (None leaves the gateway not ready)
        client: GoogleSheetsClient or any object with get_snapshot_sheet()
    """

    name = "google_sheets"

    def __init__(
        self,
        settings: Optional[GoogleSheetsSettings] = None,
        client: Optional[Any] = None,
    ):
        if client is None and settings is not None:
            client = GoogleSheetsClient(settings)
        self._client = client
        self._logger = structlog.get_logger(__name__)

    @property
    def is_ready(self) -> bool:
        return self._client is not None

    def _sheet(self) -> Any:
        if self._client is None:
            raise AuthorizationError("Google Sheets is not configured")
        return self._client.get_snapshot_sheet()

    def _push_blocking(self, document: dict) -> None:
        chunks = split_document(document)
        try:
            sheet = self._sheet()
            last_row = len(chunks) + 1
            if sheet.row_count < last_row:
                sheet.add_rows(last_row - sheet.row_count)

            sheet.update(
                range_name=f"A2:B{last_row}",
                values=[[str(i), chunk] for i, chunk in enumerate(chunks)],
                value_input_option="RAW",
            )
            if sheet.row_count > last_row:
                sheet.batch_clear([f"A{last_row + 1}:B{sheet.row_count}"])
        except Exception as e:
            raise translate_error(e, "push snapshot")

        self._logger.debug("sheets_push_complete", chunks=len(chunks))

    def _pull_blocking(self) -> Optional[dict]:
        try:
            rows = self._sheet().get_all_values()[1:]
        except Exception as e:
            raise translate_error(e, "pull snapshot")
        return join_rows(rows)

    async def push(self, snapshot: BackupData) -> None:
        await asyncio.to_thread(self._push_blocking, snapshot.to_document())

    async def pull(self) -> Optional[dict]:
        return await asyncio.to_thread(self._pull_blocking)
