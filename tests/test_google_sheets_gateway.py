"""Tests for the Google Sheets backend (fake worksheet, no network)."""

import json

import gspread
import pytest

from smartfinance.backup import decode, encode
from smartfinance.models import AppState, BackupSettings
from smartfinance.services.sync import (
    AuthorizationError,
    NetworkError,
    QuotaError,
    SyncError,
)
from smartfinance.services.sync.google_sheets import (
    SNAPSHOT_COLUMNS,
    GoogleSheetsSyncGateway,
    join_rows,
    split_document,
)


def _cell(ref: str) -> int:
    return int(ref.lstrip("AB"))


class FakeWorksheet:
    """Just enough of gspread.Worksheet for the snapshot layout."""

    def __init__(self, rows: int = 5):
        self.row_count = rows
        self.cells: dict[tuple[int, int], str] = {
            (1, 1): SNAPSHOT_COLUMNS[0],
            (1, 2): SNAPSHOT_COLUMNS[1],
        }
        self.fail_with = None

    def add_rows(self, rows: int) -> None:
        self.row_count += rows

    def update(self, range_name=None, values=None, value_input_option=None):
        if self.fail_with is not None:
            raise self.fail_with
        assert value_input_option == "RAW"
        first = _cell(range_name.split(":")[0])
        for offset, row in enumerate(values):
            for col, value in enumerate(row, start=1):
                self.cells[(first + offset, col)] = value

    def batch_clear(self, ranges):
        for cell_range in ranges:
            start, end = cell_range.split(":")
            for row in range(_cell(start), _cell(end) + 1):
                self.cells.pop((row, 1), None)
                self.cells.pop((row, 2), None)

    def get_all_values(self):
        if self.fail_with is not None:
            raise self.fail_with
        last = max(row for row, _ in self.cells)
        return [
            [self.cells.get((row, 1), ""), self.cells.get((row, 2), "")]
            for row in range(1, last + 1)
        ]


class FakeClient:
    def __init__(self, sheet: FakeWorksheet):
        self.sheet = sheet

    def get_snapshot_sheet(self) -> FakeWorksheet:
        return self.sheet


class FakeResponse:
    def __init__(self, status_code: int):
        self.status_code = status_code
        self.text = "error"

    def json(self):
        return {"error": {"code": self.status_code, "message": "error", "status": "ERROR"}}


@pytest.fixture
def sheet() -> FakeWorksheet:
    return FakeWorksheet()


@pytest.fixture
def gateway(sheet) -> GoogleSheetsSyncGateway:
    return GoogleSheetsSyncGateway(client=FakeClient(sheet))


class TestChunking:
    """Tests for splitting documents across rows."""

    def test_split_and_join(self):
        document = {"note": "x" * 250}
        chunks = split_document(document, chunk_size=100)
        assert len(chunks) == 3
        assert all(len(chunk) <= 100 for chunk in chunks)
        rows = [[str(i), chunk] for i, chunk in enumerate(chunks)]
        assert join_rows(list(reversed(rows))) == document

    def test_join_nothing(self):
        assert join_rows([]) is None
        assert join_rows([["", ""]]) is None

    def test_join_garbage(self):
        with pytest.raises(SyncError):
            join_rows([["0", "{half a docu"]])

    def test_join_non_object(self):
        with pytest.raises(SyncError):
            join_rows([["0", json.dumps([1, 2])]])


class TestGoogleSheetsSyncGateway:
    """Tests for push/pull against a fake worksheet."""

    def test_manual_only(self, gateway):
        assert gateway.is_ready
        assert gateway.supports_live_updates is False

    def test_not_configured(self):
        assert GoogleSheetsSyncGateway().is_ready is False

    @pytest.mark.asyncio
    async def test_pull_empty_sheet(self, gateway):
        assert await gateway.pull() is None

    @pytest.mark.asyncio
    async def test_push_then_pull(self, gateway, ledger):
        await gateway.push(encode(ledger, BackupSettings()))
        result = decode(await gateway.pull())
        assert result.ok
        assert result.state == ledger

    @pytest.mark.asyncio
    async def test_large_snapshot_grows_sheet(self, sheet, gateway, two_categories, make_transaction):
        notes = "n" * 900
        state = AppState(
            transactions=[make_transaction(str(i), note=notes) for i in range(200)],
            categories=two_categories,
        )
        await gateway.push(encode(state, BackupSettings()))
        assert sheet.row_count > 5
        assert (await gateway.pull())["appState"]["transactions"][0]["note"] == notes

    @pytest.mark.asyncio
    async def test_smaller_push_clears_leftover_chunks(self, gateway, ledger, empty_state):
        big = ledger.model_copy(update={"currency": "X" * 100_000})
        await gateway.push(encode(big, BackupSettings()))
        await gateway.push(encode(empty_state, BackupSettings()))
        result = decode(await gateway.pull())
        assert result.ok
        assert result.state == empty_state

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status, expected",
        [(403, AuthorizationError), (429, QuotaError), (503, NetworkError), (400, SyncError)],
    )
    async def test_api_errors_translated(self, sheet, gateway, ledger, status, expected):
        sheet.fail_with = gspread.exceptions.APIError(FakeResponse(status))
        with pytest.raises(expected):
            await gateway.push(encode(ledger, BackupSettings()))

    @pytest.mark.asyncio
    async def test_pull_network_failure(self, sheet, gateway):
        sheet.fail_with = ConnectionResetError("reset")
        with pytest.raises(NetworkError):
            await gateway.pull()

    @pytest.mark.asyncio
    async def test_unconfigured_push_fails(self, ledger):
        with pytest.raises(AuthorizationError):
            await GoogleSheetsSyncGateway().push(encode(ledger, BackupSettings()))
