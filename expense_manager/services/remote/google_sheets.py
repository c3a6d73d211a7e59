"""
Google Sheets Remote Store

DESIGN DECISION: Google Sheets backs the remote store because:
1. Users can inspect their synced data directly in Sheets
2. No database server is required
3. Every device with the credentials sees the same spreadsheet

TRADEOFFS:
- No push notifications: subscriptions poll their worksheet
- No transactions: create checks for the id, then appends
- Every record is stored whole as JSON, so the schema lives in
  the models, not in the sheet

Each collection gets its own worksheet with the columns
id | user_id | updated_at | record_json.
"""

import asyncio
import json
from typing import Optional

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from expense_manager.audit import get_logger
from expense_manager.config import GoogleSheetsSettings, get_settings
from expense_manager.services.remote.interface import (
    AlreadyExistsError,
    NotFoundError,
    Record,
    RemoteCollection,
    RemoteStorageError,
    RemoteUnavailableError,
    SnapshotCallback,
    Unsubscribe,
)
from expense_manager.utils import current_timestamp


logger = get_logger(__name__)

SHEET_COLUMNS = ["id", "user_id", "updated_at", "record_json"]

# Failures of the Sheets API or the network underneath it
SHEETS_ERRORS = (gspread.exceptions.GSpreadException, OSError)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @property
    def settings(self) -> GoogleSheetsSettings:
        return self._settings

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
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
            except FileNotFoundError as e:
                raise RemoteUnavailableError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                ) from e
            except (ValueError, *SHEETS_ERRORS) as e:
                raise RemoteUnavailableError(f"Failed to connect to Google Sheets: {e}") from e

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(self._settings.spreadsheet_id)
            except gspread.SpreadsheetNotFound as e:
                raise RemoteUnavailableError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                ) from e
        return self._spreadsheet

    def get_worksheet(self, name: str) -> gspread.Worksheet:
        """Get or create a collection worksheet."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(name)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=name,
                rows=1000,
                cols=len(SHEET_COLUMNS),
            )
            sheet.append_row(SHEET_COLUMNS)
        return sheet


class GoogleSheetsRemoteCollection(RemoteCollection):
    """
    One synced collection stored in one worksheet, one record per row.
    """

    def __init__(
        self,
        client: GoogleSheetsClient,
        sheet_name: str,
        poll_interval: Optional[float] = None,
    ):
        self._client = client
        self._sheet_name = sheet_name
        self._poll_interval = (
            poll_interval if poll_interval is not None
            else client.settings.poll_interval_seconds
        )

    def _sheet(self) -> gspread.Worksheet:
        return self._client.get_worksheet(self._sheet_name)

    def _record_to_row(self, record: Record) -> list:
        return [
            record["id"],
            record.get("userId") or "",
            current_timestamp().isoformat(),
            json.dumps(record, ensure_ascii=False),
        ]

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _all_rows(self) -> list[list[str]]:
        """Every data row (header excluded)."""
        try:
            return self._sheet().get_all_values()[1:]
        except SHEETS_ERRORS as e:
            raise RemoteUnavailableError(f"Failed to read {self._sheet_name}: {e}") from e

    def _find_row(self, record_id: str) -> tuple[Optional[int], Optional[list[str]]]:
        """Sheet row number (1-based, header is row 1) and values for an id."""
        for idx, row in enumerate(self._all_rows(), start=2):
            if row and row[0] == record_id:
                return idx, row
        return None, None

    def read_records(self, owner_id: str) -> list[Record]:
        """All parseable records owned by `owner_id`."""
        records = []
        for row in self._all_rows():
            if len(row) < len(SHEET_COLUMNS) or not row[0] or row[1] != owner_id:
                continue
            try:
                records.append(json.loads(row[3]))
            except ValueError:
                logger.warning(
                    "sheet_row_unreadable",
                    sheet=self._sheet_name,
                    record_id=row[0],
                )
        return records

    # -------------------------------------------------------------------------
    # RemoteCollection
    # -------------------------------------------------------------------------

    def subscribe(self, owner_id: str, on_snapshot: SnapshotCallback) -> Unsubscribe:
        """
        Poll the worksheet and deliver a snapshot whenever it changes.

        Must be called with a running event loop.
        """
        task = asyncio.get_running_loop().create_task(
            self._poll(owner_id, on_snapshot)
        )

        def unsubscribe() -> None:
            task.cancel()

        return unsubscribe

    async def _poll(self, owner_id: str, on_snapshot: SnapshotCallback) -> None:
        last: Optional[list[Record]] = None
        while True:
            try:
                records = await asyncio.to_thread(self.read_records, owner_id)
            except RemoteStorageError as e:
                logger.warning("sheet_poll_failed", sheet=self._sheet_name, error=str(e))
            else:
                if records != last:
                    last = records
                    on_snapshot(records)
            await asyncio.sleep(self._poll_interval)

    # gspread is blocking; writes run in a worker thread like polls do.

    async def create(self, record: Record) -> None:
        await asyncio.to_thread(self._create_sync, record)

    async def update(self, record_id: str, fields: Record) -> None:
        await asyncio.to_thread(self._update_sync, record_id, fields)

    async def delete(self, record_id: str) -> None:
        await asyncio.to_thread(self._delete_sync, record_id)

    def _create_sync(self, record: Record) -> None:
        record_id = record["id"]
        idx, _ = self._find_row(record_id)
        if idx is not None:
            raise AlreadyExistsError(f"Record already exists: {record_id}")
        try:
            self._sheet().append_row(self._record_to_row(record), value_input_option="RAW")
        except SHEETS_ERRORS as e:
            raise RemoteUnavailableError(f"Failed to create {record_id}: {e}") from e

    def _update_sync(self, record_id: str, fields: Record) -> None:
        idx, row = self._find_row(record_id)
        if idx is None:
            raise NotFoundError(f"Record not found: {record_id}")

        try:
            current = json.loads(row[3]) if len(row) > 3 and row[3] else {}
        except ValueError:
            current = {}
        new_row = self._record_to_row({**current, **fields, "id": record_id})

        try:
            sheet = self._sheet()
            for col_idx, value in enumerate(new_row, start=1):
                sheet.update_cell(idx, col_idx, value)
        except SHEETS_ERRORS as e:
            raise RemoteUnavailableError(f"Failed to update {record_id}: {e}") from e

    def _delete_sync(self, record_id: str) -> None:
        idx, _ = self._find_row(record_id)
        if idx is None:
            return
        try:
            self._sheet().delete_rows(idx)
        except SHEETS_ERRORS as e:
            raise RemoteUnavailableError(f"Failed to delete {record_id}: {e}") from e
