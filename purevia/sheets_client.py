"""
Google Sheets helpers: read all rows, append a row, update one cell. Blocking API calls
run in a thread so the event loop keeps serving other requests.
"""
import asyncio
import logging
from typing import Any

import httplib2
from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from purevia.errors import RemoteLedgerUnavailable

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]


class SheetsClient:
    def __init__(self, sheet_id: str, sheet_name: str, service_account_file: str) -> None:
        self.sheet_id = sheet_id
        self.sheet_name = sheet_name
        self.service_account_file = service_account_file
        self._service: Any = None

    def _get_service(self):
        if self._service is None:
            credentials = service_account.Credentials.from_service_account_file(
                self.service_account_file, scopes=SCOPES
            )
            self._service = build("sheets", "v4", credentials=credentials, cache_discovery=False)
        return self._service

    async def _call(self, fn):
        try:
            return await asyncio.to_thread(fn)
        # ValueError: unreadable service account file
        except (HttpError, GoogleAuthError, httplib2.HttpLib2Error, OSError, ValueError) as e:
            logger.exception("Sheets call failed: %s", e)
            raise RemoteLedgerUnavailable(f"Spreadsheet unavailable: {e}") from e

    async def get_rows(self, columns: str) -> list[list[str]]:
        """All rows of `columns` (e.g. "A:J"), header included. Trailing empty cells are omitted by the API."""
        def _get():
            values = self._get_service().spreadsheets().values()
            res = values.get(
                spreadsheetId=self.sheet_id,
                range=f"{self.sheet_name}!{columns}",
            ).execute()
            return res.get("values") or []

        return await self._call(_get)

    async def append_row(self, columns: str, row: list[Any]) -> None:
        def _append():
            values = self._get_service().spreadsheets().values()
            values.append(
                spreadsheetId=self.sheet_id,
                range=f"{self.sheet_name}!{columns}",
                valueInputOption="USER_ENTERED",
                body={"values": [row]},
            ).execute()

        await self._call(_append)

    async def update_cell(self, cell: str, value: Any) -> None:
        """Set a single cell, e.g. update_cell("G5", "YES")."""
        def _update():
            values = self._get_service().spreadsheets().values()
            values.update(
                spreadsheetId=self.sheet_id,
                range=f"{self.sheet_name}!{cell}",
                valueInputOption="USER_ENTERED",
                body={"values": [[value]]},
            ).execute()

        await self._call(_update)


class MemorySheet:
    """
    In-process stand-in with the same three calls, used when no sheet id is configured
    (local development) and by the tests. Row 1 is the header.
    """

    def __init__(self, header: list[str]) -> None:
        self.rows: list[list[str]] = [list(header)]

    async def get_rows(self, columns: str) -> list[list[str]]:
        return [list(row) for row in self.rows]

    async def append_row(self, columns: str, row: list[Any]) -> None:
        self.rows.append([str(v) for v in row])

    async def update_cell(self, cell: str, value: Any) -> None:
        column = ord(cell[0].upper()) - ord("A")
        row = self.rows[int(cell[1:]) - 1]
        while len(row) <= column:
            row.append("")
        row[column] = str(value)
