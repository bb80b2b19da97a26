"""
Spreadsheet mirror of orders, one row per order, for people reading the sheet.

Columns A-I: name, email, mobile, address, total price, payment method, CONFIRMED,
DELIVERED, STATUS. Column J holds the order id. Updates pick the row with the order's
id when there is one; rows written without an id are matched by scanning top to bottom
for the first row of that email that qualifies.
"""
import logging
from typing import Any, Callable

from purevia.config import Settings
from purevia.errors import NotConfirmedOrCancelled
from purevia.metrics import ledger_misses_total
from purevia.sheets_client import MemorySheet, SheetsClient

logger = logging.getLogger(__name__)

HEADER = [
    "NAME", "EMAIL", "MOBILE", "ADDRESS", "TOTAL PRICE", "PAYMENT METHOD",
    "CONFIRMED", "DELIVERED", "STATUS", "ORDER ID",
]
COLUMNS = "A:J"

EMAIL = 1
CONFIRMED = 6
DELIVERED = 7
STATUS = 8
ORDER_ID = 9

YES = "YES"
NO = "NO"
ACTIVE = "ACTIVE"
CANCELLED = "CANCELLED"

RowPredicate = Callable[[list[str]], bool]


def _cell(row: list[str], column: int) -> str:
    # the Sheets API drops trailing empty cells, so rows can be short
    return row[column] if column < len(row) else ""


def _a1(column: int, row_index: int) -> str:
    return f"{chr(ord('A') + column)}{row_index + 1}"


def _confirmable(row: list[str]) -> bool:
    return _cell(row, STATUS) != CANCELLED


def _deliverable(row: list[str]) -> bool:
    return _cell(row, CONFIRMED) == YES and _cell(row, STATUS) != CANCELLED


def _cancellable(row: list[str]) -> bool:
    return (
        _cell(row, CONFIRMED) == YES
        and _cell(row, DELIVERED) != YES
        and _cell(row, STATUS) != CANCELLED
    )


def select_row(
    rows: list[list[str]],
    email: str,
    predicate: RowPredicate,
    order_id: str | None = None,
) -> int | None:
    """
    Index (into rows, header at 0) of the row an update should touch, or None.

    A row carrying `order_id` is the only candidate when it exists. Otherwise the first
    qualifying row for `email` wins, skipping rows that belong to a different order id.
    """
    if order_id:
        for i in range(1, len(rows)):
            if _cell(rows[i], ORDER_ID) == order_id:
                row = rows[i]
                return i if _cell(row, EMAIL) == email and predicate(row) else None
    for i in range(1, len(rows)):
        row = rows[i]
        if _cell(row, EMAIL) != email or not predicate(row):
            continue
        if order_id and _cell(row, ORDER_ID):
            continue
        return i
    return None


class RemoteLedger:
    def __init__(self, client: Any) -> None:
        self.client = client

    async def append_row(self, snapshot: dict, order_id: str) -> None:
        """New row: CONFIRMED=NO, DELIVERED=NO, STATUS=ACTIVE."""
        await self.client.append_row(COLUMNS, [
            snapshot.get("name") or "",
            snapshot.get("email") or "",
            snapshot.get("mobile") or "",
            snapshot.get("address") or "",
            snapshot.get("total_price") or 0,
            snapshot.get("payment_method") or "",
            NO,
            NO,
            ACTIVE,
            order_id,
        ])
        logger.info("Ledger row appended for %s (%s)", snapshot.get("email"), order_id)

    async def _update(
        self,
        operation: str,
        email: str,
        predicate: RowPredicate,
        column: int,
        value: str,
        order_id: str | None,
    ) -> int | None:
        rows = await self.client.get_rows(COLUMNS)
        index = select_row(rows, email, predicate, order_id)
        if index is None:
            ledger_misses_total.labels(operation=operation).inc()
            return None
        await self.client.update_cell(_a1(column, index), value)
        return index + 1

    async def confirm_row(self, email: str, order_id: str | None = None) -> int | None:
        """CONFIRMED=YES on the order's row. Safe to repeat; no qualifying row is a no-op."""
        row_number = await self._update("confirm", email, _confirmable, CONFIRMED, YES, order_id)
        if row_number is None:
            logger.warning("No ledger row to confirm for %s", email)
        else:
            logger.info("Ledger row %d confirmed", row_number)
        return row_number

    async def mark_delivered_row(self, email: str, order_id: str | None = None) -> int:
        row_number = await self._update("deliver", email, _deliverable, DELIVERED, YES, order_id)
        if row_number is None:
            raise NotConfirmedOrCancelled("Order not confirmed or already cancelled")
        logger.info("Delivered marked YES for row %d", row_number)
        return row_number

    async def mark_cancelled_row(self, email: str, order_id: str | None = None) -> int | None:
        row_number = await self._update("cancel", email, _cancellable, STATUS, CANCELLED, order_id)
        if row_number is None:
            logger.warning("No confirmed, undelivered ledger row to cancel for %s", email)
        else:
            logger.info("Order cancelled for row %d", row_number)
        return row_number


def make_ledger(settings: Settings) -> RemoteLedger:
    if settings.sheet_id:
        return RemoteLedger(SheetsClient(settings.sheet_id, settings.sheet_name, settings.service_account_file))
    logger.warning("SHEET_ID not set; ledger rows are kept in memory only")
    return RemoteLedger(MemorySheet(HEADER))
