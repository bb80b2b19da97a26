"""
Local order store: one JSON document holding every customer and their orders.

The document is the record of truth for business decisions. Each change is a
read-modify-write of the whole file, serialized behind an asyncio.Lock so overlapping
requests cannot overwrite each other's updates. The new document is written to a
temporary file and swapped in with os.replace.
"""
import asyncio
import json
import logging
import os
import tempfile
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, AsyncIterator, Callable, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from purevia.errors import OrderNotFound, StoreCorrupt
from purevia.metrics import order_transitions_total
from purevia.order_state import ACTIVE, CANCELLED, DELIVERED, ensure_transition

logger = logging.getLogger(__name__)

OrderStatus = Literal["ACTIVE", "DELIVERED", "CANCELLED"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Order(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    order_id: str = Field(alias="orderId")
    items: Any = None
    total_price: float = Field(default=0, alias="totalPrice")
    delivery: Any = None
    address: str = ""
    payment_method: str = Field(default="", alias="paymentMethod")
    date: datetime
    status: OrderStatus = ACTIVE
    delivered: bool = False
    cancelled_at: datetime | None = Field(default=None, alias="cancelledAt")

    @property
    def is_pending(self) -> bool:
        return self.status == ACTIVE and not self.delivered


class Customer(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: str
    name: str = ""
    mobile: str = ""
    orders: list[Order] = Field(default_factory=list)


_document = TypeAdapter(list[Customer])


def dump_order(order: Order) -> dict:
    """Order as it appears in the JSON document and in API responses."""
    return order.model_dump(mode="json", by_alias=True, exclude_none=True)


class OrderBook:
    """The loaded document plus the operations allowed on it inside one transaction."""

    def __init__(self, customers: list[Customer], clock: Callable[[], datetime] = utcnow) -> None:
        self.customers = customers
        self.clock = clock

    def find_customer(self, email: str) -> Customer | None:
        for customer in self.customers:
            if customer.email == email:
                return customer
        return None

    def get_customer(self, email: str) -> Customer:
        customer = self.find_customer(email)
        if customer is None:
            raise OrderNotFound("Order not found")
        return customer

    def create_customer(self, email: str, name: str = "", mobile: str = "") -> Customer:
        customer = Customer(email=email, name=name or "", mobile=mobile or "")
        self.customers.append(customer)
        logger.info("Created customer %s", email)
        return customer

    def _new_order_id(self, now: datetime) -> str:
        taken = {o.order_id for c in self.customers for o in c.orders}
        millis = int(now.timestamp() * 1000)
        while f"ORD-{millis}" in taken:
            millis += 1
        return f"ORD-{millis}"

    def append_order(self, customer: Customer, order_data: dict) -> Order:
        """New ACTIVE, undelivered order stamped with the current time."""
        now = self.clock()
        order = Order(
            order_id=self._new_order_id(now),
            items=order_data.get("items"),
            total_price=order_data.get("total_price") or 0,
            delivery=order_data.get("delivery"),
            address=order_data.get("address") or "",
            payment_method=order_data.get("payment_method") or "",
            date=now,
            status=ACTIVE,
            delivered=False,
        )
        customer.orders.append(order)
        logger.info("Appended order %s for %s", order.order_id, customer.email)
        return order

    def find_order(self, customer: Customer, predicate: Callable[[Order], bool]) -> Order | None:
        """Newest order (by creation date) matching predicate."""
        matches = sorted(
            (o for o in customer.orders if predicate(o)),
            key=lambda o: o.date,
            reverse=True,
        )
        return matches[0] if matches else None

    def pending_orders(self, customer: Customer | None) -> list[Order]:
        """ACTIVE, undelivered orders, newest first."""
        if customer is None:
            return []
        return sorted(
            (o for o in customer.orders if o.is_pending),
            key=lambda o: o.date,
            reverse=True,
        )

    def latest_pending(self, customer: Customer) -> Order | None:
        return self.find_order(customer, lambda o: o.is_pending)

    def pending_at(self, customer: Customer, index: int) -> Order:
        """Select from pending_orders() by position; stale or out-of-range index fails."""
        pending = self.pending_orders(customer)
        if index < 0 or index >= len(pending):
            raise OrderNotFound("Order not found")
        return pending[index]

    def mutate_order(self, customer: Customer, index: int, patch: dict) -> Order:
        """Apply field changes to customer.orders[index]; a status change must be a valid transition."""
        if index < 0 or index >= len(customer.orders):
            raise OrderNotFound("Order not found")
        order = customer.orders[index]
        if "status" in patch:
            ensure_transition(order.status, patch["status"])
        for field, value in patch.items():
            setattr(order, field, value)
        if "status" in patch:
            order_transitions_total.labels(status=patch["status"]).inc()
            logger.info("Order %s is now %s", order.order_id, order.status)
        return order

    def mark_delivered(self, customer: Customer, order: Order) -> Order:
        index = customer.orders.index(order)
        return self.mutate_order(customer, index, {"status": DELIVERED, "delivered": True})

    def mark_cancelled(self, customer: Customer, order: Order) -> Order:
        index = customer.orders.index(order)
        return self.mutate_order(customer, index, {"status": CANCELLED, "cancelled_at": self.clock()})

    def to_document(self) -> list[dict]:
        return [c.model_dump(mode="json", by_alias=True, exclude_none=True) for c in self.customers]


class OrderStore:
    def __init__(self, path: str | os.PathLike, clock: Callable[[], datetime] = utcnow) -> None:
        self.path = Path(path)
        self.clock = clock
        self._lock = asyncio.Lock()

    def _read(self) -> list[Customer]:
        if not self.path.exists():
            return []
        raw = self.path.read_text(encoding="utf-8")
        if not raw.strip():
            return []
        try:
            return _document.validate_python(json.loads(raw))
        except (json.JSONDecodeError, PydanticValidationError) as e:
            raise StoreCorrupt(f"Order store {self.path} is unreadable: {e}") from e

    def _write(self, document: list[dict]) -> None:
        directory = self.path.parent
        directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    async def load(self) -> OrderBook:
        """Read-only view; changes made to it are never written."""
        async with self._lock:
            customers = await asyncio.to_thread(self._read)
        return OrderBook(customers, self.clock)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[OrderBook]:
        """
        Hold the store lock, load the document, yield it for mutation, then rewrite the
        whole file. If the body raises, nothing is written.
        """
        async with self._lock:
            customers = await asyncio.to_thread(self._read)
            book = OrderBook(customers, self.clock)
            yield book
            await asyncio.to_thread(self._write, book.to_document())
            logger.debug("Order store rewritten (%d customers)", len(book.customers))
