"""
Lifecycle coordinator: runs one order transition as a fixed sequence of steps.

    place:    verify order OTP -> store ACTIVE order -> ledger append -> ledger confirm -> mails
    deliver:  verify delivery OTP -> pick newest pending order -> ledger confirm
              -> delivered mail -> ledger DELIVERED=YES -> store DELIVERED
    cancel:   verify cancel OTP -> list pending orders; then, for the chosen one:
              store CANCELLED -> ledger STATUS=CANCELLED -> cancelled mail

The OTP is consumed before any other step. The order store is written last in the
delivery and cancel paths, so if a remote step fails the store is left untouched and the
ledger may be ahead of it, never behind. There is no rollback of completed steps.
"""
import logging

from purevia.errors import OrderNotFound
from purevia.ledger import RemoteLedger
from purevia.metrics import orders_placed_total
from purevia.notifications import Notifier
from purevia.otp import OtpPurpose, OtpRegistry
from purevia.store import Order, OrderStore

logger = logging.getLogger(__name__)


class LifecycleCoordinator:
    def __init__(self, otps: OtpRegistry, store: OrderStore, ledger: RemoteLedger, notifier: Notifier) -> None:
        self.otps = otps
        self.store = store
        self.ledger = ledger
        self.notifier = notifier

    async def _issue_and_send(self, email: str, name: str | None, purpose: OtpPurpose) -> None:
        code = await self.otps.issue(email, purpose)
        await self.notifier.send_otp(email, name, purpose, code, self.otps.ttls[purpose])

    # ---- placing an order ----

    async def send_order_otp(self, email: str, name: str | None = None) -> None:
        await self._issue_and_send(email, name, OtpPurpose.ORDER)

    async def place_order(
        self,
        *,
        email: str,
        otp: str,
        name: str,
        items,
        total_price: float,
        delivery,
        address: str,
        payment_method: str,
        mobile: str = "",
    ) -> Order:
        await self.otps.verify(email, OtpPurpose.ORDER, otp)

        snapshot = {
            "email": email,
            "name": name,
            "mobile": mobile,
            "items": items,
            "total_price": total_price,
            "delivery": delivery,
            "address": address,
            "payment_method": payment_method,
        }
        async with self.store.transaction() as book:
            customer = book.find_customer(email) or book.create_customer(email, name, mobile)
            order = book.append_order(customer, snapshot)
        orders_placed_total.inc()

        await self.ledger.append_row(snapshot, order.order_id)
        await self.ledger.confirm_row(email, order.order_id)

        await self.notifier.admin_new_order({"orderId": order.order_id, **snapshot})
        await self.notifier.order_confirmed(email, name, total_price)
        logger.info("Order %s placed for %s", order.order_id, email)
        return order

    # ---- delivery ----

    async def send_delivery_otp(self, email: str, name: str) -> None:
        await self._issue_and_send(email, name, OtpPurpose.DELIVERY)

    async def notify_delivery_start(self, email: str, name: str) -> None:
        """Delivery person arrived: tell the admin, then mail the customer a delivery OTP."""
        if await self.notifier.admin_delivery_started(email, name):
            logger.info("Admin notified for delivery start: %s", email)
        await self._issue_and_send(email, name, OtpPurpose.DELIVERY)

    async def confirm_delivery(self, email: str, otp: str, name: str) -> Order:
        await self.otps.verify(email, OtpPurpose.DELIVERY, otp)

        async with self.store.transaction() as book:
            customer = book.find_customer(email)
            order = book.latest_pending(customer) if customer else None
            if order is None:
                raise OrderNotFound("No active order to deliver")

            await self.ledger.confirm_row(email, order.order_id)
            await self.notifier.delivered(email, name)
            await self.ledger.mark_delivered_row(email, order.order_id)

            book.mark_delivered(customer, order)
        logger.info("Order %s delivered to %s", order.order_id, email)
        return order

    # ---- cancellation ----

    async def send_cancel_otp(self, email: str) -> None:
        await self._issue_and_send(email, None, OtpPurpose.CANCEL)

    async def verify_cancel(self, email: str, otp: str) -> list[Order]:
        """Consumes the cancel OTP and returns the customer's pending orders, newest first."""
        await self.otps.verify(email, OtpPurpose.CANCEL, otp)
        book = await self.store.load()
        return book.pending_orders(book.find_customer(email))

    async def cancel_order(self, email: str, index: int, order_id: str | None = None) -> Order:
        """
        Cancel the pending order at `index` of the list verify_cancel returned. When
        `order_id` is given it must name that same order.
        """
        async with self.store.transaction() as book:
            customer = book.find_customer(email)
            if customer is None:
                raise OrderNotFound("Order not found")
            order = book.pending_at(customer, index)
            if order_id and order.order_id != order_id:
                raise OrderNotFound("Order not found")

            book.mark_cancelled(customer, order)
            await self.ledger.mark_cancelled_row(email, order.order_id)
            await self.notifier.cancelled(email, customer.name or "Customer")
        logger.info("Order %s cancelled for %s", order.order_id, email)
        return order

    # ---- admin mails ----

    async def send_delivered_mail(self, email: str, name: str) -> None:
        """Ledger-only delivery (admin triggered): confirm row, mail, mark row delivered."""
        book = await self.store.load()
        customer = book.find_customer(email)
        order = book.latest_pending(customer) if customer else None
        order_id = order.order_id if order else None

        await self.ledger.confirm_row(email, order_id)
        await self.notifier.delivered(email, name)
        await self.ledger.mark_delivered_row(email, order_id)

    async def send_review_mail(self, email: str, name: str) -> None:
        await self.notifier.review_request(email, name)

    async def send_out_for_delivery_mail(self, email: str, name: str) -> None:
        await self.notifier.out_for_delivery(email, name)
