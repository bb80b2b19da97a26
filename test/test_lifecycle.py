"""
Scenario tests for the coordinator: placing, delivering and cancelling orders across
the order store, the ledger sheet and the outgoing mail.
"""
import asyncio

import pytest

from _helper import build_context, order_fields, place
from purevia.errors import NotificationFailure, OrderNotFound, OtpMismatch, OtpMissing
from purevia.order_state import ACTIVE, CANCELLED, DELIVERED
from purevia.otp import OtpPurpose


def _customer(ctx, email="alice@x.com"):
    book = asyncio.run(ctx.store.load())
    return book.find_customer(email)


def _deliver(ctx, email="alice@x.com"):
    asyncio.run(ctx.coordinator.send_delivery_otp(email, "Alice"))
    code = ctx.mailer.last_code(email)
    return asyncio.run(ctx.coordinator.confirm_delivery(email, code, "Alice"))


def _cancel(ctx, email="alice@x.com", index=0):
    asyncio.run(ctx.coordinator.send_cancel_otp(email))
    code = ctx.mailer.last_code(email)
    pending = asyncio.run(ctx.coordinator.verify_cancel(email, code))
    order = asyncio.run(ctx.coordinator.cancel_order(email, index))
    return pending, order


# ---- placing ----

def test_place_order_creates_customer_and_confirmed_row(ctx):
    order = asyncio.run(place(ctx))

    customer = _customer(ctx)
    assert customer.name == "Alice"
    assert customer.mobile == "9876543210"
    [stored] = customer.orders
    assert stored.order_id == order.order_id
    assert stored.status == ACTIVE
    assert stored.delivered is False
    assert stored.total_price == 120

    assert len(ctx.sheet.rows) == 2
    assert ctx.sheet.rows[1][1] == "alice@x.com"
    assert ctx.sheet.rows[1][6:10] == ["YES", "NO", "ACTIVE", order.order_id]


def test_place_order_mails_admin_and_customer(ctx):
    asyncio.run(place(ctx))

    subjects = [m["subject"] for m in ctx.mailer.to("alice@x.com")]
    assert subjects == ["Your Purevia OTP", "🎉 Your Purevia Order is Confirmed"]
    [admin_mail] = ctx.mailer.to("admin@purevia.test")
    assert "12 Lake Road" in admin_mail["html"]


def test_place_order_without_admin_address(tmp_path):
    ctx = build_context(tmp_path, admin_email=None)
    asyncio.run(place(ctx))
    assert {m["to"] for m in ctx.mailer.sent} == {"alice@x.com"}


def test_second_order_reuses_customer(ctx):
    asyncio.run(place(ctx))
    asyncio.run(place(ctx, total_price=60))

    customer = _customer(ctx)
    assert len(customer.orders) == 2
    assert len(ctx.sheet.rows) == 3


def test_wrong_order_otp_stores_nothing(ctx):
    asyncio.run(ctx.coordinator.send_order_otp("alice@x.com", "Alice"))
    code = ctx.mailer.last_code("alice@x.com")
    wrong = "000000" if code != "000000" else "111111"

    with pytest.raises(OtpMismatch):
        asyncio.run(ctx.coordinator.place_order(otp=wrong, **order_fields()))
    assert _customer(ctx) is None
    assert len(ctx.sheet.rows) == 1

    asyncio.run(ctx.coordinator.place_order(otp=code, **order_fields()))
    assert len(_customer(ctx).orders) == 1


def test_order_otp_cannot_be_replayed(ctx):
    asyncio.run(ctx.coordinator.send_order_otp("alice@x.com", "Alice"))
    code = ctx.mailer.last_code("alice@x.com")
    asyncio.run(ctx.coordinator.place_order(otp=code, **order_fields()))

    with pytest.raises(OtpMissing):
        asyncio.run(ctx.coordinator.place_order(otp=code, **order_fields()))
    assert len(_customer(ctx).orders) == 1


def test_otp_never_leaves_through_anything_but_mail(ctx):
    result = asyncio.run(ctx.coordinator.send_order_otp("alice@x.com", "Alice"))
    assert result is None
    assert ctx.mailer.last_code("alice@x.com")


# ---- delivery ----

def test_delivery_flips_store_and_ledger(ctx):
    order = asyncio.run(place(ctx))
    delivered = _deliver(ctx)

    assert delivered.order_id == order.order_id
    [stored] = _customer(ctx).orders
    assert stored.status == DELIVERED
    assert stored.delivered is True
    assert ctx.sheet.rows[1][6:9] == ["YES", "YES", "ACTIVE"]
    assert ctx.mailer.to("alice@x.com")[-1]["subject"] == "💙 Your Purevia Order is Delivered!"


def test_delivery_picks_newest_pending_order(ctx):
    first = asyncio.run(place(ctx))
    second = asyncio.run(place(ctx))

    delivered = _deliver(ctx)

    assert delivered.order_id == second.order_id
    orders = {o.order_id: o for o in _customer(ctx).orders}
    assert orders[first.order_id].status == ACTIVE
    assert orders[second.order_id].status == DELIVERED
    # the ledger marks the same order's row, not the first one for the email
    assert ctx.sheet.rows[1][7] == "NO"
    assert ctx.sheet.rows[2][7] == "YES"


def test_delivery_otp_is_consumed_even_if_delivery_fails(ctx):
    asyncio.run(place(ctx))
    asyncio.run(ctx.coordinator.send_delivery_otp("alice@x.com", "Alice"))
    code = ctx.mailer.last_code("alice@x.com")
    ctx.mailer.fail_on = "Delivered"

    with pytest.raises(NotificationFailure):
        asyncio.run(ctx.coordinator.confirm_delivery("alice@x.com", code, "Alice"))

    # store untouched, ledger never ahead on DELIVERED, OTP gone
    assert _customer(ctx).orders[0].status == ACTIVE
    assert ctx.sheet.rows[1][7] == "NO"
    ctx.mailer.fail_on = None
    with pytest.raises(OtpMissing):
        asyncio.run(ctx.coordinator.confirm_delivery("alice@x.com", code, "Alice"))


def test_delivery_without_pending_order_fails(ctx):
    asyncio.run(ctx.coordinator.send_delivery_otp("nobody@x.com", "Nobody"))
    code = ctx.mailer.last_code("nobody@x.com")
    with pytest.raises(OrderNotFound):
        asyncio.run(ctx.coordinator.confirm_delivery("nobody@x.com", code, "Nobody"))


def test_notify_delivery_start_alerts_admin_and_sends_delivery_otp(ctx):
    asyncio.run(ctx.coordinator.notify_delivery_start("alice@x.com", "Alice"))

    [admin_mail] = ctx.mailer.to("admin@purevia.test")
    assert admin_mail["subject"] == "🚚 Delivery Started Notification"
    code = ctx.mailer.last_code("alice@x.com")
    assert len(code) == 4
    asyncio.run(ctx.otps.verify("alice@x.com", OtpPurpose.DELIVERY, code))


# ---- cancellation ----

def test_cancel_marks_order_and_ledger_row(ctx):
    order = asyncio.run(place(ctx))
    pending, cancelled = _cancel(ctx)

    assert [o.order_id for o in pending] == [order.order_id]
    assert cancelled.order_id == order.order_id
    [stored] = _customer(ctx).orders
    assert stored.status == CANCELLED
    assert stored.cancelled_at is not None
    assert stored.delivered is False
    assert ctx.sheet.rows[1][8] == "CANCELLED"
    assert ctx.mailer.to("alice@x.com")[-1]["subject"] == "❌ Your Purevia Order Has Been Cancelled"


def test_verify_cancel_lists_pending_newest_first(ctx):
    orders = [asyncio.run(place(ctx)) for _ in range(3)]
    asyncio.run(ctx.coordinator.send_cancel_otp("alice@x.com"))
    code = ctx.mailer.last_code("alice@x.com")

    pending = asyncio.run(ctx.coordinator.verify_cancel("alice@x.com", code))

    assert [o.order_id for o in pending] == [o.order_id for o in reversed(orders)]
    assert all(a.date > b.date for a, b in zip(pending, pending[1:]))


def test_cancel_by_index_follows_pending_list(ctx):
    older = asyncio.run(place(ctx))
    newer = asyncio.run(place(ctx))

    _, cancelled = _cancel(ctx, index=1)

    assert cancelled.order_id == older.order_id
    orders = {o.order_id: o for o in _customer(ctx).orders}
    assert orders[newer.order_id].status == ACTIVE
    assert ctx.sheet.rows[1][8] == "CANCELLED"
    assert ctx.sheet.rows[2][8] == "ACTIVE"


def test_cancel_with_stale_index_fails(ctx):
    asyncio.run(place(ctx))
    with pytest.raises(OrderNotFound):
        asyncio.run(ctx.coordinator.cancel_order("alice@x.com", 1))
    with pytest.raises(OrderNotFound):
        asyncio.run(ctx.coordinator.cancel_order("nobody@x.com", 0))


def test_cancel_with_mismatched_order_id_fails(ctx):
    asyncio.run(place(ctx))
    with pytest.raises(OrderNotFound):
        asyncio.run(ctx.coordinator.cancel_order("alice@x.com", 0, order_id="ORD-0"))
    assert _customer(ctx).orders[0].status == ACTIVE


def test_wrong_cancel_otp_keeps_record(ctx):
    asyncio.run(place(ctx))
    asyncio.run(ctx.coordinator.send_cancel_otp("alice@x.com"))
    code = ctx.mailer.last_code("alice@x.com")
    wrong = "000000" if code != "000000" else "111111"

    with pytest.raises(OtpMismatch):
        asyncio.run(ctx.coordinator.verify_cancel("alice@x.com", wrong))

    pending = asyncio.run(ctx.coordinator.verify_cancel("alice@x.com", code))
    assert len(pending) == 1


def test_cancelled_order_is_never_delivered(ctx):
    asyncio.run(place(ctx))
    _cancel(ctx)

    with pytest.raises(OrderNotFound):
        _deliver(ctx)
    [stored] = _customer(ctx).orders
    assert stored.status == CANCELLED
    assert ctx.sheet.rows[1][7] == "NO"


def test_delivery_after_cancel_picks_other_active_order(ctx):
    keep = asyncio.run(place(ctx))
    asyncio.run(place(ctx))
    _cancel(ctx, index=0)

    delivered = _deliver(ctx)

    assert delivered.order_id == keep.order_id
    assert [row[7:9] for row in ctx.sheet.rows[1:]] == [["YES", "ACTIVE"], ["NO", "CANCELLED"]]


def test_delivered_order_cannot_be_cancelled(ctx):
    asyncio.run(place(ctx))
    _deliver(ctx)

    with pytest.raises(OrderNotFound):
        asyncio.run(ctx.coordinator.cancel_order("alice@x.com", 0))


# ---- admin mails ----

def test_send_delivered_mail_updates_ledger_only(ctx):
    asyncio.run(place(ctx))
    asyncio.run(ctx.coordinator.send_delivered_mail("alice@x.com", "Alice"))

    assert ctx.sheet.rows[1][7] == "YES"
    assert _customer(ctx).orders[0].status == ACTIVE


def test_review_mail_replies_to_admin(ctx):
    asyncio.run(ctx.coordinator.send_review_mail("alice@x.com", "Alice"))
    [mail] = ctx.mailer.to("alice@x.com")
    assert mail["reply_to"] == "admin@purevia.test"


def test_out_for_delivery_mail(ctx):
    asyncio.run(ctx.coordinator.send_out_for_delivery_mail("alice@x.com", "Alice"))
    [mail] = ctx.mailer.to("alice@x.com")
    assert "out for delivery" in mail["html"]
