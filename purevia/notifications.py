"""
Transactional emails for each stage of an order. Every send is awaited so the caller's
steps stay in order; a transport failure raises NotificationFailure.
"""
import json
import logging
from html import escape

from purevia.otp import OtpPurpose

logger = logging.getLogger(__name__)

SIGNATURE = "<p>💧 Team Purevia</p>"


def format_price(value: float) -> str:
    """Two decimals, dropping a trailing .00: 120 -> "120", 12499.99 -> "12499.99"."""
    text = f"{value:.2f}"
    return text[:-3] if text.endswith(".00") else text


def format_validity(ttl_seconds: int) -> str:
    if ttl_seconds < 60:
        return f"{ttl_seconds} seconds"
    minutes = -(-ttl_seconds // 60)
    return "1 minute" if minutes == 1 else f"{minutes} minutes"


_OTP_MAILS: dict[OtpPurpose, tuple[str, str]] = {
    OtpPurpose.ORDER: (
        "Your Purevia OTP",
        "<h2>Hello {name},</h2>"
        "<p>Your OTP for placing an order on Purevia is:</p>"
        "<h1>{code}</h1>"
        "<p>This OTP is valid for {validity}.</p>"
        "<p>💧 Stay hydrated! Team Purevia</p>",
    ),
    OtpPurpose.DELIVERY: (
        "🚚 Your Purevia Delivery OTP",
        "<h2>Hi {name},</h2>"
        "<p>Your <strong>delivery confirmation OTP</strong> is:</p>"
        "<h1>{code}</h1>"
        "<p>Please share this OTP with the delivery person to confirm delivery.</p>"
        + SIGNATURE,
    ),
    OtpPurpose.CANCEL: (
        "❌ Purevia Cancel Order OTP",
        "<h2>Your OTP is {code}</h2><p>Valid for {validity}</p>",
    ),
}


class Notifier:
    def __init__(self, mailer, admin_email: str | None = None) -> None:
        self.mailer = mailer
        self.admin_email = admin_email

    async def send(self, to: str, subject: str, html: str, purpose: str, reply_to: str | None = None) -> None:
        await self.mailer.send(to, subject, html, reply_to=reply_to)
        logger.info("Sent %s mail to %s", purpose, to)

    async def send_otp(self, to: str, name: str | None, purpose: OtpPurpose, code: str, ttl_seconds: int) -> None:
        subject, template = _OTP_MAILS[purpose]
        html = template.format(name=escape(name or "Customer"), code=code, validity=format_validity(ttl_seconds))
        await self.send(to, subject, html, f"{purpose.value}-otp")

    async def order_confirmed(self, to: str, name: str | None, total_price: float) -> None:
        await self.send(
            to,
            "🎉 Your Purevia Order is Confirmed",
            f"<h2>Hi {escape(name or 'Customer')},</h2>"
            "<p>Your order has been successfully placed!</p>"
            f"<p><strong>Total:</strong> ₹{format_price(total_price)}</p>"
            "<p>We will notify you when your order is packed, out for delivery, and delivered.</p>"
            + SIGNATURE,
            "order-confirmed",
        )

    async def delivered(self, to: str, name: str | None) -> None:
        await self.send(
            to,
            "💙 Your Purevia Order is Delivered!",
            f"<h2>Hey {escape(name or 'Customer')},</h2><p>Your order has been delivered 🚚💧</p>",
            "delivered",
        )

    async def out_for_delivery(self, to: str, name: str | None) -> None:
        await self.send(
            to,
            "🚚 Your Purevia Order is Out for Delivery!",
            f"<h2>Hi {escape(name or 'Customer')},</h2>"
            "<p>Your Purevia water is now <strong>out for delivery</strong>! 💧🚚</p>"
            "<p>It will reach you shortly. Please keep your phone nearby for updates.</p>"
            "<p>💧 Stay hydrated! Team Purevia</p>",
            "out-for-delivery",
        )

    async def review_request(self, to: str, name: str | None) -> None:
        await self.send(
            to,
            "⭐ We'd Love Your Review!",
            f"<h2>Hi {escape(name or 'Customer')},</h2>"
            "<p>Your feedback means the world to us 💙</p>"
            "<p>Please reply to this email and share:</p>"
            "<ul><li>Water quality 💧</li><li>Delivery experience 🚚</li><li>Overall satisfaction ⭐</li></ul>"
            "<p>Thank you for choosing Purevia!</p>",
            "review-request",
            reply_to=self.admin_email,
        )

    async def cancelled(self, to: str, name: str | None) -> None:
        await self.send(
            to,
            "❌ Your Purevia Order Has Been Cancelled",
            f"<h2>Hi {escape(name or 'Customer')},</h2>"
            "<p>We're sorry to inform you that your Purevia order has been <strong>cancelled</strong>.</p>"
            "<p>If this was a mistake or you need help, feel free to reply to this email.</p>"
            + SIGNATURE,
            "cancelled",
        )

    async def admin_new_order(self, order_request: dict) -> bool:
        """No-op (returns False) when no admin address is configured."""
        if not self.admin_email:
            return False
        body = escape(json.dumps(order_request, indent=2, default=str, ensure_ascii=False))
        await self.send(self.admin_email, "🧃 New Purevia Order", f"<pre>{body}</pre>", "admin-new-order")
        return True

    async def admin_delivery_started(self, email: str, name: str) -> bool:
        if not self.admin_email:
            return False
        await self.send(
            self.admin_email,
            "🚚 Delivery Started Notification",
            "<h2>Delivery Boy Notification</h2>"
            "<p>The delivery person has reached the customer location.</p>"
            f"<ul><li><strong>Name:</strong> {escape(name)}</li>"
            f"<li><strong>Email:</strong> {escape(email)}</li></ul>",
            "admin-delivery-started",
        )
        return True
