"""
Error kinds raised while handling an order request. Every one of them ends up at the
HTTP boundary as a 400 with the exception's string as the message.
"""


class PureviaError(Exception):
    """Base for all order-service errors."""


class ValidationError(PureviaError):
    """A required request field is missing or empty."""


class OtpMissing(PureviaError):
    """No OTP was issued for this email and purpose (or it was already used)."""


class OtpExpired(PureviaError):
    """The OTP exists but its expiry has passed."""


class OtpMismatch(PureviaError):
    """The supplied code does not match the issued one. The record is kept."""


class OrderNotFound(PureviaError):
    pass


class InvalidTransition(PureviaError):
    """Raised when an order status change is not allowed from its current status."""
    def __init__(self, current_status: str, target_status: str):
        self.current_status = current_status
        self.target_status = target_status
        super().__init__(f"Order is {current_status}, cannot become {target_status}")


class NotConfirmedOrCancelled(PureviaError):
    pass


class StoreCorrupt(PureviaError):
    """The orders file exists but cannot be parsed. Nothing is written."""


class RemoteLedgerUnavailable(PureviaError):
    pass


class NotificationFailure(PureviaError):
    pass
