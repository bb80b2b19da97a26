"""
One-time passcodes keyed by (purpose, email).

Three purposes never share codes: placing an order, confirming a delivery and cancelling
an order. Issuing again for the same key replaces the previous code. A successful
verification deletes the record before the caller does anything else with it; a wrong
code leaves it in place.
"""
import json
import logging
import secrets
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from purevia.config import Settings
from purevia.errors import OtpExpired, OtpMismatch, OtpMissing
from purevia.metrics import otp_issued_total, otp_rejected_total
from purevia.redis_client import get_redis

logger = logging.getLogger(__name__)


class OtpPurpose(str, Enum):
    ORDER = "order"
    DELIVERY = "delivery"
    CANCEL = "cancel"


CODE_LENGTHS: dict[OtpPurpose, int] = {
    OtpPurpose.ORDER: 6,
    OtpPurpose.DELIVERY: 4,
    OtpPurpose.CANCEL: 6,
}

# Prefix used in error messages shown to the customer
_LABELS: dict[OtpPurpose, str] = {
    OtpPurpose.ORDER: "OTP",
    OtpPurpose.DELIVERY: "Delivery OTP",
    OtpPurpose.CANCEL: "OTP",
}


@dataclass
class OtpRecord:
    otp: str
    expires: float  # epoch seconds


def generate_code(length: int) -> str:
    """Uniform numeric code of exactly `length` digits (no leading zero)."""
    low = 10 ** (length - 1)
    return str(low + secrets.randbelow(9 * low))


def ttls_from_settings(settings: Settings) -> dict[OtpPurpose, int]:
    return {
        OtpPurpose.ORDER: settings.order_otp_ttl_seconds,
        OtpPurpose.DELIVERY: settings.delivery_otp_ttl_seconds,
        OtpPurpose.CANCEL: settings.cancel_otp_ttl_seconds,
    }


class OtpRegistry:
    """Issue/verify logic shared by the storage backends below."""

    def __init__(
        self,
        ttls: dict[OtpPurpose, int],
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.ttls = ttls
        self.clock = clock

    async def issue(self, email: str, purpose: OtpPurpose) -> str:
        code = generate_code(CODE_LENGTHS[purpose])
        record = OtpRecord(otp=code, expires=self.clock() + self.ttls[purpose])
        await self._put(purpose, email, record)
        otp_issued_total.labels(purpose=purpose.value).inc()
        logger.info("Issued %s OTP for %s", purpose.value, email)
        return code

    async def verify(self, email: str, purpose: OtpPurpose, code: str) -> None:
        """Raises OtpMissing / OtpExpired / OtpMismatch; consumes the record on success."""
        label = _LABELS[purpose]
        record = await self._get(purpose, email)
        if record is None:
            self._reject(purpose, "missing")
            raise OtpMissing(f"{label} not sent")
        if self.clock() > record.expires:
            self._reject(purpose, "expired")
            raise OtpExpired(f"{label} expired")
        if str(code) != record.otp:
            self._reject(purpose, "mismatch")
            raise OtpMismatch(f"Invalid {label}")
        # Another request may have consumed the same code in the meantime
        if not await self._delete(purpose, email):
            self._reject(purpose, "missing")
            raise OtpMissing(f"{label} not sent")
        logger.info("Verified %s OTP for %s", purpose.value, email)

    @staticmethod
    def _reject(purpose: OtpPurpose, reason: str) -> None:
        otp_rejected_total.labels(purpose=purpose.value, reason=reason).inc()

    async def _put(self, purpose: OtpPurpose, email: str, record: OtpRecord) -> None:
        raise NotImplementedError

    async def _get(self, purpose: OtpPurpose, email: str) -> OtpRecord | None:
        raise NotImplementedError

    async def _delete(self, purpose: OtpPurpose, email: str) -> bool:
        raise NotImplementedError


class MemoryOtpRegistry(OtpRegistry):
    """Process-local registry. Expired records are dropped by sweep(), run on every issue."""

    def __init__(self, ttls, clock=time.time) -> None:
        super().__init__(ttls, clock)
        self._records: dict[tuple[OtpPurpose, str], OtpRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    def sweep(self) -> int:
        now = self.clock()
        expired = [key for key, record in self._records.items() if now > record.expires]
        for key in expired:
            del self._records[key]
        return len(expired)

    async def _put(self, purpose, email, record):
        self.sweep()
        self._records[(purpose, email)] = record

    async def _get(self, purpose, email):
        return self._records.get((purpose, email))

    async def _delete(self, purpose, email):
        return self._records.pop((purpose, email), None) is not None


class RedisOtpRegistry(OtpRegistry):
    """
    Registry shared by several processes. The key outlives the OTP by `retention_seconds`
    so a late attempt reads as expired rather than missing; redis drops it afterwards.
    """

    KEY_PREFIX = "otp"

    def __init__(self, ttls, retention_seconds: int = 3600, clock=time.time) -> None:
        super().__init__(ttls, clock)
        self.retention_seconds = retention_seconds

    def _key(self, purpose: OtpPurpose, email: str) -> str:
        return f"{self.KEY_PREFIX}:{purpose.value}:{email}"

    async def _put(self, purpose, email, record):
        r = await get_redis()
        await r.set(
            self._key(purpose, email),
            json.dumps({"otp": record.otp, "expires": record.expires}),
            ex=self.ttls[purpose] + self.retention_seconds,
        )

    async def _get(self, purpose, email):
        r = await get_redis()
        raw = await r.get(self._key(purpose, email))
        if raw is None:
            return None
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Unreadable OTP record for %s, ignoring", email)
            return None
        return OtpRecord(otp=str(data["otp"]), expires=float(data["expires"]))

    async def _delete(self, purpose, email):
        r = await get_redis()
        return await r.delete(self._key(purpose, email)) == 1


def make_otp_registry(settings: Settings) -> OtpRegistry:
    ttls = ttls_from_settings(settings)
    if settings.otp_backend == "redis":
        return RedisOtpRegistry(ttls, retention_seconds=settings.otp_retention_seconds)
    return MemoryOtpRegistry(ttls)
