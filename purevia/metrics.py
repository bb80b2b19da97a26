"""
Prometheus metrics: OTPs issued/rejected, orders placed, lifecycle transitions, failed requests.
"""
from prometheus_client import Counter, generate_latest

otp_issued_total = Counter(
    "otp_issued_total",
    "Total one-time passcodes issued",
    ["purpose"],
)
otp_rejected_total = Counter(
    "otp_rejected_total",
    "Total OTP verifications rejected",
    ["purpose", "reason"],
)

orders_placed_total = Counter(
    "orders_placed_total",
    "Total orders created in ACTIVE state",
)
order_transitions_total = Counter(
    "order_transitions_total",
    "Total order status transitions applied to the order store",
    ["status"],
)

ledger_misses_total = Counter(
    "ledger_misses_total",
    "Total ledger updates that found no matching row",
    ["operation"],
)
request_errors_total = Counter(
    "request_errors_total",
    "Total requests answered with success=false",
    ["error"],
)


def get_metrics_content_type():
    return "text/plain; charset=utf-8; version=0.0.4"


def get_metrics_bytes():
    return generate_latest()
