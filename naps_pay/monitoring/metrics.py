"""
Prometheus metrics for the payment flow.
"""

from prometheus_client import Counter, Histogram

TRANSACTION_COUNTER = Counter(
    "naps_pay_transactions_total",
    "Total payment transactions by outcome",
    ["outcome"],
)

PHASE_DURATION = Histogram(
    "naps_pay_phase_duration_seconds",
    "Round-trip time of each payment phase",
    ["phase"],
    buckets=(0.5, 1, 2.5, 5, 10, 20, 40, 60, 120),
)

NOTIFICATION_COUNTER = Counter(
    "naps_pay_notifications_total",
    "Gateway notifications by delivery status",
    ["status"],
)
