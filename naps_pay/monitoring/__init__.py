from naps_pay.monitoring.metrics import (
    NOTIFICATION_COUNTER,
    PHASE_DURATION,
    TRANSACTION_COUNTER,
)

__all__ = ["NOTIFICATION_COUNTER", "PHASE_DURATION", "TRANSACTION_COUNTER"]
