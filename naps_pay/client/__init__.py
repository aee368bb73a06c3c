"""
NAPS Pay payment client.
"""

from naps_pay.client.models import (
    PaymentRequest,
    PaymentResult,
    PaymentState,
    SequenceCounter,
)
from naps_pay.client.payment_client import NapsPayClient

__all__ = [
    "NapsPayClient",
    "PaymentRequest",
    "PaymentResult",
    "PaymentState",
    "SequenceCounter",
]
