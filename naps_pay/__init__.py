"""
NAPS Pay SDK

Python SDK for NAPS Pay payment terminals speaking the M2M TLV protocol
over TCP.
"""

from naps_pay.client import (
    NapsPayClient,
    PaymentRequest,
    PaymentResult,
    PaymentState,
    SequenceCounter,
)
from naps_pay.core import (
    AlreadyCancelledError,
    ConfigurationException,
    ErrorCode,
    InvalidResponseError,
    NapsConfig,
    NapsConnectionError,
    NapsError,
    NapsTimeoutError,
    NapsValidationError,
    PaymentDeclinedError,
    TerminalDownError,
    TlvEncodingError,
    TransactionNotFoundError,
    TransportError,
    __version__,
    configure_logging,
)
from naps_pay.integrations import GatewayNotifier
from naps_pay.protocol import (
    Alignment,
    M2mTag,
    Receipt,
    ReceiptLine,
    ReceiptType,
    build_tlv,
    get_tag_name,
    mask_card_number,
    mask_card_numbers_in_text,
    parse_receipt,
    parse_tlv,
    receipt_to_plain_text,
)
from naps_pay.transport import AsyncioTcpTransport, Connection, Transport

__all__ = [
    "__version__",
    # Client
    "NapsPayClient",
    "PaymentRequest",
    "PaymentResult",
    "PaymentState",
    "SequenceCounter",
    # Configuration
    "NapsConfig",
    "configure_logging",
    # Errors
    "ErrorCode",
    "NapsError",
    "ConfigurationException",
    "NapsValidationError",
    "TlvEncodingError",
    "NapsConnectionError",
    "NapsTimeoutError",
    "InvalidResponseError",
    "PaymentDeclinedError",
    "TerminalDownError",
    "TransactionNotFoundError",
    "AlreadyCancelledError",
    "TransportError",
    # Protocol
    "M2mTag",
    "Alignment",
    "Receipt",
    "ReceiptLine",
    "ReceiptType",
    "build_tlv",
    "parse_tlv",
    "parse_receipt",
    "get_tag_name",
    "mask_card_number",
    "mask_card_numbers_in_text",
    "receipt_to_plain_text",
    # Transport and integrations
    "Transport",
    "Connection",
    "AsyncioTcpTransport",
    "GatewayNotifier",
]
