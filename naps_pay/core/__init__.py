"""
NAPS Pay SDK - Core Module

Configuration, the error taxonomy and logging helpers.
"""

from .config import NapsConfig
from .exceptions import (
    AlreadyCancelledError,
    ConfigurationException,
    ErrorCode,
    InvalidResponseError,
    NapsConnectionError,
    NapsError,
    NapsTimeoutError,
    NapsValidationError,
    PaymentDeclinedError,
    TerminalDownError,
    TlvEncodingError,
    TransactionNotFoundError,
    TransportError,
    classify_transport_error,
)
from .logging_setup import configure_logging

__version__ = "1.0.0"

__all__ = [
    "NapsConfig",
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
    "classify_transport_error",
    "configure_logging",
]
