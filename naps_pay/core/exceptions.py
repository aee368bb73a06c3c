"""
NAPS Pay SDK - Custom Exceptions

This module defines the exception hierarchy raised by the SDK. Every error
carries a machine-checkable ``error_code`` plus a human readable message.
"""

import asyncio
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    """Machine-checkable error codes."""

    CONNECTION_FAILED = "CONNECTION_FAILED"
    TIMEOUT = "TIMEOUT"
    PAYMENT_DECLINED = "PAYMENT_DECLINED"
    INVALID_RESPONSE = "INVALID_RESPONSE"
    TERMINAL_DOWN = "TERMINAL_DOWN"
    TRANSACTION_NOT_FOUND = "TRANSACTION_NOT_FOUND"
    ALREADY_CANCELLED = "ALREADY_CANCELLED"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    ENCODING_ERROR = "ENCODING_ERROR"
    CONFIG_ERROR = "CONFIG_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class NapsError(Exception):
    """Base exception for all NAPS Pay SDK errors."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = ErrorCode(error_code)
        self.context = context or {}

    @property
    def code(self) -> ErrorCode:
        return self.error_code

    def __str__(self) -> str:
        if self.context:
            return f"{self.message} (Code: {self.error_code.value}, Context: {self.context})"
        return f"{self.message} (Code: {self.error_code.value})"


class ConfigurationException(NapsError):
    """Exception raised for configuration-related errors."""

    def __init__(self, message: str, config_key: Optional[str] = None):
        super().__init__(
            message,
            error_code=ErrorCode.CONFIG_ERROR,
            context={"config_key": config_key} if config_key else {},
        )


class NapsValidationError(NapsError):
    """Raised when a payment request is malformed. Never retriable."""

    def __init__(self, message: str, field_name: Optional[str] = None):
        super().__init__(
            message,
            error_code=ErrorCode.VALIDATION_ERROR,
            context={"field": field_name} if field_name else {},
        )


class TlvEncodingError(NapsError):
    """Raised when a field cannot be represented in the M2M wire format."""

    def __init__(self, message: str, tag: Optional[str] = None, length: Optional[int] = None):
        context: Dict[str, Any] = {}
        if tag is not None:
            context["tag"] = tag
        if length is not None:
            context["length"] = length
        super().__init__(message, error_code=ErrorCode.ENCODING_ERROR, context=context)


class NapsConnectionError(NapsError):
    """Raised when the terminal cannot be reached or the stream breaks."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(
            message or "Failed to connect to NAPS Pay terminal",
            error_code=ErrorCode.CONNECTION_FAILED,
        )


class NapsTimeoutError(NapsError):
    """Raised when the terminal does not answer within the configured budget."""

    def __init__(self, message: str = "Request timeout"):
        super().__init__(message, error_code=ErrorCode.TIMEOUT)


class InvalidResponseError(NapsError):
    """Raised for malformed or incomplete terminal responses."""

    def __init__(self, message: str, fields: Optional[Dict[str, str]] = None):
        context = {"tags": sorted(fields)} if fields else {}
        super().__init__(message, error_code=ErrorCode.INVALID_RESPONSE, context=context)


class PaymentDeclinedError(NapsError):
    """Raised by ``PaymentResult.raise_for_status`` for declined payments."""

    def __init__(
        self,
        message: str,
        response_code: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.PAYMENT_DECLINED,
    ):
        super().__init__(
            message,
            error_code=error_code,
            context={"response_code": response_code} if response_code else {},
        )
        self.response_code = response_code


class TerminalDownError(PaymentDeclinedError):
    def __init__(self, message: str = "Terminal or server is down", response_code: str = "909"):
        super().__init__(message, response_code, error_code=ErrorCode.TERMINAL_DOWN)


class TransactionNotFoundError(PaymentDeclinedError):
    def __init__(self, message: str = "Transaction not found", response_code: str = "302"):
        super().__init__(message, response_code, error_code=ErrorCode.TRANSACTION_NOT_FOUND)


class AlreadyCancelledError(PaymentDeclinedError):
    def __init__(
        self, message: str = "Transaction already cancelled", response_code: str = "482"
    ):
        super().__init__(message, response_code, error_code=ErrorCode.ALREADY_CANCELLED)


class TransportError(Exception):
    """
    Raised by ``Transport`` implementations.

    The message text is what ``classify_transport_error`` inspects, so
    transports must mention "timeout" or "connection" where it applies.
    """


def classify_transport_error(error: BaseException) -> NapsError:
    """
    Map an arbitrary transport-level failure onto the SDK error taxonomy.

    Classification is best-effort and based on the error text:
    "timeout" -> TIMEOUT, "connect"/"connection" -> CONNECTION_FAILED,
    anything else -> UNKNOWN_ERROR with the original message preserved.
    """
    if isinstance(error, NapsError):
        return error

    message = str(error) or type(error).__name__
    lowered = message.lower()

    if isinstance(error, (TimeoutError, asyncio.TimeoutError)) or "timeout" in lowered:
        return NapsTimeoutError()
    if isinstance(error, ConnectionError) or "connect" in lowered:
        return NapsConnectionError(message)
    return NapsError(message, error_code=ErrorCode.UNKNOWN_ERROR)
