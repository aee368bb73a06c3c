"""
Payment Data Structures

- PaymentRequest: what the caller asks the terminal to charge
- PaymentResult: outcome of a completed two-phase transaction
- PaymentState: orchestrator states
- SequenceCounter: per-client 6-digit sequence generator
"""

import threading
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, Optional, Union

from ..core.exceptions import (
    AlreadyCancelledError,
    ErrorCode,
    NapsValidationError,
    PaymentDeclinedError,
    TerminalDownError,
    TransactionNotFoundError,
)
from ..protocol.m2m_codes import (
    APPROVED_RESPONSE_CODE,
    M2mTag,
    get_response_message,
)
from ..protocol.m2m_tlv import to_minor_units
from ..protocol.receipt import Receipt, parse_receipts

SEQUENCE_MAX = 999999

# Decline response code -> (error code, exception type)
DECLINE_ERRORS = {
    "909": (ErrorCode.TERMINAL_DOWN, TerminalDownError),
    "302": (ErrorCode.TRANSACTION_NOT_FOUND, TransactionNotFoundError),
    "482": (ErrorCode.ALREADY_CANCELLED, AlreadyCancelledError),
}


def _is_digits(value: Any, length: int) -> bool:
    return isinstance(value, str) and len(value) == length and value.isascii() and value.isdigit()


class PaymentState(str, Enum):
    """Two-phase payment states. Success and failure both end in COMPLETED."""

    IDLE = "IDLE"
    AWAITING_AUTHORIZATION = "AWAITING_AUTHORIZATION"
    AWAITING_CONFIRMATION = "AWAITING_CONFIRMATION"
    COMPLETED = "COMPLETED"


VALID_TRANSITIONS = {
    PaymentState.IDLE: {PaymentState.AWAITING_AUTHORIZATION, PaymentState.COMPLETED},
    PaymentState.AWAITING_AUTHORIZATION: {
        PaymentState.AWAITING_CONFIRMATION,
        PaymentState.COMPLETED,
    },
    PaymentState.AWAITING_CONFIRMATION: {PaymentState.COMPLETED},
    PaymentState.COMPLETED: set(),
}


@dataclass(frozen=True)
class PaymentRequest:
    """
    Payment request.

    Attributes:
        amount: Amount in MAD (e.g. Decimal("100.00"))
        register_id: Register id, 2 digits (e.g. "01")
        cashier_id: Cashier id, 5 digits (e.g. "00001")
        sequence: Optional 6-digit sequence number, generated when omitted
    """

    amount: Union[Decimal, int, float, str]
    register_id: str
    cashier_id: str
    sequence: Optional[str] = None

    @property
    def ncai(self) -> str:
        """Register id + cashier id."""
        return f"{self.register_id}{self.cashier_id}"

    @property
    def decimal_amount(self) -> Decimal:
        try:
            return self.amount if isinstance(self.amount, Decimal) else Decimal(str(self.amount))
        except InvalidOperation:
            raise NapsValidationError(f"Invalid amount: {self.amount!r}", field_name="amount")

    def validate(self) -> None:
        """Raise NapsValidationError for a malformed request."""
        amount = self.decimal_amount
        if not amount.is_finite() or amount <= 0:
            raise NapsValidationError("Amount must be positive", field_name="amount")
        try:
            to_minor_units(amount)
        except ValueError as e:
            raise NapsValidationError(str(e), field_name="amount") from e
        if not _is_digits(self.register_id, 2):
            raise NapsValidationError("Register ID must be 2 digits", field_name="register_id")
        if not _is_digits(self.cashier_id, 5):
            raise NapsValidationError("Cashier ID must be 5 digits", field_name="cashier_id")
        if self.sequence is not None and not _is_digits(self.sequence, 6):
            raise NapsValidationError("Sequence must be 6 digits", field_name="sequence")


@dataclass
class PaymentResult:
    """Outcome of a payment transaction."""

    success: bool
    response_code: str
    stan: Optional[str] = None
    masked_card_number: Optional[str] = None
    card_expiry: Optional[str] = None  # YYMM
    cardholder_name: Optional[str] = None
    entry_mode: Optional[str] = None
    auth_number: Optional[str] = None
    ncai: Optional[str] = None
    sequence: Optional[str] = None
    transaction_date: Optional[str] = None  # DDMMYYYY
    transaction_time: Optional[str] = None  # HHMMSS
    merchant_receipt: Optional[Receipt] = None
    customer_receipt: Optional[Receipt] = None
    error: Optional[str] = None
    error_code: Optional[ErrorCode] = None

    @classmethod
    def declined(cls, response_code: str, fields: Dict[str, str]) -> "PaymentResult":
        """Build a failed result from a non-approved phase-1 response."""
        error_code, _ = DECLINE_ERRORS.get(response_code, (ErrorCode.PAYMENT_DECLINED, None))
        return cls(
            success=False,
            response_code=response_code,
            stan=fields.get(M2mTag.STAN.tag),
            error=get_response_message(response_code),
            error_code=error_code,
        )

    @classmethod
    def confirmed(cls, fields: Dict[str, str], encoding: str = "utf-8") -> "PaymentResult":
        """Build the final result from decoded confirmation response fields."""
        merchant_receipt, customer_receipt = parse_receipts(
            fields.get(M2mTag.PRINT_DATA.tag), encoding=encoding
        )
        return cls(
            success=True,
            response_code=fields.get(M2mTag.RESPONSE_CODE.tag) or APPROVED_RESPONSE_CODE,
            stan=fields.get(M2mTag.STAN.tag),
            masked_card_number=fields.get(M2mTag.CARD_NUMBER.tag),
            card_expiry=fields.get(M2mTag.CARD_EXPIRY.tag),
            cardholder_name=fields.get(M2mTag.CARDHOLDER_NAME.tag),
            entry_mode=fields.get(M2mTag.ENTRY_MODE.tag),
            auth_number=fields.get(M2mTag.AUTH_NUMBER.tag),
            ncai=fields.get(M2mTag.NCAI.tag),
            sequence=fields.get(M2mTag.SEQUENCE.tag),
            transaction_date=fields.get(M2mTag.DATE.tag),
            transaction_time=fields.get(M2mTag.TIME.tag),
            merchant_receipt=merchant_receipt,
            customer_receipt=customer_receipt,
        )

    def raise_for_status(self) -> "PaymentResult":
        """Raise the matching PaymentDeclinedError subclass for a failed result."""
        if self.success:
            return self
        _, error_type = DECLINE_ERRORS.get(self.response_code, (None, None))
        if error_type is not None:
            raise error_type(self.error or get_response_message(self.response_code))
        raise PaymentDeclinedError(
            self.error or get_response_message(self.response_code),
            response_code=self.response_code,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "response_code": self.response_code,
            "stan": self.stan,
            "masked_card_number": self.masked_card_number,
            "card_expiry": self.card_expiry,
            "cardholder_name": self.cardholder_name,
            "entry_mode": self.entry_mode,
            "auth_number": self.auth_number,
            "ncai": self.ncai,
            "sequence": self.sequence,
            "transaction_date": self.transaction_date,
            "transaction_time": self.transaction_time,
            "merchant_receipt": self.merchant_receipt.to_dict() if self.merchant_receipt else None,
            "customer_receipt": self.customer_receipt.to_dict() if self.customer_receipt else None,
            "error": self.error,
            "error_code": self.error_code.value if self.error_code else None,
        }


class SequenceCounter:
    """
    Per-client sequence generator.

    Yields 000001, 000002, ... 999999, then wraps back to 000001.
    """

    def __init__(self, start: int = 1):
        if not 1 <= start <= SEQUENCE_MAX:
            raise ValueError(f"Sequence start must be between 1 and {SEQUENCE_MAX}")
        self._value = start
        self._lock = threading.Lock()

    @property
    def current(self) -> int:
        return self._value

    def next(self) -> str:
        with self._lock:
            value = self._value
            self._value = 1 if value >= SEQUENCE_MAX else value + 1
        return f"{value:06d}"
