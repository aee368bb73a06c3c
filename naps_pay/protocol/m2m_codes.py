"""
NAPS M2M Protocol Codes and Constants

Defines:
- Message tags
- Receipt (print data) sub-tags
- Message types
- Currency codes
- Response codes
"""

from enum import Enum
from typing import Dict, Optional


class M2mTag(Enum):
    """Top-level M2M message tags."""

    MESSAGE_TYPE = ("001", "Message Type")
    AMOUNT = ("002", "Amount")
    NCAI = ("003", "NCAI")
    SEQUENCE = ("004", "Sequence")
    CARD_NUMBER = ("007", "Card Number")
    STAN = ("008", "STAN")
    AUTH_NUMBER = ("009", "Auth Number")
    PRINT_DATA = ("010", "Receipt Data")
    CURRENCY = ("012", "Currency")
    RESPONSE_CODE = ("013", "Response Code")
    CARD_EXPIRY = ("014", "Card Expiry")
    ENTRY_MODE = ("015", "Entry Mode")
    DATE = ("016", "Date")
    TIME = ("017", "Time")
    CARDHOLDER_NAME = ("018", "Cardholder Name")

    def __init__(self, tag: str, description: str):
        self._tag = tag
        self._description = description

    @property
    def tag(self) -> str:
        return self._tag

    @property
    def description(self) -> str:
        return self._description

    @classmethod
    def from_tag(cls, tag: str) -> Optional["M2mTag"]:
        """Get enum member from its 3-digit wire tag."""
        return _TAG_INDEX.get(tag)


_TAG_INDEX: Dict[str, M2mTag] = {member.tag: member for member in M2mTag}


class ReceiptTag(str, Enum):
    """Sub-tags used inside the print data (tag 010) value."""

    LINE_NUMBER = "030"
    FORMAT = "031"
    ALIGNMENT = "032"
    CONTENT = "033"


class MessageType(str, Enum):
    """Values carried by the message type tag (001)."""

    PAYMENT_REQUEST = "001"
    PAYMENT_RESPONSE = "101"
    CONFIRMATION_REQUEST = "002"
    CONFIRMATION_RESPONSE = "102"


class Currency(str, Enum):
    """ISO 4217 numeric currency codes accepted by the terminal."""

    MAD = "504"

    @property
    def minor_unit_exponent(self) -> int:
        return 2


APPROVED_RESPONSE_CODE = "000"

# Response code -> canonical decline message
RESPONSE_MESSAGES: Dict[str, str] = {
    "909": "Terminal or server is down",
    "302": "Transaction not found",
    "482": "Transaction already cancelled",
    "480": "Transaction cancelled",
}


def get_response_message(response_code: str) -> str:
    """Human-readable message for a non-approved response code."""
    return RESPONSE_MESSAGES.get(
        response_code, f"Payment declined with code: {response_code}"
    )


def get_tag_name(tag: str) -> str:
    """Get human-readable name for a wire tag."""
    member = M2mTag.from_tag(tag)
    return member.description if member else f"Unknown Tag {tag}"


def is_approved(response_code: Optional[str]) -> bool:
    return response_code == APPROVED_RESPONSE_CODE
