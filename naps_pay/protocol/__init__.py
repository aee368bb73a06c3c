"""
NAPS M2M Protocol Implementation

- TLV encoding and decoding of terminal messages
- Payment and confirmation request builders
- Receipt (print data) parsing with TKPAY branding
- PAN masking
"""

from naps_pay.protocol.m2m_codes import (
    APPROVED_RESPONSE_CODE,
    Currency,
    M2mTag,
    MessageType,
    ReceiptTag,
    get_response_message,
    get_tag_name,
    is_approved,
)
from naps_pay.protocol.m2m_tlv import (
    MAX_VALUE_LENGTH,
    TlvBuilder,
    TlvField,
    TlvParser,
    build_confirmation_request,
    build_payment_request,
    build_tlv,
    describe_fields,
    encode_field,
    format_date,
    format_time,
    iter_tlv,
    parse_tlv,
    to_minor_units,
)
from naps_pay.protocol.masking import mask_card_number, mask_card_numbers_in_text
from naps_pay.protocol.receipt import (
    Alignment,
    Receipt,
    ReceiptFormat,
    ReceiptLine,
    ReceiptParser,
    ReceiptType,
    brand_lines,
    parse_receipt,
    parse_receipts,
    receipt_to_plain_text,
)

__all__ = [
    # Codes
    "APPROVED_RESPONSE_CODE",
    "Currency",
    "M2mTag",
    "MessageType",
    "ReceiptTag",
    "get_response_message",
    "get_tag_name",
    "is_approved",
    # TLV
    "MAX_VALUE_LENGTH",
    "TlvBuilder",
    "TlvField",
    "TlvParser",
    "build_confirmation_request",
    "build_payment_request",
    "build_tlv",
    "describe_fields",
    "encode_field",
    "format_date",
    "format_time",
    "iter_tlv",
    "parse_tlv",
    "to_minor_units",
    # Masking
    "mask_card_number",
    "mask_card_numbers_in_text",
    # Receipts
    "Alignment",
    "Receipt",
    "ReceiptFormat",
    "ReceiptLine",
    "ReceiptParser",
    "ReceiptType",
    "brand_lines",
    "parse_receipt",
    "parse_receipts",
    "receipt_to_plain_text",
]
