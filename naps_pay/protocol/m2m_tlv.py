"""
NAPS M2M TLV (Tag-Length-Value) Parser and Builder

Wire format of every field:

    TAG (3 ASCII digits) || LENGTH (3 ASCII digits, zero padded) || VALUE

Fields are concatenated without separators. Example: ``001003001`` is tag
001, length 003, value "001".
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Dict, Iterator, List, Optional, Tuple, Union

from ..core.exceptions import TlvEncodingError
from .m2m_codes import Currency, M2mTag, MessageType, get_tag_name
from .masking import mask_card_number

logger = logging.getLogger(__name__)

TAG_SIZE = 3
LENGTH_SIZE = 3
HEADER_SIZE = TAG_SIZE + LENGTH_SIZE
MAX_VALUE_LENGTH = 999

DEFAULT_ENCODING = "utf-8"

BufferLike = Union[str, bytes, bytearray, memoryview]


@dataclass(frozen=True)
class TlvField:
    """A single decoded field, in wire order."""

    tag: str
    value: str
    encoding: str = field(default=DEFAULT_ENCODING, compare=False, repr=False)

    @property
    def length(self) -> int:
        """Wire length in bytes."""
        return len(self.value.encode(self.encoding))

    def encode(self, encoding: Optional[str] = None) -> bytes:
        return encode_field(self.tag, self.value, encoding=encoding or self.encoding)

    def __str__(self) -> str:
        return f"TLV({self.tag}, len={self.length}, value={self.value[:20]})"


def encode_field(tag: str, value: str, encoding: str = DEFAULT_ENCODING) -> bytes:
    """
    Encode one field.

    Args:
        tag: 3-digit tag
        value: Field value
        encoding: Text encoding of the value

    Returns:
        Wire fragment as bytes

    Raises:
        TlvEncodingError: tag is not 3 digits or value exceeds 999 bytes
    """
    if len(tag) != TAG_SIZE or not (tag.isascii() and tag.isdigit()):
        raise TlvEncodingError(f"Tag must be exactly {TAG_SIZE} digits: {tag!r}", tag=tag)

    raw = value.encode(encoding)
    if len(raw) > MAX_VALUE_LENGTH:
        raise TlvEncodingError(
            f"Value for tag {tag} is {len(raw)} bytes, maximum is {MAX_VALUE_LENGTH}",
            tag=tag,
            length=len(raw),
        )

    return tag.encode("ascii") + f"{len(raw):03d}".encode("ascii") + raw


def _to_bytes(data: BufferLike, encoding: str) -> bytes:
    if isinstance(data, str):
        return data.encode(encoding)
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    raise TypeError(f"TLV data must be str or bytes-like, not {type(data).__name__}")


def iter_tlv(data: BufferLike, encoding: str = DEFAULT_ENCODING) -> Iterator[TlvField]:
    """
    Scan TLV data left to right and yield every complete field.

    Scanning stops silently when fewer than 6 bytes remain, when the length
    is not decimal, or when the declared length runs past the end of the
    buffer. Terminals pad and truncate responses, so trailing garbage is
    not an error.
    """
    buffer = _to_bytes(data, encoding)
    offset = 0
    end = len(buffer)

    while offset < end:
        if offset + HEADER_SIZE > end:
            logger.debug("Dropping %d trailing bytes (short header)", end - offset)
            break

        tag_bytes = buffer[offset : offset + TAG_SIZE]
        length_bytes = buffer[offset + TAG_SIZE : offset + HEADER_SIZE]

        if not (length_bytes.isascii() and length_bytes.isdigit()):
            logger.debug("Stopping TLV scan at offset %d: non-numeric length", offset)
            break

        length = int(length_bytes)
        value_start = offset + HEADER_SIZE
        if value_start + length > end:
            logger.debug(
                "Stopping TLV scan at offset %d: length %d exceeds remaining %d bytes",
                offset,
                length,
                end - value_start,
            )
            break

        yield TlvField(
            tag=tag_bytes.decode(encoding, errors="replace"),
            value=buffer[value_start : value_start + length].decode(encoding, errors="replace"),
            encoding=encoding,
        )
        offset = value_start + length


class TlvParser:
    """
    Parser for M2M TLV messages.

    Produces a flat tag -> value mapping. The card number tag is masked
    before it is stored so the raw PAN is never reachable from the result.
    """

    def __init__(
        self,
        encoding: str = DEFAULT_ENCODING,
        mask_tags: Optional[Tuple[str, ...]] = None,
    ):
        self.encoding = encoding
        self.mask_tags = mask_tags if mask_tags is not None else (M2mTag.CARD_NUMBER.tag,)

    def parse(self, data: BufferLike) -> Dict[str, str]:
        fields: Dict[str, str] = {}
        for tlv in iter_tlv(data, self.encoding):
            value = tlv.value
            if tlv.tag in self.mask_tags:
                value = mask_card_number(value)
            fields[tlv.tag] = value
        return fields

    def parse_fields(self, data: BufferLike) -> List[TlvField]:
        """Parse keeping wire order and duplicates (masking still applies)."""
        result = []
        for tlv in iter_tlv(data, self.encoding):
            if tlv.tag in self.mask_tags:
                tlv = replace(tlv, value=mask_card_number(tlv.value))
            result.append(tlv)
        return result


class TlvBuilder:
    """
    Builder for M2M TLV messages.
    """

    def __init__(self, encoding: str = DEFAULT_ENCODING):
        self.encoding = encoding
        self._fragments: List[bytes] = []

    def add(self, tag: Union[str, M2mTag], value: str) -> "TlvBuilder":
        """
        Add a field.

        Args:
            tag: 3-digit tag or M2mTag member
            value: Field value

        Returns:
            Self for chaining
        """
        if isinstance(tag, M2mTag):
            tag = tag.tag
        self._fragments.append(encode_field(tag, value, encoding=self.encoding))
        return self

    def add_optional(self, tag: Union[str, M2mTag], value: Optional[str]) -> "TlvBuilder":
        """Add a field only when a value is present."""
        if value is None:
            return self
        return self.add(tag, value)

    def build(self) -> bytes:
        return b"".join(self._fragments)

    def build_str(self) -> str:
        return self.build().decode(self.encoding)

    def reset(self) -> "TlvBuilder":
        self._fragments = []
        return self


def parse_tlv(data: BufferLike, encoding: str = DEFAULT_ENCODING) -> Dict[str, str]:
    """
    Convenience function to parse an M2M message.

    Args:
        data: Message as str or bytes

    Returns:
        Dictionary mapping tags to values (card number masked)
    """
    return TlvParser(encoding=encoding).parse(data)


def build_tlv(elements: List[Tuple[str, str]], encoding: str = DEFAULT_ENCODING) -> bytes:
    """
    Convenience function to build an M2M message.

    Args:
        elements: List of (tag, value) tuples

    Returns:
        TLV encoded bytes
    """
    builder = TlvBuilder(encoding=encoding)
    for tag, value in elements:
        builder.add(tag, value)
    return builder.build()


def to_minor_units(amount: Union[Decimal, int, float, str]) -> int:
    """
    Convert a MAD amount to centimes, rounding half up.

    Raises:
        ValueError: amount is not a finite number, or its centime value has
            more digits than the amount field can carry
    """
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    except InvalidOperation:
        raise ValueError(f"Invalid amount: {amount!r}")
    if not value.is_finite():
        raise ValueError(f"Invalid amount: {amount!r}")

    exponent = Currency.MAD.minor_unit_exponent
    if value and value.adjusted() + exponent >= MAX_VALUE_LENGTH:
        raise ValueError(f"Amount too large: {amount!r}")

    with localcontext() as ctx:
        ctx.prec = MAX_VALUE_LENGTH + 1
        try:
            scaled = (value * (10 ** exponent)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        except InvalidOperation:
            raise ValueError(f"Invalid amount: {amount!r}")
    return int(scaled)


def format_date(now: datetime) -> str:
    """DDMMYYYY"""
    return now.strftime("%d%m%Y")


def format_time(now: datetime) -> str:
    """HHMMSS"""
    return now.strftime("%H%M%S")


def build_payment_request(
    amount: Union[Decimal, int, float, str],
    ncai: str,
    sequence: str,
    now: Optional[datetime] = None,
    encoding: str = DEFAULT_ENCODING,
) -> bytes:
    """
    Build the phase-1 payment request.

    Args:
        amount: Amount in MAD (e.g. 100.50)
        ncai: Register id (2 digits) + cashier id (5 digits)
        sequence: 6-digit sequence number
        now: Local timestamp, defaults to the current local time

    Returns:
        Encoded request
    """
    now = now or datetime.now()
    return (
        TlvBuilder(encoding=encoding)
        .add(M2mTag.MESSAGE_TYPE, MessageType.PAYMENT_REQUEST.value)
        .add(M2mTag.AMOUNT, str(to_minor_units(amount)))
        .add(M2mTag.NCAI, ncai)
        .add(M2mTag.SEQUENCE, sequence)
        .add(M2mTag.CURRENCY, Currency.MAD.value)
        .add(M2mTag.DATE, format_date(now))
        .add(M2mTag.TIME, format_time(now))
        .build()
    )


def build_confirmation_request(
    stan: str,
    ncai: str,
    sequence: str,
    now: Optional[datetime] = None,
    encoding: str = DEFAULT_ENCODING,
) -> bytes:
    """Build the phase-2 confirmation request for an authorized STAN."""
    now = now or datetime.now()
    return (
        TlvBuilder(encoding=encoding)
        .add(M2mTag.MESSAGE_TYPE, MessageType.CONFIRMATION_REQUEST.value)
        .add(M2mTag.STAN, stan)
        .add(M2mTag.NCAI, ncai)
        .add(M2mTag.SEQUENCE, sequence)
        .add(M2mTag.DATE, format_date(now))
        .add(M2mTag.TIME, format_time(now))
        .build()
    )


def describe_fields(fields: Dict[str, str]) -> List[str]:
    """Render decoded fields as "Name (tag): value" lines for debugging."""
    return [f"{get_tag_name(tag)} ({tag}): {value}" for tag, value in fields.items()]
