"""
Receipt (print data) parsing

The print data field (tag 010) carries its own TLV sub-stream:

- 030 line number: starts a new line
- 031 format: 'G' (gras) bold, 'S' standard
- 032 alignment: 'G' (gauche) left, 'C' center, 'D' (droite) right
- 033 content: line text

Parsed lines are re-branded for TKPAY and every embedded PAN is masked.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .m2m_codes import ReceiptTag
from .m2m_tlv import DEFAULT_ENCODING, BufferLike, iter_tlv
from .masking import mask_card_numbers_in_text

BRAND_MARKER = "naps"
BRAND_HEADER = "TKPAY"
BRAND_SUBTITLE = "Powered by NAPS"


class ReceiptType(str, Enum):
    """Receipt view. Both views are rendered from the same print data."""

    MERCHANT = "MERCHANT"
    CUSTOMER = "CUSTOMER"


class Alignment(str, Enum):
    LEFT = "LEFT"
    CENTER = "CENTER"
    RIGHT = "RIGHT"

    @classmethod
    def from_code(cls, code: str) -> "Alignment":
        """Map a 032 sub-field code. Unknown codes fall back to LEFT."""
        return _ALIGNMENT_CODES.get(code, cls.LEFT)


_ALIGNMENT_CODES = {
    "G": Alignment.LEFT,  # Gauche
    "C": Alignment.CENTER,
    "D": Alignment.RIGHT,  # Droite
}


class ReceiptFormat(str, Enum):
    """Codes of the 031 sub-field. Independent from alignment codes."""

    STANDARD = "S"
    BOLD = "G"  # Gras


DEFAULT_FORMAT = ReceiptFormat.STANDARD.value
DEFAULT_ALIGNMENT = "G"


@dataclass(frozen=True)
class ReceiptLine:
    line_number: str
    text: str
    bold: bool = False
    alignment: Alignment = Alignment.LEFT

    def to_dict(self) -> Dict[str, Any]:
        return {
            "line_number": self.line_number,
            "text": self.text,
            "bold": self.bold,
            "alignment": self.alignment.value,
        }


@dataclass(frozen=True)
class Receipt:
    type: ReceiptType
    lines: Tuple[ReceiptLine, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type.value, "lines": [line.to_dict() for line in self.lines]}

    def to_plain_text(self, width: int = 40) -> str:
        return receipt_to_plain_text(self, width)


@dataclass
class _PendingLine:
    """Accumulator for the line currently being assembled."""

    line_number: str = ""
    format_code: str = DEFAULT_FORMAT
    alignment_code: str = DEFAULT_ALIGNMENT
    content: str = ""

    def is_complete(self) -> bool:
        return bool(self.line_number and self.content)

    def to_line(self) -> ReceiptLine:
        return ReceiptLine(
            line_number=self.line_number,
            text=self.content,
            bold=self.format_code == ReceiptFormat.BOLD.value,
            alignment=Alignment.from_code(self.alignment_code),
        )


class ReceiptParser:
    """
    Parser for the print data sub-stream.

    Handles:
    - Line assembly from line number / format / alignment / content
    - TKPAY branding of the first centered NAPS line
    - PAN masking of every line
    """

    def __init__(self, encoding: str = DEFAULT_ENCODING, apply_branding: bool = True):
        self.encoding = encoding
        self.apply_branding = apply_branding

    def parse(self, print_data: BufferLike, receipt_type: ReceiptType) -> Receipt:
        lines = self.parse_lines(print_data)
        if self.apply_branding:
            lines = brand_lines(lines)
        lines = [replace(line, text=mask_card_numbers_in_text(line.text)) for line in lines]
        return Receipt(type=ReceiptType(receipt_type), lines=tuple(lines))

    def parse_lines(self, print_data: BufferLike) -> List[ReceiptLine]:
        """Assemble raw lines, before branding and masking."""
        lines: List[ReceiptLine] = []
        pending = _PendingLine()

        for sub in iter_tlv(print_data, self.encoding):
            if sub.tag == ReceiptTag.LINE_NUMBER.value:
                if pending.is_complete():
                    lines.append(pending.to_line())
                pending = _PendingLine(line_number=sub.value)
            elif sub.tag == ReceiptTag.FORMAT.value:
                pending.format_code = sub.value
            elif sub.tag == ReceiptTag.ALIGNMENT.value:
                pending.alignment_code = sub.value
            elif sub.tag == ReceiptTag.CONTENT.value:
                pending.content = sub.value

        if pending.is_complete():
            lines.append(pending.to_line())

        return lines


def _next_line_number(line_number: str) -> str:
    try:
        return f"{int(line_number) + 1:02d}"
    except ValueError:
        return line_number


def brand_lines(lines: List[ReceiptLine]) -> List[ReceiptLine]:
    """
    Replace the first centered line mentioning NAPS with the TKPAY header
    followed by a "Powered by NAPS" subtitle on the next line number.
    """
    result: List[ReceiptLine] = []
    branded = False

    for line in lines:
        if (
            not branded
            and BRAND_MARKER in line.text.lower()
            and line.alignment == Alignment.CENTER
        ):
            result.append(
                ReceiptLine(
                    line_number=line.line_number,
                    text=BRAND_HEADER,
                    bold=True,
                    alignment=Alignment.CENTER,
                )
            )
            result.append(
                ReceiptLine(
                    line_number=_next_line_number(line.line_number),
                    text=BRAND_SUBTITLE,
                    bold=False,
                    alignment=Alignment.CENTER,
                )
            )
            branded = True
        else:
            result.append(line)

    return result


def parse_receipt(
    print_data: BufferLike,
    receipt_type: ReceiptType,
    encoding: str = DEFAULT_ENCODING,
) -> Receipt:
    """Convenience function to parse print data into a branded, masked receipt."""
    return ReceiptParser(encoding=encoding).parse(print_data, receipt_type)


def parse_receipts(
    print_data: Optional[str], encoding: str = DEFAULT_ENCODING
) -> Tuple[Optional[Receipt], Optional[Receipt]]:
    """Return (merchant, customer) views, or (None, None) without print data."""
    if not print_data:
        return None, None
    parser = ReceiptParser(encoding=encoding)
    return (
        parser.parse(print_data, ReceiptType.MERCHANT),
        parser.parse(print_data, ReceiptType.CUSTOMER),
    )


def receipt_to_plain_text(receipt: Receipt, width: int = 40) -> str:
    """Render a receipt as plain text, padding centered and right-aligned lines."""
    rendered = []
    for line in receipt.lines:
        text = line.text
        if line.alignment == Alignment.CENTER:
            text = " " * max(0, (width - len(text)) // 2) + text
        elif line.alignment == Alignment.RIGHT:
            text = " " * max(0, width - len(text)) + text
        rendered.append(text)
    return "\n".join(rendered)
