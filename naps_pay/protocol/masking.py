"""
PAN masking helpers.

Card numbers keep their first 6 and last 4 characters, everything in
between becomes ``*`` (PCI-DSS display rule).
"""

import re

_PAN_IN_TEXT = re.compile(r"\b\d{16}\b")

MIN_MASKABLE_LENGTH = 10


def mask_card_number(card_number: str) -> str:
    """
    Mask a card number to show only the first 6 and last 4 digits.

    Example: 5167940123453315 -> 516794******3315

    Values shorter than 10 characters are returned unchanged.
    """
    if not card_number or len(card_number) < MIN_MASKABLE_LENGTH:
        return card_number

    stars = "*" * (len(card_number) - MIN_MASKABLE_LENGTH)
    return f"{card_number[:6]}{stars}{card_number[-4:]}"


def mask_card_numbers_in_text(text: str) -> str:
    """Mask every standalone 16-digit run in free text."""
    if not text:
        return text
    return _PAN_IN_TEXT.sub(lambda match: mask_card_number(match.group(0)), text)
