"""Phone number validation and canonicalization.

Numbers are stored in an E.164-like form (``+<country><number>``).
Ten-digit input is assumed to be a US number.
"""

import re

_NON_DIGITS = re.compile(r"\D")

_MIN_DIGITS = 10
_MAX_DIGITS = 15


def _digits(raw: str) -> str:
    return _NON_DIGITS.sub("", raw)


def is_valid_phone_number(raw: str) -> bool:
    """Check that a phone number has a plausible digit count.

    Formatting characters (spaces, dashes, parentheses, a leading +) are
    ignored; only the digit count matters.

    Args:
        raw: Phone number as entered by the user.

    Returns:
        True if the number has between 10 and 15 digits inclusive.
    """
    return _MIN_DIGITS <= len(_digits(raw)) <= _MAX_DIGITS


def format_phone_number(raw: str) -> str:
    """Canonicalize a phone number.

    Rules, in order:
    - 10 digits: US number, prefixed with ``+1``.
    - Anything else, including 11-digit US numbers starting with ``1``:
      ``+`` followed by the digits.

    Separators and any leading ``+`` are always dropped first, so every
    spelling of a number maps to one canonical string.

    Args:
        raw: Phone number as entered by the user.

    Returns:
        Canonical phone number string.
    """
    cleaned = _digits(raw)

    if len(cleaned) == 10:
        return f"+1{cleaned}"
    return f"+{cleaned}"


def mask_phone_number(phone: str) -> str:
    """Mask all but the last four digits for logging."""
    digits = _digits(phone)
    return f"***{digits[-4:]}" if len(digits) >= 4 else "***"
