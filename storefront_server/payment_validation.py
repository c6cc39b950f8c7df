"""Card number, expiry date and CVV validation and input formatting."""

import re
from datetime import date
from typing import Optional

_SEPARATORS = re.compile(r"[\s-]")
_NON_DIGITS = re.compile(r"[^0-9]")
_CARD_DIGITS = re.compile(r"[0-9]{13,19}")
_EXPIRY = re.compile(r"([0-9]{2})/([0-9]{2})")
_CVV = re.compile(r"[0-9]{3,4}")


def clean_card_number(number: str) -> str:
    """Remove spaces and dashes from a card number."""
    return _SEPARATORS.sub("", number)


def validate_card_number(number: str) -> bool:
    """
    Validate a card number with the Luhn checksum.

    Spaces and dashes are ignored. The cleaned number must be 13-19 digits.
    """
    clean = clean_card_number(number)
    if not _CARD_DIGITS.fullmatch(clean):
        return False

    total = 0
    for i, ch in enumerate(reversed(clean)):
        digit = int(ch)
        if i % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit

    return total % 10 == 0


def validate_expiry_date(expiry: str, today: Optional[date] = None) -> bool:
    """
    Validate an ``MM/YY`` expiry date against the current month.

    Years are compared as two digits, so dates wrap after 2099.

    Args:
        expiry: Expiry in MM/YY form
        today: Reference date (defaults to the current local date)
    """
    match = _EXPIRY.fullmatch(expiry)
    if not match:
        return False

    today = today or date.today()
    current_year = today.year % 100
    current_month = today.month

    exp_month = int(match.group(1))
    exp_year = int(match.group(2))

    if exp_month < 1 or exp_month > 12:
        return False

    return exp_year > current_year or (exp_year == current_year and exp_month >= current_month)


def validate_cvv(cvv: str) -> bool:
    """CVV must be exactly 3 or 4 digits."""
    return bool(_CVV.fullmatch(cvv))


def format_card_number(number: str) -> str:
    """Group card digits in blocks of four for display: ``4532 0151 1283 0366``."""
    digits = _NON_DIGITS.sub("", number)
    return " ".join(digits[i:i + 4] for i in range(0, len(digits), 4))


def format_expiry_date(value: str) -> str:
    """Render typed expiry input as ``MM/YY``; one digit or none is returned as-is."""
    digits = _NON_DIGITS.sub("", value)
    if len(digits) >= 2:
        return f"{digits[:2]}/{digits[2:4]}"
    return digits


def mask_card_number(number: str) -> str:
    """Mask all but the last four digits: ``**** **** **** 0366``."""
    clean = clean_card_number(number)
    if len(clean) <= 4:
        return clean
    masked = "*" * (len(clean) - 4) + clean[-4:]
    return " ".join(masked[i:i + 4] for i in range(0, len(masked), 4))
