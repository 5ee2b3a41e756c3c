"""
Domain: Belgian phone number and postal code normalization (pure).

Accepted phone inputs (all normalize to +32470123456):
- 0470123456
- +32470123456
- 0032470123456
- 0470 12 34 56

Rules:
- All non-digit characters are stripped; a leading '+' is remembered.
- Prefix removal, first match wins: '+32', '0032', bare '32' (only when the
  remaining number is long enough to carry a country code), trunk '0'.
- The national significant number must be exactly 9 digits.
- Mobile numbers (leading '4') must start with one of 45, 46, 47, 48, 49.
  Landlines skip the prefix check.

Postal codes are 4 digits in the range 1000..9999 inclusive.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

COUNTRY_CODE = "32"
NATIONAL_NUMBER_LENGTH = 9
MOBILE_PREFIXES = frozenset({"45", "46", "47", "48", "49"})

POSTAL_CODE_LENGTH = 4
POSTAL_CODE_MIN = 1000
POSTAL_CODE_MAX = 9999

_NON_DIGITS = re.compile(r"\D")


@dataclass(frozen=True, slots=True)
class PhoneNormalization:
    valid: bool
    normalized: str
    display: str
    error: Optional[str] = None  # too_short, too_long, invalid_mobile_prefix


@dataclass(frozen=True, slots=True)
class PostalCodeValidation:
    valid: bool
    value: str
    error: Optional[str] = None  # incomplete, out_of_range


def digits_only(text: str) -> str:
    return _NON_DIGITS.sub("", text or "")


def _strip_prefix(has_plus: bool, digits: str) -> str:
    if has_plus and digits.startswith(COUNTRY_CODE):
        return digits[len(COUNTRY_CODE):]
    if digits.startswith("00" + COUNTRY_CODE):
        return digits[len(COUNTRY_CODE) + 2:]
    if digits.startswith(COUNTRY_CODE) and len(digits) >= NATIONAL_NUMBER_LENGTH + len(COUNTRY_CODE):
        return digits[len(COUNTRY_CODE):]
    if digits.startswith("0"):
        return digits[1:]
    return digits


def normalize_belgian_phone(text: str) -> PhoneNormalization:
    """
    Normalize a Belgian phone number to international form (+32...).

    Returns a failed result (never raises) so callers can surface the error code
    next to the input field.
    """

    original = text or ""
    has_plus = original.strip().startswith("+")
    national = _strip_prefix(has_plus, digits_only(original))

    if len(national) != NATIONAL_NUMBER_LENGTH:
        return PhoneNormalization(
            valid=False,
            normalized="",
            display=original,
            error="too_short" if len(national) < NATIONAL_NUMBER_LENGTH else "too_long",
        )

    if national.startswith("4") and national[:2] not in MOBILE_PREFIXES:
        return PhoneNormalization(
            valid=False,
            normalized="",
            display=original,
            error="invalid_mobile_prefix",
        )

    display = f"0{national[0:3]} {national[3:5]} {national[5:7]} {national[7:9]}"
    return PhoneNormalization(
        valid=True,
        normalized=f"+{COUNTRY_CODE}{national}",
        display=display,
    )


def is_phone_likely_valid(text: str) -> bool:
    """Quick check for real-time form feedback."""
    return 9 <= len(digits_only(text)) <= 12


def validate_belgian_postal_code(text: str) -> PostalCodeValidation:
    """
    Validate a Belgian postal code.

    Fewer than 4 digits is incomplete. More than 4 digits (e.g. 10000) or a
    value outside 1000..9999 (e.g. 0999) is out of range.
    """

    digits = digits_only(text)

    if len(digits) < POSTAL_CODE_LENGTH:
        return PostalCodeValidation(valid=False, value=digits, error="incomplete")

    if len(digits) > POSTAL_CODE_LENGTH:
        return PostalCodeValidation(valid=False, value=digits, error="out_of_range")

    number = int(digits)
    if number < POSTAL_CODE_MIN or number > POSTAL_CODE_MAX:
        return PostalCodeValidation(valid=False, value=digits, error="out_of_range")

    return PostalCodeValidation(valid=True, value=digits)
