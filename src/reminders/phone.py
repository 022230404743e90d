"""Phone number normalization and validation for SMS destinations."""

from __future__ import annotations

import re

# E.164: leading +, no leading zero, at most 15 digits.
E164_PATTERN = re.compile(r"^\+[1-9]\d{1,14}$")

_NON_DIGITS = re.compile(r"\D")

NATIONAL_NUMBER_LENGTH = 10


def normalize_phone(raw: str, default_country_code: str = "1") -> str:
    """Return *raw* in the ``+<country><number>`` form the SMS provider expects.

    Formatting characters are dropped.  A bare ten-digit national number gets
    *default_country_code*; longer digit strings are assumed to already carry
    a country code.  Anything else is returned as stripped digits so that
    validation can reject it.
    """
    raw = (raw or "").strip()
    digits = _NON_DIGITS.sub("", raw)
    if not digits:
        return raw
    if raw.startswith("+"):
        return "+" + digits
    if len(digits) == NATIONAL_NUMBER_LENGTH:
        return f"+{default_country_code.lstrip('+')}{digits}"
    if len(digits) > NATIONAL_NUMBER_LENGTH:
        return "+" + digits
    return digits


def is_valid_phone(number: str) -> bool:
    """True if *number* is a well-formed E.164 number."""
    return bool(E164_PATTERN.match(number or ""))
