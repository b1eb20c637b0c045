"""String helpers turning the four display digits into value text."""
from __future__ import annotations

from decimal import Decimal
from typing import Dict, Optional, Tuple

OVERFLOW_TEXT = "OVF"

# Power of ten per prefix label. "%" only marks duty cycle readings.
PREFIX_EXPONENTS: Dict[str, int] = {
    "n": -9,
    "µ": -6,
    "m": -3,
    "k": 3,
    "M": 6,
}


def insert_decimal_point(digits: str, index: Optional[int]) -> str:
    if index is None:
        return digits
    return digits[:index] + "." + digits[index:]


def strip_leading_zeros(digits: str) -> str:
    """Drop leading zeros, keeping the one in front of the point and the last digit."""

    idx = 0
    while idx < len(digits) - 1 and digits[idx] == "0" and digits[idx + 1] != ".":
        idx += 1
    return digits[idx:]


def trim_zeros(text: str) -> str:
    """
    Trim trailing zeros of a fixed-point string.

    A fraction reduced to nothing takes the point with it ("1.000000" -> "1"),
    but a single fractional digit is left alone ("1.0" stays "1.0").
    """

    if "." not in text:
        return text
    whole, fraction = text.split(".", 1)
    if len(fraction) <= 1:
        return text
    fraction = fraction.rstrip("0")
    if not fraction:
        return whole
    return f"{whole}.{fraction}"


def prefix_exponent(prefix: str) -> int:
    return PREFIX_EXPONENTS.get(prefix, 0)


def si_decimal(digits: str, prefix: str, negative: bool) -> Decimal:
    value = Decimal(digits).scaleb(prefix_exponent(prefix))
    # copy_negate keeps the sign of a zero reading ("-0.000" stays negative)
    return value.copy_negate() if negative else value


def to_si(digits: str, prefix: str, negative: bool) -> Tuple[str, float]:
    """Return the SI-normalised fixed-point text and float for *digits*."""

    value = si_decimal(digits, prefix, negative)
    return trim_zeros(format(value, "f")), float(value)


def format_display(digits: str, negative: bool) -> str:
    return ("-" if negative else "") + strip_leading_zeros(digits)


def with_unit(value: str, unit: str) -> str:
    return f"{value} {unit}"
