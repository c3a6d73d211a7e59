"""
Formatting Helpers

ID generation, currency and tag conversions.
"""

import random
import re
import string
import time
from decimal import Decimal, InvalidOperation
from typing import Iterable, Union


_BASE36 = string.digits + string.ascii_lowercase

CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "INR": "₹",
    "CNY": "¥",
    "KRW": "₩",
    "RUB": "₽",
    "CAD": "CA$",
    "AUD": "A$",
}


def to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_id(prefix: str = "") -> str:
    """
    Generate a unique ID: `prefix_` + base-36 millisecond timestamp
    + 7 random base-36 characters. Collisions are not checked.
    """
    timestamp = to_base36(int(time.time() * 1000))
    suffix = "".join(random.choices(_BASE36, k=7))
    return f"{prefix}_{timestamp}{suffix}" if prefix else f"{timestamp}{suffix}"


def generate_shareable_id() -> str:
    """Short, URL-friendly id."""
    return "".join(random.choices(_BASE36, k=8))


def format_currency(amount: Union[Decimal, float, int], currency: str = "USD") -> str:
    """
    Format an amount with its currency symbol, thousands separators
    and two decimals, e.g. "$1,234.50" or "-€3.00".
    """
    value = Decimal(str(amount)).quantize(Decimal("0.01"))
    code = currency.upper()
    symbol = CURRENCY_SYMBOLS.get(code, f"{code} ")
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol}{abs(value):,.2f}"


def parse_currency(value: str) -> Decimal:
    """Parse user-typed money text; anything unparseable is 0."""
    cleaned = re.sub(r"[^0-9.\-]", "", value or "")
    try:
        return Decimal(cleaned)
    except InvalidOperation:
        return Decimal("0")


def parse_tags(tag_string: str) -> list[str]:
    """Split a comma-separated tag string into lowercase tags."""
    if not tag_string or not tag_string.strip():
        return []
    return [
        tag.strip().lower()
        for tag in tag_string.split(",")
        if tag.strip()
    ]


def tags_to_string(tags: Iterable[str]) -> str:
    return ", ".join(tags)
