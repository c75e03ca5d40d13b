"""
Order arithmetic: sale prices, quantities, tax and small input sanitizers.

All money is integer cents (USD). Rounding is half-up, the way the
storefront's browser code rounds, so server and client totals agree.
"""

from __future__ import annotations
import math
import re
from dataclasses import dataclass
from typing import Any, Optional

MIN_QUANTITY = 1
MAX_QUANTITY = 100

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def normalize_quantity(value: Any) -> Optional[int]:
    """
    Parse a cart quantity.

    Accepts ints, floats (truncated) and strings with a leading integer
    ("3", "3 units"). Returns None unless the result is within 1..100.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        qty = value
    elif isinstance(value, float):
        if not math.isfinite(value):
            return None
        qty = int(value)
    else:
        match = _LEADING_INT.match(str(value))
        if not match:
            return None
        qty = int(match.group(1))
    if qty < MIN_QUANTITY or qty > MAX_QUANTITY:
        return None
    return qty


def safe_string(value: Any, max_len: int = 120) -> str:
    """Stringify, strip and truncate user input. None becomes ''."""
    if value is None or value is False:
        return ""
    return str(value).strip()[:max_len]


def to_sale_price_cents(base_price_cents: Optional[int], sale_discount: float) -> int:
    """
    Sale price in cents, rounded to whole dollars.

    $32.00 at 20% off -> 2600 (from $25.60). Applying it twice to the same
    base price gives the same answer.
    """
    dollars = round_half_up(base_price_cents or 0) / 100
    return round_half_up(round_half_up(dollars * (1 - sale_discount)) * 100)


def compute_tax_cents(subtotal_cents: int, product_discount_cents: int, tax_rate: float) -> int:
    """Sales tax on the post-discount subtotal (shipping is never taxed)."""
    taxable = max(0, subtotal_cents - max(0, product_discount_cents))
    return max(0, round_half_up(taxable * tax_rate))


def display_name(product_name: str, variation_name: str) -> str:
    if variation_name and variation_name.lower() != "standard":
        return f"{product_name} - {variation_name}"
    return product_name


def phone_digits(phone: Any) -> str:
    return re.sub(r"\D", "", str(phone or ""))


def format_e164(phone: Any) -> str:
    """US phone number in E.164 form (+1XXXXXXXXXX)."""
    digits = phone_digits(phone)
    return f"+{digits}" if digits.startswith("1") else f"+1{digits}"


@dataclass
class PricedLine:
    """One order line after catalog lookup and sale pricing."""
    variation_id: str
    product_name: str
    variation_name: str
    quantity: int
    unit_price_cents: int

    @property
    def display_name(self) -> str:
        return display_name(self.product_name, self.variation_name)

    @property
    def total_cents(self) -> int:
        return self.unit_price_cents * self.quantity
