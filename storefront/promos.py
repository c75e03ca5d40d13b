"""
Promo code resolution against Square discounts and pricing rules.

Codes are not stored locally: a code is valid when it names a Square
DISCOUNT object (directly, or through a PRICING_RULE that points at one).
Matching is case-insensitive and tries, in order:

  1. exact discount name
  2. exact pricing-rule name  -> its discount
  3. discount name containing the code (or contained by it)
  4. pricing-rule name containing the code (or contained by it) -> its discount

A pricing rule's valid_from_date / valid_until_date (YYYY-MM-DD, UTC) gate
the code.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import quote

from storefront.logger import get_logger
from storefront.pricing import round_half_up
from storefront.square_client import CommerceClient

logger = get_logger("promos")

FREE_SHIPPING_CODE = "FREESHIP"
PROMO_OBJECT_TYPES = ["DISCOUNT", "PRICING_RULE", "PRODUCT_SET"]


@dataclass
class PromoResolution:
    valid: bool
    code: str = ""
    message: Optional[str] = None
    discount: Dict[str, Any] = field(default_factory=dict)
    pricing_rule: Optional[Dict[str, Any]] = None


@dataclass
class DiscountResponse:
    """What the browser shows after a code is accepted."""
    valid: bool
    code: str
    discount_type: str        # "percent" | "fixed"
    value: float              # pct (0–100) for percent; cents for fixed
    message: str
    free_shipping: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "code": self.code,
            "type": self.discount_type,
            "value": self.value,
            "message": self.message,
            "freeShipping": self.free_shipping,
        }


@dataclass
class DiscountSummary:
    code: Optional[str] = None
    discount_cents: int = 0
    product_discount_cents: int = 0   # share of the discount taken off the subtotal
    free_shipping: bool = False


def _name_of(obj: Dict[str, Any], data_key: str) -> str:
    return ((obj.get(data_key) or {}).get("name") or "").upper().strip()


def _find(objects: List[Dict[str, Any]], predicate: Callable[[Dict[str, Any]], bool]) -> Optional[Dict[str, Any]]:
    return next((obj for obj in objects if predicate(obj)), None)


def _loosely_matches(name: str, code: str) -> bool:
    return code in name or name in code


async def _discount_for_rule(
    client: CommerceClient,
    rule: Dict[str, Any],
    all_objects: List[Dict[str, Any]],
    version: Optional[str],
) -> Optional[Dict[str, Any]]:
    discount_id = (rule.get("pricing_rule_data") or {}).get("discount_id")
    if not discount_id:
        return None
    found = _find(all_objects, lambda obj: obj.get("id") == discount_id and obj.get("type") == "DISCOUNT")
    if found:
        return found
    direct = await client.fetch_json(f"/catalog/object/{quote(discount_id, safe='')}", version=version)
    if direct.ok:
        return direct.data.get("object")
    return None


def _today_utc() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d")


async def resolve_promo_code(
    client: CommerceClient,
    code: Any,
    version: Optional[str] = None,
    today: Optional[str] = None,
) -> PromoResolution:
    """Look a promo code up among Square discounts and pricing rules."""
    upper_code = str(code or "").upper().strip()
    if not upper_code:
        return PromoResolution(valid=False, message="Please enter a promo code")

    result = await client.search_catalog(
        {"object_types": PROMO_OBJECT_TYPES, "include_related_objects": True},
        version=version,
    )
    if not result.ok:
        return PromoResolution(valid=False, code=upper_code,
                               message="Unable to validate promo code. Please try again.")

    all_objects = list(result.data.get("objects") or []) + list(result.data.get("related_objects") or [])
    discounts = [obj for obj in all_objects if obj.get("type") == "DISCOUNT"]
    rules = [obj for obj in all_objects if obj.get("type") == "PRICING_RULE"]

    matched_discount = _find(discounts, lambda d: _name_of(d, "discount_data") == upper_code)
    matched_rule = None

    if not matched_discount:
        matched_rule = _find(rules, lambda r: _name_of(r, "pricing_rule_data") == upper_code)
        if matched_rule:
            matched_discount = await _discount_for_rule(client, matched_rule, all_objects, version)

    if not matched_discount and not matched_rule:
        matched_discount = _find(discounts, lambda d: _loosely_matches(_name_of(d, "discount_data"), upper_code))
        if not matched_discount:
            matched_rule = _find(rules, lambda r: _loosely_matches(_name_of(r, "pricing_rule_data"), upper_code))
            if matched_rule:
                matched_discount = await _discount_for_rule(client, matched_rule, all_objects, version)

    if not matched_discount:
        return PromoResolution(valid=False, code=upper_code, message="Invalid promo code")

    if not matched_rule:
        matched_rule = _find(
            rules,
            lambda r: (r.get("pricing_rule_data") or {}).get("discount_id") == matched_discount.get("id"),
        )

    rule_data = (matched_rule or {}).get("pricing_rule_data") or None
    if rule_data:
        today = today or _today_utc()
        valid_from = rule_data.get("valid_from_date")
        valid_until = rule_data.get("valid_until_date")
        if valid_from and today < valid_from:
            return PromoResolution(valid=False, code=upper_code, message="This promo code is not yet active")
        if valid_until and today > valid_until:
            return PromoResolution(valid=False, code=upper_code, message="This promo code has expired")

    logger.info("promo resolved: code=%s discount_id=%s", upper_code, matched_discount.get("id"))
    return PromoResolution(
        valid=True,
        code=upper_code,
        discount=matched_discount.get("discount_data") or {},
        pricing_rule=rule_data,
    )


def build_discount_response(resolved: PromoResolution) -> DiscountResponse:
    """Translate a Square discount into the browser's promo shape."""
    code = resolved.code
    discount = resolved.discount or {}
    discount_name = (discount.get("name") or "").lower()
    discount_type = discount.get("discount_type")

    if "free shipping" in discount_name or code == FREE_SHIPPING_CODE:
        return DiscountResponse(True, code, "fixed", 0, "Free shipping applied!", free_shipping=True)

    if discount_type in ("FIXED_PERCENTAGE", "VARIABLE_PERCENTAGE"):
        try:
            pct = float(discount.get("percentage") or 0)
        except (TypeError, ValueError):
            pct = 0.0
        shown = int(pct) if pct.is_integer() else pct
        return DiscountResponse(True, code, "percent", pct, f"{shown}% off your order!")

    if discount_type in ("FIXED_AMOUNT", "VARIABLE_AMOUNT"):
        cents = int((discount.get("amount_money") or {}).get("amount") or 0)
        return DiscountResponse(True, code, "fixed", cents, f"${cents / 100:.2f} off your order!")

    return DiscountResponse(True, code, "percent", 0, "Discount applied!")


def compute_discount(
    resolved: Optional[PromoResolution],
    subtotal_cents: int,
    shipping_cents: int,
) -> DiscountSummary:
    """
    Discount in cents for an order.

    Free shipping removes the shipping charge. Percent codes apply to
    subtotal + shipping. Fixed codes are capped at subtotal + shipping.
    The result never exceeds subtotal + shipping.
    """
    summary = DiscountSummary()
    if resolved is None or not resolved.valid:
        return summary

    subtotal = max(0, round_half_up(subtotal_cents or 0))
    shipping = max(0, round_half_up(shipping_cents or 0))
    promo = build_discount_response(resolved)
    summary.code = promo.code
    summary.free_shipping = promo.free_shipping

    if promo.free_shipping:
        summary.discount_cents = shipping
        return summary

    if promo.discount_type == "percent":
        pct = min(100.0, max(0.0, float(promo.value)))
        summary.discount_cents = round_half_up((subtotal + shipping) * pct / 100)
        summary.product_discount_cents = round_half_up(subtotal * pct / 100)
    else:
        fixed = max(0, round_half_up(promo.value or 0))
        summary.discount_cents = min(fixed, subtotal + shipping)
        summary.product_discount_cents = min(fixed, subtotal)

    summary.discount_cents = min(summary.discount_cents, subtotal + shipping)
    summary.product_discount_cents = min(summary.product_discount_cents, summary.discount_cents)
    return summary
