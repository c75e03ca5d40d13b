"""
Cart shipping quote for the browser.

Without a destination state the quote is the flat per-unit total that a
hosted checkout charges. With a state it is the UPS zone price on the
estimated cart weight, which is what a direct payment charges.
"""
from typing import Any, Dict, List, Optional

from storefront.catalog import describe_variation
from storefront.checkout import DEFAULT_SHIPPING_CENTS, flat_shipping_cents
from storefront.errors import CommerceAPIError, StorefrontError
from storefront.logger import get_logger
from storefront.pricing import normalize_quantity, safe_string
from storefront.shipping import DEFAULT_SHIPPING, estimate_weight, get_product_weight, get_ups_shipping_cost
from storefront.square_client import CommerceClient

logger = get_logger("quote")


async def _unit_weight(client: CommerceClient, variation_id: str) -> float:
    try:
        names = await describe_variation(client, variation_id) if variation_id else None
    except CommerceAPIError as e:
        logger.warning("Weight lookup failed for %s: %s", variation_id, e.message)
        names = None
    if names is None:
        return estimate_weight(DEFAULT_SHIPPING)
    return get_product_weight(*names)


async def calculate_shipping(
    client: CommerceClient,
    items: Optional[List[Dict[str, Any]]],
    state: Optional[str] = None,
) -> Dict[str, Any]:
    if not items:
        raise StorefrontError("No items provided")

    lines = []
    for raw in items:
        raw = raw if isinstance(raw, dict) else {}
        lines.append((safe_string(raw.get("variationId"), 64), normalize_quantity(raw.get("quantity")) or 1))

    state = safe_string(state, 2).upper()
    if state:
        total_weight = 0.0
        for variation_id, quantity in lines:
            total_weight += await _unit_weight(client, variation_id) * quantity
        return {
            "shippingAmount": get_ups_shipping_cost(total_weight, state),
            "totalWeight": total_weight,
            "method": "zone",
        }

    total = 0
    for variation_id, quantity in lines:
        if not variation_id:
            total += DEFAULT_SHIPPING_CENTS * quantity
            continue
        total += await flat_shipping_cents(client, variation_id, quantity)
    return {"shippingAmount": total, "method": "flat"}
