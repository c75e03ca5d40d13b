"""
Hosted checkout through Square payment links.

Three flavours share one request shape:

- cart      every cart line, flat-rate shipping, Square collects the address
- quick     a single variation ("buy now"), same shipping rule
- pickup    every cart line, no shipping, phone number pre-filled, and the
            owner is e-mailed so they can arrange the pickup

Shipping on payment links is the per-unit flat rate from the shipping
table; a line whose product cannot be looked up ships at $7.50 a unit.
"""
import time
import uuid
from typing import Any, Dict, List, Optional

from storefront.catalog import describe_variation
from storefront.config import StorefrontConfig
from storefront.errors import CommerceAPIError, ConfigurationError, StorefrontError
from storefront.logger import get_logger
from storefront.mailer import GmailMailer, render_pickup_link_notification
from storefront.pricing import format_e164, normalize_quantity, phone_digits, round_half_up, safe_string
from storefront.shipping import DEFAULT_SHIPPING, get_shipping_cost
from storefront.square_client import CommerceClient, first_error_detail

logger = get_logger("checkout")

DEFAULT_SHIPPING_CENTS = int(DEFAULT_SHIPPING * 100)


def make_idempotency_key(prefix: str) -> str:
    return f"{prefix}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"


def checkout_options(ask_for_shipping_address: bool) -> Dict[str, Any]:
    return {
        "allow_tipping": False,
        "ask_for_shipping_address": ask_for_shipping_address,
        "accepted_payment_methods": {
            "apple_pay": True,
            "google_pay": True,
            "cash_app_pay": False,
            "afterpay_clearpay": False,
        },
    }


def shipping_charge(amount_cents: int) -> Dict[str, Any]:
    return {
        "name": "Shipping",
        "amount_money": {"amount": amount_cents, "currency": "USD"},
        "calculation_phase": "SUBTOTAL_PHASE",
    }


async def location_or_error(client: CommerceClient) -> str:
    try:
        return await client.get_location_id()
    except CommerceAPIError as e:
        logger.error("Location lookup failed: %s", e.message)
        raise StorefrontError("No Square location found")


async def flat_shipping_cents(client: CommerceClient, variation_id: str, quantity: int) -> int:
    """Per-unit flat rate times quantity, $7.50 a unit when the lookup fails."""
    try:
        names = await describe_variation(client, variation_id)
    except CommerceAPIError as e:
        logger.warning("Shipping lookup failed for %s: %s", variation_id, e.message)
        names = None
    if names is None:
        return DEFAULT_SHIPPING_CENTS * quantity
    product_name, variation_name = names
    return get_shipping_cost(product_name, variation_name) * quantity


def _normalize_lines(items: Any) -> List[Dict[str, Any]]:
    if not isinstance(items, list) or not items:
        raise StorefrontError("No items provided")
    lines = []
    for raw in items:
        raw = raw if isinstance(raw, dict) else {}
        quantity = normalize_quantity(raw.get("quantity", 1))
        variation_id = safe_string(raw.get("variationId"), 64)
        if not quantity or not variation_id:
            raise StorefrontError("Invalid item payload")
        lines.append({**raw, "variationId": variation_id, "quantity": quantity})
    return lines


def _line_item(line: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "quantity": str(line["quantity"]),
        "catalog_object_id": line["variationId"],
        "item_type": "ITEM",
    }


async def _create_payment_link(client: CommerceClient, body: Dict[str, Any]) -> Dict[str, Any]:
    result = await client.create_payment_link(body)
    link = result.data.get("payment_link")
    if not link:
        logger.error("Checkout error: %s", result.data)
        raise StorefrontError(
            first_error_detail(result.data, "Failed to create checkout"),
            details=result.data.get("errors") or result.data,
        )
    return link


async def create_cart_checkout(client: CommerceClient, items: Any) -> Dict[str, Any]:
    lines = _normalize_lines(items)
    location_id = await location_or_error(client)

    shipping = 0
    for line in lines:
        shipping += await flat_shipping_cents(client, line["variationId"], line["quantity"])

    link = await _create_payment_link(client, {
        "idempotency_key": make_idempotency_key("checkout"),
        "order": {
            "location_id": location_id,
            "line_items": [_line_item(line) for line in lines],
            "service_charges": [shipping_charge(shipping)],
        },
        "checkout_options": checkout_options(ask_for_shipping_address=True),
    })
    return {"checkoutUrl": link.get("url")}


async def create_quick_checkout(client: CommerceClient, variation_id: Any, quantity: Any = 1) -> Dict[str, Any]:
    line = _normalize_lines([{"variationId": variation_id, "quantity": 1 if quantity is None else quantity}])[0]
    location_id = await location_or_error(client)
    shipping = await flat_shipping_cents(client, line["variationId"], line["quantity"])

    link = await _create_payment_link(client, {
        "idempotency_key": make_idempotency_key("quick"),
        "order": {
            "location_id": location_id,
            "line_items": [_line_item(line)],
            "service_charges": [shipping_charge(shipping)],
        },
        "checkout_options": checkout_options(ask_for_shipping_address=True),
    })
    return {"checkoutUrl": link.get("url")}


async def create_pickup_checkout(
    client: CommerceClient,
    mailer: GmailMailer,
    config: StorefrontConfig,
    items: Any,
    phone: Optional[str],
) -> Dict[str, Any]:
    """Payment link for local pickup. The owner gets an e-mail with the link."""
    if not isinstance(items, list) or not items:
        raise StorefrontError("No items provided")
    if len(phone_digits(phone)) < 10:
        raise StorefrontError("Valid phone number required")
    if not config.square_access_token:
        raise ConfigurationError("Checkout service not configured")
    lines = _normalize_lines(items)

    location_id = await location_or_error(client)
    link = await _create_payment_link(client, {
        "idempotency_key": make_idempotency_key("pickup"),
        "order": {
            "location_id": location_id,
            "line_items": [_line_item(line) for line in lines],
        },
        "checkout_options": checkout_options(ask_for_shipping_address=False),
        "pre_populated_data": {"buyer_phone_number": format_e164(phone)},
    })
    checkout_url = link.get("url")

    # Client-side names and prices; the link itself charges catalog prices.
    email_items = [
        {
            "name": safe_string(line.get("name"), 120) or line["variationId"],
            "quantity": line["quantity"],
            "price_cents": _client_price_cents(line.get("price")),
        }
        for line in lines
    ]
    total_cents = sum(item["price_cents"] * item["quantity"] for item in email_items)
    await mailer.send_quietly(
        config.owner_email,
        "New Local Pickup Order",
        render_pickup_link_notification(email_items, str(phone), total_cents, checkout_url),
    )

    return {"checkoutUrl": checkout_url, "message": "Pickup order created"}


def _client_price_cents(price: Any) -> int:
    try:
        return round_half_up(float(price) * 100)
    except (TypeError, ValueError, OverflowError):
        return 0
