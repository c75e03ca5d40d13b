"""
Direct payments: server-side order reconciliation for `process-payment`.

The browser sends variation ids and quantities plus what it *thinks* the
discount and tax are. Nothing monetary from the client is trusted:

  1. every line is re-priced from the catalog at the sale price
  2. shipping is UPS zone pricing on the estimated total weight
  3. the promo code is resolved again and the discount recomputed
  4. tax is charged on the discounted subtotal
  5. the order is created in Square and Square's own total is charged

Client/server differences over a cent are logged and ignored. An order
whose payment then fails is left behind in Square; there is no rollback.
"""

from __future__ import annotations
import re
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from storefront.config import StorefrontConfig
from storefront.errors import CommerceAPIError, ConfigurationError, StorefrontError
from storefront.logger import get_logger
from storefront.mailer import (
    GmailMailer,
    render_customer_receipt,
    render_customer_receipt_text,
    render_owner_notification,
)
from storefront.pricing import (
    PricedLine,
    compute_tax_cents,
    normalize_quantity,
    round_half_up,
    safe_string,
    to_sale_price_cents,
)
from storefront.promos import DiscountSummary, PromoResolution, compute_discount, resolve_promo_code
from storefront.shipping import get_product_weight, get_ups_shipping_cost
from storefront.square_client import CommerceClient, first_error_detail

logger = get_logger("orders")

FREE_ORDER_SOURCE = "FREE_ORDER"
FREE_PAYMENT_ID = "FREE"
DEFAULT_DESTINATION_STATE = "NY"
MAX_CLIENT_KEY_LENGTH = 40   # Square caps idempotency keys at 45 chars

_KEY_UNSAFE = re.compile(r"[^A-Za-z0-9_-]")


@dataclass
class OrderQuote:
    """Server-side totals for a cart, all in cents."""
    lines: List[PricedLine]
    subtotal_cents: int
    total_weight: float
    shipping_cents: int
    discount: DiscountSummary = field(default_factory=DiscountSummary)
    tax_cents: int = 0
    promo: Optional[PromoResolution] = None

    @property
    def expected_total_cents(self) -> int:
        return self.subtotal_cents + self.shipping_cents + self.tax_cents - self.discount.discount_cents


def idempotency_seed(order_type: str, client_key: Optional[str] = None) -> str:
    """Seed for `order-<seed>` / `pay-<seed>`. A client key makes retries safe."""
    cleaned = _KEY_UNSAFE.sub("", client_key or "")[:MAX_CLIENT_KEY_LENGTH]
    if cleaned:
        return cleaned
    return f"{order_type}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"


async def price_lines(
    client: CommerceClient,
    items: List[Dict[str, Any]],
    sale_discount: float,
) -> Tuple[List[PricedLine], int, float]:
    """Re-price cart lines from the catalog. Returns (lines, subtotal, weight)."""
    lines: List[PricedLine] = []
    subtotal = 0
    total_weight = 0.0

    for raw in items:
        raw = raw if isinstance(raw, dict) else {}
        quantity = normalize_quantity(raw.get("quantity"))
        variation_id = safe_string(raw.get("variationId"), 64)
        if not quantity or not variation_id:
            raise StorefrontError("Invalid item payload")

        try:
            variation = await client.get_catalog_object(variation_id)
        except CommerceAPIError as e:
            logger.warning("Variation lookup failed for %s: %s", variation_id, e.message)
            variation = None
        var_data = (variation or {}).get("item_variation_data")
        if not var_data:
            raise StorefrontError("Invalid variation selected")

        parent_id = var_data.get("item_id")
        if not parent_id:
            raise StorefrontError("Invalid catalog relationship for variation")
        parent = await client.get_catalog_object(parent_id)

        product_name = ((parent or {}).get("item_data") or {}).get("name") or safe_string(raw.get("name"), 120) or "Product"
        variation_name = safe_string(var_data.get("name") or "Standard", 80) or "Standard"

        base_price = (var_data.get("price_money") or {}).get("amount")
        if not isinstance(base_price, (int, float)) or isinstance(base_price, bool) or base_price <= 0:
            raise StorefrontError("Variation has invalid price")

        unit_price = to_sale_price_cents(base_price, sale_discount)
        subtotal += unit_price * quantity
        total_weight += get_product_weight(product_name, variation_name) * quantity
        lines.append(PricedLine(variation_id, product_name, variation_name, quantity, unit_price))

    return lines, subtotal, total_weight


def destination_state(shipping_address: Optional[Dict[str, Any]]) -> str:
    state = safe_string((shipping_address or {}).get("state") or DEFAULT_DESTINATION_STATE, 2).upper()
    return state or DEFAULT_DESTINATION_STATE


async def build_quote(
    client: CommerceClient,
    config: StorefrontConfig,
    items: List[Dict[str, Any]],
    order_type: str,
    shipping_address: Optional[Dict[str, Any]] = None,
    promo_code: Optional[str] = None,
) -> OrderQuote:
    lines, subtotal, weight = await price_lines(client, items, config.sale_discount)

    shipping = 0
    if order_type != "pickup":
        shipping = get_ups_shipping_cost(weight, destination_state(shipping_address))

    promo = None
    if promo_code:
        promo = await resolve_promo_code(client, promo_code, version=config.square_promo_version)
        if not promo.valid:
            raise StorefrontError(promo.message or "Invalid promo code")

    discount = compute_discount(promo, subtotal, shipping)
    tax = compute_tax_cents(subtotal, discount.product_discount_cents, config.tax_rate)
    return OrderQuote(lines, subtotal, weight, shipping, discount, tax, promo)


def _money(amount: int) -> Dict[str, Any]:
    return {"amount": amount, "currency": "USD"}


def _warn_on_mismatch(label: str, client_value: Optional[float], server_value: int) -> None:
    if client_value is None:
        return
    try:
        client_cents = round_half_up(float(client_value))
    except (TypeError, ValueError, OverflowError):
        return
    if abs(client_cents - server_value) > 1:
        logger.warning("Client %s mismatch ignored: client=%s server=%s", label, client_cents, server_value)


def build_order_body(
    location_id: str,
    quote: OrderQuote,
    order_type: str,
    tax_label: str,
    shipping_address: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Square CreateOrder `order` object for a reconciled quote."""
    order: Dict[str, Any] = {
        "location_id": location_id,
        "line_items": [
            {
                "quantity": str(line.quantity),
                "name": line.display_name,
                "base_price_money": _money(line.unit_price_cents),
                "item_type": "ITEM",
            }
            for line in quote.lines
        ],
    }

    service_charges = []
    if quote.shipping_cents > 0:
        service_charges.append({
            "name": "Shipping",
            "amount_money": _money(quote.shipping_cents),
            "calculation_phase": "SUBTOTAL_PHASE",
        })
    if quote.tax_cents > 0:
        service_charges.append({
            "name": tax_label,
            "amount_money": _money(quote.tax_cents),
            "calculation_phase": "SUBTOTAL_PHASE",
        })
    if service_charges:
        order["service_charges"] = service_charges

    if quote.discount.discount_cents > 0:
        order["discounts"] = [{
            "name": quote.discount.code or "Discount",
            "amount_money": _money(quote.discount.discount_cents),
            "scope": "ORDER",
        }]

    if shipping_address and order_type != "pickup":
        order["fulfillments"] = [{
            "type": "SHIPMENT",
            "state": "PROPOSED",
            "shipment_details": {"recipient": _recipient(shipping_address)},
        }]

    return order


def _recipient(address: Dict[str, Any]) -> Dict[str, Any]:
    recipient: Dict[str, Any] = {
        "display_name": f"{safe_string(address.get('firstName'), 60)} {safe_string(address.get('lastName'), 60)}".strip(),
        "address": {
            "address_line_1": safe_string(address.get("street"), 120),
            "locality": safe_string(address.get("city"), 80),
            "administrative_district_level_1": safe_string(address.get("state"), 2).upper(),
            "postal_code": safe_string(address.get("zip"), 10),
            "country": "US",
        },
    }
    email = safe_string(address.get("email"), 160)
    if email:
        recipient["email_address"] = email
    apt = safe_string(address.get("apt"), 120)
    if apt:
        recipient["address"]["address_line_2"] = apt
    return recipient


async def process_payment(
    client: CommerceClient,
    mailer: GmailMailer,
    config: StorefrontConfig,
    *,
    source_id: Optional[str],
    items: Optional[List[Dict[str, Any]]],
    order_type: Optional[str],
    phone: Any = None,
    shipping_address: Optional[Dict[str, Any]] = None,
    promo_code: Optional[str] = None,
    discount_cents: Optional[float] = None,
    tax_cents: Optional[float] = None,
    idempotency_key: Optional[str] = None,
) -> Dict[str, Any]:
    """Reconcile, create the order, take the payment and e-mail both parties."""
    if not source_id or not isinstance(items, list) or not items or not order_type:
        raise StorefrontError("Missing required fields")
    if not config.square_access_token:
        raise ConfigurationError("Payment service not configured")

    quote = await build_quote(client, config, items, order_type, shipping_address, promo_code)
    _warn_on_mismatch("discount", discount_cents, quote.discount.discount_cents)
    _warn_on_mismatch("tax", tax_cents, quote.tax_cents)

    location_id = await client.get_location_id()
    order_body = build_order_body(location_id, quote, order_type, config.tax_label, shipping_address)

    seed = idempotency_seed(order_type, idempotency_key)
    created = await client.create_order(f"order-{seed}", order_body)
    order = created.data.get("order")
    if not created.ok or not order:
        raise StorefrontError(first_error_detail(created.data, "Failed to create order"))

    order_id = order.get("id")
    order_total = (order.get("total_money") or {}).get("amount") or 0
    if order_total != quote.expected_total_cents:
        logger.warning("Square order total %s differs from quote %s", order_total, quote.expected_total_cents)

    is_free = (
        source_id == FREE_ORDER_SOURCE
        and quote.promo is not None
        and quote.promo.valid
        and quote.discount.discount_cents > 0
        and order_total == 0
    )
    if source_id == FREE_ORDER_SOURCE and not is_free:
        raise StorefrontError("Invalid free order request")
    if source_id != FREE_ORDER_SOURCE and order_total == 0:
        raise StorefrontError("Order total is zero; retry with free order flow")

    if is_free:
        payment: Dict[str, Any] = {"id": FREE_PAYMENT_ID, "status": "COMPLETED"}
    else:
        paid = await client.create_payment({
            "idempotency_key": f"pay-{seed}",
            "source_id": source_id,
            "amount_money": _money(order_total),
            "order_id": order_id,
            "location_id": location_id,
        })
        payment = paid.data.get("payment") or {}
        if not paid.ok or not payment or payment.get("status") == "FAILED":
            raise StorefrontError(first_error_detail(paid.data, "Payment failed"))

    logger.info("Order %s paid: payment=%s total=%s type=%s", order_id, payment.get("id"), order_total, order_type)
    # The payment is captured at this point; e-mail problems must not fail the request.
    try:
        await _send_order_emails(mailer, config, quote, order_id, payment["id"], order_total,
                                 order_type, phone, shipping_address)
    except Exception:
        logger.exception("Order e-mails failed for %s", order_id)

    return {
        "success": True,
        "paymentId": payment["id"],
        "orderId": order_id,
        "receiptUrl": payment.get("receipt_url"),
    }


async def _send_order_emails(
    mailer: GmailMailer,
    config: StorefrontConfig,
    quote: OrderQuote,
    order_id: str,
    payment_id: str,
    order_total: int,
    order_type: str,
    phone: Any,
    shipping_address: Optional[Dict[str, Any]],
) -> None:
    items = [
        {"name": line.display_name, "quantity": line.quantity, "price_cents": line.unit_price_cents}
        for line in quote.lines
    ]
    customer_email = (shipping_address or {}).get("email") or None
    totals = dict(
        items=items,
        subtotal_cents=quote.subtotal_cents,
        shipping_cents=quote.shipping_cents,
        tax_cents=quote.tax_cents,
        discount_cents=quote.discount.discount_cents,
        total_cents=order_total,
        order_id=order_id,
        order_type=order_type,
        promo_code=quote.discount.code,
    )

    kind = "Pickup" if order_type == "pickup" else "Shipping"
    status = "FREE" if payment_id == FREE_PAYMENT_ID else "PAID"
    await mailer.send_quietly(
        config.owner_email,
        f"New {kind} Order - {status}",
        render_owner_notification(
            payment_id=payment_id,
            phone=str(phone) if phone else None,
            email=customer_email,
            shipping_address=shipping_address,
            **totals,
        ),
    )

    if customer_email:
        await mailer.send_quietly(
            customer_email,
            f"Your Order from {config.store_name}",
            render_customer_receipt_text(config, order_id, order_total),
            render_customer_receipt(config, **totals),
        )
