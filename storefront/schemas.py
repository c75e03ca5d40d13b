"""
Request bodies for the storefront API.

Field names on the wire are camelCase (the browser's), attributes are
snake_case. Models are deliberately lenient: quantities may arrive as
strings, and missing fields are None so each handler can answer with its
own error message.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class StorefrontModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


# ============================================================================
# Shared Sub-objects
# ============================================================================

class CartItem(StorefrontModel):
    """One cart line as the browser sends it."""
    variation_id: Any = None
    quantity: Any = Field(None, description="Integer or numeric string, 1..100")
    name: Optional[str] = Field(None, description="Display name (owner e-mails only)")
    price: Any = Field(None, description="Client-side unit price in dollars (owner e-mails only)")


class ShippingAddress(StorefrontModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    street: Optional[str] = None
    apt: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Any = None

    def as_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


# ============================================================================
# Requests
# ============================================================================

class ShippingQuoteRequest(StorefrontModel):
    items: Optional[List[CartItem]] = None
    state: Optional[str] = Field(None, description="Destination state; switches to zone pricing")


class PromoRequest(StorefrontModel):
    code: Optional[str] = None


class PickupCheckRequest(StorefrontModel):
    zip: Any = None


class CheckoutRequest(StorefrontModel):
    items: Optional[List[CartItem]] = None


class QuickCheckoutRequest(StorefrontModel):
    variation_id: Any = None
    quantity: Any = 1


class PickupCheckoutRequest(StorefrontModel):
    items: Optional[List[CartItem]] = None
    phone: Any = None


class ProcessPaymentRequest(StorefrontModel):
    source_id: Optional[str] = Field(None, description="Card/wallet token, or FREE_ORDER")
    items: Optional[List[CartItem]] = None
    order_type: Optional[str] = Field(None, description="shipping | pickup")
    phone: Any = None
    shipping_address: Optional[ShippingAddress] = None
    promo_code: Optional[str] = None
    discount_cents: Optional[float] = Field(None, description="Client-computed discount (checked, not trusted)")
    tax_cents: Optional[float] = Field(None, description="Client-computed tax (checked, not trusted)")
    idempotency_key: Optional[str] = None


class HairAnalysisRequest(StorefrontModel):
    image: Optional[str] = Field(None, description="Base64 image, optionally as a data: URL")
    mens_mode: bool = False
    doux_focus: bool = False


class ReviewRequest(StorefrontModel):
    product_id: Optional[str] = None
    name: Optional[str] = None
    rating: Any = None
    text: Optional[str] = None
    image: Optional[str] = None
