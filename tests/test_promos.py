"""
Tests for promo code resolution against Square discounts and pricing rules,
and for the discount arithmetic applied at payment time.
"""

import asyncio

import httpx
import pytest

from storefront.promos import (
    DiscountSummary,
    PromoResolution,
    build_discount_response,
    compute_discount,
    resolve_promo_code,
)
from storefront.square_client import CommerceClient

TODAY = "2026-01-15"


def resolve(client, code):
    return asyncio.run(resolve_promo_code(client, code, version="2024-11-20", today=TODAY))


class TestResolvePromoCode:
    def test_empty_code(self, commerce, square):
        resolved = resolve(commerce, "   ")
        assert resolved.valid is False
        assert resolved.message == "Please enter a promo code"
        assert square.requests == []

    def test_exact_discount_name_case_insensitive(self, commerce):
        resolved = resolve(commerce, " save10 ")
        assert resolved.valid is True
        assert resolved.code == "SAVE10"
        assert resolved.discount["percentage"] == "10.0"

    def test_search_uses_promo_version_and_related_objects(self, commerce, square):
        resolve(commerce, "SAVE10")
        request = square.calls("POST", "/catalog/search")[0]
        assert request.headers["Square-Version"] == "2024-11-20"
        body = square.bodies("POST", "/catalog/search")[0]
        assert body == {"object_types": ["DISCOUNT", "PRICING_RULE", "PRODUCT_SET"], "include_related_objects": True}

    def test_exact_rule_name_follows_discount_id(self, commerce):
        resolved = resolve(commerce, "summer25")
        assert resolved.valid is True
        assert resolved.discount["name"] == "Summer Sale"
        assert resolved.pricing_rule["name"] == "SUMMER25"

    def test_rule_discount_fetched_directly_when_not_related(self, commerce, square):
        square.promo_related = [d for d in square.promo_related if d["id"] != "D_SUMMER"]
        square.add({"type": "DISCOUNT", "id": "D_SUMMER",
                    "discount_data": {"name": "Summer Sale", "discount_type": "FIXED_PERCENTAGE", "percentage": "25"}},
                   listed=False)
        resolved = resolve(commerce, "SUMMER25")
        assert resolved.valid is True
        assert resolved.discount["percentage"] == "25"
        assert len(square.calls("GET", "/catalog/object/D_SUMMER")) == 1

    def test_substring_discount_name(self, commerce):
        resolved = resolve(commerce, "FIVE")
        assert resolved.valid is True
        assert resolved.discount["name"] == "Five Off"

    def test_code_containing_discount_name(self, commerce):
        resolved = resolve(commerce, "SAVE10NOW")
        assert resolved.valid is True
        assert resolved.discount["name"] == "SAVE10"

    def test_substring_discount_picks_up_its_rule(self, commerce):
        resolved = resolve(commerce, "SUMMER")
        assert resolved.valid is True
        assert resolved.pricing_rule["name"] == "SUMMER25"

    def test_exact_match_beats_substring(self, commerce, square):
        square.promo_objects.insert(0, {
            "type": "DISCOUNT", "id": "D_SAVE100",
            "discount_data": {"name": "SAVE100", "discount_type": "FIXED_PERCENTAGE", "percentage": "100"},
        })
        resolved = resolve(commerce, "SAVE10")
        assert resolved.discount["percentage"] == "10.0"

    def test_unknown_code(self, commerce):
        resolved = resolve(commerce, "NOPE")
        assert resolved.valid is False
        assert resolved.message == "Invalid promo code"

    def test_expired_rule(self, commerce):
        resolved = resolve(commerce, "OLDCODE")
        assert resolved.valid is False
        assert resolved.message == "This promo code has expired"

    def test_not_yet_active_rule(self, commerce):
        resolved = resolve(commerce, "NEXTYEAR")
        assert resolved.valid is False
        assert resolved.message == "This promo code is not yet active"

    def test_rule_dates_apply_to_discount_matched_by_name(self, commerce):
        resolved = resolve(commerce, "OLD PROMO")
        assert resolved.valid is False
        assert resolved.message == "This promo code has expired"

    def test_upstream_failure(self, square):
        square.fail_paths["/catalog/search"] = 500
        resolved = resolve(square.client(), "SAVE10")
        assert resolved.valid is False
        assert resolved.message == "Unable to validate promo code. Please try again."


class TestDiscountResponse:
    def test_percentage(self):
        response = build_discount_response(PromoResolution(True, "SAVE10", discount={
            "name": "SAVE10", "discount_type": "FIXED_PERCENTAGE", "percentage": "10.0"}))
        assert response.to_dict() == {
            "valid": True, "code": "SAVE10", "type": "percent", "value": 10.0,
            "message": "10% off your order!", "freeShipping": False,
        }

    def test_fixed_amount(self):
        response = build_discount_response(PromoResolution(True, "FIVE", discount={
            "name": "Five Off", "discount_type": "FIXED_AMOUNT", "amount_money": {"amount": 500}}))
        assert response.discount_type == "fixed"
        assert response.value == 500
        assert response.message == "$5.00 off your order!"

    def test_free_shipping_by_name_or_code(self):
        by_name = build_discount_response(PromoResolution(True, "SHIPIT", discount={"name": "Free Shipping Promo"}))
        by_code = build_discount_response(PromoResolution(True, "FREESHIP", discount={"name": "Whatever"}))
        assert by_name.free_shipping and by_code.free_shipping
        assert by_name.message == "Free shipping applied!"

    def test_unknown_type(self):
        response = build_discount_response(PromoResolution(True, "ODD", discount={"name": "Odd"}))
        assert (response.discount_type, response.value, response.message) == ("percent", 0, "Discount applied!")


def _resolution(**discount):
    return PromoResolution(True, "CODE", discount=discount)


class TestComputeDiscount:
    def test_no_promo(self):
        assert compute_discount(None, 5000, 900) == DiscountSummary()
        assert compute_discount(PromoResolution(False), 5000, 900).discount_cents == 0

    def test_percent_applies_to_subtotal_and_shipping(self):
        summary = compute_discount(_resolution(discount_type="FIXED_PERCENTAGE", percentage="10"), 6400, 940)
        assert summary.discount_cents == 734
        assert summary.product_discount_cents == 640
        assert summary.code == "CODE"

    def test_percent_clamped(self):
        over = compute_discount(_resolution(discount_type="FIXED_PERCENTAGE", percentage="150"), 1000, 500)
        under = compute_discount(_resolution(discount_type="FIXED_PERCENTAGE", percentage="-20"), 1000, 500)
        assert over.discount_cents == 1500
        assert under.discount_cents == 0

    def test_fixed_capped_at_order(self):
        summary = compute_discount(_resolution(discount_type="FIXED_AMOUNT", amount_money={"amount": 10000}), 1000, 500)
        assert summary.discount_cents == 1500
        assert summary.product_discount_cents == 1000

    def test_free_shipping(self):
        summary = compute_discount(_resolution(name="Free Shipping Promo"), 5000, 940)
        assert summary.free_shipping is True
        assert summary.discount_cents == 940
        assert summary.product_discount_cents == 0

    def test_never_exceeds_subtotal_plus_shipping(self):
        resolutions = [
            _resolution(discount_type="FIXED_PERCENTAGE", percentage=pct) for pct in ("0", "33.3", "100", "250")
        ] + [
            _resolution(discount_type="FIXED_AMOUNT", amount_money={"amount": amt}) for amt in (0, 99, 5000, 10 ** 7)
        ] + [_resolution(name="Free Shipping Promo")]
        for resolved in resolutions:
            for subtotal in (0, 1, 999, 12345):
                for shipping in (0, 850, 2070):
                    summary = compute_discount(resolved, subtotal, shipping)
                    assert 0 <= summary.discount_cents <= subtotal + shipping
                    assert 0 <= summary.product_discount_cents <= summary.discount_cents


def test_network_error_propagates_to_caller():
    def handler(request):
        raise httpx.ConnectError("boom", request=request)

    client = CommerceClient("t", transport=httpx.MockTransport(handler))
    with pytest.raises(httpx.ConnectError):
        asyncio.run(resolve_promo_code(client, "SAVE10"))
