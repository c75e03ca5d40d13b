"""Pytest configuration for storefront tests."""

import json
from typing import Any, Dict, List, Optional

import httpx
import pytest
import redis

from storefront import cache
from storefront.config import StorefrontConfig, set_config
from storefront.square_client import CommerceClient


# ---------------------------------------------------------------------------
# Isolation: the Square lookup caches and the global config are module-level
# and would otherwise leak between tests.
# ---------------------------------------------------------------------------

@pytest.fixture(scope="function", autouse=True)
def _isolate_module_state():
    cache.clear_all()
    set_config(None)
    yield
    cache.clear_all()
    set_config(None)


# ---------------------------------------------------------------------------
# Fake Square API (served through httpx.MockTransport)
# ---------------------------------------------------------------------------

def item(item_id: str, name: str, variations: List[Dict[str, Any]], category_id: Optional[str] = None,
         image_ids: Optional[List[str]] = None, description: str = "", product_type: str = "REGULAR") -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "name": name,
        "description": description,
        "variations": variations,
        "product_type": product_type,
    }
    if category_id:
        data["category_id"] = category_id
    if image_ids:
        data["image_ids"] = image_ids
    return {"type": "ITEM", "id": item_id, "item_data": data}


def variation(variation_id: str, item_id: str, name: str, cents: Optional[int], sku: str = "") -> Dict[str, Any]:
    data: Dict[str, Any] = {"item_id": item_id, "name": name, "sku": sku}
    if cents is not None:
        data["price_money"] = {"amount": cents, "currency": "USD"}
    return {"type": "ITEM_VARIATION", "id": variation_id, "item_variation_data": data}


class FakeSquare:
    """Just enough of Square Connect v2 for the storefront's calls."""

    def __init__(self):
        self.objects: Dict[str, Dict[str, Any]] = {}
        self.lists: Dict[str, List[Dict[str, Any]]] = {}
        self.locations: List[Dict[str, Any]] = [{"id": "LOC1", "name": "Main"}]
        self.promo_objects: List[Dict[str, Any]] = []
        self.promo_related: List[Dict[str, Any]] = []
        self.item_search: List[Dict[str, Any]] = []
        self.page_size: Optional[int] = None
        self.fail_paths: Dict[str, int] = {}
        self.order_total_override: Optional[int] = None
        self.order_response: Optional[Dict[str, Any]] = None
        self.payment_response: Optional[Dict[str, Any]] = None
        self.link_response: Dict[str, Any] = {"payment_link": {"id": "PL1", "url": "https://square.link/u/abc123"}}
        self.requests: List[httpx.Request] = []

    def add(self, obj: Dict[str, Any], listed: bool = True) -> Dict[str, Any]:
        self.objects[obj["id"]] = obj
        if listed:
            self.lists.setdefault(obj["type"], []).append(obj)
        return obj

    def add_item(self, item_obj: Dict[str, Any]) -> Dict[str, Any]:
        self.add(item_obj)
        for var in item_obj["item_data"]["variations"]:
            self.add(var, listed=False)
        return item_obj

    def calls(self, method: str, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == f"/v2{path}"]

    def bodies(self, method: str, path: str) -> List[Dict[str, Any]]:
        return [json.loads(r.content) for r in self.calls(method, path)]

    @staticmethod
    def _error(status: int, detail: str) -> httpx.Response:
        return httpx.Response(status, json={"errors": [{"category": "INVALID_REQUEST_ERROR", "code": "BAD", "detail": detail}]})

    def _order_total(self, order: Dict[str, Any]) -> int:
        if self.order_total_override is not None:
            return self.order_total_override
        total = sum(int(li["quantity"]) * li["base_price_money"]["amount"] for li in order.get("line_items", []))
        total += sum(sc["amount_money"]["amount"] for sc in order.get("service_charges", []))
        total -= sum(d["amount_money"]["amount"] for d in order.get("discounts", []))
        return max(0, total)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        assert path.startswith("/v2/")
        path = path[len("/v2"):]

        if path in self.fail_paths:
            return self._error(self.fail_paths[path], "Simulated failure")

        if request.method == "GET" and path == "/locations":
            return httpx.Response(200, json={"locations": self.locations})

        if request.method == "GET" and path.startswith("/catalog/object/"):
            obj = self.objects.get(path[len("/catalog/object/"):])
            if obj is None:
                return httpx.Response(404, json={"errors": [{"code": "NOT_FOUND", "detail": "Object not found"}]})
            return httpx.Response(200, json={"object": obj})

        if request.method == "GET" and path == "/catalog/list":
            objects = self.lists.get(request.url.params["types"], [])
            if not self.page_size:
                return httpx.Response(200, json={"objects": objects})
            offset = int(request.url.params.get("cursor") or 0)
            page = {"objects": objects[offset:offset + self.page_size]}
            if offset + self.page_size < len(objects):
                page["cursor"] = str(offset + self.page_size)
            return httpx.Response(200, json=page)

        if request.method == "POST" and path == "/catalog/search":
            body = json.loads(request.content)
            if body.get("object_types") == ["ITEM"]:
                return httpx.Response(200, json={"objects": self.item_search})
            return httpx.Response(200, json={"objects": self.promo_objects, "related_objects": self.promo_related})

        if request.method == "POST" and path == "/orders":
            if self.order_response is not None:
                return httpx.Response(self.order_response.get("_status", 200), json=self.order_response)
            order = json.loads(request.content)["order"]
            return httpx.Response(200, json={"order": {
                "id": "ORDER-7H3K9Q2Z",
                "location_id": order["location_id"],
                "total_money": {"amount": self._order_total(order), "currency": "USD"},
            }})

        if request.method == "POST" and path == "/payments":
            if self.payment_response is not None:
                return httpx.Response(self.payment_response.get("_status", 200), json=self.payment_response)
            body = json.loads(request.content)
            return httpx.Response(200, json={"payment": {
                "id": "PAY1",
                "status": "COMPLETED",
                "amount_money": body["amount_money"],
                "receipt_url": "https://squareup.com/receipt/preview/PAY1",
            }})

        if request.method == "POST" and path == "/online-checkout/payment-links":
            return httpx.Response(200, json=self.link_response)

        return httpx.Response(404, json={"errors": [{"code": "NOT_FOUND", "detail": f"No route {path}"}]})

    def client(self) -> CommerceClient:
        return CommerceClient("test-token", transport=httpx.MockTransport(self.handler))


def seed_catalog(square: FakeSquare) -> FakeSquare:
    """A small shop: two B&B products, a men's product, a Doux product and a booking."""
    square.add({"type": "CATEGORY", "id": "CAT_SHAMPOO", "category_data": {"name": "Shampoo"}})
    square.add({"type": "CATEGORY", "id": "CAT_STYLING", "category_data": {"name": "Styling"}})
    square.add({"type": "IMAGE", "id": "IMG_SUNDAY", "image_data": {"url": "https://img.example.com/sunday.jpg"}})

    square.add_item(item(
        "ITEM_SUNDAY", "B&B Sunday Shampoo",
        [variation("VAR_SUNDAY_SMALL", "ITEM_SUNDAY", "8.5 OZ", 3200, sku="BB-SUN-85"),
         variation("VAR_SUNDAY_LITER", "ITEM_SUNDAY", "Liter", 8000)],
        category_id="CAT_SHAMPOO", image_ids=["IMG_SUNDAY"],
        description="Weekly  clarifying\nshampoo.",
    ))
    square.add_item(item(
        "ITEM_OIL", "B&B Hairdresser's Invisible Oil",
        [variation("VAR_OIL", "ITEM_OIL", "Standard", 4800)],
        category_id="CAT_STYLING",
    ))
    square.add_item(item(
        "ITEM_CREW", "American Crew Fiber",
        [variation("VAR_CREW", "ITEM_CREW", "Regular", 2400)],
    ))
    square.add_item(item(
        "ITEM_DOUX", "The Doux Mousse Def Texture Foam",
        [variation("VAR_DOUX", "ITEM_DOUX", "Standard", 1800)],
        category_id="CAT_STYLING",
    ))
    square.add_item(item(
        "ITEM_CUT", "Haircut",
        [variation("VAR_CUT", "ITEM_CUT", "Standard", 6500)],
        product_type="APPOINTMENTS_SERVICE",
    ))
    return square


def seed_promos(square: FakeSquare) -> FakeSquare:
    def discount(discount_id, name, **data):
        return {"type": "DISCOUNT", "id": discount_id, "discount_data": {"name": name, **data}}

    def rule(rule_id, name, discount_id, **data):
        return {"type": "PRICING_RULE", "id": rule_id,
                "pricing_rule_data": {"name": name, "discount_id": discount_id, **data}}

    square.promo_objects = [
        discount("D_SAVE10", "SAVE10", discount_type="FIXED_PERCENTAGE", percentage="10.0"),
        discount("D_FIVE", "Five Off", discount_type="FIXED_AMOUNT", amount_money={"amount": 500, "currency": "USD"}),
        discount("D_SHIP", "Free Shipping Promo", discount_type="FIXED_PERCENTAGE", percentage="0"),
        discount("D_FREEBIE", "FREEBIE", discount_type="FIXED_PERCENTAGE", percentage="100"),
        rule("PR_SUMMER", "SUMMER25", "D_SUMMER"),
        rule("PR_OLD", "OLDCODE", "D_OLD", valid_until_date="2020-01-01"),
        rule("PR_FUTURE", "NEXTYEAR", "D_FUTURE", valid_from_date="2999-01-01"),
    ]
    square.promo_related = [
        discount("D_SUMMER", "Summer Sale", discount_type="FIXED_PERCENTAGE", percentage="25"),
        discount("D_OLD", "Old Promo", discount_type="FIXED_PERCENTAGE", percentage="15"),
        discount("D_FUTURE", "Future Promo", discount_type="FIXED_PERCENTAGE", percentage="15"),
    ]
    return square


@pytest.fixture
def square():
    return seed_promos(seed_catalog(FakeSquare()))


@pytest.fixture
def commerce(square):
    return square.client()


@pytest.fixture
def config():
    return StorefrontConfig(
        square_access_token="test-token",
        square_application_id="sq0idp-test",
        owner_email="owner@example.com",
        store_name="The Grasshopper",
        anthropic_api_key="sk-ant-test",
        admin_key="letmein",
        netlify_api_token="nf-token",
        netlify_site_id="site-1",
    )


# ---------------------------------------------------------------------------
# Fake Redis for the review store
# ---------------------------------------------------------------------------

class FakeRedis:
    """List commands only; `broken=True` makes every call fail like a dead server."""

    def __init__(self, broken: bool = False):
        self.lists: Dict[str, List[str]] = {}
        self.broken = broken

    def _check(self):
        if self.broken:
            raise redis.ConnectionError("Connection refused")

    def ping(self):
        self._check()
        return True

    def lrange(self, key, start, end):
        self._check()
        values = self.lists.get(key, [])
        return values[start:] if end == -1 else values[start:end + 1]

    def rpush(self, key, *values):
        self._check()
        self.lists.setdefault(key, []).extend(values)
        return len(self.lists[key])


@pytest.fixture
def fake_redis():
    return FakeRedis()
