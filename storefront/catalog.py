"""
Catalog browsing: product list, product detail and keyword search.

Products are Square ITEM objects shaped for the browser. Brand is derived
from the product name; Square has no brand field. Images and categories
live in separate catalog objects and are joined in here.
"""

from __future__ import annotations
import asyncio
import re
from typing import Any, Dict, List, Optional, Pattern, Tuple
from urllib.parse import quote

from storefront.errors import CommerceAPIError, NotFoundError, StorefrontError
from storefront.logger import get_logger
from storefront.square_client import CommerceClient

logger = get_logger("catalog")

DEFAULT_BRAND = "Color Wow"
MENS_CATEGORY = "Mens Products"
DOUX_BRAND = "The Doux"
EXCLUDED_PRODUCT_TYPES = {"APPOINTMENTS_SERVICE"}

# First match wins.
BRAND_PATTERNS: List[Tuple[Pattern[str], str]] = [
    (re.compile(r"^b&b\s|^bumble", re.I), "Bumble and Bumble"),
    (re.compile(r"^olaplex", re.I), "Olaplex"),
    (re.compile(r"^ouai", re.I), "OUAI"),
    (re.compile(r"^living proof", re.I), "Living Proof"),
    (re.compile(r"^cw\s", re.I), "Color Wow"),
    (re.compile(r"^doux\b", re.I), DOUX_BRAND),
    (re.compile(r"^the doux", re.I), DOUX_BRAND),
    # Men's
    (re.compile(r"^redken brews", re.I), "Redken Brews"),
    (re.compile(r"^american crew", re.I), "American Crew"),
    (re.compile(r"^18\.21\s*man\s*made", re.I), "18.21 Man Made"),
    (re.compile(r"^pete\s*&\s*pedro", re.I), "Pete & Pedro"),
    (re.compile(r"^big sexy hair|^sexy hair style", re.I), "Sexy Hair"),
    (re.compile(r"^l3vel3", re.I), "L3VEL3"),
    (re.compile(r"^the good sh[*i]t", re.I), "The Good Sh*t"),
]

MENS_BRANDS = {
    "Redken Brews",
    "American Crew",
    "18.21 Man Made",
    "Pete & Pedro",
    "Sexy Hair",
    "L3VEL3",
    "The Good Sh*t",
}

_DOUX_WORD = re.compile(r"\bdoux\b", re.I)


def extract_brand(name: str) -> str:
    for pattern, brand in BRAND_PATTERNS:
        if pattern.search(name or ""):
            return brand
    return DEFAULT_BRAND


def resolve_category(category_id: Optional[str], categories: Dict[str, str], brand: str) -> Optional[str]:
    category = categories.get(category_id) if category_id else None
    if not category and brand in MENS_BRANDS:
        category = MENS_CATEGORY
    return category


def is_doux_product(product: Dict[str, Any]) -> bool:
    return (
        product.get("brand") == DOUX_BRAND
        or bool(_DOUX_WORD.search(product.get("name") or ""))
        or bool(_DOUX_WORD.search(product.get("description") or ""))
    )


def _dollars(variation: Dict[str, Any]) -> Optional[float]:
    money = (variation.get("item_variation_data") or {}).get("price_money")
    if not money:
        return None
    return money.get("amount", 0) / 100


def _first_image(item_data: Dict[str, Any], images: Dict[str, str]) -> Optional[str]:
    image_ids = item_data.get("image_ids") or []
    if image_ids:
        return images.get(image_ids[0])
    return None


async def fetch_image_map(client: CommerceClient) -> Dict[str, str]:
    """image id -> URL"""
    objects = await client.list_catalog_objects_by_type("IMAGE")
    return {
        obj["id"]: obj["image_data"]["url"]
        for obj in objects
        if (obj.get("image_data") or {}).get("url")
    }


async def fetch_category_map(client: CommerceClient) -> Dict[str, str]:
    """category id -> name"""
    objects = await client.list_catalog_objects_by_type("CATEGORY")
    return {
        obj["id"]: obj["category_data"]["name"]
        for obj in objects
        if (obj.get("category_data") or {}).get("name")
    }


def summarize_item(item: Dict[str, Any], images: Dict[str, str], categories: Dict[str, str]) -> Dict[str, Any]:
    """Shape one ITEM for the product grid. Price is the cheapest variation."""
    item_data = item.get("item_data") or {}
    variations = item_data.get("variations") or []

    prices = [p for p in (_dollars(v) for v in variations) if p is not None]
    min_price = min(prices) if prices else 0
    max_price = max(prices) if prices else 0

    name = item_data.get("name") or ""
    brand = extract_brand(name)

    return {
        "id": item.get("id"),
        "variationId": variations[0].get("id") if variations else None,
        "name": name,
        "description": item_data.get("description") or "",
        "price": min_price,
        "priceRange": {"min": min_price, "max": max_price} if min_price != max_price else None,
        "imageUrl": _first_image(item_data, images),
        "brand": brand,
        "category": resolve_category(item_data.get("category_id"), categories, brand),
        "productType": item_data.get("product_type"),
    }


async def list_products(client: CommerceClient) -> List[Dict[str, Any]]:
    """Every sellable product, with images and categories joined in."""
    items, images, categories = await asyncio.gather(
        client.list_catalog_objects_by_type("ITEM"),
        fetch_image_map(client),
        fetch_category_map(client),
    )
    products = [summarize_item(item, images, categories) for item in items]
    products = [p for p in products if p["productType"] not in EXCLUDED_PRODUCT_TYPES]
    logger.info("Fetched %d products", len(products))
    return products


async def get_product(client: CommerceClient, product_id: Optional[str]) -> Dict[str, Any]:
    """One product with all of its variations."""
    if not product_id:
        raise StorefrontError("Product ID required")

    result = await client.fetch_json(f"/catalog/object/{quote(product_id, safe='')}")
    item = result.data.get("object")
    if not item or item.get("type", "ITEM") != "ITEM":
        raise NotFoundError("Product not found")

    item_data = item.get("item_data") or {}
    images = await fetch_image_map(client)

    category = None
    category_id = item_data.get("category_id")
    if category_id:
        try:
            category_obj = await client.get_catalog_object(category_id)
            category = ((category_obj or {}).get("category_data") or {}).get("name")
        except CommerceAPIError as e:
            logger.warning("Category lookup failed for %s: %s", category_id, e.message)

    variations = []
    for variation in item_data.get("variations") or []:
        var_data = variation.get("item_variation_data")
        if not var_data:
            continue
        variations.append({
            "id": variation.get("id"),
            "name": var_data.get("name") or "Standard",
            "price": _dollars(variation) or 0,
            "sku": var_data.get("sku") or "",
        })

    prices = [v["price"] for v in variations]
    min_price = min(prices) if prices else 0
    max_price = max(prices) if prices else 0

    name = item_data.get("name") or ""
    brand = extract_brand(name)
    if not category and brand in MENS_BRANDS:
        category = MENS_CATEGORY

    return {
        "id": item.get("id"),
        "variationId": variations[0]["id"] if variations else None,
        "name": name,
        "description": item_data.get("description") or "",
        "price": min_price,
        "priceRange": {"min": min_price, "max": max_price} if min_price != max_price else None,
        "variations": variations,
        "imageUrl": _first_image(item_data, images),
        "brand": brand,
        "category": category,
    }


async def search_products(client: CommerceClient, query: Optional[str]) -> List[Dict[str, Any]]:
    """Keyword search over ITEM objects. Price is the first variation's."""
    query = (query or "").strip()
    if not query:
        return []

    result = await client.search_catalog({
        "object_types": ["ITEM"],
        "query": {"text_query": {"keywords": [query]}},
    })
    if not result.ok:
        raise CommerceAPIError(
            f"Catalog search failed ({result.status})",
            status=result.status,
            errors=result.data.get("errors"),
        )

    images, categories = await asyncio.gather(fetch_image_map(client), fetch_category_map(client))

    products = []
    for item in result.data.get("objects") or []:
        item_data = item.get("item_data") or {}
        if item_data.get("product_type") in EXCLUDED_PRODUCT_TYPES:
            continue
        variations = item_data.get("variations") or []
        first = variations[0] if variations else {}
        name = item_data.get("name") or ""
        brand = extract_brand(name)
        products.append({
            "id": item.get("id"),
            "variationId": first.get("id"),
            "name": name,
            "description": item_data.get("description") or "",
            "price": _dollars(first) or 0,
            "imageUrl": _first_image(item_data, images),
            "brand": brand,
            "category": resolve_category(item_data.get("category_id"), categories, brand),
            "productType": item_data.get("product_type"),
        })
    return products


async def describe_variation(client: CommerceClient, variation_id: str) -> Optional[Tuple[str, str]]:
    """(product name, variation name) for a variation id, or None when unknown."""
    variation = await client.get_catalog_object(variation_id)
    var_data = (variation or {}).get("item_variation_data")
    if not var_data or not var_data.get("item_id"):
        return None
    parent = await client.get_catalog_object(var_data["item_id"])
    if not parent:
        return None
    product_name = (parent.get("item_data") or {}).get("name") or ""
    return product_name, var_data.get("name") or "Standard"
