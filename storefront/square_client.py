"""
Square Connect v2 HTTP client.

Every handler talks to Square through one `CommerceClient`: it builds the
auth headers, parses JSON bodies leniently (empty or malformed bodies
become `{}`), and keeps hot catalog lookups in the TTL caches from
`storefront.cache`.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from storefront import cache
from storefront.errors import CommerceAPIError
from storefront.logger import get_logger

logger = get_logger("square")

DEFAULT_BASE_URL = "https://connect.squareup.com/v2"
DEFAULT_VERSION = "2024-01-18"


@dataclass
class CommerceResponse:
    """Outcome of one Square call."""
    ok: bool
    status: int
    data: Dict[str, Any] = field(default_factory=dict)
    raw_text: str = ""


def first_error_detail(data: Optional[Dict[str, Any]], fallback: str) -> str:
    """Return Square's `errors[0].detail` (or `.code`), else `fallback`."""
    errors = (data or {}).get("errors") or []
    if errors and isinstance(errors[0], dict):
        return errors[0].get("detail") or errors[0].get("code") or fallback
    return fallback


class CommerceClient:
    """Async Square API client with TTL-cached location and catalog lookups."""

    def __init__(
        self,
        access_token: str,
        base_url: str = DEFAULT_BASE_URL,
        version: str = DEFAULT_VERSION,
        timeout: float = 30.0,
        location_ttl: float = 600,
        catalog_ttl: float = 300,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.access_token = access_token
        self.base_url = base_url.rstrip("/")
        self.version = version
        self.location_ttl = location_ttl
        self.catalog_ttl = catalog_ttl
        self._client = httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "CommerceClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def _headers(self, version: Optional[str] = None) -> Dict[str, str]:
        return {
            "Square-Version": version or self.version,
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }

    async def fetch_json(
        self,
        path: str,
        method: str = "GET",
        body: Optional[Dict[str, Any]] = None,
        version: Optional[str] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> CommerceResponse:
        """Call Square and return status plus the parsed JSON body."""
        resp = await self._client.request(
            method,
            f"{self.base_url}{path}",
            headers=self._headers(version),
            json=body,
            params=params,
        )
        text = resp.text
        data: Dict[str, Any] = {}
        if text:
            try:
                parsed = resp.json()
                if isinstance(parsed, dict):
                    data = parsed
            except ValueError:
                data = {}
        if not resp.is_success:
            logger.warning("square: %s %s -> %s", method, path, resp.status_code)
        return CommerceResponse(ok=resp.is_success, status=resp.status_code, data=data, raw_text=text)

    # ── Cached lookups ───────────────────────────────────────────────────────

    async def get_location_id(self) -> str:
        """Return the first location id on the account (cached)."""
        cached = cache.location_cache.get("location_id")
        if cached:
            return cached

        result = await self.fetch_json("/locations")
        locations = result.data.get("locations") or []
        if not result.ok or not locations:
            message = first_error_detail(result.data, f"Square location lookup failed ({result.status})")
            raise CommerceAPIError(message, status=result.status, errors=result.data.get("errors"))

        location_id = locations[0]["id"]
        cache.location_cache.set("location_id", location_id, self.location_ttl)
        return location_id

    async def get_catalog_object(self, object_id: Optional[str]) -> Optional[Dict[str, Any]]:
        """Fetch one catalog object by id (cached). Returns None for an empty id."""
        if not object_id:
            return None
        cache_key = f"obj:{object_id}"
        cached = cache.catalog_object_cache.get(cache_key)
        if cached:
            return cached

        result = await self.fetch_json(f"/catalog/object/{quote(object_id, safe='')}")
        if not result.ok:
            message = first_error_detail(result.data, f"Catalog object lookup failed ({result.status})")
            raise CommerceAPIError(message, status=result.status, errors=result.data.get("errors"))

        obj = result.data.get("object")
        if obj:
            cache.catalog_object_cache.set(cache_key, obj, self.catalog_ttl)
        return obj

    async def list_catalog_objects_by_type(self, object_type: str) -> List[Dict[str, Any]]:
        """Return every catalog object of one type, following cursors (cached)."""
        cache_key = f"list:{object_type}"
        cached = cache.catalog_list_cache.get(cache_key)
        if cached is not None:
            return cached

        objects: List[Dict[str, Any]] = []
        cursor: Optional[str] = None
        while True:
            params = {"types": object_type}
            if cursor:
                params["cursor"] = cursor
            result = await self.fetch_json("/catalog/list", params=params)
            if not result.ok:
                message = first_error_detail(result.data, f"Catalog list lookup failed ({result.status})")
                raise CommerceAPIError(message, status=result.status, errors=result.data.get("errors"))
            objects.extend(result.data.get("objects") or [])
            cursor = result.data.get("cursor")
            if not cursor:
                break

        cache.catalog_list_cache.set(cache_key, objects, self.catalog_ttl)
        return objects

    # ── Thin POST wrappers ───────────────────────────────────────────────────

    async def search_catalog(self, body: Dict[str, Any], version: Optional[str] = None) -> CommerceResponse:
        return await self.fetch_json("/catalog/search", method="POST", body=body, version=version)

    async def create_order(self, idempotency_key: str, order: Dict[str, Any]) -> CommerceResponse:
        return await self.fetch_json(
            "/orders",
            method="POST",
            body={"idempotency_key": idempotency_key, "order": order},
        )

    async def create_payment(self, payment: Dict[str, Any]) -> CommerceResponse:
        return await self.fetch_json("/payments", method="POST", body=payment)

    async def create_payment_link(self, body: Dict[str, Any]) -> CommerceResponse:
        return await self.fetch_json("/online-checkout/payment-links", method="POST", body=body)
