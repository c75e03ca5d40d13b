"""
Tests for the Square client plumbing, the TTL caches, env configuration and logging.
"""

import asyncio
import json
import logging

import httpx
import pytest

from storefront import cache
from storefront.cache import TTLCache
from storefront.config import StorefrontConfig, get_config, set_config
from storefront.errors import CommerceAPIError
from storefront.logger import configure_logging, get_logger, resolve_level
from storefront.square_client import CommerceClient, first_error_detail


def client_for(handler, **kwargs):
    return CommerceClient("sq-token", transport=httpx.MockTransport(handler), **kwargs)


class TestFetchJson:
    def test_headers_and_body(self):
        seen = {}

        def handler(request):
            seen["request"] = request
            return httpx.Response(200, json={"ok": 1})

        result = asyncio.run(client_for(handler).fetch_json("/orders", method="POST", body={"a": 1}))
        request = seen["request"]
        assert str(request.url) == "https://connect.squareup.com/v2/orders"
        assert request.headers["Authorization"] == "Bearer sq-token"
        assert request.headers["Square-Version"] == "2024-01-18"
        assert json.loads(request.content) == {"a": 1}
        assert (result.ok, result.status, result.data) == (True, 200, {"ok": 1})

    def test_version_override(self):
        seen = {}

        def handler(request):
            seen["version"] = request.headers["Square-Version"]
            return httpx.Response(200, json={})

        asyncio.run(client_for(handler).fetch_json("/catalog/search", method="POST", body={}, version="2024-11-20"))
        assert seen["version"] == "2024-11-20"

    @pytest.mark.parametrize("response", [
        httpx.Response(502, text="<html>Bad gateway</html>"),
        httpx.Response(204),
        httpx.Response(200, json=["not", "a", "dict"]),
    ])
    def test_lenient_parsing(self, response):
        result = asyncio.run(client_for(lambda request: response).fetch_json("/locations"))
        assert result.data == {}
        assert result.ok == response.is_success

    def test_first_error_detail(self):
        assert first_error_detail({"errors": [{"detail": "Card declined"}]}, "x") == "Card declined"
        assert first_error_detail({"errors": [{"code": "NOT_FOUND"}]}, "x") == "NOT_FOUND"
        assert first_error_detail({}, "fallback") == "fallback"
        assert first_error_detail(None, "fallback") == "fallback"


class TestCachedLookups:
    def test_location_id_cached(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json={"locations": [{"id": "L1"}, {"id": "L2"}]})

        client = client_for(handler)
        assert asyncio.run(client.get_location_id()) == "L1"
        assert asyncio.run(client.get_location_id()) == "L1"
        assert len(calls) == 1

    def test_location_error(self):
        client = client_for(lambda request: httpx.Response(401, json={"errors": [{"detail": "Unauthorized token"}]}))
        with pytest.raises(CommerceAPIError) as exc:
            asyncio.run(client.get_location_id())
        assert exc.value.message == "Unauthorized token"
        assert exc.value.status == 401

    def test_no_locations(self):
        client = client_for(lambda request: httpx.Response(200, json={"locations": []}))
        with pytest.raises(CommerceAPIError) as exc:
            asyncio.run(client.get_location_id())
        assert exc.value.message == "Square location lookup failed (200)"

    def test_catalog_object(self, square, commerce):
        assert asyncio.run(commerce.get_catalog_object(None)) is None
        obj = asyncio.run(commerce.get_catalog_object("VAR_OIL"))
        assert obj["id"] == "VAR_OIL"
        asyncio.run(commerce.get_catalog_object("VAR_OIL"))
        assert len(square.calls("GET", "/catalog/object/VAR_OIL")) == 1
        assert cache.catalog_object_cache.get("obj:VAR_OIL") == obj

    def test_catalog_object_missing_raises(self, commerce):
        with pytest.raises(CommerceAPIError) as exc:
            asyncio.run(commerce.get_catalog_object("GHOST"))
        assert exc.value.status == 404


class TestTTLCache:
    def test_expiry(self, monkeypatch):
        now = [1000.0]
        monkeypatch.setattr(cache.time, "time", lambda: now[0])
        ttl = TTLCache()
        ttl.set("k", "v", 10)
        assert ttl.get("k") == "v"
        now[0] += 10
        assert ttl.get("k") is None
        assert len(ttl) == 0

    def test_delete_and_clear(self):
        ttl = TTLCache()
        ttl.set("a", 1, 60)
        ttl.set("b", 2, 60)
        ttl.delete("a")
        assert ttl.get("a") is None
        ttl.clear()
        assert len(ttl) == 0


class TestConfig:
    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("SQUARE_ACCESS_TOKEN", "tok")
        monkeypatch.setenv("SQUARE_BASE_URL", "https://connect.squareupsandbox.com/v2/")
        monkeypatch.setenv("SALE_DISCOUNT", "0.25")
        monkeypatch.setenv("REDIS_PORT", "6380")
        monkeypatch.setenv("OWNER_EMAIL", "")
        monkeypatch.delenv("REDIS_URL", raising=False)
        monkeypatch.setenv("UPSTASH_REDIS_URL", "rediss://default:pw@example.upstash.io:6379")
        config = StorefrontConfig.from_env()
        assert config.square_access_token == "tok"
        assert config.square_base_url == "https://connect.squareupsandbox.com/v2"
        assert config.sale_discount == 0.25
        assert config.redis_port == 6380
        assert config.owner_email is None
        assert config.redis_url.startswith("rediss://")

    def test_gmail_configured(self):
        assert StorefrontConfig().gmail_configured is False
        assert StorefrontConfig(gmail_client_id="a", gmail_client_secret="b", gmail_refresh_token="c",
                                gmail_from_email="d").gmail_configured is True

    def test_global_instance(self):
        custom = StorefrontConfig(store_name="Test Shop")
        set_config(custom)
        assert get_config() is custom


class TestLogging:
    def test_level_from_config(self):
        set_config(StorefrontConfig(log_level="DEBUG"))
        try:
            assert configure_logging().level == logging.DEBUG
        finally:
            configure_logging("INFO")

    def test_explicit_level_wins(self):
        set_config(StorefrontConfig(log_level="DEBUG"))
        try:
            assert configure_logging("warning").level == logging.WARNING
            assert all(handler.level == logging.WARNING for handler in configure_logging("warning").handlers)
        finally:
            configure_logging("INFO")

    def test_unknown_level_is_info(self):
        assert resolve_level("chatty") == logging.INFO
        assert resolve_level(None) == logging.INFO
        assert resolve_level(logging.ERROR) == logging.ERROR

    def test_single_handler(self):
        configure_logging("INFO")
        configure_logging("INFO")
        assert len(get_logger().handlers) == 1
        assert get_logger("orders").name == "storefront.orders"
