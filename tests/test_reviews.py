"""
Tests for the Redis-backed review store.

Most tests use the in-memory FakeRedis from conftest. `TestLiveRedis` uses a
real local Redis instance (localhost:6379, db=15) and is skipped when Redis
is not available.
"""

import json
import os
import re

import pytest

from storefront.config import StorefrontConfig
from storefront.errors import StorefrontError
from storefront.reviews import ReviewStore, list_reviews, parse_rating, submit_review

from conftest import FakeRedis


@pytest.fixture
def store(fake_redis):
    return ReviewStore(fake_redis)


class TestParseRating:
    @pytest.mark.parametrize("raw,expected", [
        (5, 5), ("4", 4), (" 3 stars", 3), (1.9, 1),
        (0, None), (6, None), ("abc", None), (None, None), (True, None), (float("inf"), None),
    ])
    def test_parse(self, raw, expected):
        assert parse_rating(raw) == expected


class TestSubmitReview:
    def test_appends_and_returns_list(self, store, fake_redis):
        submit_review(store, "ITEM_OIL", "Ada", 5, "Love it")
        reviews = submit_review(store, "ITEM_OIL", "  Grace ", "4", "  Nice shine  ")
        assert [r["name"] for r in reviews] == ["Ada", "Grace"]
        assert reviews[1]["rating"] == 4
        assert reviews[1]["text"] == "Nice shine"
        assert re.fullmatch(r"\d{4}-\d\d-\d\dT\d\d:\d\d:\d\d\.\d{3}Z", reviews[1]["date"])
        assert len(fake_redis.lists["reviews:ITEM_OIL"]) == 2
        assert json.loads(fake_redis.lists["reviews:ITEM_OIL"][0])["name"] == "Ada"

    def test_keeps_only_data_image_urls(self, store):
        reviews = submit_review(store, "P1", "Ada", 5, image="data:image/png;base64,AAAA")
        assert reviews[0]["image"] == "data:image/png;base64,AAAA"
        reviews = submit_review(store, "P1", "Ada", 5, image="https://evil.example.com/x.png")
        assert "image" not in reviews[1]

    @pytest.mark.parametrize("product_id,name,rating,message", [
        ("", "Ada", 5, "productId required"),
        ("P1", "", 5, "Name is required"),
        ("P1", "   ", 5, "Name is required"),
        ("P1", "Ada", 0, "Rating must be 1-5"),
        ("P1", "Ada", "ten", "Rating must be 1-5"),
    ])
    def test_validation(self, store, product_id, name, rating, message):
        with pytest.raises(StorefrontError) as exc:
            submit_review(store, product_id, name, rating)
        assert exc.value.message == message
        assert exc.value.status_code == 400

    def test_store_failure(self):
        with pytest.raises(StorefrontError) as exc:
            submit_review(ReviewStore(FakeRedis(broken=True)), "P1", "Ada", 5)
        assert exc.value.message == "Failed to save review"
        assert exc.value.status_code == 500


class TestListReviews:
    def test_empty_product(self, store):
        assert list_reviews(store, "NOTHING") == []

    def test_requires_product_id(self, store):
        with pytest.raises(StorefrontError) as exc:
            list_reviews(store, None)
        assert exc.value.message == "productId required"

    def test_store_failure_reads_as_empty(self):
        assert list_reviews(ReviewStore(FakeRedis(broken=True)), "P1") == []

    def test_skips_unreadable_entries(self, store, fake_redis):
        fake_redis.lists["reviews:P1"] = ["{broken", json.dumps({"name": "Ada", "rating": 5})]
        assert list_reviews(store, "P1") == [{"name": "Ada", "rating": 5}]


def test_ping(fake_redis):
    assert ReviewStore(fake_redis).ping() is True
    assert ReviewStore(FakeRedis(broken=True)).ping() is False


# ── Live Redis ───────────────────────────────────────────────────────────

@pytest.fixture
def live_store():
    config = StorefrontConfig(redis_host=os.getenv("REDIS_HOST", "localhost"), redis_db=15)
    store = ReviewStore.from_config(config)
    store.namespace = "reviews-test"
    if not store.ping():
        pytest.skip("Redis not available")
    for key in store.client.scan_iter("reviews-test:*"):
        store.client.delete(key)
    yield store
    for key in store.client.scan_iter("reviews-test:*"):
        store.client.delete(key)


class TestLiveRedis:
    def test_round_trip(self, live_store):
        submit_review(live_store, "P1", "Ada", 5, "Great")
        reviews = submit_review(live_store, "P1", "Grace", 3)
        assert [(r["name"], r["rating"]) for r in reviews] == [("Ada", 5), ("Grace", 3)]
        assert list_reviews(live_store, "P1") == reviews
