"""
Product reviews, stored in Redis.

Each product owns one Redis list, `reviews:{product_id}`, with one JSON
encoded review per element in submission order. Appends are RPUSH, so two
reviews posted at the same time both survive.

Supports a full Redis URL (REDIS_URL / UPSTASH_REDIS_URL, rediss:// for
TLS) or REDIS_HOST + REDIS_PORT + REDIS_DB.
"""

import json
import math
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import redis

from storefront.config import StorefrontConfig
from storefront.errors import StorefrontError
from storefront.logger import get_logger

logger = get_logger("reviews")

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


class ReviewStore:
    """Append-only review lists keyed by product id."""

    def __init__(self, client: "redis.Redis", namespace: str = "reviews"):
        self.client = client
        self.namespace = namespace

    @classmethod
    def from_config(cls, config: StorefrontConfig) -> "ReviewStore":
        if config.redis_url:
            client = redis.from_url(
                config.redis_url,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
            )
        else:
            client = redis.Redis(
                host=config.redis_host,
                port=config.redis_port,
                db=config.redis_db,
                decode_responses=True,
                socket_connect_timeout=2,
                socket_timeout=2,
            )
        return cls(client)

    def _key(self, product_id: str) -> str:
        return f"{self.namespace}:{product_id}"

    def ping(self) -> bool:
        try:
            return bool(self.client.ping())
        except redis.RedisError:
            return False

    def get_reviews(self, product_id: str) -> List[Dict[str, Any]]:
        reviews = []
        for raw in self.client.lrange(self._key(product_id), 0, -1):
            try:
                reviews.append(json.loads(raw))
            except ValueError:
                logger.warning("Skipping unreadable review in %s", self._key(product_id))
        return reviews

    def add_review(self, product_id: str, review: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Append and return the product's full review list."""
        self.client.rpush(self._key(product_id), json.dumps(review))
        return self.get_reviews(product_id)


def parse_rating(value: Any) -> Optional[int]:
    """Leading integer of `value` when it is 1..5."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        rating = int(value) if math.isfinite(value) else None
    else:
        match = _LEADING_INT.match(str(value))
        rating = int(match.group(1)) if match else None
    if rating is None or rating < 1 or rating > 5:
        return None
    return rating


def list_reviews(store: ReviewStore, product_id: Optional[str]) -> List[Dict[str, Any]]:
    """Reviews for a product; an unreachable store reads as no reviews."""
    if not product_id:
        raise StorefrontError("productId required")
    try:
        return store.get_reviews(product_id)
    except redis.RedisError as e:
        logger.error("Review read failed for %s: %s", product_id, e)
        return []


def submit_review(
    store: ReviewStore,
    product_id: Optional[str],
    name: Optional[str],
    rating: Any,
    text: Optional[str] = None,
    image: Optional[str] = None,
) -> List[Dict[str, Any]]:
    if not product_id:
        raise StorefrontError("productId required")
    if not name or not name.strip():
        raise StorefrontError("Name is required")
    rating_value = parse_rating(rating)
    if rating_value is None:
        raise StorefrontError("Rating must be 1-5")

    review: Dict[str, Any] = {
        "name": name.strip(),
        "rating": rating_value,
        "text": (text or "").strip(),
        "date": datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
    }
    if isinstance(image, str) and image.startswith("data:image/"):
        review["image"] = image

    try:
        reviews = store.add_review(product_id, review)
    except redis.RedisError as e:
        logger.exception("Review save failed for %s", product_id)
        raise StorefrontError("Failed to save review", status_code=500) from e
    logger.info("Review saved for %s (rating=%d)", product_id, rating_value)
    return reviews
