"""
Configuration management for the storefront.

All credentials and tunables come from environment variables. A `.env`
file in the working directory is loaded first so local development works
without exporting anything.
"""
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return float(raw)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


@dataclass
class StorefrontConfig:
    """Configuration for the storefront service."""

    # Square commerce API
    square_access_token: Optional[str] = None
    square_application_id: Optional[str] = None
    square_base_url: str = "https://connect.squareup.com/v2"
    square_version: str = "2024-01-18"
    square_promo_version: str = "2024-11-20"   # discounts / pricing rules search

    # CORS
    site_origin: str = "https://shopgrasshopper.com"

    # Store identity (e-mails, receipts)
    store_name: str = "The Grasshopper"
    store_phone: str = ""
    store_address: str = ""
    owner_email: Optional[str] = None

    # Anthropic (hair analysis)
    anthropic_api_key: Optional[str] = None
    ai_model: str = "claude-sonnet-4-5-20250929"
    ai_max_tokens: int = 1500

    # Gmail API (OAuth2 refresh token flow)
    gmail_client_id: Optional[str] = None
    gmail_client_secret: Optional[str] = None
    gmail_refresh_token: Optional[str] = None
    gmail_from_email: Optional[str] = None

    # Admin newsletter export (hosting platform forms API)
    admin_key: Optional[str] = None
    netlify_api_token: Optional[str] = None
    netlify_site_id: Optional[str] = None
    netlify_api_url: str = "https://api.netlify.com"
    newsletter_form_name: str = "newsletter"

    # Reviews store
    redis_url: Optional[str] = None
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0

    # Pricing
    sale_discount: float = 0.20
    tax_rate: float = 0.0725
    tax_label: str = "NC Sales Tax (7.25%)"

    # Caching (seconds)
    location_cache_ttl: int = 600
    catalog_cache_ttl: int = 300

    http_timeout: float = 30.0
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "StorefrontConfig":
        """Load configuration from environment variables."""
        return cls(
            square_access_token=os.getenv("SQUARE_ACCESS_TOKEN") or None,
            square_application_id=os.getenv("SQUARE_APPLICATION_ID") or None,
            square_base_url=os.getenv("SQUARE_BASE_URL", cls.square_base_url).rstrip("/"),
            square_version=os.getenv("SQUARE_VERSION", cls.square_version),
            square_promo_version=os.getenv("SQUARE_PROMO_VERSION", cls.square_promo_version),
            site_origin=os.getenv("SITE_ORIGIN", cls.site_origin),
            store_name=os.getenv("STORE_NAME", cls.store_name),
            store_phone=os.getenv("STORE_PHONE", cls.store_phone),
            store_address=os.getenv("STORE_ADDRESS", cls.store_address),
            owner_email=os.getenv("OWNER_EMAIL") or None,
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY") or None,
            ai_model=os.getenv("AI_MODEL", cls.ai_model),
            ai_max_tokens=_env_int("AI_MAX_TOKENS", cls.ai_max_tokens),
            gmail_client_id=os.getenv("GMAIL_CLIENT_ID") or None,
            gmail_client_secret=os.getenv("GMAIL_CLIENT_SECRET") or None,
            gmail_refresh_token=os.getenv("GMAIL_REFRESH_TOKEN") or None,
            gmail_from_email=os.getenv("GMAIL_FROM_EMAIL") or None,
            admin_key=os.getenv("ADMIN_KEY") or None,
            netlify_api_token=os.getenv("NETLIFY_API_TOKEN") or None,
            netlify_site_id=os.getenv("NETLIFY_SITE_ID") or None,
            netlify_api_url=os.getenv("NETLIFY_API_URL", cls.netlify_api_url).rstrip("/"),
            newsletter_form_name=os.getenv("NEWSLETTER_FORM_NAME", cls.newsletter_form_name),
            redis_url=os.getenv("REDIS_URL") or os.getenv("UPSTASH_REDIS_URL") or None,
            redis_host=os.getenv("REDIS_HOST", cls.redis_host),
            redis_port=_env_int("REDIS_PORT", cls.redis_port),
            redis_db=_env_int("REDIS_DB", cls.redis_db),
            sale_discount=_env_float("SALE_DISCOUNT", cls.sale_discount),
            tax_rate=_env_float("TAX_RATE", cls.tax_rate),
            tax_label=os.getenv("TAX_LABEL", cls.tax_label),
            location_cache_ttl=_env_int("LOCATION_CACHE_TTL", cls.location_cache_ttl),
            catalog_cache_ttl=_env_int("CATALOG_CACHE_TTL", cls.catalog_cache_ttl),
            http_timeout=_env_float("HTTP_TIMEOUT", cls.http_timeout),
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
        )

    @property
    def gmail_configured(self) -> bool:
        return all([
            self.gmail_client_id,
            self.gmail_client_secret,
            self.gmail_refresh_token,
            self.gmail_from_email,
        ])


# Global config instance
_config: Optional[StorefrontConfig] = None


def get_config() -> StorefrontConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = StorefrontConfig.from_env()
    return _config


def set_config(config: Optional[StorefrontConfig]) -> None:
    """Set (or reset, with None) the global configuration instance."""
    global _config
    _config = config
