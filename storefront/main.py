"""
Storefront API - Main FastAPI Application

Thin request handlers in front of Square (catalog, orders, payments,
payment links), Claude (hair photo analysis), Gmail (order e-mails),
Redis (reviews) and the hosting platform's forms API (newsletter export).

Every error body is {"error": message}.
"""

from typing import Any, AsyncIterator, Dict, List, Optional
import time as _time

import httpx
import uvicorn
from anthropic import AsyncAnthropic
from fastapi import Depends, FastAPI, Header, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request as StarletteRequest
from starlette.responses import Response as StarletteResponse

from storefront import __version__
from storefront.catalog import get_product, list_products, search_products
from storefront.checkout import create_cart_checkout, create_pickup_checkout, create_quick_checkout
from storefront.config import StorefrontConfig, get_config
from storefront.errors import CommerceAPIError, ConfigurationError, StorefrontError
from storefront.logger import get_logger
from storefront.mailer import GmailMailer
from storefront.newsletter import CSV_FILENAME, FormsClient, check_admin_key, fetch_newsletter_submissions, to_csv, to_json
from storefront.orders import process_payment
from storefront.pickup import check_pickup_eligibility
from storefront.promos import build_discount_response, resolve_promo_code
from storefront.quote import calculate_shipping
from storefront.recommender import analyze_hair
from storefront.reviews import ReviewStore, list_reviews, submit_review
from storefront.schemas import (
    CartItem,
    CheckoutRequest,
    HairAnalysisRequest,
    PickupCheckRequest,
    PickupCheckoutRequest,
    ProcessPaymentRequest,
    PromoRequest,
    QuickCheckoutRequest,
    ReviewRequest,
    ShippingQuoteRequest,
)
from storefront.square_client import CommerceClient

logger = get_logger("main")


def error_response(status_code: int, message: str, details: Any = None) -> JSONResponse:
    body: Dict[str, Any] = {"error": message}
    if details is not None:
        body["details"] = details
    return JSONResponse(status_code=status_code, content=body)


def wire_items(items: Optional[List[CartItem]]) -> Optional[List[Dict[str, Any]]]:
    if items is None:
        return None
    return [item.model_dump(by_alias=True, exclude_unset=True) for item in items]


# ─── Dependencies ────────────────────────────────────────────────────────────

def get_settings() -> StorefrontConfig:
    return get_config()


async def get_commerce_client(config: StorefrontConfig = Depends(get_settings)) -> AsyncIterator[CommerceClient]:
    client = CommerceClient(
        access_token=config.square_access_token or "",
        base_url=config.square_base_url,
        version=config.square_version,
        timeout=config.http_timeout,
        location_ttl=config.location_cache_ttl,
        catalog_ttl=config.catalog_cache_ttl,
    )
    try:
        yield client
    finally:
        await client.aclose()


def get_mailer(config: StorefrontConfig = Depends(get_settings)) -> GmailMailer:
    return GmailMailer.from_config(config)


_review_store: Optional[ReviewStore] = None


def get_review_store(config: StorefrontConfig = Depends(get_settings)) -> ReviewStore:
    global _review_store
    if _review_store is None:
        _review_store = ReviewStore.from_config(config)
    return _review_store


def get_ai_client(config: StorefrontConfig = Depends(get_settings)) -> Optional[AsyncAnthropic]:
    if not config.anthropic_api_key:
        return None
    return AsyncAnthropic(api_key=config.anthropic_api_key, timeout=config.http_timeout * 2)


async def get_forms_client(config: StorefrontConfig = Depends(get_settings)) -> AsyncIterator[FormsClient]:
    forms = FormsClient(config.netlify_api_token or "", config.netlify_api_url, config.http_timeout)
    try:
        yield forms
    finally:
        await forms.aclose()


# ─── Application ─────────────────────────────────────────────────────────────

app = FastAPI(
    title="Storefront API",
    description="Catalog, checkout, payments and recommendations for the shop",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[get_config().site_origin],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "x-admin-key"],
)


class LatencyLoggingMiddleware(BaseHTTPMiddleware):
    """Logs every non-OPTIONS request with method, path, status, and duration_ms."""

    async def dispatch(self, request: StarletteRequest, call_next) -> StarletteResponse:
        if request.method == "OPTIONS":
            return await call_next(request)
        t0 = _time.perf_counter()
        response = await call_next(request)
        duration_ms = round((_time.perf_counter() - t0) * 1000, 1)
        logger.info(
            "[LATENCY] %s %s -> %d  %.1fms",
            request.method, request.url.path, response.status_code, duration_ms,
        )
        return response


app.add_middleware(LatencyLoggingMiddleware)


@app.exception_handler(StorefrontError)
async def storefront_error_handler(request: Request, exc: StorefrontError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if any(err.get("type") == "json_invalid" for err in errors):
        return error_response(400, "Invalid JSON body")
    logger.info("Rejected body for %s: %s", request.url.path, errors[:3])
    return error_response(400, "Invalid request body")


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 405:
        return error_response(405, "Method not allowed")
    return error_response(exc.status_code, str(exc.detail))


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Last resort for anything a handler did not translate itself."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return error_response(500, "Internal server error")


# ─── Health ──────────────────────────────────────────────────────────────────

@app.get("/health")
def health_check(store: ReviewStore = Depends(get_review_store)):
    health_status = {"service": "healthy", "version": __version__, "reviews_store": "unknown"}
    if store.ping():
        health_status["reviews_store"] = "healthy"
    else:
        health_status["reviews_store"] = "unhealthy: no response"
        health_status["service"] = "degraded"
    return health_status


# ─── Catalog ─────────────────────────────────────────────────────────────────

@app.get("/api/config")
async def api_config(config: StorefrontConfig = Depends(get_settings), client: CommerceClient = Depends(get_commerce_client)):
    """Application and location ids for the browser payment form."""
    if not config.square_application_id:
        raise ConfigurationError("SQUARE_APPLICATION_ID not configured")
    try:
        location_id = await client.get_location_id()
    except CommerceAPIError as e:
        logger.error("Location lookup failed: %s", e.message)
        return error_response(400, "No Square location found")
    except httpx.HTTPError:
        logger.exception("Config error")
        return error_response(500, "Failed to load config")
    return {"applicationId": config.square_application_id, "locationId": location_id}


@app.get("/api/products")
async def api_products(config: StorefrontConfig = Depends(get_settings), client: CommerceClient = Depends(get_commerce_client)):
    if not config.square_access_token:
        raise ConfigurationError("Missing Square API token")
    try:
        return await list_products(client)
    except CommerceAPIError as e:
        logger.exception("Error fetching products")
        return error_response(500, e.message or "Failed to fetch products")
    except httpx.HTTPError:
        logger.exception("Error fetching products")
        return error_response(500, "Failed to fetch products")


@app.get("/api/product")
async def api_product(id: Optional[str] = Query(None), client: CommerceClient = Depends(get_commerce_client)):
    try:
        return await get_product(client, id)
    except StorefrontError:
        raise
    except Exception:
        logger.exception("Error fetching product %s", id)
        return error_response(500, "Failed to fetch product")


@app.get("/api/search")
async def api_search(q: Optional[str] = Query(None), client: CommerceClient = Depends(get_commerce_client)):
    try:
        return await search_products(client, q)
    except Exception:
        logger.exception("Search failed for %r", q)
        return error_response(500, "Failed to search")


# ─── Cart ────────────────────────────────────────────────────────────────────

@app.post("/api/calculate-shipping")
async def api_calculate_shipping(request: Optional[ShippingQuoteRequest] = None, client: CommerceClient = Depends(get_commerce_client)):
    """
    Shipping for a cart, in cents.

    Flat per-unit rates by default; UPS zone pricing on the estimated weight
    when a destination `state` is given.
    """
    request = request or ShippingQuoteRequest()
    try:
        return await calculate_shipping(client, wire_items(request.items), request.state)
    except StorefrontError:
        raise
    except Exception:
        logger.exception("Calculate shipping error")
        return error_response(500, "Failed to calculate shipping")


@app.post("/api/validate-promo")
async def api_validate_promo(
    request: Optional[PromoRequest] = None,
    config: StorefrontConfig = Depends(get_settings),
    client: CommerceClient = Depends(get_commerce_client),
):
    request = request or PromoRequest()
    try:
        resolved = await resolve_promo_code(client, request.code, version=config.square_promo_version)
    except httpx.HTTPError:
        logger.exception("Promo lookup failed")
        return {"valid": False, "message": "Unable to validate promo code. Please try again."}
    if not resolved.valid:
        return {"valid": False, "message": resolved.message}
    return build_discount_response(resolved).to_dict()


@app.post("/api/check-pickup")
def api_check_pickup(request: Optional[PickupCheckRequest] = None):
    request = request or PickupCheckRequest()
    return check_pickup_eligibility(request.zip)


# ─── Checkout ────────────────────────────────────────────────────────────────

@app.post("/api/checkout")
async def api_checkout(
    request: Optional[CheckoutRequest] = None,
    config: StorefrontConfig = Depends(get_settings),
    client: CommerceClient = Depends(get_commerce_client),
):
    request = request or CheckoutRequest()
    if not config.square_access_token:
        raise ConfigurationError("Checkout service not configured")
    try:
        return await create_cart_checkout(client, wire_items(request.items))
    except StorefrontError:
        raise
    except Exception:
        logger.exception("Checkout error")
        return error_response(500, "Failed to create checkout")


@app.post("/api/checkout-quick")
async def api_checkout_quick(
    request: Optional[QuickCheckoutRequest] = None,
    config: StorefrontConfig = Depends(get_settings),
    client: CommerceClient = Depends(get_commerce_client),
):
    request = request or QuickCheckoutRequest()
    if not config.square_access_token:
        raise ConfigurationError("Checkout service not configured")
    try:
        return await create_quick_checkout(client, request.variation_id, request.quantity)
    except StorefrontError:
        raise
    except Exception:
        logger.exception("Quick checkout error")
        return error_response(500, "Failed to create checkout")


@app.post("/api/checkout-pickup")
async def api_checkout_pickup(
    request: Optional[PickupCheckoutRequest] = None,
    config: StorefrontConfig = Depends(get_settings),
    client: CommerceClient = Depends(get_commerce_client),
    mailer: GmailMailer = Depends(get_mailer),
):
    request = request or PickupCheckoutRequest()
    try:
        return await create_pickup_checkout(client, mailer, config, wire_items(request.items), request.phone)
    except StorefrontError:
        raise
    except Exception:
        logger.exception("Pickup checkout error")
        return error_response(500, "Failed to create pickup checkout")


@app.post("/api/process-payment")
async def api_process_payment(
    request: Optional[ProcessPaymentRequest] = None,
    config: StorefrontConfig = Depends(get_settings),
    client: CommerceClient = Depends(get_commerce_client),
    mailer: GmailMailer = Depends(get_mailer),
):
    """Charge a card/wallet token (or FREE_ORDER) for a server-priced order."""
    request = request or ProcessPaymentRequest()
    try:
        return await process_payment(
            client,
            mailer,
            config,
            source_id=request.source_id,
            items=wire_items(request.items),
            order_type=request.order_type,
            phone=request.phone,
            shipping_address=request.shipping_address.as_wire() if request.shipping_address else None,
            promo_code=request.promo_code,
            discount_cents=request.discount_cents,
            tax_cents=request.tax_cents,
            idempotency_key=request.idempotency_key,
        )
    except StorefrontError:
        raise
    except Exception:
        logger.exception("Process payment error")
        return error_response(500, "Payment processing failed")


# ─── Recommendations ─────────────────────────────────────────────────────────

@app.post("/api/hair-analysis")
async def api_hair_analysis(
    request: Optional[HairAnalysisRequest] = None,
    config: StorefrontConfig = Depends(get_settings),
    client: CommerceClient = Depends(get_commerce_client),
    ai_client: Optional[AsyncAnthropic] = Depends(get_ai_client),
):
    if ai_client is None:
        raise ConfigurationError("AI service not configured")
    if not config.square_access_token:
        raise ConfigurationError("Product service not configured")
    request = request or HairAnalysisRequest()
    try:
        return await analyze_hair(
            ai_client, client, config, request.image,
            mens_mode=request.mens_mode, doux_focus=request.doux_focus,
        )
    except StorefrontError:
        raise
    except Exception:
        logger.exception("Hair analysis error")
        return error_response(500, "Something went wrong. Please try again.")


# ─── Reviews ─────────────────────────────────────────────────────────────────

@app.get("/api/reviews")
def api_get_reviews(
    product_id: Optional[str] = Query(None, alias="productId"),
    store: ReviewStore = Depends(get_review_store),
):
    return list_reviews(store, product_id)


@app.post("/api/reviews")
def api_post_reviews(request: Optional[ReviewRequest] = None, store: ReviewStore = Depends(get_review_store)):
    request = request or ReviewRequest()
    return submit_review(store, request.product_id, request.name, request.rating, request.text, request.image)


# ─── Admin ───────────────────────────────────────────────────────────────────

@app.get("/api/export-emails")
async def api_export_emails(
    key: Optional[str] = Query(None),
    format: str = Query("json"),
    x_admin_key: Optional[str] = Header(None),
    config: StorefrontConfig = Depends(get_settings),
    forms: FormsClient = Depends(get_forms_client),
):
    """Newsletter sign-ups as JSON (admin table) or a CSV download."""
    check_admin_key(config, key or x_admin_key)
    try:
        submissions = await fetch_newsletter_submissions(config, forms)
    except httpx.HTTPError as e:
        logger.exception("Export emails error")
        return error_response(500, str(e))

    if format == "csv":
        return Response(
            content=to_csv(submissions),
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{CSV_FILENAME}"'},
        )
    return to_json(submissions)


#
# Development Server
#

if __name__ == "__main__":
    uvicorn.run(
        "storefront.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True
    )
