"""
Transactional e-mail through the Gmail REST API.

Authentication is the OAuth2 refresh-token flow: every send exchanges the
refresh token for a short-lived access token, then posts a base64url
encoded RFC 822 message to `users/me/messages/send`.

Bodies are rendered from the Jinja2 templates in `storefront/templates`.
"""
import base64
from email.message import EmailMessage
from typing import Any, Dict, List, Optional

import httpx
from jinja2 import Environment, PackageLoader, select_autoescape

from storefront.config import StorefrontConfig
from storefront.errors import EmailDeliveryError
from storefront.logger import get_logger

logger = get_logger("mailer")

TOKEN_URL = "https://oauth2.googleapis.com/token"
SEND_URL = "https://gmail.googleapis.com/gmail/v1/users/me/messages/send"


def format_money(cents: Any) -> str:
    return f"{(cents or 0) / 100:.2f}"


def short_order_number(order_id: Optional[str]) -> str:
    return order_id[-8:].upper() if order_id else "---"


def header_value(value: Any) -> str:
    """Single-line header text; CR/LF would start a new header."""
    return " ".join(str(value or "").splitlines()).strip()


templates = Environment(
    loader=PackageLoader("storefront", "templates"),
    autoescape=select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
)
templates.filters["money"] = format_money
templates.filters["order_number"] = short_order_number


def render(template_name: str, **context: Any) -> str:
    return templates.get_template(template_name).render(**context)


class GmailMailer:
    """Sends mail as the store account. Unconfigured mailers log and skip."""

    def __init__(
        self,
        client_id: Optional[str],
        client_secret: Optional[str],
        refresh_token: Optional[str],
        from_email: Optional[str],
        from_name: str = "The Grasshopper",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.refresh_token = refresh_token
        self.from_email = from_email
        self.from_name = from_name
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_config(cls, config: StorefrontConfig, transport: Optional[httpx.AsyncBaseTransport] = None) -> "GmailMailer":
        return cls(
            client_id=config.gmail_client_id,
            client_secret=config.gmail_client_secret,
            refresh_token=config.gmail_refresh_token,
            from_email=config.gmail_from_email,
            from_name=config.store_name,
            timeout=config.http_timeout,
            transport=transport,
        )

    @property
    def configured(self) -> bool:
        return all([self.client_id, self.client_secret, self.refresh_token, self.from_email])

    def build_message(self, to: str, subject: str, text_body: str, html_body: Optional[str] = None) -> EmailMessage:
        """Plain text, or multipart/alternative when an HTML body is given."""
        message = EmailMessage()
        message["From"] = f'"{header_value(self.from_name)}" <{header_value(self.from_email)}>'
        message["To"] = header_value(to)
        message["Subject"] = header_value(subject)
        message.set_content(text_body or "")
        if html_body:
            message.add_alternative(html_body, subtype="html")
        return message

    @staticmethod
    def encode_message(message: EmailMessage) -> str:
        """base64url without padding, as the Gmail `raw` field expects."""
        return base64.urlsafe_b64encode(message.as_bytes()).decode("ascii").rstrip("=")

    async def _get_access_token(self, client: httpx.AsyncClient) -> str:
        resp = await client.post(TOKEN_URL, data={
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "refresh_token": self.refresh_token,
            "grant_type": "refresh_token",
        })
        try:
            data = resp.json()
        except ValueError:
            data = {}
        token = data.get("access_token") if isinstance(data, dict) else None
        if not token:
            raise EmailDeliveryError(f"Failed to get Gmail access token ({resp.status_code})")
        return token

    async def send(self, to: str, subject: str, text_body: str, html_body: Optional[str] = None) -> bool:
        """
        Send one message.

        Returns False (and sends nothing) when Gmail credentials are missing.
        Raises EmailDeliveryError when the token exchange or the send fails.
        """
        if not self.configured:
            logger.info("Gmail not configured, email not sent: to=%s subject=%s", to, subject)
            return False

        try:
            raw = self.encode_message(self.build_message(to, subject, text_body, html_body))
        except (ValueError, TypeError) as e:
            raise EmailDeliveryError(f"Could not build message: {e}") from e

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                token = await self._get_access_token(client)
                resp = await client.post(
                    SEND_URL,
                    headers={"Authorization": f"Bearer {token}"},
                    json={"raw": raw},
                )
        except httpx.HTTPError as e:
            raise EmailDeliveryError(f"Gmail request failed: {e}") from e

        if not resp.is_success:
            raise EmailDeliveryError(f"Gmail send failed ({resp.status_code}): {resp.text}")
        logger.info("Email sent: to=%s subject=%s", to, subject)
        return True

    async def send_quietly(self, to: Optional[str], subject: str, text_body: str, html_body: Optional[str] = None) -> bool:
        """Best-effort send: failures are logged, never raised."""
        if not to:
            return False
        try:
            return await self.send(to, subject, text_body, html_body)
        except EmailDeliveryError as e:
            logger.error("Email error (to=%s, subject=%s): %s", to, subject, e)
            return False


# ── Templates ────────────────────────────────────────────────────────────────

def render_customer_receipt(
    store: StorefrontConfig,
    items: List[Dict[str, Any]],
    subtotal_cents: int,
    shipping_cents: int,
    tax_cents: int,
    discount_cents: int,
    total_cents: int,
    order_id: Optional[str],
    order_type: str,
    promo_code: Optional[str] = None,
) -> str:
    """HTML receipt. `items` are {name, quantity, price_cents} (unit price)."""
    return render(
        "receipt.html",
        store=store,
        items=items,
        subtotal_cents=subtotal_cents,
        shipping_cents=shipping_cents,
        tax_cents=tax_cents,
        discount_cents=discount_cents,
        total_cents=total_cents,
        order_id=order_id,
        order_type=order_type,
        promo_code=promo_code,
    )


def render_customer_receipt_text(store: StorefrontConfig, order_id: Optional[str], total_cents: int) -> str:
    return render("receipt.txt", store=store, order_id=order_id, total_cents=total_cents)


def render_owner_notification(
    items: List[Dict[str, Any]],
    subtotal_cents: int,
    shipping_cents: int,
    tax_cents: int,
    discount_cents: int,
    total_cents: int,
    order_id: Optional[str],
    payment_id: str,
    order_type: str,
    phone: Optional[str] = None,
    email: Optional[str] = None,
    shipping_address: Optional[Dict[str, Any]] = None,
    promo_code: Optional[str] = None,
) -> str:
    return render(
        "owner_notification.txt",
        items=items,
        subtotal_cents=subtotal_cents,
        shipping_cents=shipping_cents,
        tax_cents=tax_cents,
        discount_cents=discount_cents,
        total_cents=total_cents,
        order_id=order_id,
        payment_id=payment_id,
        order_type=order_type,
        phone=phone,
        email=email,
        shipping_address=shipping_address if order_type != "pickup" else None,
        promo_code=promo_code,
    )


def render_pickup_link_notification(items: List[Dict[str, Any]], phone: str, total_cents: int, checkout_url: str) -> str:
    return render(
        "pickup_link_notification.txt",
        items=items,
        phone=phone,
        total_cents=total_cents,
        checkout_url=checkout_url,
    )
