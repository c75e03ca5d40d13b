"""
Exceptions raised by storefront services.

`StorefrontError` and its subclasses carry the HTTP status and the message
the client sees; the app turns them into `{"error": message}` bodies.
`CommerceAPIError` and `EmailDeliveryError` describe upstream failures and
are translated by each handler into its own generic response.
"""
from typing import Any, Dict, List, Optional


class StorefrontError(Exception):
    """An error that maps directly onto an HTTP error response."""

    status_code = 400

    def __init__(self, message: str, status_code: Optional[int] = None, details: Any = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details

    def to_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class ConfigurationError(StorefrontError):
    """A required credential or setting is missing."""

    status_code = 500


class NotFoundError(StorefrontError):
    status_code = 404


class UnauthorizedError(StorefrontError):
    status_code = 401


class AIServiceError(StorefrontError):
    """The AI provider failed or returned something we could not parse."""

    status_code = 502


class CommerceAPIError(Exception):
    """A Square API call failed and the caller cannot continue."""

    def __init__(self, message: str, status: Optional[int] = None, errors: Optional[List[dict]] = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.errors = errors or []


class EmailDeliveryError(Exception):
    """Gmail token exchange or send failed."""
