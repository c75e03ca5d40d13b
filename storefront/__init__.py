"""
Storefront API.

Thin request handlers for a hair-care shop that proxy the Square commerce
API (catalog, orders, payments, payment links) and the Anthropic Messages
API (photo-based product recommendations).
"""

__version__ = "1.0.0"
