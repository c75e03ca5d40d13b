"""
Storefront logging.

All modules log under the "storefront" logger to stdout. The level comes
from StorefrontConfig.log_level (LOG_LEVEL) and can be changed at runtime
with configure_logging().
"""
import logging
import sys
from typing import Optional, Union

from storefront.config import get_config

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

logger = logging.getLogger("storefront")


def resolve_level(level: Union[str, int, None]) -> int:
    """Numeric level for a name like "debug"; unknown names fall back to INFO."""
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level or "INFO").strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logging(level: Union[str, int, None] = None) -> logging.Logger:
    """Attach the stdout handler once and apply the level (config default)."""
    numeric = resolve_level(level if level is not None else get_config().log_level)
    logger.setLevel(numeric)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(handler)
    for handler in logger.handlers:
        handler.setLevel(numeric)
    # uvicorn configures the root logger too
    logger.propagate = False
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Child logger "storefront.<name>", or the package logger itself."""
    if name:
        return logging.getLogger(f"storefront.{name}")
    return logger


configure_logging()
