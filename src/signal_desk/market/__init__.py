"""Market data access."""

from .client import OKXMarketClient

__all__ = ["OKXMarketClient"]
