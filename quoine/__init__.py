"""Quoine exchange REST API client."""

from .api import QuoineClient

__version__ = "0.1.0"

__all__ = ["QuoineClient"]
