"""Configuration module for the Quoine API client."""

from .settings import (
    QuoineConfig,
    LoggingConfig,
    ClientConfig,
)

__all__ = [
    "QuoineConfig",
    "LoggingConfig",
    "ClientConfig",
]
