"""
Configuration dataclasses for the Quoine API client.

All configuration parameters are defined here with sensible defaults.
Values can be overridden via config.yaml or environment variables.
Credentials are never part of these objects.
"""

from dataclasses import dataclass, field
from typing import List, Optional


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


# ===========================================
# QUOINE API CONFIGURATION
# ===========================================

@dataclass
class QuoineConfig:
    """Quoine API configuration."""

    # API endpoint
    base_url: str = "https://api.quoine.com"

    # Sent as X-Quoine-API-Version
    api_version: int = 2

    request_timeout: int = 30  # seconds


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    file_path: Optional[str] = None


# ===========================================
# MAIN CLIENT CONFIGURATION
# ===========================================

@dataclass
class ClientConfig:
    """Complete client configuration combining all sub-configs."""

    quoine: QuoineConfig = field(default_factory=QuoineConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def validate(self) -> List[str]:
        """
        Validate configuration and return list of errors.

        Returns:
            List of error messages (empty if valid)
        """
        errors = []

        if not self.quoine.base_url.startswith(("http://", "https://")):
            errors.append(
                f"Base URL must be http(s), got {self.quoine.base_url!r}"
            )

        if self.quoine.base_url.endswith("/"):
            errors.append("Base URL must not end with '/'")

        if self.quoine.request_timeout <= 0:
            errors.append(
                f"Request timeout must be positive, got {self.quoine.request_timeout}"
            )

        if self.quoine.api_version != 2:
            errors.append(
                f"Only API version 2 is supported, got {self.quoine.api_version}"
            )

        if self.logging.level.upper() not in LOG_LEVELS:
            errors.append(f"Unknown log level {self.logging.level!r}")

        return errors
