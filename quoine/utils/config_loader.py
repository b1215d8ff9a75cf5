"""
Configuration loader for the Quoine API client.

Loads configuration from:
1. YAML file (config/config.yaml)
2. Environment variables (QUOINE_* prefix)
3. .env file (via python-dotenv)

Environment variables override YAML values.
API credentials MUST be set via environment (never in YAML).
"""

import os
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from config.settings import (
    ClientConfig,
    QuoineConfig,
    LoggingConfig,
)

logger = logging.getLogger(__name__)


class ConfigLoader:
    """
    Loads and validates client configuration.

    Configuration priority (highest to lowest):
    1. Environment variables (QUOINE_*)
    2. YAML config file
    3. Default values in dataclasses
    """

    ENV_PREFIX = "QUOINE_"

    def __init__(
        self,
        config_path: Optional[str] = None,
        env_file: Optional[str] = None,
    ):
        """
        Initialize config loader.

        Args:
            config_path: Path to YAML config file. If None, uses config/config.yaml
            env_file: Path to .env file. If None, uses .env in working directory
        """
        self._config_path = Path(config_path) if config_path else Path("config/config.yaml")
        self._env_file = Path(env_file) if env_file else Path(".env")

        if self._env_file.exists():
            load_dotenv(self._env_file)
            logger.debug(f"Loaded environment from {self._env_file}")

    def load(self) -> ClientConfig:
        """
        Load complete client configuration.

        Returns:
            ClientConfig with all settings populated

        Raises:
            ValueError: If configuration is invalid
        """
        yaml_config = self._load_yaml()
        config = self._build_config(yaml_config)

        errors = config.validate()
        if errors:
            for error in errors:
                logger.error(f"Config error: {error}")
            raise ValueError(f"Invalid configuration: {'; '.join(errors)}")

        return config

    def _load_yaml(self) -> Dict[str, Any]:
        """Load YAML configuration file."""
        if not self._config_path.exists():
            logger.info(f"Config file not found: {self._config_path}, using defaults")
            return {}

        with open(self._config_path) as f:
            config = yaml.safe_load(f) or {}

        if "api_key" in config.get("api", {}) or "api_secret" in config.get("api", {}):
            logger.warning("Credentials in YAML are ignored, use QUOINE_API_KEY/QUOINE_API_SECRET")

        logger.info(f"Loaded config from {self._config_path}")
        return config

    def _get_env(self, key: str, default: Any = None) -> Any:
        """
        Get environment variable with QUOINE_ prefix.

        Args:
            key: Variable name (without prefix)
            default: Default value if not set

        Returns:
            Environment variable value or default
        """
        full_key = f"{self.ENV_PREFIX}{key}"
        value = os.environ.get(full_key)

        if value is None:
            return default

        # Type conversion based on default type
        if isinstance(default, bool):
            return value.lower() in ("true", "1", "yes")
        elif isinstance(default, int):
            return int(value)
        elif isinstance(default, float):
            return float(value)

        return value

    def _build_config(self, yaml_config: Dict[str, Any]) -> ClientConfig:
        """Build ClientConfig from YAML and environment."""
        defaults = QuoineConfig()

        api_yaml = yaml_config.get("api", {})
        quoine = QuoineConfig(
            base_url=self._get_env(
                "BASE_URL",
                api_yaml.get("base_url", defaults.base_url)
            ),
            api_version=api_yaml.get("api_version", defaults.api_version),
            request_timeout=self._get_env(
                "REQUEST_TIMEOUT",
                api_yaml.get("request_timeout", defaults.request_timeout)
            ),
        )

        logging_yaml = yaml_config.get("logging", {})
        logging_config = LoggingConfig(
            level=self._get_env("LOG_LEVEL", logging_yaml.get("level", "INFO")),
            file_path=self._get_env("LOG_FILE", logging_yaml.get("file_path")),
        )

        return ClientConfig(quoine=quoine, logging=logging_config)


def load_config(
    config_path: Optional[str] = None,
    env_file: Optional[str] = None,
) -> ClientConfig:
    """Convenience wrapper around ConfigLoader."""
    return ConfigLoader(config_path=config_path, env_file=env_file).load()
