"""
Quoine API Authentication.

Implements JWT (HS256) authentication for Quoine private API endpoints.
Every request carries a token signed over the request path, a millisecond
nonce and the API token id.

Usage:
    auth = QuoineAuth(api_key="...", api_secret="...")
    headers = auth.auth_headers("/orders/42")
"""

import os
import threading
import time
from dataclasses import dataclass, field
from typing import Dict, Optional

import jwt
from dotenv import load_dotenv

API_VERSION = 2
AUTH_HEADER = "X-Quoine-Auth"
API_VERSION_HEADER = "X-Quoine-API-Version"
SIGNING_ALGORITHM = "HS256"

API_KEY_ENV = "QUOINE_API_KEY"
API_SECRET_ENV = "QUOINE_API_SECRET"


@dataclass(frozen=True)
class QuoineCredentials:
    """API credentials for Quoine authentication."""
    api_key: str
    api_secret: str = field(repr=False)

    def __post_init__(self):
        """Validate credentials format."""
        if not self.api_key:
            raise ValueError("API key is required")
        if not self.api_secret:
            raise ValueError("API secret is required")


class NonceManager:
    """
    Thread-safe nonce manager.

    Nonces are millisecond timestamps, bumped by one when the clock has not
    advanced since the previous nonce, so they stay strictly increasing even
    with parallel requests.
    """

    def __init__(self):
        """Initialize nonce manager."""
        self._last_nonce = 0
        self._lock = threading.Lock()

    def get_nonce(self) -> int:
        """
        Get next nonce value (thread-safe).

        Returns:
            Strictly increasing nonce
        """
        with self._lock:
            nonce = int(time.time() * 1000)
            if nonce <= self._last_nonce:
                nonce = self._last_nonce + 1
            self._last_nonce = nonce
            return nonce


class QuoineAuth:
    """
    Authentication handler for Quoine private API.

    Quoine expects a JWT in the X-Quoine-Auth header:
    1. Build claims {path, nonce, token_id}
    2. Sign with HS256 using the API secret
    3. Send alongside the API version header

    The path is the request path only (no host, no query string).
    """

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        nonce_manager: NonceManager = None,
        api_version: int = API_VERSION,
    ):
        """
        Initialize authentication handler.

        Args:
            api_key: Quoine API token id
            api_secret: Quoine API secret
            nonce_manager: Optional shared nonce source
            api_version: Value of the X-Quoine-API-Version header, must be 2

        Raises:
            ValueError: On empty credentials or an unsupported API version
        """
        if api_version != API_VERSION:
            raise ValueError(
                f"Unsupported API version {api_version!r}, only {API_VERSION} is supported"
            )

        self._credentials = QuoineCredentials(api_key=api_key, api_secret=api_secret)
        self._nonces = nonce_manager or NonceManager()
        self._api_version = api_version

    @classmethod
    def from_credentials(cls, credentials: QuoineCredentials, **kwargs) -> "QuoineAuth":
        """Create from credentials object."""
        return cls(
            api_key=credentials.api_key,
            api_secret=credentials.api_secret,
            **kwargs,
        )

    @property
    def api_key(self) -> str:
        return self._credentials.api_key

    def generate_nonce(self) -> int:
        """
        Generate a unique, always-increasing nonce.

        Returns:
            Nonce value (milliseconds since epoch)
        """
        return self._nonces.get_nonce()

    def build_claims(self, path: str) -> Dict[str, object]:
        """Build the claim set for a single request."""
        return {
            "path": path,
            "nonce": self.generate_nonce(),
            "token_id": self._credentials.api_key,
        }

    def sign(self, path: str) -> str:
        """
        Sign a request path.

        Args:
            path: API endpoint path (e.g., "/orders/42"), exactly as dispatched

        Returns:
            Encoded JWT

        Raises:
            ValueError: If path is empty
        """
        if not path:
            raise ValueError("Request path is required for signing")

        return jwt.encode(
            self.build_claims(path),
            self._credentials.api_secret,
            algorithm=SIGNING_ALGORITHM,
        )

    def auth_headers(self, path: str) -> Dict[str, str]:
        """
        Get request headers with a freshly signed token.

        Args:
            path: API endpoint path

        Returns:
            Headers dict with content type, API version and auth token
        """
        return {
            "Content-Type": "application/json",
            API_VERSION_HEADER: str(self._api_version),
            AUTH_HEADER: self.sign(path),
        }



def load_credentials_from_env(env_file: Optional[str] = None) -> QuoineCredentials:
    """
    Load API credentials from the environment.

    Reads QUOINE_API_KEY and QUOINE_API_SECRET. When env_file is given it is
    loaded first with python-dotenv; variables already set in the process
    environment win over the file.

    Args:
        env_file: Optional .env file to load before reading

    Returns:
        QuoineCredentials instance

    Raises:
        ValueError: Naming every credential variable that is unset or empty
    """
    if env_file:
        load_dotenv(env_file)

    missing = [name for name in (API_KEY_ENV, API_SECRET_ENV) if not os.environ.get(name)]
    if missing:
        raise ValueError(f"Missing Quoine credentials: {', '.join(missing)} not set")

    return QuoineCredentials(
        api_key=os.environ[API_KEY_ENV],
        api_secret=os.environ[API_SECRET_ENV],
    )
