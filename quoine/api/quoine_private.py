"""
Quoine Private REST API Client.

Authenticated client for Quoine endpoints:
- Accounts, balances and products
- Orders (query, create, cancel)
- Trading accounts and leverage
- Trades (query, close, update) and trade loans

Every request is signed with a fresh JWT over its path. Mutating
operations translate failures into typed errors (see quoine_errors);
read-only operations let requests exceptions propagate.
"""

import json
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from config.settings import ClientConfig
from .auth import (
    API_VERSION,
    NonceManager,
    QuoineAuth,
    QuoineCredentials,
    load_credentials_from_env,
)
from .payloads import (
    CloseAllTradeRequest,
    CloseTradeRequest,
    LeverageLevelUpdate,
    Number,
    OrderRequest,
    OrderSide,
    TradeFilter,
    TradeStatus,
    TradeUpdate,
)
from .quoine_errors import ErrorKind, handle_error, raise_for_kind

logger = logging.getLogger(__name__)

QueryParams = Union[Mapping[str, Any], Sequence[Tuple[str, Any]]]


class QuoineClient:
    """
    Client for Quoine private (authenticated) REST API.

    Usage:
        # From environment variables
        client = QuoineClient.from_env()

        # With explicit credentials
        client = QuoineClient(
            api_key="...",
            api_secret="...",
        )

        # Get balances
        balances = client.balances()

        # Place order
        order = client.create_order(
            side=OrderSide.BUY,
            size=0.01,
            price=500000,
            product_id=5,
        )
    """

    BASE_URL = "https://api.quoine.com"

    # Endpoint paths
    CRYPTO_ACCOUNTS_PATH = "/crypto_accounts"
    BALANCES_PATH = "/accounts/balance"
    ORDERS_PATH = "/orders"
    PRODUCTS_PATH = "/products"
    TRADING_ACCOUNTS_PATH = "/trading_accounts"
    TRADES_PATH = "/trades"

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        url: str = BASE_URL,
        timeout: int = 30,
        api_version: int = API_VERSION,
        nonce_manager: Optional[NonceManager] = None,
    ):
        """
        Initialize Quoine client.

        Args:
            api_key: Quoine API token id
            api_secret: Quoine API secret
            url: API base URL (no trailing slash)
            timeout: Request timeout in seconds
            api_version: Value of the X-Quoine-API-Version header, only 2 is accepted
            nonce_manager: Optional nonce source shared between clients
        """
        self._auth = QuoineAuth(
            api_key,
            api_secret,
            nonce_manager=nonce_manager,
            api_version=api_version,
        )
        self._url = url
        self._timeout = timeout

        self._session = requests.Session()
        retry_strategy = Retry(
            total=0,  # Failures surface to the caller
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self._session.mount("https://", adapter)
        self._session.mount("http://", adapter)

        logger.info(f"Initialized Quoine client for {url}")

    @classmethod
    def from_env(cls, env_file: Optional[str] = None, **kwargs) -> "QuoineClient":
        """
        Create client from environment variables.

        Expects QUOINE_API_KEY and QUOINE_API_SECRET, optionally from a .env file.
        """
        credentials = load_credentials_from_env(env_file)
        return cls.from_credentials(credentials, **kwargs)

    @classmethod
    def from_credentials(
        cls,
        credentials: QuoineCredentials,
        **kwargs,
    ) -> "QuoineClient":
        """Create client from credentials object."""
        return cls(
            api_key=credentials.api_key,
            api_secret=credentials.api_secret,
            **kwargs,
        )

    @classmethod
    def from_config(
        cls,
        config: ClientConfig,
        credentials: Optional[QuoineCredentials] = None,
    ) -> "QuoineClient":
        """
        Create client from loaded configuration.

        Credentials come from the environment unless given explicitly.
        """
        if credentials is None:
            credentials = load_credentials_from_env()

        return cls.from_credentials(
            credentials,
            url=config.quoine.base_url,
            timeout=config.quoine.request_timeout,
            api_version=config.quoine.api_version,
        )

    @property
    def key(self) -> str:
        """API token id this client signs with."""
        return self._auth.api_key

    @property
    def url(self) -> str:
        """API base URL."""
        return self._url

    # ==========================================
    # REQUEST DISPATCH
    # ==========================================

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[QueryParams] = None,
        payload: Optional[Any] = None,
        skip_decode: bool = False,
    ) -> Any:
        """
        Make authenticated API request.

        The token is signed over path alone; query parameters are not
        part of the signed claims.

        Args:
            method: HTTP verb
            path: API endpoint path
            params: Query parameters, as a mapping or (key, value) pairs
            payload: JSON body (omitted when None)
            skip_decode: Return the raw response text instead of JSON

        Returns:
            Decoded JSON response, or response text

        Raises:
            requests.HTTPError: On non-2xx status
            requests.RequestException: On connection failure or timeout
        """
        headers = self._auth.auth_headers(path)
        url = f"{self._url}{path}"
        data = json.dumps(payload) if payload is not None else None

        logger.debug(f"{method} {path}")

        response = self._session.request(
            method,
            url,
            params=params,
            data=data,
            headers=headers,
            timeout=self._timeout,
        )
        response.raise_for_status()

        if skip_decode:
            return response.text
        return response.json()

    def get(
        self,
        path: str,
        params: Optional[QueryParams] = None,
        skip_decode: bool = False,
    ) -> Any:
        """GET path, with optional query parameters."""
        return self._request("GET", path, params=params, skip_decode=skip_decode)

    def post(self, path: str, payload: Any, skip_decode: bool = False) -> Any:
        """POST a JSON payload to path."""
        return self._request("POST", path, payload=payload, skip_decode=skip_decode)

    def put(
        self,
        path: str,
        payload: Optional[Any] = None,
        skip_decode: bool = False,
    ) -> Any:
        """PUT to path, with an optional JSON payload."""
        return self._request("PUT", path, payload=payload, skip_decode=skip_decode)

    def delete(self, path: str, skip_decode: bool = False) -> Any:
        """DELETE path."""
        return self._request("DELETE", path, skip_decode=skip_decode)

    # ==========================================
    # ACCOUNT METHODS
    # ==========================================

    def crypto_accounts(self) -> List[Dict[str, Any]]:
        """Get crypto (wallet) accounts."""
        return self.get(self.CRYPTO_ACCOUNTS_PATH)

    def balances(self) -> List[Dict[str, Any]]:
        """Get balance for every currency on the account."""
        return self.get(self.BALANCES_PATH)

    def products(self) -> List[Dict[str, Any]]:
        """Get all tradable products."""
        return self.get(self.PRODUCTS_PATH)

    # ==========================================
    # ORDER METHODS
    # ==========================================

    def order(self, order_id: Union[int, str]) -> Dict[str, Any]:
        """Get a single order by id."""
        return self.get(f"{self.ORDERS_PATH}/{order_id}")

    def orders(self) -> Dict[str, Any]:
        """Get orders."""
        return self.get(self.ORDERS_PATH)

    def create_order(
        self,
        side: Union[OrderSide, str],
        size: Number,
        price: Number,
        product_id: Union[int, str],
    ) -> Dict[str, Any]:
        """
        Place a limit order.

        Args:
            side: Buy or sell
            size: Order quantity, sent as a decimal string
            price: Limit price, sent as a decimal string
            product_id: Quoine product id

        Returns:
            Created order as returned by the API

        Raises:
            ValueError: If size or price is not a number
            CreateOrderError: If the request fails, or the response
                carries no order id
        """
        payload = OrderRequest(
            side=side,
            quantity=size,
            price=price,
            product_id=product_id,
        ).to_payload()

        try:
            order = self.post(self.ORDERS_PATH, payload)
        except requests.RequestException as e:
            handle_error(e, ErrorKind.CREATE_ORDER)

        if not isinstance(order, dict) or order.get("id") is None:
            raise_for_kind(ErrorKind.CREATE_ORDER, order)

        logger.info(
            f"Order placed: {order['id']}, {payload['order']['side']} "
            f"{payload['order']['quantity']} @ {payload['order']['price']}"
        )
        return order

    def cancel_order(self, order_id: Union[int, str]) -> Dict[str, Any]:
        """
        Cancel a live order.

        Raises:
            CancelOrderError: If the order cannot be cancelled
        """
        try:
            result = self.put(f"{self.ORDERS_PATH}/{order_id}/cancel")
        except requests.RequestException as e:
            handle_error(e, ErrorKind.CANCEL_ORDER)

        logger.info(f"Canceled order {order_id}")
        return result

    # ==========================================
    # TRADING ACCOUNT METHODS
    # ==========================================

    def trading_accounts(self) -> List[Dict[str, Any]]:
        """Get margin/leveraged trading accounts."""
        return self.get(self.TRADING_ACCOUNTS_PATH)

    def trading_account(self, account_id: Union[int, str]) -> Dict[str, Any]:
        """Get a single trading account by id."""
        return self.get(f"{self.TRADING_ACCOUNTS_PATH}/{account_id}")

    def first_trading_account_id(self) -> Optional[Union[int, str]]:
        """Get the id of the first trading account, or None if there are none."""
        accounts = self.trading_accounts()
        if not accounts:
            return None
        return accounts[0]["id"]

    def update_leverage_level(
        self,
        level: int,
        account_id: Optional[Union[int, str]] = None,
    ) -> Dict[str, Any]:
        """
        Set the leverage level of a trading account.

        Without account_id this costs two requests: the trading account
        list is fetched first and its first entry is updated. Both
        requests report failures as UpdateLeverageLevelError.

        Raises:
            UpdateLeverageLevelError: If the lookup or the update fails,
                or there is no trading account to update
        """
        payload = LeverageLevelUpdate(leverage_level=level).to_payload()

        try:
            if account_id is None:
                account_id = self.first_trading_account_id()
                if account_id is None:
                    raise_for_kind(ErrorKind.UPDATE_LEVERAGE_LEVEL, "No trading accounts found")

            result = self.put(f"{self.TRADING_ACCOUNTS_PATH}/{account_id}", payload)
        except requests.RequestException as e:
            handle_error(e, ErrorKind.UPDATE_LEVERAGE_LEVEL)

        logger.info(f"Leverage level of trading account {account_id} set to {level}")
        return result

    # ==========================================
    # TRADE METHODS
    # ==========================================

    def get_trade(
        self,
        funding_currency: Optional[str] = None,
        status: Optional[Union[TradeStatus, str]] = None,
    ) -> Dict[str, Any]:
        """
        Get trades, optionally filtered.

        Args:
            funding_currency: Only trades funded in this currency
            status: Only trades with this status (open/closed)
        """
        params = TradeFilter(funding_currency=funding_currency, status=status).to_params()
        return self.get(self.TRADES_PATH, params=params or None)

    def close_trade(
        self,
        trade_id: Union[int, str],
        quantity: Optional[Number] = None,
    ) -> Dict[str, Any]:
        """
        Close a trade, fully or partially.

        Raises:
            CloseTradeError: If the trade cannot be closed
        """
        payload = CloseTradeRequest(closed_quantity=quantity).to_payload()

        try:
            result = self.put(f"{self.TRADES_PATH}/{trade_id}/close", payload)
        except requests.RequestException as e:
            handle_error(e, ErrorKind.CLOSE_TRADE)

        logger.info(f"Closed trade {trade_id} (quantity={quantity})")
        return result

    def close_all_trade(
        self,
        side: Optional[Union[OrderSide, str]] = None,
    ) -> List[Dict[str, Any]]:
        """
        Close all open trades, optionally only one side.

        Raises:
            CloseAllTradeError: If the request fails
        """
        payload = CloseAllTradeRequest(side=side).to_payload()

        try:
            result = self.put(f"{self.TRADES_PATH}/close_all", payload)
        except requests.RequestException as e:
            handle_error(e, ErrorKind.CLOSE_ALL_TRADE)

        logger.info(f"Closed all trades (side={side or 'both'})")
        return result

    def update_trade(
        self,
        trade_id: Union[int, str],
        stop_loss: Optional[Number],
        take_profit: Optional[Number],
    ) -> Dict[str, Any]:
        """
        Update stop loss and take profit of a trade.

        Raises:
            UpdateTradeError: If the update request fails
        """
        payload = TradeUpdate(stop_loss=stop_loss, take_profit=take_profit).to_payload()

        try:
            result = self.put(f"{self.TRADES_PATH}/{trade_id}", payload)
        except requests.RequestException as e:
            handle_error(e, ErrorKind.UPDATE_TRADE)

        logger.info(
            f"Updated trade {trade_id}: stop_loss={stop_loss}, take_profit={take_profit}"
        )
        return result

    def get_trade_loans(self, trade_id: Union[int, str]) -> List[Dict[str, Any]]:
        """Get loans backing a trade."""
        return self.get(f"/trade/{trade_id}/loans")

    # ==========================================
    # UTILITY METHODS
    # ==========================================

    def close(self) -> None:
        """Close the HTTP session."""
        self._session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
