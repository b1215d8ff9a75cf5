"""
Quoine API Module.

Provides an authenticated client for the Quoine exchange REST API:
- Authentication (JWT, HS256, per-request nonce)
- Accounts, balances and products
- Orders, trading accounts, leverage and trades
- Typed errors for state-mutating operations

Usage:
    from quoine.api import QuoineClient, OrderSide

    client = QuoineClient.from_env()  # Uses QUOINE_API_KEY, QUOINE_API_SECRET
    balances = client.balances()
    order = client.create_order(
        side=OrderSide.BUY,
        size=0.01,
        price=500000,
        product_id=5,
    )

    try:
        client.cancel_order(order["id"])
    except CancelOrderError as e:
        print(e.payload)
"""

# Authentication
from .auth import (
    QuoineAuth,
    QuoineCredentials,
    NonceManager,
    load_credentials_from_env,
)

# Error handling
from .quoine_errors import (
    ErrorKind,
    QuoineAPIError,
    CreateOrderError,
    CancelOrderError,
    UpdateLeverageLevelError,
    CloseTradeError,
    CloseAllTradeError,
    UpdateTradeError,
    handle_error,
)

# Request bodies
from .payloads import (
    OrderSide,
    OrderType,
    TradeStatus,
    OrderRequest,
    LeverageLevelUpdate,
    CloseTradeRequest,
    CloseAllTradeRequest,
    TradeUpdate,
    TradeFilter,
    format_decimal,
)

# Private REST API
from .quoine_private import QuoineClient


__all__ = [
    # Authentication
    "QuoineAuth",
    "QuoineCredentials",
    "NonceManager",
    "load_credentials_from_env",
    # Errors
    "ErrorKind",
    "QuoineAPIError",
    "CreateOrderError",
    "CancelOrderError",
    "UpdateLeverageLevelError",
    "CloseTradeError",
    "CloseAllTradeError",
    "UpdateTradeError",
    "handle_error",
    # Request bodies
    "OrderSide",
    "OrderType",
    "TradeStatus",
    "OrderRequest",
    "LeverageLevelUpdate",
    "CloseTradeRequest",
    "CloseAllTradeRequest",
    "TradeUpdate",
    "TradeFilter",
    "format_decimal",
    # Client
    "QuoineClient",
]
