"""
Request bodies for Quoine private endpoints.

Each mutating endpoint gets its own dataclass so the wire keys live in one
place. Optional members are left out of the body entirely when not set.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

Number = Union[Decimal, float, int, str]


class OrderSide(Enum):
    """Order side (buy/sell)."""
    BUY = "buy"
    SELL = "sell"


class OrderType(Enum):
    """Order types sent by this client."""
    LIMIT = "limit"


class TradeStatus(Enum):
    """Trade status filter values."""
    OPEN = "open"
    CLOSED = "closed"


def enum_value(value: Any) -> Any:
    """Unwrap an Enum member to its wire value."""
    return value.value if isinstance(value, Enum) else value


def format_decimal(value: Number) -> str:
    """
    Format a number as a plain decimal string.

    Quoine parses quantity and price as strings, so values never go out as
    JSON numbers. At least one fractional digit is always present
    (50000 -> "50000.0") and scientific notation is expanded
    (1e-05 -> "0.00001").

    Raises:
        ValueError: If value is not a finite number
    """
    if isinstance(value, bool):
        raise ValueError(f"Not a decimal value: {value!r}")

    try:
        number = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Not a decimal value: {value!r}")

    if not number.is_finite():
        raise ValueError(f"Not a finite decimal value: {value!r}")

    text = format(number, "f")
    if "." not in text:
        text += ".0"
    return text


def optional_decimal(value: Optional[Number]) -> Optional[str]:
    """format_decimal that passes None through."""
    return None if value is None else format_decimal(value)


@dataclass(frozen=True)
class OrderRequest:
    """Body for POST /orders."""
    side: Union[OrderSide, str]
    quantity: Number
    price: Number
    product_id: Union[int, str]
    order_type: OrderType = OrderType.LIMIT

    def to_payload(self) -> Dict[str, Any]:
        return {
            "order": {
                "order_type": enum_value(self.order_type),
                "product_id": self.product_id,
                "side": enum_value(self.side),
                "quantity": format_decimal(self.quantity),
                "price": format_decimal(self.price),
            }
        }


@dataclass(frozen=True)
class LeverageLevelUpdate:
    """Body for PUT /trading_accounts/{id}."""
    leverage_level: int

    def to_payload(self) -> Dict[str, Any]:
        return {"trading_account": {"leverage_level": self.leverage_level}}


@dataclass(frozen=True)
class CloseTradeRequest:
    """Body for PUT /trades/{id}/close. Empty closes the whole trade."""
    closed_quantity: Optional[Number] = None

    def to_payload(self) -> Optional[Dict[str, Any]]:
        if self.closed_quantity is None:
            return None
        return {"closed_quantity": format_decimal(self.closed_quantity)}


@dataclass(frozen=True)
class CloseAllTradeRequest:
    """Body for PUT /trades/close_all. Empty closes both sides."""
    side: Optional[Union[OrderSide, str]] = None

    def to_payload(self) -> Optional[Dict[str, Any]]:
        if self.side is None:
            return None
        return {"side": enum_value(self.side)}


@dataclass(frozen=True)
class TradeUpdate:
    """Body for PUT /trades/{id}. A level left as None goes out as null."""
    stop_loss: Optional[Number]
    take_profit: Optional[Number]

    def to_payload(self) -> Dict[str, Any]:
        return {
            "trade": {
                "stop_loss": optional_decimal(self.stop_loss),
                "take_profit": optional_decimal(self.take_profit),
            }
        }


@dataclass(frozen=True)
class TradeFilter:
    """Query filters for GET /trades."""
    funding_currency: Optional[str] = None
    status: Optional[Union[TradeStatus, str]] = None

    def to_params(self) -> List[Tuple[str, Any]]:
        params: List[Tuple[str, Any]] = []
        if self.funding_currency is not None:
            params.append(("funding_currency", self.funding_currency))
        if self.status is not None:
            params.append(("status", enum_value(self.status)))
        return params
