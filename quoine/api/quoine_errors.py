"""
Quoine API Error Handling.

State-mutating operations translate transport failures into one typed
exception per operation family. Read-only operations let the underlying
requests exceptions propagate untouched.

Error kinds:
- create_order - order rejected, or response without an order id
- cancel_order - order could not be cancelled
- update_leverage_level - trading account leverage not updated
- close_trade / close_all_trade - trade(s) could not be closed
- update_trade - stop loss / take profit not updated
"""

import json
import logging
from enum import Enum
from typing import Any, Dict, NoReturn, Type

logger = logging.getLogger(__name__)


class ErrorKind(Enum):
    """Operation families that report typed errors."""
    CREATE_ORDER = "create_order"
    CANCEL_ORDER = "cancel_order"
    UPDATE_LEVERAGE_LEVEL = "update_leverage_level"
    CLOSE_TRADE = "close_trade"
    CLOSE_ALL_TRADE = "close_all_trade"
    UPDATE_TRADE = "update_trade"


class QuoineAPIError(Exception):
    """
    Base exception for Quoine operation failures.

    Attributes:
        kind: Operation family that failed
        payload: Decoded JSON error body, or a plain message when the
            upstream body was missing or not JSON
    """

    kind: ErrorKind = None

    def __init__(self, payload: Any, kind: ErrorKind = None):
        if kind is not None:
            self.kind = kind
        self.payload = payload

        label = self.kind.value if self.kind else "request"
        super().__init__(f"Quoine {label} error: {payload}")


class CreateOrderError(QuoineAPIError):
    """Order creation failed."""
    kind = ErrorKind.CREATE_ORDER


class CancelOrderError(QuoineAPIError):
    """Order cancellation failed."""
    kind = ErrorKind.CANCEL_ORDER


class UpdateLeverageLevelError(QuoineAPIError):
    """Leverage level update failed."""
    kind = ErrorKind.UPDATE_LEVERAGE_LEVEL


class CloseTradeError(QuoineAPIError):
    """Closing a trade failed."""
    kind = ErrorKind.CLOSE_TRADE


class CloseAllTradeError(QuoineAPIError):
    """Closing all trades failed."""
    kind = ErrorKind.CLOSE_ALL_TRADE


class UpdateTradeError(QuoineAPIError):
    """Trade update failed."""
    kind = ErrorKind.UPDATE_TRADE


ERROR_CLASSES: Dict[ErrorKind, Type[QuoineAPIError]] = {
    ErrorKind.CREATE_ORDER: CreateOrderError,
    ErrorKind.CANCEL_ORDER: CancelOrderError,
    ErrorKind.UPDATE_LEVERAGE_LEVEL: UpdateLeverageLevelError,
    ErrorKind.CLOSE_TRADE: CloseTradeError,
    ErrorKind.CLOSE_ALL_TRADE: CloseAllTradeError,
    ErrorKind.UPDATE_TRADE: UpdateTradeError,
}


def error_class_for(kind: ErrorKind) -> Type[QuoineAPIError]:
    """Get the exception class registered for an error kind."""
    return ERROR_CLASSES[kind]


def extract_payload(error: Exception) -> Any:
    """
    Extract the most useful payload from a transport error.

    Uses the decoded JSON response body when there is one, otherwise
    the error message.
    """
    response = getattr(error, "response", None)
    body = getattr(response, "text", None) if response is not None else None

    if body:
        try:
            return json.loads(body)
        except ValueError:
            pass

    return str(error)


def handle_error(error: Exception, kind: ErrorKind) -> NoReturn:
    """
    Translate a transport error into the typed error for an operation.

    Args:
        error: Exception raised while dispatching the request
        kind: Operation family the request belonged to

    Raises:
        The QuoineAPIError subclass registered for kind, always
    """
    payload = extract_payload(error)
    logger.warning(f"Quoine {kind.value} failed: {payload}")
    raise error_class_for(kind)(payload) from error


def raise_for_kind(kind: ErrorKind, payload: Any) -> NoReturn:
    """Raise the typed error for kind with an explicit payload."""
    logger.warning(f"Quoine {kind.value} rejected: {payload}")
    raise error_class_for(kind)(payload)
