"""
Tests for the Quoine private client.

Tests cover:
- Request dispatch (URL, headers, body, query, decoding)
- Read-only endpoints
- Mutating endpoints and their typed errors
- Leverage update with account lookup
"""

import json
from decimal import Decimal
import pytest
from unittest.mock import Mock, patch

import jwt
import requests

from config.settings import ClientConfig, QuoineConfig
from quoine.api.auth import QuoineCredentials
from quoine.api.payloads import OrderSide, TradeStatus
from quoine.api.quoine_errors import (
    CancelOrderError,
    CloseAllTradeError,
    CloseTradeError,
    CreateOrderError,
    UpdateLeverageLevelError,
    UpdateTradeError,
)
from quoine.api.quoine_private import QuoineClient


TEST_API_KEY = "123456"
TEST_API_SECRET = "test-secret-for-hs256-signing-0123456789abcdef"
BASE_URL = "https://api.quoine.com"


def make_response(status: int = 200, body=None, text: str = None) -> requests.Response:
    """Build a real requests Response."""
    response = requests.Response()
    response.status_code = status
    if text is None:
        text = json.dumps(body)
    response._content = text.encode("utf-8")
    response.encoding = "utf-8"
    response.url = BASE_URL
    return response


@pytest.fixture
def client():
    """Client with a mocked HTTP session."""
    client = QuoineClient(TEST_API_KEY, TEST_API_SECRET)
    client._session = Mock()
    client._session.request.return_value = make_response(body={})
    return client


def last_call(client):
    """Unpack the last session.request call."""
    args, kwargs = client._session.request.call_args
    method, url = args
    return method, url, kwargs


def claims_of(kwargs) -> dict:
    return jwt.decode(
        kwargs["headers"]["X-Quoine-Auth"],
        TEST_API_SECRET,
        algorithms=["HS256"],
    )


class TestConstruction:
    """Tests for client construction."""

    def test_defaults(self):
        """Test default base URL and key."""
        client = QuoineClient(TEST_API_KEY, TEST_API_SECRET)
        assert client.url == "https://api.quoine.com"
        assert client.key == TEST_API_KEY

    def test_custom_url(self):
        """Test base URL override."""
        client = QuoineClient(TEST_API_KEY, TEST_API_SECRET, url="https://api.liquid.com")
        assert client.url == "https://api.liquid.com"

    def test_empty_credentials_raise(self):
        """Test that empty credentials are rejected."""
        with pytest.raises(ValueError):
            QuoineClient("", TEST_API_SECRET)

    def test_from_env(self):
        """Test building from environment variables."""
        with patch.dict('os.environ', {
            'QUOINE_API_KEY': TEST_API_KEY,
            'QUOINE_API_SECRET': TEST_API_SECRET,
        }):
            client = QuoineClient.from_env(url="http://localhost:8080")

        assert client.key == TEST_API_KEY
        assert client.url == "http://localhost:8080"

    def test_from_config(self):
        """Test building from loaded configuration."""
        config = ClientConfig(quoine=QuoineConfig(
            base_url="https://api.liquid.com",
            request_timeout=5,
        ))
        creds = QuoineCredentials(TEST_API_KEY, TEST_API_SECRET)

        client = QuoineClient.from_config(config, creds)

        assert client.url == "https://api.liquid.com"
        assert client._timeout == 5

    def test_unsupported_api_version_raises(self):
        """Test that a client cannot be built for another API version."""
        with pytest.raises(ValueError, match="Unsupported API version"):
            QuoineClient(TEST_API_KEY, TEST_API_SECRET, api_version=3)

    def test_from_config_rejects_api_version(self):
        """Test that an unvalidated config with another version is refused."""
        config = ClientConfig(quoine=QuoineConfig(api_version=1))
        creds = QuoineCredentials(TEST_API_KEY, TEST_API_SECRET)

        with pytest.raises(ValueError, match="Unsupported API version"):
            QuoineClient.from_config(config, creds)

    def test_from_env_file(self, tmp_path):
        """Test building from a .env file."""
        env_file = tmp_path / ".env"
        env_file.write_text(
            f"QUOINE_API_KEY={TEST_API_KEY}\nQUOINE_API_SECRET={TEST_API_SECRET}\n"
        )

        with patch.dict('os.environ', {}, clear=True):
            client = QuoineClient.from_env(env_file=str(env_file))

        assert client.key == TEST_API_KEY

    def test_context_manager_closes_session(self):
        """Test that leaving the context closes the session."""
        client = QuoineClient(TEST_API_KEY, TEST_API_SECRET)
        client._session = Mock()

        with client:
            pass

        client._session.close.assert_called_once()


class TestDispatch:
    """Tests for get/post/put/delete."""

    def test_get_url_and_headers(self, client):
        """Test URL composition and auth headers."""
        client.get("/products")

        method, url, kwargs = last_call(client)
        assert method == "GET"
        assert url == f"{BASE_URL}/products"
        assert kwargs["headers"]["Content-Type"] == "application/json"
        assert kwargs["headers"]["X-Quoine-API-Version"] == "2"
        assert kwargs["data"] is None
        assert kwargs["timeout"] == 30

        claims = claims_of(kwargs)
        assert claims["path"] == "/products"
        assert claims["token_id"] == TEST_API_KEY

    def test_get_signature_excludes_query(self, client):
        """Test that query parameters are not part of the signed path."""
        client.get("/trades", params=[("funding_currency", "USD")])

        _, _, kwargs = last_call(client)
        assert claims_of(kwargs)["path"] == "/trades"
        assert kwargs["params"] == [("funding_currency", "USD")]

    def test_get_duplicate_query_keys(self, client):
        """Test that duplicate keys are sent as separate parameters."""
        params = [("status", "open"), ("status", "closed")]
        client.get("/trades", params=params)

        _, url, kwargs = last_call(client)
        prepared = requests.Request("GET", url, params=kwargs["params"]).prepare()
        assert prepared.url == f"{BASE_URL}/trades?status=open&status=closed"

    def test_post_encodes_json_body(self, client):
        """Test that post sends the payload as JSON text."""
        client.post("/orders", {"order": {"price": "1.0"}})

        method, _, kwargs = last_call(client)
        assert method == "POST"
        assert json.loads(kwargs["data"]) == {"order": {"price": "1.0"}}

    def test_unencodable_payload_fails_loudly(self, client):
        """Test that values JSON cannot encode are not silently stringified."""
        with pytest.raises(TypeError):
            client.post("/orders", {"order": {"price": Decimal("1.0")}})

        client._session.request.assert_not_called()

    def test_put_without_payload_has_no_body(self, client):
        """Test that put without payload sends no body."""
        client.put("/orders/1/cancel")

        method, _, kwargs = last_call(client)
        assert method == "PUT"
        assert kwargs["data"] is None

    def test_delete(self, client):
        """Test delete dispatch."""
        client.delete("/orders/1")

        method, url, kwargs = last_call(client)
        assert method == "DELETE"
        assert url == f"{BASE_URL}/orders/1"
        assert kwargs["data"] is None

    def test_skip_decode_returns_text(self, client):
        """Test that skip_decode returns the raw body."""
        client._session.request.return_value = make_response(text='{"id": 1}')

        assert client.get("/orders/1", skip_decode=True) == '{"id": 1}'
        assert client.get("/orders/1") == {"id": 1}

    def test_each_request_signed_fresh(self, client):
        """Test that every request gets its own nonce."""
        client.get("/orders")
        first = claims_of(last_call(client)[2])
        client.get("/orders")
        second = claims_of(last_call(client)[2])

        assert second["nonce"] > first["nonce"]

    def test_http_error_propagates(self, client):
        """Test that the dispatcher does not translate HTTP errors."""
        client._session.request.return_value = make_response(404, {"message": "no"})

        with pytest.raises(requests.HTTPError):
            client.get("/orders/99")


class TestReadOnlyEndpoints:
    """Tests for endpoints that only read state."""

    @pytest.mark.parametrize("call,path", [
        (lambda c: c.crypto_accounts(), "/crypto_accounts"),
        (lambda c: c.balances(), "/accounts/balance"),
        (lambda c: c.order(42), "/orders/42"),
        (lambda c: c.orders(), "/orders"),
        (lambda c: c.products(), "/products"),
        (lambda c: c.trading_accounts(), "/trading_accounts"),
        (lambda c: c.trading_account(7), "/trading_accounts/7"),
        (lambda c: c.get_trade_loans(3), "/trade/3/loans"),
    ])
    def test_paths(self, client, call, path):
        """Test verb and path of each read endpoint."""
        client._session.request.return_value = make_response(body=[{"id": 1}])

        assert call(client) == [{"id": 1}]

        method, url, kwargs = last_call(client)
        assert method == "GET"
        assert url == f"{BASE_URL}{path}"
        assert claims_of(kwargs)["path"] == path

    def test_errors_are_not_translated(self, client):
        """Test that read failures surface as requests errors."""
        client._session.request.side_effect = requests.ConnectionError("refused")

        with pytest.raises(requests.ConnectionError):
            client.balances()

    def test_get_trade_with_funding_currency(self, client):
        """Test trade query with one filter."""
        client.get_trade(funding_currency="USD")

        _, url, kwargs = last_call(client)
        assert url == f"{BASE_URL}/trades"
        prepared = requests.Request("GET", url, params=kwargs["params"]).prepare()
        assert prepared.url == f"{BASE_URL}/trades?funding_currency=USD"

    def test_get_trade_without_filters(self, client):
        """Test trade query without filters has no query string."""
        client.get_trade()

        _, url, kwargs = last_call(client)
        prepared = requests.Request("GET", url, params=kwargs["params"]).prepare()
        assert prepared.url == f"{BASE_URL}/trades"

    def test_get_trade_with_status(self, client):
        """Test trade query with both filters."""
        client.get_trade(funding_currency="JPY", status=TradeStatus.CLOSED)

        _, _, kwargs = last_call(client)
        assert kwargs["params"] == [("funding_currency", "JPY"), ("status", "closed")]


class TestCreateOrder:
    """Tests for create_order."""

    def test_returns_order(self, client):
        """Test that the created order is returned unchanged."""
        body = {"id": 123, "side": "buy", "price": "500000.0"}
        client._session.request.return_value = make_response(body=body)

        result = client.create_order(OrderSide.BUY, 0.01, 500000, 5)

        assert result == body

    def test_request_body(self, client):
        """Test the limit order body on the wire."""
        client._session.request.return_value = make_response(body={"id": 1})

        client.create_order(side="sell", size="1.5", price=Decimal("2"), product_id=27)

        method, url, kwargs = last_call(client)
        assert method == "POST"
        assert url == f"{BASE_URL}/orders"
        assert json.loads(kwargs["data"]) == {
            "order": {
                "order_type": "limit",
                "product_id": 27,
                "side": "sell",
                "quantity": "1.5",
                "price": "2.0",
            }
        }

    def test_missing_id_raises(self, client):
        """Test that a response without id is a failure."""
        client._session.request.return_value = make_response(body={"message": "invalid"})

        with pytest.raises(CreateOrderError) as exc_info:
            client.create_order(OrderSide.BUY, 0.01, 500000, 5)

        assert exc_info.value.payload == {"message": "invalid"}

    def test_http_error_raises(self, client):
        """Test that HTTP failures become CreateOrderError."""
        client._session.request.return_value = make_response(
            422, {"errors": {"quantity": ["less_than_order_size"]}}
        )

        with pytest.raises(CreateOrderError) as exc_info:
            client.create_order(OrderSide.BUY, 0.00001, 500000, 5)

        assert exc_info.value.payload == {"errors": {"quantity": ["less_than_order_size"]}}

    def test_invalid_size_sends_nothing(self, client):
        """Test that a bad size fails before dispatch."""
        with pytest.raises(ValueError):
            client.create_order(OrderSide.BUY, "lots", 500000, 5)

        client._session.request.assert_not_called()


class TestCancelOrder:
    """Tests for cancel_order."""

    def test_cancel(self, client):
        """Test verb, path and result."""
        client._session.request.return_value = make_response(body={"id": 42, "status": "cancelled"})

        assert client.cancel_order(42)["status"] == "cancelled"

        method, url, kwargs = last_call(client)
        assert method == "PUT"
        assert url == f"{BASE_URL}/orders/42/cancel"
        assert kwargs["data"] is None

    def test_json_error_payload(self, client):
        """Test JSON error body becomes the payload."""
        client._session.request.return_value = make_response(404, {"errors": ["not_found"]})

        with pytest.raises(CancelOrderError) as exc_info:
            client.cancel_order(42)

        assert exc_info.value.payload == {"errors": ["not_found"]}

    def test_unparseable_error_payload(self, client):
        """Test non-JSON error body falls back to the error message."""
        client._session.request.return_value = make_response(500, text="oops")

        with pytest.raises(CancelOrderError) as exc_info:
            client.cancel_order(42)

        assert exc_info.value.payload == str(exc_info.value.__cause__)
        assert "500" in exc_info.value.payload

    def test_connection_error_payload(self, client):
        """Test connection failures become CancelOrderError."""
        client._session.request.side_effect = requests.ConnectionError("refused")

        with pytest.raises(CancelOrderError) as exc_info:
            client.cancel_order(42)

        assert exc_info.value.payload == "refused"


class TestUpdateLeverageLevel:
    """Tests for update_leverage_level."""

    def test_resolves_first_trading_account(self, client):
        """Test lookup of the first trading account when id is omitted."""
        client._session.request.side_effect = [
            make_response(body=[{"id": 77}, {"id": 78}]),
            make_response(body={"id": 77, "leverage_level": 5}),
        ]

        result = client.update_leverage_level(5)

        assert result == {"id": 77, "leverage_level": 5}
        calls = client._session.request.call_args_list
        assert len(calls) == 2
        assert calls[0][0] == ("GET", f"{BASE_URL}/trading_accounts")
        assert calls[1][0] == ("PUT", f"{BASE_URL}/trading_accounts/77")
        assert json.loads(calls[1][1]["data"]) == {"trading_account": {"leverage_level": 5}}

    def test_explicit_account(self, client):
        """Test a single request when the id is given."""
        client.update_leverage_level(10, 12)

        assert client._session.request.call_count == 1
        method, url, kwargs = last_call(client)
        assert (method, url) == ("PUT", f"{BASE_URL}/trading_accounts/12")
        assert claims_of(kwargs)["path"] == "/trading_accounts/12"

    def test_no_trading_accounts(self, client):
        """Test that an empty account list is a leverage failure."""
        client._session.request.return_value = make_response(body=[])

        with pytest.raises(UpdateLeverageLevelError) as exc_info:
            client.update_leverage_level(5)

        assert exc_info.value.payload == "No trading accounts found"
        assert client._session.request.call_count == 1

    def test_lookup_failure_raises(self, client):
        """Test that a failed account lookup is a leverage failure."""
        client._session.request.return_value = make_response(401, {"message": "unauthorized"})

        with pytest.raises(UpdateLeverageLevelError) as exc_info:
            client.update_leverage_level(5)

        assert exc_info.value.payload == {"message": "unauthorized"}
        assert client._session.request.call_count == 1
        method, url, _ = last_call(client)
        assert (method, url) == ("GET", f"{BASE_URL}/trading_accounts")

    def test_first_trading_account_id_empty(self, client):
        """Test lookup result when there are no trading accounts."""
        client._session.request.return_value = make_response(body=[])

        assert client.first_trading_account_id() is None

    def test_failure_raises(self, client):
        """Test that update failures become UpdateLeverageLevelError."""
        client._session.request.return_value = make_response(422, {"errors": ["invalid"]})

        with pytest.raises(UpdateLeverageLevelError) as exc_info:
            client.update_leverage_level(50, 12)

        assert exc_info.value.payload == {"errors": ["invalid"]}


class TestTradeMutations:
    """Tests for close_trade, close_all_trade and update_trade."""

    def test_close_trade_partial(self, client):
        """Test partial close body."""
        client.close_trade(9, quantity=0.5)

        method, url, kwargs = last_call(client)
        assert (method, url) == ("PUT", f"{BASE_URL}/trades/9/close")
        assert json.loads(kwargs["data"]) == {"closed_quantity": "0.5"}

    def test_close_trade_full(self, client):
        """Test full close sends no body."""
        client.close_trade(9)

        _, _, kwargs = last_call(client)
        assert kwargs["data"] is None

    def test_close_trade_failure(self, client):
        """Test close failure becomes CloseTradeError."""
        client._session.request.return_value = make_response(404, {"message": "gone"})

        with pytest.raises(CloseTradeError) as exc_info:
            client.close_trade(9)

        assert exc_info.value.payload == {"message": "gone"}

    def test_close_all_with_side(self, client):
        """Test close all for one side."""
        client.close_all_trade(side=OrderSide.SELL)

        method, url, kwargs = last_call(client)
        assert (method, url) == ("PUT", f"{BASE_URL}/trades/close_all")
        assert json.loads(kwargs["data"]) == {"side": "sell"}

    def test_close_all_without_side(self, client):
        """Test close all without side sends no body."""
        client.close_all_trade()

        _, _, kwargs = last_call(client)
        assert kwargs["data"] is None

    def test_close_all_failure(self, client):
        """Test failure becomes CloseAllTradeError."""
        client._session.request.side_effect = requests.Timeout("timed out")

        with pytest.raises(CloseAllTradeError) as exc_info:
            client.close_all_trade()

        assert exc_info.value.payload == "timed out"

    def test_update_trade(self, client):
        """Test stop loss / take profit body."""
        client.update_trade(9, stop_loss=100, take_profit=200)

        method, url, kwargs = last_call(client)
        assert (method, url) == ("PUT", f"{BASE_URL}/trades/9")
        assert json.loads(kwargs["data"]) == {"trade": {"stop_loss": "100.0", "take_profit": "200.0"}}

    def test_update_trade_failure(self, client):
        """Test failure becomes UpdateTradeError."""
        client._session.request.return_value = make_response(400, {"errors": ["bad"]})

        with pytest.raises(UpdateTradeError):
            client.update_trade(9, stop_loss=100, take_profit=200)
