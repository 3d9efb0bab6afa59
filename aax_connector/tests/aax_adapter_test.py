"""Tests for the AAX spot/futures adapter.

The transport is a Mock, so every test checks the exact request the
adapter would send and how it normalises the reply.

Tests cover:
- Argument validation before any network call
- Venue routing of paths and wire symbols
- Response code checking and error mapping
- Order, history, balance and public market data operations
- Lazy market loading and symbol snapshots
"""

import json

import pytest

from aax_connector.core.config import AdapterConfig
from aax_connector.core.errors import (
    ArgumentsRequired,
    BadRequest,
    BadResponse,
    InsufficientFunds,
    InvalidConfiguration,
    MissingCredentials,
    OrderNotFound,
    TransportError,
    UnknownSymbol,
)
from aax_connector.exchanges.aax import AaxAdapter

BASE = "https://api.aaxpro.com"
NOW_MS = 1600000000000


def order_payload(**fields):
    data = {
        "orderID": "wJ4sZ1",
        "symbol": "BTCUSDT",
        "orderStatus": 0,
        "orderType": 2,
        "side": 1,
        "price": "30000",
        "orderQty": "0.01",
        "cumQty": "0",
        "leavesQty": "0.01",
    }
    data.update(fields)
    return {"code": 1, "data": data, "message": "success", "ts": NOW_MS}


def sent(transport):
    """(method, url, headers, body) of the last request."""
    return transport.request.call_args[0]


class TestCreateOrder:
    """Test order placement."""

    def test_spot_limit_order(self, adapter, transport):
        transport.request.return_value = order_payload()

        order = adapter.create_order("BTC/USDT", "limit", "buy", 0.01, price=30000)

        method, url, headers, body = sent(transport)
        assert method == "POST"
        assert url == f"{BASE}/v2/spot/orders"
        assert json.loads(body) == {
            "orderType": "LIMIT",
            "symbol": "BTCUSDT",
            "orderQty": 0.01,
            "timeInForce": "GTC",
            "side": "BUY",
            "price": "30000",
        }
        assert headers["X-ACCESS-KEY"] == "key"
        assert order.id == "wJ4sZ1"
        assert order.symbol == "BTC/USDT"
        assert order.status == "open"
        assert order.side == "buy"
        assert order.type == "limit"
        assert order.timestamp == NOW_MS

    def test_futures_override(self, adapter, transport):
        transport.request.return_value = order_payload(symbol="BTCUSDTFP", orderType=1, side=2)

        order = adapter.create_order("BTC/USDT", "market", "sell", 1, venue="futures")

        method, url, headers, body = sent(transport)
        assert url == f"{BASE}/v2/futures/orders"
        payload = json.loads(body)
        assert payload["symbol"] == "BTCUSDTFP"
        assert "price" not in payload
        assert order.symbol == "BTC/USDT"
        assert order.side == "sell"

    def test_marker_routes_to_futures(self, adapter, transport):
        transport.request.return_value = order_payload(symbol="BTCUSDTFP")

        adapter.create_order("BTC/USDTFP", "limit", "buy", 1, price=10)

        assert sent(transport)[1] == f"{BASE}/v2/futures/orders"

    def test_params_are_merged(self, adapter, transport):
        transport.request.return_value = order_payload()

        adapter.create_order("BTC/USDT", "stop-limit", "buy", 1, price=10, params={"stopPrice": 9, "clOrdID": "c1"})

        payload = json.loads(sent(transport)[3])
        assert payload["orderType"] == "STOP-LIMIT"
        assert payload["stopPrice"] == 9
        assert payload["clOrdID"] == "c1"

    def test_limit_without_price(self, adapter, transport):
        with pytest.raises(ArgumentsRequired):
            adapter.create_order("BTC/USDT", "limit", "buy", 1)
        transport.request.assert_not_called()

    def test_missing_amount(self, adapter, transport):
        with pytest.raises(ArgumentsRequired):
            adapter.create_order("BTC/USDT", "market", "buy", None)
        transport.request.assert_not_called()

    def test_invalid_type(self, adapter, transport):
        with pytest.raises(BadRequest):
            adapter.create_order("BTC/USDT", "banana", "buy", 1, price=1)
        transport.request.assert_not_called()

    def test_invalid_side(self, adapter, transport):
        with pytest.raises(BadRequest):
            adapter.create_order("BTC/USDT", "market", "hold", 1)

    def test_invalid_venue(self, adapter, transport):
        with pytest.raises(InvalidConfiguration):
            adapter.create_order("BTC/USDT", "market", "buy", 1, venue="margin")
        transport.request.assert_not_called()

    def test_unknown_symbol(self, adapter, transport):
        with pytest.raises(UnknownSymbol):
            adapter.create_order("DOGE/USDT", "market", "buy", 1)
        transport.request.assert_not_called()

    def test_missing_credentials(self, transport, markets):
        adapter = AaxAdapter(AdapterConfig(), transport=transport, markets=markets)

        with pytest.raises(MissingCredentials):
            adapter.create_order("BTC/USDT", "market", "buy", 1)
        transport.request.assert_not_called()


class TestResponseErrors:
    def test_non_success_code(self, adapter, transport):
        transport.request.return_value = {"code": 3, "message": "invalid symbol", "ts": NOW_MS}

        with pytest.raises(BadResponse) as exc_info:
            adapter.create_order("BTC/USDT", "market", "buy", 1)
        assert exc_info.value.code == "3"
        assert exc_info.value.operation == "create_order"

    def test_float_success_code(self, adapter, transport):
        transport.request.return_value = {**order_payload(), "code": 1.0}

        assert adapter.create_order("BTC/USDT", "market", "buy", 1).id == "wJ4sZ1"

    def test_float_error_code_is_mapped(self, adapter, transport):
        transport.request.return_value = {"code": 2002.0, "message": "insufficient balance"}

        with pytest.raises(InsufficientFunds):
            adapter.create_order("BTC/USDT", "market", "buy", 1)

    def test_insufficient_funds(self, adapter, transport):
        transport.request.return_value = {"code": 2002, "message": "insufficient balance"}

        with pytest.raises(InsufficientFunds):
            adapter.create_order("BTC/USDT", "market", "buy", 1)

    def test_http_400_with_error_code(self, adapter, transport):
        transport.request.side_effect = TransportError(
            "HTTP 400", status=400, payload={"error": {"code": 2003, "message": "order not found"}}
        )

        with pytest.raises(OrderNotFound):
            adapter.cancel_order("wJ4sZ1", "BTC/USDT")

    def test_other_transport_errors_pass_through(self, adapter, transport):
        transport.request.side_effect = TransportError("HTTP 502", status=502, payload="bad gateway")

        with pytest.raises(TransportError):
            adapter.fetch_balance()

    def test_missing_order_envelope(self, adapter, transport):
        transport.request.return_value = {"code": 1, "data": None}

        with pytest.raises(BadResponse):
            adapter.create_order("BTC/USDT", "market", "buy", 1)


class TestCancelAndEdit:
    def test_cancel_order(self, adapter, transport):
        transport.request.return_value = order_payload(orderStatus=1)

        order = adapter.cancel_order("wJ4sZ1", "BTC/USDT", venue="futures")

        method, url, headers, body = sent(transport)
        assert method == "DELETE"
        assert url == f"{BASE}/v2/futures/orders/cancel/wJ4sZ1"
        assert order.status == "open"

    @pytest.mark.parametrize("status", [2, 4])
    def test_cancel_terminal_order(self, adapter, transport, status):
        transport.request.return_value = order_payload(orderStatus=status)

        with pytest.raises(OrderNotFound):
            adapter.cancel_order("wJ4sZ1", "BTC/USDT")

    def test_cancel_without_id(self, adapter, transport):
        with pytest.raises(ArgumentsRequired):
            adapter.cancel_order("")
        transport.request.assert_not_called()

    def test_cancel_all_orders(self, adapter, transport):
        response = {"code": 1, "data": [], "ts": NOW_MS}
        transport.request.return_value = response

        result = adapter.cancel_all_orders("BTC/USDTFP")

        method, url, headers, body = sent(transport)
        assert method == "DELETE"
        assert url == f"{BASE}/v2/futures/orders/cancel/all"
        assert json.loads(body) == {"symbol": "BTCUSDTFP"}
        assert result == {"info": response}

    def test_edit_order(self, adapter, transport):
        transport.request.return_value = order_payload(price="31000")

        order = adapter.edit_order("wJ4sZ1", "BTC/USDT", amount=2, price=31000)

        method, url, headers, body = sent(transport)
        assert method == "PUT"
        assert url == f"{BASE}/v2/spot/orders"
        assert json.loads(body) == {"orderID": "wJ4sZ1", "symbol": "BTCUSDT", "orderQty": 2, "price": 31000}
        assert order.price == 31000.0


class TestOrderHistory:
    """Test order and trade history queries."""

    def test_fetch_orders_futures_paging(self, adapter, transport):
        transport.request.return_value = {
            "code": 1,
            "data": {"list": [order_payload(symbol="BTCUSDTFP")["data"]], "total": 1},
        }

        orders = adapter.fetch_orders("BTC/USDT", since=NOW_MS, limit=10, venue="futures")

        method, url, headers, body = sent(transport)
        assert method == "GET"
        assert url == f"{BASE}/v2/futures/orders?startDate=2020-09-13&pageSize=10&symbol=BTCUSDTFP"
        assert body is None
        assert [o.symbol for o in orders] == ["BTC/USDT"]

    def test_fetch_orders_marked_symbol_with_spot_override(self, adapter, transport):
        transport.request.return_value = {"code": 1, "data": {"list": []}}

        adapter.fetch_orders("BTC/USDTFP", venue="spot")

        assert sent(transport)[1] == f"{BASE}/v2/futures/orders?symbol=BTCUSDTFP"

    def test_fetch_order_marked_symbol_with_spot_override(self, adapter, transport):
        transport.request.return_value = {"code": 1, "data": {"list": [order_payload(symbol="BTCUSDTFP")["data"]]}}

        order = adapter.fetch_order("wJ4sZ1", "BTC/USDTFP", venue="spot")

        assert sent(transport)[1] == f"{BASE}/v2/futures/orders?orderID=wJ4sZ1&symbol=BTCUSDTFP"
        assert order.symbol == "BTC/USDT"

    @pytest.mark.parametrize("limit", [-2, 0, 2.5])
    def test_history_rejects_bad_limit(self, adapter, transport, limit):
        with pytest.raises(BadRequest):
            adapter.fetch_orders("BTC/USDT", limit=limit)
        with pytest.raises(BadRequest):
            adapter.fetch_my_trades("BTC/USDT", limit=limit)
        transport.request.assert_not_called()

    def test_fetch_orders_without_symbol(self, adapter, transport):
        transport.request.return_value = {"code": 1, "data": {"list": []}}

        assert adapter.fetch_orders() == []
        assert sent(transport)[1] == f"{BASE}/v2/spot/orders"

    def test_fetch_order(self, adapter, transport):
        transport.request.return_value = {"code": 1, "data": {"list": [order_payload()["data"]]}}

        order = adapter.fetch_order("wJ4sZ1", "BTC/USDT")

        assert sent(transport)[1] == f"{BASE}/v2/spot/orders?orderID=wJ4sZ1&symbol=BTCUSDT"
        assert order.id == "wJ4sZ1"

    def test_fetch_order_not_found(self, adapter, transport):
        transport.request.return_value = {"code": 1, "data": {"list": []}}

        with pytest.raises(OrderNotFound):
            adapter.fetch_order("nope", "BTC/USDT")

    def test_fetch_open_orders(self, adapter, transport):
        transport.request.return_value = {"code": 1, "data": {"list": [order_payload()["data"]]}}

        orders = adapter.fetch_open_orders("BTC/USDT", venue="futures")

        assert sent(transport)[1] == f"{BASE}/v2/futures/openOrders?symbol=BTCUSDTFP"
        assert len(orders) == 1

    def test_fetch_closed_orders_keeps_futures_routing(self, adapter, transport):
        transport.request.return_value = {"code": 1, "data": {"list": []}}

        adapter.fetch_closed_orders("BTC/USDT", venue="futures")

        assert sent(transport)[1] == f"{BASE}/v2/futures/orders?symbol=BTCUSDTFP&orderStatus=2"

    def test_malformed_list(self, adapter, transport):
        transport.request.return_value = {"code": 1, "data": {"list": "oops"}}

        with pytest.raises(BadResponse):
            adapter.fetch_orders()

    def test_fetch_my_trades(self, adapter, transport):
        transport.request.return_value = {"code": 1, "data": {"list": [{
            "id": "t1", "orderID": "o1", "symbol": "BTCUSDTFP", "side": 1, "orderType": 2,
            "price": "100", "filledQty": "2", "createTime": "2020-09-13T12:26:40Z",
        }]}}

        trades = adapter.fetch_my_trades("BTC/USDTFP", limit=5)

        assert sent(transport)[1] == f"{BASE}/v2/futures/trades?pageSize=5&symbol=BTCUSDTFP"
        assert trades[0].side == "Buy"
        assert trades[0].symbol == "BTC/USDT"
        assert trades[0].cost == 200.0

    def test_fetch_order_trades(self, adapter, transport):
        transport.request.return_value = {"code": 1, "data": {"list": []}}

        adapter.fetch_order_trades("o1", "BTC/USDT")

        assert sent(transport)[1] == f"{BASE}/v2/spot/trades?symbol=BTCUSDT&orderID=o1"


class TestFetchBalance:
    def test_purse_type_per_venue(self, adapter, transport):
        transport.request.return_value = {"code": 1, "data": [
            {"purseType": "F2CP", "currency": "USDT", "available": "10", "unavailable": "2"},
            {"purseType": "SPTP", "currency": "BTC", "available": "1", "unavailable": "0"},
        ]}

        balances = adapter.fetch_balance(venue="otc")

        method, url, headers, body = sent(transport)
        assert method == "GET"
        assert url == f"{BASE}/v2/account/balances?purseType=F2CP"
        assert list(balances) == ["USDT"]
        assert balances["USDT"].total == 12.0

    def test_default_purse(self, adapter, transport):
        transport.request.return_value = {"code": 1, "data": []}

        adapter.fetch_balance()

        assert sent(transport)[1].endswith("purseType=SPTP")

    def test_invalid_purse(self, adapter, transport):
        with pytest.raises(InvalidConfiguration):
            adapter.fetch_balance(venue="margin")
        transport.request.assert_not_called()


class TestPublicData:
    """Test public market data endpoints."""

    TICKERS = {
        "e": "tickers",
        "t": NOW_MS,
        "tickers": [
            {"s": "BTCUSDT", "o": "100", "c": "110", "h": "120", "l": "90"},
            {"s": "BTCUSDTFP", "o": "200", "c": "190", "h": "210", "l": "180"},
        ],
    }

    def test_fetch_ticker_futures(self, adapter, transport):
        transport.request.return_value = self.TICKERS

        ticker = adapter.fetch_ticker("BTC/USDT", venue="futures")

        assert sent(transport) == ("GET", f"{BASE}/v2/market/tickers", None, None)
        assert ticker.symbol == "BTC/USDT"
        assert ticker.last == 190.0
        assert ticker.change == -10.0
        assert ticker.timestamp == NOW_MS

    def test_fetch_ticker_missing(self, adapter, transport):
        transport.request.return_value = {"t": NOW_MS, "tickers": []}

        with pytest.raises(BadResponse):
            adapter.fetch_ticker("BTC/USDT")

    def test_fetch_tickers_all(self, adapter, transport):
        transport.request.return_value = self.TICKERS

        tickers = adapter.fetch_tickers()

        assert [t.symbol for t in tickers] == ["BTC/USDT", "BTC/USDT"]

    def test_fetch_tickers_requested(self, adapter, transport):
        transport.request.return_value = self.TICKERS

        tickers = adapter.fetch_tickers(["BTC/USDT"], venue="futures")

        assert len(tickers) == 1
        assert tickers[0].symbol == "BTC/USDT"
        assert tickers[0].last == 190.0
        assert "resetSymbol" not in tickers[0].info

    def test_fetch_order_book(self, adapter, transport):
        transport.request.return_value = {
            "asks": [["101", "1"], ["100", "2"]],
            "bids": [["99", "1"], ["98.5", "3"]],
            "e": "BTCUSDTFP@book_50",
            "t": NOW_MS,
        }

        book = adapter.fetch_order_book("BTC/USDT", limit=50, venue="futures")

        assert sent(transport)[1] == f"{BASE}/v2/market/orderbook?symbol=BTCUSDTFP&level=50"
        assert book.symbol == "BTC/USDT"
        assert book.asks[0] == (100.0, 2.0)
        assert book.bids[0] == (99.0, 1.0)

    def test_fetch_order_book_invalid_limit(self, adapter, transport):
        with pytest.raises(BadRequest):
            adapter.fetch_order_book("BTC/USDT", limit=30)
        transport.request.assert_not_called()

    def test_fetch_trades(self, adapter, transport):
        transport.request.return_value = {"e": "BTCUSDT@trades", "trades": [
            {"tid": "b", "p": "-100", "q": "1", "t": NOW_MS + 1},
            {"tid": "a", "p": "101", "q": "2", "t": NOW_MS},
        ]}

        trades = adapter.fetch_trades("BTC/USDT", limit=10)

        assert sent(transport)[1] == f"{BASE}/v2/market/trades?symbol=BTCUSDT&limit=10"
        assert [t.id for t in trades] == ["a", "b"]
        assert [t.side for t in trades] == ["buy", "sell"]

    def test_fetch_ohlcv(self, adapter, transport):
        transport.request.return_value = {"code": 1, "data": [[1600000000, 1, 2, 0.5, 1.5, 100, "x", "y"]]}

        rows = adapter.fetch_ohlcv("BTC/USDT", "1h", since=NOW_MS)

        assert sent(transport)[1] == (
            f"{BASE}/marketdata/v1/getHistMarketData"
            "?limit=500&base=BTC&quote=USDT&format=array&date_scale=60&timestamp=1600000000"
        )
        assert rows == [[NOW_MS, 1, 2, 0.5, 1.5, 100]]

    @pytest.mark.parametrize("limit", [-2, 0])
    def test_fetch_trades_rejects_bad_limit(self, adapter, transport, limit):
        with pytest.raises(BadRequest):
            adapter.fetch_trades("BTC/USDT", limit=limit)
        transport.request.assert_not_called()

    def test_fetch_ohlcv_rejects_negative_limit(self, adapter, transport):
        with pytest.raises(BadRequest):
            adapter.fetch_ohlcv("BTC/USDT", "1h", limit=-1)
        transport.request.assert_not_called()

    def test_fetch_ohlcv_invalid_timeframe(self, adapter, transport):
        with pytest.raises(BadRequest):
            adapter.fetch_ohlcv("BTC/USDT", "7m")
        transport.request.assert_not_called()

    def test_fetch_candles(self, adapter, transport):
        transport.request.return_value = {"code": 1, "data": [[1600000000, 1, 2, 0.5, 1.5, 100]]}

        candles = adapter.fetch_candles("BTC/USDT", "futures", "1m", limit=1)

        assert candles[0].exchange == "aax"
        assert candles[0].venue_type == "futures"
        assert candles[0].symbol == "BTC/USDT"
        assert candles[0].ts == NOW_MS
        assert candles[0].close == 1.5


class TestMarkets:
    """Test lazy market loading and symbol snapshots."""

    INSTRUMENTS = {"code": 1, "data": [
        {"symbol": "BTCUSDT", "base": "btc", "quote": "usdt", "code": "", "status": "enable"},
        {"symbol": "BTCUSDTFP", "base": "btc", "quote": "usdt", "code": "FP", "status": "enable"},
        {"symbol": "ETHUSDTFP", "base": "eth", "quote": "usdt", "code": "FP", "status": "disable"},
    ]}

    def test_load_markets_once(self, transport, tmp_path):
        transport.request.return_value = self.INSTRUMENTS
        adapter = AaxAdapter(transport=transport, data_dir=tmp_path)

        assert adapter.fetch_symbols("futures") == ["BTC/USDT"]
        assert adapter.fetch_symbols("spot") == ["BTC/USDT"]

        transport.request.assert_called_once_with("GET", f"{BASE}/v2/instruments", None, None)
        assert "BTC/USDTFP" in adapter.markets

    def test_reload(self, transport, tmp_path):
        transport.request.return_value = self.INSTRUMENTS
        adapter = AaxAdapter(transport=transport, data_dir=tmp_path)

        adapter.load_markets()
        adapter.load_markets(reload=True)

        assert transport.request.call_count == 2

    def test_fetch_symbols_invalid_venue(self, adapter):
        with pytest.raises(InvalidConfiguration):
            adapter.fetch_symbols("otc")

    def test_save_and_load_symbols(self, adapter, tmp_path):
        saved = adapter.save_symbols("spot")

        assert saved == ["BTC/USDT"]
        assert (tmp_path / "symbols" / "aax_spot_symbols.json").exists()
        assert adapter.load_symbols("spot") == saved
