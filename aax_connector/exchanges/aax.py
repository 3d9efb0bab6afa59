"""
AAX spot + futures adapter.

One set of operations over two structurally different backends. Every
call resolves its venue and wire symbol through ``SymbolRouter``, signs
private requests with ``RequestSigner``, checks the ``code`` embedded in
the JSON body and hands the payload to ``normalize``.

Usage::

    from aax_connector.core.config import AdapterConfig
    from aax_connector.exchanges.aax import AaxAdapter

    adapter = AaxAdapter(AdapterConfig.from_file("config/aax_config.json"))

    adapter.fetch_ticker("BTC/USDT")                    # default venue
    adapter.fetch_ticker("BTC/USDT", venue="futures")   # BTCUSDTFP
    adapter.create_order("BTC/USDT", "limit", "buy", 0.01, price=30000)
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import quote

from aax_connector.core.config import (
    BALANCE_VENUES,
    FUTURES,
    OTC,
    SAVINGS,
    SPOT,
    TRADING_VENUES,
    AdapterConfig,
)
from aax_connector.core.errors import (
    ArgumentsRequired,
    BadRequest,
    BadResponse,
    InvalidConfiguration,
    OrderNotFound,
    TransportError,
    raise_for_venue_code,
)
from aax_connector.core.models import Balance, Candle, Market, Order, OrderBook, Ticker, Trade
from aax_connector.exchanges import normalize
from aax_connector.exchanges.base import ExchangeAdapter
from aax_connector.exchanges.signer import RequestSigner, build_url
from aax_connector.exchanges.symbols import MarketTable, Route, SymbolRouter, strip_futures_marker
from aax_connector.exchanges.transport import HttpTransport

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
API_PREFIX = "/v2"
MARKETDATA_PREFIX = "/marketdata/v1"

TIMEFRAMES = {
    "1m": "1",
    "5m": "5",
    "15m": "15",
    "30m": "30",
    "1h": "60",
    "2h": "120",
    "4h": "240",
    "12h": "720",
    "1d": "1440",
    "3d": "4320",
    "1w": "10080",
}

PURSE_TYPES = {
    SPOT: "SPTP",
    FUTURES: "FUTP",
    OTC: "F2CP",
    SAVINGS: "VLTP",
}

ORDER_TYPES = ("MARKET", "LIMIT", "STOP", "STOP-LIMIT")
PRICED_ORDER_TYPES = ("LIMIT", "STOP-LIMIT")
ORDER_SIDES = ("BUY", "SELL")
ORDER_BOOK_LEVELS = (20, 50)
TERMINAL_STATUSES = ("closed", "canceled")
CLOSED_ORDER_STATUS = 2

_SUCCESS_CODE = 1
_DEFAULT_OHLCV_LIMIT = 500
_MAX_PUBLIC_TRADES = 2000


class AaxAdapter(ExchangeAdapter):
    """
    Unified spot/futures operations against AAX.

    Parameters
    ----------
    config : AdapterConfig, optional
        Credentials, default venue and HTTP settings. Captured once.
    transport : object, optional
        Anything with ``request(method, url, headers, body) -> JSON``.
        Defaults to ``HttpTransport``.
    markets : MarketTable, optional
        Pre-loaded market metadata. Loaded lazily from ``/v2/instruments``
        when absent.
    logger : logging.Logger, optional
    clock : callable, optional
        Millisecond clock used for request nonces.
    data_dir : Path, optional
        Root for symbol snapshots (``<data_dir>/symbols``).
    """

    exchange_id = "aax"

    def __init__(
        self,
        config: Optional[AdapterConfig] = None,
        transport: Any = None,
        markets: Optional[MarketTable] = None,
        logger: Optional[logging.Logger] = None,
        clock: Optional[Callable[[], int]] = None,
        data_dir=None,
    ) -> None:
        super().__init__(data_dir)
        self.config = config or AdapterConfig()
        self.logger = logger or logging.getLogger(__name__)
        self.router = SymbolRouter(self.config.default_type)
        self.signer = RequestSigner(
            self.config.api_key, self.config.secret, self.config.base_url, clock=clock
        )
        self.transport = transport or HttpTransport(
            timeout=self.config.timeout, retries=self.config.retries
        )
        self._markets = markets if markets is not None else MarketTable()

    # ------------------------------------------------------------------
    # Market metadata
    # ------------------------------------------------------------------

    @property
    def markets(self) -> MarketTable:
        return self._markets

    def fetch_markets(self) -> List[Market]:
        response = self._public("fetch_markets", "/instruments")
        return [normalize.parse_market(row) for row in response.get("data") or []]

    def load_markets(self, reload: bool = False) -> MarketTable:
        """Load market metadata once; ``reload=True`` swaps in a fresh table."""
        if reload or not self._markets.loaded:
            self._markets = MarketTable(self.fetch_markets())
            self.logger.debug(f"AAX market metadata loaded ({len(self._markets)} markets).")
        return self._markets

    def fetch_symbols(self, venue_type: str) -> List[str]:
        """Caller-facing symbols of the active markets on one venue."""
        if venue_type not in TRADING_VENUES:
            raise InvalidConfiguration(
                f"venue_type must be one of {', '.join(TRADING_VENUES)}, got {venue_type!r}"
            )
        markets = self.load_markets()
        return sorted(
            strip_futures_marker(m.symbol) for m in markets if m.venue == venue_type and m.active
        )

    # ------------------------------------------------------------------
    # Trading
    # ------------------------------------------------------------------

    def create_order(
        self,
        symbol: str,
        type: str,
        side: str,
        amount: float,
        price: Optional[float] = None,
        venue: Optional[str] = None,
        params: Optional[dict] = None,
    ) -> Order:
        operation = "create_order"
        if not (symbol and type and side and amount):
            raise ArgumentsRequired(f"aax {operation}() requires symbol, type, side and amount")
        order_type = type.upper()
        order_side = side.upper()
        if order_type not in ORDER_TYPES:
            raise BadRequest(
                f"aax {operation}() type must be one of {', '.join(ORDER_TYPES)}, got {type!r}"
            )
        if order_side not in ORDER_SIDES:
            raise BadRequest(
                f"aax {operation}() side must be one of {', '.join(ORDER_SIDES)}, got {side!r}"
            )
        if order_type in PRICED_ORDER_TYPES and not price:
            raise ArgumentsRequired(f"aax {operation}() requires a price for {order_type} orders")
        self.signer.check_credentials()

        route = self._route(symbol, venue)
        extra = dict(params or {})
        request = {
            "orderType": order_type,
            "symbol": self._wire_symbol(route),
            "orderQty": amount,
            "stopPrice": extra.pop("stopPrice", None),
            "timeInForce": extra.pop("timeInForce", "GTC"),
            "side": order_side,
        }
        if order_type in PRICED_ORDER_TYPES:
            request["price"] = str(price)
        request.update(extra)

        response = self._private(operation, "POST", f"/{route.venue}/orders", request)
        order = self._envelope_order(operation, response)
        self.logger.info(
            f"[{route.display_symbol}] {order_side} {order_type} placed on {route.venue}: "
            f"order_id={order.id}, amount={amount}, price={price}"
        )
        return order

    def cancel_order(
        self,
        id: str,
        symbol: Optional[str] = None,
        venue: Optional[str] = None,
    ) -> Order:
        """
        Cancel one order.

        An acknowledged cancel that reports the order as already closed or
        canceled raises ``OrderNotFound``.
        """
        operation = "cancel_order"
        if not id:
            raise ArgumentsRequired(f"aax {operation}() requires an order id")
        self.signer.check_credentials()
        route = self._route(symbol, venue)
        if route.symbol is not None:
            self._market(route)

        path = f"/{route.venue}/orders/cancel/{quote(str(id), safe='')}"
        response = self._private(operation, "DELETE", path)
        order = self._envelope_order(operation, response)
        if order.status in TERMINAL_STATUSES:
            raise OrderNotFound(
                f"aax {operation}() order {id} is already {order.status}: {order.info}"
            )
        self.logger.info(f"[{order.symbol}] order {id} canceled on {route.venue}")
        return order

    def cancel_all_orders(self, symbol: str, venue: Optional[str] = None) -> Dict[str, Any]:
        operation = "cancel_all_orders"
        if not symbol:
            raise ArgumentsRequired(f"aax {operation}() requires a symbol")
        self.signer.check_credentials()
        route = self._route(symbol, venue)
        response = self._private(
            operation, "DELETE", f"/{route.venue}/orders/cancel/all", {"symbol": self._wire_symbol(route)}
        )
        self.logger.info(f"[{route.display_symbol}] all orders canceled on {route.venue}")
        return {"info": response}

    def edit_order(
        self,
        id: str,
        symbol: Optional[str] = None,
        amount: Optional[float] = None,
        price: Optional[float] = None,
        stop_price: Optional[float] = None,
        venue: Optional[str] = None,
    ) -> Order:
        operation = "edit_order"
        if not id:
            raise ArgumentsRequired(f"aax {operation}() requires an order id")
        self.signer.check_credentials()
        route = self._route(symbol, venue)
        request: Dict[str, Any] = {"orderID": id}
        request["symbol"] = self._wire_symbol(route)
        if amount:
            request["orderQty"] = amount
        if price:
            request["price"] = price
        if stop_price:
            request["stopPrice"] = stop_price

        response = self._private(operation, "PUT", f"/{route.venue}/orders", request)
        order = self._envelope_order(operation, response)
        self.logger.info(
            f"[{order.symbol}] order {id} amended on {route.venue}: amount={amount}, price={price}"
        )
        return order

    # ------------------------------------------------------------------
    # Order history
    # ------------------------------------------------------------------

    def fetch_order(
        self,
        id: str,
        symbol: Optional[str] = None,
        venue: Optional[str] = None,
    ) -> Order:
        operation = "fetch_order"
        if not id:
            raise ArgumentsRequired(f"aax {operation}() requires an order id")
        self.signer.check_credentials()
        route = self.router.resolve_history(symbol, venue)
        request: Dict[str, Any] = {"orderID": id}
        request["symbol"] = self._wire_symbol(route)
        response = self._private(operation, "GET", self._history_path(route), request)
        orders = normalize.parse_orders(self._list(operation, response), self.load_markets())
        if not orders:
            raise OrderNotFound(f"aax {operation}() found no order {id}")
        return orders[0]

    def fetch_orders(
        self,
        symbol: Optional[str] = None,
        since: Optional[int] = None,
        limit: Optional[int] = None,
        venue: Optional[str] = None,
        params: Optional[dict] = None,
    ) -> List[Order]:
        operation = "fetch_orders"
        self.signer.check_credentials()
        route = self.router.resolve_history(symbol, venue)
        request = self._paging(operation, since, limit)
        request["symbol"] = self._wire_symbol(route)
        request.update(params or {})
        response = self._private(operation, "GET", self._history_path(route), request)
        return normalize.parse_orders(self._list(operation, response), self.load_markets())

    def fetch_open_orders(
        self,
        symbol: Optional[str] = None,
        since: Optional[int] = None,
        limit: Optional[int] = None,
        venue: Optional[str] = None,
    ) -> List[Order]:
        operation = "fetch_open_orders"
        self.signer.check_credentials()
        route = self._route(symbol, venue)
        request = self._paging(operation, since, limit)
        request["symbol"] = self._wire_symbol(route)
        response = self._private(operation, "GET", f"/{route.venue}/openOrders", request)
        return normalize.parse_orders(self._list(operation, response), self.load_markets())

    def fetch_closed_orders(
        self,
        symbol: Optional[str] = None,
        since: Optional[int] = None,
        limit: Optional[int] = None,
        venue: Optional[str] = None,
        params: Optional[dict] = None,
    ) -> List[Order]:
        # The override only shapes the symbol; fetch_orders re-routes from it.
        route = self._route(symbol, venue)
        request = {"orderStatus": CLOSED_ORDER_STATUS}
        request.update(params or {})
        return self.fetch_orders(route.symbol, since, limit, params=request)

    def fetch_my_trades(
        self,
        symbol: Optional[str] = None,
        since: Optional[int] = None,
        limit: Optional[int] = None,
        venue: Optional[str] = None,
        params: Optional[dict] = None,
    ) -> List[Trade]:
        operation = "fetch_my_trades"
        self.signer.check_credentials()
        route = self._route(symbol, venue)
        request = self._paging(operation, since, limit)
        request["symbol"] = self._wire_symbol(route)
        request.update(params or {})
        response = self._private(operation, "GET", f"/{route.venue}/trades", request)
        return normalize.parse_my_trades(self._list(operation, response), self.load_markets())

    def fetch_order_trades(
        self,
        id: str,
        symbol: Optional[str] = None,
        since: Optional[int] = None,
        limit: Optional[int] = None,
        venue: Optional[str] = None,
    ) -> List[Trade]:
        if not id:
            raise ArgumentsRequired("aax fetch_order_trades() requires an order id")
        return self.fetch_my_trades(symbol, since, limit, venue=venue, params={"orderID": id})

    # ------------------------------------------------------------------
    # Account
    # ------------------------------------------------------------------

    def fetch_balance(self, venue: Optional[str] = None) -> Dict[str, Balance]:
        """Balances of one purse: spot, futures, otc or savings."""
        operation = "fetch_balance"
        self.signer.check_credentials()
        resolved = self.router.resolve_venue(None, venue, BALANCE_VENUES)
        purse_type = PURSE_TYPES[resolved]
        response = self._private(operation, "GET", "/account/balances", {"purseType": purse_type})
        return normalize.parse_balance(response.get("data") or [], purse_type)

    # ------------------------------------------------------------------
    # Public market data
    # ------------------------------------------------------------------

    def fetch_ticker(self, symbol: str, venue: Optional[str] = None) -> Ticker:
        operation = "fetch_ticker"
        if not symbol:
            raise ArgumentsRequired(f"aax {operation}() requires a symbol")
        route = self._route(symbol, venue)
        market = self._market(route)
        response = self._public(operation, "/market/tickers")
        for row in response.get("tickers") or []:
            if row.get("s") == market.id:
                return normalize.parse_ticker(row, market, normalize.safe_integer(response, "t"))
        raise BadResponse(
            f"aax {operation}() returned no ticker for {market.id}",
            operation=operation,
            response=response,
        )

    def fetch_tickers(
        self,
        symbols: Optional[List[str]] = None,
        venue: Optional[str] = None,
    ) -> List[Ticker]:
        operation = "fetch_tickers"
        markets = self.load_markets()
        response = self._public(operation, "/market/tickers")
        timestamp = normalize.safe_integer(response, "t")
        rows = response.get("tickers") or []

        if not symbols:
            return [
                normalize.parse_ticker(row, markets.get_by_id(row.get("s")), timestamp)
                for row in rows
            ]

        requested = {}
        for symbol in symbols:
            market = self._market(self._route(symbol, venue))
            requested[market.id] = market.symbol
        return [
            normalize.parse_ticker({**row, normalize.SYMBOL_REMAP_KEY: requested[row["s"]]}, None, timestamp)
            for row in rows
            if row.get("s") in requested
        ]

    def fetch_order_book(
        self,
        symbol: str,
        limit: Optional[int] = None,
        venue: Optional[str] = None,
    ) -> OrderBook:
        operation = "fetch_order_book"
        if not symbol:
            raise ArgumentsRequired(f"aax {operation}() requires a symbol")
        if limit is not None and str(limit) not in {str(level) for level in ORDER_BOOK_LEVELS}:
            raise BadRequest(f"aax {operation}() limit must be 20 or 50, got {limit!r}")
        route = self._route(symbol, venue)
        market = self._market(route)
        request = {"symbol": market.id, "level": int(limit or ORDER_BOOK_LEVELS[0])}
        response = self._public(operation, "/market/orderbook", request)
        return normalize.parse_order_book(response, route.display_symbol)

    def fetch_trades(
        self,
        symbol: str,
        since: Optional[int] = None,
        limit: Optional[int] = None,
        venue: Optional[str] = None,
    ) -> List[Trade]:
        operation = "fetch_trades"
        if not symbol:
            raise ArgumentsRequired(f"aax {operation}() requires a symbol")
        self._check_limit(operation, limit)
        route = self._route(symbol, venue)
        market = self._market(route)
        request = {"symbol": market.id, "limit": min(limit or _MAX_PUBLIC_TRADES, _MAX_PUBLIC_TRADES)}
        response = self._public(operation, "/market/trades", request)
        return normalize.parse_trades(response.get("trades") or [], market, since, limit)

    def fetch_ohlcv(
        self,
        symbol: str,
        timeframe: str = "1m",
        since: Optional[int] = None,
        limit: Optional[int] = None,
        venue: Optional[str] = None,
    ) -> List[list]:
        """Rows of ``[timestamp_ms, open, high, low, close, volume]``."""
        operation = "fetch_ohlcv"
        if not symbol:
            raise ArgumentsRequired(f"aax {operation}() requires a symbol")
        self._check_limit(operation, limit)
        date_scale = TIMEFRAMES.get(timeframe)
        if date_scale is None:
            raise BadRequest(
                f"aax {operation}() timeframe must be one of {', '.join(TIMEFRAMES)}, got {timeframe!r}"
            )
        route = self._route(symbol, venue)
        self._market(route)
        base, quote_id = route.symbol.split("/")
        request = {
            "limit": limit or _DEFAULT_OHLCV_LIMIT,
            "base": base,
            "quote": quote_id,
            "format": "array",
            "date_scale": date_scale,
        }
        if since is not None:
            request["timestamp"] = int(since // 1000)
        response = self._public(operation, "/getHistMarketData", request, prefix=MARKETDATA_PREFIX)
        rows = response if isinstance(response, list) else response.get("data") or []
        return normalize.parse_ohlcvs(rows)

    def fetch_candles(
        self,
        symbol: str,
        venue_type: str,
        timeframe: str,
        start_ts: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[Candle]:
        rows = self.fetch_ohlcv(symbol, timeframe, since=start_ts, limit=limit, venue=venue_type)
        display_symbol = strip_futures_marker(symbol)
        return [
            Candle(
                exchange=self.exchange_id,
                venue_type=venue_type,
                symbol=display_symbol,
                ts=row[0],
                open=row[1],
                high=row[2],
                low=row[3],
                close=row[4],
                volume=row[5],
            )
            for row in rows
        ]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _route(self, symbol: Optional[str], venue: Optional[str]) -> Route:
        return self.router.resolve(symbol, venue, TRADING_VENUES)

    def _market(self, route: Route) -> Market:
        return self.load_markets().market(route.symbol)

    def _wire_symbol(self, route: Route) -> Optional[str]:
        return self.router.wire_symbol(self.load_markets(), route)

    def _history_path(self, route: Route) -> str:
        if self.router.is_futures_route(route):
            return f"/{FUTURES}/orders"
        return f"/{SPOT}/orders"

    @staticmethod
    def _check_limit(operation: str, limit: Optional[int]) -> None:
        if limit is None:
            return
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise BadRequest(f"aax {operation}() limit must be a positive integer, got {limit!r}")

    @classmethod
    def _paging(cls, operation: str, since: Optional[int], limit: Optional[int]) -> Dict[str, Any]:
        cls._check_limit(operation, limit)
        request: Dict[str, Any] = {}
        if since:
            request["startDate"] = datetime.fromtimestamp(since / 1000, tz=timezone.utc).strftime("%Y-%m-%d")
        if limit:
            request["pageSize"] = limit
        return request

    def _public(
        self,
        operation: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        prefix: str = API_PREFIX,
    ) -> Any:
        url = build_url(self.config.base_url, prefix + path, params)
        self.logger.debug(f"{operation}: GET {url}")
        payload = self._send(operation, "GET", url)
        if isinstance(payload, dict) and "code" in payload:
            self._check_code(operation, payload)
        return payload

    def _private(
        self,
        operation: str,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        signed = self.signer.sign(method, API_PREFIX + path, params)
        self.logger.debug(f"{operation}: {signed.method} {signed.url}")
        payload = self._send(operation, signed.method, signed.url, signed.headers, signed.body)
        self._check_code(operation, payload)
        return payload

    def _send(
        self,
        operation: str,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        body: Optional[str] = None,
    ) -> Any:
        try:
            return self.transport.request(method, url, headers, body)
        except TransportError as exc:
            error = exc.payload.get("error") if isinstance(exc.payload, dict) else None
            if exc.status == 400 and isinstance(error, dict) and error.get("code") is not None:
                raise_for_venue_code(
                    error.get("code"), error.get("message") or str(exc.payload), operation, exc.payload
                )
            raise

    @staticmethod
    def _check_code(operation: str, payload: Any) -> None:
        if not isinstance(payload, dict):
            raise BadResponse(
                f"aax {operation}() returned an unexpected payload",
                operation=operation,
                response=payload,
            )
        if normalize.safe_float(payload, "code") != _SUCCESS_CODE:
            raise_for_venue_code(payload.get("code"), payload.get("message") or "no message", operation, payload)

    @staticmethod
    def _list(operation: str, payload: Dict[str, Any]) -> List[dict]:
        data = payload.get("data")
        if isinstance(data, dict):
            data = data.get("list")
        if data is None:
            return []
        if not isinstance(data, list):
            raise BadResponse(
                f"aax {operation}() returned a malformed list",
                operation=operation,
                response=payload,
            )
        return data

    def _envelope_order(self, operation: str, payload: Dict[str, Any]) -> Order:
        data = payload.get("data")
        if not isinstance(data, dict):
            raise BadResponse(
                f"aax {operation}() returned no order",
                operation=operation,
                response=payload,
            )
        return normalize.parse_order({**data, "ts": payload.get("ts")}, self.load_markets())
