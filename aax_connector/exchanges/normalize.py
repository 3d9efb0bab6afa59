"""
Canonicalisation of raw AAX payloads.

One decode function per record kind. Each one takes the raw venue dict
(plus the market context it needs) and returns a frozen record from
``core.models``. Code tables are total: unknown codes pass through as
their string form. Missing optional fields become None; fields that are
present but not numeric raise ``BadResponse``.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

import ccxt

from aax_connector.core.errors import BadResponse
from aax_connector.core.models import Balance, Fee, Market, Order, OrderBook, Ticker, Trade
from aax_connector.exchanges.symbols import (
    MarketTable,
    strip_futures_marker,
    venue_of_symbol,
)

ORDER_STATUSES = {
    "0": "open",
    "1": "open",
    "2": "closed",
    "3": "closed",
    "4": "canceled",
    "5": "canceled",
    "10": "canceled",
    "6": "rejected",
    "11": "rejected",
}

ORDER_TYPES = {
    "1": "market",
    "2": "limit",
    "3": "stop",
    "4": "stop-limit",
    "7": "stop-loss",
    "8": "take-profit",
}

COMMON_CURRENCIES = {
    "PLA": "Plair",
}

# Scratch key fetch_tickers puts on raw tickers to carry the requested symbol.
SYMBOL_REMAP_KEY = "resetSymbol"


# ---------------------------------------------------------------------------
# Field access
# ---------------------------------------------------------------------------

def safe_string(record: Optional[Dict[str, Any]], key: str) -> Optional[str]:
    if not record:
        return None
    value = record.get(key)
    if value is None or value == "":
        return None
    return str(value)


def safe_float(record: Optional[Dict[str, Any]], key: str) -> Optional[float]:
    text = safe_string(record, key)
    if text is None:
        return None
    try:
        value = float(text)
    except ValueError:
        raise BadResponse(f"aax field {key!r} is not numeric: {text!r}", response=record) from None
    if math.isnan(value) or math.isinf(value):
        raise BadResponse(f"aax field {key!r} is not a finite number: {text!r}", response=record)
    return value


def safe_integer(record: Optional[Dict[str, Any]], key: str) -> Optional[int]:
    value = safe_float(record, key)
    return None if value is None else int(value)


def parse_datetime(text: Optional[str]) -> Optional[int]:
    """Parse an ISO-8601 date-time (``2019-11-12T03:46:41Z``) to ms since epoch."""
    if not text:
        return None
    try:
        dt = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        raise BadResponse(f"aax date-time is not ISO-8601: {text!r}") from None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)


def iso8601(timestamp: Optional[int]) -> Optional[str]:
    if timestamp is None:
        return None
    return ccxt.Exchange.iso8601(int(timestamp))


def _product(a: Optional[float], b: Optional[float]) -> Optional[float]:
    if a is None or b is None:
        return None
    return a * b


def _symbol_from_id(markets: Optional[MarketTable], market_id: Optional[str]) -> Optional[str]:
    # Unknown wire ids pass through, still without the marker.
    if market_id is None:
        return None
    market = markets.get_by_id(market_id) if markets is not None else None
    symbol = market.symbol if market is not None else market_id
    return strip_futures_marker(symbol)


def safe_currency_code(currency_id: Optional[str]) -> Optional[str]:
    if currency_id is None:
        return None
    code = currency_id.upper()
    return COMMON_CURRENCIES.get(code, code)


# ---------------------------------------------------------------------------
# Code tables
# ---------------------------------------------------------------------------

def parse_order_status(status: Any) -> Optional[str]:
    if status is None:
        return None
    status = str(status)
    return ORDER_STATUSES.get(status, status)


def parse_order_type(order_type: Any) -> Optional[str]:
    if order_type is None:
        return None
    order_type = str(order_type)
    return ORDER_TYPES.get(order_type, order_type)


def parse_order_side(side: Any) -> Optional[str]:
    if side is None:
        return None
    return "buy" if str(side) == "1" else "sell"


def parse_my_trade_side(side: Any) -> Optional[str]:
    # Capitalised on purpose: own-trade sides come back as 'Buy'/'Sell'.
    if side is None:
        return None
    return "Buy" if str(side) == "1" else "Sell"


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

def parse_market(raw: Dict[str, Any]) -> Market:
    market_id = safe_string(raw, "symbol")
    base = (safe_string(raw, "base") or "").upper()
    quote = (safe_string(raw, "quote") or "").upper()
    if not market_id or not base or not quote:
        raise BadResponse("aax instrument without symbol/base/quote", response=raw)
    symbol = f"{base}/{quote}{safe_string(raw, 'code') or ''}"
    return Market(
        id=market_id,
        symbol=symbol,
        base=base,
        quote=quote,
        venue=venue_of_symbol(symbol),
        active=raw.get("status") == "enable",
        taker=safe_float(raw, "takerFee"),
        maker=safe_float(raw, "makerFee"),
        min_amount=safe_float(raw, "minQuantity"),
        max_amount=safe_float(raw, "maxQuantity"),
        min_price=safe_float(raw, "minPrice"),
        max_price=safe_float(raw, "maxPrice"),
        info=raw,
    )


def parse_order(raw: Dict[str, Any], markets: Optional[MarketTable] = None) -> Order:
    """
    Normalise one order record.

    ``raw`` may carry the envelope's ``ts`` merged in; it is used as the
    timestamp when the venue did not report ``createTime``.
    """
    create_time = safe_string(raw, "createTime")
    timestamp = parse_datetime(create_time) if create_time else safe_integer(raw, "ts")
    price = safe_float(raw, "price")
    filled = safe_float(raw, "cumQty")
    return Order(
        id=safe_string(raw, "orderID"),
        client_order_id=safe_string(raw, "clOrdID"),
        timestamp=timestamp,
        datetime=iso8601(timestamp),
        last_trade_timestamp=parse_datetime(safe_string(raw, "transactTime")),
        status=parse_order_status(raw.get("orderStatus")),
        symbol=_symbol_from_id(markets, safe_string(raw, "symbol")),
        type=parse_order_type(raw.get("orderType")),
        side=parse_order_side(raw.get("side")),
        price=price,
        average=safe_float(raw, "avgPrice"),
        amount=safe_float(raw, "orderQty"),
        filled=filled,
        remaining=safe_float(raw, "leavesQty"),
        cost=_product(filled, price),
        reject_reason=safe_string(raw, "rejectReason"),
        fee=Fee(cost=safe_float(raw, "commission")),
        info=raw,
    )


def parse_orders(rows: Iterable[Dict[str, Any]], markets: Optional[MarketTable] = None) -> List[Order]:
    return [parse_order(row, markets) for row in rows]


def parse_trade(raw: Dict[str, Any], market: Optional[Market] = None) -> Trade:
    """Public trade: the sign of ``p`` carries the taker side."""
    symbol = strip_futures_marker(market.symbol) if market is not None else None
    timestamp = safe_integer(raw, "t")
    price = safe_float(raw, "p")
    amount = safe_float(raw, "q")
    side = None if price is None else ("buy" if price > 0 else "sell")
    cost = _product(price, amount)
    return Trade(
        id=safe_string(raw, "tid"),
        order=None,
        timestamp=timestamp,
        datetime=iso8601(timestamp),
        symbol=symbol,
        type=None,
        side=side,
        taker_or_maker=None,
        price=None if price is None else abs(price),
        amount=amount,
        cost=None if cost is None else abs(cost),
        fee=Fee(currency=symbol.split("/")[1] if symbol and "/" in symbol else None),
        info=raw,
    )


def parse_trades(
    rows: Iterable[Dict[str, Any]],
    market: Optional[Market] = None,
    since: Optional[int] = None,
    limit: Optional[int] = None,
) -> List[Trade]:
    trades = sorted(
        (parse_trade(row, market) for row in rows),
        key=lambda t: t.timestamp if t.timestamp is not None else 0,
    )
    if since is not None:
        trades = [t for t in trades if t.timestamp is not None and t.timestamp >= since]
    if limit is not None:
        trades = trades[:limit]
    return trades


def parse_my_trade(raw: Dict[str, Any], markets: Optional[MarketTable] = None) -> Trade:
    timestamp = parse_datetime(safe_string(raw, "createTime"))
    price = safe_float(raw, "price")
    amount = safe_float(raw, "filledQty")
    return Trade(
        id=safe_string(raw, "id"),
        order=safe_string(raw, "orderID"),
        timestamp=timestamp,
        datetime=iso8601(timestamp),
        symbol=_symbol_from_id(markets, safe_string(raw, "symbol")),
        type=parse_order_type(raw.get("orderType")),
        side=parse_my_trade_side(raw.get("side")),
        taker_or_maker="taker",
        price=price,
        amount=amount,
        cost=_product(price, amount),
        info=raw,
    )


def parse_my_trades(rows: Iterable[Dict[str, Any]], markets: Optional[MarketTable] = None) -> List[Trade]:
    return [parse_my_trade(row, markets) for row in rows]


def parse_ticker(
    raw: Dict[str, Any],
    market: Optional[Market] = None,
    timestamp: Optional[int] = None,
) -> Ticker:
    info = {k: v for k, v in raw.items() if k != SYMBOL_REMAP_KEY}
    symbol = market.symbol if market is not None else raw.get(SYMBOL_REMAP_KEY)
    symbol = strip_futures_marker(symbol)
    last = safe_float(raw, "c")
    open_ = safe_float(raw, "o")
    change = None if last is None or open_ is None else last - open_
    percentage = None if change is None or not open_ else change / open_ * 100
    average = None if last is None or open_ is None else (last + open_) / 2
    return Ticker(
        symbol=symbol,
        timestamp=timestamp,
        datetime=iso8601(timestamp),
        high=safe_float(raw, "h"),
        low=safe_float(raw, "l"),
        open=open_,
        close=last,
        last=last,
        change=change,
        percentage=percentage,
        average=average,
        info=info,
    )


def parse_balance(rows: Iterable[Dict[str, Any]], purse_type: Optional[str] = None) -> Dict[str, Balance]:
    """One ``Balance`` per currency; rows from other purses are skipped."""
    result: Dict[str, Balance] = {}
    for row in rows:
        if purse_type is not None and row.get("purseType") not in (None, purse_type):
            continue
        code = safe_currency_code(safe_string(row, "currency"))
        if code is None:
            continue
        free = safe_float(row, "available")
        used = safe_float(row, "unavailable")
        total = None if free is None or used is None else free + used
        result[code] = Balance(currency=code, free=free, used=used, total=total)
    return result


def parse_ohlcv(row: Any) -> List[Optional[float]]:
    """
    ``[t_seconds, o, h, l, c, v, ...extra]`` (or the keyed ``t/o/h/l/c/v``
    form) -> ``[t_ms, o, h, l, c, v]``.
    """
    if isinstance(row, dict):
        seconds = safe_integer(row, "t")
        values = [safe_float(row, key) for key in ("o", "h", "l", "c", "v")]
    else:
        if len(row) < 6:
            raise BadResponse(f"aax OHLCV row has {len(row)} fields, expected at least 6", response=row)
        keyed = dict(zip(("t", "o", "h", "l", "c", "v"), row[:6]))
        seconds = safe_integer(keyed, "t")
        values = [safe_float(keyed, key) for key in ("o", "h", "l", "c", "v")]
    return [None if seconds is None else seconds * 1000, *values]


def parse_ohlcvs(rows: Iterable[Any]) -> List[List[Optional[float]]]:
    return [parse_ohlcv(row) for row in rows]


def _book_side(levels: Optional[Iterable[Any]], descending: bool) -> List[tuple]:
    parsed = []
    for level in levels or []:
        keyed = {"price": level[0], "amount": level[1]}
        parsed.append((safe_float(keyed, "price"), safe_float(keyed, "amount")))
    return sorted(parsed, key=lambda lvl: lvl[0] or 0.0, reverse=descending)


def parse_order_book(raw: Dict[str, Any], symbol: Optional[str] = None) -> OrderBook:
    timestamp = safe_integer(raw, "t")
    return OrderBook(
        symbol=strip_futures_marker(symbol),
        timestamp=timestamp,
        datetime=iso8601(timestamp),
        bids=_book_side(raw.get("bids"), descending=True),
        asks=_book_side(raw.get("asks"), descending=False),
        info=raw,
    )


