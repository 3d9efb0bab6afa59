from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

# Canonical records. Fields the venue did not report are None.

@dataclass(frozen=True)
class Market:
    id: str          # wire id, e.g. "BTCUSDT" or "BTCUSDFP"
    symbol: str      # logical, e.g. "BTC/USDT" or "BTC/USDFP"
    base: str
    quote: str
    venue: str       # "spot" or "futures"
    active: bool = True
    taker: Optional[float] = None
    maker: Optional[float] = None
    min_amount: Optional[float] = None
    max_amount: Optional[float] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    info: Dict[str, Any] = field(default_factory=dict, compare=False)

@dataclass(frozen=True)
class Fee:
    currency: Optional[str] = None
    cost: Optional[float] = None
    rate: Optional[float] = None

@dataclass(frozen=True)
class Order:
    id: Optional[str]
    client_order_id: Optional[str]
    timestamp: Optional[int]            # ms since epoch
    datetime: Optional[str]
    last_trade_timestamp: Optional[int]
    status: Optional[str]               # open | closed | canceled | rejected
    symbol: Optional[str]               # logical, never carries the futures marker
    type: Optional[str]
    side: Optional[str]
    price: Optional[float]
    average: Optional[float]
    amount: Optional[float]
    filled: Optional[float]
    remaining: Optional[float]
    cost: Optional[float]
    reject_reason: Optional[str] = None
    fee: Fee = field(default_factory=Fee)
    info: Dict[str, Any] = field(default_factory=dict, compare=False)

@dataclass(frozen=True)
class Trade:
    id: Optional[str]
    order: Optional[str]
    timestamp: Optional[int]
    datetime: Optional[str]
    symbol: Optional[str]
    type: Optional[str]
    side: Optional[str]
    taker_or_maker: Optional[str]
    price: Optional[float]
    amount: Optional[float]
    cost: Optional[float]
    fee: Fee = field(default_factory=Fee)
    info: Dict[str, Any] = field(default_factory=dict, compare=False)

@dataclass(frozen=True)
class Ticker:
    symbol: Optional[str]
    timestamp: Optional[int]
    datetime: Optional[str]
    high: Optional[float]
    low: Optional[float]
    open: Optional[float]
    close: Optional[float]
    last: Optional[float]
    change: Optional[float]
    percentage: Optional[float]
    average: Optional[float]
    info: Dict[str, Any] = field(default_factory=dict, compare=False)

@dataclass(frozen=True)
class Balance:
    currency: str
    free: Optional[float]
    used: Optional[float]
    total: Optional[float]

@dataclass(frozen=True)
class OrderBook:
    symbol: Optional[str]
    timestamp: Optional[int]
    datetime: Optional[str]
    bids: List[Tuple[float, float]] = field(default_factory=list)
    asks: List[Tuple[float, float]] = field(default_factory=list)
    info: Dict[str, Any] = field(default_factory=dict, compare=False)

@dataclass
class Candle:
    exchange: str
    venue_type: str  # "spot" or "futures"
    symbol: str      # canonical, e.g. "BTC/USDT"
    ts: int          # UTC open time, ms since epoch
    open: float
    high: float
    low: float
    close: float
    volume: float
