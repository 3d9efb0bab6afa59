"""
Venue routing and symbol rewriting.

AAX lists a futures contract under the spot pair's logical symbol with a
reserved ``FP`` suffix (``BTC/USDT`` -> ``BTC/USDTFP``, wire id
``BTCUSDTFP``). The router decides which venue serves a call and which
logical form to look up in the market table. Symbols handed back to
callers never carry the marker.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Sequence

from aax_connector.core.config import FUTURES, SPOT, TRADING_VENUES
from aax_connector.core.errors import InvalidConfiguration, UnknownSymbol
from aax_connector.core.models import Market

FUTURES_MARKER = "FP"


def has_futures_marker(symbol: Optional[str]) -> bool:
    return bool(symbol) and symbol.endswith(FUTURES_MARKER)


def strip_futures_marker(symbol: Optional[str]) -> Optional[str]:
    if has_futures_marker(symbol):
        return symbol[: -len(FUTURES_MARKER)]
    return symbol


@dataclass(frozen=True)
class Route:
    venue: str
    symbol: Optional[str]          # lookup form, carries the marker on futures
    display_symbol: Optional[str]  # caller-facing form, never carries the marker
    marked: bool = False           # caller passed the symbol with the marker


class MarketTable:
    """
    Read-only index of market metadata by logical symbol and by wire id.

    Built by ``AaxAdapter.load_markets`` (or injected); the adapter replaces
    the whole table on reload instead of mutating it.
    """

    def __init__(self, markets: Iterable[Market] = ()) -> None:
        self._by_symbol: Dict[str, Market] = {}
        self._by_id: Dict[str, Market] = {}
        for market in markets:
            self._by_symbol[market.symbol] = market
            self._by_id[market.id] = market

    def __len__(self) -> int:
        return len(self._by_symbol)

    def __contains__(self, symbol: str) -> bool:
        return symbol in self._by_symbol

    def __iter__(self):
        return iter(self._by_symbol.values())

    @property
    def loaded(self) -> bool:
        return bool(self._by_symbol)

    def market(self, symbol: str) -> Market:
        try:
            return self._by_symbol[symbol]
        except KeyError:
            raise UnknownSymbol(f"aax does not have market symbol {symbol}") from None

    def get_by_id(self, market_id: Optional[str]) -> Optional[Market]:
        if market_id is None:
            return None
        return self._by_id.get(market_id)


class SymbolRouter:
    """
    Resolves ``(symbol, venue override)`` into a single ``Route``.

    Venue precedence: explicit per-call override, then a symbol carrying the
    futures marker, then the process-wide default.
    """

    def __init__(self, default_venue: str) -> None:
        if default_venue not in TRADING_VENUES:
            raise InvalidConfiguration(
                f"default venue must be one of {', '.join(TRADING_VENUES)}, got {default_venue!r}"
            )
        self.default_venue = default_venue

    def resolve_venue(
        self,
        symbol: Optional[str] = None,
        venue: Optional[str] = None,
        allowed: Sequence[str] = TRADING_VENUES,
    ) -> str:
        if venue is not None:
            if venue not in allowed:
                raise InvalidConfiguration(
                    f"venue must be one of {', '.join(allowed)}, got {venue!r}"
                )
            return venue
        if has_futures_marker(symbol):
            return FUTURES
        return self.default_venue

    def resolve(
        self,
        symbol: Optional[str] = None,
        venue: Optional[str] = None,
        allowed: Sequence[str] = TRADING_VENUES,
    ) -> Route:
        resolved = self.resolve_venue(symbol, venue, allowed)
        if not symbol:
            return Route(resolved, None, None)
        display = strip_futures_marker(symbol)
        lookup = display + FUTURES_MARKER if resolved == FUTURES else display
        return Route(resolved, lookup, display, has_futures_marker(symbol))

    def resolve_history(
        self,
        symbol: Optional[str] = None,
        venue: Optional[str] = None,
        allowed: Sequence[str] = TRADING_VENUES,
    ) -> Route:
        """
        Route for the order history endpoints.

        A symbol carrying the futures marker targets the futures history
        even when the override names spot.
        """
        route = self.resolve(symbol, venue, allowed)
        if route.venue != FUTURES and self.is_futures_route(route):
            display = route.display_symbol
            return Route(FUTURES, display + FUTURES_MARKER, display, marked=True)
        return route

    @staticmethod
    def wire_symbol(markets: MarketTable, route: Route) -> Optional[str]:
        if route.symbol is None:
            return None
        return markets.market(route.symbol).id

    @staticmethod
    def is_futures_route(route: Route) -> bool:
        """True when the venue or the caller's symbol points at a futures contract."""
        return route.venue == FUTURES or route.marked


def venue_of_symbol(symbol: str) -> str:
    return FUTURES if has_futures_marker(symbol) else SPOT
