from abc import ABC, abstractmethod
import json
from pathlib import Path
from typing import Dict, List, Optional

from aax_connector.core.models import Balance, Candle, Order, OrderBook, Ticker, Trade

DEFAULT_DATA_DIR = Path(__file__).parent.parent.parent / 'data'

class ExchangeAdapter(ABC):
    exchange_id = ''

    def __init__(self, data_dir: Optional[Path] = None):
        self.data_dir = Path(data_dir) if data_dir is not None else DEFAULT_DATA_DIR

    # Market Data Methods
    @abstractmethod
    def fetch_candles(self, symbol: str, venue_type: str, timeframe: str, start_ts: Optional[int] = None, limit: Optional[int] = None) -> List[Candle]:
        pass

    @abstractmethod
    def fetch_symbols(self, venue_type: str) -> List[str]:
        pass

    @abstractmethod
    def fetch_ticker(self, symbol: str, venue: Optional[str] = None) -> Ticker:
        pass

    @abstractmethod
    def fetch_order_book(self, symbol: str, limit: Optional[int] = None, venue: Optional[str] = None) -> OrderBook:
        pass

    @abstractmethod
    def fetch_trades(self, symbol: str, since: Optional[int] = None, limit: Optional[int] = None, venue: Optional[str] = None) -> List[Trade]:
        pass

    def save_symbols(self, venue_type: str) -> List[str]:
        symbols = self.fetch_symbols(venue_type)

        # Create data directory if it doesn't exist
        symbols_dir = self.data_dir / 'symbols'
        symbols_dir.mkdir(parents=True, exist_ok=True)

        file_path = symbols_dir / f'{self.exchange_id}_{venue_type}_symbols.json'
        with open(file_path, 'w') as f:
            json.dump({
                'symbols': symbols,
                'venue_type': venue_type
            }, f, indent=2)
        return symbols

    def load_symbols(self, venue_type: str) -> List[str]:
        file_path = self.data_dir / 'symbols' / f'{self.exchange_id}_{venue_type}_symbols.json'
        with open(file_path, 'r') as f:
            data = json.load(f)
        return data['symbols']

    # Trading Methods
    @abstractmethod
    def create_order(self, symbol: str, type: str, side: str, amount: float, price: Optional[float] = None, venue: Optional[str] = None, params: Optional[dict] = None) -> Order:
        pass

    @abstractmethod
    def cancel_order(self, id: str, symbol: Optional[str] = None, venue: Optional[str] = None) -> Order:
        pass

    @abstractmethod
    def fetch_orders(self, symbol: Optional[str] = None, since: Optional[int] = None, limit: Optional[int] = None, venue: Optional[str] = None, params: Optional[dict] = None) -> List[Order]:
        pass

    @abstractmethod
    def fetch_balance(self, venue: Optional[str] = None) -> Dict[str, Balance]:
        pass
