from unittest.mock import Mock

import pytest

from aax_connector.core.config import AdapterConfig
from aax_connector.core.models import Market
from aax_connector.exchanges.aax import AaxAdapter
from aax_connector.exchanges.symbols import MarketTable

NOW_MS = 1600000000000


@pytest.fixture
def markets():
    return MarketTable([
        Market(id="BTCUSDT", symbol="BTC/USDT", base="BTC", quote="USDT", venue="spot"),
        Market(id="BTCUSDTFP", symbol="BTC/USDTFP", base="BTC", quote="USDT", venue="futures"),
        Market(id="ETHUSDT", symbol="ETH/USDT", base="ETH", quote="USDT", venue="spot", active=False),
    ])


@pytest.fixture
def transport():
    return Mock()


@pytest.fixture
def adapter(transport, markets, tmp_path):
    config = AdapterConfig(api_key="key", secret="secret")
    return AaxAdapter(config, transport=transport, markets=markets, clock=lambda: NOW_MS, data_dir=tmp_path)
