"""OHLCV Data Job

Downloads recent OHLCV candles from AAX for the configured symbols and
saves them to CSV, one file per (venue, symbol, timeframe).

Config keys used (besides the ``aax``/``http`` sections)::

    "ohlcv": {
        "symbols": ["BTC/USDT", "ETH/USDT"],
        "venue": "spot",
        "timeframe": "1h",
        "limit": 500
    }
"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional

import ccxt

from aax_connector.core.config import AdapterConfig, load_config
from aax_connector.exchanges.aax import AaxAdapter
from aax_connector.helpers.data_helper import ohlcv_to_frame, save_df_to_csv
from aax_connector.utils.logger import setup_logger

ROOT = Path(__file__).resolve().parents[2]
DEFAULT_CONFIG_PATH = ROOT / "config" / "aax_config.json"


def get_data_file_path(symbol: str, venue: str, timeframe: str, data_folder: str) -> str:
    """CSV path for one symbol, e.g. ``data/ohlcv/aax_spot_BTC-USDT_1h.csv``."""
    safe_symbol = symbol.replace("/", "-")
    return os.path.join(data_folder, "ohlcv", f"aax_{venue}_{safe_symbol}_{timeframe}.csv")


def download_symbol(
    adapter: AaxAdapter,
    symbol: str,
    venue: str,
    timeframe: str,
    limit: int,
    data_folder: str,
    logger: logging.Logger,
) -> Optional[str]:
    """Fetch and save candles for one symbol; returns the file path or None on failure."""
    try:
        rows = adapter.fetch_ohlcv(symbol, timeframe, limit=limit, venue=venue)
    except ccxt.BaseError as e:
        logger.error(f"[{symbol}] OHLCV download failed: {e}")
        return None

    df = ohlcv_to_frame(rows)
    if df.empty:
        logger.warning(f"[{symbol}] no candles returned")
        return None

    file_path = get_data_file_path(symbol, venue, timeframe, data_folder)
    save_df_to_csv(df, file_path, index=False)
    logger.info(f"[{symbol}] saved {len(df)} candles to {file_path}")
    return file_path


def run_ohlcv_data_job(config_path: Path = DEFAULT_CONFIG_PATH, adapter: Optional[AaxAdapter] = None) -> dict:
    config = load_config(config_path)
    adapter_config = AdapterConfig.from_dict(config)
    ohlcv_cfg = config.get("ohlcv", {})
    data_folder = str(ROOT / config.get("data_paths", {}).get("data_path", "data"))

    log_path = ROOT / config.get("data_paths", {}).get("log_path", "logs") / "ohlcv_data_job.log"
    log_level = getattr(logging, config.get("log_level", "INFO").upper(), logging.INFO)
    logger = setup_logger(
        "ohlcv_data_job",
        log_path,
        level=log_level,
        secrets=(adapter_config.api_key, adapter_config.secret),
    )

    adapter = adapter or AaxAdapter(adapter_config, logger=logger)
    venue = ohlcv_cfg.get("venue", adapter_config.default_type)
    timeframe = ohlcv_cfg.get("timeframe", "1h")
    limit = ohlcv_cfg.get("limit", 500)

    results = {}
    for symbol in ohlcv_cfg.get("symbols", []):
        results[symbol] = download_symbol(adapter, symbol, venue, timeframe, limit, data_folder, logger)
    return results


def main():
    """Main entry point for the OHLCV data job."""
    config_path = Path(sys.argv[1]) if len(sys.argv) > 1 else DEFAULT_CONFIG_PATH
    results = run_ohlcv_data_job(config_path)
    if any(path is None for path in results.values()):
        sys.exit(1)


if __name__ == "__main__":
    main()
