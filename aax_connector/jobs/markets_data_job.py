"""Markets Data Job

This job refreshes the AAX market metadata and saves the caller-facing
symbol list of every trading venue (spot, futures).

The job:
1. Loads config/aax_config.json and sets up the job logger
2. Loads the instrument table from AAX (public endpoint)
3. Saves active symbols per venue to data/symbols/aax_<venue>_symbols.json

Designed to run daily via scheduled task/cron to keep symbols up to date.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from aax_connector.core.config import TRADING_VENUES, AdapterConfig, load_config
from aax_connector.exchanges.aax import AaxAdapter
from aax_connector.utils.logger import setup_logger

ROOT = Path(__file__).resolve().parents[2]
DEFAULT_CONFIG_PATH = ROOT / "config" / "aax_config.json"


def save_venue_symbols(adapter: AaxAdapter, logger: logging.Logger) -> dict:
    """Save symbol snapshots for every trading venue.

    Args:
        adapter: Configured AAX adapter
        logger: Job logger

    Returns:
        Dictionary with venue names as keys and symbol lists (or None on failure) as values
    """
    results = {}
    adapter.load_markets(reload=True)

    for venue in TRADING_VENUES:
        try:
            symbols = adapter.save_symbols(venue)
            results[venue] = symbols
            logger.info(f"Saved {len(symbols)} {venue} symbols")
        except OSError as e:
            logger.error(f"Could not save {venue} symbols: {e}")
            results[venue] = None

    return results


def run_markets_data_job(config_path: Path = DEFAULT_CONFIG_PATH, adapter: Optional[AaxAdapter] = None) -> dict:
    config = load_config(config_path)
    adapter_config = AdapterConfig.from_dict(config)

    log_path = ROOT / config.get("data_paths", {}).get("log_path", "logs") / "markets_data_job.log"
    log_level = getattr(logging, config.get("log_level", "INFO").upper(), logging.INFO)
    logger = setup_logger(
        "markets_data_job",
        log_path,
        level=log_level,
        secrets=(adapter_config.api_key, adapter_config.secret),
    )
    logger.info(f"Markets data job started at {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")

    if adapter is None:
        data_dir = ROOT / config.get("data_paths", {}).get("data_path", "data")
        adapter = AaxAdapter(adapter_config, logger=logger, data_dir=data_dir)

    results = save_venue_symbols(adapter, logger)

    total = sum(len(symbols) for symbols in results.values() if symbols)
    logger.info(f"Total symbols saved: {total}")
    return results


def main():
    """Main entry point for the markets data job."""
    config_path = Path(sys.argv[1]) if len(sys.argv) > 1 else DEFAULT_CONFIG_PATH
    results = run_markets_data_job(config_path)
    if any(symbols is None for symbols in results.values()):
        sys.exit(1)


if __name__ == "__main__":
    main()
