"""
Adapter configuration.

Loaded from the same kind of JSON file the jobs use::

    {
        "log_level": "INFO",
        "data_paths": {"log_path": "logs", "data_path": "data"},
        "aax": {
            "api_key": "...",
            "api_secret": "...",
            "default_type": "spot",
            "base_url": "https://api.aaxpro.com"
        },
        "http": {"timeout": 10, "retries": 3}
    }

``AdapterConfig`` is frozen: it is built once and captured by the adapter.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from aax_connector.core.errors import InvalidConfiguration

SPOT = "spot"
FUTURES = "futures"
OTC = "otc"
SAVINGS = "savings"

TRADING_VENUES = (SPOT, FUTURES)
BALANCE_VENUES = (SPOT, FUTURES, OTC, SAVINGS)

DEFAULT_BASE_URL = "https://api.aaxpro.com"
_DEFAULT_TIMEOUT = 10
_DEFAULT_RETRIES = 3


def load_config(config_path: str | Path) -> dict:
    with open(config_path, "r") as f:
        return json.load(f)


@dataclass(frozen=True)
class AdapterConfig:
    api_key: Optional[str] = None
    secret: Optional[str] = None
    default_type: str = SPOT
    base_url: str = DEFAULT_BASE_URL
    timeout: int = _DEFAULT_TIMEOUT
    retries: int = _DEFAULT_RETRIES

    def __post_init__(self) -> None:
        if self.default_type not in TRADING_VENUES:
            raise InvalidConfiguration(
                f"default_type must be one of {', '.join(TRADING_VENUES)}, "
                f"got {self.default_type!r}"
            )
        for name in ("timeout", "retries"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise InvalidConfiguration(f"http.{name} must be a positive integer, got {value!r}")

    @classmethod
    def from_dict(cls, config: dict) -> "AdapterConfig":
        """Build from a loaded config dict (``aax`` and ``http`` sections)."""
        aax_cfg = config.get("aax", {})
        http_cfg = config.get("http", {})
        return cls(
            api_key=aax_cfg.get("api_key") or None,
            secret=aax_cfg.get("api_secret") or None,
            default_type=aax_cfg.get("default_type", SPOT),
            base_url=aax_cfg.get("base_url", DEFAULT_BASE_URL).rstrip("/"),
            timeout=http_cfg.get("timeout", _DEFAULT_TIMEOUT),
            retries=http_cfg.get("retries", _DEFAULT_RETRIES),
        )

    @classmethod
    def from_file(cls, config_path: str | Path) -> "AdapterConfig":
        return cls.from_dict(load_config(config_path))
