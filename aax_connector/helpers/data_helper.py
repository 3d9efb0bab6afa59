"""Helper utilities for turning canonical records into DataFrames.

This module provides:
- ohlcv_to_frame: OHLCV rows (``[ts_ms, o, h, l, c, v]``) as a typed DataFrame.
- records_to_frame: Any list of canonical dataclass records as a DataFrame.
- save_df_to_csv: CSV writer with optional directory creation.
"""

from __future__ import annotations

import os
from dataclasses import asdict
from typing import Iterable, Optional, Sequence

import pandas as pd

OHLCV_COLUMNS = ["open_time", "open", "high", "low", "close", "volume"]


def ohlcv_to_frame(rows: Iterable[Sequence]) -> pd.DataFrame:
    """Build a DataFrame from normalised OHLCV rows.

    Parameters
    - rows: iterable of ``[timestamp_ms, open, high, low, close, volume]``

    Returns
    - pd.DataFrame: ``open_time`` as UTC-aware datetimes, prices and volume
      as float, sorted and de-duplicated on ``open_time``.
    """
    df = pd.DataFrame(list(rows), columns=OHLCV_COLUMNS)
    if df.empty:
        return df

    df["open_time"] = pd.to_datetime(df["open_time"], unit="ms", utc=True)
    numeric_cols = OHLCV_COLUMNS[1:]
    df[numeric_cols] = df[numeric_cols].astype(float)
    df.sort_values("open_time", inplace=True)
    df.drop_duplicates(subset=["open_time"], keep="last", inplace=True)
    df.reset_index(drop=True, inplace=True)
    return df


def records_to_frame(records: Iterable, drop: Sequence[str] = ("info",)) -> pd.DataFrame:
    """Flatten dataclass records (orders, trades, tickers...) into rows.

    Nested dataclasses such as ``fee`` become ``fee_<field>`` columns; fields
    listed in *drop* (the raw venue payload by default) are left out.
    """
    rows = []
    for record in records:
        row = {}
        for key, value in asdict(record).items():
            if key in drop:
                continue
            if isinstance(value, dict) and key == "fee":
                for sub_key, sub_value in value.items():
                    row[f"fee_{sub_key}"] = sub_value
            else:
                row[key] = value
        rows.append(row)
    return pd.DataFrame(rows)


def save_df_to_csv(
    df: pd.DataFrame,
    file_path: str,
    *,
    index: bool = False,
    create_dirs: bool = True,
    mode: str = "w",
    float_format: Optional[str] = None,
    **kwargs,
) -> None:
    """Save a DataFrame to CSV.

    Parameters
    - df: DataFrame to write
    - file_path: Destination CSV path
    - index: Whether to write the index
    - create_dirs: Create parent directories if missing
    - mode: File write mode ('w' to overwrite, 'a' to append)
    - float_format: Format string for floats (e.g., '%.8f')
    - kwargs: Passed through to pandas.DataFrame.to_csv

    Raises
    - ValueError: If df is not a pandas DataFrame
    """
    if not isinstance(df, pd.DataFrame):
        raise ValueError("df must be a pandas DataFrame")

    parent = os.path.dirname(os.path.abspath(file_path))
    if create_dirs and parent and not os.path.exists(parent):
        os.makedirs(parent, exist_ok=True)

    df.to_csv(file_path, index=index, mode=mode, float_format=float_format, **kwargs)
