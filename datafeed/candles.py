"""Candle preparation for the backtest core.

Frames come from whatever the caller already has on hand (a local CSV export,
a notebook download). The helpers here only normalise them into the ordered,
de-duplicated, completed-bar sequence the simulator expects.
"""
from __future__ import annotations

import enum
import logging
from pathlib import Path
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

from stochopt.errors import ConfigurationError
from stochopt.models import Candle, PricePoint

LOGGER = logging.getLogger(__name__)

PRICE_COLUMNS = ["open", "high", "low", "close"]
_TIME_COLUMNS = ("open_time", "timestamp", "time")
_EPOCH = pd.Timestamp("1970-01-01", tz="UTC")


class Interval(enum.Enum):
    """Candle interval; the value is the length in seconds."""

    S1 = 1
    M1 = 60
    M3 = 180
    M5 = 300
    M15 = 900
    M30 = 1800
    H1 = 3600
    H2 = 7200
    H4 = 14400
    H6 = 21600
    H8 = 28800
    H12 = 43200
    D1 = 86400
    D3 = 259200
    W1 = 604800

    @property
    def seconds(self) -> int:
        return int(self.value)

    @property
    def milliseconds(self) -> int:
        return self.seconds * 1000

    @property
    def token(self) -> str:
        unit = self.name[0].lower()
        return f"{self.name[1:]}{unit}"


_ALIASES = {"60m": "1h", "120m": "2h", "240m": "4h", "1440m": "1d", "24h": "1d", "7d": "1w"}


def parse_interval(value: str | Interval) -> Interval:
    """Resolve tokens such as ``"1m"``, ``"4h"`` or ``"60m"`` to an :class:`Interval`."""

    if isinstance(value, Interval):
        return value
    token = str(value).strip().lower()
    token = _ALIASES.get(token, token)
    for interval in Interval:
        if interval.token == token:
            return interval
    raise ConfigurationError(f"지원하지 않는 캔들 주기입니다: {value!r}")


def _epoch_millis(values: pd.Series) -> np.ndarray:
    if pd.api.types.is_numeric_dtype(values):
        return pd.to_numeric(values, errors="raise").to_numpy(dtype=np.int64)
    stamps = pd.to_datetime(values, utc=True)
    return ((stamps - _EPOCH) // pd.Timedelta(milliseconds=1)).to_numpy(dtype=np.int64)


def _with_open_time(frame: pd.DataFrame) -> pd.DataFrame:
    prepared = frame.copy()
    prepared.columns = [str(column).strip().lower() for column in prepared.columns]
    for column in _TIME_COLUMNS:
        if column in prepared.columns:
            prepared["open_time"] = _epoch_millis(prepared[column])
            return prepared
    if isinstance(prepared.index, pd.DatetimeIndex):
        prepared["open_time"] = _epoch_millis(prepared.index.to_series())
        return prepared
    raise ConfigurationError("open_time/timestamp 열이나 DatetimeIndex 가 필요합니다.")


def candles_from_frame(
    frame: pd.DataFrame,
    *,
    interval: Optional[str | Interval] = None,
    drop_last: bool = True,
) -> List[Candle]:
    """Normalise an OHLCV frame into completed :class:`Candle` records.

    Rows are sorted by open time, duplicate open times keep the last row and
    incomplete rows are dropped. With ``drop_last`` the most recent bar is
    removed because it may still be forming. ``close_time`` is taken from the
    frame when present, otherwise derived as ``open_time + interval - 1ms``.
    """

    prepared = _with_open_time(frame)
    missing = [column for column in PRICE_COLUMNS if column not in prepared.columns]
    if missing:
        raise ConfigurationError(f"캔들 데이터에 필요한 열이 없습니다: {', '.join(missing)}")
    if "volume" not in prepared.columns:
        prepared["volume"] = 0.0

    if "close_time" in prepared.columns:
        prepared["close_time"] = _epoch_millis(prepared["close_time"])
    elif interval is not None:
        prepared["close_time"] = prepared["open_time"] + parse_interval(interval).milliseconds - 1
    else:
        raise ConfigurationError("close_time 열이 없으면 interval 을 지정해야 합니다.")

    columns = ["open_time", *PRICE_COLUMNS, "close_time", "volume"]
    prepared = prepared.loc[:, columns]
    prepared = prepared.sort_values("open_time", kind="mergesort")

    dup_count = int(prepared["open_time"].duplicated(keep="last").sum())
    if dup_count:
        LOGGER.warning("중복된 open_time %d개를 제거합니다.", dup_count)
        prepared = prepared.drop_duplicates(subset="open_time", keep="last")

    before = len(prepared)
    prepared = prepared.replace([np.inf, -np.inf], np.nan).dropna(how="any")
    dropped = before - len(prepared)
    if dropped:
        LOGGER.warning("결측 OHLCV 행 %d개를 제거했습니다.", dropped)

    if drop_last and not prepared.empty:
        prepared = prepared.iloc[:-1]

    return [
        Candle(
            open_time=int(row.open_time),
            open_price=float(row.open),
            high_price=float(row.high),
            low_price=float(row.low),
            close_price=float(row.close),
            close_time=int(row.close_time),
            volume=float(row.volume),
        )
        for row in prepared.itertuples(index=False)
    ]


def read_candles_csv(
    path: Path,
    *,
    interval: Optional[str | Interval] = None,
    drop_last: bool = True,
) -> List[Candle]:
    """Load a local OHLCV CSV export and normalise it with :func:`candles_from_frame`."""

    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"캔들 CSV 파일을 찾을 수 없습니다: {path}")
    frame = pd.read_csv(path)
    candles = candles_from_frame(frame, interval=interval, drop_last=drop_last)
    LOGGER.info("Loaded %d candles from %s", len(candles), path)
    return candles


def price_points(candles: Sequence[Candle]) -> List[PricePoint]:
    return [PricePoint.from_candle(candle) for candle in candles]


__all__ = [
    "Interval",
    "PRICE_COLUMNS",
    "candles_from_frame",
    "parse_interval",
    "price_points",
    "read_candles_csv",
]
