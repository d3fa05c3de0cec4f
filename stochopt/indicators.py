"""보조 지표 계산 유틸리티 – 단순이동평균과 스토캐스틱 오실레이터."""
from __future__ import annotations

from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

from .errors import ConfigurationError
from .models import PricePoint, SignalPair

OptionalSeries = Sequence[Optional[float]]


def _check_length(name: str, value: int) -> int:
    length = int(value)
    if length < 1:
        raise ConfigurationError(f"{name} 값은 1 이상이어야 합니다: {value!r}")
    return length


def _window_mean(data: OptionalSeries, index: int, period: int) -> Optional[float]:
    window = data[index + 1 - period : index + 1]
    if any(value is None for value in window):
        return None
    # 좌→우 순차 합산. 배치/단일 계산 결과가 비트 단위로 같아야 합니다.
    return sum(window) / float(period)


def sma_for_tick(data: OptionalSeries, index: int, period: int) -> Optional[float]:
    """Mean of ``data[index - period + 1 : index + 1]`` or ``None``.

    ``None`` is returned when fewer than ``period`` values precede ``index``
    (inclusive) or when any value inside the window is itself ``None``.
    """

    period = _check_length("period", period)
    if index < period - 1:
        return None
    return _window_mean(data, index, period)


def sma_for_ticks(data: OptionalSeries, period: int) -> List[Optional[float]]:
    """Batch form of :func:`sma_for_tick`; output length equals input length."""

    period = _check_length("period", period)
    result: List[Optional[float]] = [None] * len(data)
    for index in range(period - 1, len(data)):
        result[index] = _window_mean(data, index, period)
    return result


def k_for_tick(price_data: Sequence[PricePoint], index: int, k_length: int) -> Optional[float]:
    """Raw stochastic %K for a single tick.

    The close is placed within the highest high / lowest low of the last
    ``k_length`` ticks and scaled to 0..100. A flat window (zero range) has no
    defined value.
    """

    k_length = _check_length("k_length", k_length)
    if index < k_length - 1:
        return None
    window = price_data[index + 1 - k_length : index + 1]
    low = min(point.low for point in window)
    high = max(point.high for point in window)
    if high - low == 0.0:
        return None
    return 100.0 * (price_data[index].close - low) / (high - low)


def k_for_ticks(price_data: Sequence[PricePoint], k_length: int) -> List[Optional[float]]:
    return [k_for_tick(price_data, index, k_length) for index in range(len(price_data))]


def d_for_tick(k_values: OptionalSeries, index: int, d_length: int) -> Optional[float]:
    d_length = _check_length("d_length", d_length)
    if index < d_length - 1:
        return None
    return sma_for_tick(k_values, index, d_length)


def d_for_ticks(k_values: OptionalSeries, d_length: int) -> List[Optional[float]]:
    return [d_for_tick(k_values, index, d_length) for index in range(len(k_values))]


def stochastic(
    price_data: Sequence[PricePoint],
    k_length: int,
    k_smoothing: int,
    d_length: int,
) -> List[SignalPair]:
    """Slow stochastic oscillator.

    %K is the raw value smoothed with a ``k_smoothing`` SMA, %D is a
    ``d_length`` SMA of the smoothed %K. Both lines are ``None`` during warm-up.
    """

    k_raw = k_for_ticks(price_data, k_length)
    k_line = sma_for_ticks(k_raw, k_smoothing)
    d_line = d_for_ticks(k_line, d_length)
    return [SignalPair(k_line=k, d_line=d) for k, d in zip(k_line, d_line)]


def generate_signals(
    price_series: Sequence[PricePoint],
    k_length: int,
    k_smoothing: int,
    d_length: int,
) -> List[SignalPair]:
    return stochastic(price_series, k_length, k_smoothing, d_length)


def stochastic_frame(
    frame: pd.DataFrame,
    k_length: int,
    k_smoothing: int,
    d_length: int,
) -> pd.DataFrame:
    """DataFrame 어댑터: ``high``/``low``/``close`` 열로부터 %K/%D 열을 계산합니다.

    정의되지 않은 값은 ``NaN`` 으로 채워지며 인덱스는 입력과 동일합니다.
    """

    missing = [column for column in ("high", "low", "close") if column not in frame.columns]
    if missing:
        raise ConfigurationError(f"스토캐스틱 계산에 필요한 열이 없습니다: {', '.join(missing)}")

    values = frame.loc[:, ["high", "low", "close"]].to_numpy(dtype=float)
    points = [PricePoint(float(high), float(low), float(close)) for high, low, close in values]
    pairs = stochastic(points, k_length, k_smoothing, d_length)

    k_values = np.array([np.nan if pair.k_line is None else pair.k_line for pair in pairs], dtype=float)
    d_values = np.array([np.nan if pair.d_line is None else pair.d_line for pair in pairs], dtype=float)
    return pd.DataFrame({"k_line": k_values, "d_line": d_values}, index=frame.index)


__all__ = [
    "sma_for_tick",
    "sma_for_ticks",
    "k_for_tick",
    "k_for_ticks",
    "d_for_tick",
    "d_for_ticks",
    "stochastic",
    "generate_signals",
    "stochastic_frame",
]
