from __future__ import annotations

import math
from typing import List, Optional

import pytest

from stochopt.models import Candle, PricePoint, TriggerSignal

FIXTURE_HLC = [
    (1768.34, 1763.93, 1768.34),
    (1769.47, 1767.37, 1769.00),
    (1768.99, 1767.99, 1767.99),
    (1769.46, 1767.99, 1768.11),
    (1768.49, 1764.74, 1766.35),
    (1766.99, 1764.22, 1765.24),
    (1766.49, 1764.30, 1765.40),
    (1765.43, 1763.26, 1764.61),
    (1767.02, 1764.85, 1765.11),
    (1767.02, 1764.05, 1766.90),
    (1766.97, 1763.61, 1764.50),
    (1765.28, 1762.07, 1763.58),
    (1763.44, 1761.71, 1761.90),
    (1763.49, 1760.01, 1763.49),
    (1765.00, 1761.00, 1765.00),
    (1763.96, 1760.40, 1763.91),
]


def make_candles(count: int) -> List[Candle]:
    candles: List[Candle] = []
    previous_close = 100.0
    for index in range(count):
        close = round(100.0 + 10.0 * math.sin(index / 3.0) + index * 0.2, 2)
        high = round(max(previous_close, close) + 1.0 + (index % 3) * 0.5, 2)
        low = round(min(previous_close, close) - 1.0 - (index % 2) * 0.4, 2)
        open_time = index * 60_000
        candles.append(
            Candle(
                open_time=open_time,
                open_price=previous_close,
                high_price=high,
                low_price=low,
                close_price=close,
                close_time=open_time + 59_999,
                volume=1.0,
            )
        )
        previous_close = close
    return candles


def make_signal(
    index: int, signal_in: float, signal_out: float, price_open: float, price_close: Optional[float] = None
) -> TriggerSignal:
    return TriggerSignal(
        signal_in=signal_in,
        signal_out=signal_out,
        time_open=index * 60_000,
        time_close=index * 60_000 + 59_999,
        price_open=price_open,
        price_close=price_open if price_close is None else price_close,
    )


@pytest.fixture
def fixture_points() -> List[PricePoint]:
    return [PricePoint(high, low, close) for high, low, close in FIXTURE_HLC]


@pytest.fixture
def candles() -> List[Candle]:
    return make_candles(60)
