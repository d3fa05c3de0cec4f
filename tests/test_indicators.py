import math

import numpy as np
import pandas as pd
import pytest

from conftest import FIXTURE_HLC
from stochopt.errors import ConfigurationError
from stochopt.indicators import (
    d_for_tick,
    d_for_ticks,
    generate_signals,
    k_for_tick,
    k_for_ticks,
    sma_for_tick,
    sma_for_ticks,
    stochastic,
    stochastic_frame,
)
from stochopt.models import PricePoint


def test_sma_for_tick_uses_trailing_window():
    data = [10.0, 20.0, 30.0, 40.0, 50.0, 60.0, 70.0]
    assert sma_for_tick(data, 3, 3) == pytest.approx(30.0)
    assert sma_for_tick(data, 2, 3) == pytest.approx(20.0)
    assert sma_for_tick(data, 1, 3) is None


def test_sma_for_ticks_pads_warmup_with_none():
    result = sma_for_ticks([1.0, 2.0, 3.0, 4.0, 5.0, 6.0], 3)
    assert result[:2] == [None, None]
    assert result[2:] == pytest.approx([2.0, 3.0, 4.0, 5.0])


def test_sma_window_with_missing_value_is_undefined():
    data = [None, 2.0, 4.0, 6.0]
    assert sma_for_tick(data, 1, 2) is None
    assert sma_for_tick(data, 2, 2) == pytest.approx(3.0)
    assert sma_for_ticks(data, 2) == [None, None, 3.0, 5.0]


def test_sma_batch_matches_single_tick_exactly():
    data = [0.1 * value for value in range(1, 40)]
    batch = sma_for_ticks(data, 7)
    for index, value in enumerate(batch):
        assert value == sma_for_tick(data, index, 7)


def test_period_must_be_positive():
    with pytest.raises(ConfigurationError):
        sma_for_ticks([1.0, 2.0], 0)
    with pytest.raises(ConfigurationError):
        k_for_ticks([PricePoint(1.0, 0.5, 0.7)], 0)


def test_k_for_tick_places_close_in_range():
    points = [PricePoint(1.0, 0.9, 0.95), PricePoint(1.1, 1.0, 1.05), PricePoint(1.2, 1.1, 1.15)]
    assert k_for_tick(points, 2, 3) == pytest.approx(83.33333333333331)
    assert k_for_tick(points, 1, 3) is None


def test_k_for_tick_flat_window_is_undefined():
    points = [PricePoint(5.0, 5.0, 5.0)] * 4
    assert k_for_ticks(points, 2) == [None, None, None, None]


def test_d_for_ticks_averages_k_values():
    result = d_for_ticks([10.0, 20.0, 30.0, 40.0, 50.0, 60.0], 3)
    assert result[:2] == [None, None]
    assert result[2:] == pytest.approx([20.0, 30.0, 40.0, 50.0])
    assert d_for_tick([10.0, 20.0, 30.0], 1, 3) is None


def test_fixture_matches_reference_values(fixture_points):
    pairs = stochastic(fixture_points, 14, 1, 3)

    assert len(pairs) == len(FIXTURE_HLC)
    for pair in pairs[:13]:
        assert pair.k_line is None
        assert pair.d_line is None

    assert pairs[13].k_line == pytest.approx(36.78646934460893, rel=1e-12)
    assert pairs[13].d_line is None
    assert pairs[14].k_line == pytest.approx(52.74841437632124, rel=1e-12)
    assert pairs[14].d_line is None
    assert pairs[15].k_line == pytest.approx(41.26984126984203, rel=1e-12)
    assert pairs[15].d_line == pytest.approx(43.601574996924064, rel=1e-12)
    assert pairs[15].complete


def test_generate_signals_matches_stochastic(fixture_points):
    assert generate_signals(fixture_points, 5, 3, 3) == stochastic(fixture_points, 5, 3, 3)


def test_smoothing_delays_first_defined_tick(fixture_points):
    pairs = stochastic(fixture_points, 5, 3, 4)
    first_k = next(index for index, pair in enumerate(pairs) if pair.k_line is not None)
    first_d = next(index for index, pair in enumerate(pairs) if pair.d_line is not None)
    assert first_k == 5 + 3 - 2
    assert first_d == 5 + 3 + 4 - 3


def test_stochastic_frame_keeps_index_and_uses_nan(fixture_points):
    index = pd.date_range("2024-01-01", periods=len(FIXTURE_HLC), freq="1min", tz="UTC")
    frame = pd.DataFrame(FIXTURE_HLC, columns=["high", "low", "close"], index=index)

    result = stochastic_frame(frame, 14, 1, 3)

    assert list(result.columns) == ["k_line", "d_line"]
    assert result.index.equals(index)
    assert result["k_line"].iloc[:13].isna().all()
    assert np.isnan(result["d_line"].iloc[14])
    assert result["d_line"].iloc[15] == pytest.approx(43.601574996924064, rel=1e-12)
    assert not math.isnan(result["k_line"].iloc[13])


def test_stochastic_frame_requires_price_columns():
    frame = pd.DataFrame({"high": [1.0], "close": [1.0]})
    with pytest.raises(ConfigurationError, match="low"):
        stochastic_frame(frame, 1, 1, 1)
