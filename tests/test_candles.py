import logging

import numpy as np
import pandas as pd
import pytest

from datafeed.candles import Interval, candles_from_frame, parse_interval, price_points, read_candles_csv
from stochopt.errors import ConfigurationError


def _frame():
    return pd.DataFrame(
        {
            "open_time": [120_000, 0, 60_000, 60_000, 180_000, 240_000],
            "open": [3.0, 1.0, 2.0, 2.5, 4.0, 5.0],
            "high": [3.5, 1.5, 2.5, 3.0, np.nan, 5.5],
            "low": [2.5, 0.5, 1.5, 2.0, 3.5, 4.5],
            "close": [3.2, 1.2, 2.2, 2.7, 4.2, 5.2],
            "volume": [1.0, 1.0, 1.0, 2.0, 1.0, 1.0],
        }
    )


@pytest.mark.parametrize(
    ("token", "expected"),
    [("1m", Interval.M1), ("4h", Interval.H4), ("60m", Interval.H1), ("1D", Interval.D1), (Interval.W1, Interval.W1)],
)
def test_parse_interval(token, expected):
    assert parse_interval(token) is expected


def test_parse_interval_rejects_unknown_token():
    with pytest.raises(ConfigurationError):
        parse_interval("7m")


def test_candles_are_sorted_deduplicated_and_cleaned(caplog):
    with caplog.at_level(logging.WARNING, logger="datafeed.candles"):
        candles = candles_from_frame(_frame(), interval="1m", drop_last=False)

    assert [candle.open_time for candle in candles] == [0, 60_000, 120_000, 240_000]
    assert candles[1].open_price == 2.5
    assert candles[1].volume == 2.0
    assert candles[0].close_time == 59_999
    assert "중복" in caplog.text
    assert "결측" in caplog.text


def test_drop_last_removes_forming_bar():
    candles = candles_from_frame(_frame(), interval=Interval.M1)
    assert [candle.open_time for candle in candles] == [0, 60_000, 120_000]


def test_close_time_column_takes_precedence():
    frame = _frame().dropna()
    frame["close_time"] = frame["open_time"] + 1_000
    candles = candles_from_frame(frame.drop_duplicates("open_time"), drop_last=False)
    assert candles[0].close_time == 1_000


def test_datetime_index_is_converted_to_millis():
    index = pd.date_range("2024-01-01", periods=3, freq="1h", tz="UTC")
    frame = pd.DataFrame(
        {"open": [1.0, 2.0, 3.0], "high": [1.5, 2.5, 3.5], "low": [0.5, 1.5, 2.5], "close": [1.2, 2.2, 3.2]},
        index=index,
    )
    candles = candles_from_frame(frame, interval="1h", drop_last=False)
    start = int(pd.Timestamp("2024-01-01", tz="UTC").timestamp() * 1000)
    assert [candle.open_time for candle in candles] == [start, start + 3_600_000, start + 7_200_000]
    assert candles[0].close_time == start + 3_599_999
    assert candles[0].volume == 0.0


def test_missing_columns_or_interval_are_rejected():
    with pytest.raises(ConfigurationError, match="close"):
        candles_from_frame(_frame().drop(columns=["close"]), interval="1m")
    with pytest.raises(ConfigurationError, match="interval"):
        candles_from_frame(_frame())
    with pytest.raises(ConfigurationError):
        candles_from_frame(_frame().drop(columns=["open_time"]), interval="1m")


def test_read_candles_csv(tmp_path):
    path = tmp_path / "candles.csv"
    _frame().to_csv(path, index=False)

    candles = read_candles_csv(path, interval="1m")
    points = price_points(candles)

    assert len(candles) == 3
    assert points[0].high == 1.5
    assert points[-1].close == 3.2
    with pytest.raises(ConfigurationError):
        read_candles_csv(tmp_path / "missing.csv", interval="1m")
