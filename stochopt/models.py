"""백테스트 입력/출력 데이터 클래스 모음."""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Dict, Iterator, Optional, Tuple

from .constants import DEFAULT_ASSET_SCALE, DEFAULT_CAPITAL, DEFAULT_FUNDS_SCALE
from .errors import ConfigurationError


@dataclass(frozen=True)
class Candle:
    """One completed OHLCV bar with millisecond open/close timestamps."""

    open_time: int
    open_price: float
    high_price: float
    low_price: float
    close_price: float
    close_time: int
    volume: float = 0.0


@dataclass(frozen=True)
class PricePoint:
    high: float
    low: float
    close: float

    @classmethod
    def from_candle(cls, candle: Candle) -> "PricePoint":
        return cls(high=candle.high_price, low=candle.low_price, close=candle.close_price)


@dataclass(frozen=True)
class SignalPair:
    """Fast (%K) and slow (%D) oscillator lines for a single tick."""

    k_line: Optional[float] = None
    d_line: Optional[float] = None

    @property
    def complete(self) -> bool:
        return self.k_line is not None and self.d_line is not None


@dataclass(frozen=True)
class TriggerSignal:
    signal_in: float
    signal_out: float
    time_open: int
    time_close: int
    price_open: float
    price_close: float


@dataclass(frozen=True)
class SimulationDefaults:
    """Simulation settings shared by every grid point of a search."""

    capital: float = DEFAULT_CAPITAL
    exchange_fee: Optional[float] = None
    min_qty: Optional[float] = None
    min_price: Optional[float] = None
    asset_scale: int = DEFAULT_ASSET_SCALE
    funds_scale: int = DEFAULT_FUNDS_SCALE


@dataclass(frozen=True)
class PerformanceReport:
    """Aggregate statistics of a single simulation run."""

    net_profit: float = 0.0
    gross_profit: float = 0.0
    gross_loss: float = 0.0
    buy_and_hold_return: float = 0.0
    profit_factor: Optional[float] = None
    commission_paid: Optional[float] = None
    total_closed_trades: int = 0
    num_winning_trades: int = 0
    num_losing_trades: int = 0
    percent_profitable: Optional[float] = None
    avg_winning_trade: float = 0.0
    avg_losing_trade: float = 0.0
    ratio_avg_win_loss: float = 0.0
    largest_winning_trade: float = 0.0
    largest_losing_trade: float = 0.0
    avg_ticks_in_winning_trades: float = 0.0
    avg_ticks_in_losing_trades: float = 0.0
    stopped_early: bool = False

    def as_dict(self) -> Dict[str, object]:
        return asdict(self)


@dataclass(frozen=True, order=True)
class ParameterPoint:
    """Oscillator parameters, ordered by k_length, k_smoothing, d_length."""

    k_length: int
    k_smoothing: int
    d_length: int

    def as_dict(self) -> Dict[str, int]:
        return {
            "k_length": self.k_length,
            "k_smoothing": self.k_smoothing,
            "d_length": self.d_length,
        }


def _checked_bounds(name: str, bounds: Tuple[int, int]) -> Tuple[int, int]:
    try:
        start, end = (int(bounds[0]), int(bounds[1]))
    except (TypeError, ValueError, IndexError) as exc:
        raise ConfigurationError(f"{name} 범위는 (start, end) 정수 쌍이어야 합니다: {bounds!r}") from exc
    if start < 1:
        raise ConfigurationError(f"{name} 범위의 시작값은 1 이상이어야 합니다: {start}")
    if end < start:
        raise ConfigurationError(f"{name} 범위가 비어 있습니다: {start}..{end}")
    return start, end


@dataclass(frozen=True)
class ParameterRange:
    """Inclusive integer bounds for each oscillator parameter."""

    k_length: Tuple[int, int]
    k_smoothing: Tuple[int, int]
    d_length: Tuple[int, int]

    def __post_init__(self) -> None:
        for name in ("k_length", "k_smoothing", "d_length"):
            object.__setattr__(self, name, _checked_bounds(name, getattr(self, name)))

    @staticmethod
    def _values(bounds: Tuple[int, int]) -> range:
        return range(bounds[0], bounds[1] + 1)

    @property
    def k_lengths(self) -> range:
        return self._values(self.k_length)

    @property
    def k_smoothings(self) -> range:
        return self._values(self.k_smoothing)

    @property
    def d_lengths(self) -> range:
        return self._values(self.d_length)

    @property
    def size(self) -> int:
        return len(self.k_lengths) * len(self.k_smoothings) * len(self.d_lengths)

    @property
    def min_series_length(self) -> int:
        """Shortest series on which the widest point still yields one defined tick."""

        return self.k_length[1] + self.k_smoothing[1] + self.d_length[1] - 2

    def points(self) -> Iterator[ParameterPoint]:
        for k_length in self.k_lengths:
            for k_smoothing in self.k_smoothings:
                for d_length in self.d_lengths:
                    yield ParameterPoint(k_length, k_smoothing, d_length)


@dataclass(frozen=True, order=True)
class RankedResult:
    net_profit: float
    point: ParameterPoint


__all__ = [
    "Candle",
    "PricePoint",
    "SignalPair",
    "TriggerSignal",
    "SimulationDefaults",
    "PerformanceReport",
    "ParameterPoint",
    "ParameterRange",
    "RankedResult",
]
