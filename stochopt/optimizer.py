"""Exhaustive grid search over stochastic oscillator parameters.

The outer ``k_length`` dimension is fanned out over a ``concurrent.futures``
pool; the inner two dimensions are walked sequentially inside each task.
Every evaluated point goes into one shared :class:`TopResults` whose total
order (net profit, then parameters) makes the final ranking independent of
scheduling.
"""
from __future__ import annotations

import heapq
import logging
import multiprocessing
import time
from concurrent.futures import ProcessPoolExecutor, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from threading import Lock
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .constants import DEFAULT_EXECUTOR, DEFAULT_WORKERS, EXECUTOR_CHOICES, TOP_RESULTS_LIMIT
from .errors import ConfigurationError
from .indicators import stochastic
from .models import (
    Candle,
    ParameterPoint,
    ParameterRange,
    PerformanceReport,
    PricePoint,
    RankedResult,
    SimulationDefaults,
    TriggerSignal,
)
from .simulator import SimulationConfig, simulate, validate_settings

LOGGER = logging.getLogger(__name__)

PointResult = Tuple[ParameterPoint, float]


class TopResults:
    """Bounded ranking of the best results seen so far.

    A min-heap keeps the weakest entry on top so eviction is ``O(log n)``;
    insertion and eviction share a single lock.
    """

    def __init__(self, capacity: int = TOP_RESULTS_LIMIT) -> None:
        if capacity < 1:
            raise ConfigurationError(f"랭킹 용량은 1 이상이어야 합니다: {capacity!r}")
        self.capacity = int(capacity)
        self._heap: List[RankedResult] = []
        self._lock = Lock()

    def insert(self, net_profit: float, point: ParameterPoint) -> None:
        entry = RankedResult(float(net_profit), point)
        with self._lock:
            heapq.heappush(self._heap, entry)
            if len(self._heap) > self.capacity:
                heapq.heappop(self._heap)

    def __len__(self) -> int:
        with self._lock:
            return len(self._heap)

    def ranked(self) -> List[RankedResult]:
        """Best result first."""

        with self._lock:
            return sorted(self._heap, reverse=True)


@dataclass
class StochasticBacktest:
    """Price series plus simulation settings, reusable across grid points."""

    price_series: Sequence[PricePoint]
    price_timing: Sequence[Candle]
    defaults: SimulationDefaults = field(default_factory=SimulationDefaults)

    def __post_init__(self) -> None:
        if not self.price_series:
            raise ConfigurationError("가격 시계열이 비어 있습니다.")
        if len(self.price_series) != len(self.price_timing):
            raise ConfigurationError(
                f"가격({len(self.price_series)})과 시간 정보({len(self.price_timing)})의 길이가 다릅니다."
            )
        validate_settings(self.defaults)

    @classmethod
    def from_candles(
        cls, candles: Sequence[Candle], defaults: Optional[SimulationDefaults] = None
    ) -> "StochasticBacktest":
        points = [PricePoint.from_candle(candle) for candle in candles]
        return cls(points, list(candles), defaults or SimulationDefaults())

    def trigger_signals(self, point: ParameterPoint) -> List[TriggerSignal]:
        pairs = stochastic(self.price_series, point.k_length, point.k_smoothing, point.d_length)
        signals: List[TriggerSignal] = []
        for pair, candle in zip(pairs, self.price_timing):
            if pair.k_line is None or pair.d_line is None:
                continue
            signals.append(
                TriggerSignal(
                    signal_in=pair.k_line,
                    signal_out=pair.d_line,
                    time_open=candle.open_time,
                    time_close=candle.close_time,
                    price_open=candle.open_price,
                    price_close=candle.close_price,
                )
            )
        return signals

    def evaluate(self, point: ParameterPoint) -> Optional[PerformanceReport]:
        """Simulate one grid point; ``None`` when no tick has both lines defined."""

        signals = self.trigger_signals(point)
        if not signals:
            LOGGER.debug("%s: 정의된 %%K/%%D 값이 없어 평가를 건너뜁니다.", point)
            return None
        return simulate(SimulationConfig.from_defaults(signals, self.defaults))

    def evaluate_k_length(
        self, k_length: int, k_smoothings: Sequence[int], d_lengths: Sequence[int]
    ) -> List[PointResult]:
        results: List[PointResult] = []
        for k_smoothing in k_smoothings:
            for d_length in d_lengths:
                point = ParameterPoint(k_length, k_smoothing, d_length)
                report = self.evaluate(point)
                if report is not None:
                    results.append((point, report.net_profit))
        return results

    def validate_range(self, parameter_range: ParameterRange) -> None:
        required = parameter_range.min_series_length
        if len(self.price_series) < required:
            raise ConfigurationError(
                f"가격 시계열 길이 {len(self.price_series)} 가 필요 길이 {required} 보다 짧습니다."
            )

    def search(
        self,
        parameter_range: ParameterRange,
        *,
        workers: Optional[int] = None,
        executor: str = DEFAULT_EXECUTOR,
        capacity: int = TOP_RESULTS_LIMIT,
        start_method: Optional[str] = None,
    ) -> List[RankedResult]:
        """Evaluate every grid point and return the best ``capacity`` results, best first."""

        executor = str(executor or DEFAULT_EXECUTOR).lower()
        if executor not in EXECUTOR_CHOICES:
            raise ConfigurationError(f"지원하지 않는 실행기입니다: {executor!r} ({', '.join(EXECUTOR_CHOICES)})")
        self.validate_range(parameter_range)
        top = TopResults(capacity)

        k_lengths = list(parameter_range.k_lengths)
        k_smoothings = list(parameter_range.k_smoothings)
        d_lengths = list(parameter_range.d_lengths)
        jobs = max(1, min(int(workers or DEFAULT_WORKERS), len(k_lengths)))

        LOGGER.info(
            "그리드 탐색 시작: %d개 조합 (k_length %d개), worker=%d, executor=%s",
            parameter_range.size,
            len(k_lengths),
            jobs,
            executor if jobs > 1 else "serial",
        )
        started = time.perf_counter()

        if jobs == 1:
            for k_length in k_lengths:
                _collect(top, k_length, self.evaluate_k_length(k_length, k_smoothings, d_lengths))
        elif executor == "thread":
            with ThreadPoolExecutor(max_workers=jobs) as pool:
                futures = [
                    pool.submit(self._insert_k_length, top, k_length, k_smoothings, d_lengths)
                    for k_length in k_lengths
                ]
                for future in as_completed(futures):
                    future.result()
        else:
            ctx = multiprocessing.get_context(start_method or "spawn")
            with ProcessPoolExecutor(
                max_workers=jobs,
                mp_context=ctx,
                initializer=_process_pool_initializer,
                initargs=(self,),
            ) as pool:
                future_map = {
                    pool.submit(_evaluate_in_worker, k_length, k_smoothings, d_lengths): k_length
                    for k_length in k_lengths
                }
                for future in as_completed(future_map):
                    _collect(top, future_map[future], future.result())

        ranking = top.ranked()
        elapsed = time.perf_counter() - started
        if ranking:
            profits = np.array([entry.net_profit for entry in ranking], dtype=float)
            LOGGER.info(
                "그리드 탐색 완료 (%.2fs): 상위 %d개, 최고 %.2f / 중앙값 %.2f, 최적 파라미터 %s",
                elapsed,
                len(ranking),
                float(profits.max()),
                float(np.median(profits)),
                ranking[0].point,
            )
        else:
            LOGGER.warning("그리드 탐색 완료 (%.2fs): 평가 가능한 조합이 없습니다.", elapsed)
        return ranking

    def _insert_k_length(
        self, top: TopResults, k_length: int, k_smoothings: Sequence[int], d_lengths: Sequence[int]
    ) -> None:
        _collect(top, k_length, self.evaluate_k_length(k_length, k_smoothings, d_lengths))


def _collect(top: TopResults, k_length: int, results: Sequence[PointResult]) -> None:
    for point, net_profit in results:
        top.insert(net_profit, point)
    LOGGER.debug("k_length=%d 완료 (%d개 조합)", k_length, len(results))


_WORKER_BACKTEST: Optional[StochasticBacktest] = None


def _process_pool_initializer(backtest: StochasticBacktest) -> None:
    global _WORKER_BACKTEST
    _WORKER_BACKTEST = backtest


def _evaluate_in_worker(k_length: int, k_smoothings: Sequence[int], d_lengths: Sequence[int]) -> List[PointResult]:
    if _WORKER_BACKTEST is None:  # pragma: no cover - initializer 미실행 방어
        raise RuntimeError("worker 프로세스가 초기화되지 않았습니다.")
    return _WORKER_BACKTEST.evaluate_k_length(k_length, k_smoothings, d_lengths)


def search(
    price_series: Sequence[PricePoint],
    price_timing: Sequence[Candle],
    parameter_range: ParameterRange,
    simulation_defaults: Optional[SimulationDefaults] = None,
    *,
    workers: Optional[int] = None,
    executor: str = DEFAULT_EXECUTOR,
    capacity: int = TOP_RESULTS_LIMIT,
) -> List[RankedResult]:
    """Rank every oscillator configuration in ``parameter_range`` by net profit."""

    backtest = StochasticBacktest(price_series, price_timing, simulation_defaults or SimulationDefaults())
    return backtest.search(parameter_range, workers=workers, executor=executor, capacity=capacity)


__all__ = ["StochasticBacktest", "TopResults", "search"]
