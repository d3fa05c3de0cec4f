"""Stochastic oscillator backtesting and parameter search."""
from __future__ import annotations

from .errors import ConfigurationError
from .indicators import (
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
from .models import (
    Candle,
    ParameterPoint,
    ParameterRange,
    PerformanceReport,
    PricePoint,
    RankedResult,
    SignalPair,
    SimulationDefaults,
    TriggerSignal,
)
from .optimizer import StochasticBacktest, TopResults, search
from .simulator import SimulationConfig, simulate

__all__ = [
    "Candle",
    "ConfigurationError",
    "ParameterPoint",
    "ParameterRange",
    "PerformanceReport",
    "PricePoint",
    "RankedResult",
    "SignalPair",
    "SimulationConfig",
    "SimulationDefaults",
    "StochasticBacktest",
    "TopResults",
    "TriggerSignal",
    "d_for_tick",
    "d_for_ticks",
    "generate_signals",
    "k_for_tick",
    "k_for_ticks",
    "search",
    "simulate",
    "sma_for_tick",
    "sma_for_ticks",
    "stochastic",
    "stochastic_frame",
]
