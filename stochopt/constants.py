"""Repository-wide configuration defaults and shared constants."""
from __future__ import annotations

import multiprocessing
from decimal import Decimal

# CPU cores / worker defaults -------------------------------------------------
CPU_COUNT: int = multiprocessing.cpu_count() or 1
DEFAULT_WORKERS: int = max(1, CPU_COUNT)
EXECUTOR_CHOICES = ("process", "thread")
DEFAULT_EXECUTOR: str = "process"

# Simulation defaults ---------------------------------------------------------
DEFAULT_CAPITAL: float = 1000.0
DEFAULT_ASSET_SCALE: int = 8
DEFAULT_FUNDS_SCALE: int = 8

# 잔고가 이 값 아래로 떨어지면 시뮬레이션을 조기 종료합니다.
MIN_FUNDS = Decimal("10.0")

# Decimal 연산 정밀도 (유효숫자 28자리)
DECIMAL_PRECISION: int = 28

# Ranking ---------------------------------------------------------------------
TOP_RESULTS_LIMIT: int = 100

__all__ = [
    "CPU_COUNT",
    "DEFAULT_WORKERS",
    "EXECUTOR_CHOICES",
    "DEFAULT_EXECUTOR",
    "DEFAULT_CAPITAL",
    "DEFAULT_ASSET_SCALE",
    "DEFAULT_FUNDS_SCALE",
    "MIN_FUNDS",
    "DECIMAL_PRECISION",
    "TOP_RESULTS_LIMIT",
]
