"""스토캐스틱 파라미터 탐색 CLI 진입점."""
from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional, Sequence

from datafeed.candles import read_candles_csv

from .config import ENGINE_CHOICES, RunConfig, load_run_config
from .constants import EXECUTOR_CHOICES
from .errors import ConfigurationError
from .models import RankedResult
from .optimizer import StochasticBacktest
from .report import format_ranking
from .study import run_grid_study

LOGGER = logging.getLogger("stochopt")

LOG_FORMAT = "[%(levelname)s] %(message)s"
FILE_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stochopt",
        description="스토캐스틱 오실레이터 파라미터 그리드를 백테스트하고 순이익 상위 조합을 출력합니다.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--config", type=Path, default=Path("config/backtest.yaml"), help="백테스트 설정 YAML 경로")
    parser.add_argument("--candles", type=Path, help="캔들 CSV 경로 (설정 파일의 data.path 덮어쓰기)")
    parser.add_argument("--interval", type=str, help="캔들 주기 (예: 1m, 4h)")
    parser.add_argument("--workers", type=int, help="병렬 worker 수")
    parser.add_argument("--executor", choices=list(EXECUTOR_CHOICES), help="병렬 실행기 선택")
    parser.add_argument("--engine", choices=list(ENGINE_CHOICES), help="탐색 엔진 선택")
    parser.add_argument("--top", type=int, help="출력할 상위 조합 수")
    parser.add_argument("--log-dir", type=Path, help="run.log 를 기록할 디렉터리")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="콘솔 로그 레벨",
    )
    return parser


def _configure_logging(log_dir: Path) -> Path:
    log_dir.mkdir(parents=True, exist_ok=True)
    target = log_dir / "run.log"

    for handler in list(LOGGER.handlers):
        if isinstance(handler, logging.FileHandler) and Path(handler.baseFilename) == target.resolve():
            LOGGER.removeHandler(handler)
            handler.close()

    handler = logging.FileHandler(target, mode="w", encoding="utf-8")
    handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT))
    LOGGER.addHandler(handler)
    return target


def _run(config: RunConfig, backtest: StochasticBacktest) -> List[RankedResult]:
    if config.engine == "optuna":
        _, ranking = run_grid_study(backtest, config.parameter_range, capacity=config.top)
        return ranking
    return backtest.search(
        config.parameter_range,
        workers=config.workers,
        executor=config.executor,
        capacity=config.top,
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    logging.basicConfig(level=getattr(logging, args.log_level), format=LOG_FORMAT)
    if args.log_dir is not None:
        log_path = _configure_logging(args.log_dir)
        LOGGER.info("로그 파일: %s", log_path)

    try:
        config = load_run_config(args.config)
        candles_path = args.candles or config.data.path
        if candles_path is None:
            raise ConfigurationError("캔들 CSV 경로가 필요합니다 (--candles 또는 data.path).")
        candles = read_candles_csv(
            candles_path,
            interval=args.interval or config.data.interval,
            drop_last=config.data.drop_last,
        )
        backtest = StochasticBacktest.from_candles(candles, config.simulation)

        overrides = {}
        if args.workers is not None:
            overrides["workers"] = max(1, args.workers)
        if args.executor is not None:
            overrides["executor"] = args.executor
        if args.engine is not None:
            overrides["engine"] = args.engine
        if args.top is not None:
            if args.top < 1:
                raise ConfigurationError(f"--top 값은 1 이상이어야 합니다: {args.top}")
            overrides["top"] = args.top
        if overrides:
            config = replace(config, **overrides)

        ranking = _run(config, backtest)
    except ConfigurationError as exc:
        LOGGER.error("설정 오류: %s", exc)
        return 2

    print(format_ranking(ranking))
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
