"""YAML 실행 설정 로더."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional

import yaml

from .constants import (
    DEFAULT_ASSET_SCALE,
    DEFAULT_CAPITAL,
    DEFAULT_EXECUTOR,
    DEFAULT_FUNDS_SCALE,
    DEFAULT_WORKERS,
    EXECUTOR_CHOICES,
    TOP_RESULTS_LIMIT,
)
from .errors import ConfigurationError
from .models import ParameterRange, SimulationDefaults
from .search_spaces import parameter_range_from_space
from .simulator import validate_settings

LOGGER = logging.getLogger(__name__)

ENGINE_CHOICES = ("grid", "optuna")


@dataclass(frozen=True)
class DataSettings:
    path: Optional[Path] = None
    interval: Optional[str] = None
    drop_last: bool = True


@dataclass(frozen=True)
class RunConfig:
    simulation: SimulationDefaults
    parameter_range: ParameterRange
    workers: int = DEFAULT_WORKERS
    executor: str = DEFAULT_EXECUTOR
    top: int = TOP_RESULTS_LIMIT
    engine: str = "grid"
    data: DataSettings = field(default_factory=DataSettings)


def load_yaml(path: Path) -> Dict[str, object]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def _section(payload: Mapping[str, object], name: str) -> Mapping[str, object]:
    section = payload.get(name) or {}
    if not isinstance(section, Mapping):
        raise ConfigurationError(f"'{name}' 섹션은 매핑이어야 합니다.")
    return section


def _optional_float(section: Mapping[str, object], key: str) -> Optional[float]:
    value = section.get(key)
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"'{key}' 값은 숫자여야 합니다: {value!r}") from exc


def _int(section: Mapping[str, object], key: str, default: int) -> int:
    value = section.get(key, default)
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"'{key}' 값은 정수여야 합니다: {value!r}") from exc


def simulation_from_mapping(section: Mapping[str, object]) -> SimulationDefaults:
    capital = _optional_float(section, "capital")
    settings = SimulationDefaults(
        capital=DEFAULT_CAPITAL if capital is None else capital,
        exchange_fee=_optional_float(section, "exchange_fee"),
        min_qty=_optional_float(section, "min_qty"),
        min_price=_optional_float(section, "min_price"),
        asset_scale=_int(section, "asset_scale", DEFAULT_ASSET_SCALE),
        funds_scale=_int(section, "funds_scale", DEFAULT_FUNDS_SCALE),
    )
    validate_settings(settings)
    return settings


def run_config_from_mapping(payload: Mapping[str, object]) -> RunConfig:
    """Parse a loaded YAML document; every problem surfaces as ConfigurationError."""

    simulation = simulation_from_mapping(_section(payload, "simulation"))

    space = _section(payload, "space")
    if not space:
        raise ConfigurationError("'space' 섹션이 비어 있습니다.")
    parameter_range = parameter_range_from_space(space)

    search_cfg = _section(payload, "search")
    workers = max(1, _int(search_cfg, "workers", DEFAULT_WORKERS))
    executor = str(search_cfg.get("executor", DEFAULT_EXECUTOR) or DEFAULT_EXECUTOR).lower()
    if executor not in EXECUTOR_CHOICES:
        raise ConfigurationError(f"지원하지 않는 executor: {executor!r}")
    engine = str(search_cfg.get("engine", "grid") or "grid").lower()
    if engine not in ENGINE_CHOICES:
        raise ConfigurationError(f"지원하지 않는 engine: {engine!r}")
    top = _int(search_cfg, "top", TOP_RESULTS_LIMIT)
    if top < 1:
        raise ConfigurationError(f"'top' 값은 1 이상이어야 합니다: {top}")

    data_cfg = _section(payload, "data")
    raw_path = data_cfg.get("path")
    data = DataSettings(
        path=Path(str(raw_path)) if raw_path else None,
        interval=str(data_cfg["interval"]) if data_cfg.get("interval") else None,
        drop_last=bool(data_cfg.get("drop_last", True)),
    )

    return RunConfig(
        simulation=simulation,
        parameter_range=parameter_range,
        workers=workers,
        executor=executor,
        top=top,
        engine=engine,
        data=data,
    )


def load_run_config(path: Path) -> RunConfig:
    payload = load_yaml(path)
    if not payload:
        raise ConfigurationError(f"설정 파일이 없거나 비어 있습니다: {path}")
    if not isinstance(payload, Mapping):
        raise ConfigurationError(f"설정 파일 최상위는 매핑이어야 합니다: {path}")
    config = run_config_from_mapping(payload)
    LOGGER.info("설정 로드 완료: %s (조합 %d개, engine=%s)", path, config.parameter_range.size, config.engine)
    return config


__all__ = [
    "DataSettings",
    "ENGINE_CHOICES",
    "RunConfig",
    "load_run_config",
    "load_yaml",
    "run_config_from_mapping",
    "simulation_from_mapping",
]
