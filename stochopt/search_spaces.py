"""Helpers for translating YAML search spaces to parameter grids."""
from __future__ import annotations

from typing import Dict, List, Mapping, Tuple

from .errors import ConfigurationError
from .models import ParameterRange

SpaceSpec = Dict[str, Dict[str, object]]

PARAMETER_NAMES = ("k_length", "k_smoothing", "d_length")


def _int_bounds(name: str, spec: Mapping[str, object]) -> Tuple[int, int]:
    dtype = str(spec.get("type", "int")).lower()
    if dtype != "int":
        raise ConfigurationError(f"'{name}' 파라미터는 int 타입만 지원합니다: {dtype}")
    if "min" not in spec or "max" not in spec:
        raise ConfigurationError(f"'{name}' 파라미터에는 min/max 가 필요합니다.")
    try:
        step = int(spec.get("step", 1))
        low, high = int(spec["min"]), int(spec["max"])
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"'{name}' 파라미터의 min/max/step 은 정수여야 합니다.") from exc
    if step != 1:
        raise ConfigurationError(f"'{name}' 파라미터는 step=1 정수 그리드만 지원합니다: {step!r}")
    return low, high


def parameter_range_from_space(space: Mapping[str, object]) -> ParameterRange:
    """Build a :class:`ParameterRange` from a ``{name: {type, min, max}}`` mapping.

    A bare ``[min, max]`` pair is accepted as shorthand for an int spec.
    """

    bounds: Dict[str, Tuple[int, int]] = {}
    unknown = sorted(set(space) - set(PARAMETER_NAMES))
    if unknown:
        raise ConfigurationError(f"알 수 없는 탐색 파라미터: {', '.join(unknown)}")
    for name in PARAMETER_NAMES:
        spec = space.get(name)
        if spec is None:
            raise ConfigurationError(f"탐색 공간에 '{name}' 항목이 없습니다.")
        if isinstance(spec, (list, tuple)):
            if len(spec) != 2:
                raise ConfigurationError(f"'{name}' 범위는 [min, max] 형식이어야 합니다: {spec!r}")
            spec = {"type": "int", "min": spec[0], "max": spec[1]}
        if not isinstance(spec, Mapping):
            raise ConfigurationError(f"'{name}' 항목 형식이 올바르지 않습니다: {spec!r}")
        bounds[name] = _int_bounds(name, spec)
    return ParameterRange(**bounds)


def grid_choices(parameter_range: ParameterRange) -> Dict[str, List[int]]:
    return {
        "k_length": list(parameter_range.k_lengths),
        "k_smoothing": list(parameter_range.k_smoothings),
        "d_length": list(parameter_range.d_lengths),
    }


__all__ = ["PARAMETER_NAMES", "SpaceSpec", "grid_choices", "parameter_range_from_space"]
