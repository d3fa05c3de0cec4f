"""Optuna 스터디로 동일한 파라미터 그리드를 평가합니다."""
from __future__ import annotations

import logging
from typing import List, Optional, Tuple

import optuna
from optuna.samplers import GridSampler
from optuna.trial import TrialState

from .constants import TOP_RESULTS_LIMIT
from .models import ParameterPoint, ParameterRange, RankedResult
from .optimizer import StochasticBacktest, TopResults
from .search_spaces import grid_choices

LOGGER = logging.getLogger(__name__)

USER_ATTR_REPORT = "report"


def _objective(backtest: StochasticBacktest, parameter_range: ParameterRange):
    def objective(trial: optuna.Trial) -> float:
        point = ParameterPoint(
            k_length=trial.suggest_int("k_length", *parameter_range.k_length),
            k_smoothing=trial.suggest_int("k_smoothing", *parameter_range.k_smoothing),
            d_length=trial.suggest_int("d_length", *parameter_range.d_length),
        )
        report = backtest.evaluate(point)
        if report is None:
            raise optuna.TrialPruned(f"{point}: 정의된 시그널 없음")
        trial.set_user_attr(USER_ATTR_REPORT, report.as_dict())
        return report.net_profit

    return objective


def run_grid_study(
    backtest: StochasticBacktest,
    parameter_range: ParameterRange,
    *,
    capacity: int = TOP_RESULTS_LIMIT,
    study_name: Optional[str] = None,
    seed: Optional[int] = 0,
) -> Tuple[optuna.study.Study, List[RankedResult]]:
    """Evaluate every grid point through an in-memory optuna study.

    Trials run sequentially; the ranking is collected with :class:`TopResults`
    so it matches :meth:`StochasticBacktest.search` for the same grid.
    """

    backtest.validate_range(parameter_range)
    optuna.logging.set_verbosity(optuna.logging.WARNING)

    sampler = GridSampler(grid_choices(parameter_range), seed=seed)
    study = optuna.create_study(direction="maximize", sampler=sampler, study_name=study_name)

    LOGGER.info("Optuna 그리드 스터디 시작: %d개 조합", parameter_range.size)
    study.optimize(_objective(backtest, parameter_range), n_trials=parameter_range.size, n_jobs=1)

    top = TopResults(capacity)
    for trial in study.get_trials(deepcopy=False, states=(TrialState.COMPLETE,)):
        point = ParameterPoint(
            int(trial.params["k_length"]),
            int(trial.params["k_smoothing"]),
            int(trial.params["d_length"]),
        )
        top.insert(float(trial.value), point)

    ranking = top.ranked()
    if ranking:
        LOGGER.info("Optuna 그리드 스터디 완료: 최고 %.2f %s", ranking[0].net_profit, ranking[0].point)
    else:
        LOGGER.warning("Optuna 그리드 스터디 완료: 완료된 트라이얼이 없습니다.")
    return study, ranking


__all__ = ["USER_ATTR_REPORT", "run_grid_study"]
