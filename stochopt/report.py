"""Report helpers for optimisation runs (in-memory pandas views only)."""
from __future__ import annotations

from typing import Optional, Sequence

import numpy as np
import pandas as pd

from .models import PerformanceReport, RankedResult

RANKING_COLUMNS = ["rank", "net_profit", "k_length", "k_smoothing", "d_length"]

REPORT_LABELS = {
    "net_profit": "Net Profit",
    "gross_profit": "Gross Profit",
    "gross_loss": "Gross Loss",
    "buy_and_hold_return": "Buy & Hold Return",
    "profit_factor": "Profit Factor",
    "commission_paid": "Commission Paid",
    "total_closed_trades": "Total Closed Trades",
    "num_winning_trades": "Winning Trades",
    "num_losing_trades": "Losing Trades",
    "percent_profitable": "Percent Profitable",
    "avg_winning_trade": "Avg Winning Trade",
    "avg_losing_trade": "Avg Losing Trade",
    "ratio_avg_win_loss": "Ratio Avg Win / Avg Loss",
    "largest_winning_trade": "Largest Winning Trade",
    "largest_losing_trade": "Largest Losing Trade",
    "avg_ticks_in_winning_trades": "Avg # Ticks in Winning Trades",
    "avg_ticks_in_losing_trades": "Avg # Ticks in Losing Trades",
    "stopped_early": "Stopped Early",
}


def ranking_frame(ranking: Sequence[RankedResult]) -> pd.DataFrame:
    """랭킹을 1부터 시작하는 순위 열을 가진 DataFrame 으로 변환합니다."""

    rows = [
        {
            "rank": position,
            "net_profit": entry.net_profit,
            **entry.point.as_dict(),
        }
        for position, entry in enumerate(ranking, start=1)
    ]
    frame = pd.DataFrame(rows, columns=RANKING_COLUMNS)
    return frame.astype({"rank": np.int64, "k_length": np.int64, "k_smoothing": np.int64, "d_length": np.int64})


def report_series(report: PerformanceReport) -> pd.Series:
    payload = report.as_dict()
    values = {REPORT_LABELS[key]: (np.nan if value is None else value) for key, value in payload.items()}
    return pd.Series(values, dtype=object)


def format_ranking(ranking: Sequence[RankedResult], limit: Optional[int] = None) -> str:
    frame = ranking_frame(ranking if limit is None else list(ranking)[:limit])
    if frame.empty:
        return "(결과 없음)"
    return frame.to_string(index=False, float_format=lambda value: f"{value:,.2f}")


__all__ = ["RANKING_COLUMNS", "REPORT_LABELS", "format_ranking", "ranking_frame", "report_series"]
