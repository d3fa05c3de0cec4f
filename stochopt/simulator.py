"""Long-only trade simulator driven by oscillator crossings.

A signal observed on tick ``i`` is executed at the open of tick ``i + 1``.
The position is either fully invested or flat; an open position is always
liquidated at the open of the final tick.
"""
from __future__ import annotations

import enum
import logging
import sys
from dataclasses import dataclass, field
from decimal import Decimal, localcontext
from typing import List, Optional, Sequence

from .constants import DECIMAL_PRECISION, DEFAULT_ASSET_SCALE, DEFAULT_CAPITAL, DEFAULT_FUNDS_SCALE, MIN_FUNDS
from .errors import ConfigurationError
from .models import PerformanceReport, SimulationDefaults, TriggerSignal
from .quantize import (
    DECIMAL_CONTEXT,
    ZERO,
    decimal_scale,
    round_dp,
    stage_purchase,
    stage_sale,
    to_decimal,
    truncate,
)

LOGGER = logging.getLogger(__name__)

# 손실 합계가 이보다 작으면 "손실 없음"으로 간주합니다.
PROFIT_FACTOR_EPSILON = Decimal(repr(sys.float_info.epsilon))


class TradeState(enum.Enum):
    FLAT = "flat"
    PENDING_BUY = "pending_buy"
    LONG = "long"
    PENDING_SELL = "pending_sell"


class Action(enum.Enum):
    NONE = "none"
    BUY = "buy"
    SELL = "sell"


def on_signal(state: TradeState, signal_in: float, signal_out: float) -> TradeState:
    """Schedule an order for the next tick from the lines observed on this one."""

    if signal_in > signal_out and state is TradeState.FLAT:
        return TradeState.PENDING_BUY
    if signal_in < signal_out and state is TradeState.LONG:
        return TradeState.PENDING_SELL
    return state


def pending_action(state: TradeState, is_last: bool) -> Action:
    """Order to execute at the open of the current tick."""

    if state is TradeState.PENDING_BUY:
        # 마지막 틱에서 진입하면 같은 가격에 즉시 청산되므로 진입하지 않습니다.
        return Action.NONE if is_last else Action.BUY
    if state is TradeState.PENDING_SELL or (is_last and state is TradeState.LONG):
        return Action.SELL
    return Action.NONE


def validate_settings(settings: SimulationDefaults) -> None:
    """Reject capital, fee, increment or scale values no exchange would accept."""

    if not settings.capital > 0:
        raise ConfigurationError(f"초기 자본은 0보다 커야 합니다: {settings.capital!r}")
    if settings.exchange_fee is not None and not 0.0 <= settings.exchange_fee < 1.0:
        raise ConfigurationError(f"수수료율은 [0, 1) 범위여야 합니다: {settings.exchange_fee!r}")
    for name in ("min_qty", "min_price"):
        value = getattr(settings, name)
        if value is not None and not value > 0:
            raise ConfigurationError(f"{name} 값은 0보다 커야 합니다: {value!r}")
    for name in ("asset_scale", "funds_scale"):
        value = getattr(settings, name)
        if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= DECIMAL_PRECISION:
            raise ConfigurationError(f"{name} 값은 1 이상 {DECIMAL_PRECISION} 이하의 정수여야 합니다: {value!r}")


@dataclass
class SimulationConfig:
    signals: Sequence[TriggerSignal]
    initial_capital: float = DEFAULT_CAPITAL
    exchange_fee: Optional[float] = None
    min_qty: Optional[float] = None
    min_price: Optional[float] = None
    asset_scale: int = DEFAULT_ASSET_SCALE
    funds_scale: int = DEFAULT_FUNDS_SCALE

    @classmethod
    def from_defaults(cls, signals: Sequence[TriggerSignal], defaults: SimulationDefaults) -> "SimulationConfig":
        return cls(
            signals=signals,
            initial_capital=defaults.capital,
            exchange_fee=defaults.exchange_fee,
            min_qty=defaults.min_qty,
            min_price=defaults.min_price,
            asset_scale=defaults.asset_scale,
            funds_scale=defaults.funds_scale,
        )

    @property
    def asset_trade_scale(self) -> Optional[int]:
        """Decimal places of the lot size, if one is configured."""

        return None if self.min_qty is None else decimal_scale(self.min_qty)

    @property
    def funds_trade_scale(self) -> Optional[int]:
        """Decimal places of the tick size, if one is configured."""

        return None if self.min_price is None else decimal_scale(self.min_price)

    @property
    def settings(self) -> SimulationDefaults:
        return SimulationDefaults(
            capital=self.initial_capital,
            exchange_fee=self.exchange_fee,
            min_qty=self.min_qty,
            min_price=self.min_price,
            asset_scale=self.asset_scale,
            funds_scale=self.funds_scale,
        )

    def validate(self) -> None:
        if not self.signals:
            raise ConfigurationError("시뮬레이션할 시그널이 비어 있습니다.")
        validate_settings(self.settings)
        previous = None
        for signal in self.signals:
            if previous is not None and signal.time_open < previous:
                raise ConfigurationError("시그널은 time_open 기준으로 정렬되어 있어야 합니다.")
            if not (signal.price_open > 0 and signal.price_close > 0):
                raise ConfigurationError(f"가격은 0보다 커야 합니다 (time_open={signal.time_open}).")
            previous = signal.time_open


@dataclass
class _TradeLedger:
    winning_trades: List[Decimal] = field(default_factory=list)
    losing_trades: List[Decimal] = field(default_factory=list)
    winning_ticks: List[int] = field(default_factory=list)
    losing_ticks: List[int] = field(default_factory=list)
    total_closed_trades: int = 0

    def record(self, profit: Decimal, ticks_held: int) -> None:
        self.total_closed_trades += 1
        if profit > ZERO:
            self.winning_trades.append(profit)
            self.winning_ticks.append(ticks_held)
        elif profit < ZERO:
            self.losing_trades.append(profit)
            self.losing_ticks.append(ticks_held)


def _decimal_avg(values: Sequence[Decimal]) -> float:
    if not values:
        return 0.0
    return float(round_dp(sum(values, ZERO) / Decimal(len(values)), 2))


def _ticks_avg(values: Sequence[int]) -> float:
    if not values:
        return 0.0
    return sum(values) / float(len(values))


def profit_factor(winning_trades: Sequence[Decimal], losing_trades: Sequence[Decimal]) -> Optional[float]:
    """Gross profit over gross loss magnitude; ``None`` when nothing was lost."""

    with localcontext(DECIMAL_CONTEXT):
        total_profit = sum(winning_trades, ZERO)
        total_loss = abs(sum(losing_trades, ZERO))
        if total_loss > PROFIT_FACTOR_EPSILON:
            return float(round_dp(total_profit / total_loss, 3))
    return None


def buy_and_hold_return(
    funds: Decimal,
    exchange_fee: Optional[Decimal],
    price_entry: Decimal,
    price_exit: Decimal,
    asset_scale: int,
    funds_scale: int,
    funds_trade_scale: Optional[int] = None,
    asset_trade_scale: Optional[int] = None,
) -> float:
    """Capital delta of one buy at ``price_entry`` held until ``price_exit``.

    Base asset left over after the lot-size truncation and the sell fee is
    marked to market at the exit price.
    """

    with localcontext(DECIMAL_CONTEXT):
        purchase = stage_purchase(funds, price_entry, exchange_fee, asset_scale, funds_scale, funds_trade_scale)
        position = funds - purchase.total_cost

        sale = stage_sale(purchase.asset_qty, price_exit, exchange_fee, asset_scale, funds_scale, asset_trade_scale)
        position += sale.sale_before_fee
        if sale.fee_asset_total is not None:
            position -= truncate(sale.fee_asset_total * price_exit, funds_scale)
        position += truncate((purchase.asset_qty - sale.assets_sold) * price_exit, funds_scale)

        return float(round_dp(position - funds, 2))


def _summarise(
    ledger: _TradeLedger,
    buy_and_hold: float,
    commission_paid: Optional[Decimal],
    stopped_early: bool,
) -> PerformanceReport:
    with localcontext(DECIMAL_CONTEXT):
        gross_profit = sum(ledger.winning_trades, ZERO)
        gross_loss = sum(ledger.losing_trades, ZERO)

        percent_profitable = None
        if ledger.total_closed_trades:
            percentage = Decimal(len(ledger.winning_trades)) / Decimal(ledger.total_closed_trades) * 100
            percent_profitable = float(round_dp(percentage, 2))

        avg_winning_trade = _decimal_avg(ledger.winning_trades)
        avg_losing_trade = _decimal_avg(ledger.losing_trades)
        ratio_avg_win_loss = 0.0
        if avg_losing_trade != 0.0:
            ratio = to_decimal(avg_winning_trade) / abs(to_decimal(avg_losing_trade))
            ratio_avg_win_loss = float(round_dp(ratio, 3))

        largest_winning_trade = float(round_dp(max(ledger.winning_trades), 2)) if ledger.winning_trades else 0.0
        largest_losing_trade = float(round_dp(min(ledger.losing_trades), 2)) if ledger.losing_trades else 0.0

        return PerformanceReport(
            net_profit=float(gross_profit + gross_loss),
            gross_profit=float(gross_profit),
            gross_loss=float(gross_loss),
            buy_and_hold_return=buy_and_hold,
            profit_factor=profit_factor(ledger.winning_trades, ledger.losing_trades),
            commission_paid=None if commission_paid is None else float(commission_paid),
            total_closed_trades=ledger.total_closed_trades,
            num_winning_trades=len(ledger.winning_trades),
            num_losing_trades=len(ledger.losing_trades),
            percent_profitable=percent_profitable,
            avg_winning_trade=avg_winning_trade,
            avg_losing_trade=avg_losing_trade,
            ratio_avg_win_loss=ratio_avg_win_loss,
            largest_winning_trade=largest_winning_trade,
            largest_losing_trade=largest_losing_trade,
            avg_ticks_in_winning_trades=_ticks_avg(ledger.winning_ticks),
            avg_ticks_in_losing_trades=_ticks_avg(ledger.losing_ticks),
            stopped_early=stopped_early,
        )


def simulate(config: SimulationConfig) -> PerformanceReport:
    """Replay the signals and return the aggregate performance statistics."""

    config.validate()
    signals = config.signals
    asset_trade_scale = config.asset_trade_scale
    funds_trade_scale = config.funds_trade_scale
    exchange_fee = None if config.exchange_fee is None else to_decimal(config.exchange_fee)

    ledger = _TradeLedger()
    stopped_early = False

    with localcontext(DECIMAL_CONTEXT):
        funds = to_decimal(config.initial_capital)
        buy_and_hold = buy_and_hold_return(
            funds,
            exchange_fee,
            to_decimal(signals[0].price_open),
            to_decimal(signals[-1].price_close),
            config.asset_scale,
            config.funds_scale,
            funds_trade_scale,
            asset_trade_scale,
        )

        state = TradeState.FLAT
        assets = ZERO
        cost_basis = ZERO
        commission_paid = ZERO
        tick_at_purchase = 0
        last_index = len(signals) - 1

        for index, tick in enumerate(signals):
            action = pending_action(state, index == last_index)

            if action is Action.BUY:
                price = to_decimal(tick.price_open)
                purchase = stage_purchase(
                    funds, price, exchange_fee, config.asset_scale, config.funds_scale, funds_trade_scale
                )
                cost_basis = purchase.total_cost
                funds -= cost_basis
                assets += purchase.asset_qty
                if purchase.total_fee is not None:
                    commission_paid += purchase.total_fee
                tick_at_purchase = index
                state = TradeState.LONG

            elif action is Action.SELL:
                price = to_decimal(tick.price_open)
                sale = stage_sale(
                    assets, price, exchange_fee, config.asset_scale, config.funds_scale, asset_trade_scale
                )
                funds += sale.sale_before_fee
                assets -= sale.assets_sold

                trade_profit = sale.sale_before_fee - cost_basis
                if sale.fee_asset_total is not None:
                    commission_cost = sale.fee_asset_total * price
                    commission_paid += commission_cost
                    assets -= sale.fee_asset_total
                    trade_profit -= commission_cost

                ledger.record(trade_profit, index - tick_at_purchase)
                state = TradeState.FLAT

                if funds < MIN_FUNDS:
                    LOGGER.debug(
                        "잔고 %s 가 최소 자금 %s 미만이므로 틱 %d/%d 에서 시뮬레이션을 종료합니다.",
                        funds,
                        MIN_FUNDS,
                        index,
                        last_index,
                    )
                    stopped_early = True
                    break

            state = on_signal(state, tick.signal_in, tick.signal_out)

    return _summarise(ledger, buy_and_hold, None if exchange_fee is None else commission_paid, stopped_early)


__all__ = [
    "Action",
    "PROFIT_FACTOR_EPSILON",
    "SimulationConfig",
    "TradeState",
    "buy_and_hold_return",
    "on_signal",
    "pending_action",
    "profit_factor",
    "simulate",
    "validate_settings",
]
