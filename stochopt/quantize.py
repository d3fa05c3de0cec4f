"""Exchange order quantisation on top of :mod:`decimal`.

Every quantity and funds amount is truncated toward zero at a fixed number of
decimal places, mirroring how exchanges round order size and order value.
Reported statistics use banker's rounding through :func:`round_dp`.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_DOWN, ROUND_HALF_EVEN, Context, Decimal
from typing import Dict, Optional

from .constants import DECIMAL_PRECISION
from .errors import ConfigurationError

DECIMAL_CONTEXT = Context(prec=DECIMAL_PRECISION, rounding=ROUND_HALF_EVEN)
ZERO = Decimal("0")

_EXPONENTS: Dict[int, Decimal] = {}


def _exponent(scale: int) -> Decimal:
    exponent = _EXPONENTS.get(scale)
    if exponent is None:
        exponent = Decimal(1).scaleb(-scale)
        _EXPONENTS[scale] = exponent
    return exponent


def to_decimal(value: float | int | str | Decimal) -> Decimal:
    """float 값을 최단 왕복 표현(repr)을 거쳐 Decimal 로 변환합니다."""

    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ConfigurationError(f"Decimal 로 변환할 수 없는 값입니다: {value!r}")
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def decimal_scale(increment: float | str | Decimal) -> int:
    """Decimal places implied by a tradable increment (``0.01`` -> 2, ``10.0`` -> 0)."""

    normalised = to_decimal(increment).normalize(DECIMAL_CONTEXT)
    exponent = normalised.as_tuple().exponent
    if not isinstance(exponent, int):
        raise ConfigurationError(f"유한한 증분 값이 필요합니다: {increment!r}")
    return max(0, -exponent)


def _within_scale(value: Decimal, scale: int) -> bool:
    exponent = value.as_tuple().exponent
    return isinstance(exponent, int) and -exponent <= scale


def truncate(value: Decimal, scale: int) -> Decimal:
    """Truncate toward zero keeping at most ``scale`` decimal places.

    Values that already fit are returned unchanged, never padded.
    """

    if _within_scale(value, scale):
        return value
    return value.quantize(_exponent(scale), rounding=ROUND_DOWN, context=DECIMAL_CONTEXT)


def round_dp(value: Decimal, places: int) -> Decimal:
    if _within_scale(value, places):
        return value
    return value.quantize(_exponent(places), rounding=ROUND_HALF_EVEN, context=DECIMAL_CONTEXT)


def _mul(left: Decimal, right: Decimal) -> Decimal:
    return DECIMAL_CONTEXT.multiply(left, right)


def _div(left: Decimal, right: Decimal) -> Decimal:
    return DECIMAL_CONTEXT.divide(left, right)


def _sub(left: Decimal, right: Decimal) -> Decimal:
    return DECIMAL_CONTEXT.subtract(left, right)


@dataclass(frozen=True)
class PurchaseInfo:
    asset_qty: Decimal
    cost_before_fee: Decimal
    total_fee: Optional[Decimal]

    @property
    def total_cost(self) -> Decimal:
        if self.total_fee is None:
            return self.cost_before_fee
        return DECIMAL_CONTEXT.add(self.cost_before_fee, self.total_fee)


@dataclass(frozen=True)
class SaleInfo:
    assets_sold: Decimal
    sale_before_fee: Decimal
    fee_asset_total: Optional[Decimal]


def stage_purchase(
    funds: Decimal,
    price: Decimal,
    exchange_fee: Optional[Decimal],
    asset_scale: int,
    funds_scale: int,
    funds_trade_scale: Optional[int] = None,
) -> PurchaseInfo:
    """Size a market buy spending ``funds`` at ``price``.

    The fee is reserved from the quote funds first, the base quantity is
    truncated to ``asset_scale`` and, when the venue quantises order value
    (``funds_trade_scale``), the cost is truncated again and the quantity
    recomputed from it. The fee is charged in the quote currency.
    """

    if exchange_fee is None:
        funds_available = funds
    else:
        funds_available = truncate(_sub(funds, _mul(funds, exchange_fee)), funds_scale)

    asset_qty = truncate(_div(funds_available, price), asset_scale)
    cost_before_fee = _mul(asset_qty, price)

    if funds_trade_scale is not None:
        cost_before_fee = truncate(cost_before_fee, funds_trade_scale)
        asset_qty = truncate(_div(cost_before_fee, price), asset_scale)

    total_fee = None if exchange_fee is None else _mul(cost_before_fee, exchange_fee)
    return PurchaseInfo(asset_qty=asset_qty, cost_before_fee=cost_before_fee, total_fee=total_fee)


def stage_sale(
    asset_qty: Decimal,
    price: Decimal,
    exchange_fee: Optional[Decimal],
    asset_scale: int,
    funds_scale: int,
    asset_trade_scale: Optional[int] = None,
) -> SaleInfo:
    """Size a market sell of ``asset_qty`` at ``price``.

    The fee is withheld from the base quantity (charged in the base asset),
    the remainder is truncated to the lot size when ``asset_trade_scale`` is
    set and the proceeds are truncated to ``funds_scale``.
    """

    if exchange_fee is None:
        assets_sold = asset_qty
    else:
        assets_sold = truncate(_sub(asset_qty, _mul(asset_qty, exchange_fee)), asset_scale)

    if asset_trade_scale is not None:
        assets_sold = truncate(assets_sold, asset_trade_scale)

    sale_before_fee = truncate(_mul(assets_sold, price), funds_scale)
    fee_asset_total = None if exchange_fee is None else _mul(assets_sold, exchange_fee)
    return SaleInfo(assets_sold=assets_sold, sale_before_fee=sale_before_fee, fee_asset_total=fee_asset_total)


__all__ = [
    "DECIMAL_CONTEXT",
    "ZERO",
    "PurchaseInfo",
    "SaleInfo",
    "decimal_scale",
    "round_dp",
    "stage_purchase",
    "stage_sale",
    "to_decimal",
    "truncate",
]
