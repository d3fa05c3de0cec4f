from decimal import Decimal

import pytest

from stochopt.errors import ConfigurationError
from stochopt.quantize import (
    decimal_scale,
    round_dp,
    stage_purchase,
    stage_sale,
    to_decimal,
    truncate,
)


def test_to_decimal_uses_shortest_float_repr():
    assert to_decimal(0.1) == Decimal("0.1")
    assert to_decimal(1639.26) == Decimal("1639.26")
    assert to_decimal("0.00075") == Decimal("0.00075")
    with pytest.raises(ConfigurationError):
        to_decimal(True)


@pytest.mark.parametrize(
    ("increment", "expected"),
    [(0.01, 2), (10.0, 0), (1.0, 0), (0.0001, 4), (1e-08, 8), ("0.50", 1)],
)
def test_decimal_scale(increment, expected):
    assert decimal_scale(increment) == expected


def test_truncate_never_rounds_up():
    assert truncate(Decimal("1.239"), 2) == Decimal("1.23")
    assert truncate(Decimal("-1.239"), 2) == Decimal("-1.23")
    assert truncate(Decimal("9992.99"), 0) == Decimal("9992")
    for raw in ("0.123456789", "5.5", "123.999999999"):
        value = Decimal(raw)
        assert truncate(value, 4) <= value


def test_round_dp_is_bankers_rounding():
    assert round_dp(Decimal("2.675"), 2) == Decimal("2.68")
    assert round_dp(Decimal("0.125"), 2) == Decimal("0.12")
    assert round_dp(Decimal("0.135"), 2) == Decimal("0.14")


def test_stage_purchase_with_fee_and_tick_size():
    purchase = stage_purchase(
        Decimal("10000"), Decimal("1639.26"), Decimal("0.00075"), 8, 8, funds_trade_scale=0
    )
    assert purchase.cost_before_fee == Decimal("9992")
    assert purchase.asset_qty == Decimal("6.0954333")
    assert purchase.total_fee == Decimal("7.494")
    assert purchase.total_cost == Decimal("9999.494")


def test_stage_purchase_without_fee_spends_everything_divisible():
    purchase = stage_purchase(Decimal("1000"), Decimal("3"), None, 4, 8)
    assert purchase.asset_qty == Decimal("333.3333")
    assert purchase.total_fee is None
    assert purchase.total_cost == Decimal("999.9999")
    assert purchase.total_cost <= Decimal("1000")


def test_stage_sale_withholds_fee_in_asset():
    sale = stage_sale(Decimal("6.0954333"), Decimal("1734.30"), Decimal("0.00075"), 8, 8, asset_trade_scale=2)
    assert sale.assets_sold == Decimal("6.09")
    assert sale.sale_before_fee == Decimal("10561.887")
    assert sale.fee_asset_total == Decimal("0.0045675")


def test_stage_sale_without_fee_sells_whole_quantity():
    sale = stage_sale(Decimal("2.5"), Decimal("40.123"), None, 8, 2)
    assert sale.assets_sold == Decimal("2.5")
    assert sale.sale_before_fee == Decimal("100.30")
    assert sale.fee_asset_total is None


def test_truncated_purchase_round_trip_never_exceeds_funds():
    funds = Decimal("1234.56789")
    for price in ("0.37", "17.3", "1639.26", "29999.99"):
        purchase = stage_purchase(funds, Decimal(price), Decimal("0.001"), 6, 8, funds_trade_scale=2)
        assert purchase.total_cost <= funds
        assert purchase.asset_qty * Decimal(price) <= purchase.cost_before_fee


@pytest.mark.parametrize(
    ("funds", "price"),
    [("1000", "4"), ("1234.5", "2.5"), ("100", "0.125"), ("9992", "1249"), ("0.0625", "0.5")],
)
def test_purchase_then_sale_at_same_price_returns_funds(funds, price):
    funds, price = Decimal(funds), Decimal(price)
    purchase = stage_purchase(funds, price, None, 8, 8)
    sale = stage_sale(purchase.asset_qty, price, None, 8, 8)

    assert sale.sale_before_fee == purchase.cost_before_fee == funds
    assert sale.assets_sold == purchase.asset_qty


@pytest.mark.parametrize("scale", [0, 1, 2, 5, 8, 24])
def test_truncate_keeps_at_most_scale_places(scale):
    for raw in ("0.123456789012345", "1639.26", "9.99E+20", "7", "-42.000000001"):
        value = Decimal(raw)
        result = truncate(value, scale)
        assert -result.as_tuple().exponent <= scale
        assert abs(result) <= abs(value)


def test_truncate_does_not_pad_large_values():
    assert truncate(Decimal("9.99E+20"), 8) == Decimal("9.99E+20")
    assert truncate(Decimal("10000"), 24) == Decimal("10000")
    assert round_dp(Decimal("1.5E+26"), 2) == Decimal("1.5E+26")
