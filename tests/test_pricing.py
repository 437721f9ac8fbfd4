import logging

import pytest

from app.models.order import ShippingMethod
from app.models.plate import PlateType
from app.services.pricing_service import (
    EXPRESS_SHIPPING_COST,
    order_total,
    price_for,
    resolve_unit_price,
    shipping_cost_for,
)


@pytest.mark.parametrize(
    "plate_type, expected",
    [
        (PlateType.SPECIAL, 20000),
        (PlateType.STANDARD_CUSTOM, 40000),
        (PlateType.PRESTIGE, 80000),
        ("prestige", 80000),
    ],
)
def test_tier_prices(plate_type, expected):
    assert price_for(plate_type) == expected


def test_prices_are_constant_across_calls():
    assert {price_for(t) for _ in range(5) for t in PlateType} == {20000, 40000, 80000}


def test_unknown_tier_falls_back_to_special_and_warns(caplog):
    with caplog.at_level(logging.WARNING, logger="app.services.pricing_service"):
        assert price_for("gold") == 20000
    assert "gold" in caplog.text


def test_shipping_costs():
    assert EXPRESS_SHIPPING_COST == 500
    assert shipping_cost_for(ShippingMethod.EXPRESS) == 500
    assert shipping_cost_for("express") == 500
    assert shipping_cost_for(ShippingMethod.FREE) == 0
    assert shipping_cost_for(ShippingMethod.PICKUP) == 0


def test_explicit_unit_price_wins():
    assert resolve_unit_price(PlateType.PRESTIGE, 1000) == 1000
    assert resolve_unit_price(PlateType.PRESTIGE, None) == 80000


def test_order_total_sums_lines_plus_shipping():
    assert order_total([(20000, 2), (80000, 1)], 500) == 120500
    assert order_total([], 0) == 0
