"""
Pricing rules for plate tiers and shipping.

All amounts are integer KES.
"""
import logging
from typing import Iterable, Optional

from app.core.enum_utils import get_enum_value
from app.models.order import ShippingMethod
from app.models.plate import PlateType

logger = logging.getLogger(__name__)


PLATE_PRICES = {
    PlateType.SPECIAL.value: 20000,
    PlateType.STANDARD_CUSTOM.value: 40000,
    PlateType.PRESTIGE.value: 80000,
}

EXPRESS_SHIPPING_COST = 500


def price_for(plate_type) -> int:
    """Unit price for a plate tier.

    Unknown tiers are charged the special price.
    """
    tier = get_enum_value(plate_type)
    price = PLATE_PRICES.get(tier)
    if price is None:
        logger.warning(f"Unknown plate type {tier!r}, charging the special price")
        return PLATE_PRICES[PlateType.SPECIAL.value]
    return price


def shipping_cost_for(shipping_method) -> int:
    if get_enum_value(shipping_method) == ShippingMethod.EXPRESS.value:
        return EXPRESS_SHIPPING_COST
    return 0


def resolve_unit_price(plate_type, override: Optional[int] = None) -> int:
    """Caller-supplied price wins; otherwise the tier price."""
    if override is not None:
        return override
    return price_for(plate_type)


def order_total(lines: Iterable[tuple[int, int]], shipping_cost: int) -> int:
    """Sum of unit_price * quantity over ``(unit_price, quantity)`` pairs, plus shipping."""
    return sum(unit_price * quantity for unit_price, quantity in lines) + shipping_cost
