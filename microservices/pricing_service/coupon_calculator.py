"""
Coupon Discount Calculator

Computes discount magnitudes for fixed-amount and percentage coupons.
Coupons stack additively against the same base; they never compound.
Redemption counts are enforced upstream, not here.
"""

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Union

from .billing_anchor import comparable_datetimes
from .models import (
    Coupon,
    CouponCadence,
    CouponDiscount,
    CouponType,
    EffectivePrice,
    LineItemCharge,
    LineItemDiscountResult,
    Price,
    PriceType,
)
from .money import ONE_HUNDRED, ZERO, clamp_non_negative, sum_amounts, to_decimal
from .protocols import InvalidCouponConfig
from .tier_resolver import calculate_charge

logger = logging.getLogger(__name__)

DateLike = Union[date, datetime]


def validate_coupon(coupon: Coupon) -> Coupon:
    """Raise InvalidCouponConfig unless the coupon can produce a discount"""
    if coupon.type == CouponType.FIXED:
        if coupon.amount_off is None:
            raise InvalidCouponConfig("fixed coupon requires amount_off", coupon.id)
        if coupon.amount_off < ZERO:
            raise InvalidCouponConfig(f"amount_off {coupon.amount_off} is negative", coupon.id)
    elif coupon.type == CouponType.PERCENTAGE:
        if coupon.percentage_off is None:
            raise InvalidCouponConfig("percentage coupon requires percentage_off", coupon.id)
        if not ZERO <= coupon.percentage_off <= ONE_HUNDRED:
            raise InvalidCouponConfig(
                f"percentage_off {coupon.percentage_off} is outside [0, 100]", coupon.id
            )

    if coupon.redeem_after is not None and coupon.redeem_before is not None:
        after, before = comparable_datetimes(coupon.redeem_after, coupon.redeem_before)
        if after >= before:
            raise InvalidCouponConfig("redeem_after must be earlier than redeem_before", coupon.id)

    if coupon.cadence == CouponCadence.REPEATED and not coupon.duration_in_periods:
        raise InvalidCouponConfig("repeated coupon requires duration_in_periods", coupon.id)
    return coupon


def discount_for(coupon: Coupon, base_amount: Any) -> Decimal:
    """Discount one coupon gives on `base_amount`; always within [0, base]"""
    validate_coupon(coupon)
    base = clamp_non_negative(base_amount)
    if coupon.type == CouponType.FIXED:
        discount = min(coupon.amount_off, base)
    else:
        discount = base * coupon.percentage_off / ONE_HUNDRED
    return clamp_non_negative(discount)


def total_discount(coupons: Iterable[Coupon], base_amount: Any) -> Decimal:
    """Sum of every coupon's discount against the same base; caller clamps"""
    return sum_amounts(discount_for(coupon, base_amount) for coupon in coupons)


def coupon_breakdown(coupons: Iterable[Coupon], base_amount: Any) -> List[CouponDiscount]:
    """Per-coupon discounts for display, skipping zero contributions"""
    lines = []
    for coupon in coupons:
        amount = discount_for(coupon, base_amount)
        if amount > ZERO:
            lines.append(CouponDiscount(coupon_id=coupon.id, name=coupon.name, amount=amount))
    return lines


# ====================
# Validity & cadence
# ====================

def is_coupon_active(coupon: Coupon, as_of: DateLike) -> bool:
    """redeem_after <= as_of <= redeem_before, for whichever bounds are set"""
    if coupon.redeem_after is not None:
        after, moment = comparable_datetimes(coupon.redeem_after, as_of)
        if moment < after:
            return False
    if coupon.redeem_before is not None:
        before, moment = comparable_datetimes(coupon.redeem_before, as_of)
        if moment > before:
            return False
    return True


def coupon_applies_to_period(coupon: Coupon, period_index: int) -> bool:
    """Whether the coupon discounts the zero-based billing period"""
    validate_coupon(coupon)
    if period_index < 0:
        return False
    if coupon.cadence == CouponCadence.ONCE:
        return period_index == 0
    if coupon.cadence == CouponCadence.REPEATED:
        return period_index < coupon.duration_in_periods
    return True


def discount_for_period(coupon: Coupon, base_amount: Any, period_index: int) -> Decimal:
    if not coupon_applies_to_period(coupon, period_index):
        return ZERO
    return discount_for(coupon, base_amount)


def discount_schedule(coupon: Coupon, base_amount: Any, periods: int) -> List[Decimal]:
    """Discount for each of the first `periods` billing periods"""
    return [discount_for_period(coupon, base_amount, index) for index in range(periods)]


# ====================
# Line items
# ====================

def apply_line_item_coupons(
    charges: Sequence[Union[Price, EffectivePrice]],
    line_item_coupons: Mapping[str, Sequence[Coupon]],
    amounts: Optional[Mapping[str, Any]] = None,
) -> LineItemDiscountResult:
    """Apply line-scoped coupons charge by charge.

    FIXED charges get their coupons, clamped so a line never goes below zero;
    USAGE charges pass through undiscounted. `amounts` supplies precomputed
    line amounts by price id; otherwise the charge is calculated at its
    effective quantity.
    """
    amounts = amounts or {}
    lines = []
    for charge in charges:
        amount = to_decimal(amounts[charge.id]) if charge.id in amounts else calculate_charge(charge)
        coupons = list(line_item_coupons.get(charge.id, ())) if charge.type == PriceType.FIXED else []
        discount = min(total_discount(coupons, amount), clamp_non_negative(amount)) if coupons else ZERO
        lines.append(LineItemCharge(
            price_id=charge.id,
            price_type=charge.type,
            billing_model=charge.billing_model,
            quantity=getattr(charge, "quantity", Decimal("1")),
            amount=amount,
            discount=discount,
            net_amount=clamp_non_negative(amount - discount),
            coupon_ids=tuple(coupon.id for coupon in coupons),
            is_overridden=getattr(charge, "is_overridden", False),
        ))

    result = LineItemDiscountResult(
        total=sum_amounts(line.net_amount for line in lines),
        total_discount=sum_amounts(line.discount for line in lines),
        lines=tuple(lines),
    )
    logger.debug(f"Line-item coupons: total {result.total}, discount {result.total_discount}")
    return result
