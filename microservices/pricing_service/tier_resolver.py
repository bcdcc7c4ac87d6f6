"""
Tier Resolver

Charge amounts for tiered, package and flat-fee prices.

Tier boundaries are cumulative: the first tier starts at 0 and every later
tier starts at the previous tier's `up_to`. A tier contains quantity `q`
when `from < q <= up_to`; an unbounded last tier catches everything above.
"""

import logging
from decimal import Decimal, ROUND_CEILING, ROUND_FLOOR
from typing import Any, Iterable, List, Optional, Sequence, Tuple, Union

from .models import (
    BillingModel,
    EffectivePrice,
    Price,
    PriceTier,
    RoundingMode,
    TierMode,
    TransformQuantity,
)
from .money import ZERO, to_decimal
from .protocols import InvalidAmountError, InvalidTierConfig

logger = logging.getLogger(__name__)

TierBound = Tuple[Decimal, Optional[Decimal], PriceTier]


def _coerce_tiers(tiers: Optional[Iterable[Any]]) -> Tuple[PriceTier, ...]:
    if not tiers:
        return ()
    return tuple(t if isinstance(t, PriceTier) else PriceTier.model_validate(t) for t in tiers)


def validate_tiers(tiers: Optional[Iterable[Any]], price_id: Optional[str] = None) -> Tuple[PriceTier, ...]:
    """Check that a tier table is non-empty, contiguous and monotonic"""
    table = _coerce_tiers(tiers)
    if not table:
        raise InvalidTierConfig("tier table is empty", price_id)

    previous = ZERO
    last_index = len(table) - 1
    for index, tier in enumerate(table):
        if tier.unit_amount < ZERO or tier.flat_amount < ZERO:
            raise InvalidTierConfig(f"tier {index} has a negative amount", price_id)
        if tier.up_to is None:
            if index != last_index:
                raise InvalidTierConfig("only the last tier may be unbounded", price_id)
            continue
        if tier.up_to <= previous:
            raise InvalidTierConfig(
                f"tier {index} up_to {tier.up_to} must be greater than {previous}", price_id
            )
        previous = tier.up_to
    return table


def _bounds(table: Sequence[PriceTier]) -> List[TierBound]:
    bounds = []
    lower = ZERO
    for tier in table:
        bounds.append((lower, tier.up_to, tier))
        if tier.up_to is not None:
            lower = tier.up_to
    return bounds


def _check_quantity(quantity: Any, price_id: Optional[str]) -> Decimal:
    try:
        quantity = to_decimal(quantity)
    except InvalidAmountError:
        raise InvalidTierConfig(f"invalid quantity {quantity!r}", price_id) from None
    if quantity < ZERO:
        raise InvalidTierConfig(f"quantity {quantity} is negative", price_id)
    return quantity


def _check_coverage(table: Sequence[PriceTier], quantity: Decimal, price_id: Optional[str]) -> None:
    last = table[-1]
    if last.up_to is not None and quantity > last.up_to:
        raise InvalidTierConfig(
            f"quantity {quantity} exceeds the last tier bound {last.up_to}", price_id
        )


def resolve_slab_increment(
    tiers: Iterable[Any],
    start_quantity: Any,
    end_quantity: Any,
    price_id: Optional[str] = None,
) -> Decimal:
    """Slab charge for the quantity range (start, end].

    A tier's flat amount is charged in the range where the tier is first
    entered, so slab(q1) + increment(q1, q2) == slab(q2).
    """
    table = validate_tiers(tiers, price_id)
    start = _check_quantity(start_quantity, price_id)
    end = _check_quantity(end_quantity, price_id)
    if end < start:
        raise InvalidTierConfig(f"range end {end} is below start {start}", price_id)
    _check_coverage(table, end, price_id)

    total = ZERO
    for lower, upper, tier in _bounds(table):
        if lower >= end:
            break
        top = end if upper is None else min(end, upper)
        width = top - max(start, lower)
        if width <= ZERO:
            continue
        total += tier.unit_amount * width
        if lower >= start:
            total += tier.flat_amount
    return total


def resolve_tier_charge(
    tier_mode: Union[TierMode, str, None],
    tiers: Iterable[Any],
    quantity: Any,
    price_id: Optional[str] = None,
) -> Decimal:
    """Charge for `quantity` under a VOLUME or SLAB tier table"""
    table = validate_tiers(tiers, price_id)
    quantity = _check_quantity(quantity, price_id)
    try:
        mode = TierMode(tier_mode.upper()) if tier_mode else TierMode.VOLUME
    except ValueError:
        raise InvalidTierConfig(f"unknown tier mode {tier_mode!r}", price_id) from None

    if quantity == ZERO:
        return ZERO

    if mode == TierMode.SLAB:
        charge = resolve_slab_increment(table, ZERO, quantity, price_id)
    else:
        _check_coverage(table, quantity, price_id)
        charge = next(
            tier.unit_amount * quantity + tier.flat_amount
            for _, upper, tier in _bounds(table)
            if upper is None or quantity <= upper
        )

    logger.debug(f"Resolved {mode.value} tier charge {charge} for quantity {quantity}")
    return charge


def first_tier_unit_amount(tiers: Iterable[Any], price_id: Optional[str] = None) -> Decimal:
    """Unit amount of the first tier, for "starts at" summaries"""
    return validate_tiers(tiers, price_id)[0].unit_amount


def resolve_package_charge(
    amount: Any,
    transform_quantity: Optional[TransformQuantity],
    quantity: Any,
) -> Decimal:
    """Charge for whole packages of `divide_by` units"""
    amount = to_decimal(amount)
    quantity = to_decimal(quantity)
    if quantity < ZERO:
        raise InvalidAmountError(f"Package quantity {quantity} is negative")

    divide_by = transform_quantity.divide_by if transform_quantity else 1
    rounding = transform_quantity.round if transform_quantity else RoundingMode.UP
    packages = (quantity / Decimal(divide_by)).to_integral_value(
        rounding=ROUND_CEILING if rounding == RoundingMode.UP else ROUND_FLOOR
    )
    return amount * packages


def calculate_charge(price: Union[Price, EffectivePrice], quantity: Any = None) -> Decimal:
    """Charge for a price at a quantity (defaults to the effective quantity, else 1)"""
    if quantity is None:
        quantity = getattr(price, "quantity", Decimal("1"))

    if price.billing_model == BillingModel.TIERED:
        return resolve_tier_charge(price.tier_mode, price.tiers, quantity, price.id)
    if price.billing_model == BillingModel.PACKAGE:
        return resolve_package_charge(price.amount, price.transform_quantity, quantity)
    return to_decimal(price.amount) * to_decimal(quantity)
