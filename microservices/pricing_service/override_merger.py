"""
Price Override Merger

Merges a base price with an optional partial override into the effective
price used for calculation, and reports what the override changes.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .models import (
    BillingModel,
    EffectivePrice,
    FieldChange,
    LineItemOverrideRequest,
    Price,
    PriceOverride,
    PricingScheme,
    TransformQuantity,
)
from .money import ZERO
from .protocols import InvalidOverride
from .tier_resolver import validate_tiers

logger = logging.getLogger(__name__)

UNBOUNDED = "∞"


def _fmt(value: Optional[Decimal]) -> str:
    if value is None:
        return UNBOUNDED
    return format(value.normalize(), "f")


def _fmt_package(tq: TransformQuantity) -> str:
    return f"{tq.divide_by} units (round {tq.round.value})"


def resolve_scheme(base: Price, override: Optional[PriceOverride]) -> PricingScheme:
    """Billing model and tier mode after applying the override"""
    if override is None:
        return base.scheme
    if override.billing_model is not None:
        return override.scheme
    if override.tier_mode is not None:
        if base.billing_model != BillingModel.TIERED:
            raise InvalidOverride(
                f"tier_mode {override.tier_mode.value} needs a tiered billing model, "
                f"price is {base.billing_model.value}",
                base.id,
            )
        return PricingScheme(billing_model=BillingModel.TIERED, tier_mode=override.tier_mode)
    return base.scheme


def _check_compatibility(base: Price, override: PriceOverride, scheme: PricingScheme) -> None:
    if override.price_id != base.id:
        raise InvalidOverride(f"does not apply to price {base.id}", override.price_id)
    if override.amount is not None:
        if scheme.is_tiered:
            raise InvalidOverride("amount cannot be set on a tiered price", base.id)
        if override.amount < ZERO:
            raise InvalidOverride(f"amount {override.amount} is negative", base.id)
    if override.tier_mode is not None and not scheme.is_tiered:
        raise InvalidOverride(
            f"tier_mode {override.tier_mode.value} cannot be set on a {scheme.billing_model.value} price",
            base.id,
        )
    if override.tiers is not None and not scheme.is_tiered:
        raise InvalidOverride(
            f"tiers cannot be set on a {scheme.billing_model.value} price", base.id
        )
    if override.transform_quantity is not None and scheme.billing_model != BillingModel.PACKAGE:
        raise InvalidOverride(
            f"transform_quantity cannot be set on a {scheme.billing_model.value} price", base.id
        )
    if override.quantity is not None and override.quantity < ZERO:
        raise InvalidOverride(f"quantity {override.quantity} is negative", base.id)


def _base_effective(base: Price) -> Dict[str, Any]:
    return {
        "price_id": base.id,
        "amount": base.amount,
        "currency": base.currency,
        "type": base.type,
        "billing_model": base.billing_model,
        "tier_mode": base.scheme.tier_mode,
        "tiers": base.tiers,
        "transform_quantity": base.transform_quantity,
        "billing_period": base.billing_period,
        "invoice_cadence": base.invoice_cadence,
    }


def merge_override(base: Price, override: Optional[PriceOverride] = None) -> EffectivePrice:
    """Merge a price with its override; override fields take precedence"""
    if override is None:
        return EffectivePrice(**_base_effective(base))

    scheme = resolve_scheme(base, override)
    _check_compatibility(base, override, scheme)

    tiers = override.tiers if override.tiers is not None else base.tiers
    if scheme.is_tiered:
        tiers = validate_tiers(tiers, base.id)

    fields = _base_effective(base)
    fields.update(
        amount=override.amount if override.amount is not None else base.amount,
        billing_model=scheme.billing_model,
        tier_mode=scheme.tier_mode,
        tiers=tiers,
        transform_quantity=override.transform_quantity or base.transform_quantity,
        quantity=override.quantity if override.quantity is not None else Decimal("1"),
        effective_from=override.effective_from,
        is_overridden=True,
        changed_fields=tuple(diff_override(base, override)),
    )
    logger.debug(f"Merged override for price {base.id}: {len(fields['changed_fields'])} change(s)")
    return EffectivePrice(**fields)


def diff_override(base: Price, override: Optional[PriceOverride]) -> List[FieldChange]:
    """Human-readable list of what the override changes on the base price"""
    if override is None:
        return []

    changes: List[FieldChange] = []
    base_scheme = base.scheme
    scheme = resolve_scheme(base, override)

    if scheme != base_scheme:
        changes.append(FieldChange(field="billing_model", from_value=base_scheme.label, to_value=scheme.label))

    if override.amount is not None and not scheme.is_tiered and override.amount != base.amount:
        changes.append(FieldChange(field="amount", from_value=_fmt(base.amount), to_value=_fmt(override.amount)))

    if override.quantity is not None and override.quantity != Decimal("1"):
        changes.append(FieldChange(field="quantity", from_value="1", to_value=_fmt(override.quantity)))

    if override.transform_quantity is not None and scheme.billing_model == BillingModel.PACKAGE:
        base_tq = base.transform_quantity or TransformQuantity()
        if override.transform_quantity != base_tq:
            changes.append(FieldChange(
                field="transform_quantity",
                from_value=_fmt_package(base_tq),
                to_value=_fmt_package(override.transform_quantity),
            ))

    if override.tiers is not None and scheme.is_tiered:
        changes.extend(_diff_tiers(base, override))

    if override.effective_from is not None:
        changes.append(FieldChange(
            field="effective_from", from_value="immediately", to_value=override.effective_from.isoformat()
        ))
    return changes


def _diff_tiers(base: Price, override: PriceOverride) -> List[FieldChange]:
    old, new = base.tiers, override.tiers
    if len(old) != len(new):
        return [FieldChange(field="tiers", from_value=f"{len(old)} tiers", to_value=f"{len(new)} tiers")]

    changes = []
    for index, (old_tier, new_tier) in enumerate(zip(old, new)):
        for attr in ("up_to", "unit_amount", "flat_amount"):
            before, after = getattr(old_tier, attr), getattr(new_tier, attr)
            if before != after:
                changes.append(FieldChange(
                    field=f"tiers[{index}].{attr}", from_value=_fmt(before), to_value=_fmt(after)
                ))
    return changes


def has_changes(base: Price, override: Optional[PriceOverride]) -> bool:
    """True when the override changes anything that matters.

    Compares the normalized pricing scheme, so a SLAB_TIERED override on a
    price that is already TIERED+SLAB is unchanged.
    """
    return bool(diff_override(base, override))


# ====================
# Override collections
# ====================

def is_price_overridden(price_id: str, overrides: Mapping[str, PriceOverride]) -> bool:
    return price_id in overrides


def current_price_amount(price: Price, overrides: Mapping[str, PriceOverride]) -> Decimal:
    """Overridden amount if any, else the price's own amount"""
    override = overrides.get(price.id)
    if override is not None and override.amount is not None:
        return override.amount
    return price.amount


def create_override(price_id: str, **fields) -> PriceOverride:
    return PriceOverride(price_id=price_id, **fields)


def update_override(
    overrides: Mapping[str, PriceOverride],
    price_id: str,
    **updates,
) -> Dict[str, PriceOverride]:
    """Return a new override map with `updates` merged into one override"""
    current = overrides.get(price_id)
    data = current.model_dump(exclude_none=True) if current else {}
    if "billing_model" in updates and "tier_mode" not in updates:
        data.pop("tier_mode", None)
    data.update(updates)
    data["price_id"] = price_id
    return {**overrides, price_id: PriceOverride.model_validate(data)}


def remove_override(overrides: Mapping[str, PriceOverride], price_id: str) -> Dict[str, PriceOverride]:
    return {key: value for key, value in overrides.items() if key != price_id}


def build_line_item_overrides(
    prices: Iterable[Price],
    overrides: Mapping[str, PriceOverride],
) -> List[LineItemOverrideRequest]:
    """Submission payload for overrides of known prices that set something"""
    known = {price.id for price in prices}
    requests = []
    for price_id, override in overrides.items():
        fields = set(override.supplied_fields()) - {"effective_from"}
        if price_id not in known or not fields:
            continue
        requests.append(LineItemOverrideRequest(
            price_id=price_id,
            quantity=override.quantity,
            amount=override.amount,
            billing_model=override.billing_model,
            tier_mode=override.tier_mode,
            tiers=list(override.tiers) if override.tiers is not None else None,
            transform_quantity=override.transform_quantity,
        ))
    return requests


def overrides_summary(overrides: Mapping[str, PriceOverride]) -> str:
    count = len(overrides)
    if count == 0:
        return ""
    return f"{count} price{'s' if count > 1 else ''} overridden"
