"""
Display summaries

Plain-text labels for prices, periods and totals. Amounts are shown with
their currency code, e.g. "USD 80.00".
"""

from decimal import Decimal
from typing import Any, Iterable, Optional, Sequence, Union

from .billing_anchor import format_date
from .coupon_calculator import discount_for, total_discount
from .models import BillingModel, BillingPeriod, Coupon, EffectivePrice, Price, PriceType
from .money import DEFAULT_PLACES, clamp_non_negative, quantize_amount, to_decimal
from .tier_resolver import first_tier_unit_amount

__all__ = [
    "format_amount",
    "format_date",
    "format_billing_model",
    "format_billing_period_for_price",
    "format_billing_period_for_display",
    "price_type_label",
    "format_price_display",
    "total_payable_text",
    "coupon_breakdown_text",
]

UNKNOWN = "--"

BILLING_MODEL_LABELS = {
    BillingModel.FLAT_FEE: "Flat Fee",
    BillingModel.PACKAGE: "Package",
    BillingModel.TIERED: "Tiered",
}

PERIOD_FOR_PRICE = {
    BillingPeriod.DAILY: "day",
    BillingPeriod.WEEKLY: "week",
    BillingPeriod.MONTHLY: "month",
    BillingPeriod.QUARTERLY: "quarter",
    BillingPeriod.HALF_YEARLY: "half year",
    BillingPeriod.ANNUAL: "year",
}

PERIOD_FOR_DISPLAY = {
    BillingPeriod.DAILY: "Daily",
    BillingPeriod.WEEKLY: "Weekly",
    BillingPeriod.MONTHLY: "Monthly",
    BillingPeriod.QUARTERLY: "Quarterly",
    BillingPeriod.HALF_YEARLY: "Half Yearly",
    BillingPeriod.ANNUAL: "Annually",
}

PRICE_TYPE_LABELS = {
    PriceType.FIXED: "Recurring",
    PriceType.USAGE: "Usage Based",
}


def _lookup(table: dict, enum_cls, value: Union[str, Any]) -> str:
    try:
        key = enum_cls(value.upper()) if isinstance(value, str) else value
    except ValueError:
        return UNKNOWN
    return table.get(key, UNKNOWN)


def format_amount(amount: Any, currency: Optional[str] = None, places: int = DEFAULT_PLACES) -> str:
    value = f"{quantize_amount(amount, places):.{places}f}"
    return f"{currency.upper()} {value}" if currency else value


def format_billing_model(billing_model: Union[BillingModel, str]) -> str:
    return _lookup(BILLING_MODEL_LABELS, BillingModel, billing_model)


def format_billing_period_for_price(billing_period: Union[BillingPeriod, str]) -> str:
    """Short form used after a slash: "USD 10.00 / month" """
    return _lookup(PERIOD_FOR_PRICE, BillingPeriod, billing_period)


def format_billing_period_for_display(billing_period: Union[BillingPeriod, str]) -> str:
    return _lookup(PERIOD_FOR_DISPLAY, BillingPeriod, billing_period)


def price_type_label(price_type: Union[PriceType, str]) -> str:
    return _lookup(PRICE_TYPE_LABELS, PriceType, price_type)


def format_price_display(price: Union[Price, EffectivePrice]) -> str:
    """One-line charge summary.

    PACKAGE prices read "USD 10.00 / 5 units", TIERED prices read
    "starts at USD 5.00 per unit" (first tier's unit amount) and flat fees
    show the amount alone.
    """
    if price.billing_model == BillingModel.PACKAGE:
        divide_by = price.transform_quantity.divide_by if price.transform_quantity else 1
        return f"{format_amount(price.amount, price.currency)} / {divide_by} units"
    if price.billing_model == BillingModel.TIERED:
        unit_amount = first_tier_unit_amount(price.tiers, price.id)
        return f"starts at {format_amount(unit_amount, price.currency)} per unit"
    return format_amount(price.amount, price.currency)


def total_payable_text(
    recurring_charges: Sequence[Union[Price, EffectivePrice]],
    usage_charges: Sequence[Union[Price, EffectivePrice]],
    recurring_total: Any,
    coupons: Iterable[Coupon] = (),
) -> str:
    """Total due text, e.g. "USD 80.00 (USD 100.00 - USD 20.00 discount) + Usage".

    Without recurring charges the total depends on usage alone.
    """
    coupons = list(coupons)
    text = ""
    if recurring_charges:
        currency = recurring_charges[0].currency
        total = to_decimal(recurring_total)
        discount = total_discount(coupons, total) if coupons else Decimal("0")
        text = format_amount(clamp_non_negative(total - discount), currency)
        if discount > 0:
            text += f" ({format_amount(total, currency)} - {format_amount(discount, currency)} discount)"

    if usage_charges:
        text += " + Usage" if recurring_charges else "Depends on usage"
    return text


def coupon_breakdown_text(coupons: Iterable[Coupon], base_amount: Any, currency: str = "USD") -> str:
    """Comma separated "Name: -USD 20.00" entries for coupons that discount anything"""
    parts = []
    for coupon in coupons:
        discount = discount_for(coupon, base_amount)
        if discount > 0:
            parts.append(f"{coupon.name or 'Coupon'}: -{format_amount(discount, currency)}")
    return ", ".join(parts)
