"""
Billing Anchor Calculator

First invoice dates, period stepping and billing descriptions.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, List, Union

from dateutil.relativedelta import relativedelta

from .models import BillingCycle, BillingPeriod, InvoiceCadence

DateLike = Union[date, datetime]

PERIOD_DURATION = {
    BillingPeriod.DAILY: "1 day",
    BillingPeriod.WEEKLY: "1 week",
    BillingPeriod.MONTHLY: "1 month",
    BillingPeriod.QUARTERLY: "3 months",
    BillingPeriod.HALF_YEARLY: "6 months",
    BillingPeriod.ANNUAL: "1 year",
}

PERIOD_STEP = {
    BillingPeriod.DAILY: relativedelta(days=1),
    BillingPeriod.WEEKLY: relativedelta(weeks=1),
    BillingPeriod.MONTHLY: relativedelta(months=1),
    BillingPeriod.QUARTERLY: relativedelta(months=3),
    BillingPeriod.HALF_YEARLY: relativedelta(months=6),
    BillingPeriod.ANNUAL: relativedelta(years=1),
}


def _period(value: Union[BillingPeriod, str]) -> BillingPeriod:
    return BillingPeriod(value.upper()) if isinstance(value, str) else value


def _cycle(value: Union[BillingCycle, str]) -> BillingCycle:
    return BillingCycle(value.lower()) if isinstance(value, str) else value


def as_datetime(value: DateLike) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min)


def comparable_datetimes(*values: DateLike) -> List[datetime]:
    """Datetimes that can be compared with each other; naive values read as UTC
    when any value is aware"""
    converted = [as_datetime(v) for v in values]
    if any(v.tzinfo is not None for v in converted):
        converted = [v if v.tzinfo is not None else v.replace(tzinfo=timezone.utc) for v in converted]
    return converted


def format_date(value: DateLike) -> str:
    """Short date such as Mar 17, 2024"""
    return value.strftime("%b %d, %Y")


def calendar_billing_anchor(start_date: DateLike, billing_period: Union[BillingPeriod, str]) -> DateLike:
    """Start of the next canonical period boundary after `start_date`"""
    period = _period(billing_period)
    day = start_date.date() if isinstance(start_date, datetime) else start_date

    if period == BillingPeriod.DAILY:
        boundary = day + timedelta(days=1)
    elif period == BillingPeriod.WEEKLY:
        boundary = day + timedelta(days=7 - day.weekday())
    elif period == BillingPeriod.MONTHLY:
        boundary = day.replace(day=1) + relativedelta(months=1)
    elif period == BillingPeriod.QUARTERLY:
        first_month = (day.month - 1) // 3 * 3 + 1
        boundary = date(day.year, first_month, 1) + relativedelta(months=3)
    elif period == BillingPeriod.HALF_YEARLY:
        first_month = 1 if day.month <= 6 else 7
        boundary = date(day.year, first_month, 1) + relativedelta(months=6)
    else:
        boundary = date(day.year + 1, 1, 1)

    if isinstance(start_date, datetime):
        return datetime.combine(boundary, time.min, tzinfo=start_date.tzinfo)
    return boundary


def anniversary_billing_anchor(start_date: DateLike, billing_period: Union[BillingPeriod, str]) -> DateLike:
    # Anniversary billing charges from the start date itself
    return start_date


def first_invoice_date(
    start_date: DateLike,
    billing_period: Union[BillingPeriod, str],
    billing_cycle: Union[BillingCycle, str] = BillingCycle.ANNIVERSARY,
) -> DateLike:
    """First invoice date for a subscription starting on `start_date`"""
    if _cycle(billing_cycle) == BillingCycle.CALENDAR:
        return calendar_billing_anchor(start_date, billing_period)
    return anniversary_billing_anchor(start_date, billing_period)


def next_billing_date(anchor: DateLike, billing_period: Union[BillingPeriod, str], periods: int = 1) -> DateLike:
    """Anchor stepped forward by whole periods, clamping to month ends"""
    return anchor + PERIOD_STEP[_period(billing_period)] * periods


def billing_schedule(anchor: DateLike, billing_period: Union[BillingPeriod, str], count: int) -> List[DateLike]:
    return [next_billing_date(anchor, billing_period, index) for index in range(count)]


def period_duration(billing_period: Union[BillingPeriod, str]) -> str:
    return PERIOD_DURATION[_period(billing_period)]


def has_advance_charge(charges: Iterable) -> bool:
    return any(charge.invoice_cadence == InvoiceCadence.ADVANCE for charge in charges)


def billing_description(charges: Iterable, billing_period: Union[BillingPeriod, str], invoice_date: DateLike) -> str:
    """Bills immediately when any charge is billed in advance, else on the
    invoice date, e.g. "Bills on Apr 01, 2024 for 1 month"."""
    period = period_duration(billing_period)
    if has_advance_charge(charges):
        return f"Bills immediately for {period}"
    return f"Bills on {format_date(invoice_date)} for {period}"
