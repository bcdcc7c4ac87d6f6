"""
Unit Tests for the Billing Anchor Calculator
"""
from datetime import date, datetime, timezone

import pytest

from microservices.pricing_service.billing_anchor import (
    billing_description,
    billing_schedule,
    first_invoice_date,
    format_date,
    next_billing_date,
    period_duration,
)
from microservices.pricing_service.models import BillingCycle, BillingPeriod
from tests.fixtures.pricing_fixtures import make_price

pytestmark = pytest.mark.unit


class TestFirstInvoiceDate:
    """Anniversary and calendar anchors"""

    def test_calendar_monthly(self):
        """A subscription starting Mar 17 is first invoiced on Apr 1"""
        assert first_invoice_date(date(2024, 3, 17), "MONTHLY", "calendar") == date(2024, 4, 1)

    def test_anniversary_is_the_start_date(self):
        assert first_invoice_date(date(2024, 3, 17), BillingPeriod.MONTHLY) == date(2024, 3, 17)

    @pytest.mark.parametrize("period,start,expected", [
        (BillingPeriod.DAILY, date(2024, 3, 17), date(2024, 3, 18)),
        (BillingPeriod.WEEKLY, date(2024, 3, 17), date(2024, 3, 18)),
        (BillingPeriod.WEEKLY, date(2024, 3, 18), date(2024, 3, 25)),
        (BillingPeriod.MONTHLY, date(2024, 12, 5), date(2025, 1, 1)),
        (BillingPeriod.QUARTERLY, date(2024, 3, 17), date(2024, 4, 1)),
        (BillingPeriod.QUARTERLY, date(2024, 4, 1), date(2024, 7, 1)),
        (BillingPeriod.HALF_YEARLY, date(2024, 3, 17), date(2024, 7, 1)),
        (BillingPeriod.HALF_YEARLY, date(2024, 8, 10), date(2025, 1, 1)),
        (BillingPeriod.ANNUAL, date(2024, 3, 17), date(2025, 1, 1)),
    ])
    def test_calendar_boundaries(self, period, start, expected):
        assert first_invoice_date(start, period, BillingCycle.CALENDAR) == expected

    def test_calendar_keeps_timezone_at_midnight(self):
        start = datetime(2024, 3, 17, 15, 30, tzinfo=timezone.utc)
        assert first_invoice_date(start, "MONTHLY", "CALENDAR") == datetime(2024, 4, 1, tzinfo=timezone.utc)


class TestPeriodStepping:
    """next_billing_date and billing_schedule"""

    def test_month_end_clamps(self):
        assert next_billing_date(date(2024, 1, 31), "MONTHLY") == date(2024, 2, 29)

    def test_steps_from_the_anchor(self):
        assert billing_schedule(date(2024, 1, 31), "MONTHLY", 3) == [
            date(2024, 1, 31),
            date(2024, 2, 29),
            date(2024, 3, 31),
        ]

    def test_leap_day_annual(self):
        assert next_billing_date(date(2024, 2, 29), "ANNUAL") == date(2025, 2, 28)

    def test_quarterly_and_weekly(self):
        assert next_billing_date(date(2024, 3, 17), "QUARTERLY") == date(2024, 6, 17)
        assert next_billing_date(date(2024, 3, 17), "WEEKLY", 2) == date(2024, 3, 31)


class TestBillingDescription:
    """Period durations and description text"""

    @pytest.mark.parametrize("period,expected", [
        ("DAILY", "1 day"),
        ("WEEKLY", "1 week"),
        ("MONTHLY", "1 month"),
        ("QUARTERLY", "3 months"),
        ("HALF_YEARLY", "6 months"),
        ("ANNUAL", "1 year"),
    ])
    def test_period_duration(self, period, expected):
        assert period_duration(period) == expected

    def test_advance_charge_bills_immediately(self):
        charges = [make_price(), make_price(invoice_cadence="ADVANCE")]
        text = billing_description(charges, "MONTHLY", date(2024, 4, 1))
        assert text == "Bills immediately for 1 month"

    def test_arrears_bills_on_the_date(self):
        text = billing_description([make_price()], "QUARTERLY", date(2024, 4, 1))
        assert text == "Bills on Apr 01, 2024 for 3 months"

    def test_format_date(self):
        assert format_date(datetime(2024, 3, 17, 9, 0)) == "Mar 17, 2024"
