"""
Subscription Preview Builder

Walks the phases of a subscription and estimates the first invoice of each:
line-item coupons, subscription coupons, addons, tax and net payable, plus a
display-ready timeline. Any component error aborts the whole preview.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .addon_aggregator import aggregate_addons
from .billing_anchor import billing_description, comparable_datetimes, first_invoice_date, format_date
from .coupon_calculator import (
    apply_line_item_coupons,
    coupon_breakdown,
    is_coupon_active,
    validate_coupon,
)
from .models import (
    BillingPeriod,
    Coupon,
    CouponType,
    EffectivePrice,
    InvoicePreview,
    PhaseEstimate,
    Price,
    PriceType,
    SubscriptionPhase,
    SubscriptionPreview,
    SubscriptionPreviewRequest,
    TaxCombination,
    TimelineEntry,
    TimelineEntryType,
)
from .money import DEFAULT_PLACES, Money, clamp_non_negative, quantize_amount, sum_amounts
from .override_merger import build_line_item_overrides, merge_override
from .protocols import (
    AddonCatalogProtocol,
    CouponCatalogProtocol,
    InvalidCouponConfig,
    InvalidPreviewRequest,
    TaxCatalogProtocol,
)
from .tax_calculator import calculate_tax
from .tier_resolver import calculate_charge

logger = logging.getLogger(__name__)

DEFAULT_CURRENCY = "USD"


def _start_key(phase: SubscriptionPhase) -> datetime:
    start = phase.start_date
    return start if start.tzinfo is not None else start.replace(tzinfo=timezone.utc)


def extract_subscription_boundaries(phases: Sequence[SubscriptionPhase]) -> Tuple[datetime, Optional[datetime]]:
    """First phase's start date and last phase's end date"""
    if not phases:
        raise InvalidPreviewRequest("Cannot extract boundaries from an empty phase list")
    return phases[0].start_date, phases[-1].end_date


def extract_first_phase_data(phases: Sequence[SubscriptionPhase], prices: Sequence[Price]) -> Dict[str, Any]:
    """Coupons, line-item coupons and override line items of the first phase,
    for merging into a subscription-level payload"""
    if not phases:
        return {}
    first = phases[0]
    return {
        "coupons": list(first.coupons),
        "line_item_coupons": {key: list(ids) for key, ids in first.line_item_coupons.items()},
        "override_line_items": build_line_item_overrides(prices, first.price_overrides),
    }


class SubscriptionPreviewBuilder:
    """
    Builds subscription previews from pre-fetched catalogs.

    Stateless between calls: every `build` works only from its request and
    the catalogs handed in at construction.
    """

    def __init__(
        self,
        coupon_catalog: Optional[CouponCatalogProtocol] = None,
        addon_catalog: Optional[AddonCatalogProtocol] = None,
        tax_catalog: Optional[TaxCatalogProtocol] = None,
        tax_combination: TaxCombination = TaxCombination.ADDITIVE,
        money_places: int = DEFAULT_PLACES,
        skip_inactive_coupons: bool = True,
        default_currency: str = DEFAULT_CURRENCY,
    ):
        self.coupon_catalog = coupon_catalog
        self.addon_catalog = addon_catalog
        self.tax_catalog = tax_catalog
        self.tax_combination = tax_combination
        self.money_places = money_places
        self.skip_inactive_coupons = skip_inactive_coupons
        self.default_currency = default_currency

    # ====================
    # Public API
    # ====================

    def build(self, request: SubscriptionPreviewRequest) -> SubscriptionPreview:
        """Estimate every phase and assemble the timeline"""
        phases = self._ordered_phases(request)
        currency = self._resolve_currency(request)
        billing_period = self._resolve_billing_period(request)

        estimates = [
            self.estimate_phase(request, phase, index, currency=currency, billing_period=billing_period)
            for index, phase in enumerate(phases)
        ]
        preview = SubscriptionPreview(
            currency=currency,
            billing_period=billing_period,
            billing_cycle=request.billing_cycle,
            timeline=self._timeline(phases, estimates[0].invoice),
            phase_estimates=estimates,
        )
        logger.debug(
            f"Built preview: {len(phases)} phase(s), first invoice net payable "
            f"{preview.first_invoice.net_payable} {currency}"
        )
        return preview

    def estimate_phase(
        self,
        request: SubscriptionPreviewRequest,
        phase: SubscriptionPhase,
        phase_index: int = 0,
        currency: Optional[str] = None,
        billing_period: Optional[BillingPeriod] = None,
    ) -> PhaseEstimate:
        """Invoice estimate for the first billing period of one phase"""
        currency = currency or self._resolve_currency(request)
        billing_period = billing_period or self._resolve_billing_period(request)
        places = self.money_places
        skipped: List[str] = []

        # 1. Effective recurring prices
        charges = self._effective_charges(request, phase)

        # 2. Line-item coupons
        line_coupons = {
            price_id: self._resolve_coupons(ids, phase.start_date, currency, skipped)
            for price_id, ids in phase.line_item_coupons.items()
        }
        amounts = {charge.id: quantize_amount(calculate_charge(charge), places) for charge in charges}
        discounted = apply_line_item_coupons(charges, line_coupons, amounts)
        lines = [self._round_line(line) for line in discounted.lines]
        recurring_subtotal = sum_amounts(line.net_amount for line in lines)
        line_item_discount_total = sum_amounts(line.discount for line in lines)

        # 3. Subscription coupons on the recurring subtotal
        coupons = self._resolve_coupons(phase.coupons, phase.start_date, currency, skipped)
        breakdown = [
            entry.model_copy(update={"amount": quantize_amount(entry.amount, places)})
            for entry in coupon_breakdown(coupons, recurring_subtotal)
        ]
        # Invoice lines add up to the discount subtracted
        subscription_discount = sum_amounts(entry.amount for entry in breakdown)
        plan_subtotal = clamp_non_negative(recurring_subtotal - subscription_discount)

        # 4. Addons
        addons = aggregate_addons(
            request.addons, self._addon_index(request), billing_period, currency, as_of=phase.start_date
        )
        addon_total = quantize_amount(addons.total, places)
        pre_tax_total = Money(plan_subtotal, currency) + Money(addon_total, currency)

        # 5. Tax
        tax = calculate_tax(
            pre_tax_total.amount,
            request.tax_rate_overrides,
            currency,
            self._tax_rates(request),
            self.tax_combination,
            places,
        )

        # 6. Billing date
        invoice_date = first_invoice_date(phase.start_date, billing_period, request.billing_cycle)

        invoice = InvoicePreview(
            currency=currency,
            billing_period=billing_period,
            line_items=lines,
            recurring_subtotal=recurring_subtotal,
            line_item_discount_total=line_item_discount_total,
            subscription_discount=subscription_discount,
            subscription_discounts=breakdown,
            plan_subtotal=plan_subtotal,
            addon_total=addon_total,
            addon_breakdown=list(addons.breakdown),
            pre_tax_total=pre_tax_total.amount,
            tax_amount=tax.total_tax,
            tax_lines=tax.lines,
            net_payable=(pre_tax_total + Money(tax.total_tax, tax.currency)).amount,
            invoice_date=invoice_date,
            billing_description=billing_description(request.prices, billing_period, invoice_date),
            has_usage_charges=any(price.type == PriceType.USAGE for price in request.prices),
            subscription_coupon_count=len(coupons),
            line_item_coupon_count=sum(1 for line in lines if line.coupon_ids),
            skipped_coupon_ids=skipped,
        )
        return PhaseEstimate(
            phase_index=phase_index,
            start_date=phase.start_date,
            end_date=phase.end_date,
            invoice=invoice,
        )

    # ====================
    # Request resolution
    # ====================

    def _ordered_phases(self, request: SubscriptionPreviewRequest) -> List[SubscriptionPhase]:
        if not request.phases:
            raise InvalidPreviewRequest("Subscription preview needs at least one phase")
        if not request.prices:
            raise InvalidPreviewRequest("Subscription preview needs at least one price")

        phases = sorted(request.phases, key=_start_key)
        for index, phase in enumerate(phases):
            if phase.end_date is None:
                continue
            start, end = comparable_datetimes(phase.start_date, phase.end_date)
            if end <= start:
                raise InvalidPreviewRequest(f"Phase {index} ends before it starts")
        return phases

    def _resolve_currency(self, request: SubscriptionPreviewRequest) -> str:
        currencies = {price.currency.upper() for price in request.prices if price.type == PriceType.FIXED}
        if request.currency:
            currency = request.currency.upper()
            currencies.add(currency)
        elif currencies:
            currency = next(price.currency.upper() for price in request.prices if price.type == PriceType.FIXED)
        else:
            currency = self.default_currency.upper()
        if len(currencies) > 1:
            raise InvalidPreviewRequest(f"Recurring prices mix currencies: {', '.join(sorted(currencies))}")
        return currency

    def _resolve_billing_period(self, request: SubscriptionPreviewRequest) -> BillingPeriod:
        if not request.prices:
            raise InvalidPreviewRequest("Subscription preview needs at least one price")
        return request.prices[0].billing_period

    def _effective_charges(self, request: SubscriptionPreviewRequest, phase: SubscriptionPhase) -> List[EffectivePrice]:
        charges = []
        for price in request.prices:
            if price.type != PriceType.FIXED:
                continue
            override = phase.price_overrides.get(price.id) or request.price_overrides.get(price.id)
            charges.append(merge_override(price, override))
        return charges

    def _resolve_coupons(
        self,
        coupon_ids: Sequence[str],
        as_of: datetime,
        currency: str,
        skipped: List[str],
    ) -> List[Coupon]:
        coupons = []
        for coupon_id in coupon_ids:
            coupon = self.coupon_catalog.get_coupon(coupon_id) if self.coupon_catalog else None
            if coupon is None:
                raise InvalidCouponConfig("coupon not found", coupon_id)
            validate_coupon(coupon)
            if coupon.type == CouponType.FIXED and coupon.currency and coupon.currency.upper() != currency:
                raise InvalidCouponConfig(
                    f"amount_off is in {coupon.currency.upper()}, invoice is in {currency}", coupon_id
                )
            if not is_coupon_active(coupon, as_of):
                if not self.skip_inactive_coupons:
                    raise InvalidCouponConfig(f"not redeemable on {format_date(as_of)}", coupon_id)
                logger.warning(f"Coupon {coupon_id} not redeemable on {format_date(as_of)}, skipped")
                skipped.append(coupon_id)
                continue
            coupons.append(coupon)
        return coupons

    def _addon_index(self, request: SubscriptionPreviewRequest) -> Dict[str, Any]:
        if self.addon_catalog is None:
            return {}
        index = {}
        for attachment in request.addons:
            addon = self.addon_catalog.get_addon(attachment.addon_id)
            if addon is not None:
                index[addon.id] = addon
        return index

    def _tax_rates(self, request: SubscriptionPreviewRequest) -> Dict[str, Any]:
        if self.tax_catalog is None:
            return {}
        rates = {}
        for override in request.tax_rate_overrides:
            rate = self.tax_catalog.get_tax_rate(override.tax_rate_code)
            if rate is not None:
                rates[override.tax_rate_code] = rate
        return rates

    def _round_line(self, line):
        discount = quantize_amount(line.discount, self.money_places)
        return line.model_copy(update={
            "discount": discount,
            "net_amount": clamp_non_negative(line.amount - discount),
        })

    # ====================
    # Timeline
    # ====================

    def _timeline(self, phases: Sequence[SubscriptionPhase], first_invoice: InvoicePreview) -> List[TimelineEntry]:
        entries = [
            TimelineEntry(
                entry_type=TimelineEntryType.PHASE_START,
                date=phase.start_date,
                label=format_date(phase.start_date),
                subtitle="Subscription Start" if index == 0 else "Subscription Updates",
            )
            for index, phase in enumerate(phases)
        ]
        invoice_entry = TimelineEntry(
            entry_type=TimelineEntryType.INVOICE_PREVIEW,
            date=first_invoice.invoice_date,
            label=f"First invoice: {format_date(first_invoice.invoice_date)}",
            subtitle=first_invoice.billing_description,
            invoice=first_invoice,
        )
        entries.insert(1, invoice_entry)

        last = phases[-1]
        if last.end_date is not None:
            entries.append(TimelineEntry(
                entry_type=TimelineEntryType.SUBSCRIPTION_END,
                date=last.end_date,
                label=format_date(last.end_date),
                subtitle="Subscription ends",
            ))
        return entries
