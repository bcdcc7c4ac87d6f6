"""
Pricing Service Business Logic

Effective prices, line item quotes, coupon schedules, entity tax and
subscription previews over injected catalogs.
"""

import logging
from decimal import Decimal
from typing import Any, List, Optional, Sequence

from core.config import PricingConfig

from .coupon_calculator import apply_line_item_coupons, discount_schedule
from .models import (
    BillingCycle,
    EffectivePrice,
    LineItemCharge,
    PriceOverride,
    SubscriptionPreview,
    SubscriptionPreviewRequest,
    TaxCalculation,
    TaxCombination,
)
from .money import quantize_amount, to_decimal
from .override_merger import merge_override
from .preview_builder import SubscriptionPreviewBuilder
from .protocols import (
    AddonCatalogProtocol,
    CouponCatalogProtocol,
    CouponNotFoundError,
    PriceCatalogProtocol,
    PriceNotFoundError,
    PricingServiceError,
    TaxCatalogProtocol,
)
from .tax_calculator import calculate_tax
from .tier_resolver import calculate_charge

logger = logging.getLogger(__name__)


class PricingService:
    """Pricing engine facade"""

    def __init__(
        self,
        price_catalog: PriceCatalogProtocol,
        coupon_catalog: Optional[CouponCatalogProtocol] = None,
        addon_catalog: Optional[AddonCatalogProtocol] = None,
        tax_catalog: Optional[TaxCatalogProtocol] = None,
        config: Optional[PricingConfig] = None,
    ):
        """
        Initialize Pricing Service

        Args:
            price_catalog: Pre-fetched price lookup
            coupon_catalog: Pre-fetched coupon lookup (optional)
            addon_catalog: Pre-fetched addon lookup (optional)
            tax_catalog: Pre-fetched tax configuration (optional)
            config: Pricing configuration, defaults when omitted
        """
        self.price_catalog = price_catalog
        self.coupon_catalog = coupon_catalog
        self.addon_catalog = addon_catalog
        self.tax_catalog = tax_catalog
        self.config = config or PricingConfig()

        self.builder = SubscriptionPreviewBuilder(
            coupon_catalog=coupon_catalog,
            addon_catalog=addon_catalog,
            tax_catalog=tax_catalog,
            tax_combination=TaxCombination(self.config.tax_combination),
            money_places=self.config.money_places,
            skip_inactive_coupons=self.config.skip_inactive_coupons,
            default_currency=self.config.default_currency,
        )

        logger.info(
            f"PricingService initialized (currency={self.config.default_currency}, "
            f"tax={self.config.tax_combination}, places={self.config.money_places})"
        )

    # ====================
    # Prices
    # ====================

    def get_effective_price(self, price_id: str, override: Optional[PriceOverride] = None) -> EffectivePrice:
        """Price with its override merged in"""
        price = self.price_catalog.get_price(price_id)
        if price is None:
            raise PriceNotFoundError(f"Price not found: {price_id}")
        return merge_override(price, override)

    def quote_line_item(
        self,
        price_id: str,
        quantity: Any = None,
        override: Optional[PriceOverride] = None,
        coupon_ids: Sequence[str] = (),
    ) -> LineItemCharge:
        """Rounded charge for one line item after its coupons.

        `quantity` wins over the override's quantity; both default to 1.
        """
        effective = self.get_effective_price(price_id, override)
        if quantity is not None:
            effective = effective.model_copy(update={"quantity": to_decimal(quantity)})

        amount = quantize_amount(calculate_charge(effective), self.config.money_places)
        coupons = [self._get_coupon(coupon_id) for coupon_id in coupon_ids]
        result = apply_line_item_coupons([effective], {effective.id: coupons}, {effective.id: amount})
        line = result.lines[0]
        discount = quantize_amount(line.discount, self.config.money_places)
        return line.model_copy(update={"discount": discount, "net_amount": line.amount - discount})

    # ====================
    # Coupons & tax
    # ====================

    def coupon_schedule(self, coupon_id: str, base_amount: Any, periods: int) -> List[Decimal]:
        """Rounded discount for each of the first `periods` billing periods"""
        coupon = self._get_coupon(coupon_id)
        return [
            quantize_amount(amount, self.config.money_places)
            for amount in discount_schedule(coupon, base_amount, periods)
        ]

    def tax_for_entity(self, entity_id: str, subtotal: Any, currency: Optional[str] = None) -> TaxCalculation:
        """Tax on `subtotal` from the entity's configured tax rates"""
        if self.tax_catalog is None:
            raise PricingServiceError("No tax catalog configured")
        overrides = self.tax_catalog.list_tax_overrides(entity_id)
        rates = {}
        for override in overrides:
            rate = self.tax_catalog.get_tax_rate(override.tax_rate_code)
            if rate is not None:
                rates[override.tax_rate_code] = rate
        return calculate_tax(
            subtotal,
            overrides,
            currency or self.config.default_currency,
            rates,
            self.config.tax_combination,
            self.config.money_places,
        )

    # ====================
    # Subscription preview
    # ====================

    def preview_subscription(
        self,
        request: SubscriptionPreviewRequest,
        entity_id: Optional[str] = None,
    ) -> SubscriptionPreview:
        """
        Build the phase-by-phase preview of a subscription.

        Args:
            request: Prices, phases, coupons, addons and overrides
            entity_id: Entity whose tax overrides apply when the request has none

        Returns:
            SubscriptionPreview with the first invoice and timeline
        """
        updates = {}
        if "billing_cycle" not in request.model_fields_set:
            updates["billing_cycle"] = BillingCycle(self.config.default_billing_cycle)
        if entity_id and self.tax_catalog is not None and not request.tax_rate_overrides:
            updates["tax_rate_overrides"] = self.tax_catalog.list_tax_overrides(entity_id)
        if updates:
            request = request.model_copy(update=updates)

        try:
            preview = self.builder.build(request)
        except PricingServiceError as e:
            logger.error(f"Error building subscription preview: {e}", exc_info=True)
            raise

        logger.info(
            f"Subscription preview ready: {len(preview.phase_estimates)} phase(s), "
            f"net payable {preview.first_invoice.net_payable} {preview.currency}"
        )
        return preview

    def _get_coupon(self, coupon_id: str):
        coupon = self.coupon_catalog.get_coupon(coupon_id) if self.coupon_catalog else None
        if coupon is None:
            raise CouponNotFoundError(f"Coupon not found: {coupon_id}")
        return coupon
