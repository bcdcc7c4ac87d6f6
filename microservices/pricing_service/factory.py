"""
Pricing Service Factory

Factory functions for creating service instances from pre-fetched data.

Usage:
    from .factory import create_pricing_service
    service = create_pricing_service(prices=prices, coupons=coupons)
"""
from typing import Dict, Iterable, List, Optional

from core.config import PricingConfig, get_settings

from .catalogs import InMemoryCatalog
from .models import Addon, Coupon, Price, TaxRate, TaxRateOverride
from .pricing_service import PricingService


def create_pricing_service(
    config: Optional[PricingConfig] = None,
    prices: Iterable[Price] = (),
    coupons: Iterable[Coupon] = (),
    addons: Iterable[Addon] = (),
    tax_rates: Iterable[TaxRate] = (),
    tax_overrides: Optional[Dict[str, List[TaxRateOverride]]] = None,
) -> PricingService:
    """
    Create PricingService over one in-memory catalog.

    Args:
        config: Pricing configuration, global settings when omitted
        prices: Plan prices
        coupons: Redeemable coupons
        addons: Addons with their prices
        tax_rates: Configured tax rates
        tax_overrides: Tax rate associations keyed by entity ID

    Returns:
        Configured PricingService instance
    """
    catalog = InMemoryCatalog(
        prices=prices,
        coupons=coupons,
        addons=addons,
        tax_rates=tax_rates,
        tax_overrides=tax_overrides,
    )
    return PricingService(
        price_catalog=catalog,
        coupon_catalog=catalog,
        addon_catalog=catalog,
        tax_catalog=catalog,
        config=config or get_settings(),
    )
