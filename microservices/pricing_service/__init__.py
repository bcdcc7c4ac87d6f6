"""
Pricing Service

Pricing resolution and billing preview engine. Resolves effective prices
from base prices and overrides, applies coupons, addons and tax, and builds
subscription previews. Pure and synchronous; catalogs are pre-fetched.
"""

from .models import (
    Addon,
    AddonAttachment,
    BillingCycle,
    BillingModel,
    BillingPeriod,
    Coupon,
    EffectivePrice,
    InvoicePreview,
    Price,
    PriceOverride,
    PriceTier,
    SubscriptionPhase,
    SubscriptionPreview,
    SubscriptionPreviewRequest,
    TaxRate,
    TaxRateOverride,
    TierMode,
)
from .money import Money
from .preview_builder import SubscriptionPreviewBuilder

__version__ = "1.0.0"
__service_name__ = "pricing_service"

__all__ = [
    "Addon",
    "AddonAttachment",
    "BillingCycle",
    "BillingModel",
    "BillingPeriod",
    "Coupon",
    "EffectivePrice",
    "InvoicePreview",
    "Money",
    "Price",
    "PriceOverride",
    "PriceTier",
    "SubscriptionPhase",
    "SubscriptionPreview",
    "SubscriptionPreviewBuilder",
    "SubscriptionPreviewRequest",
    "TaxRate",
    "TaxRateOverride",
    "TierMode",
]
