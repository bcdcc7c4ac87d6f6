"""
Pricing Service Protocols (Interfaces)

These interfaces define the catalog contracts the engine consumes.
NO import-time I/O dependencies - safe to import anywhere.
"""
from typing import List, Optional, Protocol, runtime_checkable

# Import only models (no I/O dependencies)
from .models import (
    Addon,
    Coupon,
    Price,
    TaxRate,
    TaxRateOverride,
)


# ============================================================================
# Custom Exceptions
# ============================================================================

class PricingServiceError(Exception):
    """Base exception for pricing engine errors"""
    pass


class InvalidAmountError(PricingServiceError):
    """Amount cannot be represented as a finite decimal"""
    pass


class CurrencyMismatchError(PricingServiceError):
    """Arithmetic across two currencies"""
    pass


class InvalidTierConfig(PricingServiceError):
    """Malformed tier table or negative quantity"""

    def __init__(self, message: str, price_id: Optional[str] = None):
        self.price_id = price_id
        if price_id:
            message = f"price {price_id}: {message}"
        super().__init__(message)


class InvalidCouponConfig(PricingServiceError):
    """Coupon is missing its discount value or has an impossible window"""

    def __init__(self, message: str, coupon_id: Optional[str] = None):
        self.coupon_id = coupon_id
        if coupon_id:
            message = f"coupon {coupon_id}: {message}"
        super().__init__(message)


class InvalidOverride(PricingServiceError):
    """Override sets fields the resolved billing model cannot use"""

    def __init__(self, message: str, price_id: Optional[str] = None):
        self.price_id = price_id
        if price_id:
            message = f"override for price {price_id}: {message}"
        super().__init__(message)


class NoMatchingAddonPrice(PricingServiceError):
    """Addon has no recurring price for the billing period and currency.

    Soft condition: the aggregator treats it as a zero contribution.
    """

    def __init__(self, message: str, addon_id: Optional[str] = None):
        self.addon_id = addon_id
        if addon_id:
            message = f"addon {addon_id}: {message}"
        super().__init__(message)


class UnresolvableTaxRate(PricingServiceError):
    """Applicable tax override has no usable configured rate"""

    def __init__(self, message: str, tax_rate_code: Optional[str] = None):
        self.tax_rate_code = tax_rate_code
        if tax_rate_code:
            message = f"tax rate {tax_rate_code}: {message}"
        super().__init__(message)


class InvalidPreviewRequest(PricingServiceError):
    """Preview request cannot be evaluated"""
    pass


class PriceNotFoundError(PricingServiceError):
    """Price not found in the catalog"""
    pass


class CouponNotFoundError(PricingServiceError):
    """Coupon not found in the catalog"""
    pass


# ============================================================================
# Catalog Protocols
# ============================================================================

@runtime_checkable
class PriceCatalogProtocol(Protocol):
    """Pre-fetched price lookup"""

    def get_price(self, price_id: str) -> Optional[Price]:
        """Get price by ID"""
        ...

    def list_prices_for_addon(self, addon_id: str) -> List[Price]:
        """List every price attached to an addon"""
        ...


@runtime_checkable
class CouponCatalogProtocol(Protocol):
    """Pre-fetched coupon lookup"""

    def get_coupon(self, coupon_id: str) -> Optional[Coupon]:
        """Get coupon by ID"""
        ...


@runtime_checkable
class AddonCatalogProtocol(Protocol):
    """Pre-fetched addon lookup"""

    def get_addon(self, addon_id: str) -> Optional[Addon]:
        """Get addon (with its prices) by ID"""
        ...


@runtime_checkable
class TaxCatalogProtocol(Protocol):
    """Pre-fetched tax configuration"""

    def list_tax_overrides(self, entity_id: str) -> List[TaxRateOverride]:
        """List tax rate associations for an entity"""
        ...

    def get_tax_rate(self, tax_rate_code: str) -> Optional[TaxRate]:
        """Get tax rate by code"""
        ...
