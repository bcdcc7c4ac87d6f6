"""
Shared Test Fixtures

Factories used across the pricing test layers.

Structure:
    - pricing_fixtures.py: Pricing engine factories
"""

from .pricing_fixtures import (
    make_price_id,
    make_coupon_id,
    make_addon_id,
    make_date,
    make_tiers,
    make_price,
    make_tiered_price,
    make_package_price,
    make_override,
    make_fixed_coupon,
    make_percentage_coupon,
    make_addon,
    make_tax_rate,
    make_tax_override,
    make_phase,
    make_preview_request,
)

__all__ = [
    "make_price_id",
    "make_coupon_id",
    "make_addon_id",
    "make_date",
    "make_tiers",
    "make_price",
    "make_tiered_price",
    "make_package_price",
    "make_override",
    "make_fixed_coupon",
    "make_percentage_coupon",
    "make_addon",
    "make_tax_rate",
    "make_tax_override",
    "make_phase",
    "make_preview_request",
]
