"""
Unit Test Fixtures for Pricing Service

Shared prices, coupons and catalogs built from tests/fixtures/pricing_fixtures.
"""
import os
import sys

import pytest

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "../../.."))

from core.config import PricingConfig
from microservices.pricing_service.catalogs import InMemoryCatalog
from microservices.pricing_service.preview_builder import SubscriptionPreviewBuilder
from microservices.pricing_service.pricing_service import PricingService
from tests.fixtures.pricing_fixtures import (
    make_addon,
    make_fixed_coupon,
    make_package_price,
    make_percentage_coupon,
    make_price,
    make_tax_rate,
    make_tax_override,
    make_tiered_price,
)


@pytest.fixture
def flat_price():
    """$100 monthly flat fee"""
    return make_price(price_id="price_flat", amount="100")


@pytest.fixture
def volume_price():
    return make_tiered_price(price_id="price_volume", tier_mode="VOLUME")


@pytest.fixture
def slab_price():
    return make_tiered_price(price_id="price_slab", tier_mode="SLAB")


@pytest.fixture
def package_price():
    """$10 per 5 units, rounded up"""
    return make_package_price(price_id="price_package")


@pytest.fixture
def usage_price():
    return make_price(price_id="price_usage", amount="0.5", price_type="USAGE")


@pytest.fixture
def fixed_coupon():
    return make_fixed_coupon(amount_off="20", coupon_id="coupon_fixed20", name="Twenty Off")


@pytest.fixture
def percentage_coupon():
    return make_percentage_coupon(percentage_off="15", coupon_id="coupon_pct15", name="Fifteen Percent")


@pytest.fixture
def seats_addon():
    """Addon with monthly USD 25 and annual USD 250 prices"""
    return make_addon(
        addon_id="addon_seats",
        name="Extra Seats",
        prices=[
            make_price(price_id="addon_seats_monthly", amount="25"),
            make_price(price_id="addon_seats_annual", amount="250", billing_period="ANNUAL"),
        ],
    )


@pytest.fixture
def vat_rate():
    return make_tax_rate(code="VAT", percentage_value="10")


@pytest.fixture
def catalog(flat_price, volume_price, slab_price, package_price, usage_price,
            fixed_coupon, percentage_coupon, seats_addon, vat_rate):
    """Catalog holding every fixture record"""
    return InMemoryCatalog(
        prices=[flat_price, volume_price, slab_price, package_price, usage_price],
        coupons=[fixed_coupon, percentage_coupon],
        addons=[seats_addon],
        tax_rates=[vat_rate],
        tax_overrides={"cust_1": [make_tax_override("VAT", "usd")]},
    )


@pytest.fixture
def pricing_config():
    return PricingConfig()


@pytest.fixture
def builder(catalog):
    return SubscriptionPreviewBuilder(coupon_catalog=catalog, addon_catalog=catalog, tax_catalog=catalog)


@pytest.fixture
def pricing_service(catalog, pricing_config):
    return PricingService(
        price_catalog=catalog,
        coupon_catalog=catalog,
        addon_catalog=catalog,
        tax_catalog=catalog,
        config=pricing_config,
    )
