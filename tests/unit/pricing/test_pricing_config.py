"""
Unit Tests for pricing configuration and logging setup
"""
import logging

import pytest

from core.config import LoggingConfig, PricingConfig, get_settings, reload_settings, setup_logging

pytestmark = pytest.mark.unit


class TestPricingConfig:
    """PricingConfig defaults and environment loading"""

    def test_defaults(self):
        config = PricingConfig()
        assert config.default_currency == "USD"
        assert config.money_places == 2
        assert config.tax_combination == "additive"
        assert config.default_billing_cycle == "anniversary"
        assert config.skip_inactive_coupons is True

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("PRICING_DEFAULT_CURRENCY", "eur")
        monkeypatch.setenv("PRICING_MONEY_PLACES", "3")
        monkeypatch.setenv("PRICING_TAX_COMBINATION", "HIGHEST_PRIORITY")
        monkeypatch.setenv("PRICING_DEFAULT_BILLING_CYCLE", "calendar")
        monkeypatch.setenv("PRICING_SKIP_INACTIVE_COUPONS", "false")
        config = PricingConfig.from_env()
        assert config.default_currency == "EUR"
        assert config.money_places == 3
        assert config.tax_combination == "highest_priority"
        assert config.default_billing_cycle == "calendar"
        assert config.skip_inactive_coupons is False

    def test_bad_places_fall_back(self, monkeypatch):
        monkeypatch.setenv("PRICING_MONEY_PLACES", "two")
        assert PricingConfig.from_env().money_places == 2

    def test_unknown_tax_combination(self):
        with pytest.raises(ValueError):
            PricingConfig(tax_combination="compound")

    def test_unknown_billing_cycle(self):
        with pytest.raises(ValueError):
            PricingConfig(default_billing_cycle="fiscal")

    def test_negative_places(self):
        with pytest.raises(ValueError):
            PricingConfig(money_places=-1)

    def test_reload_settings(self, monkeypatch):
        monkeypatch.setenv("PRICING_DEFAULT_CURRENCY", "gbp")
        try:
            assert reload_settings().default_currency == "GBP"
            assert get_settings().default_currency == "GBP"
        finally:
            monkeypatch.delenv("PRICING_DEFAULT_CURRENCY")
            reload_settings()


class TestLogging:
    """LoggingConfig and setup_logging"""

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "WARNING")
        monkeypatch.setenv("LOG_FORMAT", "%(levelname)s %(message)s")
        config = LoggingConfig.from_env()
        assert config.log_level == "WARNING"
        assert config.log_format == "%(levelname)s %(message)s"

    def test_setup_logging(self):
        root = logging.getLogger()
        saved_level, saved_handlers = root.level, root.handlers[:]
        try:
            logger = setup_logging(LoggingConfig(log_level="WARNING", service_name="pricing"))
            assert logger.name == "pricing"
            assert root.level == logging.WARNING
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)
