#!/usr/bin/env python3
"""Pricing engine configuration

Money rounding, tax combination and billing defaults for the pricing
service, plus its logging settings.
"""
import os
from dataclasses import dataclass, field

from .logging_config import LoggingConfig


def _bool(val: str) -> bool:
    return val.lower() == "true"

def _int(val: str, default: int) -> int:
    try:
        return int(val) if val else default
    except ValueError:
        return default


TAX_COMBINATIONS = ("additive", "highest_priority")
BILLING_CYCLES = ("anniversary", "calendar")


@dataclass
class PricingConfig:
    """Pricing service configuration"""
    default_currency: str = "USD"
    money_places: int = 2
    tax_combination: str = "additive"
    default_billing_cycle: str = "anniversary"
    skip_inactive_coupons: bool = True

    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def __post_init__(self):
        self.default_currency = self.default_currency.upper()
        self.tax_combination = self.tax_combination.lower()
        self.default_billing_cycle = self.default_billing_cycle.lower()
        if self.tax_combination not in TAX_COMBINATIONS:
            raise ValueError(
                f"Unknown tax combination '{self.tax_combination}', expected one of {TAX_COMBINATIONS}"
            )
        if self.default_billing_cycle not in BILLING_CYCLES:
            raise ValueError(
                f"Unknown billing cycle '{self.default_billing_cycle}', expected one of {BILLING_CYCLES}"
            )
        if self.money_places < 0:
            raise ValueError(f"money_places must be >= 0, got {self.money_places}")

    @classmethod
    def from_env(cls) -> 'PricingConfig':
        """Load pricing config from environment variables"""
        return cls(
            default_currency=os.getenv("PRICING_DEFAULT_CURRENCY", "USD"),
            money_places=_int(os.getenv("PRICING_MONEY_PLACES", "2"), 2),
            tax_combination=os.getenv("PRICING_TAX_COMBINATION", "additive"),
            default_billing_cycle=os.getenv("PRICING_DEFAULT_BILLING_CYCLE", "anniversary"),
            skip_inactive_coupons=_bool(os.getenv("PRICING_SKIP_INACTIVE_COUPONS", "true")),
            logging=LoggingConfig.from_env(),
        )
