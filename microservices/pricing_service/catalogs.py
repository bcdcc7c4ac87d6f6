"""
In-memory catalogs

Lookups over collections the caller has already fetched. One instance
serves every catalog protocol the engine consumes.
"""

from typing import Dict, Iterable, List, Optional

from .models import Addon, Coupon, Price, TaxRate, TaxRateOverride


class InMemoryCatalog:
    """Price, coupon, addon and tax lookups over pre-fetched records"""

    def __init__(
        self,
        prices: Iterable[Price] = (),
        coupons: Iterable[Coupon] = (),
        addons: Iterable[Addon] = (),
        tax_rates: Iterable[TaxRate] = (),
        tax_overrides: Optional[Dict[str, List[TaxRateOverride]]] = None,
    ):
        self._addons: Dict[str, Addon] = {addon.id: addon for addon in addons}
        self._prices: Dict[str, Price] = {price.id: price for price in prices}
        for addon in self._addons.values():
            for price in addon.prices:
                self._prices.setdefault(price.id, price)
        self._coupons: Dict[str, Coupon] = {coupon.id: coupon for coupon in coupons}
        self._tax_rates: Dict[str, TaxRate] = {rate.code: rate for rate in tax_rates}
        self._tax_overrides: Dict[str, List[TaxRateOverride]] = dict(tax_overrides or {})

    def get_price(self, price_id: str) -> Optional[Price]:
        return self._prices.get(price_id)

    def list_prices_for_addon(self, addon_id: str) -> List[Price]:
        addon = self._addons.get(addon_id)
        return list(addon.prices) if addon else []

    def get_coupon(self, coupon_id: str) -> Optional[Coupon]:
        return self._coupons.get(coupon_id)

    def get_addon(self, addon_id: str) -> Optional[Addon]:
        return self._addons.get(addon_id)

    def list_tax_overrides(self, entity_id: str) -> List[TaxRateOverride]:
        return list(self._tax_overrides.get(entity_id, []))

    def get_tax_rate(self, tax_rate_code: str) -> Optional[TaxRate]:
        return self._tax_rates.get(tax_rate_code)
