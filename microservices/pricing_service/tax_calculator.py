"""
Tax Calculator

Applies the tax rates associated with an entity to a pre-tax subtotal.
Every rate is computed on the same subtotal; taxes never compound.
"""

import logging
from decimal import Decimal
from typing import Any, Iterable, List, Mapping, Optional, Union

from .models import TaxCalculation, TaxCombination, TaxLine, TaxRate, TaxRateOverride, TaxRateType
from .money import DEFAULT_PLACES, ONE_HUNDRED, ZERO, clamp_non_negative, quantize_amount, sum_amounts
from .protocols import UnresolvableTaxRate

logger = logging.getLogger(__name__)

TaxRates = Union[Mapping[str, TaxRate], Iterable[TaxRate]]


def _index(tax_rates: Optional[TaxRates]) -> Mapping[str, TaxRate]:
    if tax_rates is None:
        return {}
    if isinstance(tax_rates, Mapping):
        return tax_rates
    return {rate.code: rate for rate in tax_rates}


def _combination(value: Union[TaxCombination, str]) -> TaxCombination:
    return TaxCombination(value.lower()) if isinstance(value, str) else value


def applicable_tax_overrides(overrides: Iterable[TaxRateOverride], currency: str) -> List[TaxRateOverride]:
    """Auto-applied overrides in the invoice currency"""
    return [
        override for override in overrides
        if override.auto_apply and override.currency.lower() == currency.lower()
    ]


def _tax_line(override: TaxRateOverride, rate: Optional[TaxRate], taxable: Decimal, places: int) -> TaxLine:
    code = override.tax_rate_code
    if rate is None:
        raise UnresolvableTaxRate(f"no tax rate configured for {override.currency.upper()}", code)

    if rate.tax_rate_type == TaxRateType.PERCENTAGE:
        if rate.percentage_value is None:
            raise UnresolvableTaxRate("percentage rate has no percentage_value", code)
        amount = taxable * rate.percentage_value / ONE_HUNDRED
        return TaxLine(tax_rate_code=code, tax_amount=quantize_amount(amount, places), rate=rate.percentage_value)

    if rate.fixed_value is None:
        raise UnresolvableTaxRate("fixed rate has no fixed_value", code)
    # Nothing to tax, nothing charged
    amount = rate.fixed_value if taxable > ZERO else ZERO
    return TaxLine(tax_rate_code=code, tax_amount=quantize_amount(clamp_non_negative(amount), places))


def calculate_tax(
    subtotal: Any,
    overrides: Iterable[TaxRateOverride],
    currency: str,
    tax_rates: Optional[TaxRates] = None,
    combination: Union[TaxCombination, str] = TaxCombination.ADDITIVE,
    places: int = DEFAULT_PLACES,
) -> TaxCalculation:
    """Tax on `subtotal` from the entity's applicable tax rates.

    ADDITIVE charges every applicable rate against the subtotal.
    HIGHEST_PRIORITY charges only the override with the lowest priority
    number; ties keep the first one listed.
    """
    taxable = clamp_non_negative(subtotal)
    rates = _index(tax_rates)
    applicable = applicable_tax_overrides(overrides, currency)

    if applicable and _combination(combination) == TaxCombination.HIGHEST_PRIORITY:
        applicable = [min(applicable, key=lambda o: o.priority)]

    lines = [_tax_line(override, rates.get(override.tax_rate_code), taxable, places) for override in applicable]
    result = TaxCalculation(
        currency=currency.upper(),
        taxable_amount=taxable,
        total_tax=sum_amounts(line.tax_amount for line in lines),
        lines=lines,
    )
    logger.debug(f"Tax on {taxable} {result.currency}: {result.total_tax} from {len(lines)} rate(s)")
    return result


def tax_for(
    subtotal: Any,
    overrides: Iterable[TaxRateOverride],
    currency: str,
    tax_rates: Optional[TaxRates] = None,
    combination: Union[TaxCombination, str] = TaxCombination.ADDITIVE,
    places: int = DEFAULT_PLACES,
) -> Decimal:
    return calculate_tax(subtotal, overrides, currency, tax_rates, combination, places).total_tax
