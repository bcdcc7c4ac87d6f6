"""
Addon Aggregator

Sums the recurring charges of addons attached to a subscription.
"""

import logging
from datetime import date, datetime
from typing import Iterable, Mapping, Optional, Union

from .billing_anchor import comparable_datetimes
from .models import (
    Addon,
    AddonAggregate,
    AddonAttachment,
    AddonCharge,
    BillingPeriod,
    Price,
    PriceType,
)
from .money import sum_amounts
from .protocols import NoMatchingAddonPrice

logger = logging.getLogger(__name__)

AddonCatalog = Union[Mapping[str, Addon], Iterable[Addon]]


def _value(item) -> str:
    return (item.value if hasattr(item, "value") else str(item)).lower()


def match_addon_price(addon: Addon, billing_period: Union[BillingPeriod, str], currency: str) -> Price:
    """FIXED price of the addon matching period and currency (case-insensitive)"""
    period = _value(billing_period)
    for price in addon.prices:
        if (
            price.type == PriceType.FIXED
            and _value(price.billing_period) == period
            and price.currency.lower() == currency.lower()
        ):
            return price
    raise NoMatchingAddonPrice(f"no FIXED {period} price in {currency.upper()}", addon.id)


def _attachment_active(attachment: AddonAttachment, as_of: Optional[Union[date, datetime]]) -> bool:
    if as_of is None:
        return True
    if attachment.start_date is not None:
        start, moment = comparable_datetimes(attachment.start_date, as_of)
        if moment < start:
            return False
    if attachment.end_date is not None:
        end, moment = comparable_datetimes(attachment.end_date, as_of)
        if moment >= end:
            return False
    return True


def _index(catalog: AddonCatalog) -> Mapping[str, Addon]:
    if isinstance(catalog, Mapping):
        return catalog
    return {addon.id: addon for addon in catalog}


def aggregate_addons(
    attachments: Iterable[AddonAttachment],
    catalog: AddonCatalog,
    billing_period: Union[BillingPeriod, str],
    currency: str,
    as_of: Optional[Union[date, datetime]] = None,
) -> AddonAggregate:
    """Total and breakdown of matched addon charges.

    Addons without a matching recurring price contribute nothing and are left
    out of the breakdown. With `as_of`, attachments whose window does not
    cover that moment are skipped.
    """
    addons = _index(catalog)
    charges = []
    for attachment in attachments:
        if not _attachment_active(attachment, as_of):
            logger.debug(f"Addon {attachment.addon_id} not attached at {as_of}, skipped")
            continue
        addon = addons.get(attachment.addon_id)
        if addon is None:
            logger.info(f"Addon {attachment.addon_id} not in catalog, contributes nothing")
            continue
        try:
            price = match_addon_price(addon, billing_period, currency)
        except NoMatchingAddonPrice as e:
            logger.info(f"{e}; contributes nothing")
            continue
        charges.append(AddonCharge(addon_id=addon.id, name=addon.name, price_id=price.id, amount=price.amount))

    return AddonAggregate(total=sum_amounts(c.amount for c in charges), breakdown=tuple(charges))
