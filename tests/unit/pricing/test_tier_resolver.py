"""
Unit Tests for the Tier Resolver

VOLUME, SLAB, package and flat-fee charges, plus tier table validation.
"""
from decimal import Decimal

import pytest

from microservices.pricing_service.models import TransformQuantity
from microservices.pricing_service.protocols import InvalidAmountError, InvalidTierConfig
from microservices.pricing_service.tier_resolver import (
    calculate_charge,
    first_tier_unit_amount,
    resolve_package_charge,
    resolve_slab_increment,
    resolve_tier_charge,
    validate_tiers,
)
from tests.fixtures.pricing_fixtures import make_package_price, make_price, make_tiered_price, make_tiers

pytestmark = pytest.mark.unit

STANDARD = make_tiers((10, "5"), (None, "3"))
WITH_FLAT_FEES = make_tiers((10, "5", "20"), (None, "3", "10"))


class TestVolumeTiers:
    """Whole quantity billed at the rate of the tier containing it"""

    def test_quantity_in_unbounded_tier(self):
        """15 units fall in the unbounded tier: 3 * 15"""
        assert resolve_tier_charge("VOLUME", STANDARD, 15) == Decimal("45")

    def test_upper_bound_is_inclusive(self):
        assert resolve_tier_charge("VOLUME", STANDARD, 10) == Decimal("50")

    def test_zero_quantity_is_free(self):
        assert resolve_tier_charge("VOLUME", WITH_FLAT_FEES, 0) == Decimal("0")

    def test_flat_amount_of_containing_tier_added(self):
        assert resolve_tier_charge("VOLUME", WITH_FLAT_FEES, 4) == Decimal("40")

    def test_missing_mode_defaults_to_volume(self):
        assert resolve_tier_charge(None, STANDARD, 15) == Decimal("45")

    def test_fractional_quantity(self):
        assert resolve_tier_charge("volume", STANDARD, "2.5") == Decimal("12.5")

    def test_non_decreasing_for_non_decreasing_rates(self):
        """Charge never drops as quantity grows when rates never drop"""
        tiers = make_tiers((10, "3"), (20, "4", "5"), (None, "5", "5"))
        charges = [resolve_tier_charge("VOLUME", tiers, q) for q in range(0, 41)]
        assert charges == sorted(charges)

    def test_non_decreasing_within_a_tier(self):
        charges = [resolve_tier_charge("VOLUME", STANDARD, q) for q in range(11, 30)]
        assert charges == sorted(charges)

    def test_quantity_beyond_last_bounded_tier_raises(self):
        with pytest.raises(InvalidTierConfig):
            resolve_tier_charge("VOLUME", make_tiers((10, "5")), 11, "price_capped")


class TestSlabTiers:
    """Quantity billed across every tier it spans"""

    def test_spans_both_tiers(self):
        """10 * 5 + 5 * 3"""
        assert resolve_tier_charge("SLAB", STANDARD, 15) == Decimal("65")

    def test_within_first_tier(self):
        assert resolve_tier_charge("SLAB", STANDARD, 7) == Decimal("35")

    def test_flat_fees_charged_once_per_entered_tier(self):
        assert resolve_tier_charge("SLAB", WITH_FLAT_FEES, 15) == Decimal("95")

    def test_increment_charges_flat_fee_on_entry(self):
        assert resolve_slab_increment(WITH_FLAT_FEES, 10, 15) == Decimal("25")
        assert resolve_slab_increment(WITH_FLAT_FEES, 12, 15) == Decimal("9")

    @pytest.mark.parametrize("tiers", [STANDARD, WITH_FLAT_FEES])
    def test_additive_at_every_split_point(self, tiers):
        """slab(q1) + increment(q1, q2) == slab(q2)"""
        total = Decimal("27")
        for step in range(0, 55):
            split = Decimal(step) / 2
            left = resolve_tier_charge("SLAB", tiers, split)
            right = resolve_slab_increment(tiers, split, total)
            assert left + right == resolve_tier_charge("SLAB", tiers, total)

    def test_reversed_range_raises(self):
        with pytest.raises(InvalidTierConfig):
            resolve_slab_increment(STANDARD, 5, 4)


class TestTierValidation:
    """Malformed tables and quantities"""

    def test_empty_table(self):
        with pytest.raises(InvalidTierConfig, match="empty"):
            validate_tiers([], "price_empty")

    def test_unbounded_tier_must_be_last(self):
        with pytest.raises(InvalidTierConfig):
            validate_tiers(make_tiers((None, "5"), (10, "3")))

    def test_bounds_must_increase(self):
        with pytest.raises(InvalidTierConfig):
            validate_tiers(make_tiers((10, "5"), (10, "3"), (None, "1")))

    def test_negative_amount(self):
        with pytest.raises(InvalidTierConfig):
            validate_tiers(make_tiers((10, "-1"), (None, "3")))

    def test_negative_quantity(self):
        with pytest.raises(InvalidTierConfig):
            resolve_tier_charge("SLAB", STANDARD, -1)

    def test_unknown_mode(self):
        with pytest.raises(InvalidTierConfig):
            resolve_tier_charge("GRADUATED", STANDARD, 1)

    def test_error_names_the_price(self):
        with pytest.raises(InvalidTierConfig) as exc_info:
            validate_tiers([], "price_abc")
        assert exc_info.value.price_id == "price_abc"
        assert "price_abc" in str(exc_info.value)

    def test_accepts_plain_dicts(self):
        table = validate_tiers([{"up_to": 5, "unit_amount": "2"}, {"up_to": None, "unit_amount": "1"}])
        assert table[0].up_to == Decimal("5")
        assert table[1].flat_amount == Decimal("0")

    def test_first_tier_unit_amount(self):
        assert first_tier_unit_amount(STANDARD) == Decimal("5")


class TestPackageCharge:
    """Whole packages of divide_by units"""

    def test_rounds_up_by_default(self):
        """12 units in packages of 5 is 3 packages"""
        assert resolve_package_charge("10", TransformQuantity(divide_by=5), 12) == Decimal("30")

    def test_rounds_down(self):
        tq = TransformQuantity(divide_by=5, round="down")
        assert resolve_package_charge("10", tq, 12) == Decimal("20")

    def test_exact_multiple(self):
        assert resolve_package_charge("10", TransformQuantity(divide_by=5), 10) == Decimal("20")

    def test_without_transform_each_unit_is_a_package(self):
        assert resolve_package_charge("10", None, 3) == Decimal("30")

    def test_negative_quantity(self):
        with pytest.raises(InvalidAmountError):
            resolve_package_charge("10", TransformQuantity(divide_by=5), -1)


class TestCalculateCharge:
    """Dispatch by billing model"""

    def test_flat_fee_defaults_to_one_unit(self):
        assert calculate_charge(make_price(amount="100")) == Decimal("100")

    def test_flat_fee_times_quantity(self):
        assert calculate_charge(make_price(amount="100"), 3) == Decimal("300")

    def test_package(self):
        assert calculate_charge(make_package_price(), 12) == Decimal("30")

    def test_tiered(self):
        assert calculate_charge(make_tiered_price(tier_mode="SLAB"), 15) == Decimal("65")
