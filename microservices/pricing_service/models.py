"""
Pricing Service Data Models

Defines prices, overrides, coupons, addons, tax rates and subscription phases
consumed by the pricing engine, and the preview structures it produces.
Monetary fields are Decimal and serialize as decimal strings.
"""

from enum import Enum
from typing import Optional, Dict, Any, List, Tuple
from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def _upper(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip().upper()
    return value


def _lower(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip().lower()
    return value


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


# ====================
# Enum Types
# ====================

class PriceType(str, Enum):
    """Price type"""
    FIXED = "FIXED"                      # Recurring fixed charge
    USAGE = "USAGE"                      # Metered charge


class BillingModel(str, Enum):
    """Charge calculation strategy"""
    FLAT_FEE = "FLAT_FEE"
    PACKAGE = "PACKAGE"
    TIERED = "TIERED"


class TierMode(str, Enum):
    """Tier walking mode, meaningful only for TIERED prices"""
    VOLUME = "VOLUME"                    # Whole quantity at one tier's rate
    SLAB = "SLAB"                        # Quantity billed across every tier it spans


class OverrideBillingModel(str, Enum):
    """Billing model tags accepted on an override (input only)"""
    FLAT_FEE = "FLAT_FEE"
    PACKAGE = "PACKAGE"
    TIERED = "TIERED"
    SLAB_TIERED = "SLAB_TIERED"          # Normalized to TIERED + SLAB


class BillingPeriod(str, Enum):
    """Billing period"""
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    HALF_YEARLY = "HALF_YEARLY"
    ANNUAL = "ANNUAL"


class InvoiceCadence(str, Enum):
    """When a charge is invoiced relative to its period"""
    ADVANCE = "ADVANCE"
    ARREARS = "ARREARS"


class BillingCycle(str, Enum):
    """Billing anchor alignment"""
    ANNIVERSARY = "anniversary"
    CALENDAR = "calendar"


class RoundingMode(str, Enum):
    """Package rounding"""
    UP = "up"
    DOWN = "down"


class CouponType(str, Enum):
    """Coupon discount type"""
    FIXED = "fixed"
    PERCENTAGE = "percentage"


class CouponCadence(str, Enum):
    """How many billing periods a coupon discounts"""
    ONCE = "once"
    REPEATED = "repeated"
    FOREVER = "forever"


class TaxRateType(str, Enum):
    """Tax rate definition"""
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class TaxCombination(str, Enum):
    """How several applicable tax rates combine"""
    ADDITIVE = "additive"                  # Every rate on the same subtotal
    HIGHEST_PRIORITY = "highest_priority"  # Only the lowest priority number


class TimelineEntryType(str, Enum):
    """Subscription preview timeline entry types"""
    PHASE_START = "phase_start"
    INVOICE_PREVIEW = "invoice_preview"
    SUBSCRIPTION_END = "subscription_end"


# ====================
# Price Models
# ====================

class PriceTier(BaseModel):
    """One row of a tier table; up_to is inclusive, None means unbounded"""
    model_config = ConfigDict(frozen=True)

    up_to: Optional[Decimal] = None
    unit_amount: Decimal = Decimal("0")
    flat_amount: Decimal = Decimal("0")

    @field_validator("up_to", mode="before")
    @classmethod
    def _blank_up_to(cls, v):
        return _blank_to_none(v)

    @field_validator("unit_amount", "flat_amount", mode="before")
    @classmethod
    def _blank_amounts(cls, v):
        return Decimal("0") if _blank_to_none(v) is None else v


class TransformQuantity(BaseModel):
    """Package definition: bill per `divide_by` units"""
    model_config = ConfigDict(frozen=True)

    divide_by: int = Field(default=1, ge=1)
    round: RoundingMode = RoundingMode.UP

    @field_validator("round", mode="before")
    @classmethod
    def _round_lower(cls, v):
        return _lower(v) if v is not None else RoundingMode.UP


class PricingScheme(BaseModel):
    """Billing model with its tier mode, replacing the SLAB_TIERED string tag"""
    model_config = ConfigDict(frozen=True)

    billing_model: BillingModel
    tier_mode: Optional[TierMode] = None

    @model_validator(mode="before")
    @classmethod
    def _normalize_mode(cls, data):
        if not isinstance(data, dict):
            return data
        model = data.get("billing_model")
        model = model.value if isinstance(model, Enum) else _upper(model)
        if model == BillingModel.TIERED.value:
            if _blank_to_none(data.get("tier_mode")) is None:
                return {**data, "tier_mode": TierMode.VOLUME}
            return {**data, "tier_mode": _upper(data["tier_mode"])}
        return {**data, "tier_mode": None}

    @classmethod
    def from_tag(cls, tag: Any, tier_mode: Optional[TierMode] = None) -> "PricingScheme":
        """Build a scheme from a billing model tag, including SLAB_TIERED"""
        value = tag.value if isinstance(tag, Enum) else _upper(tag)
        if value == OverrideBillingModel.SLAB_TIERED.value:
            return cls(billing_model=BillingModel.TIERED, tier_mode=TierMode.SLAB)
        return cls(billing_model=BillingModel(value), tier_mode=tier_mode)

    @property
    def is_tiered(self) -> bool:
        return self.billing_model == BillingModel.TIERED

    @property
    def label(self) -> str:
        if self.billing_model == BillingModel.FLAT_FEE:
            return "Flat Fee"
        if self.billing_model == BillingModel.PACKAGE:
            return "Package"
        return "Slab Tiered" if self.tier_mode == TierMode.SLAB else "Volume Tiered"


class Price(BaseModel):
    """Price definition, immutable once fetched"""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Price ID")
    amount: Decimal = Field(default=Decimal("0"), description="Flat or package amount")
    currency: str = "USD"
    type: PriceType = PriceType.FIXED

    # Charge calculation
    billing_model: BillingModel = BillingModel.FLAT_FEE
    tier_mode: Optional[TierMode] = None
    tiers: Tuple[PriceTier, ...] = ()
    transform_quantity: Optional[TransformQuantity] = None

    # Cadence
    billing_period: BillingPeriod = BillingPeriod.MONTHLY
    invoice_cadence: InvoiceCadence = InvoiceCadence.ARREARS

    # Display
    name: Optional[str] = None
    display_name: Optional[str] = None
    lookup_key: Optional[str] = None

    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("type", "billing_model", "tier_mode", "billing_period", "invoice_cadence", mode="before")
    @classmethod
    def _enum_upper(cls, v):
        return _upper(_blank_to_none(v))

    @field_validator("tiers", mode="before")
    @classmethod
    def _none_tiers(cls, v):
        return () if v is None else v

    @field_validator("amount", mode="before")
    @classmethod
    def _blank_amount(cls, v):
        return Decimal("0") if _blank_to_none(v) is None else v

    @property
    def scheme(self) -> PricingScheme:
        return PricingScheme(billing_model=self.billing_model, tier_mode=self.tier_mode)


class PriceOverride(BaseModel):
    """Partial patch over a price, keyed by price_id"""
    model_config = ConfigDict(frozen=True)

    price_id: str = Field(..., description="Overridden price ID")
    amount: Optional[Decimal] = None
    billing_model: Optional[BillingModel] = None
    tier_mode: Optional[TierMode] = None
    tiers: Optional[Tuple[PriceTier, ...]] = None
    transform_quantity: Optional[TransformQuantity] = None
    quantity: Optional[Decimal] = None
    effective_from: Optional[datetime] = None

    @model_validator(mode="before")
    @classmethod
    def _normalize_billing_model(cls, data):
        if not isinstance(data, dict):
            return data
        tag = data.get("billing_model")
        tag = tag.value if isinstance(tag, Enum) else _upper(_blank_to_none(tag))
        if tag is None:
            return data
        if tag == OverrideBillingModel.SLAB_TIERED.value:
            return {**data, "billing_model": BillingModel.TIERED, "tier_mode": TierMode.SLAB}
        if tag == BillingModel.TIERED.value and _blank_to_none(data.get("tier_mode")) is None:
            return {**data, "billing_model": BillingModel.TIERED, "tier_mode": TierMode.VOLUME}
        return {**data, "billing_model": tag}

    @field_validator("tier_mode", mode="before")
    @classmethod
    def _tier_mode_upper(cls, v):
        return _upper(_blank_to_none(v))

    @field_validator("amount", "quantity", mode="before")
    @classmethod
    def _blank_numbers(cls, v):
        return _blank_to_none(v)

    @property
    def scheme(self) -> Optional[PricingScheme]:
        if self.billing_model is None:
            return None
        return PricingScheme(billing_model=self.billing_model, tier_mode=self.tier_mode)

    def supplied_fields(self) -> List[str]:
        """Names of the fields this override actually sets"""
        return [name for name, value in self if name != "price_id" and value is not None]


class FieldChange(BaseModel):
    """One human-readable difference between a price and its override"""
    model_config = ConfigDict(frozen=True)

    field: str
    from_value: str
    to_value: str


class EffectivePrice(BaseModel):
    """Price actually used for calculation after merging an override"""
    model_config = ConfigDict(frozen=True)

    price_id: str
    amount: Decimal = Decimal("0")
    currency: str = "USD"
    type: PriceType = PriceType.FIXED
    billing_model: BillingModel = BillingModel.FLAT_FEE
    tier_mode: Optional[TierMode] = None
    tiers: Tuple[PriceTier, ...] = ()
    transform_quantity: Optional[TransformQuantity] = None
    billing_period: BillingPeriod = BillingPeriod.MONTHLY
    invoice_cadence: InvoiceCadence = InvoiceCadence.ARREARS
    quantity: Decimal = Decimal("1")
    effective_from: Optional[datetime] = None
    is_overridden: bool = False
    changed_fields: Tuple[FieldChange, ...] = ()

    @property
    def id(self) -> str:
        return self.price_id

    @property
    def scheme(self) -> PricingScheme:
        return PricingScheme(billing_model=self.billing_model, tier_mode=self.tier_mode)

    def pricing_fields(self) -> Dict[str, Any]:
        """Fields that determine the charge, used for equality checks"""
        return self.model_dump(exclude={"is_overridden", "changed_fields"})

    def as_override(self) -> PriceOverride:
        """Override that reproduces this effective price from its base"""
        scheme = self.scheme
        return PriceOverride(
            price_id=self.price_id,
            amount=None if scheme.is_tiered else self.amount,
            billing_model=scheme.billing_model,
            tier_mode=scheme.tier_mode,
            tiers=self.tiers if scheme.is_tiered else None,
            transform_quantity=self.transform_quantity if scheme.billing_model == BillingModel.PACKAGE else None,
            quantity=self.quantity,
            effective_from=self.effective_from,
        )


class LineItemOverrideRequest(BaseModel):
    """Normalized override payload for submitting a subscription"""
    price_id: str
    quantity: Optional[Decimal] = None
    amount: Optional[Decimal] = None
    billing_model: Optional[BillingModel] = None
    tier_mode: Optional[TierMode] = None
    tiers: Optional[List[PriceTier]] = None
    transform_quantity: Optional[TransformQuantity] = None


# ====================
# Coupon Models
# ====================

class Coupon(BaseModel):
    """Coupon definition; validated by the coupon calculator, not here"""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Coupon ID")
    name: Optional[str] = None
    type: CouponType
    amount_off: Optional[Decimal] = None
    percentage_off: Optional[Decimal] = None
    currency: Optional[str] = None

    # Cadence
    cadence: CouponCadence = CouponCadence.ONCE
    duration_in_periods: Optional[int] = None

    # Redemption window
    redeem_after: Optional[datetime] = None
    redeem_before: Optional[datetime] = None
    max_redemptions: Optional[int] = None

    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("type", "cadence", mode="before")
    @classmethod
    def _enum_lower(cls, v):
        return _lower(v)

    @field_validator("amount_off", "percentage_off", "redeem_after", "redeem_before", mode="before")
    @classmethod
    def _blank_optional(cls, v):
        return _blank_to_none(v)


class CouponDiscount(BaseModel):
    """Discount contributed by one coupon"""
    coupon_id: str
    name: Optional[str] = None
    amount: Decimal = Field(default=Decimal("0"), ge=0)


class LineItemCharge(BaseModel):
    """One recurring or usage line with its line-item discount"""
    model_config = ConfigDict(frozen=True)

    price_id: str
    price_type: PriceType = PriceType.FIXED
    billing_model: BillingModel = BillingModel.FLAT_FEE
    quantity: Decimal = Decimal("1")
    amount: Decimal = Decimal("0")
    discount: Decimal = Decimal("0")
    net_amount: Decimal = Decimal("0")
    coupon_ids: Tuple[str, ...] = ()
    is_overridden: bool = False


class LineItemDiscountResult(BaseModel):
    """Result of applying line-item coupons across charges"""
    model_config = ConfigDict(frozen=True)

    total: Decimal = Decimal("0")
    total_discount: Decimal = Decimal("0")
    lines: Tuple[LineItemCharge, ...] = ()

    @property
    def line_item_discounts(self) -> Dict[str, Decimal]:
        return {line.price_id: line.discount for line in self.lines}


# ====================
# Addon Models
# ====================

class Addon(BaseModel):
    """Addon with its catalog prices"""
    id: str
    name: str
    prices: List[Price] = Field(default_factory=list)


class AddonAttachment(BaseModel):
    """Addon attached to a subscription"""
    addon_id: str
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class AddonCharge(BaseModel):
    """Recurring charge of one matched addon"""
    model_config = ConfigDict(frozen=True)

    addon_id: str
    name: str
    price_id: str
    amount: Decimal


class AddonAggregate(BaseModel):
    """Sum of matched addon charges with per-addon breakdown"""
    model_config = ConfigDict(frozen=True)

    total: Decimal = Decimal("0")
    breakdown: Tuple[AddonCharge, ...] = ()


# ====================
# Tax Models
# ====================

class TaxRate(BaseModel):
    """Configured tax rate"""
    code: str
    name: Optional[str] = None
    tax_rate_type: TaxRateType = TaxRateType.PERCENTAGE
    percentage_value: Optional[Decimal] = None
    fixed_value: Optional[Decimal] = None

    @field_validator("tax_rate_type", mode="before")
    @classmethod
    def _type_lower(cls, v):
        return _lower(v)


class TaxRateOverride(BaseModel):
    """Tax rate association for an entity"""
    tax_rate_code: str
    currency: str
    auto_apply: bool = True
    priority: int = 0


class TaxLine(BaseModel):
    """Tax contributed by one rate"""
    tax_rate_code: str
    tax_amount: Decimal = Field(..., ge=0)
    rate: Optional[Decimal] = None


class TaxCalculation(BaseModel):
    """Tax calculation result"""
    currency: str = "USD"
    taxable_amount: Decimal = Decimal("0")
    total_tax: Decimal = Field(default=Decimal("0"), ge=0)
    lines: List[TaxLine] = Field(default_factory=list)


# ====================
# Subscription Preview Models
# ====================

class SubscriptionPhase(BaseModel):
    """Time-bounded segment of a subscription"""
    start_date: datetime
    end_date: Optional[datetime] = None
    coupons: List[str] = Field(default_factory=list)
    line_item_coupons: Dict[str, List[str]] = Field(default_factory=dict)
    price_overrides: Dict[str, PriceOverride] = Field(default_factory=dict)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("line_item_coupons", mode="before")
    @classmethod
    def _single_coupon_to_list(cls, v):
        if isinstance(v, dict):
            return {key: [ids] if isinstance(ids, str) else ids for key, ids in v.items()}
        return v


class SubscriptionPreviewRequest(BaseModel):
    """Everything needed to preview a subscription"""
    prices: List[Price] = Field(default_factory=list)
    phases: List[SubscriptionPhase] = Field(default_factory=list)
    billing_cycle: BillingCycle = BillingCycle.ANNIVERSARY
    addons: List[AddonAttachment] = Field(default_factory=list)
    tax_rate_overrides: List[TaxRateOverride] = Field(default_factory=list)
    price_overrides: Dict[str, PriceOverride] = Field(default_factory=dict)
    currency: Optional[str] = None

    @field_validator("billing_cycle", mode="before")
    @classmethod
    def _cycle_lower(cls, v):
        return _lower(v) if v is not None else BillingCycle.ANNIVERSARY


class InvoicePreview(BaseModel):
    """Estimated invoice for the first billing period of a phase"""
    currency: str
    billing_period: BillingPeriod
    line_items: List[LineItemCharge] = Field(default_factory=list)

    # Plan charges
    recurring_subtotal: Decimal = Decimal("0")
    line_item_discount_total: Decimal = Decimal("0")
    subscription_discount: Decimal = Decimal("0")
    subscription_discounts: List[CouponDiscount] = Field(default_factory=list)
    plan_subtotal: Decimal = Decimal("0")

    # Addons
    addon_total: Decimal = Decimal("0")
    addon_breakdown: List[AddonCharge] = Field(default_factory=list)

    # Totals
    pre_tax_total: Decimal = Decimal("0")
    tax_amount: Decimal = Decimal("0")
    tax_lines: List[TaxLine] = Field(default_factory=list)
    net_payable: Decimal = Decimal("0")

    # Billing
    invoice_date: datetime
    billing_description: str = ""
    has_usage_charges: bool = False

    # Coupons
    subscription_coupon_count: int = 0
    line_item_coupon_count: int = 0
    skipped_coupon_ids: List[str] = Field(default_factory=list)

    @property
    def total_coupon_count(self) -> int:
        return self.subscription_coupon_count + self.line_item_coupon_count


class PhaseEstimate(BaseModel):
    """Invoice estimate for one phase"""
    phase_index: int
    start_date: datetime
    end_date: Optional[datetime] = None
    invoice: InvoicePreview


class TimelineEntry(BaseModel):
    """One display-ready, numeric timeline entry"""
    entry_type: TimelineEntryType
    date: datetime
    label: str
    subtitle: str = ""
    invoice: Optional[InvoicePreview] = None


class SubscriptionPreview(BaseModel):
    """Phase-by-phase financial timeline for a subscription"""
    currency: str
    billing_period: BillingPeriod
    billing_cycle: BillingCycle
    timeline: List[TimelineEntry] = Field(default_factory=list)
    phase_estimates: List[PhaseEstimate] = Field(default_factory=list)

    @property
    def first_invoice(self) -> InvoicePreview:
        return self.phase_estimates[0].invoice
