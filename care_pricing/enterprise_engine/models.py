"""Data models for the enterprise pricing engine."""

from datetime import date
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from care_pricing.enterprise_engine.rounding import round2


class ProfessionalTier(str, Enum):
    """Staffing levels, lowest to highest."""

    CAREGIVER = "CAREGIVER"
    NURSING_AUXILIARY = "NURSING_AUXILIARY"
    NURSING_TECHNICIAN = "NURSING_TECHNICIAN"
    NURSE = "NURSE"


TIER_RANK: dict[ProfessionalTier, int] = {
    ProfessionalTier.CAREGIVER: 1,
    ProfessionalTier.NURSING_AUXILIARY: 2,
    ProfessionalTier.NURSING_TECHNICIAN: 3,
    ProfessionalTier.NURSE: 4,
}

# Codes used by the admin panel and older records
TIER_ALIASES: dict[str, ProfessionalTier] = {
    "CUIDADOR": ProfessionalTier.CAREGIVER,
    "AUXILIAR_ENF": ProfessionalTier.NURSING_AUXILIARY,
    "TECNICO_ENF": ProfessionalTier.NURSING_TECHNICIAN,
    "ENFERMEIRO": ProfessionalTier.NURSE,
}


def normalize_tier(value: Any) -> ProfessionalTier | None:
    """Map a tier name or historical alias to a ProfessionalTier, or None."""
    if isinstance(value, ProfessionalTier):
        return value
    if value is None:
        return None
    text = str(value).strip().upper()
    if text in ProfessionalTier.__members__:
        return ProfessionalTier[text]
    return TIER_ALIASES.get(text)


def tier_rank(tier: ProfessionalTier) -> int:
    return TIER_RANK[tier]


class ConditionComplexity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


_COMPLEXITY_ALIASES = {"BAIXA": "LOW", "MEDIA": "MEDIUM", "ALTA": "HIGH"}


# ---------------------------------------------------------------------------
# Rule snapshot
# ---------------------------------------------------------------------------


class _Rule(BaseModel):
    model_config = ConfigDict(frozen=True)


class HourRule(_Rule):
    """Cost factor for a shift segment of `hour` hours (1..12)."""

    hour: int
    factor: float = Field(ge=0, allow_inf_nan=False)


class PaymentFeeRule(_Rule):
    method: str
    period: str
    fee_percent: float = 0.0
    active: bool = True


class MinicostRule(_Rule):
    """Optional fixed or hour-scaled addon line item.

    Attributes:
        code: Stable identifier used by overrides (e.g. 'RESERVA_TECNICA')
        label: Display name
        value: Amount per occurrence (per 12h factor when scaled_by_hours)
        scaled_by_hours: Multiply value by the hour factor
        active_by_default: Applied unless overridden
        optional_at_closing: May be removed by the operator when closing a deal
    """

    code: str
    label: str = ""
    value: float = 0.0
    scaled_by_hours: bool = False
    active_by_default: bool = True
    optional_at_closing: bool = True


class CommissionRule(_Rule):
    code: str
    label: str = ""
    percent: float = 0.0
    active: bool = True


class ConditionRule(_Rule):
    """Clinical-condition rule that may force a minimum tier and add a surcharge.

    An unrecognised minimum tier is kept as None and never escalates.
    """

    code: str
    label: str = ""
    complexity: ConditionComplexity = ConditionComplexity.MEDIUM
    minimum_tier: ProfessionalTier | None = None
    surcharge_percent: float = 0.0
    active: bool = True

    @field_validator("minimum_tier", mode="before")
    @classmethod
    def _normalize_minimum_tier(cls, value: Any) -> ProfessionalTier | None:
        return normalize_tier(value)

    @field_validator("complexity", mode="before")
    @classmethod
    def _normalize_complexity(cls, value: Any) -> Any:
        if value is None:
            return ConditionComplexity.MEDIUM
        text = str(value).strip().upper()
        return _COMPLEXITY_ALIASES.get(text, text)


class DiscountPreset(_Rule):
    name: str
    label: str = ""
    percent: float = 0.0
    active: bool = True


class Base12hPrices(_Rule):
    """Price of a full 12-hour shift per tier. A missing nurse price falls back to technician."""

    caregiver: float = Field(ge=0)
    nursing_auxiliary: float = Field(ge=0)
    nursing_technician: float = Field(ge=0)
    nurse: float | None = Field(default=None, ge=0)

    def for_tier(self, tier: ProfessionalTier) -> float:
        if tier == ProfessionalTier.CAREGIVER:
            return self.caregiver
        if tier == ProfessionalTier.NURSING_AUXILIARY:
            return self.nursing_auxiliary
        if tier == ProfessionalTier.NURSING_TECHNICIAN:
            return self.nursing_technician
        return self.nurse if self.nurse is not None else self.nursing_technician


class AdditivePercents(_Rule):
    extra_patient: float = 0.0
    night: float = 0.0
    weekend: float = 0.0
    holiday: float = 0.0
    high_risk: float = 0.0
    at: float = 0.0
    aa: float = 0.0


class ScaledAddons(_Rule):
    """Whether the AT/AA add-on percents are multiplied by the hour factor."""

    at: bool = True
    aa: bool = True


class RuleSnapshot(_Rule):
    """Immutable, versioned pricing configuration for one business unit."""

    unit_id: str
    unit_code: str
    unit_name: str = ""
    currency: str = "BRL"
    version_id: str
    version: int = 1
    active: bool = True
    effective_from: date | None = None
    effective_to: date | None = None
    fee_applied_before_discount: bool = False

    base12h: Base12hPrices
    additive_percents: AdditivePercents = Field(default_factory=AdditivePercents)
    percent_scaled_by_hours: ScaledAddons = Field(default_factory=ScaledAddons)
    margin_percent: float = 0.0
    fixed_profit: float = 0.0
    fixed_profit_scaled_by_hours: bool = False
    tax_over_margin_percent: float = 0.0

    hour_rules: tuple[HourRule, ...] = ()
    payment_fee_rules: tuple[PaymentFeeRule, ...] = ()
    minicost_rules: tuple[MinicostRule, ...] = ()
    commission_rules: tuple[CommissionRule, ...] = ()
    condition_rules: tuple[ConditionRule, ...] = ()
    discount_presets: tuple[DiscountPreset, ...] = ()


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class QuoteParameters(BaseModel):
    """Parameters shared by single-occurrence and schedule requests.

    Attributes:
        tier: Requested professional tier (historical aliases accepted)
        patient_count: Patients served by the professional (>= 1)
        payment_method: e.g. 'PIX', 'BOLETO', 'CARTAO_CREDITO'
        payment_period: e.g. 'SEMANAL', 'MENSAL'
        condition_codes: Selected condition rule codes
        discount_preset: Name of an active snapshot discount preset
        preset_discount_percent: Preset discount given directly as a percent
        manual_discount_percent: Operator discount percent
        fixed_discount: Fixed currency amount subtracted with the discount
        manual_additional_percent: Operator surcharge added to the composed percent
        minicost_overrides: Minicost code -> active flag
    """

    tier: ProfessionalTier
    patient_count: int = Field(default=1, gt=0)
    payment_method: str = "PIX"
    payment_period: str = "SEMANAL"
    condition_codes: list[str] = Field(default_factory=list)
    discount_preset: str | None = None
    preset_discount_percent: float = 0.0
    manual_discount_percent: float = 0.0
    fixed_discount: float = Field(default=0.0, ge=0, allow_inf_nan=False)
    manual_additional_percent: float = Field(default=0.0, ge=0, allow_inf_nan=False)
    minicost_overrides: dict[str, bool] = Field(default_factory=dict)
    night: bool = False
    high_risk: bool = False
    addon_at: bool = False
    addon_aa: bool = False

    @field_validator("tier", mode="before")
    @classmethod
    def _normalize_tier(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValueError("tier is required")
        return normalize_tier(value) or value


class CalculationInput(QuoteParameters):
    """A single occurrence (one shift) to be priced."""

    hours: float = Field(gt=0, allow_inf_nan=False)
    weekend: bool = False
    holiday: bool = False


class ScheduleOccurrence(BaseModel):
    date: date
    hours: float = Field(gt=0, allow_inf_nan=False)
    is_holiday: bool = False
    is_weekend: bool | None = None
    day_type: str | None = None
    tags: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _classify_day(self) -> "ScheduleOccurrence":
        if self.is_weekend is None:
            self.is_weekend = self.date.weekday() >= 5
        if self.day_type is None:
            if self.is_holiday:
                self.day_type = "HOLIDAY"
            elif self.is_weekend:
                self.day_type = "WEEKEND"
            else:
                self.day_type = "WEEKDAY"
        return self


class Schedule(BaseModel):
    """Ordered service dates. Totals are derived when not supplied."""

    occurrences: list[ScheduleOccurrence] = Field(default_factory=list)
    total_hours: float | None = Field(default=None, gt=0, allow_inf_nan=False)
    total_days: int | None = Field(default=None, gt=0)
    window_start: date | None = None
    window_end: date | None = None

    @model_validator(mode="after")
    def _derive_totals(self) -> "Schedule":
        if self.total_hours is None:
            self.total_hours = round2(sum(o.hours for o in self.occurrences))
        if self.total_days is None:
            self.total_days = len({o.date for o in self.occurrences})
        return self


class ScheduleCalculationInput(QuoteParameters):
    """A schedule of occurrences priced with shared parameters."""

    schedule: Schedule


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class PercentContribution(BaseModel):
    """One named additive percent and the value it adds to the professional base.

    Attributes:
        code: 'extra_patient', 'conditions', 'night', 'weekend', 'holiday',
            'high_risk', 'at', 'aa' or 'manual'
        label: Display label
        percent: Configured percent
        applied_percent: Percent actually added (hour-scaled for AT/AA when configured)
        value: round2(professional_base * applied_percent / 100)
    """

    code: str
    label: str
    percent: float
    applied_percent: float
    value: float = 0.0


class AppliedMinicost(BaseModel):
    code: str
    label: str
    value: float
    scaled_by_hours: bool


class BreakdownItem(BaseModel):
    key: str
    label: str
    value: float
    meta: str | None = None


class CalculationOutput(BaseModel):
    """Itemized quote for a single occurrence."""

    currency: str
    unit_id: str
    version_id: str
    version: int
    hours: int
    hour_factor: float
    requested_tier: ProfessionalTier
    effective_tier: ProfessionalTier
    required_tier: ProfessionalTier | None
    applied_conditions: list[ConditionRule] = Field(default_factory=list)
    condition_percent_total: float
    base12h: float
    professional_base: float
    additions: list[PercentContribution] = Field(default_factory=list)
    additions_percent_total: float
    additions_value: float
    professional_total: float
    margin_percent: float
    margin_value: float
    fixed_profit_value: float
    gross_margin: float
    commission_percent_total: float
    operating_cost_value: float
    tax_percent: float
    tax_value: float
    active_minicosts: list[AppliedMinicost] = Field(default_factory=list)
    minicosts_total: float
    subtotal: float
    fee_percent: float
    fee_value: float
    discount_percent: float
    discount_value: float
    final_price: float
    breakdown: list[BreakdownItem] = Field(default_factory=list)
    summary: str = ""
    warnings: list[str] = Field(default_factory=list)
    input_hash: str = ""


class OccurrenceQuote(BaseModel):
    date: date
    hours: int
    hour_factor: float
    is_holiday: bool
    is_weekend: bool
    professional_total: float
    subtotal: float


class ScheduleCalculationOutput(BaseModel):
    """Aggregated quote for a schedule; fee and discount applied once on the aggregate."""

    currency: str
    unit_id: str
    version_id: str
    version: int
    total_occurrences: int
    total_hours: float
    total_days: int
    requested_tier: ProfessionalTier
    effective_tier: ProfessionalTier
    required_tier: ProfessionalTier | None
    professional_cost: float
    additions: dict[str, float] = Field(default_factory=dict)
    additions_value: float
    professional_total: float
    gross_margin: float
    operating_costs: float
    tax_over_margin: float
    minicosts: dict[str, float] = Field(default_factory=dict)
    minicosts_total: float
    subtotal: float
    fee_percent: float
    fee_value: float
    discount_percent: float
    discount_value: float
    final_price: float
    weekly_equivalent: float
    monthly_equivalent: float
    occurrences: list[OccurrenceQuote] = Field(default_factory=list)
    breakdown: list[BreakdownItem] = Field(default_factory=list)
    summary: str = ""
    warnings: list[str] = Field(default_factory=list)
    input_hash: str = ""
