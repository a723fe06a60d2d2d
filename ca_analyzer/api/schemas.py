"""Pydantic schemas for API request/response models."""

from dataclasses import replace
from decimal import Decimal

from pydantic import BaseModel, Field

from ca_analyzer.config import settings
from ca_analyzer.models.analysis import DealAnalysis
from ca_analyzer.models.property import (
    PropertyCondition,
    PropertyInputs,
    PropertyType,
    Province,
    Strategy,
)
from ca_analyzer.models.results import (
    AdvancedMetrics,
    BorrowerProfile,
    BorrowingPower,
    BreakEvenAnalysis,
    ExpenseOptimization,
    ProjectionAssumptions,
    QualificationResult,
    RiskAnalysis,
    TaxImpact,
    YearlyTaxProjection,
)


# ---- Request schemas ----

class PropertyInputsSchema(BaseModel):
    # Location
    province: Province
    city: str

    # Purchase & financing
    purchase_price: Decimal
    down_payment_percent: Decimal = Field(..., description="Percent of price, e.g. 20")
    interest_rate: Decimal = Field(..., description="Annual percent, e.g. 5.5")
    amortization_years: int = 25
    down_payment_amount: Decimal | None = None
    strategy: Strategy = Strategy.BUY_HOLD
    property_type: PropertyType = PropertyType.SINGLE_FAMILY

    # Revenue (monthly)
    monthly_rent: Decimal = Decimal("0")
    other_income: Decimal = Decimal("0")
    vacancy_rate: Decimal = Decimal("5")

    # Expenses
    property_tax_annual: Decimal = Decimal("0")
    insurance_annual: Decimal = Decimal("0")
    property_management_percent: Decimal = Decimal("0")
    maintenance_percent: Decimal = Decimal("0")
    utilities_monthly: Decimal = Decimal("0")
    hoa_condo_fees_monthly: Decimal = Decimal("0")
    other_expenses_monthly: Decimal = Decimal("0")

    # Condition & renovation
    property_condition: PropertyCondition = PropertyCondition.MOVE_IN_READY
    renovation_cost: Decimal = Decimal("0")
    after_repair_value: Decimal | None = None

    year_built: int | None = None
    square_feet: int | None = None

    # Closing cost overrides
    legal_fees: Decimal | None = None
    inspection_cost: Decimal | None = None
    appraisal_cost: Decimal | None = None

    is_first_time_buyer: bool = False

    def to_inputs(self) -> PropertyInputs:
        return PropertyInputs(**self.model_dump())


class BorrowerSchema(BaseModel):
    annual_income: Decimal
    credit_score: int = Field(..., ge=300, le=900)
    monthly_debt_payments: Decimal = Decimal("0")
    monthly_heating: Decimal = Decimal("150")

    def to_profile(self) -> BorrowerProfile:
        return BorrowerProfile(**self.model_dump())


class AnalyzeRequest(BaseModel):
    inputs: PropertyInputsSchema
    borrower: BorrowerSchema | None = None


class ProjectionAssumptionsSchema(BaseModel):
    """Any field left out falls back to the configured default."""
    hold_period_years: int | None = Field(None, ge=1)
    appreciation_rate: Decimal | None = None
    rent_growth_rate: Decimal | None = None
    expense_growth_rate: Decimal | None = None
    sale_costs_percent: Decimal | None = None
    discount_rate: Decimal | None = None
    reinvestment_rate: Decimal | None = None

    def to_assumptions(self) -> ProjectionAssumptions:
        overrides = {k: v for k, v in self.model_dump().items() if v is not None}
        return replace(ProjectionAssumptions.from_settings(), **overrides)


class MetricsRequest(BaseModel):
    inputs: PropertyInputsSchema
    assumptions: ProjectionAssumptionsSchema | None = None


class TaxRequest(BaseModel):
    inputs: PropertyInputsSchema
    employment_income: Decimal = Field(default_factory=lambda: settings.default_employment_income)
    years_held: int = Field(5, ge=0)
    appreciation_rate: Decimal = Decimal("3.0")
    projection_years: int = Field(5, ge=1)


class RiskRequest(BaseModel):
    inputs: PropertyInputsSchema
    as_of_year: int | None = None


class BreakEvenRequest(BaseModel):
    inputs: PropertyInputsSchema


class QualifyRequest(BaseModel):
    borrower: BorrowerSchema

    # Assess a specific payment (GDS/TDS)
    monthly_payment: Decimal | None = None
    annual_property_tax: Decimal = Decimal("0")
    monthly_condo_fees: Decimal = Decimal("0")

    # Borrowing power
    down_payment_available: Decimal = Decimal("0")
    interest_rate: Decimal = Decimal("5.5")
    amortization_years: int = 25


# ---- Response schemas ----

class AnalysisResponse(BaseModel):
    analysis: DealAnalysis
    worth_pursuing: bool
    quality: str


class MetricsResponse(BaseModel):
    analysis: DealAnalysis
    metrics: AdvancedMetrics


class TaxResponse(BaseModel):
    impact: TaxImpact
    projection: list[YearlyTaxProjection]


class RiskResponse(BaseModel):
    risk: RiskAnalysis


class BreakEvenResponse(BaseModel):
    break_even: BreakEvenAnalysis
    expense_optimization: ExpenseOptimization


class QualifyResponse(BaseModel):
    qualification: QualificationResult | None = None
    borrowing_power: BorrowingPower
