"""DealAnalysis record and its sub-records.

Everything here is derived by engine.deal.analyze_deal and never mutated.
The shape is a versioned contract for downstream consumers.
"""

from dataclasses import dataclass, fields
from decimal import Decimal

from ca_analyzer.models.property import PropertyInputs

SCHEMA_VERSION = "1.0"


@dataclass(frozen=True)
class AcquisitionCosts:
    purchase_price: Decimal
    down_payment: Decimal
    land_transfer_tax: Decimal  # Net of first-time-buyer rebate
    land_transfer_tax_breakdown: tuple[str, ...]
    legal_fees: Decimal
    inspection: Decimal
    appraisal: Decimal
    other_closing_costs: Decimal  # Title insurance
    total_acquisition_cost: Decimal
    renovation_cost: Decimal
    total_cash_needed: Decimal  # Acquisition + renovation


@dataclass(frozen=True)
class Financing:
    mortgage_amount: Decimal  # Before CMHC premium
    cmhc_premium: Decimal
    cmhc_premium_rate: Decimal
    cmhc_message: str
    total_mortgage_with_insurance: Decimal
    interest_rate: Decimal
    amortization_years: int
    monthly_payment: Decimal
    annual_payment: Decimal
    stress_test_rate: Decimal
    stress_test_payment: Decimal
    loan_to_value: Decimal  # Insured mortgage / price, percent


@dataclass(frozen=True)
class Revenue:
    gross_monthly_rent: Decimal
    other_monthly_income: Decimal
    total_monthly_income: Decimal
    vacancy_loss_monthly: Decimal
    effective_monthly_income: Decimal
    annual_gross_income: Decimal
    annual_vacancy_loss: Decimal
    annual_effective_income: Decimal


@dataclass(frozen=True)
class ExpenseLines:
    mortgage: Decimal
    property_tax: Decimal
    insurance: Decimal
    property_management: Decimal
    maintenance: Decimal
    utilities: Decimal
    hoa_fees: Decimal
    other: Decimal
    total: Decimal

    @property
    def operating(self) -> Decimal:
        """Total excluding debt service."""
        return self.total - self.mortgage


@dataclass(frozen=True)
class ExpenseBreakdown:
    monthly: ExpenseLines
    annual: ExpenseLines


@dataclass(frozen=True)
class CashFlow:
    monthly_net: Decimal
    annual_net: Decimal
    monthly_noi: Decimal
    annual_noi: Decimal


@dataclass(frozen=True)
class Metrics:
    cap_rate: Decimal  # %
    cash_on_cash_return: Decimal  # %
    dscr: Decimal
    grm: Decimal
    expense_ratio: Decimal  # %
    breakeven_occupancy: Decimal  # %


@dataclass(frozen=True)
class BRRRRAnalysis:
    total_investment: Decimal
    after_repair_value: Decimal
    refinance_ltv_percent: Decimal
    refinance_amount: Decimal
    original_mortgage_balance: Decimal
    cash_recovered: Decimal
    cash_left_in_deal: Decimal
    infinite_return: bool
    new_monthly_payment: Decimal
    cash_flow_after_refi: Decimal
    effective_coc_return: Decimal | None  # None when all cash is recovered


@dataclass(frozen=True)
class MarketComparison:
    market_key: str  # City used for the lookup ("default" on fallback)
    market_avg_cap_rate: Decimal
    cap_rate_delta: Decimal
    cap_rate_vs_market: str
    market_avg_rent_to_price: Decimal
    deal_rent_to_price: Decimal
    rent_to_price_vs_market: str
    average_days_on_market: int
    # No data source for transit/amenity/school scores is wired in.
    location_scores_available: bool = False


@dataclass(frozen=True)
class DealFlags:
    negative_cash_flow: bool
    low_dscr: bool
    below_market_cap_rate: bool
    high_ltv: bool
    fails_stress_test: bool
    cmhc_ineligible: bool


@dataclass(frozen=True)
class ScoreReason:
    category: str
    points: int
    max_points: int
    status: str  # positive | caution | negative
    message: str


@dataclass(frozen=True)
class DealScore:
    total_score: int
    grade: str
    color: str
    reasons: tuple[ScoreReason, ...]
    cash_flow_score: int
    coc_score: int
    cap_rate_score: int
    dscr_score: int
    stress_test_score: int


@dataclass(frozen=True)
class DealAnalysisDraft:
    """Everything except the score. The scorer reads this."""
    inputs: PropertyInputs
    acquisition: AcquisitionCosts
    financing: Financing
    revenue: Revenue
    expenses: ExpenseBreakdown
    cash_flow: CashFlow
    metrics: Metrics
    brrrr: BRRRRAnalysis | None
    market_comparison: MarketComparison
    warnings: tuple[str, ...]
    flags: DealFlags


@dataclass(frozen=True)
class DealAnalysis(DealAnalysisDraft):
    scoring: DealScore
    schema_version: str = SCHEMA_VERSION

    @classmethod
    def from_draft(cls, draft: DealAnalysisDraft, scoring: DealScore) -> "DealAnalysis":
        values = {f.name: getattr(draft, f.name) for f in fields(DealAnalysisDraft)}
        return cls(**values, scoring=scoring)
