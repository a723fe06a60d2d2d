"""Records produced by the calculators that consume a DealAnalysis."""

from dataclasses import dataclass
from decimal import Decimal

from ca_analyzer.config import settings


# --- Projections / rate of return ---

@dataclass(frozen=True)
class ProjectionAssumptions:
    hold_period_years: int
    appreciation_rate: Decimal  # Annual %
    rent_growth_rate: Decimal
    expense_growth_rate: Decimal
    sale_costs_percent: Decimal
    discount_rate: Decimal
    reinvestment_rate: Decimal | None = None  # Falls back to discount_rate

    @classmethod
    def from_settings(cls) -> "ProjectionAssumptions":
        return cls(
            hold_period_years=settings.hold_period_years,
            appreciation_rate=settings.appreciation_rate,
            rent_growth_rate=settings.rent_growth_rate,
            expense_growth_rate=settings.expense_growth_rate,
            sale_costs_percent=settings.sale_costs_percent,
            discount_rate=settings.discount_rate,
        )


@dataclass(frozen=True)
class ProjectedYear:
    year: int
    effective_income: Decimal
    operating_expenses: Decimal
    debt_service: Decimal
    interest_paid: Decimal
    operating_cash_flow: Decimal
    property_value: Decimal
    loan_balance: Decimal
    sale_proceeds: Decimal  # Non-zero in the final year only
    total_cash_flow: Decimal


@dataclass(frozen=True)
class IRRResult:
    rate: Decimal  # Annual %, unrounded so NPV at the rate stays near zero
    converged: bool
    iterations: int
    method: str  # "newton" | "brent" | "none"


@dataclass(frozen=True)
class AdvancedMetrics:
    assumptions: ProjectionAssumptions
    projections: tuple[ProjectedYear, ...]
    cash_flows: tuple[Decimal, ...]
    total_cash_invested: Decimal
    irr: IRRResult
    irr_interpretation: str
    npv: Decimal
    npv_interpretation: str
    payback_period_years: Decimal
    payback_interpretation: str
    mirr: Decimal  # %
    equity_multiple: Decimal
    total_profit: Decimal
    average_annual_return: Decimal  # %
    annualized_return: Decimal  # %
    cash_on_cash_progression: tuple[Decimal, ...]  # % per year, excluding sale


# --- Tax ---

@dataclass(frozen=True)
class TaxImpact:
    employment_income: Decimal
    marginal_tax_rate: Decimal  # Federal + provincial, %

    # Rental income
    gross_rental_income: Decimal
    deductible_expenses: Decimal
    mortgage_interest_deduction: Decimal
    depreciation_deduction: Decimal
    net_rental_income: Decimal
    rental_income_tax: Decimal
    after_tax_cash_flow: Decimal

    # Disposition
    purchase_price: Decimal
    estimated_sale_price: Decimal
    capital_gain: Decimal
    taxable_capital_gain: Decimal
    capital_gains_tax: Decimal
    net_proceeds_after_tax: Decimal

    effective_tax_rate_rental: Decimal
    effective_tax_rate_capital_gain: Decimal
    total_tax_deductions: Decimal
    tax_savings_from_deductions: Decimal

    # Progressive (bracket-integrated) tax owed, federal + provincial
    tax_without_rental: Decimal
    tax_with_rental: Decimal


@dataclass(frozen=True)
class YearlyTaxProjection:
    year: int
    rental_income: Decimal
    deductions: Decimal
    depreciation: Decimal
    net_income: Decimal
    tax_owed: Decimal
    after_tax_cash_flow: Decimal
    cumulative_tax: Decimal


# --- Risk ---

@dataclass(frozen=True)
class RiskFactor:
    category: str  # financial | market | operational | liquidity
    name: str
    score: Decimal  # 0-100, higher is riskier
    level: str  # Low | Medium | High | Critical
    description: str
    impact: str
    mitigation: tuple[str, ...]


@dataclass(frozen=True)
class StressScenario:
    scenario: str
    description: str
    monthly_cash_flow_change: Decimal
    annual_cash_flow_change: Decimal
    impact: str


@dataclass(frozen=True)
class RiskAnalysis:
    overall_score: Decimal
    overall_level: str
    financial_risk: Decimal  # Category mean, 0-100; weighted 0.4/0.3/0.2/0.1 into overall
    market_risk: Decimal
    operational_risk: Decimal
    liquidity_risk: Decimal
    factors: tuple[RiskFactor, ...]
    stress_scenarios: tuple[StressScenario, ...]
    critical_risks: tuple[RiskFactor, ...]
    high_risks: tuple[RiskFactor, ...]
    risk_tolerance: str  # Conservative | Moderate | Aggressive
    suitable_for: tuple[str, ...]
    recommendation: str


# --- Break-even ---

@dataclass(frozen=True)
class ImprovementPath:
    action: str
    description: str
    change_required: str
    feasibility: int  # 1 = easiest


@dataclass(frozen=True)
class BreakEvenAnalysis:
    current_monthly_cash_flow: Decimal
    monthly_shortfall: Decimal  # 0 when already cash-flow positive

    current_rent: Decimal
    break_even_rent: Decimal
    rent_increase_needed: Decimal
    rent_increase_percent: Decimal

    current_price: Decimal
    break_even_price: Decimal
    price_reduction_needed: Decimal
    price_reduction_percent: Decimal

    current_monthly_expenses: Decimal
    max_monthly_expenses: Decimal
    max_annual_expenses: Decimal
    expense_reduction_needed: Decimal
    expense_reduction_percent: Decimal

    current_vacancy_rate: Decimal
    max_vacancy_rate: Decimal
    break_even_occupancy: Decimal

    current_interest_rate: Decimal
    max_interest_rate: Decimal | None  # None without debt

    years_to_positive_cash_flow: int | None  # None = not within 30 years
    cumulative_loss_until_positive: Decimal

    primary_issue: str
    quickest_path: tuple[ImprovementPath, ...]


@dataclass(frozen=True)
class ExpenseOptimizationItem:
    category: str
    current_amount: Decimal  # Annual
    current_percent: Decimal  # % of annual gross rent
    benchmark_percent: Decimal
    potential_savings: Decimal
    difficulty: str  # Easy | Medium | Hard
    recommendations: tuple[str, ...]


@dataclass(frozen=True)
class ExpenseOptimization:
    items: tuple[ExpenseOptimizationItem, ...]
    total_potential_savings: Decimal  # Annual


# --- Mortgage qualification ---

@dataclass(frozen=True)
class BorrowerProfile:
    annual_income: Decimal  # Gross household income
    credit_score: int
    monthly_debt_payments: Decimal = Decimal("0")  # Car, cards, loans
    monthly_heating: Decimal = Decimal("150")


@dataclass(frozen=True)
class QualificationResult:
    gds_ratio: Decimal | None  # None when income is zero
    tds_ratio: Decimal | None
    lender_type: str  # A-Lender | B-Lender | Private | Unqualified
    approval_odds: str  # High | Medium | Low | None
    qualifies_prime: bool
    recommendation: str


@dataclass(frozen=True)
class BorrowingPower:
    max_purchase_price: Decimal  # Rounded down to $1,000
    max_mortgage: Decimal  # Includes CMHC premium below 20% down
    down_payment_percent: Decimal
    qualifying_rate: Decimal
    monthly_payment: Decimal  # At the qualifying rate
    gds_limit: Decimal
    tds_limit: Decimal
    lender_type: str
