"""Multi-year hold projections and the advanced return metrics built on them.

Pure computation. No I/O.
"""

import logging
from decimal import Decimal, ROUND_HALF_UP

from ca_analyzer.engine.debt import amortization_schedule, remaining_balance, yearly_debt_summary
from ca_analyzer.engine.errors import InputValidationError
from ca_analyzer.engine.irr import (
    annualized_return,
    calculate_mirr,
    calculate_npv,
    calculate_payback_period,
    compute_equity_multiple,
    compute_irr,
)
from ca_analyzer.models.analysis import DealAnalysis
from ca_analyzer.models.property import PropertyInputs
from ca_analyzer.models.results import AdvancedMetrics, ProjectedYear, ProjectionAssumptions

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")
FOUR_PLACES = Decimal("0.0001")


def _grow(base: Decimal, rate_percent: Decimal, periods: int) -> Decimal:
    return (base * (1 + rate_percent / 100) ** periods).quantize(TWO_PLACES, ROUND_HALF_UP)


def project_years(
    inputs: PropertyInputs,
    analysis: DealAnalysis,
    assumptions: ProjectionAssumptions,
) -> list[ProjectedYear]:
    """Year-by-year operating results over the hold, with the sale in the last year.

    Effective income grows at the rent growth rate and operating expenses at
    the expense growth rate; debt service stays flat. Sale proceeds are the
    appreciated value less the remaining mortgage balance and selling costs.
    """
    hold = assumptions.hold_period_years
    if hold <= 0:
        raise InputValidationError("Hold period must be at least one year")

    financing = analysis.financing
    loan = financing.total_mortgage_with_insurance
    debt_years = {
        summary.year: summary
        for summary in yearly_debt_summary(
            amortization_schedule(loan, financing.interest_rate, financing.amortization_years, hold)
        )
    }

    projections: list[ProjectedYear] = []
    for year in range(1, hold + 1):
        income = _grow(analysis.revenue.annual_effective_income, assumptions.rent_growth_rate, year - 1)
        opex = _grow(analysis.expenses.annual.operating, assumptions.expense_growth_rate, year - 1)
        debt_service = financing.annual_payment if year <= financing.amortization_years else Decimal("0")
        operating_cf = income - opex - debt_service

        value = _grow(inputs.purchase_price, assumptions.appreciation_rate, year)
        balance = remaining_balance(loan, financing.interest_rate, financing.amortization_years, year)

        sale = Decimal("0")
        if year == hold:
            sale_costs = (value * assumptions.sale_costs_percent / 100).quantize(TWO_PLACES, ROUND_HALF_UP)
            sale = value - balance - sale_costs

        debt_year = debt_years.get(year)
        projections.append(ProjectedYear(
            year=year,
            effective_income=income,
            operating_expenses=opex,
            debt_service=debt_service,
            interest_paid=debt_year.interest if debt_year else Decimal("0"),
            operating_cash_flow=operating_cf,
            property_value=value,
            loan_balance=balance,
            sale_proceeds=sale,
            total_cash_flow=operating_cf + sale,
        ))

    return projections


def generate_cash_flow_projections(
    inputs: PropertyInputs,
    analysis: DealAnalysis,
    assumptions: ProjectionAssumptions,
) -> list[Decimal]:
    """One net cash flow per hold year; the final year includes the sale."""
    return [p.total_cash_flow for p in project_years(inputs, analysis, assumptions)]


def calculate_advanced_metrics(
    inputs: PropertyInputs,
    analysis: DealAnalysis,
    assumptions: ProjectionAssumptions | None = None,
) -> AdvancedMetrics:
    assumptions = assumptions or ProjectionAssumptions.from_settings()
    projections = project_years(inputs, analysis, assumptions)
    cash_flows = [p.total_cash_flow for p in projections]
    investment = analysis.acquisition.total_cash_needed
    hold = assumptions.hold_period_years

    irr = compute_irr(cash_flows, investment)
    npv = calculate_npv(cash_flows, investment, assumptions.discount_rate).quantize(TWO_PLACES, ROUND_HALF_UP)
    payback = calculate_payback_period(cash_flows, investment)
    reinvestment = (
        assumptions.reinvestment_rate
        if assumptions.reinvestment_rate is not None
        else assumptions.discount_rate
    )
    mirr = calculate_mirr(cash_flows, investment, inputs.interest_rate, reinvestment)

    total_returned = sum(cash_flows, Decimal("0"))
    equity_multiple = compute_equity_multiple(total_returned, investment)
    total_profit = total_returned - investment

    average_annual = Decimal("0")
    coc_progression: tuple[Decimal, ...] = tuple(Decimal("0") for _ in projections)
    if investment > 0:
        average_annual = (total_returned / investment / hold * 100).quantize(FOUR_PLACES, ROUND_HALF_UP)
        coc_progression = tuple(
            (p.operating_cash_flow / investment * 100).quantize(FOUR_PLACES, ROUND_HALF_UP)
            for p in projections
        )

    logger.debug(
        "Projected %d-year hold: IRR %s%% (%s), NPV %s, EM %s",
        hold, irr.rate, irr.method, npv, equity_multiple,
    )

    return AdvancedMetrics(
        assumptions=assumptions,
        projections=tuple(projections),
        cash_flows=tuple(cash_flows),
        total_cash_invested=investment,
        irr=irr,
        irr_interpretation=interpret_irr(irr.rate),
        npv=npv,
        npv_interpretation=interpret_npv(npv),
        payback_period_years=payback,
        payback_interpretation=interpret_payback_period(
            payback, hold, recovered=total_returned >= investment
        ),
        mirr=mirr,
        equity_multiple=equity_multiple,
        total_profit=total_profit,
        average_annual_return=average_annual,
        annualized_return=annualized_return(equity_multiple, hold),
        cash_on_cash_progression=coc_progression,
    )


def interpret_irr(irr: Decimal) -> str:
    if irr < 0:
        return "Negative - Loss expected"
    if irr < 5:
        return "Poor - Below inflation"
    if irr < 10:
        return "Below Average - Consider alternatives"
    if irr < 15:
        return "Good - Acceptable return"
    if irr < 20:
        return "Excellent - Strong return"
    return "Outstanding - Exceptional return"


def interpret_npv(npv: Decimal) -> str:
    if npv < 0:
        return "Negative NPV - Reject deal"
    if npv < 10000:
        return "Marginal NPV - Borderline"
    if npv < 50000:
        return "Positive NPV - Acceptable"
    if npv < 100000:
        return "Good NPV - Recommended"
    return "Excellent NPV - Highly recommended"


def interpret_payback_period(years: Decimal, hold_period: int, recovered: bool = True) -> str:
    if not recovered or years > hold_period:
        return "Does not pay back within hold period"
    share = years / hold_period * 100
    if share < 30:
        return "Excellent - Very quick payback"
    if share < 50:
        return "Good - Pays back in first half"
    if share < 75:
        return "Acceptable - Moderate payback"
    return "Slow - Pays back late in hold period"
