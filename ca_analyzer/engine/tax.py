"""Canadian tax impact of a rental property.

Federal + provincial progressive brackets, Class 1 CCA, rental income tax at
the marginal rate, and capital gains on disposition with the 50% inclusion.

Pure functions. No I/O.
"""

from decimal import Decimal, ROUND_HALF_UP

from ca_analyzer.engine.errors import InputValidationError
from ca_analyzer.engine.rates import Bracket, RateTables, get_rate_tables
from ca_analyzer.engine.rules import marginal_bracket_tax
from ca_analyzer.models.analysis import DealAnalysis
from ca_analyzer.models.property import Province
from ca_analyzer.models.results import TaxImpact, YearlyTaxProjection

TWO_PLACES = Decimal("0.01")
FOUR_PLACES = Decimal("0.0001")

# Share of the annual payment treated as interest in the early years
MORTGAGE_INTEREST_SHARE = Decimal("0.90")


def _provincial_brackets(province: Province, tables: RateTables) -> tuple[Bracket, ...]:
    brackets = tables.provincial_brackets.get(province)
    if brackets is None:
        raise InputValidationError(f"No income tax brackets for province: {province}")
    return brackets


def _bracket_rate(income: Decimal, brackets: tuple[Bracket, ...]) -> Decimal:
    rate = Decimal("0")
    for bracket in brackets:
        if income > bracket.lower:
            rate = bracket.rate
    return rate


def calculate_marginal_tax_rate(
    total_income: Decimal,
    province: Province,
    *,
    tables: RateTables | None = None,
) -> Decimal:
    """Top federal rate reached plus top provincial rate reached, in percent."""
    tables = tables or get_rate_tables()
    provincial = _provincial_brackets(province, tables)
    return _bracket_rate(total_income, tables.federal_brackets) + _bracket_rate(total_income, provincial)


def calculate_progressive_tax(income: Decimal, brackets: tuple[Bracket, ...]) -> Decimal:
    """Tax owed integrating each bracket slice at its own rate."""
    return marginal_bracket_tax(max(income, Decimal("0")), brackets).quantize(TWO_PLACES, ROUND_HALF_UP)


def _combined_tax(income: Decimal, province: Province, tables: RateTables) -> Decimal:
    return (
        calculate_progressive_tax(income, tables.federal_brackets)
        + calculate_progressive_tax(income, _provincial_brackets(province, tables))
    )


def cca_schedule(
    building_value: Decimal,
    years: int,
    *,
    tables: RateTables | None = None,
) -> list[Decimal]:
    """Class 1 CCA claims by year: declining balance, half-year rule in year 1."""
    tables = tables or get_rate_tables()
    rate = tables.cca_class_1_rate
    ucc = building_value
    claims: list[Decimal] = []
    for year in range(1, years + 1):
        claim = ucc * rate * (Decimal("0.5") if year == 1 else 1)
        claim = claim.quantize(TWO_PLACES, ROUND_HALF_UP)
        claims.append(claim)
        ucc -= claim
    return claims


def calculate_cca(
    building_value: Decimal,
    year: int = 1,
    *,
    tables: RateTables | None = None,
) -> Decimal:
    if year < 1:
        raise InputValidationError("CCA year must be 1 or later")
    return cca_schedule(building_value, year, tables=tables)[-1]


def calculate_annual_mortgage_interest(analysis: DealAnalysis) -> Decimal:
    """Approximation: 90% of the annual mortgage payment."""
    return (analysis.financing.annual_payment * MORTGAGE_INTEREST_SHARE).quantize(TWO_PLACES, ROUND_HALF_UP)


def calculate_tax_impact(
    analysis: DealAnalysis,
    employment_income: Decimal,
    years_held: int = 5,
    appreciation_rate: Decimal = Decimal("3.0"),
    year: int = 1,
    *,
    tables: RateTables | None = None,
) -> TaxImpact:
    """Single-year rental tax snapshot plus the tax on a sale after `years_held`."""
    tables = tables or get_rate_tables()
    province = analysis.inputs.province
    price = analysis.acquisition.purchase_price

    gross = analysis.revenue.annual_gross_income
    deductible = analysis.expenses.annual.operating + analysis.revenue.annual_vacancy_loss
    interest = calculate_annual_mortgage_interest(analysis)
    cca = calculate_cca(price * tables.building_value_ratio, year, tables=tables)
    net_rental = gross - deductible - interest - cca

    taxable_rental = max(net_rental, Decimal("0"))
    marginal = calculate_marginal_tax_rate(employment_income + taxable_rental, province, tables=tables)
    rental_tax = (taxable_rental * marginal / 100).quantize(TWO_PLACES, ROUND_HALF_UP)

    sale_price = (price * (1 + appreciation_rate / 100) ** years_held).quantize(TWO_PLACES, ROUND_HALF_UP)
    gain = sale_price - price
    taxable_gain = (gain * tables.capital_gains_inclusion).quantize(TWO_PLACES, ROUND_HALF_UP)
    gains_tax = max(Decimal("0"), taxable_gain * marginal / 100).quantize(TWO_PLACES, ROUND_HALF_UP)

    effective_rental = Decimal("0")
    if gross > 0:
        effective_rental = (rental_tax / gross * 100).quantize(FOUR_PLACES, ROUND_HALF_UP)
    effective_gain = Decimal("0")
    if gain > 0:
        effective_gain = (gains_tax / gain * 100).quantize(FOUR_PLACES, ROUND_HALF_UP)

    deductions = deductible + interest + cca

    return TaxImpact(
        employment_income=employment_income,
        marginal_tax_rate=marginal,
        gross_rental_income=gross,
        deductible_expenses=deductible,
        mortgage_interest_deduction=interest,
        depreciation_deduction=cca,
        net_rental_income=net_rental,
        rental_income_tax=rental_tax,
        after_tax_cash_flow=analysis.cash_flow.annual_net - rental_tax,
        purchase_price=price,
        estimated_sale_price=sale_price,
        capital_gain=gain,
        taxable_capital_gain=taxable_gain,
        capital_gains_tax=gains_tax,
        net_proceeds_after_tax=sale_price - gains_tax,
        effective_tax_rate_rental=effective_rental,
        effective_tax_rate_capital_gain=effective_gain,
        total_tax_deductions=deductions,
        tax_savings_from_deductions=(deductions * marginal / 100).quantize(TWO_PLACES, ROUND_HALF_UP),
        tax_without_rental=_combined_tax(employment_income, province, tables),
        # Rental losses offset other income
        tax_with_rental=_combined_tax(employment_income + net_rental, province, tables),
    )


def calculate_multi_year_tax_projection(
    analysis: DealAnalysis,
    employment_income: Decimal,
    years: int = 5,
    *,
    tables: RateTables | None = None,
) -> list[YearlyTaxProjection]:
    """Yearly rental tax with declining-balance CCA and running cumulative tax."""
    projections: list[YearlyTaxProjection] = []
    cumulative = Decimal("0")
    for year in range(1, years + 1):
        impact = calculate_tax_impact(analysis, employment_income, year=year, tables=tables)
        cumulative += impact.rental_income_tax
        projections.append(YearlyTaxProjection(
            year=year,
            rental_income=impact.gross_rental_income,
            deductions=impact.total_tax_deductions,
            depreciation=impact.depreciation_deduction,
            net_income=impact.net_rental_income,
            tax_owed=impact.rental_income_tax,
            after_tax_cash_flow=impact.after_tax_cash_flow,
            cumulative_tax=cumulative,
        ))
    return projections
