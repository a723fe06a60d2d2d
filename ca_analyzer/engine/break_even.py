"""Inverse break-even targets from a completed analysis.

Each target holds everything else constant and solves for the value of one
lever (rent, price, expenses, vacancy, interest rate) that zeroes the monthly
shortfall.

Pure functions. No I/O.
"""

from decimal import Decimal, ROUND_HALF_UP

from ca_analyzer.engine.debt import payment_factor
from ca_analyzer.models.analysis import DealAnalysis
from ca_analyzer.models.results import (
    BreakEvenAnalysis,
    ExpenseOptimization,
    ExpenseOptimizationItem,
    ImprovementPath,
)

TWO_PLACES = Decimal("0.01")
FOUR_PLACES = Decimal("0.0001")

RENT_GROWTH = Decimal("0.025")
MAX_PROJECTION_YEARS = 30


def _q2(value: Decimal) -> Decimal:
    return value.quantize(TWO_PLACES, ROUND_HALF_UP)


def _q4(value: Decimal) -> Decimal:
    return value.quantize(FOUR_PLACES, ROUND_HALF_UP)


def _percent_of(part: Decimal, whole: Decimal) -> Decimal:
    if whole == 0:
        return Decimal("100") if part > 0 else Decimal("0")
    return _q4(part / whole * 100)


def _change_bucket(percent: Decimal) -> int:
    if percent < 10:
        return 1
    if percent < 20:
        return 2
    return 3


def _waiting_bucket(years: int | None) -> int:
    if years is None:
        return 5
    if years < 3:
        return 2
    if years < 5:
        return 3
    return 4


def price_reduction_for_shortfall(analysis: DealAnalysis, shortfall: Decimal) -> Decimal:
    """Price cut whose smaller (insured) mortgage payment absorbs `shortfall`.

    Keeps the down payment ratio, CMHC premium rate, interest rate and
    amortization fixed.
    """
    if shortfall <= 0:
        return Decimal("0")
    financing = analysis.financing
    price = analysis.acquisition.purchase_price
    loan_ratio = 1 - analysis.acquisition.down_payment / price
    premium = 1 + financing.cmhc_premium_rate / 100
    factor = payment_factor(financing.interest_rate, financing.amortization_years)
    per_dollar = loan_ratio * premium * factor
    if per_dollar <= 0:
        return price
    return min(price, _q2(shortfall / per_dollar))


def _timeline(analysis: DealAnalysis) -> tuple[int | None, Decimal]:
    """Years until rent growth alone turns monthly cash flow non-negative.

    Expenses are held flat. The cumulative loss covers every year before the
    turn; None means not within 30 years.
    """
    net = analysis.cash_flow.monthly_net
    if net >= 0:
        return 0, Decimal("0")
    rent = analysis.revenue.gross_monthly_rent
    cumulative = Decimal("0")
    for year in range(1, MAX_PROJECTION_YEARS + 1):
        during = net + rent * ((1 + RENT_GROWTH) ** (year - 1) - 1)
        cumulative += max(Decimal("0"), -during) * 12
        after = net + rent * ((1 + RENT_GROWTH) ** year - 1)
        if after >= 0:
            return year, _q2(cumulative)
    return None, _q2(cumulative)


def calculate_break_even(analysis: DealAnalysis) -> BreakEvenAnalysis:
    net = analysis.cash_flow.monthly_net
    shortfall = max(Decimal("0"), -net)
    financing = analysis.financing
    revenue = analysis.revenue
    price = analysis.acquisition.purchase_price

    rent = revenue.gross_monthly_rent
    rent_percent = _percent_of(shortfall, rent)

    price_cut = price_reduction_for_shortfall(analysis, shortfall)
    price_percent = _percent_of(price_cut, price)

    expenses = analysis.expenses.monthly.total
    max_expenses = expenses - shortfall
    expense_percent = _percent_of(shortfall, expenses)

    max_vacancy = Decimal("0")
    if revenue.total_monthly_income > 0:
        max_vacancy = (revenue.vacancy_loss_monthly + net) / revenue.total_monthly_income * 100
        max_vacancy = _q4(min(Decimal("100"), max(Decimal("0"), max_vacancy)))

    max_rate = None
    cushion = Decimal("0")
    loan = financing.total_mortgage_with_insurance
    if loan > 0:
        # Linear approximation, valid only for small rate changes
        cushion = net / loan * 12 * 100
        max_rate = _q4(max(Decimal("0"), financing.interest_rate + cushion))

    years, cumulative_loss = _timeline(analysis)

    if shortfall == 0:
        primary_issue = "None - cash flow positive"
        paths: tuple[ImprovementPath, ...] = ()
    else:
        severities = [
            ("Low Rent", rent_percent),
            ("High Purchase Price", price_percent),
            ("High Expenses", expense_percent),
            ("High Interest Rate", abs(cushion) * 10),
        ]
        primary_issue = max(severities, key=lambda item: item[1])[0]
        wait = f"{years} years" if years is not None else "more than 30 years"
        paths = tuple(sorted(
            [
                ImprovementPath(
                    "increase_rent",
                    f"Increase rent by ${shortfall:,.0f}/month",
                    f"{rent_percent:.1f}%",
                    _change_bucket(rent_percent),
                ),
                ImprovementPath(
                    "reduce_price",
                    f"Reduce purchase price by ${price_cut:,.0f}",
                    f"{price_percent:.1f}%",
                    _change_bucket(price_percent),
                ),
                ImprovementPath(
                    "reduce_expenses",
                    f"Reduce expenses by ${shortfall:,.0f}/month",
                    f"{expense_percent:.1f}%",
                    _change_bucket(expense_percent),
                ),
                ImprovementPath(
                    "wait_for_rent_growth",
                    f"Wait {wait} for rent growth",
                    wait,
                    _waiting_bucket(years),
                ),
            ],
            key=lambda path: path.feasibility,
        ))

    return BreakEvenAnalysis(
        current_monthly_cash_flow=net,
        monthly_shortfall=shortfall,
        current_rent=rent,
        break_even_rent=rent + shortfall,
        rent_increase_needed=shortfall,
        rent_increase_percent=rent_percent,
        current_price=price,
        break_even_price=price - price_cut,
        price_reduction_needed=price_cut,
        price_reduction_percent=price_percent,
        current_monthly_expenses=expenses,
        max_monthly_expenses=max_expenses,
        max_annual_expenses=max_expenses * 12,
        expense_reduction_needed=shortfall,
        expense_reduction_percent=expense_percent,
        current_vacancy_rate=analysis.inputs.vacancy_rate,
        max_vacancy_rate=max_vacancy,
        break_even_occupancy=Decimal("100") - max_vacancy,
        current_interest_rate=financing.interest_rate,
        max_interest_rate=max_rate,
        years_to_positive_cash_flow=years,
        cumulative_loss_until_positive=cumulative_loss,
        primary_issue=primary_issue,
        quickest_path=paths,
    )


# (category, benchmark % of gross rent, difficulty, recommendations)
EXPENSE_BENCHMARKS = (
    ("Property Tax", Decimal("10"), "Hard", (
        "Appeal property tax assessment",
        "Check for available tax credits or exemptions",
        "Compare to similar properties in area",
    )),
    ("Insurance", Decimal("3"), "Easy", (
        "Shop for competitive quotes annually",
        "Increase deductible to lower premium",
        "Bundle with other policies for discounts",
        "Install security systems for discounts",
    )),
    ("Maintenance", Decimal("10"), "Medium", (
        "Preventive maintenance reduces emergency costs",
        "Build relationships with reliable contractors",
        "Consider warranty plans for major systems",
        "DIY minor repairs when possible",
    )),
    ("Property Management", Decimal("8"), "Medium", (
        "Negotiate fees with current manager",
        "Self-manage if you have time",
        "Compare multiple PM companies",
        "Ensure you're getting value for cost",
    )),
    ("Vacancy", Decimal("5"), "Easy", (
        "Screen tenants thoroughly",
        "Maintain property to retain tenants",
        "Competitive pricing to minimize vacancy",
        "Start marketing before current tenant leaves",
    )),
)


def analyze_expense_optimization(analysis: DealAnalysis) -> ExpenseOptimization:
    """Compare each controllable expense with its share-of-rent benchmark."""
    annual_rent = analysis.inputs.annual_rent
    annual = analysis.expenses.annual
    amounts = {
        "Property Tax": annual.property_tax,
        "Insurance": annual.insurance,
        "Maintenance": annual.maintenance,
        "Property Management": annual.property_management,
        "Vacancy": analysis.revenue.annual_vacancy_loss,
    }

    items: list[ExpenseOptimizationItem] = []
    for category, benchmark, difficulty, recommendations in EXPENSE_BENCHMARKS:
        amount = amounts[category]
        if category == "Vacancy":
            percent = analysis.inputs.vacancy_rate
        elif annual_rent > 0:
            percent = _q4(amount / annual_rent * 100)
        else:
            percent = Decimal("0")
        savings = Decimal("0.00")
        if percent > benchmark:
            savings = _q2(annual_rent * (percent - benchmark) / 100)
        items.append(ExpenseOptimizationItem(
            category=category,
            current_amount=amount,
            current_percent=percent,
            benchmark_percent=benchmark,
            potential_savings=savings,
            difficulty=difficulty,
            recommendations=recommendations,
        ))

    return ExpenseOptimization(
        items=tuple(items),
        total_potential_savings=sum((i.potential_savings for i in items), Decimal("0")),
    )
