"""Investment risk model.

Nine banded factors (0-100, higher is riskier) in four categories, weighted
into an overall score, plus four fixed stress scenarios.

Pure functions. No I/O.
"""

from decimal import Decimal, ROUND_HALF_UP

from ca_analyzer.engine.rates import RateTables, get_rate_tables
from ca_analyzer.models.analysis import DealAnalysis
from ca_analyzer.models.property import PropertyInputs
from ca_analyzer.models.results import RiskAnalysis, RiskFactor, StressScenario

TWO_PLACES = Decimal("0.01")

CATEGORY_WEIGHTS = {
    "financial": Decimal("0.4"),
    "market": Decimal("0.3"),
    "operational": Decimal("0.2"),
    "liquidity": Decimal("0.1"),
}

REPAIR_SHOCK = Decimal("10000")

RECOMMENDATIONS = {
    "Low": (
        "This is a relatively low-risk investment suitable for most investor profiles. "
        "The deal metrics are solid with manageable risks."
    ),
    "Medium": (
        "This deal carries moderate risk. Suitable for experienced investors who can actively "
        "manage the identified risk factors. Consider mitigation strategies carefully."
    ),
    "High": (
        "HIGH RISK: This deal has significant risk factors that require careful consideration. "
        "Only suitable for experienced investors with strong reserves and risk management "
        "capabilities. Seriously consider the mitigation strategies or walking away."
    ),
    "Critical": (
        "CRITICAL RISK: This investment carries critical risks that could result in significant "
        "losses. Strongly recommend passing on this deal unless you can negotiate major "
        "improvements (lower price, higher rents, better terms) to reduce risk to acceptable levels."
    ),
}


def factor_level(score: Decimal) -> str:
    if score >= 75:
        return "Critical"
    if score >= 50:
        return "High"
    if score >= 25:
        return "Medium"
    return "Low"


def overall_level(score: Decimal) -> str:
    if score >= 70:
        return "Critical"
    if score >= 50:
        return "High"
    if score >= 30:
        return "Medium"
    return "Low"


def _factor(category: str, name: str, score: Decimal, description: str, impact: str, mitigation: tuple[str, ...]) -> RiskFactor:
    return RiskFactor(
        category=category,
        name=name,
        score=score,
        level=factor_level(score),
        description=description,
        impact=impact,
        mitigation=mitigation,
    )


def _cash_flow_risk(analysis: DealAnalysis) -> RiskFactor:
    net = analysis.cash_flow.monthly_net
    rent = analysis.revenue.gross_monthly_rent
    margin = abs(net) / rent * 100 if rent > 0 else Decimal("100")
    if net < 0:
        score = (80 + min(margin, Decimal("20"))).quantize(TWO_PLACES, ROUND_HALF_UP)
        description = f"Negative cash flow of ${abs(net):,.0f}/month"
    else:
        score = 60 if margin < 10 else 30 if margin < 20 else 10
        description = f"Cash flow margin of {margin:.1f}% is {'tight' if margin < 15 else 'healthy'}"
    return _factor(
        "financial", "Cash Flow Risk", score, description,
        "A tight cash flow margin means small increases in expenses or vacancy could turn the deal negative",
        (
            "Negotiate a lower purchase price",
            "Increase rent if market supports it",
            "Reduce operating expenses",
            "Build a cash reserve for shortfalls",
        ),
    )


def _leverage_risk(analysis: DealAnalysis) -> RiskFactor:
    ltv = analysis.financing.loan_to_value
    if ltv >= 95:
        score = 85
    elif ltv >= 90:
        score = 65
    elif ltv >= 80:
        score = 40
    else:
        score = 15
    return _factor(
        "financial", "Leverage Risk", score,
        f"Loan-to-value ratio of {ltv:.1f}% means {'high' if ltv >= 80 else 'moderate'} leverage",
        "High leverage amplifies losses if property value declines, and limits refinancing options",
        (
            "Increase down payment to reduce LTV",
            "Accelerate principal payments",
            "Focus on value-add improvements to build equity",
            "Avoid this deal if market is at peak pricing",
        ),
    )


def _dscr_risk(analysis: DealAnalysis) -> RiskFactor:
    dscr = analysis.metrics.dscr
    if analysis.financing.annual_payment == 0:
        score, description = 10, "No mortgage debt to service"
    else:
        if dscr < 1:
            score = 90
        elif dscr < Decimal("1.15"):
            score = 60
        elif dscr < Decimal("1.25"):
            score = 30
        else:
            score = 10
        verdict = "below lender requirements" if dscr < Decimal("1.15") else "acceptable"
        description = f"DSCR of {dscr:.2f} is {verdict}"
    return _factor(
        "financial", "Debt Service Coverage Risk", score, description,
        "Commercial lenders typically require 1.25+ DSCR. Low DSCR limits financing options "
        "and signals cash flow stress",
        (
            "Increase net operating income (raise rents, reduce expenses)",
            "Reduce mortgage payment (larger down payment, better rate)",
            "Consider owner financing or private money",
        ),
    )


def _vacancy_risk(inputs: PropertyInputs) -> RiskFactor:
    vacancy = inputs.vacancy_rate
    if vacancy >= 10:
        score = 70
    elif vacancy >= 7:
        score = 45
    elif vacancy >= 5:
        score = 25
    else:
        score = 10
    verdict = "exceeds typical market average" if vacancy > 7 else "is within normal range"
    return _factor(
        "market", "Vacancy Risk", score, f"Vacancy rate of {vacancy}% {verdict}",
        "Higher vacancy means lost income and increased turn costs. Also signals weak demand "
        "or poor property management",
        (
            "Improve property condition to attract quality tenants",
            "Price rent competitively based on market comps",
            "Screen tenants rigorously to improve retention",
            "Offer lease incentives for longer terms",
        ),
    )


def _age_risk(inputs: PropertyInputs, as_of_year: int) -> RiskFactor:
    if inputs.year_built is None:
        score = 40
        description = "Year built unknown; assume capital improvements may be needed"
    else:
        age = max(0, as_of_year - inputs.year_built)
        if age >= 50:
            score = 65
        elif age >= 30:
            score = 40
        elif age >= 15:
            score = 20
        else:
            score = 10
        scale = "major" if age >= 40 else "moderate"
        description = (
            f"Property built in {inputs.year_built} ({age} years old) may require "
            f"{scale} capital improvements"
        )
    return _factor(
        "market", "Property Age Risk", score, description,
        "Older properties have higher maintenance costs, deferred maintenance, and systems "
        "nearing end of life (roof, HVAC, plumbing)",
        (
            "Get a thorough inspection to identify deferred maintenance",
            "Budget 10-15% of purchase price for capital improvements in first 2 years",
            "Negotiate price reduction based on needed repairs",
            "Consider properties with recent major system upgrades",
        ),
    )


def _valuation_risk(analysis: DealAnalysis) -> RiskFactor:
    grm = analysis.metrics.grm
    if grm > 20:
        score = 75
    elif grm > 15:
        score = 50
    elif grm > 12:
        score = 25
    else:
        score = 15
    verdict = "overpriced relative to income" if grm > 15 else "reasonable valuation"
    return _factor(
        "market", "Valuation Risk", score, f"GRM of {grm:.1f} suggests {verdict}",
        "Overpaying leaves little room for appreciation and makes exit difficult. "
        "Limits refinance and resale options",
        (
            "Order an independent appraisal",
            "Analyze recent comparable sales",
            "Negotiate price down to achieve GRM under 12",
            "Walk away if seller won't negotiate",
        ),
    )


def _management_risk(inputs: PropertyInputs) -> RiskFactor:
    managed = inputs.property_management_percent > 0
    description = (
        f"Professional property management at {inputs.property_management_percent}% reduces operational burden"
        if managed
        else "Self-management saves money but requires significant time and expertise"
    )
    return _factor(
        "operational", "Property Management Risk", 15 if managed else 50, description,
        "Self-management risk includes: legal compliance, tenant disputes, maintenance "
        "emergencies, and time commitment",
        (
            "Hire professional property management (8-10% of rent)",
            "If self-managing: educate yourself on landlord-tenant law",
            "Build a network of reliable contractors",
            "Use property management software for organization",
        ),
    )


def _maintenance_risk(analysis: DealAnalysis) -> RiskFactor:
    share = analysis.expenses.annual.maintenance / analysis.acquisition.purchase_price * 100
    if share < 1:
        score = 70
    elif share < Decimal("1.5"):
        score = 40
    elif share < Decimal("2.5"):
        score = 20
    else:
        score = 10
    verdict = "insufficient" if share < 1 else "adequate"
    return _factor(
        "operational", "Maintenance Risk", score,
        f"Maintenance budget at {share:.1f}% of property value is {verdict}",
        "Underfunding maintenance leads to deferred repairs, tenant complaints, and emergency "
        "expenses that kill cash flow",
        (
            "Budget at least 1% of property value annually",
            "Increase to 2%+ for older properties",
            "Maintain separate capital improvement reserve",
            "Address issues promptly to avoid escalation",
        ),
    )


def _liquidity_risk(analysis: DealAnalysis) -> RiskFactor:
    cash = analysis.acquisition.total_cash_needed
    if cash > 200000:
        score = 60
    elif cash > 100000:
        score = 35
    else:
        score = 15
    return _factor(
        "liquidity", "Liquidity Risk", score,
        f"Total cash required of ${cash:,.0f} represents significant capital commitment",
        "Large capital requirements tie up liquidity and limit ability to handle emergencies "
        "or pursue other opportunities",
        (
            "Ensure you have 6 months of reserves after closing",
            "Don't invest your last dollar into the property",
            "Consider partnerships to split capital requirements",
            "Line up backup financing (HELOC, private lenders)",
        ),
    )


def stress_scenarios(analysis: DealAnalysis) -> tuple[StressScenario, ...]:
    rent = analysis.revenue.gross_monthly_rent
    mortgage = analysis.financing.total_mortgage_with_insurance
    price = analysis.acquisition.purchase_price
    vacancy_hit = (rent * Decimal("0.05")).quantize(TWO_PLACES, ROUND_HALF_UP)
    rate_hit = (mortgage * Decimal("0.02")).quantize(TWO_PLACES, ROUND_HALF_UP)
    return (
        StressScenario(
            scenario="Vacancy increases 5 points",
            description="Vacancy rises five percentage points above the current assumption",
            monthly_cash_flow_change=-vacancy_hit,
            annual_cash_flow_change=-vacancy_hit * 12,
            impact="Would require rent increase of 5% to maintain current cash flow",
        ),
        StressScenario(
            scenario="Interest rate increases 2%",
            description="Rate rises two percentage points at renewal (interest-only approximation)",
            monthly_cash_flow_change=-(rate_hit / 12).quantize(TWO_PLACES, ROUND_HALF_UP),
            annual_cash_flow_change=-rate_hit,
            impact="Would reduce cash flow at renewal by the added interest cost",
        ),
        StressScenario(
            scenario="Major repair needed ($10,000)",
            description="One-time unbudgeted capital repair",
            monthly_cash_flow_change=-(REPAIR_SHOCK / 12).quantize(TWO_PLACES, ROUND_HALF_UP),
            annual_cash_flow_change=-REPAIR_SHOCK,
            impact="Would wipe out 12+ months of cash flow for typical deal",
        ),
        StressScenario(
            scenario="Property value declines 10%",
            description="Market value falls 10% with no immediate change to operations",
            monthly_cash_flow_change=Decimal("0"),
            annual_cash_flow_change=Decimal("0"),
            impact=f"Equity would decrease by ${price * Decimal('0.1'):,.0f}, limiting refinance options",
        ),
    )


def _mean(factors: list[RiskFactor]) -> Decimal:
    return Decimal(sum(f.score for f in factors)) / len(factors)


def _suitable_for(score: Decimal) -> tuple[str, ...]:
    investors: list[str] = []
    if score < 30:
        investors += ["First-time investors", "Passive investors", "Retirement portfolios"]
    if 20 <= score < 60:
        investors += ["Experienced investors", "Active investors", "Growth-focused investors"]
    if score >= 40:
        investors += ["Advanced investors", "Value-add specialists", "High-risk tolerance investors"]
    return tuple(investors)


def analyze_risks(
    inputs: PropertyInputs,
    analysis: DealAnalysis,
    *,
    as_of_year: int | None = None,
    tables: RateTables | None = None,
) -> RiskAnalysis:
    """Score the nine risk factors and aggregate them.

    Property age is measured against `as_of_year`, which defaults to the
    rate tables' tax year rather than the wall clock.
    """
    if as_of_year is None:
        as_of_year = (tables or get_rate_tables()).tax_year

    factors = [
        _cash_flow_risk(analysis),
        _leverage_risk(analysis),
        _dscr_risk(analysis),
        _vacancy_risk(inputs),
        _age_risk(inputs, as_of_year),
        _valuation_risk(analysis),
        _management_risk(inputs),
        _maintenance_risk(analysis),
        _liquidity_risk(analysis),
    ]

    categories = {
        name: _mean([f for f in factors if f.category == name]) for name in CATEGORY_WEIGHTS
    }
    overall = sum(
        (categories[name] * weight for name, weight in CATEGORY_WEIGHTS.items()), Decimal("0")
    ).quantize(TWO_PLACES, ROUND_HALF_UP)
    level = overall_level(overall)

    if overall < 30:
        tolerance = "Conservative"
    elif overall < 55:
        tolerance = "Moderate"
    else:
        tolerance = "Aggressive"

    return RiskAnalysis(
        overall_score=overall,
        overall_level=level,
        financial_risk=categories["financial"].quantize(TWO_PLACES, ROUND_HALF_UP),
        market_risk=categories["market"].quantize(TWO_PLACES, ROUND_HALF_UP),
        operational_risk=categories["operational"].quantize(TWO_PLACES, ROUND_HALF_UP),
        liquidity_risk=categories["liquidity"].quantize(TWO_PLACES, ROUND_HALF_UP),
        factors=tuple(factors),
        stress_scenarios=stress_scenarios(analysis),
        critical_risks=tuple(f for f in factors if f.level == "Critical"),
        high_risks=tuple(f for f in factors if f.level == "High"),
        risk_tolerance=tolerance,
        suitable_for=_suitable_for(overall),
        recommendation=RECOMMENDATIONS[level],
    )
