"""Borrower-level mortgage qualification (GDS/TDS) and borrowing power.

GDS = (P&I + property tax + heat + 50% condo fees) / gross monthly income.
TDS = GDS housing costs + other debt payments, over the same income.

Pure functions. No I/O.
"""

from decimal import Decimal, ROUND_DOWN, ROUND_HALF_UP

from ca_analyzer.engine.debt import payment_factor
from ca_analyzer.engine.errors import InputValidationError
from ca_analyzer.engine.rates import RateTables, get_rate_tables
from ca_analyzer.engine.rules import stress_test_rate
from ca_analyzer.models.results import BorrowerProfile, BorrowingPower, QualificationResult

TWO_PLACES = Decimal("0.01")

# (max GDS, max TDS, min credit score)
A_LENDER_LIMITS = (Decimal("39"), Decimal("44"), 680)
B_LENDER_LIMITS = (Decimal("45"), Decimal("50"), 600)
MIN_CREDIT_SCORE = 500

# Borrowing power: limits by credit band
BORROWING_LIMITS = {
    "A-Lender": (Decimal("39"), Decimal("44")),
    "B-Lender": (Decimal("42"), Decimal("50")),
    "Private": (Decimal("50"), Decimal("60")),
}
PROPERTY_TAX_RATE = Decimal("1.1")  # % of value per year
BORROWING_LTV = Decimal("0.80")
BISECTION_STEPS = 50


def assess_qualification(
    borrower: BorrowerProfile,
    monthly_payment: Decimal,
    annual_property_tax: Decimal,
    monthly_condo_fees: Decimal = Decimal("0"),
) -> QualificationResult:
    monthly_income = borrower.annual_income / 12
    if monthly_income <= 0:
        return QualificationResult(
            gds_ratio=None,
            tds_ratio=None,
            lender_type="Unqualified",
            approval_odds="None",
            qualifies_prime=False,
            recommendation="Income must be greater than zero.",
        )

    housing = (
        monthly_payment
        + annual_property_tax / 12
        + borrower.monthly_heating
        + monthly_condo_fees * Decimal("0.5")
    )
    gds = (housing / monthly_income * 100).quantize(TWO_PLACES, ROUND_HALF_UP)
    tds = ((housing + borrower.monthly_debt_payments) / monthly_income * 100).quantize(
        TWO_PLACES, ROUND_HALF_UP
    )

    a_gds, a_tds, a_credit = A_LENDER_LIMITS
    b_gds, b_tds, b_credit = B_LENDER_LIMITS
    if borrower.credit_score < MIN_CREDIT_SCORE:
        lender, odds = "Unqualified", "None"
        recommendation = "Credit score is too low for most mortgages. Focus on credit repair."
    elif gds <= a_gds and tds <= a_tds and borrower.credit_score >= a_credit:
        lender, odds = "A-Lender", "High"
        recommendation = "Excellent profile. You likely qualify for prime rates with major banks."
    elif gds <= b_gds and tds <= b_tds and borrower.credit_score >= b_credit:
        lender, odds = "B-Lender", "Medium"
        recommendation = (
            "You may need an alternative lender (B-Lender) due to ratios or credit score. "
            "Expect higher rates."
        )
    else:
        lender, odds = "Private", "Low"
        recommendation = (
            "Traditional qualification is unlikely. Consider private lending "
            "or reducing debts/increasing income."
        )

    return QualificationResult(
        gds_ratio=gds,
        tds_ratio=tds,
        lender_type=lender,
        approval_odds=odds,
        qualifies_prime=lender == "A-Lender",
        recommendation=recommendation,
    )


def _lender_for_credit(credit_score: int) -> str:
    if credit_score >= A_LENDER_LIMITS[2]:
        return "A-Lender"
    if credit_score >= B_LENDER_LIMITS[2]:
        return "B-Lender"
    return "Private"


def calculate_borrowing_power(
    borrower: BorrowerProfile,
    down_payment_available: Decimal = Decimal("0"),
    interest_rate: Decimal = Decimal("5.5"),
    amortization_years: int = 25,
    *,
    tables: RateTables | None = None,
) -> BorrowingPower:
    """Highest purchase price whose stress-tested housing costs fit GDS and TDS.

    Bisects on price assuming 80% LTV, property tax at 1.1% of value and the
    borrower's heating cost; rounds down to the nearest $1,000. When the
    available down payment is under 20% of that price (but at least the
    minimum), the mortgage is grossed up by the CMHC premium.
    """
    tables = tables or get_rate_tables()
    if borrower.annual_income < 0:
        raise InputValidationError("Income cannot be negative")
    if amortization_years <= 0:
        raise InputValidationError("Amortization must be positive")

    monthly_income = borrower.annual_income / 12
    rate = stress_test_rate(interest_rate, tables=tables)
    factor = payment_factor(rate, amortization_years)
    lender = _lender_for_credit(borrower.credit_score)
    max_gds, max_tds = BORROWING_LIMITS[lender]

    max_housing = min(
        monthly_income * max_gds / 100,
        monthly_income * max_tds / 100 - borrower.monthly_debt_payments,
    )

    def housing_cost(price: Decimal) -> Decimal:
        return (
            price * BORROWING_LTV * factor
            + price * PROPERTY_TAX_RATE / 100 / 12
            + borrower.monthly_heating
        )

    best = Decimal("0")
    low, high = Decimal("0"), max(max_housing, Decimal("0")) * 300
    for _ in range(BISECTION_STEPS):
        mid = (low + high) / 2
        if housing_cost(mid) <= max_housing:
            low = best = mid
        else:
            high = mid

    price = (best / 1000).to_integral_value(ROUND_DOWN) * 1000
    mortgage = price * BORROWING_LTV
    payment = (mortgage * factor).quantize(TWO_PLACES, ROUND_HALF_UP)

    down_percent = Decimal("20")
    if price > 0 and 0 < down_payment_available < price * Decimal("0.2"):
        down_percent = down_payment_available / price * 100
        if down_percent >= tables.minimum_down_percent:
            tier = next(t for t in tables.cmhc_tiers if down_percent >= t.min_down_percent)
            mortgage = mortgage * (1 + tier.premium_rate / 100)

    return BorrowingPower(
        max_purchase_price=price,
        max_mortgage=mortgage.quantize(TWO_PLACES, ROUND_HALF_UP),
        down_payment_percent=down_percent.quantize(Decimal("0.1"), ROUND_HALF_UP),
        qualifying_rate=rate,
        monthly_payment=payment,
        gds_limit=max_gds,
        tds_limit=max_tds,
        lender_type=lender,
    )
