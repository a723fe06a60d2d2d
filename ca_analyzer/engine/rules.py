"""Canadian mortgage and closing rules.

CMHC mortgage loan insurance, provincial land transfer tax with rebates,
the OSFI B-20 stress test, and down payment minimums.

Pure functions over RateTables. No I/O.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

from ca_analyzer.engine.debt import monthly_payment, remaining_balance
from ca_analyzer.engine.errors import InputValidationError
from ca_analyzer.engine.rates import Bracket, RateTables, get_rate_tables
from ca_analyzer.models.property import PropertyCondition, Province

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")
FOUR_PLACES = Decimal("0.0001")

_PROVINCE_LTT_LABELS = {
    Province.ON: "Ontario Provincial LTT",
    Province.BC: "BC Property Transfer Tax",
    Province.NS: "Nova Scotia Deed Transfer Tax",
    Province.QC: "Quebec Welcome Tax (Montreal rates)",
}

# Per square foot: (low, mid, high)
RENOVATION_COST_PER_SQFT: dict[PropertyCondition, tuple[int, int, int]] = {
    PropertyCondition.MOVE_IN_READY: (0, 0, 0),
    PropertyCondition.COSMETIC: (15, 25, 40),
    PropertyCondition.MODERATE_RENO: (40, 65, 90),
    PropertyCondition.HEAVY_RENO: (100, 150, 200),
    PropertyCondition.GUT_JOB: (150, 200, 300),
}


@dataclass(frozen=True)
class CMHCResult:
    mortgage_amount: Decimal
    premium_rate: Decimal  # % of mortgage amount
    premium: Decimal
    total_mortgage: Decimal
    insurance_required: bool
    eligible: bool
    message: str


@dataclass(frozen=True)
class LandTransferTaxResult:
    provincial_tax: Decimal
    municipal_tax: Decimal
    total_tax: Decimal
    rebate: Decimal
    net_tax: Decimal
    breakdown: tuple[str, ...]


@dataclass(frozen=True)
class StressTestResult:
    stress_test_rate: Decimal
    contract_payment: Decimal
    qualification_payment: Decimal
    passes: bool
    message: str


@dataclass(frozen=True)
class DownPaymentCheck:
    valid: bool
    minimum_percent: Decimal
    message: str


@dataclass(frozen=True)
class RenovationEstimate:
    low: Decimal
    mid: Decimal
    high: Decimal


def _money(amount: Decimal) -> str:
    return f"${amount:,.2f}"


def marginal_bracket_tax(amount: Decimal, brackets: tuple[Bracket, ...]) -> Decimal:
    """Integrate marginal brackets: each slice is taxed at its own rate."""
    tax = Decimal("0")
    for bracket in brackets:
        if amount <= bracket.lower:
            break
        top = amount if bracket.upper is None else min(amount, bracket.upper)
        tax += (top - bracket.lower) * bracket.rate / 100
    return tax


def calculate_cmhc_insurance(
    purchase_price: Decimal,
    down_payment_percent: Decimal,
    *,
    tables: RateTables | None = None,
) -> CMHCResult:
    """CMHC premium on the mortgage amount, tiered by down payment percent.

    Below the minimum down payment raises InputValidationError. Over the price
    cap with less than 20% down the mortgage is uninsurable; that is returned
    as an ineligible result with the plain mortgage so financing still works.
    """
    tables = tables or get_rate_tables()
    if purchase_price <= 0:
        raise InputValidationError("Purchase price must be positive")
    if down_payment_percent < tables.minimum_down_percent:
        raise InputValidationError(
            f"Minimum {tables.minimum_down_percent}% down payment required"
        )

    mortgage = (purchase_price * (1 - down_payment_percent / 100)).quantize(TWO_PLACES, ROUND_HALF_UP)
    no_insurance_tier = tables.cmhc_tiers[0].min_down_percent

    if purchase_price > tables.cmhc_price_cap and down_payment_percent < no_insurance_tier:
        logger.warning(
            "CMHC unavailable: price %s over cap with %s%% down", purchase_price, down_payment_percent
        )
        return CMHCResult(
            mortgage_amount=mortgage,
            premium_rate=Decimal("0"),
            premium=Decimal("0"),
            total_mortgage=mortgage,
            insurance_required=False,
            eligible=False,
            message=(
                f"Properties over {_money(tables.cmhc_price_cap)} require "
                f"{no_insurance_tier}% down - CMHC insurance not available"
            ),
        )

    if down_payment_percent >= no_insurance_tier:
        return CMHCResult(
            mortgage_amount=mortgage,
            premium_rate=Decimal("0"),
            premium=Decimal("0"),
            total_mortgage=mortgage,
            insurance_required=False,
            eligible=True,
            message=f"No CMHC insurance required with {no_insurance_tier}%+ down payment",
        )

    tier = next(t for t in tables.cmhc_tiers if down_payment_percent >= t.min_down_percent)
    premium = (mortgage * tier.premium_rate / 100).quantize(TWO_PLACES, ROUND_HALF_UP)
    return CMHCResult(
        mortgage_amount=mortgage,
        premium_rate=tier.premium_rate,
        premium=premium,
        total_mortgage=mortgage + premium,
        insurance_required=True,
        eligible=True,
        message=f"CMHC insurance premium: {tier.premium_rate}% of mortgage amount",
    )


def _is_toronto(province: Province, city: str | None) -> bool:
    return province is Province.ON and city is not None and "toronto" in city.lower()


def calculate_land_transfer_tax(
    purchase_price: Decimal,
    province: Province,
    city: str | None = None,
    is_first_time_buyer: bool = False,
    *,
    tables: RateTables | None = None,
) -> LandTransferTaxResult:
    """Provincial (and Toronto municipal) land transfer tax, net of rebates."""
    tables = tables or get_rate_tables()
    if province not in tables.land_transfer:
        raise InputValidationError(f"Unsupported province: {province}")
    if purchase_price < 0:
        raise InputValidationError("Purchase price cannot be negative")

    breakdown: list[str] = []
    provincial = marginal_bracket_tax(purchase_price, tables.land_transfer[province]).quantize(
        TWO_PLACES, ROUND_HALF_UP
    )
    municipal = Decimal("0.00")
    rebate = Decimal("0")

    if province is Province.AB:
        breakdown.append("Alberta has no land transfer tax")
        breakdown.append("Title registration fee: ~$300 (not included in LTT calculation)")
    else:
        breakdown.append(f"{_PROVINCE_LTT_LABELS[province]}: {_money(provincial)}")

    if _is_toronto(province, city):
        municipal = marginal_bracket_tax(purchase_price, tables.toronto_municipal).quantize(
            TWO_PLACES, ROUND_HALF_UP
        )
        breakdown.append(f"Toronto Municipal LTT: {_money(municipal)}")

    if is_first_time_buyer:
        rule = tables.first_time_buyer_rebates.get(province)
        if rule is not None and (rule.price_limit is None or purchase_price <= rule.price_limit):
            rebate += min(rule.max_rebate, provincial)
        if municipal > 0:
            rebate += min(tables.toronto_first_time_buyer_rebate.max_rebate, municipal)
        if rebate > 0:
            breakdown.append(f"First-time buyer rebate: -{_money(rebate)}")

    if province is Province.QC:
        breakdown.append("Note: Welcome tax varies by municipality")

    total = provincial + municipal
    return LandTransferTaxResult(
        provincial_tax=provincial,
        municipal_tax=municipal,
        total_tax=total,
        rebate=rebate,
        net_tax=max(Decimal("0"), total - rebate),
        breakdown=tuple(breakdown),
    )


def stress_test_rate(contract_rate: Decimal, *, tables: RateTables | None = None) -> Decimal:
    tables = tables or get_rate_tables()
    return max(contract_rate + tables.stress_test_buffer, tables.stress_test_floor)


def calculate_stress_test(
    mortgage_amount: Decimal,
    contract_rate: Decimal,
    amortization_years: int,
    *,
    tables: RateTables | None = None,
) -> StressTestResult:
    """OSFI B-20: qualify at the greater of contract + buffer or the floor.

    No income is known here, so `passes` is always True; borrower-level
    checks live in engine.qualification.
    """
    rate = stress_test_rate(contract_rate, tables=tables)
    qualification = calculate_mortgage_payment(mortgage_amount, rate, amortization_years)
    return StressTestResult(
        stress_test_rate=rate,
        contract_payment=calculate_mortgage_payment(mortgage_amount, contract_rate, amortization_years),
        qualification_payment=qualification,
        passes=True,
        message=f"Must qualify at {rate:.2f}% (payment: {_money(qualification)}/mo)",
    )


def calculate_mortgage_payment(principal: Decimal, annual_rate: Decimal, years: int) -> Decimal:
    return monthly_payment(principal, annual_rate, years)


def calculate_mortgage_balance(
    principal: Decimal, annual_rate: Decimal, total_years: int, elapsed_years: int
) -> Decimal:
    return remaining_balance(principal, annual_rate, total_years, elapsed_years)


def validate_down_payment(purchase_price: Decimal, down_payment_percent: Decimal) -> DownPaymentCheck:
    """Federal minimum: 5% to $500K, 10% on the portion to $1M, 20% above."""
    if purchase_price <= 0:
        raise InputValidationError("Purchase price must be positive")
    if purchase_price <= 500000:
        minimum = Decimal("5")
    elif purchase_price <= 1000000:
        required = Decimal("25000") + (purchase_price - 500000) * Decimal("0.10")
        minimum = required / purchase_price * 100
    else:
        minimum = Decimal("20")
    minimum = minimum.quantize(FOUR_PLACES, ROUND_HALF_UP)

    valid = down_payment_percent >= minimum
    message = (
        "Down payment meets requirements"
        if valid
        else f"Minimum {minimum:.1f}% down payment required"
    )
    return DownPaymentCheck(valid=valid, minimum_percent=minimum, message=message)


def estimate_renovation_cost(condition: PropertyCondition, square_feet: int) -> RenovationEstimate:
    low, mid, high = RENOVATION_COST_PER_SQFT[condition]
    sqft = Decimal(max(square_feet, 0))
    return RenovationEstimate(low=low * sqft, mid=mid * sqft, high=high * sqft)


def calculate_breakeven_occupancy(total_expenses: Decimal, gross_income: Decimal) -> Decimal:
    """Occupancy percent at which income covers expenses; 100 with no income."""
    if gross_income == 0:
        return Decimal("100")
    return (total_expenses / gross_income * 100).quantize(FOUR_PLACES, ROUND_HALF_UP)
