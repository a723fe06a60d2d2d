"""Deal analyzer: composes the rule and debt modules into a full DealAnalysis.

Pure computation. No I/O. PropertyInputs in, DealAnalysis out.
Order: acquisition -> financing -> revenue -> expenses -> cash flow ->
metrics -> BRRRR -> market comparison -> warnings/flags -> score.
"""

import logging
from decimal import Decimal, ROUND_HALF_UP

from ca_analyzer.engine.debt import monthly_payment, remaining_balance
from ca_analyzer.engine.errors import InputValidationError
from ca_analyzer.engine.qualification import assess_qualification
from ca_analyzer.engine.rates import RateTables, get_rate_tables
from ca_analyzer.engine.rules import (
    CMHCResult,
    StressTestResult,
    calculate_breakeven_occupancy,
    calculate_cmhc_insurance,
    calculate_land_transfer_tax,
    calculate_stress_test,
    estimate_renovation_cost,
    validate_down_payment,
)
from ca_analyzer.engine.scoring import score_deal
from ca_analyzer.models.analysis import (
    AcquisitionCosts,
    BRRRRAnalysis,
    CashFlow,
    DealAnalysis,
    DealAnalysisDraft,
    DealFlags,
    ExpenseBreakdown,
    ExpenseLines,
    Financing,
    MarketComparison,
    Metrics,
    Revenue,
)
from ca_analyzer.models.property import PropertyCondition, PropertyInputs, Strategy
from ca_analyzer.models.results import BorrowerProfile, QualificationResult

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")
FOUR_PLACES = Decimal("0.0001")

LOW_DSCR_THRESHOLD = Decimal("1.2")
VERY_LOW_CAP_RATE = Decimal("3")
HIGH_BREAKEVEN_OCCUPANCY = Decimal("80")
HIGH_EXPENSE_RATIO = Decimal("50")
HIGH_LTV_DOWN_PERCENT = Decimal("20")

_NON_NEGATIVE_FIELDS = (
    "monthly_rent",
    "other_income",
    "property_tax_annual",
    "insurance_annual",
    "property_management_percent",
    "maintenance_percent",
    "utilities_monthly",
    "hoa_condo_fees_monthly",
    "other_expenses_monthly",
    "renovation_cost",
    "interest_rate",
)


def _q2(value: Decimal) -> Decimal:
    return value.quantize(TWO_PLACES, ROUND_HALF_UP)


def _q4(value: Decimal) -> Decimal:
    return value.quantize(FOUR_PLACES, ROUND_HALF_UP)


def effective_down_payment_percent(inputs: PropertyInputs) -> Decimal:
    """Down payment percent, derived from the amount when one is given."""
    if inputs.down_payment_amount is not None:
        return inputs.down_payment_amount / inputs.purchase_price * 100
    return inputs.down_payment_percent


def validate_inputs(inputs: PropertyInputs, tables: RateTables) -> None:
    """Raise InputValidationError for any hard rule violation."""
    if inputs.purchase_price <= 0:
        raise InputValidationError("Purchase price must be positive")
    if inputs.province not in tables.land_transfer:
        raise InputValidationError(f"Unsupported province: {inputs.province}")
    if inputs.amortization_years <= 0:
        raise InputValidationError("Amortization period must be positive")
    if not Decimal("0") <= inputs.vacancy_rate <= Decimal("100"):
        raise InputValidationError("Vacancy rate must be between 0 and 100")
    for name in _NON_NEGATIVE_FIELDS:
        if getattr(inputs, name) < 0:
            raise InputValidationError(f"{name} cannot be negative")
    for name in ("after_repair_value", "legal_fees", "inspection_cost", "appraisal_cost"):
        value = getattr(inputs, name)
        if value is not None and value < 0:
            raise InputValidationError(f"{name} cannot be negative")
    if inputs.down_payment_amount is not None and inputs.down_payment_amount < 0:
        raise InputValidationError("down_payment_amount cannot be negative")
    if inputs.mortgage_principal < 0:
        raise InputValidationError("Down payment cannot exceed the purchase price")
    if effective_down_payment_percent(inputs) < tables.minimum_down_percent:
        raise InputValidationError(
            f"Minimum {tables.minimum_down_percent}% down payment required"
        )


def _acquisition(inputs: PropertyInputs, tables: RateTables) -> AcquisitionCosts:
    defaults = tables.closing_costs
    ltt = calculate_land_transfer_tax(
        inputs.purchase_price,
        inputs.province,
        inputs.city,
        inputs.is_first_time_buyer,
        tables=tables,
    )
    legal = inputs.legal_fees if inputs.legal_fees is not None else defaults.legal_fees
    inspection = inputs.inspection_cost if inputs.inspection_cost is not None else defaults.inspection
    appraisal = inputs.appraisal_cost if inputs.appraisal_cost is not None else defaults.appraisal
    down = _q2(inputs.down_payment)

    total = down + ltt.net_tax + legal + inspection + appraisal + defaults.title_insurance
    return AcquisitionCosts(
        purchase_price=inputs.purchase_price,
        down_payment=down,
        land_transfer_tax=ltt.net_tax,
        land_transfer_tax_breakdown=ltt.breakdown,
        legal_fees=legal,
        inspection=inspection,
        appraisal=appraisal,
        other_closing_costs=defaults.title_insurance,
        total_acquisition_cost=_q2(total),
        renovation_cost=inputs.renovation_cost,
        total_cash_needed=_q2(total + inputs.renovation_cost),
    )


def _financing(inputs: PropertyInputs, cmhc: CMHCResult, stress: StressTestResult) -> Financing:
    total = cmhc.total_mortgage
    payment = monthly_payment(total, inputs.interest_rate, inputs.amortization_years)
    return Financing(
        mortgage_amount=cmhc.mortgage_amount,
        cmhc_premium=cmhc.premium,
        cmhc_premium_rate=cmhc.premium_rate,
        cmhc_message=cmhc.message,
        total_mortgage_with_insurance=total,
        interest_rate=inputs.interest_rate,
        amortization_years=inputs.amortization_years,
        monthly_payment=payment,
        annual_payment=payment * 12,
        stress_test_rate=stress.stress_test_rate,
        stress_test_payment=stress.qualification_payment,
        loan_to_value=_q4(total / inputs.purchase_price * 100),
    )


def _revenue(inputs: PropertyInputs) -> Revenue:
    total = inputs.monthly_rent + inputs.other_income
    vacancy = _q2(total * inputs.vacancy_rate / 100)
    effective = total - vacancy
    return Revenue(
        gross_monthly_rent=inputs.monthly_rent,
        other_monthly_income=inputs.other_income,
        total_monthly_income=total,
        vacancy_loss_monthly=vacancy,
        effective_monthly_income=effective,
        annual_gross_income=total * 12,
        annual_vacancy_loss=vacancy * 12,
        annual_effective_income=effective * 12,
    )


def _expenses(inputs: PropertyInputs, financing: Financing) -> ExpenseBreakdown:
    lines = {
        "mortgage": financing.monthly_payment,
        "property_tax": _q2(inputs.property_tax_annual / 12),
        "insurance": _q2(inputs.insurance_annual / 12),
        "property_management": _q2(inputs.monthly_rent * inputs.property_management_percent / 100),
        "maintenance": _q2(inputs.monthly_rent * inputs.maintenance_percent / 100),
        "utilities": inputs.utilities_monthly,
        "hoa_fees": inputs.hoa_condo_fees_monthly,
        "other": inputs.other_expenses_monthly,
    }
    monthly = ExpenseLines(**lines, total=sum(lines.values(), Decimal("0")))
    annual_lines = {name: value * 12 for name, value in lines.items()}
    annual = ExpenseLines(**annual_lines, total=monthly.total * 12)
    return ExpenseBreakdown(monthly=monthly, annual=annual)


def _cash_flow(revenue: Revenue, expenses: ExpenseBreakdown) -> CashFlow:
    net = revenue.effective_monthly_income - expenses.monthly.total
    noi = revenue.effective_monthly_income - expenses.monthly.operating
    return CashFlow(monthly_net=net, annual_net=net * 12, monthly_noi=noi, annual_noi=noi * 12)


def _metrics(
    inputs: PropertyInputs,
    acquisition: AcquisitionCosts,
    financing: Financing,
    revenue: Revenue,
    expenses: ExpenseBreakdown,
    cash_flow: CashFlow,
) -> Metrics:
    price = inputs.purchase_price
    cap_rate = cash_flow.annual_noi / price * 100

    coc = Decimal("0")
    if acquisition.total_acquisition_cost > 0:
        coc = cash_flow.annual_net / acquisition.total_acquisition_cost * 100

    dscr = Decimal("0")
    if financing.annual_payment > 0:
        dscr = cash_flow.annual_noi / financing.annual_payment

    grm = Decimal("0")
    if inputs.annual_rent > 0:
        grm = price / inputs.annual_rent

    expense_ratio = Decimal("0")
    if revenue.annual_gross_income > 0:
        expense_ratio = expenses.annual.operating / revenue.annual_gross_income * 100

    return Metrics(
        cap_rate=_q4(cap_rate),
        cash_on_cash_return=_q4(coc),
        dscr=_q4(dscr),
        grm=_q4(grm),
        expense_ratio=_q4(expense_ratio),
        breakeven_occupancy=calculate_breakeven_occupancy(
            expenses.annual.total, revenue.annual_gross_income
        ),
    )


def _brrrr(
    inputs: PropertyInputs,
    acquisition: AcquisitionCosts,
    financing: Financing,
    cash_flow: CashFlow,
    tables: RateTables,
) -> BRRRRAnalysis | None:
    """Refinance at a fixed LTV of ARV after exactly one year of payments."""
    if inputs.strategy is not Strategy.BRRRR or inputs.after_repair_value is None:
        return None

    total_investment = acquisition.total_cash_needed
    ltv = tables.brrrr_refinance_ltv
    refinance = _q2(inputs.after_repair_value * ltv / 100)
    balance = remaining_balance(
        financing.total_mortgage_with_insurance,
        inputs.interest_rate,
        inputs.amortization_years,
        1,
    )
    recovered = max(Decimal("0"), refinance - balance)
    left = total_investment - recovered
    infinite = left <= 0

    new_payment = monthly_payment(refinance, inputs.interest_rate, inputs.amortization_years)
    cf_after_refi = cash_flow.monthly_net - (new_payment - financing.monthly_payment)
    effective_coc = None if infinite else _q4(cf_after_refi * 12 / left * 100)

    return BRRRRAnalysis(
        total_investment=total_investment,
        after_repair_value=inputs.after_repair_value,
        refinance_ltv_percent=ltv,
        refinance_amount=refinance,
        original_mortgage_balance=balance,
        cash_recovered=recovered,
        cash_left_in_deal=left,
        infinite_return=infinite,
        new_monthly_payment=new_payment,
        cash_flow_after_refi=cf_after_refi,
        effective_coc_return=effective_coc,
    )


def _vs_market(diff: Decimal, places: int) -> str:
    side = "above" if diff > 0 else "below"
    return f"{abs(diff):.{places}f}% {side} market"


def _market_comparison(inputs: PropertyInputs, metrics: Metrics, tables: RateTables) -> MarketComparison:
    key, benchmark = tables.benchmark_for(inputs.city)
    avg_cap = benchmark.cap_rate(inputs.property_type.benchmark_class)
    cap_delta = metrics.cap_rate - avg_cap
    rent_to_price = _q4(inputs.monthly_rent / inputs.purchase_price * 100)
    return MarketComparison(
        market_key=key,
        market_avg_cap_rate=avg_cap,
        cap_rate_delta=cap_delta,
        cap_rate_vs_market=_vs_market(cap_delta, 1),
        market_avg_rent_to_price=benchmark.rent_to_price,
        deal_rent_to_price=rent_to_price,
        rent_to_price_vs_market=_vs_market(rent_to_price - benchmark.rent_to_price, 2),
        average_days_on_market=benchmark.days_on_market,
    )


def _warnings_and_flags(
    inputs: PropertyInputs,
    cmhc: CMHCResult,
    financing: Financing,
    cash_flow: CashFlow,
    metrics: Metrics,
    market: MarketComparison,
    qualification: QualificationResult | None,
    tables: RateTables,
) -> tuple[tuple[str, ...], DealFlags]:
    down_percent = effective_down_payment_percent(inputs)
    flags = DealFlags(
        negative_cash_flow=cash_flow.monthly_net < 0,
        low_dscr=financing.annual_payment > 0 and metrics.dscr < LOW_DSCR_THRESHOLD,
        below_market_cap_rate=metrics.cap_rate < market.market_avg_cap_rate,
        high_ltv=down_percent < HIGH_LTV_DOWN_PERCENT,
        fails_stress_test=qualification is not None and not qualification.qualifies_prime,
        cmhc_ineligible=not cmhc.eligible,
    )

    warnings: list[str] = []
    if flags.negative_cash_flow:
        warnings.append(f"Negative cash flow: -${abs(cash_flow.monthly_net):,.2f}/mo")
    if flags.low_dscr:
        warnings.append(f"DSCR below 1.2 ({metrics.dscr:.2f}) - may face lender challenges")
    if flags.below_market_cap_rate:
        warnings.append(f"Cap rate {abs(market.cap_rate_delta):.1f}% below market average")
    if metrics.cap_rate < VERY_LOW_CAP_RATE:
        warnings.append(f"Very low cap rate ({metrics.cap_rate:.1f}%) - difficult to cash flow")
    if metrics.breakeven_occupancy > HIGH_BREAKEVEN_OCCUPANCY:
        warnings.append(
            f"High breakeven occupancy ({metrics.breakeven_occupancy:.1f}%) - limited margin for error"
        )
    if flags.high_ltv and inputs.purchase_price > tables.cmhc_price_cap:
        warnings.append("Properties over $1M require 20% down payment for conventional financing")
    if flags.cmhc_ineligible:
        warnings.append(cmhc.message)
    if inputs.property_condition in (PropertyCondition.HEAVY_RENO, PropertyCondition.GUT_JOB):
        warnings.append("Major renovations required - ensure budget includes contingency (15-20%)")
    if (
        inputs.renovation_cost == 0
        and inputs.square_feet
        and inputs.property_condition is not PropertyCondition.MOVE_IN_READY
    ):
        estimate = estimate_renovation_cost(inputs.property_condition, inputs.square_feet)
        warnings.append(
            f"No renovation budget entered - {inputs.property_condition.value.replace('_', ' ')} work on "
            f"{inputs.square_feet:,} sq ft typically runs ${estimate.low:,.0f}-${estimate.high:,.0f}"
        )
    if metrics.expense_ratio > HIGH_EXPENSE_RATIO:
        warnings.append(f"High expense ratio ({metrics.expense_ratio:.1f}%) - verify operating costs")

    minimum = validate_down_payment(inputs.purchase_price, down_percent)
    if not minimum.valid:
        warnings.append(minimum.message)

    if flags.fails_stress_test:
        warnings.append(
            f"Borrower does not meet A-lender limits at the {financing.stress_test_rate:.2f}% "
            f"qualifying rate (GDS {qualification.gds_ratio}%, TDS {qualification.tds_ratio}%)"
        )

    return tuple(warnings), flags


def build_draft(
    inputs: PropertyInputs,
    *,
    borrower: BorrowerProfile | None = None,
    tables: RateTables | None = None,
) -> DealAnalysisDraft:
    """Everything but the score. Raises InputValidationError on bad inputs."""
    tables = tables or get_rate_tables()
    validate_inputs(inputs, tables)

    acquisition = _acquisition(inputs, tables)
    cmhc = calculate_cmhc_insurance(
        inputs.purchase_price, effective_down_payment_percent(inputs), tables=tables
    )
    stress = calculate_stress_test(
        cmhc.total_mortgage, inputs.interest_rate, inputs.amortization_years, tables=tables
    )
    financing = _financing(inputs, cmhc, stress)
    revenue = _revenue(inputs)
    expenses = _expenses(inputs, financing)
    cash_flow = _cash_flow(revenue, expenses)
    metrics = _metrics(inputs, acquisition, financing, revenue, expenses, cash_flow)
    brrrr = _brrrr(inputs, acquisition, financing, cash_flow, tables)
    market = _market_comparison(inputs, metrics, tables)

    qualification = None
    if borrower is not None:
        qualification = assess_qualification(
            borrower,
            stress.qualification_payment,
            inputs.property_tax_annual,
            inputs.hoa_condo_fees_monthly,
        )

    warnings, flags = _warnings_and_flags(
        inputs, cmhc, financing, cash_flow, metrics, market, qualification, tables
    )

    return DealAnalysisDraft(
        inputs=inputs,
        acquisition=acquisition,
        financing=financing,
        revenue=revenue,
        expenses=expenses,
        cash_flow=cash_flow,
        metrics=metrics,
        brrrr=brrrr,
        market_comparison=market,
        warnings=warnings,
        flags=flags,
    )


def analyze_deal(
    inputs: PropertyInputs,
    *,
    borrower: BorrowerProfile | None = None,
    tables: RateTables | None = None,
) -> DealAnalysis:
    """Run the complete deal analysis.

    All-or-nothing: either a fully populated DealAnalysis or an
    InputValidationError before anything is computed.
    """
    draft = build_draft(inputs, borrower=borrower, tables=tables)
    scoring = score_deal(draft)
    analysis = DealAnalysis.from_draft(draft, scoring)
    logger.debug(
        "Analyzed %s, %s: cap %s%%, CoC %s%%, DSCR %s, score %d (%s)",
        inputs.city, inputs.province.value, analysis.metrics.cap_rate,
        analysis.metrics.cash_on_cash_return, analysis.metrics.dscr,
        scoring.total_score, scoring.grade,
    )
    return analysis
