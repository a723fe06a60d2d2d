"""Mortgage amortization math.

Pure functions: Decimal in, Decimal or dataclass out. No I/O.
Rates are annual percents (Decimal("5.5") for 5.5%), compounded monthly.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

TWO_PLACES = Decimal("0.01")


@dataclass(frozen=True)
class AmortizationPayment:
    period: int
    payment: Decimal
    principal: Decimal
    interest: Decimal
    balance: Decimal


@dataclass(frozen=True)
class AmortizationSchedule:
    payments: list[AmortizationPayment]
    monthly_payment: Decimal
    total_interest: Decimal
    total_principal: Decimal


@dataclass(frozen=True)
class YearlyDebtSummary:
    year: int
    principal: Decimal
    interest: Decimal
    debt_service: Decimal
    ending_balance: Decimal


def _exact_payment(principal: Decimal, annual_rate: Decimal, years: int) -> Decimal:
    n = years * 12
    if principal <= 0 or n <= 0:
        return Decimal("0")
    if annual_rate == 0:
        return principal / n
    r = annual_rate / 100 / 12
    # M = P * [r(1+r)^n] / [(1+r)^n - 1]
    factor = (1 + r) ** n
    return principal * (r * factor) / (factor - 1)


def monthly_payment(principal: Decimal, annual_rate: Decimal, years: int) -> Decimal:
    """Fixed monthly payment. r=0 degenerates to P/n; P<=0 or n<=0 gives 0."""
    return _exact_payment(principal, annual_rate, years).quantize(TWO_PLACES, ROUND_HALF_UP)


def payment_factor(annual_rate: Decimal, years: int) -> Decimal:
    """Monthly payment per dollar borrowed."""
    return _exact_payment(Decimal("1"), annual_rate, years)


def remaining_balance(
    principal: Decimal,
    annual_rate: Decimal,
    total_years: int,
    elapsed_years: int | Decimal,
) -> Decimal:
    """Closed-form balance after `elapsed_years`, clamped to >= 0.

    Uses the unrounded payment so a fully elapsed term lands on zero.
    """
    if principal <= 0 or total_years <= 0:
        return Decimal("0")
    k = int(Decimal(elapsed_years) * 12)
    if k <= 0:
        return principal.quantize(TWO_PLACES, ROUND_HALF_UP)
    if k >= total_years * 12:
        return Decimal("0.00")

    pmt = _exact_payment(principal, annual_rate, total_years)
    if annual_rate == 0:
        balance = principal - pmt * k
    else:
        r = annual_rate / 100 / 12
        growth = (1 + r) ** k
        balance = principal * growth - pmt * (growth - 1) / r
    return max(Decimal("0"), balance).quantize(TWO_PLACES, ROUND_HALF_UP)


def amortization_schedule(
    principal: Decimal,
    annual_rate: Decimal,
    term_years: int,
    hold_years: int | None = None,
) -> AmortizationSchedule:
    """Generate full or partial amortization schedule.

    Args:
        principal: Loan amount
        annual_rate: Annual interest rate in percent (e.g. 5.5)
        term_years: Amortization period in years
        hold_years: If provided, only generate schedule for this many years
    """
    pmt = monthly_payment(principal, annual_rate, term_years)
    r = annual_rate / 100 / 12
    n_periods = min(hold_years or term_years, term_years) * 12

    payments: list[AmortizationPayment] = []
    balance = max(principal, Decimal("0"))
    total_interest = Decimal("0")
    total_principal = Decimal("0")

    for period in range(1, n_periods + 1):
        if balance <= 0:
            break
        interest = (balance * r).quantize(TWO_PLACES, ROUND_HALF_UP)
        principal_paid = pmt - interest

        # Final payment absorbs rounding drift
        if principal_paid > balance or period == term_years * 12:
            principal_paid = balance
            actual_payment = interest + principal_paid
        else:
            actual_payment = pmt

        balance -= principal_paid
        total_interest += interest
        total_principal += principal_paid

        payments.append(AmortizationPayment(
            period=period,
            payment=actual_payment,
            principal=principal_paid,
            interest=interest,
            balance=balance.quantize(TWO_PLACES, ROUND_HALF_UP),
        ))

    return AmortizationSchedule(
        payments=payments,
        monthly_payment=pmt,
        total_interest=total_interest,
        total_principal=total_principal,
    )


def yearly_debt_summary(schedule: AmortizationSchedule) -> list[YearlyDebtSummary]:
    """Aggregate an amortization schedule by year."""
    yearly: list[YearlyDebtSummary] = []
    year_principal = Decimal("0")
    year_interest = Decimal("0")
    year_debt_service = Decimal("0")

    for p in schedule.payments:
        year_principal += p.principal
        year_interest += p.interest
        year_debt_service += p.payment

        if p.period % 12 == 0 or p.period == len(schedule.payments):
            yearly.append(YearlyDebtSummary(
                year=(p.period - 1) // 12 + 1,
                principal=year_principal,
                interest=year_interest,
                debt_service=year_debt_service,
                ending_balance=p.balance,
            ))
            year_principal = Decimal("0")
            year_interest = Decimal("0")
            year_debt_service = Decimal("0")

    return yearly
