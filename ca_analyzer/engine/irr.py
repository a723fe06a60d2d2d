"""Rate-of-return solvers: IRR, NPV, MIRR, payback period, equity multiple.

Cash-flow convention: `investment` is paid at t=0 and `cash_flows[t]` arrives
at the end of year t+1. Rates in and out are annual percents.

Pure functions. No I/O.
"""

import logging
import math
import warnings
from decimal import Decimal, ROUND_HALF_UP

from scipy.optimize import brentq, newton

from ca_analyzer.config import settings
from ca_analyzer.engine.errors import NonConvergenceWarning
from ca_analyzer.models.results import IRRResult

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")
FOUR_PLACES = Decimal("0.0001")

IRR_SEED = 0.10
IRR_TOLERANCE = 1e-5
BRENT_BRACKET = (-0.99, 10.0)

# A root is only accepted once NPV at the returned rate is this close to zero
NPV_TOLERANCE = Decimal("0.001")
POLISH_STEPS = 50


def _npv_and_derivative(cash_flows: list[float], investment: float):
    def npv(rate: float) -> float:
        if rate <= -1:
            return math.inf
        return -investment + sum(cf / (1 + rate) ** (t + 1) for t, cf in enumerate(cash_flows))

    def dnpv(rate: float) -> float:
        return sum(-(t + 1) * cf / (1 + rate) ** (t + 2) for t, cf in enumerate(cash_flows))

    return npv, dnpv


def _polish(cash_flows: list[Decimal], investment: Decimal, root: float) -> Decimal | None:
    """Newton steps in Decimal from a float root until |NPV| < NPV_TOLERANCE.

    Returns the rate in percent, or None when the residual cannot be brought
    under tolerance.
    """
    rate = Decimal(str(root))
    for _ in range(POLISH_STEPS):
        if rate <= -1:
            return None
        percent = rate * 100
        value = calculate_npv(cash_flows, investment, percent)
        if abs(value) < NPV_TOLERANCE:
            return percent
        slope = sum(
            (-(t + 1) * cf / (1 + rate) ** (t + 2) for t, cf in enumerate(cash_flows)),
            Decimal("0"),
        )
        if slope == 0:
            return None
        rate -= value / slope
    return None


def compute_irr(
    cash_flows: list[Decimal],
    investment: Decimal,
    max_iterations: int | None = None,
) -> IRRResult:
    """Solve NPV(rate) = 0.

    Newton-Raphson seeded at 10% with the analytic derivative, stopping when
    the rate step is under 1e-5 or at the iteration cap. If Newton fails and
    NPV changes sign on [-99%, 1000%], Brent's method is used instead. Either
    root is polished in Decimal and only accepted once |NPV| < 0.001. If both
    fail the last Newton estimate comes back with converged=False and a
    NonConvergenceWarning is emitted.
    """
    max_iterations = max_iterations or settings.irr_max_iterations
    if not cash_flows:
        return IRRResult(rate=Decimal("0"), converged=False, iterations=0, method="none")

    flows = [Decimal(cf) for cf in cash_flows]
    investment = Decimal(investment)
    cf_float = [float(cf) for cf in flows]
    npv, dnpv = _npv_and_derivative(cf_float, float(investment))

    estimate = IRR_SEED
    iterations = 0
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", RuntimeWarning)
        try:
            root, info = newton(
                npv, IRR_SEED, fprime=dnpv, tol=IRR_TOLERANCE,
                maxiter=max_iterations, full_output=True, disp=False,
            )
            estimate, iterations = float(root), info.iterations
            if info.converged and math.isfinite(estimate) and estimate > -1:
                rate = _polish(flows, investment, estimate)
                if rate is not None:
                    return IRRResult(rate=rate, converged=True, iterations=iterations, method="newton")
                logger.debug("Newton IRR %.6f left NPV above tolerance", estimate)
        except (ArithmeticError, ValueError, RuntimeError) as e:
            logger.debug("Newton IRR iteration failed: %s", e)

        low, high = BRENT_BRACKET
        try:
            if npv(low) * npv(high) < 0:
                root, info = brentq(
                    npv, low, high, xtol=1e-14, rtol=1e-15,
                    maxiter=max_iterations, full_output=True, disp=False,
                )
                if info.converged:
                    rate = _polish(flows, investment, float(root))
                    if rate is not None:
                        return IRRResult(
                            rate=rate,
                            converged=True,
                            iterations=iterations + info.iterations,
                            method="brent",
                        )
        except (ArithmeticError, ValueError, RuntimeError) as e:
            logger.debug("Brent IRR fallback failed: %s", e)

    if not math.isfinite(estimate):
        estimate = IRR_SEED
    message = f"IRR did not converge within {max_iterations} iterations; last estimate {estimate:.4%}"
    logger.warning(message)
    warnings.warn(message, NonConvergenceWarning, stacklevel=2)
    return IRRResult(
        rate=Decimal(str(estimate * 100)),
        converged=False,
        iterations=iterations,
        method="none",
    )


def calculate_npv(cash_flows: list[Decimal], investment: Decimal, discount_rate: Decimal) -> Decimal:
    """sum(CF_t / (1+r)^(t+1)) - investment. Unrounded."""
    factor = 1 + discount_rate / 100
    npv = -investment
    for t, cf in enumerate(cash_flows):
        npv += cf / factor ** (t + 1)
    return npv


def calculate_payback_period(cash_flows: list[Decimal], investment: Decimal) -> Decimal:
    """Years to recover the investment, interpolated within the crossing year.

    Returns the horizon length when the investment is never recovered.
    """
    cumulative = Decimal("0")
    for year, cf in enumerate(cash_flows):
        previous = cumulative
        cumulative += cf
        if cumulative >= investment:
            fraction = (investment - previous) / cf if cf else Decimal("0")
            return (year + fraction).quantize(TWO_PLACES, ROUND_HALF_UP)
    return Decimal(len(cash_flows))


def calculate_mirr(
    cash_flows: list[Decimal],
    investment: Decimal,
    finance_rate: Decimal,
    reinvestment_rate: Decimal,
) -> Decimal:
    """Modified IRR in percent.

    Positive flows compound to the horizon at the reinvestment rate; negative
    flows (plus the initial investment) discount to today at the finance rate.
    """
    n = len(cash_flows)
    if n == 0:
        return Decimal("0")

    reinvest = 1 + reinvestment_rate / 100
    finance = 1 + finance_rate / 100
    fv_positive = sum(
        (cf * reinvest ** (n - i - 1) for i, cf in enumerate(cash_flows) if cf > 0),
        Decimal("0"),
    )
    pv_negative = investment + sum(
        (abs(cf) / finance ** (i + 1) for i, cf in enumerate(cash_flows) if cf < 0),
        Decimal("0"),
    )
    if pv_negative <= 0:
        return Decimal("0")
    if fv_positive <= 0:
        return Decimal("-100")

    mirr = (fv_positive / pv_negative) ** (Decimal(1) / n) - 1
    return (mirr * 100).quantize(FOUR_PLACES, ROUND_HALF_UP)


def compute_equity_multiple(
    total_cash_returned: Decimal, total_cash_invested: Decimal
) -> Decimal:
    """Equity multiple = total cash out / total cash in."""
    if total_cash_invested == 0:
        return Decimal("0")
    return (total_cash_returned / total_cash_invested).quantize(FOUR_PLACES, ROUND_HALF_UP)


def annualized_return(equity_multiple: Decimal, years: int) -> Decimal:
    """EM^(1/years) - 1, in percent. A wiped-out investment is -100%."""
    if years <= 0:
        return Decimal("0")
    if equity_multiple <= 0:
        return Decimal("-100")
    rate = equity_multiple ** (Decimal(1) / years) - 1
    return (rate * 100).quantize(FOUR_PLACES, ROUND_HALF_UP)
