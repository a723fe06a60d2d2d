"""Deal scoring rubric: 100 points across five categories, graded A-F.

Pure functions. No I/O.
"""

from decimal import Decimal

from ca_analyzer.models.analysis import DealAnalysisDraft, DealScore, ScoreReason

CASH_FLOW_MAX = 30
COC_MAX = 25
CAP_RATE_MAX = 20
DSCR_MAX = 15
STRESS_TEST_MAX = 10

# (minimum score, grade, color)
GRADE_BANDS = (
    (85, "A", "green"),
    (70, "B", "blue"),
    (55, "C", "yellow"),
    (40, "D", "orange"),
    (0, "F", "red"),
)

GRADE_DESCRIPTIONS = {
    "A": "Excellent Deal - Pursue Aggressively",
    "B": "Good Deal - Worth Considering",
    "C": "Fair Deal - Analyze Carefully",
    "D": "Below Average - Proceed with Caution",
    "F": "Poor Deal - Pass Unless Special Circumstances",
}

WORTH_PURSUING_SCORE = 55


def _cash_flow_reason(monthly_net: Decimal) -> ScoreReason:
    shown = f"${monthly_net:,.0f}/mo"
    if monthly_net > 500:
        points, status, message = 30, "positive", f"Strong positive cash flow ({shown})"
    elif monthly_net > 200:
        points, status, message = 20, "positive", f"Moderate cash flow ({shown})"
    elif monthly_net > 0:
        points, status, message = 10, "caution", f"Marginal cash flow ({shown})"
    else:
        points, status, message = 0, "negative", f"Negative cash flow ({shown})"
    return ScoreReason("cash_flow", points, CASH_FLOW_MAX, status, message)


def _coc_reason(coc: Decimal) -> ScoreReason:
    shown = f"{coc:.1f}%"
    if coc > 15:
        points, status, message = 25, "positive", f"Exceptional CoC return ({shown})"
    elif coc > 10:
        points, status, message = 20, "positive", f"Strong CoC return ({shown})"
    elif coc > 6:
        points, status, message = 15, "positive", f"Acceptable CoC return ({shown})"
    elif coc > 0:
        points, status, message = 5, "caution", f"Low CoC return ({shown})"
    else:
        points, status, message = 0, "negative", f"Negative returns ({shown})"
    return ScoreReason("cash_on_cash", points, COC_MAX, status, message)


def _cap_rate_reason(delta: Decimal) -> ScoreReason:
    shown = f"{delta:+.1f}%"
    if delta > 1:
        points, status, message = 20, "positive", f"Above market cap rate ({shown})"
    elif delta >= 0:
        points, status, message = 15, "positive", f"At market cap rate ({shown})"
    elif delta > -1:
        points, status, message = 10, "caution", f"Slightly below market cap rate ({shown})"
    else:
        points, status, message = 5, "negative", f"Well below market cap rate ({shown})"
    return ScoreReason("cap_rate", points, CAP_RATE_MAX, status, message)


def _dscr_reason(dscr: Decimal) -> ScoreReason:
    shown = f"DSCR: {dscr:.2f}"
    if dscr > Decimal("1.5"):
        points, status, message = 15, "positive", f"Excellent debt coverage ({shown})"
    elif dscr > Decimal("1.25"):
        points, status, message = 12, "positive", f"Strong debt coverage ({shown})"
    elif dscr > Decimal("1.0"):
        points, status, message = 8, "caution", f"Minimal debt coverage ({shown})"
    else:
        points, status, message = 0, "negative", f"Insufficient debt coverage ({shown})"
    return ScoreReason("dscr", points, DSCR_MAX, status, message)


def _stress_test_reason(fails: bool) -> ScoreReason:
    if fails:
        return ScoreReason(
            "stress_test", 0, STRESS_TEST_MAX, "negative",
            "Fails stress test - financing may be difficult",
        )
    return ScoreReason("stress_test", STRESS_TEST_MAX, STRESS_TEST_MAX, "positive", "Passes OSFI stress test")


def grade_for(score: int) -> tuple[str, str]:
    for minimum, grade, color in GRADE_BANDS:
        if score >= minimum:
            return grade, color
    return "F", "red"


def score_deal(analysis: DealAnalysisDraft) -> DealScore:
    """Score a completed (unscored) analysis. Total is always within [0, 100]."""
    reasons = (
        _cash_flow_reason(analysis.cash_flow.monthly_net),
        _coc_reason(analysis.metrics.cash_on_cash_return),
        _cap_rate_reason(analysis.market_comparison.cap_rate_delta),
        _dscr_reason(analysis.metrics.dscr),
        _stress_test_reason(analysis.flags.fails_stress_test),
    )
    total = sum(r.points for r in reasons)
    grade, color = grade_for(total)
    return DealScore(
        total_score=total,
        grade=grade,
        color=color,
        reasons=reasons,
        cash_flow_score=reasons[0].points,
        coc_score=reasons[1].points,
        cap_rate_score=reasons[2].points,
        dscr_score=reasons[3].points,
        stress_test_score=reasons[4].points,
    )


def is_deal_worth_pursuing(score: int) -> bool:
    """C grade or better."""
    return score >= WORTH_PURSUING_SCORE


def deal_quality_description(grade: str) -> str:
    return GRADE_DESCRIPTIONS[grade]
