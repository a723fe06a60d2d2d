from dataclasses import replace
from decimal import Decimal

from ca_analyzer.engine.deal import analyze_deal
from ca_analyzer.engine.risk import analyze_risks, factor_level, overall_level, stress_scenarios


class TestLevels:
    def test_factor_levels(self):
        assert factor_level(10) == "Low"
        assert factor_level(25) == "Medium"
        assert factor_level(50) == "High"
        assert factor_level(75) == "Critical"

    def test_overall_levels(self):
        assert overall_level(Decimal("29.99")) == "Low"
        assert overall_level(Decimal("30")) == "Medium"
        assert overall_level(Decimal("50")) == "High"
        assert overall_level(Decimal("70")) == "Critical"


class TestAnalyzeRisks:
    def test_negative_deal(self, negative_cash_flow_inputs, negative_analysis, tables):
        risk = analyze_risks(negative_cash_flow_inputs, negative_analysis, tables=tables)
        assert len(risk.factors) == 9
        by_name = {f.name: f for f in risk.factors}
        assert by_name["Cash Flow Risk"].score == 100
        assert by_name["Debt Service Coverage Risk"].score == 90
        assert by_name["Property Age Risk"].score == 65
        assert risk.overall_level == "High"
        assert {f.name for f in risk.critical_risks} == {
            "Cash Flow Risk", "Debt Service Coverage Risk", "Valuation Risk",
        }
        assert risk.recommendation.startswith("HIGH RISK")

    def test_negative_cash_flow_score_keeps_fraction(self, canonical_inputs, canonical_analysis, tables):
        """$100/month short on $1,800 rent is a 5.56% margin, scored 80 + margin."""
        short = replace(
            canonical_analysis,
            cash_flow=replace(canonical_analysis.cash_flow, monthly_net=Decimal("-100")),
        )
        risk = analyze_risks(canonical_inputs, short, tables=tables)
        cash_flow = next(f for f in risk.factors if f.name == "Cash Flow Risk")
        assert cash_flow.score == Decimal("85.56")
        assert cash_flow.level == "Critical"

    def test_strong_deal(self, strong_inputs, strong_analysis, tables):
        risk = analyze_risks(strong_inputs, strong_analysis, tables=tables)
        assert risk.overall_level == "Low"
        assert risk.risk_tolerance == "Conservative"
        assert "First-time investors" in risk.suitable_for
        assert risk.critical_risks == ()

    def test_weighted_overall(self, negative_cash_flow_inputs, negative_analysis, tables):
        risk = analyze_risks(negative_cash_flow_inputs, negative_analysis, tables=tables)
        weighted = (
            risk.financial_risk * Decimal("0.4") + risk.market_risk * Decimal("0.3")
            + risk.operational_risk * Decimal("0.2") + risk.liquidity_risk * Decimal("0.1")
        )
        assert abs(weighted - risk.overall_score) < Decimal("0.02")
        assert 0 <= risk.overall_score <= 100

    def test_age_measured_against_as_of_year(self, strong_inputs, strong_analysis):
        now = analyze_risks(strong_inputs, strong_analysis, as_of_year=2024)
        later = analyze_risks(strong_inputs, strong_analysis, as_of_year=2050)
        age_now = next(f for f in now.factors if f.name == "Property Age Risk")
        age_later = next(f for f in later.factors if f.name == "Property Age Risk")
        assert age_now.score == 10
        assert age_later.score == 40

    def test_unknown_year_built(self, canonical_inputs, canonical_analysis, tables):
        risk = analyze_risks(canonical_inputs, canonical_analysis, tables=tables)
        age = next(f for f in risk.factors if f.name == "Property Age Risk")
        assert age.score == 40

    def test_no_debt(self, strong_inputs, tables):
        inputs = replace(strong_inputs, down_payment_percent=Decimal("100"))
        analysis = analyze_deal(inputs, tables=tables)
        risk = analyze_risks(inputs, analysis, tables=tables)
        dscr = next(f for f in risk.factors if f.name == "Debt Service Coverage Risk")
        assert dscr.score == 10


class TestStressScenarios:
    def test_four_scenarios(self, negative_analysis):
        scenarios = stress_scenarios(negative_analysis)
        assert len(scenarios) == 4
        vacancy, rate, repair, value = scenarios
        assert vacancy.monthly_cash_flow_change == Decimal("-150.00")
        assert rate.annual_cash_flow_change == Decimal("-14400.00")
        assert repair.annual_cash_flow_change == Decimal("-10000")
        assert value.monthly_cash_flow_change == 0
        assert "$90,000" in value.impact
