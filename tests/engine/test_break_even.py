from dataclasses import replace
from decimal import Decimal

from ca_analyzer.engine.break_even import (
    analyze_expense_optimization,
    calculate_break_even,
    price_reduction_for_shortfall,
)
from ca_analyzer.engine.deal import analyze_deal


class TestBreakEven:
    def test_negative_deal_targets(self, negative_analysis):
        result = calculate_break_even(negative_analysis)
        shortfall = -negative_analysis.cash_flow.monthly_net
        assert result.monthly_shortfall == shortfall
        assert result.break_even_rent == result.current_rent + shortfall
        assert result.max_monthly_expenses == result.current_monthly_expenses - shortfall
        assert result.max_annual_expenses == result.max_monthly_expenses * 12
        assert Decimal("0") < result.price_reduction_needed < result.current_price
        assert result.break_even_occupancy == 100 - result.max_vacancy_rate
        assert result.max_interest_rate < result.current_interest_rate

    def test_break_even_price_zeroes_cash_flow(self, negative_cash_flow_inputs, negative_analysis, tables):
        result = calculate_break_even(negative_analysis)
        repriced = analyze_deal(
            replace(negative_cash_flow_inputs, purchase_price=result.break_even_price), tables=tables
        )
        assert abs(repriced.cash_flow.monthly_net) < Decimal("1")

    def test_improvement_paths_sorted(self, negative_analysis):
        result = calculate_break_even(negative_analysis)
        assert len(result.quickest_path) == 4
        feasibility = [p.feasibility for p in result.quickest_path]
        assert feasibility == sorted(feasibility)
        assert {p.action for p in result.quickest_path} == {
            "increase_rent", "reduce_price", "reduce_expenses", "wait_for_rent_growth",
        }

    def test_rent_growth_timeline(self, negative_analysis):
        result = calculate_break_even(negative_analysis)
        assert result.years_to_positive_cash_flow is not None
        assert result.years_to_positive_cash_flow > 10
        assert result.cumulative_loss_until_positive > 0

    def test_positive_deal(self, strong_analysis):
        result = calculate_break_even(strong_analysis)
        assert result.monthly_shortfall == 0
        assert result.primary_issue == "None - cash flow positive"
        assert result.quickest_path == ()
        assert result.years_to_positive_cash_flow == 0
        assert result.break_even_rent == result.current_rent
        assert result.max_interest_rate > result.current_interest_rate

    def test_no_shortfall_no_price_cut(self, strong_analysis):
        assert price_reduction_for_shortfall(strong_analysis, Decimal("0")) == 0


class TestExpenseOptimization:
    def test_items_and_total(self, negative_analysis):
        result = analyze_expense_optimization(negative_analysis)
        assert [i.category for i in result.items] == [
            "Property Tax", "Insurance", "Maintenance", "Property Management", "Vacancy",
        ]
        assert result.total_potential_savings == sum(i.potential_savings for i in result.items)

    def test_over_benchmark_savings(self, negative_analysis):
        items = {i.category: i for i in analyze_expense_optimization(negative_analysis).items}
        # $4,500 tax on $36,000 rent is 12.5% against a 10% benchmark
        assert items["Property Tax"].current_percent == Decimal("12.5000")
        assert items["Property Tax"].potential_savings == Decimal("900.00")
        assert items["Maintenance"].potential_savings == 0
        assert items["Vacancy"].current_percent == Decimal("5")
