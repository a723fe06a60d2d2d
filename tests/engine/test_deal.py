from dataclasses import replace
from decimal import Decimal

import pytest

from ca_analyzer.engine.deal import analyze_deal, build_draft, effective_down_payment_percent
from ca_analyzer.engine.errors import InputValidationError
from ca_analyzer.models.analysis import SCHEMA_VERSION
from ca_analyzer.models.property import PropertyType, Province, Strategy
from ca_analyzer.models.results import BorrowerProfile


class TestCanonicalScenario:
    def test_financing(self, canonical_analysis):
        financing = canonical_analysis.financing
        assert financing.mortgage_amount == Decimal("239920.00")
        assert financing.cmhc_premium == Decimal("0")
        assert financing.total_mortgage_with_insurance == Decimal("239920.00")
        assert Decimal("1470") < financing.monthly_payment < Decimal("1478")
        assert financing.annual_payment == financing.monthly_payment * 12
        assert financing.stress_test_rate == Decimal("7.5")

    def test_acquisition(self, canonical_analysis):
        acquisition = canonical_analysis.acquisition
        assert acquisition.down_payment == Decimal("59980.00")
        assert acquisition.land_transfer_tax == Decimal("2973.50")
        # Down + LTT + legal 1,500 + inspection 500 + appraisal 300 + title 250
        assert acquisition.total_acquisition_cost == Decimal("65503.50")
        assert acquisition.total_cash_needed == acquisition.total_acquisition_cost

    def test_revenue_and_expenses(self, canonical_analysis):
        revenue = canonical_analysis.revenue
        assert revenue.vacancy_loss_monthly == Decimal("90.00")
        assert revenue.effective_monthly_income == Decimal("1710.00")
        monthly = canonical_analysis.expenses.monthly
        assert monthly.property_tax == Decimal("250.00")
        assert monthly.insurance == Decimal("100.00")
        assert monthly.property_management == Decimal("144.00")
        assert monthly.maintenance == Decimal("180.00")
        assert monthly.operating == Decimal("674.00")
        assert canonical_analysis.expenses.annual.total == monthly.total * 12

    def test_metrics(self, canonical_analysis):
        metrics = canonical_analysis.metrics
        assert canonical_analysis.cash_flow.annual_noi == Decimal("12432.00")
        assert metrics.cap_rate == Decimal("4.1454")
        assert metrics.grm == Decimal("13.8843")
        assert metrics.cash_on_cash_return < 0
        assert Decimal("0") < metrics.dscr < Decimal("1")

    def test_score_and_flags(self, canonical_analysis):
        assert canonical_analysis.flags.negative_cash_flow
        assert canonical_analysis.flags.low_dscr
        assert not canonical_analysis.flags.high_ltv
        assert canonical_analysis.scoring.grade in {"A", "B", "C", "D", "F"}
        assert canonical_analysis.scoring.total_score == 20
        assert canonical_analysis.market_comparison.market_key == "default"
        assert canonical_analysis.schema_version == SCHEMA_VERSION

    def test_deterministic(self, canonical_inputs, tables):
        assert analyze_deal(canonical_inputs, tables=tables) == analyze_deal(canonical_inputs, tables=tables)


class TestHighRatio:
    def test_cmhc_premium_added_to_mortgage(self, toronto_high_ratio_inputs, tables):
        analysis = analyze_deal(toronto_high_ratio_inputs, tables=tables)
        financing = analysis.financing
        assert financing.cmhc_premium_rate == Decimal("3.10")
        assert financing.cmhc_premium == Decimal("13950.00")
        assert financing.total_mortgage_with_insurance == Decimal("463950.00")
        assert analysis.flags.high_ltv
        assert analysis.acquisition.land_transfer_tax == Decimal("12950.00")
        assert analysis.market_comparison.market_key == "Toronto"

    def test_down_payment_amount_overrides_percent(self, toronto_high_ratio_inputs, tables):
        inputs = replace(toronto_high_ratio_inputs, down_payment_amount=Decimal("100000"))
        assert effective_down_payment_percent(inputs) == Decimal("20")
        analysis = analyze_deal(inputs, tables=tables)
        assert analysis.financing.cmhc_premium == Decimal("0")
        assert analysis.acquisition.down_payment == Decimal("100000.00")

    def test_over_cap_still_analyzed(self, canonical_inputs, tables):
        inputs = replace(canonical_inputs, purchase_price=Decimal("1500000"), down_payment_percent=Decimal("10"))
        analysis = analyze_deal(inputs, tables=tables)
        assert analysis.flags.cmhc_ineligible
        assert analysis.financing.total_mortgage_with_insurance == analysis.financing.mortgage_amount
        assert any("CMHC insurance not available" in w for w in analysis.warnings)
        assert any("Minimum 20.0% down payment required" in w for w in analysis.warnings)


class TestBRRRR:
    def test_full_recovery_is_infinite_return(self, brrrr_inputs, tables):
        brrrr = analyze_deal(brrrr_inputs, tables=tables).brrrr
        assert brrrr is not None
        assert brrrr.refinance_amount == Decimal("262500.00")
        assert brrrr.total_investment == Decimal("84275.00")
        assert brrrr.cash_recovered >= brrrr.total_investment
        assert brrrr.infinite_return
        assert brrrr.effective_coc_return is None

    def test_partial_recovery(self, brrrr_inputs, tables):
        inputs = replace(brrrr_inputs, after_repair_value=Decimal("250000"))
        brrrr = analyze_deal(inputs, tables=tables).brrrr
        assert brrrr.cash_recovered < brrrr.total_investment
        assert not brrrr.infinite_return
        assert brrrr.cash_left_in_deal == brrrr.total_investment - brrrr.cash_recovered
        assert brrrr.effective_coc_return is not None

    def test_only_for_brrrr_strategy(self, brrrr_inputs, tables):
        inputs = replace(brrrr_inputs, strategy=Strategy.BUY_HOLD)
        assert analyze_deal(inputs, tables=tables).brrrr is None

    def test_renovation_in_cash_needed(self, brrrr_inputs, tables):
        acquisition = analyze_deal(brrrr_inputs, tables=tables).acquisition
        assert acquisition.total_cash_needed == acquisition.total_acquisition_cost + Decimal("40000")

    def test_heavy_reno_warning(self, brrrr_inputs, tables):
        warnings = analyze_deal(brrrr_inputs, tables=tables).warnings
        assert any("Major renovations required" in w for w in warnings)

    def test_missing_budget_gets_renovation_estimate(self, brrrr_inputs, tables):
        inputs = replace(brrrr_inputs, strategy=Strategy.BUY_HOLD, renovation_cost=Decimal("0"))
        warnings = analyze_deal(inputs, tables=tables).warnings
        assert (
            "No renovation budget entered - heavy reno work on 1,400 sq ft typically runs $140,000-$280,000"
            in warnings
        )

    def test_entered_budget_skips_estimate(self, brrrr_inputs, tables):
        warnings = analyze_deal(brrrr_inputs, tables=tables).warnings
        assert not any(w.startswith("No renovation budget entered") for w in warnings)


class TestEdgeCases:
    def test_all_cash_purchase(self, canonical_inputs, tables):
        inputs = replace(canonical_inputs, down_payment_percent=Decimal("100"))
        analysis = analyze_deal(inputs, tables=tables)
        assert analysis.financing.monthly_payment == Decimal("0")
        assert analysis.metrics.dscr == Decimal("0")
        assert not analysis.flags.low_dscr
        assert analysis.cash_flow.monthly_net == analysis.cash_flow.monthly_noi

    def test_zero_rent(self, canonical_inputs, tables):
        analysis = analyze_deal(replace(canonical_inputs, monthly_rent=Decimal("0")), tables=tables)
        assert analysis.metrics.grm == Decimal("0")
        assert analysis.metrics.expense_ratio == Decimal("0")
        assert analysis.metrics.breakeven_occupancy == Decimal("100")

    def test_multi_unit_benchmark(self, canonical_inputs, tables):
        inputs = replace(canonical_inputs, city="Calgary", property_type=PropertyType.FOURPLEX)
        assert analyze_deal(inputs, tables=tables).market_comparison.market_avg_cap_rate == Decimal("6.5")

    def test_borrower_failing_prime_limits(self, canonical_inputs, tables):
        borrower = BorrowerProfile(annual_income=Decimal("40000"), credit_score=700)
        analysis = analyze_deal(canonical_inputs, borrower=borrower, tables=tables)
        assert analysis.flags.fails_stress_test
        assert analysis.scoring.stress_test_score == 0

    def test_borrower_passing(self, canonical_inputs, tables):
        borrower = BorrowerProfile(annual_income=Decimal("200000"), credit_score=760)
        analysis = analyze_deal(canonical_inputs, borrower=borrower, tables=tables)
        assert not analysis.flags.fails_stress_test

    def test_draft_has_no_score(self, canonical_inputs, tables):
        draft = build_draft(canonical_inputs, tables=tables)
        assert not hasattr(draft, "scoring")


class TestValidation:
    @pytest.mark.parametrize("changes", [
        {"purchase_price": Decimal("0")},
        {"down_payment_percent": Decimal("3")},
        {"vacancy_rate": Decimal("101")},
        {"monthly_rent": Decimal("-1")},
        {"amortization_years": 0},
        {"down_payment_amount": Decimal("400000")},
        {"legal_fees": Decimal("-5")},
    ])
    def test_rejects(self, canonical_inputs, tables, changes):
        with pytest.raises(InputValidationError):
            analyze_deal(replace(canonical_inputs, **changes), tables=tables)

    def test_error_is_a_value_error(self, canonical_inputs, tables):
        with pytest.raises(ValueError):
            analyze_deal(replace(canonical_inputs, purchase_price=Decimal("-5")), tables=tables)

    def test_unsupported_province(self, canonical_inputs, tables):
        limited = replace(tables, land_transfer={Province.AB: tables.land_transfer[Province.AB]})
        with pytest.raises(InputValidationError):
            analyze_deal(canonical_inputs, tables=limited)
