from decimal import Decimal

import pytest

from ca_analyzer.engine.errors import InputValidationError
from ca_analyzer.engine.rules import (
    calculate_breakeven_occupancy,
    calculate_cmhc_insurance,
    calculate_land_transfer_tax,
    calculate_mortgage_balance,
    calculate_mortgage_payment,
    calculate_stress_test,
    estimate_renovation_cost,
    marginal_bracket_tax,
    stress_test_rate,
    validate_down_payment,
)
from ca_analyzer.models.property import PropertyCondition, Province


class TestCMHC:
    def test_ten_percent_down_uses_310_tier(self, tables):
        """$500K at exactly 10% down lands in the [10, 15) band."""
        result = calculate_cmhc_insurance(Decimal("500000"), Decimal("10"), tables=tables)
        assert result.premium_rate == Decimal("3.10")
        assert result.mortgage_amount == Decimal("450000.00")
        assert result.premium == Decimal("13950.00")
        assert result.total_mortgage == Decimal("463950.00")
        assert result.insurance_required

    def test_tier_boundaries(self, tables):
        price = Decimal("400000")
        assert calculate_cmhc_insurance(price, Decimal("5"), tables=tables).premium_rate == Decimal("4.00")
        assert calculate_cmhc_insurance(price, Decimal("9.99"), tables=tables).premium_rate == Decimal("4.00")
        assert calculate_cmhc_insurance(price, Decimal("15"), tables=tables).premium_rate == Decimal("2.80")
        assert calculate_cmhc_insurance(price, Decimal("20"), tables=tables).premium_rate == Decimal("0.00")

    def test_twenty_percent_down_needs_no_insurance(self, tables):
        result = calculate_cmhc_insurance(Decimal("299900"), Decimal("20"), tables=tables)
        assert result.premium == Decimal("0")
        assert result.mortgage_amount == Decimal("239920.00")
        assert not result.insurance_required
        assert result.eligible

    def test_premium_non_increasing_in_down_payment(self, tables):
        price = Decimal("650000")
        premiums = [
            calculate_cmhc_insurance(price, Decimal(p) / 2, tables=tables).premium
            for p in range(10, 61)
        ]
        assert all(a >= b for a, b in zip(premiums, premiums[1:]))

    def test_below_minimum_raises(self, tables):
        with pytest.raises(InputValidationError):
            calculate_cmhc_insurance(Decimal("400000"), Decimal("4.99"), tables=tables)

    def test_over_price_cap_is_ineligible_not_error(self, tables):
        result = calculate_cmhc_insurance(Decimal("1200000"), Decimal("10"), tables=tables)
        assert not result.eligible
        assert not result.insurance_required
        assert result.premium == Decimal("0")
        assert result.total_mortgage == result.mortgage_amount
        assert "not available" in result.message


class TestLandTransferTax:
    def test_ontario_brackets(self, tables):
        result = calculate_land_transfer_tax(Decimal("299900"), Province.ON, "Kingston", tables=tables)
        # 275 + 1,950 + 748.50
        assert result.provincial_tax == Decimal("2973.50")
        assert result.municipal_tax == Decimal("0")
        assert result.net_tax == Decimal("2973.50")

    def test_toronto_doubles_up(self, tables):
        result = calculate_land_transfer_tax(Decimal("500000"), Province.ON, "Toronto", tables=tables)
        assert result.provincial_tax == Decimal("6475.00")
        assert result.municipal_tax == Decimal("6475.00")
        assert result.total_tax == Decimal("12950.00")
        assert any("Toronto Municipal LTT" in line for line in result.breakdown)

    def test_toronto_match_is_case_insensitive(self, tables):
        result = calculate_land_transfer_tax(Decimal("500000"), Province.ON, "north TORONTO", tables=tables)
        assert result.municipal_tax > 0

    def test_toronto_first_time_buyer_rebates(self, tables):
        result = calculate_land_transfer_tax(
            Decimal("500000"), Province.ON, "Toronto", is_first_time_buyer=True, tables=tables
        )
        assert result.rebate == Decimal("8475")
        assert result.net_tax == Decimal("4475.00")

    def test_alberta_has_none(self, tables):
        result = calculate_land_transfer_tax(Decimal("450000"), Province.AB, "Calgary", tables=tables)
        assert result.net_tax == Decimal("0")
        assert result.breakdown[0] == "Alberta has no land transfer tax"

    def test_bc_rebate_respects_price_limit(self, tables):
        under = calculate_land_transfer_tax(Decimal("400000"), Province.BC, is_first_time_buyer=True, tables=tables)
        over = calculate_land_transfer_tax(Decimal("700000"), Province.BC, is_first_time_buyer=True, tables=tables)
        assert under.net_tax == Decimal("0")
        assert over.rebate == Decimal("0")
        assert over.net_tax == Decimal("12000.00")

    def test_bc_partial_exemption_band(self, tables):
        """Between $500K and $525K the rebate is the tax on the first $500K."""
        result = calculate_land_transfer_tax(Decimal("510000"), Province.BC, is_first_time_buyer=True, tables=tables)
        # 2,000 + 310,000 x 2%
        assert result.provincial_tax == Decimal("8200.00")
        assert result.rebate == Decimal("8000")
        assert result.net_tax == Decimal("200.00")

        edge = calculate_land_transfer_tax(Decimal("525000"), Province.BC, is_first_time_buyer=True, tables=tables)
        assert edge.rebate == Decimal("8000")
        assert edge.net_tax == Decimal("500.00")

        past = calculate_land_transfer_tax(Decimal("525001"), Province.BC, is_first_time_buyer=True, tables=tables)
        assert past.rebate == Decimal("0")

    def test_ontario_top_rate_is_flat_above_400k(self, tables):
        result = calculate_land_transfer_tax(Decimal("3000000"), Province.ON, "Toronto", tables=tables)
        # 4,475 + 2,600,000 x 2%
        assert result.provincial_tax == Decimal("56475.00")
        assert result.municipal_tax == Decimal("56475.00")

    def test_quebec_note(self, tables):
        result = calculate_land_transfer_tax(Decimal("400000"), Province.QC, "Montreal", tables=tables)
        assert result.breakdown[-1] == "Note: Welcome tax varies by municipality"

    @pytest.mark.parametrize("province", list(Province))
    @pytest.mark.parametrize("first_time", [False, True])
    def test_never_negative(self, tables, province, first_time):
        for price in ("0", "1", "50000", "250000", "1000000", "5000000"):
            result = calculate_land_transfer_tax(
                Decimal(price), province, "Toronto", first_time, tables=tables
            )
            assert result.net_tax >= 0

    def test_negative_price_raises(self, tables):
        with pytest.raises(InputValidationError):
            calculate_land_transfer_tax(Decimal("-1"), Province.ON, tables=tables)


class TestStressTest:
    def test_floor_applies_to_low_rates(self, tables):
        assert stress_test_rate(Decimal("3"), tables=tables) == Decimal("5.25")

    def test_buffer_applies_above_floor(self, tables):
        assert stress_test_rate(Decimal("5.5"), tables=tables) == Decimal("7.5")

    def test_qualification_payment_exceeds_contract(self, tables):
        result = calculate_stress_test(Decimal("400000"), Decimal("5"), 25, tables=tables)
        assert result.qualification_payment > result.contract_payment
        assert result.passes


class TestDownPayment:
    def test_under_500k(self):
        assert validate_down_payment(Decimal("450000"), Decimal("5")).valid

    def test_blended_minimum(self):
        """$750K: 5% of $500K + 10% of $250K = $50K, 6.6667%."""
        check = validate_down_payment(Decimal("750000"), Decimal("6"))
        assert check.minimum_percent == Decimal("6.6667")
        assert not check.valid

    def test_over_1m(self):
        assert validate_down_payment(Decimal("1500000"), Decimal("20")).valid
        assert not validate_down_payment(Decimal("1500000"), Decimal("19.9")).valid


class TestHelpers:
    def test_marginal_bracket_tax(self, tables):
        assert marginal_bracket_tax(Decimal("55000"), tables.land_transfer[Province.ON]) == Decimal("275.0")

    def test_renovation_estimate_scales_with_area(self):
        small = estimate_renovation_cost(PropertyCondition.COSMETIC, 1000)
        large = estimate_renovation_cost(PropertyCondition.COSMETIC, 2000)
        assert large.mid == small.mid * 2
        assert small.low <= small.mid <= small.high

    def test_move_in_ready_costs_nothing(self):
        assert estimate_renovation_cost(PropertyCondition.MOVE_IN_READY, 1500).high == 0

    def test_breakeven_occupancy(self):
        assert calculate_breakeven_occupancy(Decimal("18000"), Decimal("24000")) == Decimal("75.0000")
        assert calculate_breakeven_occupancy(Decimal("100"), Decimal("0")) == Decimal("100")

    def test_mortgage_wrappers(self):
        assert calculate_mortgage_payment(Decimal("200000"), Decimal("6"), 30) == Decimal("1199.10")
        assert calculate_mortgage_balance(Decimal("300000"), Decimal("5"), 25, 0) == Decimal("300000.00")
        assert calculate_mortgage_balance(Decimal("300000"), Decimal("5"), 25, 25) == Decimal("0")
