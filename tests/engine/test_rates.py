import json
from decimal import Decimal

import pytest

from ca_analyzer.engine.rates import (
    DEFAULT_RATE_TABLES,
    load_rate_tables,
    rate_tables_from_dict,
)
from ca_analyzer.models.property import Province


class TestDefaultTables:
    def test_cmhc_tiers_descending(self):
        downs = [t.min_down_percent for t in DEFAULT_RATE_TABLES.cmhc_tiers]
        assert downs == sorted(downs, reverse=True)

    def test_every_province_has_brackets(self):
        for province in Province:
            assert province in DEFAULT_RATE_TABLES.land_transfer
            assert province in DEFAULT_RATE_TABLES.provincial_brackets

    def test_tables_are_read_only(self):
        with pytest.raises(TypeError):
            DEFAULT_RATE_TABLES.land_transfer[Province.ON] = ()

    def test_benchmark_lookup(self):
        key, benchmark = DEFAULT_RATE_TABLES.benchmark_for("  vancouver ")
        assert key == "Vancouver"
        assert benchmark.single_family_cap_rate == Decimal("2.5")

    def test_benchmark_fallback(self):
        key, benchmark = DEFAULT_RATE_TABLES.benchmark_for("Moose Jaw")
        assert key == "default"
        assert benchmark.single_family_cap_rate == Decimal("5.0")


class TestOverrides:
    def test_partial_override_keeps_the_rest(self):
        tables = rate_tables_from_dict({"tax_year": 2025, "stress_test_floor": 6})
        assert tables.tax_year == 2025
        assert tables.stress_test_floor == Decimal("6")
        assert tables.stress_test_buffer == DEFAULT_RATE_TABLES.stress_test_buffer
        assert tables.cmhc_tiers == DEFAULT_RATE_TABLES.cmhc_tiers

    def test_province_section_merges(self):
        tables = rate_tables_from_dict({"land_transfer": {"AB": [[0, None, 0.25]]}})
        assert tables.land_transfer[Province.AB][0].rate == Decimal("0.25")
        assert tables.land_transfer[Province.ON] == DEFAULT_RATE_TABLES.land_transfer[Province.ON]

    def test_cmhc_tiers_are_resorted(self):
        tables = rate_tables_from_dict({"cmhc_tiers": [[5, 4.5], [20, 0], [10, 3.5], [15, 3]]})
        assert [t.min_down_percent for t in tables.cmhc_tiers] == [20, 15, 10, 5]

    def test_load_from_json(self, tmp_path):
        path = tmp_path / "rates-2025.json"
        path.write_text(json.dumps({
            "tax_year": 2025,
            "first_time_buyer_rebates": {"ON": {"max_rebate": 5000}},
        }))
        tables = load_rate_tables(path)
        assert tables.tax_year == 2025
        assert tables.first_time_buyer_rebates[Province.ON].max_rebate == Decimal("5000")
        assert tables.first_time_buyer_rebates[Province.ON].price_limit is None
