"""Static rate tables, versioned by tax year.

Tables are immutable and shared by reference across every calculator.
The built-in 2024 set is constructed once at import; an alternate set can be
loaded from JSON (settings.rate_tables_path) and is cached process-wide.
Verify rates annually.
"""

import json
import logging
from dataclasses import dataclass, replace
from decimal import Decimal
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

from ca_analyzer.config import settings
from ca_analyzer.models.property import Province

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Bracket:
    """Marginal bracket: `rate` percent applies to the slice (lower, upper]."""
    lower: Decimal
    upper: Decimal | None  # None = open-ended
    rate: Decimal


@dataclass(frozen=True)
class CMHCTier:
    min_down_percent: Decimal
    premium_rate: Decimal  # % of mortgage amount


@dataclass(frozen=True)
class FirstTimeBuyerRebate:
    max_rebate: Decimal
    price_limit: Decimal | None = None  # No rebate above this price


@dataclass(frozen=True)
class MarketBenchmark:
    single_family_cap_rate: Decimal
    multi_unit_cap_rate: Decimal
    rent_to_price: Decimal  # Monthly rent / price, percent
    days_on_market: int = 30

    def cap_rate(self, benchmark_class: str) -> Decimal:
        if benchmark_class == "single_family":
            return self.single_family_cap_rate
        return self.multi_unit_cap_rate


@dataclass(frozen=True)
class ClosingCosts:
    legal_fees: Decimal = Decimal("1500")
    inspection: Decimal = Decimal("500")
    appraisal: Decimal = Decimal("300")
    title_insurance: Decimal = Decimal("250")


@dataclass(frozen=True)
class RateTables:
    tax_year: int

    # CMHC mortgage loan insurance
    cmhc_tiers: tuple[CMHCTier, ...]  # Sorted by min_down_percent, descending
    cmhc_price_cap: Decimal
    minimum_down_percent: Decimal

    # Land transfer tax
    land_transfer: Mapping[Province, tuple[Bracket, ...]]
    toronto_municipal: tuple[Bracket, ...]
    first_time_buyer_rebates: Mapping[Province, FirstTimeBuyerRebate]
    toronto_first_time_buyer_rebate: FirstTimeBuyerRebate

    # OSFI B-20
    stress_test_buffer: Decimal
    stress_test_floor: Decimal

    # Income tax
    federal_brackets: tuple[Bracket, ...]
    provincial_brackets: Mapping[Province, tuple[Bracket, ...]]
    cca_class_1_rate: Decimal  # Buildings, declining balance
    building_value_ratio: Decimal  # Share of price that is depreciable
    capital_gains_inclusion: Decimal

    # Deal assumptions
    closing_costs: ClosingCosts
    brrrr_refinance_ltv: Decimal
    market_benchmarks: Mapping[str, MarketBenchmark]

    def benchmark_for(self, city: str) -> tuple[str, MarketBenchmark]:
        """Case-insensitive city lookup, falling back to `default`."""
        wanted = (city or "").strip().lower()
        for key, benchmark in self.market_benchmarks.items():
            if key.lower() == wanted and key != "default":
                return key, benchmark
        return "default", self.market_benchmarks["default"]


def _brackets(*rows: tuple[str, str | None, str]) -> tuple[Bracket, ...]:
    return tuple(
        Bracket(Decimal(lower), Decimal(upper) if upper is not None else None, Decimal(rate))
        for lower, upper, rate in rows
    )


_ONTARIO_LTT = _brackets(
    ("0", "55000", "0.5"),
    ("55000", "250000", "1.0"),
    ("250000", "400000", "1.5"),
    ("400000", None, "2.0"),
)


def _benchmark(sf: str, mu: str, rtp: str, dom: int = 30) -> MarketBenchmark:
    return MarketBenchmark(Decimal(sf), Decimal(mu), Decimal(rtp), dom)


DEFAULT_RATE_TABLES = RateTables(
    tax_year=2024,
    cmhc_tiers=(
        CMHCTier(Decimal("20"), Decimal("0.00")),
        CMHCTier(Decimal("15"), Decimal("2.80")),
        CMHCTier(Decimal("10"), Decimal("3.10")),
        CMHCTier(Decimal("5"), Decimal("4.00")),
    ),
    cmhc_price_cap=Decimal("1000000"),
    minimum_down_percent=Decimal("5"),
    land_transfer=MappingProxyType({
        Province.ON: _ONTARIO_LTT,
        Province.BC: _brackets(
            ("0", "200000", "1.0"),
            ("200000", "2000000", "2.0"),
            ("2000000", "3000000", "3.0"),
            ("3000000", None, "5.0"),
        ),
        Province.AB: _brackets(("0", None, "0.0")),  # Registration fee only
        Province.NS: _brackets(
            ("0", "30000", "0.5"),
            ("30000", "60000", "1.0"),
            ("60000", None, "1.5"),
        ),
        Province.QC: _brackets(  # Welcome tax, Montreal schedule
            ("0", "54900", "0.5"),
            ("54900", "274900", "1.0"),
            ("274900", None, "1.5"),
        ),
    }),
    toronto_municipal=_ONTARIO_LTT,
    first_time_buyer_rebates=MappingProxyType({
        Province.ON: FirstTimeBuyerRebate(Decimal("4000")),
        Province.NS: FirstTimeBuyerRebate(Decimal("1500")),
        # Full exemption to $500K; the $500K-equivalent amount up to $525K
        Province.BC: FirstTimeBuyerRebate(Decimal("8000"), price_limit=Decimal("525000")),
    }),
    toronto_first_time_buyer_rebate=FirstTimeBuyerRebate(Decimal("4475")),
    stress_test_buffer=Decimal("2.0"),
    stress_test_floor=Decimal("5.25"),
    federal_brackets=_brackets(
        ("0", "55867", "15.0"),
        ("55867", "111733", "20.5"),
        ("111733", "173205", "26.0"),
        ("173205", "246752", "29.0"),
        ("246752", None, "33.0"),
    ),
    provincial_brackets=MappingProxyType({
        Province.ON: _brackets(
            ("0", "51446", "5.05"),
            ("51446", "102894", "9.15"),
            ("102894", "150000", "11.16"),
            ("150000", "220000", "12.16"),
            ("220000", None, "13.16"),
        ),
        Province.BC: _brackets(
            ("0", "47937", "5.06"),
            ("47937", "95875", "7.70"),
            ("95875", "110076", "10.50"),
            ("110076", "133664", "12.29"),
            ("133664", "181232", "14.70"),
            ("181232", None, "16.80"),
        ),
        Province.AB: _brackets(
            ("0", "148269", "10.0"),
            ("148269", "177922", "12.0"),
            ("177922", "237230", "13.0"),
            ("237230", "355845", "14.0"),
            ("355845", None, "15.0"),
        ),
        Province.QC: _brackets(
            ("0", "51780", "14.0"),
            ("51780", "103545", "19.0"),
            ("103545", "126000", "24.0"),
            ("126000", None, "25.75"),
        ),
        Province.NS: _brackets(
            ("0", "29590", "8.79"),
            ("29590", "59180", "14.95"),
            ("59180", "93000", "16.67"),
            ("93000", "150000", "17.50"),
            ("150000", None, "21.00"),
        ),
    }),
    cca_class_1_rate=Decimal("0.04"),
    building_value_ratio=Decimal("0.80"),
    capital_gains_inclusion=Decimal("0.50"),
    closing_costs=ClosingCosts(),
    brrrr_refinance_ltv=Decimal("75"),
    market_benchmarks=MappingProxyType({
        "Toronto": _benchmark("3.5", "4.5", "0.35", 15),
        "Vancouver": _benchmark("2.5", "3.5", "0.30", 20),
        "Calgary": _benchmark("5.5", "6.5", "0.55", 30),
        "Edmonton": _benchmark("5.0", "6.0", "0.50", 35),
        "Montreal": _benchmark("4.5", "5.5", "0.55", 45),
        "Ottawa": _benchmark("4.0", "5.0", "0.45", 25),
        "Halifax": _benchmark("5.5", "6.0", "0.50", 30),
        "Winnipeg": _benchmark("6.0", "7.0", "0.60", 40),
        "Hamilton": _benchmark("4.0", "5.0", "0.40", 20),
        "London": _benchmark("4.5", "5.5", "0.50", 25),
        "Kitchener": _benchmark("4.0", "5.0", "0.45"),
        "Waterloo": _benchmark("4.0", "5.0", "0.45"),
        "Mississauga": _benchmark("3.5", "4.5", "0.35"),
        "Brampton": _benchmark("3.5", "4.5", "0.40"),
        "Surrey": _benchmark("2.8", "3.8", "0.35"),
        "Burnaby": _benchmark("2.5", "3.5", "0.30"),
        "Richmond": _benchmark("2.5", "3.5", "0.30"),
        "default": _benchmark("5.0", "6.0", "0.50", 30),
    }),
)


def _parse_brackets(rows: list) -> tuple[Bracket, ...]:
    return _brackets(*[
        (str(lower), str(upper) if upper is not None else None, str(rate))
        for lower, upper, rate in rows
    ])


def rate_tables_from_dict(data: dict, base: RateTables = DEFAULT_RATE_TABLES) -> RateTables:
    """Build tables from a JSON-style dict, overriding only the keys present.

    Bracket lists are `[lower, upper_or_null, rate_percent]` rows;
    province-keyed sections use two-letter codes.
    """
    overrides: dict = {}
    if "tax_year" in data:
        overrides["tax_year"] = int(data["tax_year"])
    if "cmhc_tiers" in data:
        tiers = [CMHCTier(Decimal(str(t[0])), Decimal(str(t[1]))) for t in data["cmhc_tiers"]]
        overrides["cmhc_tiers"] = tuple(sorted(tiers, key=lambda t: t.min_down_percent, reverse=True))
    for key in ("cmhc_price_cap", "minimum_down_percent", "stress_test_buffer",
                "stress_test_floor", "cca_class_1_rate", "building_value_ratio",
                "capital_gains_inclusion", "brrrr_refinance_ltv"):
        if key in data:
            overrides[key] = Decimal(str(data[key]))
    for key in ("federal_brackets", "toronto_municipal"):
        if key in data:
            overrides[key] = _parse_brackets(data[key])
    for key in ("land_transfer", "provincial_brackets"):
        if key in data:
            merged = dict(getattr(base, key))
            merged.update({Province(code): _parse_brackets(rows) for code, rows in data[key].items()})
            overrides[key] = MappingProxyType(merged)
    if "first_time_buyer_rebates" in data:
        merged = dict(base.first_time_buyer_rebates)
        for code, rule in data["first_time_buyer_rebates"].items():
            limit = rule.get("price_limit")
            merged[Province(code)] = FirstTimeBuyerRebate(
                Decimal(str(rule["max_rebate"])),
                Decimal(str(limit)) if limit is not None else None,
            )
        overrides["first_time_buyer_rebates"] = MappingProxyType(merged)
    return replace(base, **overrides)


def load_rate_tables(path: str | Path) -> RateTables:
    with open(path) as f:
        data = json.load(f)
    return rate_tables_from_dict(data)


_RATE_TABLES: RateTables | None = None


def get_rate_tables() -> RateTables:
    """Process-wide tables: the configured JSON file, else the built-in set."""
    global _RATE_TABLES
    if _RATE_TABLES is None:
        if settings.rate_tables_path:
            _RATE_TABLES = load_rate_tables(settings.rate_tables_path)
            logger.info("Loaded %d rate tables from %s", _RATE_TABLES.tax_year, settings.rate_tables_path)
        else:
            _RATE_TABLES = DEFAULT_RATE_TABLES
        if _RATE_TABLES.tax_year != settings.tax_year:
            logger.warning(
                "Configured tax year %d but rate tables are for %d",
                settings.tax_year, _RATE_TABLES.tax_year,
            )
    return _RATE_TABLES
