"""Canonical test fixtures used across engine and API tests.

Canonical: Ontario (non-Toronto) $299,900, 20% down, 5.5%/25yr, $1,800/mo rent.
Toronto high-ratio: $500K, 10% down, CMHC insured at 3.10%.
BRRRR: $200K Hamilton fixer, $40K reno, $350K ARV.
Negative cash flow: Vancouver $900K, 20% down, $3,000/mo rent.
Strong: Calgary $200K, 25% down, $2,500/mo rent.
"""

import pytest
from decimal import Decimal

from ca_analyzer.engine.deal import analyze_deal
from ca_analyzer.engine.rates import DEFAULT_RATE_TABLES, RateTables
from ca_analyzer.models.analysis import DealAnalysis
from ca_analyzer.models.property import (
    PropertyCondition,
    PropertyInputs,
    Province,
    Strategy,
)


@pytest.fixture
def tables() -> RateTables:
    return DEFAULT_RATE_TABLES


@pytest.fixture
def canonical_inputs() -> PropertyInputs:
    """$299,900 Ontario rental with standard assumptions."""
    return PropertyInputs(
        province=Province.ON,
        city="Kingston",
        purchase_price=Decimal("299900"),
        down_payment_percent=Decimal("20"),
        interest_rate=Decimal("5.5"),
        amortization_years=25,
        monthly_rent=Decimal("1800"),
        vacancy_rate=Decimal("5"),
        property_tax_annual=Decimal("3000"),
        insurance_annual=Decimal("1200"),
        property_management_percent=Decimal("8"),
        maintenance_percent=Decimal("10"),
    )


@pytest.fixture
def toronto_high_ratio_inputs() -> PropertyInputs:
    """$500K Toronto condo with 10% down."""
    return PropertyInputs(
        province=Province.ON,
        city="Toronto",
        purchase_price=Decimal("500000"),
        down_payment_percent=Decimal("10"),
        interest_rate=Decimal("4.99"),
        amortization_years=25,
        monthly_rent=Decimal("2600"),
        vacancy_rate=Decimal("3"),
        property_tax_annual=Decimal("3200"),
        insurance_annual=Decimal("900"),
        maintenance_percent=Decimal("5"),
        hoa_condo_fees_monthly=Decimal("550"),
        year_built=2012,
    )


@pytest.fixture
def brrrr_inputs() -> PropertyInputs:
    """$200K fixer refinanced at 75% of a $350K ARV."""
    return PropertyInputs(
        province=Province.ON,
        city="Hamilton",
        purchase_price=Decimal("200000"),
        down_payment_percent=Decimal("20"),
        interest_rate=Decimal("5.5"),
        strategy=Strategy.BRRRR,
        monthly_rent=Decimal("2400"),
        property_tax_annual=Decimal("2800"),
        insurance_annual=Decimal("1100"),
        maintenance_percent=Decimal("8"),
        property_condition=PropertyCondition.HEAVY_RENO,
        renovation_cost=Decimal("40000"),
        after_repair_value=Decimal("350000"),
        year_built=1955,
        square_feet=1400,
    )


@pytest.fixture
def negative_cash_flow_inputs() -> PropertyInputs:
    """$900K Vancouver house that cannot carry its mortgage."""
    return PropertyInputs(
        province=Province.BC,
        city="Vancouver",
        purchase_price=Decimal("900000"),
        down_payment_percent=Decimal("20"),
        interest_rate=Decimal("6"),
        monthly_rent=Decimal("3000"),
        vacancy_rate=Decimal("5"),
        property_tax_annual=Decimal("4500"),
        insurance_annual=Decimal("2000"),
        property_management_percent=Decimal("8"),
        maintenance_percent=Decimal("5"),
        year_built=1970,
    )


@pytest.fixture
def strong_inputs() -> PropertyInputs:
    """$200K Calgary rental with $2,500/mo rent."""
    return PropertyInputs(
        province=Province.AB,
        city="Calgary",
        purchase_price=Decimal("200000"),
        down_payment_percent=Decimal("25"),
        interest_rate=Decimal("5"),
        monthly_rent=Decimal("2500"),
        vacancy_rate=Decimal("5"),
        property_tax_annual=Decimal("2400"),
        insurance_annual=Decimal("1200"),
        maintenance_percent=Decimal("5"),
        year_built=2015,
    )


@pytest.fixture
def canonical_analysis(canonical_inputs, tables) -> DealAnalysis:
    return analyze_deal(canonical_inputs, tables=tables)


@pytest.fixture
def negative_analysis(negative_cash_flow_inputs, tables) -> DealAnalysis:
    return analyze_deal(negative_cash_flow_inputs, tables=tables)


@pytest.fixture
def strong_analysis(strong_inputs, tables) -> DealAnalysis:
    return analyze_deal(strong_inputs, tables=tables)
