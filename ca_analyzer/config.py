from decimal import Decimal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "env_prefix": "CA_ANALYZER_"}

    # App
    debug: bool = False
    log_level: str = "INFO"

    # Rate tables (versioned by tax year; JSON file overrides the built-in set)
    tax_year: int = 2024
    rate_tables_path: str = ""

    # Projection defaults (percents)
    hold_period_years: int = 5
    appreciation_rate: Decimal = Decimal("3.0")
    rent_growth_rate: Decimal = Decimal("2.5")
    expense_growth_rate: Decimal = Decimal("2.0")
    sale_costs_percent: Decimal = Decimal("5.0")
    discount_rate: Decimal = Decimal("8.0")

    # Tax impact
    default_employment_income: Decimal = Decimal("80000")

    # IRR solver hard cap
    irr_max_iterations: int = 100


settings = Settings()
