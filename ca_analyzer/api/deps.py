"""FastAPI dependency injection."""

from ca_analyzer.engine.rates import RateTables, get_rate_tables


def get_tables() -> RateTables:
    return get_rate_tables()
