from dataclasses import dataclass
from decimal import Decimal
from enum import Enum


class Province(Enum):
    ON = "ON"
    BC = "BC"
    AB = "AB"
    NS = "NS"
    QC = "QC"


class Strategy(Enum):
    BUY_HOLD = "buy_hold"
    BRRRR = "brrrr"
    FIX_FLIP = "fix_flip"
    MULTIFAMILY_DEVELOPMENT = "multifamily_development"


class PropertyType(Enum):
    SINGLE_FAMILY = "single_family"
    DUPLEX = "duplex"
    TRIPLEX = "triplex"
    FOURPLEX = "fourplex"
    MULTI_UNIT_5PLUS = "multi_unit_5plus"

    @property
    def benchmark_class(self) -> str:
        """Market benchmarks only distinguish single-family from multi-unit."""
        return "single_family" if self is PropertyType.SINGLE_FAMILY else "multi_unit"


class PropertyCondition(Enum):
    MOVE_IN_READY = "move_in_ready"
    COSMETIC = "cosmetic"
    MODERATE_RENO = "moderate_reno"
    HEAVY_RENO = "heavy_reno"
    GUT_JOB = "gut_job"


@dataclass(frozen=True)
class PropertyInputs:
    # Location
    province: Province
    city: str

    # Purchase & financing
    purchase_price: Decimal
    down_payment_percent: Decimal  # e.g. Decimal("20") for 20%
    interest_rate: Decimal  # Annual, e.g. Decimal("5.5")
    amortization_years: int = 25
    down_payment_amount: Decimal | None = None  # Derived from percent if None
    strategy: Strategy = Strategy.BUY_HOLD
    property_type: PropertyType = PropertyType.SINGLE_FAMILY

    # Revenue (monthly)
    monthly_rent: Decimal = Decimal("0")
    other_income: Decimal = Decimal("0")
    vacancy_rate: Decimal = Decimal("5")  # % of total monthly income

    # Expenses
    property_tax_annual: Decimal = Decimal("0")
    insurance_annual: Decimal = Decimal("0")
    property_management_percent: Decimal = Decimal("0")  # % of gross rent
    maintenance_percent: Decimal = Decimal("0")  # % of gross rent
    utilities_monthly: Decimal = Decimal("0")
    hoa_condo_fees_monthly: Decimal = Decimal("0")
    other_expenses_monthly: Decimal = Decimal("0")

    # Condition & renovation
    property_condition: PropertyCondition = PropertyCondition.MOVE_IN_READY
    renovation_cost: Decimal = Decimal("0")
    after_repair_value: Decimal | None = None

    # Property details
    year_built: int | None = None
    square_feet: int | None = None

    # Closing cost overrides
    legal_fees: Decimal | None = None
    inspection_cost: Decimal | None = None
    appraisal_cost: Decimal | None = None

    is_first_time_buyer: bool = False

    @property
    def down_payment(self) -> Decimal:
        if self.down_payment_amount is not None:
            return self.down_payment_amount
        return self.purchase_price * self.down_payment_percent / 100

    @property
    def mortgage_principal(self) -> Decimal:
        """Loan before any CMHC premium is added."""
        return self.purchase_price - self.down_payment

    @property
    def annual_rent(self) -> Decimal:
        return self.monthly_rent * 12
