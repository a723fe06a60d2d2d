"""Mortgage qualification routes."""

from fastapi import APIRouter, Depends, HTTPException

from ca_analyzer.api.deps import get_tables
from ca_analyzer.api.schemas import QualifyRequest, QualifyResponse
from ca_analyzer.engine.errors import InputValidationError
from ca_analyzer.engine.qualification import assess_qualification, calculate_borrowing_power
from ca_analyzer.engine.rates import RateTables

router = APIRouter(prefix="/api/v1", tags=["qualification"])


@router.post("/qualify", response_model=QualifyResponse)
async def qualify(req: QualifyRequest, tables: RateTables = Depends(get_tables)):
    """GDS/TDS for a given payment (optional) plus maximum borrowing power."""
    borrower = req.borrower.to_profile()

    qualification = None
    if req.monthly_payment is not None:
        qualification = assess_qualification(
            borrower, req.monthly_payment, req.annual_property_tax, req.monthly_condo_fees
        )

    try:
        power = calculate_borrowing_power(
            borrower,
            req.down_payment_available,
            req.interest_rate,
            req.amortization_years,
            tables=tables,
        )
    except InputValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return QualifyResponse(qualification=qualification, borrowing_power=power)
