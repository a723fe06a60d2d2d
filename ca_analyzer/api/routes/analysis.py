"""Analysis routes: the primary API entry point."""

from fastapi import APIRouter, Depends, HTTPException

from ca_analyzer.api.deps import get_tables
from ca_analyzer.api.schemas import (
    AnalysisResponse,
    AnalyzeRequest,
    BreakEvenRequest,
    BreakEvenResponse,
    MetricsRequest,
    MetricsResponse,
    PropertyInputsSchema,
    RiskRequest,
    RiskResponse,
    TaxRequest,
    TaxResponse,
)
from ca_analyzer.engine.break_even import analyze_expense_optimization, calculate_break_even
from ca_analyzer.engine.deal import analyze_deal
from ca_analyzer.engine.errors import InputValidationError
from ca_analyzer.engine.projections import calculate_advanced_metrics
from ca_analyzer.engine.rates import RateTables
from ca_analyzer.engine.risk import analyze_risks
from ca_analyzer.engine.scoring import deal_quality_description, is_deal_worth_pursuing
from ca_analyzer.engine.tax import calculate_multi_year_tax_projection, calculate_tax_impact
from ca_analyzer.models.analysis import DealAnalysis
from ca_analyzer.models.results import BorrowerProfile

router = APIRouter(prefix="/api/v1", tags=["analysis"])


def _analyze(
    inputs: PropertyInputsSchema,
    tables: RateTables,
    borrower: BorrowerProfile | None = None,
) -> DealAnalysis:
    try:
        return analyze_deal(inputs.to_inputs(), borrower=borrower, tables=tables)
    except InputValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.post("/analyze", response_model=AnalysisResponse)
async def analyze(req: AnalyzeRequest, tables: RateTables = Depends(get_tables)):
    """Primary endpoint: property inputs → full scored analysis."""
    borrower = req.borrower.to_profile() if req.borrower else None
    analysis = _analyze(req.inputs, tables, borrower)
    return AnalysisResponse(
        analysis=analysis,
        worth_pursuing=is_deal_worth_pursuing(analysis.scoring.total_score),
        quality=deal_quality_description(analysis.scoring.grade),
    )


@router.post("/analyze/metrics", response_model=MetricsResponse)
async def analyze_metrics(req: MetricsRequest, tables: RateTables = Depends(get_tables)):
    """Multi-year projection with IRR, NPV, MIRR and payback."""
    analysis = _analyze(req.inputs, tables)
    assumptions = req.assumptions.to_assumptions() if req.assumptions else None
    try:
        metrics = calculate_advanced_metrics(analysis.inputs, analysis, assumptions)
    except InputValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return MetricsResponse(analysis=analysis, metrics=metrics)


@router.post("/analyze/tax", response_model=TaxResponse)
async def analyze_tax(req: TaxRequest, tables: RateTables = Depends(get_tables)):
    analysis = _analyze(req.inputs, tables)
    try:
        impact = calculate_tax_impact(
            analysis,
            req.employment_income,
            years_held=req.years_held,
            appreciation_rate=req.appreciation_rate,
            tables=tables,
        )
        projection = calculate_multi_year_tax_projection(
            analysis, req.employment_income, req.projection_years, tables=tables
        )
    except InputValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return TaxResponse(impact=impact, projection=projection)


@router.post("/analyze/risk", response_model=RiskResponse)
async def analyze_risk(req: RiskRequest, tables: RateTables = Depends(get_tables)):
    analysis = _analyze(req.inputs, tables)
    risk = analyze_risks(analysis.inputs, analysis, as_of_year=req.as_of_year, tables=tables)
    return RiskResponse(risk=risk)


@router.post("/analyze/break-even", response_model=BreakEvenResponse)
async def analyze_break_even(req: BreakEvenRequest, tables: RateTables = Depends(get_tables)):
    """What would have to change for the deal to stop losing money."""
    analysis = _analyze(req.inputs, tables)
    return BreakEvenResponse(
        break_even=calculate_break_even(analysis),
        expense_optimization=analyze_expense_optimization(analysis),
    )
