"""HTTP API for the surf report service."""

import hmac
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status
from pydantic import BaseModel, Field

from .config import settings
from .domain import (
    EnhancementContext,
    EnhancementResult,
    OverallVerdict,
    PipelineState,
    SurfReport,
    SwellReading,
    TidePrediction,
    WindReading,
)
from .pipeline_manager import get_pipeline
from .report import build_surf_report, fetch_prediction
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="surf_ai/api")


def require_api_key(x_api_key: str | None = Header(default=None)):
    """Validate the X-API-Key header against the static api_key setting, if one is set."""
    if not settings.api_key:
        return

    if not x_api_key:
        logger.debug("No API key provided")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing API key")

    if hmac.compare_digest(str(x_api_key), str(settings.api_key)):
        return

    logger.debug("Invalid API key provided")
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")


router = APIRouter(dependencies=[Depends(require_api_key)])


class ReportRequest(BaseModel):
    """Normalized readings from the sensor adapters."""
    wind: WindReading
    swell: SwellReading
    secondary_swell: Optional[SwellReading] = None
    tides: List[TidePrediction] = Field(default_factory=list)
    now: Optional[datetime] = None
    prediction_score: Optional[float] = Field(default=None, ge=0.0, le=10.0)
    use_prediction_service: bool = True
    enhance: bool = True
    wait: bool = False


class ReportResponse(BaseModel):
    """Verdict, narrative and whatever text should be shown right now."""
    verdict: OverallVerdict
    report: SurfReport
    displayed_text: str
    still_validating: bool = False
    enhancement_key: Optional[str] = None
    enhancement: Optional[EnhancementResult] = None


class EnhancementStatusResponse(BaseModel):
    """Poll result for a previously submitted narrative."""
    enhancement_key: str
    still_validating: bool
    enhancement: Optional[EnhancementResult] = None


class EnhanceRequest(BaseModel):
    """Enhance an arbitrary narrative synchronously."""
    narrative: str = Field(min_length=1)
    context: EnhancementContext = Field(default_factory=EnhancementContext)


class HealthResponse(BaseModel):
    status: str
    enhancement_configured: bool
    pipeline_state: PipelineState


def _resolve_prediction(req: ReportRequest) -> Optional[float]:
    """Caller-supplied score wins; otherwise ask the service if allowed."""
    if req.prediction_score is not None:
        return req.prediction_score
    if not req.use_prediction_service:
        return None
    return fetch_prediction(req.wind, req.swell, req.tides,
                            secondary_swell=req.secondary_swell, now=req.now)


@router.post("/report", response_model=ReportResponse)
def create_report(req: ReportRequest):
    """Score the readings and kick off (or wait for) narrative enhancement."""
    prediction = _resolve_prediction(req)
    report = build_surf_report(req.wind, req.swell, req.tides, now=req.now, prediction_score=prediction)

    if not req.enhance:
        return ReportResponse(verdict=report.verdict, report=report, displayed_text=report.narrative)

    pipeline = get_pipeline()
    key = pipeline.key_for(report.narrative, report.context)

    if req.wait:
        result = pipeline.process(report.narrative, report.context)
        return ReportResponse(verdict=report.verdict, report=report, displayed_text=result.text,
                              enhancement_key=key, enhancement=result)

    cached = pipeline.peek(key)
    if cached is not None:
        return ReportResponse(verdict=report.verdict, report=report, displayed_text=cached.text,
                              enhancement_key=key, enhancement=cached)

    future = pipeline.submit(report.narrative, report.context)
    if future.done() and not future.cancelled():
        result = future.result()
        return ReportResponse(verdict=report.verdict, report=report, displayed_text=result.text,
                              enhancement_key=key, enhancement=result)

    logger.info("Enhancement pending for %s", key[:12])
    return ReportResponse(verdict=report.verdict, report=report, displayed_text=report.narrative,
                          still_validating=True, enhancement_key=key)


@router.get("/report/enhancement/{key}", response_model=EnhancementStatusResponse)
def get_enhancement(key: str):
    """Return the enhancement for `key` once available."""
    pipeline = get_pipeline()
    result = pipeline.peek(key)
    if result is not None:
        return EnhancementStatusResponse(enhancement_key=key, still_validating=False, enhancement=result)
    if pipeline.is_validating:
        return EnhancementStatusResponse(enhancement_key=key, still_validating=True)
    raise HTTPException(status_code=404, detail="Unknown enhancement key")


@router.post("/enhance", response_model=EnhancementResult)
def enhance_narrative(req: EnhanceRequest):
    """Run the validating step now; bounded by the pipeline timeout."""
    return get_pipeline().process(req.narrative, req.context)


@router.get("/health", response_model=HealthResponse)
def health():
    """Liveness plus a hint whether enhancement is switched on."""
    return HealthResponse(
        status="ok",
        enhancement_configured=settings.enhancement_configured,
        pipeline_state=get_pipeline().state,
    )
