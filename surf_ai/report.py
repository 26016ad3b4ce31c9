"""
Evaluation cycle orchestration: readings in, verdict and narrative out.

All scoring is deterministic; only the narrative wording goes through a
PhraseSelector. The optional external prediction is fetched here and treated
as "no data" whenever it is unavailable.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable

from .aggregator import calculate_overall_quality
from .analyzers import analyze_swell, analyze_tide, analyze_wind
from .domain import EnhancementContext, SurfReport, SwellReading, TidePrediction, WindReading
from .narration import build_narrative
from .phrases import PhraseSelector
from .prediction_client import PredictionClient, build_prediction_request
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="surf_ai/report")


def enhancement_context(wind: WindReading, swell: SwellReading) -> EnhancementContext:
    """The four headline readings sent alongside the narrative."""
    return EnhancementContext(
        wave_height=swell.height_feet,
        wave_period=swell.period_seconds,
        wind_speed=wind.speed_knots,
        wind_direction=wind.direction_degrees,
    )


def fetch_prediction(
    wind: WindReading,
    swell: SwellReading,
    tides: Iterable[TidePrediction] | None,
    *,
    secondary_swell: SwellReading | None = None,
    now: datetime | None = None,
    client: PredictionClient | None = None,
) -> float | None:
    """Ask the prediction service for a 0-10 score; None when unavailable."""
    client = client or PredictionClient()
    if not client.configured:
        return None
    tide = analyze_tide(tides, now)
    request = build_prediction_request(wind, tide, swell, secondary_swell)
    score = client.predict(request)
    logger.debug("Prediction request %s -> %s", request, score)
    return score


def build_surf_report(
    wind: WindReading,
    swell: SwellReading,
    tides: Iterable[TidePrediction] | None,
    *,
    now: datetime | None = None,
    prediction_score: float | None = None,
    prediction_loading: bool = False,
    selector: PhraseSelector | None = None,
) -> SurfReport:
    """Run the three analyzers, aggregate them and render the narrative."""
    wind_analysis = analyze_wind(wind)
    swell_analysis = analyze_swell(swell)
    tide_analysis = analyze_tide(tides, now, selector=selector)
    verdict = calculate_overall_quality(wind_analysis, swell_analysis, tide_analysis, prediction_score)

    narrative = build_narrative(
        wind_analysis,
        swell_analysis,
        tide_analysis,
        verdict,
        prediction_score=prediction_score,
        prediction_loading=prediction_loading,
        selector=selector,
    )

    notes: list[str] = []
    if verdict.wind_override_applied:
        notes.append("Onshore wind override applied")
    if prediction_score is None:
        notes.append("No external prediction available")

    logger.info(
        "Verdict %s (score=%.2f, confidence=%d, wind=%.1f swell=%.1f tide=%.1f)",
        verdict.quality_tier.value,
        verdict.combined_score,
        verdict.confidence,
        wind_analysis.score,
        swell_analysis.score,
        tide_analysis.score,
    )

    return SurfReport(
        generated_at=datetime.now(timezone.utc),
        wind=wind_analysis,
        swell=swell_analysis,
        tide=tide_analysis,
        verdict=verdict,
        narrative=narrative,
        context=enhancement_context(wind, swell),
        prediction_score=prediction_score,
        notes=notes,
    )
