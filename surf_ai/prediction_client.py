"""Client for the external numeric surf prediction service.

The service is optional: any failure, misconfiguration or odd payload is
reported as "no data" (None) and never blocks scoring.
"""

from __future__ import annotations

import math

import requests

from .analyzers import simple_wind_direction
from .config import Settings, settings as default_settings
from .domain import SwellReading, TideAnalysis, TideDirection, WindReading
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="surf_ai/prediction_client")

_TIDE_PHASES = {
    TideDirection.DROPPING: "FALLING",
    TideDirection.RISING: "RISING",
    TideDirection.UNKNOWN: "UNKNOWN",
}
MAX_BUOY_FEET = 50.0
MIN_SCORE = 0.0
MAX_SCORE = 10.0


def build_prediction_request(
    wind: WindReading,
    tide: TideAnalysis,
    primary_swell: SwellReading,
    secondary_swell: SwellReading | None = None,
) -> dict:
    """Compact categorical request: tide phase, wind sector and two buoy heights."""
    secondary = secondary_swell or primary_swell
    return {
        "tide": _TIDE_PHASES[tide.direction],
        "wind": simple_wind_direction(wind.direction_degrees),
        "pt_reyes": f"{min(primary_swell.height_feet, MAX_BUOY_FEET):.1f}",
        "sf_bar": f"{min(secondary.height_feet, MAX_BUOY_FEET):.1f}",
    }


class PredictionClient:
    """POSTs the request and reads back a 0-10 score."""

    def __init__(self, config: Settings | None = None):
        config = config or default_settings
        self.url = config.prediction_api_url
        self.timeout = config.prediction_timeout_seconds

    @property
    def configured(self) -> bool:
        return bool(self.url)

    def predict(self, request: dict) -> float | None:
        """Return the predicted score, or None when unavailable."""
        if not self.configured:
            logger.debug("Prediction service not configured; skipping")
            return None
        try:
            r = requests.post(self.url, json=request, timeout=self.timeout)
        except requests.exceptions.RequestException as exc:
            logger.warning("Prediction request failed: %s", exc)
            return None
        if r.status_code != 200:
            logger.warning("Prediction service returned %d: %s", r.status_code, (r.text or "")[:200])
            return None
        try:
            data = r.json()
        except ValueError:
            logger.warning("Prediction service returned non-JSON: %s", (r.text or "")[:200])
            return None

        raw = data.get("predicted_score", data.get("score")) if isinstance(data, dict) else None
        if raw is None or isinstance(raw, bool):
            return None
        try:
            score = float(raw)
        except (TypeError, ValueError):
            logger.warning("Prediction score is not numeric: %r", raw)
            return None
        if not math.isfinite(score):
            logger.warning("Prediction score is not finite: %r", raw)
            return None
        if not MIN_SCORE <= score <= MAX_SCORE:
            logger.warning("Prediction score %s outside %g-%g; clamping", score, MIN_SCORE, MAX_SCORE)
        return max(MIN_SCORE, min(MAX_SCORE, score))
