"""Domain vocabulary and strict schemas for surf condition scoring.

This module defines the contract between the sensor adapters, the
deterministic scoring engine, the narrative generator and the enhancement
pipeline: enums, readings, per-factor analyses, the overall verdict and the
enhancement result. No interpretation logic lives here.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator


SCORE_MIN = 0.0
SCORE_MAX = 5.0


class _StrictBaseModel(BaseModel):
    """Base model with strict extra handling."""

    model_config = ConfigDict(extra="forbid")


class _FrozenModel(BaseModel):
    """Readings are immutable for the duration of an evaluation cycle."""

    model_config = ConfigDict(extra="forbid", frozen=True)


class QualityTier(str, Enum):
    """Per-factor grade produced by an analyzer."""
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    DANGEROUS = "dangerous"
    UNKNOWN = "unknown"


class OverallTier(str, Enum):
    """Overall surf grade, best first."""
    FIRING = "firing"
    EPIC = "epic"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    TERRIBLE = "terrible"


class TideKind(str, Enum):
    """Tide table entry type, using the NOAA single-letter codes."""
    HIGH = "H"
    LOW = "L"


class TideDirection(str, Enum):
    """Current tide movement."""
    DROPPING = "dropping"
    RISING = "rising"
    UNKNOWN = "unknown"


class SwellType(str, Enum):
    """Cell of the height/period lookup a swell falls into."""
    LONG_PERIOD = "long-period"
    SMALL_GOOD = "small-good"
    WINDSWELL = "windswell"
    MID_PERIOD = "mid-period"
    POOR = "poor"


class EnhancementReason(str, Enum):
    """Why a narrative was not enhanced."""
    NOT_CONFIGURED = "not_configured"
    SERVICE_ERROR = "service_error"
    EMPTY_RESPONSE = "empty_response"
    MALFORMED_RESPONSE = "malformed_response"
    INVALID_LENGTH = "invalid_length"
    TOO_DIFFERENT = "too_different"
    TIMED_OUT = "timed_out"
    DUPLICATE = "duplicate"


class PipelineState(str, Enum):
    """States of the enhancement pipeline."""
    IDLE = "idle"
    DEBOUNCING = "debouncing"
    VALIDATING = "validating"
    RESOLVED = "resolved"
    TIMED_OUT = "timed_out"
    FAILED = "failed"


# ---------------------------------------------------------------------------
# Readings (already normalized by the sensor adapters)
# ---------------------------------------------------------------------------

class WindReading(_FrozenModel):
    """Wind station sample in knots and compass degrees."""
    speed_knots: float = Field(ge=0.0)
    direction_degrees: float

    @field_validator("direction_degrees", mode="after")
    @classmethod
    def wrap_direction(cls, v: float) -> float:
        """Wrap any bearing into [0, 360)."""
        return v % 360.0


class SwellReading(_FrozenModel):
    """Buoy sample: significant height (ft) and dominant period (s)."""
    height_feet: float = Field(ge=0.0)
    period_seconds: float = Field(ge=0.0)


class TidePrediction(_FrozenModel):
    """Single high or low tide from the tide table."""
    timestamp: datetime
    height_feet: float
    kind: TideKind


# ---------------------------------------------------------------------------
# Analyses
# ---------------------------------------------------------------------------

class AnalysisResult(_StrictBaseModel):
    """Shape shared by every per-factor analyzer."""
    quality_tier: QualityTier
    score: float = Field(ge=SCORE_MIN, le=SCORE_MAX)
    description: str
    descriptive_text: str


class WindAnalysis(AnalysisResult):
    """Wind grade plus the offshore flag the aggregator keys on."""
    is_offshore: bool = False
    direction_text: str = "N/A"


class SwellAnalysis(AnalysisResult):
    """Swell grade; keeps the raw numbers for the firing check."""
    swell_type: SwellType
    height_feet: float
    period_seconds: float


class TideAnalysis(AnalysisResult):
    """Tide grade with direction and upcoming high tide, when known."""
    direction: TideDirection = TideDirection.UNKNOWN
    is_dropping: bool = False
    next_high_tide: TidePrediction | None = None
    time_to_next_high: str | None = None


class OverallVerdict(_StrictBaseModel):
    """Aggregated verdict; recomputed every cycle and never persisted."""
    quality_tier: OverallTier
    emoji: str
    confidence: int = Field(ge=0, le=5)
    combined_score: float = Field(ge=SCORE_MIN, le=SCORE_MAX)
    wind_override_applied: bool = False
    is_firing: bool = False
    has_prediction: bool = False


# ---------------------------------------------------------------------------
# Enhancement
# ---------------------------------------------------------------------------

class EnhancementContext(_FrozenModel):
    """The four headline readings sent alongside a narrative."""
    wave_height: float | None = None
    wave_period: float | None = None
    wind_speed: float | None = None
    wind_direction: float | None = None


class EnhancementResult(_StrictBaseModel):
    """Final displayed text and how it was obtained."""
    text: str
    was_enhanced: bool
    reason: EnhancementReason | None = None
    detail: str | None = None
    cached: bool = False
    original_length: int | None = None
    enhanced_length: int | None = None

    @property
    def is_fallback(self) -> bool:
        return not self.was_enhanced


class SurfReport(_StrictBaseModel):
    """Everything produced for one evaluation cycle, pre-enhancement."""
    generated_at: datetime
    wind: WindAnalysis
    swell: SwellAnalysis
    tide: TideAnalysis
    verdict: OverallVerdict
    narrative: str
    context: EnhancementContext
    prediction_score: float | None = None
    notes: List[str] = Field(default_factory=list)
