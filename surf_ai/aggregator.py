"""Combine per-factor analyses into a single overall verdict.

Wind dominates: severe onshore wind short-circuits everything else, strong
onshore wind caps the blend. Otherwise wind and swell carry 40% each and tide
20%, with an optional external prediction blended in at 30%.
"""

from __future__ import annotations

import math

from surf_ai.domain import (
    SCORE_MAX,
    SCORE_MIN,
    OverallTier,
    OverallVerdict,
    SwellAnalysis,
    TideAnalysis,
    WindAnalysis,
)

# External predictions arrive on a 0-10 scale and are normalized to 0-5.
PREDICTION_SCALE_MAX = 10.0

SEVERE_WIND_SCORE = 1.0
STRONG_WIND_SCORE = 2.0
SEVERE_WIND_COMBINED = 0.5
CAPPED_BLEND_MAX = 2.5

FIRING_MIN_HEIGHT_FT = 10.0
FIRING_MIN_PERIOD_S = 18.0

# (minimum combined score, tier, emoji, base confidence), best first
TIER_THRESHOLDS: tuple[tuple[float, OverallTier, str, int], ...] = (
    (4.2, OverallTier.EPIC, "⚡", 5),
    (3.5, OverallTier.GOOD, "👌", 4),
    (2.5, OverallTier.FAIR, "🤷‍♂️", 3),
    (1.5, OverallTier.POOR, "😬", 2),
)
TERRIBLE_EMOJI = "💀"
FIRING_EMOJI = "🔥"
WIND_EMOJI = "💨"
STORM_EMOJI = "🌪️"


def clamp_score(score: float) -> float:
    """Clamp to [0, 5] and drop float noise so thresholds compare cleanly."""
    return round(max(SCORE_MIN, min(SCORE_MAX, score)), 6)


def normalize_prediction(raw: float | None) -> float | None:
    """Map a 0-10 external prediction onto the 0-5 analyzer scale."""
    if raw is None or not math.isfinite(raw):
        return None
    return clamp_score(float(raw) * SCORE_MAX / PREDICTION_SCALE_MAX)


def _confidence(base: int, has_prediction: bool) -> int:
    return min(5, base + (1 if has_prediction else 0))


def calculate_overall_quality(
    wind: WindAnalysis,
    swell: SwellAnalysis,
    tide: TideAnalysis,
    prediction_score: float | None = None,
) -> OverallVerdict:
    """Aggregate the three analyses (plus an optional 0-10 prediction)."""
    normalized = normalize_prediction(prediction_score)
    has_prediction = normalized is not None

    if wind.score <= SEVERE_WIND_SCORE and not wind.is_offshore:
        return OverallVerdict(
            quality_tier=OverallTier.TERRIBLE,
            emoji=WIND_EMOJI,
            confidence=5,
            combined_score=SEVERE_WIND_COMBINED,
            wind_override_applied=True,
            has_prediction=has_prediction,
        )

    if wind.score <= STRONG_WIND_SCORE and not wind.is_offshore:
        combined = min(CAPPED_BLEND_MAX, wind.score * 0.6 + swell.score * 0.3 + tide.score * 0.1)
        if normalized is not None:
            # the capped path only lets a prediction pull toward the cap, not past it
            capped_prediction = min(CAPPED_BLEND_MAX, normalized / 2)
            combined = min(CAPPED_BLEND_MAX, combined * 0.8 + capped_prediction * 0.2)
        combined = clamp_score(combined)
        tier = OverallTier.POOR if combined >= 2.0 else OverallTier.TERRIBLE
        return OverallVerdict(
            quality_tier=tier,
            emoji=WIND_EMOJI if tier == OverallTier.POOR else STORM_EMOJI,
            confidence=4,
            combined_score=combined,
            wind_override_applied=True,
            has_prediction=has_prediction,
        )

    combined = wind.score * 0.4 + swell.score * 0.4 + tide.score * 0.2
    if normalized is not None:
        combined = combined * 0.7 + normalized * 0.3
    combined = clamp_score(combined)

    is_firing = (
        swell.height_feet >= FIRING_MIN_HEIGHT_FT
        and swell.period_seconds >= FIRING_MIN_PERIOD_S
        and tide.is_dropping
    )
    if is_firing:
        return OverallVerdict(
            quality_tier=OverallTier.FIRING,
            emoji=FIRING_EMOJI,
            confidence=5,
            combined_score=combined,
            is_firing=True,
            has_prediction=has_prediction,
        )

    for minimum, tier, emoji, base_confidence in TIER_THRESHOLDS:
        if combined >= minimum:
            return OverallVerdict(
                quality_tier=tier,
                emoji=emoji,
                confidence=_confidence(base_confidence, has_prediction),
                combined_score=combined,
                has_prediction=has_prediction,
            )

    return OverallVerdict(
        quality_tier=OverallTier.TERRIBLE,
        emoji=TERRIBLE_EMOJI,
        confidence=_confidence(1, has_prediction),
        combined_score=combined,
        has_prediction=has_prediction,
    )
