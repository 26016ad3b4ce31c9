"""Deterministic per-factor surf analyzers.

Each analyzer turns one normalized reading (wind, swell, tide table) into an
AnalysisResult with a quality tier, a 0-5 score and descriptive text. They are
pure functions: no I/O, no shared state, safe to call from any thread. The
only non-determinism is the wording of the tide description, which goes
through an injectable PhraseSelector.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, Sequence

from surf_ai.domain import (
    QualityTier,
    SwellAnalysis,
    SwellReading,
    SwellType,
    TideAnalysis,
    TideDirection,
    TideKind,
    TidePrediction,
    WindAnalysis,
    WindReading,
)
from surf_ai.phrases import PhraseSelector, default_selector


# Offshore band for this break: easterly wind blows from land to sea.
OFFSHORE_MIN_DEG = 45.0
OFFSHORE_MAX_DEG = 135.0
OFFSHORE_STRONG_KNOTS = 25.0

# (max knots inclusive, tier, score, description, label) for non-offshore wind
WIND_BREAKPOINTS: Sequence[tuple[float, QualityTier, float, str, str]] = (
    (3.0, QualityTier.EXCELLENT, 5.0, "glassy", "glassy"),
    (5.0, QualityTier.GOOD, 4.0, "light wind", "light wind"),
    (8.0, QualityTier.FAIR, 2.5, "windy", "windy"),
    (12.0, QualityTier.POOR, 2.0, "very windy", "very windy"),
    (18.0, QualityTier.POOR, 1.0, "not surfable", "too windy"),
)

SWELL_BIG_FEET = 5.0
SWELL_LONG_PERIOD_S = 15.0
SWELL_SHORT_PERIOD_S = 12.0

TIDE_DROPPING_SCORE = 4.5
TIDE_RISING_SCORE = 2.0
TIDE_NEUTRAL_SCORE = 2.5

DROPPING_PHRASES = (
    "dropping (dialed!)",
    "dropping (money time!)",
    "dropping (green light!)",
    "dropping (go time!)",
    "dropping (optimal!)",
)
RISING_PHRASES = (
    "rising (patience pays)",
    "rising (almost there)",
    "rising (hold tight)",
    "rising (wait for it)",
    "rising (building up)",
)

_COMPASS_8 = ("N", "NE", "E", "SE", "S", "SW", "W", "NW")
_COMPASS_4 = ("N", "E", "S", "W")


def _fmt(value: float) -> str:
    """Render a reading without trailing zeros (8.0 -> '8', 8.5 -> '8.5')."""
    return f"{value:g}"


def wind_direction_text(degrees: float) -> str:
    """Eight-point compass label; sectors are 45 deg wide centred on each point."""
    wrapped = degrees % 360.0
    return _COMPASS_8[int(((wrapped + 22.5) % 360.0) // 45.0)]


def simple_wind_direction(degrees: float) -> str:
    """Four-point compass label used by the prediction service (N/E/S/W)."""
    wrapped = degrees % 360.0
    return _COMPASS_4[int(((wrapped + 45.0) % 360.0) // 90.0)]


def is_offshore(direction_degrees: float) -> bool:
    """Return True when the wind blows from land to sea at this break."""
    wrapped = direction_degrees % 360.0
    return OFFSHORE_MIN_DEG <= wrapped <= OFFSHORE_MAX_DEG


def analyze_wind(reading: WindReading) -> WindAnalysis:
    """Grade wind speed and direction.

    Offshore wind is always Excellent; it scores 5 below 25 knots and 3 at or
    above. Any other direction steps down through fixed speed breakpoints and
    is Dangerous above 18 knots.
    """
    speed = reading.speed_knots
    direction = reading.direction_degrees
    compass = wind_direction_text(direction)

    if is_offshore(direction):
        return WindAnalysis(
            quality_tier=QualityTier.EXCELLENT,
            score=5.0 if speed < OFFSHORE_STRONG_KNOTS else 3.0,
            description="offshore",
            descriptive_text=f"{_fmt(speed)}kts {compass} (offshore)",
            is_offshore=True,
            direction_text=compass,
        )

    for max_knots, tier, score, description, label in WIND_BREAKPOINTS:
        if speed <= max_knots:
            return WindAnalysis(
                quality_tier=tier,
                score=score,
                description=description,
                descriptive_text=f"{_fmt(speed)}kts {compass} ({label})",
                is_offshore=False,
                direction_text=compass,
            )

    return WindAnalysis(
        quality_tier=QualityTier.DANGEROUS,
        score=0.0,
        description="victory at sea",
        descriptive_text=f"{_fmt(speed)}kts {compass} (victory at sea!)",
        is_offshore=False,
        direction_text=compass,
    )


def analyze_swell(reading: SwellReading) -> SwellAnalysis:
    """Grade a swell with a 2D height/period lookup.

    Lower edges are inclusive (5 ft, 15 s and 12 s all land in the better
    bucket); upper edges are exclusive.
    """
    height = reading.height_feet
    period = reading.period_seconds
    prefix = f"{_fmt(height)}ft @ {_fmt(period)}s"

    if height >= SWELL_BIG_FEET and period >= SWELL_LONG_PERIOD_S:
        tier, score, swell_type = QualityTier.EXCELLENT, 5.0, SwellType.LONG_PERIOD
        description, label = "long period swell", "long period swell"
    elif height < SWELL_BIG_FEET and period >= SWELL_LONG_PERIOD_S:
        tier, score, swell_type = QualityTier.GOOD, 4.0, SwellType.SMALL_GOOD
        description, label = "small but good", "small but good quality"
    elif height >= SWELL_BIG_FEET and period < SWELL_SHORT_PERIOD_S:
        tier, score, swell_type = QualityTier.FAIR, 2.0, SwellType.WINDSWELL
        description, label = "windswell", "windswell"
    elif SWELL_SHORT_PERIOD_S <= period < SWELL_LONG_PERIOD_S:
        tier, score, swell_type = QualityTier.FAIR, 3.0, SwellType.MID_PERIOD
        description, label = "mid-period swell", "mid-period"
    else:
        tier, score, swell_type = QualityTier.POOR, 1.0, SwellType.POOR
        description, label = "small and short period", "small & choppy"

    return SwellAnalysis(
        quality_tier=tier,
        score=score,
        description=description,
        descriptive_text=f"{prefix} ({label})",
        swell_type=swell_type,
        height_feet=height,
        period_seconds=period,
    )


def format_time_delta(delta_seconds: float) -> str:
    """Format a positive duration as whole hours and minutes, e.g. '2h 5m'."""
    total_minutes = int(max(0.0, delta_seconds) // 60)
    hours, minutes = divmod(total_minutes, 60)
    return f"{hours}h {minutes}m"


def _unknown_tide(text: str = "tide data unavailable") -> TideAnalysis:
    return TideAnalysis(
        quality_tier=QualityTier.UNKNOWN,
        score=TIDE_NEUTRAL_SCORE,
        description="direction unclear",
        descriptive_text=text,
        direction=TideDirection.UNKNOWN,
    )


def _as_utc(value: datetime) -> datetime:
    """Naive timestamps are taken as UTC; aware ones are converted to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def analyze_tide(
    predictions: Iterable[TidePrediction] | None,
    now: datetime | None = None,
    *,
    selector: PhraseSelector | None = None,
) -> TideAnalysis:
    """Derive the current tide direction from a tide table and grade it.

    Fewer than two predictions yields a neutral Unknown result; this function
    never raises on missing data. Predictions are sorted here, so callers may
    pass them in any order. Naive and aware timestamps may be mixed: naive
    values (including `now`) are read as UTC.
    """
    series = sorted(predictions or [], key=lambda p: _as_utc(p.timestamp))
    if len(series) < 2:
        return _unknown_tide()

    selector = selector or default_selector
    now = datetime.now(timezone.utc) if now is None else _as_utc(now)

    next_index = next((i for i, p in enumerate(series) if _as_utc(p.timestamp) > now), None)

    direction = TideDirection.UNKNOWN
    next_high: TidePrediction | None = None
    if next_index is not None and next_index > 0:
        prev_tide = series[next_index - 1]
        next_tide = series[next_index]
        if prev_tide.kind == TideKind.HIGH and next_tide.kind == TideKind.LOW:
            direction = TideDirection.DROPPING
        elif prev_tide.kind == TideKind.LOW and next_tide.kind == TideKind.HIGH:
            direction = TideDirection.RISING
            next_high = next_tide

    if next_high is None and next_index is not None:
        next_high = next((p for p in series[next_index:] if p.kind == TideKind.HIGH), None)

    time_to_next_high = None
    if next_high is not None:
        time_to_next_high = format_time_delta((_as_utc(next_high.timestamp) - now).total_seconds())

    if direction == TideDirection.DROPPING:
        return TideAnalysis(
            quality_tier=QualityTier.EXCELLENT,
            score=TIDE_DROPPING_SCORE,
            description="dropping",
            descriptive_text=f"tide {selector.choose(DROPPING_PHRASES)}",
            direction=direction,
            is_dropping=True,
            next_high_tide=next_high,
            time_to_next_high=time_to_next_high,
        )
    if direction == TideDirection.RISING:
        return TideAnalysis(
            quality_tier=QualityTier.FAIR,
            score=TIDE_RISING_SCORE,
            description="rising",
            descriptive_text=f"tide {selector.choose(RISING_PHRASES)}",
            direction=direction,
            next_high_tide=next_high,
            time_to_next_high=time_to_next_high,
        )

    unknown = _unknown_tide("tide direction unclear")
    return unknown.model_copy(update={
        "next_high_tide": next_high,
        "time_to_next_high": time_to_next_high,
    })
