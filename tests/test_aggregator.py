import pytest

from surf_ai.aggregator import calculate_overall_quality, normalize_prediction
from surf_ai.domain import (
    OverallTier,
    QualityTier,
    SwellAnalysis,
    SwellType,
    TideAnalysis,
    TideDirection,
    WindAnalysis,
)


def wind(score: float, offshore: bool = False) -> WindAnalysis:
    return WindAnalysis(
        quality_tier=QualityTier.EXCELLENT if offshore else QualityTier.FAIR,
        score=score,
        description="offshore" if offshore else "windy",
        descriptive_text="test wind",
        is_offshore=offshore,
    )


def swell(score: float, height: float = 3.0, period: float = 11.0) -> SwellAnalysis:
    return SwellAnalysis(
        quality_tier=QualityTier.FAIR,
        score=score,
        description="windswell",
        descriptive_text="test swell",
        swell_type=SwellType.WINDSWELL,
        height_feet=height,
        period_seconds=period,
    )


def tide(score: float, dropping: bool = False) -> TideAnalysis:
    return TideAnalysis(
        quality_tier=QualityTier.EXCELLENT if dropping else QualityTier.UNKNOWN,
        score=score,
        description="dropping" if dropping else "direction unclear",
        descriptive_text="test tide",
        direction=TideDirection.DROPPING if dropping else TideDirection.UNKNOWN,
        is_dropping=dropping,
    )


def test_blended_scenario_without_prediction():
    verdict = calculate_overall_quality(wind(2.5), swell(2.0), tide(4.5, dropping=True))
    assert verdict.combined_score == pytest.approx(2.7)
    assert verdict.quality_tier == OverallTier.FAIR
    assert verdict.confidence == 3
    assert not verdict.wind_override_applied
    assert not verdict.has_prediction


def test_prediction_reblends_and_bumps_confidence():
    verdict = calculate_overall_quality(wind(2.5), swell(2.0), tide(4.5, dropping=True), prediction_score=8)
    assert verdict.combined_score == pytest.approx(3.09)
    assert verdict.quality_tier == OverallTier.FAIR
    assert verdict.confidence == 4
    assert verdict.has_prediction


@pytest.mark.parametrize("swell_score,tide_score", [(5.0, 4.5), (1.0, 2.0), (4.0, 2.5)])
def test_severe_onshore_wind_forces_terrible(swell_score, tide_score):
    verdict = calculate_overall_quality(wind(0.5), swell(swell_score, 12, 20), tide(tide_score, dropping=True),
                                        prediction_score=10)
    assert verdict.quality_tier == OverallTier.TERRIBLE
    assert verdict.confidence == 5
    assert verdict.combined_score == 0.5
    assert verdict.wind_override_applied


def test_low_offshore_score_is_not_overridden():
    verdict = calculate_overall_quality(wind(1.0, offshore=True), swell(5.0), tide(4.5))
    assert not verdict.wind_override_applied
    assert verdict.combined_score == pytest.approx(0.4 + 2.0 + 0.9)


def test_strong_onshore_wind_caps_blend():
    verdict = calculate_overall_quality(wind(2.0), swell(5.0), tide(4.5))
    assert verdict.wind_override_applied
    assert verdict.combined_score == pytest.approx(2.5)
    assert verdict.quality_tier == OverallTier.POOR
    assert verdict.confidence == 4


def test_strong_onshore_wind_below_two_is_terrible():
    verdict = calculate_overall_quality(wind(2.0), swell(1.0), tide(2.0))
    assert verdict.combined_score == pytest.approx(1.7)
    assert verdict.quality_tier == OverallTier.TERRIBLE
    assert verdict.emoji == "🌪️"


def test_prediction_nudges_capped_blend_but_never_past_cap():
    verdict = calculate_overall_quality(wind(2.0), swell(1.0), tide(2.0), prediction_score=10)
    assert verdict.combined_score == pytest.approx(1.7 * 0.8 + 2.5 * 0.2)
    capped = calculate_overall_quality(wind(2.0), swell(5.0), tide(4.5), prediction_score=10)
    assert capped.combined_score <= 2.5


def test_firing_override_beats_fair_blend():
    verdict = calculate_overall_quality(wind(2.5), swell(2.0, height=12, period=20), tide(4.5, dropping=True))
    assert verdict.quality_tier == OverallTier.FIRING
    assert verdict.is_firing
    assert verdict.confidence == 5
    assert verdict.combined_score == pytest.approx(2.7)


def test_firing_requires_dropping_tide():
    verdict = calculate_overall_quality(wind(2.5), swell(2.0, height=12, period=20), tide(2.5))
    assert verdict.quality_tier != OverallTier.FIRING
    assert not verdict.is_firing


@pytest.mark.parametrize(
    "w,s,t,pred,tier,confidence",
    [
        (5.0, 5.0, 4.5, None, OverallTier.EPIC, 5),
        (5.0, 5.0, 4.5, 10, OverallTier.EPIC, 5),
        (4.0, 4.0, 2.5, None, OverallTier.GOOD, 4),
        (4.0, 4.0, 2.5, 7, OverallTier.GOOD, 5),
        (2.5, 1.0, 2.0, None, OverallTier.POOR, 2),
        (2.5, 1.0, 2.0, 0, OverallTier.TERRIBLE, 2),
    ],
)
def test_tier_thresholds_and_confidence(w, s, t, pred, tier, confidence):
    verdict = calculate_overall_quality(wind(w), swell(s), tide(t), prediction_score=pred)
    assert verdict.quality_tier == tier
    assert verdict.confidence == confidence


def test_confidence_and_score_stay_in_range():
    for w in (0.0, 1.0, 2.0, 2.5, 4.0, 5.0):
        for s in (1.0, 2.0, 3.0, 4.0, 5.0):
            for t in (2.0, 2.5, 4.5):
                for pred in (None, 0, 5, 10, 25):
                    verdict = calculate_overall_quality(wind(w), swell(s), tide(t), prediction_score=pred)
                    assert 0 <= verdict.confidence <= 5
                    assert 0.0 <= verdict.combined_score <= 5.0


def test_normalize_prediction():
    assert normalize_prediction(None) is None
    assert normalize_prediction(8) == 4.0
    assert normalize_prediction(20) == 5.0
    assert normalize_prediction(-3) == 0.0


def test_non_finite_prediction_is_ignored():
    assert normalize_prediction(float("nan")) is None
    verdict = calculate_overall_quality(wind(2.5), swell(2.0), tide(4.5, dropping=True),
                                        prediction_score=float("inf"))
    assert not verdict.has_prediction
    assert verdict.combined_score == pytest.approx(2.7)
