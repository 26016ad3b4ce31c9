"""Rule-based surf narrative plus helpers for the LLM enhancement step.

The narrative is assembled from the analyzers' descriptive text using one of
several templates per overall tier. Templates differ only in wording/emoji;
which one is used is delegated to a PhraseSelector so tests can pin it.
"""

from __future__ import annotations

import math
from typing import Callable, Mapping, Sequence

from surf_ai.domain import (
    EnhancementContext,
    EnhancementReason,
    OverallTier,
    OverallVerdict,
    SwellAnalysis,
    TideAnalysis,
    TideDirection,
    WindAnalysis,
)
from surf_ai.phrases import PhraseSelector, default_selector


GOOD_FACTOR_SCORE = 3.5

PERFECT_TIMING_PHRASES = (
    "Perfect timing - conditions are dialed!",
    "Stellar timing - everything aligned!",
    "Money timing - window is open!",
    "Prime conditions - go time!",
    "Perfect window - conditions are firing!",
)

# Template arguments: s/w/t = swell/wind/tide text, sd/wd = short descriptions,
# rec = tide recommendation, ml = prediction clause.
_Template = Callable[[Mapping[str, str]], str]

NARRATIVE_TEMPLATES: dict[OverallTier, Sequence[_Template]] = {
    OverallTier.FIRING: (
        lambda a: f"🔥 FIRING! {a['s']}, {a['w']}, {a['t']}. This is IT - drop everything and surf NOW!{a['ml']}",
        lambda a: f"🚨 BREAKING: Epic conditions! {a['s']} with {a['w']} and {a['t']}. All systems GO!{a['ml']}",
        lambda a: f"⚡ NUCLEAR! {a['s']}, {a['w']}, {a['t']}. The stars have aligned - GO SURF!{a['ml']}",
    ),
    OverallTier.EPIC: (
        lambda a: f"⚡ Epic session brewing! {a['s']}, {a['w']}, {a['t']}. {a['rec']}{a['ml']}",
        lambda a: f"🏄‍♂️ Premium conditions! {a['sd']} with {a['wd']} and {a['t']}. {a['rec']}{a['ml']}",
        lambda a: f"🔥 Solid surf alert! {a['s']}, {a['w']}, {a['t']}. {a['rec']}{a['ml']}",
    ),
    OverallTier.GOOD: (
        lambda a: f"👌 Quality waves ahead! {a['s']}, {a['w']}, {a['t']}. {a['rec']}{a['ml']}",
        lambda a: f"🌊 Nice conditions brewing! {a['sd']} meets {a['wd']} with {a['t']}. {a['rec']}{a['ml']}",
        lambda a: f"🤙 Solid session potential! {a['s']}, {a['w']}, {a['t']}. {a['rec']}{a['ml']}",
    ),
    OverallTier.FAIR: (
        lambda a: f"🤷‍♂️ Mixed bag today. {a['s']}, {a['w']}, {a['t']}. {a['rec']}{a['ml']}",
        lambda a: f"⚖️ So-so conditions. {a['sd']} with {a['wd']} and {a['t']}. {a['rec']}{a['ml']}",
        lambda a: f"🌪️ Challenging surf. {a['s']}, {a['w']}, {a['t']}. {a['rec']}{a['ml']}",
    ),
    OverallTier.POOR: (
        lambda a: f"😬 Rough conditions. {a['s']}, {a['w']}, {a['t']}. {a['rec']}{a['ml']}",
        lambda a: f"🌊💨 Messy surf today. {a['sd']} with {a['wd']} and {a['t']}. Better days ahead!{a['ml']}",
        lambda a: f"📚 Study session weather. {a['s']}, {a['w']}, {a['t']}. Time to wax your board!{a['ml']}",
    ),
    OverallTier.TERRIBLE: (
        lambda a: f"💀 Gnarly out there! {a['s']}, {a['w']}, {a['t']}. Stay on the beach!{a['ml']}",
        lambda a: f"⚠️ Danger zone! {a['wd']} with {a['sd']} and {a['t']}. Not surfable!{a['ml']}",
        lambda a: f"🏠 Indoor day! {a['s']}, {a['w']}, {a['t']}. Surf movies and planning time!{a['ml']}",
    ),
}


def tide_recommendation(
    tide: TideAnalysis,
    wind: WindAnalysis,
    swell: SwellAnalysis,
    *,
    selector: PhraseSelector | None = None,
) -> str:
    """Suggest timing based on where the tide is heading."""
    if tide.direction == TideDirection.UNKNOWN:
        return "Monitor tide changes for optimal timing."

    if tide.is_dropping:
        return (selector or default_selector).choose(PERFECT_TIMING_PHRASES)

    if tide.direction == TideDirection.RISING and tide.next_high_tide and tide.time_to_next_high:
        turn_time = tide.next_high_tide.timestamp.strftime("%H:%M")
        if wind.score >= GOOD_FACTOR_SCORE and swell.score >= GOOD_FACTOR_SCORE:
            return f"Consider waiting - tide turns at {turn_time} (in {tide.time_to_next_high})."
        return f"Tide rising (turns at {turn_time}) - better surf after the turn."

    return "Check tide timing for optimal conditions."


def prediction_clause(prediction_score: float | None, *, loading: bool = False) -> str:
    """Short suffix describing the external 0-10 prediction, if any."""
    if loading:
        return " 🧠 Crunching ML data..."
    if prediction_score is None or not math.isfinite(prediction_score):
        return ""
    score = round(prediction_score * 10) / 10
    if score >= 7:
        return f" 🧠 ML confidence: HIGH ({score:g}/10)"
    if score >= 4:
        return f" 🧠 ML says: moderate ({score:g}/10)"
    return f" 🧠 ML caution: {score:g}/10"


def build_narrative(
    wind: WindAnalysis,
    swell: SwellAnalysis,
    tide: TideAnalysis,
    verdict: OverallVerdict,
    *,
    prediction_score: float | None = None,
    prediction_loading: bool = False,
    selector: PhraseSelector | None = None,
) -> str:
    """Render the verdict and analyses into one human-readable sentence."""
    selector = selector or default_selector
    args = {
        "s": swell.descriptive_text,
        "w": wind.descriptive_text,
        "t": tide.descriptive_text,
        "sd": swell.description,
        "wd": wind.description,
        "rec": tide_recommendation(tide, wind, swell, selector=selector),
        "ml": prediction_clause(prediction_score, loading=prediction_loading),
    }
    templates = NARRATIVE_TEMPLATES.get(verdict.quality_tier, NARRATIVE_TEMPLATES[OverallTier.FAIR])
    return selector.choose(templates)(args)


# ---------------------------------------------------------------------------
# Enhancement prompt and output checks
# ---------------------------------------------------------------------------

SYSTEM_PROMPT_EDITOR = (
    "You are a grumpy surf report editor who ensures surf summaries are grammatically correct and "
    "readable while maintaining their authentic surf culture voice, but you're also really into "
    "crystals and vibes. Make sure to provide a stoke rating and recommend a crystal of the day "
    "based on the summary vibe."
)


def _reading(value: float | None, unit: str) -> str:
    return "N/A" if value is None else f"{value:g}{unit}"


def build_enhancement_messages(narrative: str, context: EnhancementContext) -> list[dict]:
    """Prepare system+user chat messages for the enhancement service."""
    user_msg = "\n".join([
        "You are a grumpy surf report editor who's really into crystals and haiku poetry. Based on the "
        "surf conditions provided, create a structured response in the exact format below.",
        "",
        "Surf data context:",
        f"- Wave height: {_reading(context.wave_height, 'ft')}",
        f"- Wave period: {_reading(context.wave_period, 's')}",
        f"- Wind speed: {_reading(context.wind_speed, 'kts')}",
        f"- Wind direction: {_reading(context.wind_direction, '°')}",
        f'- Current conditions summary: "{narrative}"',
        "",
        "Return ONLY this exact format, nothing else:",
        "",
        "Stoke rating: [number 1-10]",
        "",
        "[Haiku line 1 - exactly 5 syllables about the surf]",
        "[Haiku line 2 - exactly 7 syllables about the conditions]",
        "[Haiku line 3 - exactly 5 syllables about the vibe]",
        "",
        "Crystal of the day: [Crystal name that matches the surf energy]",
        "",
        "Rules:",
        "- Stoke rating should reflect how good the surf actually is (1=terrible, 10=perfect)",
        "- Haiku must follow 5-7-5 syllable pattern exactly",
        "- Crystal should match the energy/vibe of the conditions",
        "- No extra text, explanations, or formatting",
    ])
    return [
        {"role": "system", "content": SYSTEM_PROMPT_EDITOR},
        {"role": "user", "content": user_msg},
    ]


class EnhancedOutputRejected(ValueError):
    """Raised when an enhancement reply fails the sanity checks."""

    def __init__(self, reason: EnhancementReason, message: str) -> None:
        super().__init__(message)
        self.reason = reason


def _strip_markdown_fences(text: str) -> str:
    """Remove surrounding Markdown code fences from text."""
    if not text:
        return text
    t = text.strip()
    if not t.startswith("```"):
        return t
    lines = t.splitlines()
    if lines and lines[0].strip().startswith("```"):
        lines = lines[1:]
    if lines and lines[-1].strip().startswith("```"):
        lines = lines[:-1]
    return "\n".join(lines).strip()


def validate_enhanced_output(
    raw_text: str | None,
    original: str,
    *,
    min_chars: int = 10,
    max_chars: int = 400,
    max_ratio: float = 2.0,
) -> str:
    """
    Check an enhancement reply against the original narrative.

    Empty replies, replies shorter than `min_chars`, and replies that grew
    past `max_ratio` times the original or past `max_chars` are rejected; the
    caller falls back to the original text.
    """
    text = _strip_markdown_fences(raw_text or "").strip()
    if not text:
        raise EnhancedOutputRejected(EnhancementReason.EMPTY_RESPONSE, "Enhancement returned empty content")
    if len(text) < min_chars:
        raise EnhancedOutputRejected(
            EnhancementReason.INVALID_LENGTH,
            f"Enhancement too short ({len(text)} < {min_chars} chars)",
        )
    if len(text) > len(original) * max_ratio or len(text) > max_chars:
        raise EnhancedOutputRejected(
            EnhancementReason.TOO_DIFFERENT,
            f"Enhancement too different from original ({len(text)} chars vs {len(original)})",
        )
    return text
