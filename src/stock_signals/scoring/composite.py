"""Cross-domain composite score: YTD, fundamentals, technicals, sentiment."""

import logging
import math
from dataclasses import dataclass
from typing import Any

from stock_signals.config import DEFAULT_CONFIG, ScoringConfig
from stock_signals.models import (
    CompositeBreakdown,
    CompositeLabel,
    CompositeScore,
    RecommendationLevel,
)
from stock_signals.scoring.rules import Rule, always, first_match

logger = logging.getLogger(__name__)

YTD_BUCKETS: tuple[Rule[float, float], ...] = (
    Rule("ytd_above_20", lambda pct: pct > 20, 80.0),
    Rule("ytd_above_10", lambda pct: pct > 10, 70.0),
    Rule("ytd_positive", lambda pct: pct > 0, 60.0),
    Rule("ytd_above_minus_10", lambda pct: pct > -10, 40.0),
    Rule("ytd_above_minus_20", lambda pct: pct > -20, 30.0),
    Rule("ytd_deep_loss", always, 20.0),
)

TECHNICAL_POINTS: dict[RecommendationLevel, float] = {
    RecommendationLevel.STRONG_BUY: 85.0,
    RecommendationLevel.BUY: 70.0,
    RecommendationLevel.NEUTRAL: 50.0,
    RecommendationLevel.SELL: 30.0,
    RecommendationLevel.STRONG_SELL: 15.0,
}

LABEL_BANDS: tuple[Rule[int, CompositeLabel], ...] = (
    Rule("strong_buy", lambda s: s >= 75, CompositeLabel.STRONG_BUY),
    Rule("buy", lambda s: s >= 60, CompositeLabel.BUY),
    Rule("hold", lambda s: s >= 45, CompositeLabel.HOLD),
    Rule("weak_hold", lambda s: s >= 30, CompositeLabel.WEAK_HOLD),
    Rule("sell", always, CompositeLabel.SELL),
)

SENTIMENT_LABELS: tuple[Rule[float, str], ...] = (
    Rule("very_bullish", lambda s: s >= 80, "Very Bullish"),
    Rule("bullish", lambda s: s >= 65, "Bullish"),
    Rule("slightly_bullish", lambda s: s >= 55, "Slightly Bullish"),
    Rule("neutral", lambda s: s >= 45, "Neutral"),
    Rule("slightly_bearish", lambda s: s >= 35, "Slightly Bearish"),
    Rule("bearish", lambda s: s >= 20, "Bearish"),
    Rule("very_bearish", always, "Very Bearish"),
)


@dataclass(frozen=True)
class OverrideContext:
    level: RecommendationLevel | None
    ytd_score: float
    fundamentals_score: float
    technical_score: float
    bearish_cutoff: float

    @property
    def fundamentals_bearish(self) -> bool:
        return self.fundamentals_score < self.bearish_cutoff

    @property
    def ytd_bearish(self) -> bool:
        return self.ytd_score < self.bearish_cutoff

    @property
    def technical_bearish(self) -> bool:
        return self.technical_score < self.bearish_cutoff


# Applied in order, every matching row caps the running score (min, never raise)
OVERRIDE_CAPS: tuple[Rule[OverrideContext, float], ...] = (
    Rule("strong_sell_cap", lambda c: c.level is RecommendationLevel.STRONG_SELL, 25.0),
    Rule("sell_cap", lambda c: c.level is RecommendationLevel.SELL, 35.0),
    Rule(
        "all_core_bearish_cap",
        lambda c: c.fundamentals_bearish and c.ytd_bearish and c.technical_bearish,
        20.0,
    ),
    Rule(
        "strong_sell_all_bearish_cap",
        lambda c: (
            c.level is RecommendationLevel.STRONG_SELL
            and c.fundamentals_bearish
            and c.ytd_bearish
        ),
        15.0,
    ),
)


def _number_or_none(value: Any) -> float | None:
    """Convert to float, mapping None/NaN/unparseable to None. Infinities pass."""
    if value is None:
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result):
        return None
    return result


def _finite_or_none(value: Any) -> float | None:
    """Like _number_or_none but also maps +/-inf to None."""
    result = _number_or_none(value)
    if result is None or not math.isfinite(result):
        return None
    return result


def _round_half_up(value: float) -> int:
    """Round .5 upward (not banker's rounding), so 52.5 scores 53."""
    return int(math.floor(value + 0.5))


def bucket_ytd(ytd_pct: float | None, config: ScoringConfig = DEFAULT_CONFIG) -> float:
    """
    Map year-to-date growth in percent to a 0-100 score; None/NaN -> neutral.

    The buckets are open-ended, so +inf lands in the top bucket and -inf in the bottom one.
    """
    pct = _number_or_none(ytd_pct)
    if pct is None:
        return config.neutral_score
    return first_match(YTD_BUCKETS, pct).outcome


def technical_points(
    level: RecommendationLevel | str | None,
    config: ScoringConfig = DEFAULT_CONFIG,
) -> float:
    """Fixed point value for a technical level; unknown or None -> neutral."""
    parsed = RecommendationLevel.parse(level)
    if parsed is None:
        return config.neutral_score
    return TECHNICAL_POINTS[parsed]


def blend_sentiment(
    retail: float | None,
    professional: float | None,
    config: ScoringConfig = DEFAULT_CONFIG,
) -> float:
    """Average retail and professional sentiment, each side defaulting to 50."""
    retail_score = _finite_or_none(retail)
    professional_score = _finite_or_none(professional)
    if retail_score is None:
        retail_score = config.sentiment_default
    if professional_score is None:
        professional_score = config.sentiment_default
    return (retail_score + professional_score) / 2


def defaulted_inputs(
    ytd_pct: float | None,
    fundamentals_score: float | None,
    technical_level: RecommendationLevel | str | None,
    sentiment_score: float | None,
) -> list[str]:
    """Names of the composite inputs that will fall back to the neutral score."""
    defaulted = []
    if _number_or_none(ytd_pct) is None:
        defaulted.append("ytd_pct")
    if _finite_or_none(fundamentals_score) is None:
        defaulted.append("fundamentals_score")
    if RecommendationLevel.parse(technical_level) is None:
        defaulted.append("technical_level")
    if _finite_or_none(sentiment_score) is None:
        defaulted.append("sentiment_score")
    return defaulted


def sentiment_label(score: float) -> str:
    """Human label for a 0-100 sentiment score."""
    return first_match(SENTIMENT_LABELS, score).outcome


def label_for_score(score: int) -> CompositeLabel:
    """Composite label band for a 0-100 score."""
    return first_match(LABEL_BANDS, score).outcome


def synthesize_composite(
    ytd_pct: float | None,
    fundamentals_score: float | None,
    technical_level: RecommendationLevel | str | None,
    sentiment_score: float | None,
    config: ScoringConfig = DEFAULT_CONFIG,
) -> CompositeScore:
    """
    Blend YTD, fundamentals, technical and sentiment into a 0-100 score and label.

    Never raises: any missing, NaN or infinite input contributes the neutral
    score (YTD infinities fall into the open-ended end buckets).

    Args:
        ytd_pct: Year-to-date growth in percent (e.g. -25.0)
        fundamentals_score: Output of score_fundamentals (0-100)
        technical_level: Overall level from the technical recommendation
        sentiment_score: Blended sentiment (0-100), see blend_sentiment

    Returns:
        CompositeScore with breakdown of component scores and overrides fired
    """
    weights = config.composite_weights
    level = RecommendationLevel.parse(technical_level)

    ytd_score = bucket_ytd(ytd_pct, config)
    fund_score = _finite_or_none(fundamentals_score)
    if fund_score is None:
        fund_score = config.neutral_score
    tech_score = technical_points(level, config)
    sent_score = _finite_or_none(sentiment_score)
    if sent_score is None:
        sent_score = config.neutral_score

    weighted = (
        ytd_score * weights.ytd
        + fund_score * weights.fundamentals
        + tech_score * weights.technical
        + sent_score * weights.sentiment
    )

    context = OverrideContext(
        level=level,
        ytd_score=ytd_score,
        fundamentals_score=fund_score,
        technical_score=tech_score,
        bearish_cutoff=config.bearish_cutoff,
    )
    capped = weighted
    fired: list[str] = []
    for rule in OVERRIDE_CAPS:
        if rule.predicate(context):
            capped = min(capped, rule.outcome)
            fired.append(rule.name)

    final = max(0, min(100, _round_half_up(capped)))
    label = label_for_score(final)

    if fired:
        logger.debug(f"Composite overrides {fired}: {weighted:.4f} -> {capped:.4f}")

    result = CompositeScore(
        score=final,
        label=label,
        breakdown=CompositeBreakdown(
            ytd_score=ytd_score,
            fundamentals_score=fund_score,
            technical_score=tech_score,
            sentiment_score=sent_score,
            weighted_raw=weighted,
            weights=weights.to_dict(),
            overrides_applied=tuple(fired),
        ),
    )
    _validate_composite_invariants(result)
    return result


def _validate_composite_invariants(result: CompositeScore) -> None:
    """
    Check score range, label band and override direction.

    Logs warnings for violations rather than raising (production-safe).
    """
    violations: list[str] = []

    if not 0 <= result.score <= 100:
        violations.append(f"score={result.score} outside [0, 100]")

    expected_label = label_for_score(result.score)
    if result.label is not expected_label:
        violations.append(f"label={result.label.value} but score band is {expected_label.value}")

    breakdown = result.breakdown
    if breakdown is not None:
        upper = max(0, min(100, _round_half_up(breakdown.weighted_raw)))
        if result.score > upper:
            violations.append(
                f"score={result.score} above weighted_raw={breakdown.weighted_raw:.4f}; "
                "overrides may only lower it"
            )
        weight_sum = sum(breakdown.weights.values())
        if breakdown.weights and abs(weight_sum - 1.0) > 1e-9:
            violations.append(f"sum(weights)={weight_sum:.6f} but expected 1.0")

    for v in violations:
        logger.warning(f"Composite invariant violation: {v}")
