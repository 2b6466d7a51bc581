"""Aggregation of per-indicator signals into one technical recommendation."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from stock_signals.config import DEFAULT_CONFIG, Precision, ScoringConfig
from stock_signals.models import (
    IndicatorSeries,
    Polarity,
    RecommendationLevel,
    RecommendationResult,
    TechnicalSignal,
)
from stock_signals.scoring.rules import Rule, always, first_match
from stock_signals.scoring.technical import (
    EMA_FIELDS,
    MACD_FIELDS,
    RSI_FIELDS,
    analyze_alignment,
    analyze_momentum,
    analyze_oscillator_zone,
)
from stock_signals.utils.validators import validate_series_window

logger = logging.getLogger(__name__)

INSUFFICIENT_DATA_SUMMARY = "insufficient data"


def insufficient_data_result() -> RecommendationResult:
    """The neutral, zero-confidence result returned when data is missing or short."""
    return RecommendationResult(
        overall=RecommendationLevel.NEUTRAL,
        confidence=0.0,
        signals=(),
        summary=INSUFFICIENT_DATA_SUMMARY,
    )


@dataclass(frozen=True)
class SignalTally:
    """Weighted bullish/bearish balance of a set of signals."""

    bull_weight: int
    bear_weight: int
    total_weight: int
    net_score: float
    strong_bullish_count: int
    all_bullish: bool

    @property
    def confidence(self) -> float:
        return abs(self.net_score) * 100


def tally_signals(
    signals: Sequence[TechnicalSignal],
    precision: Precision = Precision.DETAILED,
) -> SignalTally:
    """
    Sum signal strengths by polarity.

    DETAILED divides by the strength of every signal; SUMMARY divides by
    bullish + bearish weight only, so neutral signals don't dilute it.
    """
    bull = sum(s.strength for s in signals if s.polarity is Polarity.BULLISH)
    bear = sum(s.strength for s in signals if s.polarity is Polarity.BEARISH)
    if precision is Precision.DETAILED:
        total = sum(s.strength for s in signals)
    else:
        total = bull + bear

    net = (bull - bear) / total if total > 0 else 0.0

    return SignalTally(
        bull_weight=bull,
        bear_weight=bear,
        total_weight=total,
        net_score=net,
        strong_bullish_count=sum(
            1 for s in signals if s.polarity is Polarity.BULLISH and s.strength >= 4
        ),
        all_bullish=bool(signals) and all(s.polarity is Polarity.BULLISH for s in signals),
    )


@dataclass(frozen=True)
class LevelOutcome:
    level: RecommendationLevel
    summary: str


RECOMMENDATION_RULES: tuple[Rule[SignalTally, LevelOutcome], ...] = (
    Rule(
        "exceptional",
        lambda t: t.all_bullish and t.strong_bullish_count >= 2,
        LevelOutcome(
            RecommendationLevel.STRONG_BUY,
            "EXCEPTIONAL BUY OPPORTUNITY - All technical indicators aligned bullishly "
            "with strong confirmation signals",
        ),
    ),
    Rule(
        "near_unanimous",
        lambda t: t.net_score >= 0.8,
        LevelOutcome(
            RecommendationLevel.STRONG_BUY,
            "Strong technical buy signal with multiple high-confidence confirming indicators",
        ),
    ),
    Rule(
        "strong_with_confirmation",
        lambda t: t.net_score >= 0.6 and t.strong_bullish_count >= 1,
        LevelOutcome(
            RecommendationLevel.STRONG_BUY,
            "Strong technical buy signal with multiple high-confidence confirming indicators",
        ),
    ),
    Rule(
        "bullish",
        lambda t: t.net_score >= 0.4,
        LevelOutcome(RecommendationLevel.BUY, "Bullish technical setup with good risk/reward ratio"),
    ),
    Rule(
        "moderately_bullish",
        lambda t: t.net_score >= 0.15,
        LevelOutcome(
            RecommendationLevel.BUY,
            "Moderate bullish technical setup - consider entry on any dips",
        ),
    ),
    Rule(
        "mixed",
        lambda t: t.net_score >= -0.15,
        LevelOutcome(
            RecommendationLevel.NEUTRAL,
            "Mixed technical signals - wait for clearer direction",
        ),
    ),
    Rule(
        "bearish",
        lambda t: t.net_score >= -0.5,
        LevelOutcome(
            RecommendationLevel.SELL,
            "Bearish technical setup - consider reducing positions",
        ),
    ),
    Rule(
        "strongly_bearish",
        always,
        LevelOutcome(
            RecommendationLevel.STRONG_SELL,
            "Strong technical sell signal - high risk of further decline",
        ),
    ),
)

SUMMARY_RECOMMENDATION_RULES: tuple[Rule[SignalTally, LevelOutcome], ...] = (
    Rule(
        "strong_buy",
        lambda t: t.net_score >= 0.6,
        LevelOutcome(
            RecommendationLevel.STRONG_BUY,
            "Strong technical buy signal with multiple confirming indicators",
        ),
    ),
    Rule(
        "buy",
        lambda t: t.net_score >= 0.3,
        LevelOutcome(RecommendationLevel.BUY, "Bullish technical setup with good risk/reward ratio"),
    ),
    Rule(
        "neutral",
        lambda t: t.net_score >= -0.3,
        LevelOutcome(
            RecommendationLevel.NEUTRAL,
            "Mixed technical signals - wait for clearer direction",
        ),
    ),
    Rule(
        "sell",
        lambda t: t.net_score >= -0.6,
        LevelOutcome(
            RecommendationLevel.SELL,
            "Bearish technical setup - consider reducing positions",
        ),
    ),
    Rule(
        "strong_sell",
        always,
        LevelOutcome(
            RecommendationLevel.STRONG_SELL,
            "Strong technical sell signal - high risk of further decline",
        ),
    ),
)


def aggregate_recommendation(
    signals: Sequence[TechnicalSignal],
    precision: Precision | str | None = None,
    config: ScoringConfig = DEFAULT_CONFIG,
) -> RecommendationResult:
    """
    Combine indicator signals into an overall level, confidence and summary.

    Args:
        signals: Signals in display order (nominally EMA, MACD, RSI)
        precision: DETAILED (default from config) or SUMMARY thresholds
        config: Scoring config

    Returns:
        RecommendationResult; the insufficient-data result when signals is empty
    """
    if not signals:
        return insufficient_data_result()

    precision = Precision.parse(precision or config.precision)
    tally = tally_signals(signals, precision)
    table = RECOMMENDATION_RULES if precision is Precision.DETAILED else SUMMARY_RECOMMENDATION_RULES
    rule = first_match(table, tally)

    logger.debug(
        f"Recommendation ({precision.value}): net={tally.net_score:.4f} "
        f"strong={tally.strong_bullish_count} -> {rule.name}"
    )

    return RecommendationResult(
        overall=rule.outcome.level,
        confidence=tally.confidence,
        signals=tuple(signals),
        summary=rule.outcome.summary,
    )


def recommend(
    series: IndicatorSeries,
    precision: Precision | str | None = None,
    config: ScoringConfig = DEFAULT_CONFIG,
) -> RecommendationResult:
    """
    Validate the series, run the three analyzers and aggregate.

    Returns the insufficient-data result, rather than raising, when any
    series is absent, too short, or not finite at a bar the analyzers read.
    Misaligned series are rejected earlier, by IndicatorSeries itself.
    """
    precision = Precision.parse(precision or config.precision)

    if precision is Precision.DETAILED:
        lookback = config.trend_lookback
        windows = (
            (EMA_FIELDS, lookback + 1, (0, lookback)),
            (MACD_FIELDS, 2, (0, 1)),
            (RSI_FIELDS, 2, (0, 1)),
        )
    else:
        windows = (
            (EMA_FIELDS, 1, (0,)),
            (MACD_FIELDS, 1, (0,)),
            (RSI_FIELDS, 1, (0,)),
        )

    for required, min_length, offsets in windows:
        problem = validate_series_window(series, required, min_length, offsets)
        if problem:
            logger.debug(f"Recommendation skipped: {problem}")
            return insufficient_data_result()

    signals = (
        analyze_alignment(series, precision, config),
        analyze_momentum(series, precision, config),
        analyze_oscillator_zone(series, precision, config),
    )
    return aggregate_recommendation(signals, precision, config)
