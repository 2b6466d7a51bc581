"""Per-indicator signal classification: EMA alignment, MACD crossover, RSI zone."""

import logging
from dataclasses import dataclass

from stock_signals.config import DEFAULT_CONFIG, Precision, ScoringConfig
from stock_signals.models import IndicatorSeries, Polarity, TechnicalSignal
from stock_signals.scoring.rules import Rule, always, first_match
from stock_signals.utils.validators import validate_series_window

logger = logging.getLogger(__name__)

EMA_FIELDS = ("ema_fast", "ema_mid1", "ema_mid2", "ema_slow")
MACD_FIELDS = ("momentum_line", "momentum_signal_line", "momentum_histogram")
RSI_FIELDS = ("oscillator",)


@dataclass(frozen=True)
class SignalOutcome:
    """Polarity, strength and reason template for a matched rule."""

    polarity: Polarity
    strength: int
    reason: str

    def to_signal(self, indicator: str, **fmt: float) -> TechnicalSignal:
        return TechnicalSignal(
            indicator_name=indicator,
            polarity=self.polarity,
            strength=self.strength,
            reason=self.reason.format(**fmt),
        )


def _insufficient(indicator: str, detail: str) -> TechnicalSignal:
    return TechnicalSignal(
        indicator_name=indicator,
        polarity=Polarity.NEUTRAL,
        strength=1,
        reason=f"insufficient data ({detail})",
    )


# ============================================================================
# EMA ALIGNMENT
# ============================================================================


@dataclass(frozen=True)
class AlignmentContext:
    perfect_order: bool
    reverse_order: bool
    all_trending_up: bool
    all_trending_down: bool
    mostly_bearish: bool

    @classmethod
    def from_values(
        cls,
        latest: tuple[float, float, float, float],
        earlier: tuple[float, float, float, float],
    ) -> "AlignmentContext":
        f, m1, m2, s = latest
        rising = [now > before for now, before in zip(latest, earlier)]
        return cls(
            perfect_order=f > m1 and m1 > m2 and m2 > s,
            reverse_order=s > m2 and m2 > m1 and m1 > f,
            all_trending_up=all(rising),
            all_trending_down=not any(rising),
            mostly_bearish=(s > m2 and m2 > m1) or (m2 > m1 and m1 > f),
        )


ALIGNMENT_RULES: tuple[Rule[AlignmentContext, SignalOutcome], ...] = (
    Rule(
        "perfect_order_trending_up",
        lambda c: c.perfect_order and c.all_trending_up,
        SignalOutcome(
            Polarity.BULLISH, 5,
            "Perfect EMA alignment (fast>mid>slow) confirmed by rising trend in all EMAs",
        ),
    ),
    Rule(
        "perfect_order",
        lambda c: c.perfect_order,
        SignalOutcome(
            Polarity.BULLISH, 4,
            "EMA alignment is bullish (fast>mid>slow) but trend directions are mixed",
        ),
    ),
    Rule(
        "reverse_order_trending_down",
        lambda c: c.reverse_order and c.all_trending_down,
        SignalOutcome(
            Polarity.BEARISH, 5,
            "Perfect bearish EMA alignment (slow>mid>fast) with all EMAs declining",
        ),
    ),
    Rule(
        "reverse_order",
        lambda c: c.reverse_order,
        SignalOutcome(
            Polarity.BEARISH, 4,
            "EMA alignment is bearish (slow>mid>fast) - downtrend in progress",
        ),
    ),
    Rule(
        "mostly_bearish",
        lambda c: c.mostly_bearish and not c.all_trending_up,
        SignalOutcome(Polarity.BEARISH, 3, "EMAs showing bearish structure - weakness developing"),
    ),
    Rule(
        "mixed",
        always,
        SignalOutcome(Polarity.NEUTRAL, 2, "EMA alignment is mixed - no clear trend direction"),
    ),
)

SUMMARY_ALIGNMENT_RULES: tuple[Rule[AlignmentContext, SignalOutcome], ...] = (
    Rule(
        "perfect_order",
        lambda c: c.perfect_order,
        SignalOutcome(Polarity.BULLISH, 4, "Perfect EMA alignment (fast>mid>slow) - uptrend"),
    ),
    Rule(
        "reverse_order",
        lambda c: c.reverse_order,
        SignalOutcome(Polarity.BEARISH, 4, "Bearish EMA alignment (slow>mid>fast) - downtrend"),
    ),
    Rule(
        "mixed",
        always,
        SignalOutcome(Polarity.NEUTRAL, 2, "Mixed EMA alignment - no clear trend"),
    ),
)


def analyze_alignment(
    series: IndicatorSeries,
    precision: Precision | str | None = None,
    config: ScoringConfig = DEFAULT_CONFIG,
) -> TechnicalSignal:
    """
    Classify the alignment and trend of the four EMAs.

    DETAILED reads the latest bar and the bar `config.trend_lookback`
    periods earlier; SUMMARY reads only the latest bar.

    Args:
        series: Aligned indicator series
        precision: DETAILED (default from config) or SUMMARY
        config: Scoring config (trend lookback)

    Returns:
        EMA TechnicalSignal
    """
    precision = Precision.parse(precision or config.precision)
    lookback = config.trend_lookback if precision is Precision.DETAILED else 0

    problem = validate_series_window(
        series, EMA_FIELDS, min_length=lookback + 1, offsets=(0, lookback)
    )
    if problem:
        return _insufficient("EMA", problem)

    latest = tuple(getattr(series, name)[-1] for name in EMA_FIELDS)
    earlier = tuple(getattr(series, name)[-1 - lookback] for name in EMA_FIELDS)
    context = AlignmentContext.from_values(latest, earlier)

    table = ALIGNMENT_RULES if precision is Precision.DETAILED else SUMMARY_ALIGNMENT_RULES
    rule = first_match(table, context)
    logger.debug(f"EMA ({precision.value}): matched rule {rule.name}")
    return rule.outcome.to_signal("EMA")


# ============================================================================
# MACD CROSSOVER
# ============================================================================


@dataclass(frozen=True)
class MomentumContext:
    above_signal: bool
    below_signal: bool
    bullish_crossover: bool
    bearish_crossover: bool
    above_zero: bool
    below_zero: bool
    histogram_up: bool
    histogram_down: bool

    @classmethod
    def from_values(
        cls,
        line: float,
        signal: float,
        histogram: float,
        prev_line: float,
        prev_signal: float,
        prev_histogram: float,
    ) -> "MomentumContext":
        return cls(
            above_signal=line > signal,
            # "not above", so line == signal reads as below
            below_signal=not line > signal,
            bullish_crossover=line > signal and prev_line <= prev_signal,
            bearish_crossover=line < signal and prev_line >= prev_signal,
            above_zero=line > 0,
            below_zero=line < 0,
            histogram_up=histogram > prev_histogram,
            histogram_down=histogram < prev_histogram,
        )


MOMENTUM_RULES: tuple[Rule[MomentumContext, SignalOutcome], ...] = (
    Rule(
        "bullish_crossover_above_zero",
        lambda c: c.bullish_crossover and c.above_zero,
        SignalOutcome(
            Polarity.BULLISH, 5,
            "Bullish MACD crossover above zero line - strong momentum building",
        ),
    ),
    Rule(
        "bullish_crossover",
        lambda c: c.bullish_crossover,
        SignalOutcome(Polarity.BULLISH, 4, "Bullish MACD crossover - momentum turning positive"),
    ),
    Rule(
        "above_signal_rising_above_zero",
        lambda c: c.above_signal and c.histogram_up and c.above_zero,
        SignalOutcome(
            Polarity.BULLISH, 3,
            "MACD above signal line with increasing momentum above zero",
        ),
    ),
    Rule(
        "bearish_crossover_below_zero",
        lambda c: c.bearish_crossover and c.below_zero,
        SignalOutcome(
            Polarity.BEARISH, 5,
            "Bearish MACD crossover below zero line - strong downward momentum",
        ),
    ),
    Rule(
        "bearish_crossover",
        lambda c: c.bearish_crossover,
        SignalOutcome(Polarity.BEARISH, 4, "Bearish MACD crossover - momentum turning negative"),
    ),
    Rule(
        "below_signal_falling_below_zero",
        lambda c: c.below_signal and c.histogram_down and c.below_zero,
        SignalOutcome(
            Polarity.BEARISH, 4,
            "MACD below signal line with decreasing momentum below zero",
        ),
    ),
    Rule(
        "below_signal_not_rising",
        lambda c: c.below_signal and not c.histogram_up,
        SignalOutcome(Polarity.BEARISH, 3, "MACD below signal line with decreasing momentum"),
    ),
    Rule(
        "mixed",
        always,
        SignalOutcome(Polarity.NEUTRAL, 2, "MACD showing mixed signals - no clear momentum direction"),
    ),
)

SUMMARY_MOMENTUM_RULES: tuple[Rule[MomentumContext, SignalOutcome], ...] = (
    Rule(
        "above_signal_above_zero",
        lambda c: c.above_signal and c.above_zero,
        SignalOutcome(Polarity.BULLISH, 3, "MACD above signal line and zero - positive momentum"),
    ),
    Rule(
        "below_signal_below_zero",
        lambda c: c.below_signal and c.below_zero,
        SignalOutcome(Polarity.BEARISH, 3, "MACD below signal line and zero - negative momentum"),
    ),
    Rule("mixed", always, SignalOutcome(Polarity.NEUTRAL, 2, "MACD showing mixed signals")),
)


def analyze_momentum(
    series: IndicatorSeries,
    precision: Precision | str | None = None,
    config: ScoringConfig = DEFAULT_CONFIG,
) -> TechnicalSignal:
    """
    Classify MACD line, signal line and histogram into one signal.

    DETAILED needs two bars (crossover and histogram direction); SUMMARY
    reads the latest bar only.
    """
    precision = Precision.parse(precision or config.precision)
    detailed = precision is Precision.DETAILED
    offsets = (0, 1) if detailed else (0,)

    problem = validate_series_window(series, MACD_FIELDS, min_length=len(offsets), offsets=offsets)
    if problem:
        return _insufficient("MACD", problem)

    line, signal, histogram = (getattr(series, name) for name in MACD_FIELDS)
    if detailed:
        context = MomentumContext.from_values(
            line[-1], signal[-1], histogram[-1], line[-2], signal[-2], histogram[-2]
        )
        table = MOMENTUM_RULES
    else:
        # No history read: previous values mirror latest so crossover flags stay False
        context = MomentumContext.from_values(
            line[-1], signal[-1], histogram[-1], line[-1], signal[-1], histogram[-1]
        )
        table = SUMMARY_MOMENTUM_RULES

    rule = first_match(table, context)
    logger.debug(f"MACD ({precision.value}): matched rule {rule.name}")
    return rule.outcome.to_signal("MACD")


# ============================================================================
# RSI ZONE
# ============================================================================


@dataclass(frozen=True)
class OscillatorContext:
    value: float
    delta: float


OSCILLATOR_RULES: tuple[Rule[OscillatorContext, SignalOutcome], ...] = (
    Rule(
        "strong_recovery",
        lambda c: 35 <= c.value <= 55 and c.delta > 2,
        SignalOutcome(
            Polarity.BULLISH, 5,
            "RSI strong momentum recovery ({value:.1f}, {delta:+.1f}) - excellent entry opportunity",
        ),
    ),
    Rule(
        "recovering_from_oversold",
        lambda c: 30 <= c.value <= 50 and c.delta > 0,
        SignalOutcome(
            Polarity.BULLISH, 4,
            "RSI recovering from oversold ({value:.1f}) - good entry opportunity",
        ),
    ),
    Rule(
        "strong_uptrend_zone",
        lambda c: 50 < c.value <= 65,
        SignalOutcome(
            Polarity.BULLISH, 4,
            "RSI in strong uptrend zone ({value:.1f}) - healthy momentum confirmed",
        ),
    ),
    Rule(
        "uptrend_zone",
        lambda c: 65 < c.value <= 70,
        SignalOutcome(
            Polarity.BULLISH, 3,
            "RSI in uptrend zone ({value:.1f}) - momentum sustained but watch for resistance",
        ),
    ),
    Rule(
        "overbought",
        lambda c: 70 < c.value <= 80,
        SignalOutcome(Polarity.NEUTRAL, 2, "RSI overbought ({value:.1f}) - potential pullback risk"),
    ),
    Rule(
        "severely_overbought",
        lambda c: c.value > 80,
        SignalOutcome(
            Polarity.BEARISH, 3,
            "RSI severely overbought ({value:.1f}) - high correction risk",
        ),
    ),
    Rule(
        "oversold_falling",
        lambda c: c.value < 30 and c.delta <= 0,
        SignalOutcome(
            Polarity.BEARISH, 4,
            "RSI oversold and falling ({value:.1f}) - continued weakness expected",
        ),
    ),
    Rule(
        "oversold_recovering",
        lambda c: c.value < 30 and c.delta > 0,
        SignalOutcome(
            Polarity.NEUTRAL, 2,
            "RSI oversold but recovering ({value:.1f}) - watch for reversal",
        ),
    ),
    Rule(
        "neutral_zone",
        always,
        SignalOutcome(Polarity.NEUTRAL, 2, "RSI neutral zone ({value:.1f}) - no clear directional bias"),
    ),
)

SUMMARY_OSCILLATOR_RULES: tuple[Rule[OscillatorContext, SignalOutcome], ...] = (
    Rule(
        "recovering_from_oversold",
        lambda c: 30 <= c.value <= 50,
        SignalOutcome(
            Polarity.BULLISH, 3,
            "RSI recovering from oversold ({value:.1f}) - good entry opportunity",
        ),
    ),
    Rule(
        "overbought",
        lambda c: c.value > 70,
        SignalOutcome(Polarity.BEARISH, 2, "RSI overbought ({value:.1f}) - potential pullback risk"),
    ),
    Rule(
        "neutral_zone",
        always,
        SignalOutcome(Polarity.NEUTRAL, 2, "RSI neutral zone ({value:.1f}) - no clear bias"),
    ),
)


def analyze_oscillator_zone(
    series: IndicatorSeries,
    precision: Precision | str | None = None,
    config: ScoringConfig = DEFAULT_CONFIG,
) -> TechnicalSignal:
    """
    Classify the RSI value and its one-bar change into a zone signal.

    Reasons embed the RSI value to one decimal.
    """
    precision = Precision.parse(precision or config.precision)
    detailed = precision is Precision.DETAILED
    offsets = (0, 1) if detailed else (0,)

    problem = validate_series_window(series, RSI_FIELDS, min_length=len(offsets), offsets=offsets)
    if problem:
        return _insufficient("RSI", problem)

    values = series.oscillator
    value = values[-1]
    delta = value - values[-2] if detailed else 0.0
    context = OscillatorContext(value=value, delta=delta)

    table = OSCILLATOR_RULES if detailed else SUMMARY_OSCILLATOR_RULES
    rule = first_match(table, context)
    logger.debug(f"RSI ({precision.value}): value={value:.1f} matched rule {rule.name}")
    return rule.outcome.to_signal("RSI", value=value, delta=delta)
