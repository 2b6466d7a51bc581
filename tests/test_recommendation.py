"""Tests for signal aggregation and the recommend pipeline."""

import itertools
import math

import pytest

from stock_signals.config import Precision
from stock_signals.errors import ValidationError
from stock_signals.models import IndicatorSeries, Polarity, RecommendationLevel, TechnicalSignal
from stock_signals.scoring.recommendation import (
    INSUFFICIENT_DATA_SUMMARY,
    aggregate_recommendation,
    insufficient_data_result,
    recommend,
    tally_signals,
)


def _signal(polarity: Polarity, strength: int, name: str = "X") -> TechnicalSignal:
    return TechnicalSignal(name, polarity, strength, "test")


BULL = Polarity.BULLISH
BEAR = Polarity.BEARISH
NEUTRAL = Polarity.NEUTRAL


class TestAggregateRecommendation:
    """Tests for aggregate_recommendation (DETAILED tables)."""

    def test_all_bullish_strong(self) -> None:
        """Three bullish signals with two strong is the exceptional strong buy."""
        result = aggregate_recommendation(
            [_signal(BULL, 5), _signal(BULL, 4), _signal(BULL, 5)]
        )
        assert result.overall is RecommendationLevel.STRONG_BUY
        assert result.confidence == 100.0
        assert result.summary.startswith("EXCEPTIONAL BUY OPPORTUNITY")

    def test_buy_at_half_net(self) -> None:
        """One bullish 4 diluted by two neutral 2s nets 0.5: buy."""
        result = aggregate_recommendation(
            [_signal(BULL, 4), _signal(NEUTRAL, 2), _signal(NEUTRAL, 2)]
        )
        assert result.overall is RecommendationLevel.BUY
        assert result.confidence == pytest.approx(50.0)

    def test_balanced_is_neutral(self) -> None:
        """Equal bullish and bearish weight nets 0: neutral, zero confidence."""
        result = aggregate_recommendation(
            [_signal(BULL, 3), _signal(BEAR, 3), _signal(NEUTRAL, 2)]
        )
        assert result.overall is RecommendationLevel.NEUTRAL
        assert result.confidence == 0.0

    def test_sell_boundary(self) -> None:
        """Net exactly -0.5 is still sell, not strong sell."""
        result = aggregate_recommendation(
            [_signal(BEAR, 4), _signal(NEUTRAL, 2), _signal(NEUTRAL, 2)]
        )
        assert result.overall is RecommendationLevel.SELL

    def test_all_bearish_is_strong_sell(self) -> None:
        """Unanimous bearish weight is strong sell at full confidence."""
        result = aggregate_recommendation(
            [_signal(BEAR, 5), _signal(BEAR, 5), _signal(BEAR, 4)]
        )
        assert result.overall is RecommendationLevel.STRONG_SELL
        assert result.confidence == 100.0

    def test_near_unanimous_is_strong_buy(self) -> None:
        """Net >= 0.8 is strong buy even without unanimity."""
        result = aggregate_recommendation(
            [_signal(BULL, 4), _signal(BULL, 3), _signal(NEUTRAL, 1)]
        )
        # net = 7 / 8 = 0.875
        assert result.overall is RecommendationLevel.STRONG_BUY
        assert result.summary.startswith("Strong technical buy signal")

    def test_strong_with_one_confirmation(self) -> None:
        """Net in [0.6, 0.8) with one strong bullish signal is strong buy."""
        signals = [_signal(BULL, 4), _signal(BULL, 3), _signal(BEAR, 1)]
        tally = tally_signals(signals)
        assert tally.net_score == pytest.approx(0.75)
        assert tally.strong_bullish_count == 1

        result = aggregate_recommendation(signals)
        assert result.overall is RecommendationLevel.STRONG_BUY
        assert result.confidence == pytest.approx(75.0)

    def test_same_net_without_strong_signal_is_buy(self) -> None:
        """Net in [0.6, 0.8) with no strength >= 4 bullish falls through to buy."""
        signals = [_signal(BULL, 3), _signal(BULL, 3), _signal(BEAR, 1)]
        tally = tally_signals(signals)
        assert tally.net_score == pytest.approx(5 / 7)
        assert tally.strong_bullish_count == 0

        result = aggregate_recommendation(signals)
        assert result.overall is RecommendationLevel.BUY
        assert result.summary == "Bullish technical setup with good risk/reward ratio"

    def test_bullish_boundary(self) -> None:
        """Net exactly 0.4 is the bullish buy, not the moderate one."""
        signals = [_signal(BULL, 3), _signal(NEUTRAL, 1), _signal(BEAR, 1)]
        assert tally_signals(signals).net_score == 0.4

        result = aggregate_recommendation(signals)
        assert result.overall is RecommendationLevel.BUY
        assert result.summary == "Bullish technical setup with good risk/reward ratio"

    def test_moderately_bullish(self) -> None:
        """Net in [0.15, 0.4) is a moderate buy."""
        signals = [_signal(BULL, 3), _signal(NEUTRAL, 2), _signal(BEAR, 1)]
        assert tally_signals(signals).net_score == pytest.approx(1 / 3)

        result = aggregate_recommendation(signals)
        assert result.overall is RecommendationLevel.BUY
        assert result.summary.startswith("Moderate bullish technical setup")

    def test_moderate_boundary(self) -> None:
        """Net exactly 0.15 is still a moderate buy; just below is neutral."""
        at_boundary = [
            _signal(BULL, 4),
            _signal(BULL, 3),
            _signal(BEAR, 4),
            _signal(NEUTRAL, 5),
            _signal(NEUTRAL, 4),
        ]
        assert tally_signals(at_boundary).net_score == 0.15
        result = aggregate_recommendation(at_boundary)
        assert result.overall is RecommendationLevel.BUY
        assert result.summary.startswith("Moderate bullish technical setup")

        below = [
            _signal(BULL, 4),
            _signal(BULL, 3),
            _signal(BEAR, 4),
            _signal(NEUTRAL, 5),
            _signal(NEUTRAL, 5),
        ]
        assert tally_signals(below).net_score == pytest.approx(3 / 21)
        assert aggregate_recommendation(below).overall is RecommendationLevel.NEUTRAL

    def test_signals_preserved_in_order(self) -> None:
        """The result carries the input signals in order."""
        signals = [_signal(BULL, 4, "EMA"), _signal(NEUTRAL, 2, "MACD"), _signal(BEAR, 3, "RSI")]
        result = aggregate_recommendation(signals)
        assert [s.indicator_name for s in result.signals] == ["EMA", "MACD", "RSI"]

    def test_empty_is_insufficient(self) -> None:
        """No signals gives the insufficient-data result."""
        assert aggregate_recommendation([]) == insufficient_data_result()

    def test_confidence_in_range(self) -> None:
        """Confidence stays within [0, 100] for every polarity/strength mix."""
        choices = [(p, s) for p in Polarity for s in (1, 3, 5)]
        for combo in itertools.combinations_with_replacement(choices, 3):
            signals = [_signal(p, s) for p, s in combo]
            for precision in Precision:
                result = aggregate_recommendation(signals, precision)
                assert 0.0 <= result.confidence <= 100.0


class TestSummaryAggregation:
    """Tests for the SUMMARY aggregation thresholds."""

    def test_neutral_weight_excluded(self) -> None:
        """SUMMARY divides by bullish + bearish weight only."""
        signals = [_signal(BULL, 4), _signal(NEUTRAL, 2), _signal(NEUTRAL, 2)]
        tally = tally_signals(signals, Precision.SUMMARY)
        assert tally.total_weight == 4
        assert tally.net_score == 1.0

        result = aggregate_recommendation(signals, Precision.SUMMARY)
        assert result.overall is RecommendationLevel.STRONG_BUY

    def test_all_neutral_is_neutral(self) -> None:
        """No directional weight nets 0 without dividing by zero."""
        signals = [_signal(NEUTRAL, 2)] * 3
        result = aggregate_recommendation(signals, "summary")
        assert result.overall is RecommendationLevel.NEUTRAL
        assert result.confidence == 0.0

    @pytest.mark.parametrize(
        "bull,bear,expected",
        [
            (8, 2, RecommendationLevel.STRONG_BUY),  # 0.6
            (13, 7, RecommendationLevel.BUY),  # 0.3
            (7, 13, RecommendationLevel.NEUTRAL),  # -0.3
            (2, 8, RecommendationLevel.SELL),  # -0.6
            (1, 9, RecommendationLevel.STRONG_SELL),  # -0.8
        ],
    )
    def test_thresholds(self, bull: int, bear: int, expected: RecommendationLevel) -> None:
        """Thresholds 0.6 / 0.3 / -0.3 / -0.6 are inclusive."""
        signals = []
        for polarity, weight in ((BULL, bull), (BEAR, bear)):
            while weight > 0:
                step = min(5, weight)
                signals.append(_signal(polarity, step))
                weight -= step
        result = aggregate_recommendation(signals, Precision.SUMMARY)
        assert result.overall is expected


class TestRecommend:
    """Tests for the recommend pipeline."""

    def test_bullish_pipeline(self, bullish_series: IndicatorSeries) -> None:
        """Three strength-5 bullish signals give a strong buy at 100."""
        result = recommend(bullish_series)
        assert result.overall is RecommendationLevel.STRONG_BUY
        assert result.confidence == 100.0
        assert [s.indicator_name for s in result.signals] == ["EMA", "MACD", "RSI"]
        assert all(s.polarity is Polarity.BULLISH and s.strength == 5 for s in result.signals)

    def test_bearish_pipeline(self, bearish_series: IndicatorSeries) -> None:
        """Three bearish signals give a strong sell."""
        result = recommend(bearish_series)
        assert result.overall is RecommendationLevel.STRONG_SELL

    def test_summary_pipeline(self, bullish_series: IndicatorSeries) -> None:
        """SUMMARY strengths are 4/3/3 on the same data."""
        result = recommend(bullish_series, Precision.SUMMARY)
        assert [s.strength for s in result.signals] == [4, 3, 3]
        assert result.overall is RecommendationLevel.STRONG_BUY

    def test_empty_ema_is_insufficient(self, series_factory) -> None:
        """An absent EMA series gives the insufficient-data sentinel."""
        series = series_factory(ema_fast=[], ema_mid1=[], ema_mid2=[], ema_slow=[])
        result = recommend(series)
        assert result == insufficient_data_result()
        assert result.overall is RecommendationLevel.NEUTRAL
        assert result.confidence == 0.0
        assert result.signals == ()
        assert result.summary == INSUFFICIENT_DATA_SUMMARY

    def test_short_series_is_insufficient(self) -> None:
        """Fewer bars than the trend lookback needs is insufficient."""
        series = IndicatorSeries(
            ema_fast=[4.0, 5.0],
            ema_mid1=[3.0, 4.0],
            ema_mid2=[2.0, 3.0],
            ema_slow=[1.0, 2.0],
            momentum_line=[0.1, 0.2],
            momentum_signal_line=[0.0, 0.1],
            momentum_histogram=[0.1, 0.1],
            oscillator=[50.0, 55.0],
        )
        assert recommend(series) == insufficient_data_result()
        # SUMMARY needs only the latest bar
        assert recommend(series, Precision.SUMMARY).summary != INSUFFICIENT_DATA_SUMMARY

    def test_nan_latest_is_insufficient(self, series_factory) -> None:
        """A NaN where the analyzers read is insufficient, not an error."""
        series = series_factory(oscillator=[40.0, 41.0, 40.0, 41.0, 42.0, math.nan])
        assert recommend(series) == insufficient_data_result()

    def test_idempotent(self, bullish_series: IndicatorSeries) -> None:
        """Identical input gives identical output."""
        assert recommend(bullish_series) == recommend(bullish_series)

    def test_invalid_precision_raises(self, bullish_series: IndicatorSeries) -> None:
        """Unknown precision strings are rejected with the field name."""
        with pytest.raises(ValidationError) as exc_info:
            recommend(bullish_series, "coarse")
        assert exc_info.value.field == "precision"
