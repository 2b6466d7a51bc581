"""Scoring configuration and process settings."""

import os
from dataclasses import dataclass, field
from enum import Enum

from stock_signals.errors import ValidationError


class Precision(str, Enum):
    """Which decision tables the analyzers and aggregator use."""

    DETAILED = "detailed"  # detail panel tables (canonical)
    SUMMARY = "summary"  # coarse summary badge heuristic

    @classmethod
    def parse(cls, value: "Precision | str | None") -> "Precision":
        """Parse a precision flag, defaulting to DETAILED when None."""
        if value is None:
            return cls.DETAILED
        if isinstance(value, Precision):
            return value
        normalized = str(value).lower().strip()
        for member in cls:
            if member.value == normalized:
                return member
        raise ValidationError(
            "precision",
            f"Invalid precision '{value}'. Must be one of: {[m.value for m in cls]}",
        )


@dataclass(frozen=True)
class CompositeWeights:
    """Weights for the cross-domain composite. Must sum to 1.0."""

    ytd: float = 0.25
    fundamentals: float = 0.35
    technical: float = 0.25
    sentiment: float = 0.15

    def to_dict(self) -> dict[str, float]:
        return {
            "ytd": self.ytd,
            "fundamentals": self.fundamentals,
            "technical": self.technical,
            "sentiment": self.sentiment,
        }


@dataclass(frozen=True)
class ScoringConfig:
    """
    Defaults the scorers fall back to when inputs are missing.

    Passed into the scorers rather than read from module globals so tests
    can override any of them.
    """

    # Missing fundamentals ratios compare as this value
    missing_ratio_default: float = 0.0
    # Score used for any missing upstream component
    neutral_score: float = 50.0
    # Each sentiment side (retail, professional) defaults to this
    sentiment_default: float = 50.0
    # Component scores below this count as bearish in the composite overrides
    bearish_cutoff: float = 45.0
    # Periods between "latest" and the trend reference point of the EMAs
    trend_lookback: int = 5
    precision: Precision = Precision.DETAILED
    composite_weights: CompositeWeights = field(default_factory=CompositeWeights)

    @classmethod
    def from_env(cls) -> "ScoringConfig":
        """Build config from SIGNAL_PRECISION, keeping the other defaults."""
        return cls(precision=Precision.parse(os.environ.get("SIGNAL_PRECISION", "detailed")))


@dataclass(frozen=True)
class IndicatorSettings:
    """Periods used when computing indicator series from closes."""

    ema_periods: tuple[int, int, int, int] = (8, 21, 34, 50)
    macd_fast: int = 8
    macd_slow: int = 21
    macd_signal: int = 9
    rsi_period: int = 14


DEFAULT_CONFIG = ScoringConfig()
DEFAULT_INDICATOR_SETTINGS = IndicatorSettings()

# Days after which the last bar is reported stale
STALE_AFTER_DAYS = int(os.environ.get("STALE_AFTER_DAYS", "5"))
