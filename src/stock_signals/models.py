"""Value objects passed through the scoring engine."""

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any

from stock_signals.errors import ValidationError


class Polarity(str, Enum):
    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"


class RecommendationLevel(str, Enum):
    STRONG_BUY = "strong-buy"
    BUY = "buy"
    NEUTRAL = "neutral"
    SELL = "sell"
    STRONG_SELL = "strong-sell"

    @classmethod
    def parse(cls, value: "RecommendationLevel | str | None") -> "RecommendationLevel | None":
        """
        Parse a level from its value or name.

        Accepts "strong-buy", "STRONG_BUY", "strong buy". Returns None for
        None or unknown strings.
        """
        if value is None:
            return None
        if isinstance(value, RecommendationLevel):
            return value
        normalized = str(value).lower().strip().replace("_", "-").replace(" ", "-")
        for member in cls:
            if member.value == normalized:
                return member
        return None


class CompositeLabel(str, Enum):
    STRONG_BUY = "STRONG BUY"
    BUY = "BUY"
    HOLD = "HOLD"
    WEAK_HOLD = "WEAK HOLD"
    SELL = "SELL"


# Series field name -> key used by the dashboard's indicator payload
SERIES_ALIASES: dict[str, str] = {
    "ema_fast": "ema8",
    "ema_mid1": "ema21",
    "ema_mid2": "ema34",
    "ema_slow": "ema50",
    "momentum_line": "macd",
    "momentum_signal_line": "signal",
    "momentum_histogram": "histogram",
    "oscillator": "rsi",
}


def _to_floats(values: Iterable[Any] | None) -> tuple[float, ...]:
    """Coerce a sequence (list, ndarray, pandas Series) to a tuple of floats."""
    if values is None:
        return ()
    out: list[float] = []
    for v in values:
        if v is None:
            out.append(math.nan)
        else:
            out.append(float(v))
    return tuple(out)


@dataclass(frozen=True)
class IndicatorSeries:
    """
    Aligned indicator series for one ticker, oldest first.

    Every present series must share the same length; "latest" is the last
    index. An empty series counts as absent.
    """

    ema_fast: tuple[float, ...] = ()
    ema_mid1: tuple[float, ...] = ()
    ema_mid2: tuple[float, ...] = ()
    ema_slow: tuple[float, ...] = ()
    momentum_line: tuple[float, ...] = ()
    momentum_signal_line: tuple[float, ...] = ()
    momentum_histogram: tuple[float, ...] = ()
    oscillator: tuple[float, ...] = ()
    last_bar_date: str | None = None

    def __post_init__(self) -> None:
        lengths: dict[str, int] = {}
        for name in SERIES_ALIASES:
            values = _to_floats(getattr(self, name))
            object.__setattr__(self, name, values)
            if values:
                lengths[name] = len(values)

        # Silent truncation would shift which bar counts as "latest"
        if len(set(lengths.values())) > 1:
            reference = next(iter(lengths))
            expected = lengths[reference]
            offending = [n for n, length in lengths.items() if length != expected]
            raise ValidationError(
                offending[0],
                f"Series length mismatch: {', '.join(f'{n}={lengths[n]}' for n in offending)} "
                f"(expected {expected})",
            )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "IndicatorSeries":
        """Build from a dict keyed by field names or dashboard keys (ema8, macd, rsi...)."""
        kwargs: dict[str, Any] = {}
        for name, alias in SERIES_ALIASES.items():
            if name in data:
                kwargs[name] = data[name]
            elif alias in data:
                kwargs[name] = data[alias]
        last_bar_date = data.get("last_bar_date")
        return cls(**kwargs, last_bar_date=str(last_bar_date) if last_bar_date else None)

    @property
    def length(self) -> int:
        """Length shared by the present series (0 if none are present)."""
        for name in SERIES_ALIASES:
            values = getattr(self, name)
            if values:
                return len(values)
        return 0

    def missing_fields(self) -> list[str]:
        """Names of series that are absent (empty)."""
        return [name for name in SERIES_ALIASES if not getattr(self, name)]

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {name: list(getattr(self, name)) for name in SERIES_ALIASES}
        data["last_bar_date"] = self.last_bar_date
        return data


@dataclass(frozen=True)
class TechnicalSignal:
    indicator_name: str
    polarity: Polarity
    strength: int  # 1-5
    reason: str

    def __post_init__(self) -> None:
        if not 1 <= self.strength <= 5:
            raise ValidationError("strength", f"Signal strength must be 1-5, got {self.strength}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "indicator": self.indicator_name,
            "signal": self.polarity.value,
            "strength": self.strength,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class RecommendationResult:
    overall: RecommendationLevel
    confidence: float  # 0-100
    signals: tuple[TechnicalSignal, ...]
    summary: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "overall": self.overall.value,
            "confidence": self.confidence,
            "signals": [s.to_dict() for s in self.signals],
            "summary": self.summary,
        }


@dataclass(frozen=True)
class FundamentalsSnapshot:
    """
    Fundamentals ratios, percent fields in percent units (ROE 25.0 = 25%).

    Every field is optional; the scorer substitutes a default for None.
    """

    roe: float | None = None
    net_margin: float | None = None
    gross_margin: float | None = None
    revenue_growth_ttm: float | None = None
    revenue_growth_3y: float | None = None
    eps_growth_ttm: float | None = None
    pe_ratio: float | None = None
    peg_ratio: float | None = None
    current_ratio: float | None = None
    debt_to_equity: float | None = None
    interest_coverage: float | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "FundamentalsSnapshot":
        """Build from a flat dict, ignoring unknown keys."""
        names = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in names})

    def to_dict(self) -> dict[str, float | None]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class CompositeBreakdown:
    """Component scores and adjustments behind a composite score."""

    ytd_score: float
    fundamentals_score: float
    technical_score: float
    sentiment_score: float
    weighted_raw: float
    weights: dict[str, float] = field(default_factory=dict)
    overrides_applied: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "ytd_score": self.ytd_score,
            "fundamentals_score": self.fundamentals_score,
            "technical_score": self.technical_score,
            "sentiment_score": self.sentiment_score,
            "weighted_raw": round(self.weighted_raw, 6),
            "weights": dict(self.weights),
            "overrides_applied": list(self.overrides_applied),
        }


@dataclass(frozen=True)
class CompositeScore:
    score: int  # 0-100
    label: CompositeLabel
    breakdown: CompositeBreakdown | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"score": self.score, "label": self.label.value}
        if self.breakdown is not None:
            data["breakdown"] = self.breakdown.to_dict()
        return data
