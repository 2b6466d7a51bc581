"""Validation utilities and parameter classes."""

import math
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

import pytz

from stock_signals.models import IndicatorSeries

# Daily bars only; the indicator tables assume one entry per trading day
VALID_PERIODS = {"3mo", "6mo", "1y", "2y", "ytd"}
VALID_INTERVALS = {"1d"}

EXCHANGE_TZ = "America/New_York"


@dataclass(frozen=True)
class FetchParams:
    """Immutable fetch parameters. Used for cache key + fetch."""

    symbol: str
    period: str = "6mo"
    interval: str = "1d"
    adjusted: bool = True

    def __post_init__(self) -> None:
        symbol = self.symbol.upper().strip()
        if not symbol:
            raise ValueError("Symbol must not be empty")
        object.__setattr__(self, "symbol", symbol)

        period = self.period.lower().strip()
        interval = self.interval.lower().strip()

        if period not in VALID_PERIODS:
            raise ValueError(f"Invalid period '{self.period}'. Must be one of: {VALID_PERIODS}")
        if interval not in VALID_INTERVALS:
            raise ValueError(
                f"Invalid interval '{self.interval}'. Must be one of: {VALID_INTERVALS}"
            )

        object.__setattr__(self, "period", period)
        object.__setattr__(self, "interval", interval)

    def to_uri(self) -> str:
        """Canonical URI, used as the provenance key for fetched history."""
        adj = "adjusted" if self.adjusted else "unadjusted"
        return f"history://{self.symbol}/{self.period}/{self.interval}/{adj}"

    def to_yf_kwargs(self) -> dict[str, Any]:
        """Kwargs for yf.download()."""
        return {
            "tickers": self.symbol,
            "period": self.period,
            "interval": self.interval,
            "auto_adjust": self.adjusted,
            "progress": False,
        }


def validate_series_window(
    series: IndicatorSeries,
    required: tuple[str, ...],
    min_length: int,
    offsets: tuple[int, ...] = (0,),
) -> str | None:
    """
    Check that a series set can be read at the given offsets from latest.

    Args:
        series: Indicator series (already length-aligned by construction)
        required: Series field names the analysis reads
        min_length: Minimum number of bars needed
        offsets: Distances back from the latest index that will be read

    Returns:
        None if usable, otherwise a short reason like "too_short:ema_fast=3<6"
    """
    for name in required:
        values = getattr(series, name)
        if not values:
            return f"missing:{name}"
        if len(values) < min_length:
            return f"too_short:{name}={len(values)}<{min_length}"
        for offset in offsets:
            value = values[len(values) - 1 - offset]
            if not math.isfinite(value):
                return f"not_finite:{name}[-{offset + 1}]"
    return None


def check_freshness(
    last_bar_date: str | date | None,
    max_age_days: int,
    tz: str = EXCHANGE_TZ,
    now: datetime | None = None,
) -> str | None:
    """
    Report a stale last bar.

    Age is counted in calendar days in the exchange timezone, so weekends
    count; callers pick max_age_days with that in mind.

    Returns:
        "stale_data:<n>_days" when older than max_age_days, "unknown_bar_date"
        when the date can't be read, else None
    """
    if last_bar_date is None:
        return "unknown_bar_date"

    if isinstance(last_bar_date, datetime):
        bar_day = last_bar_date.date()
    elif isinstance(last_bar_date, date):
        bar_day = last_bar_date
    else:
        try:
            bar_day = date.fromisoformat(str(last_bar_date)[:10])
        except ValueError:
            return "unknown_bar_date"

    if now is None:
        now = datetime.now(pytz.timezone(tz))
    age_days = (now.date() - bar_day).days

    if age_days > max_age_days:
        return f"stale_data:{age_days}_days"
    return None
