"""Technical recommendation tools."""

import math
from time import perf_counter
from typing import Any

import pandas as pd

from stock_signals.config import DEFAULT_CONFIG, STALE_AFTER_DAYS, Precision, ScoringConfig
from stock_signals.data.cache import result_cache
from stock_signals.data.yfinance_client import fetch_history
from stock_signals.errors import ValidationError
from stock_signals.models import SERIES_ALIASES, IndicatorSeries
from stock_signals.scoring.recommendation import INSUFFICIENT_DATA_SUMMARY, recommend
from stock_signals.utils.indicators import build_indicator_series
from stock_signals.utils.provenance import (
    build_error_response,
    build_meta,
    fetched_provenance,
    insufficient_bars_warning,
    result_provenance,
)
from stock_signals.utils.validators import FetchParams, check_freshness

# One year covers both the EMA warm-up and the start of the calendar year
HISTORY_PERIOD = "1y"


async def load_history(symbol: str) -> tuple[pd.DataFrame | None, dict[str, Any]]:
    """
    Fetch daily history for a symbol.

    Returns:
        (frame, retry provenance) on success, (None, error response) on failure
    """
    try:
        params = FetchParams(symbol=symbol, period=HISTORY_PERIOD, interval="1d", adjusted=True)
        df, retry_provenance = await fetch_history(params)
    except ValueError as e:
        return None, build_error_response(
            error_type="invalid_symbol",
            message=str(e),
            symbol=symbol,
        )
    except Exception as e:
        return None, build_error_response(
            error_type="data_unavailable",
            message=f"Failed to fetch data: {e}",
            symbol=symbol,
        )
    return df, {**retry_provenance, "uri": params.to_uri()}


def latest_values(series: IndicatorSeries) -> dict[str, float | None]:
    """Latest value of each series under its dashboard key, rounded for display."""
    latest: dict[str, float | None] = {}
    for name, alias in SERIES_ALIASES.items():
        values = getattr(series, name)
        value = values[-1] if values else None
        latest[alias] = round(value, 4) if value is not None and math.isfinite(value) else None
    return latest


def cached_recommendation(
    series: IndicatorSeries,
    precision: Precision,
    config: ScoringConfig = DEFAULT_CONFIG,
) -> tuple[dict[str, Any], bool, str]:
    """
    Recommendation for a series set, served from the result cache when possible.

    Returns:
        Tuple of (recommendation dict, cache_hit, cache key)
    """
    payload = {"series": series.to_dict(), "precision": precision.value}
    key = result_cache.key_for("recommendation", payload)
    result, hit = result_cache.get_or_compute(
        "recommendation",
        payload,
        lambda: recommend(series, precision, config).to_dict(),
    )
    return result, hit, key


async def technical_recommendation(symbol: str, precision: str = "detailed") -> dict[str, Any]:
    """
    Fetch a year of daily closes and produce the technical recommendation.

    Args:
        symbol: Stock ticker symbol
        precision: "detailed" (default) or "summary"

    Returns:
        Dict with overall level, confidence, per-indicator signals and latest values
    """
    start_time = perf_counter()

    try:
        precision_flag = Precision.parse(precision)
    except ValidationError as e:
        return build_error_response(
            error_type="invalid_input",
            message=str(e),
            symbol=symbol,
            field=e.field,
        )

    df, fetched = await load_history(symbol)
    if df is None:
        return fetched

    normalized_symbol = symbol.upper().strip()
    series = build_indicator_series(df)
    recommendation, cache_hit, cache_key = cached_recommendation(series, precision_flag)

    warnings: list[str] = []
    stale = check_freshness(series.last_bar_date, STALE_AFTER_DAYS)
    if stale:
        warnings.append(stale)
    if recommendation["summary"] == INSUFFICIENT_DATA_SUMMARY:
        warnings.append(insufficient_bars_warning(len(df)))

    duration_ms = (perf_counter() - start_time) * 1000

    return {
        "meta": build_meta("technical_recommendation", duration_ms),
        "data_provenance": {
            "prices": fetched_provenance(
                fetched,
                warnings,
                last_bar_date=series.last_bar_date,
                bars=len(df),
            ),
            "recommendation": result_provenance(cache_hit, cache_key),
        },
        "symbol": normalized_symbol,
        "precision": precision_flag.value,
        "recommendation": recommendation,
        "latest": latest_values(series),
    }
