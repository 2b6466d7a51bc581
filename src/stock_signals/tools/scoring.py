"""Scoring tools over caller-supplied inputs (no market data fetch)."""

from time import perf_counter
from typing import Any

from stock_signals.config import STALE_AFTER_DAYS, Precision
from stock_signals.data.cache import result_cache
from stock_signals.errors import ValidationError
from stock_signals.models import IndicatorSeries, RecommendationLevel
from stock_signals.scoring.composite import defaulted_inputs, synthesize_composite
from stock_signals.tools.technical import cached_recommendation, latest_values
from stock_signals.utils.provenance import (
    build_error_response,
    build_meta,
    caller_provenance,
    result_provenance,
    tagged,
)
from stock_signals.utils.validators import check_freshness


async def score_series(series: dict[str, Any], precision: str = "detailed") -> dict[str, Any]:
    """
    Produce a technical recommendation from precomputed indicator series.

    Args:
        series: Dict of equal-length lists, oldest first, keyed by ema8, ema21,
            ema34, ema50, macd, signal, histogram, rsi (or the field names),
            plus an optional last_bar_date
        precision: "detailed" (default) or "summary"

    Returns:
        Dict with the recommendation and latest values
    """
    start_time = perf_counter()

    try:
        precision_flag = Precision.parse(precision)
        indicator_series = IndicatorSeries.from_mapping(series)
    except ValidationError as e:
        return build_error_response(
            error_type="invalid_input",
            message=str(e),
            field=e.field,
        )
    except (TypeError, ValueError) as e:
        return build_error_response(
            error_type="invalid_input",
            message=f"Series values must be numbers: {e}",
            field="series",
        )

    recommendation, cache_hit, cache_key = cached_recommendation(indicator_series, precision_flag)

    warnings: list[str] = []
    if indicator_series.last_bar_date is not None:
        stale = check_freshness(indicator_series.last_bar_date, STALE_AFTER_DAYS)
        if stale:
            warnings.append(stale)
    warnings.extend(tagged("missing", indicator_series.missing_fields()))

    duration_ms = (perf_counter() - start_time) * 1000

    return {
        "meta": build_meta("score_series", duration_ms),
        "data_provenance": {
            "series": caller_provenance(
                warnings,
                last_bar_date=indicator_series.last_bar_date,
                bars=indicator_series.length,
            ),
            "recommendation": result_provenance(cache_hit, cache_key),
        },
        "precision": precision_flag.value,
        "recommendation": recommendation,
        "latest": latest_values(indicator_series),
    }


async def score_composite(
    ytd_pct: float | None = None,
    fundamentals_score: float | None = None,
    technical_level: str | None = None,
    sentiment_score: float | None = None,
) -> dict[str, Any]:
    """
    Blend caller-supplied component inputs into the composite score and label.

    Any omitted or non-finite input contributes the neutral score.

    Args:
        ytd_pct: Year-to-date growth in percent
        fundamentals_score: Fundamentals score 0-100
        technical_level: strong-buy, buy, neutral, sell or strong-sell
        sentiment_score: Blended sentiment 0-100

    Returns:
        Dict with score, label and component breakdown
    """
    start_time = perf_counter()

    if technical_level is not None and RecommendationLevel.parse(technical_level) is None:
        return build_error_response(
            error_type="invalid_input",
            message=(
                f"Invalid technical_level '{technical_level}'. "
                f"Must be one of: {[level.value for level in RecommendationLevel]}"
            ),
            field="technical_level",
        )

    payload = {
        "ytd_pct": ytd_pct,
        "fundamentals_score": fundamentals_score,
        "technical_level": technical_level,
        "sentiment_score": sentiment_score,
    }
    key = result_cache.key_for("composite", payload)
    composite, cache_hit = result_cache.get_or_compute(
        "composite",
        payload,
        lambda: synthesize_composite(
            ytd_pct, fundamentals_score, technical_level, sentiment_score
        ).to_dict(),
    )

    defaulted = defaulted_inputs(ytd_pct, fundamentals_score, technical_level, sentiment_score)
    duration_ms = (perf_counter() - start_time) * 1000

    return {
        "meta": build_meta("score_composite", duration_ms),
        "data_provenance": {
            "inputs": caller_provenance(tagged("defaulted", defaulted)),
            "composite": result_provenance(cache_hit, key),
        },
        "composite": composite,
    }
