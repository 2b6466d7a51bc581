"""Overall summary tool: composite of YTD, fundamentals, technicals and sentiment."""

import asyncio
import logging
from time import perf_counter
from typing import Any

from stock_signals.config import STALE_AFTER_DAYS, Precision
from stock_signals.errors import ValidationError
from stock_signals.scoring.composite import blend_sentiment, sentiment_label, synthesize_composite
from stock_signals.scoring.fundamentals import score_fundamentals
from stock_signals.tools.fundamentals import load_snapshot
from stock_signals.tools.technical import cached_recommendation, load_history
from stock_signals.utils.indicators import build_indicator_series, calculate_ytd_growth_pct
from stock_signals.utils.provenance import (
    build_error_response,
    build_meta,
    caller_provenance,
    fetched_provenance,
    tagged,
)
from stock_signals.utils.validators import check_freshness

logger = logging.getLogger(__name__)


def _validate_sentiment(field: str, value: float | None) -> float | None:
    """Sentiment scores are optional but must be on the 0-100 scale."""
    if value is None:
        return None
    try:
        score = float(value)
    except (TypeError, ValueError):
        raise ValidationError(field, f"{field} must be a number, got {value!r}") from None
    if not 0 <= score <= 100:
        raise ValidationError(field, f"{field} must be within [0, 100], got {score}")
    return score


async def overall_summary(
    symbol: str,
    retail_sentiment: float | None = None,
    professional_sentiment: float | None = None,
    precision: str = "detailed",
) -> dict[str, Any]:
    """
    Blend year-to-date growth, fundamentals, technical level and sentiment.

    Prices and fundamentals are fetched in parallel. A component whose data
    can't be fetched contributes the neutral score and is listed under
    "failures"; the call only errors when both fetches fail.

    Args:
        symbol: Stock ticker symbol
        retail_sentiment: Retail sentiment score 0-100 (default: neutral 50)
        professional_sentiment: Professional sentiment score 0-100 (default: neutral 50)
        precision: Technical precision, "detailed" (default) or "summary"

    Returns:
        Dict with composite score and label, component breakdown and inputs
    """
    start_time = perf_counter()
    normalized_symbol = symbol.upper().strip()

    try:
        precision_flag = Precision.parse(precision)
        retail = _validate_sentiment("retail_sentiment", retail_sentiment)
        professional = _validate_sentiment("professional_sentiment", professional_sentiment)
    except ValidationError as e:
        return build_error_response(
            error_type="invalid_input",
            message=str(e),
            symbol=symbol,
            field=e.field,
        )

    (df, prices_fetched), (snapshot, fundamentals_fetched) = await asyncio.gather(
        load_history(normalized_symbol),
        load_snapshot(normalized_symbol),
    )

    if df is None and snapshot is None:
        return prices_fetched

    failures: list[dict[str, Any]] = []
    data_provenance: dict[str, Any] = {}

    ytd_pct: float | None = None
    technical: dict[str, Any] | None = None
    if df is None:
        failures.append(
            {
                "component": "prices",
                "error": prices_fetched.get("error_type", "unknown"),
                "message": prices_fetched.get("message", ""),
            }
        )
    else:
        series = build_indicator_series(df)
        ytd_pct = calculate_ytd_growth_pct(df)
        technical, _, _ = cached_recommendation(series, precision_flag)

        warnings: list[str] = []
        stale = check_freshness(series.last_bar_date, STALE_AFTER_DAYS)
        if stale:
            warnings.append(stale)
        if ytd_pct is None:
            warnings.append("ytd_unavailable")
        data_provenance["prices"] = fetched_provenance(
            prices_fetched,
            warnings,
            last_bar_date=series.last_bar_date,
            bars=len(df),
        )

    fund_score: int | None = None
    if snapshot is None:
        failures.append(
            {
                "component": "fundamentals",
                "error": fundamentals_fetched.get("error_type", "unknown"),
                "message": fundamentals_fetched.get("message", ""),
            }
        )
    else:
        fund_score = score_fundamentals(snapshot)
        data_provenance["fundamentals"] = fetched_provenance(fundamentals_fetched)

    sentiment_score = blend_sentiment(retail, professional)
    data_provenance["sentiment"] = caller_provenance(
        tagged(
            "defaulted",
            [
                name
                for name, value in (("retail", retail), ("professional", professional))
                if value is None
            ],
        )
    )

    technical_level = technical["overall"] if technical else None
    composite = synthesize_composite(ytd_pct, fund_score, technical_level, sentiment_score)

    if failures:
        logger.info(
            f"overall_summary({normalized_symbol}): neutral defaults for "
            f"{[f['component'] for f in failures]}"
        )

    duration_ms = (perf_counter() - start_time) * 1000

    return {
        "meta": build_meta("overall_summary", duration_ms),
        "data_provenance": data_provenance,
        "symbol": normalized_symbol,
        "composite": composite.to_dict(),
        "inputs": {
            "ytd_pct": ytd_pct,
            "fundamentals_score": fund_score,
            "technical": technical,
            "sentiment": {
                "retail": retail,
                "professional": professional,
                "blended": sentiment_score,
                "label": sentiment_label(sentiment_score),
            },
        },
        "failures": failures,
    }
