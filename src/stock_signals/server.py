"""Stock Signals MCP Server using FastMCP."""

import asyncio
import json
import logging
import os
from typing import Any

from fastmcp import FastMCP

from stock_signals import SCHEMA_VERSION, SERVER_VERSION
from stock_signals.data.cache import result_cache
from stock_signals.data.yfinance_client import shutdown_executor
from stock_signals.tools import (
    fundamentals_score,
    overall_summary,
    score_composite,
    score_series,
    technical_recommendation,
)

# Configure logging
log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
logging.basicConfig(level=getattr(logging, log_level, logging.INFO))
logger = logging.getLogger(__name__)

# Create FastMCP server instance
mcp = FastMCP(
    name="stock-signals",
)


# ============================================================================
# TOOLS
# ============================================================================


@mcp.tool
async def get_technical_recommendation(symbol: str, precision: str = "detailed") -> str:
    """
    Get a technical recommendation from EMA alignment, MACD momentum and RSI.

    Args:
        symbol: Stock ticker symbol (e.g., AAPL, GOOGL, MSFT)
        precision: "detailed" (full decision tables, default) or "summary"
            (coarser badge heuristic)

    Returns:
        JSON with overall level (strong-buy..strong-sell), confidence 0-100,
        per-indicator signals with reasons, and latest indicator values
    """
    result = await technical_recommendation(symbol=symbol, precision=precision)
    return json.dumps(result, indent=2, default=str)


@mcp.tool
async def get_fundamentals_score(symbol: str) -> str:
    """
    Score profitability, growth, valuation and financial health on 0-100.

    Args:
        symbol: Stock ticker symbol

    Returns:
        JSON with score, ratios used (percent units), and the rule that
        fired for each group
    """
    result = await fundamentals_score(symbol=symbol)
    return json.dumps(result, indent=2, default=str)


@mcp.tool
async def get_overall_summary(
    symbol: str,
    retail_sentiment: float | None = None,
    professional_sentiment: float | None = None,
    precision: str = "detailed",
) -> str:
    """
    Get the composite score (0-100) and label for a stock.

    Blends YTD growth (25%), fundamentals (35%), technical level (25%) and
    sentiment (15%), then applies bearish caps.

    Args:
        symbol: Stock ticker symbol
        retail_sentiment: Retail sentiment 0-100 (optional, default 50)
        professional_sentiment: Professional sentiment 0-100 (optional, default 50)
        precision: Technical precision, "detailed" (default) or "summary"

    Returns:
        JSON with composite score, label (STRONG BUY..SELL), component
        breakdown, overrides applied, and any failed components
    """
    result = await overall_summary(
        symbol=symbol,
        retail_sentiment=retail_sentiment,
        professional_sentiment=professional_sentiment,
        precision=precision,
    )
    return json.dumps(result, indent=2, default=str)


@mcp.tool
async def score_indicator_series(series: dict[str, Any], precision: str = "detailed") -> str:
    """
    Score precomputed indicator series without fetching market data.

    Args:
        series: Equal-length lists, oldest first, keyed by ema8, ema21, ema34,
            ema50, macd, signal, histogram, rsi; optional last_bar_date
        precision: "detailed" (default) or "summary"

    Returns:
        JSON with overall level, confidence and per-indicator signals
    """
    result = await score_series(series=series, precision=precision)
    return json.dumps(result, indent=2, default=str)


@mcp.tool
async def score_composite_inputs(
    ytd_pct: float | None = None,
    fundamentals_score: float | None = None,
    technical_level: str | None = None,
    sentiment_score: float | None = None,
) -> str:
    """
    Compute the composite score from component inputs you already have.

    Args:
        ytd_pct: Year-to-date growth in percent (e.g., -12.5)
        fundamentals_score: Fundamentals score 0-100
        technical_level: strong-buy, buy, neutral, sell or strong-sell
        sentiment_score: Blended sentiment 0-100

    Returns:
        JSON with score, label and component breakdown
    """
    result = await score_composite(
        ytd_pct=ytd_pct,
        fundamentals_score=fundamentals_score,
        technical_level=technical_level,
        sentiment_score=sentiment_score,
    )
    return json.dumps(result, indent=2, default=str)


@mcp.tool
async def get_server_info() -> str:
    """
    Get server version and configuration info.

    Returns:
        JSON with server version, schema version, and available tools
    """
    result = {
        "server_version": SERVER_VERSION,
        "schema_version": SCHEMA_VERSION,
        "tools": [
            "get_technical_recommendation",
            "get_fundamentals_score",
            "get_overall_summary",
            "score_indicator_series",
            "score_composite_inputs",
            "get_server_info",
        ],
        "resources": ["result://{kind}/{fingerprint}"],
    }
    return json.dumps(result, indent=2)


# ============================================================================
# RESOURCES
# ============================================================================


@mcp.resource("result://{kind}/{fingerprint}")
def get_cached_result(kind: str, fingerprint: str) -> str:
    """
    Get a cached scoring result as JSON.

    The cache_key in a tool's data_provenance is kind://fingerprint.

    Args:
        kind: "recommendation" or "composite"
        fingerprint: Input fingerprint from the cache key

    Returns:
        JSON of the stored result
    """
    key = f"{kind}://{fingerprint}"
    cached = result_cache.get(key)
    if cached is None:
        return f"Resource not cached: {key}. Call a scoring tool first."
    return json.dumps(cached, indent=2, default=str)


# ============================================================================
# ENTRY POINT
# ============================================================================


def main() -> None:
    """Run the MCP server."""
    logger.info(f"Starting Stock Signals MCP Server v{SERVER_VERSION} (schema v{SCHEMA_VERSION})")
    try:
        mcp.run()
    finally:
        asyncio.run(shutdown_executor())


if __name__ == "__main__":
    main()
