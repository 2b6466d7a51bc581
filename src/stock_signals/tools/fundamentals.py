"""Fundamentals score tool."""

from time import perf_counter
from typing import Any

from stock_signals.data.yfinance_client import fetch_info, snapshot_from_info
from stock_signals.models import FundamentalsSnapshot
from stock_signals.scoring.fundamentals import explain_fundamentals, score_fundamentals
from stock_signals.utils.provenance import (
    build_error_response,
    build_meta,
    fetched_provenance,
    tagged,
)


async def load_snapshot(symbol: str) -> tuple[FundamentalsSnapshot | None, dict[str, Any]]:
    """
    Fetch yfinance info and map it to a FundamentalsSnapshot.

    Returns:
        (snapshot, retry provenance) on success, (None, error response) on failure
    """
    try:
        info, retry_provenance = await fetch_info(symbol)
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
    return snapshot_from_info(info), retry_provenance


async def fundamentals_score(symbol: str) -> dict[str, Any]:
    """
    Score a symbol's fundamentals ratios on the 0-100 scale.

    Args:
        symbol: Stock ticker symbol

    Returns:
        Dict with score, the ratios used, and which rule fired per group
    """
    start_time = perf_counter()

    snapshot, fetched = await load_snapshot(symbol)
    if snapshot is None:
        return fetched

    ratios = snapshot.to_dict()
    missing = sorted(name for name, value in ratios.items() if value is None)

    duration_ms = (perf_counter() - start_time) * 1000

    return {
        "meta": build_meta("fundamentals_score", duration_ms),
        "data_provenance": {
            "fundamentals": fetched_provenance(fetched, tagged("missing", missing)),
        },
        "symbol": symbol.upper().strip(),
        "score": score_fundamentals(snapshot),
        "ratios": {name: round(value, 4) if value is not None else None for name, value in ratios.items()},
        "rules": explain_fundamentals(snapshot),
        "missing_fields": missing,
    }
