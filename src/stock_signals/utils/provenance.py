"""Response envelope for scoring tools.

Each tool response carries a ``meta`` block and a ``data_provenance`` dict
with one block per input (prices, fundamentals, sentiment, caller inputs)
and one block per computed result (recommendation, composite).

Warnings are ``kind:detail`` tokens:
    stale_data:N_days          last bar is older than the freshness window
    insufficient_data:N_bars   too few bars for the slowest indicator
    missing:<field>            a series or ratio was absent
    defaulted:<input>          an input fell back to the neutral score
"""

from collections.abc import Iterable
from datetime import datetime
from typing import Any

from stock_signals import SCHEMA_VERSION, SERVER_VERSION

ERROR_TYPES = frozenset(
    {"invalid_symbol", "invalid_input", "data_unavailable", "insufficient_data"}
)


def build_meta(tool: str, duration_ms: float | None = None) -> dict[str, Any]:
    """Version info and tool name, plus duration rounded to 0.1 ms when given."""
    meta: dict[str, Any] = {
        "server_version": SERVER_VERSION,
        "schema_version": SCHEMA_VERSION,
        "tool": tool,
    }
    if duration_ms is not None:
        meta["duration_ms"] = round(duration_ms, 1)
    return meta


def tagged(kind: str, names: Iterable[str]) -> list[str]:
    """Warning tokens ``kind:name`` for each name, in the given order."""
    return [f"{kind}:{name}" for name in names]


def insufficient_bars_warning(bars: int) -> str:
    return f"insufficient_data:{bars}_bars"


def fetched_provenance(
    fetched: dict[str, Any],
    warnings: Iterable[str] = (),
    **fields: Any,
) -> dict[str, Any]:
    """
    Provenance for market data pulled from the data layer.

    Args:
        fetched: Retry provenance from the client (source, attempts, backoff, uri)
        warnings: Warning tokens for this input
        **fields: Extra facts about the input (last_bar_date, bars)

    Returns:
        Provenance dict stamped with the current UTC time
    """
    return {
        **fetched,
        "as_of": datetime.utcnow().isoformat() + "Z",
        **fields,
        "warnings": list(warnings),
    }


def caller_provenance(warnings: Iterable[str] = (), **fields: Any) -> dict[str, Any]:
    """Provenance for values supplied directly by the caller."""
    return {"source": "caller", **fields, "warnings": list(warnings)}


def result_provenance(cache_hit: bool, cache_key: str) -> dict[str, Any]:
    """
    Provenance for a computed result.

    The cache key is also the ``result://`` resource path, so clients can
    re-read the exact result later.
    """
    return {
        "source": "cache" if cache_hit else "computed",
        "cache_key": cache_key,
        "warnings": [],
    }


def build_error_response(
    error_type: str,
    message: str,
    symbol: str | None = None,
    field: str | None = None,
) -> dict[str, Any]:
    """
    Build an error response returned by a tool instead of raising.

    Args:
        error_type: One of ERROR_TYPES
        message: Human-readable error message
        symbol: Ticker the request was for (if any)
        field: Input field that failed validation (if any)

    Returns:
        Error response dict
    """
    if error_type not in ERROR_TYPES:
        raise ValueError(f"Unknown error_type '{error_type}'")

    response: dict[str, Any] = {
        "error": True,
        "error_type": error_type,
        "message": message,
        "meta": build_meta("error"),
    }
    if symbol is not None:
        response["symbol"] = symbol
    if field is not None:
        response["field"] = field
    return response
