"""Data layer for fetching prices and fundamentals and caching results."""

from stock_signals.data.cache import ResultCache, result_cache
from stock_signals.data.yfinance_client import (
    RetryResult,
    ServerShuttingDownError,
    YFinanceRetryError,
    fetch_history,
    fetch_info,
    shutdown_executor,
    snapshot_from_info,
    standardize_history,
)

__all__ = [
    # Cache
    "ResultCache",
    "result_cache",
    # yfinance
    "RetryResult",
    "ServerShuttingDownError",
    "YFinanceRetryError",
    "fetch_history",
    "fetch_info",
    "shutdown_executor",
    "snapshot_from_info",
    "standardize_history",
]
