"""Async yfinance client with bounded concurrency and retry logic."""

import asyncio
import logging
import os
import random
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, TypeVar

import pandas as pd
import yfinance as yf
from requests.exceptions import HTTPError

from stock_signals.models import FundamentalsSnapshot
from stock_signals.utils.validators import FetchParams

logger = logging.getLogger(__name__)

# Bounded concurrency for yfinance calls
_max_workers = int(os.environ.get("YF_MAX_WORKERS", "4"))
_executor = ThreadPoolExecutor(max_workers=_max_workers)
_fetch_semaphore = asyncio.Semaphore(_max_workers)

# Retry configuration
_max_retries = int(os.environ.get("YF_MAX_RETRIES", "3"))
_base_delay = float(os.environ.get("YF_BASE_DELAY", "1.0"))  # seconds
_max_delay = float(os.environ.get("YF_MAX_DELAY", "30.0"))  # seconds

# Shutdown coordination
shutdown_event = asyncio.Event()

T = TypeVar("T")

HISTORY_COLUMNS = ["date", "open", "high", "low", "close", "volume"]


class ServerShuttingDownError(Exception):
    """Raised when server is shutting down."""

    pass


class YFinanceRetryError(Exception):
    """Raised when yfinance fails after all retries."""

    def __init__(self, message: str, last_error: Exception | None = None):
        super().__init__(message)
        self.last_error = last_error


@dataclass
class RetryResult:
    """Result of a retry operation with provenance tracking."""

    result: Any
    attempts: int
    total_backoff_seconds: float
    source: str = "yfinance"

    def to_provenance(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "attempts": self.attempts,
            "total_backoff_seconds": self.total_backoff_seconds,
        }


def _is_retryable_error(error: Exception) -> bool:
    """Check if an error is transient (rate limit, 5xx, connection, timeout)."""
    if (
        isinstance(error, HTTPError)
        and hasattr(error, "response")
        and error.response is not None
    ):
        status_code = error.response.status_code
        if status_code == 429 or 500 <= status_code < 600:
            return True

    error_str = str(error).lower()
    retryable_patterns = [
        "rate limit",
        "too many requests",
        "connection",
        "timeout",
        "temporary",
    ]
    return any(pattern in error_str for pattern in retryable_patterns)


def _calculate_backoff(attempt: int) -> float:
    """Calculate delay with exponential backoff and jitter."""
    delay = _base_delay * (2**attempt)
    # Jitter of +/-25%
    jitter = delay * 0.25 * (2 * random.random() - 1)
    return min(delay + jitter, _max_delay)


async def _retry_with_backoff(
    operation_name: str,
    sync_func: Callable[[], T],
    max_retries: int = _max_retries,
) -> RetryResult:
    """
    Execute a synchronous function in the executor with retry logic.

    Args:
        operation_name: Name for logging (e.g., "fetch_history(AAPL)")
        sync_func: Synchronous function to execute
        max_retries: Maximum number of retry attempts

    Returns:
        RetryResult with result and provenance info

    Raises:
        YFinanceRetryError: If all retries exhausted
        ServerShuttingDownError: If server is shutting down
    """
    total_backoff = 0.0

    for attempt in range(max_retries + 1):
        if shutdown_event.is_set():
            raise ServerShuttingDownError("Server is shutting down")

        try:
            loop = asyncio.get_running_loop()
            result = await loop.run_in_executor(_executor, sync_func)
            return RetryResult(
                result=result,
                attempts=attempt + 1,
                total_backoff_seconds=round(total_backoff, 2),
            )
        except Exception as e:
            if not _is_retryable_error(e):
                raise

            if attempt >= max_retries:
                logger.warning(
                    f"{operation_name}: Failed after {attempt + 1} attempts. Last error: {e}"
                )
                raise YFinanceRetryError(
                    f"Failed after {attempt + 1} attempts: {e}",
                    last_error=e,
                ) from e

            delay = _calculate_backoff(attempt)
            total_backoff += delay
            logger.info(
                f"{operation_name}: Attempt {attempt + 1} failed ({e}). "
                f"Retrying in {delay:.1f}s..."
            )
            await asyncio.sleep(delay)

    raise YFinanceRetryError(f"Failed after {max_retries + 1} attempts")


def standardize_history(df: pd.DataFrame) -> pd.DataFrame:
    """
    Standardize yf.download output to date, open, high, low, close, volume.

    Dates become YYYY-MM-DD strings; rows stay oldest first.
    """
    df = df.copy()

    # yf.download returns a column MultiIndex (field, ticker)
    if isinstance(df.columns, pd.MultiIndex):
        df.columns = df.columns.get_level_values(0)

    if "Adj Close" in df.columns:
        df = df.drop(columns=["Adj Close"])

    df.columns = [str(c).lower() for c in df.columns]
    df = df.reset_index()
    df = df.rename(columns={df.columns[0]: "date"})

    if pd.api.types.is_datetime64_any_dtype(df["date"]):
        df["date"] = df["date"].dt.strftime("%Y-%m-%d")

    for col in HISTORY_COLUMNS:
        if col not in df.columns:
            df[col] = pd.NA

    return df[HISTORY_COLUMNS].sort_values("date").reset_index(drop=True)


async def fetch_history(params: FetchParams) -> tuple[pd.DataFrame, dict[str, Any]]:
    """
    Fetch daily price history with bounded concurrency and retry.

    Args:
        params: Fetch parameters

    Returns:
        Tuple of (standardized DataFrame, retry provenance)

    Raises:
        ServerShuttingDownError: If server is shutting down
        YFinanceRetryError: If all retries exhausted for retryable errors
        ValueError: If symbol is invalid or no data returned
    """
    if shutdown_event.is_set():
        raise ServerShuttingDownError("Server is shutting down")

    def _fetch() -> pd.DataFrame:
        df = yf.download(**params.to_yf_kwargs())
        if df is None or df.empty:
            raise ValueError(f"No data returned for {params.symbol}")
        return standardize_history(df)

    async with _fetch_semaphore:
        retry_result = await _retry_with_backoff(f"fetch_history({params.symbol})", _fetch)
        return retry_result.result, retry_result.to_provenance()


async def fetch_info(symbol: str) -> tuple[dict[str, Any], dict[str, Any]]:
    """
    Fetch the yfinance info dict (fundamentals ratios) with retry.

    Returns:
        Tuple of (info dict, retry provenance)

    Raises:
        ServerShuttingDownError: If server is shutting down
        YFinanceRetryError: If all retries exhausted for retryable errors
        ValueError: If symbol is invalid
    """
    if shutdown_event.is_set():
        raise ServerShuttingDownError("Server is shutting down")

    normalized_symbol = symbol.upper().strip()

    def _fetch() -> dict[str, Any]:
        info = yf.Ticker(normalized_symbol).info
        if not info:
            raise ValueError(f"Invalid symbol: {symbol}")
        return info

    async with _fetch_semaphore:
        retry_result = await _retry_with_backoff(f"fetch_info({normalized_symbol})", _fetch)
        return retry_result.result, retry_result.to_provenance()


def _safe_float(value: Any) -> float | None:
    """Convert to float or return None."""
    if value is None:
        return None
    try:
        result = float(value)
        if result != result:  # NaN check
            return None
        return result
    except (ValueError, TypeError):
        return None


def _pct(value: Any) -> float | None:
    """yfinance fraction (0.25) to percent units (25.0)."""
    result = _safe_float(value)
    return result * 100 if result is not None else None


def snapshot_from_info(info: dict[str, Any]) -> FundamentalsSnapshot:
    """
    Map a yfinance info dict onto a FundamentalsSnapshot in percent units.

    yfinance has no 3-year revenue growth or interest coverage; those stay
    None and the scorer applies its default.
    """
    debt_to_equity = _safe_float(info.get("debtToEquity"))
    # yfinance reports D/E as a percentage (150.0 = 1.5x)
    if debt_to_equity is not None and debt_to_equity > 10:
        debt_to_equity = debt_to_equity / 100

    pe_ratio = _safe_float(info.get("trailingPE"))
    if pe_ratio is None:
        pe_ratio = _safe_float(info.get("forwardPE"))

    peg_ratio = _safe_float(info.get("pegRatio"))
    if peg_ratio is None:
        peg_ratio = _safe_float(info.get("trailingPegRatio"))

    return FundamentalsSnapshot(
        roe=_pct(info.get("returnOnEquity")),
        net_margin=_pct(info.get("profitMargins")),
        gross_margin=_pct(info.get("grossMargins")),
        revenue_growth_ttm=_pct(info.get("revenueGrowth")),
        revenue_growth_3y=None,
        eps_growth_ttm=_pct(info.get("earningsGrowth")),
        pe_ratio=pe_ratio,
        peg_ratio=peg_ratio,
        current_ratio=_safe_float(info.get("currentRatio")),
        debt_to_equity=debt_to_equity,
        interest_coverage=None,
    )


async def shutdown_executor() -> None:
    """Cleanup on server shutdown."""
    shutdown_event.set()
    _executor.shutdown(wait=False, cancel_futures=True)
