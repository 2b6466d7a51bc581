"""Tests for the yfinance data client (network calls patched)."""

import asyncio
from unittest.mock import MagicMock, patch

import pandas as pd
import pytest
from requests.exceptions import HTTPError

from stock_signals.data.yfinance_client import (
    YFinanceRetryError,
    _is_retryable_error,
    fetch_history,
    fetch_info,
    snapshot_from_info,
    standardize_history,
)
from stock_signals.utils.validators import FetchParams


class TestStandardizeHistory:
    """Tests for standardize_history."""

    def test_columns_and_dates(self, sample_ohlcv_df: pd.DataFrame) -> None:
        """Output has lowercase OHLCV columns and YYYY-MM-DD dates."""
        df = standardize_history(sample_ohlcv_df)
        assert list(df.columns) == ["date", "open", "high", "low", "close", "volume"]
        assert df["date"].iloc[0] == "2024-01-01"
        assert "adj close" not in df.columns
        assert df["close"].iloc[-1] == 106.0

    def test_multiindex_columns(self, sample_ohlcv_df: pd.DataFrame) -> None:
        """yf.download's (field, ticker) columns are flattened."""
        multi = sample_ohlcv_df.copy()
        multi.columns = pd.MultiIndex.from_product([multi.columns, ["AAPL"]])
        df = standardize_history(multi)
        assert list(df.columns) == ["date", "open", "high", "low", "close", "volume"]
        assert len(df) == len(sample_ohlcv_df)


class TestSnapshotFromInfo:
    """Tests for snapshot_from_info."""

    def test_fractions_become_percent(self) -> None:
        """ROE, margins and growth are scaled to percent units."""
        snapshot = snapshot_from_info(
            {
                "returnOnEquity": 0.25,
                "profitMargins": 0.2,
                "grossMargins": 0.45,
                "revenueGrowth": 0.1,
                "earningsGrowth": -0.05,
                "trailingPE": 28.5,
                "pegRatio": 1.4,
                "currentRatio": 1.1,
                "debtToEquity": 150.0,
            }
        )
        assert snapshot.roe == pytest.approx(25.0)
        assert snapshot.net_margin == pytest.approx(20.0)
        assert snapshot.gross_margin == pytest.approx(45.0)
        assert snapshot.revenue_growth_ttm == pytest.approx(10.0)
        assert snapshot.eps_growth_ttm == pytest.approx(-5.0)
        assert snapshot.pe_ratio == 28.5
        assert snapshot.peg_ratio == 1.4
        assert snapshot.current_ratio == 1.1
        assert snapshot.debt_to_equity == pytest.approx(1.5)

    def test_missing_fields_stay_none(self) -> None:
        """Unavailable ratios are None, not zero."""
        snapshot = snapshot_from_info({"returnOnEquity": None, "trailingPE": "n/a"})
        assert snapshot.roe is None
        assert snapshot.pe_ratio is None
        assert snapshot.revenue_growth_3y is None
        assert snapshot.interest_coverage is None

    def test_fallbacks(self) -> None:
        """Forward P/E and trailing PEG fill gaps; small D/E is already a ratio."""
        snapshot = snapshot_from_info(
            {"forwardPE": 18.0, "trailingPegRatio": 0.9, "debtToEquity": 0.8}
        )
        assert snapshot.pe_ratio == 18.0
        assert snapshot.peg_ratio == 0.9
        assert snapshot.debt_to_equity == 0.8


class TestRetry:
    """Tests for retry classification and backoff."""

    def test_retryable_http_status(self) -> None:
        """429 and 5xx are retryable, 404 is not."""
        for status, expected in ((429, True), (503, True), (404, False)):
            error = HTTPError("HTTP error")
            error.response = MagicMock(status_code=status)
            assert _is_retryable_error(error) is expected

    def test_retryable_messages(self) -> None:
        """Rate limit and connection messages are retryable."""
        assert _is_retryable_error(Exception("Too Many Requests. Rate limited."))
        assert _is_retryable_error(Exception("Connection reset by peer"))
        assert not _is_retryable_error(ValueError("No data returned for XYZ"))

    @patch("stock_signals.data.yfinance_client._calculate_backoff", return_value=0.0)
    def test_fetch_history_retries_then_succeeds(
        self, _backoff: MagicMock, sample_ohlcv_df: pd.DataFrame
    ) -> None:
        """A transient failure is retried and counted in provenance."""
        with patch(
            "stock_signals.data.yfinance_client.yf.download",
            side_effect=[Exception("rate limit"), sample_ohlcv_df],
        ):
            df, provenance = asyncio.run(fetch_history(FetchParams(symbol="AAPL", period="1y")))

        assert len(df) == 10
        assert provenance["source"] == "yfinance"
        assert provenance["attempts"] == 2

    @patch("stock_signals.data.yfinance_client._calculate_backoff", return_value=0.0)
    def test_fetch_history_exhausts_retries(self, _backoff: MagicMock) -> None:
        """Persistent transient failures raise YFinanceRetryError."""
        with patch(
            "stock_signals.data.yfinance_client.yf.download",
            side_effect=Exception("timeout"),
        ) as download:
            with pytest.raises(YFinanceRetryError):
                asyncio.run(fetch_history(FetchParams(symbol="AAPL")))
        assert download.call_count == 4

    def test_empty_history_is_not_retried(self) -> None:
        """An empty frame raises ValueError immediately."""
        with patch(
            "stock_signals.data.yfinance_client.yf.download",
            return_value=pd.DataFrame(),
        ) as download:
            with pytest.raises(ValueError, match="No data returned"):
                asyncio.run(fetch_history(FetchParams(symbol="ZZZZ")))
        assert download.call_count == 1

    def test_fetch_info(self) -> None:
        """fetch_info returns the info dict with provenance."""
        ticker = MagicMock()
        ticker.info = {"returnOnEquity": 0.3}
        with patch("stock_signals.data.yfinance_client.yf.Ticker", return_value=ticker):
            info, provenance = asyncio.run(fetch_info(" msft "))
        assert info == {"returnOnEquity": 0.3}
        assert provenance["attempts"] == 1
