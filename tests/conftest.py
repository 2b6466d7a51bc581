"""Pytest configuration and fixtures."""

from unittest.mock import patch

import pandas as pd
import pytest

from stock_signals.data.cache import ResultCache
from stock_signals.models import IndicatorSeries


def make_series(**overrides) -> IndicatorSeries:
    """
    Six-bar series set where every analyzer reads bullish at strength 5.

    EMAs ordered fast>mid1>mid2>slow and all rising over 5 periods, MACD
    crossing above its signal line above zero, RSI 42 -> 45.
    """
    data = {
        "ema_fast": [35.0, 36.0, 37.0, 38.0, 39.0, 40.0],
        "ema_mid1": [25.0, 26.0, 27.0, 28.0, 29.0, 30.0],
        "ema_mid2": [15.0, 16.0, 17.0, 18.0, 19.0, 20.0],
        "ema_slow": [5.0, 6.0, 7.0, 8.0, 9.0, 10.0],
        "momentum_line": [-0.4, -0.3, -0.3, -0.2, -0.1, 0.2],
        "momentum_signal_line": [0.1, 0.1, 0.1, 0.05, 0.05, 0.1],
        "momentum_histogram": [-0.5, -0.4, -0.4, -0.25, -0.15, 0.1],
        "oscillator": [40.0, 41.0, 40.0, 41.0, 42.0, 45.0],
        "last_bar_date": "2024-06-28",
    }
    data.update(overrides)
    return IndicatorSeries(**data)


@pytest.fixture
def series_factory():
    """Factory for series sets that override fields of the bullish default."""
    return make_series


@pytest.fixture
def bullish_series() -> IndicatorSeries:
    """Series set where every analyzer reads bullish at strength 5."""
    return make_series()


@pytest.fixture
def bearish_series() -> IndicatorSeries:
    """Series set where every analyzer reads bearish (EMA 5, MACD 5, RSI 4)."""
    return make_series(
        ema_fast=[15.0, 14.0, 13.0, 12.0, 11.0, 10.0],
        ema_mid1=[25.0, 24.0, 23.0, 22.0, 21.0, 20.0],
        ema_mid2=[35.0, 34.0, 33.0, 32.0, 31.0, 30.0],
        ema_slow=[45.0, 44.0, 43.0, 42.0, 41.0, 40.0],
        momentum_line=[0.2, 0.1, 0.05, 0.0, -0.05, -0.3],
        momentum_signal_line=[0.0, 0.0, -0.05, -0.05, -0.1, -0.2],
        momentum_histogram=[0.2, 0.1, 0.1, 0.05, 0.05, -0.1],
        oscillator=[35.0, 33.0, 31.0, 30.0, 28.0, 25.0],
    )


@pytest.fixture
def sample_ohlcv_df() -> pd.DataFrame:
    """Sample yf.download-style OHLCV DataFrame for testing."""
    return pd.DataFrame(
        {
            "Date": pd.date_range("2024-01-01", periods=10, freq="D"),
            "Open": [100.0, 101.0, 102.0, 101.5, 103.0, 104.0, 103.5, 105.0, 106.0, 105.5],
            "High": [101.0, 102.5, 103.0, 102.5, 104.5, 105.5, 105.0, 106.5, 107.0, 106.5],
            "Low": [99.5, 100.5, 101.0, 100.5, 102.0, 103.0, 102.5, 104.0, 105.0, 104.5],
            "Close": [100.5, 102.0, 101.5, 102.0, 104.0, 103.5, 104.5, 106.0, 105.5, 106.0],
            "Adj Close": [100.0, 101.5, 101.0, 101.5, 103.5, 103.0, 104.0, 105.5, 105.0, 105.5],
            "Volume": [1000000] * 10,
        }
    ).set_index("Date")


@pytest.fixture
def history_df() -> pd.DataFrame:
    """Standardized daily history: steady uptrend across a year boundary."""
    dates = pd.bdate_range("2023-10-02", periods=120)
    closes = [100.0 + i * 0.5 + (1.0 if i % 3 == 0 else 0.0) for i in range(120)]
    return pd.DataFrame(
        {
            "date": dates.strftime("%Y-%m-%d"),
            "open": closes,
            "high": [c + 1 for c in closes],
            "low": [c - 1 for c in closes],
            "close": closes,
            "volume": [1000000] * 120,
        }
    )


@pytest.fixture
def sample_price_series() -> pd.Series:
    """Sample price series for indicator testing."""
    return pd.Series(
        [100.0, 101.0, 102.0, 101.5, 103.0, 104.0, 103.5, 105.0, 106.0, 105.5,
         107.0, 108.0, 107.5, 109.0, 110.0, 109.5, 111.0, 112.0, 111.5, 113.0,
         114.0, 113.5, 115.0, 116.0, 115.5, 117.0, 118.0, 117.5, 119.0, 120.0]
    )


@pytest.fixture
def isolated_cache(tmp_path):
    """Route the tools' result cache to a temporary directory."""
    cache = ResultCache(cache_dir=str(tmp_path / "cache"), ttl=60)
    with patch("stock_signals.tools.technical.result_cache", cache), patch(
        "stock_signals.tools.scoring.result_cache", cache
    ):
        yield cache
    cache.cache.close()
