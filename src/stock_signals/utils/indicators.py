"""Technical indicator calculations for the signal analyzers."""

import numpy as np
import pandas as pd

from stock_signals.config import DEFAULT_INDICATOR_SETTINGS, IndicatorSettings
from stock_signals.models import IndicatorSeries


def calculate_ema(prices: pd.Series, period: int) -> pd.Series:
    """
    Calculate Exponential Moving Average seeded with the first price.

    multiplier = 2 / (period + 1); there are no warm-up NaNs, so every
    EMA has the same length as the prices.

    Args:
        prices: Price series (typically close prices)
        period: Number of periods for the average

    Returns:
        EMA series
    """
    return prices.ewm(span=period, adjust=False).mean()


def calculate_macd(
    prices: pd.Series,
    fast: int = 8,
    slow: int = 21,
    signal: int = 9,
) -> dict[str, pd.Series]:
    """
    Calculate MACD (Moving Average Convergence Divergence).

    Args:
        prices: Price series (typically close prices)
        fast: Fast EMA period (default: 8)
        slow: Slow EMA period (default: 21)
        signal: Signal line period (default: 9)

    Returns:
        Dict with 'macd_line', 'signal_line', 'histogram' series
    """
    ema_fast = calculate_ema(prices, fast)
    ema_slow = calculate_ema(prices, slow)

    macd_line = ema_fast - ema_slow
    signal_line = calculate_ema(macd_line, signal)
    histogram = macd_line - signal_line

    return {
        "macd_line": macd_line,
        "signal_line": signal_line,
        "histogram": histogram,
    }


def calculate_rsi(prices: pd.Series, period: int = 14) -> pd.Series:
    """
    Calculate Relative Strength Index from simple-average gains and losses.

    Each value uses the plain mean of the last `period` changes (no Wilder
    smoothing). The first `period` values are NaN.

    Args:
        prices: Price series (typically close prices)
        period: RSI period (default: 14)

    Returns:
        RSI series (0-100 scale), same length as prices
    """
    delta = prices.diff()

    # clip keeps the leading NaN, so the first full window ends at index `period`
    gain = delta.clip(lower=0)
    loss = (-delta).clip(lower=0)

    avg_gain = gain.rolling(window=period, min_periods=period).mean()
    avg_loss = loss.rolling(window=period, min_periods=period).mean()

    rs = avg_gain / avg_loss
    rsi = 100 - (100 / (1 + rs))

    # No losses in the window: fully overbought
    rsi = rsi.where(~((avg_loss == 0) & avg_gain.notna()), 100.0)
    rsi = rsi.replace([np.inf, -np.inf], 100)

    return rsi


def calculate_ytd_growth_pct(df: pd.DataFrame) -> float | None:
    """
    Calculate year-to-date growth in percent from a standardized OHLCV frame.

    Uses the first close of the last bar's calendar year as the base.

    Returns:
        Growth in percent (12.5 = +12.5%), or None if insufficient data
    """
    if len(df) < 2:
        return None

    dates = pd.to_datetime(df["date"])
    current_year = dates.iloc[-1].year

    year_mask = dates.dt.year == current_year
    if not year_mask.any():
        return None

    year_data = df[year_mask]
    if len(year_data) < 2:
        return None

    close = pd.to_numeric(year_data["close"], errors="coerce")
    start_price = close.iloc[0]
    end_price = close.iloc[-1]

    if pd.isna(start_price) or pd.isna(end_price) or start_price == 0:
        return None

    return round(float((end_price - start_price) / start_price * 100), 4)


def build_indicator_series(
    df: pd.DataFrame,
    settings: IndicatorSettings = DEFAULT_INDICATOR_SETTINGS,
) -> IndicatorSeries:
    """
    Compute the analyzer inputs from a standardized OHLCV frame.

    Args:
        df: Frame with at least 'date' and 'close' columns, oldest first
        settings: EMA, MACD and RSI periods

    Returns:
        IndicatorSeries whose series all share the frame's length
    """
    close = pd.to_numeric(df["close"], errors="coerce").reset_index(drop=True)

    fast, mid1, mid2, slow = (calculate_ema(close, p) for p in settings.ema_periods)
    macd = calculate_macd(close, settings.macd_fast, settings.macd_slow, settings.macd_signal)
    rsi = calculate_rsi(close, settings.rsi_period)

    last_bar_date = str(df["date"].iloc[-1]) if len(df) > 0 else None

    return IndicatorSeries(
        ema_fast=fast,
        ema_mid1=mid1,
        ema_mid2=mid2,
        ema_slow=slow,
        momentum_line=macd["macd_line"],
        momentum_signal_line=macd["signal_line"],
        momentum_histogram=macd["histogram"],
        oscillator=rsi,
        last_bar_date=last_bar_date,
    )
