"""Utility modules."""

from stock_signals.utils.indicators import (
    build_indicator_series,
    calculate_ema,
    calculate_macd,
    calculate_rsi,
    calculate_ytd_growth_pct,
)
from stock_signals.utils.normalize import (
    canonical_dumps,
    input_fingerprint,
    normalize_for_fingerprint,
)
from stock_signals.utils.provenance import (
    build_error_response,
    build_meta,
    caller_provenance,
    fetched_provenance,
    result_provenance,
)
from stock_signals.utils.validators import FetchParams, check_freshness, validate_series_window

__all__ = [
    "build_indicator_series",
    "calculate_ema",
    "calculate_macd",
    "calculate_rsi",
    "calculate_ytd_growth_pct",
    "canonical_dumps",
    "input_fingerprint",
    "normalize_for_fingerprint",
    "build_error_response",
    "build_meta",
    "caller_provenance",
    "fetched_provenance",
    "result_provenance",
    "FetchParams",
    "check_freshness",
    "validate_series_window",
]
