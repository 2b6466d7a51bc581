"""Canonical JSON and input fingerprints for cache keys.

Scoring is referentially transparent, so a result can be cached under a hash
of its inputs. The fingerprint contract:
1. Key ordering: sorted at every level
2. Tuples serialize as lists
3. NaN and +/-inf become the strings "nan", "inf" and "-inf" (never null,
   which means a missing input); -0.0 becomes 0.0
4. The fingerprint covers the payload kind and FINGERPRINT_VERSION
"""

from __future__ import annotations

import hashlib
import json
import math
from enum import Enum
from typing import Any

# Bump when scoring rules change so cached results are not reused
FINGERPRINT_VERSION = "2"


def canonical_dumps(obj: Any) -> str:
    """Produce canonical JSON string with sorted keys and minimal separators.

    Uses allow_nan=False to fail fast if NaN/inf values slip through
    normalize_for_fingerprint.
    """
    return json.dumps(
        obj,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )


def _non_finite_token(x: Any) -> str | None:
    """String token for a NaN or infinite number (numpy included), else None."""
    try:
        if math.isnan(x):
            return "nan"
        if math.isinf(x):
            return "inf" if x > 0 else "-inf"
    except (TypeError, ValueError):
        pass
    return None


def _is_negative_zero(x: Any) -> bool:
    try:
        return x == 0.0 and math.copysign(1.0, x) < 0
    except (TypeError, ValueError):
        return False


def normalize_for_fingerprint(obj: Any) -> Any:
    """Recursively encode NaN/inf as strings, -0.0 as 0.0 and enums as values."""
    if isinstance(obj, dict):
        return {str(k): normalize_for_fingerprint(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [normalize_for_fingerprint(item) for item in obj]
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, bool) or obj is None or isinstance(obj, str):
        return obj
    token = _non_finite_token(obj)
    if token is not None:
        return token
    if _is_negative_zero(obj):
        return 0.0
    return obj


def input_fingerprint(kind: str, payload: Any) -> str:
    """
    Stable hash of a scoring input.

    Args:
        kind: What is being scored (e.g. "recommendation", "composite")
        payload: JSON-like inputs (dicts, lists, numbers, strings)

    Returns:
        16-hex-char SHA-256 prefix
    """
    canonical = canonical_dumps(
        {
            "kind": kind,
            "version": FINGERPRINT_VERSION,
            "payload": normalize_for_fingerprint(payload),
        }
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]
