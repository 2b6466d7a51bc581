"""Result caching for scoring outputs keyed by input fingerprint."""

import logging
import os
from collections.abc import Callable
from datetime import datetime
from typing import Any

import diskcache

from stock_signals.utils.normalize import input_fingerprint

logger = logging.getLogger(__name__)


class ResultCache:
    """
    Cache of scoring results keyed by a fingerprint of their inputs.

    Scoring is deterministic, so a stored result stays valid for the same
    inputs; the TTL only bounds disk usage.
    """

    def __init__(self, cache_dir: str | None = None, ttl: int | None = None):
        if cache_dir is None:
            cache_dir = os.environ.get("CACHE_DIR", ".cache/signals")
        self.cache: diskcache.Cache = diskcache.Cache(cache_dir)
        self._default_ttl = ttl if ttl is not None else int(os.environ.get("CACHE_TTL", "900"))

    @staticmethod
    def key_for(kind: str, payload: Any) -> str:
        """Canonical key for a scoring input."""
        return f"{kind}://{input_fingerprint(kind, payload)}"

    def store(self, key: str, result: dict[str, Any], ttl: int | None = None) -> None:
        """
        Store a JSON-ready result under key.

        Args:
            key: Key from key_for()
            result: Result dict
            ttl: Cache TTL in seconds (default: CACHE_TTL)
        """
        entry = {
            "result": result,
            "stored_at": datetime.utcnow().isoformat(),
        }
        expire = ttl if ttl is not None else self._default_ttl
        self.cache.set(key, entry, expire=expire)

    def get(self, key: str) -> dict[str, Any] | None:
        """Get the cached result for key, or None."""
        entry = self.cache.get(key)
        if not entry:
            return None
        return entry["result"]

    def get_or_compute(
        self,
        kind: str,
        payload: Any,
        compute: Callable[[], dict[str, Any]],
    ) -> tuple[dict[str, Any], bool]:
        """
        Return the cached result for (kind, payload), computing it on a miss.

        Returns:
            Tuple of (result, cache_hit)
        """
        key = self.key_for(kind, payload)
        cached = self.get(key)
        if cached is not None:
            logger.info(f"Cache hit for {key}")
            return cached, True

        result = compute()
        self.store(key, result)
        return result, False

    def exists(self, key: str) -> bool:
        """Check if key exists in cache."""
        return key in self.cache

    def clear(self) -> None:
        """Clear all cached results."""
        self.cache.clear()


# Global instance
result_cache = ResultCache()
