"""
Single-entry cache for the last computed embedding.

The renderer re-requests the embedding on every redraw; the cache lets
unrelated changes (colors, labels, axis selection) reuse the last result
while any change to the method, its parameters, the visible rows or the
data forces a full recomputation.
"""

import hashlib
import logging
import threading
import numpy as np
from typing import Any, Callable, NamedTuple, Optional, Tuple

logger = logging.getLogger(__name__)


class CacheKey(NamedTuple):
    """Everything an embedding depends on."""
    method: str
    params: Tuple[Any, ...]
    visible_rows: Tuple[int, ...]
    matrix_fingerprint: Tuple[Tuple[int, ...], str]


def matrix_fingerprint(values: np.ndarray) -> Tuple[Tuple[int, ...], str]:
    """
    Fingerprint a matrix by shape and content.

    NaN entries hash consistently, so missing values are part of the
    fingerprint.

    Args:
        values: Float matrix

    Returns:
        Tuple of (shape, sha1 hex digest)
    """
    values = np.ascontiguousarray(values, dtype=np.float64)
    digest = hashlib.sha1(values.tobytes()).hexdigest()
    return tuple(values.shape), digest


class EmbeddingCache:
    """
    Holds at most one (key, value) pair.
    """

    def __init__(self, enabled: bool = True):
        """
        Initialize an empty cache.

        Args:
            enabled: When False, every lookup misses and nothing is stored
        """
        self.enabled = enabled
        self._key: Optional[CacheKey] = None
        self._value: Any = None
        self._lock = threading.RLock()
        self.hits = 0
        self.misses = 0

    def get(self, key: CacheKey) -> Optional[Any]:
        """
        Look up a key.

        Args:
            key: Cache key

        Returns:
            Cached value, or None on a miss
        """
        with self._lock:
            if self.enabled and self._key is not None and self._key == key:
                self.hits += 1
                return self._value
            self.misses += 1
            return None

    def put(self, key: CacheKey, value: Any) -> None:
        """
        Replace the cached entry.

        Args:
            key: Cache key
            value: Value to store
        """
        if not self.enabled:
            return
        with self._lock:
            self._key = key
            self._value = value

    def get_or_compute(self, key: CacheKey, compute: Callable[[], Any]) -> Tuple[Any, bool]:
        """
        Return the cached value for key, computing and storing it on a miss.

        Exceptions from compute propagate and leave the previous entry in place.

        Args:
            key: Cache key
            compute: Zero-argument function producing the value

        Returns:
            Tuple of (value, whether it came from the cache)
        """
        cached = self.get(key)
        if cached is not None:
            return cached, True

        value = compute()
        self.put(key, value)
        return value, False

    def clear(self) -> None:
        """Drop the cached entry."""
        with self._lock:
            self._key = None
            self._value = None

    @property
    def key(self) -> Optional[CacheKey]:
        """Key of the cached entry, if any."""
        return self._key

    def __len__(self) -> int:
        return 0 if self._key is None else 1

    def __repr__(self) -> str:
        return f"EmbeddingCache(entries={len(self)}, hits={self.hits}, misses={self.misses})"
