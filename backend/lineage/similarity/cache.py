"""
Bounded in-memory cache for similarity breakdowns
"""

import time
from collections import OrderedDict
from threading import Lock
from typing import Any, Dict, Optional, Tuple


def pair_key(digest_a: str, digest_b: str) -> str:
    """Order-independent key: similarity is symmetric."""
    return "|".join(sorted((digest_a, digest_b)))


class SimilarityCache:
    """Thread-safe LRU cache with optional TTL.

    Best-effort: concurrent writers may overwrite each other, which only
    costs a recomputation.
    """

    def __init__(self, max_entries: int = 10000, default_ttl: Optional[int] = None):
        self.cache: "OrderedDict[str, Tuple[Any, Optional[float]]]" = OrderedDict()
        self.lock = Lock()
        self.max_entries = max_entries
        self.default_ttl = default_ttl
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def get(self, key: str) -> Optional[Any]:
        """Get value from cache if present and not expired"""
        with self.lock:
            if key in self.cache:
                value, expiry = self.cache[key]
                if expiry is None or time.time() < expiry:
                    self.cache.move_to_end(key)
                    self.hits += 1
                    return value
                # Clean up expired entry
                del self.cache[key]
            self.misses += 1
            return None

    def set(self, key: str, value: Any):
        """Set value, evicting the least recently used entry when full"""
        expiry = time.time() + self.default_ttl if self.default_ttl else None
        with self.lock:
            self.cache[key] = (value, expiry)
            self.cache.move_to_end(key)
            while len(self.cache) > self.max_entries:
                self.cache.popitem(last=False)
                self.evictions += 1

    def clear(self):
        """Clear all cache entries"""
        with self.lock:
            self.cache.clear()

    def __len__(self) -> int:
        return len(self.cache)

    def stats(self) -> Dict[str, int]:
        with self.lock:
            return {
                "size": len(self.cache),
                "max_entries": self.max_entries,
                "hits": self.hits,
                "misses": self.misses,
                "evictions": self.evictions,
            }
