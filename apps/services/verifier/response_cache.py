"""
verifier/response_cache.py

TTL cache of verification results, keyed by normalized code.

Design:
- ResultStore is the interface callers depend on; InMemoryResultCache is the
  process-local default wired in dependencies.py
- Expiry is lazy: checked on read, expired entries are never returned
- Only successful parses are stored; errors are never cached

get/put are synchronous. Under the single-threaded event loop a lookup and
the following write cannot interleave with another request's. A threaded or
distributed store has to provide that guarantee itself (lock or CAS).
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from libs.core.models import VerificationResult

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 12 * 60 * 60


@dataclass(frozen=True)
class CacheEntry:
    """A stored result and the clock reading when it was stored."""
    stored_at: float
    result: VerificationResult

    def age(self, now: float) -> float:
        return now - self.stored_at


class ResultStore(ABC):
    """Storage interface for verification results."""

    @abstractmethod
    def get(self, code: str) -> Optional[VerificationResult]:
        """Return the live result for `code`, or None if absent or expired."""

    @abstractmethod
    def put(self, code: str, result: VerificationResult) -> None:
        """Store `result` for `code`, replacing any prior entry."""


class InMemoryResultCache(ResultStore):
    """Dict-backed ResultStore with lazy TTL expiry."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self.hits = 0
        self.misses = 0

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def get(self, code: str) -> Optional[VerificationResult]:
        entry = self._entries.get(code)
        if entry is None:
            self.misses += 1
            return None

        if entry.age(self._clock()) >= self._ttl:
            del self._entries[code]
            self.misses += 1
            logger.debug(f"[ResultCache] Expired: {code}")
            return None

        self.hits += 1
        return entry.result

    def put(self, code: str, result: VerificationResult) -> None:
        self._entries[code] = CacheEntry(stored_at=self._clock(), result=result)
        logger.debug(f"[ResultCache] Stored: {code} (valid={result.valid})")

    def purge_expired(self) -> int:
        """Drop every expired entry. Returns the number removed."""
        now = self._clock()
        expired = [code for code, entry in self._entries.items() if entry.age(now) >= self._ttl]
        for code in expired:
            del self._entries[code]
        if expired:
            logger.info(f"[ResultCache] Purged {len(expired)} expired entries")
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def get_stats(self) -> Dict[str, float]:
        return {
            "entries": len(self._entries),
            "hits": self.hits,
            "misses": self.misses,
            "ttl_seconds": self._ttl,
        }
