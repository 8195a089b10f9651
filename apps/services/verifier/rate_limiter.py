"""
verifier/rate_limiter.py

Per-client gate for verification requests.

Design:
- One admitted request per client key per interval (default 5s); no burst
- Denied requests do not move the client's timestamp
- Applied before validation, cache lookup or any browser work, so failed
  and successful verifications count the same
- admit() is synchronous: the check and the timestamp write happen with no
  suspension point between them, which makes them atomic under asyncio.
  A threaded port needs a lock around admit().
"""

import logging
import math
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_MS = 5000

# Table size above which stale keys are pruned on admit
PRUNE_THRESHOLD = 10_000


@dataclass(frozen=True)
class RateDecision:
    """Result of a rate gate check."""
    allowed: bool
    retry_after_ms: int = 0


class RateGate(ABC):
    """Admission interface for per-client request gating."""

    @abstractmethod
    def admit(self, client_key: str) -> RateDecision:
        """Admit and record the request, or deny with the remaining wait."""


class InMemoryRateLimiter(RateGate):
    """Process-local RateGate keyed by client identity."""

    def __init__(
        self,
        interval_ms: int = DEFAULT_INTERVAL_MS,
        clock: Callable[[], float] = time.monotonic,
        prune_threshold: int = PRUNE_THRESHOLD,
    ):
        """
        Args:
            interval_ms: Minimum milliseconds between admitted requests per key
            clock: Monotonic clock in seconds (injectable for tests)
            prune_threshold: Table size that triggers removal of stale keys
        """
        if interval_ms < 0:
            raise ValueError("interval_ms must be >= 0")
        self._interval_ms = interval_ms
        self._clock = clock
        self._prune_threshold = prune_threshold
        self._last_admitted: Dict[str, float] = {}

    @property
    def interval_ms(self) -> int:
        return self._interval_ms

    def admit(self, client_key: str) -> RateDecision:
        now = self._clock()
        last = self._last_admitted.get(client_key)

        if last is not None:
            elapsed_ms = (now - last) * 1000.0
            if elapsed_ms < self._interval_ms:
                retry_after_ms = min(
                    self._interval_ms,
                    max(1, math.ceil(self._interval_ms - elapsed_ms)),
                )
                logger.info(
                    f"[RateLimit] Denied {client_key}: retry in {retry_after_ms}ms"
                )
                return RateDecision(allowed=False, retry_after_ms=retry_after_ms)

        self._last_admitted[client_key] = now

        if len(self._last_admitted) > self._prune_threshold:
            self.prune(now)

        return RateDecision(allowed=True)

    def prune(self, now: Optional[float] = None) -> int:
        """Forget keys whose interval has already elapsed. Returns count removed."""
        if now is None:
            now = self._clock()
        horizon = self._interval_ms / 1000.0
        stale = [key for key, ts in self._last_admitted.items() if now - ts >= horizon]
        for key in stale:
            del self._last_admitted[key]
        if stale:
            logger.debug(f"[RateLimit] Pruned {len(stale)} stale client keys")
        return len(stale)

    def reset(self) -> None:
        """Forget all clients (for testing or manual intervention)."""
        self._last_admitted.clear()
        logger.info("[RateLimit] Reset")

    def __len__(self) -> int:
        return len(self._last_admitted)
