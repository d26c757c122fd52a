"""
Sliding-window request throttling keyed by caller identity.

Independent of the chain state machine: it never blocks, it only accepts or
rejects a call at the moment it is checked.
"""

from __future__ import annotations

import math
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Optional

import thoughtchain.config as config
from thoughtchain.errors import RateLimitError


@dataclass(frozen=True)
class RateLimitRule:
    limit: int
    window_seconds: float


@dataclass(frozen=True)
class RateLimitConfig:
    enabled: bool
    rule: RateLimitRule
    max_cache_entries: int = 10000
    cleanup_every: int = 100


def load_rate_limit_config_from_env() -> RateLimitConfig:
    return RateLimitConfig(
        enabled=config.RATE_LIMIT_ENABLED,
        rule=RateLimitRule(
            limit=config.RATE_LIMIT_MAX_REQUESTS,
            window_seconds=config.RATE_LIMIT_WINDOW_SECONDS,
        ),
        cleanup_every=max(1, config.RATE_LIMIT_CLEANUP_EVERY),
    )


class InMemoryRateLimiter:
    def __init__(
        self,
        rule: RateLimitRule,
        max_entries: int = 10000,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.rule = rule
        self._max_entries = max(1, max_entries)
        self._clock = clock
        self._lock = threading.Lock()
        self._requests: dict[str, deque[float]] = {}

    def _prune(self, timestamps: deque[float], now: float) -> None:
        cutoff = now - self.rule.window_seconds
        while timestamps and timestamps[0] <= cutoff:
            timestamps.popleft()

    def is_allowed(self, client_id: str) -> bool:
        """Record the call and return whether it fits in the current window."""
        now = self._clock()
        with self._lock:
            timestamps = self._requests.get(client_id)
            if timestamps is None:
                if len(self._requests) >= self._max_entries:
                    self._cleanup_locked(now)
                timestamps = self._requests.setdefault(client_id, deque())
            self._prune(timestamps, now)
            if len(timestamps) >= self.rule.limit:
                return False
            timestamps.append(now)
            return True

    def retry_after(self, client_id: str) -> Optional[int]:
        now = self._clock()
        with self._lock:
            timestamps = self._requests.get(client_id)
            if not timestamps:
                return None
            remaining = self.rule.window_seconds - (now - timestamps[0])
        return max(1, math.ceil(remaining))

    def check(self, client_id: str) -> None:
        if not self.is_allowed(client_id):
            raise RateLimitError(
                f"Rate limit exceeded: max {self.rule.limit} requests "
                f"per {self.rule.window_seconds:g} seconds",
                retry_after_seconds=self.retry_after(client_id),
            )

    def _cleanup_locked(self, now: float) -> int:
        removed = 0
        for client_id in list(self._requests):
            timestamps = self._requests[client_id]
            self._prune(timestamps, now)
            if not timestamps:
                del self._requests[client_id]
                removed += 1
        return removed

    def cleanup(self) -> int:
        """Drop expired timestamps and forget idle callers; returns callers removed."""
        now = self._clock()
        with self._lock:
            return self._cleanup_locked(now)

    def tracked_clients(self) -> int:
        with self._lock:
            return len(self._requests)


class RateLimitGate:
    """Adapter-facing wrapper that checks calls and prunes periodically."""

    def __init__(self, limiter: Optional[InMemoryRateLimiter], cleanup_every: int = 100):
        self.limiter = limiter
        self._cleanup_every = max(1, cleanup_every)
        self._checks = 0

    def check(self, client_id: str) -> None:
        if self.limiter is None:
            return
        self._checks += 1
        if self._checks % self._cleanup_every == 0:
            self.limiter.cleanup()
        self.limiter.check(client_id)


def build_rate_limit_gate(rate_config: Optional[RateLimitConfig] = None) -> RateLimitGate:
    rate_config = rate_config or load_rate_limit_config_from_env()
    if not rate_config.enabled:
        return RateLimitGate(None)
    limiter = InMemoryRateLimiter(rate_config.rule, max_entries=rate_config.max_cache_entries)
    return RateLimitGate(limiter, cleanup_every=rate_config.cleanup_every)


__all__ = [
    "RateLimitRule",
    "RateLimitConfig",
    "InMemoryRateLimiter",
    "RateLimitGate",
    "load_rate_limit_config_from_env",
    "build_rate_limit_gate",
]
