"""
auth/ratelimit.py -- In-memory fixed-window attempt counter.

Used for the login endpoint (and any other endpoint where the caller wants an
explicit reset-on-success counter rather than slowapi's per-route limits).

Semantics:
  - A window starts on the first check() for a key and lasts window_seconds.
  - Every check() increments the counter, denied calls included. Retrying
    while locked out keeps the counter above the limit instead of quietly
    probing the window boundary.
  - reset(key) drops the entry immediately (called after a successful login
    so earlier typos do not count against the operator).

Concurrency: a single threading.Lock guards the whole read-increment-write
sequence. FastAPI runs sync handlers in a thread pool, so many simultaneous
login attempts from one address really do race here; the lock is what keeps
the count from being under-reported.

Memory: expired entries are dropped lazily when touched. The number of tracked
keys is capped at max_keys; when full, expired entries are purged first, then
the oldest window is evicted.

The limiter is constructed at app start and stored on app.state -- there is no
module-level instance. State does not survive a restart.
"""

from __future__ import annotations

import math
import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Optional


@dataclass
class RateLimitEntry:
    count: int
    window_start: float
    reset_at: float


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_at: float  # epoch seconds
    retry_after: Optional[int] = None  # whole seconds, only when denied


class RateLimiter:
    def __init__(self, max_keys: int = 10_000, clock: Callable[[], float] = time.time) -> None:
        if max_keys < 1:
            raise ValueError("max_keys must be at least 1")
        self.max_keys = max_keys
        self._clock = clock
        self._entries: OrderedDict[str, RateLimitEntry] = OrderedDict()
        self._lock = threading.Lock()

    def check(self, key: str, max_attempts: int, window_seconds: float) -> RateLimitResult:
        """Count one attempt for key and report whether it is within the limit."""
        with self._lock:
            now = self._clock()
            entry = self._entries.get(key)
            if entry is None or now >= entry.reset_at:
                if entry is not None:
                    del self._entries[key]
                self._make_room(now)
                entry = RateLimitEntry(count=0, window_start=now, reset_at=now + window_seconds)
                self._entries[key] = entry

            entry.count += 1

            if entry.count <= max_attempts:
                return RateLimitResult(
                    allowed=True,
                    remaining=max_attempts - entry.count,
                    reset_at=entry.reset_at,
                )
            return RateLimitResult(
                allowed=False,
                remaining=0,
                reset_at=entry.reset_at,
                retry_after=max(1, math.ceil(entry.reset_at - now)),
            )

    def status(self, key: str, max_attempts: int) -> RateLimitResult:
        """Report the current state for key without counting an attempt."""
        with self._lock:
            now = self._clock()
            entry = self._entries.get(key)
            if entry is None or now >= entry.reset_at:
                return RateLimitResult(allowed=True, remaining=max_attempts, reset_at=now)
            allowed = entry.count < max_attempts
            return RateLimitResult(
                allowed=allowed,
                remaining=max(0, max_attempts - entry.count),
                reset_at=entry.reset_at,
                retry_after=None if allowed else max(1, math.ceil(entry.reset_at - now)),
            )

    def reset(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _make_room(self, now: float) -> None:
        # Caller holds self._lock.
        if len(self._entries) < self.max_keys:
            return
        for stale in [k for k, e in self._entries.items() if now >= e.reset_at]:
            del self._entries[stale]
        while len(self._entries) >= self.max_keys:
            self._entries.popitem(last=False)
