"""In-memory rate limit store and limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: the limiter holds a lock across purge, lookup and increment.
- Expired entries are purged on every check using a min-heap ordered by
  expiry, so cleanup does not scan live entries.
"""

from __future__ import annotations

import heapq
import math
import threading
import time
from typing import Callable

from app.adapters.rate_limit.base import (
    AbstractRateLimiter,
    AbstractRateLimitStore,
    RateLimitEntry,
    RateLimitPolicy,
    RateLimitResult,
)


class InMemoryRateLimitStore(AbstractRateLimitStore):
    """Dict-backed store with lazy, heap-ordered expiry.

    The heap may hold stale items for keys that were re-set or deleted; they
    are discarded when they reach the top and no longer match the live entry.
    """

    def __init__(self) -> None:
        self._entries: dict[str, RateLimitEntry] = {}
        self._expiry_heap: list[tuple[float, str]] = []

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> RateLimitEntry | None:
        return self._entries.get(key)

    def set(self, key: str, entry: RateLimitEntry) -> None:
        previous = self._entries.get(key)
        self._entries[key] = entry
        if previous is None or previous.reset_at != entry.reset_at:
            heapq.heappush(self._expiry_heap, (entry.reset_at, key))

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def purge_expired(self, now: float) -> int:
        removed = 0
        while self._expiry_heap and self._expiry_heap[0][0] < now:
            reset_at, key = heapq.heappop(self._expiry_heap)
            entry = self._entries.get(key)
            if entry is not None and entry.reset_at == reset_at:
                del self._entries[key]
                removed += 1
        return removed

    def clear(self) -> None:
        self._entries.clear()
        self._expiry_heap.clear()


class InMemoryRateLimiter(AbstractRateLimiter):
    """Per-client window limiter.

    A client's window starts at its first request and lasts
    ``policy.window_seconds``; once it has passed, the next request opens a
    fresh window. Entries are keyed ``"<policy.name>:<client_id>"`` so one
    store can serve several policies.
    """

    def __init__(
        self,
        policy: RateLimitPolicy,
        *,
        store: AbstractRateLimitStore | None = None,
        clock: Callable[[], float] = time.time,
        lock: threading.Lock | None = None,
    ) -> None:
        """Initialize the limiter.

        Args:
            policy: Window and ceiling to enforce.
            store: Entry storage; a private in-memory store when omitted.
            clock: Time source function returning UNIX time in seconds.
            lock: Lock guarding the store; share it between limiters that
                share a store.
        """
        self.policy = policy
        self._store = store if store is not None else InMemoryRateLimitStore()
        self._clock = clock
        self._lock = lock or threading.Lock()

    def _key(self, client_id: str) -> str:
        return f"{self.policy.name}:{client_id}"

    def _build_allowed_result(self, entry: RateLimitEntry) -> RateLimitResult:
        """Build a RateLimitResult for an allowed request."""
        return RateLimitResult(
            allowed=True,
            limit=self.policy.max_requests,
            remaining=max(0, self.policy.max_requests - entry.count),
            reset_at=int(math.ceil(entry.reset_at)),
            retry_after_seconds=None,
        )

    def _build_blocked_result(self, entry: RateLimitEntry, now: float) -> RateLimitResult:
        """Build a RateLimitResult for a blocked request."""
        retry_after = max(1, int(math.ceil(entry.reset_at - now)))
        return RateLimitResult(
            allowed=False,
            limit=self.policy.max_requests,
            remaining=0,
            reset_at=int(math.ceil(entry.reset_at)),
            retry_after_seconds=retry_after,
        )

    def check(self, client_id: str, *, now: float | None = None) -> RateLimitResult:
        """Admit or reject one request for client_id.

        Raises:
            ValueError: If client_id is empty.
        """
        if not client_id:
            raise ValueError("client_id must be a non-empty string")

        now = self._clock() if now is None else now
        key = self._key(client_id)

        with self._lock:
            self._store.purge_expired(now)
            entry = self._store.get(key)

            if entry is None or now > entry.reset_at:
                entry = RateLimitEntry(count=1, reset_at=now + self.policy.window_seconds)
                self._store.set(key, entry)
                return self._build_allowed_result(entry)

            if entry.count >= self.policy.max_requests:
                return self._build_blocked_result(entry, now)

            entry.count += 1
            self._store.set(key, entry)
            return self._build_allowed_result(entry)
