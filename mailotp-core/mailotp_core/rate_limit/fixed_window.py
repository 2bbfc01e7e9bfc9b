"""
Fixed Window Rate Limiter
=========================
In-process send/verify throttling per identifier (user id or IP address).

Each identifier has one window shared by both operation classes. When a
check finds the window older than ``window_seconds`` both counters reset
together before the threshold test. State is process-local and lost on
restart.
"""

import math
import threading
import time
from dataclasses import replace
from typing import Callable, Dict, Optional

import structlog

from .models import OperationClass, RateLimitConfig, RateLimitInfo, RateWindow

logger = structlog.get_logger(__name__)


class _Entry:
    """A window plus the lock guarding it."""

    __slots__ = ("lock", "window", "evicted")

    def __init__(self, window_start: float):
        self.lock = threading.Lock()
        self.window = RateWindow(window_start=window_start)
        self.evicted = False


class FixedWindowRateLimiter:
    """
    Per-identifier fixed-window limiter for OTP send and verify attempts.

    Thread-safe. Reset, threshold test and increment run under a per-entry
    lock, so concurrent callers can never be over-admitted and identifiers
    never contend with each other. Construct one instance per process (or per
    realm) and inject it where needed.

    Example:
        limiter = FixedWindowRateLimiter(RateLimitConfig(max_send=5))

        if not limiter.allow_send(user_id):
            return too_many_requests()
    """

    def __init__(
        self,
        config: Optional[RateLimitConfig] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config or RateLimitConfig()
        self._clock = clock
        self._entries: Dict[str, _Entry] = {}

    def allow_send(self, identifier: str) -> bool:
        """Admit and count a send attempt, or deny it without counting."""
        return self.check(identifier, OperationClass.SEND).allowed

    def allow_verify(self, identifier: str) -> bool:
        """Admit and count a verify attempt, or deny it without counting."""
        return self.check(identifier, OperationClass.VERIFY).allowed

    def check(self, identifier: str, operation: OperationClass) -> RateLimitInfo:
        """
        Check if an attempt is allowed and count it if so.

        Args:
            identifier: Rate limit key (user id or network address)
            operation: Which counter to test and increment

        Returns:
            RateLimitInfo with decision and quota
        """
        limit = self.config.limit_for(operation)

        while True:
            entry = self._entries.get(identifier)
            if entry is None:
                entry = self._entries.setdefault(identifier, _Entry(self._clock()))

            with entry.lock:
                if entry.evicted:
                    # Lost a race with cleanup(); retry against the live entry
                    continue

                now = self._clock()
                window = entry.window
                if self._is_stale(window, now):
                    window.window_start = now
                    window.send_count = 0
                    window.verify_count = 0

                count = window.count_for(operation)
                reset_at = window.window_start + self.config.window_seconds

                if count >= limit:
                    retry_after = max(1, math.ceil(reset_at - now))
                    logger.warning(
                        "Rate limit exceeded",
                        operation=operation.value,
                        identifier=identifier,
                        retry_after=retry_after,
                    )
                    return RateLimitInfo(
                        allowed=False,
                        operation=operation,
                        count=count,
                        limit=limit,
                        reset_at=reset_at,
                        retry_after=retry_after,
                    )

                if operation is OperationClass.SEND:
                    window.send_count += 1
                else:
                    window.verify_count += 1

                return RateLimitInfo(
                    allowed=True,
                    operation=operation,
                    count=count + 1,
                    limit=limit,
                    reset_at=reset_at,
                )

    def cleanup(self) -> int:
        """
        Remove windows that have gone stale.

        Safe to call concurrently with admission checks. An evicted window
        behaves exactly like an expired one on the identifier's next attempt.

        Returns:
            Number of windows removed
        """
        now = self._clock()
        removed = 0

        for identifier, entry in self._entries.copy().items():
            with entry.lock:
                if entry.evicted or not self._is_stale(entry.window, now):
                    continue
                entry.evicted = True
                if self._entries.get(identifier) is entry:
                    del self._entries[identifier]
                removed += 1

        if removed:
            logger.debug("Rate limit windows cleaned up", removed=removed)
        return removed

    def get_window(self, identifier: str) -> Optional[RateWindow]:
        """Snapshot of an identifier's window, or None if untracked."""
        entry = self._entries.get(identifier)
        if entry is None:
            return None
        with entry.lock:
            return replace(entry.window)

    def __len__(self) -> int:
        return len(self._entries)

    def _is_stale(self, window: RateWindow, now: float) -> bool:
        return now - window.window_start > self.config.window_seconds
