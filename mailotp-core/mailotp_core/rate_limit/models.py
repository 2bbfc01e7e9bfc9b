"""
Rate Limit Models
=================
Data models for per-identifier send/verify throttling.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class OperationClass(str, Enum):
    """Independently counted operation classes."""
    SEND = "send"
    VERIFY = "verify"


class RateLimitResult(str, Enum):
    """Rate limit decision result."""
    ALLOWED = "allowed"
    BLOCKED = "blocked"


@dataclass
class RateLimitConfig:
    """Configuration for the fixed-window limiter."""
    max_send: int = 5           # Max OTP sends per window
    max_verify: int = 10        # Max verify attempts per window
    window_seconds: float = 3600  # 1 hour

    def limit_for(self, operation: OperationClass) -> int:
        if operation is OperationClass.SEND:
            return self.max_send
        return self.max_verify


@dataclass
class RateWindow:
    """Attempt counters of one identifier. Both counters share ``window_start``."""
    window_start: float
    send_count: int = 0
    verify_count: int = 0

    def count_for(self, operation: OperationClass) -> int:
        if operation is OperationClass.SEND:
            return self.send_count
        return self.verify_count


@dataclass
class RateLimitInfo:
    """Rate limit check result with quota information."""
    allowed: bool
    operation: OperationClass
    count: int                    # Attempts counted in the current window
    limit: int
    reset_at: float               # Unix timestamp the window becomes stale
    retry_after: Optional[int] = None  # Seconds until retry allowed

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.count)

    @property
    def result(self) -> RateLimitResult:
        return RateLimitResult.ALLOWED if self.allowed else RateLimitResult.BLOCKED
