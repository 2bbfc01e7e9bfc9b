"""
Rate Limiting Module for mailotp-core
=====================================
Per-identifier fixed-window limiter for OTP send and verify attempts.
"""

from .models import OperationClass, RateLimitConfig, RateLimitInfo, RateLimitResult, RateWindow
from .fixed_window import FixedWindowRateLimiter

__all__ = [
    # Models
    "OperationClass",
    "RateLimitConfig",
    "RateLimitInfo",
    "RateLimitResult",
    "RateWindow",
    # Limiters
    "FixedWindowRateLimiter",
]
