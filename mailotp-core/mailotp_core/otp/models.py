"""
OTP Models
==========
Data models and enums for the OTP lifecycle.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class OtpState(str, Enum):
    """Lifecycle states of an identity's outstanding code."""
    NO_ACTIVE_CODE = "no_active_code"
    PENDING = "pending"
    VERIFIED = "verified"
    EXPIRED = "expired"
    INVALIDATED = "invalidated"


class IssueResult(str, Enum):
    """Outcome of issuing a code."""
    SENT = "sent"
    DELIVERY_FAILED = "delivery_failed"


class VerificationOutcome(str, Enum):
    """Outcome of a verification attempt."""
    VERIFIED = "verified"
    FORMAT_ERROR = "format_error"  # Malformed candidate, rejected before lookup
    NOT_FOUND = "not_found"        # No pending code
    EXPIRED = "expired"            # Past TTL or unreadable expiry, record purged
    MISMATCH = "mismatch"          # Wrong code, record retained
    INVALIDATED = "invalidated"    # Wrong-code limit reached, record purged

    @property
    def is_success(self) -> bool:
        return self is VerificationOutcome.VERIFIED


@dataclass
class OtpConfig:
    """Configuration for OTP issuance and verification."""
    length: int = 6
    ttl_minutes: int = 10
    max_failed_attempts: Optional[int] = None  # Lockout disabled by default

    @property
    def ttl_seconds(self) -> int:
        return self.ttl_minutes * 60


@dataclass(frozen=True)
class OtpRecord:
    """The single outstanding code of one identity."""
    code: str
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at


@dataclass(frozen=True)
class StoredOtp:
    """Raw persisted values, as read back from the store."""
    code: str
    expiry: str
