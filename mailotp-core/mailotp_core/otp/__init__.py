"""
OTP Generation and Lifecycle
============================
Numeric code generation, the per-identity record store and the issue/verify
state machine.
"""

from .models import (
    OtpState,
    IssueResult,
    VerificationOutcome,
    OtpConfig,
    OtpRecord,
    StoredOtp,
)
from .generator import generate_otp, is_valid_otp_format, codes_match
from .repository import (
    OtpRepository,
    AttributeOtpRepository,
    ATTR_OTP_CODE,
    ATTR_OTP_EXPIRY,
    ATTR_OTP_FAILED_ATTEMPTS,
)
from .lifecycle import OtpLifecycleManager

__all__ = [
    # Models
    "OtpState",
    "IssueResult",
    "VerificationOutcome",
    "OtpConfig",
    "OtpRecord",
    "StoredOtp",
    # Generator
    "generate_otp",
    "is_valid_otp_format",
    "codes_match",
    # Repository
    "OtpRepository",
    "AttributeOtpRepository",
    "ATTR_OTP_CODE",
    "ATTR_OTP_EXPIRY",
    "ATTR_OTP_FAILED_ATTEMPTS",
    # Lifecycle
    "OtpLifecycleManager",
]
