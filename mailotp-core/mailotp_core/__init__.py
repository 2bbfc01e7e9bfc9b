"""
MailOTP Core Library
====================
Email one-time codes with per-identifier send/verify throttling.
"""

__version__ = "0.1.0"

# Configuration
from mailotp_core.config import OtpSettings, SmtpConfig

# Errors
from mailotp_core.exceptions import MailOtpError, ConfigurationError, DeliveryError

# Logging
from mailotp_core.logging_setup import setup_logging

# Identity
from mailotp_core.identity import (
    Identity,
    InMemoryIdentity,
    IdentityDirectory,
    InMemoryIdentityDirectory,
)

# OTP
from mailotp_core.otp import (
    generate_otp,
    is_valid_otp_format,
    codes_match,
    OtpConfig,
    OtpRecord,
    OtpState,
    IssueResult,
    VerificationOutcome,
    OtpRepository,
    AttributeOtpRepository,
    OtpLifecycleManager,
)

# Rate Limiting
from mailotp_core.rate_limit import (
    FixedWindowRateLimiter,
    RateLimitConfig,
    RateLimitInfo,
    OperationClass,
)

# Delivery
from mailotp_core.delivery import (
    EmailDeliveryAdapter,
    SmtpEmailAdapter,
    ConsoleEmailAdapter,
    render_otp_email,
    mask_email,
)

# Workflow
from mailotp_core.service import EmailOtpService, OtpResult, OtpErrorCode, build_service

# REST
from mailotp_core.api import create_otp_router

__all__ = [
    # Configuration
    "OtpSettings",
    "SmtpConfig",
    # Errors
    "MailOtpError",
    "ConfigurationError",
    "DeliveryError",
    # Logging
    "setup_logging",
    # Identity
    "Identity",
    "InMemoryIdentity",
    "IdentityDirectory",
    "InMemoryIdentityDirectory",
    # OTP
    "generate_otp",
    "is_valid_otp_format",
    "codes_match",
    "OtpConfig",
    "OtpRecord",
    "OtpState",
    "IssueResult",
    "VerificationOutcome",
    "OtpRepository",
    "AttributeOtpRepository",
    "OtpLifecycleManager",
    # Rate Limiting
    "FixedWindowRateLimiter",
    "RateLimitConfig",
    "RateLimitInfo",
    "OperationClass",
    # Delivery
    "EmailDeliveryAdapter",
    "SmtpEmailAdapter",
    "ConsoleEmailAdapter",
    "render_otp_email",
    "mask_email",
    # Workflow
    "EmailOtpService",
    "OtpResult",
    "OtpErrorCode",
    "build_service",
    # REST
    "create_otp_router",
]
