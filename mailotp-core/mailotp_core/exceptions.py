"""
MailOTP Exceptions
==================
Exception classes raised at collaborator seams.

Expected verification and issuance outcomes are returned as typed results,
never raised.
"""

from typing import Optional


class MailOtpError(Exception):
    """Base class for all mailotp-core errors."""
    pass


class ConfigurationError(MailOtpError):
    """Raised when a configuration value is missing or malformed."""
    pass


class DeliveryError(MailOtpError):
    """Raised by delivery adapters when an email could not be sent."""

    def __init__(
        self,
        message: str,
        provider: str = "unknown",
        cause: Optional[Exception] = None,
    ):
        self.message = message
        self.provider = provider
        self.cause = cause
        super().__init__(f"[{provider}] {message}")
