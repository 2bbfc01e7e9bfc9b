"""
MailOTP Configuration
=====================
Environment-driven settings for OTP issuance, rate limiting and SMTP delivery.
"""

import os
from dataclasses import dataclass
from typing import Optional

from .exceptions import ConfigurationError


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}")


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class OtpSettings:
    """Settings for the OTP lifecycle and the rate limiter."""
    otp_length: int = 6
    ttl_minutes: int = 10
    max_failed_attempts: Optional[int] = None  # None disables lockout
    max_send_attempts: int = 5                 # Per identifier per window
    max_verify_attempts: int = 10              # Per identifier per window
    rate_window_seconds: int = 3600            # 1 hour
    cleanup_interval_seconds: int = 300
    company_name: str = "MailOTP"

    def __post_init__(self):
        for name in (
            "otp_length",
            "ttl_minutes",
            "max_send_attempts",
            "max_verify_attempts",
            "rate_window_seconds",
            "cleanup_interval_seconds",
        ):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"{name} must be positive")
        if self.max_failed_attempts is not None and self.max_failed_attempts <= 0:
            raise ConfigurationError("max_failed_attempts must be positive when set")

    @classmethod
    def from_env(cls) -> "OtpSettings":
        """Build settings from OTP_* environment variables."""
        return cls(
            otp_length=_env_int("OTP_LENGTH", 6),
            ttl_minutes=_env_int("OTP_TTL_MINUTES", 10),
            max_failed_attempts=_env_int("OTP_MAX_FAILED_ATTEMPTS", None),
            max_send_attempts=_env_int("OTP_MAX_SEND_ATTEMPTS", 5),
            max_verify_attempts=_env_int("OTP_MAX_VERIFY_ATTEMPTS", 10),
            rate_window_seconds=_env_int("OTP_RATE_WINDOW_SECONDS", 3600),
            cleanup_interval_seconds=_env_int("OTP_CLEANUP_INTERVAL_SECONDS", 300),
            company_name=os.getenv("OTP_COMPANY_NAME", "MailOTP"),
        )


@dataclass
class SmtpConfig:
    """Configuration for SMTP delivery."""
    host: str = ""
    port: int = 587
    username: str = ""
    password: str = ""
    from_email: str = "noreply@localhost"
    use_tls: bool = True
    timeout: float = 10.0

    @property
    def is_configured(self) -> bool:
        return bool(self.host)

    @classmethod
    def from_env(cls) -> "SmtpConfig":
        """Build SMTP settings from SMTP_* environment variables."""
        timeout = os.getenv("SMTP_TIMEOUT", "10")
        try:
            timeout_value = float(timeout)
        except ValueError:
            raise ConfigurationError(f"SMTP_TIMEOUT must be a number, got {timeout!r}")
        return cls(
            host=os.getenv("SMTP_HOST", ""),
            port=_env_int("SMTP_PORT", 587),
            username=os.getenv("SMTP_USERNAME", ""),
            password=os.getenv("SMTP_PASSWORD", ""),
            from_email=os.getenv("SMTP_FROM_EMAIL", "noreply@localhost"),
            use_tls=_env_bool("SMTP_USE_TLS", True),
            timeout=timeout_value,
        )
