"""
Email OTP Service
=================
Verification workflow composing identity resolution, rate limiting and the
OTP lifecycle into single send/verify outcomes.

Sequence for both paths:
    resolve identity -> rate limit admission -> lifecycle transition -> result

A rate limit denial short-circuits before the lifecycle is touched.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

import structlog

from .config import OtpSettings
from .delivery import ConsoleEmailAdapter, EmailDeliveryAdapter, mask_email
from .identity import Identity, IdentityDirectory
from .otp import (
    AttributeOtpRepository,
    IssueResult,
    OtpConfig,
    OtpLifecycleManager,
    VerificationOutcome,
)
from .rate_limit import FixedWindowRateLimiter, OperationClass, RateLimitConfig

logger = structlog.get_logger(__name__)


class OtpErrorCode(str, Enum):
    """Caller-facing error codes."""
    MISSING_IDENTIFIER = "MISSING_IDENTIFIER"
    MISSING_CODE = "MISSING_CODE"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    NO_EMAIL = "NO_EMAIL"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    INVALID_CLIENT = "INVALID_CLIENT"
    SEND_FAILED = "SEND_FAILED"
    INVALID_CODE = "INVALID_CODE"


@dataclass
class OtpResult:
    """Outcome of a send or verify request."""
    success: bool
    message: str
    error_code: Optional[OtpErrorCode] = None
    outcome: Optional[Union[IssueResult, VerificationOutcome]] = None
    retry_after: Optional[int] = None

    @classmethod
    def failure(cls, error_code: OtpErrorCode, message: str, **kwargs) -> "OtpResult":
        return cls(success=False, message=message, error_code=error_code, **kwargs)


RATE_LIMITED_MESSAGE = "Too many attempts. Please try again later."


class EmailOtpService:
    """
    Email OTP verification workflow for one realm.

    The rate limiter is injected so the composing application controls its
    lifetime (one per process, or one per realm).
    """

    def __init__(
        self,
        directory: IdentityDirectory,
        lifecycle: OtpLifecycleManager,
        rate_limiter: FixedWindowRateLimiter,
        realm: str = "default",
    ):
        self.directory = directory
        self.lifecycle = lifecycle
        self.rate_limiter = rate_limiter
        self.realm = realm

    # Capabilities for callers that already hold an identity

    async def issue_code(self, identity: Identity) -> IssueResult:
        return await self.lifecycle.issue(identity)

    async def verify_code(self, identity: Identity, candidate: Optional[str]) -> VerificationOutcome:
        return await self.lifecycle.verify(identity, candidate)

    def admit_send(self, identifier: str) -> bool:
        return self.rate_limiter.allow_send(identifier)

    def admit_verify(self, identifier: str) -> bool:
        return self.rate_limiter.allow_verify(identifier)

    # Request-level flows

    async def send_otp(
        self,
        email: Optional[str] = None,
        user_id: Optional[str] = None,
        client_id: Optional[str] = None,
    ) -> OtpResult:
        """
        Issue a code to the identity named by ``user_id`` or ``email``.

        Args:
            email: Email address of the identity (used when no user_id)
            user_id: Identity id (takes precedence over email)
            client_id: Optional client to validate

        Returns:
            OtpResult describing the outcome
        """
        if not email and not user_id:
            return OtpResult.failure(
                OtpErrorCode.MISSING_IDENTIFIER, "Email or userId is required"
            )

        identity = await self.directory.find_identity(self.realm, email=email, user_id=user_id)
        if identity is None:
            logger.warning("User not found", email=mask_email(email), user_id=user_id)
            return OtpResult.failure(OtpErrorCode.USER_NOT_FOUND, "User not found")

        if not identity.email:
            return OtpResult.failure(
                OtpErrorCode.NO_EMAIL, "User does not have an email address"
            )

        info = self.rate_limiter.check(identity.id, OperationClass.SEND)
        if not info.allowed:
            return OtpResult.failure(
                OtpErrorCode.RATE_LIMIT_EXCEEDED,
                RATE_LIMITED_MESSAGE,
                retry_after=info.retry_after,
            )

        rejected = await self._check_client(client_id)
        if rejected is not None:
            return rejected

        result = await self.lifecycle.issue(identity)
        if result is IssueResult.SENT:
            return OtpResult(
                success=True,
                message=f"OTP sent successfully to {mask_email(identity.email)}",
                outcome=result,
            )

        return OtpResult.failure(
            OtpErrorCode.SEND_FAILED,
            "Failed to send OTP. Please check email configuration.",
            outcome=result,
        )

    async def verify_otp(
        self,
        code: Optional[str],
        email: Optional[str] = None,
        user_id: Optional[str] = None,
        client_id: Optional[str] = None,
    ) -> OtpResult:
        """
        Verify ``code`` for the identity named by ``user_id`` or ``email``.

        Every rejected code surfaces as INVALID_CODE; the precise
        VerificationOutcome is kept on ``OtpResult.outcome``.
        """
        if not email and not user_id:
            return OtpResult.failure(
                OtpErrorCode.MISSING_IDENTIFIER, "Email or userId is required"
            )

        if not code:
            return OtpResult.failure(OtpErrorCode.MISSING_CODE, "OTP code is required")

        identity = await self.directory.find_identity(self.realm, email=email, user_id=user_id)
        if identity is None:
            logger.warning("User not found", email=mask_email(email), user_id=user_id)
            return OtpResult.failure(OtpErrorCode.USER_NOT_FOUND, "User not found")

        info = self.rate_limiter.check(identity.id, OperationClass.VERIFY)
        if not info.allowed:
            return OtpResult.failure(
                OtpErrorCode.RATE_LIMIT_EXCEEDED,
                RATE_LIMITED_MESSAGE,
                retry_after=info.retry_after,
            )

        rejected = await self._check_client(client_id)
        if rejected is not None:
            return rejected

        outcome = await self.lifecycle.verify(identity, code)
        if outcome.is_success:
            return OtpResult(
                success=True,
                message="Email verified successfully",
                outcome=outcome,
            )

        logger.warning(
            "Invalid or expired OTP",
            user_id=identity.id,
            outcome=outcome.value,
        )
        return OtpResult.failure(
            OtpErrorCode.INVALID_CODE,
            "Invalid or expired OTP code",
            outcome=outcome,
        )

    async def run_cleanup(self, interval_seconds: float) -> None:
        """
        Periodically drop stale rate limit windows until cancelled.

        Example:
            task = asyncio.create_task(service.run_cleanup(300))
            ...
            task.cancel()
        """
        while True:
            await asyncio.sleep(interval_seconds)
            removed = self.rate_limiter.cleanup()
            logger.debug(
                "Rate limit cleanup",
                removed=removed,
                tracked=len(self.rate_limiter),
            )

    async def _check_client(self, client_id: Optional[str]) -> Optional[OtpResult]:
        if not client_id:
            return None
        if await self.directory.is_client_enabled(self.realm, client_id):
            return None
        logger.warning("Invalid client", client_id=client_id)
        return OtpResult.failure(OtpErrorCode.INVALID_CLIENT, "Invalid client")


def build_service(
    directory: IdentityDirectory,
    delivery: Optional[EmailDeliveryAdapter] = None,
    settings: Optional[OtpSettings] = None,
    realm: str = "default",
    rate_limiter: Optional[FixedWindowRateLimiter] = None,
) -> EmailOtpService:
    """
    Wire a service from settings.

    Args:
        directory: Identity directory for the realm
        delivery: Email adapter (defaults to the console adapter)
        settings: OTP settings (defaults to environment)
        realm: Realm the service resolves identities in
        rate_limiter: Shared limiter; a new one is created when omitted

    Returns:
        Configured EmailOtpService
    """
    settings = settings or OtpSettings.from_env()
    delivery = delivery or ConsoleEmailAdapter(
        realm_name=realm,
        company_name=settings.company_name,
    )

    lifecycle = OtpLifecycleManager(
        repository=AttributeOtpRepository(),
        delivery=delivery,
        config=OtpConfig(
            length=settings.otp_length,
            ttl_minutes=settings.ttl_minutes,
            max_failed_attempts=settings.max_failed_attempts,
        ),
    )

    if rate_limiter is None:
        rate_limiter = FixedWindowRateLimiter(
            RateLimitConfig(
                max_send=settings.max_send_attempts,
                max_verify=settings.max_verify_attempts,
                window_seconds=settings.rate_window_seconds,
            )
        )

    return EmailOtpService(
        directory=directory,
        lifecycle=lifecycle,
        rate_limiter=rate_limiter,
        realm=realm,
    )
