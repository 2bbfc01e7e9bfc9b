"""
OTP Lifecycle Manager
=====================
Issue, store, expire, verify and invalidate the single outstanding code of
an identity.

State machine:
    NO_ACTIVE_CODE -> PENDING -> {VERIFIED, EXPIRED, INVALIDATED}

Terminal states delete the record, so they collapse back to NO_ACTIVE_CODE.
Reissuing while PENDING overwrites the old code (last issue wins).
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import AsyncIterator, Callable, Dict, Optional

import structlog

from ..delivery.base import EmailDeliveryAdapter
from ..delivery.templates import mask_email
from ..exceptions import DeliveryError
from ..identity import Identity
from .generator import codes_match, generate_otp, is_valid_otp_format
from .models import (
    IssueResult,
    OtpConfig,
    OtpRecord,
    OtpState,
    StoredOtp,
    VerificationOutcome,
)
from .repository import OtpRepository

logger = structlog.get_logger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _to_epoch_millis(moment: datetime) -> int:
    return (moment - _EPOCH) // timedelta(milliseconds=1)


def _from_epoch_millis(raw: str) -> datetime:
    return _EPOCH + timedelta(milliseconds=int(raw))


class _IdentityLocks:
    """Per-identity asyncio locks, dropped once nobody holds or waits on them."""

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._holders: Dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._holders[key] = self._holders.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[key] -= 1
            if self._holders[key] == 0:
                del self._holders[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


class OtpLifecycleManager:
    """
    Owns the OTP state machine for identities.

    Persistence is delegated to an ``OtpRepository`` and delivery to an
    ``EmailDeliveryAdapter``. Within one process, repository access for the
    same identity is serialized; delivery runs outside that critical section.

    Example:
        manager = OtpLifecycleManager(AttributeOtpRepository(), adapter)

        if await manager.issue(identity) is IssueResult.SENT:
            ...
        outcome = await manager.verify(identity, "483920")
    """

    def __init__(
        self,
        repository: OtpRepository,
        delivery: EmailDeliveryAdapter,
        config: Optional[OtpConfig] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.repository = repository
        self.delivery = delivery
        self.config = config or OtpConfig()
        self._clock = clock
        self._locks = _IdentityLocks()

    async def issue(self, identity: Identity) -> IssueResult:
        """
        Generate, store and deliver a fresh code.

        The record is persisted before delivery is attempted, so a delivery
        failure leaves it in place until it expires or is superseded.

        Args:
            identity: Identity to issue the code for

        Returns:
            IssueResult.SENT, or IssueResult.DELIVERY_FAILED
        """
        code = generate_otp(self.config.length)
        expires_at = self._clock() + timedelta(minutes=self.config.ttl_minutes)

        async with self._locks.hold(identity.id):
            await self.repository.save(
                identity,
                code,
                str(_to_epoch_millis(expires_at)),
            )

        logger.info(
            "OTP issued",
            user_id=identity.id,
            email=mask_email(identity.email),
            expires_at=expires_at.isoformat(),
            ttl_minutes=self.config.ttl_minutes,
        )

        try:
            await self.delivery.send_otp_email(identity, code, self.config.ttl_minutes)
        except DeliveryError as e:
            logger.error(
                "OTP delivery failed",
                user_id=identity.id,
                provider=e.provider,
                error=e.message,
                cause=repr(e.cause) if e.cause else None,
            )
            return IssueResult.DELIVERY_FAILED
        except Exception as e:
            logger.exception(
                "Unexpected error delivering OTP",
                user_id=identity.id,
                error_type=type(e).__name__,
            )
            return IssueResult.DELIVERY_FAILED

        return IssueResult.SENT

    async def verify(self, identity: Identity, candidate: Optional[str]) -> VerificationOutcome:
        """
        Verify a candidate code against the identity's outstanding code.

        Args:
            identity: Identity being verified
            candidate: Caller-supplied code

        Returns:
            VerificationOutcome describing the transition taken
        """
        if not is_valid_otp_format(candidate, self.config.length):
            logger.warning("Invalid OTP format", user_id=identity.id)
            return VerificationOutcome.FORMAT_ERROR

        async with self._locks.hold(identity.id):
            stored = await self.repository.load(identity)
            if stored is None:
                logger.warning("No OTP found", user_id=identity.id)
                return VerificationOutcome.NOT_FOUND

            record = self._parse(stored)
            if record is None:
                logger.error("Invalid OTP expiry format", user_id=identity.id)
                await self.repository.delete(identity)
                return VerificationOutcome.EXPIRED

            if record.is_expired(self._now()):
                logger.warning("OTP expired", user_id=identity.id)
                await self.repository.delete(identity)
                return VerificationOutcome.EXPIRED

            if not codes_match(candidate, record.code):
                return await self._reject_mismatch(identity)

            identity.set_email_verified(True)
            await self.repository.delete(identity)

        logger.info(
            "OTP verified successfully",
            user_id=identity.id,
            email=mask_email(identity.email),
        )
        return VerificationOutcome.VERIFIED

    async def has_pending(self, identity: Identity) -> bool:
        """True iff a record exists and has not expired. Never mutates."""
        return await self.current_record(identity) is not None

    async def state_of(self, identity: Identity) -> OtpState:
        if await self.has_pending(identity):
            return OtpState.PENDING
        return OtpState.NO_ACTIVE_CODE

    async def current_record(self, identity: Identity) -> Optional[OtpRecord]:
        """Return the live record, or None if absent, unreadable or expired."""
        stored = await self.repository.load(identity)
        if stored is None:
            return None
        record = self._parse(stored)
        if record is None or record.is_expired(self._now()):
            return None
        return record

    async def invalidate(self, identity: Identity) -> None:
        """Discard any outstanding code."""
        async with self._locks.hold(identity.id):
            await self.repository.delete(identity)
        logger.info("OTP invalidated", user_id=identity.id)

    async def _reject_mismatch(self, identity: Identity) -> VerificationOutcome:
        limit = self.config.max_failed_attempts
        if limit is None:
            logger.warning("Invalid OTP code", user_id=identity.id)
            return VerificationOutcome.MISMATCH

        failures = await self.repository.record_failure(identity)
        if failures >= limit:
            await self.repository.delete(identity)
            logger.warning(
                "OTP attempts exhausted",
                user_id=identity.id,
                failures=failures,
            )
            return VerificationOutcome.INVALIDATED

        logger.warning(
            "Invalid OTP code",
            user_id=identity.id,
            remaining=limit - failures,
        )
        return VerificationOutcome.MISMATCH

    def _now(self) -> datetime:
        # Stored expiries have millisecond precision
        now = self._clock()
        return now - timedelta(microseconds=now.microsecond % 1000)

    @staticmethod
    def _parse(stored: StoredOtp) -> Optional[OtpRecord]:
        try:
            expires_at = _from_epoch_millis(stored.expiry)
        except (ValueError, OverflowError):
            return None
        return OtpRecord(code=stored.code, expires_at=expires_at)
