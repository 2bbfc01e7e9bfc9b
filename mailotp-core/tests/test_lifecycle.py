"""
Tests for the OTP lifecycle manager.
"""

import asyncio
from datetime import timedelta

import pytest

from mailotp_core.exceptions import DeliveryError
from mailotp_core.otp import (
    ATTR_OTP_CODE,
    ATTR_OTP_EXPIRY,
    ATTR_OTP_FAILED_ATTEMPTS,
    AttributeOtpRepository,
    IssueResult,
    OtpConfig,
    OtpLifecycleManager,
    OtpState,
    VerificationOutcome,
)


@pytest.fixture
def fixed_code(monkeypatch):
    """Make the lifecycle manager issue a known code."""
    import mailotp_core.otp.lifecycle as lifecycle_module

    monkeypatch.setattr(lifecycle_module, "generate_otp", lambda length=6: "483920")
    return "483920"


class TestIssue:
    """Tests for issuing codes."""

    @pytest.mark.asyncio
    async def test_issue_stores_single_pending_record(self, lifecycle, identity, adapter, clock):
        """After issue exactly one record exists, expiring now + TTL."""
        result = await lifecycle.issue(identity)

        assert result is IssueResult.SENT
        record = await lifecycle.current_record(identity)
        assert record is not None
        assert record.code == adapter.last_code
        assert record.expires_at == clock.now() + timedelta(minutes=10)
        assert await lifecycle.state_of(identity) is OtpState.PENDING
        assert set(identity.attributes) == {ATTR_OTP_CODE, ATTR_OTP_EXPIRY}

    @pytest.mark.asyncio
    async def test_issue_delivers_code_and_ttl(self, lifecycle, identity, adapter):
        await lifecycle.issue(identity)

        email, code, ttl = adapter.sent[0]
        assert email == "john.doe@example.com"
        assert len(code) == 6 and code.isdigit()
        assert ttl == 10

    @pytest.mark.asyncio
    async def test_expiry_persisted_as_epoch_millis(self, lifecycle, identity, clock):
        await lifecycle.issue(identity)

        expected = int((clock.now() + timedelta(minutes=10)).timestamp() * 1000)
        assert identity.get_attribute(ATTR_OTP_EXPIRY) == str(expected)

    @pytest.mark.asyncio
    async def test_reissue_overwrites_previous_code(self, lifecycle, identity, adapter, clock):
        """Reissuing invalidates the old code (no stacking)."""
        await lifecycle.issue(identity)
        first = adapter.last_code
        clock.advance(minutes=2)
        await lifecycle.issue(identity)
        second = adapter.last_code

        record = await lifecycle.current_record(identity)
        assert record.code == second
        assert record.expires_at == clock.now() + timedelta(minutes=10)
        if first != second:
            assert await lifecycle.verify(identity, first) is VerificationOutcome.MISMATCH
        assert await lifecycle.verify(identity, second) is VerificationOutcome.VERIFIED

    @pytest.mark.asyncio
    async def test_delivery_failure_keeps_record(self, lifecycle, identity, adapter):
        """A failed send reports DELIVERY_FAILED but the stored code remains."""
        adapter.fail_with = DeliveryError("smtp down", provider="recording")

        result = await lifecycle.issue(identity)

        assert result is IssueResult.DELIVERY_FAILED
        assert await lifecycle.has_pending(identity) is True

    @pytest.mark.asyncio
    async def test_unexpected_delivery_error_is_reported(self, lifecycle, identity, adapter):
        adapter.fail_with = RuntimeError("template missing")

        assert await lifecycle.issue(identity) is IssueResult.DELIVERY_FAILED
        assert await lifecycle.has_pending(identity) is True


class TestVerify:
    """Tests for verifying codes."""

    @pytest.mark.asyncio
    async def test_verify_success_once(self, lifecycle, identity, adapter):
        """The right code verifies once; an immediate repeat finds nothing."""
        await lifecycle.issue(identity)
        code = adapter.last_code

        assert await lifecycle.verify(identity, code) is VerificationOutcome.VERIFIED
        assert identity.email_verified is True
        assert identity.attributes == {}

        assert await lifecycle.verify(identity, code) is VerificationOutcome.NOT_FOUND

    @pytest.mark.asyncio
    async def test_verify_without_record(self, lifecycle, identity):
        assert await lifecycle.verify(identity, "123456") is VerificationOutcome.NOT_FOUND

    @pytest.mark.asyncio
    async def test_verify_with_half_record(self, lifecycle, identity):
        identity.set_attribute(ATTR_OTP_CODE, "123456")

        assert await lifecycle.verify(identity, "123456") is VerificationOutcome.NOT_FOUND

    @pytest.mark.asyncio
    @pytest.mark.parametrize("candidate", ["12a456", "12345", "", None])
    async def test_format_error_does_not_touch_store(self, lifecycle, identity, candidate):
        """Malformed candidates are rejected before any store access."""
        await lifecycle.issue(identity)
        before = dict(identity.attributes)

        outcome = await lifecycle.verify(identity, candidate)

        assert outcome is VerificationOutcome.FORMAT_ERROR
        assert identity.attributes == before

    @pytest.mark.asyncio
    async def test_format_error_skips_repository(self, adapter, identity):
        class ExplodingRepository(AttributeOtpRepository):
            async def load(self, identity):
                raise AssertionError("store must not be read")

        manager = OtpLifecycleManager(ExplodingRepository(), adapter)

        assert await manager.verify(identity, "abc") is VerificationOutcome.FORMAT_ERROR

    @pytest.mark.asyncio
    async def test_expired_code_is_purged(self, lifecycle, identity, adapter, clock):
        """After expiry the correct code is rejected and the record removed."""
        await lifecycle.issue(identity)
        clock.advance(minutes=10, seconds=1)

        outcome = await lifecycle.verify(identity, adapter.last_code)

        assert outcome is VerificationOutcome.EXPIRED
        assert identity.attributes == {}
        assert identity.email_verified is False

    @pytest.mark.asyncio
    async def test_code_valid_at_exact_expiry(self, lifecycle, identity, adapter, clock):
        await lifecycle.issue(identity)
        clock.advance(minutes=10)

        assert await lifecycle.verify(identity, adapter.last_code) is VerificationOutcome.VERIFIED

    @pytest.mark.asyncio
    async def test_unparsable_expiry_is_purged(self, lifecycle, identity):
        """Corrupt expiry data fails safe: purge and deny."""
        identity.set_attribute(ATTR_OTP_CODE, "123456")
        identity.set_attribute(ATTR_OTP_EXPIRY, "not-a-number")

        assert await lifecycle.has_pending(identity) is False
        assert identity.get_attribute(ATTR_OTP_CODE) == "123456"

        outcome = await lifecycle.verify(identity, "123456")

        assert outcome is VerificationOutcome.EXPIRED
        assert identity.attributes == {}
        assert identity.email_verified is False

    @pytest.mark.asyncio
    async def test_mismatch_retains_record(self, lifecycle, identity, fixed_code):
        await lifecycle.issue(identity)

        for _ in range(3):
            assert await lifecycle.verify(identity, "000000") is VerificationOutcome.MISMATCH

        assert await lifecycle.has_pending(identity) is True
        assert await lifecycle.verify(identity, fixed_code) is VerificationOutcome.VERIFIED

    @pytest.mark.asyncio
    async def test_scenario_mismatch_then_verify_then_not_found(
        self, lifecycle, identity, clock, fixed_code
    ):
        """Issue at t=0, wrong at 5m, right at 9m, repeat at 9.5m."""
        await lifecycle.issue(identity)

        clock.advance(minutes=5)
        assert await lifecycle.verify(identity, "000000") is VerificationOutcome.MISMATCH
        assert await lifecycle.has_pending(identity) is True

        clock.advance(minutes=4)
        assert await lifecycle.verify(identity, "483920") is VerificationOutcome.VERIFIED

        clock.advance(seconds=30)
        assert await lifecycle.verify(identity, "483920") is VerificationOutcome.NOT_FOUND


class TestFailedAttemptLimit:
    """Tests for the optional wrong-code lockout."""

    @pytest.fixture
    def strict_lifecycle(self, adapter, clock):
        return OtpLifecycleManager(
            repository=AttributeOtpRepository(),
            delivery=adapter,
            config=OtpConfig(max_failed_attempts=3),
            clock=clock.now,
        )

    @pytest.mark.asyncio
    async def test_lockout_after_limit(self, strict_lifecycle, identity, fixed_code):
        await strict_lifecycle.issue(identity)

        assert await strict_lifecycle.verify(identity, "000000") is VerificationOutcome.MISMATCH
        assert identity.get_attribute(ATTR_OTP_FAILED_ATTEMPTS) == "1"
        assert await strict_lifecycle.verify(identity, "000000") is VerificationOutcome.MISMATCH
        assert await strict_lifecycle.verify(identity, "000000") is VerificationOutcome.INVALIDATED

        assert identity.attributes == {}
        assert await strict_lifecycle.verify(identity, fixed_code) is VerificationOutcome.NOT_FOUND

    @pytest.mark.asyncio
    async def test_reissue_resets_failures(self, strict_lifecycle, identity, fixed_code):
        await strict_lifecycle.issue(identity)
        await strict_lifecycle.verify(identity, "000000")
        await strict_lifecycle.verify(identity, "000000")

        await strict_lifecycle.issue(identity)

        assert identity.get_attribute(ATTR_OTP_FAILED_ATTEMPTS) is None
        assert await strict_lifecycle.verify(identity, "000000") is VerificationOutcome.MISMATCH
        assert await strict_lifecycle.verify(identity, fixed_code) is VerificationOutcome.VERIFIED


class TestQueries:
    """Tests for has_pending / state_of / invalidate."""

    @pytest.mark.asyncio
    async def test_has_pending_lifecycle(self, lifecycle, identity, clock):
        assert await lifecycle.has_pending(identity) is False
        assert await lifecycle.state_of(identity) is OtpState.NO_ACTIVE_CODE

        await lifecycle.issue(identity)
        assert await lifecycle.has_pending(identity) is True

        clock.advance(minutes=11)
        assert await lifecycle.has_pending(identity) is False
        # Queries never purge
        assert identity.get_attribute(ATTR_OTP_CODE) is not None

    @pytest.mark.asyncio
    async def test_invalidate(self, lifecycle, identity):
        await lifecycle.issue(identity)

        await lifecycle.invalidate(identity)

        assert await lifecycle.state_of(identity) is OtpState.NO_ACTIVE_CODE


class TestConcurrentTransitions:
    """Tests for same-identity serialization."""

    @pytest.mark.asyncio
    async def test_concurrent_verifies_succeed_once(self, lifecycle, identity, fixed_code):
        await lifecycle.issue(identity)

        outcomes = await asyncio.gather(
            *(lifecycle.verify(identity, fixed_code) for _ in range(5))
        )

        assert outcomes.count(VerificationOutcome.VERIFIED) == 1
        assert outcomes.count(VerificationOutcome.NOT_FOUND) == 4
        assert len(lifecycle._locks) == 0
