"""
Shared fixtures for mailotp-core tests.
"""

from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

import pytest

from mailotp_core.delivery import EmailDeliveryAdapter
from mailotp_core.delivery.templates import EmailContent
from mailotp_core.exceptions import DeliveryError
from mailotp_core.identity import InMemoryIdentity, InMemoryIdentityDirectory
from mailotp_core.otp import AttributeOtpRepository, OtpConfig, OtpLifecycleManager
from mailotp_core.rate_limit import FixedWindowRateLimiter, RateLimitConfig
from mailotp_core.service import EmailOtpService

START = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced clock usable as both a datetime and a float clock."""

    def __init__(self, start: datetime = START):
        self.current = start

    def now(self) -> datetime:
        return self.current

    def time(self) -> float:
        return self.current.timestamp()

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


class RecordingEmailAdapter(EmailDeliveryAdapter):
    """Captures sent codes; can be switched to fail."""

    name = "recording"

    def __init__(self):
        super().__init__(realm_name="test-realm", company_name="TestCo")
        self.sent: List[Tuple[str, str, int]] = []
        self.fail_with: Optional[Exception] = None

    async def send_otp_email(self, identity, code, ttl_minutes):
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append((identity.email, code, ttl_minutes))
        await super().send_otp_email(identity, code, ttl_minutes)

    async def deliver(self, to_email, content: EmailContent) -> None:
        if not to_email:
            raise DeliveryError("no address", provider=self.name)

    @property
    def last_code(self) -> str:
        return self.sent[-1][1]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def identity() -> InMemoryIdentity:
    return InMemoryIdentity(
        user_id="user-1",
        email="john.doe@example.com",
        username="jdoe",
        first_name="John",
    )


@pytest.fixture
def adapter() -> RecordingEmailAdapter:
    return RecordingEmailAdapter()


@pytest.fixture
def lifecycle(adapter, clock) -> OtpLifecycleManager:
    return OtpLifecycleManager(
        repository=AttributeOtpRepository(),
        delivery=adapter,
        config=OtpConfig(length=6, ttl_minutes=10),
        clock=clock.now,
    )


@pytest.fixture
def limiter(clock) -> FixedWindowRateLimiter:
    return FixedWindowRateLimiter(
        RateLimitConfig(max_send=5, max_verify=10, window_seconds=3600),
        clock=clock.time,
    )


@pytest.fixture
def directory(identity) -> InMemoryIdentityDirectory:
    return InMemoryIdentityDirectory(
        identities=[
            identity,
            InMemoryIdentity(user_id="user-2", email=None, username="noemail"),
        ],
        enabled_clients=["web-app"],
    )


@pytest.fixture
def service(directory, lifecycle, limiter) -> EmailOtpService:
    return EmailOtpService(
        directory=directory,
        lifecycle=lifecycle,
        rate_limiter=limiter,
        realm="test-realm",
    )
