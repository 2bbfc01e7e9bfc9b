"""
OTP Repository
==============
Key-value side-table holding each identity's outstanding code.

The lifecycle manager is the only writer. Backends are swappable; the
default stores the record as attributes on the identity itself.
"""

from abc import ABC, abstractmethod
from typing import Optional

from ..identity import Identity
from .models import StoredOtp

ATTR_OTP_CODE = "otp_code"
ATTR_OTP_EXPIRY = "otp_expiry"
ATTR_OTP_FAILED_ATTEMPTS = "otp_failed_attempts"


class OtpRepository(ABC):
    """Abstract storage for one OTP record per identity."""

    @abstractmethod
    async def load(self, identity: Identity) -> Optional[StoredOtp]:
        """
        Read the stored record.

        Returns:
            StoredOtp, or None when either half of the record is missing
        """

    @abstractmethod
    async def save(self, identity: Identity, code: str, expiry: str) -> None:
        """Store a record, replacing any previous one and its failure count."""

    @abstractmethod
    async def delete(self, identity: Identity) -> None:
        """Remove the record and its failure count."""

    @abstractmethod
    async def record_failure(self, identity: Identity) -> int:
        """
        Increment the wrong-code counter of the current record.

        Returns:
            The updated count
        """


class AttributeOtpRepository(OtpRepository):
    """Stores the record as single-valued identity attributes."""

    async def load(self, identity: Identity) -> Optional[StoredOtp]:
        code = identity.get_attribute(ATTR_OTP_CODE)
        expiry = identity.get_attribute(ATTR_OTP_EXPIRY)
        if code is None or expiry is None:
            return None
        return StoredOtp(code=code, expiry=expiry)

    async def save(self, identity: Identity, code: str, expiry: str) -> None:
        identity.set_attribute(ATTR_OTP_CODE, code)
        identity.set_attribute(ATTR_OTP_EXPIRY, expiry)
        identity.remove_attribute(ATTR_OTP_FAILED_ATTEMPTS)

    async def delete(self, identity: Identity) -> None:
        identity.remove_attribute(ATTR_OTP_CODE)
        identity.remove_attribute(ATTR_OTP_EXPIRY)
        identity.remove_attribute(ATTR_OTP_FAILED_ATTEMPTS)

    async def record_failure(self, identity: Identity) -> int:
        raw = identity.get_attribute(ATTR_OTP_FAILED_ATTEMPTS)
        try:
            count = int(raw) if raw is not None else 0
        except ValueError:
            count = 0
        count += 1
        identity.set_attribute(ATTR_OTP_FAILED_ATTEMPTS, str(count))
        return count
