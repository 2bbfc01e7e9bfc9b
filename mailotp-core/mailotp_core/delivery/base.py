"""
Email Delivery Adapter
======================
Base class for OTP email delivery integrations.
"""

from abc import ABC, abstractmethod
from typing import Optional

import structlog

from ..identity import Identity
from .templates import EmailContent, render_otp_email

logger = structlog.get_logger(__name__)


class EmailDeliveryAdapter(ABC):
    """
    Abstract base class for email delivery adapters.

    Subclasses implement ``deliver``; rendering is shared. Any failure must
    surface as ``DeliveryError``.
    """

    name: str = "base"

    def __init__(self, realm_name: str = "", company_name: str = "MailOTP"):
        self.realm_name = realm_name
        self.company_name = company_name
        self._is_initialized = False

    async def initialize(self) -> None:
        """Initialize the adapter (e.g., open connections)."""
        self._is_initialized = True
        logger.info("Delivery adapter initialized", provider=self.name)

    async def close(self) -> None:
        """Clean up resources."""
        self._is_initialized = False
        logger.info("Delivery adapter closed", provider=self.name)

    def render(self, identity: Identity, code: str, ttl_minutes: int) -> EmailContent:
        return render_otp_email(
            code=code,
            ttl_minutes=ttl_minutes,
            user_name=identity.first_name or identity.username,
            realm_name=self.realm_name,
            company_name=self.company_name,
        )

    async def send_otp_email(
        self,
        identity: Identity,
        code: str,
        ttl_minutes: int,
    ) -> None:
        """
        Render and send the OTP email for ``identity``.

        Args:
            identity: Recipient identity (must have an email address)
            code: Plaintext OTP
            ttl_minutes: Minutes until the code expires

        Raises:
            DeliveryError: If the email could not be sent
        """
        content = self.render(identity, code, ttl_minutes)
        await self.deliver(identity.email, content)

    @abstractmethod
    async def deliver(self, to_email: Optional[str], content: EmailContent) -> None:
        """Send already rendered content to ``to_email``."""
