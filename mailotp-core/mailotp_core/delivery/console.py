"""
Console Delivery Adapter
========================
Development adapter that logs instead of sending.
"""

from typing import List, Optional, Tuple

import structlog

from ..exceptions import DeliveryError
from .base import EmailDeliveryAdapter
from .templates import EmailContent, mask_email

logger = structlog.get_logger(__name__)


class ConsoleEmailAdapter(EmailDeliveryAdapter):
    """
    Logs a redacted notice for every email instead of sending it.

    Rendered messages are kept in ``outbox`` so local tooling and tests can
    read the code back. For development and testing only.
    """

    name = "console"

    def __init__(self, realm_name: str = "", company_name: str = "MailOTP"):
        super().__init__(realm_name=realm_name, company_name=company_name)
        self.outbox: List[Tuple[str, EmailContent]] = []

    async def deliver(self, to_email: Optional[str], content: EmailContent) -> None:
        if not to_email:
            raise DeliveryError("Recipient has no email address", provider=self.name)
        self.outbox.append((to_email, content))
        logger.info(
            "[DEV] Would send OTP email",
            recipient=mask_email(to_email),
            subject=content.subject,
        )
