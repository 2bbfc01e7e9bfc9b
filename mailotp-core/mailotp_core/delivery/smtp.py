"""
SMTP Delivery Adapter
=====================
Production adapter sending OTP emails over SMTP with aiosmtplib.
"""

from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

import aiosmtplib
import structlog

from ..config import SmtpConfig
from ..exceptions import DeliveryError
from .base import EmailDeliveryAdapter
from .templates import EmailContent, mask_email

logger = structlog.get_logger(__name__)


class SmtpEmailAdapter(EmailDeliveryAdapter):
    """SMTP email delivery."""

    name = "smtp"

    def __init__(
        self,
        config: SmtpConfig,
        realm_name: str = "",
        company_name: str = "MailOTP",
    ):
        super().__init__(realm_name=realm_name, company_name=company_name)
        self.config = config

    def build_message(self, to_email: str, content: EmailContent) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = content.subject
        msg["From"] = self.config.from_email
        msg["To"] = to_email
        msg.attach(MIMEText(content.text, "plain", "utf-8"))
        msg.attach(MIMEText(content.html, "html", "utf-8"))
        return msg

    async def deliver(self, to_email: Optional[str], content: EmailContent) -> None:
        if not to_email:
            raise DeliveryError("Recipient has no email address", provider=self.name)
        if not self.config.is_configured:
            raise DeliveryError("SMTP host is not configured", provider=self.name)

        msg = self.build_message(to_email, content)

        try:
            await aiosmtplib.send(
                msg,
                hostname=self.config.host,
                port=self.config.port,
                username=self.config.username or None,
                password=self.config.password or None,
                start_tls=self.config.use_tls,
                timeout=self.config.timeout,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error(
                "SMTP send failed",
                recipient=mask_email(to_email),
                error=str(e),
            )
            raise DeliveryError("Failed to send OTP email", provider=self.name, cause=e) from e

        logger.info("OTP email sent", provider=self.name, recipient=mask_email(to_email))
