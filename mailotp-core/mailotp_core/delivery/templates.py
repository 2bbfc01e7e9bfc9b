"""
OTP Email Templates
===================
Subject, plain-text and HTML bodies for the OTP email, plus address masking.
"""

from dataclasses import dataclass
from html import escape
from typing import Optional


@dataclass(frozen=True)
class EmailContent:
    """A rendered email."""
    subject: str
    text: str
    html: str


def render_otp_email(
    code: str,
    ttl_minutes: int,
    user_name: Optional[str] = None,
    realm_name: Optional[str] = None,
    company_name: str = "MailOTP",
) -> EmailContent:
    """
    Render the OTP email.

    Args:
        code: Plaintext OTP
        ttl_minutes: Minutes until the code expires
        user_name: Greeting name (first name, else username)
        realm_name: Display name of the realm the code is issued for
        company_name: Sender brand shown in the footer

    Returns:
        EmailContent with subject, text and html bodies
    """
    greeting = f"Hello {user_name}," if user_name else "Hello,"
    realm_line = f" for {realm_name}" if realm_name else ""
    subject = f"Your {company_name} verification code"

    text = (
        f"{greeting}\n\n"
        f"Your verification code{realm_line} is: {code}\n\n"
        f"This code expires in {ttl_minutes} minute(s).\n\n"
        "If you did not request this code, you can ignore this email.\n\n"
        f"-- {company_name}"
    )

    html = f"""
    <html>
    <body style="font-family:sans-serif;color:#333">
      <p>{escape(greeting)}</p>
      <p>Your verification code{escape(realm_line)} is:</p>
      <p style="font-size:2em;font-weight:bold;letter-spacing:0.2em">{escape(code)}</p>
      <p>This code expires in {ttl_minutes} minute(s).</p>
      <p style="margin-top:1em;font-size:0.9em;color:#888">
        If you did not request this code, you can ignore this email.
      </p>
      <p style="font-size:0.9em;color:#888">{escape(company_name)}</p>
    </body>
    </html>
    """

    return EmailContent(subject=subject, text=text, html=html)


def mask_email(email: Optional[str]) -> str:
    """
    Mask an email address for logs and caller-facing messages.

    Keeps the first two characters of the local part and the domain.
    """
    if not email or len(email) < 3:
        return "***"
    at_index = email.find("@")
    if at_index < 0:
        return email[:2] + "***"
    local, domain = email[:at_index], email[at_index:]
    if len(local) <= 2:
        return local[:1] + "***" + domain
    return local[:2] + "***" + domain
