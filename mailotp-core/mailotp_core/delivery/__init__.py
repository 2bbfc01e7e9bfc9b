"""
Email Delivery
==============
OTP email rendering and delivery adapters.
"""

from .templates import EmailContent, render_otp_email, mask_email
from .base import EmailDeliveryAdapter
from .console import ConsoleEmailAdapter
from .smtp import SmtpEmailAdapter

__all__ = [
    # Templates
    "EmailContent",
    "render_otp_email",
    "mask_email",
    # Adapters
    "EmailDeliveryAdapter",
    "ConsoleEmailAdapter",
    "SmtpEmailAdapter",
]
