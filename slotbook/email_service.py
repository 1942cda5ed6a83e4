"""
Transactional email via Resend
HTML bodies are compiled from MJML; a plain-text part is always included
"""

import logging
from dataclasses import dataclass
from typing import Optional

import resend
from mjml import mjml_to_html

from .config import EMAIL_FROM_ADDRESS, RESEND_API_KEY

logger = logging.getLogger(__name__)


@dataclass
class EmailResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    result = mjml_to_html(mjml_content)
    # mjml_to_html returns an object with 'html' and 'errors'
    if isinstance(result, dict):
        if result.get("errors"):
            logger.warning(f"MJML compilation warnings: {result['errors']}")
        return result.get("html", "")
    errors = getattr(result, "errors", None)
    if errors:
        logger.warning(f"MJML compilation warnings: {errors}")
    return getattr(result, "html", str(result))


class EmailClient:
    """
    Resend-backed sender, built once at startup and injected where needed.

    send() never raises: delivery problems come back as a failed EmailResult
    so callers can record them without aborting their own work.
    """

    def __init__(self, api_key: Optional[str], from_address: str):
        self.api_key = api_key
        self.from_address = from_address

    @classmethod
    def from_config(cls) -> "EmailClient":
        return cls(api_key=RESEND_API_KEY, from_address=EMAIL_FROM_ADDRESS)

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.from_address)

    async def send(
        self,
        to: str,
        subject: str,
        text: str,
        mjml_content: Optional[str] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> EmailResult:
        if not self.configured:
            logger.error("❌ No email service configured - RESEND_API_KEY missing")
            return EmailResult(success=False, error="Email service not configured")
        if not to:
            return EmailResult(success=False, error="No recipient")

        try:
            email_data = {
                "from": self.from_address,
                "to": [to],
                "subject": subject,
                "text": text,
            }
            if mjml_content:
                email_data["html"] = compile_mjml_to_html(mjml_content)
            if headers:
                email_data["headers"] = headers

            logger.info(f"📧 Sending email via Resend to: {to}")
            resend.api_key = self.api_key
            response = resend.Emails.send(email_data)
        except Exception as e:
            logger.error(f"❌ Email send error to {to}: {e}")
            return EmailResult(success=False, error=str(e))

        message_id = response.get("id") if isinstance(response, dict) else getattr(response, "id", None)
        logger.info(f"✅ Email sent successfully via Resend: {message_id}")
        return EmailResult(success=True, message_id=message_id)
