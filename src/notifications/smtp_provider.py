"""
SMTP Email Provider

Delivers notification emails through any SMTP server. Configuration comes
from ``config.EmailSettings`` (SMTP_* environment variables).
"""

import logging
import smtplib
import ssl
from email.message import EmailMessage as MimeMessage
from email.utils import formataddr, make_msgid
from typing import Optional

from config import EmailSettings, get_email_settings

from .email_provider import DeliveryResult, EmailMessage, EmailProvider

logger = logging.getLogger(__name__)


class SMTPProvider(EmailProvider):
    """
    SMTP email provider.

    Uses STARTTLS by default, implicit SSL when ``use_ssl`` is set, and
    authenticates only when both username and password are configured.
    """

    def __init__(self, settings: Optional[EmailSettings] = None):
        self.settings = settings or get_email_settings()

    @property
    def provider_name(self) -> str:
        return "smtp"

    def is_configured(self) -> bool:
        return self.settings.is_configured

    def build_message(self, message: EmailMessage) -> MimeMessage:
        """Build the MIME message, with a plain-text fallback for HTML bodies."""
        mime = MimeMessage()
        from_email = message.from_email or self.settings.from_email
        from_name = message.from_name or self.settings.from_name
        mime["From"] = formataddr((from_name, from_email))
        mime["To"] = message.to
        mime["Subject"] = message.subject
        mime["Message-ID"] = make_msgid(domain=from_email.split("@")[-1])
        if message.reply_to:
            mime["Reply-To"] = message.reply_to

        if message.is_html:
            mime.set_content("This message requires an HTML-capable email client.")
            mime.add_alternative(message.body, subtype="html")
        else:
            mime.set_content(message.body)
        return mime

    def send(self, message: EmailMessage) -> DeliveryResult:
        """
        Send email via SMTP.

        Args:
            message: Email message to send

        Returns:
            DeliveryResult with status
        """
        if not self.is_configured():
            return DeliveryResult.failed(
                self.provider_name,
                "SMTP not configured (missing SMTP_HOST)",
                "NOT_CONFIGURED",
            )

        try:
            message.validate()
            mime = self.build_message(message)
            settings = self.settings

            if settings.use_ssl:
                context = ssl.create_default_context()
                with smtplib.SMTP_SSL(settings.host, settings.port, context=context,
                                      timeout=settings.timeout) as server:
                    self._login(server)
                    server.send_message(mime)
            else:
                with smtplib.SMTP(settings.host, settings.port, timeout=settings.timeout) as server:
                    if settings.use_tls:
                        server.starttls(context=ssl.create_default_context())
                    self._login(server)
                    server.send_message(mime)

            logger.info(f"SMTP: Email sent to {message.to}")
            return DeliveryResult.sent(self.provider_name, message_id=mime["Message-ID"])

        except ValueError as e:
            return DeliveryResult.failed(self.provider_name, str(e), "INVALID_MESSAGE")
        except smtplib.SMTPAuthenticationError as e:
            logger.error(f"SMTP auth error: {e}")
            return DeliveryResult.failed(
                self.provider_name, f"SMTP authentication failed: {e}", "AUTH_ERROR"
            )
        except smtplib.SMTPRecipientsRefused as e:
            logger.error(f"SMTP recipients refused: {e}")
            return DeliveryResult.failed(
                self.provider_name, f"Recipient refused: {message.to}", "RECIPIENT_REFUSED"
            )
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"SMTP error sending to {message.to}: {e}")
            return DeliveryResult.failed(self.provider_name, f"SMTP error: {e}", "SMTP_ERROR")

    def _login(self, server: smtplib.SMTP) -> None:
        if self.settings.username and self.settings.password:
            server.login(self.settings.username, self.settings.password)
