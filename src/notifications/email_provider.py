"""
Email Provider Abstraction

The outbound email capability used by the notification dispatcher:
``send(message) -> DeliveryResult``. The dispatcher only interprets
pass/fail plus the error message; transport detail stays inside the
provider.

Supports:
- SMTP (self-hosted or relay)
- Null provider (development: logs instead of sending)
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional
from uuid import uuid4

from config import get_email_settings

logger = logging.getLogger(__name__)


class DeliveryStatus(str, Enum):
    """Email delivery status."""
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


@dataclass
class EmailMessage:
    """Email message to be sent."""
    to: str
    subject: str
    body: str
    is_html: bool = True
    from_email: Optional[str] = None
    from_name: Optional[str] = None
    reply_to: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def validate(self) -> bool:
        """Validate message has required fields."""
        if not self.to:
            raise ValueError("Recipient email (to) is required")
        if not self.subject:
            raise ValueError("Subject is required")
        if not self.body:
            raise ValueError("Body is required")
        return True


@dataclass
class DeliveryResult:
    """Result of an email delivery attempt."""
    success: bool
    status: DeliveryStatus
    message_id: Optional[str] = None
    provider: Optional[str] = None
    error_message: Optional[str] = None
    error_code: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def sent(cls, provider: str, message_id: Optional[str] = None) -> "DeliveryResult":
        return cls(success=True, status=DeliveryStatus.SENT, message_id=message_id, provider=provider)

    @classmethod
    def failed(
        cls,
        provider: str,
        error_message: str,
        error_code: Optional[str] = None,
    ) -> "DeliveryResult":
        return cls(
            success=False,
            status=DeliveryStatus.FAILED,
            provider=provider,
            error_message=error_message,
            error_code=error_code,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "success": self.success,
            "status": self.status.value,
            "message_id": self.message_id,
            "provider": self.provider,
            "error_message": self.error_message,
            "error_code": self.error_code,
            "timestamp": self.timestamp.isoformat(),
        }


class EmailProvider(ABC):
    """Abstract base class for email providers."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return provider name for logging."""
        pass

    @abstractmethod
    def send(self, message: EmailMessage) -> DeliveryResult:
        """
        Send an email message.

        Providers report transport problems through the returned
        DeliveryResult rather than raising.

        Args:
            message: Email message to send

        Returns:
            DeliveryResult with success/failure status
        """
        pass

    @abstractmethod
    def is_configured(self) -> bool:
        """Check if provider is properly configured."""
        pass


class NullEmailProvider(EmailProvider):
    """
    Null provider for development.

    Logs emails but doesn't send them.
    """

    @property
    def provider_name(self) -> str:
        return "null"

    def send(self, message: EmailMessage) -> DeliveryResult:
        """Log email without sending."""
        message.validate()
        logger.info(f"[NULL PROVIDER] Would send email to {message.to}: {message.subject}")
        return DeliveryResult.sent(self.provider_name, message_id=f"null-{uuid4().hex}")

    def is_configured(self) -> bool:
        return True


# Global provider instance
_email_provider: Optional[EmailProvider] = None


def get_email_provider() -> EmailProvider:
    """
    Get the configured email provider.

    Provider selection order:
    1. SMTP_HOST -> SMTP
    2. None -> Null provider (logging only)
    """
    global _email_provider

    if _email_provider is not None:
        return _email_provider

    settings = get_email_settings()
    if settings.is_configured:
        from .smtp_provider import SMTPProvider
        _email_provider = SMTPProvider(settings)
        logger.info("Email provider: SMTP")
        return _email_provider

    logger.warning(
        "No email provider configured. Emails will be logged but not sent. "
        "Set SMTP_HOST to enable email delivery."
    )
    _email_provider = NullEmailProvider()
    return _email_provider


def set_email_provider(provider: Optional[EmailProvider]) -> None:
    """
    Set a custom email provider (for testing), or None to reset.

    Args:
        provider: EmailProvider instance to use
    """
    global _email_provider
    _email_provider = provider
    if provider is not None:
        logger.info(f"Email provider set to: {provider.provider_name}")
