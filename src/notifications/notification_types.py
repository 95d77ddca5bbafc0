"""
Notification types, settings and delivery records.

The set of notification types is closed: each type has exactly one
built-in default template and one ``NotificationSetting`` row. Settings
are read into an immutable ``NotificationSettingsSnapshot`` which is
passed to the dispatcher on every call.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Iterable, List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field


class NotificationType(str, Enum):
    """Closed set of notification categories."""
    INTERNAL_QUOTE_CREATED = "INTERNAL_QUOTE_CREATED"
    INTERNAL_QUOTE_STATUS_CHANGE = "INTERNAL_QUOTE_STATUS_CHANGE"
    INTERNAL_USER_VERIFICATION = "INTERNAL_USER_VERIFICATION"
    INTERNAL_ARTWORK_RESPONSE = "INTERNAL_ARTWORK_RESPONSE"
    CUSTOMER_QUOTE_SENT = "CUSTOMER_QUOTE_SENT"
    CUSTOMER_QUOTE_STATUS_CHANGE = "CUSTOMER_QUOTE_STATUS_CHANGE"
    CUSTOMER_ARTWORK_APPROVAL = "CUSTOMER_ARTWORK_APPROVAL"

    @property
    def is_internal(self) -> bool:
        """Internal types go to staff recipients configured on the setting."""
        return self.value.startswith("INTERNAL_")


class NotificationChannel(str, Enum):
    EMAIL = "EMAIL"
    SMS = "SMS"


class NotificationSetting(BaseModel):
    """Configuration for one notification type."""
    type: NotificationType
    name: str = ""
    description: Optional[str] = None
    enabled: bool = False
    channel: NotificationChannel = NotificationChannel.EMAIL
    recipient_emails: List[str] = Field(default_factory=list)
    subject: Optional[str] = None
    body_template: Optional[str] = None


# (name, description) for each type, used when seeding settings
SETTING_DESCRIPTIONS: Dict[NotificationType, tuple] = {
    NotificationType.INTERNAL_QUOTE_CREATED: (
        "New Quote Created",
        "Notify staff when a new quote is created",
    ),
    NotificationType.INTERNAL_QUOTE_STATUS_CHANGE: (
        "Quote Status Changed",
        "Notify staff when a quote status changes",
    ),
    NotificationType.INTERNAL_USER_VERIFICATION: (
        "User Email Verification",
        "Send verification emails to new admin users",
    ),
    NotificationType.INTERNAL_ARTWORK_RESPONSE: (
        "Artwork Response Received",
        "Notify staff when a customer approves or declines artwork",
    ),
    NotificationType.CUSTOMER_QUOTE_SENT: (
        "Quote Sent to Customer",
        "Email the quote to the customer",
    ),
    NotificationType.CUSTOMER_QUOTE_STATUS_CHANGE: (
        "Quote Status Update",
        "Notify the customer when their quote status changes",
    ),
    NotificationType.CUSTOMER_ARTWORK_APPROVAL: (
        "Artwork Approval Request",
        "Send artwork to the customer for approval",
    ),
}


def default_settings() -> List[NotificationSetting]:
    """One disabled setting per notification type."""
    return [
        NotificationSetting(type=t, name=name, description=description, enabled=False)
        for t, (name, description) in SETTING_DESCRIPTIONS.items()
    ]


class NotificationSettingsSnapshot:
    """
    Immutable view of notification settings at one point in time.

    Missing types behave as disabled.
    """

    def __init__(self, settings: Iterable[NotificationSetting] = ()):
        self._settings: Dict[NotificationType, NotificationSetting] = {
            s.type: s.model_copy(deep=True) for s in settings
        }

    def get(self, notification_type: NotificationType) -> Optional[NotificationSetting]:
        setting = self._settings.get(notification_type)
        return setting.model_copy(deep=True) if setting else None

    def __len__(self) -> int:
        return len(self._settings)


class NotificationLogStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


@dataclass
class NotificationLogEntry:
    """One attempted send to one recipient."""
    type: NotificationType
    channel: NotificationChannel
    recipient: str
    subject: str
    status: NotificationLogStatus = NotificationLogStatus.PENDING
    error_message: Optional[str] = None
    message_id: Optional[str] = None
    quote_id: Optional[str] = None
    customer_id: Optional[str] = None
    user_id: Optional[str] = None
    id: str = field(default_factory=lambda: str(uuid4()))
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    sent_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type.value,
            "channel": self.channel.value,
            "recipient": self.recipient,
            "subject": self.subject,
            "status": self.status.value,
            "error_message": self.error_message,
            "message_id": self.message_id,
            "quote_id": self.quote_id,
            "customer_id": self.customer_id,
            "user_id": self.user_id,
            "created_at": self.created_at.isoformat(),
            "sent_at": self.sent_at.isoformat() if self.sent_at else None,
        }


class DispatchStatus(str, Enum):
    """Overall outcome of a dispatch."""
    SENT = "sent"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class DispatchResult:
    """
    Aggregated result of one dispatch.

    ``success`` is true for SENT and SKIPPED (a disabled notification is
    not a failure); ``status`` keeps the two distinguishable.
    """
    status: DispatchStatus
    error: Optional[str] = None
    recipients: List[str] = field(default_factory=list)
    logs: List[NotificationLogEntry] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.status != DispatchStatus.FAILED

    @property
    def skipped(self) -> bool:
        return self.status == DispatchStatus.SKIPPED

    @classmethod
    def skip(cls, reason: Optional[str] = None) -> "DispatchResult":
        return cls(status=DispatchStatus.SKIPPED, error=reason)

    @classmethod
    def fail(cls, error: str, **kwargs) -> "DispatchResult":
        return cls(status=DispatchStatus.FAILED, error=error, **kwargs)

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "status": self.status.value,
            "error": self.error,
            "recipients": list(self.recipients),
        }
