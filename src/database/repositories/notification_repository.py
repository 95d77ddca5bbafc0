"""SQLAlchemy notification settings and log stores."""

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from database.connection import session_scope
from database.models import NotificationLogRecord, NotificationSettingRecord
from database.repositories.quote_repository import as_utc
from notifications import (
    NotificationChannel,
    NotificationLogEntry,
    NotificationLogStatus,
    NotificationLogStore,
    NotificationSetting,
    NotificationSettingStore,
    NotificationType,
)

logger = logging.getLogger(__name__)


class SqlNotificationSettingStore(NotificationSettingStore):
    """One row per NotificationType."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @staticmethod
    def _to_setting(record: NotificationSettingRecord) -> NotificationSetting:
        return NotificationSetting(
            type=NotificationType(record.type),
            name=record.name or "",
            description=record.description,
            enabled=bool(record.enabled),
            channel=NotificationChannel(record.channel),
            recipient_emails=list(record.recipient_emails or []),
            subject=record.subject,
            body_template=record.body_template,
        )

    def list_all(self) -> List[NotificationSetting]:
        with session_scope(self._session_factory) as session:
            records = session.execute(
                select(NotificationSettingRecord).order_by(NotificationSettingRecord.type)
            ).scalars().all()
            return [self._to_setting(r) for r in records]

    def get(self, notification_type: NotificationType) -> Optional[NotificationSetting]:
        with session_scope(self._session_factory) as session:
            record = session.get(NotificationSettingRecord, notification_type.value)
            return self._to_setting(record) if record is not None else None

    def save(self, setting: NotificationSetting) -> NotificationSetting:
        with session_scope(self._session_factory) as session:
            record = session.get(NotificationSettingRecord, setting.type.value)
            if record is None:
                record = NotificationSettingRecord(type=setting.type.value)
                session.add(record)
            record.name = setting.name
            record.description = setting.description
            record.enabled = setting.enabled
            record.channel = setting.channel.value
            record.recipient_emails = list(setting.recipient_emails)
            record.subject = setting.subject
            record.body_template = setting.body_template
        return setting


class SqlNotificationLogStore(NotificationLogStore):
    """Append-only notification delivery log."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def add(self, entry: NotificationLogEntry) -> None:
        with session_scope(self._session_factory) as session:
            session.add(NotificationLogRecord(
                id=entry.id,
                type=entry.type.value,
                channel=entry.channel.value,
                recipient=entry.recipient,
                subject=entry.subject,
                status=entry.status.value,
                error_message=entry.error_message,
                message_id=entry.message_id,
                quote_id=entry.quote_id,
                customer_id=entry.customer_id,
                user_id=entry.user_id,
                created_at=entry.created_at,
                sent_at=entry.sent_at,
            ))

    def list(
        self,
        quote_id: Optional[str] = None,
        notification_type: Optional[NotificationType] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[NotificationLogEntry]:
        query = select(NotificationLogRecord).order_by(NotificationLogRecord.sequence.desc())
        if quote_id is not None:
            query = query.where(NotificationLogRecord.quote_id == quote_id)
        if notification_type is not None:
            query = query.where(NotificationLogRecord.type == notification_type.value)
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)

        with session_scope(self._session_factory) as session:
            return [
                NotificationLogEntry(
                    id=r.id,
                    type=NotificationType(r.type),
                    channel=NotificationChannel(r.channel),
                    recipient=r.recipient,
                    subject=r.subject,
                    status=NotificationLogStatus(r.status),
                    error_message=r.error_message,
                    message_id=r.message_id,
                    quote_id=r.quote_id,
                    customer_id=r.customer_id,
                    user_id=r.user_id,
                    created_at=as_utc(r.created_at),
                    sent_at=as_utc(r.sent_at),
                )
                for r in session.execute(query).scalars().all()
            ]
