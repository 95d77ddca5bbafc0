"""
Notification settings and log storage.

Abstract stores plus thread-safe in-memory implementations. The SQLAlchemy
implementations live in ``database.repositories.notification_repository``.
"""

import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from .notification_types import (
    NotificationLogEntry,
    NotificationSetting,
    NotificationSettingsSnapshot,
    NotificationType,
    default_settings,
)


class NotificationSettingStore(ABC):
    """Persistence for per-type notification settings."""

    @abstractmethod
    def list_all(self) -> List[NotificationSetting]:
        pass

    @abstractmethod
    def get(self, notification_type: NotificationType) -> Optional[NotificationSetting]:
        pass

    @abstractmethod
    def save(self, setting: NotificationSetting) -> NotificationSetting:
        """Insert or replace the setting for its type."""
        pass

    def snapshot(self) -> NotificationSettingsSnapshot:
        """Read every setting into an immutable snapshot."""
        return NotificationSettingsSnapshot(self.list_all())

    def initialize_defaults(self) -> List[NotificationSetting]:
        """
        Create a disabled setting for every type that has none.

        Returns:
            The settings that were created
        """
        existing = {s.type for s in self.list_all()}
        created = []
        for setting in default_settings():
            if setting.type not in existing:
                created.append(self.save(setting))
        return created


class NotificationLogStore(ABC):
    """Append-only record of attempted sends."""

    @abstractmethod
    def add(self, entry: NotificationLogEntry) -> None:
        pass

    @abstractmethod
    def list(
        self,
        quote_id: Optional[str] = None,
        notification_type: Optional[NotificationType] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[NotificationLogEntry]:
        """Newest first."""
        pass


class InMemoryNotificationSettingStore(NotificationSettingStore):
    def __init__(self, settings: Optional[List[NotificationSetting]] = None):
        self._settings: Dict[NotificationType, NotificationSetting] = {}
        self._lock = threading.Lock()
        for setting in settings or []:
            self.save(setting)

    def list_all(self) -> List[NotificationSetting]:
        with self._lock:
            return [s.model_copy(deep=True) for s in self._settings.values()]

    def get(self, notification_type: NotificationType) -> Optional[NotificationSetting]:
        with self._lock:
            setting = self._settings.get(notification_type)
            return setting.model_copy(deep=True) if setting else None

    def save(self, setting: NotificationSetting) -> NotificationSetting:
        with self._lock:
            self._settings[setting.type] = setting.model_copy(deep=True)
        return setting


class InMemoryNotificationLogStore(NotificationLogStore):
    def __init__(self):
        self._entries: List[NotificationLogEntry] = []
        self._lock = threading.Lock()

    def add(self, entry: NotificationLogEntry) -> None:
        with self._lock:
            self._entries.append(entry)

    def list(
        self,
        quote_id: Optional[str] = None,
        notification_type: Optional[NotificationType] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[NotificationLogEntry]:
        with self._lock:
            entries = [
                e for e in reversed(self._entries)
                if (quote_id is None or e.quote_id == quote_id)
                and (notification_type is None or e.type == notification_type)
            ]
        end = offset + limit if limit is not None else None
        return entries[offset:end]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
