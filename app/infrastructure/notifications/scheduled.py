"""Storage for notifications scheduled at a future date."""

import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

from infrastructure.notifications.models import ScheduledNotification


class ScheduledNotificationStore(ABC):
    """Pending scheduled notifications."""

    @abstractmethod
    def add(self, item: ScheduledNotification) -> ScheduledNotification:
        pass

    @abstractmethod
    def cancel(self, entity_type: str, entity_id: Any, action: Optional[str] = None) -> int:
        """Remove pending entries for an entity; returns how many were removed."""
        pass

    @abstractmethod
    def pop_due(self, now: datetime) -> List[ScheduledNotification]:
        """Remove and return entries due at or before ``now``, oldest first."""
        pass

    @abstractmethod
    def pending(self) -> List[ScheduledNotification]:
        pass


class InMemoryScheduledNotificationStore(ScheduledNotificationStore):
    """Dict-backed store for tests and single-process deployments."""

    def __init__(self):
        self._items: Dict[str, ScheduledNotification] = {}
        self._lock = threading.Lock()

    def add(self, item: ScheduledNotification) -> ScheduledNotification:
        with self._lock:
            self._items[item.id] = item
        return item

    def cancel(self, entity_type: str, entity_id: Any, action: Optional[str] = None) -> int:
        with self._lock:
            matching = [
                key
                for key, item in self._items.items()
                if item.entity_type == entity_type
                and item.entity_id == entity_id
                and (action is None or item.action == action)
            ]
            for key in matching:
                del self._items[key]
        return len(matching)

    def pop_due(self, now: datetime) -> List[ScheduledNotification]:
        with self._lock:
            due = sorted(
                (item for item in self._items.values() if item.due_at <= now),
                key=lambda item: item.due_at,
            )
            for item in due:
                del self._items[item.id]
        return due

    def pending(self) -> List[ScheduledNotification]:
        with self._lock:
            return sorted(self._items.values(), key=lambda item: item.due_at)
