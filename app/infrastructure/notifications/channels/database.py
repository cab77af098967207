"""In-app notification channel writing one record per recipient."""

import itertools
import threading
from abc import ABC, abstractmethod
from typing import List, Optional

from infrastructure.logging import get_module_logger
from infrastructure.notifications.channels.base import NotificationChannel
from infrastructure.notifications.models import (
    Channel,
    NotificationPayload,
    NotificationRecord,
    Recipient,
)
from infrastructure.operations import OperationResult

logger = get_module_logger()


class NotificationStore(ABC):
    """Persistence for in-app notification records."""

    @abstractmethod
    def save(self, record: NotificationRecord) -> NotificationRecord:
        """Persist ``record`` and return it with its assigned id."""
        pass

    @abstractmethod
    def list_for(self, receiver_id: int) -> List[NotificationRecord]:
        pass


class InMemoryNotificationStore(NotificationStore):
    """Thread-safe list-backed store for tests and local runs."""

    def __init__(self):
        self._records: List[NotificationRecord] = []
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def save(self, record: NotificationRecord) -> NotificationRecord:
        with self._lock:
            stored = record.model_copy(update={"id": next(self._ids)})
            self._records.append(stored)
        return stored

    def list_for(self, receiver_id: int) -> List[NotificationRecord]:
        with self._lock:
            return [r for r in self._records if r.receiver_id == receiver_id]

    def all(self) -> List[NotificationRecord]:
        with self._lock:
            return list(self._records)


class DatabaseChannel(NotificationChannel):
    """Writes the in-app notification shown in the user's notification list.

    Attributes:
        store: NotificationStore receiving the records
        default_sender_id: Sender stored when the payload has no actor
    """

    def __init__(self, store: NotificationStore, default_sender_id: Optional[int] = None):
        self.store = store
        self.default_sender_id = default_sender_id

    @property
    def channel_name(self) -> Channel:
        return Channel.DATABASE

    def send(self, recipient: Recipient, payload: NotificationPayload) -> OperationResult:
        record = NotificationRecord(
            sender_id=payload.actor_id if payload.actor_id is not None else self.default_sender_id,
            receiver_id=recipient.user_id,
            entity_type=payload.entity_type,
            entity_id=payload.entity_id,
            action=payload.action,
            title=payload.title,
            content=payload.message,
            data={
                **payload.custom_fields,
                "action_url": payload.action_url,
                "action_text": payload.action_text,
            },
            sent_at=payload.timestamp,
        )
        stored = self.store.save(record)
        logger.debug(
            "notification_record_saved",
            record_id=stored.id,
            receiver_id=recipient.user_id,
        )
        return OperationResult.success(
            data={"external_id": str(stored.id) if stored.id is not None else None},
            message="Notification record saved",
        )

    def resolve_recipient(self, recipient: Recipient) -> OperationResult:
        return OperationResult.success(data={"address": recipient.user_id})

    def health_check(self) -> OperationResult:
        return OperationResult.success(message="Notification store available")
