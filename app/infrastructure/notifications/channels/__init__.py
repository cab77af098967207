"""Notification channel implementations."""

from infrastructure.notifications.channels.base import NotificationChannel
from infrastructure.notifications.channels.broadcast import (
    BroadcastChannel,
    Broadcaster,
    InMemoryBroadcaster,
)
from infrastructure.notifications.channels.database import (
    DatabaseChannel,
    InMemoryNotificationStore,
    NotificationStore,
)
from infrastructure.notifications.channels.email import EmailChannel

__all__ = [
    "NotificationChannel",
    "BroadcastChannel",
    "Broadcaster",
    "InMemoryBroadcaster",
    "DatabaseChannel",
    "InMemoryNotificationStore",
    "NotificationStore",
    "EmailChannel",
]
