"""Real-time broadcast channel.

Each recipient receives the event on its own private channel
(``private-user.{user_id}``). The channel never publishes on a shared or
public channel.
"""

import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

from infrastructure.logging import get_module_logger
from infrastructure.notifications.channels.base import NotificationChannel
from infrastructure.notifications.models import (
    PRIVATE_CHANNEL_PREFIX,
    Channel,
    NotificationPayload,
    Recipient,
)
from infrastructure.operations import OperationResult

logger = get_module_logger()

EVENT_NAME = "notification.created"


class Broadcaster(ABC):
    """Real-time transport (websocket server, Pusher-compatible service)."""

    @abstractmethod
    def publish(self, channel: str, event: str, data: Dict[str, Any]) -> Optional[str]:
        """Publish ``event`` with ``data`` on ``channel``.

        Returns:
            Transport message id, if the transport provides one.
        """
        pass


class InMemoryBroadcaster(Broadcaster):
    """Records published events for tests and local runs."""

    def __init__(self):
        self.events: List[Tuple[str, str, Dict[str, Any]]] = []
        self._lock = threading.Lock()

    def publish(self, channel: str, event: str, data: Dict[str, Any]) -> Optional[str]:
        with self._lock:
            self.events.append((channel, event, data))
            return str(len(self.events))

    def channels(self) -> List[str]:
        with self._lock:
            return [channel for channel, _, _ in self.events]


class BroadcastChannel(NotificationChannel):
    """Publishes one event per recipient on the recipient's private channel."""

    def __init__(
        self,
        broadcaster: Broadcaster,
        prefix: str = PRIVATE_CHANNEL_PREFIX,
        event_name: str = EVENT_NAME,
    ):
        self.broadcaster = broadcaster
        self.prefix = prefix
        self.event_name = event_name

    @property
    def channel_name(self) -> Channel:
        return Channel.BROADCAST

    def send(self, recipient: Recipient, payload: NotificationPayload) -> OperationResult:
        resolved = self.resolve_recipient(recipient)
        channel = resolved.data["address"]
        message_id = self.broadcaster.publish(channel, self.event_name, payload.broadcast_body())
        logger.debug("notification_broadcast", channel=channel, event_name=self.event_name)
        return OperationResult.success(
            data={"external_id": message_id, "channel": channel},
            message=f"Published on {channel}",
        )

    def resolve_recipient(self, recipient: Recipient) -> OperationResult:
        return OperationResult.success(data={"address": recipient.private_channel(self.prefix)})

    def health_check(self) -> OperationResult:
        return OperationResult.success(message="Broadcaster available")
