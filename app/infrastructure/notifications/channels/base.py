"""Notification channel abstract base class.

All channel implementations (database, broadcast, email) must implement this
interface.
"""

from abc import ABC, abstractmethod
from infrastructure.notifications.models import (
    Channel,
    NotificationPayload,
    Recipient,
)
from infrastructure.operations import OperationResult


class NotificationChannel(ABC):
    """Abstract base class for notification channels.

    Each channel delivers one payload to one recipient:
    - DatabaseChannel: in-app notification record
    - BroadcastChannel: event on the recipient's private real-time channel
    - EmailChannel: transactional email through the email provider

    The dispatcher owns the delivery attempt; channels only report the
    outcome as an OperationResult and must not raise for delivery failures.

    Example Implementation:
        class LogChannel(NotificationChannel):

            @property
            def channel_name(self) -> Channel:
                return Channel.DATABASE

            def send(self, recipient, payload) -> OperationResult:
                logger.info("notification_logged", receiver_id=recipient.user_id)
                return OperationResult.success()
    """

    @property
    @abstractmethod
    def channel_name(self) -> Channel:
        """Channel identifier used for routing and logging."""
        pass

    @abstractmethod
    def send(self, recipient: Recipient, payload: NotificationPayload) -> OperationResult:
        """Deliver ``payload`` to ``recipient``.

        Returns:
            OperationResult; on success ``data`` may carry ``external_id``.
        """
        pass

    @abstractmethod
    def resolve_recipient(self, recipient: Recipient) -> OperationResult:
        """Resolve the channel-specific address of a recipient.

        Examples:
        - DatabaseChannel: receiver id
        - BroadcastChannel: private channel name
        - EmailChannel: email address (fails without one)

        Returns:
            OperationResult with the address in ``data["address"]``
        """
        pass

    @abstractmethod
    def health_check(self) -> OperationResult:
        """Check channel health (backend reachable, credentials valid)."""
        pass
