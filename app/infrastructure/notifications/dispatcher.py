"""Channel dispatcher.

Delivers one payload to every (recipient, channel) pair of a dispatch:

- channels are the rule's channels intersected with the globally enabled ones
- each pair gets its own DeliveryAttempt; a failure or an exception in one
  pair never stops the others
- with ``max_workers > 1`` pairs run on a thread pool that is always joined
  before ``dispatch`` returns, so in-flight sends are never abandoned

Usage Example:
    dispatcher = NotificationDispatcher(
        channels={
            Channel.DATABASE: DatabaseChannel(store),
            Channel.BROADCAST: BroadcastChannel(broadcaster),
            Channel.EMAIL: EmailChannel(brevo_client),
        },
        outcome_handler=DeliveryOutcomeHandler(),
    )

    attempts = dispatcher.dispatch(rule, recipients, payload, enabled=rule_store.is_channel_enabled)
"""

import contextvars
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from infrastructure.logging import get_module_logger
from infrastructure.notifications.channels.base import NotificationChannel
from infrastructure.notifications.models import (
    Channel,
    DeliveryAttempt,
    NotificationPayload,
    NotificationRule,
    Recipient,
)
from infrastructure.notifications.outcomes import DeliveryOutcomeHandler

logger = get_module_logger()


class NotificationDispatcher:
    """Multi-channel notification dispatcher.

    Attributes:
        channels: Channel → NotificationChannel implementation
        outcome_handler: Receives every finished attempt
        max_workers: Worker threads per dispatch (1 = sequential)
    """

    def __init__(
        self,
        channels: Dict[Channel, NotificationChannel],
        outcome_handler: Optional[DeliveryOutcomeHandler] = None,
        max_workers: int = 1,
    ):
        self.channels = {Channel.parse(name): channel for name, channel in channels.items()}
        self.outcome_handler = outcome_handler or DeliveryOutcomeHandler()
        self.max_workers = max(1, max_workers)

        logger.info(
            "initialized_notification_dispatcher",
            channels=[c.value for c in self.channels],
            max_workers=self.max_workers,
        )

    def active_channels(
        self,
        rule: NotificationRule,
        enabled: Optional[Callable[[Channel], bool]] = None,
    ) -> List[Channel]:
        """Rule channels that are globally enabled and have an implementation."""
        active = []
        for channel in rule.channels:
            if enabled is not None and not enabled(channel):
                logger.debug("channel_disabled", channel=channel.value, rule=rule.key)
                continue
            if channel not in self.channels:
                logger.warning(
                    "channel_not_available",
                    channel=channel.value,
                    available_channels=[c.value for c in self.channels],
                )
                continue
            active.append(channel)
        return active

    def dispatch(
        self,
        rule: NotificationRule,
        recipients: Iterable[Recipient],
        payload: NotificationPayload,
        enabled: Optional[Callable[[Channel], bool]] = None,
    ) -> List[DeliveryAttempt]:
        """Deliver ``payload`` to every recipient on every active channel.

        Args:
            rule: Rule being dispatched
            recipients: Resolved recipients
            payload: Built payload
            enabled: Global channel switch (``RuleStore.is_channel_enabled``)

        Returns:
            One DeliveryAttempt per (recipient, channel) pair, all terminal
        """
        channels = self.active_channels(rule, enabled)
        pairs: List[Tuple[Recipient, Channel]] = [
            (recipient, channel) for recipient in recipients for channel in channels
        ]
        if not pairs:
            return []

        if self.max_workers == 1 or len(pairs) == 1:
            attempts = [self._deliver(recipient, channel, payload) for recipient, channel in pairs]
        else:
            with ThreadPoolExecutor(
                max_workers=min(self.max_workers, len(pairs)),
                thread_name_prefix="notification-dispatch",
            ) as executor:
                # workers run in a copy of the caller context (bound log fields)
                futures = [
                    executor.submit(
                        contextvars.copy_context().run, self._deliver, recipient, channel, payload
                    )
                    for recipient, channel in pairs
                ]
                attempts = [future.result() for future in futures]

        sent = sum(1 for a in attempts if a.is_success)
        logger.info(
            "notification_dispatched",
            rule=rule.key,
            channels=[c.value for c in channels],
            recipient_count=len({r.user_id for r, _ in pairs}),
            sent_count=sent,
            failed_count=len(attempts) - sent,
        )
        return attempts

    def _deliver(
        self, recipient: Recipient, channel: Channel, payload: NotificationPayload
    ) -> DeliveryAttempt:
        attempt = DeliveryAttempt(channel=channel, recipient=recipient, payload=payload)
        try:
            result = self.channels[channel].send(recipient, payload)
        except Exception as e:
            logger.error(
                "channel_exception",
                channel=channel.value,
                receiver_id=recipient.user_id,
                error=str(e),
                exc_info=True,
            )
            attempt.mark_failed(
                error_code="CHANNEL_EXCEPTION",
                error_detail=f"{type(e).__name__}: {e}",
            )
        else:
            if result.is_success:
                attempt.mark_sent(
                    external_id=(result.data or {}).get("external_id")
                    if isinstance(result.data, dict)
                    else None,
                    status_code=result.status_code,
                )
            else:
                detail = result.data.get("body") if isinstance(result.data, dict) else None
                attempt.mark_failed(
                    error_code=result.error_code or result.status.value,
                    error_detail=detail if detail is not None else result.message,
                    status_code=result.status_code,
                )

        self.outcome_handler.record(attempt)
        return attempt

    def health_check(self) -> Dict[str, bool]:
        """Health of every configured channel."""
        health = {}
        for channel, implementation in self.channels.items():
            try:
                health[channel.value] = implementation.health_check().is_success
            except Exception as e:
                logger.warning("channel_health_check_failed", channel=channel.value, error=str(e))
                health[channel.value] = False
        return health
