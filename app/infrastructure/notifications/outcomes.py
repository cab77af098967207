"""Delivery outcome handling.

Every delivery attempt is recorded exactly once. Nothing here retries:
delivery is at most once per dispatch call, any retry policy belongs to
the queue or job that invoked the dispatch.
"""

from dataclasses import dataclass, field
from typing import Dict

from infrastructure.logging import get_module_logger
from infrastructure.notifications.models import Channel, DeliveryAttempt, DeliveryStatus

logger = get_module_logger()


@dataclass
class DispatchSummary:
    """Sent and failed counters, overall and per channel."""

    sent: int = 0
    failed: int = 0
    by_channel: Dict[str, Dict[str, int]] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return self.sent + self.failed

    def add(self, attempt: DeliveryAttempt) -> None:
        counts = self.by_channel.setdefault(attempt.channel.value, {"sent": 0, "failed": 0})
        if attempt.status == DeliveryStatus.SENT:
            self.sent += 1
            counts["sent"] += 1
        elif attempt.status == DeliveryStatus.FAILED:
            self.failed += 1
            counts["failed"] += 1


class DeliveryOutcomeHandler:
    """Logs every finished delivery attempt.

    Holds no state between dispatches; counting belongs to the
    ``DispatchSummary`` of each ``notify`` call.
    """

    def record(self, attempt: DeliveryAttempt) -> None:
        if attempt.status == DeliveryStatus.PENDING:
            logger.warning(
                "notification_delivery_unfinished",
                channel=attempt.channel.value,
                receiver_id=attempt.recipient.user_id,
            )
            return

        payload = attempt.payload
        if attempt.is_success:
            logger.info(
                "notification_delivered",
                channel=attempt.channel.value,
                receiver_id=attempt.recipient.user_id,
                entity_type=payload.entity_type,
                entity_id=payload.entity_id,
                action=payload.action,
                external_id=attempt.external_id,
            )
            return

        logger.error(
            "notification_delivery_failed",
            channel=attempt.channel.value,
            receiver_id=attempt.recipient.user_id,
            recipient=str(attempt.recipient.email) if attempt.recipient.email else None,
            entity_type=payload.entity_type,
            entity_id=payload.entity_id,
            action=payload.action,
            template_id=(
                payload.email.template_id
                if attempt.channel == Channel.EMAIL and payload.email
                else None
            ),
            status_code=attempt.status_code,
            error_code=attempt.error_code,
            error_detail=attempt.error_detail,
        )

