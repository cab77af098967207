"""Notification service: the single dispatch boundary.

``notify`` runs rule lookup, recipient resolution, payload building and
channel delivery for one domain event. It never raises: configuration errors
are logged and skip the affected audience, transport errors become failed
delivery attempts.

Usage:
    service = build_notification_service(directory, store, broadcaster)

    summary = service.notify("contract", contract, "updated", actor_id=user.id)
    logger.info("contract_saved", notifications_sent=summary.sent)
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from infrastructure.logging import bind_dispatch_context, get_module_logger
from infrastructure.notifications.dispatcher import NotificationDispatcher
from infrastructure.notifications.exceptions import NotificationError
from infrastructure.notifications.models import (
    DEFAULT_AUDIENCE,
    Recipient,
    ScheduledNotification,
    as_utc,
    utcnow,
)
from infrastructure.notifications.outcomes import DispatchSummary
from infrastructure.notifications.recipients import RecipientResolver
from infrastructure.notifications.rules import RuleStore
from infrastructure.notifications.scheduled import (
    InMemoryScheduledNotificationStore,
    ScheduledNotificationStore,
)
from infrastructure.notifications.templates import PayloadBuilder

logger = get_module_logger()


def group_by_audience(recipients: List[Recipient], role_based: Mapping[str, Any]) -> Dict[str, List[Recipient]]:
    """Group recipients by the audience whose content they receive.

    Audiences without a role-based override share the default content.
    """
    groups: Dict[str, List[Recipient]] = {}
    for recipient in recipients:
        audience = recipient.audience if recipient.audience in role_based else DEFAULT_AUDIENCE
        groups.setdefault(audience, []).append(recipient)
    return groups


class NotificationService:
    """Coordinates the notification pipeline for domain events.

    Attributes:
        rule_store: Notification rules and template bindings
        resolver: Recipient resolver
        builder: Payload builder
        dispatcher: Channel dispatcher
        scheduled: Store for notifications scheduled at a later date
    """

    def __init__(
        self,
        rule_store: RuleStore,
        resolver: RecipientResolver,
        builder: PayloadBuilder,
        dispatcher: NotificationDispatcher,
        scheduled: Optional[ScheduledNotificationStore] = None,
    ):
        self.rule_store = rule_store
        self.resolver = resolver
        self.builder = builder
        self.dispatcher = dispatcher
        self.scheduled = scheduled or InMemoryScheduledNotificationStore()

    def notify(
        self,
        entity_type: str,
        entity: Any,
        action: str,
        extra: Optional[Mapping[str, Any]] = None,
        actor_id: Optional[int] = None,
        correlation_id: Optional[str] = None,
    ) -> DispatchSummary:
        """Notify the recipients of ``rule(entity_type, action)`` about ``entity``.

        Unknown (entity_type, action) pairs are a no-op.

        Returns:
            DispatchSummary of the delivery attempts made
        """
        summary = DispatchSummary()
        with bind_dispatch_context(
            correlation_id=correlation_id,
            entity_type=entity_type,
            action=action,
            actor_id=actor_id,
        ):
            try:
                self._notify(summary, entity_type, entity, action, extra, actor_id)
            except Exception as e:
                logger.error(
                    "notification_failed",
                    error=str(e),
                    error_type=type(e).__name__,
                    exc_info=True,
                )
        return summary

    def _notify(
        self,
        summary: DispatchSummary,
        entity_type: str,
        entity: Any,
        action: str,
        extra: Optional[Mapping[str, Any]],
        actor_id: Optional[int],
    ) -> None:
        rule = self.rule_store.get_rule(entity_type, action)
        if rule is None:
            logger.debug("notification_rule_not_found")
            return

        recipients = self.resolver.resolve(rule, entity, actor_id=actor_id)
        if not recipients:
            logger.info("notification_without_recipients", rule=rule.key)
            return

        for audience, members in group_by_audience(recipients, rule.role_based).items():
            try:
                payload = self.builder.build(
                    rule, entity, extra=extra, actor_id=actor_id, audience=audience
                )
            except NotificationError as e:
                logger.error(
                    "notification_build_failed",
                    rule=rule.key,
                    audience=audience,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                continue

            attempts = self.dispatcher.dispatch(
                rule, members, payload, enabled=self.rule_store.is_channel_enabled
            )
            for attempt in attempts:
                summary.add(attempt)

    def schedule(
        self,
        entity_type: str,
        entity: Any,
        action: str,
        when: datetime,
        extra: Optional[Mapping[str, Any]] = None,
        actor_id: Optional[int] = None,
    ) -> Optional[ScheduledNotification]:
        """Store a notification to be dispatched by ``run_due`` at ``when``.

        Only rules marked ``scheduled`` accept this, and ``when`` must be in
        the future. A naive ``when`` is taken as UTC.

        Returns:
            The stored entry, or None if it was rejected
        """
        rule = self.rule_store.get_rule(entity_type, action)
        if rule is None or not rule.scheduled:
            logger.warning(
                "notification_schedule_rejected",
                entity_type=entity_type,
                action=action,
                reason="rule_not_schedulable",
            )
            return None

        when = as_utc(when)
        if when <= utcnow():
            logger.info(
                "notification_schedule_rejected",
                entity_type=entity_type,
                action=action,
                reason="date_in_past",
                when=when.isoformat(),
            )
            return None

        try:
            entity_id = self.builder.serializers.serialize(entity_type, entity).get("id")
        except NotificationError as e:
            logger.error("notification_schedule_failed", entity_type=entity_type, error=str(e))
            return None

        item = self.scheduled.add(
            ScheduledNotification(
                id=str(uuid.uuid4()),
                entity_type=entity_type,
                action=action,
                entity_id=entity_id,
                entity=entity,
                extra=dict(extra or {}),
                actor_id=actor_id,
                due_at=when,
            )
        )
        logger.info(
            "notification_scheduled",
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            due_at=when.isoformat(),
        )
        return item

    def cancel(self, entity_type: str, entity_id: Any, action: Optional[str] = None) -> int:
        """Cancel pending scheduled notifications of an entity."""
        removed = self.scheduled.cancel(entity_type, entity_id, action)
        if removed:
            logger.info(
                "scheduled_notifications_cancelled",
                entity_type=entity_type,
                entity_id=entity_id,
                action=action,
                count=removed,
            )
        return removed

    def run_due(self, now: Optional[datetime] = None) -> int:
        """Dispatch every scheduled notification due at ``now``.

        A naive ``now`` is taken as UTC.

        Returns:
            Number of scheduled notifications dispatched
        """
        due = self.scheduled.pop_due(as_utc(now) if now is not None else utcnow())
        for item in due:
            self.notify(
                item.entity_type,
                item.entity,
                item.action,
                extra=item.extra,
                actor_id=item.actor_id,
                correlation_id=item.id,
            )
        if due:
            logger.info("scheduled_notifications_dispatched", count=len(due))
        return len(due)

    def health_check(self) -> Dict[str, bool]:
        return self.dispatcher.health_check()
