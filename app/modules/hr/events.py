"""HR domain event wiring.

``build_event_registry`` is called once at process start. Every HR event
type gets the notification handler; contract events additionally keep the
expiry reminders in sync.
"""

from typing import Iterable, Optional

from infrastructure.events import WILDCARD, DomainEvent, EventRegistry, LoggingHandler
from infrastructure.logging import get_module_logger
from infrastructure.notifications import DispatchSummary, NotificationService
from modules.hr.reminders import cancel_contract_expiry, schedule_contract_expiry

logger = get_module_logger()

HR_EVENT_TYPES = (
    "company.created",
    "company.updated",
    "company.deleted",
    "employee.created",
    "employee.status_changed",
    "department.updated",
    "user.created",
    "user.updated",
    "user.deleted",
    "user.banned",
    "user.suspended",
    "user.reactivated",
    "user.welcome",
    "leave_request.created",
    "leave_request.approved",
    "leave_request.denied",
    "work_schedule.created",
    "work_schedule.late",
    "work_schedule.major_absence",
    "contract.created",
    "contract.updated",
    "contract.deleted",
    "contract.ended",
    "contract.renewed",
    "contract.without_contracts",
)


class HRNotificationHandler:
    """Forwards HR domain events to the notification service."""

    def __init__(self, service: NotificationService):
        self.service = service

    def __call__(self, event: DomainEvent) -> Optional[DispatchSummary]:
        try:
            entity_type, action = event.split()
        except ValueError as e:
            logger.warning("unroutable_event", event_type=event.event_type, error=str(e))
            return None
        return self.service.notify(
            entity_type,
            event.entity,
            action,
            extra=event.extra,
            actor_id=event.actor_id,
            correlation_id=str(event.correlation_id),
        )


class ContractReminderHandler:
    """Keeps contract expiry reminders in sync with contract changes."""

    def __init__(self, service: NotificationService):
        self.service = service

    def __call__(self, event: DomainEvent) -> int:
        if event.action == "deleted":
            return cancel_contract_expiry(self.service, event.entity)
        return len(schedule_contract_expiry(self.service, event.entity, actor_id=event.actor_id))


def build_event_registry(
    service: NotificationService,
    event_types: Iterable[str] = HR_EVENT_TYPES,
    log_events: bool = True,
) -> EventRegistry:
    """Build the registry mapping HR event types to their handlers."""
    registry = EventRegistry()
    notify = HRNotificationHandler(service)
    reminders = ContractReminderHandler(service)

    for event_type in event_types:
        registry.register(event_type, notify)
        if event_type in ("contract.created", "contract.updated", "contract.renewed", "contract.deleted"):
            registry.register(event_type, reminders)

    if log_events:
        registry.register(WILDCARD, LoggingHandler())

    logger.info("hr_event_registry_built", event_types=len(registry.registered_events()))
    return registry
