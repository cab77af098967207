"""HR notification pipeline.

Rule lookup → recipient resolution → payload building → per-channel delivery
(in-app record, private real-time broadcast, Brevo template email) →
delivery outcome logging.

Usage:
    from infrastructure.services import build_notification_service

    service = build_notification_service(directory, store, broadcaster)
    service.notify("contract", contract, "updated", actor_id=user.id)
"""

# Models
from infrastructure.notifications.models import (
    Channel,
    DeliveryAttempt,
    DeliveryStatus,
    EmailContent,
    NotificationConfig,
    NotificationPayload,
    NotificationRecord,
    NotificationRule,
    Recipient,
    RecipientSelector,
    ScheduledNotification,
    SelectorKind,
    TemplateBinding,
    UserRecord,
)

# Errors
from infrastructure.notifications.exceptions import (
    InvalidTransitionError,
    MissingTemplateVariableError,
    NotificationConfigError,
    NotificationError,
    TemplateError,
    UnknownEntityTypeError,
    UnknownTemplateError,
)

# Pipeline components
from infrastructure.notifications.rules import RuleStore, load_notification_config
from infrastructure.notifications.recipients import (
    InMemoryUserDirectory,
    RecipientResolver,
    RelationRegistry,
    UserDirectory,
)
from infrastructure.notifications.templates import PayloadBuilder, SerializerRegistry
from infrastructure.notifications.dispatcher import NotificationDispatcher
from infrastructure.notifications.outcomes import DeliveryOutcomeHandler, DispatchSummary
from infrastructure.notifications.scheduled import (
    InMemoryScheduledNotificationStore,
    ScheduledNotificationStore,
)
from infrastructure.notifications.service import NotificationService

__all__ = [
    # Models
    "Channel",
    "DeliveryAttempt",
    "DeliveryStatus",
    "EmailContent",
    "NotificationConfig",
    "NotificationPayload",
    "NotificationRecord",
    "NotificationRule",
    "Recipient",
    "RecipientSelector",
    "ScheduledNotification",
    "SelectorKind",
    "TemplateBinding",
    "UserRecord",
    # Errors
    "InvalidTransitionError",
    "MissingTemplateVariableError",
    "NotificationConfigError",
    "NotificationError",
    "TemplateError",
    "UnknownEntityTypeError",
    "UnknownTemplateError",
    # Components
    "RuleStore",
    "load_notification_config",
    "InMemoryUserDirectory",
    "RecipientResolver",
    "RelationRegistry",
    "UserDirectory",
    "PayloadBuilder",
    "SerializerRegistry",
    "NotificationDispatcher",
    "DeliveryOutcomeHandler",
    "DispatchSummary",
    "InMemoryScheduledNotificationStore",
    "ScheduledNotificationStore",
    "NotificationService",
]
