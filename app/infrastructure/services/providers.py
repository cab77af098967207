"""
Factory functions for dependency injection.

Provides the application-scoped settings provider and the composition root of
the notification pipeline.
"""

from functools import lru_cache
from typing import Optional

from infrastructure.configuration import Settings
from infrastructure.logging import get_module_logger
from infrastructure.notifications import (
    Channel,
    DeliveryOutcomeHandler,
    NotificationDispatcher,
    NotificationService,
    PayloadBuilder,
    RecipientResolver,
    RelationRegistry,
    RuleStore,
    ScheduledNotificationStore,
    SerializerRegistry,
    UserDirectory,
)
from infrastructure.notifications.channels import (
    BroadcastChannel,
    Broadcaster,
    DatabaseChannel,
    EmailChannel,
    NotificationStore,
)
from integrations.brevo import BrevoClient
from modules.hr import build_relation_registry, build_serializer_registry

logger = get_module_logger()


@lru_cache
def get_settings() -> Settings:
    """
    Get application-scoped settings singleton.

    The @lru_cache decorator ensures only ONE instance is created per process,
    even if called from multiple packages.

    Returns:
        Settings: Cached settings instance loaded from environment.
    """
    return Settings()


def get_brevo_client(settings: Optional[Settings] = None) -> BrevoClient:
    """Brevo client configured for the current environment."""
    settings = settings or get_settings()
    return BrevoClient(settings.brevo, environment=settings.ENVIRONMENT)


def get_rule_store(settings: Optional[Settings] = None) -> RuleStore:
    """Rule store loaded from ``NOTIFICATION_RULES_FILE``.

    Raises:
        NotificationConfigError: If the rules file is missing or malformed.
    """
    settings = settings or get_settings()
    return RuleStore.from_file(
        settings.notifications.NOTIFICATION_RULES_FILE, settings.notifications
    )


def build_notification_service(
    directory: UserDirectory,
    store: NotificationStore,
    broadcaster: Broadcaster,
    settings: Optional[Settings] = None,
    client: Optional[BrevoClient] = None,
    scheduled: Optional[ScheduledNotificationStore] = None,
    rule_store: Optional[RuleStore] = None,
    serializers: Optional[SerializerRegistry] = None,
    relations: Optional[RelationRegistry] = None,
) -> NotificationService:
    """Assemble the notification pipeline.

    Called once at process start; the returned service is shared by every
    event handler. The user directory, the notification store and the
    broadcaster belong to the host application and are injected here.

    Args:
        directory: User lookups for recipient resolution
        store: Persistence of in-app notification records
        broadcaster: Real-time transport
        settings: Application settings (defaults to ``get_settings()``)
        client: Brevo client (defaults to one built from settings)
        scheduled: Store for scheduled notifications
        rule_store: Rule store (defaults to the configured rules file)
        serializers: Entity serializers (defaults to the HR serializers)
        relations: Recipient relations (defaults to the HR relations)

    Returns:
        NotificationService ready to ``notify``
    """
    settings = settings or get_settings()
    notifications = settings.notifications
    rule_store = rule_store or get_rule_store(settings)

    dispatcher = NotificationDispatcher(
        channels={
            Channel.DATABASE: DatabaseChannel(
                store, default_sender_id=notifications.NOTIFICATION_DEFAULT_SENDER_ID
            ),
            Channel.BROADCAST: BroadcastChannel(
                broadcaster, prefix=notifications.NOTIFICATION_BROADCAST_CHANNEL_PREFIX
            ),
            Channel.EMAIL: EmailChannel(client or get_brevo_client(settings)),
        },
        outcome_handler=DeliveryOutcomeHandler(),
        max_workers=notifications.NOTIFICATION_DISPATCH_MAX_WORKERS,
    )

    service = NotificationService(
        rule_store=rule_store,
        resolver=RecipientResolver(directory, relations or build_relation_registry()),
        builder=PayloadBuilder(
            rule_store,
            serializers or build_serializer_registry(),
            base_url=notifications.NOTIFICATION_BASE_URL,
        ),
        dispatcher=dispatcher,
        scheduled=scheduled,
    )
    logger.info(
        "notification_service_built",
        enabled_channels=[c.value for c in rule_store.enabled_channels()],
        environment=settings.ENVIRONMENT.value,
    )
    return service
