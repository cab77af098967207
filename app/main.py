from typing import Tuple

from infrastructure.events import EventRegistry
from infrastructure.logging import configure_logging, get_module_logger
from infrastructure.notifications import NotificationService, UserDirectory
from infrastructure.notifications.channels import Broadcaster, NotificationStore
from infrastructure.services import (
    build_notification_service,
    get_brevo_client,
    get_settings,
)
from jobs import scheduled_tasks
from modules.hr import build_event_registry

logger = get_module_logger()


def create_pipeline(
    directory: UserDirectory,
    store: NotificationStore,
    broadcaster: Broadcaster,
) -> Tuple[NotificationService, EventRegistry]:
    """Build the notification service and the HR event registry.

    The host application calls this once at startup and dispatches its
    domain events through the returned registry.
    """
    settings = get_settings()
    configure_logging(log_level=settings.LOG_LEVEL)
    list_configs()

    client = get_brevo_client(settings)
    service = build_notification_service(
        directory, store, broadcaster, settings=settings, client=client
    )
    registry = build_event_registry(service)
    logger.info(
        "application_startup",
        environment=settings.ENVIRONMENT.value,
        event_types=len(registry.registered_events()),
    )
    return service, registry


def start_scheduler(service: NotificationService):
    """Start the scheduled jobs; returns the event that stops them."""
    scheduled_tasks.init(service, get_brevo_client())
    return scheduled_tasks.run_continuously()


def list_configs():
    """List all configuration settings keys"""
    settings = get_settings()
    config_settings = {"settings": []}

    for key, value in settings.model_dump().items():
        if isinstance(value, dict):
            config_settings[key] = list(value.keys())
        else:
            config_settings["settings"].append({key: value})

    logger.info("configuration_initialized", base_settings=config_settings["settings"])
    for key, value in config_settings.items():
        if key != "settings":
            logger.info("configuration_loaded", config_setting=key, keys=value)
