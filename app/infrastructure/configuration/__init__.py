"""Infrastructure configuration module - public API.

This module provides centralized configuration management for the HR
notification pipeline using Pydantic BaseSettings with domain-based
organization.

Exports:
    settings: Singleton Settings instance (main configuration object)
    Settings: Main settings class (for testing/overrides)
    Environment: Deployment environment enum
    BrevoSettings: Brevo email provider settings class (for testing)
    NotificationSettings: Notification pipeline settings class (for testing)

Example:
    ```python
    from infrastructure.services import get_settings

    settings = get_settings()

    api_url = settings.brevo.BREVO_API_URL
    email_enabled = settings.notifications.NOTIFICATION_EMAIL_ENABLED

    if settings.ENVIRONMENT.is_production_like:
        ...
    ```
"""

from infrastructure.configuration.settings import Environment, Settings, settings
from infrastructure.configuration.integrations.brevo import BrevoSettings
from infrastructure.configuration.infrastructure.notifications import (
    NotificationSettings,
)

__all__ = ["settings", "Settings", "Environment", "BrevoSettings", "NotificationSettings"]
