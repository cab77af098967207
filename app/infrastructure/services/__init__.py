"""
Service providers.

Provides the settings singleton and the factories that assemble the
notification pipeline at process start.
"""

from infrastructure.services.providers import (
    build_notification_service,
    get_brevo_client,
    get_rule_store,
    get_settings,
)

__all__ = [
    "build_notification_service",
    "get_brevo_client",
    "get_rule_store",
    "get_settings",
]
