"""Notification pipeline infrastructure settings."""

from pydantic import Field

from infrastructure.configuration.base import InfrastructureSettings


class NotificationSettings(InfrastructureSettings):
    """Notification pipeline configuration.

    The rule file holds the declarative (entity type, action) rules, the
    channel mapping and the email template bindings. The channel flags below
    act as global kill switches on top of that file: a channel is used only
    when both the file and the flag enable it.

    Environment Variables:
        NOTIFICATION_RULES_FILE: Path to the YAML rules file
        NOTIFICATION_DATABASE_ENABLED: Kill switch for in-app records
        NOTIFICATION_BROADCAST_ENABLED: Kill switch for real-time broadcast
        NOTIFICATION_EMAIL_ENABLED: Kill switch for email delivery
        NOTIFICATION_DISPATCH_MAX_WORKERS: Worker threads per dispatch (1 = sequential)
        NOTIFICATION_BROADCAST_CHANNEL_PREFIX: Prefix for per-user private channels
        NOTIFICATION_DEFAULT_SENDER_ID: Sender id stored when no actor is known
        NOTIFICATION_BASE_URL: Base URL used to build action links

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()

        if settings.notifications.NOTIFICATION_EMAIL_ENABLED:
            ...
        ```
    """

    NOTIFICATION_RULES_FILE: str = Field(
        default="config/notifications.yml", alias="NOTIFICATION_RULES_FILE"
    )
    NOTIFICATION_DATABASE_ENABLED: bool = Field(
        default=True, alias="NOTIFICATION_DATABASE_ENABLED"
    )
    NOTIFICATION_BROADCAST_ENABLED: bool = Field(
        default=True, alias="NOTIFICATION_BROADCAST_ENABLED"
    )
    NOTIFICATION_EMAIL_ENABLED: bool = Field(
        default=True, alias="NOTIFICATION_EMAIL_ENABLED"
    )
    NOTIFICATION_DISPATCH_MAX_WORKERS: int = Field(
        default=1, ge=1, alias="NOTIFICATION_DISPATCH_MAX_WORKERS"
    )
    NOTIFICATION_BROADCAST_CHANNEL_PREFIX: str = Field(
        default="private-user.", alias="NOTIFICATION_BROADCAST_CHANNEL_PREFIX"
    )
    NOTIFICATION_DEFAULT_SENDER_ID: int = Field(
        default=1, alias="NOTIFICATION_DEFAULT_SENDER_ID"
    )
    NOTIFICATION_BASE_URL: str = Field(default="", alias="NOTIFICATION_BASE_URL")

    def channel_flags(self) -> dict[str, bool]:
        """Channel kill switches keyed by channel name."""
        return {
            "database": self.NOTIFICATION_DATABASE_ENABLED,
            "broadcast": self.NOTIFICATION_BROADCAST_ENABLED,
            "email": self.NOTIFICATION_EMAIL_ENABLED,
        }
