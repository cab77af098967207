"""Notification pipeline exceptions.

Configuration errors are raised while building a payload, before any channel
is contacted. Transport errors are never raised; channels report them as
failed delivery attempts.
"""

from typing import Iterable, Optional


class NotificationError(Exception):
    """Base exception for the notification pipeline."""


class NotificationConfigError(NotificationError):
    """Rules file is missing, unreadable or malformed."""


class TemplateError(NotificationError):
    """Email template cannot be resolved or rendered."""


class UnknownTemplateError(TemplateError):
    """Template key or id has no configured binding."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Unknown email template: {key}")


class MissingTemplateVariableError(TemplateError):
    """Payload lacks values required by the provider template."""

    def __init__(self, template_id: int, missing: Iterable[str], key: Optional[str] = None):
        self.template_id = template_id
        self.missing = sorted(missing)
        self.key = key
        super().__init__(
            f"Template {template_id} requires missing variables: {', '.join(self.missing)}"
        )


class UnknownEntityTypeError(NotificationError):
    """No serializer is registered for the entity type."""

    def __init__(self, entity_type: str):
        self.entity_type = entity_type
        super().__init__(f"No serializer registered for entity type: {entity_type}")


class InvalidTransitionError(NotificationError):
    """Delivery attempt state change outside ``pending -> sent | failed``."""

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot transition delivery attempt from {current} to {target}")
