"""Event models for the domain event registry."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple
from uuid import UUID, uuid4


@dataclass(frozen=True)
class DomainEvent:
    """Something that happened to an HR entity.

    ``event_type`` is ``"{entity_type}.{action}"`` (e.g. ``contract.updated``).
    Events are immutable once dispatched.
    """

    event_type: str
    """The type of event (e.g., 'contract.updated')."""

    entity: Any = None
    """Entity instance the event is about."""

    actor_id: Optional[int] = None
    """User who performed the action."""

    extra: Dict[str, Any] = field(default_factory=dict)
    """Values merged into notification templates (e.g. days_remaining)."""

    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    """When the event occurred."""

    correlation_id: UUID = field(default_factory=uuid4)
    """Unique ID to track the event through the notification pipeline."""

    @property
    def entity_type(self) -> str:
        return self.split()[0]

    @property
    def action(self) -> str:
        return self.split()[1]

    def split(self) -> Tuple[str, str]:
        """Split ``event_type`` into (entity_type, action).

        Raises:
            ValueError: If the event type has no ``entity.action`` form.
        """
        entity_type, sep, action = self.event_type.rpartition(".")
        if not sep or not entity_type or not action:
            raise ValueError(f"Event type must be 'entity.action': {self.event_type}")
        return entity_type, action

    def to_dict(self) -> Dict[str, Any]:
        """Serialize event metadata (without the entity) for logs."""
        return {
            "event_type": self.event_type,
            "actor_id": self.actor_id,
            "extra": dict(self.extra),
            "timestamp": self.timestamp.isoformat(),
            "correlation_id": str(self.correlation_id),
        }
