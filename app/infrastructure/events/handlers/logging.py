"""Logging handler for domain events.

Writes every dispatched event to the structured log.
"""

from infrastructure.events.models import DomainEvent
from infrastructure.logging import get_module_logger

logger = get_module_logger()


class LoggingHandler:
    """Handles structured logging for events."""

    def __init__(self):
        self.log = logger.bind(handler="logging_handler")

    def __call__(self, event: DomainEvent) -> None:
        self.handle(event)

    def handle(self, event: DomainEvent) -> None:
        data = event.to_dict()
        self.log.info(
            "event_occurred",
            event_type=data["event_type"],
            actor_id=data["actor_id"],
            correlation_id=data["correlation_id"],
            occurred_at=data["timestamp"],
        )
