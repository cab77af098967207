"""Domain event registry.

Usage:

    from infrastructure.events import DomainEvent, EventRegistry

    registry = EventRegistry()

    @registry.register("contract.updated")
    def handle_contract_updated(event: DomainEvent) -> None:
        ...

    registry.dispatch(DomainEvent("contract.updated", entity=contract, actor_id=3))
"""

from infrastructure.events.dispatcher import WILDCARD, EventRegistry
from infrastructure.events.handlers import LoggingHandler
from infrastructure.events.models import DomainEvent

__all__ = [
    "DomainEvent",
    "EventRegistry",
    "LoggingHandler",
    "WILDCARD",
]
