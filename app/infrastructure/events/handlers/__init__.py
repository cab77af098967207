"""Event handlers for the domain event registry."""

from infrastructure.events.handlers.logging import LoggingHandler

__all__ = ["LoggingHandler"]
