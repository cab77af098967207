"""Dispatch context binding for structured logging.

This module binds dispatch-scoped context to logs so that every entry
written while a domain event is being notified carries the same
correlation id, entity type and action.

Usage:
    from infrastructure.logging import bind_dispatch_context

    with bind_dispatch_context(entity_type="contract", action="updated"):
        # All logs within this block will include the context
        logger.info("recipients_resolved", count=3)

Dependencies:
    - structlog.contextvars
"""

import uuid
from contextlib import contextmanager
from typing import Optional, Any, Generator
import structlog


@contextmanager
def bind_dispatch_context(
    correlation_id: Optional[str] = None,
    entity_type: Optional[str] = None,
    action: Optional[str] = None,
    entity_id: Optional[Any] = None,
    actor_id: Optional[Any] = None,
    **extra_context: Any,
) -> Generator[str, None, None]:
    """Bind dispatch-scoped context to all logs within the context manager.

    Args:
        correlation_id: Unique dispatch identifier. Auto-generated if not provided.
        entity_type: Entity type of the triggering event (e.g., "contract").
        action: Action of the triggering event (e.g., "updated").
        entity_id: Identifier of the entity (if available).
        actor_id: Identifier of the acting user (if available).
        **extra_context: Additional key-value pairs to include in logs.

    Yields:
        The correlation id bound for the block.

    Example:
        with bind_dispatch_context(
            entity_type=rule.entity_type,
            action=rule.action,
            entity_id=entity.id,
        ) as correlation_id:
            dispatcher.dispatch(rule, recipients, payload)
    """
    context: dict[str, Any] = {}

    context["correlation_id"] = correlation_id or str(uuid.uuid4())

    if entity_type is not None:
        context["entity_type"] = entity_type

    if action is not None:
        context["action"] = action

    if entity_id is not None:
        context["entity_id"] = entity_id

    if actor_id is not None:
        context["actor_id"] = actor_id

    context.update(extra_context)

    # Values already bound by an outer block are restored on exit
    previous = structlog.contextvars.get_contextvars()
    structlog.contextvars.bind_contextvars(**context)
    try:
        yield context["correlation_id"]
    finally:
        structlog.contextvars.unbind_contextvars(*context.keys())
        restored = {k: previous[k] for k in context if k in previous}
        if restored:
            structlog.contextvars.bind_contextvars(**restored)


def get_correlation_id() -> Optional[str]:
    """Get the current correlation ID from the logging context.

    Returns:
        The correlation ID if set, None otherwise.
    """
    ctx = structlog.contextvars.get_contextvars()
    return ctx.get("correlation_id")


def clear_dispatch_context() -> None:
    """Clear all dispatch-scoped context from the logging context.

    Example:
        try:
            run_due_notifications()
        finally:
            clear_dispatch_context()
    """
    structlog.contextvars.clear_contextvars()
