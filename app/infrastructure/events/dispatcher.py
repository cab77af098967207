"""Explicit domain event registry.

The registry maps event types to ordered handler lists. It is built once at
process start (see ``modules.hr.events.build_event_registry``) and handlers
are called synchronously in registration order. A failing handler is logged
and never stops the remaining ones.
"""

from concurrent.futures import ThreadPoolExecutor
from threading import Lock
from typing import Any, Callable, Dict, List, Optional

from infrastructure.events.models import DomainEvent
from infrastructure.logging import get_module_logger

logger = get_module_logger()

WILDCARD = "*"

Handler = Callable[[DomainEvent], Any]


class EventRegistry:
    """Event type → ordered list of handlers.

    Handlers registered under ``"*"`` run for every event, after the
    handlers of the specific type.

    Example:
        registry = EventRegistry()

        @registry.register("contract.updated")
        def notify_contract_updated(event: DomainEvent) -> None:
            ...

        registry.dispatch(DomainEvent("contract.updated", entity=contract))
    """

    def __init__(self, max_workers: int = 4):
        self._handlers: Dict[str, List[Handler]] = {}
        self._max_workers = max_workers
        self._executor: Optional[ThreadPoolExecutor] = None
        self._executor_lock = Lock()
        self._executor_shutdown = False

    def register(self, event_type: str, handler: Optional[Handler] = None):
        """Register ``handler`` for ``event_type``; usable as a decorator."""

        def decorator(handler_func: Handler) -> Handler:
            self._handlers.setdefault(event_type, []).append(handler_func)
            logger.debug(
                "registered_event_handler",
                handler=getattr(handler_func, "__name__", "unknown"),
                event_type=event_type,
                total_handlers=len(self._handlers[event_type]),
            )
            return handler_func

        if handler is not None:
            return decorator(handler)
        return decorator

    def handlers_for(self, event_type: str) -> List[Handler]:
        return list(self._handlers.get(event_type, [])) + list(
            self._handlers.get(WILDCARD, []) if event_type != WILDCARD else []
        )

    def registered_events(self) -> List[str]:
        return [event_type for event_type in self._handlers if event_type != WILDCARD]

    def dispatch(self, event: DomainEvent) -> List[Any]:
        """Dispatch event synchronously to all registered handlers.

        Returns:
            Return values of the handlers that completed.
        """
        results = []
        handlers = self.handlers_for(event.event_type)

        logger.info(
            "dispatching_event",
            event_type=event.event_type,
            handler_count=len(handlers),
            correlation_id=str(event.correlation_id),
        )

        for handler in handlers:
            try:
                results.append(handler(event))
            except Exception as e:
                logger.error(
                    "event_handler_failed",
                    handler=getattr(handler, "__name__", "unknown"),
                    event_type=event.event_type,
                    error=str(e),
                    correlation_id=str(event.correlation_id),
                )

        return results

    def dispatch_background(self, event: DomainEvent) -> None:
        """Submit the dispatch to the registry's executor (fire-and-forget).

        Submissions after ``shutdown`` are dropped with an error log.
        """
        executor = self._get_or_create_executor()
        if executor is None:
            logger.error(
                "event_executor_unavailable",
                event_type=event.event_type,
                correlation_id=str(event.correlation_id),
            )
            return
        executor.submit(self._background_worker, event)

    def shutdown(self, wait: bool = True) -> None:
        """Stop the background executor; idempotent."""
        with self._executor_lock:
            self._executor_shutdown = True
            if self._executor is None:
                return
            try:
                self._executor.shutdown(wait=wait)
                logger.debug("background_event_executor_shut_down", wait=wait)
            finally:
                self._executor = None

    def clear(self) -> None:
        self._handlers.clear()

    def _background_worker(self, event: DomainEvent) -> None:
        try:
            self.dispatch(event)
        except Exception as e:
            logger.exception(
                "background_event_dispatch_failed",
                event_type=event.event_type,
                error=str(e),
                correlation_id=str(event.correlation_id),
            )

    def _get_or_create_executor(self) -> Optional[ThreadPoolExecutor]:
        with self._executor_lock:
            if self._executor_shutdown:
                return None
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self._max_workers, thread_name_prefix="domain-events"
                )
                logger.debug("created_background_event_executor", max_workers=self._max_workers)
            return self._executor
