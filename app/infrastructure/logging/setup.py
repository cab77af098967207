"""Structlog configuration for the notification pipeline.

Every module gets its logger through ``get_module_logger()``; the process
configures rendering once at startup with ``configure_logging()``. Development
runs render colored console lines, production-like runs emit one JSON object
per entry so that delivery failures can be queried by ``status_code``,
``template_id`` or ``correlation_id``.

Usage:
    from infrastructure.logging import configure_logging, get_module_logger

    configure_logging()

    logger = get_module_logger()
    logger.info("notification_delivered", channel="email", receiver_id=3)
"""

import inspect
import logging
import sys
from typing import Any, List, Optional

import structlog
from structlog.stdlib import BoundLogger

from infrastructure.configuration import settings
from infrastructure.logging.formatters import (
    add_app_info,
    add_environment_info,
    mask_sensitive_data,
    truncate_large_values,
)

SILENT_LEVEL = logging.CRITICAL + 1


def _running_under_pytest() -> bool:
    return "pytest" in sys.modules


def build_processors(json_output: bool) -> List[Any]:
    """Processor chain shared by console and JSON output.

    Dispatch context (correlation id, entity type, action) is merged first so
    that masking and truncation also apply to bound values.
    """
    processors: List[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_app_info(settings.APP_NAME, settings.GIT_SHA),
        add_environment_info(settings.ENVIRONMENT.value),
        mask_sensitive_data(),
        truncate_large_values(),
        structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.MODULE,
                structlog.processors.CallsiteParameter.FUNC_NAME,
                structlog.processors.CallsiteParameter.LINENO,
            ]
        ),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    processors.append(
        structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    )
    return processors


def _silence_for_tests() -> BoundLogger:
    # structlog still needs a processor chain; the root level drops every record
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(format="%(message)s", level=SILENT_LEVEL, force=True)
    logging.root.setLevel(SILENT_LEVEL)
    return structlog.stdlib.get_logger()


def configure_logging(
    log_level: Optional[str] = None,
    is_production: Optional[bool] = None,
) -> BoundLogger:
    """Configure structlog and the stdlib root logger.

    Under pytest all output is suppressed; tests assert on log entries with
    ``structlog.testing.capture_logs`` instead.

    Args:
        log_level: Level name; defaults to ``settings.LOG_LEVEL``.
        is_production: JSON output when true; defaults to whether the
            environment is production-like.

    Returns:
        The root bound logger
    """
    if _running_under_pytest():
        return _silence_for_tests()

    if is_production is None:
        is_production = settings.ENVIRONMENT.is_production_like

    structlog.configure(
        processors=build_processors(json_output=is_production),
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    level_name = (log_level or settings.LOG_LEVEL).upper()
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level_name, logging.INFO),
    )
    return structlog.stdlib.get_logger()


logger: BoundLogger = configure_logging()


def get_module_logger() -> BoundLogger:
    """Logger bound to the calling module.

    Binds ``component`` (last dotted segment) and ``module_path``, e.g. in
    ``infrastructure/notifications/dispatcher.py``:

        logger = get_module_logger()
        # {"component": "dispatcher",
        #  "module_path": "infrastructure.notifications.dispatcher"}
    """
    frame = inspect.currentframe()
    caller = frame.f_back if frame is not None else None
    module = inspect.getmodule(caller) if caller is not None else None
    if module is None:
        return logger.bind(component="unknown")

    return logger.bind(
        component=module.__name__.rsplit(".", 1)[-1],
        module_path=module.__name__,
    )
