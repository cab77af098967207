"""Structured logging infrastructure.

This package provides centralized logging configuration and utilities
for the HR notification pipeline using structlog.

Public API:
    - configure_logging(): Initialize logging for the application
    - get_module_logger(): Get a logger for the calling module
    - bind_dispatch_context(): Context manager for dispatch-scoped logging
    - get_correlation_id(): Get current correlation ID from context
    - clear_dispatch_context(): Clear all dispatch context

Formatters:
    - add_app_info(): Processor to add app name/version
    - mask_sensitive_data(): Processor to redact sensitive fields
    - truncate_large_values(): Processor to limit string lengths
    - add_environment_info(): Processor to add environment name

Example:
    from infrastructure.logging import (
        configure_logging,
        get_module_logger,
        bind_dispatch_context,
    )

    # At application startup
    configure_logging()

    # In a module
    logger = get_module_logger()
    logger.info("module_initialized")

    # Around a dispatch
    with bind_dispatch_context(entity_type="contract", action="updated"):
        logger.info("dispatch_started")
"""

# Core logging setup
from infrastructure.logging.setup import (
    configure_logging,
    get_module_logger,
    logger,
)

# Dispatch context binding
from infrastructure.logging.context import (
    bind_dispatch_context,
    get_correlation_id,
    clear_dispatch_context,
)

# Log formatters/processors
from infrastructure.logging.formatters import (
    add_app_info,
    mask_sensitive_data,
    truncate_large_values,
    add_environment_info,
    SENSITIVE_PATTERNS,
)

__all__ = [
    # Setup
    "configure_logging",
    "get_module_logger",
    "logger",
    # Context
    "bind_dispatch_context",
    "get_correlation_id",
    "clear_dispatch_context",
    # Formatters
    "add_app_info",
    "mask_sensitive_data",
    "truncate_large_values",
    "add_environment_info",
    "SENSITIVE_PATTERNS",
]
