"""Infrastructure modules for the HR notification pipeline.

Centralized infrastructure components:
- configuration: Settings management (settings, BrevoSettings, NotificationSettings)
- logging: Structured logging (get_module_logger, logger, bind_dispatch_context)
- operations: Operation results and error classification
- events: Domain event registry
- notifications: Rule store, recipient resolution, payload building, channels
- services: Settings provider and pipeline composition
"""

# Configuration
from infrastructure.configuration import settings

# Observability
from infrastructure.logging import get_module_logger, logger

# Operations
from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus

__all__ = [
    # Configuration
    "settings",
    # Observability
    "get_module_logger",
    "logger",
    # Operations
    "OperationResult",
    "OperationStatus",
]
