"""Structlog processors used by the notification pipeline.

Usage:
    from infrastructure.logging.formatters import add_app_info, mask_sensitive_data
"""

from typing import Any, Callable

Processor = Callable[[Any, str, dict[str, Any]], dict[str, Any]]


def add_app_info(app_name: str, app_version: str = "unknown") -> Processor:
    """Create a processor that adds application name and version to log entries."""

    def processor(
        logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        event_dict["app_name"] = app_name
        event_dict["app_version"] = app_version
        return event_dict

    return processor


# Keys whose values never reach the log output
SENSITIVE_PATTERNS = frozenset(
    {
        "password",
        "secret",
        "token",
        "api_key",
        "apikey",
        "authorization",
        "credential",
        "private_key",
        "cookie",
    }
)


def mask_sensitive_data(
    mask_value: str = "***REDACTED***",
    additional_patterns: frozenset[str] | None = None,
) -> Processor:
    """Create a processor that masks sensitive data in log entries.

    Keys are matched case-insensitively against ``SENSITIVE_PATTERNS``. Nested
    dicts (for example provider request headers) are masked recursively.

    Args:
        mask_value: The string to replace sensitive values with.
        additional_patterns: Extra patterns to consider sensitive.

    Returns:
        A structlog processor function.
    """
    patterns = SENSITIVE_PATTERNS
    if additional_patterns:
        patterns = patterns | additional_patterns

    def _is_sensitive(key: str) -> bool:
        key_lower = key.lower().replace("-", "_")
        return any(pattern in key_lower for pattern in patterns)

    def _mask(value: Any) -> Any:
        if isinstance(value, dict):
            return {
                k: (mask_value if _is_sensitive(str(k)) and v is not None else _mask(v))
                for k, v in value.items()
            }
        return value

    def processor(
        logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        return _mask(event_dict)

    return processor


def truncate_large_values(max_length: int = 500) -> Processor:
    """Create a processor that truncates overly large string values.

    Provider error bodies can be arbitrarily long; they are cut to
    ``max_length`` characters with a marker carrying the original size.
    """

    def processor(
        logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        for key, value in event_dict.items():
            if isinstance(value, str) and len(value) > max_length:
                event_dict[key] = (
                    value[:max_length] + f"...[truncated, {len(value)} chars total]"
                )
        return event_dict

    return processor


def add_environment_info(environment: str) -> Processor:
    """Create a processor that adds the deployment environment to log entries."""

    def processor(
        logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        event_dict["environment"] = environment
        return event_dict

    return processor
