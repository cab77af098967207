"""Integration settings __init__ - exports all integration settings."""

from infrastructure.configuration.integrations.brevo import BrevoSettings

__all__ = [
    "BrevoSettings",
]
