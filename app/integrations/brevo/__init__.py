"""Brevo transactional email integration."""

from integrations.brevo.client import BrevoClient, flatten_params, unflatten_params

__all__ = ["BrevoClient", "flatten_params", "unflatten_params"]
