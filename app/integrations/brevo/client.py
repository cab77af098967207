"""Brevo transactional email client.

Sends template emails through ``POST /v3/smtp/email``. Template variables are
sent flat: nested values are flattened to dotted keys (``contact.NAME``)
because the provider does not accept nested JSON params.
"""

from typing import Any, Dict, Mapping, Optional

import requests

from infrastructure.configuration import BrevoSettings, Environment
from infrastructure.logging import get_module_logger
from infrastructure.operations import (
    OperationResult,
    classify_http_response,
    classify_request_exception,
    is_success_status,
)

logger = get_module_logger()

PROVIDER = "Brevo"
SEND_EMAIL_PATH = "/v3/smtp/email"
TEMPLATES_PATH = "/v3/smtp/templates"


def flatten_params(params: Mapping[str, Any], parent_key: str = "") -> Dict[str, Any]:
    """Flatten nested mappings into dotted keys.

    Example:
        flatten_params({"contact": {"COMPANY_NAME": "Acme"}})
        # {"contact.COMPANY_NAME": "Acme"}
    """
    flat: Dict[str, Any] = {}
    for key, value in params.items():
        full_key = f"{parent_key}.{key}" if parent_key else str(key)
        if isinstance(value, Mapping) and value:
            flat.update(flatten_params(value, full_key))
        else:
            flat[full_key] = value
    return flat


def unflatten_params(params: Mapping[str, Any]) -> Dict[str, Any]:
    """Expand dotted keys back into nested dicts (inverse of flatten_params)."""
    nested: Dict[str, Any] = {}
    for key, value in params.items():
        parts = key.split(".")
        current = nested
        for part in parts[:-1]:
            current = current.setdefault(part, {})
        current[parts[-1]] = value
    return nested


class BrevoClient:
    """Client for the Brevo transactional email API.

    Nothing in this client raises on provider or network failure: every call
    returns an OperationResult carrying the HTTP status code and the provider
    body when there is one.

    Attributes:
        settings: BrevoSettings with credentials, sender and timeout
        environment: Deployment environment, decides TLS verification
    """

    def __init__(self, settings: BrevoSettings, environment: Environment = Environment.PRODUCTION):
        self.settings = settings
        self.environment = environment
        self.base_url = settings.BREVO_API_URL.rstrip("/")
        self.timeout = settings.BREVO_TIMEOUT_SECONDS

    @property
    def verify_tls(self) -> bool:
        return self.settings.verify_tls(self.environment)

    def _headers(self) -> Dict[str, str]:
        return {
            "accept": "application/json",
            "content-type": "application/json",
            "api-key": self.settings.BREVO_API_KEY or "",
        }

    def build_message(
        self,
        recipient_address: str,
        template_id: int,
        variables: Mapping[str, Any],
        recipient_name: Optional[str] = None,
    ) -> Dict[str, Any]:
        return {
            "sender": {
                "name": self.settings.BREVO_SENDER_NAME,
                "email": self.settings.BREVO_SENDER_EMAIL,
            },
            "to": [{"email": recipient_address, "name": recipient_name or recipient_address}],
            "templateId": int(template_id),
            "params": flatten_params(variables),
        }

    def send(
        self,
        recipient_address: str,
        template_id: int,
        variables: Mapping[str, Any],
        recipient_name: Optional[str] = None,
    ) -> OperationResult:
        """Send a template email to one recipient.

        Returns:
            OperationResult; on success ``data`` holds ``message_id`` and the
            provider body; on failure ``status_code`` and ``data["body"]``
            carry the provider's answer.
        """
        if not self.settings.BREVO_API_KEY:
            logger.error("brevo_send_skipped", error="BREVO_API_KEY is missing")
            return OperationResult.permanent_error(
                "BREVO_API_KEY is missing", error_code="MISSING_API_KEY"
            )

        url = self.base_url + SEND_EMAIL_PATH
        body = self.build_message(recipient_address, template_id, variables, recipient_name)

        try:
            response = requests.post(
                url,
                json=body,
                headers=self._headers(),
                timeout=self.timeout,
                verify=self.verify_tls,
            )
        except requests.RequestException as e:
            result = classify_request_exception(e, provider=PROVIDER)
            logger.warning(
                "brevo_request_failed",
                template_id=template_id,
                error=result.message,
                error_code=result.error_code,
            )
            return result

        if not is_success_status(response.status_code):
            return classify_http_response(response, provider=PROVIDER)

        try:
            response_body = response.json()
        except ValueError:
            response_body = {}
        message_id = response_body.get("messageId") if isinstance(response_body, dict) else None

        return OperationResult.success(
            data={"message_id": message_id, "body": response_body},
            message="Email accepted by Brevo",
            status_code=response.status_code,
        )

    def list_templates(self, active_only: bool = True, limit: int = 50) -> OperationResult:
        """List the account's transactional templates.

        Returns:
            OperationResult with ``data`` as a list of ``{"id", "name",
            "subject", "is_active"}`` dicts.
        """
        if not self.settings.BREVO_API_KEY:
            return OperationResult.permanent_error(
                "BREVO_API_KEY is missing", error_code="MISSING_API_KEY"
            )

        params: Dict[str, Any] = {"limit": limit, "offset": 0}
        if active_only:
            params["templateStatus"] = "true"

        try:
            response = requests.get(
                self.base_url + TEMPLATES_PATH,
                params=params,
                headers=self._headers(),
                timeout=self.timeout,
                verify=self.verify_tls,
            )
        except requests.RequestException as e:
            return classify_request_exception(e, provider=PROVIDER)

        if not is_success_status(response.status_code):
            return classify_http_response(response, provider=PROVIDER)

        try:
            templates = response.json().get("templates") or []
        except (ValueError, AttributeError):
            templates = []

        return OperationResult.success(
            data=[
                {
                    "id": t.get("id"),
                    "name": t.get("name"),
                    "subject": t.get("subject"),
                    "is_active": t.get("isActive"),
                }
                for t in templates
            ],
            message=f"Listed {len(templates)} templates",
            status_code=response.status_code,
        )

    def health_check(self) -> OperationResult:
        result = self.list_templates(limit=1)
        if result.is_success:
            return OperationResult.success(message="Brevo API healthy")
        return result
