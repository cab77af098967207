"""Email channel delivering template emails through the Brevo client."""

from infrastructure.logging import get_module_logger
from infrastructure.notifications.channels.base import NotificationChannel
from infrastructure.notifications.models import (
    Channel,
    NotificationPayload,
    Recipient,
)
from infrastructure.operations import OperationResult
from integrations.brevo import BrevoClient

logger = get_module_logger()


class EmailChannel(NotificationChannel):
    """Email notification channel using the Brevo transactional API.

    Template id, subject and variables come from the payload's email part;
    they are resolved and validated by the payload builder before dispatch.
    """

    def __init__(self, client: BrevoClient):
        self.client = client

    @property
    def channel_name(self) -> Channel:
        return Channel.EMAIL

    def send(self, recipient: Recipient, payload: NotificationPayload) -> OperationResult:
        resolve_result = self.resolve_recipient(recipient)
        if not resolve_result.is_success:
            return resolve_result

        if payload.email is None:
            return OperationResult.permanent_error(
                "Payload has no email content", error_code="MISSING_EMAIL_CONTENT"
            )

        variables = {"SUBJECT": payload.email.subject, **payload.email.variables}
        result = self.client.send(
            recipient_address=resolve_result.data["address"],
            template_id=payload.email.template_id,
            variables=variables,
            recipient_name=recipient.name or None,
        )
        if result.is_success:
            return OperationResult.success(
                data={"external_id": (result.data or {}).get("message_id")},
                message=result.message,
                status_code=result.status_code,
            )
        return result

    def resolve_recipient(self, recipient: Recipient) -> OperationResult:
        """Email is native format; fails when the recipient has no address."""
        if not recipient.email:
            return OperationResult.permanent_error(
                message="Email address required",
                error_code="MISSING_EMAIL",
            )
        return OperationResult.success(
            message="Email validated",
            data={"address": str(recipient.email)},
        )

    def health_check(self) -> OperationResult:
        return self.client.health_check()
