"""Brevo transactional email integration settings."""

from pydantic import Field

from infrastructure.configuration.base import IntegrationSettings


class BrevoSettings(IntegrationSettings):
    """Brevo (ex-Sendinblue) API configuration.

    Environment Variables:
        BREVO_API_KEY: API key sent in the ``api-key`` header
        BREVO_API_URL: Base URL of the Brevo API
        BREVO_SENDER_NAME: Display name used as the email sender
        BREVO_SENDER_EMAIL: Address used as the email sender
        BREVO_TIMEOUT_SECONDS: Upper bound for a single provider call
        BREVO_VERIFY_TLS: Verify provider certificates outside production-like
            environments (always verified in staging/production)

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()

        api_url = settings.brevo.BREVO_API_URL
        verify = settings.brevo.verify_tls(settings.ENVIRONMENT)
        ```
    """

    BREVO_API_KEY: str | None = Field(default=None, alias="BREVO_API_KEY")
    BREVO_API_URL: str = Field(default="https://api.brevo.com", alias="BREVO_API_URL")
    BREVO_SENDER_NAME: str = Field(default="RRHH", alias="BREVO_SENDER_NAME")
    BREVO_SENDER_EMAIL: str = Field(
        default="no-reply@example.com", alias="BREVO_SENDER_EMAIL"
    )
    BREVO_TIMEOUT_SECONDS: float = Field(default=10.0, alias="BREVO_TIMEOUT_SECONDS")
    BREVO_VERIFY_TLS: bool = Field(default=True, alias="BREVO_VERIFY_TLS")

    def verify_tls(self, environment) -> bool:
        """Return whether outbound TLS must be verified for ``environment``.

        Production-like environments always verify; the flag only relaxes
        verification for local and development runs.
        """
        if environment.is_production_like:
            return True
        return self.BREVO_VERIFY_TLS
