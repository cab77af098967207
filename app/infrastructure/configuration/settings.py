"""HR notifications configuration settings - main aggregator."""

from enum import Enum

from pydantic_settings import BaseSettings, SettingsConfigDict

# Integration settings
from infrastructure.configuration.integrations import BrevoSettings

# Infrastructure settings
from infrastructure.configuration.infrastructure import NotificationSettings


class Environment(str, Enum):
    """Deployment environment."""

    LOCAL = "local"
    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"

    @property
    def is_production_like(self) -> bool:
        return self in (Environment.STAGING, Environment.PRODUCTION)


class Settings(BaseSettings):
    """HR notifications configuration settings - main aggregator.

    Aggregates all domain-specific settings into a single configuration object.
    Settings are organized by concern:

    - **Integrations**: External service configurations (Brevo)
    - **Infrastructure**: Core pipeline configurations (notification rules, channels)

    Environment Variables:
        APP_NAME: Application name used in log context
        ENVIRONMENT: Deployment environment (local, development, testing,
            staging, production)
        LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
        GIT_SHA: Git commit SHA for deployment tracking

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()

        # Access integration settings
        api_url = settings.brevo.BREVO_API_URL

        # Access infrastructure settings
        rules_file = settings.notifications.NOTIFICATION_RULES_FILE

        # Check environment
        if settings.is_production:
            # Production-specific logic...
        ```
    """

    # Application-level settings
    APP_NAME: str = "hr-notifications"
    ENVIRONMENT: Environment = Environment.LOCAL
    LOG_LEVEL: str = "INFO"
    GIT_SHA: str = "Unknown"

    # Integration settings
    brevo: BrevoSettings

    # Infrastructure settings
    notifications: NotificationSettings

    @property
    def is_production(self) -> bool:
        """Check if the application is running in production.

        Returns:
            True if ENVIRONMENT is production, False otherwise.
        """
        return self.ENVIRONMENT == Environment.PRODUCTION

    def __init__(self, **kwargs):
        """Initialize Settings with automatic subsettings instantiation.

        Args:
            **kwargs: Optional overrides for specific settings sections.
        """
        settings_map = {
            # Integrations
            "brevo": BrevoSettings,
            # Infrastructure
            "notifications": NotificationSettings,
        }

        for setting_name, setting_class in settings_map.items():
            if setting_name not in kwargs:
                kwargs[setting_name] = setting_class()

        super().__init__(**kwargs)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


# Create the singleton settings instance
settings = Settings()
