"""Configuration management for the housekeeping task service."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database Configuration
    sqlite_db_path: str = Field(default="./data/housekeeping.db", description="SQLite database file path")

    # Session Configuration
    secret_key: str = Field(default="dev-secret-change-me", description="Secret used to sign session tokens")
    session_max_age_seconds: int = Field(default=7 * 24 * 3600, description="Session token lifetime in seconds")

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")
    environment: str = Field(default="development", description="Deployment environment name")

    # Expo Push Configuration
    expo_push_url: str = Field(
        default="https://exp.host/--/api/v2/push/send",
        description="Expo push notification endpoint",
    )
    expo_access_token: str | None = Field(default=None, description="Expo access token (optional)")

    # Notification Preference
    notifications_enabled_default: bool = Field(
        default=False,
        description="Value of the notifications flag before anyone has set it",
    )

    @property
    def is_production(self) -> bool:
        """Whether the service runs in production."""
        return self.environment == "production"

    def require_credential(self, field_name: str, service_name: str) -> str:
        """Validate that a required credential is set, raising a clear error if missing.

        Args:
            field_name: Name of the field to check
            service_name: Human-readable service name for error message

        Returns:
            The credential value

        Raises:
            ValueError: If the credential is None or empty
        """
        value = getattr(self, field_name)
        if not value:
            raise ValueError(
                f"{service_name} credential not configured. "
                f"Set {field_name.upper()} environment variable or add to .env file."
            )
        return value


# Application Constants
class Constants:
    """Application-wide constants."""

    # API Configuration
    API_TIMEOUT_SECONDS: int = 30

    # Pagination Defaults
    DEFAULT_PER_PAGE_LIMIT: int = 100  # Default pagination limit for list queries
    MAX_PER_PAGE_LIMIT: int = 1000  # Upper bound used for "list everything" queries

    # Credentials
    MIN_PASSWORD_LENGTH: int = 6

    # Push Delivery
    PUSH_MAX_RETRIES: int = 3
    PUSH_RETRY_DELAY_SECONDS: float = 1.0


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
constants = Constants()
