"""
Configuration management for Gatherly.

Uses Pydantic Settings for type-safe environment variable loading.
Configured via .env file in project root.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be configured via .env file or environment variables.
    See .env.example for available options.
    """

    # Python & Application
    python_env: Literal["development", "production"] = Field(
        default="development",
        description="Application environment"
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level"
    )

    # Relational store
    database_url: str = Field(
        default="sqlite:///./data/gatherly.db",
        description="Relational store connection URL"
    )

    # Document store
    document_store_provider: Literal["firestore", "memory", "none"] = Field(
        default="memory",
        description="Document store backend (firestore, in-process memory, or none)"
    )
    firestore_project_id: str = Field(
        default="",
        description="Google Cloud project hosting the Firestore database"
    )
    google_service_account_file: str = Field(
        default="",
        description="Path to Google service account JSON key file"
    )
    google_service_account_json: str = Field(
        default="",
        description="Google service account JSON (alternative to file, for deployments)"
    )

    # Dual write
    primary_store: Literal["document", "relational"] = Field(
        default="document",
        description="System of record for events and calendars; the other store is the mirror"
    )

    # Fallback data
    seed_data_enabled: bool = Field(
        default=True,
        description="Serve the built-in seed dataset when no store can answer a read"
    )
    seed_data_file: str = Field(
        default="",
        description="Optional JSON file replacing the built-in seed dataset"
    )

    # Outbound email
    email_api_url: str = Field(
        default="https://api.resend.com/emails",
        description="Email provider send endpoint"
    )
    email_api_key: str = Field(
        default="",
        description="Email provider API key"
    )
    email_from_address: str = Field(
        default="Gatherly <invites@gatherly.app>",
        description="Sender address for invitation emails"
    )
    email_webhook_secret: str = Field(
        default="",
        description="Shared secret for verifying email provider webhooks"
    )
    app_base_url: str = Field(
        default="http://localhost:8000",
        description="Public base URL used for tracking pixel and link URLs"
    )

    # API Configuration
    api_host: str = Field(
        default="0.0.0.0",
        description="API server host"
    )
    api_port: int = Field(
        default=8000,
        description="API server port"
    )
    api_reload: bool = Field(
        default=True,
        description="Enable auto-reload in development"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.python_env == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.python_env == "production"

    @property
    def uses_postgresql(self) -> bool:
        """Check if PostgreSQL is the configured database."""
        return "postgresql" in self.database_url.lower()

    @property
    def uses_firestore(self) -> bool:
        """Check if Firestore is the configured document store."""
        return self.document_store_provider == "firestore"

    @property
    def has_document_store(self) -> bool:
        """Check if any document store backend is configured."""
        return self.document_store_provider != "none"

    @property
    def sends_email(self) -> bool:
        """Check if outbound invitation email is configured."""
        return bool(self.email_api_key)

    def validate_production_config(self) -> None:
        """
        Validate configuration for production environment.

        Raises:
            ValueError: If required production settings are missing or invalid
        """
        if not self.is_production:
            return

        errors = []

        if not self.uses_postgresql:
            errors.append(
                "Production requires PostgreSQL. "
                "Set DATABASE_URL to a PostgreSQL connection string."
            )

        if not self.uses_firestore:
            errors.append(
                "Production requires Firestore. "
                "Set DOCUMENT_STORE_PROVIDER=firestore."
            )

        if not self.email_api_key:
            errors.append("EMAIL_API_KEY is required in production.")

        if errors:
            raise ValueError("Production configuration errors:\n- " + "\n- ".join(errors))

    def validate_firestore_config(self) -> None:
        """
        Validate Firestore configuration.

        Raises:
            ValueError: If required settings are missing
        """
        if not self.uses_firestore:
            return

        if not self.firestore_project_id:
            raise ValueError(
                "FIRESTORE_PROJECT_ID not configured. "
                "Please set it in your .env file."
            )

        if not self.google_service_account_file and not self.google_service_account_json:
            raise ValueError(
                "Firestore requires authentication. "
                "Set either GOOGLE_SERVICE_ACCOUNT_FILE or GOOGLE_SERVICE_ACCOUNT_JSON."
            )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    This function is cached to ensure we only load settings once.
    Use this function throughout the application to access settings.

    Returns:
        Settings instance loaded from environment

    Example:
        >>> from src.config import get_settings
        >>> settings = get_settings()
        >>> print(settings.primary_store)
    """
    return Settings()
