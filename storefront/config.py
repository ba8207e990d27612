"""
Configuration module for the storefront service.

This module provides centralized configuration management using Pydantic settings.
All configuration values can be overridden via environment variables or .env file.
"""

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings for the storefront service.

    Attributes:
        PRODUCT_SERVICE_URL: Base URL of the product catalog API
        STORE_SERVICE_URL: Base URL of the store creation / domain check API
        STORE_DOMAIN_SUFFIX: Suffix appended to a proposed subdomain for lookups
        APP_NAME: Display name for the application
        DEBUG: Enable debug mode (shows API docs)
        HOST: Server bind address
        PORT: Server port number
        LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        ENABLE_TRACING: Export OpenTelemetry traces
        REQUEST_TIMEOUT: Default timeout for upstream HTTP requests in seconds
        DOMAIN_CHECK_DEBOUNCE_SECONDS: Quiet period before a domain is looked up
        SLOW_REQUEST_THRESHOLD_MS: Requests slower than this are logged as warnings
    """

    # Upstream APIs
    PRODUCT_SERVICE_URL: str = Field(
        default="https://glore-bd-backend-node-mongo.vercel.app",
        description="Base URL of the product catalog API",
    )
    STORE_SERVICE_URL: str = Field(
        default="https://interview-task-green.vercel.app",
        description="Base URL of the store creation API",
    )
    STORE_DOMAIN_SUFFIX: str = Field(
        default=".expressitbd.com",
        description="Domain suffix every store subdomain lives under",
    )

    # Application configuration
    APP_NAME: str = Field(
        default="ExpressIT Store",
        description="Display name for the application",
    )
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode",
    )

    # Server configuration
    HOST: str = Field(
        default="0.0.0.0",
        description="Server bind address",
    )
    PORT: int = Field(
        default=8080,
        ge=1,
        le=65535,
        description="Server port number",
    )

    # Observability
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    ENABLE_TRACING: bool = Field(
        default=False,
        description="Export OpenTelemetry traces over OTLP",
    )
    SLOW_REQUEST_THRESHOLD_MS: float = Field(
        default=1000.0,
        gt=0,
        description="Threshold in milliseconds for slow request warnings",
    )

    # HTTP client configuration
    REQUEST_TIMEOUT: float = Field(
        default=10.0,
        gt=0,
        le=30.0,
        description="Default timeout for HTTP requests in seconds",
    )

    # Store form
    DOMAIN_CHECK_DEBOUNCE_SECONDS: float = Field(
        default=0.5,
        ge=0,
        le=5.0,
        description="Quiet period after the last keystroke before checking a domain",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @field_validator("PRODUCT_SERVICE_URL", "STORE_SERVICE_URL")
    @classmethod
    def validate_url(cls, value: str) -> str:
        """
        Validate that service URLs are properly formatted.

        Args:
            value: The URL to validate

        Returns:
            The validated URL without trailing slash

        Raises:
            ValueError: If URL is invalid
        """
        if not value:
            raise ValueError("Service URL cannot be empty")

        value = value.rstrip("/")

        if not (value.startswith("http://") or value.startswith("https://")):
            raise ValueError(
                f"Service URL must start with http:// or https://, got: {value}"
            )

        return value

    @field_validator("STORE_DOMAIN_SUFFIX")
    @classmethod
    def validate_domain_suffix(cls, value: str) -> str:
        """Ensure the suffix starts with a dot so it can be appended to a subdomain."""
        value = value.strip().lower()
        if value and not value.startswith("."):
            value = f".{value}"
        return value


# Global settings instance
settings = Settings()
