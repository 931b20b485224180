"""Configuration management using pydantic-settings.

All environment variables are loaded and validated here.
Provider credentials are optional: a missing key disables that provider.
"""

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Sensitive fields use SecretStr to prevent accidental logging.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Optional: Metadata providers
    tmdb_api_key: SecretStr | None = Field(
        default=None,
        description="The Movie Database API key (primary metadata provider)",
    )

    omdb_api_key: SecretStr | None = Field(
        default=None,
        description="OMDb API key (secondary provider, used to backfill ratings)",
    )

    # Listing source
    listing_base_url: str = Field(
        default="https://desicinemas.tv",
        description="Root URL of the catalog listing site",
    )

    catalog_page_size: int = Field(
        default=29,
        description="Number of items per external catalog page (skip granularity)",
        ge=1,
    )

    # Enrichment cache
    cache_ttl: int = Field(
        default=12 * 60 * 60,
        description="Resolved metadata TTL in seconds",
        ge=0,
    )

    cache_max_entries: int = Field(
        default=500,
        description="Maximum number of resolved metadata records kept in memory",
        ge=1,
    )

    # Outbound requests
    request_timeout: float = Field(
        default=10.0,
        description="Timeout in seconds for every outbound HTTP request",
        gt=0,
    )

    metadata_language: str = Field(
        default="en-US",
        description="Language for TMDB responses",
    )

    trailer_languages: list[str] = Field(
        default_factory=lambda: ["hi", "pa", "en"],
        description="Preferred trailer languages, most preferred first",
    )

    certification_countries: list[str] = Field(
        default_factory=lambda: ["IN", "US"],
        description="Release certification countries, most preferred first",
    )

    # Application Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    environment: str = Field(
        default="production",
        description="Environment name (development, production)",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the standard levels."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f"log_level must be one of {allowed}")
        return v_upper

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment is development or production."""
        allowed = {"development", "production"}
        v_lower = v.lower()
        if v_lower not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v_lower

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    @property
    def has_tmdb(self) -> bool:
        """Check if the primary metadata provider is configured."""
        return bool(self.tmdb_api_key and self.tmdb_api_key.get_secret_value())

    @property
    def has_omdb(self) -> bool:
        """Check if the secondary metadata provider is configured."""
        return bool(self.omdb_api_key and self.omdb_api_key.get_secret_value())

    def get_safe_dict(self) -> dict[str, object]:
        """Get configuration as dict with sensitive values masked.

        Returns:
            Dictionary with SecretStr values shown as '***'
        """
        result: dict[str, object] = {}
        for field_name in type(self).model_fields:
            value = getattr(self, field_name)

            if isinstance(value, SecretStr):
                result[field_name] = "***"
            else:
                result[field_name] = value

        return result


# Global settings instance
settings = Settings()
