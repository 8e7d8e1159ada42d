"""Configuration management for the Smart Task Manager service.

This module uses Pydantic Settings to load configuration from environment
variables. All settings are validated at startup to catch configuration
errors early.
"""

from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All sensitive values (database credentials) must be provided via
    environment variables or .env file.
    """

    # Supabase Configuration
    supabase_url: str = Field(
        ...,
        description="Supabase project URL"
    )
    supabase_key: str = Field(
        ...,
        description="Supabase anonymous key"
    )
    supabase_service_role_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key (bypasses RLS, preferred when set)"
    )

    # Server Configuration
    environment: Literal["development", "production", "test"] = Field(
        default="development",
        description="Deployment environment"
    )
    port: int = Field(
        default=3000,
        ge=1,
        le=65535,
        description="Port the HTTP server listens on"
    )
    log_level: str = Field(
        default="INFO",
        description="Root log level"
    )

    # CORS Configuration
    cors_allowed_origins: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins ('*' allows all)"
    )

    # Rate Limiting
    rate_limit_window_seconds: int = Field(
        default=900,
        gt=0,
        description="Rate limit window length in seconds"
    )
    rate_limit_max_requests: int = Field(
        default=100,
        gt=0,
        description="Maximum requests per client IP within one window"
    )
    trusted_proxies: str = Field(
        default="",
        description="Comma-separated proxy IPs allowed to set X-Forwarded-For"
    )

    # Model configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("supabase_url")
    @classmethod
    def validate_supabase_url(cls, v: str) -> str:
        """Validate that Supabase URL is present and properly formatted."""
        if not v or not v.strip():
            raise ValueError("SUPABASE_URL must be set in environment variables")

        url = v.strip()
        if not url.startswith("https://"):
            raise ValueError(
                "SUPABASE_URL must start with https:// "
                f"(got: {url[:20]}...)"
            )

        return url

    @field_validator("supabase_key")
    @classmethod
    def validate_supabase_key(cls, v: str) -> str:
        """Validate that Supabase key is present and non-empty."""
        if not v or not v.strip():
            raise ValueError("SUPABASE_KEY must be set in environment variables")
        return v.strip()

    @field_validator("supabase_service_role_key")
    @classmethod
    def normalize_service_role_key(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid LOG_LEVEL '{v}'")
        return level

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def cors_origins(self) -> List[str]:
        """Parsed CORS allow-list."""
        return [
            origin.strip() for origin in self.cors_allowed_origins.split(",")
            if origin.strip()
        ]

    @property
    def api_rate_limit(self) -> str:
        """Rate limit string in slowapi/limits notation."""
        return f"{self.rate_limit_max_requests} per {self.rate_limit_window_seconds} seconds"


@lru_cache
def get_settings() -> Settings:
    """Get cached Settings instance.

    This function uses lru_cache to ensure settings are loaded only once
    and reused across the application lifetime.

    Returns:
        Settings: Validated application settings

    Raises:
        ValueError: If required environment variables are missing or invalid
    """
    return Settings()
