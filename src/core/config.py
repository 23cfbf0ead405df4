"""Application configuration using Pydantic Settings."""

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


@dataclass(frozen=True, slots=True)
class ProfileLimits:
    """Size and count limits applied to profile records."""

    max_name_length: int = 100
    max_email_length: int = 255
    max_field_length: int = 1000
    max_fields: int = 20


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="Prof API")
    app_env: str = Field(default="development")
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3007)

    # Storage
    data_path: Path = Field(
        default=Path("./data/profiles"),
        description="Directory holding one JSON record per profile",
    )
    image_path: Path = Field(
        default=Path("./data/profiles/images"),
        description="Directory holding normalized profile images",
    )
    tag_path: Path = Field(
        default=Path("./data/profiles/tags"),
        description="Directory holding one JSON index file per tag",
    )
    rebuild_tag_index_on_startup: bool = Field(
        default=False,
        description="Re-derive every tag index file from profile records at startup",
    )

    # Images
    max_image_size: int = Field(default=5 * 1024 * 1024, description="Upload cap in bytes")
    allowed_image_types: str = Field(
        default="image/jpeg,image/jpg,image/png,image/webp",
        description="Comma-separated list of accepted upload content types",
    )
    image_max_width: int = Field(default=1024)
    image_max_height: int = Field(default=1024)
    image_quality: int = Field(default=85, ge=1, le=95)

    # Profile limits
    max_name_length: int = Field(default=100)
    max_email_length: int = Field(default=255)
    max_field_length: int = Field(default=1000)
    max_fields: int = Field(default=20)

    # Request authentication
    jwt_secret_key: str = Field(
        default="CHANGE-ME-IN-PRODUCTION",
        description="Secret key used to verify HS256 request tokens",
    )
    jwt_algorithm: str = Field(default="HS256")
    jwt_expire_minutes: int = Field(default=30)
    allowed_time_difference_ms: int = Field(
        default=60_000,
        description="Maximum skew between a request timestamp and server time",
    )

    # Rate Limiting
    rate_limit_enabled: bool = Field(
        default=True,
        description="Enable/disable rate limiting (disable for tests)",
    )
    rate_limit_read: str = Field(default="30/minute", description="Limit for profile reads")
    rate_limit_write: str = Field(default="10/minute", description="Limit for profile mutations")

    # CORS
    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        description="Comma-separated list of allowed origins",
    )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env == "production"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @computed_field  # type: ignore[prop-decorator]
    @property
    def allowed_image_types_list(self) -> list[str]:
        """Parse accepted image content types into a list."""
        return [
            content_type.strip().lower()
            for content_type in self.allowed_image_types.split(",")
            if content_type.strip()
        ]

    @property
    def profile_limits(self) -> ProfileLimits:
        """Bundle the profile limits for the validator."""
        return ProfileLimits(
            max_name_length=self.max_name_length,
            max_email_length=self.max_email_length,
            max_field_length=self.max_field_length,
            max_fields=self.max_fields,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
