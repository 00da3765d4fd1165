"""
Tubely Configuration Management Module

This module provides configuration management for the Tubely video service
using Pydantic Settings. It loads and validates all environment variables
required for:
- Application settings (name, environment, debug mode, logging)
- MongoDB connection and pooling for the video record store
- S3/MinIO object storage and presigned URL expiry
- Local JWT verification for bearer tokens
- Upload limits, staging directory and the public asset root
- Paths to the ffprobe/ffmpeg binaries used by the media pipeline

Settings are frozen after construction: every component receives the same
immutable instance at construction time and nothing mutates it at runtime.
"""

from functools import lru_cache
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


MIB = 1 << 20
GIB = 1 << 30


class Settings(BaseSettings):
    """
    Configuration settings for the Tubely upload pipeline.

    Required values fall back to development defaults so the service boots
    against a local MongoDB and MinIO without a .env file.

    Configuration Categories:
    - Application: Core app settings like name, environment, debug mode
    - MongoDB: Database connection URI and connection pool settings
    - S3/MinIO: Object storage credentials, bucket and presign expiry
    - Auth: JWT secret, algorithm and issuer
    - Upload: Size caps, staging directory and public asset root
    - Media tools: ffprobe/ffmpeg executables

    Example usage:
        ```python
        from tubely.config import Settings

        settings = Settings()
        print(f"Uploading videos to bucket: {settings.s3_bucket_name}")
        ```
    """

    # =========================================================================
    # Application Settings
    # =========================================================================

    app_name: str = Field(
        default="Tubely",
        description="Application name displayed in API documentation and logs",
    )

    app_env: str = Field(
        default="development",
        description="Application environment (development, staging, production, testing)",
    )

    debug: bool = Field(default=True, description="Enable debug mode and verbose logging")

    log_level: str = Field(
        default="info", description="Logging level (debug, info, warning, error, critical)"
    )

    json_logs: bool = Field(
        default=False, description="Emit structured JSON log lines instead of plain text"
    )

    host: str = Field(default="0.0.0.0", description="Host address for the API server to bind to")

    port: int = Field(default=8091, description="Port number for the API server", ge=1, le=65535)

    # NoDecode: the env value is a comma-separated string, not JSON
    cors_origins: Annotated[list[str], NoDecode] = Field(
        default=["http://localhost:8091"],
        description="List of allowed CORS origins for frontend access",
    )

    # =========================================================================
    # MongoDB Configuration
    # =========================================================================

    mongodb_uri: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection URI (e.g., mongodb://localhost:27017)",
    )

    mongodb_db_name: str = Field(default="tubely", description="MongoDB database name")

    mongodb_min_pool_size: int = Field(
        default=5, description="Minimum number of connections in MongoDB connection pool", ge=1
    )

    mongodb_max_pool_size: int = Field(
        default=50, description="Maximum number of connections in MongoDB connection pool", ge=5
    )

    # =========================================================================
    # S3/MinIO Storage Configuration
    # =========================================================================

    s3_endpoint_url: str | None = Field(
        default=None, description="S3-compatible endpoint URL for MinIO (None for AWS S3)"
    )

    s3_access_key_id: str = Field(
        default="minioadmin",
        description="S3/MinIO access key ID for authentication",
    )

    s3_secret_access_key: str = Field(
        default="minioadmin",
        description="S3/MinIO secret access key for authentication",
    )

    s3_bucket_name: str = Field(
        default="tubely-videos", description="S3 bucket that receives processed videos"
    )

    s3_region: str = Field(
        default="us-east-1",
        description="AWS region for S3 bucket (also used for MinIO compatibility)",
    )

    presigned_url_expiration_seconds: int = Field(
        default=600,
        description="Lifetime of presigned video URLs in seconds (10 minutes)",
        ge=60,
        le=3600,
    )

    # =========================================================================
    # Auth Configuration
    # =========================================================================

    jwt_secret: str = Field(
        default="development-secret-key-change-in-production-32chars",
        description="Secret used to sign and verify access tokens",
        min_length=32,
    )

    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")

    jwt_issuer: str = Field(
        default="tubely-access", description="Issuer claim required on access tokens"
    )

    jwt_expiration_hours: int = Field(
        default=1, description="Access token lifetime in hours", ge=1, le=168
    )

    # =========================================================================
    # Upload Settings
    # =========================================================================

    assets_root: str = Field(
        default="./assets", description="Directory where thumbnails are written and served from"
    )

    public_base_url: str = Field(
        default="http://localhost:8091",
        description="Externally reachable base URL used to build thumbnail URLs",
    )

    upload_temp_dir: str | None = Field(
        default=None,
        description="Directory for staged uploads (None uses the system temp directory)",
    )

    thumbnail_max_bytes: int = Field(
        default=10 * MIB, description="Maximum multipart body size for thumbnails", ge=1
    )

    video_max_bytes: int = Field(
        default=10 * GIB, description="Maximum request body size for videos", ge=1
    )

    # =========================================================================
    # Media Tools
    # =========================================================================

    ffprobe_path: str = Field(default="ffprobe", description="ffprobe executable")

    ffmpeg_path: str = Field(default="ffmpeg", description="ffmpeg executable")

    # =========================================================================
    # Model Configuration
    # =========================================================================

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate that log_level is a valid logging level."""
        valid_levels = {"debug", "info", "warning", "error", "critical"}
        normalized = v.lower()
        if normalized not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {', '.join(valid_levels)}")
        return normalized

    @field_validator("app_env")
    @classmethod
    def validate_app_env(cls, v: str) -> str:
        """Validate that app_env is a valid environment name."""
        valid_envs = {"development", "staging", "production", "testing"}
        normalized = v.lower()
        if normalized not in valid_envs:
            raise ValueError(f"Invalid app_env '{v}'. Must be one of: {', '.join(valid_envs)}")
        return normalized

    @field_validator("jwt_algorithm")
    @classmethod
    def validate_jwt_algorithm(cls, v: str) -> str:
        """Only symmetric algorithms are supported with a shared secret."""
        valid_algorithms = {"HS256", "HS384", "HS512"}
        if v.upper() not in valid_algorithms:
            raise ValueError(
                f"Invalid jwt_algorithm '{v}'. Must be one of: {', '.join(valid_algorithms)}"
            )
        return v.upper()

    @field_validator("public_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("s3_bucket_name")
    @classmethod
    def validate_s3_bucket_name(cls, v: str) -> str:
        """Bucket and key are stored joined by a comma, so the bucket can't hold one."""
        if not v or "," in v:
            raise ValueError(f"Invalid s3_bucket_name '{v}'. Must be non-empty without commas")
        return v

    @field_validator("cors_origins", mode="before")
    @classmethod
    def validate_cors_origins(cls, v: str | list[str]) -> list[str]:
        """Parse CORS origins from comma-separated string if provided as string."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v


@lru_cache
def get_settings() -> Settings:
    """
    Get the global Settings instance.

    The @lru_cache decorator ensures that the Settings object is created only
    once on first call; subsequent calls return the cached instance without
    re-reading environment variables or .env files.

    Returns:
        Settings: The global configuration instance.
    """
    return Settings()
