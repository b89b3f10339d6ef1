"""
Application configuration using Pydantic settings.

Configuration is loaded from environment variables with sensible defaults.
Using Pydantic's BaseSettings means we get:
- Type validation at startup (fail fast if config is wrong)
- Documentation of what's required vs optional
- Easy testing with different configurations

Mock modes enable local development without external services.
"""

import tempfile
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..core.videos.upload import MAX_UPLOAD_SIZE, UploadConfig


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    """

    # API Configuration
    api_title: str = "Tubely Video API"
    api_version: str = "v1"

    # Auth
    jwt_secret: str = Field(
        default="",
        description="Shared secret used to sign and verify access tokens (HS256)."
    )

    # S3 Storage Configuration
    s3_bucket: str = Field(
        default="tubely-videos",
        description="S3 bucket processed videos are uploaded to"
    )
    s3_region: str = Field(
        default="us-east-1",
        description="AWS region of the bucket. Also used in public video URLs."
    )
    aws_access_key_id: str = Field(
        default="",
        description="AWS access key. Empty falls back to boto3's credential chain."
    )
    aws_secret_access_key: str = Field(
        default="",
        description="AWS secret key"
    )
    s3_endpoint_url: Optional[str] = Field(
        default=None,
        description="Custom S3 endpoint (e.g. MinIO/localstack). Leave unset for AWS."
    )
    s3_mock_mode: bool = Field(
        default=False,
        description="Use in-memory mock instead of real S3. Enables local dev without object storage."
    )

    # Snowflake Configuration
    snowflake_account: str = Field(
        default="",
        description="Snowflake account identifier"
    )
    snowflake_user: str = Field(
        default="",
        description="Snowflake service account username"
    )
    snowflake_password: str = Field(
        default="",
        description="Snowflake service account password"
    )
    snowflake_private_key_path: Optional[str] = Field(
        default=None,
        description="Path to RSA private key file for key-pair authentication"
    )
    snowflake_private_key_base64: Optional[str] = Field(
        default=None,
        description="Base64-encoded private key (for deployment, alternative to file path)"
    )
    snowflake_database: str = Field(
        default="TUBELY",
        description="Snowflake database name"
    )
    snowflake_schema: str = Field(
        default="PUBLIC",
        description="Snowflake schema name"
    )
    snowflake_warehouse: str = Field(
        default="COMPUTE_WH",
        description="Snowflake warehouse for query execution"
    )
    snowflake_role: Optional[str] = Field(
        default=None,
        description="Snowflake role to use (optional)"
    )
    snowflake_mock_mode: bool = Field(
        default=False,
        description="Use in-memory mock instead of real Snowflake connection. Enables local dev without DB."
    )

    # Video Processing
    tmp_dir: str = Field(
        default_factory=tempfile.gettempdir,
        description="Directory for temporary upload and processed files"
    )
    ffmpeg_path: str = Field(
        default="ffmpeg",
        description="ffmpeg binary (name on PATH or absolute path)"
    )
    ffprobe_path: str = Field(
        default="ffprobe",
        description="ffprobe binary (name on PATH or absolute path)"
    )
    processing_timeout_seconds: float = Field(
        default=600,
        description="Upper bound on each ffprobe/ffmpeg run. A hung process fails the request."
    )
    video_processor_mock_mode: bool = Field(
        default=False,
        description="Skip ffmpeg entirely: report landscape and copy the file as-is."
    )
    max_upload_size_bytes: int = Field(
        default=MAX_UPLOAD_SIZE,
        description="Largest accepted upload, inclusive. Defaults to 1 GiB."
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # CORS
    cors_origins: str = Field(
        default="http://localhost:8091",
        description="Comma-separated list of allowed CORS origins. Use * for development only."
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    def upload_config(self) -> UploadConfig:
        """The subset of settings the upload flow is constructed with."""
        return UploadConfig(
            jwt_secret=self.jwt_secret,
            s3_bucket=self.s3_bucket,
            s3_region=self.s3_region,
            tmp_dir=self.tmp_dir,
            max_upload_size=self.max_upload_size_bytes,
        )

    def validate_required_fields(self) -> list[str]:
        """
        Validate that required fields are set based on mock mode settings.

        Returns list of missing required fields.
        This is separate from Pydantic validation because requirements
        depend on whether we're in mock mode.
        """
        missing = []

        if not self.jwt_secret:
            missing.append("JWT_SECRET")

        # Snowflake only required if not in mock mode
        if not self.snowflake_mock_mode:
            if not self.snowflake_account:
                missing.append("SNOWFLAKE_ACCOUNT")
            if not self.snowflake_user:
                missing.append("SNOWFLAKE_USER")
            has_key = self.snowflake_private_key_path or self.snowflake_private_key_base64
            if not self.snowflake_password and not has_key:
                missing.append("SNOWFLAKE_PASSWORD or SNOWFLAKE_PRIVATE_KEY_PATH")

        if not self.s3_mock_mode:
            if not self.s3_bucket:
                missing.append("S3_BUCKET")
            if not self.s3_region:
                missing.append("S3_REGION")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache means we only load settings once per process.
    For tests, you can call get_settings.cache_clear() to reset.
    """
    return Settings()
