"""
Application configuration using Pydantic settings.

Configuration is loaded from environment variables with sensible defaults.
Using Pydantic's BaseSettings means we get:
- Type validation at startup (fail fast if config is wrong)
- Documentation of what's required vs optional
- Easy testing with different configurations

The settings object is built once and handed to the storage and database
factories at startup. Nothing else reads the environment.

Mock modes enable local development without external services.
"""

from functools import lru_cache
from typing import Optional
from urllib.parse import quote_plus

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..infrastructure.database.client import MOCK_DATABASE_URL, DatabaseConfig
from ..infrastructure.storage.client import StorageConfig


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    For lists (like cors_origins), use comma-separated values in env.
    """

    # API Configuration
    api_title: str = "SnapFeed API"
    api_version: str = "v1"

    # Database Configuration
    database_url: Optional[str] = Field(
        default=None,
        description="Full SQLAlchemy URL. Takes precedence over the DB_* fields."
    )
    db_host: str = Field(default="localhost", description="PostgreSQL host")
    db_port: int = Field(default=5432, description="PostgreSQL port")
    db_user: str = Field(default="", description="PostgreSQL user")
    db_password: str = Field(default="", description="PostgreSQL password")
    db_name: str = Field(default="snapfeed", description="PostgreSQL database name")
    database_mock_mode: bool = Field(
        default=False,
        description="Use an in-memory SQLite database. Enables local dev without PostgreSQL."
    )
    database_pool_size: int = Field(
        default=5,
        description="Connections kept open in the pool, shared by all requests."
    )
    database_max_overflow: int = Field(
        default=10,
        description="Extra connections allowed above pool_size under burst load."
    )
    database_pool_timeout_seconds: float = Field(
        default=10.0,
        description="How long a request waits for a free connection before failing."
    )
    database_statement_timeout_ms: int = Field(
        default=5000,
        description="PostgreSQL statement_timeout. Bounds every query."
    )
    database_create_schema: bool = Field(
        default=True,
        description="Create missing tables at startup."
    )

    # R2/S3 Storage Configuration
    r2_account_id: str = Field(
        default="",
        description="Cloudflare account ID for R2"
    )
    r2_access_key_id: str = Field(
        default="",
        description="R2 access key ID"
    )
    r2_secret_access_key: str = Field(
        default="",
        description="R2 secret access key"
    )
    r2_bucket_name: str = Field(
        default="snapfeed-media",
        description="R2 bucket name for uploaded media"
    )
    r2_endpoint_url: Optional[str] = Field(
        default=None,
        description="R2 endpoint URL. Auto-constructed from account_id if not provided."
    )
    r2_public_base_url: Optional[str] = Field(
        default=None,
        description="Public base URL of the bucket (custom domain or r2.dev). Used for post urls."
    )
    r2_mock_mode: bool = Field(
        default=False,
        description="Use in-memory mock instead of real R2. Enables local dev without object storage."
    )
    storage_upload_timeout_seconds: float = Field(
        default=60.0,
        description="Upper bound for a single upload. A timed-out upload never creates a post."
    )

    # Application Behavior
    max_upload_size_mb: int = Field(
        default=50,
        description="Maximum upload size in MB. Checked before anything is sent to storage."
    )
    max_comment_length: int = Field(
        default=2000,
        description="Maximum comment length in characters."
    )
    trust_forwarded_for: bool = Field(
        default=False,
        description="Take the client address from X-Forwarded-For. Only enable behind a trusted proxy."
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # CORS
    cors_origins: str = Field(
        default="http://localhost:3000",
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

    @property
    def r2_endpoint(self) -> str:
        """
        Construct R2 endpoint URL from account ID.

        R2 endpoints follow the pattern: https://{account_id}.r2.cloudflarestorage.com
        """
        if self.r2_endpoint_url:
            return self.r2_endpoint_url
        return f"https://{self.r2_account_id}.r2.cloudflarestorage.com"

    @property
    def database_dsn(self) -> str:
        """SQLAlchemy URL for the metadata store."""
        if self.database_mock_mode:
            return MOCK_DATABASE_URL
        if self.database_url:
            return self.database_url
        credentials = quote_plus(self.db_user)
        if self.db_password:
            credentials += f":{quote_plus(self.db_password)}"
        return f"postgresql+psycopg://{credentials}@{self.db_host}:{self.db_port}/{self.db_name}"

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024

    def database_config(self) -> DatabaseConfig:
        return DatabaseConfig(
            url=self.database_dsn,
            pool_size=self.database_pool_size,
            max_overflow=self.database_max_overflow,
            pool_timeout_seconds=self.database_pool_timeout_seconds,
            statement_timeout_ms=self.database_statement_timeout_ms,
        )

    def storage_config(self) -> StorageConfig:
        return StorageConfig(
            access_key_id=self.r2_access_key_id,
            secret_access_key=self.r2_secret_access_key,
            bucket_name=self.r2_bucket_name,
            endpoint_url=self.r2_endpoint,
            public_base_url=self.r2_public_base_url,
            read_timeout_seconds=self.storage_upload_timeout_seconds,
        )

    def validate_required_fields(self) -> list[str]:
        """
        Validate that required fields are set based on mock mode settings.

        Returns list of missing required fields.
        This is separate from Pydantic validation because requirements
        depend on whether we're in mock mode.
        """
        missing = []

        # Database only required if not in mock mode
        if not self.database_mock_mode and not self.database_url:
            if not self.db_user:
                missing.append("DB_USER")
            if not self.db_name:
                missing.append("DB_NAME")

        # R2 only required if not in mock mode
        if not self.r2_mock_mode:
            if not self.r2_account_id and not self.r2_endpoint_url:
                missing.append("R2_ACCOUNT_ID or R2_ENDPOINT_URL")
            if not self.r2_access_key_id:
                missing.append("R2_ACCESS_KEY_ID")
            if not self.r2_secret_access_key:
                missing.append("R2_SECRET_ACCESS_KEY")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache means we only load settings once per process.
    This is safe because settings don't change during runtime.
    For tests, you can call get_settings.cache_clear() to reset.
    """
    return Settings()
