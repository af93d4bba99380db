"""Application settings and configuration.

This module defines all configuration options for the Credential Ledger application.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    This class defines all configuration options for the Credential Ledger application.
    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Credential Ledger", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")

    # Security and authentication
    secret_key: str = Field(alias="SECRET_KEY")
    debug: bool = Field(default=False, alias="DEBUG")

    # Database configuration
    database_url: str = Field(default="sqlite:///./credential_ledger.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # JWT authentication settings (the subject is the issuer DID)
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )
    issuer_did: str = Field(default="did:key:zLocalIssuer", alias="ISSUER_DID")

    # Temporal commitment schedule
    temporal_default_periods: int = Field(default=5, alias="TEMPORAL_DEFAULT_PERIODS")
    temporal_interval_months: int = Field(default=12, alias="TEMPORAL_INTERVAL_MONTHS")
    temporal_grace_period_days: int = Field(default=30, alias="TEMPORAL_GRACE_PERIOD_DAYS")

    # Secret bundles live outside the database
    temporal_secrets_dir: str = Field(default="./secrets", alias="TEMPORAL_SECRETS_DIR")

    # Reveal audit log write retries
    reveal_event_max_retries: int = Field(default=3, alias="REVEAL_EVENT_MAX_RETRIES")
    reveal_event_retry_backoff_seconds: float = Field(
        default=0.05,
        alias="REVEAL_EVENT_RETRY_BACKOFF_SECONDS",
    )

    # Periodic expiry sweep (disabled by default; the endpoint and CLI always work)
    temporal_sweep_enabled: bool = Field(default=False, alias="TEMPORAL_SWEEP_ENABLED")
    temporal_sweep_interval_seconds: float = Field(
        default=3600.0,
        alias="TEMPORAL_SWEEP_INTERVAL_SECONDS",
    )

    # Demo-only endpoint that pulls deadlines into the past
    temporal_simulation_enabled: bool = Field(
        default=False,
        alias="TEMPORAL_SIMULATION_ENABLED",
    )

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["*"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for tooling.

        Converts asyncpg URLs to psycopg for synchronous database operations
        like Alembic migrations.

        Returns:
            Database URL compatible with synchronous database drivers
        """
        url = self.effective_database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides.

        Returns:
            The active database URL (test database if in testing mode, otherwise production)
        """
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url


settings = Settings()  # type: ignore[call-arg]
