"""Application settings and configuration.

This module defines all configuration options for the tokengate service.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    Token lifetimes are deliberately absent: they are fixed constants in
    ``tokengate.services.token_issuer``.
    """

    # Application metadata
    app_name: str = Field(default="tokengate", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Access token signing
    jwt_secret: str = Field(alias="JWT_SECRET")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    jwt_issuer: str = Field(default="tokengate", alias="JWT_ISSUER")
    jwt_audience: str = Field(default="tokengate-clients", alias="JWT_AUDIENCE")

    # Database configuration
    database_url: str = Field(default="sqlite:///./tokengate.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Rate limiting defaults, overridable per mounted limiter
    rate_limit_window_ms: int = Field(default=60_000, alias="RATE_LIMIT_WINDOW_MS")
    rate_limit_max_requests: int = Field(default=20, alias="RATE_LIMIT_MAX_REQUESTS")
    refresh_rate_limit_max_requests: int = Field(
        default=10,
        alias="REFRESH_RATE_LIMIT_MAX_REQUESTS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

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
