"""Application settings and configuration.

This module defines all configuration options for the Persuasion Forum service.
Settings are loaded from environment variables with sensible defaults. The
hosted backend keys accept both the browser-facing ``NEXT_PUBLIC_`` names used
by the frontend deployment and the bare names used by scheduled jobs.
"""

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Persuasion Forum", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    environment: str = Field(
        default="development",
        validation_alias=AliasChoices("NODE_ENV", "APP_ENV"),
    )
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Hosted backend (database, auth provider, serverless functions)
    supabase_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("NEXT_PUBLIC_SUPABASE_URL", "SUPABASE_URL"),
    )
    supabase_anon_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("NEXT_PUBLIC_SUPABASE_ANON_KEY", "SUPABASE_ANON_KEY"),
    )
    supabase_service_role_key: str | None = Field(
        default=None,
        alias="SUPABASE_SERVICE_ROLE_KEY",
    )
    supabase_timeout_seconds: float = Field(default=10.0, alias="SUPABASE_TIMEOUT_SECONDS")
    gemini_api_key: str | None = Field(default=None, alias="GEMINI_API_KEY")

    # Session cookies and the verified-session cache
    access_cookie_name: str = Field(default="sb_access_token", alias="ACCESS_COOKIE_NAME")
    refresh_cookie_name: str = Field(default="sb_refresh_token", alias="REFRESH_COOKIE_NAME")
    access_cookie_max_age: int = Field(default=3600, alias="ACCESS_COOKIE_MAX_AGE")
    refresh_cookie_max_age: int = Field(
        default=7 * 24 * 60 * 60,
        alias="REFRESH_COOKIE_MAX_AGE",
    )
    session_cache_ttl_seconds: int = Field(default=60, alias="SESSION_CACHE_TTL_SECONDS")

    # Redis configuration for the session cache and rate limiting
    redis_url: str | None = Field(default=None, alias="REDIS_URL")

    # Local database holding analysis snapshots
    database_url: str = Field(default="sqlite:///./persuasion_forum.db", alias="DATABASE_URL")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Voting rules
    persuasion_window_minutes: int = Field(default=60, alias="PERSUASION_WINDOW_MINUTES")
    vote_rate_limit: int = Field(default=10, alias="VOTE_RATE_LIMIT")
    vote_rate_window_seconds: int = Field(default=60, alias="VOTE_RATE_WINDOW_SECONDS")

    # AI analysis
    analysis_function_name: str = Field(
        default="gemini-vote-analysis",
        alias="ANALYSIS_FUNCTION_NAME",
    )
    mock_analysis_min_delay: float = Field(default=2.0, alias="MOCK_ANALYSIS_MIN_DELAY")
    mock_analysis_max_delay: float = Field(default=4.0, alias="MOCK_ANALYSIS_MAX_DELAY")
    analysis_stale_seconds: int = Field(default=60 * 60, alias="ANALYSIS_STALE_SECONDS")

    # Scheduled jobs
    deadline_checker_batch_size: int = Field(default=50, alias="DEADLINE_CHECKER_BATCH_SIZE")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "OPTIONS"],
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
        populate_by_name=True,
    )

    @property
    def is_production(self) -> bool:
        """Return True when cookies must carry the Secure flag."""
        return self.environment.lower() == "production"

    @property
    def supabase_configured(self) -> bool:
        """Return True when the hosted backend URL and anon key are both set."""
        return bool(self.supabase_url and self.supabase_anon_key)


settings = Settings()
