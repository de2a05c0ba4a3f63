"""Application configuration using Pydantic Settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded once from environment variables (read-only)."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore", frozen=True
    )

    # System Configuration
    api_v1_prefix: str = "/api/v1"
    debug: bool = False
    cors_origins: str = "http://localhost:5173,http://localhost:3000"
    rate_limit_enabled: bool = True

    # Supabase Configuration
    supabase_url: str = "https://test.supabase.co"
    supabase_service_role_key: str = "test-service-role-key"
    supabase_timeout_seconds: int = 10

    # Session Token Configuration
    jwt_secret: str = "change-this-session-secret"
    jwt_algorithm: str = "HS256"
    jwt_ttl_seconds: int = 7 * 24 * 3600  # 7 days

    # Signed Handoff Configuration (shared out-of-band with the partner site)
    sso_shared_secret: str = "change-this-shared-secret"
    sso_max_age_seconds: int = 300

    # Email One-Time Code Configuration
    email_code_length: int = 6
    email_code_ttl_minutes: int = 10
    email_code_max_attempts: int = 5

    # Courier Configuration (empty key = log codes instead of sending)
    courier_api_key: str = ""
    email_from_name: str = "Rating Service"

    # PostHog Configuration
    posthog_api_key: str | None = None
    posthog_host: str = "https://app.posthog.com"


settings = Settings()
