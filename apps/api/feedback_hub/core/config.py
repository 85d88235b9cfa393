"""Application configuration with environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"

    # App Version (format: a.bc.de - major.feature.patch)
    VERSION: str = "0.01.00"

    # Database
    DATABASE_URL: str

    # Session Token issued by the identity provider (supports key rotation)
    JWT_SECRET: str = "change-this-in-production"
    JWT_SECRET_PREVIOUS: str = ""  # Set during rotation, clear after
    JWT_EXPIRES_HOURS: int = 24

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"

    # Frontend (for safe redirects)
    FRONTEND_URL: str = "http://localhost:3000"

    # Dev-only
    DEV_SECRET: str = "change-me"

    # Logging
    LOG_LEVEL: str = "INFO"

    # Error Tracking (optional, set in production)
    SENTRY_DSN: str = ""

    # Rate Limiting (requests per minute)
    RATE_LIMIT_API: int = 60  # General API
    RATE_LIMIT_AI: int = 10  # Triage, summary, digest, completions

    # Inference collaborator
    INFERENCE_PROVIDER: str = "cortex"  # cortex | openai
    INFERENCE_ENDPOINT: str = ""  # e.g. https://<account>.snowflakecomputing.com
    INFERENCE_API_TOKEN: str = ""
    INFERENCE_MODEL: str = "openai-gpt-5-mini"
    INFERENCE_TIMEOUT_SECONDS: float = 60.0

    # Reddit digest
    REDDIT_BASE_URL: str = "https://www.reddit.com"
    REDDIT_USER_AGENT: str = "feedback-hub/0.1 (reddit digest)"
    REDDIT_TIMEOUT_SECONDS: float = 15.0

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def jwt_secrets(self) -> list[str]:
        """Returns list of valid secrets (current first, then previous if set)."""
        secrets = [self.JWT_SECRET]
        if self.JWT_SECRET_PREVIOUS:
            secrets.append(self.JWT_SECRET_PREVIOUS)
        return secrets

    @property
    def cookie_secure(self) -> bool:
        """Secure cookies only in production."""
        return self.ENV != "dev"


settings = Settings()
