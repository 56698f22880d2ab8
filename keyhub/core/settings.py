"""
Application settings and configuration management.
"""
from typing import List
from pydantic_settings import BaseSettings
from pydantic import field_validator


DEFAULT_JWT_SECRET = "change-this-keyhub-admin-secret"
DEFAULT_API_KEY = "dev-api-key"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "KeyHub Subscription Service"
    app_version: str = "1.0.0"
    environment: str = "development"

    # Database
    database_url: str = "sqlite:///./keyhub.db"

    # API credentials (comma-separated)
    api_keys: str = DEFAULT_API_KEY

    # Admin console tokens
    jwt_secret: str = DEFAULT_JWT_SECRET
    jwt_algorithm: str = "HS256"
    jwt_expiration_hours: int = 24

    # Default admin seeded on startup
    admin_username: str = "admin"
    admin_password: str = "admin"
    admin_page_size: int = 10

    # Expiration sweep
    sweep_interval_seconds: int = 3600
    enable_sweep_scheduler: bool = True

    # Redis / Celery
    redis_url: str = "redis://localhost:6379/0"

    # Rate Limiting
    enable_rate_limiting: bool = True
    global_rate_limit: str = "1000/hour"
    rate_limit_storage_uri: str = "memory://"

    # CORS Settings
    allowed_origins: str = "http://localhost:3000,http://localhost:8080"

    # Logging
    log_level: str = "INFO"

    # Monitoring & Observability
    sentry_dsn: str = ""
    sentry_traces_sample_rate: float = 0.1
    release_version: str = "v1.0.0"
    enable_metrics: bool = True

    # Production Security Configuration
    enable_docs: bool = True

    @field_validator("allowed_origins")
    def validate_origins(cls, v):
        """Convert comma-separated origins string to list."""
        return [origin.strip() for origin in v.split(",") if origin.strip()]

    @field_validator("api_keys")
    def validate_api_keys(cls, v):
        """Convert comma-separated API keys string to list."""
        return [key.strip() for key in v.split(",") if key.strip()]

    @field_validator("log_level")
    def validate_log_level(cls, v):
        return v.upper()

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment.lower() == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    def validate_production_config(self) -> List[str]:
        """Validate production configuration and return list of issues."""
        issues = []

        if self.is_production:
            if self.enable_docs:
                issues.append("API documentation should be disabled in production")

            if self.jwt_secret == DEFAULT_JWT_SECRET:
                issues.append("JWT secret must be changed from default value")

            if len(self.jwt_secret) < 32:
                issues.append("JWT secret should be at least 32 characters long")

            if self.admin_password == "admin":
                issues.append("Default admin password must be changed")

            if DEFAULT_API_KEY in self.api_keys:
                issues.append("Development API key must not be accepted in production")

            if "localhost" in str(self.allowed_origins):
                issues.append("Localhost origins should be removed in production")

            if self.is_sqlite:
                issues.append("SQLite should not be used as the production key store")

        return issues

    class Config:
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()
