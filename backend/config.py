"""
Summons Core - Configuration Management

Centralized configuration for environment variables and deployment settings.
This module ensures:
- No hardcoded secrets
- Sweep and enrichment queue tuning in one place
- Environment-specific settings (dev/staging/prod)
"""

from typing import List
from pydantic import Field
from pydantic_settings import BaseSettings
from functools import lru_cache
import logging

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Uses pydantic-settings for validation and type coercion.
    """

    # ==================== ENVIRONMENT ====================
    ENVIRONMENT: str = Field(
        default="development",
        description="Runtime environment: development, staging, production"
    )
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode (auto-enabled in development)"
    )

    # ==================== DATABASE ====================
    DATABASE_URL: str = Field(
        default="",
        description="PostgreSQL connection URL (postgresql+asyncpg://...)"
    )
    DATABASE_SSL: bool = Field(
        default=True,
        description="Require SSL on the database connection"
    )

    # ==================== OPEN DATA SOURCE ====================
    OPEN_DATA_URL: str = Field(
        default="https://data.cityofnewyork.us/resource/jz4z-kudi.json",
        description="NYC Open Data OATH hearings dataset endpoint"
    )
    OPEN_DATA_APP_TOKEN: str = Field(
        default="",
        description="Socrata application token (X-App-Token header)"
    )
    OPEN_DATA_PAGE_SIZE: int = Field(
        default=5000,
        description="Maximum number of records fetched per sweep"
    )
    VIOLATION_CATEGORY: str = Field(
        default="IDLING",
        description="Charge description keyword the sweep is restricted to"
    )

    # ==================== EVIDENCE LINKS ====================
    SUMMONS_PDF_URL_TEMPLATE: str = Field(
        default="https://a820-ecbticketfinder.nyc.gov/GetViolationImage?violationNumber={reference_number}",
        description="Summons document image URL, {reference_number} is substituted"
    )
    VIDEO_URL_TEMPLATE: str = Field(
        default="https://nycidling.azurewebsites.net/idlingevidence/video/{reference_number}",
        description="Video evidence URL, {reference_number} is substituted"
    )

    # ==================== MATCHING ====================
    ALIAS_COLLISION_POLICY: str = Field(
        default="last_wins",
        description="How duplicate client names/aliases resolve: last_wins, first_wins, reject"
    )

    # ==================== ENRICHMENT QUEUE ====================
    ENRICHMENT_WORKER_URL: str = Field(
        default="",
        description="Endpoint of the data extractor worker (empty disables dispatch)"
    )
    ENRICHMENT_BATCH_SIZE: int = Field(
        default=50,
        description="Maximum records dispatched per queue run"
    )
    MAX_ENRICHMENT_FAILURES: int = Field(
        default=3,
        description="Records with this many failed attempts are left out of the queue (0 disables)"
    )
    HEARING_DATE_FLOOR: str = Field(
        default="2022-01-01",
        description="Records with a hearing date before this are never enqueued"
    )

    # ==================== NETWORK ====================
    HTTP_TIMEOUT_SECONDS: float = Field(
        default=60.0,
        description="Timeout for Open Data and enrichment worker calls"
    )
    SWEEP_INTERVAL_SECONDS: int = Field(
        default=86400,
        description="Interval between sweeps when the worker runs continuously"
    )

    # ==================== SECURITY ====================
    INTERNAL_API_KEY: str = Field(
        default="",
        description="API key required on sweep/queue trigger endpoints"
    )
    CORS_ORIGINS: str = Field(
        default="",
        description="Comma-separated list of allowed origins"
    )

    # ==================== OBSERVABILITY ====================
    SENTRY_DSN: str = Field(
        default="",
        description="Sentry DSN for error tracking"
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR"
    )

    # ==================== API ====================
    API_TITLE: str = Field(
        default="Summons Core Sweep API",
        description="API title for OpenAPI docs"
    )
    API_VERSION: str = Field(
        default="3.1.0",
        description="API version"
    )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"

    # ==================== COMPUTED PROPERTIES ====================

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.lower() == "development"

    @property
    def debug_enabled(self) -> bool:
        """Enable debug in development or when explicitly set"""
        return self.DEBUG or self.is_development

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS_ORIGINS into a list, adding localhost outside production."""
        origins = [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

        if not self.is_production:
            origins.extend([
                "http://localhost:3000",
                "http://localhost:5173",
                "http://127.0.0.1:5173",
            ])

        return sorted(set(origins))

    def validate_production_config(self) -> List[str]:
        """
        Validate configuration for production deployment.
        Returns list of validation errors.
        """
        errors = []

        if not self.DATABASE_URL:
            errors.append("DATABASE_URL is required")

        if self.is_production:
            if not self.OPEN_DATA_APP_TOKEN:
                errors.append("OPEN_DATA_APP_TOKEN is required in production")
            if not self.ENRICHMENT_WORKER_URL:
                errors.append("ENRICHMENT_WORKER_URL is required in production")
            if not self.INTERNAL_API_KEY:
                errors.append("INTERNAL_API_KEY is required in production")
            if self.DEBUG:
                errors.append("DEBUG should be False in production")

        if self.ALIAS_COLLISION_POLICY not in ("last_wins", "first_wins", "reject"):
            errors.append(f"ALIAS_COLLISION_POLICY '{self.ALIAS_COLLISION_POLICY}' is not supported")

        return errors


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Settings are loaded once and cached for the application lifetime.
    """
    settings = Settings()

    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug: {settings.debug_enabled}")

    if settings.is_production:
        errors = settings.validate_production_config()
        if errors:
            for error in errors:
                logger.error(f"Configuration error: {error}")
            raise ValueError(f"Production configuration invalid: {', '.join(errors)}")

    return settings


# ==================== CORS CONFIGURATION ====================

def get_cors_config() -> dict:
    """Get CORS middleware configuration."""
    settings = get_settings()

    return {
        "allow_origins": settings.cors_origins_list,
        "allow_credentials": True,
        "allow_methods": ["GET", "POST", "OPTIONS"],
        "allow_headers": [
            "Content-Type",
            "Accept",
            "Origin",
            "X-Internal-Api-Key",
            "X-Request-ID",
        ],
        "expose_headers": ["X-Request-ID"],
        "max_age": 600,
    }


# ==================== ENVIRONMENT VALIDATION ====================

def validate_environment() -> dict:
    """
    Validate all required environment variables.

    Returns a status dict with validation results.
    """
    settings = get_settings()

    status = {
        "valid": True,
        "environment": settings.ENVIRONMENT,
        "errors": [],
        "warnings": [],
        "variables": {}
    }

    optional_vars = [
        ("SENTRY_DSN", settings.SENTRY_DSN, "Error tracking disabled"),
        ("OPEN_DATA_APP_TOKEN", settings.OPEN_DATA_APP_TOKEN, "Open Data requests are unauthenticated and throttled"),
        ("ENRICHMENT_WORKER_URL", settings.ENRICHMENT_WORKER_URL, "Enrichment dispatch disabled"),
        ("INTERNAL_API_KEY", settings.INTERNAL_API_KEY, "Sweep trigger endpoints are locked"),
    ]

    for name, value, warning in optional_vars:
        if not value:
            status["warnings"].append(warning)
            status["variables"][name] = "⚠ Not set"
        else:
            status["variables"][name] = "✓ Set"

    errors = settings.validate_production_config()
    if errors:
        status["errors"].extend(errors)
        status["valid"] = False

    return status
