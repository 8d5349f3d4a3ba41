"""
Settings for the settlement service, read from the environment.

Environment files, first match wins:
1. .env.{ENVIRONMENT} (e.g. .env.production)
2. .env

Production refuses to start without:
- FOOTBALL_DATA_API_KEY (unless USE_SAMPLE_DATA_FALLBACK is enabled)
- DATABASE_URL (anything other than the local SQLite default)
"""
import os
import logging
from pathlib import Path
from typing import Literal
from pydantic_settings import BaseSettings, SettingsConfigDict

# Repository root, three levels above this file
PROJECT_ROOT = Path(__file__).parent.parent.parent

DEFAULT_DATABASE_URL = "sqlite:///./lappeleken.db"

DEV_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:8001",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:8001",
]

logger = logging.getLogger(__name__)


def _env_file_for(environment: str) -> Path:
    """The environment-specific file if present, else the plain .env."""
    specific = PROJECT_ROOT / f".env.{environment}"
    if specific.exists():
        logger.info(f"Loading environment from {specific.name}")
        return specific

    fallback = PROJECT_ROOT / ".env"
    if fallback.exists():
        logger.info(f"Loading environment from .env (environment: {environment})")
    else:
        logger.debug(f"No .env.{environment} or .env found; using process environment only")
    return fallback


class Settings(BaseSettings):
    """Service settings. Field names match the environment variables."""

    model_config = SettingsConfigDict(
        env_file=str(_env_file_for(os.getenv("ENVIRONMENT", "development"))),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    ENVIRONMENT: Literal["development", "production", "test"] = "development"

    # Application
    APP_NAME: str = "Lappeleken Settlement API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8001

    # Saved games
    DATABASE_URL: str = DEFAULT_DATABASE_URL

    # football-data.org v4
    FOOTBALL_DATA_API_KEY: str = ""
    FOOTBALL_DATA_BASE_URL: str = "https://api.football-data.org/v4"
    FOOTBALL_DATA_TIMEOUT: float = 30.0
    FOOTBALL_DATA_RETRY_ATTEMPTS: int = 1  # 1 = no automatic retry
    RATE_LIMIT_CALLS_PER_MINUTE: int = 25  # Free tier allowance

    # Offline sample data when there is no key or the API is down
    USE_SAMPLE_DATA_FALLBACK: bool = True

    # Live mode
    LIVE_POLL_INTERVAL_SECONDS: int = 60
    FREE_DAILY_LIVE_MATCHES: int = 1
    UNLIMITED_LIVE_MATCHES: bool = False
    PLAYER_FUZZY_MATCHING: bool = True

    # slowapi limits on / and /health
    RATE_LIMIT_ENABLED: bool = True

    # Comma-separated allowed origins
    CORS_ORIGINS_STR: str = ""

    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    @property
    def CORS_ORIGINS(self) -> list[str]:
        """
        Allowed origins. Development falls back to localhost; production
        gets nothing unless explicit, non-wildcard origins are configured.
        """
        origins = [o.strip() for o in self.CORS_ORIGINS_STR.split(",") if o.strip()]
        if not self.is_production():
            return origins or DEV_CORS_ORIGINS
        if not origins:
            logger.warning("CORS_ORIGINS_STR is empty in production; cross-origin requests are refused")
            return []
        if "*" in origins:
            logger.warning("Ignoring wildcard CORS_ORIGINS_STR in production; list origins explicitly")
            return []
        return origins

    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"

    def has_football_data_key(self) -> bool:
        return bool(self.FOOTBALL_DATA_API_KEY.strip())

    def validate_required_secrets(self) -> list[str]:
        """
        Names of secrets production needs but does not have.

        Always empty outside production.
        """
        if not self.is_production():
            return []

        missing = []
        if self.DATABASE_URL == DEFAULT_DATABASE_URL:
            missing.append("DATABASE_URL")
        # Sample data mode keeps the service usable without a key
        if not self.has_football_data_key() and not self.USE_SAMPLE_DATA_FALLBACK:
            missing.append("FOOTBALL_DATA_API_KEY")
        return missing


settings = Settings()

missing_secrets = settings.validate_required_secrets()
if missing_secrets:
    logger.warning(f"Missing required secrets for {settings.ENVIRONMENT}: {', '.join(missing_secrets)}")
    if settings.is_production():
        raise ValueError(
            f"Refusing to start in production without: {', '.join(missing_secrets)}"
        )
