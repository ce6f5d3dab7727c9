"""Application settings and configuration"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    APP_NAME: str = "HackPulse"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # HTTP server
    HOST: str = "0.0.0.0"
    PORT: int = 3000
    CORS_ORIGINS: str = "*"  # comma separated

    # Database
    DATABASE_URL: str = "sqlite:///./hackpulse.db"

    # GitHub API
    GITHUB_TOKEN: Optional[str] = None
    GITHUB_API_URL: str = "https://api.github.com"
    GITHUB_TIMEOUT_SECONDS: float = 30.0
    GITHUB_MAX_RETRIES: int = 1  # the next poll tick is the retry
    USER_AGENT: str = "HackPulse/1.0"

    # Polling
    POLL_INTERVAL_SECONDS: int = 300
    POLLER_ENABLED: bool = True
    POLL_ON_REPOSITORY_CREATE: bool = True
    METRICS_DEDUP_ENABLED: bool = True
    METRICS_RETENTION_DAYS: int = 30  # 0 keeps everything

    # Commit history
    COMMIT_HISTORY_MAX_PAGES: int = 10
    COMMIT_HISTORY_PER_PAGE: int = 100
    COMMIT_REQUEST_DELAY_SECONDS: float = 0.1
    DEFAULT_INTERVAL_MINUTES: int = 5
    MAX_TIME_SERIES_POINTS: int = 10000

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields in .env

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


settings = Settings()
