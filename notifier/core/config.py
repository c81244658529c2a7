"""
Notifier configuration
Every setting can be overridden by an environment variable of the same name
or by an entry in .env
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
from functools import lru_cache

class Settings(BaseSettings):
    """Settings for the producer, the worker and their host process"""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # Process
    APP_NAME: str = "Notifier"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Notification log storage
    DATABASE_URL: str = "sqlite:///./notifier.db"
    DATABASE_POOL_SIZE: int = 20
    DATABASE_MAX_OVERFLOW: int = 40
    DATABASE_POOL_TIMEOUT: int = 30
    DATABASE_ECHO: bool = False

    # Queue backend
    REDIS_URL: str = "redis://localhost:6379"
    REDIS_MAX_CONNECTIONS: int = 50
    NOTIFICATION_QUEUE_KEY: str = "notifications:queue"

    # Worker
    WORKER_ENABLED: bool = True
    WORKER_IDLE_BACKOFF_SECONDS: float = 5.0
    WORKER_SHUTDOWN_TIMEOUT_SECONDS: float = 10.0

    # Push delivery
    FIREBASE_CREDENTIALS_JSON: Optional[str] = None
    FIREBASE_CREDENTIALS_PATH: Optional[str] = None
    BROADCAST_TOPIC: str = "all"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None
    LOG_MAX_BYTES: int = 10 * 1024 * 1024  # 10MB
    LOG_BACKUP_COUNT: int = 5

    @field_validator("LOG_LEVEL")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {value}")
        return level

    @field_validator("WORKER_IDLE_BACKOFF_SECONDS", "WORKER_SHUTDOWN_TIMEOUT_SECONDS")
    @classmethod
    def positive_interval(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("Worker intervals must be positive")
        return value

    @property
    def database_url_async(self) -> str:
        """DATABASE_URL with the async driver for its dialect"""
        if self.DATABASE_URL.startswith("postgresql://"):
            return self.DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://", 1)
        if self.DATABASE_URL.startswith("sqlite://"):
            return self.DATABASE_URL.replace("sqlite://", "sqlite+aiosqlite://", 1)
        return self.DATABASE_URL

@lru_cache()
def get_settings() -> Settings:
    """Settings are read from the environment once per process"""
    return Settings()

settings = get_settings()
