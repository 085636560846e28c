"""
Environment configuration for the detention scheduler.
Uses Pydantic's settings management to handle environment variables
with proper type validation and default values.
"""

import json
from typing import List, Optional, Union
from pathlib import Path
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from dotenv import load_dotenv

# Load environment variables from .env file if it exists
env_path = Path('.') / '.env'
load_dotenv(dotenv_path=env_path)


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Application configuration
    APP_NAME: str = Field(default="Detention Scheduler", alias="PROJECT_NAME")
    API_VERSION: str = Field(default="v1", alias="PROJECT_VERSION")
    API_V1_STR: str = "/api/v1"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    CORS_ORIGINS: List[str] = Field(default=["*"], alias="BACKEND_CORS_ORIGINS")

    # Database configuration
    DATABASE_URL: str = "sqlite:///./detention.db"
    DB_POOL_SIZE: int = 20
    DB_POOL_OVERFLOW: int = 10
    DB_ECHO: bool = False
    DB_CONNECT_TIMEOUT: int = 30
    SLOW_QUERY_SECONDS: float = 0.5

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "text"
    LOG_FILE: Optional[str] = None

    # Business rules
    WARNING_LIMIT: int = 2
    DEFAULT_SLOT_CAPACITY: int = 20
    MAX_SLOT_CAPACITY: int = 50
    DEFAULT_SLOT_LOCATION: str = "Cafeteria"
    REASSIGN_CAPACITY_RETRIES: int = 1

    # Outbound notifications
    NOTIFICATION_WEBHOOK_URL: Optional[str] = None
    NOTIFICATION_WEBHOOK_SECRET: Optional[str] = None
    NOTIFICATION_TIMEOUT_SECONDS: float = 10.0
    NOTIFICATION_MAX_ATTEMPTS: int = 3
    NOTIFICATION_FROM_NAME: str = "Detention Monitor"
    NOTIFICATION_BATCH_SIZE: int = 100

    # Background tasks
    TASK_BROKER_URL: str = "memory://"
    TASK_RESULT_BACKEND: Optional[str] = None
    TASK_ALWAYS_EAGER: bool = False
    TASK_TIMEOUT: int = 300
    ENABLE_PERIODIC_TASKS: bool = True
    NOTIFICATION_DELIVERY_INTERVAL_SECONDS: float = 60.0
    RECONCILIATION_HOUR_UTC: int = 2

    # Validators
    @field_validator('CORS_ORIGINS', mode='before')
    @classmethod
    def parse_cors_origins(cls, v: Union[str, List[str]]) -> List[str]:
        """Parse CORS_ORIGINS from string to list"""
        if isinstance(v, str):
            # Handle JSON string format from .env
            if v.startswith('[') and v.endswith(']'):
                try:
                    return json.loads(v)
                except json.JSONDecodeError:
                    pass
            return [origin.strip() for origin in v.split(",")]
        return v

    @field_validator('LOG_LEVEL')
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator('WARNING_LIMIT', 'DEFAULT_SLOT_CAPACITY', 'MAX_SLOT_CAPACITY')
    @classmethod
    def must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be a positive integer")
        return v

    def is_production(self) -> bool:
        """Check if running in production environment"""
        return self.ENVIRONMENT == "production"

    def is_development(self) -> bool:
        """Check if running in development environment"""
        return self.ENVIRONMENT == "development"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
