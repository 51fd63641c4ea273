from pydantic_settings import BaseSettings
from pydantic import field_validator
from functools import lru_cache
import json


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str

    # Database Connection Pool Settings
    DB_POOL_SIZE: int = 10  # Base number of connections in pool
    DB_MAX_OVERFLOW: int = 20  # Extra connections allowed beyond pool_size
    DB_POOL_TIMEOUT: int = 30  # Seconds to wait for connection from pool
    DB_POOL_RECYCLE: int = 1800  # Recycle connections after 30 minutes

    # JWT Settings
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_HOURS: int = 12
    AUTH_COOKIE_NAME: str = "token"
    AUTH_COOKIE_SECURE: bool = False  # Set True behind HTTPS

    # App Settings
    APP_NAME: str = "Print Shop Backend"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # CORS - accepts JSON string, comma-separated, or list
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Order counter
    ORDER_NUMBER_PADDING: int = 4  # 4 = 0001
    ORDER_COUNTER_MAX_RETRIES: int = 3
    ORDER_COUNTER_BACKOFF_MS: int = 200  # Multiplied by attempt number
    ORDER_ID_COLLISION_RETRIES: int = 3
    ORDER_ID_COLLISION_JITTER_MS: int = 100

    # Inventory
    LOW_STOCK_THRESHOLD: int = 10
    RESTORE_WASTE_ON_CHEQUE_RETURN: bool = False

    # Reports
    REPORT_TIMEOUT_SECONDS: float = 20.0

    @field_validator('CORS_ORIGINS', mode='before')
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [origin.strip() for origin in v.split(',')]
        return v

    @property
    def cors_origins_list(self) -> list[str]:
        return list(self.CORS_ORIGINS)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
