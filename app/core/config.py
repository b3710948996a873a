import json
from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    PROJECT_NAME: str = "Campus Helpdesk API"
    API_V1_PREFIX: str = "/api/v1"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    DATABASE_URL: str
    REDIS_URL: str = "redis://redis:6379/0"

    # Sessions
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7
    IDENTITY_CACHE_TTL_SECONDS: int = 300
    RATE_LIMIT_DISABLED: bool = False

    # "redis" fans change signals out to every worker process over pub/sub,
    # "memory" keeps them inside the current process
    CHANGE_FEED_BACKEND: Literal["redis", "memory"] = "redis"
    CHANGE_CHANNEL_PREFIX: str = "helpdesk:changes"

    # Reply notifications
    EMAIL_BACKEND: Literal["console", "smtp"] = "console"
    SMTP_HOST: str = "localhost"
    SMTP_PORT: int = 587
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_FROM_EMAIL: str = "helpdesk@campusdesk.edu"
    SMTP_FROM_NAME: str = "Campus Helpdesk"

    FRONTEND_URL: str = "http://localhost:5173"
    # JSON list or comma separated origins
    BACKEND_CORS_ORIGINS: str = "http://localhost:5173,http://localhost:3000"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"

    @property
    def cors_origins(self) -> list[str]:
        raw = self.BACKEND_CORS_ORIGINS.strip()
        if raw.startswith("["):
            origins: list[str] = json.loads(raw)
            return origins
        return [origin.strip() for origin in raw.split(",") if origin.strip()]


settings = Settings()
