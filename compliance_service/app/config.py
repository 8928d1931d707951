from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    # Database Configuration - any SQLAlchemy URL, SQLite by default
    DATABASE_URL: str = "sqlite:///./compliance.db"
    SQLITE_BUSY_TIMEOUT_SECONDS: int = 15

    # Tenant used when a request carries no X-Tenant-ID header
    DEFAULT_TENANT_ID: str = "default"

    # Logging
    LOG_LEVEL: str = "INFO"

    # Server
    APP_HOST: str = "127.0.0.1"
    APP_PORT: int = 8020
    API_PREFIX: str = "/api/v1"
    CORS_ALLOW_ORIGINS: List[str] = ["*"]

    # Import limits
    MAX_IMPORT_FILE_SIZE_MB: int = 10  # Largest accepted .xlsx upload

    class Config:
        env_file = ".env"
        env_file_encoding = 'utf-8'
        extra = 'ignore'

settings = Settings()
