from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables and `.env`."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    DATABASE_URL: str = "sqlite:///./drive.db"

    # Auth
    SECRET_KEY: str = "change-me-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7

    # HTTP
    ORIGIN: Optional[str] = None
    API_PREFIX: str = "/api"
    FRONTEND_URL: str = "http://localhost:3000"

    # Blob storage: "local" or "r2"
    STORAGE_BACKEND: str = "local"
    LOCAL_STORAGE_DIR: str = "./storage"
    R2_ENDPOINT_URL: Optional[str] = None
    R2_ACCESS_KEY_ID: Optional[str] = None
    R2_SECRET_ACCESS_KEY: Optional[str] = None
    R2_BUCKET_NAME: str = "drive"

    # Sharing
    SHARE_LINK_EXPIRE_HOURS: Optional[int] = None
    LINK_CLEANUP_ENABLED: bool = True
    LINK_CLEANUP_INTERVAL_SECONDS: int = 60 * 60

    # Usage accounting (reported, not enforced)
    STORAGE_LIMIT_BYTES: int = 15 * 1024 * 1024 * 1024

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None


settings = Settings()
