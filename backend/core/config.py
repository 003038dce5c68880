"""
Application configuration management
"""

from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator


class Settings(BaseSettings):
    """Application settings"""

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    # API Settings
    API_PREFIX: str = ""
    PROJECT_NAME: str = "ImgBed Upload"
    PUBLIC_FILE_PREFIX: str = "/file"

    # CORS Settings
    CORS_ORIGINS: List[str] = ["*"]
    CORS_MAX_AGE: int = 86400

    # Upstream (Telegram Bot API used as file storage)
    TG_BOT_TOKEN: str = ""
    TG_CHAT_ID: str = ""
    TG_API_BASE_URL: str = "https://api.telegram.org"
    UPSTREAM_TIMEOUT: float = 300.0

    # File Upload Settings
    MAX_FILE_SIZE: int = 10 * 1024 * 1024 * 1024  # 10GiB

    # Retry Settings
    TRANSPORT_MAX_ATTEMPTS: int = 3
    TASK_RETRIES: int = 1  # outer retries around a whole file upload
    TASK_RETRY_DELAY: float = 1.0

    # Dispatch Settings
    DISPATCH_MODE: str = "adaptive"  # 'adaptive' or 'parallel'
    SLICE_PAUSE: float = 0.1

    # Metadata index (KV store)
    KV_BACKEND: str = "none"  # 'none', 'memory' or 'cloudflare'
    CF_API_BASE_URL: str = "https://api.cloudflare.com/client/v4"
    CF_ACCOUNT_ID: str = ""
    CF_API_TOKEN: str = ""
    CF_KV_NAMESPACE_ID: str = ""
    KV_BATCH_SIZE: int = 5
    KV_BATCH_PAUSE: float = 0.05

    # Response Settings
    RESPONSE_FORMAT: str = "structured"  # 'structured' or 'legacy'

    # Logging
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True
    )

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",")]
        return v

    @field_validator("DISPATCH_MODE", "KV_BACKEND", "RESPONSE_FORMAT", mode="before")
    @classmethod
    def normalize_choice(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @property
    def upstream_configured(self) -> bool:
        return bool(self.TG_BOT_TOKEN and self.TG_CHAT_ID)


# Create settings instance
settings = Settings()
