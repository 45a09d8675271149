"""Configuration management using Pydantic Settings"""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """SDK configuration loaded from MAMBU_* environment variables"""

    model_config = SettingsConfigDict(
        env_prefix="MAMBU_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Platform
    base_url: str = "https://demo.mambu.com/api"
    username: Optional[str] = None
    password: Optional[str] = None

    # Service
    service_name: str = "mambu-client"
    log_level: str = "INFO"

    # HTTP Client
    http_timeout_seconds: float = 30.0
    user_agent: str = "mambu-client/0.1.0"


settings = Settings()
