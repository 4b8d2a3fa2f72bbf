"""Configuration for the cron trigger API."""

from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    api_prefix: str = "/api"
    api_title: str = "skyplanner-backup API"
    api_version: str = "1.0.0"

    # Shared secret expected in the x-cron-secret header
    cron_secret: Optional[str] = None

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


settings = Settings()
