"""Configuration management using pydantic-settings."""
from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database (SQLite file by default, any SQLAlchemy URL works)
    database_url: str = "sqlite:///./revmohelp.db"

    # Languages (first-class content is written in the default language)
    default_language: str = "uz"
    supported_languages: List[str] = ["uz", "ru", "en"]

    # Cache settings
    cache_enabled: bool = True
    preload_on_startup: bool = True

    # Logging
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
