"""
Application configuration using Pydantic Settings.

Values come from the environment or a local `.env`. Backend credentials are
optional here: each client checks for its own key when it is built, so a
missing OpenAI key never blocks extraction (and vice versa).
"""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Extraction backend (Reducto)
    reducto_api_key: Optional[str] = None
    reducto_timeout: float = 300.0

    # Classification backend (OpenAI)
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"

    # Local storage
    upload_dir: str = ".tmp_uploads"
    data_dir: str = ".data"

    log_level: str = "INFO"
    export_prefix: str = "products"


@lru_cache
def get_settings() -> Settings:
    return Settings()
