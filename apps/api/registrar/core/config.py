"""Application configuration."""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables."""

    auth_provider: Literal["mock", "firebase"] = "firebase"
    store_backend: Literal["memory", "firestore"] = "memory"
    firebase_project_id: str | None = None
    firebase_audience: str | None = None
    firebase_web_api_key: str | None = None
    identity_timeout_seconds: float = 10.0

    model_config = SettingsConfigDict(env_prefix="REGISTRAR_", extra="ignore")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
