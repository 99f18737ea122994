"""Application configuration."""
from typing import Optional
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def normalize_env_value(value: Optional[str]) -> Optional[str]:
    """Strip whitespace, quotes and stray commas pasted around an env value."""
    if value is None:
        return None
    return value.strip().strip(" \t\n'\",")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Environment ("development", "production", "test")
    environment: str = "development"

    # OpenAI
    openai_api_key: str
    feedback_model: str = "gpt-4o-mini"

    # Logging
    log_level: str = "INFO"

    # Database
    database_url: str

    # Sessions
    session_secret: Optional[str] = None
    nextauth_secret: Optional[str] = None

    # Vapi
    vapi_web_token: Optional[str] = None
    vapi_assistant_id: Optional[str] = None
    vapi_api_url: str = "https://api.vapi.ai"

    # Server
    base_url: Optional[str] = None
    host: str = "0.0.0.0"
    port: int = 8000

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @field_validator("vapi_web_token", "vapi_assistant_id", mode="before")
    @classmethod
    def _normalize_vapi_values(cls, value: Optional[str]) -> Optional[str]:
        return normalize_env_value(value) or None

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


settings = Settings()
