"""
Store env variables and other config settings.
"""
from __future__ import annotations

from functools import lru_cache
from typing import List

from pydantic import BaseModel, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class ContactLink(BaseModel):
    label: str
    url: str


DEFAULT_CONTACT_LINKS = [
    ContactLink(label="Portfolio", url="https://portfolio.example.com"),
    ContactLink(label="GitHub", url="https://github.com/example"),
    ContactLink(label="LinkedIn", url="https://www.linkedin.com/in/example"),
]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore extra env vars to prevent crashes
    )

    # LLM Configuration
    # NOTE: keep it optional for import-time, enforce at call-time.
    openai_api_key: SecretStr | None = Field(default=None, description="Primary LLM provider")
    gemini_api_key: SecretStr | None = Field(default=None, description="Fallback LLM provider")

    openai_model: str = "gpt-4o"
    gemini_model: str = "gemini-2.5-flash"
    llm_max_attempts: int = 1
    timeout_seconds: int = 30

    # MLflow
    mlflow_enabled: bool = True
    mlflow_tracking_uri: str = "file:./mlruns"
    experiment_name: str = "cv_tailor_v1"

    # Form limits
    cv_min_chars: int = 50
    cv_max_chars: int = 10_000

    # Adapted CV validation
    adapted_cv_word_limit: int = 700
    required_cv_sections: List[str] = Field(
        default_factory=lambda: ["Contact Information", "Work Experience", "Skills"]
    )

    # Appended to every cover letter that does not already mention them
    contact_links: List[ContactLink] = Field(
        default_factory=lambda: list(DEFAULT_CONTACT_LINKS)
    )

    # Web
    cors_allow_origins: List[str] = Field(default_factory=lambda: ["*"])
    session_limit: int = 1000


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
