"""Environment configuration and validation.

This module defines strongly-typed application settings loaded from environment variables
(optionally via a local `.env` file).
"""

from __future__ import annotations

import logging

from pydantic import AliasChoices, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    airtable_token: str = Field(alias="AIRTABLE_TOKEN")
    airtable_base_id: str = Field(alias="AIRTABLE_BASE_ID")
    airtable_table: str = Field(default="Rooms", alias="AIRTABLE_TABLE")
    airtable_view: str = Field(default="Mapfluence_Rooms", alias="AIRTABLE_VIEW")
    airtable_api_base: str = Field(default="https://api.airtable.com/v0", alias="AIRTABLE_API_BASE")
    airtable_timeout_s: float = Field(default=30.0, alias="AIRTABLE_TIMEOUT_S")

    llm_enabled: bool = Field(default=True, alias="LLM_ENABLED")
    llm_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("LLM_API_KEY", "OPENAI_API_KEY"),
    )
    llm_model: str = Field(default="gpt-4.1-mini", alias="LLM_MODEL")
    llm_api_base: str = Field(default="https://api.openai.com/v1", alias="LLM_API_BASE")
    llm_timeout_s: float = Field(default=30.0, alias="LLM_TIMEOUT_S")

    field_cache_ttl_s: float = Field(default=300.0, alias="FIELD_CACHE_TTL_S")

    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8787, alias="PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @field_validator("field_cache_ttl_s", "airtable_timeout_s", "llm_timeout_s")
    @classmethod
    def validate_positive(cls, value: float) -> float:
        """Reject zero or negative durations."""

        if value <= 0:
            raise ValueError("must be positive")
        return value

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Accept standard level names in any case."""

        name = value.strip().upper()
        if name not in logging.getLevelNamesMapping():
            raise ValueError(f"unknown log level: {value}")
        return name

    @model_validator(mode="after")
    def validate_llm_config(self) -> Settings:
        """If question answering via the LLM is enabled, an API key must be provided."""

        if self.llm_enabled and not self.llm_api_key:
            raise ValueError("LLM_API_KEY (or OPENAI_API_KEY) is required when LLM_ENABLED=true")
        return self

    @property
    def view(self) -> str | None:
        """The Airtable view used to scope reads; an empty setting disables scoping."""

        return self.airtable_view.strip() or None


def load_settings() -> Settings:
    """Load and validate settings from environment variables.

    Raises:
        RuntimeError: If the environment configuration is missing or invalid.
    """

    try:
        return Settings()
    except ValidationError as exc:
        raise RuntimeError(f"Invalid environment configuration: {exc}") from exc
