from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import Field, field_validator

from .common import CamelModel, utc_now


class ProviderName(str, Enum):
    GEMINI = "gemini"
    OPENAI = "openai"
    OLLAMA = "ollama"


class UserSettings(CamelModel):
    version: int = 1
    created_at: str = Field(default_factory=utc_now)
    updated_at: str = Field(default_factory=utc_now)
    ai_provider: ProviderName | None = None
    gemini_api_key: str | None = None
    openai_api_key: str | None = None
    openai_model: str | None = None
    ollama_model: str | None = "mistral"
    view_preference: str = "list"
    goal_date: str | None = None

    @field_validator("ai_provider", mode="before")
    @classmethod
    def _blank_provider(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower() or None
        return value
