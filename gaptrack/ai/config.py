from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from pydantic import ValidationError

from gaptrack.schemas import ProviderName, UserSettings

_LABELS = {
    ProviderName.GEMINI: "Gemini API key",
    ProviderName.OPENAI: "OpenAI API key",
    ProviderName.OLLAMA: "Ollama model",
}


class AIConfigurationError(ValueError):
    pass


@dataclass(frozen=True)
class AIConfig:
    provider: ProviderName
    credential: str
    model: str | None = None


def _credential(value: Any) -> str:
    return (value or "").strip() if isinstance(value, str) else ""


def load_ai_config(user_settings: UserSettings | Mapping[str, Any] | None) -> AIConfig:
    """Build the provider config from the persisted settings category.

    Never falls back to a default provider: an unset provider or a missing
    credential raises ``AIConfigurationError``.
    """
    if user_settings is None:
        raise AIConfigurationError("No AI provider configured")
    if not isinstance(user_settings, UserSettings):
        try:
            user_settings = UserSettings.model_validate(dict(user_settings))
        except ValidationError as exc:
            raise AIConfigurationError("Unsupported AI provider settings") from exc

    provider = user_settings.ai_provider
    if provider is None:
        raise AIConfigurationError("No AI provider configured")

    if provider is ProviderName.GEMINI:
        credential, model = _credential(user_settings.gemini_api_key), None
    elif provider is ProviderName.OPENAI:
        credential, model = _credential(user_settings.openai_api_key), _credential(user_settings.openai_model)
    else:
        credential = _credential(user_settings.ollama_model)
        model = credential

    if not credential:
        raise AIConfigurationError(f"{_LABELS[provider]} not configured")
    return AIConfig(provider=provider, credential=credential, model=model or None)
