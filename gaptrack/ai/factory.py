from gaptrack.ai.config import AIConfig
from gaptrack.ai.types import AIClient
from gaptrack.schemas import ProviderName

from gaptrack.ai.providers.gemini_provider import GeminiProvider
from gaptrack.ai.providers.ollama_provider import OllamaProvider
from gaptrack.ai.providers.openai_provider import OpenAIProvider


def get_ai_client(cfg: AIConfig) -> AIClient:
    if cfg.provider is ProviderName.GEMINI:
        return GeminiProvider(api_key=cfg.credential)

    if cfg.provider is ProviderName.OPENAI:
        return OpenAIProvider(api_key=cfg.credential, model=cfg.model)

    if cfg.provider is ProviderName.OLLAMA:
        return OllamaProvider(model=cfg.model)

    raise ValueError(f"Unsupported AI provider '{cfg.provider}'")
