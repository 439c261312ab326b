from __future__ import annotations

import logging
from typing import Callable

from gaptrack.ai.config import AIConfig
from gaptrack.ai.factory import get_ai_client
from gaptrack.ai.gateway import AIGateway
from gaptrack.ai.lifecycle import RequestLifecycle
from gaptrack.ai.types import AIClient
from gaptrack.schemas import UserSettings

logger = logging.getLogger(__name__)


def _settings_key(user_settings: UserSettings) -> tuple:
    return (
        user_settings.ai_provider,
        user_settings.gemini_api_key,
        user_settings.openai_api_key,
        user_settings.openai_model,
        user_settings.ollama_model,
    )


class AIService:
    """Keeps one lifecycle per AI configuration; a settings change starts a fresh one."""

    def __init__(self, client_factory: Callable[[AIConfig], AIClient] = get_ai_client):
        self._client_factory = client_factory
        self._key: tuple | None = None
        self._lifecycle = RequestLifecycle(None)

    async def lifecycle_for(self, user_settings: UserSettings) -> RequestLifecycle:
        key = _settings_key(user_settings)
        if key == self._key:
            return self._lifecycle

        previous = self._lifecycle
        gateway = AIGateway(user_settings, self._client_factory) if user_settings.ai_provider else None
        self._lifecycle = RequestLifecycle(gateway)
        self._key = key
        logger.info("ai_lifecycle_rebuilt provider=%s", gateway.provider if gateway else None)
        await previous.aclose()
        return self._lifecycle

    async def aclose(self) -> None:
        await self._lifecycle.aclose()
