from __future__ import annotations

import json
import logging
import time
from typing import Any, Callable, Mapping, Sequence

from gaptrack.ai.config import AIConfig, AIConfigurationError, load_ai_config
from gaptrack.ai.extract import extract_plain_text, extract_structured
from gaptrack.ai.factory import get_ai_client
from gaptrack.ai.prompts import (
    chat_prompt,
    gap_analysis_prompt,
    job_description_prompt,
    resume_feedback_prompt,
    resume_parse_prompt,
    tailored_summary_prompt,
)
from gaptrack.ai.providers.ollama_provider import OllamaProvider, OllamaStatus
from gaptrack.ai.types import AIClient, AIResult, ChatMessage, ErrorKind, Failure, Success
from gaptrack.schemas import ProviderName, UserSettings

logger = logging.getLogger(__name__)

PARSE_ERROR = "Failed to parse AI response as JSON"
PING_PROMPT = 'Respond with only the word "OK"'
_MIN_KEY_LENGTH = {ProviderName.GEMINI: 10, ProviderName.OPENAI: 20}


def _parse_failure() -> Failure:
    return Failure(kind=ErrorKind.EXTRACTION, error=PARSE_ERROR, code="parse_failed")


def _as_messages(history: Sequence[ChatMessage | Mapping[str, Any]]) -> list[ChatMessage]:
    messages: list[ChatMessage] = []
    for item in history:
        if isinstance(item, ChatMessage):
            messages.append(item)
            continue
        role = item.get("role") if item.get("role") in {"system", "user", "assistant"} else "user"
        messages.append(ChatMessage(role=role, content=str(item.get("content") or "")))
    return messages


class AIGateway:
    """One entry point per AI use case, whichever provider is configured."""

    def __init__(
        self,
        user_settings: UserSettings | Mapping[str, Any] | None,
        client_factory: Callable[[AIConfig], AIClient] = get_ai_client,
    ):
        self._client_factory = client_factory
        self._client: AIClient | None = None
        self._config: AIConfig | None = None
        self._config_error: str | None = None
        try:
            self._config = load_ai_config(user_settings)
        except AIConfigurationError as exc:
            self._config_error = str(exc)

    @property
    def is_configured(self) -> bool:
        return self._config is not None

    @property
    def provider(self) -> str | None:
        return self._config.provider.value if self._config else None

    def _configuration_failure(self) -> Failure:
        return Failure(
            kind=ErrorKind.CONFIGURATION,
            error=self._config_error or "No AI provider configured",
            code="not_configured",
        )

    def _get_client(self) -> AIClient:
        if self._client is None:
            if self._config is None:
                raise RuntimeError(self._config_error or "No AI provider configured")
            self._client = self._client_factory(self._config)
        return self._client

    async def _call(self, operation: str, prompt: str) -> AIResult:
        if self._config is None:
            return self._configuration_failure()

        started = time.perf_counter()
        try:
            result = await self._get_client().call(prompt)
        except Exception as exc:  # noqa: BLE001
            logger.exception(
                json.dumps(
                    {
                        "event": "ai_call_failed",
                        "provider": self.provider,
                        "operation": operation,
                        "error": str(exc),
                    }
                )
            )
            return Failure(
                kind=ErrorKind.UNEXPECTED, error=str(exc) or "AI processing failed", recoverable=False
            )

        logger.info(
            json.dumps(
                {
                    "event": "ai_call",
                    "provider": self.provider,
                    "operation": operation,
                    "prompt_len": len(prompt),
                    "success": result.success,
                    "code": None if result.success else result.code,
                    "duration_ms": int((time.perf_counter() - started) * 1000),
                }
            )
        )
        return result

    async def _call_structured(self, operation: str, prompt: str) -> AIResult:
        result = await self._call(operation, prompt)
        if not result.success:
            return result
        parsed = extract_structured(result.text)
        if not isinstance(parsed, dict):
            logger.warning(
                json.dumps(
                    {
                        "event": "ai_parse_failed",
                        "operation": operation,
                        "response_len": len(result.text or ""),
                    }
                )
            )
            return _parse_failure()
        return Success(data=parsed)

    async def parse_resume(self, resume_text: str) -> AIResult:
        return await self._call_structured("parse_resume", resume_parse_prompt(resume_text))

    async def parse_job_description(self, job_description: str) -> AIResult:
        return await self._call_structured("parse_job_description", job_description_prompt(job_description))

    async def analyze_gap(self, parsed_resume: Any, parsed_jd: Any) -> AIResult:
        return await self._call_structured("analyze_gap", gap_analysis_prompt(parsed_resume, parsed_jd))

    async def generate_tailored_summary(self, parsed_resume: Any, parsed_jd: Any) -> AIResult:
        result = await self._call("tailored_summary", tailored_summary_prompt(parsed_resume, parsed_jd))
        if not result.success:
            return result
        return Success(text=(result.text or "").strip())

    async def analyze_resume(self, parsed_resume: Any, mode: str = "normal") -> AIResult:
        result = await self._call_structured("analyze_resume", resume_feedback_prompt(parsed_resume, mode))
        if not result.success:
            return result
        return Success(data={**result.data, "mode": mode})

    async def chat(
        self,
        history: Sequence[ChatMessage | Mapping[str, Any]],
        context: dict[str, Any] | None = None,
        mode: str = "normal",
    ) -> AIResult:
        result = await self._call("chat", chat_prompt(_as_messages(history), context, mode))
        if not result.success:
            return result
        return Success(text=extract_plain_text(result.text))

    async def raw_call(self, prompt: str) -> AIResult:
        return await self._call("raw_call", prompt)

    async def test_connection(self) -> AIResult:
        if self._config is None:
            return self._configuration_failure()

        provider = self._config.provider
        min_length = _MIN_KEY_LENGTH.get(provider)
        if min_length is not None and len(self._config.credential) < min_length:
            return Failure(kind=ErrorKind.CONFIGURATION, error="Invalid API key format", code="invalid_key")

        if provider is ProviderName.OLLAMA:
            status = await self.check_ollama()
            if not status.running:
                return Failure(kind=ErrorKind.TRANSPORT, error=status.error or "", code="daemon_unreachable")
            if not status.has_model:
                return Failure(kind=ErrorKind.TRANSPORT, error=status.error or "", code="model_not_found")

        return await self._call("test_connection", PING_PROMPT)

    async def aclose(self) -> None:
        client, self._client = self._client, None
        if client is not None:
            await client.aclose()

    async def check_ollama(self, model: str | None = None) -> OllamaStatus:
        client = self._get_client() if self.provider == ProviderName.OLLAMA.value else None
        if not isinstance(client, OllamaProvider):
            client = OllamaProvider(model=model)
        return await client.check_status(model)
