from __future__ import annotations

import logging
from typing import Optional

import httpx
from openai import (
    APIConnectionError,
    APIStatusError,
    AsyncOpenAI,
    AuthenticationError,
    RateLimitError,
)

from gaptrack.ai.types import AIResult, Success, transport_failure
from gaptrack.core.config import settings

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"


class OpenAIProvider:
    name = "openai"

    def __init__(
        self,
        api_key: str,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_s: Optional[float] = None,
        max_retries: Optional[int] = None,
        temperature: float = 0.7,
        max_tokens: int = 4096,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self._model = (model or DEFAULT_MODEL).strip()
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=(base_url or settings.openai_base_url or None),
            timeout=timeout_s if timeout_s is not None else settings.ai_request_timeout_s,
            max_retries=max_retries if max_retries is not None else settings.openai_max_retries,
            http_client=http_client,
        )

    async def call(self, prompt: str) -> AIResult:
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=[{"role": "user", "content": prompt}],
                temperature=self._temperature,
                max_tokens=self._max_tokens,
            )
        except AuthenticationError:
            return transport_failure("Invalid API key. Get one from platform.openai.com", code="invalid_key")
        except RateLimitError:
            return transport_failure(
                "Rate limit or quota exceeded. Check your OpenAI billing.", code="rate_limited"
            )
        except APIStatusError as exc:
            if exc.status_code == 503:
                return transport_failure(
                    "OpenAI service temporarily unavailable. Try again.", code="service_unavailable"
                )
            return transport_failure(exc.message or f"API error: {exc.status_code}")
        except APIConnectionError as exc:
            logger.warning("openai_request_failed model=%s: %s", self._model, exc)
            return transport_failure(f"Cannot reach OpenAI: {exc}", code="network_error")

        text = response.choices[0].message.content if response.choices else None
        if not text:
            return transport_failure("No response from OpenAI", code="empty_response")
        return Success(text=text)

    async def aclose(self) -> None:
        await self._client.close()
