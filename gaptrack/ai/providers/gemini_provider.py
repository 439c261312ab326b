from __future__ import annotations

import logging
from typing import Any

import httpx

from gaptrack.ai.types import AIResult, Success, transport_failure
from gaptrack.core.config import settings

logger = logging.getLogger(__name__)

GENERATION_CONFIG = {
    "temperature": 0.7,
    "topK": 40,
    "topP": 0.95,
    "maxOutputTokens": 8192,
}


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = {}
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    return f"API error: {response.status_code}"


def _extract_text(body: Any) -> str | None:
    try:
        return body["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None


class GeminiProvider:
    name = "gemini"

    def __init__(
        self,
        api_key: str,
        api_url: str | None = None,
        timeout_s: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._api_key = api_key
        self._api_url = api_url or settings.gemini_api_url
        self._timeout = timeout_s if timeout_s is not None else settings.ai_request_timeout_s
        self._transport = transport

    async def call(self, prompt: str) -> AIResult:
        payload = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": GENERATION_CONFIG,
        }
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(
                    self._api_url,
                    params={"key": self._api_key},
                    json=payload,
                )
        except httpx.HTTPError as exc:
            logger.warning("gemini_request_failed: %s", exc)
            return transport_failure(f"Cannot reach Gemini: {exc}", code="network_error")

        status = response.status_code
        if status == 400:
            return transport_failure("Invalid API key. Get one from aistudio.google.com", code="invalid_key")
        if status == 403:
            return transport_failure(
                "API key not authorized. Check your key at aistudio.google.com", code="invalid_key"
            )
        if status == 429:
            return transport_failure("Rate limit exceeded. Wait a moment and try again.", code="rate_limited")
        if status == 503:
            return transport_failure(
                "Gemini service temporarily unavailable. Try again.", code="service_unavailable"
            )
        if not response.is_success:
            return transport_failure(_error_message(response))

        try:
            body = response.json()
        except ValueError:
            body = None
        text = _extract_text(body)
        if not text:
            return transport_failure("No response from Gemini", code="empty_response")
        return Success(text=text)

    async def aclose(self) -> None:
        """Nothing to release: each call opens and closes its own client."""
