from __future__ import annotations

import logging
from dataclasses import dataclass, field

import httpx

from gaptrack.ai.types import AIResult, Success, transport_failure
from gaptrack.core.config import settings

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "mistral"
UNREACHABLE_MESSAGE = "Cannot connect to Ollama. Make sure it's running: ollama serve"


@dataclass(frozen=True)
class OllamaStatus:
    running: bool
    has_model: bool
    available_models: list[str] = field(default_factory=list)
    error: str | None = None

    def to_dict(self) -> dict:
        return {
            "running": self.running,
            "hasModel": self.has_model,
            "availableModels": list(self.available_models),
            "error": self.error,
        }


class OllamaProvider:
    name = "ollama"

    def __init__(
        self,
        model: str | None = None,
        base_url: str | None = None,
        timeout_s: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._model = (model or DEFAULT_MODEL).strip()
        self._base_url = (base_url or settings.ollama_base_url).rstrip("/")
        self._timeout = timeout_s if timeout_s is not None else settings.ai_request_timeout_s
        self._transport = transport

    @property
    def model(self) -> str:
        return self._model

    def _client(self, timeout: float | None) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self._base_url, timeout=timeout, transport=self._transport)

    async def call(self, prompt: str) -> AIResult:
        payload = {
            "model": self._model,
            "prompt": prompt,
            "stream": False,
            "options": {
                "temperature": 0.3,
                "num_predict": 4096,
            },
        }
        try:
            async with self._client(self._timeout) as client:
                response = await client.post("/api/generate", json=payload)
        except httpx.ConnectError:
            return transport_failure(UNREACHABLE_MESSAGE, code="daemon_unreachable")
        except httpx.HTTPError as exc:
            logger.warning("ollama_request_failed model=%s: %s", self._model, exc)
            return transport_failure(f"Ollama request failed: {exc}", code="network_error")

        if response.status_code == 404:
            return transport_failure(
                f'Model "{self._model}" not installed. Run: ollama pull {self._model}',
                code="model_not_found",
            )
        if not response.is_success:
            return transport_failure(f"Ollama error: {response.status_code}")

        try:
            body = response.json()
        except ValueError:
            body = {}
        text = body.get("response") if isinstance(body, dict) else None
        if not text:
            return transport_failure("No response from Ollama", code="empty_response")
        return Success(text=text)

    async def aclose(self) -> None:
        """Nothing to release: each request opens and closes its own client."""

    async def list_models(self) -> list[str] | None:
        """Installed model names, or None when the daemon is not reachable."""
        try:
            async with self._client(5.0) as client:
                response = await client.get("/api/tags")
        except httpx.HTTPError:
            return None
        if not response.is_success:
            return None
        try:
            body = response.json()
        except ValueError:
            return []
        models = body.get("models") if isinstance(body, dict) else None
        return [str(m.get("name")) for m in models or [] if isinstance(m, dict) and m.get("name")]

    async def check_status(self, model: str | None = None) -> OllamaStatus:
        wanted = (model or self._model).strip()
        models = await self.list_models()
        if models is None:
            return OllamaStatus(running=False, has_model=False, error=UNREACHABLE_MESSAGE)
        has_model = any(name.startswith(wanted) for name in models)
        return OllamaStatus(
            running=True,
            has_model=has_model,
            available_models=models,
            error=None if has_model else f'Model "{wanted}" not installed. Run: ollama pull {wanted}',
        )
