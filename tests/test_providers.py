import json
import sys
import unittest
from pathlib import Path

import httpx

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from gaptrack.ai.providers.gemini_provider import GENERATION_CONFIG, GeminiProvider  # noqa: E402
from gaptrack.ai.providers.ollama_provider import UNREACHABLE_MESSAGE, OllamaProvider  # noqa: E402
from gaptrack.ai.providers.openai_provider import OpenAIProvider  # noqa: E402
from gaptrack.ai.types import ErrorKind  # noqa: E402

GEMINI_URL = "https://gemini.test/v1beta/models/gemini-2.0-flash:generateContent"
OLLAMA_URL = "http://ollama.test"
OPENAI_URL = "https://openai.test/v1"


def _gemini_body(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def _refuse(request):
    raise httpx.ConnectError("connection refused", request=request)


class GeminiProviderTests(unittest.IsolatedAsyncioTestCase):
    def _provider(self, handler):
        return GeminiProvider(api_key="gemini-key-123", api_url=GEMINI_URL, transport=httpx.MockTransport(handler))

    async def test_success_sends_key_and_generation_config(self):
        seen = {}

        def handler(request):
            seen["key"] = request.url.params.get("key")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=_gemini_body("parsed text"))

        result = await self._provider(handler).call("hello")

        self.assertTrue(result.success)
        self.assertEqual(result.text, "parsed text")
        self.assertEqual(seen["key"], "gemini-key-123")
        self.assertEqual(seen["body"]["contents"], [{"parts": [{"text": "hello"}]}])
        self.assertEqual(seen["body"]["generationConfig"], GENERATION_CONFIG)

    async def test_rate_limit(self):
        result = await self._provider(lambda request: httpx.Response(429)).call("hello")
        self.assertFalse(result.success)
        self.assertEqual(result.kind, ErrorKind.TRANSPORT)
        self.assertEqual(result.code, "rate_limited")
        self.assertEqual(result.error, "Rate limit exceeded. Wait a moment and try again.")

    async def test_bad_request_and_forbidden_mean_invalid_key(self):
        for status in (400, 403):
            result = await self._provider(lambda request, s=status: httpx.Response(s)).call("hello")
            self.assertEqual(result.code, "invalid_key")

    async def test_service_unavailable(self):
        result = await self._provider(lambda request: httpx.Response(503)).call("hello")
        self.assertEqual(result.code, "service_unavailable")

    async def test_other_status_uses_body_message(self):
        handler = lambda request: httpx.Response(500, json={"error": {"message": "Internal model failure"}})  # noqa: E731
        result = await self._provider(handler).call("hello")
        self.assertEqual(result.code, "http_error")
        self.assertEqual(result.error, "Internal model failure")

    async def test_other_status_without_body(self):
        result = await self._provider(lambda request: httpx.Response(502, text="bad gateway")).call("hello")
        self.assertEqual(result.error, "API error: 502")

    async def test_missing_candidates_is_empty_response(self):
        result = await self._provider(lambda request: httpx.Response(200, json={"candidates": []})).call("hello")
        self.assertEqual(result.code, "empty_response")
        self.assertEqual(result.error, "No response from Gemini")

    async def test_network_error(self):
        result = await self._provider(_refuse).call("hello")
        self.assertEqual(result.code, "network_error")


class OllamaProviderTests(unittest.IsolatedAsyncioTestCase):
    def _provider(self, handler, model="mistral"):
        return OllamaProvider(model=model, base_url=OLLAMA_URL, transport=httpx.MockTransport(handler))

    async def test_success_sends_non_streaming_generate(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"response": "local answer"})

        result = await self._provider(handler).call("hello")

        self.assertEqual(result.text, "local answer")
        self.assertEqual(seen["path"], "/api/generate")
        self.assertEqual(seen["body"]["model"], "mistral")
        self.assertFalse(seen["body"]["stream"])
        self.assertEqual(seen["body"]["options"], {"temperature": 0.3, "num_predict": 4096})

    async def test_connection_refused_is_daemon_unreachable(self):
        result = await self._provider(_refuse).call("hello")
        self.assertEqual(result.code, "daemon_unreachable")
        self.assertEqual(result.error, UNREACHABLE_MESSAGE)

    async def test_missing_model(self):
        result = await self._provider(lambda request: httpx.Response(404), model="llama3").call("hello")
        self.assertEqual(result.code, "model_not_found")
        self.assertIn("ollama pull llama3", result.error)

    async def test_other_status_is_http_error(self):
        result = await self._provider(lambda request: httpx.Response(500)).call("hello")
        self.assertEqual(result.code, "http_error")
        self.assertEqual(result.error, "Ollama error: 500")

    async def test_check_status_matches_model_prefix(self):
        tags = {"models": [{"name": "mistral:latest"}, {"name": "llama3:8b"}]}
        status = await self._provider(lambda request: httpx.Response(200, json=tags)).check_status()
        self.assertTrue(status.running)
        self.assertTrue(status.has_model)
        self.assertEqual(status.available_models, ["mistral:latest", "llama3:8b"])

    async def test_check_status_reports_missing_model(self):
        tags = {"models": [{"name": "llama3:8b"}]}
        status = await self._provider(lambda request: httpx.Response(200, json=tags)).check_status("phi3")
        self.assertTrue(status.running)
        self.assertFalse(status.has_model)
        self.assertIn("phi3", status.error)

    async def test_check_status_when_daemon_is_down(self):
        status = await self._provider(_refuse).check_status()
        self.assertFalse(status.running)
        self.assertEqual(status.to_dict()["error"], UNREACHABLE_MESSAGE)


class OpenAIProviderTests(unittest.IsolatedAsyncioTestCase):
    def _provider(self, handler):
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        self.addAsyncCleanup(client.aclose)
        return OpenAIProvider(api_key="sk-test-key-0123456789", base_url=OPENAI_URL, max_retries=0, http_client=client)

    async def test_success(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers.get("authorization")
            seen["body"] = json.loads(request.content)
            return httpx.Response(
                200,
                json={
                    "id": "chatcmpl-1",
                    "object": "chat.completion",
                    "created": 0,
                    "model": "gpt-4o-mini",
                    "choices": [
                        {
                            "index": 0,
                            "message": {"role": "assistant", "content": "cloud answer"},
                            "finish_reason": "stop",
                        }
                    ],
                },
            )

        result = await self._provider(handler).call("hello")

        self.assertEqual(result.text, "cloud answer")
        self.assertEqual(seen["auth"], "Bearer sk-test-key-0123456789")
        self.assertEqual(seen["body"]["model"], "gpt-4o-mini")
        self.assertEqual(seen["body"]["messages"], [{"role": "user", "content": "hello"}])
        self.assertEqual(seen["body"]["max_tokens"], 4096)

    async def test_unauthorized(self):
        handler = lambda request: httpx.Response(401, json={"error": {"message": "bad key"}})  # noqa: E731
        result = await self._provider(handler).call("hello")
        self.assertEqual(result.code, "invalid_key")

    async def test_rate_limited(self):
        handler = lambda request: httpx.Response(429, json={"error": {"message": "slow down"}})  # noqa: E731
        result = await self._provider(handler).call("hello")
        self.assertEqual(result.code, "rate_limited")
        self.assertEqual(result.error, "Rate limit or quota exceeded. Check your OpenAI billing.")

    async def test_service_unavailable(self):
        handler = lambda request: httpx.Response(503, json={"error": {"message": "overloaded"}})  # noqa: E731
        result = await self._provider(handler).call("hello")
        self.assertEqual(result.code, "service_unavailable")

    async def test_connection_error(self):
        result = await self._provider(_refuse).call("hello")
        self.assertEqual(result.code, "network_error")


if __name__ == "__main__":
    unittest.main()
