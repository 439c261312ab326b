import os
import sys
import unittest
from pathlib import Path
from unittest.mock import patch

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from gaptrack.ai.config import AIConfigurationError, load_ai_config  # noqa: E402
from gaptrack.ai.factory import get_ai_client  # noqa: E402
from gaptrack.ai.providers.gemini_provider import GeminiProvider  # noqa: E402
from gaptrack.ai.providers.ollama_provider import OllamaProvider  # noqa: E402
from gaptrack.core.config import load_settings  # noqa: E402
from gaptrack.schemas import ProviderName, UserSettings  # noqa: E402


class SettingsTests(unittest.TestCase):
    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            config = load_settings()
        self.assertEqual(config.log_level, "INFO")
        self.assertEqual(config.storage_db_path, "data/gaptrack.db")
        self.assertTrue(config.directory_storage_enabled)
        self.assertIsNone(config.ai_request_timeout_s)
        self.assertEqual(config.openai_max_retries, 0)
        self.assertEqual(config.ollama_base_url, "http://localhost:11434")
        self.assertIn("gemini-2.0-flash:generateContent", config.gemini_api_url)

    def test_environment_overrides(self):
        env = {
            "DIRECTORY_STORAGE_ENABLED": "0",
            "AI_REQUEST_TIMEOUT_S": "45",
            "OPENAI_MAX_RETRIES": "2",
            "OLLAMA_BASE_URL": "http://gpu-box:11434/",
            "CORS_ALLOWED_ORIGINS": "http://a.test, ,http://b.test",
        }
        with patch.dict(os.environ, env, clear=True):
            config = load_settings()
        self.assertFalse(config.directory_storage_enabled)
        self.assertEqual(config.ai_request_timeout_s, 45.0)
        self.assertEqual(config.openai_max_retries, 2)
        self.assertEqual(config.ollama_base_url, "http://gpu-box:11434")
        self.assertEqual(config.cors_allowed_origins, ("http://a.test", "http://b.test"))

    def test_malformed_numbers_fall_back(self):
        with patch.dict(os.environ, {"AI_REQUEST_TIMEOUT_S": "soon", "OPENAI_MAX_RETRIES": "many"}, clear=True):
            config = load_settings()
        self.assertIsNone(config.ai_request_timeout_s)
        self.assertEqual(config.openai_max_retries, 0)


class AIConfigTests(unittest.TestCase):
    def test_no_provider(self):
        for value in (None, {}, UserSettings(), {"aiProvider": "  "}):
            with self.assertRaises(AIConfigurationError) as ctx:
                load_ai_config(value)
            self.assertEqual(str(ctx.exception), "No AI provider configured")

    def test_missing_credentials(self):
        cases = {
            "gemini": "Gemini API key not configured",
            "openai": "OpenAI API key not configured",
        }
        for provider, message in cases.items():
            with self.assertRaises(AIConfigurationError) as ctx:
                load_ai_config({"aiProvider": provider})
            self.assertEqual(str(ctx.exception), message)

        with self.assertRaises(AIConfigurationError) as ctx:
            load_ai_config({"aiProvider": "ollama", "ollamaModel": ""})
        self.assertEqual(str(ctx.exception), "Ollama model not configured")

    def test_unknown_provider(self):
        with self.assertRaises(AIConfigurationError) as ctx:
            load_ai_config({"aiProvider": "claude"})
        self.assertEqual(str(ctx.exception), "Unsupported AI provider settings")

    def test_openai_config_carries_model(self):
        cfg = load_ai_config({"aiProvider": "openai", "openaiApiKey": " sk-key ", "openaiModel": "gpt-4o"})
        self.assertEqual(cfg.provider, ProviderName.OPENAI)
        self.assertEqual(cfg.credential, "sk-key")
        self.assertEqual(cfg.model, "gpt-4o")

    def test_factory_builds_matching_client(self):
        gemini = get_ai_client(load_ai_config({"aiProvider": "gemini", "geminiApiKey": "key-1234567890"}))
        ollama = get_ai_client(load_ai_config({"aiProvider": "ollama", "ollamaModel": "llama3"}))
        self.assertIsInstance(gemini, GeminiProvider)
        self.assertIsInstance(ollama, OllamaProvider)
        self.assertEqual(ollama.model, "llama3")


if __name__ == "__main__":
    unittest.main()
