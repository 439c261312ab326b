from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _get_env(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value


def _get_env_bool(name: str, default: bool) -> bool:
    raw = _get_env(name, None)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _get_env_int(name: str, default: int) -> int:
    raw = _get_env(name, None)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_env_float(name: str, default: float | None) -> float | None:
    raw = _get_env(name, None)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _get_env_list(name: str, default: list[str]) -> tuple[str, ...]:
    raw = _get_env(name, None)
    if raw is None:
        return tuple(default)
    values = [item.strip() for item in raw.split(",")]
    clean = [item for item in values if item]
    return tuple(clean) if clean else tuple(default)


@dataclass(frozen=True)
class Settings:
    log_level: str
    sentry_dsn: str | None
    data_dir: str
    storage_db_path: str
    directory_storage_enabled: bool
    gemini_api_url: str
    openai_base_url: str | None
    ollama_base_url: str
    ai_request_timeout_s: float | None
    openai_max_retries: int
    cors_allowed_origins: tuple[str, ...]


def load_settings() -> Settings:
    data_dir = _get_env("DATA_DIR", "data") or "data"
    return Settings(
        log_level=_get_env("LOG_LEVEL", "INFO") or "INFO",
        sentry_dsn=_get_env("SENTRY_DSN"),
        data_dir=data_dir,
        storage_db_path=_get_env("STORAGE_DB_PATH") or os.path.join(data_dir, "gaptrack.db"),
        directory_storage_enabled=_get_env_bool("DIRECTORY_STORAGE_ENABLED", True),
        gemini_api_url=_get_env(
            "GEMINI_API_URL",
            "https://generativelanguage.googleapis.com/v1beta/models/gemini-2.0-flash:generateContent",
        )
        or "",
        openai_base_url=_get_env("OPENAI_BASE_URL"),
        ollama_base_url=(_get_env("OLLAMA_BASE_URL", "http://localhost:11434") or "").rstrip("/"),
        # No deadline unless one is configured explicitly.
        ai_request_timeout_s=_get_env_float("AI_REQUEST_TIMEOUT_S", None),
        openai_max_retries=_get_env_int("OPENAI_MAX_RETRIES", 0),
        cors_allowed_origins=_get_env_list(
            "CORS_ALLOWED_ORIGINS",
            [
                "http://localhost:5173",
                "http://127.0.0.1:5173",
                "http://localhost:3000",
            ],
        ),
    )


settings = load_settings()
