from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache


def _env(name: str, default: str | None = None) -> str | None:
    val = os.environ.get(name)
    if val is None or val.strip() == "":
        return default
    return val


def _env_int(name: str, default: int) -> int:
    val = _env(name)
    return int(val) if val is not None else default


def _env_float(name: str, default: float) -> float:
    val = _env(name)
    return float(val) if val is not None else default


DEFAULT_MODEL = "gemini-2.5-flash"
FALLBACK_MODELS = ("gemini-2.5-flash", "gemini-2.0-flash", "gemini-1.5-flash")


@dataclass(frozen=True)
class Settings:
    """
    Environment-driven settings. Credentials are optional here; the Gemini adapter
    raises ConfigMissingError when it is actually asked to talk to the model.
    """

    api_key: str | None = None
    project: str | None = None
    location: str = "us-central1"
    model: str = DEFAULT_MODEL
    fallback_models: tuple[str, ...] = field(default=FALLBACK_MODELS)
    temperature: float = 0.7
    max_attachment_bytes: int = 10 * 1024 * 1024
    language: str = "ar-SA"
    session_ttl_seconds: int = 60 * 60
    max_sessions: int = 10_000
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            api_key=_env("GOOGLE_API_KEY") or _env("GEMINI_API_KEY") or _env("API_KEY"),
            project=_env("GOOGLE_CLOUD_PROJECT"),
            location=_env("GOOGLE_CLOUD_LOCATION", "us-central1") or "us-central1",
            model=_env("GEMINI_MODEL", DEFAULT_MODEL) or DEFAULT_MODEL,
            temperature=_env_float("TUTOR_TEMPERATURE", 0.7),
            max_attachment_bytes=_env_int("TUTOR_MAX_ATTACHMENT_BYTES", 10 * 1024 * 1024),
            language=_env("TUTOR_LANGUAGE", "ar-SA") or "ar-SA",
            session_ttl_seconds=_env_int("TUTOR_SESSION_TTL_SECONDS", 60 * 60),
            max_sessions=_env_int("TUTOR_MAX_SESSIONS", 10_000),
            log_level=_env("LOG_LEVEL", "INFO") or "INFO",
        )

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key or self.project)


@lru_cache()
def get_settings() -> Settings:
    """Return a cached Settings instance built from the process environment."""
    return Settings.from_env()
