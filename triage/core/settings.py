"""Runtime configuration loaded from environment variables."""

from __future__ import annotations

import dataclasses
import os
from functools import lru_cache

from dotenv import load_dotenv

DEFAULT_DATABASE_URL = "sqlite+pysqlite:///./triage.db"


@dataclasses.dataclass(frozen=True)
class Settings:
    """Service configuration.

    Values come from the process environment (optionally seeded from a
    ``.env`` file).  Database URLs using the bare ``postgresql://`` scheme are
    rewritten to the psycopg driver.
    """

    database_url: str = DEFAULT_DATABASE_URL
    llm_provider: str = "groq"
    llm_model: str = "llama-3.3-70b-versatile"
    llm_temperature: float = 0.7
    llm_max_tokens: int = 500
    llm_timeout_seconds: float = 15.0
    llm_max_retries: int = 1
    message_max_length: int = 2000
    messages_rate_limit: str = "30/minute"
    cors_origins: tuple[str, ...] = ()


def _normalise_database_url(url: str) -> str:
    if url.startswith("postgres://"):
        url = "postgresql://" + url[len("postgres://") :]
    if url.startswith("postgresql://"):
        return "postgresql+psycopg://" + url[len("postgresql://") :]
    return url


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from the environment with development defaults."""

    load_dotenv()
    origins = os.getenv("CORS_ORIGINS", "")
    return Settings(
        database_url=_normalise_database_url(
            os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)
        ),
        llm_provider=os.getenv("LLM_PROVIDER", "groq").lower(),
        llm_model=os.getenv("LLM_MODEL", "llama-3.3-70b-versatile"),
        llm_temperature=float(os.getenv("LLM_TEMPERATURE", "0.7")),
        llm_max_tokens=int(os.getenv("LLM_MAX_TOKENS", "500")),
        llm_timeout_seconds=float(os.getenv("LLM_TIMEOUT_SECONDS", "15")),
        llm_max_retries=int(os.getenv("LLM_MAX_RETRIES", "1")),
        message_max_length=int(os.getenv("MESSAGE_MAX_LENGTH", "2000")),
        messages_rate_limit=os.getenv("MESSAGES_RATE_LIMIT", "30/minute"),
        cors_origins=tuple(o.strip() for o in origins.split(",") if o.strip()),
    )


def reset_settings_cache() -> None:
    """Clear cached settings; useful in tests when env vars change."""

    get_settings.cache_clear()
