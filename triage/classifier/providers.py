"""Provider credential helpers for OpenAI-compatible completion services."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass


@dataclass(frozen=True)
class ProviderCredentials:
    """Container for credentials resolved for a provider."""

    provider: str
    api_key: str | None
    base_url: str | None

    @property
    def configured(self) -> bool:
        return bool(self.api_key)


class ProviderRegistry:
    """Resolve provider credentials from environment or explicit overrides."""

    _DEFAULT_ENV_MAP: Mapping[str, str] = {
        "groq": "GROQ_API_KEY",
        "openai": "OPENAI_API_KEY",
    }
    _DEFAULT_BASE_URLS: Mapping[str, str] = {
        "groq": "https://api.groq.com/openai/v1",
    }

    def __init__(self, overrides: Mapping[str, Mapping[str, str]] | None = None):
        self._overrides = {k.lower(): dict(v) for k, v in (overrides or {}).items()}

    def get_credentials(self, provider: str) -> ProviderCredentials:
        """Return credentials for ``provider``.

        The lookup order prefers explicit overrides (e.g. injected during
        testing) and falls back to environment variables.  ``LLM_BASE_URL``
        replaces the provider's default endpoint when set.
        """

        key = provider.lower()
        if key in self._overrides:
            override = self._overrides[key]
            return ProviderCredentials(
                provider=key,
                api_key=override.get("api_key"),
                base_url=override.get("base_url", self._DEFAULT_BASE_URLS.get(key)),
            )
        if key not in self._DEFAULT_ENV_MAP:
            raise ValueError(
                f"Unsupported LLM provider {provider!r}; "
                f"expected one of {', '.join(sorted(self._DEFAULT_ENV_MAP))}"
            )
        return ProviderCredentials(
            provider=key,
            api_key=os.getenv(self._DEFAULT_ENV_MAP[key]),
            base_url=os.getenv("LLM_BASE_URL") or self._DEFAULT_BASE_URLS.get(key),
        )
