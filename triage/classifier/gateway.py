"""Gateway to the completion service that decides replies and transfers.

The gateway never raises: transport failures, malformed responses and
validation errors are logged and replaced by a fixed fallback decision so the
conversation always receives a reply.  When no API key is configured the
fallback is returned without calling out, which keeps the service usable in
development and CI without network access.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from openai import OpenAI

from ..core.settings import Settings
from .prompts import FALLBACK_MESSAGE, SYSTEM_PROMPT
from .providers import ProviderRegistry
from .schemas import ClassificationError, Decision, HistoryEntry, parse_decision

logger = logging.getLogger(__name__)


class ClassifierGateway:
    """Classify a conversation turn with an OpenAI-compatible chat model."""

    def __init__(
        self,
        client: Any | None,
        *,
        model: str,
        temperature: float = 0.7,
        max_tokens: int = 500,
        system_prompt: str = SYSTEM_PROMPT,
        fallback_message: str = FALLBACK_MESSAGE,
    ) -> None:
        self._client = client
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._system_prompt = system_prompt
        self._fallback_message = fallback_message

    @property
    def enabled(self) -> bool:
        return self._client is not None

    def fallback_decision(self) -> Decision:
        return Decision(should_transfer=False, department=None, message=self._fallback_message)

    def build_messages(
        self, history: Sequence[HistoryEntry], new_message: str
    ) -> list[dict[str, str]]:
        messages = [{"role": "system", "content": self._system_prompt}]
        messages.extend(
            {"role": entry.role.value.lower(), "content": entry.content} for entry in history
        )
        messages.append({"role": "user", "content": new_message})
        return messages

    def classify(self, history: Sequence[HistoryEntry], new_message: str) -> Decision:
        """Return the decision for ``new_message`` given the prior ``history``."""

        if self._client is None:
            logger.warning("No LLM credentials configured; replying with fallback message")
            return self.fallback_decision()
        try:
            completion = self._client.chat.completions.create(
                model=self._model,
                messages=self.build_messages(history, new_message),
                temperature=self._temperature,
                max_tokens=self._max_tokens,
                response_format={"type": "json_object"},
            )
            if not completion.choices:
                raise ClassificationError("Completion returned no choices")
            decision = parse_decision(completion.choices[0].message.content)
        except Exception as exc:
            logger.warning("Classification failed, replying with fallback message: %s", exc)
            return self.fallback_decision()
        logger.debug(
            "Classifier decision: transfer=%s department=%s",
            decision.should_transfer,
            decision.department.value if decision.department else None,
        )
        return decision


def create_openai_client(settings: Settings, registry: ProviderRegistry | None = None) -> OpenAI | None:
    """Build a client for the configured provider, or ``None`` without a key."""

    credentials = (registry or ProviderRegistry()).get_credentials(settings.llm_provider)
    if not credentials.configured:
        return None
    return OpenAI(
        api_key=credentials.api_key,
        base_url=credentials.base_url,
        timeout=settings.llm_timeout_seconds,
        max_retries=settings.llm_max_retries,
    )


def create_gateway(settings: Settings, registry: ProviderRegistry | None = None) -> ClassifierGateway:
    return ClassifierGateway(
        create_openai_client(settings, registry),
        model=settings.llm_model,
        temperature=settings.llm_temperature,
        max_tokens=settings.llm_max_tokens,
    )
