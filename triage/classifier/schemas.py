"""Classifier inputs and decisions."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictBool, field_validator
from pydantic import ValidationError as PydanticValidationError

from ..conversations.models import Department, MessageRole


class ClassificationError(ValueError):
    """Raised when a model response cannot be turned into a :class:`Decision`."""


@dataclass(frozen=True)
class HistoryEntry:
    """A prior message as seen by the classifier (role and text only)."""

    role: MessageRole
    content: str


class Decision(BaseModel):
    """Reply text plus an optional hand-off to a department."""

    model_config = ConfigDict(frozen=True)

    should_transfer: bool = False
    department: Department | None = None
    message: str
    summary: str | None = None


class _ModelPayload(BaseModel):
    """Shape of the JSON object the model is instructed to return."""

    model_config = ConfigDict(extra="ignore")

    should_transfer: StrictBool = Field(default=False, alias="shouldTransfer")
    department: Department | None = None
    message: str
    summary: str | None = None

    @field_validator("department", mode="before")
    @classmethod
    def _parse_department(cls, value: Any) -> Department | None:
        if value is None or value == "":
            return None
        if isinstance(value, Department):
            return value
        if not isinstance(value, str):
            raise ValueError("department must be a string")
        return Department.parse(value)

    @field_validator("message")
    @classmethod
    def _require_message(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("message must not be empty")
        return value

    @field_validator("summary")
    @classmethod
    def _blank_summary(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None


def parse_decision(raw: str | None) -> Decision:
    """Validate a raw model response and return the decision it encodes.

    The payload is untrusted: it must be a JSON object with a non-empty
    ``message``; ``department`` must name a known department when present.
    """

    if not raw or not raw.strip():
        raise ClassificationError("Empty response from the model")
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ClassificationError(f"Response is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ClassificationError("Response JSON must be an object")
    try:
        payload = _ModelPayload.model_validate(data)
    except PydanticValidationError as exc:
        raise ClassificationError(f"Response failed validation: {exc}") from exc
    return Decision(
        should_transfer=payload.should_transfer,
        department=payload.department,
        message=payload.message,
        summary=payload.summary,
    )
