"""Language-model classification of conversation turns."""

from .gateway import ClassifierGateway, create_gateway
from .prompts import FALLBACK_MESSAGE
from .schemas import ClassificationError, Decision, HistoryEntry, parse_decision

__all__ = [
    "ClassificationError",
    "ClassifierGateway",
    "Decision",
    "FALLBACK_MESSAGE",
    "HistoryEntry",
    "create_gateway",
    "parse_decision",
]
