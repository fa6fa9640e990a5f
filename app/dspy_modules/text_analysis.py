"""DSPy module for customer message analysis.

Wraps the AnalyzeCustomerMessage signature and normalizes the LM's loosely
typed answers into the closed intent/urgency/sentiment vocabularies.
"""

import json
import logging
from typing import Any

import dspy

from app.config import get_settings
from app.core.enums import MessageIntent, Sentiment, Urgency
from app.dspy_modules.signatures import AnalyzeCustomerMessage
from app.models.analysis import TextAnalysis, TextEntity

logger = logging.getLogger(__name__)

_ENTITY_TYPES = {"date", "time", "vehicle", "service", "location", "name", "phone", "email"}


class MessageAnalyzer(dspy.Module):
    """Chain-of-thought classifier for inbound customer messages."""

    def __init__(self) -> None:
        super().__init__()
        self.analyze = dspy.ChainOfThought(AnalyzeCustomerMessage)

    def forward(self, message: str) -> dspy.Prediction:
        return self.analyze(message=message)


def parse_entities(raw: Any) -> list[TextEntity]:
    """Parse the entities field; malformed entries are dropped with a warning."""
    if not raw:
        return []
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Could not decode entities from message analysis: %r", raw[:200])
            return []
    if not isinstance(raw, list):
        return []

    entities: list[TextEntity] = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        kind = str(item.get("type", "")).lower()
        value = item.get("value")
        if kind not in _ENTITY_TYPES or not value:
            logger.warning("Dropping unrecognized entity %r", item)
            continue
        try:
            confidence = float(item.get("confidence", 0.5))
        except (TypeError, ValueError):
            confidence = 0.5
        if confidence > 1:
            confidence /= 100
        entities.append(
            TextEntity(type=kind, value=str(value), confidence=min(max(confidence, 0.0), 1.0))
        )
    return entities


def prediction_to_analysis(prediction: Any) -> TextAnalysis:
    """Convert a DSPy prediction into a TextAnalysis."""
    intent = MessageIntent.from_string(getattr(prediction, "intent", None))
    urgency = Urgency.from_string(getattr(prediction, "urgency", None))
    sentiment = Sentiment.from_string(getattr(prediction, "sentiment", None))
    service = getattr(prediction, "service_interest", None)
    if isinstance(service, str) and service.strip().lower() in {"", "none", "null"}:
        service = None

    return TextAnalysis(
        intent=(intent or MessageIntent.GENERAL).value,
        service_interest=service,
        urgency=(urgency or Urgency.LOW).value,
        sentiment=(sentiment or Sentiment.NEUTRAL).value,
        entities=parse_entities(getattr(prediction, "entities", None)),
        suggested_response=getattr(prediction, "suggested_response", None) or None,
    )


def _configure_dspy() -> None:
    """Configure DSPy with the LM from settings."""
    settings = get_settings()
    lm = dspy.LM(settings.dspy_lm_model, max_tokens=512)
    dspy.configure(lm=lm)


# Lazy singleton
_analyzer: MessageAnalyzer | None = None


def get_message_analyzer() -> MessageAnalyzer:
    """Get or create the singleton message analyzer."""
    global _analyzer
    if _analyzer is None:
        _configure_dspy()
        _analyzer = MessageAnalyzer()
    return _analyzer
