"""FastAPI dependency injection."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.config import Settings, get_settings
from app.services.classifier import DSPyTextClassifier, OpenAIVisionClassifier
from app.services.engine import RecommendationEngine
from app.services.policy_store import PolicyStore, SupabasePolicyStore

# Rate limiter (classifier calls are billed per request)
limiter = Limiter(key_func=get_remote_address)


def rate_limit() -> str:
    return get_settings().rate_limit


@lru_cache
def get_policy_store() -> PolicyStore:
    """Dependency for the tenant policy store."""
    return SupabasePolicyStore()


@lru_cache
def get_image_classifier() -> OpenAIVisionClassifier:
    """Get cached vision classifier."""
    return OpenAIVisionClassifier()


@lru_cache
def get_text_classifier() -> DSPyTextClassifier:
    return DSPyTextClassifier()


def get_engine(
    settings: Annotated[Settings, Depends(get_settings)],
    policy_store: Annotated[PolicyStore, Depends(get_policy_store)],
    image_classifier: Annotated[OpenAIVisionClassifier, Depends(get_image_classifier)],
    text_classifier: Annotated[DSPyTextClassifier, Depends(get_text_classifier)],
) -> RecommendationEngine:
    """Dependency for the recommendation engine (stateless, built per request)."""
    return RecommendationEngine(
        policy_store=policy_store,
        image_classifier=image_classifier,
        text_classifier=text_classifier,
        per_call_timeout=settings.classifier_timeout_seconds,
        deadline=settings.classifier_deadline_seconds,
    )
