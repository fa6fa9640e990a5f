"""Shared fixtures: deterministic classifier doubles and a static policy store."""

import os

import pytest

# Settings are read when app.main is imported; tests never reach these services
os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_KEY", "test-key")
os.environ.setdefault("OPENAI_API_KEY", "sk-test")

from app.services.engine import RecommendationEngine  # noqa: E402
from app.services.policy_store import StaticPolicyStore  # noqa: E402
from helpers import (  # noqa: E402
    FIXED_NOW,
    POLICY_ROW,
    TENANT,
    FakeImageClassifier,
    FakeTextClassifier,
)


@pytest.fixture
def policy_store() -> StaticPolicyStore:
    return StaticPolicyStore({TENANT: POLICY_ROW})


@pytest.fixture
def image_classifier() -> FakeImageClassifier:
    return FakeImageClassifier()


@pytest.fixture
def text_classifier() -> FakeTextClassifier:
    return FakeTextClassifier()


@pytest.fixture
def engine(policy_store, image_classifier, text_classifier) -> RecommendationEngine:
    return RecommendationEngine(
        policy_store=policy_store,
        image_classifier=image_classifier,
        text_classifier=text_classifier,
        per_call_timeout=1.0,
        deadline=2.0,
        clock=lambda: FIXED_NOW,
    )
