"""Builders and deterministic doubles shared by the test modules."""

import asyncio
from datetime import datetime, timezone

from app.core.enums import Severity, SurfaceTag
from app.core.errors import UpstreamClassificationError
from app.models.analysis import TextAnalysis
from app.models.observation import Observation

FIXED_NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)

TENANT = "tenant-1"

POLICY_ROW = {
    "summer_min_tread_mm": 3.0,
    "winter_min_tread_mm": 4.0,
    "allseason_min_tread_mm": 3.0,
    "summer_warning_tread_mm": 4.0,
    "winter_warning_tread_mm": 5.0,
    "allseason_warning_tread_mm": 4.5,
    "max_tyre_age_years": 6,
    "notify_customer_on_low_tread": True,
    "notify_customer_on_old_tyres": False,
}


def obs(
    tag: SurfaceTag,
    severity: Severity | None = None,
    confidence: float = 0.9,
    region_id: str = "hood",
) -> Observation:
    return Observation(region_id=region_id, tag=tag, confidence=confidence, severity=severity)


class FakeImageClassifier:
    """Returns canned observations per URL; an Exception value is raised instead."""

    def __init__(self, responses=None, delays=None):
        self.responses = responses or {}
        self.delays = delays or {}
        self.calls: list[str] = []

    async def classify(self, image_url, inspection_type=None):
        self.calls.append(image_url)
        if image_url in self.delays:
            await asyncio.sleep(self.delays[image_url])
        response = self.responses.get(image_url, [])
        if isinstance(response, Exception):
            raise response
        return list(response)


class FakeTextClassifier:
    def __init__(self, analysis: TextAnalysis | None = None, error: Exception | None = None):
        self.analysis = analysis or TextAnalysis()
        self.error = error
        self.calls: list[str] = []

    async def analyze(self, text):
        self.calls.append(text)
        if self.error:
            raise self.error
        return self.analysis


def upstream_failure(url: str = "img") -> UpstreamClassificationError:
    return UpstreamClassificationError(f"Image classification failed for {url}")


