"""Upstream classifier boundary.

The engine only sees two capabilities: an image classifier returning
observations and a text classifier returning a message analysis. Both fail
with UpstreamClassificationError. Production implementations call OpenAI
vision and a DSPy program; tests plug in deterministic doubles.
"""

import asyncio
import json
import logging
import time
from typing import Any, Optional, Protocol

import httpx
from openai import APIError, AsyncOpenAI

from app.config import get_settings
from app.core.enums import InspectionType, Severity, SurfaceTag
from app.core.errors import UpstreamClassificationError
from app.core.logging import log_external_call
from app.dspy_modules.text_analysis import get_message_analyzer, prediction_to_analysis
from app.models.analysis import TextAnalysis
from app.models.observation import Observation

logger = logging.getLogger(__name__)


class ImageClassifier(Protocol):
    async def classify(
        self, image_url: str, inspection_type: InspectionType = InspectionType.GENERAL
    ) -> list[Observation]: ...


class TextClassifier(Protocol):
    async def analyze(self, text: str) -> TextAnalysis: ...


# =============================================================================
# Observation parsing (shared by all image classifiers)
# =============================================================================


def normalize_confidence(value: Any) -> float:
    """Accept 0-1 or 0-100 confidences and clamp to [0, 1]."""
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return 0.0
    if confidence > 1.0:
        confidence /= 100.0
    return min(max(confidence, 0.0), 1.0)


def parse_observations(payload: Any, image_url: str) -> list[Observation]:
    """Convert raw classifier JSON into observations.

    Expected shape: ``{"observations": [{"region", "tag", "confidence",
    "severity", "analysis"}, ...]}``. Unknown tags are dropped (and logged by
    the vocabulary); an unknown severity on a defect falls back to minor via
    the observation invariant.
    """
    if isinstance(payload, dict):
        items = payload.get("observations", [])
    elif isinstance(payload, list):
        items = payload
    else:
        raise UpstreamClassificationError(
            "Classifier returned an unexpected payload",
            details={"image_url": image_url},
        )

    observations: list[Observation] = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            continue
        tag = SurfaceTag.from_string(item.get("tag"))
        if tag is None:
            logger.warning(
                "Dropping observation with unrecognized tag %r from %s",
                item.get("tag"),
                image_url,
            )
            continue
        severity: Optional[Severity] = None
        if item.get("severity"):
            severity = Severity.from_string(item["severity"])
        observations.append(
            Observation(
                region_id=str(item.get("region") or item.get("region_id") or f"{image_url}#{index}"),
                tag=tag,
                confidence=normalize_confidence(item.get("confidence", 0.0)),
                severity=severity,
                free_text_analysis=str(item.get("analysis") or ""),
            )
        )
    return observations


# =============================================================================
# OpenAI vision
# =============================================================================

VISION_SYSTEM_PROMPT = (
    "You inspect photos of vehicle paintwork for a detailing and coating shop. "
    "Report every finding as JSON: {\"observations\": [{\"region\": <vehicle section, "
    "e.g. hood, roof, front_bumper>, \"tag\": <one of scratch, swirl, dent, chip, "
    "oxidation, water_spot, contamination, clean, coated, polished>, \"confidence\": "
    "<0-1>, \"severity\": <minor|moderate|severe for defects, null otherwise>, "
    "\"analysis\": <one sentence>}]}. Only report what is visible."
)


class OpenAIVisionClassifier:
    """Image classifier backed by an OpenAI vision-capable chat model."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        timeout_seconds: Optional[float] = None,
    ) -> None:
        settings = get_settings()
        self.model = model or settings.vision_model
        self.max_tokens = max_tokens or settings.vision_max_tokens
        timeout = timeout_seconds or settings.classifier_timeout_seconds
        self._client = AsyncOpenAI(
            api_key=api_key or settings.openai_api_key,
            timeout=httpx.Timeout(timeout, connect=5.0),
        )

    async def classify(
        self, image_url: str, inspection_type: InspectionType = InspectionType.GENERAL
    ) -> list[Observation]:
        start = time.time()
        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                max_tokens=self.max_tokens,
                response_format={"type": "json_object"},
                messages=[
                    {"role": "system", "content": VISION_SYSTEM_PROMPT},
                    {
                        "role": "user",
                        "content": [
                            {
                                "type": "text",
                                "text": f"Inspection type: {inspection_type.value}",
                            },
                            {"type": "image_url", "image_url": {"url": image_url}},
                        ],
                    },
                ],
            )
            content = response.choices[0].message.content or "{}"
            payload = json.loads(content)
        except (APIError, json.JSONDecodeError, IndexError) as e:
            log_external_call(
                "openai",
                "vision.classify",
                False,
                (time.time() - start) * 1000,
                target=image_url,
            )
            raise UpstreamClassificationError(
                f"Image classification failed for {image_url}",
                details={"image_url": image_url, "reason": str(e)},
            ) from e

        log_external_call(
            "openai", "vision.classify", True, (time.time() - start) * 1000, target=image_url
        )
        return parse_observations(payload, image_url)

    async def close(self) -> None:
        await self._client.close()


# =============================================================================
# DSPy text analysis
# =============================================================================


class DSPyTextClassifier:
    """Text classifier running the DSPy message analyzer in a worker thread."""

    async def analyze(self, text: str) -> TextAnalysis:
        start = time.time()
        try:
            analyzer = get_message_analyzer()
            prediction = await asyncio.to_thread(analyzer, message=text)
        except Exception as e:
            # DSPy surfaces provider errors from several libraries
            log_external_call("dspy", "analyze_message", False, (time.time() - start) * 1000)
            raise UpstreamClassificationError(
                "Text classification failed",
                details={"reason": str(e)},
            ) from e

        log_external_call("dspy", "analyze_message", True, (time.time() - start) * 1000)
        return prediction_to_analysis(prediction)
