"""Tests for the classifier boundary: payload parsing and error mapping."""

import asyncio
from types import SimpleNamespace

import pytest

from app.core.enums import Severity, SurfaceTag
from app.core.errors import UpstreamClassificationError
from app.dspy_modules.text_analysis import parse_entities, prediction_to_analysis
from app.services.classifier import (
    OpenAIVisionClassifier,
    normalize_confidence,
    parse_observations,
)


def _make_completion(content: str):
    message = SimpleNamespace(content=content)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _make_vision_classifier(content: str) -> OpenAIVisionClassifier:
    classifier = OpenAIVisionClassifier(api_key="sk-test")

    async def create(**kwargs):
        return _make_completion(content)

    classifier._client = SimpleNamespace(
        chat=SimpleNamespace(completions=SimpleNamespace(create=create))
    )
    return classifier


class TestNormalizeConfidence:
    def test_fraction_passes_through(self):
        assert normalize_confidence(0.42) == 0.42

    def test_percentage_is_scaled(self):
        assert normalize_confidence(85) == 0.85

    def test_out_of_range_is_clamped(self):
        assert normalize_confidence(250) == 1.0
        assert normalize_confidence(-0.3) == 0.0

    def test_garbage_is_zero(self):
        assert normalize_confidence("high") == 0.0
        assert normalize_confidence(None) == 0.0


class TestParseObservations:
    def test_parses_known_tags(self):
        payload = {
            "observations": [
                {"region": "hood", "tag": "scratches", "confidence": 90, "severity": "medium"},
                {"region": "roof", "tag": "clean", "confidence": 0.99},
            ]
        }
        observations = parse_observations(payload, "https://img/1.jpg")
        assert [o.tag for o in observations] == [SurfaceTag.SCRATCH, SurfaceTag.CLEAN]
        assert observations[0].severity is Severity.MODERATE
        assert observations[0].confidence == 0.9
        assert observations[1].severity is None

    def test_unknown_tag_is_dropped(self):
        payload = [{"tag": "sparkles", "confidence": 0.9}, {"tag": "dent", "confidence": 0.9}]
        observations = parse_observations(payload, "img")
        assert [o.tag for o in observations] == [SurfaceTag.DENT]

    def test_unknown_severity_on_defect_falls_back_to_minor(self):
        observations = parse_observations([{"tag": "chip", "severity": "catastrophic"}], "img")
        assert observations[0].severity is Severity.MINOR

    def test_missing_region_gets_positional_id(self):
        observations = parse_observations([{"tag": "dent", "confidence": 0.5}], "img")
        assert observations[0].region_id == "img#0"

    def test_unexpected_payload_raises(self):
        with pytest.raises(UpstreamClassificationError):
            parse_observations("not a payload", "img")


class TestOpenAIVisionClassifier:
    def test_classify_parses_response(self):
        classifier = _make_vision_classifier(
            '{"observations": [{"region": "hood", "tag": "swirl", "confidence": 0.8, '
            '"severity": "minor"}]}'
        )
        observations = asyncio.run(classifier.classify("https://img/1.jpg"))
        assert len(observations) == 1
        assert observations[0].tag is SurfaceTag.SWIRL

    def test_invalid_json_is_upstream_error(self):
        classifier = _make_vision_classifier("I cannot see the car")
        with pytest.raises(UpstreamClassificationError) as exc_info:
            asyncio.run(classifier.classify("https://img/1.jpg"))
        assert exc_info.value.details["image_url"] == "https://img/1.jpg"


class TestTextAnalysis:
    def test_parse_entities_from_json(self):
        raw = '[{"type": "date", "value": "next friday", "confidence": 0.9}, {"type": "x"}]'
        entities = parse_entities(raw)
        assert len(entities) == 1
        assert entities[0].type == "date"
        assert entities[0].value == "next friday"

    def test_parse_entities_bad_json(self):
        assert parse_entities("{not json") == []

    def test_prediction_to_analysis_normalizes_vocabulary(self):
        prediction = SimpleNamespace(
            intent="Booking",
            service_interest="ceramic coating",
            urgency="HIGH",
            sentiment="positive",
            entities="[]",
            suggested_response="We have slots on Friday.",
        )
        analysis = prediction_to_analysis(prediction)
        assert analysis.intent == "booking"
        assert analysis.urgency == "high"
        assert analysis.service_interest == "ceramic coating"

    def test_prediction_to_analysis_defaults_unknown_values(self):
        prediction = SimpleNamespace(
            intent="chit-chat",
            service_interest="none",
            urgency="whenever",
            sentiment="meh",
            entities=None,
            suggested_response="",
        )
        analysis = prediction_to_analysis(prediction)
        assert analysis.intent == "general"
        assert analysis.service_interest is None
        assert analysis.urgency == "low"
        assert analysis.sentiment == "neutral"
        assert analysis.suggested_response is None
