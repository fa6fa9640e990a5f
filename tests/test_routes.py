"""API tests: request shapes, payload casing and error status mapping."""

import httpx
import pytest
from fastapi.testclient import TestClient

from app.api.deps import get_engine, limiter
from app.core.enums import Severity, SurfaceTag
from app.main import app
from app.services.policy_store import SupabasePolicyStore
from helpers import TENANT, obs, upstream_failure

TYRES = [
    {"position": "FL", "treadDepthMm": 2.5},
    {"position": "FR", "treadDepthMm": 5.0},
    {"position": "RL", "treadDepthMm": 5.0},
    {"position": "RR", "treadDepthMm": 5.0},
]


@pytest.fixture
def client(engine):
    app.dependency_overrides[get_engine] = lambda: engine
    limiter.enabled = False
    yield TestClient(app)
    app.dependency_overrides.clear()
    limiter.enabled = True


class TestAnalyzeEndpoint:
    def test_image_analysis_is_camel_case(self, client, image_classifier):
        image_classifier.responses = {
            "https://img/1.jpg": [obs(SurfaceTag.SCRATCH, Severity.MODERATE, confidence=0.9)]
        }
        response = client.post(
            "/api/analyze",
            json={
                "tenantId": TENANT,
                "imageUrls": ["https://img/1.jpg"],
                "includeEstimates": True,
            },
        )
        assert response.status_code == 200
        data = response.json()
        assert data["paintCondition"] == {"score": 93, "description": "excellent"}
        assert data["workEstimate"]["minHours"] == 1.0
        assert data["imageAnalyses"][0]["imageUrl"] == "https://img/1.jpg"
        assert data["degraded"] is False

    def test_empty_request_is_400(self, client):
        response = client.post("/api/analyze", json={"tenantId": TENANT, "imageUrls": []})
        assert response.status_code == 400
        assert response.json()["error_type"] == "VALIDATION_ERROR"

    def test_missing_inputs_is_400(self, client):
        response = client.post("/api/analyze", json={"tenantId": TENANT})
        assert response.status_code == 400

    def test_all_classifiers_failing_is_502(self, client, image_classifier):
        image_classifier.responses = {"a": upstream_failure("a")}
        response = client.post("/api/analyze", json={"tenantId": TENANT, "imageUrls": ["a"]})
        assert response.status_code == 502
        body = response.json()
        assert body["success"] is False
        assert body["details"]["skipped_inputs"] == ["a"]

    def test_single_image_get(self, client, image_classifier):
        image_classifier.responses = {"a": [obs(SurfaceTag.CLEAN)]}
        response = client.get("/api/analyze", params={"imageUrl": "a"})
        assert response.status_code == 200
        assert response.json()["tags"] == ["clean"]

    def test_single_image_get_requires_url(self, client):
        response = client.get("/api/analyze")
        assert response.status_code == 422


class TestTyreEndpoint:
    def test_tyre_analysis_is_snake_case(self, client):
        response = client.post(
            "/api/tyres/analyze",
            json={"tenantId": TENANT, "season": "summer", "measurements": TYRES},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["overall_recommendation"] == "replace_now"
        assert data["overall_tread_depth_mm"] == 2.5
        assert data["positions"][0]["wear_status"] == "critical"
        assert data["notify_customer"] is True

    def test_unknown_tenant_is_409(self, client):
        response = client.post(
            "/api/tyres/analyze",
            json={"tenantId": "nobody", "season": "summer", "measurements": TYRES},
        )
        assert response.status_code == 409
        assert response.json()["error_type"] == "POLICY_NOT_CONFIGURED"

    def test_no_tread_is_422(self, client):
        response = client.post(
            "/api/tyres/analyze",
            json={
                "tenantId": TENANT,
                "season": "winter",
                "measurements": [{"position": "FL"}, {"position": "RR"}],
            },
        )
        assert response.status_code == 422
        assert response.json()["error_type"] == "INSUFFICIENT_DATA"

    def test_no_measurements_is_400(self, client):
        response = client.post(
            "/api/tyres/analyze",
            json={"tenantId": TENANT, "season": "summer", "measurements": []},
        )
        assert response.status_code == 400


class TestInspectionEndpoint:
    def test_combined_inspection(self, client, image_classifier):
        image_classifier.responses = {"a": [obs(SurfaceTag.CLEAN)]}
        response = client.post(
            "/api/inspections",
            json={
                "tenantId": TENANT,
                "imageUrls": ["a"],
                "season": "summer",
                "measurements": TYRES,
            },
        )
        assert response.status_code == 200
        data = response.json()
        assert data["tenantId"] == TENANT
        assert data["surface"]["paintCondition"]["score"] == 100
        assert data["tyres"]["overall_recommendation"] == "replace_now"


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


class _UnreachableSupabase:
    """Client whose every query fails at the transport level."""

    def table(self, name):
        return self

    def select(self, columns):
        return self

    def eq(self, column, value):
        return self

    def limit(self, count):
        return self

    def execute(self):
        raise httpx.ConnectError("connection refused")


def test_policy_store_outage_keeps_error_contract(client, engine):
    engine.policy_store = SupabasePolicyStore(
        client_factory=_UnreachableSupabase, table="tyre_policy_settings"
    )
    response = client.post(
        "/api/tyres/analyze",
        json={"tenantId": TENANT, "season": "summer", "measurements": TYRES},
    )
    assert response.status_code == 503
    body = response.json()
    assert body["success"] is False
    assert body["error_type"] == "POLICY_STORE_UNAVAILABLE"
