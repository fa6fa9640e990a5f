"""Result types produced by the scorer, estimator, tyre aggregator and engine.

Surface analysis payloads serialize camelCase (the booking/messaging
frontends read them that way); tyre payloads serialize snake_case for the
certificate and tyre-hotel consumers.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.core.enums import (
    PositionCondition,
    Season,
    TyrePosition,
    TyreRecommendationLevel,
    WearPattern,
)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Paint / surface
# ---------------------------------------------------------------------------


class ConditionScore(CamelModel):
    score: int = Field(ge=0, le=100)
    description: str  # "excellent" | "good" | "fair" | "poor"


class WorkItem(CamelModel):
    task: str
    hours: float


class WorkEstimate(CamelModel):
    min_hours: float = 0.0
    max_hours: float = 0.0
    breakdown: list[WorkItem] = []


class TextEntity(CamelModel):
    type: str  # "date", "time", "vehicle", "service", "phone", "email", ...
    value: str
    confidence: float


class TextAnalysis(CamelModel):
    intent: str = "general"
    service_interest: Optional[str] = None
    urgency: str = "low"
    sentiment: str = "neutral"
    entities: list[TextEntity] = []
    suggested_response: Optional[str] = None


class ImageAnalysis(CamelModel):
    image_url: str
    tags: list[str]
    confidence: float  # highest observation confidence, 0-1
    analysis: str
    severity: Optional[str] = None  # worst defect severity in the image
    recommendations: list[str] = []


class SurfaceAnalysisResult(CamelModel):
    analysis_id: str
    summary: str
    recommended_action: str
    text_analysis: Optional[TextAnalysis] = None
    image_analyses: Optional[list[ImageAnalysis]] = None
    paint_condition: Optional[ConditionScore] = None
    work_estimate: Optional[WorkEstimate] = None
    degraded: bool = False
    skipped_inputs: list[str] = []
    analyzed_at: datetime


# ---------------------------------------------------------------------------
# Tyres
# ---------------------------------------------------------------------------


class PositionVerdict(BaseModel):
    position: TyrePosition
    tread_depth_mm: Optional[float] = None
    condition: PositionCondition
    aged: bool = False
    damage_detected: bool = False
    wear_pattern: Optional[WearPattern] = None
    notes: Optional[str] = None


class TyreRecommendation(BaseModel):
    overall_condition: PositionCondition
    overall_tread_depth_mm: float
    recommendation: TyreRecommendationLevel
    notes: str
    positions: list[PositionVerdict]
    missing_positions: list[TyrePosition] = []
    notify_customer: bool = False


class TyrePositionReport(BaseModel):
    position: TyrePosition
    tread_depth_mm: Optional[float] = None
    wear_status: str  # "ok" | "warn" | "critical" | "not_measured"
    notes: Optional[str] = None


class TyreAnalysisResult(BaseModel):
    season: Season
    positions: list[TyrePositionReport]
    overall_recommendation: TyreRecommendationLevel
    overall_condition: PositionCondition
    overall_tread_depth_mm: float
    reasoning: str
    recommended_action: Optional[str] = None
    notify_customer: bool = False


# ---------------------------------------------------------------------------
# Combined inspection
# ---------------------------------------------------------------------------


class AnalysisResult(CamelModel):
    """Composed engine output; fragments present match the request shape."""

    tenant_id: str
    surface: Optional[SurfaceAnalysisResult] = None
    tyres: Optional[TyreAnalysisResult] = None
