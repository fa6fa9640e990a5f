"""Recommendation engine: composes scorer, estimator and tyre aggregator.

The request's shape selects the work: text/images run the surface analysis,
tyre measurements run the tyre analysis, a combined inspection runs both.
All validation and the policy read happen before any classifier is called,
and any failure fails the whole evaluation; there are no partial responses
for malformed requests. Partial classifier failure is the one tolerated
degradation and is flagged on the result.
"""

import asyncio
import logging
import time
import uuid
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from typing import Optional

from app.core.enums import (
    CONFIDENCE_FLOOR,
    InspectionType,
    MessageIntent,
    Season,
    Severity,
    SurfaceTag,
    TyreRecommendationLevel,
    Urgency,
)
from app.core.errors import UpstreamClassificationError, ValidationError
from app.core.logging import log_evaluation
from app.models.analysis import (
    AnalysisResult,
    ImageAnalysis,
    SurfaceAnalysisResult,
    TextAnalysis,
    TyreAnalysisResult,
    TyrePositionReport,
    TyreRecommendation,
)
from app.models.observation import Observation, TyrePositionMeasurement
from app.models.policy import TenantTyrePolicy
from app.models.requests import InspectionRequest
from app.services import paint_scorer, work_estimator
from app.services.classifier import ImageClassifier, TextClassifier
from app.services.fanout import fan_out
from app.services.policy_store import PolicyStore
from app.services.tyre_aggregator import aggregate

logger = logging.getLogger(__name__)

TEXT_INPUT_KEY = "text"

TAG_DESCRIPTIONS: dict[SurfaceTag, str] = {
    SurfaceTag.SCRATCH: "Scratches on the surface; removable by polishing.",
    SurfaceTag.SWIRL: "Swirl marks visible, typical of poor washing technique.",
    SurfaceTag.DENT: "Dent in the bodywork; needs PDR or conventional repair.",
    SurfaceTag.CHIP: "Stone chips; should be treated to prevent rust.",
    SurfaceTag.OXIDATION: "Oxidized paint; polishing and protection recommended.",
    SurfaceTag.WATER_SPOT: "Water spots visible; removable with a dedicated product.",
    SurfaceTag.CONTAMINATION: "Surface contamination; decontamination recommended.",
    SurfaceTag.CLEAN: "Surface is clean and ready for further treatment.",
    SurfaceTag.COATED: "Coating layer is visible and intact.",
    SurfaceTag.POLISHED: "Paint appears polished with good gloss.",
    SurfaceTag.BEFORE: "Reference photo taken before treatment.",
    SurfaceTag.AFTER: "Reference photo taken after treatment.",
}

INTENT_SUMMARIES: dict[str, str] = {
    MessageIntent.BOOKING.value: "wants to book an appointment",
    MessageIntent.INQUIRY.value: "has a question",
    MessageIntent.COMPLAINT.value: "complaint or problem",
    MessageIntent.FEEDBACK.value: "feedback",
    MessageIntent.SUPPORT.value: "needs help",
    MessageIntent.GENERAL.value: "general enquiry",
}

TYRE_ACTIONS: dict[TyreRecommendationLevel, str] = {
    TyreRecommendationLevel.OK: "No action needed; re-measure at the next seasonal change.",
    TyreRecommendationLevel.MONITOR: "Re-measure tread depth at the next tyre change.",
    TyreRecommendationLevel.REPLACE_SOON: "Offer new tyres before the next season.",
    TyreRecommendationLevel.REPLACE_NOW: (
        "Tyres must be replaced before further driving; offer a fitting appointment."
    ),
}

DEFAULT_ACTION = "Follow up with standard customer service."


def _new_analysis_id() -> str:
    return f"analysis-{uuid.uuid4().hex[:12]}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Surface fragments
# =============================================================================


def image_recommendations(tags: set[SurfaceTag]) -> list[str]:
    recommendations: list[str] = []
    if tags & {SurfaceTag.SCRATCH, SurfaceTag.SWIRL}:
        recommendations.append("One- or two-step polishing to remove surface defects")
    if SurfaceTag.OXIDATION in tags:
        recommendations.append("Decontamination followed by polishing to restore the paint")
    if tags & {SurfaceTag.DENT, SurfaceTag.CHIP}:
        recommendations.append("Consider PDR or paint repair before coating")
    if tags & {SurfaceTag.WATER_SPOT, SurfaceTag.CONTAMINATION}:
        recommendations.append("Clay bar or chemical decontamination")
    if not any(t.is_defect for t in tags):
        recommendations.append("Surface is in good shape; ready for coating or maintenance")
    return recommendations


def build_image_analysis(image_url: str, observations: Sequence[Observation]) -> ImageAnalysis:
    """Per-image fragment for the response, derived from its observations."""
    tags: list[SurfaceTag] = []
    for obs in observations:
        if obs.tag not in tags:
            tags.append(obs.tag)

    analysis_parts: list[str] = []
    for tag in tags:
        texts = [
            o.free_text_analysis
            for o in observations
            if o.tag == tag and o.free_text_analysis
        ]
        analysis_parts.append(texts[0] if texts else TAG_DESCRIPTIONS[tag])

    defects = paint_scorer.qualifying_defects(observations)
    worst: Optional[Severity] = None
    for obs in defects:
        if obs.severity is not None and (worst is None or obs.severity.rank > worst.rank):
            worst = obs.severity

    return ImageAnalysis(
        image_url=image_url,
        tags=[t.value for t in tags],
        confidence=max((o.confidence for o in observations), default=0.0),
        analysis=" ".join(analysis_parts),
        severity=worst.value if worst else None,
        recommendations=image_recommendations(
            {o.tag for o in observations if o.confidence >= CONFIDENCE_FLOOR}
        ),
    )


def build_summary(
    text_analysis: Optional[TextAnalysis],
    image_analyses: Sequence[ImageAnalysis],
    skipped: Sequence[str],
) -> str:
    parts: list[str] = []
    if text_analysis:
        parts.append(
            f"Message analysed: {INTENT_SUMMARIES.get(text_analysis.intent, 'general enquiry')}."
        )
        if text_analysis.service_interest:
            parts.append(f"Interested in: {text_analysis.service_interest}.")
        if text_analysis.urgency != Urgency.LOW.value:
            parts.append(
                "Urgent: needs a quick reply."
                if text_analysis.urgency == Urgency.HIGH.value
                else "Moderately urgent."
            )
    if image_analyses:
        has_defects = any(a.severity for a in image_analyses)
        count = len(image_analyses)
        parts.append(
            f"{count} image{'s' if count > 1 else ''} analysed: "
            + (
                "defects found that should be treated."
                if has_defects
                else "surface is in good condition."
            )
        )
    if skipped:
        parts.append(f"{len(skipped)} input(s) could not be analysed.")
    return " ".join(parts)


def choose_recommended_action(
    text_analysis: Optional[TextAnalysis], image_analyses: Sequence[ImageAnalysis]
) -> str:
    intent = text_analysis.intent if text_analysis else None
    if intent == MessageIntent.BOOKING.value:
        return "Offer available time slots and confirm the booking."
    if intent == MessageIntent.COMPLAINT.value:
        return "Prioritise this enquiry; escalate to the responsible person if needed."
    severities = {a.severity for a in image_analyses}
    if Severity.SEVERE.value in severities:
        return "Severe damage detected; recommend an on-site inspection or professional assessment."
    if Severity.MODERATE.value in severities:
        return "Moderate damage found; send a quote for polishing/repair."
    return DEFAULT_ACTION


# =============================================================================
# Tyre fragment
# =============================================================================


def should_notify_customer(policy: TenantTyrePolicy, rec: TyreRecommendation) -> bool:
    low_tread = rec.recommendation.rank >= TyreRecommendationLevel.REPLACE_SOON.rank
    old_tyres = any(v.aged for v in rec.positions)
    return (policy.notify_customer_on_low_tread and low_tread) or (
        policy.notify_customer_on_old_tyres and old_tyres
    )


def build_tyre_result(season: Season, rec: TyreRecommendation) -> TyreAnalysisResult:
    return TyreAnalysisResult(
        season=season,
        positions=[
            TyrePositionReport(
                position=v.position,
                tread_depth_mm=v.tread_depth_mm,
                wear_status=v.condition.wear_status,
                notes=v.notes,
            )
            for v in rec.positions
        ],
        overall_recommendation=rec.recommendation,
        overall_condition=rec.overall_condition,
        overall_tread_depth_mm=rec.overall_tread_depth_mm,
        reasoning=rec.notes,
        recommended_action=TYRE_ACTIONS[rec.recommendation],
        notify_customer=rec.notify_customer,
    )


# =============================================================================
# Engine
# =============================================================================


class RecommendationEngine:
    """Stateless orchestrator; safe to share across concurrent requests."""

    def __init__(
        self,
        policy_store: PolicyStore,
        image_classifier: ImageClassifier,
        text_classifier: TextClassifier,
        *,
        per_call_timeout: float = 15.0,
        deadline: float = 40.0,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.policy_store = policy_store
        self.image_classifier = image_classifier
        self.text_classifier = text_classifier
        self.per_call_timeout = per_call_timeout
        self.deadline = deadline
        self.clock = clock

    # -- validation -----------------------------------------------------------

    @staticmethod
    def _validate(request: InspectionRequest) -> None:
        if not request.has_surface_part and not request.has_tyre_part:
            raise ValidationError("Request carries neither surface nor tyre input")
        if request.has_surface_part and not request.has_surface_input:
            raise ValidationError("Either text or imageUrls must be provided")
        if request.has_tyre_part:
            if request.season is None:
                raise ValidationError("season is required for a tyre inspection")
            if not request.measurements:
                raise ValidationError("Tyre inspection has no measurements")

    # -- tyres ----------------------------------------------------------------

    async def _evaluate_tyres(
        self,
        tenant_id: str,
        season: Season,
        measurements: Sequence[TyrePositionMeasurement],
    ) -> TyreAnalysisResult:
        # One snapshot per evaluation; never cached across calls
        tenant_policy = await asyncio.to_thread(self.policy_store.get_policy, tenant_id)
        rec = aggregate(
            measurements,
            tenant_policy.for_season(season),
            season,
            today=self.clock().date(),
        )
        rec = rec.model_copy(update={"notify_customer": should_notify_customer(tenant_policy, rec)})
        logger.info(
            "Tyre evaluation tenant=%s season=%s recommendation=%s min_tread=%.1f",
            tenant_id,
            season.value,
            rec.recommendation.value,
            rec.overall_tread_depth_mm,
        )
        return build_tyre_result(season, rec)

    # -- surface --------------------------------------------------------------

    async def _evaluate_surface(self, request: InspectionRequest) -> SurfaceAnalysisResult:
        text = request.text.strip() if request.text and request.text.strip() else None
        image_urls = list(request.image_urls or [])
        inspection_type = request.inspection_type

        calls: dict[str, Callable] = {}
        if text:
            calls[TEXT_INPUT_KEY] = lambda: self.text_classifier.analyze(text)
        image_keys: list[tuple[str, str]] = []
        for index, url in enumerate(image_urls):
            key = f"image[{index}]"
            image_keys.append((key, url))
            calls[key] = lambda url=url: self.image_classifier.classify(url, inspection_type)

        outcome = await fan_out(calls, self.per_call_timeout, self.deadline)

        url_by_key = dict(image_keys)
        skipped = [
            url_by_key.get(key, key) for key in calls if key in outcome.failures
        ]
        if outcome.all_failed:
            raise UpstreamClassificationError(
                "All classification calls failed; nothing to analyse",
                details={"skipped_inputs": skipped, "reasons": outcome.failures},
            )

        text_analysis: Optional[TextAnalysis] = outcome.results.get(TEXT_INPUT_KEY)
        image_analyses: list[ImageAnalysis] = []
        observations: list[Observation] = []
        for key, url in image_keys:
            if key not in outcome.results:
                continue
            image_observations = outcome.results[key]
            observations.extend(image_observations)
            image_analyses.append(build_image_analysis(url, image_observations))

        result = SurfaceAnalysisResult(
            analysis_id=_new_analysis_id(),
            summary=build_summary(text_analysis, image_analyses, skipped),
            recommended_action=choose_recommended_action(text_analysis, image_analyses),
            text_analysis=text_analysis,
            image_analyses=image_analyses or None,
            degraded=outcome.degraded,
            skipped_inputs=skipped,
            analyzed_at=self.clock(),
        )
        if image_analyses:
            result.paint_condition = paint_scorer.score(observations)
            if request.include_estimates:
                result.work_estimate = work_estimator.estimate(observations)

        if outcome.degraded:
            logger.warning(
                "Degraded surface analysis tenant=%s skipped=%s",
                request.tenant_id,
                skipped,
            )
        return result

    # -- public operations ----------------------------------------------------

    async def evaluate(self, request: InspectionRequest) -> AnalysisResult:
        """Evaluate a request and return one composed result.

        Raises:
            ValidationError: malformed or empty request
            InsufficientDataError: no usable tread depth
            PolicyNotConfiguredError: tenant has no tyre policy
            PolicyStoreUnavailableError: tenant policy could not be read
            UpstreamClassificationError: every classifier call failed
        """
        self._validate(request)
        start = time.time()

        tyres: Optional[TyreAnalysisResult] = None
        if request.has_tyre_part:
            # Tyres first: policy and data errors must fail before any classifier call
            tyres = await self._evaluate_tyres(
                request.tenant_id, request.season, request.measurements  # type: ignore[arg-type]
            )

        surface: Optional[SurfaceAnalysisResult] = None
        if request.has_surface_part:
            surface = await self._evaluate_surface(request)

        parts = [name for name, part in (("tyres", tyres), ("surface", surface)) if part is not None]
        log_evaluation(
            request.tenant_id,
            parts,
            (time.time() - start) * 1000,
            degraded=bool(surface and surface.degraded),
        )
        return AnalysisResult(tenant_id=request.tenant_id, surface=surface, tyres=tyres)

    async def analyze_image(
        self, image_url: str, inspection_type: InspectionType = InspectionType.GENERAL
    ) -> ImageAnalysis:
        """Classify and describe a single image."""
        if not image_url:
            raise ValidationError("imageUrl is required")
        outcome = await fan_out(
            {image_url: lambda: self.image_classifier.classify(image_url, inspection_type)},
            self.per_call_timeout,
            self.deadline,
        )
        if image_url not in outcome.results:
            raise UpstreamClassificationError(
                f"Image classification failed for {image_url}",
                details={"reason": outcome.failures.get(image_url)},
            )
        return build_image_analysis(image_url, outcome.results[image_url])
