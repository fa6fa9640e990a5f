"""FastAPI route definitions for the condition analysis API."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request

from app.api.deps import get_engine, limiter, rate_limit
from app.core.enums import InspectionType
from app.core.logging import logger
from app.models.analysis import (
    AnalysisResult,
    ImageAnalysis,
    SurfaceAnalysisResult,
    TyreAnalysisResult,
)
from app.models.requests import (
    InspectionRequest,
    SurfaceAnalysisRequest,
    TyreAnalysisRequest,
)
from app.services.engine import RecommendationEngine

router = APIRouter()

EngineDep = Annotated[RecommendationEngine, Depends(get_engine)]


# ---------------------------------------------------------------------------
# Surface (paint / message) analysis
# ---------------------------------------------------------------------------


@router.post("/analyze", response_model=SurfaceAnalysisResult)
@limiter.limit(rate_limit)
async def analyze(request: Request, body: SurfaceAnalysisRequest, engine: EngineDep):
    """Analyze message text and/or vehicle photos.

    Returns a paint condition score when at least one image was analyzed and
    a work estimate when ``includeEstimates`` is set.
    """
    result = await engine.evaluate(body.to_inspection())
    logger.info(
        f"Surface analysis tenant={body.tenant_id} "
        f"images={len(body.image_urls or [])} degraded={result.surface.degraded}"
    )
    return result.surface


@router.get("/analyze", response_model=ImageAnalysis)
@limiter.limit(rate_limit)
async def analyze_single_image(
    request: Request,
    engine: EngineDep,
    image_url: Annotated[str, Query(alias="imageUrl", min_length=1)],
    inspection_type: Annotated[
        InspectionType, Query(alias="inspectionType")
    ] = InspectionType.GENERAL,
):
    """Analyze a single image."""
    return await engine.analyze_image(image_url, inspection_type)


# ---------------------------------------------------------------------------
# Tyre analysis
# ---------------------------------------------------------------------------


@router.post("/tyres/analyze", response_model=TyreAnalysisResult)
async def analyze_tyres(body: TyreAnalysisRequest, engine: EngineDep):
    """Aggregate per-wheel measurements under the tenant's tyre policy."""
    result = await engine.evaluate(body.to_inspection())
    return result.tyres


# ---------------------------------------------------------------------------
# Combined inspection
# ---------------------------------------------------------------------------


@router.post("/inspections", response_model=AnalysisResult)
@limiter.limit(rate_limit)
async def inspect(request: Request, body: InspectionRequest, engine: EngineDep):
    """Run every analysis the request carries and return one composed result."""
    return await engine.evaluate(body)
