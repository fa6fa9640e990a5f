"""FastAPI app entry point for the Vehicle Condition Analysis API."""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from app.api.deps import get_image_classifier, limiter
from app.api.routes import router
from app.config import get_settings, validate_settings
from app.core.errors import EngineError
from app.core.logging import log_error, log_request, log_response, logger
from app.services.db import check_supabase_health, get_supabase_client

# Validate settings on startup
try:
    validate_settings()
except ValueError as e:
    logger.error(f"Configuration error: {e}")
    raise


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown hooks; closes the shared OpenAI client."""
    logger.info("Starting Vehicle Condition Analysis API...")
    yield
    if get_image_classifier.cache_info().currsize:
        await get_image_classifier().close()
    logger.info("Shutting down...")


app = FastAPI(
    title="Vehicle Condition Analysis API",
    description="Paint condition scoring, work estimates and tyre recommendations",
    version="1.0.0",
    lifespan=lifespan,
)

# State for limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS
settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


@app.exception_handler(EngineError)
async def engine_error_handler(request: Request, exc: EngineError):
    if exc.status_code >= 500:
        log_error(exc.message, exc, path=request.url.path, error_type=exc.error_type)
    else:
        logger.warning(
            f"{exc.error_type} {request.method} {request.url.path}: {exc.message}"
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    log_request(request.method, request.url.path)

    response = await call_next(request)

    duration_ms = (time.time() - start) * 1000
    log_response(request.method, request.url.path, response.status_code, duration_ms)

    return response


# Routes
app.include_router(router, prefix="/api")


@app.get("/health")
async def health(detailed: bool = False):
    """
    Health check endpoint.

    - Basic: Returns {"status": "ok"}
    - Detailed (?detailed=true): Checks the Supabase policy table
    """
    if not detailed:
        return {"status": "ok", "service": "vehicle-condition-engine"}

    supabase_health = check_supabase_health(
        get_supabase_client(), settings.policy_table
    )
    overall = "ok" if supabase_health["status"] == "healthy" else "degraded"
    return {"status": overall, "supabase": supabase_health}
