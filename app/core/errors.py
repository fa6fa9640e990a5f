"""Error taxonomy for the condition analysis engine.

Every error raised by the engine is recoverable at the caller boundary and
carries the HTTP status the API layer maps it to. The engine never retries.
"""

from typing import Any, Optional


class EngineError(Exception):
    """Base exception for all engine errors.

    Attributes:
        message: Human-readable reason shown to the caller
        details: Optional structured context (skipped inputs, tenant, ...)
    """

    status_code: int = 500
    error_type: str = "ENGINE_ERROR"

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        return f"{self.error_type}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        return {
            "success": False,
            "error": self.message,
            "error_type": self.error_type,
            "details": self.details,
        }


class ValidationError(EngineError):
    """Malformed or incomplete request. Never retried automatically."""

    status_code = 400
    error_type = "VALIDATION_ERROR"


class InsufficientDataError(EngineError):
    """Every supplied measurement lacks a usable value.

    Kept distinct from ValidationError so callers can ask for a re-measurement
    instead of a re-submission.
    """

    status_code = 422
    error_type = "INSUFFICIENT_DATA"


class UpstreamClassificationError(EngineError):
    """An image/text classifier call failed or timed out."""

    status_code = 502
    error_type = "UPSTREAM_CLASSIFICATION_FAILED"


class PolicyNotConfiguredError(EngineError):
    """Tenant has no usable tyre threshold policy."""

    status_code = 409
    error_type = "POLICY_NOT_CONFIGURED"


class PolicyStoreUnavailableError(EngineError):
    """The tenant policy table could not be read (network or query failure)."""

    status_code = 503
    error_type = "POLICY_STORE_UNAVAILABLE"
