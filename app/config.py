"""Application configuration with environment variable validation."""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database (tenant policy store)
    supabase_url: str = Field(..., validation_alias="SUPABASE_URL")
    supabase_key: str = Field(..., validation_alias="SUPABASE_KEY")
    policy_table: str = Field(
        default="tyre_policy_settings",
        validation_alias="POLICY_TABLE",
    )

    # Image classifier (OpenAI vision)
    openai_api_key: str = Field(default="", validation_alias="OPENAI_API_KEY")
    vision_model: str = Field(default="gpt-4o-mini", validation_alias="VISION_MODEL")
    vision_max_tokens: int = Field(default=800, validation_alias="VISION_MAX_TOKENS")

    # Text classifier (DSPy)
    dspy_lm_model: str = Field(
        default="openai/gpt-4o-mini",
        validation_alias="DSPY_MODEL",
    )

    # Classification fan-out bounds (seconds)
    classifier_timeout_seconds: float = Field(
        default=15.0, validation_alias="CLASSIFIER_TIMEOUT_SECONDS"
    )
    classifier_deadline_seconds: float = Field(
        default=40.0, validation_alias="CLASSIFIER_DEADLINE_SECONDS"
    )

    # API settings
    rate_limit: str = Field(default="30/minute", validation_alias="RATE_LIMIT")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    # CORS
    allowed_origins: list[str] = Field(
        default=["*"],
        validation_alias="ALLOWED_ORIGINS",
    )

    @property
    def cors_origins(self) -> list[str]:
        if isinstance(self.allowed_origins, str):
            return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]
        return self.allowed_origins


@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]


def validate_settings() -> None:
    """Validate that all required settings are present and coherent."""
    settings = get_settings()
    errors = []

    if not settings.supabase_url:
        errors.append("SUPABASE_URL is required")
    if not settings.supabase_key:
        errors.append("SUPABASE_KEY is required")
    if settings.classifier_timeout_seconds <= 0:
        errors.append("CLASSIFIER_TIMEOUT_SECONDS must be positive")
    if settings.classifier_deadline_seconds < settings.classifier_timeout_seconds:
        errors.append(
            "CLASSIFIER_DEADLINE_SECONDS must not be shorter than "
            "CLASSIFIER_TIMEOUT_SECONDS"
        )

    if errors:
        raise ValueError(f"Configuration errors: {'; '.join(errors)}")
