"""Immutable observation value types produced by upstream classifiers."""

import logging
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from app.core.enums import Severity, SurfaceTag, TyrePosition, WearPattern

logger = logging.getLogger(__name__)


class Observation(BaseModel):
    """One classified finding about a vehicle surface region."""

    model_config = ConfigDict(frozen=True)

    region_id: str = ""
    tag: SurfaceTag
    confidence: float = Field(ge=0.0, le=1.0)
    severity: Optional[Severity] = None
    free_text_analysis: str = ""

    @model_validator(mode="after")
    def enforce_severity_invariant(self) -> "Observation":
        """Defects always carry a severity, non-defects never do."""
        if self.tag.is_defect and self.severity is None:
            object.__setattr__(self, "severity", Severity.MINOR)
        elif not self.tag.is_defect and self.severity is not None:
            logger.warning(
                "Dropping severity %s on non-defect tag %s (region=%s)",
                self.severity.value,
                self.tag.value,
                self.region_id or "-",
            )
            object.__setattr__(self, "severity", None)
        return self

    @property
    def is_defect(self) -> bool:
        return self.tag.is_defect


class TyrePositionMeasurement(BaseModel):
    """Measurement of a single wheel position."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    position: TyrePosition
    tread_depth_mm: Optional[float] = Field(default=None, ge=0.0)
    wear_pattern: Optional[WearPattern] = None
    damage_detected: bool = False
    production_year: Optional[int] = Field(default=None, ge=1900)
    production_week: Optional[int] = Field(default=None, ge=1, le=52)
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)

    @field_validator("position", mode="before")
    @classmethod
    def parse_position(cls, value: object) -> object:
        if isinstance(value, str):
            return TyrePosition.from_string(value) or value
        return value

    @field_validator("wear_pattern", mode="before")
    @classmethod
    def parse_wear_pattern(cls, value: object) -> object:
        # Unknown patterns are logged by from_string and reported as unknown
        if isinstance(value, str):
            return WearPattern.from_string(value)
        return value

    @property
    def is_measured(self) -> bool:
        return self.tread_depth_mm is not None
