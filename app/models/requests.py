from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from app.core.enums import InspectionType, Season
from app.models.observation import TyrePositionMeasurement


class _RequestModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class InspectionRequest(_RequestModel):
    """Evaluation request; its shape decides which analyses run.

    Text or image URLs select the surface analysis, tyre measurements select
    the tyre analysis, and a combined inspection carries both.
    """

    tenant_id: str = Field(..., min_length=1)

    # Surface part
    text: Optional[str] = Field(default=None, max_length=10000)
    image_urls: Optional[list[str]] = Field(default=None, max_length=20)
    include_estimates: bool = False
    customer_id: Optional[str] = None
    conversation_id: Optional[str] = None
    inspection_type: InspectionType = InspectionType.GENERAL

    # Tyre part
    season: Optional[Season] = None
    measurements: Optional[list[TyrePositionMeasurement]] = None

    @field_validator("season", mode="before")
    @classmethod
    def parse_season(cls, value: object) -> object:
        if isinstance(value, str):
            return Season.from_string(value) or value
        return value

    @property
    def has_surface_part(self) -> bool:
        return self.text is not None or self.image_urls is not None

    @property
    def has_tyre_part(self) -> bool:
        return self.measurements is not None or self.season is not None

    @property
    def has_surface_input(self) -> bool:
        return bool(self.text and self.text.strip()) or bool(self.image_urls)


class SurfaceAnalysisRequest(_RequestModel):
    """Message/photo analysis request from the messaging or booking flow."""

    tenant_id: str = Field(..., min_length=1)
    text: Optional[str] = Field(default=None, max_length=10000)
    image_urls: Optional[list[str]] = Field(default=None, max_length=20)
    include_estimates: bool = False
    customer_id: Optional[str] = None
    conversation_id: Optional[str] = None
    inspection_type: InspectionType = InspectionType.GENERAL

    def to_inspection(self) -> InspectionRequest:
        data = self.model_dump()
        # An empty request still has to reach the engine's surface validation
        if data["text"] is None and data["image_urls"] is None:
            data["image_urls"] = []
        return InspectionRequest(**data)


class TyreAnalysisRequest(_RequestModel):
    tenant_id: str = Field(..., min_length=1)
    season: Season
    measurements: list[TyrePositionMeasurement] = []

    @field_validator("season", mode="before")
    @classmethod
    def parse_season(cls, value: object) -> object:
        if isinstance(value, str):
            return Season.from_string(value) or value
        return value

    def to_inspection(self) -> InspectionRequest:
        return InspectionRequest(
            tenant_id=self.tenant_id,
            season=self.season,
            measurements=list(self.measurements),
        )
