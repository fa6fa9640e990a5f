from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.core.enums import Season


class ThresholdPolicy(BaseModel):
    """Tread/age limits for one season, resolved from the tenant policy."""

    model_config = ConfigDict(frozen=True)

    min_tread_mm: float = Field(ge=0.0)
    warning_tread_mm: float
    max_age_years: int = Field(gt=0)

    @model_validator(mode="after")
    def check_ordering(self) -> "ThresholdPolicy":
        if not self.warning_tread_mm > self.min_tread_mm:
            raise ValueError(
                f"warning_tread_mm ({self.warning_tread_mm}) must be greater than "
                f"min_tread_mm ({self.min_tread_mm})"
            )
        return self

    @property
    def replace_soon_below_mm(self) -> float:
        """Midpoint of the warning band; below it worn tyres are replace_soon."""
        return self.min_tread_mm + (self.warning_tread_mm - self.min_tread_mm) / 2


class TenantTyrePolicy(BaseModel):
    """Per-tenant tyre policy row as written by tenant administration."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    tenant_id: str
    summer_min_tread_mm: float
    winter_min_tread_mm: float
    allseason_min_tread_mm: float
    summer_warning_tread_mm: float
    winter_warning_tread_mm: float
    allseason_warning_tread_mm: float
    max_tyre_age_years: int
    notify_customer_on_low_tread: bool = False
    notify_customer_on_old_tyres: bool = False

    @model_validator(mode="after")
    def check_every_season(self) -> "TenantTyrePolicy":
        # Fail on load, not on the first evaluation that touches a bad season
        for season in Season:
            self.for_season(season)
        return self

    def for_season(self, season: Season) -> ThresholdPolicy:
        prefix = season.value
        return ThresholdPolicy(
            min_tread_mm=getattr(self, f"{prefix}_min_tread_mm"),
            warning_tread_mm=getattr(self, f"{prefix}_warning_tread_mm"),
            max_age_years=self.max_tyre_age_years,
        )
