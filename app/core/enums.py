"""Closed vocabularies for classifier output, tyre positions and verdicts.

Upstream classifiers return loosely-typed strings. Each enum resolves them
through ``from_string``: exact value first, then an explicit synonym table.
Anything else is logged and returned as ``None``; callers decide whether to
drop the value, it is never mapped to a default condition.
"""

import logging
from enum import Enum
from typing import Optional, TypeVar

logger = logging.getLogger(__name__)

_E = TypeVar("_E", bound="_Vocabulary")


def _normalize(value: str) -> str:
    return value.strip().lower().replace("-", "_").replace(" ", "_")


class _Vocabulary(str, Enum):
    """str Enum with a logged, synonym-aware string parser."""

    @classmethod
    def _synonyms(cls) -> dict[str, str]:
        return {}

    @classmethod
    def from_string(cls: type[_E], value: Optional[str]) -> Optional[_E]:
        """Convert string to enum, returning None (and logging) if unknown."""
        if isinstance(value, cls):
            return value
        if isinstance(value, Enum):
            value = value.value
        if value is None or not str(value).strip():
            return None
        key = _normalize(str(value))
        for member in cls:
            if _normalize(member.value) == key:
                return member
        mapped = cls._synonyms().get(key)
        if mapped is not None:
            logger.info("Mapped upstream %s '%s' -> '%s'", cls.__name__, value, mapped)
            return cls(mapped)
        logger.warning("Unrecognized upstream %s value: %r", cls.__name__, value)
        return None


class SurfaceTag(_Vocabulary):
    """Tags an image classifier can attach to a vehicle surface region."""

    SCRATCH = "scratch"
    SWIRL = "swirl"
    DENT = "dent"
    CHIP = "chip"
    OXIDATION = "oxidation"
    WATER_SPOT = "water_spot"
    CONTAMINATION = "contamination"
    CLEAN = "clean"
    COATED = "coated"
    POLISHED = "polished"
    BEFORE = "before"
    AFTER = "after"

    @classmethod
    def _synonyms(cls) -> dict[str, str]:
        return {
            "scratches": "scratch",
            "swirls": "swirl",
            "swirl_marks": "swirl",
            "holograms": "swirl",
            "dents": "dent",
            "ding": "dent",
            "chips": "chip",
            "stone_chip": "chip",
            "stone_chips": "chip",
            "rock_chip": "chip",
            "rust": "oxidation",
            "oxidized": "oxidation",
            "faded_paint": "oxidation",
            "water_spots": "water_spot",
            "watermarks": "water_spot",
            "water_marks": "water_spot",
            "bird_droppings": "contamination",
            "tar": "contamination",
            "iron_fallout": "contamination",
            "dirt": "contamination",
            "ceramic_coating": "coated",
        }

    @property
    def is_defect(self) -> bool:
        return self in DEFECT_TAGS


DEFECT_TAGS: frozenset[SurfaceTag] = frozenset(
    {
        SurfaceTag.SCRATCH,
        SurfaceTag.SWIRL,
        SurfaceTag.DENT,
        SurfaceTag.CHIP,
        SurfaceTag.OXIDATION,
        SurfaceTag.WATER_SPOT,
        SurfaceTag.CONTAMINATION,
    }
)


class Severity(_Vocabulary):
    """Defect severity, ordered minor < moderate < severe."""

    MINOR = "minor"
    MODERATE = "moderate"
    SEVERE = "severe"

    @classmethod
    def _synonyms(cls) -> dict[str, str]:
        return {
            "low": "minor",
            "light": "minor",
            "slight": "minor",
            "medium": "moderate",
            "high": "severe",
            "heavy": "severe",
            "critical": "severe",
        }

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {Severity.MINOR: 1, Severity.MODERATE: 2, Severity.SEVERE: 3}


class WearPattern(_Vocabulary):
    """Tread wear pattern across the tyre face."""

    EVEN = "even"
    CENTER = "center"
    EDGES = "edges"
    UNEVEN = "uneven"

    @classmethod
    def _synonyms(cls) -> dict[str, str]:
        return {
            "centre": "center",
            "center_wear": "center",
            "shoulder": "edges",
            "shoulders": "edges",
            "edge": "edges",
            "cupping": "uneven",
            "feathering": "uneven",
            "one_sided": "uneven",
            "normal": "even",
        }


class TyrePosition(_Vocabulary):
    """Wheel position on a four-wheel vehicle."""

    FL = "FL"
    FR = "FR"
    RL = "RL"
    RR = "RR"

    @classmethod
    def _synonyms(cls) -> dict[str, str]:
        return {
            "front_left": "FL",
            "left_front": "FL",
            "lf": "FL",
            "front_right": "FR",
            "right_front": "FR",
            "rf": "FR",
            "rear_left": "RL",
            "left_rear": "RL",
            "lr": "RL",
            "rear_right": "RR",
            "right_rear": "RR",
            "rr": "RR",
        }

    @property
    def label(self) -> str:
        return _POSITION_LABELS[self]


_POSITION_LABELS = {
    TyrePosition.FL: "front left",
    TyrePosition.FR: "front right",
    TyrePosition.RL: "rear left",
    TyrePosition.RR: "rear right",
}

# Display and iteration order for per-position output
POSITION_ORDER: tuple[TyrePosition, ...] = (
    TyrePosition.FL,
    TyrePosition.FR,
    TyrePosition.RL,
    TyrePosition.RR,
)


class Season(_Vocabulary):
    """Tyre season, selects the threshold set from the tenant policy."""

    SUMMER = "summer"
    WINTER = "winter"
    ALLSEASON = "allseason"

    @classmethod
    def _synonyms(cls) -> dict[str, str]:
        return {
            "all_season": "allseason",
            "all_weather": "allseason",
            "helars": "allseason",
            "studded": "winter",
            "pigg": "winter",
            "friction": "winter",
        }


class PositionCondition(str, Enum):
    """Per-position verdict, ordered good < worn < bad."""

    GOOD = "good"
    WORN = "worn"
    BAD = "bad"
    NOT_MEASURED = "not_measured"

    @property
    def rank(self) -> int:
        return _CONDITION_RANK[self]

    @property
    def wear_status(self) -> str:
        """Status label used by the tyre report consumers."""
        return _WEAR_STATUS[self]


_CONDITION_RANK = {
    PositionCondition.NOT_MEASURED: 0,
    PositionCondition.GOOD: 1,
    PositionCondition.WORN: 2,
    PositionCondition.BAD: 3,
}

_WEAR_STATUS = {
    PositionCondition.GOOD: "ok",
    PositionCondition.WORN: "warn",
    PositionCondition.BAD: "critical",
    PositionCondition.NOT_MEASURED: "not_measured",
}


class TyreRecommendationLevel(str, Enum):
    """Machine-checkable tyre recommendation, ordered by urgency."""

    OK = "ok"
    MONITOR = "monitor"
    REPLACE_SOON = "replace_soon"
    REPLACE_NOW = "replace_now"

    @property
    def rank(self) -> int:
        return _RECOMMENDATION_RANK[self]


_RECOMMENDATION_RANK = {
    TyreRecommendationLevel.OK: 0,
    TyreRecommendationLevel.MONITOR: 1,
    TyreRecommendationLevel.REPLACE_SOON: 2,
    TyreRecommendationLevel.REPLACE_NOW: 3,
}


class InspectionType(str, Enum):
    """Context the images were captured in."""

    PRE_COATING = "pre_coating"
    POST_COATING = "post_coating"
    FOLLOWUP = "followup"
    DAMAGE_REPORT = "damage_report"
    GENERAL = "general"


class MessageIntent(_Vocabulary):
    BOOKING = "booking"
    INQUIRY = "inquiry"
    COMPLAINT = "complaint"
    FEEDBACK = "feedback"
    SUPPORT = "support"
    GENERAL = "general"


class Urgency(_Vocabulary):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Sentiment(_Vocabulary):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


# Paint condition score bands (score >= threshold -> description)
CONDITION_BANDS: tuple[tuple[int, str], ...] = (
    (85, "excellent"),
    (65, "good"),
    (40, "fair"),
    (0, "poor"),
)

# Observations below this confidence are classifier noise
CONFIDENCE_FLOOR = 0.35
