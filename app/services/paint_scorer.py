"""Paint/surface condition scoring.

Aggregates classified surface observations into a 0-100 condition score.
Each qualifying defect costs a severity penalty scaled by the classifier's
confidence; observations below the confidence floor are ignored entirely.
Pure and deterministic: identical input always yields identical output.
"""

import math
from collections.abc import Iterable

from app.core.enums import CONDITION_BANDS, CONFIDENCE_FLOOR, Severity
from app.models.analysis import ConditionScore
from app.models.observation import Observation

# Penalty points per defect, before confidence scaling
SEVERITY_PENALTY: dict[Severity, float] = {
    Severity.MINOR: 3.0,
    Severity.MODERATE: 8.0,
    Severity.SEVERE: 18.0,
}

MAX_SCORE = 100


def qualifying_defects(observations: Iterable[Observation]) -> list[Observation]:
    """Defect observations at or above the confidence floor."""
    return [
        o for o in observations if o.is_defect and o.confidence >= CONFIDENCE_FLOOR
    ]


def describe_score(score: int) -> str:
    for threshold, description in CONDITION_BANDS:
        if score >= threshold:
            return description
    return CONDITION_BANDS[-1][1]


def total_penalty(observations: Iterable[Observation]) -> float:
    """Confidence-weighted penalty sum, clamped to [0, 100]."""
    total = sum(
        SEVERITY_PENALTY[o.severity or Severity.MINOR] * o.confidence
        for o in qualifying_defects(observations)
    )
    return min(max(total, 0.0), float(MAX_SCORE))


def score(observations: Iterable[Observation]) -> ConditionScore:
    """Score a set of surface observations.

    An empty set (or one without qualifying defects) returns the neutral
    score of 100. The penalty is rounded half up, so 6.5 costs 7 points.
    """
    value = MAX_SCORE - math.floor(total_penalty(observations) + 0.5)
    return ConditionScore(score=value, description=describe_score(value))
