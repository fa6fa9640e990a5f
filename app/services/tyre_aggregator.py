"""Tyre position aggregation.

Combines up to four per-wheel measurements into one recommendation under a
tenant's threshold policy. The worst wheel governs: a single position below
the minimum tread forces ``replace_now`` no matter how good the others are.
Comparisons are strict (``tread == min`` is worn, not bad). Positions that
were not supplied, or supplied without a tread depth, are reported as
"not measured" and never counted as good.
"""

import logging
from collections.abc import Sequence
from datetime import date
from typing import Optional

from app.core.enums import (
    POSITION_ORDER,
    PositionCondition,
    Season,
    TyrePosition,
    TyreRecommendationLevel,
    WearPattern,
)
from app.core.errors import InsufficientDataError, ValidationError
from app.models.analysis import PositionVerdict, TyreRecommendation
from app.models.observation import TyrePositionMeasurement
from app.models.policy import ThresholdPolicy

logger = logging.getLogger(__name__)

WEAR_PATTERN_HINTS: dict[WearPattern, str] = {
    WearPattern.CENTER: "center wear, check for over-inflation",
    WearPattern.EDGES: "shoulder wear, check for under-inflation",
    WearPattern.UNEVEN: "uneven wear, check alignment and suspension",
}

HEADLINES: dict[TyreRecommendationLevel, str] = {
    TyreRecommendationLevel.OK: "Tyres are OK.",
    TyreRecommendationLevel.MONITOR: "Monitor tyres.",
    TyreRecommendationLevel.REPLACE_SOON: "Replace tyres soon.",
    TyreRecommendationLevel.REPLACE_NOW: "Replace tyres now.",
}


# =============================================================================
# Per-position classification
# =============================================================================


def classify_tread(tread_depth_mm: float, policy: ThresholdPolicy) -> PositionCondition:
    """Tread-only condition using strict comparisons."""
    if tread_depth_mm < policy.min_tread_mm:
        return PositionCondition.BAD
    if tread_depth_mm < policy.warning_tread_mm:
        return PositionCondition.WORN
    return PositionCondition.GOOD


def tyre_age_years(m: TyrePositionMeasurement, today: date) -> Optional[int]:
    """Age in whole years from the production year; week is ignored."""
    if m.production_year is None:
        return None
    return today.year - m.production_year


def _raise_to_worn(condition: PositionCondition) -> PositionCondition:
    # Age and damage can only worsen a verdict, never improve it
    if condition.rank < PositionCondition.WORN.rank:
        return PositionCondition.WORN
    return condition


def _position_notes(
    m: TyrePositionMeasurement,
    tread_condition: PositionCondition,
    age: Optional[int],
    aged: bool,
    policy: ThresholdPolicy,
) -> str:
    parts: list[str] = []
    if m.tread_depth_mm is None:
        parts.append("tread not measured")
    elif tread_condition is PositionCondition.BAD:
        parts.append(
            f"{m.tread_depth_mm:.1f} mm, below the {policy.min_tread_mm:.1f} mm minimum"
        )
    elif tread_condition is PositionCondition.WORN:
        parts.append(
            f"{m.tread_depth_mm:.1f} mm, below the "
            f"{policy.warning_tread_mm:.1f} mm warning level"
        )
    else:
        parts.append(f"{m.tread_depth_mm:.1f} mm")
    if aged and age is not None:
        parts.append(f"{age} years old (limit {policy.max_age_years})")
    if m.damage_detected:
        parts.append("damage detected")
    if m.wear_pattern in WEAR_PATTERN_HINTS:
        parts.append(WEAR_PATTERN_HINTS[m.wear_pattern])
    return "; ".join(parts)


def evaluate_position(
    m: TyrePositionMeasurement, policy: ThresholdPolicy, today: date
) -> PositionVerdict:
    if m.tread_depth_mm is None:
        tread_condition = PositionCondition.NOT_MEASURED
    else:
        tread_condition = classify_tread(m.tread_depth_mm, policy)

    age = tyre_age_years(m, today)
    aged = age is not None and age >= policy.max_age_years

    condition = tread_condition
    if aged or m.damage_detected:
        condition = _raise_to_worn(condition)

    return PositionVerdict(
        position=m.position,
        tread_depth_mm=m.tread_depth_mm,
        condition=condition,
        aged=aged,
        damage_detected=m.damage_detected,
        wear_pattern=m.wear_pattern,
        notes=_position_notes(m, tread_condition, age, aged, policy),
    )


def _not_measured(position: TyrePosition) -> PositionVerdict:
    return PositionVerdict(
        position=position,
        condition=PositionCondition.NOT_MEASURED,
        notes="not measured",
    )


# =============================================================================
# Aggregation
# =============================================================================


def _check_measurements(measurements: Sequence[TyrePositionMeasurement]) -> None:
    if not measurements:
        raise ValidationError("Tyre inspection has no measurements")
    seen: set[TyrePosition] = set()
    for m in measurements:
        if m.position in seen:
            raise ValidationError(
                f"Position {m.position.value} measured more than once",
                details={"position": m.position.value},
            )
        seen.add(m.position)
    if not any(m.is_measured for m in measurements):
        raise InsufficientDataError(
            "No position has a usable tread depth; re-measure the tyres",
            details={"positions": [m.position.value for m in measurements]},
        )


def _recommend(
    verdicts: Sequence[PositionVerdict],
    overall_tread_mm: float,
    policy: ThresholdPolicy,
) -> TyreRecommendationLevel:
    conditions = {v.condition for v in verdicts}
    if PositionCondition.BAD in conditions:
        level = TyreRecommendationLevel.REPLACE_NOW
    elif PositionCondition.WORN in conditions:
        if overall_tread_mm < policy.replace_soon_below_mm:
            level = TyreRecommendationLevel.REPLACE_SOON
        else:
            level = TyreRecommendationLevel.MONITOR
    else:
        level = TyreRecommendationLevel.OK

    if any(v.damage_detected for v in verdicts):
        if level.rank < TyreRecommendationLevel.REPLACE_SOON.rank:
            level = TyreRecommendationLevel.REPLACE_SOON
    return level


def _fmt_tread(verdicts: Sequence[PositionVerdict]) -> str:
    return ", ".join(f"{v.position.value} ({v.tread_depth_mm:.1f} mm)" for v in verdicts)


def _fmt_positions(verdicts: Sequence[PositionVerdict]) -> str:
    return ", ".join(v.position.value for v in verdicts)


def build_notes(
    level: TyreRecommendationLevel,
    verdicts: Sequence[PositionVerdict],
    overall_tread_mm: float,
    policy: ThresholdPolicy,
    season: Season,
) -> str:
    """Customer-facing explanation naming the positions behind the verdict.

    Downstream certificates and messages display this verbatim, so the output
    depends only on the inputs and follows the fixed FL, FR, RL, RR order.
    """
    measured = [v for v in verdicts if v.tread_depth_mm is not None]
    below_min = [v for v in measured if v.tread_depth_mm < policy.min_tread_mm]
    below_warning = [
        v
        for v in measured
        if policy.min_tread_mm <= v.tread_depth_mm < policy.warning_tread_mm
    ]
    aged = [v for v in verdicts if v.aged]
    damaged = [v for v in verdicts if v.damage_detected]
    unmeasured = [v for v in verdicts if v.tread_depth_mm is None]

    sentences = [
        f"{HEADLINES[level]} Lowest tread depth {overall_tread_mm:.1f} mm "
        f"({season.value} limits: minimum {policy.min_tread_mm:.1f} mm, "
        f"warning {policy.warning_tread_mm:.1f} mm)."
    ]
    if below_min:
        sentences.append(
            f"Below the {policy.min_tread_mm:.1f} mm minimum: {_fmt_tread(below_min)}."
        )
    if below_warning:
        sentences.append(
            f"Below the {policy.warning_tread_mm:.1f} mm warning level: "
            f"{_fmt_tread(below_warning)}."
        )
    if aged:
        sentences.append(
            f"At or over the {policy.max_age_years}-year age limit: {_fmt_positions(aged)}."
        )
    if damaged:
        sentences.append(f"Damage detected: {_fmt_positions(damaged)}.")
    if not (below_min or below_warning or aged or damaged):
        sentences.append(
            f"At or above the {policy.warning_tread_mm:.1f} mm warning level: "
            f"{_fmt_positions(measured)}."
        )
    if unmeasured:
        sentences.append(f"Not measured: {_fmt_positions(unmeasured)}.")
    return " ".join(sentences)


def aggregate(
    measurements: Sequence[TyrePositionMeasurement],
    policy: ThresholdPolicy,
    season: Season,
    *,
    today: Optional[date] = None,
) -> TyreRecommendation:
    """Aggregate per-wheel measurements into one recommendation.

    Args:
        measurements: 1-4 measurements with distinct positions
        policy: Season-resolved thresholds, passed in for every call
        season: Season the thresholds were resolved for (used in notes)
        today: Reference date for the age check (defaults to today)

    Raises:
        ValidationError: no measurements, or a position given twice
        InsufficientDataError: no measurement has a tread depth
    """
    _check_measurements(measurements)
    today = today or date.today()

    by_position = {m.position: m for m in measurements}
    verdicts: list[PositionVerdict] = []
    missing: list[TyrePosition] = []
    for position in POSITION_ORDER:
        m = by_position.get(position)
        if m is None:
            missing.append(position)
            verdicts.append(_not_measured(position))
        else:
            verdicts.append(evaluate_position(m, policy, today))

    overall_tread_mm = min(
        m.tread_depth_mm for m in measurements if m.tread_depth_mm is not None
    )
    level = _recommend(verdicts, overall_tread_mm, policy)
    overall_condition = max(
        (v.condition for v in verdicts if v.condition is not PositionCondition.NOT_MEASURED),
        key=lambda c: c.rank,
    )

    if missing:
        logger.info(
            "Partial tyre inspection, not measured: %s",
            ", ".join(p.value for p in missing),
        )

    return TyreRecommendation(
        overall_condition=overall_condition,
        overall_tread_depth_mm=overall_tread_mm,
        recommendation=level,
        notes=build_notes(level, verdicts, overall_tread_mm, policy, season),
        positions=verdicts,
        missing_positions=missing,
    )
