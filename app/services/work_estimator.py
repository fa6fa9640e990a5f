"""Labor-hour estimation from surface findings.

Each defect tag maps, per severity, to an hour range and a task label.
A tag counts once, at the worst severity observed for it; extra occurrences
of the same defect are reflected through severity escalation, not
multiplicity. Breakdown lines sharing a task label are merged.
"""

from collections.abc import Iterable
from typing import NamedTuple

from app.core.enums import Severity, SurfaceTag
from app.models.analysis import WorkEstimate, WorkItem
from app.models.observation import Observation
from app.services.paint_scorer import qualifying_defects


class TaskCost(NamedTuple):
    min_hours: float
    max_hours: float
    task: str


# Ranges are non-decreasing in severity for every tag
TASK_COSTS: dict[tuple[SurfaceTag, Severity], TaskCost] = {
    # Scratches
    (SurfaceTag.SCRATCH, Severity.MINOR): TaskCost(0.5, 1.0, "Spot polishing"),
    (SurfaceTag.SCRATCH, Severity.MODERATE): TaskCost(1.0, 2.0, "Polishing"),
    (SurfaceTag.SCRATCH, Severity.SEVERE): TaskCost(1.5, 3.0, "Polishing"),
    # Swirl marks
    (SurfaceTag.SWIRL, Severity.MINOR): TaskCost(1.0, 1.5, "One-step polish"),
    (SurfaceTag.SWIRL, Severity.MODERATE): TaskCost(2.0, 3.0, "Two-step paint correction"),
    (SurfaceTag.SWIRL, Severity.SEVERE): TaskCost(3.0, 5.0, "Three-step paint correction"),
    # Dents
    (SurfaceTag.DENT, Severity.MINOR): TaskCost(0.5, 1.0, "Paintless dent repair"),
    (SurfaceTag.DENT, Severity.MODERATE): TaskCost(1.0, 2.5, "Paintless dent repair"),
    (SurfaceTag.DENT, Severity.SEVERE): TaskCost(2.5, 5.0, "Panel repair referral"),
    # Stone chips
    (SurfaceTag.CHIP, Severity.MINOR): TaskCost(0.3, 0.5, "Chip touch-up"),
    (SurfaceTag.CHIP, Severity.MODERATE): TaskCost(0.5, 1.0, "Chip touch-up"),
    (SurfaceTag.CHIP, Severity.SEVERE): TaskCost(1.0, 2.0, "Chip repair and respray prep"),
    # Oxidation
    (SurfaceTag.OXIDATION, Severity.MINOR): TaskCost(0.5, 1.0, "Oxidation treatment"),
    (SurfaceTag.OXIDATION, Severity.MODERATE): TaskCost(1.0, 2.0, "Decontamination + seal"),
    (SurfaceTag.OXIDATION, Severity.SEVERE): TaskCost(2.0, 4.0, "Oxidation removal + polish"),
    # Water spots
    (SurfaceTag.WATER_SPOT, Severity.MINOR): TaskCost(0.3, 0.5, "Water spot removal"),
    (SurfaceTag.WATER_SPOT, Severity.MODERATE): TaskCost(0.5, 1.0, "Water spot removal"),
    (SurfaceTag.WATER_SPOT, Severity.SEVERE): TaskCost(1.0, 2.0, "Etching correction"),
    # Contamination
    (SurfaceTag.CONTAMINATION, Severity.MINOR): TaskCost(0.5, 1.0, "Decontamination"),
    (SurfaceTag.CONTAMINATION, Severity.MODERATE): TaskCost(0.8, 1.5, "Decontamination"),
    (SurfaceTag.CONTAMINATION, Severity.SEVERE): TaskCost(1.0, 2.0, "Decontamination + seal"),
}


def _round_hours(value: float) -> float:
    return round(value, 1)


def worst_severity_per_tag(
    observations: Iterable[Observation],
) -> dict[SurfaceTag, Severity]:
    """Highest qualifying severity seen for each defect tag."""
    worst: dict[SurfaceTag, Severity] = {}
    for obs in qualifying_defects(observations):
        severity = obs.severity or Severity.MINOR
        current = worst.get(obs.tag)
        if current is None or severity.rank > current.rank:
            worst[obs.tag] = severity
    return worst


def estimate(observations: Iterable[Observation]) -> WorkEstimate:
    """Estimate labor hours for a set of surface observations.

    Never returns None; with no qualifying defects the estimate is
    ``{0, 0, []}``.
    """
    worst = worst_severity_per_tag(observations)
    if not worst:
        return WorkEstimate(min_hours=0.0, max_hours=0.0, breakdown=[])

    min_total = 0.0
    max_total = 0.0
    # Insertion-ordered by tag declaration order for stable output
    lines: dict[str, list[float]] = {}
    for tag in SurfaceTag:
        severity = worst.get(tag)
        if severity is None:
            continue
        cost = TASK_COSTS[(tag, severity)]
        min_total += cost.min_hours
        max_total += cost.max_hours
        line = lines.setdefault(cost.task, [0.0, 0.0])
        line[0] += cost.min_hours
        line[1] += cost.max_hours

    breakdown = [
        WorkItem(task=task, hours=_round_hours((lo + hi) / 2))
        for task, (lo, hi) in lines.items()
    ]
    return WorkEstimate(
        min_hours=_round_hours(min_total),
        max_hours=_round_hours(max_total),
        breakdown=breakdown,
    )
