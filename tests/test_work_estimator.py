"""Tests for labor-hour estimation."""

from app.core.enums import DEFECT_TAGS, Severity, SurfaceTag
from app.services.work_estimator import TASK_COSTS, estimate, worst_severity_per_tag
from helpers import obs


class TestEstimate:
    def test_no_defects_returns_zero_estimate(self):
        result = estimate([obs(SurfaceTag.CLEAN), obs(SurfaceTag.COATED)])
        assert result.min_hours == 0
        assert result.max_hours == 0
        assert result.breakdown == []

    def test_empty_input_returns_zero_estimate(self):
        result = estimate([])
        assert (result.min_hours, result.max_hours, result.breakdown) == (0, 0, [])

    def test_single_moderate_scratch(self):
        result = estimate([obs(SurfaceTag.SCRATCH, Severity.MODERATE)])
        assert result.min_hours == 1.0
        assert result.max_hours == 2.0
        assert len(result.breakdown) == 1
        assert result.breakdown[0].task == "Polishing"
        assert result.breakdown[0].hours == 1.5

    def test_min_never_exceeds_max(self):
        observations = [
            obs(tag, severity)
            for tag in DEFECT_TAGS
            for severity in (Severity.MINOR, Severity.SEVERE)
        ]
        result = estimate(observations)
        assert 0 <= result.min_hours <= result.max_hours

    def test_repeated_tag_counts_once_at_worst_severity(self):
        result = estimate(
            [
                obs(SurfaceTag.SCRATCH, Severity.MINOR, region_id="hood"),
                obs(SurfaceTag.SCRATCH, Severity.SEVERE, region_id="door"),
                obs(SurfaceTag.SCRATCH, Severity.MINOR, region_id="roof"),
            ]
        )
        assert result.min_hours == 1.5
        assert result.max_hours == 3.0
        assert [item.task for item in result.breakdown] == ["Polishing"]

    def test_lines_sharing_a_task_are_merged(self):
        # Moderate oxidation and severe contamination both map to "Decontamination + seal"
        result = estimate(
            [
                obs(SurfaceTag.OXIDATION, Severity.MODERATE),
                obs(SurfaceTag.CONTAMINATION, Severity.SEVERE),
            ]
        )
        assert [item.task for item in result.breakdown] == ["Decontamination + seal"]
        assert result.breakdown[0].hours == 3.0
        assert result.min_hours == 2.0
        assert result.max_hours == 4.0

    def test_low_confidence_defects_are_ignored(self):
        result = estimate([obs(SurfaceTag.DENT, Severity.SEVERE, confidence=0.1)])
        assert result.breakdown == []

    def test_confidence_floor_boundary(self):
        below = estimate([obs(SurfaceTag.DENT, Severity.MINOR, confidence=0.34)])
        at_floor = estimate([obs(SurfaceTag.DENT, Severity.MINOR, confidence=0.35)])
        assert below.breakdown == []
        assert (at_floor.min_hours, at_floor.max_hours) == (0.5, 1.0)
        assert at_floor.breakdown[0].task == "Paintless dent repair"

    def test_more_severe_findings_never_reduce_hours(self):
        for tag in DEFECT_TAGS:
            minor = estimate([obs(tag, Severity.MINOR)])
            severe = estimate([obs(tag, Severity.MINOR), obs(tag, Severity.SEVERE)])
            assert severe.min_hours >= minor.min_hours
            assert severe.max_hours >= minor.max_hours

    def test_breakdown_follows_tag_order(self):
        result = estimate(
            [
                obs(SurfaceTag.CHIP, Severity.MINOR),
                obs(SurfaceTag.SCRATCH, Severity.MINOR),
            ]
        )
        assert [item.task for item in result.breakdown] == ["Spot polishing", "Chip touch-up"]


class TestTaskCosts:
    def test_every_defect_has_a_cost_per_severity(self):
        for tag in DEFECT_TAGS:
            for severity in Severity:
                assert (tag, severity) in TASK_COSTS

    def test_costs_are_monotone_in_severity(self):
        for tag in DEFECT_TAGS:
            minor = TASK_COSTS[(tag, Severity.MINOR)]
            moderate = TASK_COSTS[(tag, Severity.MODERATE)]
            severe = TASK_COSTS[(tag, Severity.SEVERE)]
            assert minor.min_hours <= moderate.min_hours <= severe.min_hours
            assert minor.max_hours <= moderate.max_hours <= severe.max_hours
            for cost in (minor, moderate, severe):
                assert cost.min_hours <= cost.max_hours

    def test_worst_severity_per_tag(self):
        worst = worst_severity_per_tag(
            [
                obs(SurfaceTag.SWIRL, Severity.MODERATE),
                obs(SurfaceTag.SWIRL, Severity.MINOR),
                obs(SurfaceTag.DENT, Severity.MINOR),
            ]
        )
        assert worst == {SurfaceTag.SWIRL: Severity.MODERATE, SurfaceTag.DENT: Severity.MINOR}
