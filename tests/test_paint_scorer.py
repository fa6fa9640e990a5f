"""Tests for the paint condition scorer."""

import pytest

from app.core.enums import Severity, SurfaceTag
from app.services.paint_scorer import describe_score, qualifying_defects, score, total_penalty
from helpers import obs


class TestScore:
    def test_empty_input_is_neutral(self):
        result = score([])
        assert result.score == 100
        assert result.description == "excellent"

    def test_clean_only_scores_100(self):
        result = score([obs(SurfaceTag.CLEAN, confidence=0.99), obs(SurfaceTag.POLISHED)])
        assert result.score == 100

    def test_moderate_scratch_with_clean_region(self):
        # 100 - round(8 * 0.9) = 93
        result = score(
            [
                obs(SurfaceTag.SCRATCH, Severity.MODERATE, confidence=0.9),
                obs(SurfaceTag.CLEAN, confidence=0.99),
            ]
        )
        assert result.score == 93
        assert result.description == "excellent"

    def test_low_confidence_defects_are_ignored(self):
        result = score([obs(SurfaceTag.DENT, Severity.SEVERE, confidence=0.2)])
        assert result.score == 100

    def test_confidence_floor_is_inclusive(self):
        result = score([obs(SurfaceTag.DENT, Severity.SEVERE, confidence=0.35)])
        # 18 * 0.35 = 6.3
        assert result.score == 94

    def test_just_below_confidence_floor_is_ignored(self):
        result = score([obs(SurfaceTag.SWIRL, Severity.SEVERE, confidence=0.34)])
        assert result.score == 100

    def test_half_point_penalties_round_up(self):
        # 8 * 0.8125 = 6.5 and 8 * 0.5625 = 4.5
        assert score([obs(SurfaceTag.SCRATCH, Severity.MODERATE, confidence=0.8125)]).score == 93
        assert score([obs(SurfaceTag.SCRATCH, Severity.MODERATE, confidence=0.5625)]).score == 95

    def test_defect_without_severity_counts_as_minor(self):
        result = score([obs(SurfaceTag.CHIP, confidence=1.0)])
        assert result.score == 97

    def test_score_never_below_zero(self):
        observations = [
            obs(SurfaceTag.DENT, Severity.SEVERE, confidence=1.0, region_id=f"panel-{i}")
            for i in range(10)
        ]
        result = score(observations)
        assert result.score == 0
        assert result.description == "poor"

    def test_order_does_not_matter(self):
        observations = [
            obs(SurfaceTag.SCRATCH, Severity.MINOR, confidence=0.8),
            obs(SurfaceTag.SWIRL, Severity.MODERATE, confidence=0.7),
            obs(SurfaceTag.OXIDATION, Severity.SEVERE, confidence=0.6),
        ]
        assert score(observations) == score(list(reversed(observations)))

    def test_adding_a_defect_never_raises_the_score(self):
        base = [obs(SurfaceTag.SCRATCH, Severity.MINOR, confidence=0.8)]
        worse = base + [obs(SurfaceTag.CHIP, Severity.MINOR, confidence=0.5)]
        assert score(worse).score <= score(base).score


    @pytest.mark.parametrize("tag", [SurfaceTag.SCRATCH, SurfaceTag.DENT, SurfaceTag.OXIDATION])
    @pytest.mark.parametrize("confidence", [0.35, 0.6, 1.0])
    def test_raising_severity_never_raises_the_score(self, tag, confidence):
        scores = [
            score([obs(tag, severity, confidence=confidence)]).score
            for severity in (Severity.MINOR, Severity.MODERATE, Severity.SEVERE)
        ]
        assert scores == sorted(scores, reverse=True)

class TestHelpers:
    def test_describe_score_bands(self):
        assert describe_score(100) == "excellent"
        assert describe_score(85) == "excellent"
        assert describe_score(84) == "good"
        assert describe_score(65) == "good"
        assert describe_score(64) == "fair"
        assert describe_score(40) == "fair"
        assert describe_score(39) == "poor"
        assert describe_score(0) == "poor"

    def test_qualifying_defects_excludes_non_defects(self):
        observations = [
            obs(SurfaceTag.CLEAN),
            obs(SurfaceTag.SCRATCH, Severity.MINOR),
            obs(SurfaceTag.SWIRL, Severity.MINOR, confidence=0.1),
        ]
        assert [o.tag for o in qualifying_defects(observations)] == [SurfaceTag.SCRATCH]

    def test_total_penalty_is_clamped(self):
        observations = [
            obs(SurfaceTag.DENT, Severity.SEVERE, confidence=1.0) for _ in range(7)
        ]
        assert total_penalty(observations) == 100.0
