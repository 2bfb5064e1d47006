"""
Tests for ProgressService.

Tests cover:
1. Financial progress percentage and clamping
2. Status classification boundaries
3. Pause/archive status resolution
4. Fitness progress for increase and decrease goals
"""
import pytest

from lifeos.exceptions import ValidationException
from lifeos.services.progress_service import ProgressService, round_half_up


class TestFinancialProgress:
    """Tests for financial_progress"""

    def test_three_quarters_saved_is_on_track(self):
        """75000 of 100000 is exactly 75% and ON_TRACK (boundary inclusive)"""
        progress = ProgressService.financial_progress(75000, 100000)

        assert progress == 75.0
        assert ProgressService.classify_status(progress) == "ON_TRACK"

    def test_progress_capped_at_100(self):
        assert ProgressService.financial_progress(15000, 10000) == 100.0

    @pytest.mark.parametrize("current,target", [
        (0, 1), (1, 3), (999.99, 1000), (5e6, 1), (0.01, 1e9), (250, 250),
    ])
    def test_progress_always_between_0_and_100(self, current, target):
        progress = ProgressService.financial_progress(current, target)
        assert 0 <= progress <= 100

    @pytest.mark.parametrize("target", [0, -100])
    def test_non_positive_target_rejected(self, target):
        """A zero or negative target cannot produce a percentage"""
        with pytest.raises(ValidationException) as exc:
            ProgressService.financial_progress(100, target)
        assert exc.value.field == "target_amount"


class TestStatusClassification:
    """Tests for classify_status boundaries"""

    @pytest.mark.parametrize("progress,expected", [
        (100, "COMPLETED"),
        (99.9, "ON_TRACK"),
        (75, "ON_TRACK"),
        (74.9, "NEEDS_FOCUS"),
        (40, "NEEDS_FOCUS"),
        (39.9, "BEHIND"),
        (0, "BEHIND"),
    ])
    def test_boundaries(self, progress, expected):
        assert ProgressService.classify_status(progress) == expected


class TestResolveStatus:
    """Tests for resolve_status"""

    def test_paused_overrides_progress(self):
        assert ProgressService.resolve_status(9000, 10000, is_paused=True) == "PAUSED"

    def test_archived_wins_over_paused(self):
        status = ProgressService.resolve_status(9000, 10000, is_paused=True, is_archived=True)
        assert status == "ARCHIVED"

    def test_unflagged_goal_uses_classification(self):
        """Clearing the flags brings the numeric status back"""
        assert ProgressService.resolve_status(5000, 10000) == "NEEDS_FOCUS"


class TestFitnessProgress:
    """Tests for fitness_progress"""

    def test_decrease_goal_halfway(self):
        """90 -> 80 kg goal at 85 kg is halfway"""
        assert ProgressService.fitness_progress(90, 85, 80) == 50.0

    def test_increase_goal(self):
        assert ProgressService.fitness_progress(10, 25, 30) == 75.0

    def test_moving_the_wrong_way_is_zero(self):
        assert ProgressService.fitness_progress(90, 95, 80) == 0.0

    def test_overshoot_is_capped(self):
        assert ProgressService.fitness_progress(90, 75, 80) == 100.0

    def test_target_equal_to_start_is_complete(self):
        assert ProgressService.fitness_progress(70, 72, 70) == 100.0

    def test_achieved_only_at_100(self):
        assert ProgressService.is_fitness_achieved(100.0) is True
        assert ProgressService.is_fitness_achieved(99.99) is False


class TestRoundHalfUp:
    """Halves round up like a calculator, not to even"""

    @pytest.mark.parametrize("value,expected", [(12.5, 13), (0.5, 1), (2.4999, 2), (-2.5, -2), (99.5, 100)])
    def test_rounding(self, value, expected):
        assert round_half_up(value) == expected
