"""
Goal progress calculation service.
Pure functions turning goal amounts/values into progress percentages and statuses.
"""
import math

from lifeos.constants import (
    GOAL_STATUS_COMPLETED,
    GOAL_STATUS_ON_TRACK,
    GOAL_STATUS_NEEDS_FOCUS,
    GOAL_STATUS_BEHIND,
    GOAL_STATUS_PAUSED,
    GOAL_STATUS_ARCHIVED,
    STATUS_THRESHOLD_COMPLETED,
    STATUS_THRESHOLD_ON_TRACK,
    STATUS_THRESHOLD_NEEDS_FOCUS,
)
from lifeos.exceptions import ValidationException


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (12.5 -> 13)"""
    return int(math.floor(value + 0.5))


class ProgressService:
    """Progress and status calculations for financial and fitness goals"""

    @staticmethod
    def financial_progress(current_amount: float, target_amount: float) -> float:
        """
        Calculate financial goal progress.

        Formula: min(current / target * 100, 100)

        Raises:
            ValidationException: If target_amount is zero or negative
        """
        if target_amount is None or target_amount <= 0:
            raise ValidationException("target_amount", "must be greater than 0")
        return min(current_amount / target_amount * 100, 100.0)

    @staticmethod
    def classify_status(progress: float) -> str:
        """
        Classify progress into a goal status.

        - progress >= 100: COMPLETED
        - progress >= 75:  ON_TRACK
        - progress >= 40:  NEEDS_FOCUS
        - otherwise:       BEHIND
        """
        if progress >= STATUS_THRESHOLD_COMPLETED:
            return GOAL_STATUS_COMPLETED
        if progress >= STATUS_THRESHOLD_ON_TRACK:
            return GOAL_STATUS_ON_TRACK
        if progress >= STATUS_THRESHOLD_NEEDS_FOCUS:
            return GOAL_STATUS_NEEDS_FOCUS
        return GOAL_STATUS_BEHIND

    @staticmethod
    def resolve_status(
        current_amount: float,
        target_amount: float,
        is_paused: bool = False,
        is_archived: bool = False
    ) -> str:
        """
        Resolve the stored status of a financial goal.

        Archive wins over pause; both win over the numeric classification,
        which comes back as soon as the flags are cleared.
        """
        if is_archived:
            return GOAL_STATUS_ARCHIVED
        if is_paused:
            return GOAL_STATUS_PAUSED
        progress = ProgressService.financial_progress(current_amount, target_amount)
        return ProgressService.classify_status(progress)

    @staticmethod
    def fitness_progress(start_value: float, current_value: float, target_value: float) -> float:
        """
        Calculate fitness goal progress for both increase and decrease goals.

        A goal whose target equals its start is trivially complete (100).
        """
        total_change = target_value - start_value
        if total_change == 0:
            return 100.0
        current_change = current_value - start_value
        return min(max(current_change / total_change * 100, 0.0), 100.0)

    @staticmethod
    def is_fitness_achieved(progress: float) -> bool:
        return progress >= STATUS_THRESHOLD_COMPLETED
