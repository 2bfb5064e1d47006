"""
Habit streak calculation service.
Streaks are always derived from the full check-in history, never patched incrementally.
"""
from datetime import date, datetime, timedelta
from typing import Iterable, Optional, Union

from lifeos.constants import HABIT_FREQUENCY_WEEKLY
from lifeos.services.date_service import DateService


class StreakService:
    """Service for daily and weekly streak counting"""

    @staticmethod
    def _as_date(value: Union[date, datetime]) -> date:
        return value.date() if isinstance(value, datetime) else value

    def calculate_streak(
        self,
        check_in_dates: Iterable[Union[date, datetime]],
        frequency: str,
        today: Optional[date] = None
    ) -> int:
        """
        Calculate the current streak for a habit.

        Args:
            check_in_dates: Dates of completed check-ins (any order)
            frequency: Habit frequency (WEEKLY counts weeks, everything else days)
            today: Reference date (defaults to today)

        Returns:
            Number of consecutive periods ending now (or yesterday for daily habits)
        """
        today = today or DateService.today()
        # Check-ins dated after today never count
        dates = sorted({d for d in map(self._as_date, check_in_dates) if d <= today}, reverse=True)
        if not dates:
            return 0

        if frequency == HABIT_FREQUENCY_WEEKLY:
            return self._weekly_streak(dates, today)
        return self._daily_streak(dates, today)

    def _daily_streak(self, dates: list[date], today: date) -> int:
        """
        Count consecutive days walking back from the most recent check-in.

        The most recent check-in must be today or yesterday, otherwise
        the streak is already broken.
        """
        most_recent = dates[0]
        if (today - most_recent).days > 1:
            return 0

        streak = 1
        expected = most_recent - timedelta(days=1)
        for check_in_date in dates[1:]:
            if check_in_date != expected:
                break
            streak += 1
            expected = check_in_date - timedelta(days=1)
        return streak

    def _weekly_streak(self, dates: list[date], today: date) -> int:
        """Count consecutive ISO weeks with at least one check-in, ending this week"""
        weeks_seen = {DateService.iso_week_key(d) for d in dates}

        streak = 0
        year, week = DateService.iso_week_key(today)
        while (year, week) in weeks_seen:
            streak += 1
            year, week = DateService.previous_iso_week(year, week)
        return streak

    @staticmethod
    def updated_longest(longest_streak: Optional[int], new_streak: int) -> int:
        """Longest streak is monotonic: it never drops when the current streak does"""
        return max(longest_streak or 0, new_streak)
