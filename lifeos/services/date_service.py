"""
Date calculation and manipulation service.
Handles midnight normalization, end-of-day bounds, calendar-month steps and ISO weeks.
"""
from datetime import datetime, date
from typing import Union

from dateutil.relativedelta import relativedelta


class DateService:
    """Service for date-related operations"""

    @staticmethod
    def now() -> datetime:
        """Current local time (single seam for tests to patch)"""
        return datetime.now()

    @staticmethod
    def today() -> date:
        return DateService.now().date()

    @staticmethod
    def normalize_to_midnight(value: Union[datetime, date]) -> datetime:
        """
        Normalize a date or datetime to midnight (remove time component).

        Args:
            value: Date or datetime to normalize

        Returns:
            Datetime set to midnight
        """
        if isinstance(value, datetime):
            value = value.date()
        return datetime.combine(value, datetime.min.time())

    @staticmethod
    def end_of_day(target_date: date) -> datetime:
        """Last representable moment of the given day"""
        return datetime.combine(target_date, datetime.max.time())

    @staticmethod
    def add_months(value: datetime, months: int) -> datetime:
        """
        Add calendar months, clamping to the last day of the resulting month.

        Jan 31 + 1 month -> Feb 28 (or 29 in leap years).
        """
        return value + relativedelta(months=months)

    @staticmethod
    def days_until(target: Union[datetime, date], now: datetime) -> int:
        """
        Whole days from now until target, rounded up and never negative.
        """
        if not isinstance(target, datetime):
            target = datetime.combine(target, datetime.min.time())
        seconds = (target - now).total_seconds()
        if seconds <= 0:
            return 0
        days, remainder = divmod(seconds, 86400)
        return int(days) + (1 if remainder > 0 else 0)

    @staticmethod
    def iso_week_key(value: date) -> tuple[int, int]:
        """
        Monday-anchored ISO (year, week) key.

        The ISO year is the year of the week's Thursday, so Dec 31 can belong
        to week 1 of the next year and Jan 1 to week 52/53 of the previous one.
        """
        iso_year, iso_week, _ = value.isocalendar()
        return iso_year, iso_week

    @staticmethod
    def previous_iso_week(year: int, week: int) -> tuple[int, int]:
        """Step one ISO week back, rolling into the previous ISO year"""
        if week > 1:
            return year, week - 1
        # Dec 28 is always in the last ISO week of its year
        last_week = date(year - 1, 12, 28).isocalendar()[1]
        return year - 1, last_week
