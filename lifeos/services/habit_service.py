"""
Habit management service.
Handles habits, daily check-ins and streak maintenance.
"""
import logging
from datetime import date, timedelta
from typing import List, Optional
from sqlalchemy.orm import Session

from lifeos.exceptions import HabitNotFoundException, ValidationException
from lifeos.models import Habit, HabitCheckIn
from lifeos.repositories.habit_repository import HabitRepository, HabitCheckInRepository
from lifeos.schemas import HabitCreate, CheckInCreate
from lifeos.services.achievement_service import dispatch_achievement_check
from lifeos.services.date_service import DateService
from lifeos.services.streak_service import StreakService

logger = logging.getLogger("lifeos.habits")

WEEKLY_STATS_LIMIT = 8


class HabitService:
    """Service for managing habits and check-ins"""

    def __init__(self, db: Session):
        self.db = db
        self.habit_repo = HabitRepository()
        self.check_in_repo = HabitCheckInRepository()
        self.streak_service = StreakService()

    def get_habit(self, habit_id: int, user_id: int) -> Habit:
        habit = self.habit_repo.get_by_id(self.db, habit_id, user_id)
        if not habit:
            raise HabitNotFoundException(habit_id)
        return habit

    def get_habits(self, user_id: int, include_inactive: bool = False) -> List[Habit]:
        return self.habit_repo.get_all(self.db, user_id, include_inactive)

    def create_habit(self, user_id: int, data: HabitCreate, background_tasks=None) -> Habit:
        if data.is_quantity and data.quantity_target is not None and data.quantity_target <= 0:
            raise ValidationException("quantity_target", "must be greater than 0")

        habit = Habit(user_id=user_id, **data.model_dump())
        habit = self.habit_repo.create(self.db, habit)

        logger.info(f"Habit {habit.id} created for user {user_id}")
        dispatch_achievement_check(user_id, background_tasks)
        return habit

    def recompute_streak(self, habit: Habit, today: Optional[date] = None) -> Habit:
        """
        Derive the current streak from the full completed check-in history.

        longest_streak only ever grows.
        """
        dates = self.check_in_repo.get_completed_dates(self.db, habit.id)
        streak = self.streak_service.calculate_streak(dates, habit.frequency, today)

        habit.current_streak = streak
        habit.longest_streak = self.streak_service.updated_longest(habit.longest_streak, streak)
        return self.habit_repo.update(self.db, habit)

    def log_check_in(self, habit_id: int, user_id: int, data: CheckInCreate, background_tasks=None) -> HabitCheckIn:
        """
        Create or replace the check-in of a habit for one day.

        For quantity habits a logged quantity decides completion:
        quantity >= quantity_target (or > 0 without a target).
        """
        habit = self.get_habit(habit_id, user_id)
        target_date = data.date or DateService.today()
        if target_date > DateService.today():
            raise ValidationException("date", "cannot be in the future")

        completed = data.completed
        if habit.is_quantity and data.quantity is not None:
            if habit.quantity_target:
                completed = data.quantity >= habit.quantity_target
            else:
                completed = data.quantity > 0

        check_in = self.check_in_repo.upsert(
            self.db, habit.id, target_date, completed, data.quantity, data.notes
        )
        self.recompute_streak(habit)

        logger.info(f"Habit {habit_id} logged for {target_date}: completed={completed}")
        dispatch_achievement_check(user_id, background_tasks)
        return check_in

    def uncheck(self, habit_id: int, user_id: int, target_date: Optional[date] = None) -> Habit:
        """Mark the check-in of a day as not completed and recompute the streak"""
        habit = self.get_habit(habit_id, user_id)
        target_date = target_date or DateService.today()

        check_in = self.check_in_repo.get_by_date(self.db, habit.id, target_date)
        if check_in is not None and check_in.completed:
            self.check_in_repo.upsert(
                self.db, habit.id, target_date, False, check_in.quantity, check_in.notes
            )
        return self.recompute_streak(habit)

    def delete_check_in(self, habit_id: int, user_id: int, target_date: date) -> Habit:
        habit = self.get_habit(habit_id, user_id)
        check_in = self.check_in_repo.get_by_date(self.db, habit.id, target_date)
        if check_in is not None:
            self.check_in_repo.delete(self.db, check_in)
            logger.info(f"Check-in of habit {habit_id} on {target_date} deleted")
        return self.recompute_streak(habit)

    def get_stats(self, habit_id: int, user_id: int) -> dict:
        """Completion rate, weekly breakdown and quantity statistics"""
        habit = self.get_habit(habit_id, user_id)
        check_ins = self.check_in_repo.get_all(self.db, habit.id)

        total_days = len(check_ins)
        completed_days = sum(1 for c in check_ins if c.completed)

        weeks = {}
        for check_in in check_ins:
            week_start = check_in.date - timedelta(days=check_in.date.weekday())
            stats = weeks.setdefault(week_start, {"completed": 0, "total": 0})
            stats["total"] += 1
            if check_in.completed:
                stats["completed"] += 1

        weekly_stats = [
            {
                "week": week_start,
                "completed": stats["completed"],
                "total": stats["total"],
                "rate": stats["completed"] / stats["total"] * 100,
            }
            for week_start, stats in sorted(weeks.items(), reverse=True)[:WEEKLY_STATS_LIMIT]
        ]

        quantity_stats = None
        if habit.is_quantity:
            quantities = [c.quantity or 0 for c in check_ins]
            quantity_stats = {
                "total": sum(quantities),
                "average": sum(quantities) / len(quantities) if quantities else 0,
                "max": max(quantities, default=0),
                "min": min(quantities, default=0),
            }

        return {
            "habit_id": habit.id,
            "name": habit.name,
            "frequency": habit.frequency,
            "current_streak": habit.current_streak,
            "longest_streak": habit.longest_streak,
            "total_days": total_days,
            "completed_days": completed_days,
            "completion_rate": completed_days / total_days * 100 if total_days else 0.0,
            "weekly_stats": weekly_stats,
            "quantity_stats": quantity_stats,
        }

    def set_active(self, habit_id: int, user_id: int, is_active: bool) -> Habit:
        habit = self.get_habit(habit_id, user_id)
        habit.is_active = is_active
        habit = self.habit_repo.update(self.db, habit)
        logger.info(f"Habit {habit_id} {'reactivated' if is_active else 'deactivated'}")
        return habit

    def delete_habit(self, habit_id: int, user_id: int) -> None:
        habit = self.get_habit(habit_id, user_id)
        self.habit_repo.delete(self.db, habit)
        logger.info(f"Habit {habit_id} deleted")
