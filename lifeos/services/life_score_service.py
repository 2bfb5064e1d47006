"""
Life score aggregation service.
Combines the finance, fitness, habits and systems sub-scores into a single
0-100 Life Score and keeps one progress snapshot per user and day.
"""
import logging
import math
from datetime import date, timedelta
from typing import Iterable, List, Optional
from sqlalchemy.orm import Session

from lifeos.constants import HABIT_STREAK_CAP_DAYS, LIFE_SCORE_WEIGHTS
from lifeos.models import FinancialGoal, FitnessGoal, Habit, ProgressSnapshot
from lifeos.repositories.goal_repository import FinancialGoalRepository, FitnessGoalRepository
from lifeos.repositories.habit_repository import HabitRepository
from lifeos.repositories.system_repository import LifeSystemRepository
from lifeos.repositories.snapshot_repository import ProgressSnapshotRepository
from lifeos.services.adherence_service import LifeSystemService
from lifeos.services.date_service import DateService
from lifeos.services.progress_service import ProgressService, round_half_up

logger = logging.getLogger("lifeos.life_score")

if not math.isclose(sum(LIFE_SCORE_WEIGHTS.values()), 1.0):
    raise ValueError(f"Life score weights must sum to 1.0, got {LIFE_SCORE_WEIGHTS}")

SCORE_FIELDS = ("life_score", "finance_score", "fitness_score", "habits_score", "systems_score")


def _mean(values: Iterable[float]) -> int:
    values = list(values)
    if not values:
        return 0
    return round_half_up(sum(values) / len(values))


def finance_score(goals: Iterable[FinancialGoal]) -> int:
    """Mean progress of the given (active) financial goals"""
    return _mean(
        ProgressService.financial_progress(goal.current_amount, goal.target_amount)
        for goal in goals
    )


def fitness_score(goals: Iterable[FitnessGoal]) -> int:
    """Mean progress of the given (not yet achieved) fitness goals"""
    return _mean(
        ProgressService.fitness_progress(goal.start_value, goal.current_value, goal.target_value)
        for goal in goals
    )


def habits_score(habits: Iterable[Habit]) -> int:
    """Mean streak score; a streak of HABIT_STREAK_CAP_DAYS or more scores 100"""
    return _mean(
        min((habit.current_streak or 0) / HABIT_STREAK_CAP_DAYS * 100, 100)
        for habit in habits
    )


def systems_score(adherences: Iterable[int]) -> int:
    """Mean adherence percentage of the active systems"""
    return _mean(adherences)


def compute_life_score(finance: float, fitness: float, habits: float, systems: float) -> int:
    """
    Weighted composite score.

    Formula: round(finance*0.40 + fitness*0.30 + habits*0.20 + systems*0.10)
    """
    total = (
        finance * LIFE_SCORE_WEIGHTS["finance"]
        + fitness * LIFE_SCORE_WEIGHTS["fitness"]
        + habits * LIFE_SCORE_WEIGHTS["habits"]
        + systems * LIFE_SCORE_WEIGHTS["systems"]
    )
    return round_half_up(total)


def _average_scores(snapshots: List[ProgressSnapshot]) -> dict:
    if not snapshots:
        return {field: 0 for field in SCORE_FIELDS}
    return {
        field: _mean(getattr(snapshot, field) for snapshot in snapshots)
        for field in SCORE_FIELDS
    }


class ProgressSnapshotService:
    """Service computing life scores and managing daily snapshots"""

    def __init__(self, db: Session):
        self.db = db
        self.goal_repo = FinancialGoalRepository()
        self.fitness_repo = FitnessGoalRepository()
        self.habit_repo = HabitRepository()
        self.system_repo = LifeSystemRepository()
        self.snapshot_repo = ProgressSnapshotRepository()

    def calculate_breakdown(self, user_id: int) -> dict:
        """
        Compute the live life score of a user.

        Returns:
            Dict with the composite score, the four sub-scores and the
            counters stored alongside a snapshot
        """
        financial_goals = self.goal_repo.get_active(self.db, user_id)
        fitness_goals = self.fitness_repo.get_unachieved(self.db, user_id)
        habits = self.habit_repo.get_all(self.db, user_id)
        systems = self.system_repo.get_all(self.db, user_id)

        system_service = LifeSystemService(self.db)
        today = DateService.today()
        adherences = [system_service.get_adherence(system, today) for system in systems]

        finance = finance_score(financial_goals)
        fitness = fitness_score(fitness_goals)
        habit = habits_score(habits)
        system = systems_score(adherences)

        return {
            "life_score": compute_life_score(finance, fitness, habit, system),
            "finance_score": finance,
            "fitness_score": fitness,
            "habits_score": habit,
            "systems_score": system,
            "total_saved": sum(goal.current_amount for goal in financial_goals),
            "active_habits": len(habits),
            "active_goals": len(financial_goals) + len(fitness_goals),
        }

    def calculate_life_score(self, user_id: int) -> int:
        return self.calculate_breakdown(user_id)["life_score"]

    def create_snapshot(self, user_id: int) -> ProgressSnapshot:
        """Create or refresh today's snapshot (one per user and day)"""
        today = DateService.today()
        breakdown = self.calculate_breakdown(user_id)

        snapshot = self.snapshot_repo.get_by_date(self.db, user_id, today)
        if snapshot is None:
            snapshot = ProgressSnapshot(user_id=user_id, date=today)
        else:
            logger.debug(f"Snapshot for user {user_id} on {today} exists, updating")

        for key, value in breakdown.items():
            setattr(snapshot, key, value)

        snapshot = self.snapshot_repo.save(self.db, snapshot)
        logger.info(f"Progress snapshot for user {user_id}: life score {snapshot.life_score}")
        return snapshot

    def get_history(self, user_id: int, days: int = 30) -> List[ProgressSnapshot]:
        """Snapshots of the last `days` days, oldest first"""
        start = DateService.today() - timedelta(days=days)
        return self.snapshot_repo.get_range(self.db, user_id, start)

    def get_today(self, user_id: int) -> Optional[ProgressSnapshot]:
        return self.snapshot_repo.get_by_date(self.db, user_id, DateService.today())

    def get_trends(self, user_id: int, days: int = 30) -> dict:
        """
        Trend of the life score over the last `days` days.

        Fewer than two snapshots yields trend "insufficient_data".
        """
        snapshots = self.get_history(user_id, days)
        if len(snapshots) < 2:
            return {"trend": "insufficient_data", "change": 0}

        current_score = snapshots[-1].life_score or 0
        change = current_score - (snapshots[0].life_score or 0)

        if change > 0:
            trend = "up"
        elif change < 0:
            trend = "down"
        else:
            trend = "stable"

        return {
            "trend": trend,
            "change": change,
            "current_score": current_score,
            "weekly_average": _mean(s.life_score for s in snapshots[-7:]),
            "monthly_average": _mean(s.life_score for s in snapshots),
            "data_points": len(snapshots),
        }

    def compare_periods(
        self,
        user_id: int,
        period1_start: date,
        period1_end: date,
        period2_start: date,
        period2_end: date
    ) -> dict:
        """Average scores of two periods and their difference (period 2 minus period 1)"""
        first = self.snapshot_repo.get_range(self.db, user_id, period1_start, period1_end)
        second = self.snapshot_repo.get_range(self.db, user_id, period2_start, period2_end)

        first_avg = _average_scores(first)
        second_avg = _average_scores(second)

        return {
            "period1": {
                "start": period1_start,
                "end": period1_end,
                "data_points": len(first),
                "averages": first_avg,
            },
            "period2": {
                "start": period2_start,
                "end": period2_end,
                "data_points": len(second),
                "averages": second_avg,
            },
            "comparison": {field: second_avg[field] - first_avg[field] for field in SCORE_FIELDS},
        }

    def get_user_ids(self) -> List[int]:
        """Every user owning at least one tracked entity"""
        user_ids = set(self.goal_repo.get_user_ids(self.db))
        user_ids.update(self.fitness_repo.get_user_ids(self.db))
        user_ids.update(self.habit_repo.get_user_ids(self.db))
        user_ids.update(self.system_repo.get_user_ids(self.db))
        return sorted(user_ids)

    def create_snapshots_for_all_users(self) -> int:
        """
        Create today's snapshot for every user.

        A failure for one user is logged and does not stop the others.

        Returns:
            Number of snapshots written
        """
        created = 0
        for user_id in self.get_user_ids():
            try:
                self.create_snapshot(user_id)
                created += 1
            except Exception as e:
                self.db.rollback()
                logger.error(f"Snapshot for user {user_id} failed: {e}", exc_info=True)
        return created
