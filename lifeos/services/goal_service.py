"""
Goal management service.
Handles financial and fitness goals: creation, updates, contributions and summaries.
"""
import logging
from typing import List, Optional
from sqlalchemy.orm import Session

from lifeos.constants import (
    GOAL_STATUS_COMPLETED,
    GOAL_STATUS_ON_TRACK,
    GOAL_STATUS_NEEDS_FOCUS,
    GOAL_STATUS_BEHIND,
    MILESTONE_KIND_FINANCIAL,
    MILESTONE_KIND_FITNESS,
)
from lifeos.exceptions import (
    FitnessGoalNotFoundException,
    GoalNotFoundException,
    ValidationException,
)
from lifeos.models import FinancialGoal, FitnessGoal, FitnessProgressEntry
from lifeos.schemas import (
    FinancialGoalCreate,
    FinancialGoalUpdate,
    FitnessGoalCreate,
    FitnessGoalUpdate,
    FitnessProgressUpdate,
    updated_fields,
)
from lifeos.repositories.goal_repository import FinancialGoalRepository, FitnessGoalRepository
from lifeos.services.achievement_service import dispatch_achievement_check
from lifeos.services.milestone_service import MilestoneService
from lifeos.services.progress_service import ProgressService

logger = logging.getLogger("lifeos.goals")

FINANCIAL_REQUIRED_FIELDS = (
    "name", "goal_type", "target_amount", "current_amount", "monthly_contribution",
    "start_date", "target_date", "is_paused", "is_archived",
)
FITNESS_REQUIRED_FIELDS = ("name", "current_value", "target_value")


def financial_goal_progress(goal: FinancialGoal) -> float:
    return ProgressService.financial_progress(goal.current_amount, goal.target_amount)


def fitness_goal_progress(goal: FitnessGoal) -> float:
    return ProgressService.fitness_progress(goal.start_value, goal.current_value, goal.target_value)


def _check_dates(start_date, target_date) -> None:
    if start_date and target_date and target_date < start_date:
        raise ValidationException("target_date", "must not be before start_date")


class FinancialGoalService:
    """Service for managing financial goals"""

    def __init__(self, db: Session):
        self.db = db
        self.goal_repo = FinancialGoalRepository()

    def get_goal(self, goal_id: int, user_id: int) -> FinancialGoal:
        goal = self.goal_repo.get_by_id(self.db, goal_id, user_id)
        if not goal:
            raise GoalNotFoundException(goal_id)
        return goal

    def get_goals(self, user_id: int, status: Optional[str] = None, archived: bool = False) -> List[FinancialGoal]:
        return self.goal_repo.get_all(self.db, user_id, status, archived)

    def _refresh_status(self, goal: FinancialGoal) -> None:
        goal.status = ProgressService.resolve_status(
            goal.current_amount, goal.target_amount, goal.is_paused, goal.is_archived
        )

    def create_goal(self, user_id: int, data: FinancialGoalCreate, background_tasks=None) -> FinancialGoal:
        """
        Create a financial goal with its initial status.

        Raises:
            ValidationException: If target_amount <= 0 or the dates are reversed
        """
        if data.target_amount <= 0:
            raise ValidationException("target_amount", "must be greater than 0")
        _check_dates(data.start_date, data.target_date)

        goal = FinancialGoal(user_id=user_id, **data.model_dump())
        self._refresh_status(goal)
        goal = self.goal_repo.create(self.db, goal)

        logger.info(f"Financial goal {goal.id} created for user {user_id} ({goal.status})")
        dispatch_achievement_check(user_id, background_tasks)
        return goal

    def update_goal(
        self,
        goal_id: int,
        user_id: int,
        data: FinancialGoalUpdate,
        background_tasks=None
    ) -> FinancialGoal:
        """Partial update; the status is recomputed from the resulting values"""
        goal = self.get_goal(goal_id, user_id)
        update_data = updated_fields(data, FINANCIAL_REQUIRED_FIELDS)

        if "target_amount" in update_data and (update_data["target_amount"] or 0) <= 0:
            raise ValidationException("target_amount", "must be greater than 0")
        _check_dates(update_data.get("start_date", goal.start_date), update_data.get("target_date", goal.target_date))

        for key, value in update_data.items():
            setattr(goal, key, value)
        self._refresh_status(goal)
        goal = self.goal_repo.update(self.db, goal)

        logger.info(f"Financial goal {goal_id} updated: {sorted(update_data)}")
        MilestoneService(self.db).check_completion(goal)
        dispatch_achievement_check(user_id, background_tasks)
        return goal

    def add_contribution(self, goal_id: int, user_id: int, amount: float, background_tasks=None) -> FinancialGoal:
        """
        Add money to a goal.

        The amount is applied with an atomic increment and the status is
        recomputed from the incremented value before committing.
        """
        if amount is None or amount <= 0:
            raise ValidationException("amount", "must be greater than 0")
        goal = self.get_goal(goal_id, user_id)

        try:
            goal = self.goal_repo.increment_amount(self.db, goal.id, amount)
            if goal is None:
                raise GoalNotFoundException(goal_id)
            self._refresh_status(goal)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(goal)

        logger.info(f"Goal {goal_id}: +{amount}, now {goal.current_amount} ({goal.status})")
        MilestoneService(self.db).check_completion(goal)
        dispatch_achievement_check(user_id, background_tasks)
        return goal

    def delete_goal(self, goal_id: int, user_id: int) -> None:
        goal = self.get_goal(goal_id, user_id)
        removed = MilestoneService(self.db).remove_for_goal(goal.id, MILESTONE_KIND_FINANCIAL)
        self.goal_repo.delete(self.db, goal)
        logger.info(f"Financial goal {goal_id} deleted with {removed} milestones")

    def get_summary(self, user_id: int) -> dict:
        """Totals over active (not archived, not paused) goals"""
        goals = self.goal_repo.get_active(self.db, user_id)
        total_target = sum(g.target_amount for g in goals)
        total_saved = sum(g.current_amount for g in goals)

        return {
            "total_goals": len(goals),
            "total_target": total_target,
            "total_saved": total_saved,
            "overall_progress": total_saved / total_target * 100 if total_target > 0 else 0.0,
            "goals_by_status": {
                status: sum(1 for g in goals if g.status == status)
                for status in (
                    GOAL_STATUS_ON_TRACK,
                    GOAL_STATUS_NEEDS_FOCUS,
                    GOAL_STATUS_BEHIND,
                    GOAL_STATUS_COMPLETED,
                )
            },
        }


class FitnessGoalService:
    """Service for managing fitness goals"""

    def __init__(self, db: Session):
        self.db = db
        self.goal_repo = FitnessGoalRepository()

    def get_goal(self, goal_id: int, user_id: int) -> FitnessGoal:
        goal = self.goal_repo.get_by_id(self.db, goal_id, user_id)
        if not goal:
            raise FitnessGoalNotFoundException(goal_id)
        return goal

    def get_goals(self, user_id: int, status: Optional[str] = None) -> List[FitnessGoal]:
        return self.goal_repo.get_all(self.db, user_id, status)

    @staticmethod
    def _refresh_status(goal: FitnessGoal) -> None:
        progress = fitness_goal_progress(goal)
        goal.status = ProgressService.classify_status(progress)
        goal.is_achieved = ProgressService.is_fitness_achieved(progress)

    def create_goal(self, user_id: int, data: FitnessGoalCreate, background_tasks=None) -> FitnessGoal:
        goal = FitnessGoal(user_id=user_id, **data.model_dump())
        self._refresh_status(goal)
        goal = self.goal_repo.create(self.db, goal)

        logger.info(f"Fitness goal {goal.id} created for user {user_id}")
        dispatch_achievement_check(user_id, background_tasks)
        return goal

    def update_goal(
        self,
        goal_id: int,
        user_id: int,
        data: FitnessGoalUpdate,
        background_tasks=None,
        notes: Optional[str] = None
    ) -> FitnessGoal:
        """
        Partial update of a fitness goal.

        A changed current_value appends a progress history entry.
        """
        goal = self.get_goal(goal_id, user_id)
        update_data = updated_fields(data, FITNESS_REQUIRED_FIELDS)

        new_value = update_data.get("current_value")
        if new_value is not None and new_value != goal.current_value:
            self.goal_repo.add_progress_entry(
                self.db, FitnessProgressEntry(goal_id=goal.id, value=new_value, notes=notes)
            )

        for key, value in update_data.items():
            setattr(goal, key, value)
        self._refresh_status(goal)
        goal = self.goal_repo.update(self.db, goal)

        logger.info(f"Fitness goal {goal_id} updated ({goal.status}, achieved={goal.is_achieved})")
        MilestoneService(self.db).check_completion(goal)
        dispatch_achievement_check(user_id, background_tasks)
        return goal

    def log_progress(self, goal_id: int, user_id: int, data: FitnessProgressUpdate, background_tasks=None) -> FitnessGoal:
        """Record a new measurement for a fitness goal"""
        return self.update_goal(
            goal_id,
            user_id,
            FitnessGoalUpdate(current_value=data.current_value),
            background_tasks,
            notes=data.notes,
        )

    def delete_goal(self, goal_id: int, user_id: int) -> None:
        goal = self.get_goal(goal_id, user_id)
        removed = MilestoneService(self.db).remove_for_goal(goal.id, MILESTONE_KIND_FITNESS)
        self.goal_repo.delete(self.db, goal)
        logger.info(f"Fitness goal {goal_id} deleted with {removed} milestones")
