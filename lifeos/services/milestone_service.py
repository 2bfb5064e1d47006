"""
Goal milestone service.
Evenly spaced checkpoints on financial and fitness goals.
"""
import logging
from typing import List, Optional, Union
from sqlalchemy.orm import Session

from lifeos.constants import (
    DEFAULT_MILESTONE_COUNT,
    MILESTONE_KIND_FINANCIAL,
    MILESTONE_KIND_FITNESS,
)
from lifeos.exceptions import (
    FitnessGoalNotFoundException,
    GoalNotFoundException,
    MilestoneNotFoundException,
    ValidationException,
)
from lifeos.models import FinancialGoal, FitnessGoal, GoalMilestone
from lifeos.repositories.goal_repository import FinancialGoalRepository, FitnessGoalRepository
from lifeos.repositories.milestone_repository import MilestoneRepository
from lifeos.services.date_service import DateService
from lifeos.services.progress_service import round_half_up

logger = logging.getLogger("lifeos.milestones")


def milestone_name(index: int, count: int) -> str:
    return f"{round_half_up(index / count * 100)}% Complete"


def is_milestone_reached(goal: Union[FinancialGoal, FitnessGoal], milestone: GoalMilestone) -> bool:
    """Financial milestones are reached upward; fitness ones in the goal's direction"""
    if isinstance(goal, FinancialGoal):
        return goal.current_amount >= milestone.target_value
    if goal.target_value > goal.start_value:
        return goal.current_value >= milestone.target_value
    return goal.current_value <= milestone.target_value


class MilestoneService:
    """Service for goal milestones"""

    def __init__(self, db: Session):
        self.db = db
        self.milestone_repo = MilestoneRepository()

    def _get_goal(self, goal_id: int, user_id: int, goal_kind: str) -> Union[FinancialGoal, FitnessGoal]:
        if goal_kind == MILESTONE_KIND_FINANCIAL:
            goal = FinancialGoalRepository.get_by_id(self.db, goal_id, user_id)
            if not goal:
                raise GoalNotFoundException(goal_id)
            return goal
        if goal_kind == MILESTONE_KIND_FITNESS:
            goal = FitnessGoalRepository.get_by_id(self.db, goal_id, user_id)
            if not goal:
                raise FitnessGoalNotFoundException(goal_id)
            return goal
        raise ValidationException("goal_kind", f"unsupported goal kind '{goal_kind}'")

    def auto_generate(
        self,
        goal_id: int,
        user_id: int,
        goal_kind: str,
        count: int = DEFAULT_MILESTONE_COUNT
    ) -> List[GoalMilestone]:
        """
        Create `count` evenly spaced milestones ("25% Complete", ...).

        Financial targets are fractions of the target amount; fitness targets
        are offsets from the start value towards the target value.
        """
        if count < 1:
            raise ValidationException("count", "must be at least 1")
        goal = self._get_goal(goal_id, user_id, goal_kind)

        if goal_kind == MILESTONE_KIND_FINANCIAL:
            step = goal.target_amount / count
            targets = [round_half_up(step * i) for i in range(1, count + 1)]
        else:
            step = (goal.target_value - goal.start_value) / count
            targets = [goal.start_value + round_half_up(step * i) for i in range(1, count + 1)]

        milestones = [
            GoalMilestone(
                goal_id=goal.id,
                goal_kind=goal_kind,
                name=milestone_name(i, count),
                target_value=target,
                order=i,
            )
            for i, target in enumerate(targets, start=1)
        ]
        self.milestone_repo.create_many(self.db, milestones)

        logger.info(f"Generated {count} milestones for {goal_kind.lower()} goal {goal_id}")
        return self.milestone_repo.get_for_goal(self.db, goal.id, goal_kind)

    def get_for_goal(self, goal_id: int, user_id: int, goal_kind: str) -> List[GoalMilestone]:
        goal = self._get_goal(goal_id, user_id, goal_kind)
        return self.milestone_repo.get_for_goal(self.db, goal.id, goal_kind)

    def remove_for_goal(self, goal_id: int, goal_kind: str) -> int:
        """Drop a goal's milestones; committed together with the goal deletion"""
        return self.milestone_repo.delete_for_goal(self.db, goal_id, goal_kind)

    def check_completion(self, goal: Union[FinancialGoal, FitnessGoal]) -> List[GoalMilestone]:
        """
        Mark pending milestones the goal has reached.

        Returns:
            Milestones completed by this call
        """
        goal_kind = MILESTONE_KIND_FINANCIAL if isinstance(goal, FinancialGoal) else MILESTONE_KIND_FITNESS
        completed = []
        for milestone in self.milestone_repo.get_pending(self.db, goal.id, goal_kind):
            if is_milestone_reached(goal, milestone):
                milestone.is_completed = True
                milestone.completed_at = DateService.now()
                completed.append(milestone)
                logger.info(f"Milestone {milestone.id} of goal {goal.id} completed")

        if completed:
            self.milestone_repo.update(self.db)
        return completed

    def get_next(self, goal_id: int, goal_kind: str) -> Optional[GoalMilestone]:
        pending = self.milestone_repo.get_pending(self.db, goal_id, goal_kind)
        return pending[0] if pending else None

    def get_financial_progress(self, goal_id: int, user_id: int) -> dict:
        """Milestone overview of a financial goal including the next milestone"""
        goal = self._get_goal(goal_id, user_id, MILESTONE_KIND_FINANCIAL)
        self.check_completion(goal)
        milestones = self.milestone_repo.get_for_goal(self.db, goal.id, MILESTONE_KIND_FINANCIAL)

        completed = sum(1 for m in milestones if m.is_completed)
        upcoming = next((m for m in milestones if not m.is_completed), None)

        next_milestone = None
        if upcoming is not None:
            next_milestone = {
                "id": upcoming.id,
                "name": upcoming.name,
                "target_value": upcoming.target_value,
                "amount_needed": upcoming.target_value - goal.current_amount,
                "progress_to_next": (
                    goal.current_amount / upcoming.target_value * 100 if upcoming.target_value else 100.0
                ),
            }

        return {
            "total": len(milestones),
            "completed": completed,
            "remaining": len(milestones) - completed,
            "next_milestone": next_milestone,
            "milestones": milestones,
        }

    def delete(self, milestone_id: int, user_id: int) -> None:
        milestone = self.milestone_repo.get_by_id(self.db, milestone_id)
        if not milestone:
            raise MilestoneNotFoundException(milestone_id)
        # Ownership is checked through the parent goal
        self._get_goal(milestone.goal_id, user_id, milestone.goal_kind)
        self.milestone_repo.delete(self.db, milestone)
        logger.info(f"Milestone {milestone_id} deleted")
