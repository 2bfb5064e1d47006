"""
Milestone repository - Data access layer for goal milestones.
"""
from typing import List, Optional
from sqlalchemy.orm import Session

from lifeos.models import GoalMilestone


class MilestoneRepository:
    """Repository for GoalMilestone data access"""

    @staticmethod
    def get_by_id(db: Session, milestone_id: int) -> Optional[GoalMilestone]:
        return db.query(GoalMilestone).filter(GoalMilestone.id == milestone_id).first()

    @staticmethod
    def get_for_goal(db: Session, goal_id: int, goal_kind: str) -> List[GoalMilestone]:
        """Get milestones of a goal in display order"""
        return db.query(GoalMilestone).filter(
            GoalMilestone.goal_id == goal_id,
            GoalMilestone.goal_kind == goal_kind
        ).order_by(GoalMilestone.order).all()

    @staticmethod
    def get_pending(db: Session, goal_id: int, goal_kind: str) -> List[GoalMilestone]:
        """Get not-yet-completed milestones of a goal in display order"""
        return db.query(GoalMilestone).filter(
            GoalMilestone.goal_id == goal_id,
            GoalMilestone.goal_kind == goal_kind,
            GoalMilestone.is_completed == False
        ).order_by(GoalMilestone.order).all()

    @staticmethod
    def create_many(db: Session, milestones: List[GoalMilestone]) -> List[GoalMilestone]:
        db.add_all(milestones)
        db.commit()
        for milestone in milestones:
            db.refresh(milestone)
        return milestones

    @staticmethod
    def update(db: Session) -> None:
        db.commit()

    @staticmethod
    def delete(db: Session, milestone: GoalMilestone) -> None:
        db.delete(milestone)
        db.commit()

    @staticmethod
    def delete_for_goal(db: Session, goal_id: int, goal_kind: str) -> int:
        """Delete every milestone of a goal without committing; returns the count"""
        return db.query(GoalMilestone).filter(
            GoalMilestone.goal_id == goal_id,
            GoalMilestone.goal_kind == goal_kind
        ).delete(synchronize_session=False)
