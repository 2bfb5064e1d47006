"""
Goal repository - Data access layer for financial and fitness goals.
"""
from typing import List, Optional
from sqlalchemy import update
from sqlalchemy.orm import Session

from lifeos.models import FinancialGoal, FitnessGoal, FitnessProgressEntry


class FinancialGoalRepository:
    """Repository for FinancialGoal data access"""

    @staticmethod
    def get_by_id(db: Session, goal_id: int, user_id: int) -> Optional[FinancialGoal]:
        """Get a goal by ID, scoped to its owner"""
        return db.query(FinancialGoal).filter(
            FinancialGoal.id == goal_id,
            FinancialGoal.user_id == user_id
        ).first()

    @staticmethod
    def get_all(
        db: Session,
        user_id: int,
        status: Optional[str] = None,
        archived: bool = False
    ) -> List[FinancialGoal]:
        """Get goals for a user, newest first"""
        query = db.query(FinancialGoal).filter(
            FinancialGoal.user_id == user_id,
            FinancialGoal.is_archived == archived
        )
        if status:
            query = query.filter(FinancialGoal.status == status)
        return query.order_by(FinancialGoal.created_at.desc()).all()

    @staticmethod
    def get_every(db: Session, user_id: int) -> List[FinancialGoal]:
        """Get every goal of a user regardless of archive/pause flags"""
        return db.query(FinancialGoal).filter(FinancialGoal.user_id == user_id).all()

    @staticmethod
    def get_active(db: Session, user_id: int) -> List[FinancialGoal]:
        """Get goals that are neither archived nor paused"""
        return db.query(FinancialGoal).filter(
            FinancialGoal.user_id == user_id,
            FinancialGoal.is_archived == False,
            FinancialGoal.is_paused == False
        ).all()

    @staticmethod
    def get_by_statuses(db: Session, user_id: int, statuses: tuple) -> List[FinancialGoal]:
        """Get non-archived goals in any of the given statuses"""
        return db.query(FinancialGoal).filter(
            FinancialGoal.user_id == user_id,
            FinancialGoal.is_archived == False,
            FinancialGoal.status.in_(statuses)
        ).all()

    @staticmethod
    def get_user_ids(db: Session) -> List[int]:
        """Distinct owners of financial goals"""
        return [row[0] for row in db.query(FinancialGoal.user_id).distinct().all()]

    @staticmethod
    def create(db: Session, goal: FinancialGoal) -> FinancialGoal:
        """Create new goal"""
        db.add(goal)
        db.commit()
        db.refresh(goal)
        return goal

    @staticmethod
    def update(db: Session, goal: FinancialGoal) -> FinancialGoal:
        """Persist changes made to a goal"""
        db.commit()
        db.refresh(goal)
        return goal

    @staticmethod
    def delete(db: Session, goal: FinancialGoal) -> None:
        """Delete a goal"""
        db.delete(goal)
        db.commit()

    @staticmethod
    def increment_amount(db: Session, goal_id: int, delta: float) -> Optional[FinancialGoal]:
        """
        Atomically add delta to a goal's current_amount.

        Issues a single UPDATE ... SET current_amount = current_amount + :delta
        so concurrent increments never overwrite each other. The row lock taken
        by the UPDATE is held until the caller commits; the caller is expected
        to recompute the status from the returned goal and commit.

        Returns:
            The refreshed goal, or None if it no longer exists
        """
        result = db.execute(
            update(FinancialGoal)
            .where(FinancialGoal.id == goal_id)
            .values(current_amount=FinancialGoal.current_amount + delta)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            return None

        goal = db.get(FinancialGoal, goal_id)
        db.refresh(goal)
        return goal


class FitnessGoalRepository:
    """Repository for FitnessGoal data access"""

    @staticmethod
    def get_by_id(db: Session, goal_id: int, user_id: int) -> Optional[FitnessGoal]:
        """Get a fitness goal by ID, scoped to its owner"""
        return db.query(FitnessGoal).filter(
            FitnessGoal.id == goal_id,
            FitnessGoal.user_id == user_id
        ).first()

    @staticmethod
    def get_all(db: Session, user_id: int, status: Optional[str] = None) -> List[FitnessGoal]:
        """Get fitness goals for a user, newest first"""
        query = db.query(FitnessGoal).filter(FitnessGoal.user_id == user_id)
        if status:
            query = query.filter(FitnessGoal.status == status)
        return query.order_by(FitnessGoal.created_at.desc()).all()

    @staticmethod
    def get_unachieved(db: Session, user_id: int) -> List[FitnessGoal]:
        """Get fitness goals that are not yet achieved"""
        return db.query(FitnessGoal).filter(
            FitnessGoal.user_id == user_id,
            FitnessGoal.is_achieved == False
        ).all()

    @staticmethod
    def get_user_ids(db: Session) -> List[int]:
        return [row[0] for row in db.query(FitnessGoal.user_id).distinct().all()]

    @staticmethod
    def create(db: Session, goal: FitnessGoal) -> FitnessGoal:
        """Create new fitness goal"""
        db.add(goal)
        db.commit()
        db.refresh(goal)
        return goal

    @staticmethod
    def update(db: Session, goal: FitnessGoal) -> FitnessGoal:
        """Persist changes made to a fitness goal"""
        db.commit()
        db.refresh(goal)
        return goal

    @staticmethod
    def delete(db: Session, goal: FitnessGoal) -> None:
        """Delete a fitness goal"""
        db.delete(goal)
        db.commit()

    @staticmethod
    def add_progress_entry(db: Session, entry: FitnessProgressEntry) -> None:
        """Append a progress entry (committed together with the goal update)"""
        db.add(entry)
