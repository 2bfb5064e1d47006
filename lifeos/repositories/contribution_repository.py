"""
Recurring contribution repository - Data access layer for scheduled goal contributions.
"""
from datetime import datetime
from typing import List, Optional
from sqlalchemy import update
from sqlalchemy.orm import Session

from lifeos.models import RecurringContribution


class RecurringContributionRepository:
    """Repository for RecurringContribution data access"""

    @staticmethod
    def get_by_id(db: Session, contribution_id: int) -> Optional[RecurringContribution]:
        """Get contribution by ID (unscoped, used by the scheduler)"""
        return db.query(RecurringContribution).filter(
            RecurringContribution.id == contribution_id
        ).first()

    @staticmethod
    def get_for_owner(db: Session, contribution_id: int, user_id: int) -> Optional[RecurringContribution]:
        """Get contribution by ID, scoped to its owner"""
        return db.query(RecurringContribution).filter(
            RecurringContribution.id == contribution_id,
            RecurringContribution.user_id == user_id
        ).first()

    @staticmethod
    def get_for_user(db: Session, user_id: int, active_only: bool = True) -> List[RecurringContribution]:
        """Get contributions of a user ordered by next run date"""
        query = db.query(RecurringContribution).filter(RecurringContribution.user_id == user_id)
        if active_only:
            query = query.filter(RecurringContribution.is_active == True)
        return query.order_by(RecurringContribution.next_run_date).all()

    @staticmethod
    def get_for_goal(db: Session, goal_id: int, user_id: int) -> List[RecurringContribution]:
        """Get active contributions feeding one goal"""
        return db.query(RecurringContribution).filter(
            RecurringContribution.goal_id == goal_id,
            RecurringContribution.user_id == user_id,
            RecurringContribution.is_active == True
        ).order_by(RecurringContribution.next_run_date).all()

    @staticmethod
    def get_due(db: Session, until: datetime) -> List[RecurringContribution]:
        """Get all active contributions whose next run is at or before `until`"""
        return db.query(RecurringContribution).filter(
            RecurringContribution.is_active == True,
            RecurringContribution.next_run_date <= until
        ).order_by(RecurringContribution.next_run_date, RecurringContribution.id).all()

    @staticmethod
    def claim_run(
        db: Session,
        contribution_id: int,
        expected_next_run: datetime,
        next_run_date: datetime,
        run_at: datetime
    ) -> bool:
        """
        Advance a contribution's schedule if it still has the expected next run.

        Compare-and-set on next_run_date: only one processor can move a given
        due date forward, so a due item is never credited twice. Not committed.

        Returns:
            True if this caller advanced the schedule
        """
        result = db.execute(
            update(RecurringContribution)
            .where(
                RecurringContribution.id == contribution_id,
                RecurringContribution.next_run_date == expected_next_run
            )
            .values(next_run_date=next_run_date, last_run_date=run_at)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @staticmethod
    def create(db: Session, contribution: RecurringContribution) -> RecurringContribution:
        """Create new recurring contribution"""
        db.add(contribution)
        db.commit()
        db.refresh(contribution)
        return contribution

    @staticmethod
    def update(db: Session, contribution: RecurringContribution) -> RecurringContribution:
        """Persist changes made to a contribution"""
        db.commit()
        db.refresh(contribution)
        return contribution

    @staticmethod
    def delete(db: Session, contribution: RecurringContribution) -> None:
        """Delete a contribution"""
        db.delete(contribution)
        db.commit()
