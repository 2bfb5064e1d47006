"""
Progress snapshot repository - Data access layer for daily life-score snapshots.
"""
from datetime import date
from typing import List, Optional
from sqlalchemy.orm import Session

from lifeos.models import ProgressSnapshot


class ProgressSnapshotRepository:
    """Repository for ProgressSnapshot data access"""

    @staticmethod
    def get_by_date(db: Session, user_id: int, target_date: date) -> Optional[ProgressSnapshot]:
        """Get the snapshot of a user for one day"""
        return db.query(ProgressSnapshot).filter(
            ProgressSnapshot.user_id == user_id,
            ProgressSnapshot.date == target_date
        ).first()

    @staticmethod
    def get_range(db: Session, user_id: int, start: date, end: Optional[date] = None) -> List[ProgressSnapshot]:
        """Get snapshots between start and end (inclusive), oldest first"""
        query = db.query(ProgressSnapshot).filter(
            ProgressSnapshot.user_id == user_id,
            ProgressSnapshot.date >= start
        )
        if end is not None:
            query = query.filter(ProgressSnapshot.date <= end)
        return query.order_by(ProgressSnapshot.date).all()

    @staticmethod
    def save(db: Session, snapshot: ProgressSnapshot) -> ProgressSnapshot:
        """Insert or update a snapshot"""
        if snapshot.id is None:
            db.add(snapshot)
        db.commit()
        db.refresh(snapshot)
        return snapshot
