"""
Life system repository - Data access layer for life systems and adherence logs.
"""
from datetime import date
from typing import List, Optional
from sqlalchemy.orm import Session

from lifeos.models import LifeSystem, SystemAdherenceLog


class LifeSystemRepository:
    """Repository for LifeSystem data access"""

    @staticmethod
    def get_by_id(db: Session, system_id: int, user_id: int) -> Optional[LifeSystem]:
        """Get a life system by ID, scoped to its owner"""
        return db.query(LifeSystem).filter(
            LifeSystem.id == system_id,
            LifeSystem.user_id == user_id
        ).first()

    @staticmethod
    def get_all(db: Session, user_id: int, include_inactive: bool = False) -> List[LifeSystem]:
        """Get life systems for a user"""
        query = db.query(LifeSystem).filter(LifeSystem.user_id == user_id)
        if not include_inactive:
            query = query.filter(LifeSystem.is_active == True)
        return query.order_by(LifeSystem.created_at.desc()).all()

    @staticmethod
    def count(db: Session, user_id: int) -> int:
        return db.query(LifeSystem).filter(LifeSystem.user_id == user_id).count()

    @staticmethod
    def get_user_ids(db: Session) -> List[int]:
        return [row[0] for row in db.query(LifeSystem.user_id).distinct().all()]

    @staticmethod
    def create(db: Session, system: LifeSystem) -> LifeSystem:
        """Create new life system"""
        db.add(system)
        db.commit()
        db.refresh(system)
        return system

    @staticmethod
    def update(db: Session, system: LifeSystem) -> LifeSystem:
        db.commit()
        db.refresh(system)
        return system


class AdherenceLogRepository:
    """Repository for SystemAdherenceLog data access"""

    @staticmethod
    def get_since(db: Session, system_id: int, since: date) -> List[SystemAdherenceLog]:
        """Get logs dated on or after `since`, newest first"""
        return db.query(SystemAdherenceLog).filter(
            SystemAdherenceLog.system_id == system_id,
            SystemAdherenceLog.date >= since
        ).order_by(SystemAdherenceLog.date.desc()).all()

    @staticmethod
    def upsert(
        db: Session,
        system_id: int,
        target_date: date,
        adhered: bool,
        notes: Optional[str] = None
    ) -> SystemAdherenceLog:
        """Create or update the single adherence log of a system for a day"""
        log = db.query(SystemAdherenceLog).filter(
            SystemAdherenceLog.system_id == system_id,
            SystemAdherenceLog.date == target_date
        ).first()
        if log is None:
            log = SystemAdherenceLog(system_id=system_id, date=target_date)
            db.add(log)

        log.adhered = adhered
        log.notes = notes

        db.commit()
        db.refresh(log)
        return log
