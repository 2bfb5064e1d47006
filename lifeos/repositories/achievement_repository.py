"""
Achievement repository - Data access layer for the achievement catalog and unlocks.
"""
from typing import List, Optional, Set
from sqlalchemy.orm import Session

from lifeos.models import Achievement, UserAchievement


class AchievementRepository:
    """Repository for Achievement catalog rows"""

    @staticmethod
    def get_all(db: Session) -> List[Achievement]:
        """Get the catalog ordered by category then points"""
        return db.query(Achievement).order_by(Achievement.category, Achievement.points).all()

    @staticmethod
    def get_by_code(db: Session, code: str) -> Optional[Achievement]:
        return db.query(Achievement).filter(Achievement.code == code).first()

    @staticmethod
    def add(db: Session, achievement: Achievement) -> None:
        db.add(achievement)


class UserAchievementRepository:
    """Repository for per-user unlocks"""

    @staticmethod
    def get_for_user(db: Session, user_id: int) -> List[UserAchievement]:
        """Get a user's unlocks, most recent first"""
        return db.query(UserAchievement).filter(
            UserAchievement.user_id == user_id
        ).order_by(UserAchievement.unlocked_at.desc()).all()

    @staticmethod
    def get_unlocked_codes(db: Session, user_id: int) -> Set[str]:
        """Codes of every achievement the user has already unlocked"""
        rows = db.query(Achievement.code).join(
            UserAchievement, UserAchievement.achievement_id == Achievement.id
        ).filter(UserAchievement.user_id == user_id).all()
        return {row[0] for row in rows}

    @staticmethod
    def create(db: Session, user_achievement: UserAchievement) -> UserAchievement:
        """Insert an unlock"""
        db.add(user_achievement)
        db.commit()
        db.refresh(user_achievement)
        return user_achievement

    @staticmethod
    def get_unnotified(db: Session, user_id: int) -> List[UserAchievement]:
        return db.query(UserAchievement).filter(
            UserAchievement.user_id == user_id,
            UserAchievement.notified == False
        ).all()

    @staticmethod
    def mark_notified(db: Session, user_id: int, ids: List[int]) -> int:
        """Flag unlocks as notified; returns the number of rows changed"""
        count = db.query(UserAchievement).filter(
            UserAchievement.user_id == user_id,
            UserAchievement.id.in_(ids)
        ).update({UserAchievement.notified: True}, synchronize_session=False)
        db.commit()
        return count
