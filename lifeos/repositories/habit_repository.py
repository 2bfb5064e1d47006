"""
Habit repository - Data access layer for habits and check-ins.
"""
from datetime import date
from typing import List, Optional
from sqlalchemy.orm import Session

from lifeos.models import Habit, HabitCheckIn


class HabitRepository:
    """Repository for Habit data access"""

    @staticmethod
    def get_by_id(db: Session, habit_id: int, user_id: int) -> Optional[Habit]:
        """Get a habit by ID, scoped to its owner"""
        return db.query(Habit).filter(
            Habit.id == habit_id,
            Habit.user_id == user_id
        ).first()

    @staticmethod
    def get_all(db: Session, user_id: int, include_inactive: bool = False) -> List[Habit]:
        """Get habits for a user, newest first"""
        query = db.query(Habit).filter(Habit.user_id == user_id)
        if not include_inactive:
            query = query.filter(Habit.is_active == True)
        return query.order_by(Habit.created_at.desc()).all()

    @staticmethod
    def get_user_ids(db: Session) -> List[int]:
        return [row[0] for row in db.query(Habit.user_id).distinct().all()]

    @staticmethod
    def create(db: Session, habit: Habit) -> Habit:
        """Create new habit"""
        db.add(habit)
        db.commit()
        db.refresh(habit)
        return habit

    @staticmethod
    def update(db: Session, habit: Habit) -> Habit:
        """Persist changes made to a habit"""
        db.commit()
        db.refresh(habit)
        return habit

    @staticmethod
    def delete(db: Session, habit: Habit) -> None:
        """Delete a habit and its check-ins"""
        db.delete(habit)
        db.commit()


class HabitCheckInRepository:
    """Repository for HabitCheckIn data access"""

    @staticmethod
    def get_by_date(db: Session, habit_id: int, target_date: date) -> Optional[HabitCheckIn]:
        """Get the check-in of a habit for one calendar day"""
        return db.query(HabitCheckIn).filter(
            HabitCheckIn.habit_id == habit_id,
            HabitCheckIn.date == target_date
        ).first()

    @staticmethod
    def get_all(db: Session, habit_id: int) -> List[HabitCheckIn]:
        """Get all check-ins of a habit, newest first"""
        return db.query(HabitCheckIn).filter(
            HabitCheckIn.habit_id == habit_id
        ).order_by(HabitCheckIn.date.desc()).all()

    @staticmethod
    def get_completed_dates(db: Session, habit_id: int) -> List[date]:
        """Get dates of completed check-ins, newest first"""
        rows = db.query(HabitCheckIn.date).filter(
            HabitCheckIn.habit_id == habit_id,
            HabitCheckIn.completed == True
        ).order_by(HabitCheckIn.date.desc()).all()
        return [row[0] for row in rows]

    @staticmethod
    def upsert(
        db: Session,
        habit_id: int,
        target_date: date,
        completed: bool,
        quantity: Optional[float] = None,
        notes: Optional[str] = None
    ) -> HabitCheckIn:
        """Create or update the single check-in of a habit for a day"""
        check_in = HabitCheckInRepository.get_by_date(db, habit_id, target_date)
        if check_in is None:
            check_in = HabitCheckIn(habit_id=habit_id, date=target_date)
            db.add(check_in)

        check_in.completed = completed
        check_in.quantity = quantity
        check_in.notes = notes

        db.commit()
        db.refresh(check_in)
        return check_in

    @staticmethod
    def delete(db: Session, check_in: HabitCheckIn) -> None:
        """Delete a check-in"""
        db.delete(check_in)
        db.commit()
