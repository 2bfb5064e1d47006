from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Float, Date, ForeignKey, UniqueConstraint
)
from sqlalchemy.orm import relationship
from datetime import datetime

from lifeos.database import Base
from lifeos.constants import (
    GOAL_STATUS_BEHIND, HABIT_FREQUENCY_DAILY, DEFAULT_ADHERENCE_TARGET,
    CONTRIBUTION_FREQUENCY_MONTHLY, ACHIEVEMENT_CATEGORY_GENERAL
)


class FinancialGoal(Base):
    __tablename__ = "financial_goals"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    name = Column(String, nullable=False)
    goal_type = Column(String, default="SAVINGS")  # SAVINGS, EMERGENCY_FUND, INVESTMENT, ...
    target_amount = Column(Float, nullable=False)
    current_amount = Column(Float, default=0.0, nullable=False)
    monthly_contribution = Column(Float, default=0.0)
    annual_return_rate = Column(Float, nullable=True)  # Percent per year, e.g. 7.5
    start_date = Column(Date, nullable=False)
    target_date = Column(Date, nullable=False)
    notes = Column(String, nullable=True)

    # Derived from current/target; overridden by pause/archive
    status = Column(String, default=GOAL_STATUS_BEHIND, index=True)
    is_paused = Column(Boolean, default=False)
    is_archived = Column(Boolean, default=False)

    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    recurring_contributions = relationship(
        "RecurringContribution", back_populates="goal", cascade="all, delete-orphan"
    )


class FitnessGoal(Base):
    __tablename__ = "fitness_goals"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    name = Column(String, nullable=False)
    metric_type = Column(String, default="WEIGHT")  # WEIGHT, BODY_FAT, DISTANCE, ...
    start_value = Column(Float, nullable=False)
    current_value = Column(Float, nullable=False)
    target_value = Column(Float, nullable=False)
    unit = Column(String, nullable=True)
    target_date = Column(Date, nullable=True)

    status = Column(String, default=GOAL_STATUS_BEHIND, index=True)
    is_achieved = Column(Boolean, default=False)

    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    progress_history = relationship(
        "FitnessProgressEntry",
        back_populates="goal",
        cascade="all, delete-orphan",
        order_by="FitnessProgressEntry.recorded_at.desc()",
    )


class FitnessProgressEntry(Base):
    """Append-only log of fitness goal value changes"""
    __tablename__ = "fitness_progress_history"

    id = Column(Integer, primary_key=True, index=True)
    goal_id = Column(Integer, ForeignKey("fitness_goals.id", ondelete="CASCADE"), nullable=False, index=True)
    value = Column(Float, nullable=False)
    notes = Column(String, nullable=True)
    recorded_at = Column(DateTime, default=datetime.now)

    goal = relationship("FitnessGoal", back_populates="progress_history")


class Habit(Base):
    __tablename__ = "habits"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    frequency = Column(String, default=HABIT_FREQUENCY_DAILY)
    target_count = Column(Integer, default=1)

    # Quantity habits (e.g. "8 glasses of water")
    is_quantity = Column(Boolean, default=False)
    quantity_target = Column(Float, nullable=True)
    quantity_unit = Column(String, nullable=True)

    current_streak = Column(Integer, default=0)
    longest_streak = Column(Integer, default=0)  # Never decreases
    is_active = Column(Boolean, default=True)

    created_at = Column(DateTime, default=datetime.now)

    check_ins = relationship(
        "HabitCheckIn",
        back_populates="habit",
        cascade="all, delete-orphan",
        order_by="HabitCheckIn.date.desc()",
    )


class HabitCheckIn(Base):
    __tablename__ = "habit_check_ins"
    __table_args__ = (UniqueConstraint("habit_id", "date", name="uq_habit_check_in_day"),)

    id = Column(Integer, primary_key=True, index=True)
    habit_id = Column(Integer, ForeignKey("habits.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    completed = Column(Boolean, default=True)
    quantity = Column(Float, nullable=True)
    notes = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.now)

    habit = relationship("Habit", back_populates="check_ins")


class LifeSystem(Base):
    __tablename__ = "life_systems"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    name = Column(String, nullable=False)
    category = Column(String, default="GENERAL")
    adherence_target = Column(Integer, default=DEFAULT_ADHERENCE_TARGET)  # Percent
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.now)

    adherence_logs = relationship(
        "SystemAdherenceLog",
        back_populates="system",
        cascade="all, delete-orphan",
        order_by="SystemAdherenceLog.date.desc()",
    )


class SystemAdherenceLog(Base):
    __tablename__ = "system_adherence_logs"
    __table_args__ = (UniqueConstraint("system_id", "date", name="uq_system_adherence_day"),)

    id = Column(Integer, primary_key=True, index=True)
    system_id = Column(Integer, ForeignKey("life_systems.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    adhered = Column(Boolean, nullable=False)
    notes = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.now)

    system = relationship("LifeSystem", back_populates="adherence_logs")


class RecurringContribution(Base):
    __tablename__ = "recurring_contributions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    goal_id = Column(Integer, ForeignKey("financial_goals.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    frequency = Column(String, default=CONTRIBUTION_FREQUENCY_MONTHLY)
    next_run_date = Column(DateTime, nullable=False, index=True)  # Always midnight
    last_run_date = Column(DateTime, nullable=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.now)

    goal = relationship("FinancialGoal", back_populates="recurring_contributions")


class Achievement(Base):
    """Catalog row, seeded from the static achievement registry"""
    __tablename__ = "achievements"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String, nullable=False, unique=True, index=True)
    name = Column(String, nullable=False)
    description = Column(String, nullable=False)
    icon = Column(String, nullable=True)
    category = Column(String, default=ACHIEVEMENT_CATEGORY_GENERAL)
    criteria_type = Column(String, nullable=False)
    threshold_value = Column(Float, nullable=False)
    points = Column(Integer, default=0)


class UserAchievement(Base):
    __tablename__ = "user_achievements"
    __table_args__ = (UniqueConstraint("user_id", "achievement_id", name="uq_user_achievement"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    achievement_id = Column(Integer, ForeignKey("achievements.id", ondelete="CASCADE"), nullable=False)
    unlocked_at = Column(DateTime, default=datetime.now)
    notified = Column(Boolean, default=False)

    achievement = relationship("Achievement")


class ProgressSnapshot(Base):
    __tablename__ = "progress_snapshots"
    __table_args__ = (UniqueConstraint("user_id", "date", name="uq_snapshot_user_day"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)

    life_score = Column(Integer, default=0)
    finance_score = Column(Integer, default=0)
    fitness_score = Column(Integer, default=0)
    habits_score = Column(Integer, default=0)
    systems_score = Column(Integer, default=0)

    total_saved = Column(Float, default=0.0)
    active_habits = Column(Integer, default=0)
    active_goals = Column(Integer, default=0)

    created_at = Column(DateTime, default=datetime.now)


class GoalMilestone(Base):
    __tablename__ = "goal_milestones"

    id = Column(Integer, primary_key=True, index=True)
    goal_id = Column(Integer, nullable=False, index=True)
    goal_kind = Column(String, nullable=False)  # FINANCIAL or FITNESS
    name = Column(String, nullable=False)
    target_value = Column(Float, nullable=False)
    order = Column(Integer, default=0)
    is_completed = Column(Boolean, default=False)
    completed_at = Column(DateTime, nullable=True)
