from pydantic import BaseModel, Field
from datetime import datetime, date
from typing import Optional, List, Dict

from lifeos.exceptions import ValidationException

# Alias for fields that are themselves named "date"
DateType = date

FREQUENCY_PATTERN = "^(DAILY|WEEKLY|WEEKDAYS|WEEKENDS|CUSTOM)$"
CONTRIBUTION_FREQUENCY_PATTERN = "^(DAILY|WEEKLY|BIWEEKLY|MONTHLY)$"


def updated_fields(data: BaseModel, required: tuple = ()) -> dict:
    """
    Fields explicitly set on a partial update.

    Raises ValidationException when one of the required fields was sent
    as null, since those columns cannot be cleared.
    """
    update_data = data.model_dump(exclude_unset=True)
    for field in required:
        if field in update_data and update_data[field] is None:
            raise ValidationException(field, "cannot be null")
    return update_data


# Financial goal schemas
class FinancialGoalBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    goal_type: str = Field(default="SAVINGS", max_length=50)
    target_amount: float = Field(..., gt=0)
    current_amount: float = Field(default=0.0, ge=0)
    monthly_contribution: float = Field(default=0.0, ge=0)
    annual_return_rate: Optional[float] = Field(None, ge=0, le=100)  # Percent per year
    start_date: date
    target_date: date
    notes: Optional[str] = Field(None, max_length=2000)


class FinancialGoalCreate(FinancialGoalBase):
    pass


class FinancialGoalUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    goal_type: Optional[str] = Field(None, max_length=50)
    target_amount: Optional[float] = Field(None, gt=0)
    current_amount: Optional[float] = Field(None, ge=0)
    monthly_contribution: Optional[float] = Field(None, ge=0)
    annual_return_rate: Optional[float] = Field(None, ge=0, le=100)
    start_date: Optional[date] = None
    target_date: Optional[date] = None
    notes: Optional[str] = Field(None, max_length=2000)
    is_paused: Optional[bool] = None
    is_archived: Optional[bool] = None


class FinancialGoalResponse(FinancialGoalBase):
    id: int
    user_id: int
    status: str
    is_paused: bool
    is_archived: bool
    progress: float = 0.0  # Populated by the service
    created_at: datetime

    class Config:
        from_attributes = True


class ContributionCreate(BaseModel):
    amount: float = Field(..., gt=0)


class FinancialSummaryResponse(BaseModel):
    total_goals: int
    total_target: float
    total_saved: float
    overall_progress: float
    goals_by_status: Dict[str, int]


# Fitness goal schemas
class FitnessGoalBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    metric_type: str = Field(default="WEIGHT", max_length=50)
    start_value: float
    current_value: float
    target_value: float
    unit: Optional[str] = Field(None, max_length=20)
    target_date: Optional[date] = None


class FitnessGoalCreate(FitnessGoalBase):
    pass


class FitnessGoalUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    current_value: Optional[float] = None
    target_value: Optional[float] = None
    unit: Optional[str] = Field(None, max_length=20)
    target_date: Optional[date] = None


class FitnessProgressUpdate(BaseModel):
    current_value: float
    notes: Optional[str] = Field(None, max_length=500)


class FitnessGoalResponse(FitnessGoalBase):
    id: int
    user_id: int
    status: str
    is_achieved: bool
    progress: float = 0.0
    created_at: datetime

    class Config:
        from_attributes = True


# Habit schemas
class HabitBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    frequency: str = Field(default="DAILY", pattern=FREQUENCY_PATTERN)
    target_count: int = Field(default=1, ge=1, le=100)
    is_quantity: bool = False
    quantity_target: Optional[float] = Field(None, gt=0)
    quantity_unit: Optional[str] = Field(None, max_length=20)


class HabitCreate(HabitBase):
    pass


class HabitResponse(HabitBase):
    id: int
    user_id: int
    current_streak: int = 0
    longest_streak: int = 0
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class CheckInCreate(BaseModel):
    date: Optional[DateType] = None  # Defaults to today
    completed: bool = True
    quantity: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = Field(None, max_length=500)


class CheckInResponse(BaseModel):
    id: int
    habit_id: int
    date: DateType
    completed: bool
    quantity: Optional[float] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class StreakResponse(BaseModel):
    habit_id: int
    current_streak: int
    longest_streak: int


# Life system schemas
class LifeSystemBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    category: str = Field(default="GENERAL", max_length=50)
    adherence_target: int = Field(default=80, ge=0, le=100)


class LifeSystemCreate(LifeSystemBase):
    pass


class LifeSystemResponse(LifeSystemBase):
    id: int
    user_id: int
    is_active: bool
    current_adherence: int = 0
    is_on_track: bool = False
    created_at: datetime

    class Config:
        from_attributes = True


class AdherenceLogCreate(BaseModel):
    date: Optional[DateType] = None  # Defaults to today
    adhered: bool
    notes: Optional[str] = Field(None, max_length=500)


# Recurring contribution schemas
class RecurringContributionCreate(BaseModel):
    goal_id: int
    amount: float = Field(..., gt=0)
    frequency: str = Field(default="MONTHLY", pattern=CONTRIBUTION_FREQUENCY_PATTERN)


class RecurringContributionUpdate(BaseModel):
    amount: Optional[float] = Field(None, gt=0)
    frequency: Optional[str] = Field(None, pattern=CONTRIBUTION_FREQUENCY_PATTERN)
    is_active: Optional[bool] = None


class RecurringContributionResponse(BaseModel):
    id: int
    user_id: int
    goal_id: int
    amount: float
    frequency: str
    next_run_date: datetime
    last_run_date: Optional[datetime] = None
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class ContributionRunResult(BaseModel):
    id: int
    status: str  # processed, skipped, failed
    error: Optional[str] = None


class ForecastItem(BaseModel):
    date: datetime
    amount: float
    goal_id: int
    contribution_id: int


class ForecastResponse(BaseModel):
    items: List[ForecastItem]
    by_goal: Dict[int, float]
    total_expected: float
    monthly_average: float


# Projection schemas
class ProjectionScenario(BaseModel):
    name: str
    monthly_amount: int
    completion_date: datetime
    final_amount: float


class ProjectionResult(BaseModel):
    monthly_required: float
    weekly_required: float
    daily_required: float
    projected_completion: Optional[datetime] = None
    is_on_track: bool
    progress_percentage: float
    remaining_amount: float
    days_remaining: int
    projected_final_amount: Optional[float] = None
    scenarios: List[ProjectionScenario] = []


class WhatIfRequest(BaseModel):
    current_amount: float = Field(default=0.0, ge=0)
    target_amount: float = Field(..., gt=0)
    monthly_contribution: Optional[float] = Field(None, gt=0)
    target_months: Optional[int] = Field(None, gt=0, le=1200)
    annual_return_rate: float = Field(default=0.0, ge=0, le=100)


# Life score schemas
class LifeScoreBreakdown(BaseModel):
    life_score: int
    finance_score: int
    fitness_score: int
    habits_score: int
    systems_score: int


class ProgressSnapshotResponse(LifeScoreBreakdown):
    id: int
    user_id: int
    date: DateType
    total_saved: float
    active_habits: int
    active_goals: int

    class Config:
        from_attributes = True


# Achievement schemas
class AchievementResponse(BaseModel):
    code: str
    name: str
    description: str
    icon: Optional[str] = None
    category: str
    points: int
    unlocked: bool = False
    unlocked_at: Optional[datetime] = None


class UnlockedAchievementResponse(BaseModel):
    id: int
    code: str
    name: str
    points: int
    unlocked_at: datetime


class MarkNotifiedRequest(BaseModel):
    ids: List[int] = Field(..., min_length=1)


# Milestone schemas
class MilestoneResponse(BaseModel):
    id: int
    goal_id: int
    goal_kind: str
    name: str
    target_value: float
    order: int
    is_completed: bool
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True
