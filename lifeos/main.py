from fastapi import FastAPI, Depends, BackgroundTasks, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from typing import List, Optional
import logging
import os
from pathlib import Path
from datetime import date

from lifeos.database import engine, get_db, Base, SessionLocal
from lifeos import models  # Import all models to register them with Base
from lifeos.schemas import (
    FinancialGoalCreate, FinancialGoalUpdate, FinancialGoalResponse,
    ContributionCreate, FinancialSummaryResponse,
    FitnessGoalCreate, FitnessGoalUpdate, FitnessProgressUpdate, FitnessGoalResponse,
    HabitCreate, HabitResponse, CheckInCreate, CheckInResponse, StreakResponse,
    LifeSystemCreate, LifeSystemResponse, AdherenceLogCreate,
    RecurringContributionCreate, RecurringContributionUpdate, RecurringContributionResponse,
    ContributionRunResult, ForecastResponse,
    ProjectionResult, WhatIfRequest,
    LifeScoreBreakdown, ProgressSnapshotResponse,
    AchievementResponse, UnlockedAchievementResponse, MarkNotifiedRequest,
    MilestoneResponse,
)
from lifeos.exceptions import NotFoundException, ValidationException
from lifeos.constants import (
    DEFAULT_LOG_DIRECTORY_PROD,
    DEFAULT_LOG_DIRECTORY_DEV,
    DEFAULT_MILESTONE_COUNT,
    CORS_ALLOWED_ORIGINS,
    SCHEDULER_ENABLED,
    MILESTONE_KIND_FINANCIAL,
    MILESTONE_KIND_FITNESS,
)
from lifeos.services.achievement_service import AchievementService, dispatch_achievement_check
from lifeos.services.adherence_service import LifeSystemService
from lifeos.services.goal_service import (
    FinancialGoalService, FitnessGoalService, financial_goal_progress, fitness_goal_progress
)
from lifeos.services.habit_service import HabitService
from lifeos.services.life_score_service import ProgressSnapshotService
from lifeos.services.milestone_service import MilestoneService
from lifeos.services.projection_service import ProjectionService
from lifeos.services.recurring_service import RecurringContributionService
from lifeos.services.scheduler_service import start_scheduler, stop_scheduler

LOG_DIR = os.getenv("LIFEOS_LOG_DIR", DEFAULT_LOG_DIRECTORY_PROD)
LOG_FILE = os.getenv("LIFEOS_LOG_FILE", "app.log")

# Create log directory if it doesn't exist (for development)
try:
    Path(LOG_DIR).mkdir(parents=True, exist_ok=True)
    log_path = Path(LOG_DIR) / LOG_FILE
except PermissionError:
    # Fallback to local directory if no permissions for /var/log
    LOG_DIR = DEFAULT_LOG_DIRECTORY_DEV
    Path(LOG_DIR).mkdir(parents=True, exist_ok=True)
    log_path = Path(LOG_DIR) / LOG_FILE

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(log_path),
        logging.StreamHandler()
    ]
)

logger = logging.getLogger("lifeos")

# Create database tables
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="LifeOS Analytics API",
    description="Goal progress, streaks, life score, projections and achievements",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(NotFoundException)
async def not_found_handler(request: Request, exc: NotFoundException):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


@app.exception_handler(ValidationException)
async def validation_handler(request: Request, exc: ValidationException):
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": exc.message, "field": exc.field}
    )


@app.on_event("startup")
async def startup_event():
    logger.info(f"LifeOS API started. Logging to: {log_path}")
    db = SessionLocal()
    try:
        AchievementService(db).seed_achievements()
    except Exception as e:
        logger.error(f"Achievement seeding failed: {e}")
    finally:
        db.close()
    if SCHEDULER_ENABLED:
        start_scheduler()


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Shutting down LifeOS API")
    stop_scheduler()


def _financial_response(goal) -> FinancialGoalResponse:
    response = FinancialGoalResponse.model_validate(goal)
    response.progress = financial_goal_progress(goal)
    return response


def _fitness_response(goal) -> FitnessGoalResponse:
    response = FitnessGoalResponse.model_validate(goal)
    response.progress = fitness_goal_progress(goal)
    return response


def _system_response(entry: dict) -> LifeSystemResponse:
    response = LifeSystemResponse.model_validate(entry["system"])
    response.current_adherence = entry["current_adherence"]
    response.is_on_track = entry["is_on_track"]
    return response


@app.get("/")
async def root():
    return {"message": "LifeOS Analytics API", "status": "active"}


# ===== FINANCIAL GOALS =====

@app.get("/api/users/{user_id}/financial-goals", response_model=List[FinancialGoalResponse])
async def list_financial_goals(
    user_id: int,
    status_filter: Optional[str] = None,
    archived: bool = False,
    db: Session = Depends(get_db)
):
    goals = FinancialGoalService(db).get_goals(user_id, status_filter, archived)
    return [_financial_response(goal) for goal in goals]


@app.post("/api/users/{user_id}/financial-goals", response_model=FinancialGoalResponse, status_code=status.HTTP_201_CREATED)
async def create_financial_goal(
    user_id: int,
    goal: FinancialGoalCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db)
):
    created = FinancialGoalService(db).create_goal(user_id, goal, background_tasks)
    return _financial_response(created)


@app.get("/api/users/{user_id}/financial-goals/summary", response_model=FinancialSummaryResponse)
async def financial_summary(user_id: int, db: Session = Depends(get_db)):
    return FinancialGoalService(db).get_summary(user_id)


@app.get("/api/users/{user_id}/financial-goals/{goal_id}", response_model=FinancialGoalResponse)
async def get_financial_goal(user_id: int, goal_id: int, db: Session = Depends(get_db)):
    return _financial_response(FinancialGoalService(db).get_goal(goal_id, user_id))


@app.put("/api/users/{user_id}/financial-goals/{goal_id}", response_model=FinancialGoalResponse)
async def update_financial_goal(
    user_id: int,
    goal_id: int,
    goal_update: FinancialGoalUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db)
):
    goal = FinancialGoalService(db).update_goal(goal_id, user_id, goal_update, background_tasks)
    return _financial_response(goal)


@app.delete("/api/users/{user_id}/financial-goals/{goal_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_financial_goal(user_id: int, goal_id: int, db: Session = Depends(get_db)):
    FinancialGoalService(db).delete_goal(goal_id, user_id)


@app.post("/api/users/{user_id}/financial-goals/{goal_id}/contributions", response_model=FinancialGoalResponse)
async def add_contribution(
    user_id: int,
    goal_id: int,
    contribution: ContributionCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db)
):
    """Add money to a goal (atomic increment)"""
    goal = FinancialGoalService(db).add_contribution(goal_id, user_id, contribution.amount, background_tasks)
    return _financial_response(goal)


@app.get("/api/users/{user_id}/financial-goals/{goal_id}/projection")
async def goal_projection(user_id: int, goal_id: int, db: Session = Depends(get_db)):
    return ProjectionService(db).get_goal_projection(goal_id, user_id)


@app.get("/api/users/{user_id}/financial-goals/{goal_id}/progress-comparison")
async def goal_progress_comparison(user_id: int, goal_id: int, db: Session = Depends(get_db)):
    """Actual savings against linear progress towards the target date"""
    return ProjectionService(db).compare_progress(goal_id, user_id)


@app.get("/api/users/{user_id}/financial-goals/{goal_id}/milestones")
async def financial_goal_milestones(user_id: int, goal_id: int, db: Session = Depends(get_db)):
    progress = MilestoneService(db).get_financial_progress(goal_id, user_id)
    progress["milestones"] = [MilestoneResponse.model_validate(m) for m in progress["milestones"]]
    return progress


@app.post("/api/users/{user_id}/financial-goals/{goal_id}/milestones/generate", response_model=List[MilestoneResponse])
async def generate_financial_milestones(
    user_id: int,
    goal_id: int,
    count: int = DEFAULT_MILESTONE_COUNT,
    db: Session = Depends(get_db)
):
    return MilestoneService(db).auto_generate(goal_id, user_id, MILESTONE_KIND_FINANCIAL, count)


@app.get("/api/users/{user_id}/financial-goals/{goal_id}/recurring-contributions", response_model=List[RecurringContributionResponse])
async def goal_recurring_contributions(user_id: int, goal_id: int, db: Session = Depends(get_db)):
    return RecurringContributionService(db).get_for_goal(goal_id, user_id)


@app.delete("/api/users/{user_id}/milestones/{milestone_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_milestone(user_id: int, milestone_id: int, db: Session = Depends(get_db)):
    MilestoneService(db).delete(milestone_id, user_id)


# ===== PROJECTIONS =====

@app.get("/api/users/{user_id}/projections")
async def all_projections(user_id: int, db: Session = Depends(get_db)):
    return ProjectionService(db).get_all_goal_projections(user_id)


@app.post("/api/projections/what-if")
async def what_if(request: WhatIfRequest):
    return ProjectionService.what_if(
        current_amount=request.current_amount,
        target_amount=request.target_amount,
        monthly_contribution=request.monthly_contribution,
        target_months=request.target_months,
        annual_return_rate=request.annual_return_rate,
    )


@app.post("/api/projections/calculate", response_model=ProjectionResult)
async def calculate_projection(
    current_amount: float,
    target_amount: float,
    target_date: date,
    monthly_contribution: Optional[float] = None,
    annual_return_rate: Optional[float] = None
):
    return ProjectionService.calculate_projection(
        current_amount, target_amount, target_date, monthly_contribution, annual_return_rate
    )


# ===== FITNESS GOALS =====

@app.get("/api/users/{user_id}/fitness-goals", response_model=List[FitnessGoalResponse])
async def list_fitness_goals(user_id: int, status_filter: Optional[str] = None, db: Session = Depends(get_db)):
    return [_fitness_response(goal) for goal in FitnessGoalService(db).get_goals(user_id, status_filter)]


@app.post("/api/users/{user_id}/fitness-goals", response_model=FitnessGoalResponse, status_code=status.HTTP_201_CREATED)
async def create_fitness_goal(
    user_id: int,
    goal: FitnessGoalCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db)
):
    return _fitness_response(FitnessGoalService(db).create_goal(user_id, goal, background_tasks))


@app.put("/api/users/{user_id}/fitness-goals/{goal_id}", response_model=FitnessGoalResponse)
async def update_fitness_goal(
    user_id: int,
    goal_id: int,
    goal_update: FitnessGoalUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db)
):
    goal = FitnessGoalService(db).update_goal(goal_id, user_id, goal_update, background_tasks)
    return _fitness_response(goal)


@app.post("/api/users/{user_id}/fitness-goals/{goal_id}/progress", response_model=FitnessGoalResponse)
async def log_fitness_progress(
    user_id: int,
    goal_id: int,
    progress: FitnessProgressUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db)
):
    goal = FitnessGoalService(db).log_progress(goal_id, user_id, progress, background_tasks)
    return _fitness_response(goal)


@app.delete("/api/users/{user_id}/fitness-goals/{goal_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_fitness_goal(user_id: int, goal_id: int, db: Session = Depends(get_db)):
    FitnessGoalService(db).delete_goal(goal_id, user_id)


@app.post("/api/users/{user_id}/fitness-goals/{goal_id}/milestones/generate", response_model=List[MilestoneResponse])
async def generate_fitness_milestones(
    user_id: int,
    goal_id: int,
    count: int = DEFAULT_MILESTONE_COUNT,
    db: Session = Depends(get_db)
):
    return MilestoneService(db).auto_generate(goal_id, user_id, MILESTONE_KIND_FITNESS, count)


@app.get("/api/users/{user_id}/fitness-goals/{goal_id}/milestones", response_model=List[MilestoneResponse])
async def fitness_goal_milestones(user_id: int, goal_id: int, db: Session = Depends(get_db)):
    return MilestoneService(db).get_for_goal(goal_id, user_id, MILESTONE_KIND_FITNESS)


# ===== HABITS =====

@app.get("/api/users/{user_id}/habits", response_model=List[HabitResponse])
async def list_habits(user_id: int, include_inactive: bool = False, db: Session = Depends(get_db)):
    return HabitService(db).get_habits(user_id, include_inactive)


@app.post("/api/users/{user_id}/habits", response_model=HabitResponse, status_code=status.HTTP_201_CREATED)
async def create_habit(
    user_id: int,
    habit: HabitCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db)
):
    return HabitService(db).create_habit(user_id, habit, background_tasks)


@app.post("/api/users/{user_id}/habits/{habit_id}/check-ins", response_model=CheckInResponse)
async def check_in_habit(
    user_id: int,
    habit_id: int,
    check_in: CheckInCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db)
):
    """Log (or replace) the check-in of a day and recompute the streak"""
    return HabitService(db).log_check_in(habit_id, user_id, check_in, background_tasks)


@app.post("/api/users/{user_id}/habits/{habit_id}/uncheck", response_model=StreakResponse)
async def uncheck_habit(
    user_id: int,
    habit_id: int,
    target_date: Optional[date] = None,
    db: Session = Depends(get_db)
):
    habit = HabitService(db).uncheck(habit_id, user_id, target_date)
    return StreakResponse(habit_id=habit.id, current_streak=habit.current_streak, longest_streak=habit.longest_streak)


@app.delete("/api/users/{user_id}/habits/{habit_id}/check-ins/{target_date}", response_model=StreakResponse)
async def delete_check_in(user_id: int, habit_id: int, target_date: date, db: Session = Depends(get_db)):
    habit = HabitService(db).delete_check_in(habit_id, user_id, target_date)
    return StreakResponse(habit_id=habit.id, current_streak=habit.current_streak, longest_streak=habit.longest_streak)


@app.get("/api/users/{user_id}/habits/{habit_id}/stats")
async def habit_stats(user_id: int, habit_id: int, db: Session = Depends(get_db)):
    return HabitService(db).get_stats(habit_id, user_id)


@app.post("/api/users/{user_id}/habits/{habit_id}/deactivate", response_model=HabitResponse)
async def deactivate_habit(user_id: int, habit_id: int, db: Session = Depends(get_db)):
    return HabitService(db).set_active(habit_id, user_id, False)


@app.post("/api/users/{user_id}/habits/{habit_id}/reactivate", response_model=HabitResponse)
async def reactivate_habit(user_id: int, habit_id: int, db: Session = Depends(get_db)):
    return HabitService(db).set_active(habit_id, user_id, True)


@app.delete("/api/users/{user_id}/habits/{habit_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_habit(user_id: int, habit_id: int, db: Session = Depends(get_db)):
    HabitService(db).delete_habit(habit_id, user_id)


# ===== LIFE SYSTEMS =====

@app.get("/api/users/{user_id}/systems", response_model=List[LifeSystemResponse])
async def list_systems(user_id: int, include_inactive: bool = False, db: Session = Depends(get_db)):
    return [_system_response(entry) for entry in LifeSystemService(db).get_systems(user_id, include_inactive)]


@app.post("/api/users/{user_id}/systems", response_model=LifeSystemResponse, status_code=status.HTTP_201_CREATED)
async def create_system(
    user_id: int,
    system: LifeSystemCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db)
):
    created = LifeSystemService(db).create_system(user_id, system)
    dispatch_achievement_check(user_id, background_tasks)
    return _system_response({"system": created, "current_adherence": 0, "is_on_track": False})


@app.post("/api/users/{user_id}/systems/{system_id}/adherence")
async def log_adherence(
    user_id: int,
    system_id: int,
    log: AdherenceLogCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db)
):
    result = LifeSystemService(db).log_adherence(system_id, user_id, log)
    dispatch_achievement_check(user_id, background_tasks)
    return {
        "system_id": system_id,
        "date": result["log"].date,
        "adhered": result["log"].adhered,
        "current_adherence": result["current_adherence"],
        "is_on_track": result["is_on_track"],
    }


@app.post("/api/users/{user_id}/systems/{system_id}/deactivate", response_model=LifeSystemResponse)
async def deactivate_system(user_id: int, system_id: int, db: Session = Depends(get_db)):
    system = LifeSystemService(db).set_active(system_id, user_id, False)
    return _system_response({"system": system, "current_adherence": 0, "is_on_track": False})


# ===== RECURRING CONTRIBUTIONS =====

@app.get("/api/users/{user_id}/recurring-contributions", response_model=List[RecurringContributionResponse])
async def list_recurring(user_id: int, active_only: bool = True, db: Session = Depends(get_db)):
    return RecurringContributionService(db).get_for_user(user_id, active_only)


@app.post("/api/users/{user_id}/recurring-contributions", response_model=RecurringContributionResponse, status_code=status.HTTP_201_CREATED)
async def create_recurring(user_id: int, contribution: RecurringContributionCreate, db: Session = Depends(get_db)):
    return RecurringContributionService(db).create(user_id, contribution)


@app.get("/api/users/{user_id}/recurring-contributions/forecast", response_model=ForecastResponse)
async def recurring_forecast(user_id: int, months: int = 3, db: Session = Depends(get_db)):
    return RecurringContributionService(db).get_forecast(user_id, months)


@app.get("/api/users/{user_id}/recurring-contributions/summary")
async def recurring_summary(user_id: int, db: Session = Depends(get_db)):
    return RecurringContributionService(db).get_summary(user_id)


@app.put("/api/users/{user_id}/recurring-contributions/{contribution_id}", response_model=RecurringContributionResponse)
async def update_recurring(
    user_id: int,
    contribution_id: int,
    contribution_update: RecurringContributionUpdate,
    db: Session = Depends(get_db)
):
    return RecurringContributionService(db).update(contribution_id, user_id, contribution_update)


@app.post("/api/users/{user_id}/recurring-contributions/{contribution_id}/pause", response_model=RecurringContributionResponse)
async def pause_recurring(user_id: int, contribution_id: int, db: Session = Depends(get_db)):
    return RecurringContributionService(db).pause(contribution_id, user_id)


@app.post("/api/users/{user_id}/recurring-contributions/{contribution_id}/resume", response_model=RecurringContributionResponse)
async def resume_recurring(user_id: int, contribution_id: int, db: Session = Depends(get_db)):
    return RecurringContributionService(db).resume(contribution_id, user_id)


@app.delete("/api/users/{user_id}/recurring-contributions/{contribution_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_recurring(user_id: int, contribution_id: int, db: Session = Depends(get_db)):
    RecurringContributionService(db).delete(contribution_id, user_id)


@app.post("/api/recurring-contributions/process-due", response_model=List[ContributionRunResult])
async def process_due_contributions(db: Session = Depends(get_db)):
    """Credit every due contribution (normally run by the scheduler)"""
    return RecurringContributionService(db).process_all_due()


# ===== LIFE SCORE & SNAPSHOTS =====

@app.get("/api/users/{user_id}/life-score", response_model=LifeScoreBreakdown)
async def life_score(user_id: int, db: Session = Depends(get_db)):
    return ProgressSnapshotService(db).calculate_breakdown(user_id)


@app.post("/api/users/{user_id}/snapshots", response_model=ProgressSnapshotResponse)
async def create_snapshot(user_id: int, db: Session = Depends(get_db)):
    return ProgressSnapshotService(db).create_snapshot(user_id)


@app.get("/api/users/{user_id}/snapshots", response_model=List[ProgressSnapshotResponse])
async def snapshot_history(user_id: int, days: int = 30, db: Session = Depends(get_db)):
    return ProgressSnapshotService(db).get_history(user_id, days)


@app.get("/api/users/{user_id}/snapshots/today", response_model=Optional[ProgressSnapshotResponse])
async def snapshot_today(user_id: int, db: Session = Depends(get_db)):
    return ProgressSnapshotService(db).get_today(user_id)


@app.get("/api/users/{user_id}/snapshots/trends")
async def snapshot_trends(user_id: int, days: int = 30, db: Session = Depends(get_db)):
    return ProgressSnapshotService(db).get_trends(user_id, days)


@app.get("/api/users/{user_id}/snapshots/compare")
async def snapshot_compare(
    user_id: int,
    period1_start: date,
    period1_end: date,
    period2_start: date,
    period2_end: date,
    db: Session = Depends(get_db)
):
    return ProgressSnapshotService(db).compare_periods(
        user_id, period1_start, period1_end, period2_start, period2_end
    )


# ===== ACHIEVEMENTS =====

@app.get("/api/users/{user_id}/achievements", response_model=List[AchievementResponse])
async def list_achievements(user_id: int, db: Session = Depends(get_db)):
    return AchievementService(db).get_all_for_user(user_id)


@app.post("/api/users/{user_id}/achievements/check", response_model=List[UnlockedAchievementResponse])
async def check_achievements(user_id: int, db: Session = Depends(get_db)):
    unlocked = AchievementService(db).check_and_unlock(user_id)
    return [_unlocked_response(ua) for ua in unlocked]


@app.get("/api/users/{user_id}/achievements/points")
async def achievement_points(user_id: int, db: Session = Depends(get_db)):
    return {"user_id": user_id, "total_points": AchievementService(db).get_total_points(user_id)}


@app.get("/api/users/{user_id}/achievements/unlocked", response_model=List[UnlockedAchievementResponse])
async def unlocked_achievements(user_id: int, db: Session = Depends(get_db)):
    return [_unlocked_response(ua) for ua in AchievementService(db).get_user_achievements(user_id)]


@app.get("/api/users/{user_id}/achievements/unnotified", response_model=List[UnlockedAchievementResponse])
async def unnotified_achievements(user_id: int, db: Session = Depends(get_db)):
    return [_unlocked_response(ua) for ua in AchievementService(db).get_unnotified(user_id)]


@app.post("/api/users/{user_id}/achievements/mark-notified")
async def mark_achievements_notified(user_id: int, request: MarkNotifiedRequest, db: Session = Depends(get_db)):
    return {"updated": AchievementService(db).mark_notified(user_id, request.ids)}


def _unlocked_response(user_achievement) -> UnlockedAchievementResponse:
    return UnlockedAchievementResponse(
        id=user_achievement.id,
        code=user_achievement.achievement.code,
        name=user_achievement.achievement.name,
        points=user_achievement.achievement.points,
        unlocked_at=user_achievement.unlocked_at,
    )
