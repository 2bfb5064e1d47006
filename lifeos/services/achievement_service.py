"""
Achievement rule engine.
Evaluates the static achievement catalog against a user's aggregate metrics
and records unlocks. Unlocks are idempotent and never revoked.
"""
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from lifeos import database
from lifeos.constants import (
    ACHIEVEMENT_CATEGORY_GENERAL,
    ACHIEVEMENT_CATEGORY_HABITS,
    ACHIEVEMENT_CATEGORY_FINANCE,
    ACHIEVEMENT_CATEGORY_FITNESS,
    ACHIEVEMENT_CATEGORY_SYSTEMS,
    GOAL_STATUS_COMPLETED,
)
from lifeos.exceptions import ValidationException
from lifeos.models import Achievement, UserAchievement
from lifeos.repositories.achievement_repository import AchievementRepository, UserAchievementRepository
from lifeos.repositories.goal_repository import FinancialGoalRepository, FitnessGoalRepository
from lifeos.repositories.habit_repository import HabitRepository
from lifeos.repositories.system_repository import LifeSystemRepository
from lifeos.services.adherence_service import LifeSystemService
from lifeos.services.life_score_service import ProgressSnapshotService

logger = logging.getLogger("lifeos.achievements")


@dataclass(frozen=True)
class AchievementDefinition:
    code: str
    name: str
    description: str
    icon: str
    category: str
    criteria_type: str
    threshold: float
    points: int


ACHIEVEMENT_CATALOG = (
    # General
    AchievementDefinition("FIRST_GOAL", "First Step", "Create your first goal",
                          "target", ACHIEVEMENT_CATEGORY_GENERAL, "goal_count", 1, 10),
    AchievementDefinition("GOAL_MASTER", "Goal Master", "Create 10 goals",
                          "trophy", ACHIEVEMENT_CATEGORY_GENERAL, "goal_count", 10, 50),
    # Habits
    AchievementDefinition("STREAK_7", "Week Warrior", "Maintain a 7-day streak",
                          "flame", ACHIEVEMENT_CATEGORY_HABITS, "streak", 7, 20),
    AchievementDefinition("STREAK_30", "Monthly Master", "Maintain a 30-day streak",
                          "dumbbell", ACHIEVEMENT_CATEGORY_HABITS, "streak", 30, 50),
    AchievementDefinition("STREAK_100", "Century Club", "Maintain a 100-day streak",
                          "award", ACHIEVEMENT_CATEGORY_HABITS, "streak", 100, 100),
    AchievementDefinition("HABIT_STARTER", "Habit Starter", "Create your first habit",
                          "check-circle", ACHIEVEMENT_CATEGORY_HABITS, "habit_count", 1, 10),
    AchievementDefinition("HABIT_COLLECTOR", "Habit Collector", "Track 5 habits",
                          "clipboard-list", ACHIEVEMENT_CATEGORY_HABITS, "habit_count", 5, 30),
    # Finance
    AchievementDefinition("FIRST_SAVE", "First Savings", "Save your first amount",
                          "piggy-bank", ACHIEVEMENT_CATEGORY_FINANCE, "savings", 1, 10),
    AchievementDefinition("SAVER_10K", "Smart Saver", "Save 10,000 total",
                          "landmark", ACHIEVEMENT_CATEGORY_FINANCE, "total_saved", 10000, 30),
    AchievementDefinition("SAVER_100K", "Wealth Builder", "Save 100,000 total",
                          "gem", ACHIEVEMENT_CATEGORY_FINANCE, "total_saved", 100000, 100),
    AchievementDefinition("GOAL_COMPLETE", "Goal Crusher", "Complete your first financial goal",
                          "party-popper", ACHIEVEMENT_CATEGORY_FINANCE, "goal_completed", 1, 50),
    AchievementDefinition("BUDGET_MASTER", "Budget Master", "Stay under budget for a month",
                          "bar-chart-3", ACHIEVEMENT_CATEGORY_FINANCE, "under_budget", 1, 40),
    # Fitness
    AchievementDefinition("FITNESS_START", "Fitness Journey", "Create your first fitness goal",
                          "footprints", ACHIEVEMENT_CATEGORY_FITNESS, "fitness_goal", 1, 10),
    AchievementDefinition("FITNESS_COMPLETE", "Fit Achiever", "Complete a fitness goal",
                          "medal", ACHIEVEMENT_CATEGORY_FITNESS, "fitness_completed", 1, 50),
    # Systems
    AchievementDefinition("SYSTEM_START", "Systems Thinker", "Create your first life system",
                          "settings", ACHIEVEMENT_CATEGORY_SYSTEMS, "system_count", 1, 10),
    AchievementDefinition("SYSTEM_ADHERENCE", "System Follower", "Maintain 80% adherence for 30 days",
                          "trending-up", ACHIEVEMENT_CATEGORY_SYSTEMS, "system_adherence", 80, 50),
    # Life score
    AchievementDefinition("SCORE_50", "Balanced Life", "Reach a Life Score of 50",
                          "star", ACHIEVEMENT_CATEGORY_GENERAL, "life_score", 50, 30),
    AchievementDefinition("SCORE_75", "Life Optimizer", "Reach a Life Score of 75",
                          "sparkles", ACHIEVEMENT_CATEGORY_GENERAL, "life_score", 75, 50),
    AchievementDefinition("SCORE_90", "Life Master", "Reach a Life Score of 90",
                          "crown", ACHIEVEMENT_CATEGORY_GENERAL, "life_score", 90, 100),
)


@dataclass(frozen=True)
class AchievementMetrics:
    """Aggregates a user is evaluated against"""
    goal_count: int = 0
    habit_count: int = 0
    max_streak: int = 0
    total_saved: float = 0.0
    goals_completed: int = 0
    fitness_goal_count: int = 0
    fitness_completed: int = 0
    system_count: int = 0
    best_system_adherence: int = 0
    life_score: int = 0


_CRITERIA = {
    "goal_count": lambda m, t: m.goal_count >= t,
    "streak": lambda m, t: m.max_streak >= t,
    "habit_count": lambda m, t: m.habit_count >= t,
    "total_saved": lambda m, t: m.total_saved >= t,
    "savings": lambda m, t: m.total_saved > 0,
    "goal_completed": lambda m, t: m.goals_completed >= t,
    "fitness_goal": lambda m, t: m.fitness_goal_count >= t,
    "fitness_completed": lambda m, t: m.fitness_completed >= t,
    "system_count": lambda m, t: m.system_count >= t,
    "system_adherence": lambda m, t: m.best_system_adherence >= t,
    "life_score": lambda m, t: m.life_score >= t,
}

SUPPORTED_CRITERIA = frozenset(_CRITERIA)


def evaluate_criterion(criteria_type: str, threshold: float, metrics: AchievementMetrics) -> bool:
    """
    Test one criterion against precomputed metrics.

    Raises:
        ValidationException: If the criteria type is not supported
    """
    check = _CRITERIA.get(criteria_type)
    if check is None:
        raise ValidationException("criteria_type", f"unsupported criteria type '{criteria_type}'")
    return check(metrics, threshold)


class AchievementService:
    """Service for the achievement catalog and per-user unlocks"""

    def __init__(self, db: Session):
        self.db = db
        self.achievement_repo = AchievementRepository()
        self.user_achievement_repo = UserAchievementRepository()

    def seed_achievements(self) -> int:
        """Insert or refresh catalog rows; returns the catalog size"""
        for definition in ACHIEVEMENT_CATALOG:
            achievement = self.achievement_repo.get_by_code(self.db, definition.code)
            if achievement is None:
                achievement = Achievement(code=definition.code)
                self.achievement_repo.add(self.db, achievement)
            achievement.name = definition.name
            achievement.description = definition.description
            achievement.icon = definition.icon
            achievement.category = definition.category
            achievement.criteria_type = definition.criteria_type
            achievement.threshold_value = definition.threshold
            achievement.points = definition.points
        self.db.commit()

        logger.info(f"Seeded {len(ACHIEVEMENT_CATALOG)} achievements")
        return len(ACHIEVEMENT_CATALOG)

    def compute_metrics(self, user_id: int) -> AchievementMetrics:
        """Query every aggregate used by the catalog once"""
        financial_goals = FinancialGoalRepository.get_every(self.db, user_id)
        fitness_goals = FitnessGoalRepository.get_all(self.db, user_id)
        habits = HabitRepository.get_all(self.db, user_id, include_inactive=True)

        system_service = LifeSystemService(self.db)
        active_systems = LifeSystemRepository.get_all(self.db, user_id)
        adherences = [system_service.get_adherence(system) for system in active_systems]

        return AchievementMetrics(
            goal_count=len(financial_goals) + len(fitness_goals),
            habit_count=len(habits),
            max_streak=max((h.current_streak or 0 for h in habits), default=0),
            total_saved=sum(g.current_amount or 0 for g in financial_goals),
            goals_completed=sum(1 for g in financial_goals if g.status == GOAL_STATUS_COMPLETED),
            fitness_goal_count=len(fitness_goals),
            fitness_completed=sum(1 for g in fitness_goals if g.is_achieved),
            system_count=LifeSystemRepository.count(self.db, user_id),
            best_system_adherence=max(adherences, default=0),
            life_score=ProgressSnapshotService(self.db).calculate_life_score(user_id),
        )

    def check_and_unlock(self, user_id: int) -> List[UserAchievement]:
        """
        Unlock every achievement the user newly qualifies for.

        Already unlocked codes are skipped before their criterion is tested,
        so repeated calls without new data unlock nothing.

        Returns:
            Newly created unlocks
        """
        catalog = self.achievement_repo.get_all(self.db)
        if not catalog:
            self.seed_achievements()
            catalog = self.achievement_repo.get_all(self.db)

        unlocked_codes = self.user_achievement_repo.get_unlocked_codes(self.db, user_id)
        pending = [a for a in catalog if a.code not in unlocked_codes]
        if not pending:
            return []

        metrics = self.compute_metrics(user_id)
        newly_unlocked = []

        for achievement in pending:
            if achievement.criteria_type not in SUPPORTED_CRITERIA:
                continue
            if not evaluate_criterion(achievement.criteria_type, achievement.threshold_value, metrics):
                continue

            try:
                user_achievement = self.user_achievement_repo.create(
                    self.db, UserAchievement(user_id=user_id, achievement_id=achievement.id)
                )
            except IntegrityError:
                # Unlocked concurrently by another check
                self.db.rollback()
                continue

            newly_unlocked.append(user_achievement)
            logger.info(f"User {user_id} unlocked achievement {achievement.code}")

        return newly_unlocked

    def get_all_for_user(self, user_id: int) -> List[dict]:
        """Full catalog with the user's unlock state"""
        unlocks = {
            ua.achievement_id: ua
            for ua in self.user_achievement_repo.get_for_user(self.db, user_id)
        }
        result = []
        for achievement in self.achievement_repo.get_all(self.db):
            unlock = unlocks.get(achievement.id)
            result.append({
                "code": achievement.code,
                "name": achievement.name,
                "description": achievement.description,
                "icon": achievement.icon,
                "category": achievement.category,
                "points": achievement.points,
                "unlocked": unlock is not None,
                "unlocked_at": unlock.unlocked_at if unlock else None,
            })
        return result

    def get_user_achievements(self, user_id: int) -> List[UserAchievement]:
        return self.user_achievement_repo.get_for_user(self.db, user_id)

    def get_total_points(self, user_id: int) -> int:
        return sum(ua.achievement.points for ua in self.user_achievement_repo.get_for_user(self.db, user_id))

    def get_unnotified(self, user_id: int) -> List[UserAchievement]:
        return self.user_achievement_repo.get_unnotified(self.db, user_id)

    def mark_notified(self, user_id: int, ids: List[int]) -> int:
        return self.user_achievement_repo.mark_notified(self.db, user_id, ids)


def run_achievement_check(user_id: int, session_factory: Optional[Callable[[], Session]] = None) -> None:
    """
    Achievement check in its own session.

    Errors are logged and never raised: the check runs after the request
    that triggered it has already been answered.
    """
    db = (session_factory or database.SessionLocal)()
    try:
        unlocked = AchievementService(db).check_and_unlock(user_id)
        if unlocked:
            logger.info(f"Achievement check for user {user_id}: {len(unlocked)} unlocked")
    except Exception as e:
        db.rollback()
        logger.error(f"Achievement check for user {user_id} failed: {e}", exc_info=True)
    finally:
        db.close()


def dispatch_achievement_check(user_id: int, background_tasks=None) -> None:
    """Queue an achievement check on FastAPI background tasks, or run it inline"""
    if background_tasks is not None:
        background_tasks.add_task(run_achievement_check, user_id)
    else:
        run_achievement_check(user_id)
