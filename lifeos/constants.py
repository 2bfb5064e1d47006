"""
Application constants and environment-driven configuration.
"""
import os

# === Environment ===

DATABASE_URL = os.getenv("LIFEOS_DATABASE_URL", "sqlite:///./lifeos.db")

DEFAULT_LOG_DIRECTORY_PROD = "/var/log/lifeos"
DEFAULT_LOG_DIRECTORY_DEV = "./logs"

CORS_ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv("LIFEOS_CORS_ORIGINS", "http://localhost:3000").split(",")
    if origin.strip()
]

SCHEDULER_ENABLED = os.getenv("LIFEOS_SCHEDULER_ENABLED", "true").lower() == "true"
RECURRING_CRON_HOUR = int(os.getenv("LIFEOS_RECURRING_CRON_HOUR", "0"))
SNAPSHOT_CRON_HOUR = int(os.getenv("LIFEOS_SNAPSHOT_CRON_HOUR", "23"))

# === Goal status ===

GOAL_STATUS_COMPLETED = "COMPLETED"
GOAL_STATUS_ON_TRACK = "ON_TRACK"
GOAL_STATUS_NEEDS_FOCUS = "NEEDS_FOCUS"
GOAL_STATUS_BEHIND = "BEHIND"
GOAL_STATUS_PAUSED = "PAUSED"
GOAL_STATUS_ARCHIVED = "ARCHIVED"

ACTIVE_GOAL_STATUSES = (GOAL_STATUS_ON_TRACK, GOAL_STATUS_NEEDS_FOCUS, GOAL_STATUS_BEHIND)

# Progress thresholds (percent, inclusive lower bounds)
STATUS_THRESHOLD_COMPLETED = 100.0
STATUS_THRESHOLD_ON_TRACK = 75.0
STATUS_THRESHOLD_NEEDS_FOCUS = 40.0

# === Habits ===

HABIT_FREQUENCY_DAILY = "DAILY"
HABIT_FREQUENCY_WEEKLY = "WEEKLY"
HABIT_FREQUENCY_WEEKDAYS = "WEEKDAYS"
HABIT_FREQUENCY_WEEKENDS = "WEEKENDS"
HABIT_FREQUENCY_CUSTOM = "CUSTOM"

HABIT_FREQUENCIES = (
    HABIT_FREQUENCY_DAILY,
    HABIT_FREQUENCY_WEEKLY,
    HABIT_FREQUENCY_WEEKDAYS,
    HABIT_FREQUENCY_WEEKENDS,
    HABIT_FREQUENCY_CUSTOM,
)

# A 30-day streak counts as a maxed-out habit in the life score
HABIT_STREAK_CAP_DAYS = 30

# === Life systems ===

ADHERENCE_WINDOW_DAYS = 30
DEFAULT_ADHERENCE_TARGET = 80

# === Life score ===

LIFE_SCORE_WEIGHTS = {
    "finance": 0.40,
    "fitness": 0.30,
    "habits": 0.20,
    "systems": 0.10,
}

# === Recurring contributions ===

CONTRIBUTION_FREQUENCY_DAILY = "DAILY"
CONTRIBUTION_FREQUENCY_WEEKLY = "WEEKLY"
CONTRIBUTION_FREQUENCY_BIWEEKLY = "BIWEEKLY"
CONTRIBUTION_FREQUENCY_MONTHLY = "MONTHLY"

CONTRIBUTION_FREQUENCIES = (
    CONTRIBUTION_FREQUENCY_DAILY,
    CONTRIBUTION_FREQUENCY_WEEKLY,
    CONTRIBUTION_FREQUENCY_BIWEEKLY,
    CONTRIBUTION_FREQUENCY_MONTHLY,
)

# Monthly-equivalent multipliers used by the contribution summary
CONTRIBUTION_MONTHLY_FACTORS = {
    CONTRIBUTION_FREQUENCY_DAILY: 30,
    CONTRIBUTION_FREQUENCY_WEEKLY: 4,
    CONTRIBUTION_FREQUENCY_BIWEEKLY: 2,
    CONTRIBUTION_FREQUENCY_MONTHLY: 1,
}

CONTRIBUTION_STATUS_PROCESSED = "processed"
CONTRIBUTION_STATUS_SKIPPED = "skipped"
CONTRIBUTION_STATUS_FAILED = "failed"

# === Projections ===

DAYS_PER_MONTH = 30
DAYS_PER_WEEK = 7
WEEKS_PER_MONTH = 4

SCENARIO_CONSERVATIVE = "Conservative"
SCENARIO_ON_TRACK = "On Track"
SCENARIO_AGGRESSIVE = "Aggressive"

SCENARIO_CONSERVATIVE_FACTOR = 1.5
SCENARIO_AGGRESSIVE_FACTOR = 0.8

# === Milestones ===

MILESTONE_KIND_FINANCIAL = "FINANCIAL"
MILESTONE_KIND_FITNESS = "FITNESS"
DEFAULT_MILESTONE_COUNT = 4

# === Achievements ===

ACHIEVEMENT_CATEGORY_GENERAL = "GENERAL"
ACHIEVEMENT_CATEGORY_HABITS = "HABITS"
ACHIEVEMENT_CATEGORY_FINANCE = "FINANCE"
ACHIEVEMENT_CATEGORY_FITNESS = "FITNESS"
ACHIEVEMENT_CATEGORY_SYSTEMS = "SYSTEMS"
