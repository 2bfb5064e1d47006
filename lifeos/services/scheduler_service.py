"""
Background scheduler for periodic analytics jobs.
Handles:
- Crediting due recurring contributions
- Daily progress snapshots for every user
"""
import logging
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from lifeos import database
from lifeos.constants import (
    CONTRIBUTION_STATUS_PROCESSED,
    RECURRING_CRON_HOUR,
    SNAPSHOT_CRON_HOUR,
)
from lifeos.repositories.contribution_repository import RecurringContributionRepository
from lifeos.services.achievement_service import run_achievement_check
from lifeos.services.life_score_service import ProgressSnapshotService
from lifeos.services.recurring_service import RecurringContributionService

logger = logging.getLogger("lifeos.scheduler")

scheduler = BackgroundScheduler()


def run_due_contributions() -> list:
    """Job: credit every recurring contribution due today"""
    db = database.SessionLocal()
    results = []
    try:
        results = RecurringContributionService(db).process_all_due()

        processed_ids = [r["id"] for r in results if r["status"] == CONTRIBUTION_STATUS_PROCESSED]
        user_ids = {
            contribution.user_id
            for contribution in (
                RecurringContributionRepository.get_by_id(db, cid) for cid in processed_ids
            )
            if contribution is not None
        }
    except Exception as e:
        logger.error(f"Scheduler Error (Recurring contributions): {e}")
        user_ids = set()
    finally:
        db.close()

    for user_id in sorted(user_ids):
        run_achievement_check(user_id)
    return results


def run_daily_snapshots() -> int:
    """Job: store today's progress snapshot for every user"""
    db = database.SessionLocal()
    try:
        created = ProgressSnapshotService(db).create_snapshots_for_all_users()
        logger.info(f"Daily snapshots created: {created}")
        return created
    except Exception as e:
        logger.error(f"Scheduler Error (Snapshots): {e}")
        return 0
    finally:
        db.close()


def start_scheduler():
    """Start the background scheduler"""
    if not scheduler.running:
        scheduler.add_job(
            run_due_contributions,
            CronTrigger(hour=RECURRING_CRON_HOUR, minute=5),
            id='recurring_contributions',
            replace_existing=True
        )

        scheduler.add_job(
            run_daily_snapshots,
            CronTrigger(hour=SNAPSHOT_CRON_HOUR, minute=55),
            id='daily_snapshots',
            replace_existing=True
        )

        scheduler.start()
        logger.info("Background scheduler started")
        logger.info(f"Scheduled jobs: {[job.id for job in scheduler.get_jobs()]}")


def stop_scheduler():
    """Stop the background scheduler"""
    if scheduler.running:
        scheduler.shutdown()
        logger.info("Background scheduler stopped")
