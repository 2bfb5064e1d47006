"""
Recurring contribution service.
Schedules periodic deposits into financial goals and credits them when due.
"""
import logging
from datetime import date, datetime, timedelta
from typing import List, Optional, Union
from sqlalchemy.orm import Session

from lifeos.constants import (
    CONTRIBUTION_FREQUENCY_DAILY,
    CONTRIBUTION_FREQUENCY_WEEKLY,
    CONTRIBUTION_FREQUENCY_BIWEEKLY,
    CONTRIBUTION_FREQUENCY_MONTHLY,
    CONTRIBUTION_FREQUENCIES,
    CONTRIBUTION_MONTHLY_FACTORS,
    CONTRIBUTION_STATUS_PROCESSED,
    CONTRIBUTION_STATUS_SKIPPED,
    CONTRIBUTION_STATUS_FAILED,
)
from lifeos.exceptions import (
    ContributionNotFoundException,
    GoalNotFoundException,
    ValidationException,
)
from lifeos.models import RecurringContribution
from lifeos.repositories.contribution_repository import RecurringContributionRepository
from lifeos.repositories.goal_repository import FinancialGoalRepository
from lifeos.schemas import RecurringContributionCreate, RecurringContributionUpdate, updated_fields
from lifeos.services.date_service import DateService
from lifeos.services.progress_service import ProgressService

logger = logging.getLogger("lifeos.recurring")

_DAY_STEPS = {
    CONTRIBUTION_FREQUENCY_DAILY: 1,
    CONTRIBUTION_FREQUENCY_WEEKLY: 7,
    CONTRIBUTION_FREQUENCY_BIWEEKLY: 14,
}


def next_run_date(frequency: str, from_date: Union[date, datetime]) -> datetime:
    """
    Next occurrence of a contribution, normalized to midnight.

    DAILY +1 day, WEEKLY +7, BIWEEKLY +14, MONTHLY +1 calendar month
    (clamped to the last day of a shorter month).
    """
    start = DateService.normalize_to_midnight(from_date)
    if frequency == CONTRIBUTION_FREQUENCY_MONTHLY:
        return DateService.add_months(start, 1)
    if frequency in _DAY_STEPS:
        return start + timedelta(days=_DAY_STEPS[frequency])
    raise ValidationException("frequency", f"unsupported frequency '{frequency}'")


class RecurringContributionService:
    """Service for recurring goal contributions"""

    def __init__(self, db: Session):
        self.db = db
        self.contribution_repo = RecurringContributionRepository()
        self.goal_repo = FinancialGoalRepository()

    def _get_owned(self, contribution_id: int, user_id: int) -> RecurringContribution:
        contribution = self.contribution_repo.get_for_owner(self.db, contribution_id, user_id)
        if not contribution:
            raise ContributionNotFoundException(contribution_id)
        return contribution

    def create(self, user_id: int, data: RecurringContributionCreate) -> RecurringContribution:
        """
        Create a recurring contribution for one of the user's goals.

        Raises:
            GoalNotFoundException: If the goal does not exist or is not owned by the user
            ValidationException: If the amount or frequency is invalid
        """
        goal = self.goal_repo.get_by_id(self.db, data.goal_id, user_id)
        if not goal:
            raise GoalNotFoundException(data.goal_id)
        if data.amount <= 0:
            raise ValidationException("amount", "must be greater than 0")
        if data.frequency not in CONTRIBUTION_FREQUENCIES:
            raise ValidationException("frequency", f"unsupported frequency '{data.frequency}'")

        contribution = RecurringContribution(
            user_id=user_id,
            goal_id=goal.id,
            amount=data.amount,
            frequency=data.frequency,
            next_run_date=next_run_date(data.frequency, DateService.now()),
        )
        contribution = self.contribution_repo.create(self.db, contribution)

        logger.info(f"Recurring contribution {contribution.id} created for goal {goal.id}")
        return contribution

    def get_for_user(self, user_id: int, active_only: bool = True) -> List[RecurringContribution]:
        return self.contribution_repo.get_for_user(self.db, user_id, active_only)

    def get_for_goal(self, goal_id: int, user_id: int) -> List[RecurringContribution]:
        """Active contributions feeding one of the user's goals"""
        if not self.goal_repo.get_by_id(self.db, goal_id, user_id):
            raise GoalNotFoundException(goal_id)
        return self.contribution_repo.get_for_goal(self.db, goal_id, user_id)

    def get_due(self, today: Optional[date] = None) -> List[RecurringContribution]:
        """Active contributions due by the end of today"""
        today = today or DateService.today()
        return self.contribution_repo.get_due(self.db, DateService.end_of_day(today))

    def process_contribution(self, contribution_id: int, now: Optional[datetime] = None) -> str:
        """
        Credit one due contribution to its goal.

        The schedule is advanced with a compare-and-set on next_run_date, the
        goal amount is incremented atomically and the goal status recomputed,
        all in one transaction. A contribution that is inactive, not yet due
        or already advanced by another run is skipped.

        Returns:
            "processed" or "skipped"

        Raises:
            ContributionNotFoundException: If the contribution does not exist
            GoalNotFoundException: If the linked goal no longer exists
        """
        now = now or DateService.now()
        contribution = self.contribution_repo.get_by_id(self.db, contribution_id)
        if not contribution:
            raise ContributionNotFoundException(contribution_id)

        if not contribution.is_active or contribution.next_run_date > DateService.end_of_day(now.date()):
            logger.debug(f"Contribution {contribution_id} not due, skipping")
            return CONTRIBUTION_STATUS_SKIPPED

        try:
            claimed = self.contribution_repo.claim_run(
                self.db,
                contribution.id,
                expected_next_run=contribution.next_run_date,
                next_run_date=next_run_date(contribution.frequency, now),
                run_at=now,
            )
            if not claimed:
                self.db.rollback()
                logger.info(f"Contribution {contribution_id} already processed, skipping")
                return CONTRIBUTION_STATUS_SKIPPED

            goal = self.goal_repo.increment_amount(self.db, contribution.goal_id, contribution.amount)
            if goal is None:
                raise GoalNotFoundException(contribution.goal_id)

            goal.status = ProgressService.resolve_status(
                goal.current_amount, goal.target_amount, goal.is_paused, goal.is_archived
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"Contribution {contribution_id} processed: +{contribution.amount} to goal {contribution.goal_id}"
        )
        return CONTRIBUTION_STATUS_PROCESSED

    def process_all_due(self, now: Optional[datetime] = None) -> List[dict]:
        """
        Process every due contribution sequentially.

        A failing item is recorded as {"id", "status": "failed", "error"} and
        the loop continues with the next one. Failed items are not retried.
        """
        now = now or DateService.now()
        due_ids = [c.id for c in self.get_due(now.date())]
        results = []

        for contribution_id in due_ids:
            try:
                status = self.process_contribution(contribution_id, now)
                results.append({"id": contribution_id, "status": status, "error": None})
            except Exception as e:
                logger.error(f"Failed to process contribution {contribution_id}: {e}")
                results.append({"id": contribution_id, "status": CONTRIBUTION_STATUS_FAILED, "error": str(e)})

        processed = sum(1 for r in results if r["status"] == CONTRIBUTION_STATUS_PROCESSED)
        logger.info(f"Processed {processed} of {len(results)} due contributions")
        return results

    def update(self, contribution_id: int, user_id: int, data: RecurringContributionUpdate) -> RecurringContribution:
        """Update amount/frequency/active flag; a new frequency reschedules from today"""
        contribution = self._get_owned(contribution_id, user_id)
        update_data = updated_fields(data, ("amount", "frequency", "is_active"))

        new_frequency = update_data.get("frequency")
        if new_frequency and new_frequency != contribution.frequency:
            contribution.next_run_date = next_run_date(new_frequency, DateService.now())

        for key, value in update_data.items():
            setattr(contribution, key, value)

        return self.contribution_repo.update(self.db, contribution)

    def pause(self, contribution_id: int, user_id: int) -> RecurringContribution:
        contribution = self._get_owned(contribution_id, user_id)
        contribution.is_active = False
        contribution = self.contribution_repo.update(self.db, contribution)
        logger.info(f"Recurring contribution {contribution_id} paused")
        return contribution

    def resume(self, contribution_id: int, user_id: int) -> RecurringContribution:
        """Reactivate a contribution; the next run is counted from today"""
        contribution = self._get_owned(contribution_id, user_id)
        contribution.is_active = True
        contribution.next_run_date = next_run_date(contribution.frequency, DateService.now())
        contribution = self.contribution_repo.update(self.db, contribution)
        logger.info(f"Recurring contribution {contribution_id} resumed")
        return contribution

    def delete(self, contribution_id: int, user_id: int) -> None:
        contribution = self._get_owned(contribution_id, user_id)
        self.contribution_repo.delete(self.db, contribution)
        logger.info(f"Recurring contribution {contribution_id} deleted")

    def get_forecast(self, user_id: int, months: int = 3) -> dict:
        """
        Expected contributions over the next `months` calendar months.

        Returns:
            Dict with chronologically sorted items, totals per goal,
            the overall total and the monthly average
        """
        end = DateService.add_months(DateService.now(), months)
        items = []

        for contribution in self.contribution_repo.get_for_user(self.db, user_id):
            run_date = contribution.next_run_date
            while run_date <= end:
                items.append({
                    "date": run_date,
                    "amount": contribution.amount,
                    "goal_id": contribution.goal_id,
                    "contribution_id": contribution.id,
                })
                run_date = next_run_date(contribution.frequency, run_date)

        items.sort(key=lambda item: item["date"])

        by_goal = {}
        for item in items:
            by_goal[item["goal_id"]] = by_goal.get(item["goal_id"], 0.0) + item["amount"]

        total_expected = sum(item["amount"] for item in items)
        return {
            "items": items,
            "by_goal": by_goal,
            "total_expected": total_expected,
            "monthly_average": total_expected / months if months > 0 else 0.0,
        }

    def get_summary(self, user_id: int) -> dict:
        """Monthly-equivalent total and counts by frequency of active contributions"""
        contributions = self.contribution_repo.get_for_user(self.db, user_id)
        return {
            "active_count": len(contributions),
            "monthly_total": sum(
                c.amount * CONTRIBUTION_MONTHLY_FACTORS.get(c.frequency, 0) for c in contributions
            ),
            "by_frequency": {
                frequency.lower(): sum(1 for c in contributions if c.frequency == frequency)
                for frequency in CONTRIBUTION_FREQUENCIES
            },
        }
