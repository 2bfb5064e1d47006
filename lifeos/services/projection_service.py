"""
Financial projection service.
Required saving rates, compound-interest projections, contribution scenarios
and the what-if solver. All month arithmetic uses 30-day months.
"""
import logging
import math
from datetime import datetime, timedelta
from typing import List, Optional
from sqlalchemy.orm import Session

from lifeos.constants import (
    ACTIVE_GOAL_STATUSES,
    DAYS_PER_MONTH,
    DAYS_PER_WEEK,
    WEEKS_PER_MONTH,
    SCENARIO_CONSERVATIVE,
    SCENARIO_ON_TRACK,
    SCENARIO_AGGRESSIVE,
    SCENARIO_CONSERVATIVE_FACTOR,
    SCENARIO_AGGRESSIVE_FACTOR,
)
from lifeos.exceptions import GoalNotFoundException, ValidationException
from lifeos.models import FinancialGoal
from lifeos.repositories.goal_repository import FinancialGoalRepository
from lifeos.schemas import ProjectionResult, ProjectionScenario
from lifeos.services.date_service import DateService
from lifeos.services.progress_service import round_half_up

logger = logging.getLogger("lifeos.projections")


def monthly_rate(annual_return_rate: Optional[float]) -> float:
    """Annual percentage rate to a monthly decimal rate (7.5 -> 0.00625)"""
    return (annual_return_rate or 0) / 12 / 100


class ProjectionService:
    """Service for financial goal projections"""

    def __init__(self, db: Optional[Session] = None):
        self.db = db
        self.goal_repo = FinancialGoalRepository()

    @staticmethod
    def calculate_fv(principal: float, payment: float, rate: float, months: float) -> float:
        """
        Future value of a principal plus a monthly payment.

        FV = P*(1+r)^n + PMT*((1+r)^n - 1)/r, or P + PMT*n when r == 0.
        """
        if rate == 0:
            return principal + payment * months
        growth = math.pow(1 + rate, months)
        return principal * growth + payment * (growth - 1) / rate

    @staticmethod
    def calculate_pmt(future_value: float, rate: float, months: float) -> float:
        """
        Monthly payment needed to accumulate future_value.

        PMT = FV*r/((1+r)^n - 1), or FV/n when r == 0.
        """
        if months <= 0:
            raise ValidationException("target_months", "must be greater than 0")
        if rate == 0:
            return future_value / months
        return future_value * rate / (math.pow(1 + rate, months) - 1)

    @staticmethod
    def generate_scenarios(
        current_amount: float,
        target_amount: float,
        days_remaining: int,
        now: Optional[datetime] = None
    ) -> List[ProjectionScenario]:
        """
        Build the Conservative / On Track / Aggressive contribution scenarios.

        Conservative stretches the remaining time by 1.5, Aggressive
        compresses it to 0.8. No scenarios when no time is left.
        """
        now = now or DateService.now()
        remaining = max(0.0, target_amount - current_amount)
        months_remaining = days_remaining / DAYS_PER_MONTH
        if months_remaining <= 0:
            return []

        scenarios = []
        for name, factor in (
            (SCENARIO_CONSERVATIVE, SCENARIO_CONSERVATIVE_FACTOR),
            (SCENARIO_ON_TRACK, 1.0),
            (SCENARIO_AGGRESSIVE, SCENARIO_AGGRESSIVE_FACTOR),
        ):
            months = months_remaining * factor
            scenarios.append(ProjectionScenario(
                name=name,
                monthly_amount=round_half_up(remaining / months),
                completion_date=now + timedelta(days=months * DAYS_PER_MONTH),
                final_amount=target_amount,
            ))
        return scenarios

    @staticmethod
    def calculate_projection(
        current_amount: float,
        target_amount: float,
        target_date,
        monthly_contribution: Optional[float] = None,
        annual_return_rate: Optional[float] = None,
        now: Optional[datetime] = None
    ) -> ProjectionResult:
        """
        Project a savings goal towards its target date.

        Args:
            current_amount: Amount saved so far
            target_amount: Goal amount (must be > 0)
            target_date: Date the goal should be reached
            monthly_contribution: Planned monthly saving, if known
            annual_return_rate: Expected yearly return in percent, if any
            now: Reference time (defaults to now)

        Returns:
            ProjectionResult with required rates, on-track flag and scenarios
        """
        if target_amount is None or target_amount <= 0:
            raise ValidationException("target_amount", "must be greater than 0")

        now = now or DateService.now()
        remaining = max(0.0, target_amount - current_amount)
        days_remaining = DateService.days_until(target_date, now)
        weeks_remaining = days_remaining / DAYS_PER_WEEK
        months_remaining = days_remaining / DAYS_PER_MONTH

        daily_required = remaining / days_remaining if days_remaining > 0 else 0.0
        weekly_required = remaining / weeks_remaining if weeks_remaining > 0 else 0.0
        monthly_required = remaining / months_remaining if months_remaining > 0 else 0.0

        projected_completion = None
        projected_final_amount = None

        if monthly_contribution and monthly_contribution > 0:
            months_to_complete = remaining / monthly_contribution
            projected_completion = now + timedelta(days=months_to_complete * DAYS_PER_MONTH)
            is_on_track = monthly_contribution >= monthly_required
            # Linear unless a positive return rate is supplied
            projected_final_amount = ProjectionService.calculate_fv(
                current_amount,
                monthly_contribution,
                monthly_rate(annual_return_rate),
                months_remaining,
            )
        else:
            is_on_track = remaining <= 0

        return ProjectionResult(
            monthly_required=monthly_required,
            weekly_required=weekly_required,
            daily_required=daily_required,
            projected_completion=projected_completion,
            is_on_track=is_on_track,
            progress_percentage=min(100.0, current_amount / target_amount * 100),
            remaining_amount=remaining,
            days_remaining=days_remaining,
            projected_final_amount=projected_final_amount,
            scenarios=ProjectionService.generate_scenarios(
                current_amount, target_amount, days_remaining, now
            ),
        )

    @staticmethod
    def what_if(
        current_amount: float,
        target_amount: float,
        monthly_contribution: Optional[float] = None,
        target_months: Optional[int] = None,
        annual_return_rate: Optional[float] = 0.0,
        now: Optional[datetime] = None
    ) -> dict:
        """
        Answer a what-if question about a savings plan.

        - contribution and months given: final amount reached
        - only contribution given: months needed to reach the target
        - only months given: monthly payment needed

        Raises:
            ValidationException: If neither contribution nor months is given
        """
        now = now or DateService.now()
        rate = monthly_rate(annual_return_rate)
        remaining = max(0.0, target_amount - current_amount)

        if monthly_contribution and target_months:
            final_amount = ProjectionService.calculate_fv(
                current_amount, monthly_contribution, rate, target_months
            )
            return {
                "question": f"What if I save {monthly_contribution:g}/month for {target_months} months?",
                "final_amount": final_amount,
                "goal_reached": final_amount >= target_amount,
                "surplus": final_amount - target_amount,
            }

        if monthly_contribution:
            if remaining <= 0:
                months = 0.0
            elif rate == 0:
                months = remaining / monthly_contribution
            else:
                numerator = monthly_contribution + rate * target_amount
                denominator = monthly_contribution + rate * current_amount
                if numerator <= 0 or denominator <= 0:
                    raise ValidationException("monthly_contribution", "target cannot be reached with this contribution")
                months = math.log(numerator / denominator) / math.log(1 + rate)
            return {
                "question": f"How long to reach {target_amount:g} saving {monthly_contribution:g}/month?",
                "months_required": math.ceil(months),
                "years_required": round(months / 12, 1),
                "completion_date": now + timedelta(days=months * DAYS_PER_MONTH),
            }

        if target_months:
            required = ProjectionService.calculate_pmt(remaining, rate, target_months)
            return {
                "question": f"What do I need to save monthly to reach {target_amount:g} in {target_months} months?",
                "monthly_required": math.ceil(required),
                "weekly_required": math.ceil(required / WEEKS_PER_MONTH),
                "daily_required": math.ceil(required / DAYS_PER_MONTH),
            }

        raise ValidationException(
            "what_if", "provide monthly_contribution, target_months, or both"
        )

    def _get_goal(self, goal_id: int, user_id: int) -> FinancialGoal:
        goal = self.goal_repo.get_by_id(self.db, goal_id, user_id)
        if not goal:
            raise GoalNotFoundException(goal_id)
        return goal

    def project_goal(self, goal: FinancialGoal, now: Optional[datetime] = None) -> ProjectionResult:
        return self.calculate_projection(
            current_amount=goal.current_amount,
            target_amount=goal.target_amount,
            target_date=goal.target_date,
            monthly_contribution=goal.monthly_contribution or 0,
            annual_return_rate=goal.annual_return_rate,
            now=now,
        )

    def get_goal_projection(self, goal_id: int, user_id: int) -> dict:
        """Projection for one goal using its stored monthly contribution"""
        goal = self._get_goal(goal_id, user_id)
        projection = self.project_goal(goal)
        logger.info(f"Projection for goal {goal_id}: on track={projection.is_on_track}")
        return {
            "goal_id": goal.id,
            "goal_name": goal.name,
            "status": goal.status,
            "monthly_contribution": goal.monthly_contribution or 0,
            "projection": projection,
        }

    def get_all_goal_projections(self, user_id: int) -> dict:
        """Projections for every non-archived goal still in progress, plus a summary"""
        goals = self.goal_repo.get_by_statuses(self.db, user_id, ACTIVE_GOAL_STATUSES)
        now = DateService.now()

        projections = [
            {"goal_id": goal.id, "goal_name": goal.name, "projection": self.project_goal(goal, now)}
            for goal in goals
        ]
        on_track = sum(1 for p in projections if p["projection"].is_on_track)
        total = len(projections)

        return {
            "projections": projections,
            "summary": {
                "total_goals": total,
                "on_track": on_track,
                "off_track": total - on_track,
                "total_monthly_required": sum(p["projection"].monthly_required for p in projections),
                "overall_progress": (
                    sum(p["projection"].progress_percentage for p in projections) / total
                    if total else 0.0
                ),
            },
        }

    def compare_progress(self, goal_id: int, user_id: int, now: Optional[datetime] = None) -> dict:
        """
        Compare the saved amount with linear progress from start to target date.
        """
        goal = self._get_goal(goal_id, user_id)
        now = now or DateService.now()

        start = DateService.normalize_to_midnight(goal.start_date)
        target = DateService.normalize_to_midnight(goal.target_date)
        total_days = max(1.0, (target - start).total_seconds() / 86400)
        days_elapsed = (now - start).total_seconds() / 86400
        expected = days_elapsed / total_days * goal.target_amount
        variance = goal.current_amount - expected

        return {
            "goal_id": goal.id,
            "goal_name": goal.name,
            "current": goal.current_amount,
            "expected": round_half_up(expected),
            "variance": variance,
            "variance_percent": variance / expected * 100 if expected > 0 else 0.0,
            "days_elapsed": math.floor(days_elapsed),
            "days_remaining": math.ceil(total_days - days_elapsed),
        }
