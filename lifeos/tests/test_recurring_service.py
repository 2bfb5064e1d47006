"""
Tests for RecurringContributionService.

Tests cover:
1. next_run_date steps and month-end clamping
2. Due-set selection
3. Idempotent processing (compare-and-set on next_run_date)
4. Failure isolation in batch processing
5. Forecast and summary
"""
import pytest
from datetime import date, datetime

from lifeos.exceptions import ContributionNotFoundException, GoalNotFoundException, ValidationException
from lifeos.models import FinancialGoal, RecurringContribution
from lifeos.repositories.contribution_repository import RecurringContributionRepository
from lifeos.repositories.goal_repository import FinancialGoalRepository
from lifeos.schemas import RecurringContributionCreate, RecurringContributionUpdate
from lifeos.services.recurring_service import RecurringContributionService, next_run_date


class TestNextRunDate:
    """Tests for next_run_date"""

    @pytest.mark.parametrize("frequency,expected", [
        ("DAILY", datetime(2026, 1, 16)),
        ("WEEKLY", datetime(2026, 1, 22)),
        ("BIWEEKLY", datetime(2026, 1, 29)),
        ("MONTHLY", datetime(2026, 2, 15)),
    ])
    def test_steps_from_midnight(self, frequency, expected):
        assert next_run_date(frequency, datetime(2026, 1, 15, 18, 45)) == expected

    def test_month_end_clamps(self):
        """Jan 31 + 1 month is Feb 28 in a non-leap year"""
        assert next_run_date("MONTHLY", date(2026, 1, 31)) == datetime(2026, 2, 28)

    def test_leap_year(self):
        assert next_run_date("MONTHLY", date(2028, 1, 31)) == datetime(2028, 2, 29)

    def test_unknown_frequency(self):
        with pytest.raises(ValidationException):
            next_run_date("HOURLY", date(2026, 1, 1))


def add_contribution(db_session, goal, amount=500.0, frequency="MONTHLY", next_run=None, **kwargs):
    contribution = RecurringContribution(
        user_id=goal.user_id,
        goal_id=goal.id,
        amount=amount,
        frequency=frequency,
        next_run_date=next_run or datetime(2026, 1, 15),
        **kwargs
    )
    db_session.add(contribution)
    db_session.commit()
    db_session.refresh(contribution)
    return contribution


class TestCreate:

    def test_first_run_is_one_step_ahead(self, db_session, frozen_now, make_financial_goal):
        goal = make_financial_goal()
        service = RecurringContributionService(db_session)

        contribution = service.create(1, RecurringContributionCreate(goal_id=goal.id, amount=250, frequency="WEEKLY"))

        assert contribution.next_run_date == datetime(2026, 1, 22)
        assert contribution.is_active is True

    def test_goal_of_other_user_rejected(self, db_session, frozen_now, make_financial_goal):
        goal = make_financial_goal(user_id=1)

        with pytest.raises(GoalNotFoundException):
            RecurringContributionService(db_session).create(
                2, RecurringContributionCreate(goal_id=goal.id, amount=250)
            )


class TestProcessContribution:
    """Tests for process_contribution"""

    def test_credits_goal_and_advances_schedule(self, db_session, frozen_now, make_financial_goal):
        goal = make_financial_goal(target_amount=10000, current_amount=7000)
        contribution = add_contribution(db_session, goal, amount=500)

        status = RecurringContributionService(db_session).process_contribution(contribution.id)

        db_session.refresh(goal)
        db_session.refresh(contribution)
        assert status == "processed"
        assert goal.current_amount == 7500
        assert goal.status == "ON_TRACK"
        assert contribution.last_run_date == frozen_now
        assert contribution.next_run_date == datetime(2026, 2, 15)

    def test_processing_twice_credits_once(self, db_session, frozen_now, make_financial_goal):
        goal = make_financial_goal(current_amount=0)
        contribution = add_contribution(db_session, goal, amount=500)
        service = RecurringContributionService(db_session)

        first = service.process_contribution(contribution.id)
        second = service.process_contribution(contribution.id)

        db_session.refresh(goal)
        assert first == "processed"
        assert second == "skipped"
        assert goal.current_amount == 500

    def test_not_yet_due_skipped(self, db_session, frozen_now, make_financial_goal):
        goal = make_financial_goal()
        contribution = add_contribution(db_session, goal, next_run=datetime(2026, 1, 16))

        assert RecurringContributionService(db_session).process_contribution(contribution.id) == "skipped"

    def test_due_later_today_is_processed(self, db_session, frozen_now, make_financial_goal):
        """Anything scheduled up to the end of today is due"""
        goal = make_financial_goal()
        contribution = add_contribution(db_session, goal, next_run=datetime(2026, 1, 15, 23, 0))

        assert RecurringContributionService(db_session).process_contribution(contribution.id) == "processed"

    def test_inactive_skipped(self, db_session, frozen_now, make_financial_goal):
        goal = make_financial_goal()
        contribution = add_contribution(db_session, goal, is_active=False)

        assert RecurringContributionService(db_session).process_contribution(contribution.id) == "skipped"

    def test_missing_contribution(self, db_session, frozen_now):
        with pytest.raises(ContributionNotFoundException):
            RecurringContributionService(db_session).process_contribution(999)

    def test_stale_claim_does_not_advance(self, db_session, make_financial_goal):
        """A second processor holding an outdated next_run_date loses the claim"""
        goal = make_financial_goal()
        contribution = add_contribution(db_session, goal)

        claimed = RecurringContributionRepository.claim_run(
            db_session,
            contribution.id,
            expected_next_run=datetime(2026, 1, 1),
            next_run_date=datetime(2026, 2, 15),
            run_at=datetime(2026, 1, 15),
        )
        db_session.commit()
        db_session.refresh(contribution)

        assert claimed is False
        assert contribution.next_run_date == datetime(2026, 1, 15)


class TestProcessAllDue:
    """Tests for process_all_due"""

    def test_only_due_items_processed(self, db_session, frozen_now, make_financial_goal):
        goal = make_financial_goal()
        due = add_contribution(db_session, goal, next_run=datetime(2026, 1, 10))
        add_contribution(db_session, goal, next_run=datetime(2026, 2, 1))
        add_contribution(db_session, goal, next_run=datetime(2026, 1, 1), is_active=False)

        results = RecurringContributionService(db_session).process_all_due()

        assert results == [{"id": due.id, "status": "processed", "error": None}]

    def test_one_failure_does_not_stop_the_batch(self, db_session, frozen_now, make_financial_goal, monkeypatch):
        broken_goal = make_financial_goal(name="Broken")
        good_goal = make_financial_goal(name="Good")
        broken = add_contribution(db_session, broken_goal, amount=100, next_run=datetime(2026, 1, 14))
        good = add_contribution(db_session, good_goal, amount=200, next_run=datetime(2026, 1, 15))

        broken_goal_id = broken_goal.id
        real_increment = FinancialGoalRepository.increment_amount

        def failing_increment(db, goal_id, delta):
            if goal_id == broken_goal_id:
                raise RuntimeError("database unavailable")
            return real_increment(db, goal_id, delta)

        monkeypatch.setattr(FinancialGoalRepository, "increment_amount", staticmethod(failing_increment))

        results = RecurringContributionService(db_session).process_all_due()

        assert results[0] == {"id": broken.id, "status": "failed", "error": "database unavailable"}
        assert results[1] == {"id": good.id, "status": "processed", "error": None}

        db_session.refresh(broken)
        db_session.refresh(good_goal)
        # Failed item keeps its schedule so the next run picks it up again
        assert broken.next_run_date == datetime(2026, 1, 14)
        assert good_goal.current_amount == 200


class TestManagement:
    """Tests for update/pause/resume/delete"""

    def test_frequency_change_reschedules(self, db_session, frozen_now, make_financial_goal):
        goal = make_financial_goal()
        contribution = add_contribution(db_session, goal, next_run=datetime(2026, 2, 1))

        updated = RecurringContributionService(db_session).update(
            contribution.id, 1, RecurringContributionUpdate(frequency="DAILY")
        )

        assert updated.frequency == "DAILY"
        assert updated.next_run_date == datetime(2026, 1, 16)

    def test_amount_change_keeps_schedule(self, db_session, frozen_now, make_financial_goal):
        goal = make_financial_goal()
        contribution = add_contribution(db_session, goal, next_run=datetime(2026, 2, 1))

        updated = RecurringContributionService(db_session).update(
            contribution.id, 1, RecurringContributionUpdate(amount=750)
        )

        assert updated.amount == 750
        assert updated.next_run_date == datetime(2026, 2, 1)

    def test_null_frequency_rejected(self, db_session, frozen_now, make_financial_goal):
        goal = make_financial_goal()
        contribution = add_contribution(db_session, goal)

        with pytest.raises(ValidationException) as exc:
            RecurringContributionService(db_session).update(
                contribution.id, 1, RecurringContributionUpdate(frequency=None)
            )

        assert exc.value.field == "frequency"

    def test_list_for_goal_requires_ownership(self, db_session, frozen_now, make_financial_goal):
        goal = make_financial_goal(user_id=1)
        add_contribution(db_session, goal)
        service = RecurringContributionService(db_session)

        assert len(service.get_for_goal(goal.id, 1)) == 1
        with pytest.raises(GoalNotFoundException):
            service.get_for_goal(goal.id, 2)

    def test_pause_and_resume(self, db_session, frozen_now, make_financial_goal):
        goal = make_financial_goal()
        contribution = add_contribution(db_session, goal, frequency="WEEKLY", next_run=datetime(2025, 12, 1))
        service = RecurringContributionService(db_session)

        assert service.pause(contribution.id, 1).is_active is False
        resumed = service.resume(contribution.id, 1)

        assert resumed.is_active is True
        assert resumed.next_run_date == datetime(2026, 1, 22)

    def test_other_user_cannot_delete(self, db_session, frozen_now, make_financial_goal):
        goal = make_financial_goal(user_id=1)
        contribution = add_contribution(db_session, goal)

        with pytest.raises(ContributionNotFoundException):
            RecurringContributionService(db_session).delete(contribution.id, 2)

    def test_deleting_goal_removes_contributions(self, db_session, make_financial_goal):
        goal = make_financial_goal()
        add_contribution(db_session, goal)

        db_session.delete(db_session.get(FinancialGoal, goal.id))
        db_session.commit()

        assert db_session.query(RecurringContribution).count() == 0


class TestForecast:
    """Tests for get_forecast and get_summary"""

    def test_monthly_forecast_three_months(self, db_session, frozen_now, make_financial_goal):
        goal = make_financial_goal()
        add_contribution(db_session, goal, amount=500, next_run=datetime(2026, 1, 16))

        forecast = RecurringContributionService(db_session).get_forecast(1, months=3)

        assert [item["date"] for item in forecast["items"]] == [
            datetime(2026, 1, 16), datetime(2026, 2, 16), datetime(2026, 3, 16),
        ]
        assert forecast["total_expected"] == 1500
        assert forecast["by_goal"] == {goal.id: 1500}
        assert forecast["monthly_average"] == 500

    def test_items_sorted_across_contributions(self, db_session, frozen_now, make_financial_goal):
        first_goal = make_financial_goal(name="A")
        second_goal = make_financial_goal(name="B")
        add_contribution(db_session, first_goal, amount=100, frequency="BIWEEKLY", next_run=datetime(2026, 1, 20))
        add_contribution(db_session, second_goal, amount=300, next_run=datetime(2026, 1, 25))

        forecast = RecurringContributionService(db_session).get_forecast(1, months=1)

        dates = [item["date"] for item in forecast["items"]]
        assert dates == sorted(dates)
        assert forecast["by_goal"] == {first_goal.id: 200, second_goal.id: 300}

    def test_paused_contributions_not_forecast(self, db_session, frozen_now, make_financial_goal):
        goal = make_financial_goal()
        add_contribution(db_session, goal, next_run=datetime(2026, 1, 16), is_active=False)

        assert RecurringContributionService(db_session).get_forecast(1)["items"] == []

    def test_summary(self, db_session, frozen_now, make_financial_goal):
        goal = make_financial_goal()
        add_contribution(db_session, goal, amount=100, frequency="WEEKLY")
        add_contribution(db_session, goal, amount=500, frequency="MONTHLY")

        summary = RecurringContributionService(db_session).get_summary(1)

        assert summary["active_count"] == 2
        assert summary["monthly_total"] == 900
        assert summary["by_frequency"] == {"daily": 0, "weekly": 1, "biweekly": 0, "monthly": 1}
