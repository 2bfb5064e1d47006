"""
Tests for FinancialGoalService and FitnessGoalService.

Tests cover:
1. Status derived on create, update and contribution
2. Atomic contributions and validation
3. Pause/archive handling
4. Fitness progress history
5. Summaries
"""
import pytest
from datetime import date
from fastapi import BackgroundTasks

from lifeos.exceptions import FitnessGoalNotFoundException, GoalNotFoundException, ValidationException
from lifeos.models import FitnessProgressEntry, GoalMilestone
from lifeos.schemas import (
    FinancialGoalCreate,
    FinancialGoalUpdate,
    FitnessGoalCreate,
    FitnessGoalUpdate,
    FitnessProgressUpdate,
)
from lifeos.services.goal_service import FinancialGoalService, FitnessGoalService
from lifeos.services.milestone_service import MilestoneService


def goal_data(**overrides):
    data = {
        "name": "House deposit",
        "target_amount": 100000,
        "current_amount": 0,
        "start_date": date(2026, 1, 1),
        "target_date": date(2027, 1, 1),
    }
    data.update(overrides)
    return FinancialGoalCreate(**data)


class TestCreateFinancialGoal:
    """Tests for create_goal"""

    def test_status_derived_from_amounts(self, db_session, frozen_now):
        goal = FinancialGoalService(db_session).create_goal(1, goal_data(current_amount=75000))
        assert goal.status == "ON_TRACK"

    def test_new_goal_is_behind(self, db_session, frozen_now):
        goal = FinancialGoalService(db_session).create_goal(1, goal_data())
        assert goal.status == "BEHIND"

    def test_reversed_dates_rejected(self, db_session, frozen_now):
        with pytest.raises(ValidationException) as exc:
            FinancialGoalService(db_session).create_goal(
                1, goal_data(start_date=date(2026, 6, 1), target_date=date(2026, 1, 1))
            )
        assert exc.value.field == "target_date"

    def test_achievement_check_queued(self, db_session, frozen_now):
        tasks = BackgroundTasks()

        FinancialGoalService(db_session).create_goal(1, goal_data(), tasks)

        assert len(tasks.tasks) == 1


class TestUpdateFinancialGoal:
    """Tests for update_goal"""

    def test_lowering_target_recomputes_status(self, db_session, frozen_now, make_financial_goal):
        goal = make_financial_goal(target_amount=10000, current_amount=5000, status="NEEDS_FOCUS")

        updated = FinancialGoalService(db_session).update_goal(
            goal.id, 1, FinancialGoalUpdate(target_amount=5000)
        )

        assert updated.status == "COMPLETED"

    def test_pause_and_unpause(self, db_session, frozen_now, make_financial_goal):
        goal = make_financial_goal(target_amount=10000, current_amount=8000, status="ON_TRACK")
        service = FinancialGoalService(db_session)

        assert service.update_goal(goal.id, 1, FinancialGoalUpdate(is_paused=True)).status == "PAUSED"
        assert service.update_goal(goal.id, 1, FinancialGoalUpdate(is_paused=False)).status == "ON_TRACK"

    def test_archive(self, db_session, frozen_now, make_financial_goal):
        goal = make_financial_goal()
        service = FinancialGoalService(db_session)

        service.update_goal(goal.id, 1, FinancialGoalUpdate(is_archived=True))

        assert service.get_goals(1) == []
        assert [g.id for g in service.get_goals(1, archived=True)] == [goal.id]

    def test_other_user_cannot_update(self, db_session, frozen_now, make_financial_goal):
        goal = make_financial_goal(user_id=1)

        with pytest.raises(GoalNotFoundException):
            FinancialGoalService(db_session).update_goal(goal.id, 2, FinancialGoalUpdate(name="Mine now"))

    @pytest.mark.parametrize("field", ["current_amount", "target_amount", "start_date"])
    def test_null_for_required_field_rejected(self, db_session, frozen_now, make_financial_goal, field):
        goal = make_financial_goal(current_amount=2500)

        with pytest.raises(ValidationException) as exc:
            FinancialGoalService(db_session).update_goal(goal.id, 1, FinancialGoalUpdate(**{field: None}))

        assert exc.value.field == field
        db_session.refresh(goal)
        assert goal.current_amount == 2500

    def test_optional_field_can_be_cleared(self, db_session, frozen_now, make_financial_goal):
        goal = make_financial_goal(notes="Started in January")

        updated = FinancialGoalService(db_session).update_goal(goal.id, 1, FinancialGoalUpdate(notes=None))

        assert updated.notes is None


class TestAddContribution:
    """Tests for add_contribution"""

    def test_increments_and_recomputes_status(self, db_session, frozen_now, make_financial_goal):
        goal = make_financial_goal(target_amount=10000, current_amount=3500)

        updated = FinancialGoalService(db_session).add_contribution(goal.id, 1, 500)

        assert updated.current_amount == 4000
        assert updated.status == "NEEDS_FOCUS"

    def test_consecutive_contributions_all_counted(self, db_session, frozen_now, make_financial_goal):
        goal = make_financial_goal(target_amount=10000)
        service = FinancialGoalService(db_session)

        for _ in range(4):
            service.add_contribution(goal.id, 1, 250)

        db_session.refresh(goal)
        assert goal.current_amount == 1000

    @pytest.mark.parametrize("amount", [0, -50])
    def test_non_positive_amount_rejected(self, db_session, frozen_now, make_financial_goal, amount):
        goal = make_financial_goal()

        with pytest.raises(ValidationException):
            FinancialGoalService(db_session).add_contribution(goal.id, 1, amount)

    def test_missing_goal(self, db_session, frozen_now):
        with pytest.raises(GoalNotFoundException):
            FinancialGoalService(db_session).add_contribution(404, 1, 100)

    def test_completes_reached_milestones(self, db_session, frozen_now, make_financial_goal):
        goal = make_financial_goal(target_amount=10000)
        MilestoneService(db_session).auto_generate(goal.id, 1, "FINANCIAL")

        FinancialGoalService(db_session).add_contribution(goal.id, 1, 5000)

        completed = db_session.query(GoalMilestone).filter(GoalMilestone.is_completed == True).count()
        assert completed == 2

    def test_unlocks_first_save(self, db_session, frozen_now, make_financial_goal):
        from lifeos.services.achievement_service import AchievementService

        goal = make_financial_goal()
        FinancialGoalService(db_session).add_contribution(goal.id, 1, 100)

        codes = {entry["code"] for entry in AchievementService(db_session).get_all_for_user(1) if entry["unlocked"]}
        assert "FIRST_SAVE" in codes


class TestFinancialSummary:

    def test_summary_over_active_goals(self, db_session, frozen_now, make_financial_goal):
        make_financial_goal(target_amount=10000, current_amount=8000, status="ON_TRACK")
        make_financial_goal(target_amount=10000, current_amount=2000, status="BEHIND")
        make_financial_goal(target_amount=10000, current_amount=9000, status="PAUSED", is_paused=True)

        summary = FinancialGoalService(db_session).get_summary(1)

        assert summary["total_goals"] == 2
        assert summary["total_saved"] == 10000
        assert summary["overall_progress"] == 50
        assert summary["goals_by_status"] == {"ON_TRACK": 1, "NEEDS_FOCUS": 0, "BEHIND": 1, "COMPLETED": 0}

    def test_empty_summary(self, db_session, frozen_now):
        summary = FinancialGoalService(db_session).get_summary(1)
        assert summary["overall_progress"] == 0


class TestFitnessGoals:
    """Tests for FitnessGoalService"""

    def test_create_derives_status(self, db_session, frozen_now):
        goal = FitnessGoalService(db_session).create_goal(
            1, FitnessGoalCreate(name="Run 10k", start_value=2, current_value=8, target_value=10, unit="km")
        )

        assert goal.status == "ON_TRACK"
        assert goal.is_achieved is False

    def test_value_change_appends_history(self, db_session, frozen_now, make_fitness_goal):
        goal = make_fitness_goal(start_value=90, current_value=90, target_value=80)
        service = FitnessGoalService(db_session)

        service.log_progress(goal.id, 1, FitnessProgressUpdate(current_value=86, notes="after holidays"))
        service.log_progress(goal.id, 1, FitnessProgressUpdate(current_value=84))

        entries = db_session.query(FitnessProgressEntry).filter(FitnessProgressEntry.goal_id == goal.id).all()
        assert sorted(e.value for e in entries) == [84, 86]
        assert any(e.notes == "after holidays" for e in entries)

    def test_unchanged_value_adds_no_history(self, db_session, frozen_now, make_fitness_goal):
        goal = make_fitness_goal(current_value=88)

        FitnessGoalService(db_session).update_goal(goal.id, 1, FitnessGoalUpdate(current_value=88, unit="kg"))

        assert db_session.query(FitnessProgressEntry).count() == 0

    def test_reaching_target_sets_achieved(self, db_session, frozen_now, make_fitness_goal):
        goal = make_fitness_goal(start_value=90, current_value=85, target_value=80)

        updated = FitnessGoalService(db_session).log_progress(goal.id, 1, FitnessProgressUpdate(current_value=79.5))

        assert updated.is_achieved is True
        assert updated.status == "COMPLETED"

    def test_other_user_not_found(self, db_session, frozen_now, make_fitness_goal):
        goal = make_fitness_goal(user_id=1)

        with pytest.raises(FitnessGoalNotFoundException):
            FitnessGoalService(db_session).delete_goal(goal.id, 2)

    def test_null_target_value_rejected(self, db_session, frozen_now, make_fitness_goal):
        goal = make_fitness_goal()

        with pytest.raises(ValidationException) as exc:
            FitnessGoalService(db_session).update_goal(goal.id, 1, FitnessGoalUpdate(target_value=None))

        assert exc.value.field == "target_value"


class TestDeleteGoal:
    """Deleting a goal takes its milestones with it"""

    def test_financial_milestones_removed(self, db_session, frozen_now, make_financial_goal):
        goal = make_financial_goal()
        MilestoneService(db_session).auto_generate(goal.id, 1, "FINANCIAL")
        service = FinancialGoalService(db_session)

        service.delete_goal(goal.id, 1)

        assert db_session.query(GoalMilestone).count() == 0

        # SQLite may hand the freed id to the next goal
        replacement = service.create_goal(1, goal_data())
        assert MilestoneService(db_session).get_for_goal(replacement.id, 1, "FINANCIAL") == []

    def test_fitness_delete_keeps_other_kind(self, db_session, frozen_now, make_financial_goal, make_fitness_goal):
        financial = make_financial_goal()
        fitness = make_fitness_goal()
        milestones = MilestoneService(db_session)
        milestones.auto_generate(financial.id, 1, "FINANCIAL")
        milestones.auto_generate(fitness.id, 1, "FITNESS")

        FitnessGoalService(db_session).delete_goal(fitness.id, 1)

        remaining = db_session.query(GoalMilestone).all()
        assert len(remaining) == 4
        assert {m.goal_kind for m in remaining} == {"FINANCIAL"}
