"""
Tests for HabitService.

Tests cover:
1. Check-in upsert and streak recomputation
2. Quantity habits
3. Unchecking and deleting check-ins
4. Habit statistics
"""
import pytest
from datetime import date, timedelta

from lifeos.exceptions import HabitNotFoundException, ValidationException
from lifeos.models import HabitCheckIn
from lifeos.schemas import CheckInCreate, HabitCreate
from lifeos.services.habit_service import HabitService


class TestCheckIns:
    """Tests for log_check_in"""

    def test_today_and_yesterday_streak(self, db_session, today, yesterday, make_habit):
        habit = make_habit()
        service = HabitService(db_session)

        service.log_check_in(habit.id, 1, CheckInCreate(date=yesterday))
        service.log_check_in(habit.id, 1, CheckInCreate())

        db_session.refresh(habit)
        assert habit.current_streak == 2
        assert habit.longest_streak == 2

    def test_same_day_twice_is_one_check_in(self, db_session, today, make_habit):
        habit = make_habit()
        service = HabitService(db_session)

        service.log_check_in(habit.id, 1, CheckInCreate(date=today, notes="morning"))
        check_in = service.log_check_in(habit.id, 1, CheckInCreate(date=today, notes="evening"))

        assert db_session.query(HabitCheckIn).filter(HabitCheckIn.habit_id == habit.id).count() == 1
        assert check_in.notes == "evening"

    def test_backfilled_gap_extends_streak(self, db_session, today, make_habit):
        """Streaks are derived from history, so filling a missed day joins both runs"""
        habit = make_habit()
        service = HabitService(db_session)
        for offset in (0, 1, 3, 4):
            service.log_check_in(habit.id, 1, CheckInCreate(date=today - timedelta(days=offset)))
        db_session.refresh(habit)
        assert habit.current_streak == 2

        service.log_check_in(habit.id, 1, CheckInCreate(date=today - timedelta(days=2)))

        db_session.refresh(habit)
        assert habit.current_streak == 5

    def test_weekly_habit_counts_weeks(self, db_session, today, make_habit):
        habit = make_habit(frequency="WEEKLY")
        service = HabitService(db_session)

        service.log_check_in(habit.id, 1, CheckInCreate(date=today))
        service.log_check_in(habit.id, 1, CheckInCreate(date=today - timedelta(days=7)))

        db_session.refresh(habit)
        assert habit.current_streak == 2

    def test_other_user_not_found(self, db_session, today, make_habit):
        habit = make_habit(user_id=1)

        with pytest.raises(HabitNotFoundException):
            HabitService(db_session).log_check_in(habit.id, 2, CheckInCreate())

    def test_future_date_rejected(self, db_session, today, make_habit):
        habit = make_habit()

        with pytest.raises(ValidationException):
            HabitService(db_session).log_check_in(habit.id, 1, CheckInCreate(date=today + timedelta(days=1)))

        assert db_session.query(HabitCheckIn).count() == 0


class TestQuantityHabits:

    def test_quantity_below_target_not_completed(self, db_session, today, make_habit):
        habit = make_habit(is_quantity=True, quantity_target=8, quantity_unit="glasses")

        check_in = HabitService(db_session).log_check_in(habit.id, 1, CheckInCreate(quantity=5))

        assert check_in.completed is False

    def test_quantity_reaching_target_completed(self, db_session, today, make_habit):
        habit = make_habit(is_quantity=True, quantity_target=8)

        check_in = HabitService(db_session).log_check_in(habit.id, 1, CheckInCreate(quantity=8))

        assert check_in.completed is True

    def test_quantity_without_target(self, db_session, today, make_habit):
        habit = make_habit(is_quantity=True)

        check_in = HabitService(db_session).log_check_in(habit.id, 1, CheckInCreate(quantity=0))

        assert check_in.completed is False


class TestUncheck:
    """Tests for uncheck and delete_check_in"""

    def test_uncheck_keeps_longest_streak(self, db_session, today, yesterday, make_habit):
        habit = make_habit()
        service = HabitService(db_session)
        service.log_check_in(habit.id, 1, CheckInCreate(date=yesterday))
        service.log_check_in(habit.id, 1, CheckInCreate(date=today))

        habit = service.uncheck(habit.id, 1)

        assert habit.current_streak == 1
        assert habit.longest_streak == 2

    def test_delete_check_in(self, db_session, today, yesterday, make_habit):
        habit = make_habit()
        service = HabitService(db_session)
        service.log_check_in(habit.id, 1, CheckInCreate(date=yesterday))

        habit = service.delete_check_in(habit.id, 1, yesterday)

        assert habit.current_streak == 0
        assert habit.longest_streak == 1
        assert db_session.query(HabitCheckIn).count() == 0


class TestStats:

    def test_completion_rate_and_weeks(self, db_session, today, make_habit):
        habit = make_habit()
        service = HabitService(db_session)
        # today is Thursday 2026-01-15
        service.log_check_in(habit.id, 1, CheckInCreate(date=date(2026, 1, 15)))
        service.log_check_in(habit.id, 1, CheckInCreate(date=date(2026, 1, 12), completed=False))
        service.log_check_in(habit.id, 1, CheckInCreate(date=date(2026, 1, 8)))
        service.log_check_in(habit.id, 1, CheckInCreate(date=date(2026, 1, 7)))

        stats = service.get_stats(habit.id, 1)

        assert stats["total_days"] == 4
        assert stats["completed_days"] == 3
        assert stats["completion_rate"] == 75
        assert [w["week"] for w in stats["weekly_stats"]] == [date(2026, 1, 12), date(2026, 1, 5)]
        assert stats["weekly_stats"][0]["rate"] == 50
        assert stats["quantity_stats"] is None

    def test_quantity_stats(self, db_session, today, make_habit):
        habit = make_habit(is_quantity=True, quantity_target=8)
        service = HabitService(db_session)
        service.log_check_in(habit.id, 1, CheckInCreate(date=today, quantity=6))
        service.log_check_in(habit.id, 1, CheckInCreate(date=today - timedelta(days=1), quantity=10))

        stats = service.get_stats(habit.id, 1)

        assert stats["quantity_stats"] == {"total": 16, "average": 8, "max": 10, "min": 6}


class TestHabitLifecycle:

    def test_deactivated_habit_hidden(self, db_session, today):
        service = HabitService(db_session)
        habit = service.create_habit(1, HabitCreate(name="Meditate"))

        service.set_active(habit.id, 1, False)

        assert service.get_habits(1) == []
        assert len(service.get_habits(1, include_inactive=True)) == 1

    def test_delete_removes_check_ins(self, db_session, today, make_habit):
        habit = make_habit()
        service = HabitService(db_session)
        service.log_check_in(habit.id, 1, CheckInCreate())

        service.delete_habit(habit.id, 1)

        assert db_session.query(HabitCheckIn).count() == 0
