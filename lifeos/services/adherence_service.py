"""
Life system adherence service.
Adherence is the share of logged days marked as adhered within a trailing window.
"""
import logging
from datetime import date, timedelta
from typing import Iterable, List, Optional
from sqlalchemy.orm import Session

from lifeos.constants import ADHERENCE_WINDOW_DAYS
from lifeos.exceptions import SystemNotFoundException, ValidationException
from lifeos.models import LifeSystem, SystemAdherenceLog
from lifeos.repositories.system_repository import LifeSystemRepository, AdherenceLogRepository
from lifeos.schemas import LifeSystemCreate, AdherenceLogCreate
from lifeos.services.date_service import DateService
from lifeos.services.progress_service import round_half_up

logger = logging.getLogger("lifeos.systems")


def calculate_adherence(logs: Iterable[SystemAdherenceLog]) -> int:
    """
    Adherence percentage over the given logs.

    Formula: round_half_up(adhered / total * 100); 0 when there are no logs.
    Days without a log are not counted, so the denominator is the
    number of logs, not the window length.
    """
    logs = list(logs)
    if not logs:
        return 0
    adhered_count = sum(1 for log in logs if log.adhered)
    return round_half_up(adhered_count / len(logs) * 100)


def is_on_track(adherence: int, adherence_target: Optional[int]) -> bool:
    return adherence >= (adherence_target or 0)


def window_start(today: date, window_days: int = ADHERENCE_WINDOW_DAYS) -> date:
    """First day included in a trailing adherence window ending today"""
    return today - timedelta(days=window_days - 1)


class LifeSystemService:
    """Service for managing life systems and their adherence logs"""

    def __init__(self, db: Session):
        self.db = db
        self.system_repo = LifeSystemRepository()
        self.log_repo = AdherenceLogRepository()

    def _get_owned(self, system_id: int, user_id: int) -> LifeSystem:
        system = self.system_repo.get_by_id(self.db, system_id, user_id)
        if not system:
            raise SystemNotFoundException(system_id)
        return system

    def create_system(self, user_id: int, data: LifeSystemCreate) -> LifeSystem:
        """Create a new life system"""
        system = LifeSystem(user_id=user_id, **data.model_dump())
        system = self.system_repo.create(self.db, system)
        logger.info(f"Life system {system.id} created for user {user_id}")
        return system

    def get_adherence(self, system: LifeSystem, today: Optional[date] = None) -> int:
        """Adherence of a system over the trailing window"""
        today = today or DateService.today()
        logs = self.log_repo.get_since(self.db, system.id, window_start(today))
        return calculate_adherence(logs)

    def get_systems(self, user_id: int, include_inactive: bool = False) -> List[dict]:
        """Get systems with their current adherence and on-track flag"""
        today = DateService.today()
        result = []
        for system in self.system_repo.get_all(self.db, user_id, include_inactive):
            adherence = self.get_adherence(system, today)
            result.append({
                "system": system,
                "current_adherence": adherence,
                "is_on_track": is_on_track(adherence, system.adherence_target),
            })
        return result

    def log_adherence(self, system_id: int, user_id: int, data: AdherenceLogCreate) -> dict:
        """
        Record adherence for one day (one log per system and day).

        Returns:
            The stored log plus the refreshed adherence
        """
        system = self._get_owned(system_id, user_id)
        target_date = data.date or DateService.today()
        if target_date > DateService.today():
            raise ValidationException("date", "cannot be in the future")

        log = self.log_repo.upsert(self.db, system.id, target_date, data.adhered, data.notes)
        adherence = self.get_adherence(system)

        logger.info(f"System {system_id} adherence logged for {target_date}: {data.adhered}")
        return {
            "log": log,
            "current_adherence": adherence,
            "is_on_track": is_on_track(adherence, system.adherence_target),
        }

    def set_active(self, system_id: int, user_id: int, is_active: bool) -> LifeSystem:
        system = self._get_owned(system_id, user_id)
        system.is_active = is_active
        return self.system_repo.update(self.db, system)
