"""
Service layer for per-user weekly schedules.
"""
import logging
from typing import List, Optional

from core.datetime_utils import is_valid_date, today_iso, weekday_name
from core.exceptions import NotFoundError, ValidationFailedError
from repositories import ScheduleRepository
from schemas import DaySlotsResponse, UserScheduleCreate, UserScheduleResponse, UserScheduleUpdate
from services.scheduling import compute_slots, validate_effective_window, validate_weekly_schedule

logger = logging.getLogger(__name__)


class ScheduleService:
    """Business logic for user_schedules documents and their slots."""

    def __init__(self, schedule_repository: ScheduleRepository):
        self._repo = schedule_repository

    def _require(self, schedule_id: int) -> dict:
        schedule = self._repo.get(schedule_id)
        if schedule is None:
            raise NotFoundError("Schedule", schedule_id)
        return schedule

    def list_schedules(self, clinic_id: Optional[int] = None, user_id: Optional[int] = None,
                       user_type: Optional[str] = None) -> List[UserScheduleResponse]:
        rows = self._repo.list(clinic_id=clinic_id, user_id=user_id, user_type=user_type)
        return [UserScheduleResponse(**s) for s in rows]

    def list_active(self, clinic_id: Optional[int] = None, user_id: Optional[int] = None,
                    on_date: Optional[str] = None) -> List[UserScheduleResponse]:
        """Schedules that are active and in effect on ``on_date`` (default today)."""
        rows = self._repo.list_active(on_date or today_iso(), clinic_id=clinic_id, user_id=user_id)
        return [UserScheduleResponse(**s) for s in rows]

    def get_schedule(self, schedule_id: int) -> UserScheduleResponse:
        return UserScheduleResponse(**self._require(schedule_id))

    def create_schedule(self, data: UserScheduleCreate) -> UserScheduleResponse:
        """
        Raises:
            ValidationFailedError: Inconsistent working hours or effective window.
        """
        payload = data.model_dump()
        validate_weekly_schedule(payload["weekly_schedule"])
        validate_effective_window(data.effective_from, data.effective_to)
        schedule = self._repo.create(payload)
        logger.info(f"Schedule {schedule['id']} created for user {data.user_id}")
        return UserScheduleResponse(**schedule)

    def update_schedule(self, schedule_id: int, data: UserScheduleUpdate) -> UserScheduleResponse:
        existing = self._require(schedule_id)
        fields = data.model_dump(exclude_unset=True)
        if fields.get("weekly_schedule") is not None:
            validate_weekly_schedule(fields["weekly_schedule"])
        validate_effective_window(
            fields.get("effective_from", existing["effective_from"]),
            fields.get("effective_to", existing["effective_to"]),
        )
        return UserScheduleResponse(**self._repo.update(schedule_id, fields))

    def delete_schedule(self, schedule_id: int) -> None:
        if not self._repo.delete(schedule_id):
            raise NotFoundError("Schedule", schedule_id)
        logger.info(f"Schedule deleted: {schedule_id}")

    def day_slots(self, schedule_id: int, on_date: str) -> DaySlotsResponse:
        """
        Bookable slots of one date according to the schedule document.

        Args:
            schedule_id: The user schedule to read.
            on_date: Date in YYYY-MM-DD form.

        Returns:
            DaySlotsResponse with the weekday name and its slots; a date
            outside the effective window has no slots.
        """
        if not is_valid_date(on_date):
            raise ValidationFailedError("date must be YYYY-MM-DD", date=on_date)
        schedule = self._require(schedule_id)
        day = weekday_name(on_date)

        in_effect = schedule["is_active"] and schedule["effective_from"] <= on_date and (
            schedule["effective_to"] is None or schedule["effective_to"] >= on_date
        )
        slots = compute_slots(schedule["weekly_schedule"].get(day), schedule["slot_duration"]) if in_effect else []
        return DaySlotsResponse(date=on_date, weekday=day, slots=slots)
