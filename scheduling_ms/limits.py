from __future__ import annotations

from datetime import datetime, timedelta, timezone

from fastapi import HTTPException, status
from loguru import logger

from scheduling_ms.models import EventType

# Checked in this order; a week starts on Monday (UTC)
LIMIT_KEYS = ("PER_DAY", "PER_WEEK", "PER_MONTH", "PER_YEAR")


def period_bounds(key: str, moment: datetime) -> tuple[datetime, datetime]:
    """[start, end) of the calendar period named by `key` that contains `moment`."""
    moment = moment.astimezone(timezone.utc)
    day = moment.replace(hour=0, minute=0, second=0, microsecond=0)

    if key == "PER_DAY":
        return day, day + timedelta(days=1)
    if key == "PER_WEEK":
        start = day - timedelta(days=day.weekday())
        return start, start + timedelta(weeks=1)
    if key == "PER_MONTH":
        start = day.replace(day=1)
        if start.month == 12:
            return start, start.replace(year=start.year + 1, month=1)
        return start, start.replace(month=start.month + 1)
    if key == "PER_YEAR":
        start = day.replace(month=1, day=1)
        return start, start.replace(year=start.year + 1)
    raise ValueError(f"Unknown limit period: {key}")


def _configured(limits: dict | None) -> list[tuple[str, int]]:
    if not limits:
        return []
    return [(key, limits[key]) for key in LIMIT_KEYS if limits.get(key) is not None]


class CheckBookingLimitsService:
    def __init__(self, booking_repository):
        self.booking_repository = booking_repository

    async def check_booking_limits(
        self,
        limits: dict | None,
        event_start: datetime,
        event_type_id: int,
        reschedule_uid: str | None = None,
    ) -> None:
        """
        Raise 403 when any period already holds `limit` active bookings.
        The booking being rescheduled (`reschedule_uid`) is not counted.
        """
        for key, limit in _configured(limits):
            start, end = period_bounds(key, event_start)
            count = await self.booking_repository.count_bookings_between(
                event_type_id, start, end, exclude_uid=reschedule_uid
            )
            if count >= limit:
                logger.debug(
                    "Booking limit {} reached for event type {}: {}/{}",
                    key,
                    event_type_id,
                    count,
                    limit,
                )
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail=f"booking_limit_reached: {key.lower()}",
                )


class CheckBookingAndDurationLimitsService:
    def __init__(self, check_booking_limits_service, booking_repository):
        self.check_booking_limits_service = check_booking_limits_service
        self.booking_repository = booking_repository

    async def check_duration_limits(
        self,
        limits: dict | None,
        event_start: datetime,
        event_type_id: int,
        length: int,
        reschedule_uid: str | None = None,
    ) -> None:
        """Raise 403 when `length` more minutes would exceed a period's budget."""
        for key, limit in _configured(limits):
            start, end = period_bounds(key, event_start)
            booked = await self.booking_repository.booked_minutes_between(
                event_type_id, start, end, exclude_uid=reschedule_uid
            )
            if booked + length > limit:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail=f"duration_limit_reached: {key.lower()}",
                )

    async def check_booking_and_duration_limits(
        self,
        event_type: EventType,
        event_start: datetime,
        length: int,
        reschedule_uid: str | None = None,
    ) -> None:
        await self.check_booking_limits_service.check_booking_limits(
            event_type.booking_limits, event_start, event_type.id, reschedule_uid
        )
        await self.check_duration_limits(
            event_type.duration_limits,
            event_start,
            event_type.id,
            length,
            reschedule_uid,
        )
