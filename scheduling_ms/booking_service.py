from __future__ import annotations

from datetime import timedelta

from fastapi import HTTPException, status
from loguru import logger

from scheduling_ms.cache import (
    get_slots_cache,
    invalidate_slots_cache,
    set_slots_cache,
)
from scheduling_ms.deps import CurrentUser
from scheduling_ms.models import BookingStatus
from scheduling_ms.schemas import BookingCreate, BookingResponse, BookingSlot


class RegularBookingService:
    """
    Creates (and reschedules) regular, non-seated bookings.

    Collaborators are injected, see scheduling_ms.container for the wiring.
    """

    def __init__(
        self,
        cache_service,
        check_booking_and_duration_limits_service,
        booking_repository,
        event_type_repository,
    ):
        self.cache_service = cache_service
        self.check_booking_and_duration_limits_service = (
            check_booking_and_duration_limits_service
        )
        self.booking_repository = booking_repository
        self.event_type_repository = event_type_repository

    async def create_booking(
        self, payload: BookingCreate, current_user: CurrentUser
    ) -> BookingResponse:
        event_type = await self.event_type_repository.get_event_type(
            payload.event_type_id
        )
        if event_type is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Event type not found"
            )

        rescheduled_from = None
        if payload.reschedule_uid:
            rescheduled_from = await self.booking_repository.get_by_uid(
                payload.reschedule_uid
            )
            if rescheduled_from is None:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail="Booking to reschedule not found",
                )

        await self.check_booking_and_duration_limits_service.check_booking_and_duration_limits(
            event_type,
            payload.start_time,
            event_type.length,
            reschedule_uid=rescheduled_from.uid if rescheduled_from else None,
        )

        end_time = payload.start_time + timedelta(minutes=event_type.length)
        booking_status = (
            BookingStatus.PENDING
            if event_type.requires_confirmation
            else BookingStatus.ACCEPTED
        )

        booking = await self.booking_repository.create_booking(
            event_type=event_type,
            title=f"{event_type.title} with {payload.attendee_name}",
            start_time=payload.start_time,
            end_time=end_time,
            booking_status=booking_status,
            responses={
                **payload.responses,
                "name": payload.attendee_name,
                "email": payload.attendee_email,
                "timeZone": payload.attendee_time_zone,
                "bookedBy": current_user.username,
            },
            rescheduled_from=rescheduled_from,
        )
        await invalidate_slots_cache(event_type.id)
        source_event_type_id = (
            rescheduled_from.event_type_id  # type: ignore[attr-defined]
            if rescheduled_from is not None
            else None
        )
        if source_event_type_id is not None and source_event_type_id != event_type.id:
            await invalidate_slots_cache(source_event_type_id)

        logger.info(
            "Booking {} created for event type {} (status={}, rescheduled_from={})",
            booking.uid,
            event_type.id,
            booking.status,
            payload.reschedule_uid,
        )
        return booking

    async def get_occupied_slots(self, event_type_id: int) -> list[BookingSlot]:
        """Occupied windows of an event type, served from Redis when the team allows it."""
        event_type = await self.event_type_repository.get_event_type(event_type_id)
        if event_type is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Event type not found"
            )

        serve_cache = await self.cache_service.get_should_serve_cache(
            team_id=event_type.team_id
        )
        if serve_cache:
            cached = await get_slots_cache(event_type_id)
            if cached is not None:
                logger.debug("Cache hit for slots: event_type_id={}", event_type_id)
                return [BookingSlot(**s) for s in cached]
            logger.debug("Cache miss for slots: event_type_id={}", event_type_id)

        slots = await self.booking_repository.list_occupied_slots(event_type_id)
        if serve_cache:
            await set_slots_cache(
                event_type_id, [s.model_dump(mode="json") for s in slots]
            )
        return slots
