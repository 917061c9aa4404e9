from __future__ import annotations

from datetime import datetime
from uuid import uuid4

from fastapi import HTTPException, status
from tortoise.expressions import Q
from tortoise.transactions import in_transaction

from scheduling_ms.models import (
    ApiKey,
    Booking,
    BookingSeat,
    BookingStatus,
    EventType,
    Feature,
    FilterSegment,
    FilterSegmentScope,
    Membership,
    MembershipRole,
    Team,
    TeamFeature,
    TravelSchedule,
    UserFeature,
    UserFilterSegmentPreference,
)
from scheduling_ms.schemas import (
    ApiKeyResponse,
    BookingEventType,
    BookingResponse,
    BookingSlot,
    EventTypeListItem,
    EventTypeTeam,
    FilterSegmentCreate,
    FilterSegmentList,
    FilterSegmentResponse,
    RescheduleBooking,
    SeatLookup,
    TravelScheduleResponse,
)

ACTIVE_STATUSES = [BookingStatus.ACCEPTED, BookingStatus.PENDING]
INACTIVE_STATUSES = [BookingStatus.CANCELLED, BookingStatus.REJECTED]


class BookingCRUD:
    async def resolve_booking_uid(self, uid: str) -> SeatLookup:
        """`uid` may be a seat reference; map it to the booking it belongs to."""
        seat = await BookingSeat.get_or_none(reference_uid=uid).select_related(
            "booking"
        )
        if seat is None:
            return SeatLookup(uid=uid)
        return SeatLookup(uid=seat.booking.uid, seat_reference_uid=uid)

    async def _booking_event_type(self, event_type_id: int) -> BookingEventType | None:
        et = await EventType.get_or_none(id=event_type_id).prefetch_related("hosts")
        if et is None:
            return None

        team = None
        if et.team_id is not None:  # type: ignore[attr-defined]
            team_inst = await Team.get_or_none(id=et.team_id)  # type: ignore[attr-defined]
            if team_inst is not None:
                parent = (
                    await Team.get_or_none(id=team_inst.parent_id)  # type: ignore[attr-defined]
                    if team_inst.parent_id is not None  # type: ignore[attr-defined]
                    else None
                )
                team = EventTypeTeam(
                    id=team_inst.id,
                    slug=team_inst.slug,
                    parent_id=parent.id if parent else None,
                    parent_slug=parent.slug if parent else None,
                )

        return BookingEventType(
            id=et.id,
            title=et.title,
            slug=et.slug,
            length=et.length,
            seats_per_time_slot=et.seats_per_time_slot,
            owner_id=et.owner_id,
            team=team,
            host_user_ids=[h.user_id for h in et.hosts],
            usernames=[et.owner_username] if et.owner_username else [],
            disable_rescheduling=et.disable_rescheduling,
            allow_rescheduling_past_bookings=et.allow_rescheduling_past_bookings,
            allow_rescheduling_cancelled_bookings=et.allow_rescheduling_cancelled_bookings,
        )

    async def get_booking_for_reschedule(self, uid: str) -> RescheduleBooking | None:
        inst = await Booking.get_or_none(uid=uid)
        if not inst:
            return None

        event_type = None
        if inst.event_type_id is not None:  # type: ignore[attr-defined]
            event_type = await self._booking_event_type(inst.event_type_id)  # type: ignore[attr-defined]

        return RescheduleBooking(
            id=inst.id,
            uid=inst.uid,
            status=inst.status,
            end_time=inst.end_time,
            user_id=inst.user_id,
            event_type=event_type,
            dynamic_event_slug_ref=inst.dynamic_event_slug_ref,
            dynamic_group_slug_ref=inst.dynamic_group_slug_ref,
        )

    async def get_by_uid(self, uid: str) -> Booking | None:
        return await Booking.get_or_none(uid=uid)

    @staticmethod
    def _active_between(
        event_type_id: int,
        start: datetime,
        end: datetime,
        exclude_uid: str | None = None,
    ):
        qs = Booking.filter(
            event_type_id=event_type_id,
            status__not_in=INACTIVE_STATUSES,
            start_time__gte=start,
            start_time__lt=end,
        )
        if exclude_uid is not None:
            qs = qs.exclude(uid=exclude_uid)
        return qs

    async def count_bookings_between(
        self,
        event_type_id: int,
        start: datetime,
        end: datetime,
        exclude_uid: str | None = None,
    ) -> int:
        """`exclude_uid` is the booking being rescheduled; it does not count."""
        return await self._active_between(
            event_type_id, start, end, exclude_uid
        ).count()

    async def booked_minutes_between(
        self,
        event_type_id: int,
        start: datetime,
        end: datetime,
        exclude_uid: str | None = None,
    ) -> int:
        bookings = await self._active_between(
            event_type_id, start, end, exclude_uid
        ).only("start_time", "end_time")
        return int(
            sum((b.end_time - b.start_time).total_seconds() for b in bookings) // 60
        )

    async def create_booking(
        self,
        event_type: EventType,
        title: str,
        start_time: datetime,
        end_time: datetime,
        booking_status: BookingStatus,
        responses: dict,
        rescheduled_from: Booking | None = None,
    ) -> BookingResponse:
        """
        Persist a new booking after checking (atomic, locked) that the organizer
        has no overlapping active booking. When rescheduling, the source booking
        is locked, must not be rejected or already superseded by a live
        booking, is excluded from the check and is cancelled in the same
        transaction.
        """
        async with in_transaction():
            if rescheduled_from is not None:
                rescheduled_from = await self._lock_reschedule_source(rescheduled_from)

            qs = Booking.filter(
                status__in=ACTIVE_STATUSES,
                start_time__lt=end_time,
                end_time__gt=start_time,
            )
            if event_type.owner_id is not None:
                qs = qs.filter(user_id=event_type.owner_id)
            else:
                qs = qs.filter(event_type_id=event_type.id)
            if rescheduled_from is not None:
                qs = qs.exclude(id=rescheduled_from.id)

            if await qs.select_for_update().exists():
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail="Booking conflicts with an existing booking for this organizer",
                )

            inst = await Booking.create(
                uid=uuid4().hex,
                title=title,
                user_id=event_type.owner_id,
                event_type=event_type,
                start_time=start_time,
                end_time=end_time,
                status=booking_status,
                responses=responses,
                from_reschedule=rescheduled_from.uid if rescheduled_from else None,
            )

            if rescheduled_from is not None:
                rescheduled_from.status = BookingStatus.CANCELLED  # type: ignore
                rescheduled_from.rescheduled = True
                await rescheduled_from.save(update_fields=["status", "rescheduled"])

        return BookingResponse.model_validate(inst, from_attributes=True)

    async def _lock_reschedule_source(self, source: Booking) -> Booking:
        locked = await Booking.filter(id=source.id).select_for_update().first()
        if locked is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Booking to reschedule not found",
            )
        if locked.status == BookingStatus.REJECTED:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Rejected bookings cannot be rescheduled",
            )
        # A cancelled source stays reschedulable (request-reschedule flow)
        # until a live booking has replaced it
        superseded = await Booking.filter(
            from_reschedule=locked.uid, status__in=ACTIVE_STATUSES
        ).exists()
        if superseded:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Booking has already been rescheduled",
            )
        return locked

    async def list_occupied_slots(self, event_type_id: int) -> list[BookingSlot]:
        """Return booked time windows for an event type — no attendee info exposed."""
        bookings = await Booking.filter(
            event_type_id=event_type_id,
            status__in=ACTIVE_STATUSES,
        ).only("start_time", "end_time")
        return [BookingSlot.model_validate(b, from_attributes=True) for b in bookings]


class EventTypeCRUD:
    async def get_event_type(self, event_type_id: int) -> EventType | None:
        return await EventType.get_or_none(id=event_type_id)

    async def list_personal_event_types(self, user_id: int) -> list[EventTypeListItem]:
        event_types = await EventType.filter(owner_id=user_id, team_id__isnull=True)
        return [
            EventTypeListItem.model_validate(et, from_attributes=True)
            for et in event_types
        ]


class ApiKeyCRUD:
    async def list_for_user(self, user_id: int) -> list[ApiKeyResponse]:
        keys = await ApiKey.filter(user_id=user_id)
        return [ApiKeyResponse.model_validate(k, from_attributes=True) for k in keys]


class FilterSegmentCRUD:
    @staticmethod
    def _segment_response(segment: FilterSegment) -> FilterSegmentResponse:
        return FilterSegmentResponse.model_validate(segment, from_attributes=True)

    async def create(
        self, user_id: int, payload: FilterSegmentCreate
    ) -> FilterSegmentResponse:
        if payload.scope == FilterSegmentScope.TEAM:
            is_team_admin = await Membership.filter(
                team_id=payload.team_id,
                user_id=user_id,
                accepted=True,
                role__in=[MembershipRole.ADMIN, MembershipRole.OWNER],
            ).exists()
            if not is_team_admin:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail="Only team admins can create team filter segments",
                )

        segment = await FilterSegment.create(
            user_id=user_id,
            **payload.model_dump(),
        )
        return self._segment_response(segment)

    async def list_for_user(self, user_id: int, table_identifier: str) -> FilterSegmentList:
        team_ids = await Membership.filter(user_id=user_id, accepted=True).values_list(
            "team_id", flat=True
        )
        segments = await FilterSegment.filter(
            Q(scope=FilterSegmentScope.USER, user_id=user_id)
            | Q(scope=FilterSegmentScope.TEAM, team_id__in=list(team_ids)),
            table_identifier=table_identifier,
        )
        preference = await UserFilterSegmentPreference.get_or_none(
            user_id=user_id, table_identifier=table_identifier
        )
        return FilterSegmentList(
            segments=[self._segment_response(s) for s in segments],
            preferred_segment_id=preference.segment_id if preference else None,  # type: ignore[attr-defined]
        )


class TravelScheduleCRUD:
    async def list_for_user(self, user_id: int) -> list[TravelScheduleResponse]:
        schedules = await TravelSchedule.filter(user_id=user_id)
        return [
            TravelScheduleResponse.model_validate(s, from_attributes=True)
            for s in schedules
        ]


class FeaturesCRUD:
    async def check_if_feature_is_enabled_globally(self, slug: str) -> bool:
        return await Feature.filter(slug=slug, enabled=True).exists()

    async def check_if_team_has_feature(self, team_id: int, slug: str) -> bool:
        return await TeamFeature.filter(team_id=team_id, feature_id=slug).exists()

    async def check_if_user_has_feature(self, user_id: int, slug: str) -> bool:
        return await UserFeature.filter(user_id=user_id, feature_id=slug).exists()


booking_crud = BookingCRUD()
event_type_crud = EventTypeCRUD()
api_key_crud = ApiKeyCRUD()
filter_segment_crud = FilterSegmentCRUD()
travel_schedule_crud = TravelScheduleCRUD()
features_crud = FeaturesCRUD()
