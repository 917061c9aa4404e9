from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import RedirectResponse
from loguru import logger

from scheduling_ms.crud import booking_crud
from scheduling_ms.deps import (
    CurrentUser,
    UsersClient,
    get_optional_user,
    get_users_client,
)
from scheduling_ms.event_urls import (
    OrganizerNotFoundError,
    build_event_url_from_booking,
    get_default_event,
)
from scheduling_ms.reschedule import (
    RescheduleValidationResult,
    build_reschedule_destination,
    determine_reschedule_redirect,
)
from scheduling_ms.schemas import (
    RescheduleNotFound,
    RescheduleRedirect,
    RescheduleValidationInput,
)

router = APIRouter(prefix="/reschedule", tags=["reschedule"])


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found")


def _to_response(outcome: RescheduleValidationResult) -> RedirectResponse:
    if isinstance(outcome, RescheduleNotFound):
        raise _not_found()
    return RedirectResponse(
        url=outcome.redirect.destination,
        status_code=(
            status.HTTP_308_PERMANENT_REDIRECT
            if outcome.redirect.permanent
            else status.HTTP_307_TEMPORARY_REDIRECT
        ),
    )


@router.get("/{uid}", response_class=RedirectResponse)
async def reschedule_booking(
    uid: str,
    seat_reference_uid: str | None = Query(default=None, alias="seatReferenceUid"),
    rescheduled_by: str | None = Query(default=None, alias="rescheduledBy"),
    # request-reschedule flow: the organizer cancelled and asked for a new time
    allow_reschedule_for_cancelled_booking: str | None = Query(
        default=None, alias="allowRescheduleForCancelledBooking"
    ),
    coep_flag: str | None = Query(default=None, alias="flag.coep"),
    session: CurrentUser | None = Depends(get_optional_user),
    users_client: UsersClient = Depends(get_users_client),
) -> RedirectResponse:
    """
    Resolve the reschedule link of a booking (or of a seat within it) into a
    redirect to the booking page, carrying `rescheduleUid`.
    """
    allow_cancelled = allow_reschedule_for_cancelled_booking == "true"

    lookup = await booking_crud.resolve_booking_uid(uid)
    booking = await booking_crud.get_booking_for_reschedule(lookup.uid)
    if booking is None:
        raise _not_found()

    event_type = booking.event_type or get_default_event(booking.dynamic_event_slug_ref)

    profile = (
        await users_client.get_profile(booking.user_id)
        if booking.user_id is not None
        else None
    )

    try:
        event_url = build_event_url_from_booking(
            event_type=event_type,
            dynamic_group_slug_ref=booking.dynamic_group_slug_ref,
            profile=profile,
        )
    except OrganizerNotFoundError:
        logger.warning(
            "No organizer username for booking {}, cannot reschedule", booking.uid
        )
        raise _not_found() from None

    outcome = determine_reschedule_redirect(
        RescheduleValidationInput(
            booking=booking.snapshot(),
            event_type=event_type,
            event_url=event_url,
            allow_reschedule_for_cancelled_booking=allow_cancelled,
        )
    )
    if outcome is not None:
        logger.debug("Reschedule of {} short-circuited: {}", booking.uid, outcome)
        return _to_response(outcome)

    # Seated events need a seat reference unless a host or the owner is rescheduling
    booked_event_type = booking.event_type
    if (
        booked_event_type is not None
        and booked_event_type.seats_per_time_slot
        and not lookup.seat_reference_uid
    ):
        user_id = session.id if session else None
        if user_id is None and not seat_reference_uid:
            return _to_response(
                RescheduleRedirect.to(f"/auth/login?callbackUrl=/reschedule/{uid}")
            )
        is_host = user_id is not None and user_id in booked_event_type.host_user_ids
        is_owner = user_id is not None and booked_event_type.owner_id == user_id
        if not is_host and not is_owner:
            raise _not_found()

    # An explicit (even empty) rescheduledBy wins over the session email
    if rescheduled_by is None and session is not None:
        rescheduled_by = session.email

    destination = build_reschedule_destination(
        event_url=event_url,
        reschedule_uid=seat_reference_uid or uid,
        allow_reschedule_for_cancelled_booking=allow_cancelled,
        coep_flag=coep_flag,
        rescheduled_by=rescheduled_by,
        seated=bool(event_type.seats_per_time_slot),
    )
    return _to_response(RescheduleRedirect.to(destination))
