from __future__ import annotations

from datetime import datetime, timezone
from urllib.parse import urlencode

from scheduling_ms.models import BookingStatus
from scheduling_ms.schemas import (
    RescheduleNotFound,
    RescheduleRedirect,
    RescheduleValidationInput,
)

_NON_RESCHEDULABLE_STATUSES = {BookingStatus.CANCELLED, BookingStatus.REJECTED}

RescheduleValidationResult = RescheduleRedirect | RescheduleNotFound | None


def _booking_page(uid: str) -> str:
    return f"/booking/{uid}"


def _to_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def determine_reschedule_redirect(
    data: RescheduleValidationInput,
    now: datetime | None = None,
) -> RescheduleValidationResult:
    """
    Decide whether a reschedule request must be redirected away.

    Returns None when the reschedule may proceed. Guards are evaluated in
    order and the first match wins:
      1. rescheduling disabled on the event type   -> booking page
      2. cancelled/rejected, no override flag      -> eventUrl for cancelled
                                                      bookings whose event type
                                                      allows it, else booking page
      3. no event type and no dynamic slug         -> not found
      4. booking ended and past bookings disallowed -> booking page
    """
    booking = data.booking
    booking_event_type = booking.event_type

    if booking_event_type is not None and booking_event_type.disable_rescheduling:
        return RescheduleRedirect.to(_booking_page(booking.uid))

    if (
        booking.status in _NON_RESCHEDULABLE_STATUSES
        and not data.allow_reschedule_for_cancelled_booking
    ):
        rebookable = (
            booking.status == BookingStatus.CANCELLED
            and booking_event_type is not None
            and booking_event_type.allow_rescheduling_cancelled_bookings
        )
        return RescheduleRedirect.to(
            data.event_url if rebookable else _booking_page(booking.uid)
        )

    if booking_event_type is None and not booking.dynamic_event_slug_ref:
        return RescheduleNotFound()

    now = _to_utc(now) if now is not None else datetime.now(timezone.utc)
    is_past = booking.end_time is not None and _to_utc(booking.end_time) < now
    if is_past and not data.event_type.allow_rescheduling_past_bookings:
        return RescheduleRedirect.to(_booking_page(booking.uid))

    return None


def build_reschedule_destination(
    event_url: str,
    reschedule_uid: str,
    allow_reschedule_for_cancelled_booking: bool = False,
    coep_flag: str | None = None,
    rescheduled_by: str | None = None,
    seated: bool = False,
) -> str:
    """Booking page URL that continues the reschedule of `reschedule_uid`."""
    params = {"rescheduleUid": reschedule_uid}
    if allow_reschedule_for_cancelled_booking:
        params["allowRescheduleForCancelledBooking"] = "true"
    if coep_flag:
        params["flag.coep"] = coep_flag
    if rescheduled_by:
        params["rescheduledBy"] = rescheduled_by

    destination = f"{event_url}?{urlencode(params)}"
    if seated:
        destination += "&bookingUid=null"
    return destination
