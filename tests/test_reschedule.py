"""
Endpoint tests for GET /reschedule/{uid}.

Testing strategy:
  - booking_crud is patched per-test with AsyncMock (no DB)
  - UsersClient is injected as a mock via client_factory(..., users_client=mock)
  - requests never follow redirects, so Location can be asserted
"""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

from scheduling_ms import settings
from scheduling_ms.models import BookingStatus
from scheduling_ms.schemas import SeatLookup

from .conftest import noop_users_client
from .factories import (
    BOOKING_UID,
    HOST_ID,
    ORGANIZER_ID,
    OTHER_USER_ID,
    SEAT_REFERENCE_UID,
    booking_event_type,
    make_attendee,
    make_organizer,
    make_profile,
    past,
    reschedule_booking,
    team,
)

CRUD_PATH = "scheduling_ms.routers.reschedule.booking_crud"
EVENT_URL = f"{settings.WEBSITE_URL}/alice/30min"


def _get(client, path: str = f"/reschedule/{BOOKING_UID}", **params):
    return client.get(path, params=params, follow_redirects=False)


def _patched(booking, seat_reference_uid: str | None = None):
    patcher = patch(CRUD_PATH)
    mock_crud = patcher.start()
    uid = booking.uid if booking is not None else BOOKING_UID
    mock_crud.resolve_booking_uid = AsyncMock(
        return_value=SeatLookup(uid=uid, seat_reference_uid=seat_reference_uid)
    )
    mock_crud.get_booking_for_reschedule = AsyncMock(return_value=booking)
    return patcher, mock_crud


class TestRescheduleLookup:
    def test_unknown_booking_returns_404(self, client_factory):
        client = client_factory(None)
        patcher, _ = _patched(None)
        try:
            resp = _get(client)
        finally:
            patcher.stop()
        assert resp.status_code == 404

    def test_active_booking_redirects_to_event_page(self, client_factory):
        client = client_factory(None)
        patcher, mock_crud = _patched(reschedule_booking())
        try:
            resp = _get(client)
        finally:
            patcher.stop()
        assert resp.status_code == 307
        assert resp.headers["location"] == f"{EVENT_URL}?rescheduleUid={BOOKING_UID}"
        mock_crud.get_booking_for_reschedule.assert_awaited_once_with(BOOKING_UID)

    def test_organizer_profile_is_looked_up(self, client_factory):
        users_client = noop_users_client(make_profile(username="alice-renamed"))
        client = client_factory(None, users_client=users_client)
        patcher, _ = _patched(reschedule_booking())
        try:
            resp = _get(client)
        finally:
            patcher.stop()
        users_client.get_profile.assert_awaited_once_with(ORGANIZER_ID)
        assert resp.headers["location"].startswith(
            f"{settings.WEBSITE_URL}/alice-renamed/30min?"
        )

    def test_profile_failure_falls_back_to_event_type_user(self, client_factory):
        client = client_factory(None, users_client=noop_users_client(None))
        patcher, _ = _patched(reschedule_booking())
        try:
            resp = _get(client)
        finally:
            patcher.stop()
        assert resp.status_code == 307
        assert resp.headers["location"].startswith(f"{EVENT_URL}?")

    def test_no_organizer_username_returns_404(self, client_factory):
        client = client_factory(None, users_client=noop_users_client(None))
        booking = reschedule_booking(event_type=booking_event_type(usernames=[]))
        patcher, _ = _patched(booking)
        try:
            resp = _get(client)
        finally:
            patcher.stop()
        assert resp.status_code == 404

    def test_booking_without_organizer_skips_profile_lookup(self, client_factory):
        users_client = noop_users_client(make_profile())
        client = client_factory(None, users_client=users_client)
        patcher, _ = _patched(reschedule_booking(user_id=None))
        try:
            resp = _get(client)
        finally:
            patcher.stop()
        assert resp.status_code == 307
        users_client.get_profile.assert_not_awaited()


class TestReschedulePolicyOutcomes:
    def test_disabled_rescheduling_redirects_to_booking_page(self, client_factory):
        client = client_factory(None)
        booking = reschedule_booking(
            event_type=booking_event_type(disable_rescheduling=True)
        )
        patcher, _ = _patched(booking)
        try:
            resp = _get(client)
        finally:
            patcher.stop()
        assert resp.status_code == 307
        assert resp.headers["location"] == f"/booking/{BOOKING_UID}"

    def test_cancelled_rebookable_redirects_to_bare_event_url(self, client_factory):
        client = client_factory(None)
        booking = reschedule_booking(
            status=BookingStatus.CANCELLED,
            event_type=booking_event_type(allow_rescheduling_cancelled_bookings=True),
        )
        patcher, _ = _patched(booking)
        try:
            resp = _get(client)
        finally:
            patcher.stop()
        assert resp.headers["location"] == EVENT_URL

    def test_rejected_redirects_to_booking_page(self, client_factory):
        client = client_factory(None)
        booking = reschedule_booking(
            status=BookingStatus.REJECTED,
            event_type=booking_event_type(allow_rescheduling_cancelled_bookings=True),
        )
        patcher, _ = _patched(booking)
        try:
            resp = _get(client)
        finally:
            patcher.stop()
        assert resp.headers["location"] == f"/booking/{BOOKING_UID}"

    def test_request_reschedule_of_cancelled_booking_proceeds(self, client_factory):
        client = client_factory(None)
        booking = reschedule_booking(status=BookingStatus.CANCELLED)
        patcher, _ = _patched(booking)
        try:
            resp = _get(client, allowRescheduleForCancelledBooking="true")
        finally:
            patcher.stop()
        assert resp.headers["location"] == (
            f"{EVENT_URL}?rescheduleUid={BOOKING_UID}"
            "&allowRescheduleForCancelledBooking=true"
        )

    def test_override_flag_must_be_literal_true(self, client_factory):
        client = client_factory(None)
        booking = reschedule_booking(status=BookingStatus.CANCELLED)
        patcher, _ = _patched(booking)
        try:
            resp = _get(client, allowRescheduleForCancelledBooking="1")
        finally:
            patcher.stop()
        assert resp.headers["location"] == f"/booking/{BOOKING_UID}"

    def test_past_booking_redirects_to_booking_page(self, client_factory):
        client = client_factory(None)
        patcher, _ = _patched(reschedule_booking(end_time=past(hours=1)))
        try:
            resp = _get(client)
        finally:
            patcher.stop()
        assert resp.headers["location"] == f"/booking/{BOOKING_UID}"

    def test_past_booking_allowed_by_event_type_proceeds(self, client_factory):
        client = client_factory(None)
        booking = reschedule_booking(
            end_time=past(hours=1),
            event_type=booking_event_type(allow_rescheduling_past_bookings=True),
        )
        patcher, _ = _patched(booking)
        try:
            resp = _get(client)
        finally:
            patcher.stop()
        assert resp.headers["location"] == f"{EVENT_URL}?rescheduleUid={BOOKING_UID}"

    def test_booking_without_event_type_or_slug_returns_404(self, client_factory):
        client = client_factory(None)
        patcher, _ = _patched(reschedule_booking(event_type=None))
        try:
            resp = _get(client)
        finally:
            patcher.stop()
        assert resp.status_code == 404


class TestDynamicAndTeamUrls:
    def test_dynamic_group_booking_uses_default_event(self, client_factory):
        client = client_factory(None)
        booking = reschedule_booking(
            event_type=None,
            dynamic_event_slug_ref="60",
            dynamic_group_slug_ref="alice+bob",
        )
        patcher, _ = _patched(booking)
        try:
            resp = _get(client)
        finally:
            patcher.stop()
        assert resp.headers["location"] == (
            f"{settings.WEBSITE_URL}/alice+bob/60?rescheduleUid={BOOKING_UID}"
        )

    def test_team_event_in_organization_uses_org_url(self, client_factory):
        client = client_factory(None)
        booking = reschedule_booking(
            event_type=booking_event_type(
                team=team(parent_id=31, parent_slug="acme"), owner_id=None
            )
        )
        patcher, _ = _patched(booking)
        try:
            resp = _get(client)
        finally:
            patcher.stop()
        org_url = settings.ORG_URL_TEMPLATE.format(slug="acme")
        assert resp.headers["location"] == (
            f"{org_url}/team/sales/30min?rescheduleUid={BOOKING_UID}"
        )


class TestSeatedEvents:
    def _seated(self, **overrides):
        return reschedule_booking(
            event_type=booking_event_type(
                seats_per_time_slot=5, host_user_ids=[HOST_ID], **overrides
            )
        )

    def test_seat_reference_link_proceeds_for_anyone(self, client_factory):
        client = client_factory(None)
        patcher, mock_crud = _patched(self._seated(), seat_reference_uid=SEAT_REFERENCE_UID)
        try:
            resp = _get(client, path=f"/reschedule/{SEAT_REFERENCE_UID}")
        finally:
            patcher.stop()
        mock_crud.resolve_booking_uid.assert_awaited_once_with(SEAT_REFERENCE_UID)
        assert resp.headers["location"] == (
            f"{EVENT_URL}?rescheduleUid={SEAT_REFERENCE_UID}&bookingUid=null"
        )

    def test_anonymous_without_seat_reference_goes_to_login(self, client_factory):
        client = client_factory(None)
        patcher, _ = _patched(self._seated())
        try:
            resp = _get(client)
        finally:
            patcher.stop()
        assert resp.status_code == 307
        assert resp.headers["location"] == (
            f"/auth/login?callbackUrl=/reschedule/{BOOKING_UID}"
        )

    def test_anonymous_with_seat_reference_query_is_not_found(self, client_factory):
        client = client_factory(None)
        patcher, _ = _patched(self._seated())
        try:
            resp = _get(client, seatReferenceUid=SEAT_REFERENCE_UID)
        finally:
            patcher.stop()
        assert resp.status_code == 404

    def test_unrelated_user_is_not_found(self, client_factory):
        client = client_factory(make_attendee(user_id=OTHER_USER_ID))
        patcher, _ = _patched(self._seated())
        try:
            resp = _get(client)
        finally:
            patcher.stop()
        assert resp.status_code == 404

    def test_host_can_reschedule_whole_booking(self, client_factory):
        host = make_organizer(user_id=HOST_ID)
        client = client_factory(host)
        patcher, _ = _patched(self._seated())
        try:
            resp = _get(client)
        finally:
            patcher.stop()
        assert resp.headers["location"] == (
            f"{EVENT_URL}?rescheduleUid={BOOKING_UID}"
            f"&rescheduledBy=organizer{HOST_ID}%40example.com&bookingUid=null"
        )

    def test_event_type_owner_can_reschedule(self, client_factory):
        client = client_factory(make_organizer(user_id=ORGANIZER_ID))
        patcher, _ = _patched(self._seated())
        try:
            resp = _get(client)
        finally:
            patcher.stop()
        assert resp.status_code == 307
        assert "rescheduleUid=abc" in resp.headers["location"]


class TestDestinationParams:
    def test_rescheduled_by_defaults_to_session_email(self, client_factory):
        client = client_factory(make_attendee())
        patcher, _ = _patched(reschedule_booking())
        try:
            resp = _get(client)
        finally:
            patcher.stop()
        assert resp.headers["location"].endswith(
            "&rescheduledBy=attendee201%40example.com"
        )

    def test_rescheduled_by_query_wins_over_session(self, client_factory):
        client = client_factory(make_attendee())
        patcher, _ = _patched(reschedule_booking())
        try:
            resp = _get(client, rescheduledBy="carol@example.com")
        finally:
            patcher.stop()
        assert resp.headers["location"].endswith("&rescheduledBy=carol%40example.com")

    def test_empty_rescheduled_by_query_suppresses_session_email(self, client_factory):
        client = client_factory(make_attendee())
        patcher, _ = _patched(reschedule_booking())
        try:
            resp = _get(client, rescheduledBy="")
        finally:
            patcher.stop()
        assert resp.headers["location"] == f"{EVENT_URL}?rescheduleUid={BOOKING_UID}"

    def test_coep_flag_is_passed_through(self, client_factory):
        client = client_factory(None)
        patcher, _ = _patched(reschedule_booking())
        try:
            resp = client.get(
                f"/reschedule/{BOOKING_UID}?flag.coep=true", follow_redirects=False
            )
        finally:
            patcher.stop()
        assert resp.headers["location"] == (
            f"{EVENT_URL}?rescheduleUid={BOOKING_UID}&flag.coep=true"
        )

    def test_seat_reference_query_becomes_reschedule_uid(self, client_factory):
        client = client_factory(None)
        patcher, _ = _patched(reschedule_booking())
        try:
            resp = _get(client, seatReferenceUid=SEAT_REFERENCE_UID)
        finally:
            patcher.stop()
        assert resp.headers["location"] == (
            f"{EVENT_URL}?rescheduleUid={SEAT_REFERENCE_UID}"
        )
