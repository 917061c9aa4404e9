"""
Shared pytest fixtures available to every test file automatically.
No imports needed in test files — pytest discovers this by convention.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from scheduling_ms.container import get_regular_booking_service
from scheduling_ms.deps import (
    can_read_api_keys,
    can_read_bookings,
    can_read_event_types,
    can_read_filter_segments,
    can_read_travel_schedules,
    can_write_bookings,
    can_write_filter_segments,
    get_current_user,
    get_optional_user,
    get_users_client,
)
from scheduling_ms.routers import booking, reschedule, viewer

from .factories import make_attendee, make_organizer, make_profile

SCOPE_DEPS = (
    can_read_api_keys,
    can_read_bookings,
    can_read_event_types,
    can_read_filter_segments,
    can_read_travel_schedules,
    can_write_bookings,
    can_write_filter_segments,
    get_current_user,
)

# ---------------------------------------------------------------------------
# Default no-op mocks — prevent real HTTP / DB calls in tests
# ---------------------------------------------------------------------------


def noop_users_client(profile=None):
    mock = MagicMock()
    mock.get_profile = AsyncMock(return_value=profile)
    return mock


def noop_booking_service():
    mock = MagicMock()
    mock.create_booking = AsyncMock()
    mock.get_occupied_slots = AsyncMock(return_value=[])
    return mock


# ---------------------------------------------------------------------------
# App builders
# ---------------------------------------------------------------------------


def bare_app() -> FastAPI:
    app = FastAPI()
    app.include_router(booking.router)
    app.include_router(reschedule.router)
    app.include_router(viewer.router)
    return app


def build_app(current_user, users_client=None, booking_service=None) -> FastAPI:
    """
    Fresh FastAPI app with auth/scope dependencies overridden to return
    `current_user` unconditionally (None means an anonymous visitor).

    Pass `users_client` / `booking_service` to inject custom mocks.
    """
    app = bare_app()

    async def _user():
        return current_user

    for dep in SCOPE_DEPS:
        app.dependency_overrides[dep] = _user
    app.dependency_overrides[get_optional_user] = _user

    uc = users_client if users_client is not None else noop_users_client(make_profile())
    bs = booking_service if booking_service is not None else noop_booking_service()
    app.dependency_overrides[get_users_client] = lambda: uc
    app.dependency_overrides[get_regular_booking_service] = lambda: bs

    return app


# ---------------------------------------------------------------------------
# Reusable client fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def organizer_client():
    return TestClient(build_app(make_organizer()), raise_server_exceptions=True)


@pytest.fixture()
def attendee_client():
    return TestClient(build_app(make_attendee()), raise_server_exceptions=True)


@pytest.fixture()
def anon_app():
    """
    Bare app with NO dependency overrides.
    Use this when you want real scope/auth deps to run so you can assert 401/403/422.
    """
    return bare_app()


@pytest.fixture()
def client_factory():
    def _make(current_user, users_client=None, booking_service=None) -> TestClient:
        return TestClient(
            build_app(
                current_user,
                users_client=users_client,
                booking_service=booking_service,
            ),
            raise_server_exceptions=True,
        )

    return _make
