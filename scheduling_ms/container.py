"""
Service wiring.

Every provider is cached so the process shares one instance of each
collaborator. Routes receive services through FastAPI `Depends`, which also
makes them overridable in tests via `app.dependency_overrides`.
"""

from functools import lru_cache

from scheduling_ms.booking_service import RegularBookingService
from scheduling_ms.cache import CacheService
from scheduling_ms.crud import (
    BookingCRUD,
    EventTypeCRUD,
    FeaturesCRUD,
    booking_crud,
    event_type_crud,
    features_crud,
)
from scheduling_ms.limits import (
    CheckBookingAndDurationLimitsService,
    CheckBookingLimitsService,
)


def get_booking_repository() -> BookingCRUD:
    return booking_crud


def get_event_type_repository() -> EventTypeCRUD:
    return event_type_crud


def get_features_repository() -> FeaturesCRUD:
    return features_crud


@lru_cache(maxsize=1)
def get_cache_service() -> CacheService:
    return CacheService(features_repository=get_features_repository())


@lru_cache(maxsize=1)
def get_check_booking_limits_service() -> CheckBookingLimitsService:
    return CheckBookingLimitsService(booking_repository=get_booking_repository())


@lru_cache(maxsize=1)
def get_check_booking_and_duration_limits_service() -> (
    CheckBookingAndDurationLimitsService
):
    return CheckBookingAndDurationLimitsService(
        check_booking_limits_service=get_check_booking_limits_service(),
        booking_repository=get_booking_repository(),
    )


@lru_cache(maxsize=1)
def get_regular_booking_service() -> RegularBookingService:
    return RegularBookingService(
        cache_service=get_cache_service(),
        check_booking_and_duration_limits_service=(
            get_check_booking_and_duration_limits_service()
        ),
        booking_repository=get_booking_repository(),
        event_type_repository=get_event_type_repository(),
    )
