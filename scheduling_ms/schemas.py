from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal
from uuid import UUID

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from scheduling_ms.models import BookingStatus, FilterSegmentScope

# ---------------------------------------------------------------------------
# Reschedule policy inputs / outcomes
# ---------------------------------------------------------------------------


class RescheduleEventTypeFlags(BaseModel):
    """Reschedule flags of an event type. Absent (None) means disallowed."""

    disable_rescheduling: bool = False
    allow_rescheduling_past_bookings: bool = False
    allow_rescheduling_cancelled_bookings: bool = False

    model_config = ConfigDict(from_attributes=True)

    @field_validator(
        "disable_rescheduling",
        "allow_rescheduling_past_bookings",
        "allow_rescheduling_cancelled_bookings",
        mode="before",
    )
    @classmethod
    def none_means_disallowed(cls, v: bool | None) -> bool:
        return False if v is None else v


class EventTypeTeam(BaseModel):
    id: int
    slug: str | None = None
    parent_id: int | None = None
    parent_slug: str | None = None  # organization slug

    model_config = ConfigDict(from_attributes=True)


class BookingEventType(RescheduleEventTypeFlags):
    """Event type as needed by the reschedule page, stored or default."""

    id: int | None = None
    title: str
    slug: str
    length: int
    seats_per_time_slot: int | None = None
    owner_id: int | None = None
    team: EventTypeTeam | None = None
    host_user_ids: list[int] = Field(default_factory=list)
    usernames: list[str] = Field(default_factory=list)


class RescheduleBookingSnapshot(BaseModel):
    uid: str
    status: BookingStatus
    end_time: datetime | None = None
    event_type: RescheduleEventTypeFlags | None = None
    dynamic_event_slug_ref: str | None = None


class RescheduleValidationInput(BaseModel):
    booking: RescheduleBookingSnapshot
    # Resolved event type (default one for dynamic bookings)
    event_type: RescheduleEventTypeFlags
    event_url: str
    allow_reschedule_for_cancelled_booking: bool = False

    @field_validator("allow_reschedule_for_cancelled_booking", mode="before")
    @classmethod
    def none_is_false(cls, v: bool | None) -> bool:
        return False if v is None else v


class RedirectTarget(BaseModel):
    destination: str
    permanent: bool = False


class RescheduleRedirect(BaseModel):
    redirect: RedirectTarget

    @classmethod
    def to(cls, destination: str) -> RescheduleRedirect:
        return cls(redirect=RedirectTarget(destination=destination, permanent=False))


class RescheduleNotFound(BaseModel):
    not_found: Literal[True] = True


class RescheduleBooking(BaseModel):
    """Booking as loaded for the reschedule page."""

    id: int
    uid: str
    status: BookingStatus
    end_time: datetime | None = None
    user_id: int | None = None
    event_type: BookingEventType | None = None
    dynamic_event_slug_ref: str | None = None
    dynamic_group_slug_ref: str | None = None

    def snapshot(self) -> RescheduleBookingSnapshot:
        return RescheduleBookingSnapshot(
            uid=self.uid,
            status=self.status,
            end_time=self.end_time,
            event_type=self.event_type,
            dynamic_event_slug_ref=self.dynamic_event_slug_ref,
        )


class SeatLookup(BaseModel):
    """Result of resolving a uid that may be a seat reference."""

    uid: str
    seat_reference_uid: str | None = None


class UserProfile(BaseModel):
    """Organizer profile as returned by users-ms."""

    id: int
    username: str | None = None
    organization_id: int | None = None
    organization_slug: str | None = None


# ---------------------------------------------------------------------------
# Bookings
# ---------------------------------------------------------------------------


class BookingCreate(BaseModel):
    event_type_id: int
    start_time: datetime
    attendee_name: str = Field(min_length=1, max_length=255)
    attendee_email: str = Field(min_length=3, max_length=255)
    attendee_time_zone: str = "UTC"
    reschedule_uid: str | None = None
    responses: dict[str, Any] = Field(default_factory=dict)

    @field_validator("start_time", mode="after")
    @classmethod
    def require_timezone(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            raise ValueError("datetime must be timezone-aware (include UTC offset)")
        return v.astimezone(timezone.utc)


class BookingResponse(BaseModel):
    id: int
    uid: str
    title: str
    event_type_id: int | None
    user_id: int | None
    start_time: datetime
    end_time: datetime
    status: BookingStatus
    from_reschedule: str | None = None
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BookingSlot(BaseModel):
    """Minimal occupied slot — reveals no attendee identity."""

    start_time: datetime
    end_time: datetime

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------------
# Viewer
# ---------------------------------------------------------------------------


class ApiKeyResponse(BaseModel):
    id: UUID
    note: str | None
    team_id: int | None
    created_at: datetime
    expires_at: datetime | None
    last_used_at: datetime | None

    model_config = ConfigDict(from_attributes=True)


class EventTypeListItem(BaseModel):
    id: int
    title: str
    slug: str
    length: int

    model_config = ConfigDict(from_attributes=True)


class BulkEventTypesResponse(BaseModel):
    event_types: list[EventTypeListItem]


class FilterSegmentCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    table_identifier: str = Field(min_length=1, max_length=255)
    scope: FilterSegmentScope
    team_id: int | None = None
    active_filters: list[dict[str, Any]] = Field(default_factory=list)
    sorting: list[dict[str, Any]] = Field(default_factory=list)
    column_visibility: dict[str, bool] = Field(default_factory=dict)
    column_sizing: dict[str, int] = Field(default_factory=dict)
    per_page: int = Field(default=10, ge=1, le=100)
    search_term: str | None = None

    @model_validator(mode="after")
    def team_scope_needs_team(self) -> FilterSegmentCreate:
        if self.scope == FilterSegmentScope.TEAM and self.team_id is None:
            raise ValueError("team_id is required for TEAM scope")
        if self.scope == FilterSegmentScope.USER and self.team_id is not None:
            raise ValueError("team_id must not be set for USER scope")
        return self


class FilterSegmentResponse(BaseModel):
    id: int
    name: str
    table_identifier: str
    scope: FilterSegmentScope
    user_id: int
    team_id: int | None
    active_filters: list[dict[str, Any]]
    sorting: list[dict[str, Any]]
    column_visibility: dict[str, bool]
    column_sizing: dict[str, int]
    per_page: int
    search_term: str | None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class FilterSegmentList(BaseModel):
    segments: list[FilterSegmentResponse]
    preferred_segment_id: int | None = None


class TravelScheduleResponse(BaseModel):
    id: int
    time_zone: str
    start_date: datetime
    end_date: datetime | None
    prev_time_zone: str | None

    model_config = ConfigDict(from_attributes=True)
