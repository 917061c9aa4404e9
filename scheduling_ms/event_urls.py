from __future__ import annotations

from scheduling_ms import settings
from scheduling_ms.schemas import BookingEventType, UserProfile

DYNAMIC_EVENT_SLUG = "dynamic"
_DEFAULT_LENGTHS = (15, 30, 60, 90)


class OrganizerNotFoundError(Exception):
    """Raised when no username is known to build a personal event URL."""


def _default_events() -> dict[str, BookingEventType]:
    events = {
        DYNAMIC_EVENT_SLUG: BookingEventType(
            title="Group Meeting", slug=DYNAMIC_EVENT_SLUG, length=30
        )
    }
    for length in _DEFAULT_LENGTHS:
        events[str(length)] = BookingEventType(
            title=f"{length} min", slug=str(length), length=length
        )
    return events


DEFAULT_EVENTS = _default_events()


def get_default_event(slug: str | None) -> BookingEventType:
    """Synthetic event type backing a dynamic booking. Unknown slugs get `dynamic`."""
    event = DEFAULT_EVENTS.get(slug or "", DEFAULT_EVENTS[DYNAMIC_EVENT_SLUG])
    return event.model_copy(deep=True)


def get_booker_base_url(organization_slug: str | None) -> str:
    if organization_slug:
        return settings.ORG_URL_TEMPLATE.format(slug=organization_slug).rstrip("/")
    return settings.WEBSITE_URL


def build_event_url_from_booking(
    event_type: BookingEventType,
    dynamic_group_slug_ref: str | None,
    profile: UserProfile | None,
) -> str:
    """Canonical public booking page of an event type."""
    team = event_type.team
    org_slug = team.parent_slug if team else (profile.organization_slug if profile else None)
    base_url = get_booker_base_url(org_slug)

    if dynamic_group_slug_ref:
        return f"{base_url}/{dynamic_group_slug_ref}/{event_type.slug}"

    if team is not None and team.slug:
        return f"{base_url}/team/{team.slug}/{event_type.slug}"

    username = profile.username if profile and profile.username else None
    if username is None and event_type.usernames:
        username = event_type.usernames[0]
    if username is None:
        raise OrganizerNotFoundError("Booking organizer user not found")
    return f"{base_url}/{username}/{event_type.slug}"
