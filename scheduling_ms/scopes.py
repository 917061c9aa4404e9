from enum import StrEnum


class SchedulingScope(StrEnum):
    # Booker / organizer scopes
    BOOKINGS_READ = "bookings:read"  # view occupied slots
    BOOKINGS_WRITE = "bookings:write"  # create or reschedule a booking

    # Viewer scopes
    API_KEYS_READ = "api_keys:read"
    EVENT_TYPES_READ = "event_types:read"
    FILTER_SEGMENTS_READ = "filter_segments:read"
    FILTER_SEGMENTS_WRITE = "filter_segments:write"
    TRAVEL_SCHEDULES_READ = "travel_schedules:read"


SCHEDULING_SCOPE_DESCRIPTIONS: dict[str, str] = {
    SchedulingScope.BOOKINGS_READ: "View occupied slots of an event type.",
    SchedulingScope.BOOKINGS_WRITE: "Create a booking or reschedule an existing one.",
    SchedulingScope.API_KEYS_READ: "List your own API keys.",
    SchedulingScope.EVENT_TYPES_READ: "List your personal event types.",
    SchedulingScope.FILTER_SEGMENTS_READ: "List saved table filter segments.",
    SchedulingScope.FILTER_SEGMENTS_WRITE: "Save a table filter segment.",
    SchedulingScope.TRAVEL_SCHEDULES_READ: "List your travel schedules.",
}
