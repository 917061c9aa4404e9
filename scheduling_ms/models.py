from enum import StrEnum

from tortoise import fields
from tortoise.models import Model


class BookingStatus(StrEnum):
    CANCELLED = "CANCELLED"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    PENDING = "PENDING"  # awaiting organizer confirmation
    AWAITING_HOST = "AWAITING_HOST"  # instant meeting with no host yet


class MembershipRole(StrEnum):
    MEMBER = "MEMBER"
    ADMIN = "ADMIN"
    OWNER = "OWNER"


class FilterSegmentScope(StrEnum):
    USER = "USER"
    TEAM = "TEAM"


class TimestampedModel(Model):
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:  # type: ignore
        abstract = True


class Team(Model):
    id = fields.IntField(primary_key=True)
    name = fields.CharField(max_length=255)
    slug = fields.CharField(max_length=255, null=True)
    # organizations are teams without a parent
    parent = fields.ForeignKeyField(
        "models.Team", related_name="children", null=True, on_delete=fields.SET_NULL
    )

    class Meta:  # type: ignore
        table = "teams"


class Membership(Model):
    id = fields.IntField(primary_key=True)
    team = fields.ForeignKeyField("models.Team", related_name="memberships")
    user_id = fields.IntField()  # users live in users-ms
    role = fields.CharEnumField(MembershipRole, default=MembershipRole.MEMBER)
    accepted = fields.BooleanField(default=False)

    class Meta:  # type: ignore
        table = "memberships"
        unique_together = (("team", "user_id"),)


class EventType(TimestampedModel):
    id = fields.IntField(primary_key=True)
    title = fields.CharField(max_length=255)
    slug = fields.CharField(max_length=255)
    description = fields.TextField(null=True)
    length = fields.IntField()  # minutes
    hidden = fields.BooleanField(default=False)

    owner_id = fields.IntField(null=True)
    owner_username = fields.CharField(max_length=255, null=True)  # snapshot
    team = fields.ForeignKeyField(
        "models.Team", related_name="event_types", null=True, on_delete=fields.CASCADE
    )

    price = fields.IntField(default=0)  # minor units
    currency = fields.CharField(max_length=3, default="usd")
    requires_confirmation = fields.BooleanField(default=False)
    seats_per_time_slot = fields.IntField(null=True)

    # Reschedule policy flags; NULL means disallowed
    disable_rescheduling = fields.BooleanField(null=True)
    allow_rescheduling_past_bookings = fields.BooleanField(null=True)
    allow_rescheduling_cancelled_bookings = fields.BooleanField(null=True)

    # {"PER_DAY": 2, "PER_WEEK": 5, ...}; duration limits are in minutes
    booking_limits = fields.JSONField(null=True)
    duration_limits = fields.JSONField(null=True)

    class Meta:  # type: ignore
        table = "event_types"
        ordering = ["id"]


class Host(Model):
    id = fields.IntField(primary_key=True)
    event_type = fields.ForeignKeyField("models.EventType", related_name="hosts")
    user_id = fields.IntField()
    is_fixed = fields.BooleanField(default=False)

    class Meta:  # type: ignore
        table = "hosts"
        unique_together = (("event_type", "user_id"),)


class Booking(TimestampedModel):
    id = fields.IntField(primary_key=True)
    uid = fields.CharField(max_length=255, unique=True)
    title = fields.CharField(max_length=255)

    user_id = fields.IntField(null=True)  # organizer
    event_type = fields.ForeignKeyField(
        "models.EventType", related_name="bookings", null=True, on_delete=fields.SET_NULL
    )
    dynamic_event_slug_ref = fields.CharField(max_length=255, null=True)
    dynamic_group_slug_ref = fields.CharField(max_length=255, null=True)

    start_time = fields.DatetimeField()
    end_time = fields.DatetimeField()
    status = fields.CharEnumField(BookingStatus, default=BookingStatus.ACCEPTED)

    responses = fields.JSONField(default=dict)
    sms_reminder_number = fields.CharField(max_length=64, null=True)
    from_reschedule = fields.CharField(max_length=255, null=True)  # source booking uid
    rescheduled = fields.BooleanField(null=True)
    cancellation_reason = fields.TextField(null=True)

    class Meta:  # type: ignore
        table = "bookings"
        ordering = ["-created_at"]


class BookingSeat(Model):
    id = fields.IntField(primary_key=True)
    reference_uid = fields.CharField(max_length=255, unique=True)
    booking = fields.ForeignKeyField("models.Booking", related_name="seats")
    attendee_email = fields.CharField(max_length=255, null=True)
    data = fields.JSONField(default=dict)

    class Meta:  # type: ignore
        table = "booking_seats"


class ApiKey(TimestampedModel):
    id = fields.UUIDField(primary_key=True)
    user_id = fields.IntField()
    team_id = fields.IntField(null=True)
    note = fields.CharField(max_length=255, null=True)
    hashed_key = fields.CharField(max_length=255, unique=True)
    expires_at = fields.DatetimeField(null=True)
    last_used_at = fields.DatetimeField(null=True)

    class Meta:  # type: ignore
        table = "api_keys"
        ordering = ["-created_at"]


class FilterSegment(TimestampedModel):
    id = fields.IntField(primary_key=True)
    name = fields.CharField(max_length=255)
    table_identifier = fields.CharField(max_length=255)
    scope = fields.CharEnumField(FilterSegmentScope, default=FilterSegmentScope.USER)
    user_id = fields.IntField()  # creator
    team = fields.ForeignKeyField(
        "models.Team", related_name="filter_segments", null=True, on_delete=fields.CASCADE
    )

    active_filters = fields.JSONField(default=list)
    sorting = fields.JSONField(default=list)
    column_visibility = fields.JSONField(default=dict)
    column_sizing = fields.JSONField(default=dict)
    per_page = fields.IntField(default=10)
    search_term = fields.CharField(max_length=255, null=True)

    class Meta:  # type: ignore
        table = "filter_segments"
        ordering = ["scope", "name"]


class UserFilterSegmentPreference(Model):
    id = fields.IntField(primary_key=True)
    user_id = fields.IntField()
    table_identifier = fields.CharField(max_length=255)
    segment = fields.ForeignKeyField(
        "models.FilterSegment", related_name="preferences", on_delete=fields.CASCADE
    )

    class Meta:  # type: ignore
        table = "user_filter_segment_preferences"
        unique_together = (("user_id", "table_identifier"),)


class TravelSchedule(Model):
    id = fields.IntField(primary_key=True)
    user_id = fields.IntField()
    time_zone = fields.CharField(max_length=64)
    start_date = fields.DatetimeField()
    end_date = fields.DatetimeField(null=True)
    prev_time_zone = fields.CharField(max_length=64, null=True)

    class Meta:  # type: ignore
        table = "travel_schedules"
        ordering = ["start_date"]


class Feature(Model):
    slug = fields.CharField(max_length=255, primary_key=True)
    enabled = fields.BooleanField(default=False)  # globally
    description = fields.TextField(null=True)

    class Meta:  # type: ignore
        table = "features"


class TeamFeature(Model):
    id = fields.IntField(primary_key=True)
    team = fields.ForeignKeyField("models.Team", related_name="features")
    feature = fields.ForeignKeyField("models.Feature", related_name="teams")
    assigned_by = fields.CharField(max_length=255)
    assigned_at = fields.DatetimeField(auto_now_add=True)

    class Meta:  # type: ignore
        table = "team_features"
        unique_together = (("team", "feature"),)


class UserFeature(Model):
    id = fields.IntField(primary_key=True)
    user_id = fields.IntField()
    feature = fields.ForeignKeyField("models.Feature", related_name="users")
    assigned_by = fields.CharField(max_length=255)
    assigned_at = fields.DatetimeField(auto_now_add=True)

    class Meta:  # type: ignore
        table = "user_features"
        unique_together = (("user_id", "feature"),)
