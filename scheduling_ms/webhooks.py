"""
Webhook payload factory.

Turns internal webhook DTOs into the external payload contract:

    {"triggerEvent": "...", "createdAt": "...", "payload": {...}}

The payload body keys are camelCase, the wire format webhook
consumers already depend on. Delivery is handled elsewhere.
"""

from __future__ import annotations

import copy
from datetime import datetime
from enum import StrEnum
from typing import Any, Callable
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from loguru import logger
from pydantic import BaseModel, Field


class WebhookTriggerEvents(StrEnum):
    BOOKING_CREATED = "BOOKING_CREATED"
    BOOKING_CANCELLED = "BOOKING_CANCELLED"
    BOOKING_REQUESTED = "BOOKING_REQUESTED"
    BOOKING_RESCHEDULED = "BOOKING_RESCHEDULED"
    BOOKING_PAID = "BOOKING_PAID"
    BOOKING_PAYMENT_INITIATED = "BOOKING_PAYMENT_INITIATED"
    BOOKING_NO_SHOW_UPDATED = "BOOKING_NO_SHOW_UPDATED"
    BOOKING_REJECTED = "BOOKING_REJECTED"
    MEETING_STARTED = "MEETING_STARTED"
    OOO_CREATED = "OOO_CREATED"
    FORM_SUBMITTED = "FORM_SUBMITTED"
    FORM_SUBMITTED_NO_EVENT = "FORM_SUBMITTED_NO_EVENT"
    RECORDING_READY = "RECORDING_READY"
    RECORDING_TRANSCRIPTION_GENERATED = "RECORDING_TRANSCRIPTION_GENERATED"


class UnsupportedWebhookTriggerError(Exception):
    """No payload builder exists for the DTO's trigger event."""

    def __init__(self, trigger_event: str):
        super().__init__(f"Unsupported webhook trigger event: {trigger_event}")
        self.trigger_event = trigger_event


# ---------------------------------------------------------------------------
# DTOs
# ---------------------------------------------------------------------------


class WebhookBookingRef(BaseModel):
    id: int
    sms_reminder_number: str | None = None


class WebhookEventDTO(BaseModel):
    trigger_event: WebhookTriggerEvents
    created_at: str


class _BookingEventDTO(WebhookEventDTO):
    evt: dict[str, Any]
    event_type: dict[str, Any] | None = None
    booking: WebhookBookingRef


class BookingCreatedDTO(_BookingEventDTO):
    status: str
    metadata: dict[str, Any] | None = None
    platform_params: dict[str, Any] | None = None


class BookingCancelledDTO(_BookingEventDTO):
    cancelled_by: str | None = None
    cancellation_reason: str | None = None


class BookingRequestedDTO(_BookingEventDTO):
    pass


class BookingRescheduledDTO(_BookingEventDTO):
    reschedule_id: int | None = None
    reschedule_uid: str | None = None
    reschedule_start_time: str | None = None
    reschedule_end_time: str | None = None
    rescheduled_by: str | None = None


class BookingPaidDTO(_BookingEventDTO):
    payment_id: int
    payment_data: dict[str, Any] | None = None


class BookingPaymentInitiatedDTO(_BookingEventDTO):
    payment_id: int
    payment_data: dict[str, Any] | None = None


class BookingNoShowDTO(WebhookEventDTO):
    message: str
    booking_uid: str
    booking_id: int | None = None
    attendees: list[dict[str, Any]] = Field(default_factory=list)


class OOOCreatedDTO(WebhookEventDTO):
    ooo_entry: dict[str, Any]


class FormSubmittedDTO(WebhookEventDTO):
    form: dict[str, Any]
    response: dict[str, Any]


class FormSubmittedNoEventDTO(FormSubmittedDTO):
    pass


class RecordingReadyDTO(WebhookEventDTO):
    download_link: str


class TranscriptionGeneratedDTO(WebhookEventDTO):
    evt: dict[str, Any]
    download_links: dict[str, Any]


class WebhookPayload(BaseModel):
    trigger_event: WebhookTriggerEvents = Field(serialization_alias="triggerEvent")
    created_at: str = Field(serialization_alias="createdAt")
    payload: dict[str, Any]

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


# ---------------------------------------------------------------------------
# Timezone offsets
# ---------------------------------------------------------------------------


def get_utc_offset_by_timezone(time_zone: str | None, date: str | datetime) -> int | None:
    """UTC offset in minutes of `time_zone` at `date`. None for an empty/unknown zone."""
    if not time_zone:
        return None
    try:
        tz = ZoneInfo(time_zone)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown time zone {!r}, skipping UTC offset", time_zone)
        return None

    moment = date if isinstance(date, datetime) else datetime.fromisoformat(date)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=ZoneInfo("UTC"))
    offset = moment.astimezone(tz).utcoffset()
    return int(offset.total_seconds() // 60) if offset is not None else 0


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


class WebhookPayloadFactory:
    @classmethod
    def create_payload(cls, dto: WebhookEventDTO) -> WebhookPayload:
        builder = cls._builders().get(dto.trigger_event)
        if builder is None:
            raise UnsupportedWebhookTriggerError(dto.trigger_event)
        return WebhookPayload(
            trigger_event=dto.trigger_event,
            created_at=dto.created_at,
            payload=builder(dto),
        )

    @classmethod
    def _builders(cls) -> dict[WebhookTriggerEvents, Callable[[Any], dict[str, Any]]]:
        return {
            WebhookTriggerEvents.BOOKING_CREATED: cls._booking_created,
            WebhookTriggerEvents.BOOKING_CANCELLED: cls._booking_cancelled,
            WebhookTriggerEvents.BOOKING_REQUESTED: cls._booking_requested,
            WebhookTriggerEvents.BOOKING_RESCHEDULED: cls._booking_rescheduled,
            WebhookTriggerEvents.BOOKING_PAID: cls._booking_paid,
            WebhookTriggerEvents.BOOKING_PAYMENT_INITIATED: cls._booking_payment_initiated,
            WebhookTriggerEvents.BOOKING_NO_SHOW_UPDATED: cls._booking_no_show,
            WebhookTriggerEvents.OOO_CREATED: cls._ooo_created,
            WebhookTriggerEvents.FORM_SUBMITTED: cls._form_submitted,
            WebhookTriggerEvents.FORM_SUBMITTED_NO_EVENT: cls._form_submitted,
            WebhookTriggerEvents.RECORDING_READY: cls._recording_ready,
            WebhookTriggerEvents.RECORDING_TRANSCRIPTION_GENERATED: cls._transcription_generated,
        }

    # -- booking events -----------------------------------------------------

    @classmethod
    def _booking_created(cls, dto: BookingCreatedDTO) -> dict[str, Any]:
        return cls._event_payload(
            dto.evt,
            dto.event_type,
            bookingId=dto.booking.id,
            eventTypeId=cls._event_type_id(dto.event_type),
            status=dto.status,
            smsReminderNumber=dto.booking.sms_reminder_number or None,
            metadata=dto.metadata,
            **(dto.platform_params or {}),
        )

    @classmethod
    def _booking_cancelled(cls, dto: BookingCancelledDTO) -> dict[str, Any]:
        return cls._event_payload(
            dto.evt,
            dto.event_type,
            bookingId=dto.booking.id,
            eventTypeId=cls._event_type_id(dto.event_type),
            status="CANCELLED",
            smsReminderNumber=dto.booking.sms_reminder_number or None,
            cancelledBy=dto.cancelled_by,
            cancellationReason=dto.cancellation_reason,
        )

    @classmethod
    def _booking_requested(cls, dto: BookingRequestedDTO) -> dict[str, Any]:
        return cls._event_payload(
            dto.evt,
            dto.event_type,
            bookingId=dto.booking.id,
            eventTypeId=cls._event_type_id(dto.event_type),
            status="PENDING",
        )

    @classmethod
    def _booking_rescheduled(cls, dto: BookingRescheduledDTO) -> dict[str, Any]:
        return cls._event_payload(
            dto.evt,
            dto.event_type,
            bookingId=dto.booking.id,
            eventTypeId=cls._event_type_id(dto.event_type),
            status="ACCEPTED",
            smsReminderNumber=dto.booking.sms_reminder_number or None,
            rescheduleId=dto.reschedule_id,
            rescheduleUid=dto.reschedule_uid,
            rescheduleStartTime=dto.reschedule_start_time,
            rescheduleEndTime=dto.reschedule_end_time,
            rescheduledBy=dto.rescheduled_by,
        )

    @classmethod
    def _booking_paid(cls, dto: BookingPaidDTO) -> dict[str, Any]:
        return cls._event_payload(
            dto.evt,
            dto.event_type,
            bookingId=dto.booking.id,
            eventTypeId=cls._event_type_id(dto.event_type),
            status="ACCEPTED",
            paymentId=dto.payment_id,
            paymentData=dto.payment_data,
        )

    @classmethod
    def _booking_payment_initiated(cls, dto: BookingPaymentInitiatedDTO) -> dict[str, Any]:
        # Payment-initiated consumers get the whole booking reference, not bookingId
        return cls._event_payload(
            dto.evt,
            dto.event_type,
            booking={
                "id": dto.booking.id,
                "smsReminderNumber": dto.booking.sms_reminder_number,
            },
            status="PENDING",
            paymentId=dto.payment_id,
            paymentData=dto.payment_data,
        )

    # -- non-event payloads -------------------------------------------------

    @staticmethod
    def _booking_no_show(dto: BookingNoShowDTO) -> dict[str, Any]:
        return {
            "message": dto.message,
            "bookingUid": dto.booking_uid,
            "bookingId": dto.booking_id,
            "attendees": copy.deepcopy(dto.attendees),
        }

    @staticmethod
    def _ooo_created(dto: OOOCreatedDTO) -> dict[str, Any]:
        return {"oooEntry": copy.deepcopy(dto.ooo_entry)}

    @staticmethod
    def _form_submitted(dto: FormSubmittedDTO) -> dict[str, Any]:
        return {"form": copy.deepcopy(dto.form), "response": copy.deepcopy(dto.response)}

    @staticmethod
    def _recording_ready(dto: RecordingReadyDTO) -> dict[str, Any]:
        return {"downloadLink": dto.download_link}

    @classmethod
    def _transcription_generated(cls, dto: TranscriptionGeneratedDTO) -> dict[str, Any]:
        return cls._event_payload(dto.evt, None, downloadLinks=dto.download_links)

    # -- helpers ------------------------------------------------------------

    @staticmethod
    def _event_type_id(event_type: dict[str, Any] | None) -> int | None:
        return event_type.get("id") if event_type else None

    @classmethod
    def _event_payload(
        cls,
        evt: dict[str, Any],
        event_type: dict[str, Any] | None,
        **additional: Any,
    ) -> dict[str, Any]:
        """Calendar event + event type summary + trigger-specific fields."""
        payload = cls._with_utc_offsets(evt)

        if event_type:
            for key in ("title", "description", "price", "currency", "length"):
                if key in event_type:
                    payload[cls._EVENT_TYPE_KEYS[key]] = event_type[key]
        payload["requiresConfirmation"] = (
            event_type.get("requiresConfirmation") if event_type else None
        ) or None

        payload.update({k: v for k, v in additional.items() if v is not None})
        return payload

    _EVENT_TYPE_KEYS = {
        "title": "eventTitle",
        "description": "eventDescription",
        "price": "price",
        "currency": "currency",
        "length": "length",
    }

    @staticmethod
    def _with_utc_offsets(evt: dict[str, Any]) -> dict[str, Any]:
        event = copy.deepcopy(evt)
        start_time = event.get("startTime")
        if not start_time:
            return event

        organizer = event.get("organizer")
        if organizer and organizer.get("timeZone"):
            organizer["utcOffset"] = get_utc_offset_by_timezone(
                organizer["timeZone"], start_time
            )

        if event.get("attendees"):
            event["attendees"] = [
                {
                    **attendee,
                    "utcOffset": get_utc_offset_by_timezone(
                        attendee.get("timeZone"), start_time
                    ),
                }
                for attendee in event["attendees"]
            ]
        return event
