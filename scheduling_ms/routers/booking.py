from fastapi import APIRouter, Depends, status

from scheduling_ms.booking_service import RegularBookingService
from scheduling_ms.container import get_regular_booking_service
from scheduling_ms.deps import CurrentUser, can_read_bookings, can_write_bookings
from scheduling_ms.schemas import BookingCreate, BookingResponse, BookingSlot

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.get("/slots", response_model=list[BookingSlot])
async def get_event_type_slots(
    event_type_id: int,
    _: CurrentUser = Depends(can_read_bookings),
    booking_service: RegularBookingService = Depends(get_regular_booking_service),
) -> list[BookingSlot]:
    """
    Returns occupied time windows for an event type.
    Response contains NO attendee identity.
    """
    return await booking_service.get_occupied_slots(event_type_id)


@router.post("/", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    payload: BookingCreate,
    current_user: CurrentUser = Depends(can_write_bookings),
    booking_service: RegularBookingService = Depends(get_regular_booking_service),
) -> BookingResponse:
    """Book an event type. With `reschedule_uid`, the source booking is cancelled."""
    return await booking_service.create_booking(payload, current_user)
