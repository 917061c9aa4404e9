from fastapi import APIRouter, Depends, Query, status

from scheduling_ms.crud import (
    api_key_crud,
    event_type_crud,
    filter_segment_crud,
    travel_schedule_crud,
)
from scheduling_ms.deps import (
    CurrentUser,
    can_read_api_keys,
    can_read_event_types,
    can_read_filter_segments,
    can_read_travel_schedules,
    can_write_filter_segments,
)
from scheduling_ms.schemas import (
    ApiKeyResponse,
    BulkEventTypesResponse,
    FilterSegmentCreate,
    FilterSegmentList,
    FilterSegmentResponse,
    TravelScheduleResponse,
)

router = APIRouter(prefix="/viewer", tags=["viewer"])


@router.get("/api-keys", response_model=list[ApiKeyResponse])
async def list_api_keys(
    current_user: CurrentUser = Depends(can_read_api_keys),
) -> list[ApiKeyResponse]:
    return await api_key_crud.list_for_user(current_user.id)


@router.get("/event-types/bulk", response_model=BulkEventTypesResponse)
async def bulk_event_fetch(
    current_user: CurrentUser = Depends(can_read_event_types),
) -> BulkEventTypesResponse:
    """Personal event types only. Team event types are managed per team."""
    event_types = await event_type_crud.list_personal_event_types(current_user.id)
    return BulkEventTypesResponse(event_types=event_types)


@router.get("/filter-segments", response_model=FilterSegmentList)
async def list_filter_segments(
    table_identifier: str = Query(min_length=1),
    current_user: CurrentUser = Depends(can_read_filter_segments),
) -> FilterSegmentList:
    return await filter_segment_crud.list_for_user(current_user.id, table_identifier)


@router.post(
    "/filter-segments",
    response_model=FilterSegmentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_filter_segment(
    payload: FilterSegmentCreate,
    current_user: CurrentUser = Depends(can_write_filter_segments),
) -> FilterSegmentResponse:
    return await filter_segment_crud.create(current_user.id, payload)


@router.get("/travel-schedules", response_model=list[TravelScheduleResponse])
async def list_travel_schedules(
    current_user: CurrentUser = Depends(can_read_travel_schedules),
) -> list[TravelScheduleResponse]:
    return await travel_schedule_crud.list_for_user(current_user.id)
