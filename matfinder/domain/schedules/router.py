"""Schedule router - schedule entries and mat times"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from ...auth import get_verified_user
from ...database import get_db
from ...models import DayOfWeek, UserAccount
from .schemas import (
    ScheduleEntryCreate,
    ScheduleEntryResponse,
    TimeSlotCreate,
    TimeSlotResponse,
    TimeSlotUpdate,
)
from .service import ScheduleService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Schedules"])


def get_schedule_service(db: Session = Depends(get_db)) -> ScheduleService:
    """Dependency injection for ScheduleService"""
    return ScheduleService(db)


def parse_day(day: str) -> DayOfWeek:
    try:
        return DayOfWeek.from_value(day)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e


# ============================================================================
# SCHEDULE ENTRIES
# ============================================================================


@router.get("/venues/{venue_id}/schedule", response_model=list[ScheduleEntryResponse])
async def get_schedule(
    venue_id: str,
    day: Optional[str] = Query(None, description="Limit to one day, e.g. 'monday'"),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Weekly schedule for a gym, Sunday first"""
    day_filter = parse_day(day) if day else None
    entries = service.get_schedule(venue_id, day_filter)
    return [ScheduleEntryResponse.from_entry(e) for e in entries]


@router.post("/venues/{venue_id}/schedule", response_model=ScheduleEntryResponse)
async def create_schedule_entry(
    venue_id: str,
    data: ScheduleEntryCreate,
    response: Response,
    current_user: UserAccount = Depends(get_verified_user),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Fetch or create the gym's entry for a day (201 when newly created)"""
    entry, created = service.get_or_create_entry(venue_id, data.day)
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return ScheduleEntryResponse.from_entry(entry)


@router.delete("/schedule-entries/{entry_id}")
async def delete_schedule_entry(
    entry_id: str,
    current_user: UserAccount = Depends(get_verified_user),
    service: ScheduleService = Depends(get_schedule_service),
):
    return service.delete_entry(entry_id)


# ============================================================================
# TIME SLOTS
# ============================================================================


@router.post(
    "/venues/{venue_id}/schedule/{day}/time-slots",
    response_model=TimeSlotResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_time_slot(
    venue_id: str,
    day: str,
    data: TimeSlotCreate,
    current_user: UserAccount = Depends(get_verified_user),
    service: ScheduleService = Depends(get_schedule_service),
):
    slot = service.add_time_slot(venue_id, parse_day(day), data)
    return TimeSlotResponse.from_slot(slot)


@router.patch("/time-slots/{slot_id}", response_model=TimeSlotResponse)
async def update_time_slot(
    slot_id: str,
    data: TimeSlotUpdate,
    current_user: UserAccount = Depends(get_verified_user),
    service: ScheduleService = Depends(get_schedule_service),
):
    slot = service.update_time_slot(slot_id, data)
    return TimeSlotResponse.from_slot(slot)


@router.delete("/time-slots/{slot_id}")
async def delete_time_slot(
    slot_id: str,
    current_user: UserAccount = Depends(get_verified_user),
    service: ScheduleService = Depends(get_schedule_service),
):
    return service.delete_time_slot(slot_id)


__all__ = ["router"]
