"""Venue router - FastAPI endpoints for gyms and teams"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ...auth import get_verified_user
from ...database import get_db
from ...models import UserAccount
from .schemas import VenueCreate, VenueDetailResponse, VenueResponse, VenueUpdate
from .service import VenueService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/venues", tags=["Venues"])


def get_venue_service(db: Session = Depends(get_db)) -> VenueService:
    """Dependency injection for VenueService"""
    return VenueService(db)


# ============================================================================
# PUBLIC READS
# ============================================================================


@router.get("", response_model=list[VenueResponse])
async def list_venues(
    search: Optional[str] = Query(None, description="Match on gym name or location"),
    service: VenueService = Depends(get_venue_service),
):
    """List all gyms ordered by name"""
    return [VenueResponse.from_venue(v) for v in service.list_venues(search)]


@router.get("/{venue_id}", response_model=VenueDetailResponse)
async def get_venue(venue_id: str, service: VenueService = Depends(get_venue_service)):
    """Gym details with its weekly schedule and rating"""
    return service.get_venue_detail(venue_id)


# ============================================================================
# WRITES
# ============================================================================


@router.post("", response_model=VenueResponse, status_code=status.HTTP_201_CREATED)
async def create_venue(
    data: VenueCreate,
    current_user: UserAccount = Depends(get_verified_user),
    service: VenueService = Depends(get_venue_service),
):
    """Add a gym. Coordinates are looked up from the location when omitted."""
    venue = await service.create_venue(data, current_user)
    return VenueResponse.from_venue(venue)


@router.patch("/{venue_id}", response_model=VenueResponse)
async def update_venue(
    venue_id: str,
    data: VenueUpdate,
    current_user: UserAccount = Depends(get_verified_user),
    service: VenueService = Depends(get_venue_service),
):
    venue = await service.update_venue(venue_id, data, current_user)
    return VenueResponse.from_venue(venue)


@router.delete("/{venue_id}")
async def delete_venue(
    venue_id: str,
    current_user: UserAccount = Depends(get_verified_user),
    service: VenueService = Depends(get_venue_service),
):
    """Delete a gym along with its schedule and reviews"""
    return service.delete_venue(venue_id, current_user)


__all__ = ["router"]
