"""Search router - open mats by day and location"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ...config import DEFAULT_SEARCH_RADIUS_MILES, MAX_SEARCH_RADIUS_MILES
from ...database import get_db
from ...rate_limiter import rate_limit_search
from ...services.geocoding import GeocodingError, geocode_address
from ..schedules.router import parse_day
from .schemas import NearbySearchResponse, OpenMatSearchResponse, SearchCenter, SlotFilters
from .service import SearchService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/search", tags=["Search"], dependencies=[Depends(rate_limit_search)])


def get_search_service(db: Session = Depends(get_db)) -> SearchService:
    """Dependency injection for SearchService"""
    return SearchService(db)


async def resolve_center(
    latitude: Optional[float], longitude: Optional[float], address: Optional[str]
) -> Optional[SearchCenter]:
    """Search center from explicit coordinates or a geocoded address / zip code"""
    if (latitude is None) != (longitude is None):
        raise HTTPException(status_code=422, detail="Latitude and longitude must be provided together")
    if latitude is not None:
        return SearchCenter(latitude=latitude, longitude=longitude)
    if address and address.strip():
        try:
            result = await geocode_address(address)
        except GeocodingError as e:
            raise HTTPException(status_code=422, detail=str(e)) from e
        return SearchCenter(
            latitude=result.latitude, longitude=result.longitude, label=result.display_name
        )
    return None


@router.get("/open-mats", response_model=OpenMatSearchResponse)
async def search_open_mats(
    day: str = Query(..., description="Day of week, e.g. 'monday'"),
    latitude: Optional[float] = Query(None, ge=-90, le=90),
    longitude: Optional[float] = Query(None, ge=-180, le=180),
    address: Optional[str] = Query(None, description="Address or zip code to search around"),
    radius: float = Query(DEFAULT_SEARCH_RADIUS_MILES, gt=0, le=MAX_SEARCH_RADIUS_MILES),
    gi: Optional[bool] = None,
    no_gi: Optional[bool] = None,
    open_mat: Optional[bool] = None,
    kids: Optional[bool] = None,
    good_for_beginners: Optional[bool] = None,
    service: SearchService = Depends(get_search_service),
):
    """Gyms with mat times on the given day, optionally within `radius` miles"""
    center = await resolve_center(latitude, longitude, address)
    filters = SlotFilters(
        gi=gi, noGi=no_gi, openMat=open_mat, kids=kids, goodForBeginners=good_for_beginners
    )
    return service.find_open_mats(parse_day(day), center, radius, filters)


@router.get("/nearby", response_model=NearbySearchResponse)
async def search_nearby(
    latitude: Optional[float] = Query(None, ge=-90, le=90),
    longitude: Optional[float] = Query(None, ge=-180, le=180),
    address: Optional[str] = Query(None),
    radius: float = Query(DEFAULT_SEARCH_RADIUS_MILES, gt=0, le=MAX_SEARCH_RADIUS_MILES),
    service: SearchService = Depends(get_search_service),
):
    """Gyms within `radius` miles of a point, nearest first"""
    center = await resolve_center(latitude, longitude, address)
    if center is None:
        raise HTTPException(status_code=422, detail="Provide latitude/longitude or an address")
    return service.find_nearby_venues(center, radius)


__all__ = ["router"]
