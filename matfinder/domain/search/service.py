"""
Search service - the open mat query layer

Answers "which gyms have open mats on day X within Y miles of Z".
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ...cache import build_search_key, search_cache
from ...models import DayOfWeek, Venue
from ...shared.geo import bounding_box, haversine_miles
from ..schedules.repository import ScheduleRepository
from ..schedules.schemas import TimeSlotResponse
from ..venues.repository import VenueRepository
from ..venues.schemas import VenueResponse
from .schemas import (
    NearbySearchResponse,
    NearbyVenueResult,
    OpenMatResult,
    OpenMatSearchResponse,
    SearchCenter,
    SlotFilters,
)

logger = logging.getLogger(__name__)


class SearchService:
    """Service layer for venue and schedule searches"""

    def __init__(self, db: Session):
        self.db = db
        self.venue_repo = VenueRepository()
        self.schedule_repo = ScheduleRepository()

    def _venues_within(self, center: SearchCenter, radius_miles: float) -> dict[str, tuple[Venue, float]]:
        """Venues within the radius keyed by ID, with their distance"""
        box = bounding_box(center.latitude, center.longitude, radius_miles)
        if box.crosses_antimeridian:
            candidates = self.venue_repo.get_venues_in_box(self.db, box.min_lat, box.max_lat, None, None)
        else:
            candidates = self.venue_repo.get_venues_in_box(
                self.db, box.min_lat, box.max_lat, box.min_lng, box.max_lng
            )

        within = {}
        for venue in candidates:
            distance = haversine_miles(center.latitude, center.longitude, venue.latitude, venue.longitude)
            if distance <= radius_miles:
                within[venue.id] = (venue, distance)
        return within

    def find_open_mats(
        self,
        day: DayOfWeek,
        center: Optional[SearchCenter] = None,
        radius_miles: Optional[float] = None,
        filters: Optional[SlotFilters] = None,
    ) -> OpenMatSearchResponse:
        """
        Gyms with at least one matching mat time on `day`.

        With a center, only gyms within `radius_miles` are returned, nearest
        first; without one, every matching gym is returned by name.
        """
        filters = filters or SlotFilters()

        cache_key = build_search_key(
            "open_mats",
            day=day.value,
            lat=center.latitude if center else "",
            lng=center.longitude if center else "",
            radius=radius_miles if center else "",
            **filters.cache_params(),
        )
        cached = search_cache.get(cache_key)
        if cached is not None:
            # The label may differ between requests that geocode to the same point
            return OpenMatSearchResponse(**{**cached, "center": center})

        nearby = self._venues_within(center, radius_miles) if center else None

        results: list[OpenMatResult] = []
        for entry in self.schedule_repo.get_entries_for_day(self.db, day):
            distance = None
            if nearby is not None:
                if entry.venue_id not in nearby:
                    continue
                distance = nearby[entry.venue_id][1]

            slots = sorted((s for s in entry.time_slots if filters.matches(s)), key=lambda s: s.time)
            if not slots:
                continue

            results.append(
                OpenMatResult(
                    venue=VenueResponse.from_venue(entry.venue),
                    day=day,
                    scheduleEntryId=entry.id,
                    distanceMiles=round(distance, 2) if distance is not None else None,
                    timeSlots=[TimeSlotResponse.from_slot(s) for s in slots],
                )
            )

        if center:
            results.sort(key=lambda r: (r.distanceMiles, r.venue.name.lower()))
        else:
            results.sort(key=lambda r: r.venue.name.lower())

        response = OpenMatSearchResponse(
            day=day,
            center=center,
            radiusMiles=radius_miles if center else None,
            results=results,
        )
        logger.info(f"🔍 Open mat search for {day.value}: {len(results)} gyms")
        search_cache.set(cache_key, response.model_dump(mode="json"))
        return response

    def find_nearby_venues(self, center: SearchCenter, radius_miles: float) -> NearbySearchResponse:
        """All gyms within the radius, nearest first"""
        cache_key = build_search_key(
            "nearby", lat=center.latitude, lng=center.longitude, radius=radius_miles
        )
        cached = search_cache.get(cache_key)
        if cached is not None:
            return NearbySearchResponse(**{**cached, "center": center})

        within = self._venues_within(center, radius_miles)
        results = [
            NearbyVenueResult(venue=VenueResponse.from_venue(venue), distanceMiles=round(distance, 2))
            for venue, distance in sorted(within.values(), key=lambda item: (item[1], item[0].name.lower()))
        ]

        response = NearbySearchResponse(center=center, radiusMiles=radius_miles, results=results)
        search_cache.set(cache_key, response.model_dump(mode="json"))
        return response
