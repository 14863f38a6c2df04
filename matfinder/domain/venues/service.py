"""Venue service - Business logic for gyms and teams"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...auth import user_identifier
from ...cache import invalidate_search_cache
from ...models import UserAccount, Venue
from ...services.geocoding import GeocodingError, geocode_address
from ..reviews.service import ReviewService
from ..schedules.schemas import ScheduleEntryResponse
from .repository import VenueRepository
from .schemas import VenueCreate, VenueDetailResponse, VenueResponse, VenueUpdate

logger = logging.getLogger(__name__)


class VenueService:
    """Service layer for venue business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = VenueRepository()

    def list_venues(self, search: Optional[str] = None) -> list[Venue]:
        return self.repo.list_venues(self.db, search)

    def get_venue(self, venue_id: str) -> Venue:
        venue = self.repo.get_venue_by_id(self.db, venue_id)
        if not venue:
            raise HTTPException(status_code=404, detail="Gym not found")
        return venue

    def get_venue_detail(self, venue_id: str) -> VenueDetailResponse:
        venue = self.repo.get_venue_with_schedule(self.db, venue_id)
        if not venue:
            raise HTTPException(status_code=404, detail="Gym not found")

        average, count = ReviewService(self.db).rating_summary(venue.id)
        entries = sorted(venue.schedule_entries, key=lambda e: e.day_of_week.number)
        return VenueDetailResponse(
            **VenueResponse.from_venue(venue).model_dump(),
            schedule=[ScheduleEntryResponse.from_entry(e) for e in entries],
            averageRating=average,
            reviewCount=count,
        )

    def _ensure_unique_name(self, name: str, exclude_id: Optional[str] = None) -> None:
        existing = self.repo.get_venue_by_name(self.db, name)
        if existing and existing.id != exclude_id:
            logger.warning(f"⚠️ Duplicate gym name rejected: {name}")
            raise HTTPException(status_code=409, detail="A gym with this name already exists")

    @staticmethod
    def _ensure_can_modify(venue: Venue, user: UserAccount) -> None:
        """Venues are owned by their creator; admins may modify any"""
        if user.is_admin:
            return
        if venue.created_by_user_id and venue.created_by_user_id in (user.id, user.firebase_uid):
            return
        raise HTTPException(status_code=403, detail="Only the gym's creator can modify it")

    @staticmethod
    async def _geocode(location: str):
        try:
            return await geocode_address(location)
        except GeocodingError as e:
            raise HTTPException(status_code=422, detail=f"Geocoding failed: {e}") from e

    async def create_venue(self, data: VenueCreate, user: UserAccount) -> Venue:
        logger.info(f"📥 Creating gym '{data.name}' for {user.email}")
        self._ensure_unique_name(data.name)

        latitude, longitude, country = data.latitude, data.longitude, data.country
        if latitude is None:
            result = await self._geocode(data.location)
            latitude, longitude = result.latitude, result.longitude
            country = country or result.country

        owner = user_identifier(user)
        try:
            venue = self.repo.create_venue(
                self.db,
                name=data.name,
                location=data.location,
                country=country,
                latitude=latitude,
                longitude=longitude,
                website=data.gymWebsite,
                created_by_user_id=owner,
                last_modified_by_user_id=owner,
            )
        except IntegrityError as e:
            self.db.rollback()
            raise HTTPException(status_code=409, detail="A gym with this name already exists") from e

        invalidate_search_cache()
        logger.info(f"✅ Gym created: {venue.name} ({venue.id})")
        return venue

    async def update_venue(self, venue_id: str, data: VenueUpdate, user: UserAccount) -> Venue:
        venue = self.get_venue(venue_id)
        self._ensure_can_modify(venue, user)

        fields = data.model_fields_set
        updates = {}
        if data.name is not None and data.name != venue.name:
            self._ensure_unique_name(data.name, exclude_id=venue.id)
            updates["name"] = data.name
        if data.location is not None:
            updates["location"] = data.location
        if "country" in fields:
            updates["country"] = data.country
        if "gymWebsite" in fields:
            updates["website"] = data.gymWebsite

        if data.latitude is not None:
            updates["latitude"] = data.latitude
            updates["longitude"] = data.longitude
        elif data.location is not None and data.location != venue.location:
            result = await self._geocode(data.location)
            updates["latitude"] = result.latitude
            updates["longitude"] = result.longitude

        updates["last_modified_by_user_id"] = user_identifier(user)
        try:
            venue = self.repo.update_venue(self.db, venue, **updates)
        except IntegrityError as e:
            self.db.rollback()
            raise HTTPException(status_code=409, detail="A gym with this name already exists") from e

        invalidate_search_cache()
        logger.info(f"✅ Gym updated: {venue.name} ({venue.id})")
        return venue

    def delete_venue(self, venue_id: str, user: UserAccount) -> dict:
        venue = self.get_venue(venue_id)
        self._ensure_can_modify(venue, user)

        name = venue.name
        self.repo.delete_venue(self.db, venue)
        invalidate_search_cache()
        logger.info(f"🗑️ Gym deleted: {name} ({venue_id}) by {user.email}")
        return {"message": "Gym deleted successfully"}
