"""Venue repository - Database operations for gyms and teams"""

from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, selectinload

from ...config import REVIEW_COLLECTION, SCHEDULE_ENTRY_COLLECTION, TIME_SLOT_COLLECTION, VENUE_COLLECTION
from ...models import Review, ScheduleEntry, TimeSlot, Venue, utcnow
from ..sync.tombstones import record_tombstones


class VenueRepository:
    """Repository for venue database operations"""

    @staticmethod
    def list_venues(db: Session, search: Optional[str] = None) -> list[Venue]:
        """All venues ordered by name, optionally filtered by name or location"""
        query = db.query(Venue)
        if search and search.strip():
            pattern = f"%{search.strip().lower()}%"
            query = query.filter(
                or_(func.lower(Venue.name).like(pattern), func.lower(Venue.location).like(pattern))
            )
        return query.order_by(Venue.name).all()

    @staticmethod
    def get_venue_by_id(db: Session, venue_id: str) -> Optional[Venue]:
        return db.query(Venue).filter(Venue.id == venue_id).first()

    @staticmethod
    def get_venue_with_schedule(db: Session, venue_id: str) -> Optional[Venue]:
        return (
            db.query(Venue)
            .options(selectinload(Venue.schedule_entries).selectinload(ScheduleEntry.time_slots))
            .filter(Venue.id == venue_id)
            .first()
        )

    @staticmethod
    def get_venue_by_name(db: Session, name: str) -> Optional[Venue]:
        """Case-insensitive name lookup"""
        return db.query(Venue).filter(func.lower(Venue.name) == name.strip().lower()).first()

    @staticmethod
    def get_venues_in_box(
        db: Session, min_lat: float, max_lat: float, min_lng: Optional[float], max_lng: Optional[float]
    ) -> list[Venue]:
        """Coarse bounding-box prefilter; longitude bounds are skipped when None"""
        query = db.query(Venue).filter(Venue.latitude >= min_lat, Venue.latitude <= max_lat)
        if min_lng is not None and max_lng is not None:
            query = query.filter(Venue.longitude >= min_lng, Venue.longitude <= max_lng)
        return query.all()

    @staticmethod
    def create_venue(db: Session, **venue_data) -> Venue:
        venue = Venue(**venue_data)
        db.add(venue)
        db.commit()
        db.refresh(venue)
        return venue

    @staticmethod
    def update_venue(db: Session, venue: Venue, **updates) -> Venue:
        """Apply updates and stamp the modification time"""
        for key, value in updates.items():
            if hasattr(venue, key):
                setattr(venue, key, value)

        # Schedule entry names embed the venue name
        if "name" in updates:
            for entry in venue.schedule_entries:
                entry.name = f"{venue.name} -{entry.day}"
                entry.last_modified_at = utcnow()

        venue.last_modified_at = utcnow()
        db.commit()
        db.refresh(venue)
        return venue

    @staticmethod
    def delete_venue(db: Session, venue: Venue) -> None:
        """Delete a venue with its schedule and reviews, tombstoning every removed record"""
        entry_ids = [
            row.id for row in db.query(ScheduleEntry.id).filter(ScheduleEntry.venue_id == venue.id)
        ]
        slot_ids = []
        if entry_ids:
            slot_ids = [
                row.id
                for row in db.query(TimeSlot.id).filter(TimeSlot.schedule_entry_id.in_(entry_ids))
            ]
        review_ids = [row.id for row in db.query(Review.id).filter(Review.venue_id == venue.id)]

        record_tombstones(db, VENUE_COLLECTION, [venue.id])
        record_tombstones(db, SCHEDULE_ENTRY_COLLECTION, entry_ids)
        record_tombstones(db, TIME_SLOT_COLLECTION, slot_ids)
        record_tombstones(db, REVIEW_COLLECTION, review_ids)

        db.delete(venue)
        db.commit()
