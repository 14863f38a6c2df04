"""Schedule service - Business logic for schedule entries and mat times"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...cache import invalidate_search_cache
from ...models import DayOfWeek, ScheduleEntry, TimeSlot, Venue
from ..venues.repository import VenueRepository
from .repository import ScheduleRepository
from .schemas import TimeSlotCreate, TimeSlotUpdate

logger = logging.getLogger(__name__)

DUPLICATE_SLOT_DETAIL = "Mat time already exists for this day."

# API field name -> model column
SLOT_FIELDS = {
    "time": "time",
    "type": "type",
    "gi": "gi",
    "noGi": "no_gi",
    "openMat": "open_mat",
    "goodForBeginners": "good_for_beginners",
    "kids": "kids",
    "restrictions": "restrictions",
    "restrictionDescription": "restriction_description",
}


class ScheduleService:
    """Service layer for schedule business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ScheduleRepository()
        self.venue_repo = VenueRepository()

    def _get_venue(self, venue_id: str) -> Venue:
        venue = self.venue_repo.get_venue_by_id(self.db, venue_id)
        if not venue:
            raise HTTPException(status_code=404, detail="Gym not found")
        return venue

    # ------------------------------------------------------------------
    # Schedule entries
    # ------------------------------------------------------------------

    def get_schedule(self, venue_id: str, day: Optional[DayOfWeek] = None) -> list[ScheduleEntry]:
        self._get_venue(venue_id)
        return self.repo.get_entries_for_venue(self.db, venue_id, day)

    def get_or_create_entry(self, venue_id: str, day: DayOfWeek) -> tuple[ScheduleEntry, bool]:
        """Returns (entry, created). There is at most one entry per venue and day."""
        venue = self._get_venue(venue_id)
        entry = self.repo.get_entry(self.db, venue.id, day)
        if entry:
            return entry, False

        try:
            entry = self.repo.create_entry(self.db, venue, day)
        except IntegrityError:
            # Created concurrently
            self.db.rollback()
            entry = self.repo.get_entry(self.db, venue.id, day)
            if not entry:
                raise
            return entry, False

        logger.info(f"🆕 Schedule entry created: {entry.name}")
        return entry, True

    def get_entry(self, entry_id: str) -> ScheduleEntry:
        entry = self.repo.get_entry_by_id(self.db, entry_id)
        if not entry:
            raise HTTPException(status_code=404, detail="Schedule entry not found")
        return entry

    def delete_entry(self, entry_id: str) -> dict:
        entry = self.get_entry(entry_id)
        name = entry.name
        self.repo.delete_entry(self.db, entry)
        invalidate_search_cache()
        logger.info(f"🗑️ Schedule entry deleted: {name}")
        return {"message": "Schedule entry deleted successfully"}

    # ------------------------------------------------------------------
    # Time slots
    # ------------------------------------------------------------------

    def get_slot(self, slot_id: str) -> TimeSlot:
        slot = self.repo.get_slot_by_id(self.db, slot_id)
        if not slot:
            raise HTTPException(status_code=404, detail="Mat time not found")
        return slot

    def add_time_slot(self, venue_id: str, day: DayOfWeek, data: TimeSlotCreate) -> TimeSlot:
        """Add a mat time, creating the day's schedule entry if needed"""
        entry, _ = self.get_or_create_entry(venue_id, day)
        slot_type = data.type or ""

        if self.repo.find_duplicate_slot(self.db, entry.id, data.time, slot_type):
            raise HTTPException(status_code=409, detail=DUPLICATE_SLOT_DETAIL)

        try:
            slot = self.repo.create_slot(
                self.db,
                entry,
                time=data.time,
                type=slot_type,
                gi=data.gi,
                no_gi=data.noGi,
                open_mat=data.openMat,
                good_for_beginners=data.goodForBeginners,
                kids=data.kids,
                restrictions=data.restrictions,
                restriction_description=data.restrictionDescription,
            )
        except IntegrityError as e:
            self.db.rollback()
            raise HTTPException(status_code=409, detail=DUPLICATE_SLOT_DETAIL) from e

        invalidate_search_cache()
        logger.info(f"✅ Mat time {slot.time} added to {entry.name}")
        return slot

    def update_time_slot(self, slot_id: str, data: TimeSlotUpdate) -> TimeSlot:
        slot = self.get_slot(slot_id)

        updates = {}
        for field in data.model_fields_set:
            column = SLOT_FIELDS.get(field)
            if column is None:
                continue
            value = getattr(data, field)
            if value is None and column != "restriction_description":
                continue
            updates[column] = value

        if "type" in updates:
            updates["type"] = (updates["type"] or "").strip()

        restrictions = updates.get("restrictions", slot.restrictions)
        description = updates.get("restriction_description", slot.restriction_description)
        if restrictions:
            if not description or not description.strip():
                raise HTTPException(
                    status_code=422,
                    detail="Restriction description is required when restrictions are set",
                )
            updates["restriction_description"] = description.strip()
        else:
            updates["restriction_description"] = None

        new_time = updates.get("time", slot.time)
        new_type = updates.get("type", slot.type)
        if self.repo.find_duplicate_slot(
            self.db, slot.schedule_entry_id, new_time, new_type, exclude_id=slot.id
        ):
            raise HTTPException(status_code=409, detail=DUPLICATE_SLOT_DETAIL)

        try:
            slot = self.repo.update_slot(self.db, slot, **updates)
        except IntegrityError as e:
            self.db.rollback()
            raise HTTPException(status_code=409, detail=DUPLICATE_SLOT_DETAIL) from e

        invalidate_search_cache()
        logger.info(f"✅ Mat time {slot.id} updated")
        return slot

    def delete_time_slot(self, slot_id: str) -> dict:
        slot = self.get_slot(slot_id)
        self.repo.delete_slot(self.db, slot)
        invalidate_search_cache()
        logger.info(f"🗑️ Mat time {slot_id} deleted")
        return {"message": "Mat time deleted successfully"}
