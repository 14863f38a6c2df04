"""Schedule repository - Database operations for schedule entries and time slots"""

from typing import Optional

from sqlalchemy.orm import Session, selectinload

from ...config import SCHEDULE_ENTRY_COLLECTION, TIME_SLOT_COLLECTION
from ...models import DayOfWeek, ScheduleEntry, TimeSlot, Venue, utcnow
from ..sync.tombstones import record_tombstones


def schedule_entry_name(venue_name: str, day: DayOfWeek) -> str:
    return f"{venue_name} -{day.value}"


class ScheduleRepository:
    """Repository for schedule database operations"""

    # ------------------------------------------------------------------
    # Schedule entries
    # ------------------------------------------------------------------

    @staticmethod
    def get_entries_for_venue(
        db: Session, venue_id: str, day: Optional[DayOfWeek] = None
    ) -> list[ScheduleEntry]:
        """Entries for a venue ordered Sunday through Saturday"""
        query = (
            db.query(ScheduleEntry)
            .options(selectinload(ScheduleEntry.time_slots))
            .filter(ScheduleEntry.venue_id == venue_id)
        )
        if day is not None:
            query = query.filter(ScheduleEntry.day == day.value)
        return sorted(query.all(), key=lambda e: e.day_of_week.number)

    @staticmethod
    def get_entry_by_id(db: Session, entry_id: str) -> Optional[ScheduleEntry]:
        return db.query(ScheduleEntry).filter(ScheduleEntry.id == entry_id).first()

    @staticmethod
    def get_entry(db: Session, venue_id: str, day: DayOfWeek) -> Optional[ScheduleEntry]:
        return (
            db.query(ScheduleEntry)
            .filter(ScheduleEntry.venue_id == venue_id, ScheduleEntry.day == day.value)
            .first()
        )

    @staticmethod
    def get_entries_for_day(db: Session, day: DayOfWeek) -> list[ScheduleEntry]:
        """Every entry for the given day that has at least one time slot"""
        return (
            db.query(ScheduleEntry)
            .options(selectinload(ScheduleEntry.time_slots), selectinload(ScheduleEntry.venue))
            .filter(ScheduleEntry.day == day.value, ScheduleEntry.time_slots.any())
            .all()
        )

    @staticmethod
    def create_entry(db: Session, venue: Venue, day: DayOfWeek) -> ScheduleEntry:
        entry = ScheduleEntry(
            venue_id=venue.id,
            day=day.value,
            name=schedule_entry_name(venue.name, day),
        )
        db.add(entry)
        db.commit()
        db.refresh(entry)
        return entry

    @staticmethod
    def delete_entry(db: Session, entry: ScheduleEntry) -> None:
        """Delete an entry and its time slots, tombstoning both"""
        slot_ids = [
            row.id for row in db.query(TimeSlot.id).filter(TimeSlot.schedule_entry_id == entry.id)
        ]
        record_tombstones(db, SCHEDULE_ENTRY_COLLECTION, [entry.id])
        record_tombstones(db, TIME_SLOT_COLLECTION, slot_ids)

        db.delete(entry)
        db.commit()

    # ------------------------------------------------------------------
    # Time slots
    # ------------------------------------------------------------------

    @staticmethod
    def get_slot_by_id(db: Session, slot_id: str) -> Optional[TimeSlot]:
        return db.query(TimeSlot).filter(TimeSlot.id == slot_id).first()

    @staticmethod
    def find_duplicate_slot(
        db: Session, entry_id: str, time: str, slot_type: str, exclude_id: Optional[str] = None
    ) -> Optional[TimeSlot]:
        query = db.query(TimeSlot).filter(
            TimeSlot.schedule_entry_id == entry_id,
            TimeSlot.time == time,
            TimeSlot.type == slot_type,
        )
        if exclude_id:
            query = query.filter(TimeSlot.id != exclude_id)
        return query.first()

    @staticmethod
    def create_slot(db: Session, entry: ScheduleEntry, **slot_data) -> TimeSlot:
        slot = TimeSlot(schedule_entry_id=entry.id, **slot_data)
        db.add(slot)
        db.commit()
        db.refresh(slot)
        return slot

    @staticmethod
    def update_slot(db: Session, slot: TimeSlot, **updates) -> TimeSlot:
        for key, value in updates.items():
            if hasattr(slot, key):
                setattr(slot, key, value)
        slot.last_modified_at = utcnow()
        db.commit()
        db.refresh(slot)
        return slot

    @staticmethod
    def delete_slot(db: Session, slot: TimeSlot) -> None:
        record_tombstones(db, TIME_SLOT_COLLECTION, [slot.id])
        db.delete(slot)
        db.commit()
