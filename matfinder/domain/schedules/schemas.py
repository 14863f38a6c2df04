"""Schedule domain schemas - schedule entries and mat times"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator

from ...models import DayOfWeek
from ...shared.validators import format_display_time, normalize_time


class ScheduleEntryCreate(BaseModel):
    day: DayOfWeek

    @field_validator("day", mode="before")
    @classmethod
    def validate_day(cls, v):
        return DayOfWeek.from_value(v)


class TimeSlotCreate(BaseModel):
    """
    Schema for adding a mat time.

    `restrictionDescription` is required when `restrictions` is true and is
    discarded when it is false.
    """

    time: str
    type: Optional[str] = None
    gi: bool = False
    noGi: bool = False
    openMat: bool = False
    goodForBeginners: bool = False
    kids: bool = False
    restrictions: bool = False
    restrictionDescription: Optional[str] = None

    @field_validator("time")
    @classmethod
    def validate_time(cls, v):
        return normalize_time(v)

    @field_validator("type")
    @classmethod
    def strip_type(cls, v):
        return v.strip() if v else ""

    @model_validator(mode="after")
    def check_restrictions(self):
        if self.restrictions:
            if not self.restrictionDescription or not self.restrictionDescription.strip():
                raise ValueError("Restriction description is required when restrictions are set")
            self.restrictionDescription = self.restrictionDescription.strip()
        else:
            self.restrictionDescription = None
        return self


class TimeSlotUpdate(BaseModel):
    """Partial update; the restriction rule is checked against the merged result"""

    time: Optional[str] = None
    type: Optional[str] = None
    gi: Optional[bool] = None
    noGi: Optional[bool] = None
    openMat: Optional[bool] = None
    goodForBeginners: Optional[bool] = None
    kids: Optional[bool] = None
    restrictions: Optional[bool] = None
    restrictionDescription: Optional[str] = None

    @field_validator("time")
    @classmethod
    def validate_time(cls, v):
        if v is None:
            return v
        return normalize_time(v)


class TimeSlotResponse(BaseModel):
    id: str
    scheduleEntryId: str
    time: str
    displayTime: str
    type: str
    gi: bool
    noGi: bool
    openMat: bool
    goodForBeginners: bool
    kids: bool
    restrictions: bool
    restrictionDescription: Optional[str] = None
    createdTimestamp: datetime
    lastModifiedTimestamp: datetime

    @classmethod
    def from_slot(cls, slot) -> "TimeSlotResponse":
        return cls(
            id=slot.id,
            scheduleEntryId=slot.schedule_entry_id,
            time=slot.time,
            displayTime=format_display_time(slot.time),
            type=slot.type or "",
            gi=slot.gi,
            noGi=slot.no_gi,
            openMat=slot.open_mat,
            goodForBeginners=slot.good_for_beginners,
            kids=slot.kids,
            restrictions=slot.restrictions,
            restrictionDescription=slot.restriction_description,
            createdTimestamp=slot.created_at,
            lastModifiedTimestamp=slot.last_modified_at,
        )


class ScheduleEntryResponse(BaseModel):
    id: str
    venueId: str
    day: DayOfWeek
    dayNumber: int
    displayName: str
    name: Optional[str] = None
    timeSlots: list[TimeSlotResponse]
    createdTimestamp: datetime

    @classmethod
    def from_entry(cls, entry, time_slots=None) -> "ScheduleEntryResponse":
        """`time_slots` narrows the listed slots, e.g. to search matches"""
        day = entry.day_of_week
        slots = entry.time_slots if time_slots is None else time_slots
        return cls(
            id=entry.id,
            venueId=entry.venue_id,
            day=day,
            dayNumber=day.number,
            displayName=day.display_name,
            name=entry.name,
            timeSlots=[TimeSlotResponse.from_slot(s) for s in sorted(slots, key=lambda s: s.time)],
            createdTimestamp=entry.created_at,
        )
