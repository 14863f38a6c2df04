"""Venue domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator

from ..schedules.schemas import ScheduleEntryResponse
from ...shared.validators import (
    require_text,
    validate_latitude,
    validate_longitude,
    validate_website_url,
)


class VenueCreate(BaseModel):
    """Schema for creating a gym or team. Coordinates are geocoded when omitted."""

    name: str
    location: str
    country: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    gymWebsite: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return require_text(v, "Gym name")

    @field_validator("location")
    @classmethod
    def validate_location(cls, v):
        return require_text(v, "Location")

    @field_validator("gymWebsite")
    @classmethod
    def validate_website(cls, v):
        return validate_website_url(v)

    @field_validator("latitude")
    @classmethod
    def check_latitude(cls, v):
        return validate_latitude(v)

    @field_validator("longitude")
    @classmethod
    def check_longitude(cls, v):
        return validate_longitude(v)

    @model_validator(mode="after")
    def coordinates_together(self):
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("Latitude and longitude must be provided together")
        return self


class VenueUpdate(BaseModel):
    """Schema for updating a venue; omitted fields are left unchanged"""

    name: Optional[str] = None
    location: Optional[str] = None
    country: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    gymWebsite: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if v is None:
            return v
        return require_text(v, "Gym name")

    @field_validator("location")
    @classmethod
    def validate_location(cls, v):
        if v is None:
            return v
        return require_text(v, "Location")

    @field_validator("gymWebsite")
    @classmethod
    def validate_website(cls, v):
        return validate_website_url(v)

    @field_validator("latitude")
    @classmethod
    def check_latitude(cls, v):
        return validate_latitude(v)

    @field_validator("longitude")
    @classmethod
    def check_longitude(cls, v):
        return validate_longitude(v)

    @model_validator(mode="after")
    def coordinates_together(self):
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("Latitude and longitude must be provided together")
        return self


class VenueResponse(BaseModel):
    """Schema for venue response"""

    id: str
    name: str
    location: str
    country: Optional[str] = None
    latitude: float
    longitude: float
    gymWebsite: Optional[str] = None
    createdByUserId: Optional[str] = None
    lastModifiedByUserId: Optional[str] = None
    createdTimestamp: datetime
    lastModifiedTimestamp: datetime

    @classmethod
    def from_venue(cls, venue) -> "VenueResponse":
        return cls(
            id=venue.id,
            name=venue.name,
            location=venue.location,
            country=venue.country,
            latitude=venue.latitude,
            longitude=venue.longitude,
            gymWebsite=venue.website,
            createdByUserId=venue.created_by_user_id,
            lastModifiedByUserId=venue.last_modified_by_user_id,
            createdTimestamp=venue.created_at,
            lastModifiedTimestamp=venue.last_modified_at,
        )


class VenueDetailResponse(VenueResponse):
    """Venue with its weekly schedule and rating summary"""

    schedule: list[ScheduleEntryResponse] = []
    averageRating: int = 0
    reviewCount: int = 0
