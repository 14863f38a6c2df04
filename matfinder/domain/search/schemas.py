"""Search schemas"""

from typing import Optional

from pydantic import BaseModel

from ...models import DayOfWeek
from ..schedules.schemas import TimeSlotResponse
from ..venues.schemas import VenueResponse

FILTER_COLUMNS = {
    "gi": "gi",
    "noGi": "no_gi",
    "openMat": "open_mat",
    "kids": "kids",
    "goodForBeginners": "good_for_beginners",
}


class SlotFilters(BaseModel):
    """Optional mat time flags; None means 'either'"""

    gi: Optional[bool] = None
    noGi: Optional[bool] = None
    openMat: Optional[bool] = None
    kids: Optional[bool] = None
    goodForBeginners: Optional[bool] = None

    def matches(self, slot) -> bool:
        for field, column in FILTER_COLUMNS.items():
            wanted = getattr(self, field)
            if wanted is not None and bool(getattr(slot, column)) != wanted:
                return False
        return True

    def cache_params(self) -> dict:
        return {k: v for k, v in self.model_dump().items() if v is not None}


class SearchCenter(BaseModel):
    latitude: float
    longitude: float
    label: Optional[str] = None


class OpenMatResult(BaseModel):
    venue: VenueResponse
    day: DayOfWeek
    scheduleEntryId: str
    distanceMiles: Optional[float] = None
    timeSlots: list[TimeSlotResponse]


class OpenMatSearchResponse(BaseModel):
    day: DayOfWeek
    center: Optional[SearchCenter] = None
    radiusMiles: Optional[float] = None
    results: list[OpenMatResult]


class NearbyVenueResult(BaseModel):
    venue: VenueResponse
    distanceMiles: float


class NearbySearchResponse(BaseModel):
    center: SearchCenter
    radiusMiles: float
    results: list[NearbyVenueResult]
