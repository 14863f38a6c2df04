"""
Field mappings between local records and remote documents.
Document field names match the ones the mobile apps write.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from ... import config
from ...models import DayOfWeek, Review, ScheduleEntry, TimeSlot, Venue
from ...services.firestore_client import RemoteDocument, parse_timestamp
from ...shared.validators import normalize_time, validate_latitude, validate_longitude


def normalize_id(value: str) -> str:
    """Comparison key: iOS writes upper-case and sometimes hyphen-less UUIDs"""
    return str(value).replace("-", "").lower()


def canonical_id(value: str) -> str:
    """Lower-case hyphenated form for UUIDs; other IDs are kept verbatim"""
    try:
        return str(uuid.UUID(str(value)))
    except ValueError:
        return str(value)


def as_datetime(value: Any) -> Optional[datetime]:
    """Naive UTC datetime from a decoded timestamp, RFC 3339 string or epoch seconds"""
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc).replace(tzinfo=None)
    if isinstance(value, str):
        try:
            return parse_timestamp(value)
        except ValueError:
            return None
    return None


def remote_timestamp(doc: RemoteDocument) -> Optional[datetime]:
    """lastModifiedTimestamp, else the document update time, else createdTimestamp"""
    for candidate in (
        doc.data.get("lastModifiedTimestamp"),
        doc.update_time,
        doc.data.get("createdTimestamp"),
    ):
        ts = as_datetime(candidate)
        if ts is not None:
            return ts
    return None


def _text(data: dict, key: str, default: Optional[str] = None) -> Optional[str]:
    value = data.get(key)
    if value is None:
        return default
    return str(value).strip()


def _flag(data: dict, key: str) -> bool:
    return bool(data.get(key, False))


class CollectionMapper:
    """Base mapping; subclasses describe one synchronised collection"""

    collection: str
    model: type
    parent_model: Optional[type] = None
    parent_field: Optional[str] = None  # document field holding the parent ID

    def to_document(self, record) -> dict[str, Any]:
        raise NotImplementedError

    def apply_document(self, record, data: dict[str, Any], parent=None) -> None:
        """Copy document fields onto a record. Raises ValueError for unusable data."""
        raise NotImplementedError

    def parent_reference(self, data: dict[str, Any]) -> Optional[str]:
        if not self.parent_field:
            return None
        value = data.get(self.parent_field)
        return str(value) if value else None

    @staticmethod
    def _timestamps(record) -> dict[str, Any]:
        return {
            "createdTimestamp": record.created_at,
            "lastModifiedTimestamp": record.last_modified_at,
        }


class VenueMapper(CollectionMapper):
    model = Venue

    def __init__(self):
        self.collection = config.VENUE_COLLECTION

    def to_document(self, record: Venue) -> dict[str, Any]:
        return {
            "id": record.id,
            "name": record.name,
            "location": record.location,
            "country": record.country,
            "latitude": record.latitude,
            "longitude": record.longitude,
            "gymWebsite": record.website,
            "createdByUserId": record.created_by_user_id,
            "lastModifiedByUserId": record.last_modified_by_user_id,
            **self._timestamps(record),
        }

    def apply_document(self, record: Venue, data: dict[str, Any], parent=None) -> None:
        name = _text(data, "name")
        if not name:
            raise ValueError("venue document has no name")
        try:
            latitude = validate_latitude(float(data["latitude"]))
            longitude = validate_longitude(float(data["longitude"]))
        except (KeyError, TypeError) as e:
            raise ValueError("venue document has no coordinates") from e

        record.name = name
        record.location = _text(data, "location", "")
        record.country = _text(data, "country")
        record.latitude = latitude
        record.longitude = longitude
        record.website = _text(data, "gymWebsite") or None
        record.created_by_user_id = _text(data, "createdByUserId")
        record.last_modified_by_user_id = _text(data, "lastModifiedByUserId")


class ScheduleEntryMapper(CollectionMapper):
    model = ScheduleEntry
    parent_model = Venue
    parent_field = "pIsland"

    def __init__(self):
        self.collection = config.SCHEDULE_ENTRY_COLLECTION

    def parent_reference(self, data: dict[str, Any]) -> Optional[str]:
        """pIsland is a {"islandID": ...} map or a bare venue ID; older documents use islandID"""
        value = data.get("pIsland")
        if isinstance(value, dict):
            value = value.get("islandID")
        if not value:
            value = data.get("islandID")
        return str(value) if value else None

    def to_document(self, record: ScheduleEntry) -> dict[str, Any]:
        return {
            "id": record.id,
            "pIsland": {"islandID": record.venue_id},
            "islandID": record.venue_id,
            "day": record.day,
            "name": record.name,
            **self._timestamps(record),
        }

    def apply_document(self, record: ScheduleEntry, data: dict[str, Any], parent=None) -> None:
        day = DayOfWeek.from_value(data.get("day", ""))
        record.venue_id = parent.id
        record.day = day.value
        record.name = _text(data, "name") or f"{parent.name} -{day.value}"


class TimeSlotMapper(CollectionMapper):
    model = TimeSlot
    parent_model = ScheduleEntry
    parent_field = "appDayOfWeekID"

    def __init__(self):
        self.collection = config.TIME_SLOT_COLLECTION

    def to_document(self, record: TimeSlot) -> dict[str, Any]:
        return {
            "id": record.id,
            "appDayOfWeekID": record.schedule_entry_id,
            "time": record.time,
            "type": record.type,
            "gi": record.gi,
            "noGi": record.no_gi,
            "openMat": record.open_mat,
            "restrictions": record.restrictions,
            "restrictionDescription": record.restriction_description,
            "goodForBeginners": record.good_for_beginners,
            "kids": record.kids,
            **self._timestamps(record),
        }

    def apply_document(self, record: TimeSlot, data: dict[str, Any], parent=None) -> None:
        restrictions = _flag(data, "restrictions")
        description = _text(data, "restrictionDescription")
        if restrictions and not description:
            raise ValueError("mat time has restrictions without a description")

        record.schedule_entry_id = parent.id
        record.time = normalize_time(_text(data, "time", ""))
        record.type = _text(data, "type", "")
        record.gi = _flag(data, "gi")
        record.no_gi = _flag(data, "noGi")
        record.open_mat = _flag(data, "openMat")
        record.good_for_beginners = _flag(data, "goodForBeginners")
        record.kids = _flag(data, "kids")
        record.restrictions = restrictions
        record.restriction_description = description if restrictions else None


class ReviewMapper(CollectionMapper):
    model = Review
    parent_model = Venue
    parent_field = "islandID"

    def __init__(self):
        self.collection = config.REVIEW_COLLECTION

    def to_document(self, record: Review) -> dict[str, Any]:
        return {
            "id": record.id,
            "islandID": record.venue_id,
            "stars": record.stars,
            "review": record.review,
            "userName": record.author_name,
            "name": record.author_name,
            "userID": record.author_user_id,
            **self._timestamps(record),
        }

    def apply_document(self, record: Review, data: dict[str, Any], parent=None) -> None:
        try:
            stars = int(data.get("stars"))
        except (TypeError, ValueError) as e:
            raise ValueError("review document has no star rating") from e
        if not 1 <= stars <= 5:
            raise ValueError(f"review has {stars} stars")
        text = _text(data, "review")
        if not text:
            raise ValueError("review document has no text")

        record.venue_id = parent.id
        record.stars = stars
        record.review = text
        record.author_name = _text(data, "userName") or _text(data, "name") or "Anonymous"
        record.author_user_id = _text(data, "userID")


def default_mappers() -> list[CollectionMapper]:
    """Parents before children"""
    return [VenueMapper(), ScheduleEntryMapper(), TimeSlotMapper(), ReviewMapper()]
