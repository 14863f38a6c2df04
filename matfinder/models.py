import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .database import Base


def generate_id():
    """Generate a record ID that doubles as the remote document ID"""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Naive UTC timestamp; all stored datetimes are naive UTC"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class DayOfWeek(str, enum.Enum):
    SUNDAY = "sunday"
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"

    @property
    def number(self) -> int:
        """Sunday is 1, Saturday is 7"""
        return list(DayOfWeek).index(self) + 1

    @property
    def display_name(self) -> str:
        return self.value.capitalize()

    @classmethod
    def from_value(cls, value) -> "DayOfWeek":
        """Accept 'monday', 'Monday', 'MON' or the day number (1-7)"""
        if isinstance(value, DayOfWeek):
            return value
        if isinstance(value, int) or (isinstance(value, str) and value.strip().isdigit()):
            number = int(value)
            if 1 <= number <= 7:
                return list(cls)[number - 1]
            raise ValueError(f"Invalid day number: {value}")
        text = str(value).strip().lower()
        for day in cls:
            if day.value == text or day.value[:3] == text:
                return day
        raise ValueError(f"Invalid day of week: {value}")


class UserAccount(Base):
    __tablename__ = "user_accounts"

    id = Column(String(36), primary_key=True, default=generate_id)
    firebase_uid = Column(String(255), unique=True, index=True, nullable=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    user_name = Column(String(100), unique=True, index=True, nullable=True)
    name = Column(String(255), nullable=True)
    belt = Column(String(50), nullable=True)
    # scrypt credentials for locally registered accounts; null for provider sign-ins
    password_hash = Column(String(255), nullable=True)
    password_salt = Column(String(255), nullable=True)
    password_iterations = Column(Integer, nullable=True)
    is_verified = Column(Boolean, default=False, nullable=False)
    verification_token = Column(Text, nullable=True)
    is_admin = Column(Boolean, default=False, nullable=False)
    # Ad-tracking consent
    tracking_authorized = Column(Boolean, default=False, nullable=False)
    personalized_ads = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class Venue(Base):
    """A gym (island) or team"""

    __tablename__ = "venues"

    id = Column(String(255), primary_key=True, default=generate_id)
    name = Column(String(255), unique=True, index=True, nullable=False)
    location = Column(String(500), nullable=False)
    country = Column(String(100), nullable=True)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    website = Column(String(500), nullable=True)
    created_by_user_id = Column(String(255), nullable=True)
    last_modified_by_user_id = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    last_modified_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    synced_at = Column(DateTime, nullable=True)

    schedule_entries = relationship(
        "ScheduleEntry",
        back_populates="venue",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    reviews = relationship(
        "Review",
        back_populates="venue",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class ScheduleEntry(Base):
    """One venue's schedule for one day of the week"""

    __tablename__ = "schedule_entries"
    __table_args__ = (UniqueConstraint("venue_id", "day", name="uq_schedule_entry_venue_day"),)

    id = Column(String(255), primary_key=True, default=generate_id)
    venue_id = Column(
        String(255), ForeignKey("venues.id", ondelete="CASCADE"), nullable=False, index=True
    )
    day = Column(String(10), nullable=False, index=True)  # DayOfWeek value
    name = Column(String(300), nullable=True)  # "<venue name> -<day>"
    created_at = Column(DateTime, default=utcnow, nullable=False)
    last_modified_at = Column(DateTime, default=utcnow, nullable=False)
    synced_at = Column(DateTime, nullable=True)

    venue = relationship("Venue", back_populates="schedule_entries")
    time_slots = relationship(
        "TimeSlot",
        back_populates="schedule_entry",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="TimeSlot.time",
    )

    @property
    def day_of_week(self) -> DayOfWeek:
        return DayOfWeek.from_value(self.day)


class TimeSlot(Base):
    """A single mat time within a schedule entry"""

    __tablename__ = "time_slots"
    __table_args__ = (
        UniqueConstraint("schedule_entry_id", "time", "type", name="uq_time_slot_entry_time_type"),
        CheckConstraint(
            "NOT restrictions OR (restriction_description IS NOT NULL AND restriction_description != '')",
            name="ck_time_slot_restriction_description",
        ),
    )

    id = Column(String(255), primary_key=True, default=generate_id)
    schedule_entry_id = Column(
        String(255),
        ForeignKey("schedule_entries.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    time = Column(String(5), nullable=False)  # 24-hour HH:MM
    type = Column(String(100), nullable=False, default="")
    gi = Column(Boolean, default=False, nullable=False)
    no_gi = Column(Boolean, default=False, nullable=False)
    open_mat = Column(Boolean, default=False, nullable=False)
    good_for_beginners = Column(Boolean, default=False, nullable=False)
    kids = Column(Boolean, default=False, nullable=False)
    restrictions = Column(Boolean, default=False, nullable=False)
    restriction_description = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    last_modified_at = Column(DateTime, default=utcnow, nullable=False)
    synced_at = Column(DateTime, nullable=True)

    schedule_entry = relationship("ScheduleEntry", back_populates="time_slots")


class Review(Base):
    __tablename__ = "reviews"
    __table_args__ = (CheckConstraint("stars >= 1 AND stars <= 5", name="ck_review_stars"),)

    id = Column(String(255), primary_key=True, default=generate_id)
    venue_id = Column(
        String(255), ForeignKey("venues.id", ondelete="CASCADE"), nullable=False, index=True
    )
    stars = Column(Integer, nullable=False)
    review = Column(Text, nullable=False)
    author_name = Column(String(255), nullable=False, default="Anonymous")
    author_user_id = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    last_modified_at = Column(DateTime, default=utcnow, nullable=False)
    synced_at = Column(DateTime, nullable=True)

    venue = relationship("Venue", back_populates="reviews")


class SyncTombstone(Base):
    """Marks a locally deleted record so sync removes the remote copy"""

    __tablename__ = "sync_tombstones"
    __table_args__ = (UniqueConstraint("collection", "record_id", name="uq_tombstone_record"),)

    id = Column(Integer, primary_key=True, index=True)
    collection = Column(String(100), nullable=False, index=True)
    record_id = Column(String(255), nullable=False)
    deleted_at = Column(DateTime, default=utcnow, nullable=False)


class SyncRun(Base):
    __tablename__ = "sync_runs"

    id = Column(Integer, primary_key=True, index=True)
    trigger = Column(String(20), nullable=False, default="manual")  # manual, cron
    status = Column(String(20), nullable=False, default="running")  # running, success, partial, failed
    started_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    finished_at = Column(DateTime, nullable=True)
    report = Column(JSON, nullable=True)
    error = Column(Text, nullable=True)
