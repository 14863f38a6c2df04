"""Tests for schedule entries and mat times."""
import pytest
from conftest import add_slot, make_venue
from sqlalchemy.exc import IntegrityError

from matfinder.config import TIME_SLOT_COLLECTION
from matfinder.models import DayOfWeek, ScheduleEntry, SyncTombstone, TimeSlot


SLOT_PAYLOAD = {
    "time": "6:30 PM",
    "type": "Open Mat",
    "gi": True,
    "openMat": True,
}


class TestScheduleEntries:
    """One entry per gym and day."""

    def test_create_then_reuse_entry(self, client, db, user_headers):
        venue = make_venue(db, "Carlson Gracie", 41.9, -87.6)

        first = client.post(f"/venues/{venue.id}/schedule", json={"day": "Tuesday"}, headers=user_headers)
        assert first.status_code == 201
        assert first.json()["day"] == "tuesday"
        assert first.json()["dayNumber"] == 3
        assert first.json()["name"] == "Carlson Gracie -tuesday"

        second = client.post(f"/venues/{venue.id}/schedule", json={"day": "tue"}, headers=user_headers)
        assert second.status_code == 200
        assert second.json()["id"] == first.json()["id"]

    def test_invalid_day(self, client, db, user_headers):
        venue = make_venue(db, "Checkmat", 34.0, -118.2)
        response = client.post(f"/venues/{venue.id}/schedule", json={"day": "someday"}, headers=user_headers)
        assert response.status_code == 422

    def test_unknown_venue(self, client, user_headers):
        response = client.post("/venues/missing/schedule", json={"day": "monday"}, headers=user_headers)
        assert response.status_code == 404

    def test_schedule_sorted_sunday_first(self, client, db):
        venue = make_venue(db, "Unity", 40.7, -74.0)
        add_slot(db, venue, DayOfWeek.SATURDAY, "11:00")
        add_slot(db, venue, DayOfWeek.SUNDAY, "10:00")
        add_slot(db, venue, DayOfWeek.MONDAY, "19:00")

        days = [e["day"] for e in client.get(f"/venues/{venue.id}/schedule").json()]
        assert days == ["sunday", "monday", "saturday"]

        only_monday = client.get(f"/venues/{venue.id}/schedule", params={"day": "monday"}).json()
        assert [e["day"] for e in only_monday] == ["monday"]

    def test_delete_entry_removes_slots(self, client, db, user_headers):
        venue = make_venue(db, "Renzo", 40.7, -73.9)
        slot = add_slot(db, venue, DayOfWeek.THURSDAY, "12:00")
        entry_id, slot_id = slot.schedule_entry_id, slot.id

        response = client.delete(f"/schedule-entries/{entry_id}", headers=user_headers)
        assert response.status_code == 200

        db.expire_all()
        assert db.query(ScheduleEntry).count() == 0
        assert db.query(TimeSlot).count() == 0
        tombstone = db.query(SyncTombstone).filter(SyncTombstone.collection == TIME_SLOT_COLLECTION).one()
        assert tombstone.record_id == slot_id


class TestTimeSlots:
    def test_add_creates_entry(self, client, db, user_headers):
        venue = make_venue(db, "Marcelo Garcia", 40.75, -73.99)

        response = client.post(
            f"/venues/{venue.id}/schedule/wednesday/time-slots", json=SLOT_PAYLOAD, headers=user_headers
        )
        assert response.status_code == 201

        data = response.json()
        assert data["time"] == "18:30"
        assert data["displayTime"] == "6:30 PM"
        assert data["openMat"] is True
        assert data["noGi"] is False
        assert data["restrictionDescription"] is None

        db.expire_all()
        entry = db.query(ScheduleEntry).one()
        assert entry.day == "wednesday"

    def test_duplicate_slot(self, client, db, user_headers):
        venue = make_venue(db, "Dupes", 30.0, -97.0)
        url = f"/venues/{venue.id}/schedule/monday/time-slots"
        client.post(url, json=SLOT_PAYLOAD, headers=user_headers)

        response = client.post(url, json={**SLOT_PAYLOAD, "time": "18:30"}, headers=user_headers)
        assert response.status_code == 409
        assert response.json()["detail"] == "Mat time already exists for this day."

    def test_same_time_different_type_allowed(self, client, db, user_headers):
        venue = make_venue(db, "Two Classes", 30.0, -97.0)
        url = f"/venues/{venue.id}/schedule/monday/time-slots"
        client.post(url, json=SLOT_PAYLOAD, headers=user_headers)

        response = client.post(url, json={**SLOT_PAYLOAD, "type": "Kids"}, headers=user_headers)
        assert response.status_code == 201

    def test_restrictions_need_description(self, client, db, user_headers):
        venue = make_venue(db, "Members Only", 30.0, -97.0)
        url = f"/venues/{venue.id}/schedule/friday/time-slots"

        response = client.post(url, json={**SLOT_PAYLOAD, "restrictions": True}, headers=user_headers)
        assert response.status_code == 422

        response = client.post(
            url,
            json={**SLOT_PAYLOAD, "restrictions": True, "restrictionDescription": " Members only "},
            headers=user_headers,
        )
        assert response.status_code == 201
        assert response.json()["restrictionDescription"] == "Members only"

    def test_description_dropped_without_restrictions(self, client, db, user_headers):
        venue = make_venue(db, "Open Doors", 30.0, -97.0)
        response = client.post(
            f"/venues/{venue.id}/schedule/friday/time-slots",
            json={**SLOT_PAYLOAD, "restrictionDescription": "ignored"},
            headers=user_headers,
        )
        assert response.json()["restrictionDescription"] is None

    def test_invalid_time(self, client, db, user_headers):
        venue = make_venue(db, "Clockless", 30.0, -97.0)
        response = client.post(
            f"/venues/{venue.id}/schedule/friday/time-slots",
            json={**SLOT_PAYLOAD, "time": "half past six"},
            headers=user_headers,
        )
        assert response.status_code == 422

    def test_update_slot(self, client, db, user_headers):
        venue = make_venue(db, "Editable", 30.0, -97.0)
        slot = add_slot(db, venue, DayOfWeek.MONDAY, "18:00")

        response = client.patch(
            f"/time-slots/{slot.id}", json={"time": "7:00 PM", "noGi": True}, headers=user_headers
        )
        assert response.status_code == 200
        assert response.json()["time"] == "19:00"
        assert response.json()["noGi"] is True

    def test_update_enabling_restrictions_requires_description(self, client, db, user_headers):
        venue = make_venue(db, "Strict", 30.0, -97.0)
        slot = add_slot(db, venue, DayOfWeek.MONDAY, "18:00")

        response = client.patch(f"/time-slots/{slot.id}", json={"restrictions": True}, headers=user_headers)
        assert response.status_code == 422

        response = client.patch(
            f"/time-slots/{slot.id}",
            json={"restrictions": True, "restrictionDescription": "Blue belts and up"},
            headers=user_headers,
        )
        assert response.status_code == 200
        assert response.json()["restrictionDescription"] == "Blue belts and up"

        response = client.patch(f"/time-slots/{slot.id}", json={"restrictions": False}, headers=user_headers)
        assert response.json()["restrictionDescription"] is None

    def test_update_into_duplicate(self, client, db, user_headers):
        venue = make_venue(db, "Crowded", 30.0, -97.0)
        add_slot(db, venue, DayOfWeek.MONDAY, "18:00")
        other = add_slot(db, venue, DayOfWeek.MONDAY, "19:00")

        response = client.patch(f"/time-slots/{other.id}", json={"time": "18:00"}, headers=user_headers)
        assert response.status_code == 409

    def test_delete_slot(self, client, db, user_headers):
        venue = make_venue(db, "Shrinking", 30.0, -97.0)
        slot = add_slot(db, venue, DayOfWeek.MONDAY, "18:00")
        slot_id = slot.id

        assert client.delete(f"/time-slots/{slot_id}", headers=user_headers).status_code == 200
        assert client.delete(f"/time-slots/{slot_id}", headers=user_headers).status_code == 404


class TestTimeSlotStore:
    def test_restrictions_need_description_in_store(self, db):
        venue = make_venue(db, "Strict Gym", 30.0, -97.0)
        entry_id = add_slot(db, venue, DayOfWeek.MONDAY, "18:00").schedule_entry_id

        db.add(TimeSlot(schedule_entry_id=entry_id, time="19:00", restrictions=True, restriction_description=None))
        with pytest.raises(IntegrityError):
            db.commit()
        db.rollback()

        db.add(TimeSlot(schedule_entry_id=entry_id, time="19:00", restrictions=True, restriction_description=""))
        with pytest.raises(IntegrityError):
            db.commit()
        db.rollback()

        db.add(TimeSlot(schedule_entry_id=entry_id, time="19:00", restrictions=True,
                        restriction_description="Women only"))
        db.commit()
        assert db.query(TimeSlot).count() == 2
