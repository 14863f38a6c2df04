"""Shared fixtures: in-memory database, API client, accounts and fake remote services."""
import os

# Settings must be in place before matfinder.config is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["CACHE_ENABLED"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["SCRYPT_ROUNDS"] = "4"
os.environ["ADMIN_EMAILS"] = "admin@matfinder.test"
os.environ["FIREBASE_PROJECT_ID"] = "matfinder-test"
os.environ["FIRESTORE_PROJECT_ID"] = ""
os.environ["CLOUD_FUNCTIONS_BASE_URL"] = ""
os.environ["DB_LOG_SLOW_QUERIES"] = "false"

from datetime import datetime
from typing import Any, Optional

import pytest
from fastapi.testclient import TestClient

from matfinder.database import Base, SessionLocal, engine
from matfinder.domain.accounts.repository import AccountRepository
from matfinder.main import app
from matfinder.models import DayOfWeek, ScheduleEntry, TimeSlot, UserAccount, Venue
from matfinder.security_utils import create_access_token, hash_password
from matfinder.services.cloud_functions import get_cloud_functions
from matfinder.services.firestore_client import RemoteDocument, RemoteStoreError, get_optional_document_store
from matfinder.services.geocoding import GeocodeResult

DEFAULT_PASSWORD = "MatTime2024x"


class FakeDocumentStore:
    """In-memory stand-in for FirestoreClient"""

    def __init__(self):
        self.collections: dict[str, dict[str, RemoteDocument]] = {}
        self.writes: list[tuple[str, str]] = []
        self.deletes: list[tuple[str, str]] = []
        self.failing_collections: set[str] = set()
        self.failing_writes: set[str] = set()

    def put(self, collection: str, document_id: str, data: dict[str, Any],
            update_time: Optional[datetime] = None) -> RemoteDocument:
        doc = RemoteDocument(id=document_id, data=dict(data), update_time=update_time)
        self.collections.setdefault(collection, {})[document_id] = doc
        return doc

    def docs(self, collection: str) -> dict[str, RemoteDocument]:
        return self.collections.get(collection, {})

    async def list_documents(self, collection: str) -> list[RemoteDocument]:
        if collection in self.failing_collections:
            raise RemoteStoreError(f"list {collection} failed", status_code=500)
        return list(self.docs(collection).values())

    async def get_document(self, collection: str, document_id: str) -> Optional[RemoteDocument]:
        return self.docs(collection).get(document_id)

    async def set_document(self, collection: str, document_id: str, data: dict[str, Any]) -> RemoteDocument:
        if document_id in self.failing_writes:
            raise RemoteStoreError(f"write {collection}/{document_id} failed", status_code=500)
        self.writes.append((collection, document_id))
        return self.put(collection, document_id, data)

    async def delete_document(self, collection: str, document_id: str) -> None:
        self.deletes.append((collection, document_id))
        self.docs(collection).pop(document_id, None)


class FakeCloudFunctions:
    """Records callable function invocations"""

    def __init__(self, configured: bool = True):
        self.configured = configured
        self.calls: list[tuple[str, dict]] = []
        self.fail_with = None

    async def _record(self, name: str, data: dict):
        if self.fail_with is not None:
            raise self.fail_with
        self.calls.append((name, data))

    async def get_custom_token(self, uid: str):
        await self._record("getCustomToken", {"uid": uid})
        return f"custom-token-for-{uid}"

    async def send_verification_email(self, email: str, user_name: str, verification_token: str):
        await self._record(
            "sendVerificationEmail",
            {"email": email, "userName": user_name, "verificationToken": verification_token},
        )

    async def delete_user_data(self, uid: str, email: Optional[str] = None):
        await self._record("deleteUserData", {"uid": uid, "email": email})

    def names(self) -> list[str]:
        return [name for name, _ in self.calls]


@pytest.fixture(autouse=True)
def database():
    """Fresh schema for every test."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def remote_store():
    return FakeDocumentStore()


@pytest.fixture
def cloud():
    return FakeCloudFunctions()


@pytest.fixture
def client(remote_store, cloud):
    """API client with remote services replaced by fakes."""
    app.dependency_overrides[get_optional_document_store] = lambda: remote_store
    app.dependency_overrides[get_cloud_functions] = lambda: cloud
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def fake_geocoder(monkeypatch):
    """Resolve every address to downtown Austin unless told otherwise."""
    results = {}

    async def geocode(address, transport=None):
        from matfinder.services.geocoding import GeocodingError

        key = address.strip().lower()
        if key in results:
            return results[key]
        if "nowhere" in key:
            raise GeocodingError(f"Could not find location for '{address}'")
        return GeocodeResult(latitude=30.2672, longitude=-97.7431, display_name=address, country="United States")

    monkeypatch.setattr("matfinder.domain.venues.service.geocode_address", geocode)
    monkeypatch.setattr("matfinder.domain.search.router.geocode_address", geocode)
    return results


def make_account(db, email: str, user_name: str, verified: bool = True, admin: bool = False,
                 password: str = DEFAULT_PASSWORD) -> UserAccount:
    hashed = hash_password(password)
    return AccountRepository.create(
        db,
        email=email,
        user_name=user_name,
        name=user_name.title(),
        password_hash=hashed["hash"],
        password_salt=hashed["salt"],
        password_iterations=hashed["iterations"],
        is_verified=verified,
        is_admin=admin,
    )


def auth_headers(account: UserAccount) -> dict[str, str]:
    token = create_access_token({"sub": account.id, "email": account.email})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user(db):
    return make_account(db, "grappler@example.com", "grappler")


@pytest.fixture
def other_user(db):
    return make_account(db, "rival@example.com", "rival")


@pytest.fixture
def unverified_user(db):
    return make_account(db, "newbie@example.com", "newbie", verified=False)


@pytest.fixture
def admin(db):
    return make_account(db, "admin@matfinder.test", "moderator", admin=True)


@pytest.fixture
def user_headers(user):
    return auth_headers(user)


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)


def make_venue(db, name: str, latitude: float, longitude: float, owner: Optional[UserAccount] = None,
               **extra) -> Venue:
    venue = Venue(
        name=name,
        location=extra.pop("location", f"{name} street"),
        latitude=latitude,
        longitude=longitude,
        created_by_user_id=owner.id if owner else None,
        **extra,
    )
    db.add(venue)
    db.commit()
    db.refresh(venue)
    return venue


def add_slot(db, venue: Venue, day: DayOfWeek, time: str, **flags) -> TimeSlot:
    entry = (
        db.query(ScheduleEntry)
        .filter(ScheduleEntry.venue_id == venue.id, ScheduleEntry.day == day.value)
        .first()
    )
    if entry is None:
        entry = ScheduleEntry(venue_id=venue.id, day=day.value, name=f"{venue.name} -{day.value}")
        db.add(entry)
        db.flush()
    slot = TimeSlot(schedule_entry_id=entry.id, time=time, **flags)
    db.add(slot)
    db.commit()
    db.refresh(slot)
    return slot
