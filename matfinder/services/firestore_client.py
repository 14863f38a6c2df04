"""
Firestore access through the Firebase Admin SDK
Reads and writes the shared collections the mobile clients use
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

import firebase_admin
from firebase_admin import credentials, firestore_async
from google.api_core import datetime_helpers
from google.api_core import exceptions as google_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud.firestore import AsyncClient, GeoPoint
from google.cloud.firestore_v1.field_path import FieldPath
from google.cloud.firestore_v1.base_document import BaseDocumentReference
from pydantic import BaseModel

from .. import config

logger = logging.getLogger(__name__)

FIREBASE_APP_NAME = "matfinder-sync"


class RemoteStoreError(Exception):
    """Raised when the remote document store rejects or fails a request"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RemoteDocument(BaseModel):
    """A Firestore document with plain Python field values"""

    id: str
    data: dict[str, Any]
    update_time: Optional[datetime] = None


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def parse_timestamp(value: str) -> datetime:
    """
    Naive UTC datetime from an RFC 3339 string.
    Firestore writes "Z" with up to nanoseconds; other clients may send an offset.
    """
    try:
        parsed = datetime_helpers.from_rfc3339(value)
    except ValueError:
        parsed = datetime.fromisoformat(value)
    return to_naive_utc(parsed)


def from_store(value: Any) -> Any:
    """SDK field value -> plain Python"""
    if isinstance(value, datetime):
        return to_naive_utc(value)
    if isinstance(value, GeoPoint):
        return {"latitude": value.latitude, "longitude": value.longitude}
    if isinstance(value, BaseDocumentReference):
        return value.path
    if isinstance(value, dict):
        return {key: from_store(val) for key, val in value.items()}
    if isinstance(value, list):
        return [from_store(val) for val in value]
    return value


def to_store(value: Any) -> Any:
    """Local datetimes are naive UTC; the SDK needs to be told so"""
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    if isinstance(value, dict):
        return {key: to_store(val) for key, val in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_store(val) for val in value]
    return value


def snapshot_to_document(snapshot) -> RemoteDocument:
    update_time = snapshot.update_time
    return RemoteDocument(
        id=snapshot.id,
        data=from_store(snapshot.to_dict() or {}),
        update_time=to_naive_utc(update_time) if update_time else None,
    )


def get_firebase_app(project_id: str):
    """Firebase Admin app for sync, created on first use"""
    try:
        return firebase_admin.get_app(FIREBASE_APP_NAME)
    except ValueError:
        pass

    if config.FIREBASE_CREDENTIALS_PATH:
        cred = credentials.Certificate(config.FIREBASE_CREDENTIALS_PATH)
        logger.info("Firebase Admin initialized with service account file")
    else:
        cred = credentials.ApplicationDefault()
        logger.info("Firebase Admin initialized with default credentials")
    return firebase_admin.initialize_app(cred, {"projectId": project_id}, name=FIREBASE_APP_NAME)


def _store_error(action: str, e: Exception) -> RemoteStoreError:
    status_code = getattr(e, "code", None)
    logger.error(f"❌ Firestore {action} failed: {e}")
    return RemoteStoreError(
        f"Firestore {action} failed: {e}",
        status_code=status_code if isinstance(status_code, int) else None,
    )


class FirestoreClient:
    """Async wrapper over the Firestore SDK client for the shared collections"""

    def __init__(
        self,
        project_id: Optional[str] = None,
        database: str = config.FIRESTORE_DATABASE,
        page_size: int = config.FIRESTORE_PAGE_SIZE,
        timeout: float = config.FIRESTORE_TIMEOUT,
        client: Optional[AsyncClient] = None,
    ):
        self.project_id = project_id or config.FIRESTORE_PROJECT_ID
        if client is None and not self.project_id:
            raise RemoteStoreError("FIRESTORE_PROJECT_ID not configured")
        self.database = database
        self.page_size = page_size
        self.timeout = timeout
        self._db = client

    def _client(self) -> AsyncClient:
        if self._db is None:
            try:
                app = get_firebase_app(self.project_id)
                if self.database and self.database != "(default)":
                    self._db = firestore_async.client(app=app, database_id=self.database)
                else:
                    self._db = firestore_async.client(app=app)
            except (ValueError, OSError, auth_exceptions.GoogleAuthError) as e:
                raise _store_error("client setup", e) from e
            if config.FIRESTORE_EMULATOR_HOST:
                logger.info(f"🧪 Using Firestore emulator at {config.FIRESTORE_EMULATOR_HOST}")
        return self._db

    async def list_documents(self, collection: str) -> list[RemoteDocument]:
        """Fetch every document in a collection, one page of document IDs at a time"""
        documents: list[RemoteDocument] = []
        query = (
            self._client()
            .collection(collection)
            .order_by(FieldPath.document_id())
            .limit(self.page_size)
        )
        last_snapshot = None

        try:
            while True:
                page = query.start_after(last_snapshot) if last_snapshot is not None else query
                snapshots = [snapshot async for snapshot in page.stream(timeout=self.timeout)]
                documents.extend(snapshot_to_document(s) for s in snapshots)
                if len(snapshots) < self.page_size:
                    break
                last_snapshot = snapshots[-1]
        except (google_exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError) as e:
            raise _store_error(f"list {collection}", e) from e

        logger.info(f"📥 Fetched {len(documents)} documents from {collection}")
        return documents

    async def get_document(self, collection: str, document_id: str) -> Optional[RemoteDocument]:
        ref = self._client().collection(collection).document(document_id)
        try:
            snapshot = await ref.get(timeout=self.timeout)
        except (google_exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError) as e:
            raise _store_error(f"get {collection}/{document_id}", e) from e

        if not snapshot.exists:
            return None
        return snapshot_to_document(snapshot)

    async def set_document(
        self, collection: str, document_id: str, data: dict[str, Any]
    ) -> RemoteDocument:
        """Create or fully overwrite a document"""
        ref = self._client().collection(collection).document(document_id)
        try:
            result = await ref.set(to_store(data), timeout=self.timeout)
        except (google_exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError) as e:
            raise _store_error(f"write {collection}/{document_id}", e) from e

        logger.debug(f"📤 Wrote {collection}/{document_id}")
        update_time = getattr(result, "update_time", None)
        return RemoteDocument(
            id=document_id,
            data=dict(data),
            update_time=to_naive_utc(update_time) if update_time else None,
        )

    async def delete_document(self, collection: str, document_id: str) -> None:
        """Delete a document; Firestore treats a missing document as already deleted"""
        ref = self._client().collection(collection).document(document_id)
        try:
            await ref.delete(timeout=self.timeout)
        except google_exceptions.NotFound:
            return
        except (google_exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError) as e:
            raise _store_error(f"delete {collection}/{document_id}", e) from e
        logger.debug(f"🗑️ Deleted {collection}/{document_id}")


def get_optional_document_store() -> Optional[FirestoreClient]:
    """Remote store for best-effort mirroring; None when not configured"""
    if not config.FIRESTORE_PROJECT_ID:
        return None
    return FirestoreClient()
