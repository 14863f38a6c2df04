"""
Sync coordinator - reconciles the local database with the remote document store

For every record ID seen locally or remotely:

* local only: upload when never synced or changed since the last sync,
  otherwise the remote copy was deleted so the local one is removed
* remote only: delete remotely when a newer local tombstone exists,
  otherwise download (skipped when its parent is missing locally)
* both: the newer lastModifiedTimestamp wins

Collections run parents first so children can resolve their parent.
"""

import logging
from typing import Optional

from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...cache import invalidate_search_cache
from ...models import SyncRun, SyncTombstone, utcnow
from ...services.firestore_client import FirestoreClient, RemoteDocument, RemoteStoreError
from .mappers import (
    CollectionMapper,
    as_datetime,
    canonical_id,
    default_mappers,
    normalize_id,
    remote_timestamp,
)
from .tombstones import get_tombstones

logger = logging.getLogger(__name__)


class CollectionReport(BaseModel):
    collection: str
    uploaded: int = 0
    downloaded: int = 0
    updated_local: int = 0
    deleted_local: int = 0
    deleted_remote: int = 0
    unchanged: int = 0
    orphaned: int = 0
    invalid: int = 0
    failed: int = 0
    error: Optional[str] = None


class SyncReport(BaseModel):
    status: str
    collections: list[CollectionReport]


class SyncCoordinator:
    """Last-write-wins reconciliation between the local DB and a remote store"""

    def __init__(
        self,
        db: Session,
        store: FirestoreClient,
        mappers: Optional[list[CollectionMapper]] = None,
    ):
        self.db = db
        self.store = store
        self.mappers = mappers or default_mappers()

    async def sync_all(self) -> SyncReport:
        reports = []
        for mapper in self.mappers:
            reports.append(await self.sync_collection(mapper))

        if all(r.error for r in reports):
            status = "failed"
        elif any(r.error or r.failed or r.invalid for r in reports):
            status = "partial"
        else:
            status = "success"

        invalidate_search_cache()
        logger.info(f"🔄 Sync finished with status {status}")
        return SyncReport(status=status, collections=reports)

    async def sync_collection(self, mapper: CollectionMapper) -> CollectionReport:
        report = CollectionReport(collection=mapper.collection)

        try:
            remote_docs = await self.store.list_documents(mapper.collection)
        except RemoteStoreError as e:
            logger.error(f"❌ Could not list {mapper.collection}: {e}")
            report.error = str(e)
            return report

        remote = {normalize_id(doc.id): doc for doc in remote_docs}
        local = {normalize_id(rec.id): rec for rec in self.db.query(mapper.model).all()}
        tombstones = {normalize_id(t.record_id): t for t in get_tombstones(self.db, mapper.collection)}
        parents = self._parent_index(mapper)

        for key in sorted(set(local) | set(remote)):
            try:
                if key in local and key in remote:
                    await self._reconcile(mapper, local[key], remote[key], parents, report)
                elif key in local:
                    await self._handle_local_only(mapper, local[key], report)
                else:
                    await self._handle_remote_only(mapper, key, remote[key], tombstones, parents, report)
            except RemoteStoreError as e:
                self.db.rollback()
                logger.error(f"❌ {mapper.collection}/{key} failed: {e}")
                report.failed += 1
            except (ValueError, IntegrityError) as e:
                self.db.rollback()
                logger.warning(f"⚠️ Skipping invalid {mapper.collection}/{key}: {e}")
                report.invalid += 1

        # Tombstones whose remote copy is already gone have done their job
        for key, tombstone in tombstones.items():
            if key not in remote:
                self.db.delete(tombstone)
        self.db.commit()

        logger.info(f"📊 {mapper.collection}: {report.model_dump(exclude_none=True)}")
        return report

    # ------------------------------------------------------------------
    # Per-record rules
    # ------------------------------------------------------------------

    def _parent_index(self, mapper: CollectionMapper) -> Optional[dict]:
        if mapper.parent_model is None:
            return None
        return {normalize_id(p.id): p for p in self.db.query(mapper.parent_model).all()}

    @staticmethod
    def _resolve_parent(mapper: CollectionMapper, doc: RemoteDocument, parents: Optional[dict]):
        reference = mapper.parent_reference(doc.data)
        if not reference or parents is None:
            return None
        return parents.get(normalize_id(reference))

    async def _upload(self, mapper: CollectionMapper, record, document_id: str) -> None:
        await self.store.set_document(mapper.collection, document_id, mapper.to_document(record))
        record.synced_at = utcnow()
        self.db.commit()

    async def _reconcile(self, mapper, record, doc: RemoteDocument, parents, report: CollectionReport):
        remote_ts = remote_timestamp(doc)
        local_ts = record.last_modified_at

        if remote_ts is not None and remote_ts > local_ts:
            parent = None
            if mapper.parent_model is not None:
                parent = self._resolve_parent(mapper, doc, parents)
                if parent is None:
                    logger.warning(f"⚠️ {mapper.collection}/{doc.id} update references a missing parent")
                    record.synced_at = utcnow()
                    self.db.commit()
                    report.orphaned += 1
                    return
            mapper.apply_document(record, doc.data, parent)
            record.last_modified_at = remote_ts
            record.synced_at = utcnow()
            self.db.commit()
            report.updated_local += 1
        elif remote_ts is None or local_ts > remote_ts:
            # Write back under the remote document's own ID form
            await self._upload(mapper, record, doc.id)
            report.uploaded += 1
        else:
            record.synced_at = utcnow()
            self.db.commit()
            report.unchanged += 1

    async def _handle_local_only(self, mapper, record, report: CollectionReport):
        if record.synced_at is None or record.last_modified_at > record.synced_at:
            await self._upload(mapper, record, record.id)
            report.uploaded += 1
            return

        # Synced before and untouched since: it was deleted remotely
        logger.info(f"🗑️ {mapper.collection}/{record.id} deleted remotely, removing local copy")
        self.db.delete(record)
        self.db.commit()
        report.deleted_local += 1

    async def _handle_remote_only(
        self,
        mapper,
        key: str,
        doc: RemoteDocument,
        tombstones: dict[str, SyncTombstone],
        parents,
        report: CollectionReport,
    ):
        remote_ts = remote_timestamp(doc)
        tombstone = tombstones.get(key)

        if tombstone is not None and (remote_ts is None or tombstone.deleted_at >= remote_ts):
            await self.store.delete_document(mapper.collection, doc.id)
            self.db.delete(tombstone)
            self.db.commit()
            tombstones.pop(key)
            report.deleted_remote += 1
            return

        parent = None
        if mapper.parent_model is not None:
            parent = self._resolve_parent(mapper, doc, parents)
            if parent is None:
                logger.warning(f"⚠️ {mapper.collection}/{doc.id} references a missing parent")
                report.orphaned += 1
                return

        now = utcnow()
        record = mapper.model(id=canonical_id(doc.id))
        mapper.apply_document(record, doc.data, parent)
        created = as_datetime(doc.data.get("createdTimestamp")) or remote_ts or now
        record.created_at = created
        record.last_modified_at = remote_ts or created
        record.synced_at = now

        # A remote edit newer than the local delete wins
        if tombstone is not None:
            self.db.delete(tombstone)
            tombstones.pop(key)

        self.db.add(record)
        self.db.commit()
        report.downloaded += 1


async def run_sync(db: Session, store: FirestoreClient, trigger: str = "manual") -> SyncRun:
    """Run a full sync and record it as a SyncRun"""
    run = SyncRun(trigger=trigger, status="running", started_at=utcnow())
    db.add(run)
    db.commit()
    db.refresh(run)
    logger.info(f"🔄 Sync run {run.id} started ({trigger})")

    try:
        report = await SyncCoordinator(db, store).sync_all()
    except Exception as e:
        db.rollback()
        run.status = "failed"
        run.error = str(e)
        run.finished_at = utcnow()
        db.commit()
        logger.error(f"❌ Sync run {run.id} failed: {e}")
        raise

    run.status = report.status
    run.report = report.model_dump()
    run.finished_at = utcnow()
    db.commit()
    db.refresh(run)
    return run
