"""Tombstone bookkeeping for locally deleted records"""

from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from ...models import SyncTombstone, utcnow


def record_tombstones(
    db: Session, collection: str, record_ids: Iterable[str], deleted_at: Optional[datetime] = None
) -> int:
    """Add or refresh tombstones; the caller commits"""
    deleted_at = deleted_at or utcnow()
    count = 0
    for record_id in record_ids:
        existing = (
            db.query(SyncTombstone)
            .filter(SyncTombstone.collection == collection, SyncTombstone.record_id == record_id)
            .first()
        )
        if existing:
            existing.deleted_at = deleted_at
        else:
            db.add(SyncTombstone(collection=collection, record_id=record_id, deleted_at=deleted_at))
        count += 1
    return count


def get_tombstones(db: Session, collection: str) -> list[SyncTombstone]:
    return db.query(SyncTombstone).filter(SyncTombstone.collection == collection).all()


def purge_tombstones_before(db: Session, cutoff: datetime) -> int:
    deleted = db.query(SyncTombstone).filter(SyncTombstone.deleted_at < cutoff).delete()
    db.commit()
    return deleted
