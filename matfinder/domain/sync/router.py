"""
Sync router - on-demand sync, background job status and run history
"""

import asyncio
import logging
from typing import Optional, Union

from arq import create_pool
from arq.jobs import Job, JobStatus
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ...auth import require_admin
from ...database import get_db
from ...models import SyncRun, UserAccount
from ...services.firestore_client import FirestoreClient, get_optional_document_store
from ...worker import get_redis_settings
from .coordinator import run_sync
from .schemas import JobStatusResponse, SyncJobQueued, SyncRunResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sync", tags=["Sync"])

STATUS_MAP = {
    JobStatus.deferred: "queued",
    JobStatus.queued: "queued",
    JobStatus.in_progress: "in_progress",
    JobStatus.complete: "complete",
    JobStatus.not_found: "not_found",
}


async def enqueue_sync_job(trigger: str = "manual") -> str:
    """Queue sync_collections_task on the ARQ worker and return the job ID"""
    try:
        pool = await asyncio.wait_for(create_pool(get_redis_settings()), timeout=20.0)
    except Exception as e:
        logger.error(f"❌ Could not connect to job queue: {str(e)}")
        raise HTTPException(status_code=503, detail="Job queue unavailable") from e

    try:
        job = await pool.enqueue_job("sync_collections_task", trigger)
    finally:
        await pool.close()

    logger.info(f"📤 Sync job queued: {job.job_id}")
    return job.job_id


async def fetch_job_status(job_id: str) -> JobStatusResponse:
    try:
        pool = await asyncio.wait_for(create_pool(get_redis_settings()), timeout=20.0)
    except Exception as e:
        logger.error(f"❌ Could not connect to job queue: {str(e)}")
        raise HTTPException(status_code=503, detail="Job queue unavailable") from e

    try:
        job = Job(job_id, pool)
        job_status = await asyncio.wait_for(job.status(), timeout=15.0)
        if job_status == JobStatus.not_found:
            raise HTTPException(status_code=404, detail="Job not found")

        status = STATUS_MAP.get(job_status, "unknown")
        result = None
        error = None
        if job_status == JobStatus.complete:
            try:
                job_result = await asyncio.wait_for(job.result(timeout=10.0), timeout=15.0)
                result = job_result if isinstance(job_result, dict) else {"data": job_result}
            except asyncio.TimeoutError:
                logger.warning(f"⏰ Timeout getting result for job {job_id}")
                error = "Timeout retrieving job result"
                status = "failed"
            except Exception as e:
                logger.error(f"❌ Job {job_id} failed: {str(e)}")
                error = str(e)
                status = "failed"
        return JobStatusResponse(jobId=job_id, status=status, result=result, error=error)
    except asyncio.TimeoutError as e:
        raise HTTPException(
            status_code=504, detail="Timeout connecting to job queue - please try again"
        ) from e
    finally:
        await pool.close()


@router.post("", response_model=Union[SyncJobQueued, SyncRunResponse])
async def trigger_sync(
    background: bool = Query(True),
    admin: UserAccount = Depends(require_admin),
    db: Session = Depends(get_db),
    store: Optional[FirestoreClient] = Depends(get_optional_document_store),
):
    """
    Start a sync. With background=true the run is queued on the worker,
    otherwise it runs inline and the finished run is returned.
    """
    if background:
        return SyncJobQueued(jobId=await enqueue_sync_job("manual"))

    if store is None:
        raise HTTPException(status_code=503, detail="Remote document store not configured")
    logger.info(f"🔄 Inline sync requested by {admin.email}")
    run = await run_sync(db, store, trigger="manual")
    return SyncRunResponse.from_run(run)


@router.get("/jobs/{job_id}", response_model=JobStatusResponse)
async def get_sync_job(job_id: str, admin: UserAccount = Depends(require_admin)):
    return await fetch_job_status(job_id)


@router.get("/runs", response_model=list[SyncRunResponse])
async def list_sync_runs(
    limit: int = Query(20, ge=1, le=200),
    admin: UserAccount = Depends(require_admin),
    db: Session = Depends(get_db),
):
    runs = db.query(SyncRun).order_by(SyncRun.started_at.desc(), SyncRun.id.desc()).limit(limit).all()
    return [SyncRunResponse.from_run(run) for run in runs]


__all__ = ["router"]
