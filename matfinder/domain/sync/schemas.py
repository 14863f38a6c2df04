from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from ...models import SyncRun


class SyncRunResponse(BaseModel):
    id: int
    trigger: str
    status: str
    startedAt: datetime
    finishedAt: Optional[datetime] = None
    report: Optional[dict] = None
    error: Optional[str] = None

    @classmethod
    def from_run(cls, run: SyncRun) -> "SyncRunResponse":
        return cls(
            id=run.id,
            trigger=run.trigger,
            status=run.status,
            startedAt=run.started_at,
            finishedAt=run.finished_at,
            report=run.report,
            error=run.error,
        )


class SyncJobQueued(BaseModel):
    jobId: str
    status: str = "queued"


class JobStatusResponse(BaseModel):
    jobId: str
    status: str  # queued, in_progress, complete, failed
    result: Optional[dict] = None
    error: Optional[str] = None
