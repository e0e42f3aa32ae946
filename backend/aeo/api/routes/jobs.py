"""
Job Trigger API Routes
Queue an on-demand run of one of the three job pipelines
"""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from aeo.models import JobRun, JobStatus, JobType, new_id
from aeo.schemas import JobTriggerResponse
from aeo.utils import get_db
from aeo.workers.tasks import JOB_TASKS

router = APIRouter()


@router.post("/{kind}", status_code=status.HTTP_202_ACCEPTED, response_model=JobTriggerResponse)
async def trigger_job(kind: str, db: AsyncSession = Depends(get_db)):
    """Record a queued job run and hand it to the worker"""
    if kind not in JOB_TASKS:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown job kind: {kind}. Must be one of {[t.value for t in JobType]}",
        )

    job_run = JobRun(
        id=new_id(),
        job_type=JobType(kind).value,
        status=JobStatus.QUEUED.value,
        triggered_by="user",
        started_at=datetime.utcnow(),
    )
    db.add(job_run)
    # The worker updates this row, so it must exist before the task is queued
    await db.commit()

    JOB_TASKS[kind].delay(job_run_id=job_run.id, triggered_by="user")

    return JobTriggerResponse(job_run_id=job_run.id, job_type=kind, status=JobStatus.QUEUED.value)
