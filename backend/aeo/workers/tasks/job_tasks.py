"""
Job Tasks
Celery entry points for the three job pipelines
"""

import asyncio
from typing import Dict, Optional

from celery.utils.log import get_task_logger

from aeo.workers.celery_app import celery_app
from aeo.services.jobs import (
    run_daily_audit,
    run_reinforcement_job,
    run_weekly_content_build,
)

logger = get_task_logger(__name__)


def run_async(coro):
    """Run async function in sync context"""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@celery_app.task(name="aeo.workers.tasks.job_tasks.daily_audit")
def daily_audit(job_run_id: Optional[str] = None, triggered_by: str = "scheduled") -> Dict:
    """Audit every configured provider against the intent taxonomy"""
    logger.info(f"Daily audit task received (job run {job_run_id or 'new'})")
    return run_async(run_daily_audit(job_run_id=job_run_id, triggered_by=triggered_by))


@celery_app.task(name="aeo.workers.tasks.job_tasks.reinforcement")
def reinforcement(job_run_id: Optional[str] = None, triggered_by: str = "scheduled") -> Dict:
    logger.info(f"Reinforcement task received (job run {job_run_id or 'new'})")
    return run_async(run_reinforcement_job(job_run_id=job_run_id, triggered_by=triggered_by))


@celery_app.task(name="aeo.workers.tasks.job_tasks.weekly_content_build")
def weekly_content_build(job_run_id: Optional[str] = None, triggered_by: str = "scheduled") -> Dict:
    logger.info(f"Weekly content build task received (job run {job_run_id or 'new'})")
    return run_async(run_weekly_content_build(job_run_id=job_run_id, triggered_by=triggered_by))


JOB_TASKS = {
    "audit": daily_audit,
    "reinforcement": reinforcement,
    "content_build": weekly_content_build,
}
