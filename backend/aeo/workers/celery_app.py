"""
Celery Application Configuration
Beat-scheduled job pipelines: daily audit, reinforcement, weekly content build
"""

import os

from celery import Celery
from celery.schedules import crontab
from celery.signals import worker_init
from kombu import Queue, Exchange

from aeo.config import JOB_SCHEDULES, get_settings

settings = get_settings()

# Create Celery app
celery_app = Celery(
    "aeo",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=[
        "aeo.workers.tasks.job_tasks",
    ]
)

# Celery configuration
celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    # Result backend settings
    result_expires=86400,  # 24 hours

    # Task execution settings
    task_acks_late=True,  # Acknowledge after task completion
    task_reject_on_worker_lost=True,
    task_time_limit=3000,  # audit may run 45 minutes
    task_soft_time_limit=2700,

    # Worker settings
    worker_prefetch_multiplier=1,  # One long pipeline per worker slot
    worker_concurrency=2,

    # Queue configuration
    task_queues=(
        Queue("default", Exchange("default"), routing_key="default"),
        Queue("jobs", Exchange("jobs"), routing_key="jobs"),
    ),

    task_default_queue="default",
    task_default_exchange="default",
    task_default_routing_key="default",

    task_routes={
        "aeo.workers.tasks.job_tasks.*": {"queue": "jobs"},
    },

    # Beat scheduler for periodic tasks
    beat_schedule={
        "daily-audit": {
            "task": "aeo.workers.tasks.job_tasks.daily_audit",
            "schedule": crontab(**JOB_SCHEDULES["audit"]),
        },
        "reinforcement": {
            "task": "aeo.workers.tasks.job_tasks.reinforcement",
            "schedule": crontab(**JOB_SCHEDULES["reinforcement"]),
        },
        "weekly-content": {
            "task": "aeo.workers.tasks.job_tasks.weekly_content_build",
            "schedule": crontab(**JOB_SCHEDULES["content_build"]),
        },
    },
)


@worker_init.connect
def mark_worker_process(**kwargs):
    """Workers get an unpooled engine; each task runs on its own event loop"""
    os.environ["AEO_WORKER"] = "1"
