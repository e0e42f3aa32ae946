"""
Celery Tasks
"""

from .job_tasks import daily_audit, reinforcement, weekly_content_build, JOB_TASKS

__all__ = [
    "daily_audit",
    "reinforcement",
    "weekly_content_build",
    "JOB_TASKS",
]
