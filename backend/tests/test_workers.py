"""
Tests for the Celery wiring of the job pipelines.
"""

from unittest.mock import AsyncMock, patch

from celery.schedules import crontab

from aeo.workers.celery_app import celery_app
from aeo.workers.tasks import daily_audit, reinforcement, weekly_content_build


class TestBeatSchedule:

    def test_three_jobs_scheduled(self):
        schedule = celery_app.conf.beat_schedule

        assert schedule["daily-audit"]["task"] == daily_audit.name
        assert schedule["reinforcement"]["task"] == reinforcement.name
        assert schedule["weekly-content"]["task"] == weekly_content_build.name
        assert schedule["daily-audit"]["schedule"] == crontab(hour=9, minute=0)
        assert schedule["weekly-content"]["schedule"] == crontab(hour=10, minute=0, day_of_week="mon")

    def test_job_tasks_routed_to_jobs_queue(self):
        assert celery_app.conf.task_routes["aeo.workers.tasks.job_tasks.*"] == {"queue": "jobs"}


class TestTasks:

    def test_daily_audit_runs_pipeline(self):
        summary = {"job_run_id": "j1", "success": True}
        with patch("aeo.workers.tasks.job_tasks.run_daily_audit", new=AsyncMock(return_value=summary)) as job:
            assert daily_audit("j1", "user") == summary

        job.assert_awaited_once_with(job_run_id="j1", triggered_by="user")

    def test_reinforcement_defaults_to_scheduled(self):
        with patch("aeo.workers.tasks.job_tasks.run_reinforcement_job", new=AsyncMock(return_value={})) as job:
            reinforcement()

        job.assert_awaited_once_with(job_run_id=None, triggered_by="scheduled")

    def test_content_build_runs_pipeline(self):
        with patch("aeo.workers.tasks.job_tasks.run_weekly_content_build", new=AsyncMock(return_value={})) as job:
            weekly_content_build(job_run_id="j2")

        job.assert_awaited_once_with(job_run_id="j2", triggered_by="scheduled")
