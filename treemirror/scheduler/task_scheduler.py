"""
Backup Scheduler

APScheduler integration that runs backup profiles on their cron schedules.

Author: TreeMirror Project
License: MIT
"""

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from typing import Any, Callable, Dict, List, Optional

from ..utils.logger import get_logger, describe_error
from ..config.schema import BackupProfile, Config

logger = get_logger(__name__)

JOB_PREFIX = "backup_"


class BackupScheduler:
    """
    Runs backup profiles periodically.

    Each profile with a ``schedule`` becomes one cron job. A job never
    overlaps with itself; runs missed while the process was busy are
    coalesced into one.
    """

    def __init__(self, config: Config, run_profile: Callable[[str], Any]):
        """
        Initialize the scheduler.

        Args:
            config: Configuration object
            run_profile: Called with a profile name when its job fires
        """
        self.config = config
        self.timezone = config.scheduling.timezone
        self._run_profile = run_profile
        self.scheduler = BackgroundScheduler(
            timezone=self.timezone,
            job_defaults={
                'coalesce': True,
                'max_instances': 1
            }
        )

        logger.info("BackupScheduler initialized")

    @property
    def running(self) -> bool:
        return self.scheduler.running

    def start(self):
        """Start the scheduler."""
        if self.scheduler.running:
            logger.warning("Scheduler already running")
            return

        self.scheduler.start()
        logger.info("Scheduler started")

    def stop(self, wait: bool = True):
        """Stop the scheduler."""
        if not self.scheduler.running:
            return

        self.scheduler.shutdown(wait=wait)
        logger.info("Scheduler stopped")

    def _build_trigger(self, schedule: str) -> Optional[CronTrigger]:
        """
        Build a cron trigger.

        Args:
            schedule: Cron expression "minute hour day month day_of_week"

        Returns:
            The trigger, or None if the expression is invalid
        """
        parts = schedule.split()
        if len(parts) != 5:
            logger.error(f"Invalid cron expression: {schedule}")
            return None

        try:
            return CronTrigger(
                minute=parts[0],
                hour=parts[1],
                day=parts[2],
                month=parts[3],
                day_of_week=parts[4],
                timezone=self.timezone
            )
        except ValueError as e:
            logger.error(f"Invalid cron expression {schedule!r}: {e}")
            return None

    def add_profile_job(self, profile: BackupProfile) -> bool:
        """
        Add or replace the job of one profile.

        Args:
            profile: Profile with a schedule

        Returns:
            True if a job was added
        """
        if not profile.schedule:
            logger.debug(f"Profile '{profile.name}' has no schedule")
            return False

        trigger = self._build_trigger(profile.schedule)
        if trigger is None:
            return False

        self.scheduler.add_job(
            func=self._execute_profile,
            args=[profile.name],
            trigger=trigger,
            id=f"{JOB_PREFIX}{profile.name}",
            name=f"Backup: {profile.name}",
            replace_existing=True
        )

        logger.info(f"Added backup job for '{profile.name}' with schedule: {profile.schedule}")
        return True

    def schedule_profiles(self) -> int:
        """
        Add jobs for every configured profile with a schedule.

        Returns:
            Number of jobs added
        """
        added = sum(1 for profile in self.config.profiles if self.add_profile_job(profile))
        logger.info(f"Scheduled {added} of {len(self.config.profiles)} profiles")
        return added

    def _execute_profile(self, name: str):
        """Run one scheduled backup."""
        logger.info(f"Executing scheduled backup '{name}'")
        try:
            self._run_profile(name)
        except Exception as e:
            logger.error(f"Scheduled backup '{name}' failed: {describe_error(e)}")

    def get_jobs(self) -> List[Dict[str, Any]]:
        """
        Get list of scheduled jobs.

        Returns:
            List of job information dictionaries
        """
        jobs = []

        for job in self.scheduler.get_jobs():
            next_run = getattr(job, "next_run_time", None)

            jobs.append({
                'id': job.id,
                'name': job.name,
                'next_run': next_run.isoformat() if next_run else None,
                'trigger': str(job.trigger)
            })

        return jobs
