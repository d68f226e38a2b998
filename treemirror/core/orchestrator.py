"""
Orchestrator

Coordinates configured backup profiles: manual runs by name and scheduled
runs through the backup scheduler, never running one profile twice at once.

Author: TreeMirror Project
License: MIT
"""

from threading import Event, Lock
from typing import Dict, List, Optional

from ..utils.logger import get_logger
from ..config.schema import Config
from ..scheduler.task_scheduler import BackupScheduler
from .sync_engine import BackupReport, ConfirmFunc, SyncEngine

logger = get_logger(__name__)


class ProfileBusyError(RuntimeError):
    """Raised when a profile is already running."""


class Orchestrator:
    """
    Main orchestrator for TreeMirror.

    Owns the sync engine and the scheduler, keeps the last report of every
    profile and serialises runs per profile.
    """

    def __init__(self, config: Config, confirm: Optional[ConfirmFunc] = None,
                 output=print, assume_yes: bool = False):
        """
        Initialize orchestrator.

        Args:
            config: Application configuration
            confirm: Confirmation callback for interactive runs
            output: Receives report text
            assume_yes: Proceed without asking
        """
        self.config = config
        self.sync_engine = SyncEngine(config, confirm=confirm, output=output, assume_yes=assume_yes)
        self.scheduler: Optional[BackupScheduler] = None

        self._running = False
        self._stop_event = Event()
        self._locks: Dict[str, Lock] = {p.name: Lock() for p in config.profiles}
        self._last_reports: Dict[str, BackupReport] = {}

        logger.info("Orchestrator initialized")

    def run_profile(self, name: str) -> BackupReport:
        """
        Run one backup profile.

        Args:
            name: Profile name

        Returns:
            The backup report

        Raises:
            ProfileNotFoundError: If the profile is not configured
            ProfileBusyError: If the profile is already running
        """
        profile = self.config.get_profile(name)
        lock = self._locks.setdefault(name, Lock())

        if not lock.acquire(blocking=False):
            raise ProfileBusyError(f"Profile '{name}' is already running")
        try:
            logger.info(f"Running profile '{name}': {profile.source} -> {profile.destination}")
            report = self.sync_engine.backup(profile)
            self._last_reports[name] = report
            return report
        finally:
            lock.release()

    def run_all(self) -> List[BackupReport]:
        """Run every configured profile in order."""
        return [self.run_profile(profile.name) for profile in self.config.profiles]

    def start(self) -> int:
        """
        Start scheduled backups.

        Returns:
            Number of scheduled profiles
        """
        if self._running:
            logger.warning("Orchestrator already running")
            return 0

        if not self.config.scheduling.enabled:
            logger.warning("Scheduling is disabled in the configuration")
            return 0

        logger.info("Starting orchestrator...")
        # Scheduled runs cannot ask anyone
        self.sync_engine.assume_yes = True
        self.scheduler = BackupScheduler(self.config, self.run_profile)
        scheduled = self.scheduler.schedule_profiles()
        self.scheduler.start()

        self._running = True
        self._stop_event.clear()
        logger.info("Orchestrator started")
        return scheduled

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until stop() is called; True if it was."""
        return self._stop_event.wait(timeout)

    def stop(self):
        """Stop scheduled backups."""
        if not self._running:
            return

        logger.info("Stopping orchestrator...")
        self._running = False
        if self.scheduler is not None:
            self.scheduler.stop()
        self._stop_event.set()
        logger.info("Orchestrator stopped")

    def get_status(self) -> dict:
        """
        Get current orchestrator status.

        Returns:
            Dictionary with status information
        """
        return {
            "running": self._running,
            "profiles": [p.name for p in self.config.profiles],
            "busy": [name for name, lock in self._locks.items() if lock.locked()],
            "jobs": self.scheduler.get_jobs() if self.scheduler else [],
            "last_runs": {
                name: {"success": r.success, "operations": len(r.results), "duration": round(r.duration, 2)}
                for name, r in self._last_reports.items()
            },
            "sync_stats": self.sync_engine.get_stats()
        }
