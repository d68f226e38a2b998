"""
Scheduler Module

Cron-based scheduling of backup profiles.

Author: TreeMirror Project
License: MIT
"""

from .task_scheduler import BackupScheduler

__all__ = ['BackupScheduler']
