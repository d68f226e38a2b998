"""
Sync Engine Module

Planning logic: tree diffing with move detection, duplicate detection,
cleanup planning and the backend file operations plans are executed with.

Author: TreeMirror Project
License: MIT
"""

from .planner import ActionPlan, MovePair, PlanInvariantError, SyncPlanner, deepest_first, plan
from .deduplicator import (
    DuplicateDetector,
    DuplicateGroup,
    DuplicatesResult,
    DuplicatesSummary,
    FolderDuplicateGroup,
    PartialFolderGroup,
    PartialFolderInfo,
    find_duplicates
)
from .file_mover import FileOps, LocalFileOps, CopyDirectionNotSupported
from .cleanup import CleanupPlan, PrunePlan, plan_cleanup, plan_prune_duplicates

__all__ = [
    'ActionPlan', 'MovePair', 'PlanInvariantError', 'SyncPlanner', 'deepest_first', 'plan',
    'DuplicateDetector', 'DuplicateGroup', 'DuplicatesResult', 'DuplicatesSummary',
    'FolderDuplicateGroup', 'PartialFolderGroup', 'PartialFolderInfo', 'find_duplicates',
    'FileOps', 'LocalFileOps', 'CopyDirectionNotSupported',
    'CleanupPlan', 'PrunePlan', 'plan_cleanup', 'plan_prune_duplicates'
]
