"""
TreeMirror Core Module

Plan execution, reports, the mode engine and profile orchestration.

Author: TreeMirror Project
License: MIT
"""

from .plan_executor import ExecutionSummary, OperationKind, OperationResult, PlanExecutor
from .sync_engine import Answer, BackupReport, SyncEngine, parse_answer
from .orchestrator import Orchestrator, ProfileBusyError

__version__ = "0.1.0"
__all__ = [
    'ExecutionSummary', 'OperationKind', 'OperationResult', 'PlanExecutor',
    'Answer', 'BackupReport', 'SyncEngine', 'parse_answer',
    'Orchestrator', 'ProfileBusyError'
]
