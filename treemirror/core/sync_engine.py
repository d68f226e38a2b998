"""
Sync Engine

Runs the tool's modes end to end: scan the trees, build a plan, show it,
ask for confirmation and execute.

- backup: mirror a source tree into a destination tree
- duplicates: report duplicated content of one tree
- cleanup: delete ignored files and folders left without content
- prune: delete source files that already exist in the destination

Author: TreeMirror Project
License: MIT
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Set

from ..config.schema import BackupProfile, Config
from ..files.entry import FileEntry
from ..files.exclusion import ExclusionMatcher
from ..files.tree_loader import load_tree
from ..sync_engine.cleanup import plan_cleanup, plan_prune_duplicates
from ..sync_engine.deduplicator import DuplicateDetector, DuplicatesResult, DuplicatesSummary
from ..sync_engine.file_mover import LocalFileOps
from ..sync_engine.planner import ActionPlan, SyncPlanner
from ..utils.logger import get_logger
from . import report
from .plan_executor import ExecutionSummary, OperationKind, OperationResult, PlanExecutor

logger = get_logger(__name__)


class Answer(str, Enum):
    """Reply to a confirmation prompt."""
    YES = "y"
    NO = "n"
    MOVES_ONLY = "m"


def parse_answer(text: str, allow_moves: bool = False) -> Answer:
    """
    Interpret a typed reply; anything unrecognised means no.

    Args:
        text: Raw input
        allow_moves: Whether "m" (moves only) is a valid reply

    Returns:
        The answer
    """
    text = (text or "").strip().lower()
    if text in ("y", "yes"):
        return Answer.YES
    if allow_moves and text == "m":
        return Answer.MOVES_ONLY
    return Answer.NO


def prompt_confirm(question: str, allow_moves: bool = False) -> Answer:
    """Ask on the terminal."""
    options = "y/n/m" if allow_moves else "y/n"
    try:
        return parse_answer(input(f"{question} ({options})?> "), allow_moves)
    except EOFError:
        return Answer.NO


ConfirmFunc = Callable[[str, bool], Answer]


@dataclass
class BackupReport:
    """Outcome of one backup run."""
    profile: str
    plan: Optional[ActionPlan] = None
    answer: Optional[Answer] = None
    results: List[OperationResult] = field(default_factory=list)
    unreadable: List[FileEntry] = field(default_factory=list)
    duration: float = 0.0

    @property
    def executed(self) -> bool:
        return bool(self.results)

    @property
    def summary(self) -> ExecutionSummary:
        return ExecutionSummary.from_results(self.results)

    @property
    def success(self) -> bool:
        return self.summary.success


class SyncEngine:
    """
    Runs backup, duplicates, cleanup and prune modes on local trees.

    All output meant for the operator goes through ``output``; diagnostic
    messages go to the logger.
    """

    def __init__(
        self,
        config: Config,
        confirm: Optional[ConfirmFunc] = None,
        output: Callable[[str], None] = print,
        assume_yes: bool = False
    ):
        """
        Initialize sync engine.

        Args:
            config: Application configuration
            confirm: Asks the operator before any mutation
            output: Receives report text
            assume_yes: Skip confirmation and proceed
        """
        self.config = config
        self.confirm = confirm or prompt_confirm
        self.output = output
        self.assume_yes = assume_yes

        self.stats: Dict[str, int] = self._empty_stats()

        logger.info("SyncEngine initialized")

    @staticmethod
    def _empty_stats() -> Dict[str, int]:
        return {
            "runs": 0,
            "operations_succeeded": 0,
            "operations_failed": 0,
            "bytes_copied": 0
        }

    def matcher(self, profile: Optional[BackupProfile] = None) -> ExclusionMatcher:
        """Exclusion rules for a profile (or the global ones)."""
        return ExclusionMatcher(self.config.exclude_patterns(profile))

    def scan(
        self,
        label: str,
        root: str,
        matcher: ExclusionMatcher,
        throw_if_not_exist: bool = True,
        **options
    ) -> Set[FileEntry]:
        """Load one tree using the configured scan settings."""
        logger.info(f"{label} scanning: {root}")
        scan = self.config.scan
        options.setdefault("hash_algorithm", scan.hash_algorithm)
        options.setdefault("use_hash_cache", scan.use_hash_cache)
        options.setdefault("cache_file_name", scan.cache_file_name)
        return load_tree(root, matcher, throw_if_not_exist, scan.workers, **options)

    def _ask(self, question: str, allow_moves: bool = False) -> Answer:
        if self.assume_yes:
            return Answer.YES
        return self.confirm(question, allow_moves)

    def _record(self, results: List[OperationResult]):
        summary = ExecutionSummary.from_results(results)
        self.stats["runs"] += 1
        self.stats["operations_succeeded"] += summary.total_succeeded
        self.stats["operations_failed"] += summary.total_failed
        self.stats["bytes_copied"] += summary.bytes_copied

    def backup(self, profile: BackupProfile) -> BackupReport:
        """
        Mirror a profile's source into its destination.

        Args:
            profile: Backup profile

        Returns:
            BackupReport with the plan and the executed operations

        Raises:
            TreeNotFoundError: If the source folder does not exist
        """
        start = time.monotonic()
        result = BackupReport(profile=profile.name)
        matcher = self.matcher(profile)

        source_entries = self.scan("Source", profile.source, matcher, throw_if_not_exist=True)
        destination_entries = self.scan("Destination", profile.destination, matcher, throw_if_not_exist=False)
        result.unreadable = sorted((e for e in source_entries if not e.is_readable), key=lambda e: e.name)

        plan = SyncPlanner(matcher).plan(source_entries, destination_entries)
        result.plan = plan

        if plan.is_empty:
            self.output("The source and destination are already exactly the same. No actions required.")
            self._finish(result, start)
            return result

        self.output(report.render_plan_details(
            plan, profile.source, profile.destination, profile.no_overriding, profile.no_deletion
        ))
        self.output(report.render_plan_summary(plan))

        if profile.dry_run:
            answer = Answer.YES
        else:
            if plan.has_moves:
                self.output("Moving/renaming actions detected. Answer 'm' to run only them.")
            answer = self._ask("Continue", allow_moves=plan.has_moves)
        result.answer = answer

        if answer == Answer.NO:
            self.output("Operation cancelled.")
            self._finish(result, start)
            return result

        src_ops = LocalFileOps(profile.source)
        with LocalFileOps(profile.destination) as dst_ops:
            if not profile.dry_run:
                dst_ops.create_folder("")
            executor = PlanExecutor(
                src_ops,
                dst_ops,
                workers=self.config.scan.workers,
                dry_run=profile.dry_run,
                no_deletion=profile.no_deletion,
                no_overriding=profile.no_overriding
            )
            if answer == Answer.MOVES_ONLY:
                result.results = executor.execute_moves(plan)
            else:
                result.results = executor.execute(plan)

        if not profile.dry_run:
            self._record(result.results)
        self._finish(result, start)
        return result

    def _finish(self, result: BackupReport, start: float):
        result.duration = time.monotonic() - start
        unreadable = report.render_unreadable(result.unreadable)
        if unreadable:
            self.output(unreadable)
        if result.executed:
            self.output(report.render_execution_summary(result.results))
        logger.info(f"Backup '{result.profile}' finished in {result.duration:.2f}s")

    def find_duplicates(self, root: str, exclude: Optional[List[str]] = None) -> DuplicatesResult:
        """
        Report duplicated content of one tree.

        Args:
            root: Folder to analyse
            exclude: Extra exclusion patterns

        Returns:
            The detection result
        """
        matcher = ExclusionMatcher(self.config.exclude_patterns() + list(exclude or []))
        entries = self.scan("Target", root, matcher, throw_if_not_exist=True)

        unreadable = report.render_unreadable(entries)
        if unreadable:
            self.output(unreadable)

        result = DuplicateDetector().detect(entries)
        link = LocalFileOps(root).web_link
        self.output(report.render_duplicates_report(result, DuplicatesSummary.from_result(result), link))
        return result

    def cleanup(self, root: str, dry_run: bool = False) -> List[OperationResult]:
        """
        Delete ignored files and folders with no other content.

        Args:
            root: Folder to clean
            dry_run: Only show the plan

        Returns:
            Executed delete operations
        """
        matcher = self.matcher()
        entries = self.scan("Target", root, matcher, throw_if_not_exist=True,
                            include_excluded=True, hash_content=False)
        plan = plan_cleanup(entries, matcher)

        self.output(report.render_cleanup_plan(plan))
        if plan.is_empty:
            return []
        if dry_run:
            self.output("Dry-run mode: no changes applied.")
            return []
        if self._ask("Do you want to proceed with deletion") != Answer.YES:
            self.output("Operation cancelled.")
            return []

        results = self._delete_all(LocalFileOps(root), plan.deletion_order())
        self.output(report.render_execution_summary(results))
        return results

    def prune_duplicates(self, source: str, destination: str, dry_run: bool = False,
                         exclude: Optional[List[str]] = None) -> List[OperationResult]:
        """
        Delete source files that already exist in the destination.

        Args:
            source: Folder to prune
            destination: Folder holding the copies to keep
            dry_run: Only show the plan
            exclude: Extra exclusion patterns

        Returns:
            Executed delete operations
        """
        matcher = ExclusionMatcher(self.config.exclude_patterns() + list(exclude or []))
        source_entries = self.scan("Source", source, matcher, throw_if_not_exist=True)
        destination_entries = self.scan("Destination", destination, matcher, throw_if_not_exist=True)

        plan = plan_prune_duplicates(source_entries, destination_entries, matcher)
        src_ops = LocalFileOps(source)

        self.output(report.render_prune_plan(plan, src_ops.web_link))
        if plan.is_empty:
            return []
        if dry_run:
            self.output("Dry-run mode: no changes applied.")
            return []
        if self._ask("Do you want to proceed with deletion from SOURCE") != Answer.YES:
            self.output("Operation cancelled.")
            return []

        results = self._delete_all(src_ops, plan.items())
        self.output(report.render_execution_summary(results))
        return results

    def _delete_all(self, ops: LocalFileOps, entries) -> List[OperationResult]:
        results = []
        for entry in entries:
            kind = OperationKind.DELETE_FOLDER if entry.is_directory else OperationKind.DELETE_FILE
            try:
                ops.delete(entry.name)
                results.append(OperationResult(kind, entry.name, True, size=entry.size))
            except OSError as e:
                logger.error(f"Failed to delete {entry.name}: {e}")
                results.append(OperationResult(kind, entry.name, False, error_message=str(e)))
        self._record(results)
        return results

    def get_stats(self) -> Dict[str, int]:
        """Get sync statistics."""
        return self.stats.copy()
