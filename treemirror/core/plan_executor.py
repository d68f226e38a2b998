"""
Plan Executor

Applies an ActionPlan to a destination backend.

Operations run in an order that keeps every step valid:

1. Folder moves/renames, deepest first, each one backend call
2. File moves/renames (paths under already moved folders are followed)
3. Folder creation, parents first
4. Copies of new files, then overrides, in parallel
5. File deletions in parallel, then folder deletions, deepest first

Plan collections never share a path, so operations inside one step can run
concurrently without locking. A failed operation is recorded and the run
goes on.

Author: TreeMirror Project
License: MIT
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from ..files.entry import FileEntry, is_under, path_depth
from ..sync_engine.file_mover import FileOps
from ..sync_engine.planner import ActionPlan, MovePair
from ..utils.logger import get_logger, describe_error

logger = get_logger(__name__)


class OperationKind(Enum):
    """Kind of a single backend operation."""
    MOVE_FOLDER = "move_folder"
    RENAME_FOLDER = "rename_folder"
    MOVE_FILE = "move_file"
    RENAME_FILE = "rename_file"
    CREATE_FOLDER = "create_folder"
    COPY = "copy"
    OVERRIDE = "override"
    DELETE_FILE = "delete_file"
    DELETE_FOLDER = "delete_folder"


@dataclass
class OperationResult:
    """Outcome of one backend operation."""
    kind: OperationKind
    path: str
    success: bool
    new_path: Optional[str] = None
    size: int = 0
    error_message: Optional[str] = None
    dry_run: bool = False
    timestamp: datetime = field(default_factory=datetime.now)

    def __repr__(self) -> str:
        status = "ok" if self.success else "failed"
        return f"OperationResult({self.kind.value} {self.path}, {status})"


@dataclass
class ExecutionSummary:
    """Aggregated outcome of a plan execution."""
    succeeded: Dict[OperationKind, int] = field(default_factory=dict)
    failures: List[OperationResult] = field(default_factory=list)
    bytes_copied: int = 0

    @classmethod
    def from_results(cls, results: Iterable[OperationResult]) -> 'ExecutionSummary':
        summary = cls()
        for result in results:
            if result.success:
                summary.succeeded[result.kind] = summary.succeeded.get(result.kind, 0) + 1
                if result.kind in (OperationKind.COPY, OperationKind.OVERRIDE):
                    summary.bytes_copied += result.size
            else:
                summary.failures.append(result)
        return summary

    @property
    def total_succeeded(self) -> int:
        return sum(self.succeeded.values())

    @property
    def total_failed(self) -> int:
        return len(self.failures)

    @property
    def success(self) -> bool:
        return not self.failures


class PlanExecutor:
    """
    Executes action plans against a pair of backends.

    In dry-run mode every operation is reported as it would run but no
    backend method is called.
    """

    def __init__(
        self,
        src_ops: FileOps,
        dst_ops: FileOps,
        workers: int = 4,
        dry_run: bool = False,
        no_deletion: bool = False,
        no_overriding: bool = False
    ):
        """
        Initialize the executor.

        Args:
            src_ops: Backend holding the source tree
            dst_ops: Backend holding the destination tree
            workers: Size of the worker pool for copies and deletions
            dry_run: Report operations without running them
            no_deletion: Skip all deletions
            no_overriding: Skip all overrides
        """
        self.src_ops = src_ops
        self.dst_ops = dst_ops
        self.workers = max(1, workers)
        self.dry_run = dry_run
        self.no_deletion = no_deletion
        self.no_overriding = no_overriding

        self._moved_folders: List[Tuple[str, str]] = []

        logger.info(f"PlanExecutor initialized (workers={self.workers}, dry_run={dry_run})")

    def execute(self, plan: ActionPlan) -> List[OperationResult]:
        """
        Run the whole plan.

        Args:
            plan: Plan produced by the sync planner

        Returns:
            One OperationResult per attempted operation
        """
        # Files standing where the source has folders must go before anything lands beneath them
        folder_overrides = [] if self.no_overriding else [e for e in plan.to_override if e.is_directory]
        replaced = self._replace_folders(folder_overrides)
        results = replaced + self.execute_moves(plan)

        folders = sorted((e for e in plan.to_add if e.is_directory), key=lambda e: (e.depth, e.name))
        files = sorted((e for e in plan.to_add if not e.is_directory), key=lambda e: e.name)

        logger.info(f"Creating {len(folders)} folders")
        for folder in folders:
            results.append(self._run(OperationKind.CREATE_FOLDER, folder.name, self.dst_ops.create_folder, folder.name))

        logger.info(f"Copying {len(files)} files")
        results.extend(self._parallel(
            lambda entry: self._run(
                OperationKind.COPY, entry.name,
                self.dst_ops.copy_file, self.src_ops, entry.name, self._lands_in_moved_folder(entry.name),
                size=entry.size
            ),
            files
        ))

        if self.no_overriding:
            if plan.to_override:
                logger.info(f"Skipping {len(plan.to_override)} overrides (overriding disabled)")
        else:
            results.extend(self._apply_overrides(e for e in plan.to_override if not e.is_directory))

        if self.no_deletion:
            if plan.to_delete:
                logger.info(f"Skipping {len(plan.to_delete)} deletions (deletion disabled)")
        else:
            results.extend(self._apply_deletes(plan))

        summary = ExecutionSummary.from_results(results)
        logger.info(f"Plan executed: {summary.total_succeeded} operations succeeded, {summary.total_failed} failed")
        return results

    def execute_moves(self, plan: ActionPlan) -> List[OperationResult]:
        """
        Run only the move and rename part of a plan.

        Args:
            plan: Plan produced by the sync planner

        Returns:
            One OperationResult per attempted move
        """
        self._moved_folders = []
        results = []

        folder_pairs = [(OperationKind.MOVE_FOLDER, p) for p in plan.to_move_folders]
        folder_pairs += [(OperationKind.RENAME_FOLDER, p) for p in plan.to_rename_folders]
        folder_pairs.sort(key=lambda item: (-item[1].entry.depth, item[1].entry.name))

        if folder_pairs:
            logger.info(f"Moving {len(folder_pairs)} folders")
        for kind, pair in folder_pairs:
            result = self._move(kind, pair)
            if result.success:
                self._moved_folders.append((pair.entry.name, pair.new_name))
            results.append(result)

        file_pairs = [(OperationKind.MOVE_FILE, p) for p in plan.to_move_files]
        file_pairs += [(OperationKind.RENAME_FILE, p) for p in plan.to_rename_files]
        file_pairs.sort(key=lambda item: item[1].entry.name)

        if file_pairs:
            logger.info(f"Moving {len(file_pairs)} files")
        for kind, pair in file_pairs:
            results.append(self._move(kind, pair))

        return results

    def _move(self, kind: OperationKind, pair: MovePair) -> OperationResult:
        current = self._relocate(pair.entry.name)
        return self._run(kind, current, self.dst_ops.move, current, pair.new_name, new_path=pair.new_name)

    def _relocate(self, path: str) -> str:
        """Where ``path`` lives now that earlier folder moves have run."""
        for old, new in self._moved_folders:
            if is_under(path, old):
                path = new + path[len(old):]
        return path

    def _lands_in_moved_folder(self, path: str) -> bool:
        return any(is_under(path, new) for _, new in self._moved_folders)

    def _apply_overrides(self, entries: Iterable[FileEntry]) -> List[OperationResult]:
        entries = sorted(entries, key=lambda e: e.name)
        if not entries:
            return []

        logger.info(f"Overriding {len(entries)} files")
        return self._parallel(
            lambda entry: self._run(
                OperationKind.OVERRIDE, entry.name,
                self.dst_ops.copy_file, self.src_ops, entry.name, True,
                size=entry.size
            ),
            entries
        )

    def _replace_folders(self, entries: Iterable[FileEntry]) -> List[OperationResult]:
        folders = sorted(entries, key=lambda e: (e.depth, e.name))
        if folders:
            logger.info(f"Replacing {len(folders)} files with folders")
        return [
            self._run(OperationKind.OVERRIDE, folder.name, self._replace_with_folder, folder.name)
            for folder in folders
        ]

    def _replace_with_folder(self, path: str):
        self.dst_ops.delete(path)
        self.dst_ops.create_folder(path)

    def _apply_deletes(self, plan: ActionPlan) -> List[OperationResult]:
        claimed = {e.name for e in plan.to_add} | {e.name for e in plan.to_override}

        def target(entry: FileEntry) -> str:
            # Leftovers carried along by a folder move are deleted at their new place
            moved = self._relocate(entry.name)
            return entry.name if moved in claimed else moved

        files = sorted((e for e in plan.to_delete if not e.is_directory), key=lambda e: e.name)
        folders = sorted(
            (e for e in plan.to_delete if e.is_directory),
            key=lambda e: (-path_depth(e.name), e.name)
        )

        if not files and not folders:
            return []

        logger.info(f"Deleting {len(files)} files and {len(folders)} folders")
        results = self._parallel(
            lambda entry: self._run(OperationKind.DELETE_FILE, target(entry), self.dst_ops.delete, target(entry)),
            files
        )
        for folder in folders:
            path = target(folder)
            results.append(self._run(OperationKind.DELETE_FOLDER, path, self.dst_ops.delete, path))
        return results

    def _parallel(self, task: Callable[[FileEntry], OperationResult], entries: List[FileEntry]) -> List[OperationResult]:
        if not entries:
            return []
        if self.workers == 1 or len(entries) == 1:
            return [task(entry) for entry in entries]
        with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="exec") as pool:
            return list(pool.map(task, entries))

    def _run(
        self,
        kind: OperationKind,
        path: str,
        action: Callable,
        *args,
        new_path: Optional[str] = None,
        size: int = 0
    ) -> OperationResult:
        """Run one backend call and capture its outcome."""
        description = f"{kind.value} {path}" + (f" -> {new_path}" if new_path else "")

        if self.dry_run:
            logger.info(f"[DRY RUN] Would {description}")
            return OperationResult(kind, path, True, new_path=new_path, size=size, dry_run=True)

        try:
            action(*args)
        except Exception as e:
            logger.error(f"Failed to {description}: {describe_error(e)}")
            return OperationResult(kind, path, False, new_path=new_path, size=size, error_message=str(e))

        logger.debug(f"Done: {description}")
        return OperationResult(kind, path, True, new_path=new_path, size=size)
