"""
Sync Planner

Turns a source snapshot and a destination snapshot into the minimal action
plan that makes the destination mirror the source: plain adds, deletes and
overrides, plus move/rename pairs at file and folder granularity so that
reorganised content is relocated instead of being uploaded again.

The planner is a pure function over immutable entries. It performs no I/O
and never mutates its inputs.

Author: TreeMirror Project
License: MIT
"""

from dataclasses import dataclass
from typing import Callable, Dict, FrozenSet, Iterable, List, NamedTuple, Optional, Set, Tuple

from ..files.entry import FileEntry, PATH_SEPARATOR, is_under, join_path
from ..files.exclusion import ExclusionMatcher
from ..utils.logger import get_logger

logger = get_logger(__name__)


class PlanInvariantError(RuntimeError):
    """Raised when a built plan breaks one of its structural guarantees."""


class MovePair(NamedTuple):
    """A destination entry that should end up at ``new_name``."""
    entry: FileEntry
    new_name: str


@dataclass(frozen=True)
class ActionPlan:
    """
    Result of comparing a source tree with a destination tree.

    ``to_add`` and ``to_override`` hold source entries; ``to_delete`` and the
    move/rename pairs hold destination entries. No relative path appears in
    more than one collection.
    """
    to_add: FrozenSet[FileEntry] = frozenset()
    to_delete: FrozenSet[FileEntry] = frozenset()
    to_override: FrozenSet[FileEntry] = frozenset()
    to_move_files: FrozenSet[MovePair] = frozenset()
    to_rename_files: FrozenSet[MovePair] = frozenset()
    to_move_folders: FrozenSet[MovePair] = frozenset()
    to_rename_folders: FrozenSet[MovePair] = frozenset()

    @property
    def has_primary_actions(self) -> bool:
        """True if anything has to be copied, overridden or deleted."""
        return bool(self.to_add or self.to_delete or self.to_override)

    @property
    def has_moves(self) -> bool:
        return bool(self.to_move_files or self.to_rename_files or self.to_move_folders or self.to_rename_folders)

    @property
    def is_empty(self) -> bool:
        """True when source and destination already match."""
        return not self.has_primary_actions and not self.has_moves

    def collections(self) -> Dict[str, FrozenSet]:
        return {
            "add": self.to_add,
            "delete": self.to_delete,
            "override": self.to_override,
            "move_files": self.to_move_files,
            "rename_files": self.to_rename_files,
            "move_folders": self.to_move_folders,
            "rename_folders": self.to_rename_folders,
        }

    def counts(self) -> Dict[str, int]:
        return {key: len(value) for key, value in self.collections().items()}

    def paths_by_collection(self) -> Dict[str, List[str]]:
        """Every relative path each collection touches."""
        paths: Dict[str, List[str]] = {}
        for key, collection in self.collections().items():
            touched: List[str] = []
            for item in collection:
                if isinstance(item, MovePair):
                    touched.extend((item.entry.name, item.new_name))
                else:
                    touched.append(item.name)
            paths[key] = touched
        return paths

    def check_disjoint(self):
        """
        Verify that no path is claimed by two collections.

        Raises:
            PlanInvariantError: If a path appears twice
        """
        owner: Dict[str, str] = {}
        for key, paths in self.paths_by_collection().items():
            for path in paths:
                previous = owner.setdefault(path, key)
                if previous != key:
                    raise PlanInvariantError(
                        f"Path {path!r} is claimed by both '{previous}' and '{key}'"
                    )


def deepest_first(folders: Iterable[FileEntry]) -> List[FileEntry]:
    """Order folders so that nested ones come before their ancestors."""
    return sorted(folders, key=lambda folder: (-folder.depth, folder.name))


def _relative_to(path: str, folder: str) -> str:
    return path[len(folder) + 1:] if folder else path


class SyncPlanner:
    """
    Builds ActionPlans.

    File moves are found by content: a deleted destination file and an added
    source file with the same ``(content_hash, size)`` become one move (same
    base name) or rename (different base name). When several deleted files
    share that key, the one with the same base name wins, otherwise the first
    by name; each deleted file is paired at most once. This is a heuristic and
    can misattribute provenance when identical files are shuffled together.

    Folder moves are found on top of the file pairs, deepest folder first: a
    deleted folder whose every non-excluded file moved to the same relative
    place under one added folder becomes a single folder move or rename, and
    the per-file pairs it covers are dropped.
    """

    def __init__(
        self,
        matcher: Optional[ExclusionMatcher] = None,
        folder_order: Callable[[Iterable[FileEntry]], List[FileEntry]] = deepest_first
    ):
        """
        Initialize the planner.

        Args:
            matcher: Patterns of files ignored by folder-move detection
                (sidecar caches and the like)
            folder_order: Sort applied to deleted folders before folder-move
                detection; must put descendants before ancestors
        """
        self.matcher = matcher or ExclusionMatcher()
        self.folder_order = folder_order

    def plan(self, source_entries: Iterable[FileEntry], destination_entries: Iterable[FileEntry]) -> ActionPlan:
        """
        Compare two snapshots.

        Args:
            source_entries: Snapshot of the source tree
            destination_entries: Snapshot of the destination tree

        Returns:
            The action plan

        Raises:
            PlanInvariantError: If the resulting plan is not disjoint
        """
        source = [e for e in source_entries if not e.is_root]
        destination = [e for e in destination_entries if not e.is_root]

        readable = {e.name: e for e in source if e.is_readable}
        all_source_names = {e.name for e in source}
        destination_by_name = {e.name: e for e in destination}

        # Entries that failed to read still claim their name, so their
        # destination copy is neither deleted nor overridden.
        to_add = {readable[name] for name in readable.keys() - destination_by_name.keys()}
        to_delete = {destination_by_name[name] for name in destination_by_name.keys() - all_source_names}
        to_override = {
            readable[name]
            for name in readable.keys() & destination_by_name.keys()
            if readable[name] != destination_by_name[name]
        }

        file_moves, file_renames, targets = self._detect_file_moves(to_add, to_delete)

        ordered_folders = self.folder_order(e for e in to_delete if e.is_directory)
        folder_moves, folder_renames = self._detect_folder_moves(
            ordered_folders, destination, to_add, to_delete, file_moves, file_renames, targets
        )

        result = ActionPlan(
            to_add=frozenset(to_add),
            to_delete=frozenset(to_delete),
            to_override=frozenset(to_override),
            to_move_files=frozenset(file_moves),
            to_rename_files=frozenset(file_renames),
            to_move_folders=frozenset(folder_moves),
            to_rename_folders=frozenset(folder_renames),
        )
        result.check_disjoint()

        logger.info(
            "Plan built: {add} to add, {delete} to delete, {override} to override, "
            "{move_files} file moves, {rename_files} file renames, "
            "{move_folders} folder moves, {rename_folders} folder renames".format(**result.counts())
        )
        return result

    def _detect_file_moves(
        self,
        to_add: Set[FileEntry],
        to_delete: Set[FileEntry]
    ) -> Tuple[Set[MovePair], Set[MovePair], Dict[str, str]]:
        """Pair added and deleted files by content; updates both sets in place."""
        candidates: Dict[Tuple[str, int], List[FileEntry]] = {}
        for deleted in sorted(to_delete, key=lambda e: e.name):
            if deleted.has_known_content:
                candidates.setdefault((deleted.content_hash, deleted.size), []).append(deleted)

        moves: Set[MovePair] = set()
        renames: Set[MovePair] = set()
        targets: Dict[str, str] = {}

        if not candidates:
            return moves, renames, targets

        for added in sorted((e for e in to_add if e.has_known_content), key=lambda e: e.name):
            pool = candidates.get((added.content_hash, added.size))
            if not pool:
                continue

            match = next((c for c in pool if c.base_name == added.base_name), pool[0])
            pool.remove(match)

            to_add.discard(added)
            to_delete.discard(match)
            targets[match.name] = added.name

            if match.base_name == added.base_name:
                moves.add(MovePair(match, added.name))
            else:
                renames.add(MovePair(match, added.name))

        logger.debug(f"File pairing: {len(moves)} moves, {len(renames)} renames")
        return moves, renames, targets

    def _detect_folder_moves(
        self,
        ordered_folders: List[FileEntry],
        destination: List[FileEntry],
        to_add: Set[FileEntry],
        to_delete: Set[FileEntry],
        file_moves: Set[MovePair],
        file_renames: Set[MovePair],
        targets: Dict[str, str]
    ) -> Tuple[Set[MovePair], Set[MovePair]]:
        """Collapse file pairs into folder moves; updates all collections in place."""
        folder_moves: Set[MovePair] = set()
        folder_renames: Set[MovePair] = set()

        if not ordered_folders or not targets:
            return folder_moves, folder_renames

        added_folders = {e.name: e for e in to_add if e.is_directory}
        descendants = self._index_descendant_files(ordered_folders, destination)

        for folder in ordered_folders:
            if folder not in to_delete:
                continue

            files = descendants.get(folder.name, [])
            if not files:
                continue

            direct = [f for f in files if f.parent == folder.name]
            probes = direct or files
            if any(f.name not in targets for f in probes):
                continue

            # The first probe tells where the folder went
            first = probes[0]
            suffix = _relative_to(first.name, folder.name)
            first_target = targets[first.name]
            if not first_target.endswith(PATH_SEPARATOR + suffix):
                continue
            new_folder_name = first_target[:-(len(suffix) + 1)]

            new_folder = added_folders.get(new_folder_name)
            if new_folder is None:
                continue

            if not all(
                targets.get(f.name) == join_path(new_folder_name, _relative_to(f.name, folder.name))
                for f in files
            ):
                continue

            pair = MovePair(folder, new_folder_name)
            if folder.base_name == new_folder.base_name:
                folder_moves.add(pair)
            else:
                folder_renames.add(pair)

            to_delete.discard(folder)
            to_add.discard(new_folder)
            del added_folders[new_folder_name]

            self._drop_subsumed(folder.name, new_folder_name, file_moves, file_renames, folder_moves, folder_renames)
            self._drop_mirrored_folders(folder.name, new_folder_name, to_add, to_delete, added_folders)

            logger.debug(f"Folder {folder.name!r} relocates to {new_folder_name!r}")

        return folder_moves, folder_renames

    def _index_descendant_files(
        self,
        folders: List[FileEntry],
        destination: List[FileEntry]
    ) -> Dict[str, List[FileEntry]]:
        """Map each candidate folder to its non-excluded descendant files, sorted by name."""
        wanted = {folder.name for folder in folders}
        index: Dict[str, List[FileEntry]] = {}

        for entry in sorted(destination, key=lambda e: e.name):
            if entry.is_directory or self.matcher.is_path_excluded(entry.name):
                continue
            ancestor = entry.parent
            while ancestor:
                if ancestor in wanted:
                    index.setdefault(ancestor, []).append(entry)
                ancestor = ancestor.rsplit(PATH_SEPARATOR, 1)[0] if PATH_SEPARATOR in ancestor else ""

        return index

    @staticmethod
    def _drop_subsumed(old_folder: str, new_folder: str, *collections: Set[MovePair]):
        """Remove pairs that simply follow their folder to its new place."""
        for collection in collections:
            subsumed = {
                pair for pair in collection
                if is_under(pair.entry.name, old_folder)
                and pair.new_name == join_path(new_folder, _relative_to(pair.entry.name, old_folder))
            }
            collection.difference_update(subsumed)

    @staticmethod
    def _drop_mirrored_folders(
        old_folder: str,
        new_folder: str,
        to_add: Set[FileEntry],
        to_delete: Set[FileEntry],
        added_folders: Dict[str, FileEntry]
    ):
        """Remove deleted subfolders whose counterpart is added under the new folder."""
        for deleted in [e for e in to_delete if e.is_directory and is_under(e.name, old_folder)]:
            mirror = join_path(new_folder, _relative_to(deleted.name, old_folder))
            if mirror in added_folders:
                to_delete.discard(deleted)
                to_add.discard(added_folders.pop(mirror))


def plan(
    source_entries: Iterable[FileEntry],
    destination_entries: Iterable[FileEntry],
    matcher: Optional[ExclusionMatcher] = None
) -> ActionPlan:
    """
    Convenience function to build a plan.

    Args:
        source_entries: Snapshot of the source tree
        destination_entries: Snapshot of the destination tree
        matcher: Exclusion rules for folder-move detection

    Returns:
        The action plan
    """
    return SyncPlanner(matcher).plan(source_entries, destination_entries)
