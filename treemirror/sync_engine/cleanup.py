"""
Cleanup Planning

Pure planners for the two housekeeping modes:

- cleanup: remove ignored (excluded) files and folders that hold no other
  files from a tree
- prune duplicates: remove from the source tree files already present in
  the destination under the same base name with the same content, folding
  whole folders into one deletion where nothing in them is worth keeping

Author: TreeMirror Project
License: MIT
"""

from dataclasses import dataclass
from typing import Dict, Iterable, Set, Tuple

from ..files.entry import FileEntry, is_under, parent_path
from ..files.exclusion import ExclusionMatcher
from ..utils.logger import get_logger

logger = get_logger(__name__)


def _ancestors(path: str):
    folder = parent_path(path)
    while folder:
        yield folder
        folder = parent_path(folder)


@dataclass(frozen=True)
class CleanupPlan:
    ignored_files: Tuple[FileEntry, ...] = ()
    empty_folders: Tuple[FileEntry, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.ignored_files and not self.empty_folders

    @property
    def ignored_size(self) -> int:
        return sum(f.size for f in self.ignored_files)

    def deletion_order(self) -> Tuple[FileEntry, ...]:
        """Files first, then folders children before parents."""
        return self.ignored_files + self.empty_folders


@dataclass(frozen=True)
class PrunePlan:
    files: Tuple[FileEntry, ...] = ()
    folders: Tuple[FileEntry, ...] = ()
    freed_space: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.files and not self.folders

    def items(self) -> Tuple[FileEntry, ...]:
        """Everything to delete, sorted by name."""
        return tuple(sorted(self.files + self.folders, key=lambda e: e.name))


def plan_cleanup(entries: Iterable[FileEntry], matcher: ExclusionMatcher) -> CleanupPlan:
    """
    Find ignored files and folders left without any kept file.

    Args:
        entries: Snapshot that still contains excluded entries
        matcher: Rules deciding which files are ignored

    Returns:
        CleanupPlan
    """
    ignored = []
    folders = []
    kept_folders: Set[str] = set()

    for entry in entries:
        if entry.is_root:
            continue
        if entry.is_directory:
            folders.append(entry)
        elif matcher.is_path_excluded(entry.name):
            ignored.append(entry)
        else:
            kept_folders.update(_ancestors(entry.name))

    empty = [f for f in folders if f.name not in kept_folders]

    result = CleanupPlan(
        ignored_files=tuple(sorted(ignored, key=lambda e: e.name)),
        empty_folders=tuple(sorted(empty, key=lambda e: e.name, reverse=True)),
    )
    logger.info(f"Cleanup: {len(result.ignored_files)} ignored files, {len(result.empty_folders)} empty folders")
    return result


def plan_prune_duplicates(
    source_entries: Iterable[FileEntry],
    destination_entries: Iterable[FileEntry],
    matcher: ExclusionMatcher
) -> PrunePlan:
    """
    Plan deletion of source files that already exist in the destination.

    A source file qualifies when some destination file has the same base name
    and the same content hash. A source folder is deleted as a whole when
    everything below it is a qualifying file or an ignored file; files and
    subfolders under such a folder are not listed separately.

    Args:
        source_entries: Snapshot of the tree to prune
        destination_entries: Snapshot of the tree holding the kept copies
        matcher: Rules deciding which files are ignored

    Returns:
        PrunePlan
    """
    known: Dict[str, Set[str]] = {}
    for entry in destination_entries:
        if entry.has_known_content:
            known.setdefault(entry.base_name, set()).add(entry.content_hash)

    duplicates = []
    folders = []
    kept_folders: Set[str] = set()

    for entry in source_entries:
        if entry.is_root:
            continue
        if entry.is_directory:
            folders.append(entry)
        elif matcher.is_path_excluded(entry.name):
            continue
        elif entry.has_known_content and entry.content_hash in known.get(entry.base_name, ()):
            duplicates.append(entry)
        else:
            kept_folders.update(_ancestors(entry.name))

    removable = sorted((f for f in folders if f.name not in kept_folders), key=lambda e: e.name)
    top_folders = []
    for folder in removable:
        if not any(is_under(folder.name, top.name) for top in top_folders):
            top_folders.append(folder)

    files = [f for f in duplicates if not any(is_under(f.name, top.name) for top in top_folders)]

    result = PrunePlan(
        files=tuple(sorted(files, key=lambda e: e.name)),
        folders=tuple(top_folders),
        freed_space=sum(f.size for f in duplicates),
    )
    logger.info(f"Prune: {len(result.files)} files and {len(result.folders)} folders to delete")
    return result
