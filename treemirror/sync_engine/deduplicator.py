"""
Duplicate Detector

Partitions the redundant content of one tree snapshot into three tiers:

1. Full-folder duplicates: folders whose files (names and hashes) match.
2. Partial-folder duplicates: sets of folders that share some duplicated
   content exclusively among themselves.
3. File duplicates: whatever duplicated files remain.

Every file is counted in at most one tier, so wasted space adds up across
them.

Author: TreeMirror Project
License: MIT
"""

from collections import Counter
from dataclasses import dataclass
from itertools import combinations
from typing import Dict, FrozenSet, Iterable, List, Optional, Set, Tuple

from .graph import connected_components
from ..files.entry import FileEntry
from ..utils.logger import get_logger

logger = get_logger(__name__)

FINGERPRINT_SEPARATOR = "|"


@dataclass(frozen=True)
class DuplicateGroup:
    """Files sharing one content hash."""
    content_hash: str
    files: Tuple[FileEntry, ...]
    size: int

    @property
    def copies(self) -> int:
        return len(self.files)

    @property
    def wasted_space(self) -> int:
        return self.size * (len(self.files) - 1)


@dataclass(frozen=True)
class FolderDuplicateGroup:
    """Folders with identical direct file content."""
    fingerprint: str
    folders: Tuple[str, ...]
    files_count: int
    total_size: int

    @property
    def wasted_space(self) -> int:
        return self.total_size * (len(self.folders) - 1)

    @property
    def redundant_files(self) -> int:
        return self.files_count * (len(self.folders) - 1)


@dataclass(frozen=True)
class PartialFolderInfo:
    """One folder of a partial duplicate group."""
    folder_path: str
    duplicate_files_count: int
    duplicate_files_size: int
    total_files_count: int
    is_original_candidate: bool = False

    @property
    def is_full_duplicate(self) -> bool:
        """True when every file of the folder is a duplicate."""
        return self.duplicate_files_count == self.total_files_count


@dataclass(frozen=True)
class PartialFolderGroup:
    """Folders that share duplicated content only among themselves."""
    folders: Tuple[PartialFolderInfo, ...]
    file_groups: Tuple[DuplicateGroup, ...]

    @property
    def total_duplicate_files_size(self) -> int:
        return sum(group.size * group.copies for group in self.file_groups)

    @property
    def wasted_space(self) -> int:
        return sum(group.wasted_space for group in self.file_groups)

    @property
    def redundant_files(self) -> int:
        return sum(group.copies - 1 for group in self.file_groups)


@dataclass(frozen=True)
class DuplicatesResult:
    folder_groups: Tuple[FolderDuplicateGroup, ...] = ()
    partial_folder_groups: Tuple[PartialFolderGroup, ...] = ()
    file_groups: Tuple[DuplicateGroup, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.folder_groups or self.partial_folder_groups or self.file_groups)


@dataclass(frozen=True)
class DuplicatesSummary:
    """Aggregated statistics over all three tiers."""
    total_folder_groups: int
    total_partial_folder_groups: int
    total_groups: int
    total_duplicate_files: int
    total_wasted_space: int
    largest_group: Optional[DuplicateGroup] = None

    @classmethod
    def from_result(cls, result: DuplicatesResult) -> 'DuplicatesSummary':
        """
        Summarise a detection result.

        Args:
            result: Output of DuplicateDetector.detect()

        Returns:
            Summary where counts and wasted space add up across tiers
        """
        return cls(
            total_folder_groups=len(result.folder_groups),
            total_partial_folder_groups=len(result.partial_folder_groups),
            total_groups=len(result.file_groups),
            total_duplicate_files=(
                sum(g.redundant_files for g in result.folder_groups)
                + sum(g.redundant_files for g in result.partial_folder_groups)
                + sum(g.copies - 1 for g in result.file_groups)
            ),
            total_wasted_space=(
                sum(g.wasted_space for g in result.folder_groups)
                + sum(g.wasted_space for g in result.partial_folder_groups)
                + sum(g.wasted_space for g in result.file_groups)
            ),
            largest_group=max(result.file_groups, key=lambda g: g.wasted_space, default=None),
        )


def _sorted_by_waste(groups: Iterable[DuplicateGroup]) -> List[DuplicateGroup]:
    return sorted(groups, key=lambda g: (-g.wasted_space, g.content_hash))


class DuplicateDetector:
    """
    Duplicate detection over a single snapshot.

    Only readable files with a known content hash take part; a file whose
    content is unknown is never reported as a duplicate of anything.
    """

    def __init__(self, min_shared_hashes: int = 2):
        """
        Initialize the detector.

        Args:
            min_shared_hashes: Number of duplicate hash groups two folders
                must share to be linked into a partial-folder group
        """
        if min_shared_hashes < 1:
            raise ValueError("min_shared_hashes must be at least 1")
        self.min_shared_hashes = min_shared_hashes

    def detect(self, entries: Iterable[FileEntry]) -> DuplicatesResult:
        """
        Find duplicates in a snapshot.

        Args:
            entries: Snapshot entries

        Returns:
            DuplicatesResult with all three tiers
        """
        entries = list(entries)
        files = sorted((e for e in entries if e.has_known_content), key=lambda e: e.name)

        hash_groups = self._group_by_hash(files)
        if not hash_groups:
            logger.info("No duplicate content found")
            return DuplicatesResult()

        folder_groups = self._find_folder_groups(files)
        full_folders = {folder for group in folder_groups for folder in group.folders}
        handled = {f.name for f in files if f.parent in full_folders}

        remaining = {}
        for content_hash, group in hash_groups.items():
            survivors = tuple(f for f in group.files if f.name not in handled)
            if len(survivors) > 1:
                remaining[content_hash] = survivors

        partial_groups = self._find_partial_groups(remaining, entries)
        covered = set(handled)
        for partial in partial_groups:
            for group in partial.file_groups:
                covered.update(f.name for f in group.files)

        file_groups = []
        for content_hash, group in hash_groups.items():
            survivors = tuple(f for f in group.files if f.name not in covered)
            if len(survivors) > 1:
                file_groups.append(DuplicateGroup(content_hash, survivors, group.size))

        result = DuplicatesResult(
            folder_groups=tuple(folder_groups),
            partial_folder_groups=tuple(partial_groups),
            file_groups=tuple(_sorted_by_waste(file_groups)),
        )
        logger.info(
            f"Duplicates: {len(result.folder_groups)} folder groups, "
            f"{len(result.partial_folder_groups)} partial folder groups, "
            f"{len(result.file_groups)} file groups"
        )
        return result

    @staticmethod
    def _group_by_hash(files: List[FileEntry]) -> Dict[str, DuplicateGroup]:
        by_hash: Dict[str, List[FileEntry]] = {}
        for entry in files:
            by_hash.setdefault(entry.content_hash, []).append(entry)

        return {
            content_hash: DuplicateGroup(content_hash, tuple(members), members[0].size)
            for content_hash, members in by_hash.items()
            if len(members) > 1
        }

    @staticmethod
    def _find_folder_groups(files: List[FileEntry]) -> List[FolderDuplicateGroup]:
        by_folder: Dict[str, List[FileEntry]] = {}
        for entry in files:
            by_folder.setdefault(entry.parent, []).append(entry)

        by_fingerprint: Dict[str, List[str]] = {}
        folder_stats: Dict[str, Tuple[int, int]] = {}
        for folder, children in by_folder.items():
            children.sort(key=lambda e: e.base_name)
            fingerprint = FINGERPRINT_SEPARATOR.join(f"{c.base_name}:{c.content_hash}" for c in children)
            if not fingerprint:
                continue
            by_fingerprint.setdefault(fingerprint, []).append(folder)
            folder_stats[fingerprint] = (len(children), sum(c.size for c in children))

        groups = []
        for fingerprint, folders in by_fingerprint.items():
            if len(folders) < 2:
                continue
            files_count, total_size = folder_stats[fingerprint]
            groups.append(FolderDuplicateGroup(fingerprint, tuple(sorted(folders)), files_count, total_size))

        groups.sort(key=lambda g: (-g.wasted_space, g.folders[0]))
        logger.debug(f"Found {len(groups)} full-folder duplicate groups")
        return groups

    def _find_partial_groups(
        self,
        remaining: Dict[str, Tuple[FileEntry, ...]],
        entries: List[FileEntry]
    ) -> List[PartialFolderGroup]:
        if not remaining:
            return []

        folders_by_hash: Dict[str, FrozenSet[str]] = {
            content_hash: frozenset(f.parent for f in members)
            for content_hash, members in remaining.items()
        }

        shared: Counter = Counter()
        for folders in folders_by_hash.values():
            for pair in combinations(sorted(folders), 2):
                shared[pair] += 1

        nodes = {folder for folders in folders_by_hash.values() for folder in folders}
        edges = [pair for pair, count in shared.items() if count >= self.min_shared_hashes]

        total_files: Counter = Counter(e.parent for e in entries if not e.is_directory and not e.is_root)

        groups = []
        for component in connected_components(nodes, edges):
            if len(component) < 2:
                continue
            members = set(component)
            touched = sorted(h for h, folders in folders_by_hash.items() if folders & members)

            # Leakage veto: a touched hash group with a copy outside the component
            if any(not folders_by_hash[h] <= members for h in touched):
                logger.debug(f"Rejected partial group {component}: content shared outside it")
                continue

            file_groups = tuple(
                DuplicateGroup(h, remaining[h], remaining[h][0].size) for h in touched
            )
            groups.append(self._build_partial_group(component, file_groups, total_files))

        groups.sort(key=lambda g: (-g.wasted_space, g.folders[0].folder_path))
        logger.debug(f"Found {len(groups)} partial folder duplicate groups")
        return groups

    @staticmethod
    def _build_partial_group(
        component: List[str],
        file_groups: Tuple[DuplicateGroup, ...],
        total_files: Counter
    ) -> PartialFolderGroup:
        hashes: Dict[str, Set[str]] = {folder: set() for folder in component}
        counts: Counter = Counter()
        sizes: Counter = Counter()
        for group in file_groups:
            for entry in group.files:
                hashes[entry.parent].add(group.content_hash)
                counts[entry.parent] += 1
                sizes[entry.parent] += entry.size

        full = {folder for folder in component if counts[folder] == total_files[folder]}

        def is_original(folder: str) -> bool:
            if folder not in full:
                return False
            for other in full - {folder}:
                if hashes[other] == hashes[folder] or hashes[folder] < hashes[other]:
                    return False
            return True

        infos = [
            PartialFolderInfo(
                folder_path=folder,
                duplicate_files_count=counts[folder],
                duplicate_files_size=sizes[folder],
                total_files_count=total_files[folder],
                is_original_candidate=is_original(folder),
            )
            for folder in component
        ]
        infos.sort(key=lambda i: (not i.is_original_candidate, not i.is_full_duplicate, i.folder_path))
        return PartialFolderGroup(folders=tuple(infos), file_groups=file_groups)


def find_duplicates(entries: Iterable[FileEntry], min_shared_hashes: int = 2) -> DuplicatesResult:
    """
    Convenience function to run duplicate detection.

    Args:
        entries: Snapshot entries
        min_shared_hashes: See DuplicateDetector

    Returns:
        DuplicatesResult
    """
    return DuplicateDetector(min_shared_hashes).detect(entries)
