"""
Tree Loader

Scans a local directory tree into a snapshot: a set of immutable FileEntry
objects with relative ``/``-separated names and content hashes.

Scanning runs in two phases. The walk collects stat data for every entry that
is not excluded; hashing then runs one job per folder on a bounded thread
pool, consulting and refreshing that folder's hash cache. Failures on a
single entry are captured on the entry instead of aborting the scan.

Author: TreeMirror Project
License: MIT
"""

import os
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional, Set

from .entry import FileEntry, FileEntryBuilder, join_path
from .exclusion import ExclusionMatcher
from .hash_cache import DEFAULT_CACHE_FILE_NAME, FolderHashCache
from ..utils.file_ops import calculate_file_hash
from ..utils.logger import get_logger

logger = get_logger(__name__)


class TreeNotFoundError(FileNotFoundError):
    """Raised when a required tree root does not exist."""


def _creation_time(stat: os.stat_result) -> float:
    return getattr(stat, "st_birthtime", stat.st_ctime)


class LocalTreeLoader:
    """
    Snapshot builder for a local directory.

    Excluded entries are skipped together with everything below them, unless
    ``include_excluded`` is set (the cleanup mode needs to see them).
    """

    def __init__(
        self,
        root: str,
        matcher: Optional[ExclusionMatcher] = None,
        workers: int = 4,
        hash_algorithm: str = "md5",
        use_hash_cache: bool = True,
        cache_file_name: str = DEFAULT_CACHE_FILE_NAME,
        include_excluded: bool = False,
        hash_content: bool = True
    ):
        """
        Initialize the loader.

        Args:
            root: Directory to scan
            matcher: Exclusion rules
            workers: Number of hashing threads
            hash_algorithm: Name understood by hashlib
            use_hash_cache: Read and write per-folder hash cache files
            cache_file_name: Name of the per-folder cache file
            include_excluded: Keep excluded entries in the snapshot
            hash_content: Compute content hashes (stat data only when False)
        """
        self.root = os.path.abspath(root)
        self.matcher = matcher or ExclusionMatcher()
        self.workers = max(1, workers)
        self.hash_algorithm = hash_algorithm
        self.use_hash_cache = use_hash_cache
        self.cache_file_name = cache_file_name
        self.include_excluded = include_excluded
        self.hash_content = hash_content

    def load(self, throw_if_not_exist: bool = True) -> Set[FileEntry]:
        """
        Scan the tree.

        Args:
            throw_if_not_exist: Fail when the root is missing; otherwise a
                missing root yields an empty snapshot

        Returns:
            Set of entries, not including the root itself

        Raises:
            TreeNotFoundError: If the root is missing and required
        """
        if not os.path.isdir(self.root):
            if throw_if_not_exist:
                raise TreeNotFoundError(f"Folder does not exist: {self.root}")
            logger.info(f"Folder {self.root} does not exist, treating it as empty")
            return set()

        builders, files_by_folder = self._walk()
        logger.info(f"Found {len(builders)} entries in {self.root}")

        if self.hash_content:
            with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="hash") as pool:
                # Each folder is hashed by one job so its cache has a single writer
                list(pool.map(self._hash_folder, files_by_folder.items()))

        entries = {builder.build() for builder in builders}
        errors = sum(1 for e in entries if not e.is_readable)
        if errors:
            logger.warning(f"{errors} entries of {self.root} could not be read")
        return entries

    def _walk(self):
        builders: List[FileEntryBuilder] = []
        files_by_folder: Dict[str, List[FileEntryBuilder]] = {}

        pending = [""]
        while pending:
            folder = pending.pop()
            folder_path = os.path.join(self.root, folder) if folder else self.root
            try:
                with os.scandir(folder_path) as it:
                    children = sorted(it, key=lambda e: e.name)
            except OSError as e:
                logger.warning(f"Cannot list {folder_path}: {e}")
                continue

            for child in children:
                name = join_path(folder, child.name)
                if not self.include_excluded and self.matcher.is_excluded(child.name, name):
                    continue

                try:
                    is_directory = child.is_dir(follow_symlinks=False)
                    stat = child.stat(follow_symlinks=not is_directory)
                except OSError as e:
                    logger.warning(f"Cannot stat {name}: {e}")
                    builders.append(FileEntryBuilder(name=name, is_directory=False).with_error(e))
                    continue

                builder = FileEntryBuilder(
                    name=name,
                    is_directory=is_directory,
                    size=0 if is_directory else stat.st_size,
                    creation_time=_creation_time(stat),
                    last_modified_time=stat.st_mtime
                )
                builders.append(builder)

                if is_directory:
                    pending.append(name)
                else:
                    files_by_folder.setdefault(folder, []).append(builder)

        return builders, files_by_folder

    def _hash_folder(self, item):
        folder, builders = item
        folder_path = os.path.join(self.root, folder) if folder else self.root
        cache = FolderHashCache(folder_path, self.cache_file_name) if self.use_hash_cache else None

        for builder in builders:
            file_name = os.path.basename(builder.name)
            if file_name == self.cache_file_name:
                continue

            if cache is not None:
                cached = cache.get(file_name, builder.size, builder.creation_time, builder.last_modified_time)
                if cached is not None:
                    builder.with_hash(cached)
                    continue

            try:
                content_hash = calculate_file_hash(os.path.join(folder_path, file_name), self.hash_algorithm)
            except OSError as e:
                logger.warning(f"Cannot read {builder.name}: {e}")
                builder.with_error(e)
                continue

            builder.with_hash(content_hash)
            if cache is not None:
                cache.put(file_name, builder.size, builder.creation_time, builder.last_modified_time, content_hash)

        if cache is not None:
            cache.retain(os.path.basename(b.name) for b in builders)
            cache.save()


def load_tree(
    root: str,
    matcher: Optional[ExclusionMatcher] = None,
    throw_if_not_exist: bool = True,
    workers: int = 4,
    **options
) -> Set[FileEntry]:
    """
    Scan a local tree and log how long it took.

    Args:
        root: Directory to scan
        matcher: Exclusion rules
        throw_if_not_exist: Fail on a missing root instead of returning an empty set
        workers: Number of hashing threads
        **options: Further LocalTreeLoader options

    Returns:
        Snapshot of the tree
    """
    start = time.monotonic()
    entries = LocalTreeLoader(root, matcher, workers, **options).load(throw_if_not_exist)
    logger.info(f"Scanned {root}: {len(entries)} entries in {time.monotonic() - start:.2f}s")
    return entries
