"""
Hash Cache

Per-folder cache of content hashes stored as a small JSON file next to the
files it describes. An entry is reused only while the file's size and
timestamps are unchanged.

Author: TreeMirror Project
License: MIT
"""

import json
import os
from dataclasses import dataclass, asdict
from typing import Dict, Optional

from ..utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_CACHE_FILE_NAME = ".md5"


@dataclass(frozen=True)
class CacheEntry:
    size: int
    creation_time: Optional[float]
    last_modified_time: Optional[float]
    content_hash: str


class FolderHashCache:
    """
    Hash cache of one folder.

    Not thread-safe on its own; the tree loader gives each folder's cache to
    a single worker at a time.
    """

    def __init__(self, folder: str, file_name: str = DEFAULT_CACHE_FILE_NAME):
        """
        Initialize the cache and load any existing cache file.

        Args:
            folder: Absolute folder path
            file_name: Name of the cache file inside the folder
        """
        self.cache_file = os.path.join(folder, file_name)
        self._entries: Dict[str, CacheEntry] = {}
        self._modified = False

        if os.path.exists(self.cache_file):
            self._load()

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def modified(self) -> bool:
        return self._modified

    def get(
        self,
        name: str,
        size: int,
        creation_time: Optional[float],
        last_modified_time: Optional[float]
    ) -> Optional[str]:
        """
        Look up a stored hash.

        Args:
            name: Base name of the file
            size: Current size
            creation_time: Current creation time
            last_modified_time: Current modification time

        Returns:
            The stored hash if it is still valid, None otherwise
        """
        entry = self._entries.get(name)
        if entry is None:
            return None
        if entry.size != size or entry.creation_time != creation_time \
                or entry.last_modified_time != last_modified_time:
            return None
        return entry.content_hash

    def put(
        self,
        name: str,
        size: int,
        creation_time: Optional[float],
        last_modified_time: Optional[float],
        content_hash: str
    ):
        entry = CacheEntry(size, creation_time, last_modified_time, content_hash)
        if self._entries.get(name) != entry:
            self._entries[name] = entry
            self._modified = True

    def retain(self, names):
        """Drop entries for files that no longer exist."""
        stale = set(self._entries) - set(names)
        for name in stale:
            del self._entries[name]
        if stale:
            self._modified = True

    def _load(self):
        """Load cache entries from the cache file."""
        try:
            with open(self.cache_file, 'r') as f:
                data = json.load(f)
            self._entries = {name: CacheEntry(**values) for name, values in data.items()}
            logger.debug(f"Loaded {len(self._entries)} cached hashes from {self.cache_file}")
        except (OSError, ValueError, TypeError) as e:
            logger.warning(f"Could not load hash cache {self.cache_file}: {e}")
            self._entries = {}

    def save(self) -> bool:
        """
        Write the cache file if anything changed.

        Returns:
            True if the file was written
        """
        if not self._modified:
            return False

        try:
            with open(self.cache_file, 'w') as f:
                json.dump(
                    {name: asdict(entry) for name, entry in sorted(self._entries.items())},
                    f,
                    indent=1
                )
            self._modified = False
            logger.debug(f"Saved {len(self._entries)} hashes to {self.cache_file}")
            return True
        except OSError as e:
            logger.error(f"Error saving hash cache {self.cache_file}: {e}")
            return False
