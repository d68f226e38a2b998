"""
File Entry Model

Immutable snapshot record for one node (file or directory) of a scanned tree.

Equality and hashing cover only ``name``, ``is_directory``, ``size`` and
``content_hash``. Timestamps and captured read errors are carried along for
the hash cache and for reporting, but the same file re-read from another
backend (or re-scanned later) compares equal whatever its OS timestamps say.

Author: TreeMirror Project
License: MIT
"""

from dataclasses import dataclass, field
from typing import Optional

PATH_SEPARATOR = "/"

# Directories carry a fixed non-zero size so that size-based logic can tell
# them apart from zero-byte files.
DIRECTORY_SIZE = 10


def base_name(path: str) -> str:
    """Last segment of a ``/``-separated relative path."""
    return path.rsplit(PATH_SEPARATOR, 1)[-1]


def parent_path(path: str) -> str:
    """Parent folder of a relative path (``""`` for top-level entries)."""
    if PATH_SEPARATOR not in path:
        return ""
    return path.rsplit(PATH_SEPARATOR, 1)[0]


def path_depth(path: str) -> int:
    """Number of separators in a relative path."""
    return path.count(PATH_SEPARATOR)


def join_path(folder: str, name: str) -> str:
    """Join a relative folder and a child name (root folder is ``""``)."""
    if not folder:
        return name
    return f"{folder}{PATH_SEPARATOR}{name}"


def is_under(path: str, folder: str) -> bool:
    """True if ``path`` lies strictly inside ``folder``."""
    if not folder:
        return path != ""
    return path.startswith(folder + PATH_SEPARATOR)


@dataclass(frozen=True)
class FileEntry:
    """One file or directory of a tree snapshot."""
    name: str
    is_directory: bool
    size: int
    content_hash: Optional[str] = None
    creation_time: Optional[float] = field(default=None, compare=False)
    last_modified_time: Optional[float] = field(default=None, compare=False)
    read_error: Optional[BaseException] = field(default=None, compare=False, repr=False)

    @classmethod
    def directory(cls, name: str, **kwargs) -> 'FileEntry':
        """Create a directory entry with the sentinel size."""
        return cls(name=name, is_directory=True, size=DIRECTORY_SIZE, **kwargs)

    @classmethod
    def root(cls) -> 'FileEntry':
        """Entry standing for the scanned root itself."""
        return cls.directory("")

    @property
    def base_name(self) -> str:
        return base_name(self.name)

    @property
    def parent(self) -> str:
        return parent_path(self.name)

    @property
    def depth(self) -> int:
        return path_depth(self.name)

    @property
    def is_root(self) -> bool:
        return self.name == ""

    @property
    def is_readable(self) -> bool:
        """False when content scanning failed for this entry."""
        return self.read_error is None

    @property
    def has_known_content(self) -> bool:
        """True for readable files whose content hash is known."""
        return not self.is_directory and self.is_readable and self.content_hash is not None


@dataclass
class FileEntryBuilder:
    """
    Two-phase construction of a FileEntry.

    The tree loader collects stat data first, attaches the content hash (or
    the read failure) later, and only then builds the immutable entry.
    """
    name: str
    is_directory: bool
    size: int = 0
    creation_time: Optional[float] = None
    last_modified_time: Optional[float] = None
    content_hash: Optional[str] = None
    read_error: Optional[BaseException] = None

    def with_hash(self, content_hash: str) -> 'FileEntryBuilder':
        self.content_hash = content_hash
        self.read_error = None
        return self

    def with_error(self, error: BaseException) -> 'FileEntryBuilder':
        self.read_error = error
        self.content_hash = None
        return self

    def build(self) -> FileEntry:
        if self.is_directory:
            return FileEntry(
                name=self.name,
                is_directory=True,
                size=DIRECTORY_SIZE,
                creation_time=self.creation_time,
                last_modified_time=self.last_modified_time,
                read_error=self.read_error
            )
        return FileEntry(
            name=self.name,
            is_directory=False,
            size=self.size,
            content_hash=self.content_hash,
            creation_time=self.creation_time,
            last_modified_time=self.last_modified_time,
            read_error=self.read_error
        )
