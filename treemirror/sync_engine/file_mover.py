"""
File Operations

Backend operations the plan executor drives: create folders, copy files
between backends, delete entries and move/rename them in place.

Paths given to a FileOps instance are always relative to its root and use
``/`` as separator.

Author: TreeMirror Project
License: MIT
"""

import os
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from ..files.entry import PATH_SEPARATOR
from ..utils.logger import get_logger

logger = get_logger(__name__)


class CopyDirectionNotSupported(NotImplementedError):
    """Raised when a backend cannot copy from the given source backend."""


class FileOps(ABC):
    """Operations on one storage root."""

    def __init__(self, root: str):
        self.root = root

    @abstractmethod
    def exists(self, path: str) -> bool:
        """Check whether a relative path exists."""

    @abstractmethod
    def create_folder(self, path: str):
        """Create a folder (and missing parents)."""

    @abstractmethod
    def copy_file(self, src_ops: 'FileOps', path: str, override: bool = False):
        """
        Copy ``path`` from ``src_ops`` to the same relative path here.

        Raises:
            FileExistsError: If the target exists and ``override`` is False
            CopyDirectionNotSupported: If ``src_ops`` is an unknown backend
        """

    @abstractmethod
    def delete(self, path: str) -> bool:
        """
        Delete a file or a folder with its content.

        Returns:
            False if the path was already gone
        """

    @abstractmethod
    def move(self, path: str, new_path: str):
        """
        Move or rename an entry as a single backend operation.

        Raises:
            FileNotFoundError: If ``path`` does not exist
            FileExistsError: If ``new_path`` already exists
        """

    def web_link(self, path: str) -> Optional[str]:
        """Link to the entry for reports, if the backend has one."""
        return None

    def close(self):
        """Release backend resources."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class LocalFileOps(FileOps):
    """FileOps for a directory on the local filesystem."""

    def __init__(self, root: str):
        super().__init__(root)
        self._root_path = Path(root)

    def __repr__(self) -> str:
        return f"LocalFileOps({self.root!r})"

    def full_path(self, path: str) -> Path:
        """Absolute location of a relative path."""
        if not path:
            return self._root_path
        return self._root_path.joinpath(*path.split(PATH_SEPARATOR))

    def exists(self, path: str) -> bool:
        return self.full_path(path).exists()

    def create_folder(self, path: str):
        self.full_path(path).mkdir(parents=True, exist_ok=True)
        logger.debug(f"Created folder {path}")

    def copy_file(self, src_ops: FileOps, path: str, override: bool = False):
        if not isinstance(src_ops, LocalFileOps):
            raise CopyDirectionNotSupported(
                f"Copy from {type(src_ops).__name__} to local storage is not supported"
            )

        source = src_ops.full_path(path)
        target = self.full_path(path)

        if target.exists():
            if not override:
                raise FileExistsError(f"Target already exists: {target}")
            if target.is_dir() and not target.is_symlink():
                shutil.rmtree(target)

        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, target)
        logger.debug(f"Copied {path}")

    def delete(self, path: str) -> bool:
        target = self.full_path(path)

        if target.is_dir() and not target.is_symlink():
            shutil.rmtree(target)
        elif target.exists() or target.is_symlink():
            target.unlink()
        else:
            logger.warning(f"Nothing to delete at {path}")
            return False

        logger.debug(f"Deleted {path}")
        return True

    def move(self, path: str, new_path: str):
        source = self.full_path(path)
        target = self.full_path(new_path)

        if not source.exists():
            raise FileNotFoundError(f"Source does not exist: {source}")
        if target.exists():
            raise FileExistsError(f"Target already exists: {target}")

        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(source), str(target))
        logger.debug(f"Moved {path} -> {new_path}")

    def web_link(self, path: str) -> Optional[str]:
        return self.full_path(path).as_uri() if os.path.isabs(self.root) else None
