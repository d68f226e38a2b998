"""
Files Module

Snapshot model, exclusion rules, hash cache and local tree scanning.

Author: TreeMirror Project
License: MIT
"""

from .entry import FileEntry, FileEntryBuilder, DIRECTORY_SIZE, PATH_SEPARATOR
from .exclusion import ExclusionMatcher, InvalidExclusionPattern
from .hash_cache import FolderHashCache
from .tree_loader import LocalTreeLoader, TreeNotFoundError, load_tree

__all__ = [
    'FileEntry',
    'FileEntryBuilder',
    'DIRECTORY_SIZE',
    'PATH_SEPARATOR',
    'ExclusionMatcher',
    'InvalidExclusionPattern',
    'FolderHashCache',
    'LocalTreeLoader',
    'TreeNotFoundError',
    'load_tree'
]
