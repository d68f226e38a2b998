"""
TreeMirror

One-way mirror backups that relocate moved and renamed content instead of
copying it again, plus duplicate analysis and tree cleanup.

Author: TreeMirror Project
License: MIT
"""

__version__ = "0.1.0"
