"""
Unit Tests for the File Entry Model

Author: TreeMirror Project
License: MIT
"""

import pytest
from dataclasses import FrozenInstanceError

from treemirror.files.entry import (
    DIRECTORY_SIZE,
    FileEntry,
    FileEntryBuilder,
    is_under,
    join_path,
    parent_path,
)


class TestFileEntry:
    """Test suite for FileEntry identity and helpers."""

    def test_equality_ignores_timestamps(self):
        a = FileEntry("a/b.txt", False, 100, "h", creation_time=1.0, last_modified_time=2.0)
        b = FileEntry("a/b.txt", False, 100, "h", creation_time=5.0, last_modified_time=9.0)

        assert a == b
        assert hash(a) == hash(b)

    def test_equality_ignores_read_error(self):
        a = FileEntry("x", False, 1, None)
        b = FileEntry("x", False, 1, None, read_error=OSError("boom"))

        assert a == b
        assert a.is_readable
        assert not b.is_readable

    def test_content_changes_break_equality(self):
        assert FileEntry("x", False, 1, "h1") != FileEntry("x", False, 1, "h2")
        assert FileEntry("x", False, 1, "h") != FileEntry("x", False, 2, "h")

    def test_immutable(self):
        entry = FileEntry("x", False, 1, "h")

        with pytest.raises(FrozenInstanceError):
            entry.size = 2

    def test_path_helpers(self):
        entry = FileEntry("photos/2020/img.jpg", False, 10, "h")

        assert entry.base_name == "img.jpg"
        assert entry.parent == "photos/2020"
        assert entry.depth == 2
        assert not entry.is_root

    def test_directory_factory(self):
        folder = FileEntry.directory("photos")

        assert folder.is_directory
        assert folder.size == DIRECTORY_SIZE
        assert not folder.has_known_content
        assert FileEntry.root().is_root


class TestFileEntryBuilder:
    """Test suite for two-phase entry construction."""

    def test_build_with_hash(self):
        entry = FileEntryBuilder("a.txt", False, size=3, last_modified_time=1.0).with_hash("abc").build()

        assert entry == FileEntry("a.txt", False, 3, "abc")
        assert entry.has_known_content

    def test_error_clears_hash(self):
        error = PermissionError("denied")
        entry = FileEntryBuilder("a.txt", False, size=3).with_hash("abc").with_error(error).build()

        assert entry.content_hash is None
        assert entry.read_error is error
        assert not entry.has_known_content

    def test_directory_gets_sentinel_size(self):
        entry = FileEntryBuilder("dir", True, size=4096).build()

        assert entry.size == DIRECTORY_SIZE
        assert entry.content_hash is None


class TestPathFunctions:
    """Test suite for relative path helpers."""

    def test_join_and_parent(self):
        assert join_path("", "a") == "a"
        assert join_path("a", "b") == "a/b"
        assert parent_path("a") == ""
        assert parent_path("a/b/c") == "a/b"

    def test_is_under(self):
        assert is_under("a/b", "a")
        assert not is_under("ab/c", "a")
        assert not is_under("a", "a")
        assert is_under("a", "")
