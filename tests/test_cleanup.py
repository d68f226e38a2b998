"""
Unit Tests for Cleanup and Prune Planning

Author: TreeMirror Project
License: MIT
"""

import pytest

from treemirror.config.schema import DEFAULT_EXCLUDE
from treemirror.files.entry import FileEntry
from treemirror.files.exclusion import ExclusionMatcher
from treemirror.sync_engine.cleanup import plan_cleanup, plan_prune_duplicates


def f(name, content_hash="h", size=10):
    return FileEntry(name, False, size, content_hash)


def d(name):
    return FileEntry.directory(name)


@pytest.fixture
def matcher():
    return ExclusionMatcher(DEFAULT_EXCLUDE)


class TestPlanCleanup:

    def test_ignored_files_and_empty_folders(self, matcher):
        entries = [
            d("a"), f("a/keep.txt"), f("a/.DS_Store", size=3),
            d("b"), f("b/Thumbs.db", size=4),
            d("c"), d("c/d"),
        ]

        plan = plan_cleanup(entries, matcher)

        assert [e.name for e in plan.ignored_files] == ["a/.DS_Store", "b/Thumbs.db"]
        assert [e.name for e in plan.empty_folders] == ["c/d", "c", "b"]
        assert plan.ignored_size == 7
        assert [e.name for e in plan.deletion_order()] == ["a/.DS_Store", "b/Thumbs.db", "c/d", "c", "b"]

    def test_folder_with_kept_descendant_is_not_empty(self, matcher):
        entries = [d("a"), d("a/b"), f("a/b/file.txt")]

        assert plan_cleanup(entries, matcher).is_empty

    def test_root_is_never_deleted(self, matcher):
        assert plan_cleanup([FileEntry.root()], matcher).is_empty


class TestPlanPruneDuplicates:

    def test_same_name_and_content_required(self, matcher):
        source = [f("x.jpg", "h1"), f("y.jpg", "h2"), f("z.jpg", "h3")]
        destination = [f("deep/x.jpg", "h1"), f("other-name.jpg", "h2"), f("z.jpg", "changed")]

        plan = plan_prune_duplicates(source, destination, matcher)

        assert [e.name for e in plan.items()] == ["x.jpg"]
        assert plan.freed_space == 10

    def test_folder_collapses_to_top_level(self, matcher):
        source = [
            d("trip"), d("trip/day1"), f("trip/day1/a.jpg", "a"), f("trip/.md5", "cache"),
            d("trip/day2"), f("trip/day2/b.jpg", "b"),
            d("mixed"), f("mixed/a.jpg", "a"), f("mixed/new.jpg", "n"),
        ]
        destination = [f("a.jpg", "a"), f("b.jpg", "b")]

        plan = plan_prune_duplicates(source, destination, matcher)

        assert [e.name for e in plan.folders] == ["trip"]
        assert [e.name for e in plan.files] == ["mixed/a.jpg"]
        assert plan.freed_space == 30

    def test_unreadable_files_are_kept(self, matcher):
        unreadable = FileEntry("f/a.jpg", False, 10, None, read_error=OSError("io"))

        plan = plan_prune_duplicates([d("f"), unreadable], [f("a.jpg", "h")], matcher)

        assert plan.is_empty
