"""
Unit Tests for the Sync Planner

Tests plan construction from in-memory snapshots: plain diffing, file and
folder move/rename detection, and the structural guarantees of a plan.

Author: TreeMirror Project
License: MIT
"""

import pytest

from treemirror.config.schema import DEFAULT_EXCLUDE
from treemirror.files.entry import FileEntry
from treemirror.files.exclusion import ExclusionMatcher
from treemirror.sync_engine.planner import (
    ActionPlan,
    MovePair,
    PlanInvariantError,
    SyncPlanner,
    deepest_first,
    plan,
)


def f(name, content_hash="h", size=100, **kwargs):
    return FileEntry(name, False, size, content_hash, **kwargs)


def d(name):
    return FileEntry.directory(name)


class TestBasicDiff:
    """Test suite for add/delete/override."""

    def test_identical_snapshots_give_empty_plan(self):
        snapshot = {d("a"), f("a/x.txt", "h1"), f("y.txt", "h2")}

        result = plan(snapshot, set(snapshot))

        assert result.is_empty
        assert not result.has_primary_actions
        assert not result.has_moves

    def test_add_delete_override(self):
        source = {f("new.txt", "h1"), f("same.txt", "h2"), f("changed.txt", "h3")}
        destination = {f("old.txt", "h9", size=5), f("same.txt", "h2"), f("changed.txt", "h4")}

        result = plan(source, destination)

        assert result.to_add == {f("new.txt", "h1")}
        assert result.to_delete == {f("old.txt", "h9", size=5)}
        assert result.to_override == {f("changed.txt", "h3")}

    def test_timestamps_are_ignored(self):
        source = {f("a.txt", creation_time=1.0, last_modified_time=2.0)}
        destination = {f("a.txt", creation_time=100.0, last_modified_time=200.0)}

        assert plan(source, destination).is_empty

    def test_root_entries_are_ignored(self):
        result = plan({FileEntry.root(), f("a.txt")}, {FileEntry.root(), f("a.txt")})

        assert result.is_empty

    def test_type_change_is_an_override(self):
        result = plan({d("x")}, {f("x")})

        assert result.to_override == {d("x")}

    def test_empty_destination_copies_everything(self):
        source = {d("a"), f("a/b.txt")}

        result = plan(source, set())

        assert result.to_add == source
        assert not result.to_delete


class TestUnreadableEntries:
    """Errored source entries never cause destructive actions."""

    def test_errored_entry_is_not_added(self):
        source = {f("broken.txt", None, read_error=PermissionError("denied"))}

        result = plan(source, set())

        assert result.is_empty

    def test_errored_entry_protects_destination_copy(self):
        source = {f("broken.txt", None, read_error=OSError("io"))}
        destination = {f("broken.txt", "old")}

        result = plan(source, destination)

        assert not result.to_delete
        assert not result.to_override
        assert not result.to_add

    def test_errored_entry_does_not_pair_as_move(self):
        source = {f("new/a.txt", None, read_error=OSError("io"))}
        destination = {f("a.txt", "h")}

        result = plan(source, destination)

        assert not result.has_moves
        assert result.to_delete == {f("a.txt", "h")}


class TestFileMoves:
    """Test suite for file move/rename detection."""

    def test_move_keeps_base_name(self):
        destination_entry = f("file.txt", "h", 100)
        source = {d("folder"), f("folder/file.txt", "h", 100)}

        result = plan(source, {destination_entry})

        assert result.to_move_files == {MovePair(destination_entry, "folder/file.txt")}
        assert result.to_add == {d("folder")}
        assert not result.to_delete
        assert not result.to_rename_files

    def test_rename_changes_base_name(self):
        destination_entry = f("old.txt", "h", 100)
        source = {d("folder"), f("folder/new.txt", "h", 100)}

        result = plan(source, {destination_entry})

        assert result.to_rename_files == {MovePair(destination_entry, "folder/new.txt")}
        assert not result.to_move_files
        assert result.to_add == {d("folder")}
        assert not result.to_delete

    def test_same_hash_different_size_is_not_a_move(self):
        result = plan({f("b.txt", "h", 10)}, {f("a.txt", "h", 20)})

        assert not result.has_moves
        assert result.to_add and result.to_delete

    def test_candidate_with_same_base_name_wins(self):
        a = f("x/photo.jpg", "h")
        b = f("y/other.jpg", "h")

        kept = f("x/notes.txt", "n")

        result = plan({d("z"), f("z/photo.jpg", "h")}, {d("x"), d("y"), a, b, kept})

        assert result.to_move_files == {MovePair(a, "z/photo.jpg")}
        assert b in result.to_delete

    def test_each_candidate_is_used_once(self):
        original = f("a.txt", "h")

        result = plan({f("b.txt", "h"), f("c.txt", "h")}, {original})

        assert result.to_rename_files == {MovePair(original, "b.txt")}
        assert result.to_add == {f("c.txt", "h")}


class TestFolderMoves:
    """Test suite for folder move/rename detection."""

    def test_folder_move(self):
        album = d("album")
        destination = {album, f("album/a.jpg", "h1"), f("album/b.jpg", "h2")}
        source = {d("archive"), d("archive/album"), f("archive/album/a.jpg", "h1"), f("archive/album/b.jpg", "h2")}

        result = plan(source, destination)

        assert result.to_move_folders == {MovePair(album, "archive/album")}
        assert result.to_add == {d("archive")}
        assert not result.to_delete
        assert not result.to_move_files
        assert not result.to_rename_files

    def test_folder_rename(self):
        old = d("old")
        destination = {old, f("old/a.jpg", "h1"), f("old/b.jpg", "h2")}
        source = {d("new"), f("new/a.jpg", "h1"), f("new/b.jpg", "h2")}

        result = plan(source, destination)

        assert result.to_rename_folders == {MovePair(old, "new")}
        assert not result.to_add
        assert not result.to_delete
        assert not result.to_move_files

    def test_nested_folders_collapse_into_outer_rename(self):
        destination = {d("p"), d("p/q"), f("p/q/x", "h1"), f("p/y", "h2")}
        source = {d("r"), d("r/q"), f("r/q/x", "h1"), f("r/y", "h2")}

        result = plan(source, destination)

        assert result.to_rename_folders == {MovePair(d("p"), "r")}
        assert not result.to_move_folders
        assert not result.to_add
        assert not result.to_delete
        assert not result.to_move_files

    def test_folder_with_only_subfolders_uses_descendants(self):
        destination = {d("a"), d("a/inner"), f("a/inner/x", "h1")}
        source = {d("b"), d("b/inner"), f("b/inner/x", "h1")}

        result = plan(source, destination)

        assert result.to_rename_folders == {MovePair(d("a"), "b")}
        assert result.is_empty is False
        assert not result.to_add and not result.to_delete

    def test_split_folder_stays_file_level(self):
        """Files moving to different folders do not make a folder move."""
        destination = {d("src"), f("src/a", "h1"), f("src/b", "h2")}
        source = {d("one"), d("two"), f("one/a", "h1"), f("two/b", "h2")}

        result = plan(source, destination)

        assert not result.to_move_folders and not result.to_rename_folders
        assert len(result.to_move_files) == 2
        assert result.to_delete == {d("src")}
        assert result.to_add == {d("one"), d("two")}

    def test_partially_moved_folder_stays_file_level(self):
        destination = {d("src"), f("src/a", "h1"), f("src/b", "h2")}
        source = {d("dst"), f("dst/a", "h1"), f("dst/b", "changed")}

        result = plan(source, destination)

        assert not result.to_move_folders and not result.to_rename_folders
        assert result.to_move_files == {MovePair(f("src/a", "h1"), "dst/a")}

    def test_sidecar_files_do_not_block_folder_rename(self):
        old = d("old")
        destination = {old, f("old/a.jpg", "h1"), f("old/.md5", "cache-1", 50)}
        source = {d("new"), f("new/a.jpg", "h1"), f("new/.md5", "cache-2", 60)}

        result = SyncPlanner(ExclusionMatcher(DEFAULT_EXCLUDE)).plan(source, destination)

        assert result.to_rename_folders == {MovePair(old, "new")}
        assert result.to_add == {f("new/.md5", "cache-2", 60)}
        assert result.to_delete == {f("old/.md5", "cache-1", 50)}

    def test_custom_folder_order_is_used(self):
        calls = []

        def order(folders):
            calls.append(True)
            return deepest_first(folders)

        destination = {d("old"), f("old/a", "h1")}
        source = {d("new"), f("new/a", "h1")}

        result = SyncPlanner(folder_order=order).plan(source, destination)

        assert calls
        assert result.to_rename_folders == {MovePair(d("old"), "new")}


class TestPlanInvariants:
    """Test suite for plan structure."""

    def test_collections_are_disjoint(self):
        destination = {d("p"), d("p/q"), f("p/q/x", "h1"), f("p/y", "h2"), f("keep", "k"), f("gone", "g")}
        source = {d("r"), d("r/q"), f("r/q/x", "h1"), f("r/y", "h2"), f("keep", "k2"), f("fresh", "n")}

        result = plan(source, destination)
        seen = {}
        for key, paths in result.paths_by_collection().items():
            for path in paths:
                assert seen.setdefault(path, key) == key

    def test_check_disjoint_raises(self):
        broken = ActionPlan(to_add=frozenset({f("a")}), to_delete=frozenset({f("a", "other")}))

        with pytest.raises(PlanInvariantError, match="'a'"):
            broken.check_disjoint()

    def test_deepest_first(self):
        ordered = deepest_first([d("a"), d("a/b/c"), d("z/y"), d("a/b")])

        assert [e.name for e in ordered] == ["a/b/c", "a/b", "z/y", "a"]

    def test_counts(self):
        result = plan({f("a", "1"), f("b", "2")}, set())

        assert result.counts()["add"] == 2
        assert sum(result.counts().values()) == 2
