"""
Unit Tests for Plan Execution

Runs plans built from real scans against temporary directories, and checks
ordering and failure handling with mocked backends.

Author: TreeMirror Project
License: MIT
"""

import pytest
from unittest.mock import MagicMock

from treemirror.config.schema import DEFAULT_EXCLUDE
from treemirror.core.plan_executor import ExecutionSummary, OperationKind, OperationResult, PlanExecutor
from treemirror.files.entry import FileEntry
from treemirror.files.exclusion import ExclusionMatcher
from treemirror.files.tree_loader import load_tree
from treemirror.sync_engine.file_mover import FileOps, LocalFileOps
from treemirror.sync_engine.planner import ActionPlan, MovePair, SyncPlanner


@pytest.fixture
def matcher():
    return ExclusionMatcher(DEFAULT_EXCLUDE)


def build_plan(source, destination, matcher):
    return SyncPlanner(matcher).plan(
        load_tree(str(source), matcher),
        load_tree(str(destination), matcher, throw_if_not_exist=False)
    )


def run(source, destination, matcher, **options):
    plan = build_plan(source, destination, matcher)
    executor = PlanExecutor(LocalFileOps(str(source)), LocalFileOps(str(destination)), workers=3, **options)
    return plan, executor.execute(plan)


class TestLocalExecution:
    """Plans applied to real directories leave the destination mirrored."""

    def test_initial_backup(self, tmp_path, write_tree, read_tree, matcher):
        source = write_tree(tmp_path / "src", {"a.txt": "a", "docs/b.txt": "b", "docs/deep/c.txt": "c", "empty": None})
        destination = tmp_path / "dst"

        plan, results = run(source, destination, matcher)

        assert ExecutionSummary.from_results(results).success
        assert read_tree(destination) == read_tree(source)
        assert (destination / "empty").is_dir()

    def test_second_plan_is_empty(self, tmp_path, write_tree, matcher):
        source = write_tree(tmp_path / "src", {"a.txt": "a", "x/b.txt": "b"})
        destination = write_tree(tmp_path / "dst", {"a.txt": "stale", "gone.txt": "g", "old/b.txt": "b"})

        run(source, destination, matcher)

        assert build_plan(source, destination, matcher).is_empty

    def test_moves_and_renames(self, tmp_path, write_tree, read_tree, matcher):
        source = write_tree(tmp_path / "src", {
            "archive/album/1.jpg": "one",
            "archive/album/2.jpg": "two",
            "renamed/3.jpg": "three",
            "notes/new-name.txt": "note",
        })
        destination = write_tree(tmp_path / "dst", {
            "album/1.jpg": "one",
            "album/2.jpg": "two",
            "misc/3.jpg": "three",
            "notes/old-name.txt": "note",
        })

        plan, results = run(source, destination, matcher)

        assert plan.to_move_folders == {MovePair(FileEntry.directory("album"), "archive/album")}
        assert {p.new_name for p in plan.to_rename_folders} == {"renamed"}
        assert {p.new_name for p in plan.to_rename_files} == {"notes/new-name.txt"}

        summary = ExecutionSummary.from_results(results)
        assert summary.success
        assert summary.bytes_copied == 0
        assert read_tree(destination) == read_tree(source)
        assert not (destination / "album").exists()

    def test_override(self, tmp_path, write_tree, read_tree, matcher):
        source = write_tree(tmp_path / "src", {"a.txt": "new content"})
        destination = write_tree(tmp_path / "dst", {"a.txt": "old"})

        _, results = run(source, destination, matcher)

        assert [r.kind for r in results] == [OperationKind.OVERRIDE]
        assert results[0].size == len("new content")
        assert read_tree(destination) == {"a.txt": "new content"}

    def test_file_becomes_folder_with_children(self, tmp_path, write_tree, read_tree, matcher):
        source = write_tree(tmp_path / "src", {"foo/bar.txt": "b", "foo/sub/baz.txt": "z"})
        destination = write_tree(tmp_path / "dst", {"foo": "i am a file"})

        _, results = run(source, destination, matcher)

        assert ExecutionSummary.from_results(results).success
        assert (destination / "foo").is_dir()
        assert read_tree(destination) == read_tree(source)
        assert build_plan(source, destination, matcher).is_empty

    def test_folder_becomes_file(self, tmp_path, write_tree, read_tree, matcher):
        source = write_tree(tmp_path / "src", {"foo": "now a file"})
        destination = write_tree(tmp_path / "dst", {"foo/bar.txt": "b"})

        _, results = run(source, destination, matcher)

        assert ExecutionSummary.from_results(results).success
        assert read_tree(destination) == {"foo": "now a file"}
        assert build_plan(source, destination, matcher).is_empty

    def test_dry_run_changes_nothing(self, tmp_path, write_tree, read_tree, matcher):
        source = write_tree(tmp_path / "src", {"a.txt": "a", "moved/b.txt": "b"})
        destination = write_tree(tmp_path / "dst", {"b.txt": "b", "gone.txt": "g"})
        before = read_tree(destination)

        _, results = run(source, destination, matcher, dry_run=True)

        assert results
        assert all(r.dry_run and r.success for r in results)
        assert read_tree(destination) == before

    def test_no_deletion_and_no_overriding(self, tmp_path, write_tree, read_tree, matcher):
        source = write_tree(tmp_path / "src", {"a.txt": "changed", "new.txt": "n"})
        destination = write_tree(tmp_path / "dst", {"a.txt": "a", "gone.txt": "g"})

        _, results = run(source, destination, matcher, no_deletion=True, no_overriding=True)

        assert {r.kind for r in results} == {OperationKind.COPY}
        assert read_tree(destination) == {"a.txt": "a", "gone.txt": "g", "new.txt": "n"}

    def test_execute_moves_only(self, tmp_path, write_tree, read_tree, matcher):
        source = write_tree(tmp_path / "src", {"new/a.txt": "a", "extra.txt": "e"})
        destination = write_tree(tmp_path / "dst", {"old/a.txt": "a", "gone.txt": "g"})
        plan = build_plan(source, destination, matcher)

        results = PlanExecutor(LocalFileOps(str(source)), LocalFileOps(str(destination))).execute_moves(plan)

        assert [r.kind for r in results] == [OperationKind.RENAME_FOLDER]
        assert read_tree(destination) == {"new/a.txt": "a", "gone.txt": "g"}


class TestOrderingAndFailures:
    """Executor behaviour against a mocked backend."""

    @pytest.fixture
    def dst_ops(self):
        return MagicMock(spec=FileOps)

    def test_folder_moves_deepest_first_then_files(self, dst_ops):
        plan = ActionPlan(
            to_move_folders=frozenset({MovePair(FileEntry.directory("a"), "x/a")}),
            to_rename_folders=frozenset({MovePair(FileEntry.directory("a/b/c"), "a/b/d")}),
            to_move_files=frozenset({MovePair(FileEntry("a/f.txt", False, 1, "h"), "x/f.txt")}),
        )

        PlanExecutor(MagicMock(spec=FileOps), dst_ops, workers=1).execute(plan)

        assert [c.args for c in dst_ops.move.call_args_list] == [
            ("a/b/c", "a/b/d"),
            ("a", "x/a"),
            ("x/a/f.txt", "x/f.txt"),
        ]

    def test_folders_created_before_copies(self, dst_ops):
        src_ops = MagicMock(spec=FileOps)
        plan = ActionPlan(to_add=frozenset({
            FileEntry.directory("a/b"), FileEntry.directory("a"), FileEntry("a/b/f", False, 3, "h"),
        }))

        PlanExecutor(src_ops, dst_ops, workers=1).execute(plan)

        names = [c[0] for c in dst_ops.method_calls]
        assert names == ["create_folder", "create_folder", "copy_file"]
        assert [c.args[0] for c in dst_ops.create_folder.call_args_list] == ["a", "a/b"]
        dst_ops.copy_file.assert_called_once_with(src_ops, "a/b/f", False)

    def test_file_replaced_by_folder_before_copies(self, dst_ops):
        src_ops = MagicMock(spec=FileOps)
        plan = ActionPlan(
            to_override=frozenset({FileEntry.directory("foo")}),
            to_add=frozenset({FileEntry("foo/bar.txt", False, 1, "h")}),
        )

        results = PlanExecutor(src_ops, dst_ops, workers=1).execute(plan)

        assert [c[0] for c in dst_ops.method_calls] == ["delete", "create_folder", "copy_file"]
        dst_ops.delete.assert_called_once_with("foo")
        assert [r.kind for r in results] == [OperationKind.OVERRIDE, OperationKind.COPY]

    def test_deletes_files_then_folders_deepest_first(self, dst_ops):
        plan = ActionPlan(to_delete=frozenset({
            FileEntry.directory("a"), FileEntry.directory("a/b"), FileEntry("a/b/f", False, 3, "h"),
        }))

        PlanExecutor(MagicMock(spec=FileOps), dst_ops, workers=1).execute(plan)

        assert [c.args[0] for c in dst_ops.delete.call_args_list] == ["a/b/f", "a/b", "a"]

    def test_failure_is_recorded_and_run_continues(self, dst_ops):
        dst_ops.copy_file.side_effect = [OSError("disk full"), None]
        plan = ActionPlan(to_add=frozenset({FileEntry("a", False, 1, "h1"), FileEntry("b", False, 2, "h2")}))

        results = PlanExecutor(MagicMock(spec=FileOps), dst_ops, workers=1).execute(plan)

        summary = ExecutionSummary.from_results(results)
        assert summary.total_failed == 1
        assert summary.total_succeeded == 1
        assert summary.failures[0].path == "a"
        assert "disk full" in summary.failures[0].error_message
        assert summary.bytes_copied == 2
        assert not summary.success

    def test_dry_run_never_calls_backend(self, dst_ops):
        plan = ActionPlan(
            to_add=frozenset({FileEntry("a", False, 1, "h")}),
            to_delete=frozenset({FileEntry("b", False, 1, "h2")}),
        )

        results = PlanExecutor(MagicMock(spec=FileOps), dst_ops, dry_run=True).execute(plan)

        assert len(results) == 2
        assert not dst_ops.method_calls


class TestExecutionSummary:

    def test_counts_by_kind(self):
        results = [
            OperationResult(OperationKind.COPY, "a", True, size=10),
            OperationResult(OperationKind.COPY, "b", True, size=5),
            OperationResult(OperationKind.DELETE_FILE, "c", True, size=99),
            OperationResult(OperationKind.MOVE_FILE, "d", False, error_message="gone"),
        ]

        summary = ExecutionSummary.from_results(results)

        assert summary.succeeded == {OperationKind.COPY: 2, OperationKind.DELETE_FILE: 1}
        assert summary.bytes_copied == 15
        assert summary.total_failed == 1
