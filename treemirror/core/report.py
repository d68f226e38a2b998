"""
Reports

Plain-text renderings of plans, duplicate findings and execution results.
Every function returns a string; callers decide where it is printed.

Author: TreeMirror Project
License: MIT
"""

from typing import Callable, Iterable, List, Optional

from ..files.entry import FileEntry
from ..sync_engine.cleanup import CleanupPlan, PrunePlan
from ..sync_engine.deduplicator import DuplicatesResult, DuplicatesSummary
from ..sync_engine.planner import ActionPlan, MovePair
from ..utils.file_ops import align_right, format_file_size, format_number
from ..utils.logger import describe_error
from .plan_executor import ExecutionSummary, OperationResult

RULE_WIDTH = 80

LinkFunc = Callable[[str], Optional[str]]


def _rule(char: str = "-") -> str:
    return char * RULE_WIDTH


def _with_link(path: str, link: Optional[LinkFunc]) -> str:
    url = link(path) if link else None
    return f"{path} ({url})" if url else path


def render_plan_summary(plan: ActionPlan) -> str:
    """
    Summary table of a plan: folder count, file count and size per action.

    Args:
        plan: The action plan

    Returns:
        Multi-line table
    """
    def split(entries):
        folders = [e for e in entries if e.is_directory]
        files = [e for e in entries if not e.is_directory]
        return folders, files

    add_folders, add_files = split(plan.to_add)
    override_folders, override_files = split(plan.to_override)
    delete_folders, delete_files = split(plan.to_delete)

    add_size = sum(e.size for e in add_files)
    override_size = sum(e.size for e in override_files)
    delete_size = sum(e.size for e in delete_files)
    move_size = sum(p.entry.size for p in plan.to_move_files)
    rename_size = sum(p.entry.size for p in plan.to_rename_files)

    folders = align_right(
        len("Folders count"),
        format_number(len(add_folders)),
        format_number(len(override_folders)),
        format_number(len(add_folders) + len(override_folders)),
        format_number(len(plan.to_move_folders)),
        format_number(len(plan.to_rename_folders)),
        format_number(len(delete_folders)),
    )
    files = align_right(
        len("Files count"),
        format_number(len(add_files)),
        format_number(len(override_files)),
        format_number(len(add_files) + len(override_files)),
        format_number(len(plan.to_move_files)),
        format_number(len(plan.to_rename_files)),
        format_number(len(delete_files)),
    )
    sizes = align_right(
        len("Total Size"),
        format_file_size(add_size),
        format_file_size(override_size),
        format_file_size(add_size + override_size),
        format_file_size(move_size),
        format_file_size(rename_size),
        format_file_size(delete_size),
    )

    def row(label: str, i: int) -> str:
        return f"| {label:<9} | {folders[i]} | {files[i]} | {sizes[i]} |"

    header = f"| {'Action':<9} | {'Folders count':>{len(folders[0])}} | " \
             f"{'Files count':>{len(files[0])}} | {'Total Size':>{len(sizes[0])}} |"
    line = "-" * len(header)

    return "\n".join([
        "Summary:",
        line,
        header,
        line,
        row("Copy", 0),
        row("Override", 1),
        line,
        row("To upload", 2),
        line,
        row("Move", 3),
        row("Rename", 4),
        line,
        row("To Delete", 5),
        line,
    ])


def _entry_list(title: str, entries: Iterable[FileEntry]) -> List[str]:
    entries = sorted(entries, key=lambda e: e.name)
    if not entries:
        return []
    width = len(format_number(len(entries)))
    lines = [f"{title}:"]
    for i, entry in enumerate(entries, 1):
        kind = "[FOLDER]" if entry.is_directory else f"({format_file_size(entry.size)})"
        lines.append(f"{format_number(i).rjust(width)}. {entry.name} {kind}")
    return lines + [""]


def _move_list(title: str, pairs: Iterable[MovePair], renamed: bool = False) -> List[str]:
    pairs = sorted(pairs, key=lambda p: p.new_name)
    if not pairs:
        return []
    width = len(format_number(len(pairs)))
    marker = "(renamed) " if renamed else ""
    lines = [f"{title}:"]
    for i, pair in enumerate(pairs, 1):
        lines.append(f"{format_number(i).rjust(width)}. {marker}{pair.entry.name}  --->  {pair.new_name}")
    return lines + [""]


def render_plan_details(
    plan: ActionPlan,
    source: str,
    destination: str,
    no_overriding: bool = False,
    no_deletion: bool = False
) -> str:
    """
    Full listing of every planned operation.

    Args:
        plan: The action plan
        source: Source label for headings
        destination: Destination label for headings
        no_overriding: Overrides will be skipped
        no_deletion: Deletions will be skipped

    Returns:
        Multi-line listing
    """
    lines: List[str] = []
    lines += _entry_list(f"To Copy ('{source}' ---> '{destination}')", plan.to_add)
    if not no_overriding:
        lines += _entry_list(f"To Override ('{source}' ---> '{destination}')", plan.to_override)
    lines += _move_list(f"To Move (in '{destination}')", plan.to_move_files)
    lines += _move_list(f"To Rename (in '{destination}')", plan.to_rename_files, renamed=True)
    lines += _move_list(f"Folders to Move (in '{destination}')", plan.to_move_folders)
    lines += _move_list(f"Folders to Rename (in '{destination}')", plan.to_rename_folders, renamed=True)
    if not no_deletion:
        lines += _entry_list(f"To Delete (in '{destination}')", plan.to_delete)

    if no_overriding and plan.to_override:
        lines.append("WARNING: overriding is disabled, the override phase will be skipped.")
    if no_deletion and plan.to_delete:
        lines.append("WARNING: deletion is disabled, the deletion phase will be skipped.")

    return "\n".join(lines).rstrip()


def render_duplicates_report(
    result: DuplicatesResult,
    summary: Optional[DuplicatesSummary] = None,
    link: Optional[LinkFunc] = None
) -> str:
    """
    Report of all three duplicate tiers followed by the summary.

    Args:
        result: Detection result
        summary: Precomputed summary (computed if omitted)
        link: Optional function turning a path into a link

    Returns:
        Multi-line report
    """
    summary = summary or DuplicatesSummary.from_result(result)
    lines: List[str] = []

    if result.is_empty:
        lines += ["No duplicate files or folders found!", ""]

    if result.folder_groups:
        lines += ["DUPLICATE FOLDERS", "-" * 40]
        for i, group in enumerate(result.folder_groups, 1):
            lines += [
                f"Folder Duplicate Group #{i}",
                f"  Files in folder: {group.files_count}",
                f"  Total folder size: {format_file_size(group.total_size)}",
                f"  Number of copies: {len(group.folders)}",
                f"  Wasted space: {format_file_size(group.wasted_space)}",
                "  Folders:",
            ]
            lines += [f"    - {_with_link(folder or '/', link)}" for folder in group.folders]
            lines.append("")

    if result.partial_folder_groups:
        lines += ["PARTIAL DUPLICATE FOLDERS", "-" * 40]
        for i, group in enumerate(result.partial_folder_groups, 1):
            lines += [
                f"Partial Folder Duplicate Group #{i}",
                f"  Unique duplicate files: {len(group.file_groups)}",
                f"  Total duplicate files size: {format_file_size(group.total_duplicate_files_size)}",
                f"  Wasted space: {format_file_size(group.wasted_space)}",
                "  Folders:",
            ]
            for folder in group.folders:
                if folder.is_original_candidate:
                    marker = " [ORIGINAL candidate]"
                elif folder.is_full_duplicate:
                    marker = " [ALL DUPLICATES]"
                else:
                    marker = ""
                lines.append(
                    f"    - {_with_link(folder.folder_path or '/', link)} "
                    f"(contains {folder.duplicate_files_count} duplicates, "
                    f"total {format_file_size(folder.duplicate_files_size)}){marker}"
                )
            lines.append("")

    if result.file_groups:
        lines += ["DUPLICATE FILES", "-" * 40]
        for i, group in enumerate(result.file_groups, 1):
            lines += [
                f"File Duplicate Group #{i}",
                f"  Hash: {group.content_hash}",
                f"  File size: {format_file_size(group.size)}",
                f"  Number of copies: {group.copies}",
                f"  Wasted space: {format_file_size(group.wasted_space)}",
                "  Files:",
            ]
            lines += [f"    - {entry.name}" for entry in group.files]
            lines.append("")

    lines += [
        _rule("="),
        "SUMMARY",
        _rule("="),
        f"Total duplicate folder groups: {summary.total_folder_groups}",
        f"Total partial duplicate folder groups: {summary.total_partial_folder_groups}",
        f"Total duplicate file groups: {summary.total_groups}",
        f"Total redundant files: {format_number(summary.total_duplicate_files)}",
        f"Total wasted space: {format_file_size(summary.total_wasted_space)}",
    ]
    if summary.largest_group is not None:
        lines += [
            "",
            "Largest duplicate file group:",
            f"  Hash: {summary.largest_group.content_hash}",
            f"  Copies: {summary.largest_group.copies}",
            f"  Wasted space: {format_file_size(summary.largest_group.wasted_space)}",
        ]
    lines.append(_rule("="))
    return "\n".join(lines)


def render_cleanup_plan(plan: CleanupPlan) -> str:
    """Listing of ignored files and empty folders to delete."""
    if plan.is_empty:
        return "No ignored files or empty folders found."

    lines = ["PLAN OF ACTIONS:", _rule()]
    if plan.ignored_files:
        lines.append(
            f"Ignored files to delete ({len(plan.ignored_files)}, "
            f"total size: {format_file_size(plan.ignored_size)}):"
        )
        lines += [f"  [FILE]   {entry.name}" for entry in plan.ignored_files]
    if plan.empty_folders:
        lines.append(f"Empty folders to delete ({len(plan.empty_folders)}):")
        lines += [f"  [FOLDER] {entry.name}" for entry in plan.empty_folders]
    lines.append(_rule())
    return "\n".join(lines)


def render_prune_plan(plan: PrunePlan, link: Optional[LinkFunc] = None) -> str:
    """Listing of source items already present in the destination."""
    if plan.is_empty:
        return "No duplicates found to delete."

    lines = ["PLAN OF ACTIONS (to be deleted from SOURCE):", _rule()]
    for entry in plan.items():
        if entry.is_directory:
            lines.append(f"  [FOLDER] {_with_link(entry.name, link)}")
        else:
            lines.append(f"  [FILE]   {_with_link(entry.name, link)} ({format_file_size(entry.size)})")
    lines += [
        _rule(),
        f"Total items to delete: {len(plan.items())}",
        f"Total size to free: {format_file_size(plan.freed_space)}",
        _rule(),
    ]
    return "\n".join(lines)


def render_unreadable(entries: Iterable[FileEntry]) -> str:
    """Entries skipped because their content could not be read."""
    entries = sorted((e for e in entries if not e.is_readable), key=lambda e: e.name)
    if not entries:
        return ""
    lines = ["EXCLUDED FILES (due to read errors):"]
    lines += [f"- {entry.name}: {describe_error(entry.read_error)}" for entry in entries]
    return "\n".join(lines)


def render_execution_summary(results: Iterable[OperationResult]) -> str:
    """Final counts of an execution with the failed operations listed."""
    summary = ExecutionSummary.from_results(results)
    lines = [
        "Final Result:",
        f"Successfully processed: {format_number(summary.total_succeeded)}",
        f"Errors:                 {format_number(summary.total_failed)}",
    ]
    if summary.bytes_copied:
        lines.append(f"Transferred:            {format_file_size(summary.bytes_copied)}")
    if summary.failures:
        lines += ["", "Detailed errors:"]
        lines += [
            f"- {failure.kind.value} {failure.path}: {failure.error_message or 'Unknown error'}"
            for failure in summary.failures
        ]
    return "\n".join(lines)
