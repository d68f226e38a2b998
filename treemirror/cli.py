"""
Command Line Interface

Entry point of the ``treemirror`` command.

Author: TreeMirror Project
License: MIT
"""

import argparse
import signal
import sys
from typing import List, Optional

from . import __version__
from .config.config_loader import load_config
from .config.schema import BackupProfile, Config, ProfileNotFoundError
from .core.orchestrator import Orchestrator, ProfileBusyError
from .files.exclusion import InvalidExclusionPattern
from .files.tree_loader import TreeNotFoundError
from .utils.logger import get_logger, setup_logging, describe_error

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("-c", "--config", metavar="path", default=None,
                        help="Configuration file (default: $TREEMIRROR_CONFIG or treemirror.yaml).")
    common.add_argument("-e", "--exclude", metavar="pattern", action="append", default=[],
                        help="Extra exclusion pattern; may be repeated. Supports exact names, "
                             "'prefix*', '*suffix', '*part*', other wildcards and 'regex:<expr>'. "
                             "Patterns containing '/' match relative paths.")
    common.add_argument("-w", "--workers", metavar="n", type=int, default=None,
                        help="Worker threads for hashing and copying.")
    common.add_argument("-d", "--dry-run", action="store_true", default=False,
                        help="Show what would be done without changing anything.")
    common.add_argument("-y", "--yes", action="store_true", default=False,
                        help="Do not ask for confirmation.")
    common.add_argument("-v", "--verbose", action="store_true", default=False,
                        help="Log debug messages.")
    common.add_argument("--json-logs", action="store_true", default=False,
                        help="Emit log records as JSON.")

    parser = argparse.ArgumentParser(
        prog="treemirror",
        description="One-way mirror backups with move detection, duplicate analysis and cleanup."
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    commands = parser.add_subparsers(dest="command", metavar="command")
    commands.required = True

    backup = commands.add_parser("backup", parents=[common],
                                 help="Mirror a source folder into a destination folder.")
    backup.add_argument("profile", nargs="?", default=None,
                        help="Configured profile to run.")
    backup.add_argument("-s", "--source", metavar="path", default=None,
                        help="Source folder (instead of a profile).")
    backup.add_argument("-t", "--destination", metavar="path", default=None,
                        help="Destination folder (instead of a profile).")
    backup.add_argument("--all", action="store_true", default=False,
                        help="Run every configured profile.")
    backup.add_argument("--no-deletion", action="store_true", default=False,
                        help="Never delete anything in the destination.")
    backup.add_argument("--no-overriding", action="store_true", default=False,
                        help="Never overwrite changed files in the destination.")

    duplicates = commands.add_parser("duplicates", parents=[common],
                                     help="Report duplicated files and folders in a tree.")
    duplicates.add_argument("root", help="Folder to analyse.")

    cleanup = commands.add_parser("cleanup", parents=[common],
                                  help="Delete ignored files and folders left without content.")
    cleanup.add_argument("root", help="Folder to clean.")

    prune = commands.add_parser("prune", parents=[common],
                                help="Delete source files that already exist in the destination.")
    prune.add_argument("source", help="Folder to prune.")
    prune.add_argument("destination", help="Folder holding the copies to keep.")

    commands.add_parser("schedule", parents=[common],
                        help="Run profiles on their cron schedules until interrupted.")
    commands.add_parser("profiles", parents=[common],
                        help="List configured profiles.")

    return parser


def _load_config(args: argparse.Namespace) -> Config:
    config = load_config(args.config)

    if args.workers is not None:
        config.scan.workers = args.workers
    for pattern in args.exclude:
        if pattern not in config.scan.exclude:
            config.scan.exclude.append(pattern)
    if args.verbose:
        config.app.log_level = "DEBUG"
    if args.json_logs:
        config.app.json_logs = True
    return config


def _setup_logging(config: Config):
    app = config.app
    setup_logging(
        log_level=app.log_level,
        log_to_file=app.log_to_file,
        log_file_path=app.log_file_path,
        log_rotation_size=app.log_rotation_size,
        log_retention_count=app.log_retention_count,
        json_format=app.json_logs
    )


def _backup_profiles(args: argparse.Namespace, config: Config) -> List[str]:
    if args.source or args.destination:
        if not (args.source and args.destination):
            raise ValueError("--source and --destination must be given together")
        if args.all or args.profile:
            raise ValueError("--source and --destination cannot be combined with a profile or --all")
        profile = BackupProfile(
            name="command-line",
            source=args.source,
            destination=args.destination,
            dry_run=args.dry_run,
            no_deletion=args.no_deletion,
            no_overriding=args.no_overriding
        )
        config.profiles = [p for p in config.profiles if p.name != profile.name] + [profile]
        return [profile.name]

    if args.all:
        names = [p.name for p in config.profiles]
    elif args.profile:
        names = [config.get_profile(args.profile).name]
    else:
        raise ValueError("Give a profile name, --all, or --source with --destination")

    for name in names:
        profile = config.get_profile(name)
        profile.dry_run = profile.dry_run or args.dry_run
        profile.no_deletion = profile.no_deletion or args.no_deletion
        profile.no_overriding = profile.no_overriding or args.no_overriding
    return names


def _run_schedule(orchestrator: Orchestrator) -> int:
    scheduled = orchestrator.start()
    if not scheduled:
        logger.error("Nothing to schedule: scheduling is disabled or no profile has a valid schedule")
        orchestrator.stop()
        return EXIT_FAILED

    def handle_signal(signum, frame):
        logger.info(f"Received signal {signum}, shutting down")
        orchestrator.stop()

    signal.signal(signal.SIGTERM, handle_signal)
    try:
        while not orchestrator.wait(timeout=1.0):
            pass
    except KeyboardInterrupt:
        orchestrator.stop()
    return EXIT_OK


def run(args: argparse.Namespace) -> int:
    config = _load_config(args)
    _setup_logging(config)

    if args.command == "profiles":
        for profile in config.profiles:
            schedule = f" [{profile.schedule}]" if profile.schedule else ""
            print(f"{profile.name}: {profile.source} -> {profile.destination}{schedule}")
        return EXIT_OK

    if args.command == "backup":
        names = _backup_profiles(args, config)
        orchestrator = Orchestrator(config, assume_yes=args.yes)
        if args.all:
            reports = orchestrator.run_all()
        else:
            reports = [orchestrator.run_profile(name) for name in names]
        return EXIT_OK if all(r.success for r in reports) else EXIT_FAILED

    orchestrator = Orchestrator(config, assume_yes=args.yes)
    engine = orchestrator.sync_engine

    if args.command == "duplicates":
        engine.find_duplicates(args.root)
        return EXIT_OK

    if args.command == "cleanup":
        results = engine.cleanup(args.root, dry_run=args.dry_run)
        return EXIT_OK if all(r.success for r in results) else EXIT_FAILED

    if args.command == "prune":
        results = engine.prune_duplicates(args.source, args.destination, dry_run=args.dry_run)
        return EXIT_OK if all(r.success for r in results) else EXIT_FAILED

    if args.command == "schedule":
        return _run_schedule(orchestrator)

    raise ValueError(f"Unknown command: {args.command}")


def main(argv: Optional[List[str]] = None) -> int:
    """
    Run the command line interface.

    Args:
        argv: Arguments without the program name (defaults to sys.argv)

    Returns:
        Process exit code
    """
    args = build_parser().parse_args(argv)

    try:
        return run(args)
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return EXIT_INTERRUPTED
    except (TreeNotFoundError, ProfileNotFoundError, ProfileBusyError) as e:
        logger.error(str(e))
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILED
    except (InvalidExclusionPattern, ValueError) as e:
        logger.error(describe_error(e))
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_USAGE


if __name__ == "__main__":
    sys.exit(main())
