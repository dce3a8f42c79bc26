"""Command line entry point for the Jira to OpenProject relationship migration."""

import argparse
import atexit
import os
import sys
from pathlib import Path

from j2o import config
from j2o.config import logger, update_from_cli_args

LOCK_FILE_NAME = "j2o_relations.pid"


def _pid_is_running(pid: int) -> bool:
    """Return True if a process with PID is running (and accessible)."""
    if pid <= 0:
        return False
    try:
        # Signal 0 checks existence without sending a signal
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        # Process exists but belongs to someone else
        return True
    except OSError:
        return False
    return True


def _read_lock_pid(lock_file: Path) -> int:
    try:
        return int(lock_file.read_text(encoding="utf-8").strip() or "0")
    except (OSError, ValueError):
        return 0


def _ensure_singleton_lock(lock_file: Path) -> None:
    """Ensure only one relationship migration runs at a time using a PID lock file.

    If a lock exists and the PID is alive, exit. If the PID is stale, remove it.
    The lock is removed on process exit.
    """
    if os.environ.get("J2O_DISABLE_LOCK") in {"1", "true", "True"}:
        logger.warning("Singleton lock disabled via J2O_DISABLE_LOCK=1")
        return

    lock_file.parent.mkdir(parents=True, exist_ok=True)
    current_pid = os.getpid()

    if lock_file.exists():
        existing = _read_lock_pid(lock_file)
        if existing and _pid_is_running(existing):
            logger.error("Another migration instance is running (pid=%s). Lock: %s", existing, lock_file)
            logger.error("If this is stale, remove the lock or set J2O_DISABLE_LOCK=1 to override.")
            sys.exit(1)
        lock_file.unlink(missing_ok=True)

    try:
        with lock_file.open("x", encoding="utf-8") as f:
            f.write(str(current_pid))
    except FileExistsError:
        logger.error("Concurrent migration detected (pid=%s). Lock: %s", _read_lock_pid(lock_file), lock_file)
        sys.exit(1)

    def _cleanup_lock() -> None:
        # Only remove the lock if it still holds our PID
        if _read_lock_pid(lock_file) == current_pid:
            lock_file.unlink(missing_ok=True)

    atexit.register(_cleanup_lock)


def _split_issue_keys(value: str) -> list[str]:
    return [key.strip().upper() for key in value.split(",") if key.strip()]


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser with its subcommands."""
    parser = argparse.ArgumentParser(
        description="Jira to OpenProject relationship migration",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    relations_parser = subparsers.add_parser(
        "relations",
        help="Create OpenProject relations from Jira issue links and epic links",
    )
    relations_parser.add_argument(
        "jira_project_key",
        help="Key of the Jira project whose links are migrated",
    )
    relations_parser.add_argument(
        "openproject_project_id",
        help='OpenProject project id or identifier, or "all" to search every project',
    )
    relations_parser.add_argument(
        "--issues",
        type=_split_issue_keys,
        default=None,
        help="Comma separated Jira issue keys to restrict the run to",
    )
    relations_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Run without making changes to OpenProject",
    )
    relations_parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "NOTICE", "WARNING", "ERROR", "SUCCESS"],
        type=str.upper,
        default=None,
        help="Override the configured log level",
    )
    return parser


def run_relations(args: argparse.Namespace) -> int:
    """Run the relationship migration and return the process exit code."""
    # Imported here so CLI overrides are applied before the clients read the config
    from j2o.migrations.relation_migration import RelationMigration  # noqa: PLC0415

    update_from_cli_args(args)
    if not config.validate_config():
        return 1

    _ensure_singleton_lock(config.get_path("run") / LOCK_FILE_NAME)

    migration = RelationMigration(
        jira_project_key=args.jira_project_key,
        openproject_project_id=args.openproject_project_id,
        issue_keys=args.issues,
        dry_run=args.dry_run or None,
    )
    result = migration.run()
    for error in result.errors:
        logger.error(error)
    return 0 if result.success else 1


def main(argv: list[str] | None = None) -> None:
    """Parse arguments and execute the appropriate command."""
    parser = build_parser()
    args = parser.parse_args(argv)

    match args.command:
        case "relations":
            sys.exit(run_relations(args))
        case _:
            parser.print_help()
            sys.exit(1)


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        logger.info("Migration interrupted by user")
        sys.exit(1)
    except (FileNotFoundError, PermissionError) as e:
        logger.error("File system error: %s", e)
        sys.exit(1)
    except (ConnectionError, TimeoutError) as e:
        logger.error("Network connectivity error: %s", e)
        sys.exit(1)
    except Exception as e:  # noqa: BLE001
        logger.exception("Unexpected error occurred during migration: %s", e)
        sys.exit(1)
