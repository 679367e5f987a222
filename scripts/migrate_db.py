# =============================================================================
# MongoDB Schema Migration Runner
# =============================================================================
# Applies services/mongodb/migrations/NNN_*.py in version order and records
# each applied version in the schema_migrations collection. Re-running is a
# no-op once every migration is recorded.
# =============================================================================

import argparse
import importlib.util
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import CollectionInvalid, OperationFailure

from libs.models import MongoSettings

MIGRATIONS_COLLECTION = "schema_migrations"
CONTAINER_MIGRATIONS_DIR = Path("/app/services/mongodb/migrations")

Migration = tuple[str, Path]


def resolve_migrations_dir() -> Path:
    """Repository migrations directory, or the container path when run in a container."""
    local_dir = Path(__file__).resolve().parent.parent / "services" / "mongodb" / "migrations"
    if local_dir.exists():
        return local_dir
    return CONTAINER_MIGRATIONS_DIR


def discover_migrations(migrations_dir: Path) -> list[Migration]:
    """
    Find NNN_*.py migration files, sorted by their 3-digit version.

    Raises:
        ValueError: If the directory is missing or two files share a version
    """
    if not migrations_dir.exists():
        raise ValueError(f"Migrations directory does not exist: {migrations_dir}")

    by_version: dict[str, Path] = {}
    for file_path in sorted(migrations_dir.glob("*.py")):
        filename = file_path.name
        if filename.startswith("__"):
            continue
        version = filename[:3]
        if not version.isdigit():
            print(f"Warning: skipping '{filename}', no 3-digit version prefix", file=sys.stderr)
            continue
        if version in by_version:
            raise ValueError(
                f"Duplicate migration version '{version}' in '{filename}' "
                f"and '{by_version[version].name}'"
            )
        by_version[version] = file_path

    return sorted(by_version.items())


def load_migration_module(file_path: Path) -> tuple[str, Callable[[Database], None]]:
    """
    Import a migration file and return its ``VERSION`` and ``up`` callable.

    Raises:
        ImportError: If the file cannot be loaded
        ValueError: If VERSION or up() is missing or of the wrong type
    """
    module_spec = importlib.util.spec_from_file_location(f"migration_{file_path.stem}", file_path)
    if module_spec is None or module_spec.loader is None:
        raise ImportError(f"Could not load migration module from {file_path}")

    module = importlib.util.module_from_spec(module_spec)
    module_spec.loader.exec_module(module)

    version = getattr(module, "VERSION", None)
    if version is None:
        raise ValueError(f"Migration '{file_path.name}' missing VERSION constant")
    if not isinstance(version, str):
        raise ValueError(
            f"Migration '{file_path.name}' VERSION must be a string, got {type(version).__name__}"
        )

    up_func = getattr(module, "up", None)
    if up_func is None:
        raise ValueError(f"Migration '{file_path.name}' missing up() function")
    if not callable(up_func):
        raise ValueError(
            f"Migration '{file_path.name}' up must be callable, got {type(up_func).__name__}"
        )

    return version, up_func


def ensure_schema_migrations_collection(db: Database) -> None:
    """Create schema_migrations with a unique version index if missing."""
    try:
        db.create_collection(MIGRATIONS_COLLECTION)
    except CollectionInvalid:
        pass
    try:
        db[MIGRATIONS_COLLECTION].create_index("version", unique=True)
    except OperationFailure:
        pass


def get_applied_versions(db: Database) -> set[str]:
    return {doc["version"] for doc in db[MIGRATIONS_COLLECTION].find({}, {"version": 1})}


def apply_migration(db: Database, version: str, up_func: Callable[[Database], None]) -> int:
    """
    Run ``up_func`` and record the version. A failed migration is not
    recorded, so it is retried on the next run.

    Returns:
        Duration in milliseconds
    """
    started = time.monotonic()
    up_func(db)
    duration_ms = int((time.monotonic() - started) * 1000)
    db[MIGRATIONS_COLLECTION].insert_one(
        {
            "version": version,
            "applied_at": datetime.now(timezone.utc),
            "duration_ms": duration_ms,
        }
    )
    return duration_ms


def run_migrations(db: Database, migrations_dir: Path, *, dry_run: bool = False) -> list[str]:
    """
    Apply every pending migration in order.

    Returns:
        Versions applied (or that would be applied, with ``dry_run``)

    Raises:
        ValueError: If a file's VERSION does not match its filename
    """
    ensure_schema_migrations_collection(db)
    applied = get_applied_versions(db)
    migrations = discover_migrations(migrations_dir)
    print(f"Discovered {len(migrations)} migration(s), {len(applied)} already applied")

    newly_applied: list[str] = []
    for version, file_path in migrations:
        if version in applied:
            continue

        migration_version, up_func = load_migration_module(file_path)
        if migration_version != version:
            raise ValueError(
                f"Migration '{file_path.name}' VERSION '{migration_version}' "
                f"does not match filename version '{version}'"
            )

        if dry_run:
            print(f"Pending migration {version} ({file_path.name})")
        else:
            print(f"Applying migration {version} from {file_path.name}...")
            try:
                duration_ms = apply_migration(db, version, up_func)
            except Exception as e:
                print(f"Migration {version} failed: {e}", file=sys.stderr)
                raise
            print(f"Applied migration {version} (took {duration_ms}ms)")
        newly_applied.append(version)

    return newly_applied


def main(argv: Optional[list[str]] = None) -> int:
    """
    Migration runner entry point.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    parser = argparse.ArgumentParser(description="Apply MongoDB schema migrations")
    parser.add_argument("--dry-run", action="store_true", help="List pending migrations only")
    args = parser.parse_args(argv)

    settings = MongoSettings()
    client = MongoClient(settings.connection_string, serverSelectionTimeoutMS=10000)
    try:
        versions = run_migrations(
            client[settings.database], resolve_migrations_dir(), dry_run=args.dry_run
        )
    except Exception as e:
        print(f"Migration failed: {e}", file=sys.stderr)
        return 1
    finally:
        client.close()

    if not versions:
        print("Database is up to date")
    elif not args.dry_run:
        print(f"Applied {len(versions)} migration(s)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
