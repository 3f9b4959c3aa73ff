"""
scripts/migrate_door_reciprocals.py -- Backfill reciprocal door flags.

Rewrites every saved location-generation session in a directory so that
each door pair has one parent door and one partner flagged
``is_reciprocal``.  Each file is backed up to
``<file>.pre-reciprocal-migration`` before it is rewritten.

Usage::

    python scripts/migrate_door_reciprocals.py
    python scripts/migrate_door_reciprocals.py path/to/generation-progress
    python scripts/migrate_door_reciprocals.py --dry-run --verbose
"""

from __future__ import annotations

import argparse
import logging
import os
import sys

PROJECT_ROOT = str(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.insert(0, PROJECT_ROOT)

from contentcraft.door_migration import migrate_directory
from contentcraft.paths import get_generation_progress_dir

logger = logging.getLogger("migrate_door_reciprocals")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Backfill is_reciprocal flags on saved session doors")
    parser.add_argument(
        "directory", nargs="?", default=None,
        help="Directory of session JSON files (default: the user data generation-progress directory)",
    )
    parser.add_argument("--dry-run", action="store_true", help="Report what would change without writing")
    parser.add_argument("--no-backup", action="store_true", help="Do not write .pre-reciprocal-migration copies")
    parser.add_argument("--verbose", action="store_true", help="Log every door decision")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    directory = args.directory or get_generation_progress_dir()
    try:
        summary = migrate_directory(directory, backup=not args.no_backup, dry_run=args.dry_run)
    except FileNotFoundError as exc:
        logger.error("%s", exc)
        return 1

    logger.info(
        "Processed %d file(s): %d migrated, %d unchanged%s",
        summary["processed"], summary["migrated"], summary["unchanged"],
        " (dry run, nothing written)" if args.dry_run else "",
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
