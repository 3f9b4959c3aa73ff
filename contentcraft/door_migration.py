"""
contentcraft/door_migration.py -- Backfill ``is_reciprocal`` flags in saved sessions.

Sessions saved before reciprocal doors were flagged hold both doors of
every pair as ordinary doors.  The migration rebuilds each session's doors
so that exactly one door per pair is the parent and its partner carries
``is_reciprocal: true``:

    1. identify the parent doors
    2. clear every room's doors
    3. re-add the parents with any ``is_reciprocal`` flag removed
    4. synchronize, which recreates the partners with the flag set

Session files are JSON objects holding the rooms under ``liveMapSpaces``.
Before a file is rewritten, a copy is saved next to it with the
``.pre-reciprocal-migration`` suffix.  Writes are atomic.
"""

from __future__ import annotations

import copy
import logging
import os
import shutil
from dataclasses import dataclass
from typing import Any

from contentcraft.door_sync import DoorReciprocitySynchronizer
from contentcraft.doors import doors_of
from contentcraft.utils import safe_read_json as _safe_read_json
from contentcraft.utils import safe_write_json as _safe_write_json

logger = logging.getLogger(__name__)

SESSION_SPACES_KEY = "liveMapSpaces"
BACKUP_SUFFIX = ".pre-reciprocal-migration"
SKIPPED_MARKERS = (".backup", BACKUP_SUFFIX)


@dataclass
class MigrationStats:
    """Door counts for one migrated session."""

    spaces: int = 0
    doors_before: int = 0
    parent_doors: int = 0
    reciprocal_doors: int = 0
    doors_after: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "spaces": self.spaces,
            "doors_before": self.doors_before,
            "parent_doors": self.parent_doors,
            "reciprocal_doors": self.reciprocal_doors,
            "doors_after": self.doors_after,
        }


def _count_doors(spaces: list) -> int:
    return sum(len(doors_of(space)) for space in spaces)


def rebuild_reciprocal_doors(
    spaces: list, synchronizer: DoorReciprocitySynchronizer | None = None,
) -> tuple[list, MigrationStats]:
    """Rebuild every door pair in *spaces* with proper reciprocal flags.

    The input is not modified.

    Returns
    -------
    tuple[list, MigrationStats]
        The rebuilt rooms and the door counts before and after.
    """
    synchronizer = synchronizer or DoorReciprocitySynchronizer()
    stats = MigrationStats(spaces=len(spaces), doors_before=_count_doors(spaces))

    parents = synchronizer.identify_parent_doors(spaces)
    stats.parent_doors = len(parents)

    cleared = copy.deepcopy(spaces)
    for space in cleared:
        if isinstance(space, dict):
            space["doors"] = []

    for parent in parents:
        door = dict(parent.door)
        door.pop("is_reciprocal", None)
        cleared[parent.room_index]["doors"].append(door)

    rebuilt = synchronizer.synchronize(cleared)
    stats.doors_after = _count_doors(rebuilt)
    stats.reciprocal_doors = sum(
        1 for space in rebuilt for door in doors_of(space)
        if isinstance(door, dict) and door.get("is_reciprocal")
    )
    return rebuilt, stats


def migrate_session_data(data: dict[str, Any]) -> tuple[dict[str, Any], MigrationStats | None]:
    """Migrate the rooms of one parsed session.

    Returns a migrated copy of *data* and its stats, or *data* unchanged
    and ``None`` when the session has no rooms or no doors.
    """
    spaces = data.get(SESSION_SPACES_KEY) if isinstance(data, dict) else None
    if not isinstance(spaces, list) or not spaces:
        logger.info("No %s found in session", SESSION_SPACES_KEY)
        return data, None
    if _count_doors(spaces) == 0:
        logger.info("Session has %d space(s) but no doors to migrate", len(spaces))
        return data, None

    rebuilt, stats = rebuild_reciprocal_doors(spaces)
    migrated = dict(data)
    migrated[SESSION_SPACES_KEY] = rebuilt
    return migrated, stats


def migrate_session_file(path: str, *, backup: bool = True, dry_run: bool = False) -> MigrationStats | None:
    """Migrate one session file in place.

    Parameters
    ----------
    path : str
        The session JSON file.
    backup : bool
        Copy the original to ``<path>.pre-reciprocal-migration`` first.
    dry_run : bool
        Compute and log the stats without writing anything.

    Returns
    -------
    MigrationStats | None
        The stats when the file was (or, in a dry run, would be) migrated;
        ``None`` when it was unreadable, had nothing to migrate, or could not
        be backed up or written.
    """
    name = os.path.basename(path)
    data = _safe_read_json(path)
    if not isinstance(data, dict):
        logger.error("Could not read session file %s", path)
        return None

    migrated, stats = migrate_session_data(data)
    if stats is None:
        return None

    logger.info(
        "%s: %d space(s), %d door(s) -> %d parent(s), %d reciprocal(s), %d total",
        name, stats.spaces, stats.doors_before, stats.parent_doors,
        stats.reciprocal_doors, stats.doors_after,
    )
    if dry_run:
        return stats

    try:
        if backup:
            backup_path = path + BACKUP_SUFFIX
            shutil.copy2(path, backup_path)
            logger.info("Backup created: %s", os.path.basename(backup_path))
        _safe_write_json(path, migrated)
    except OSError as exc:
        logger.error("Could not migrate %s: %s", path, exc)
        return None
    logger.info("Migrated file written: %s", name)
    return stats


def list_session_files(directory: str) -> list[str]:
    """Session files in *directory*, sorted.

    Names containing ``.backup`` or ``.pre-reciprocal-migration`` are
    skipped (``session.backup.json``).
    """
    return sorted(
        os.path.join(directory, entry)
        for entry in os.listdir(directory)
        if entry.endswith(".json")
        and not any(marker in entry for marker in SKIPPED_MARKERS)
        and os.path.isfile(os.path.join(directory, entry))
    )


def migrate_directory(directory: str, *, backup: bool = True, dry_run: bool = False) -> dict[str, Any]:
    """Migrate every session file in *directory*.

    Raises
    ------
    FileNotFoundError
        If *directory* does not exist.

    Returns
    -------
    dict
        ``{"processed": int, "migrated": int, "unchanged": int,
        "files": {filename: stats dict}}``.
    """
    if not os.path.isdir(directory):
        raise FileNotFoundError(f"Directory not found: {directory}")

    files = list_session_files(directory)
    logger.info("Found %d session file(s) in %s", len(files), directory)

    migrated: dict[str, dict[str, int]] = {}
    for path in files:
        stats = migrate_session_file(path, backup=backup, dry_run=dry_run)
        if stats is not None:
            migrated[os.path.basename(path)] = stats.to_dict()

    return {
        "processed": len(files),
        "migrated": len(migrated),
        "unchanged": len(files) - len(migrated),
        "files": migrated,
    }
