"""
contentcraft/paths.py -- Path resolution for schemas and session data.

Bundled schemas ship inside the package; session files that the door
migration rewrites live in the platform user data directory resolved by
platformdirs.  Both locations can be overridden through environment
variables for tests and server deployments.
"""

from __future__ import annotations

import os

from platformdirs import user_data_dir

_APP_NAME = "ContentCraft"
_APP_AUTHOR = "SixsmithGames"

SCHEMA_DIR_ENV = "CONTENTCRAFT_SCHEMA_DIR"
DATA_DIR_ENV = "CONTENTCRAFT_DATA_DIR"

GENERATION_PROGRESS_DIRNAME = "generation-progress"


def get_bundled_schema_dir() -> str:
    """Return the schema directory shipped with the package."""
    return os.path.join(os.path.dirname(os.path.abspath(__file__)), "schemas")


def get_schema_dir() -> str:
    """Return the directory holding ``schema_registry.json`` and schema files.

    ``CONTENTCRAFT_SCHEMA_DIR`` wins over the bundled directory.
    """
    override = os.environ.get(SCHEMA_DIR_ENV, "").strip()
    if override:
        return os.path.abspath(override)
    return get_bundled_schema_dir()


def get_user_data_dir() -> str:
    """Return the platform-appropriate user data directory, creating it."""
    override = os.environ.get(DATA_DIR_ENV, "").strip()
    path = os.path.abspath(override) if override else user_data_dir(_APP_NAME, _APP_AUTHOR)
    os.makedirs(path, exist_ok=True)
    return path


def get_generation_progress_dir() -> str:
    """Return the directory holding saved location-generation sessions.

    The directory is not created: the migration treats a missing directory
    as an error rather than silently processing nothing.
    """
    return os.path.join(get_user_data_dir(), GENERATION_PROGRESS_DIRNAME)
