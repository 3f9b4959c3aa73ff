"""
contentcraft/errors.py -- Exception hierarchy for the validation core.

Only the raising entry points (``*_strict`` / ``*_or_raise``) use these.
The safe variants return report objects instead, and door synchronization
never raises at all: unresolvable doors are logged and skipped.
"""

from __future__ import annotations

from typing import Any


class ContentCraftError(Exception):
    """Base class for every error raised by this package."""


class SchemaNotFoundError(ContentCraftError, LookupError):
    """An entity family or schema version is not registered, or a schema
    file could not be loaded while building the registry."""


class SchemaValidationError(ContentCraftError, ValueError):
    """A record failed structural validation.

    Attributes
    ----------
    family : str
        Entity family (``"npc"``, ``"monster"``, ``"location"``).
    schema_version : str
        The schema version the record was validated against.
    errors : list
        Raw :class:`~contentcraft.error_formatter.SchemaError` records.
    details : str
        The numbered human-readable report.
    """

    def __init__(self, family: str, schema_version: str, errors: list, details: str):
        self.family = family
        self.schema_version = schema_version
        self.errors = errors
        self.details = details
        super().__init__(
            f"{family.capitalize()} validation failed (schema {schema_version}):\n{details}"
        )


class GeometryConflictError(ContentCraftError, ValueError):
    """A location passed schema validation but has blocking geometry conflicts."""

    def __init__(self, conflicts: list[Any], proposals: list[Any], details: str = ""):
        self.conflicts = conflicts
        self.proposals = proposals
        self.details = details
        super().__init__(f"Geometry validation failed:\n{details}")
