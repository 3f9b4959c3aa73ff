"""
contentcraft/validators.py -- Strict structural validation of entity records.

The :class:`SchemaValidator` runs one compiled JSON Schema from the
:class:`~contentcraft.schema_registry.SchemaRegistry` against a record and
returns a :class:`ValidationReport`.  Validation is read-only: the record is
never repaired, coerced or defaulted.  A record whose ``schema_version``
does not name a registered version is validated against the family's
oldest (legacy) schema.

The per-family helpers at the bottom mirror the route-layer API:

    validate_npc_safe(registry, data)           -> ValidationReport
    validate_npc_strict(registry, data)         -> None, raises SchemaValidationError
    validate_monster_or_raise(registry, data)   -> None, raises SchemaValidationError
    is_location_content(data)                   -> bool

Usage::

    from contentcraft.schema_registry import SchemaRegistry
    from contentcraft.validators import SchemaValidator

    registry = SchemaRegistry.from_directory()
    report = SchemaValidator(registry, "npc").validate_document(npc_data)
    if not report.valid:
        print(report.details)
"""

from __future__ import annotations

import logging
from typing import Any

from contentcraft.error_formatter import SchemaError, flatten_errors, format_validation_errors
from contentcraft.errors import SchemaValidationError
from contentcraft.schema_registry import SchemaRegistry
from contentcraft.versioning import detect_schema_version

logger = logging.getLogger(__name__)

NPC_FAMILY = "npc"
MONSTER_FAMILY = "monster"
LOCATION_FAMILY = "location"

# location_type values that identify a location even without a
# deliverable/type marker.
KNOWN_LOCATION_TYPES = frozenset({
    "castle", "dungeon", "city", "fortress", "manor", "temple",
    "tower", "wilderness", "tavern", "inn", "shop",
})


def _error_order(error: Any) -> list[tuple[int, Any]]:
    """Sort errors by field path; root-level errors first, array indices numerically."""
    return [(0, part) if isinstance(part, int) else (1, str(part)) for part in error.path]


# ---------------------------------------------------------------------------
# ValidationReport
# ---------------------------------------------------------------------------

class ValidationReport:
    """Outcome of validating one record against one schema version.

    Attributes
    ----------
    valid : bool
        Whether the record satisfied the schema.
    errors : list[SchemaError]
        Flattened raw error records (empty when valid).
    details : str
        Numbered human-readable report (empty when valid).
    schema_version : str
        The registered version the record was validated against.
    """

    __slots__ = ("valid", "errors", "details", "schema_version")

    def __init__(
        self,
        valid: bool,
        errors: list[SchemaError],
        details: str,
        schema_version: str,
    ):
        self.valid = valid
        self.errors = errors
        self.details = details
        self.schema_version = schema_version

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "errors": [e.to_dict() for e in self.errors],
            "details": self.details,
            "schema_version": self.schema_version,
        }

    def __repr__(self) -> str:
        return (
            f"ValidationReport(valid={self.valid}, errors={len(self.errors)}, "
            f"schema_version={self.schema_version!r})"
        )


# ---------------------------------------------------------------------------
# SchemaValidator
# ---------------------------------------------------------------------------

class SchemaValidator:
    """Validates records of one entity family.

    Parameters
    ----------
    registry : SchemaRegistry
        The process-wide compiled schema registry.
    family : str
        Entity family name (``"npc"``, ``"monster"``, ``"location"``).

    Raises
    ------
    SchemaNotFoundError
        If *family* has no registered schemas.
    """

    def __init__(self, registry: SchemaRegistry, family: str):
        self.registry = registry
        self.family = family
        # Fail at construction rather than on first validate().
        self.legacy_version = registry.oldest_version(family)

    @property
    def known_versions(self) -> list[str]:
        return self.registry.versions(self.family)

    def detect_version(self, data: Any) -> str:
        """Return the registered version that *data* should be validated against."""
        return detect_schema_version(data, self.known_versions)

    def validate(self, version: str, data: Any) -> ValidationReport:
        """Validate *data* against the schema registered as *version*.

        Parameters
        ----------
        version : str
            A registered ``"<major>.<minor>"`` key.
        data : Any
            The record.  It is not modified.

        Raises
        ------
        SchemaNotFoundError
            If *version* is not registered for this family.
        """
        compiled = self.registry.get(self.family, version)
        raw_errors = sorted(compiled.validator.iter_errors(data), key=_error_order)

        if not raw_errors:
            logger.debug("%s record passed schema v%s", self.family, version)
            return ValidationReport(True, [], "", version)

        errors = flatten_errors(raw_errors)
        details = format_validation_errors(errors, compiled.labels, compiled.fix_hints)
        logger.warning(
            "%s record failed schema v%s with %d error(s)",
            self.family, version, len(errors),
        )
        return ValidationReport(False, errors, details, version)

    def validate_document(self, data: Any) -> ValidationReport:
        """Detect the record's schema version and validate against it."""
        return self.validate(self.detect_version(data), data)

    def validate_or_raise(self, data: Any) -> ValidationReport:
        """Like :meth:`validate_document` but raise on failure.

        Raises
        ------
        SchemaValidationError
            Carrying the same errors and details as the report.
        """
        report = self.validate_document(data)
        if not report.valid:
            raise SchemaValidationError(
                self.family, report.schema_version, report.errors, report.details,
            )
        return report


# ---------------------------------------------------------------------------
# NPC entry points
# ---------------------------------------------------------------------------

def validate_npc_safe(registry: SchemaRegistry, data: Any) -> ValidationReport:
    """Validate an NPC record against its detected schema version."""
    return SchemaValidator(registry, NPC_FAMILY).validate_document(data)


def validate_npc_strict(registry: SchemaRegistry, data: Any) -> None:
    """Validate an NPC record, raising :class:`SchemaValidationError` on failure."""
    SchemaValidator(registry, NPC_FAMILY).validate_or_raise(data)


def is_valid_npc(registry: SchemaRegistry, data: Any) -> bool:
    """Return ``True`` if *data* is a valid NPC for its detected version."""
    return validate_npc_safe(registry, data).valid


# ---------------------------------------------------------------------------
# Monster entry points
# ---------------------------------------------------------------------------

def validate_monster_strict(registry: SchemaRegistry, data: Any) -> ValidationReport:
    """Validate a monster stat block and return the report."""
    return SchemaValidator(registry, MONSTER_FAMILY).validate_document(data)


def validate_monster_or_raise(registry: SchemaRegistry, data: Any) -> None:
    """Validate a monster stat block, raising :class:`SchemaValidationError`."""
    SchemaValidator(registry, MONSTER_FAMILY).validate_or_raise(data)


def is_monster_content(data: Any) -> bool:
    """Heuristic: does *data* look like a monster record?

    Requires string ``name``, ``creature_type`` and ``challenge_rating``
    plus an explicit ``deliverable`` or ``type`` marker of ``"monster"``.
    """
    if not isinstance(data, dict):
        return False
    return (
        isinstance(data.get("name"), str)
        and isinstance(data.get("creature_type"), str)
        and isinstance(data.get("challenge_rating"), str)
        and (data.get("deliverable") == "monster" or data.get("type") == "monster")
    )


# ---------------------------------------------------------------------------
# Location entry points
# ---------------------------------------------------------------------------

def validate_location_strict(registry: SchemaRegistry, data: Any) -> ValidationReport:
    """Validate a location record structurally (no geometry checks)."""
    return SchemaValidator(registry, LOCATION_FAMILY).validate_document(data)


def validate_location_or_raise(registry: SchemaRegistry, data: Any) -> None:
    """Validate a location structurally, raising on failure.

    Geometry is not checked here; use
    :func:`contentcraft.location_pipeline.validate_location_with_geometry`
    for the schema-then-geometry gate.

    Raises
    ------
    SchemaValidationError
        If the record fails the location schema.
    """
    SchemaValidator(registry, LOCATION_FAMILY).validate_or_raise(data)


def is_location_content(data: Any) -> bool:
    """Heuristic: does *data* look like a location record?"""
    if not isinstance(data, dict):
        return False
    location_type = data.get("location_type")
    return (
        isinstance(data.get("name"), str)
        and isinstance(location_type, str)
        and (
            data.get("deliverable") == "location"
            or data.get("type") == "location"
            or location_type in KNOWN_LOCATION_TYPES
        )
    )
