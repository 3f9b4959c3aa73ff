"""
contentcraft/location_pipeline.py -- Schema plus geometry validation for locations.

Runs the location schema first.  A structural failure short-circuits: the
geometry checks never see a record that failed the schema.  A structurally
valid record then goes through the geometry conflict detector:

    blocking conflicts  -> invalid, with one proposal per blocking conflict
    warnings only       -> valid, warnings attached to the result
    nothing             -> valid
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from contentcraft.error_formatter import SchemaError
from contentcraft.errors import GeometryConflictError, SchemaValidationError
from contentcraft.geometry import GeometryConflict, format_geometry_conflicts, validate_geometry
from contentcraft.proposals import GeometryProposal, generate_geometry_proposals
from contentcraft.schema_registry import SchemaRegistry
from contentcraft.validators import LOCATION_FAMILY, SchemaValidator

logger = logging.getLogger(__name__)


class LocationValidationResult:
    """Combined outcome of schema and geometry validation.

    Attributes
    ----------
    valid : bool
    schema_errors : list[SchemaError] | None
        Set only when the schema check failed.
    geometry_conflicts : list[GeometryConflict] | None
        The blocking conflicts when invalid, or the warnings when valid.
    proposals : list[GeometryProposal] | None
        Set only for blocking conflicts.
    details : str | None
        Human-readable report of whichever stage produced findings.
    schema_version : str
    """

    __slots__ = (
        "valid", "schema_errors", "geometry_conflicts", "proposals",
        "details", "schema_version",
    )

    def __init__(
        self,
        valid: bool,
        schema_version: str,
        schema_errors: Optional[list[SchemaError]] = None,
        geometry_conflicts: Optional[list[GeometryConflict]] = None,
        proposals: Optional[list[GeometryProposal]] = None,
        details: Optional[str] = None,
    ):
        self.valid = valid
        self.schema_version = schema_version
        self.schema_errors = schema_errors
        self.geometry_conflicts = geometry_conflicts
        self.proposals = proposals
        self.details = details

    def raise_for_errors(self) -> None:
        """Raise the exception matching the failed stage, if any.

        Raises
        ------
        SchemaValidationError
            If the schema check failed.
        GeometryConflictError
            If the geometry has blocking conflicts.
        """
        if self.valid:
            return
        if self.schema_errors is not None:
            raise SchemaValidationError(
                LOCATION_FAMILY, self.schema_version, self.schema_errors, self.details or "",
            )
        raise GeometryConflictError(
            self.geometry_conflicts or [], self.proposals or [], self.details or "",
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"valid": self.valid}
        if self.schema_errors is not None:
            result["schema_errors"] = [e.to_dict() for e in self.schema_errors]
        if self.geometry_conflicts is not None:
            result["geometry_conflicts"] = [c.to_dict() for c in self.geometry_conflicts]
        if self.proposals is not None:
            result["proposals"] = [p.to_dict() for p in self.proposals]
        if self.details is not None:
            result["details"] = self.details
        return result


def validate_location_with_geometry(registry: SchemaRegistry, data: Any) -> LocationValidationResult:
    """Validate a location's structure and then its geometry.

    Parameters
    ----------
    registry : SchemaRegistry
        Compiled schemas; must contain the ``location`` family.
    data : Any
        The location record.  It is not modified.
    """
    report = SchemaValidator(registry, LOCATION_FAMILY).validate_document(data)
    if not report.valid:
        return LocationValidationResult(
            False, report.schema_version,
            schema_errors=report.errors, details=report.details,
        )

    conflicts = validate_geometry(data)
    blocking = [c for c in conflicts if c.blocking]
    if blocking:
        logger.warning("Location has %d blocking geometry conflict(s)", len(blocking))
        return LocationValidationResult(
            False, report.schema_version,
            geometry_conflicts=blocking,
            proposals=generate_geometry_proposals(blocking),
            details=format_geometry_conflicts(blocking),
        )

    warnings = [c for c in conflicts if not c.blocking]
    if warnings:
        return LocationValidationResult(
            True, report.schema_version,
            geometry_conflicts=warnings,
            details=(
                f"Validation passed with {len(warnings)} warning(s):\n"
                f"{format_geometry_conflicts(warnings)}"
            ),
        )

    return LocationValidationResult(True, report.schema_version)
