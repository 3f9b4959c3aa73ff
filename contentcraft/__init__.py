"""
contentcraft/ -- Validation and consistency core for ContentCraft.

Submodules:
    schema_registry    Compiled JSON Schemas keyed by (family, version).
    validators         SchemaValidator and per-family entry points.
    npc_mapper         Field-variant mapping for generated NPC records.
    geometry           Scale-aware geometry conflict detection.
    proposals          Resolution proposals for geometry conflicts.
    location_pipeline  Schema plus geometry validation for locations.
    doors              Door geometry helpers and door audits.
    door_sync          Bidirectional door synchronization.
    door_migration     One-shot backfill of reciprocal door flags.
"""

from contentcraft.door_sync import DoorReciprocitySynchronizer
from contentcraft.geometry import GeometryConflict, GeometryConflictDetector
from contentcraft.proposals import GeometryProposal, GeometryProposalGenerator
from contentcraft.schema_registry import SchemaRegistry
from contentcraft.validators import SchemaValidator, ValidationReport

__version__ = "1.0.0"

__all__ = [
    "DoorReciprocitySynchronizer",
    "GeometryConflict",
    "GeometryConflictDetector",
    "GeometryProposal",
    "GeometryProposalGenerator",
    "SchemaRegistry",
    "SchemaValidator",
    "ValidationReport",
]
