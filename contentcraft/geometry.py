"""
contentcraft/geometry.py -- Scale-aware geometry conflict detection.

Checks a location's ``spaces`` for missing geometry, dangling or absent
connections, unknown locking points and floors that do not exist.  How
strict the checks are depends on the location's scale:

    simple / moderate   relaxed: every finding is a warning
    complex / massive   strict: missing geometry and broken connections block

Locking-point and floor references are only checked in strict mode and
always block when they fail.  A missing ``position`` is only reported in
strict mode and never blocks.

Usage::

    from contentcraft.geometry import GeometryConflictDetector

    conflicts = GeometryConflictDetector().detect(location_data)
    blocking = [c for c in conflicts if c.blocking]
"""

from __future__ import annotations

import json
import logging
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict

try:
    import networkx as nx
except ImportError:
    raise ImportError(
        "The 'networkx' package is required but not installed. "
        "Install it with: pip install networkx"
    )

logger = logging.getLogger(__name__)

# Upper bounds (inclusive) of the space count for each scale.
SIMPLE_MAX_SPACES = 5
MODERATE_MAX_SPACES = 20
COMPLEX_MAX_SPACES = 50

# More spaces than this without any mesh_anchors triggers a warning.
MESH_ANCHOR_MIN_SPACES = 5

EXPLICIT_SCALES = ("simple", "moderate", "complex", "massive")
STRICT_SCALES = frozenset({"complex", "massive"})

Severity = Literal["blocking", "warning"]


# ---------------------------------------------------------------------------
# Conflict model
# ---------------------------------------------------------------------------

class GeometryConflict(BaseModel):
    """One geometry problem found in a location.

    ``type`` is normally one of ``disconnected``, ``dimension_mismatch``,
    ``impossible_connection``, ``missing_support``,
    ``vertical_misalignment`` or ``overlap``; other values are accepted so
    that callers can feed their own findings to the proposal generator.
    """

    model_config = ConfigDict(extra="forbid")

    type: str
    severity: Severity
    description: str
    affected_spaces: Optional[list[str]] = None
    field_path: Optional[str] = None
    details: Optional[dict[str, Any]] = None

    @property
    def blocking(self) -> bool:
        return self.severity == "blocking"

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


# ---------------------------------------------------------------------------
# Scale helpers
# ---------------------------------------------------------------------------

def _scale_for_count(count: int) -> str:
    if count <= SIMPLE_MAX_SPACES:
        return "simple"
    if count <= MODERATE_MAX_SPACES:
        return "moderate"
    if count <= COMPLEX_MAX_SPACES:
        return "complex"
    return "massive"


def get_location_scale(data: Any) -> str:
    """Classify a location as simple, moderate, complex, massive or unknown.

    Precedence: an explicit ``scale`` field, then ``estimated_spaces``, then
    the length of ``spaces``.  Without any of those, a location that
    declares ``wings``, ``locking_points`` or ``load_bearing_walls`` is
    complex.
    """
    if not isinstance(data, dict):
        return "unknown"

    scale = data.get("scale")
    if isinstance(scale, str) and scale in EXPLICIT_SCALES:
        return scale

    estimated = data.get("estimated_spaces")
    if isinstance(estimated, (int, float)) and not isinstance(estimated, bool):
        return _scale_for_count(estimated)

    spaces = data.get("spaces")
    if isinstance(spaces, list):
        return _scale_for_count(len(spaces))

    if data.get("wings") or data.get("locking_points") or data.get("load_bearing_walls"):
        return "complex"

    return "unknown"


def _space_mesh_anchors(space: Any) -> bool:
    if not isinstance(space, dict):
        return False
    geometry = space.get("geometry")
    anchors = space.get("mesh_anchors")
    if not anchors and isinstance(geometry, dict):
        anchors = geometry.get("mesh_anchors")
    return bool(anchors) and isinstance(anchors, (dict, list))


def has_chunk_mesh_metadata(data: Any) -> bool:
    """Return ``True`` if the location carries chunk-meshing metadata.

    Either a top-level ``chunk_mesh_metadata`` object or ``mesh_anchors`` on
    at least one space counts.
    """
    if not isinstance(data, dict):
        return False
    if isinstance(data.get("chunk_mesh_metadata"), dict) and data["chunk_mesh_metadata"]:
        return True
    spaces = data.get("spaces")
    if isinstance(spaces, list):
        return any(_space_mesh_anchors(space) for space in spaces)
    return False


def _space_id(space: Any, index: int) -> str:
    if isinstance(space, dict) and isinstance(space.get("id"), str) and space["id"]:
        return space["id"]
    return f"space_{index}"


def _as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


# ---------------------------------------------------------------------------
# GeometryConflictDetector
# ---------------------------------------------------------------------------

class GeometryConflictDetector:
    """Runs every geometry check over one location at a time.

    The detector holds no state between calls; one instance can be shared.
    """

    def detect(self, data: Any) -> list[GeometryConflict]:
        """Return every geometry conflict in *data*, in check order.

        Parameters
        ----------
        data : Any
            A location record.  It is not modified.

        Returns
        -------
        list[GeometryConflict]
            Empty when the geometry is clean.
        """
        if not isinstance(data, dict):
            return [GeometryConflict(
                type="dimension_mismatch",
                severity="blocking",
                description="Location data must be an object",
            )]

        scale = get_location_scale(data)
        strict = scale in STRICT_SCALES
        conflicts: list[GeometryConflict] = []

        spaces = data.get("spaces")
        if not isinstance(spaces, list):
            if strict:
                conflicts.append(GeometryConflict(
                    type="dimension_mismatch",
                    severity="blocking",
                    description="Complex/massive locations require a spaces array",
                    field_path="spaces",
                ))
            return conflicts

        conflicts.extend(self.check_space_geometry(spaces, scale, strict))
        conflicts.extend(self.check_connectivity(spaces, strict))
        conflicts.extend(self.check_mesh_anchors(spaces))

        if strict:
            locking_points = data.get("locking_points")
            if isinstance(locking_points, list):
                conflicts.extend(self.check_locking_points(spaces, locking_points))
            floors = data.get("floors")
            if isinstance(floors, list):
                conflicts.extend(self.check_floor_levels(spaces, floors))

        blocking = sum(1 for c in conflicts if c.blocking)
        logger.debug(
            "Geometry check (%s scale, %d spaces): %d conflict(s), %d blocking",
            scale, len(spaces), len(conflicts), blocking,
        )
        return conflicts

    # ------------------------------------------------------------------
    # Individual checks
    # ------------------------------------------------------------------

    def check_space_geometry(
        self, spaces: list, scale: str, strict: bool,
    ) -> list[GeometryConflict]:
        """Missing geometry, dimensions and (strict only) position per space."""
        severity = "blocking" if strict else "warning"
        conflicts: list[GeometryConflict] = []

        for index, space in enumerate(spaces):
            space_id = _space_id(space, index)
            geometry = _as_dict(space).get("geometry")

            if not geometry or not isinstance(geometry, dict):
                conflicts.append(GeometryConflict(
                    type="dimension_mismatch",
                    severity=severity,
                    description=f'Space "{space_id}" missing geometry object',
                    affected_spaces=[space_id],
                    field_path=f"spaces[{index}].geometry",
                ))
                continue

            if not geometry.get("dimensions"):
                conflicts.append(GeometryConflict(
                    type="dimension_mismatch",
                    severity=severity,
                    description=f'Space "{space_id}" missing dimensions',
                    affected_spaces=[space_id],
                    field_path=f"spaces[{index}].geometry.dimensions",
                ))

            if strict and not geometry.get("position"):
                conflicts.append(GeometryConflict(
                    type="dimension_mismatch",
                    severity="warning",
                    description=(
                        f'Space "{space_id}" missing position information '
                        f"(recommended for {scale} locations)"
                    ),
                    affected_spaces=[space_id],
                    field_path=f"spaces[{index}].geometry.position",
                ))

        return conflicts

    def build_space_graph(self, spaces: list) -> nx.Graph:
        """Undirected graph of declared space ids and their connections.

        Dangling connection targets become nodes too, so a space whose only
        connection is broken is still counted as connected; the dangling
        target is reported separately.
        """
        graph = nx.Graph()
        for space in spaces:
            space_id = _as_dict(space).get("id")
            if isinstance(space_id, str) and space_id:
                graph.add_node(space_id, declared=True)

        for index, space in enumerate(spaces):
            source = _space_id(space, index)
            for connection in _as_dict(_as_dict(space).get("geometry")).get("connections") or []:
                target = _as_dict(connection).get("to")
                if isinstance(target, str) and target:
                    graph.add_edge(source, target, field_path=f"spaces[{index}].geometry.connections")
        return graph

    def check_connectivity(self, spaces: list, strict: bool) -> list[GeometryConflict]:
        """Dangling connection targets and fully disconnected spaces."""
        severity = "blocking" if strict else "warning"
        conflicts: list[GeometryConflict] = []
        graph = self.build_space_graph(spaces)
        declared = {node for node, attrs in graph.nodes(data=True) if attrs.get("declared")}

        for index, space in enumerate(spaces):
            source = _space_id(space, index)
            for connection in _as_dict(_as_dict(space).get("geometry")).get("connections") or []:
                target = _as_dict(connection).get("to")
                if not isinstance(target, str) or not target or target in declared:
                    continue
                conflicts.append(GeometryConflict(
                    type="disconnected",
                    severity=severity,
                    description=f'Space "{source}" connects to non-existent space "{target}"',
                    affected_spaces=[source, target],
                    field_path=f"spaces[{index}].geometry.connections",
                ))

        isolated = [node for node in graph.nodes if node in declared and graph.degree(node) == 0]
        if isolated and len(spaces) > 1:
            conflicts.append(GeometryConflict(
                type="disconnected",
                severity=severity,
                description=f"{len(isolated)} space(s) have no connections to other spaces",
                affected_spaces=isolated,
                details={"disconnected_space_ids": isolated},
            ))

        return conflicts

    def check_mesh_anchors(self, spaces: list) -> list[GeometryConflict]:
        if len(spaces) <= MESH_ANCHOR_MIN_SPACES:
            return []
        if any(_space_mesh_anchors(space) for space in spaces):
            return []
        return [GeometryConflict(
            type="dimension_mismatch",
            severity="warning",
            description=(
                "No spaces have mesh_anchors metadata for chunk meshing "
                "(recommended for locations with 5+ spaces)"
            ),
            field_path="spaces[].mesh_anchors",
        )]

    def check_locking_points(self, spaces: list, locking_points: list) -> list[GeometryConflict]:
        """Every per-space locking point reference must name a declared id."""
        known = {
            lp["id"] for lp in locking_points
            if isinstance(lp, dict) and isinstance(lp.get("id"), str) and lp["id"]
        }
        conflicts: list[GeometryConflict] = []

        for index, space in enumerate(spaces):
            refs = _as_dict(_as_dict(space).get("geometry")).get("locking_points")
            if not isinstance(refs, list):
                continue
            space_id = _space_id(space, index)
            for lock_id in refs:
                if isinstance(lock_id, str) and lock_id in known:
                    continue
                conflicts.append(GeometryConflict(
                    type="missing_support",
                    severity="blocking",
                    description=f'Space "{space_id}" references non-existent locking point "{lock_id}"',
                    affected_spaces=[space_id],
                    field_path=f"spaces[{index}].geometry.locking_points",
                ))

        return conflicts

    def check_floor_levels(self, spaces: list, floors: list) -> list[GeometryConflict]:
        """Numeric ``floor_level`` values must match a declared floor's level."""
        levels = [
            floor["level"] for floor in floors
            if isinstance(floor, dict) and _is_number(floor.get("level"))
        ]
        conflicts: list[GeometryConflict] = []

        for index, space in enumerate(spaces):
            floor_level = _as_dict(space).get("floor_level")
            if not _is_number(floor_level) or floor_level in levels:
                continue
            space_id = _space_id(space, index)
            conflicts.append(GeometryConflict(
                type="vertical_misalignment",
                severity="blocking",
                description=f"Space \"{space_id}\" on floor {floor_level} but that floor doesn't exist",
                affected_spaces=[space_id],
                field_path=f"spaces[{index}].floor_level",
                details={"space_floor": floor_level, "available_floors": sorted(set(levels))},
            ))

        return conflicts


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_geometry(data: Any) -> list[GeometryConflict]:
    """Module-level shortcut for :meth:`GeometryConflictDetector.detect`."""
    return GeometryConflictDetector().detect(data)


# ---------------------------------------------------------------------------
# Reporting
# ---------------------------------------------------------------------------

def format_geometry_conflicts(conflicts: list[GeometryConflict]) -> str:
    """Render *conflicts* as a numbered, blank-line separated report.

    Each entry shows the severity tag, the conflict type, the description
    and, when present, the affected spaces, the field path and the details
    as indented JSON.
    """
    blocks: list[str] = []
    for index, conflict in enumerate(conflicts, start=1):
        tag = "BLOCKING" if conflict.blocking else "WARNING"
        lines = [
            f"{index}. [{tag}] {conflict.type.replace('_', ' ').upper()}",
            f"   {conflict.description}",
        ]
        if conflict.affected_spaces:
            lines.append(f"   Affected spaces: {', '.join(conflict.affected_spaces)}")
        if conflict.field_path:
            lines.append(f"   Field: {conflict.field_path}")
        if conflict.details:
            lines.append(f"   Details: {json.dumps(conflict.details, indent=2)}")
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)
