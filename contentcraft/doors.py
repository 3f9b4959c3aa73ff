"""
contentcraft/doors.py -- Door geometry helpers and door audits.

A door sits on one wall of a room, ``position_on_wall_ft`` feet from the
start of that wall, and leads to another room by name or code::

    {"wall": "south", "position_on_wall_ft": 12, "width_ft": 4,
     "leads_to": "Great Hall", "style": "wooden"}

The room footprint comes from ``size_ft`` and falls back to
``dimensions`` (top level, then inside ``geometry``).  North and south
walls run along the width; east and west walls run along the height.

Besides the shared helpers used by :mod:`contentcraft.door_sync`, this
module provides two read-only audits:

    validate_space_doors(space)      field-level door checks for one room
    find_unreciprocated_doors(spaces)  doors without exactly one partner
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

try:
    import networkx as nx
except ImportError:
    raise ImportError(
        "The 'networkx' package is required but not installed. "
        "Install it with: pip install networkx"
    )

logger = logging.getLogger(__name__)

WALLS = ("north", "south", "east", "west")
OPPOSITE_WALLS = {"north": "south", "south": "north", "east": "west", "west": "east"}

# leads_to values that do not name a room
TERMINAL_TARGETS = frozenset({"Pending", "Outside"})

RECIPROCAL_TOLERANCE_FT = 0.5


# ---------------------------------------------------------------------------
# Geometry helpers
# ---------------------------------------------------------------------------

def opposite_wall(wall: Any) -> Optional[str]:
    """Return the wall facing *wall*, or ``None`` for an unknown wall."""
    return OPPOSITE_WALLS.get(wall) if isinstance(wall, str) else None


def is_terminal_target(leads_to: Any) -> bool:
    """``True`` for an empty, ``"Pending"`` or ``"Outside"`` door target."""
    return not leads_to or (isinstance(leads_to, str) and leads_to in TERMINAL_TARGETS)


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value == value


def room_size_ft(space: Any) -> Optional[tuple[float, float]]:
    """Return ``(width, height)`` in feet, or ``None`` if unknown.

    ``size_ft`` wins; ``dimensions`` and ``geometry.dimensions`` are the
    fallbacks.  Both values must be numbers.
    """
    if not isinstance(space, dict):
        return None
    geometry = space.get("geometry") if isinstance(space.get("geometry"), dict) else {}
    for source in (space.get("size_ft"), space.get("dimensions"), geometry.get("dimensions")):
        if isinstance(source, dict):
            width, height = source.get("width"), source.get("height")
            if is_number(width) and is_number(height):
                return float(width), float(height)
            return None
    return None


def wall_length(space: Any, wall: Any) -> Optional[float]:
    """Length of *wall* in feet: the width for north/south, height for east/west."""
    size = room_size_ft(space)
    if size is None or opposite_wall(wall) is None:
        return None
    return size[0] if wall in ("north", "south") else size[1]


def calculate_reciprocal_position(source_room: Any, target_room: Any, door: dict) -> float:
    """Where the partner of *door* belongs on the target room's opposite wall.

    Walls of equal length keep the same offset; otherwise the offset is
    scaled by ``target_length / source_length``.  A missing or zero length
    on either side keeps the offset unchanged.

    >>> calculate_reciprocal_position(
    ...     {"size_ft": {"width": 40, "height": 30}},
    ...     {"size_ft": {"width": 20, "height": 30}},
    ...     {"wall": "south", "position_on_wall_ft": 30},
    ... )
    15.0
    """
    offset = door["position_on_wall_ft"]
    wall = door.get("wall")
    source_length = wall_length(source_room, wall)
    target_length = wall_length(target_room, opposite_wall(wall))

    if source_length is None or target_length is None or source_length == 0:
        return offset
    if source_length == target_length:
        return offset
    return offset / source_length * target_length


def build_room_lookup(spaces: list) -> dict[str, int]:
    """Map every room name and code to its index in *spaces*.

    When two rooms share a name or code, the first one wins.
    """
    lookup: dict[str, int] = {}
    for index, space in enumerate(spaces):
        if not isinstance(space, dict):
            continue
        for key in (space.get("name"), space.get("code")):
            if isinstance(key, str) and key:
                lookup.setdefault(key, index)
    return lookup


def room_label(space: Any, index: int) -> str:
    if isinstance(space, dict) and isinstance(space.get("name"), str) and space["name"]:
        return space["name"]
    return f"space_{index}"


def leads_back_to(door: Any, room: Any) -> bool:
    """``True`` if *door* targets *room* by name or code."""
    if not isinstance(door, dict) or not isinstance(room, dict):
        return False
    target = door.get("leads_to")
    return bool(target) and target in (room.get("name"), room.get("code"))


def doors_of(space: Any) -> list:
    doors = space.get("doors") if isinstance(space, dict) else None
    return doors if isinstance(doors, list) else []


# ---------------------------------------------------------------------------
# Field-level audit
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DoorIssue:
    """One door problem, located by room and field path."""

    room: str
    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.room}: {self.path}: {self.message}"


def validate_space_doors(space: Any, index: int = 0) -> list[DoorIssue]:
    """Check the ``doors`` of one room field by field.

    Parameters
    ----------
    space : dict
        The room.
    index : int
        Position of the room in its location, used only to label rooms
        without a name.

    Returns
    -------
    list[DoorIssue]
        Empty when every door is well formed.
    """
    room = room_label(space, index)
    if not isinstance(space, dict):
        return [DoorIssue(room, "", "Space must be an object.")]

    doors = space.get("doors")
    if doors is None:
        return []
    if not isinstance(doors, list):
        return [DoorIssue(room, "doors", "Doors must be an array.")]

    issues: list[DoorIssue] = []
    size_known = room_size_ft(space) is not None
    if doors and not size_known:
        issues.append(DoorIssue(
            room, "size_ft",
            "Missing size_ft. Provide size_ft { width, height } in feet so door positions can be checked.",
        ))

    for door_index, door in enumerate(doors):
        prefix = f"doors[{door_index}]"
        if not isinstance(door, dict):
            issues.append(DoorIssue(room, prefix, "Door must be an object."))
            continue

        wall = door.get("wall")
        if opposite_wall(wall) is None:
            issues.append(DoorIssue(room, f"{prefix}.wall", "wall must be one of: north|south|east|west."))

        if "position" in door:
            issues.append(DoorIssue(
                room, f"{prefix}.position",
                "Do not use `position`. Use `position_on_wall_ft` (feet from wall start to door center).",
            ))
        if "width" in door:
            issues.append(DoorIssue(room, f"{prefix}.width", "Do not use `width`. Use `width_ft` (feet)."))

        style = door.get("style") or door.get("door_type")
        if not isinstance(style, str) or not style.strip():
            issues.append(DoorIssue(
                room, f"{prefix}.style or door_type",
                'Door must have "style" or "door_type" (e.g. "wooden", "stone", "archway", "secret").',
            ))

        position = door.get("position_on_wall_ft")
        if not is_number(position):
            issues.append(DoorIssue(
                room, f"{prefix}.position_on_wall_ft",
                "position_on_wall_ft is required and must be a number of feet from the wall start.",
            ))
        elif position < 0:
            issues.append(DoorIssue(
                room, f"{prefix}.position_on_wall_ft",
                f"position_on_wall_ft cannot be negative (got {position}ft).",
            ))
        else:
            length = wall_length(space, wall)
            if length is not None and position > length:
                issues.append(DoorIssue(
                    room, f"{prefix}.position_on_wall_ft",
                    f"position_on_wall_ft {position}ft is past the end of the {wall} wall ({length:g}ft).",
                ))

        width = door.get("width_ft")
        if not is_number(width):
            issues.append(DoorIssue(room, f"{prefix}.width_ft", "width_ft is required and must be a number (feet)."))
        elif width <= 0:
            issues.append(DoorIssue(room, f"{prefix}.width_ft", f"width_ft must be > 0 (got {width}ft)."))

        leads_to = door.get("leads_to")
        if not isinstance(leads_to, str) or not leads_to.strip():
            issues.append(DoorIssue(
                room, f"{prefix}.leads_to",
                'leads_to is required and must be a non-empty string (or "Pending").',
            ))

    return issues


# ---------------------------------------------------------------------------
# Reciprocity audit
# ---------------------------------------------------------------------------

def build_door_graph(spaces: list) -> nx.MultiDiGraph:
    """Directed multigraph of rooms (by index) and the doors between them.

    One edge per door whose target resolves to a room.  Edge attributes:
    ``door_index``, ``wall``, ``position`` and ``is_reciprocal``.  Terminal
    and unresolvable doors are left out.
    """
    graph = nx.MultiDiGraph()
    lookup = build_room_lookup(spaces)

    for index, space in enumerate(spaces):
        graph.add_node(index, name=room_label(space, index))

    for index, space in enumerate(spaces):
        for door_index, door in enumerate(doors_of(space)):
            if not isinstance(door, dict):
                continue
            leads_to = door.get("leads_to")
            if not isinstance(leads_to, str) or is_terminal_target(leads_to):
                continue
            target = lookup.get(leads_to)
            if target is None:
                continue
            graph.add_edge(
                index, target,
                door_index=door_index,
                wall=door.get("wall"),
                position=door.get("position_on_wall_ft"),
                is_reciprocal=bool(door.get("is_reciprocal")),
            )
    return graph


def find_unreciprocated_doors(
    spaces: list, tolerance: float = RECIPROCAL_TOLERANCE_FT,
) -> list[DoorIssue]:
    """Report non-reciprocal doors that lack exactly one matching partner.

    A partner is a door in the target room that leads back, sits on the
    opposite wall and lies within *tolerance* feet of the computed
    reciprocal position.
    """
    graph = build_door_graph(spaces)
    issues: list[DoorIssue] = []

    for source, target, data in graph.edges(data=True):
        if data["is_reciprocal"] or not is_number(data["position"]):
            continue
        expected_wall = opposite_wall(data["wall"])
        if expected_wall is None:
            continue
        door = spaces[source]["doors"][data["door_index"]]
        expected = calculate_reciprocal_position(spaces[source], spaces[target], door)

        partners = [
            back for back in (graph.get_edge_data(target, source) or {}).values()
            if back["wall"] == expected_wall
            and is_number(back["position"])
            and abs(back["position"] - expected) < tolerance
            and (source != target or back["door_index"] != data["door_index"])
        ]
        if len(partners) == 1:
            continue

        room = room_label(spaces[source], source)
        path = f"doors[{data['door_index']}]"
        target_name = room_label(spaces[target], target)
        if not partners:
            message = (
                f"No matching door in {target_name} on its {expected_wall} wall "
                f"near {expected:.1f}ft."
            )
        else:
            message = (
                f"{len(partners)} matching doors in {target_name} on its {expected_wall} wall "
                f"near {expected:.1f}ft; expected exactly one."
            )
        issues.append(DoorIssue(room, path, message))

    return issues
