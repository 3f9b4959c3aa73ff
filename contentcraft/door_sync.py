"""
contentcraft/door_sync.py -- Bidirectional door synchronization.

Every door from room R to room T should have a partner in T: a door on the
opposite wall that leads back to R, at the reciprocal position.  The
synchronizer creates missing partners (flagged ``is_reciprocal``) and
leaves existing ones alone, so running it twice adds nothing the second
time.

Pairing
    Doors are identified by ``(room index, door index)``.  Each door takes
    part in at most one pair per pass: once a partner is matched or
    created, both doors are claimed and later doors cannot pair with them.
    Two distinct doors whose descriptive pair keys collide are therefore
    never merged.  The pair key (``"room|wall|pos"`` for both ends, sorted)
    appears in log lines only.

Anomalies
    A target that names no room, an unknown wall or a non-numeric position
    is logged and the door is skipped.  Synchronization never raises.

Usage::

    from contentcraft.door_sync import DoorReciprocitySynchronizer

    sync = DoorReciprocitySynchronizer()
    spaces = sync.synchronize(spaces)
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import Any, Optional

from contentcraft.doors import (
    RECIPROCAL_TOLERANCE_FT,
    build_room_lookup,
    calculate_reciprocal_position,
    doors_of,
    is_number,
    is_terminal_target,
    leads_back_to,
    opposite_wall,
    room_label,
)

logger = logging.getLogger(__name__)

# Source-door fields copied onto a created partner when present.
COPIED_DOOR_FIELDS = ("width_ft", "style", "door_type", "material", "state", "color")

DoorId = tuple[int, int]


@dataclass(frozen=True)
class ParentDoor:
    """A door that owns its pair (or has no partner at all)."""

    room_name: str
    room_index: int
    door: dict


def door_pair_key(
    source_name: str, wall: str, position: float,
    target_name: str, target_wall: str, target_position: float,
) -> str:
    """Order-independent description of a door pair, for logging."""
    ends = sorted([
        f"{source_name}|{wall}|{position:.1f}",
        f"{target_name}|{target_wall}|{target_position:.1f}",
    ])
    return "<->".join(ends)


class _Resolved:
    """A door whose target room, partner wall and partner position are known."""

    __slots__ = ("target_index", "wall", "position", "pair_key")

    def __init__(self, target_index: int, wall: str, position: float, pair_key: str):
        self.target_index = target_index
        self.wall = wall
        self.position = position
        self.pair_key = pair_key


class DoorReciprocitySynchronizer:
    """Creates and identifies reciprocal door pairs.

    Parameters
    ----------
    tolerance : float
        Maximum distance in feet between an existing door and the computed
        reciprocal position for the two to count as a pair.
    """

    def __init__(self, tolerance: float = RECIPROCAL_TOLERANCE_FT):
        self.tolerance = tolerance

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def synchronize(self, spaces: list) -> list:
        """Return a copy of *spaces* in which every door has its partner.

        The input list and its rooms are not modified.  Created partners
        are appended to the target room's ``doors``.
        """
        updated = copy.deepcopy(spaces)
        lookup = build_room_lookup(updated)
        claimed: set[DoorId] = set()
        created = 0

        for source_index, source in enumerate(updated):
            # Partners appended to this room earlier are already claimed.
            for door_index, door in enumerate(list(doors_of(source))):
                door_id = (source_index, door_index)
                if door_id in claimed:
                    continue
                resolved = self._resolve(updated, lookup, source_index, door, warn=True)
                if resolved is None:
                    continue

                target = updated[resolved.target_index]
                match = self._find_partner(target, resolved, source, claimed, door_id)
                claimed.add(door_id)
                if match is not None:
                    claimed.add((resolved.target_index, match))
                    continue

                if not isinstance(target.get("doors"), list):
                    target["doors"] = []
                target["doors"].append(self._make_partner(source, door, resolved))
                claimed.add((resolved.target_index, len(target["doors"]) - 1))
                created += 1
                logger.info(
                    "Created reciprocal door: %s -> %s on %s wall at %.1fft (%s)",
                    room_label(target, resolved.target_index),
                    room_label(source, source_index),
                    resolved.wall, resolved.position, resolved.pair_key,
                )

        if created:
            logger.info("Door sync created %d reciprocal door(s)", created)
        return updated

    def identify_parent_doors(self, spaces: list) -> list[ParentDoor]:
        """Return one door per pair plus every door without a partner.

        Doors not flagged ``is_reciprocal`` get first claim on being the
        parent; among equals, room order and then door order decide.
        Terminal doors and doors whose target cannot be resolved are always
        parents.  The result is in room order, then door order, and holds
        copies of the doors.
        """
        lookup = build_room_lookup(spaces)
        candidates = [
            (room_index, door_index, door)
            for room_index, space in enumerate(spaces)
            for door_index, door in enumerate(doors_of(space))
            if isinstance(door, dict)
        ]
        candidates.sort(key=lambda c: (bool(c[2].get("is_reciprocal")), c[0], c[1]))

        claimed: set[DoorId] = set()
        parents: list[tuple[int, int, dict]] = []

        for room_index, door_index, door in candidates:
            door_id = (room_index, door_index)
            if door_id in claimed:
                continue
            claimed.add(door_id)
            parents.append((room_index, door_index, door))

            resolved = self._resolve(spaces, lookup, room_index, door, warn=False)
            if resolved is None:
                continue
            match = self._find_partner(
                spaces[resolved.target_index], resolved, spaces[room_index], claimed, door_id,
            )
            if match is not None:
                claimed.add((resolved.target_index, match))

        parents.sort(key=lambda p: (p[0], p[1]))
        return [
            ParentDoor(room_label(spaces[room_index], room_index), room_index, copy.deepcopy(door))
            for room_index, _door_index, door in parents
        ]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _resolve(
        self, spaces: list, lookup: dict[str, int], source_index: int, door: Any, warn: bool,
    ) -> Optional[_Resolved]:
        """Work out where *door*'s partner belongs, or ``None`` to skip it."""
        if not isinstance(door, dict):
            return None
        leads_to = door.get("leads_to")
        if is_terminal_target(leads_to):
            return None

        source = spaces[source_index]
        source_name = room_label(source, source_index)
        log = logger.warning if warn else logger.debug

        if not isinstance(leads_to, str) or leads_to not in lookup:
            log("Target space %r not found for door from %r", leads_to, source_name)
            return None

        wall = opposite_wall(door.get("wall"))
        if wall is None:
            log("Door from %r to %r has unknown wall %r", source_name, leads_to, door.get("wall"))
            return None

        position = door.get("position_on_wall_ft")
        if not is_number(position):
            log("Door from %r to %r has non-numeric position %r", source_name, leads_to, position)
            return None

        target_index = lookup[leads_to]
        target = spaces[target_index]
        reciprocal = calculate_reciprocal_position(source, target, door)
        pair_key = door_pair_key(
            source_name, door["wall"], position,
            room_label(target, target_index), wall, reciprocal,
        )
        return _Resolved(target_index, wall, reciprocal, pair_key)

    def _find_partner(
        self, target: Any, resolved: _Resolved, source: Any,
        claimed: set[DoorId], door_id: DoorId,
    ) -> Optional[int]:
        """Index of the first unclaimed door in *target* that pairs with the source door."""
        for index, candidate in enumerate(doors_of(target)):
            candidate_id = (resolved.target_index, index)
            if candidate_id == door_id or candidate_id in claimed:
                continue
            if not leads_back_to(candidate, source):
                continue
            if candidate.get("wall") != resolved.wall:
                continue
            position = candidate.get("position_on_wall_ft")
            if is_number(position) and abs(position - resolved.position) < self.tolerance:
                return index
        return None

    @staticmethod
    def _make_partner(source: dict, door: dict, resolved: _Resolved) -> dict:
        partner: dict[str, Any] = {
            "wall": resolved.wall,
            "position_on_wall_ft": resolved.position,
            "leads_to": source.get("name") or source.get("code"),
        }
        for key in COPIED_DOOR_FIELDS:
            if door.get(key) is not None:
                partner[key] = copy.deepcopy(door[key])
        partner["is_reciprocal"] = True
        return partner


def synchronize_reciprocal_doors(spaces: list) -> list:
    """Module-level shortcut for :meth:`DoorReciprocitySynchronizer.synchronize`."""
    return DoorReciprocitySynchronizer().synchronize(spaces)


def identify_parent_doors(spaces: list) -> list[ParentDoor]:
    """Module-level shortcut for :meth:`DoorReciprocitySynchronizer.identify_parent_doors`."""
    return DoorReciprocitySynchronizer().identify_parent_doors(spaces)
