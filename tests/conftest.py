"""
Shared pytest fixtures for the ContentCraft validation core test suite.

Provides:
    - project_root: path to the real project root
    - registry: the bundled schema registry, compiled once per session
    - sample_npc_v11 / sample_legacy_npc: valid NPC records for each version
    - sample_monster: a valid monster stat block
    - sample_location: a valid two-room tavern with clean geometry
    - hall_and_kitchen: two rooms of different widths, one door between them
"""

import sys
from pathlib import Path

import pytest

# ---------------------------------------------------------------------------
# Ensure contentcraft/ is importable regardless of where pytest is invoked
# ---------------------------------------------------------------------------

PROJECT_ROOT = Path(__file__).resolve().parent.parent

# Add project root to sys.path so that `from contentcraft.xxx import ...` works.
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from contentcraft.paths import get_bundled_schema_dir  # noqa: E402
from contentcraft.schema_registry import SchemaRegistry  # noqa: E402


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def project_root():
    """Return the absolute path to the real project root directory."""
    return str(PROJECT_ROOT)


@pytest.fixture(scope="session")
def registry():
    """Return the registry compiled from the bundled schemas."""
    return SchemaRegistry.from_directory(get_bundled_schema_dir())


@pytest.fixture
def sample_npc_v11():
    """Return a minimal valid v1.1 NPC with both proposal shapes."""
    return {
        "schema_version": "1.1",
        "name": "Odo Brambletuck",
        "description": "This is a sufficiently long description.",
        "proposals": [
            "Should Odo own the mill outright?",
            {"question": "Which guild does Odo owe money to?", "answer": "The Millers' Guild"},
        ],
    }


@pytest.fixture
def sample_legacy_npc():
    """Return a valid legacy (v1.0 flat) NPC with no schema_version."""
    return {
        "name": "Captain Mara Voss",
        "description": "A weathered harbor captain with a scar across the jaw.",
        "race": "Human",
        "alignment": "Lawful Neutral",
        "class_levels": [{"class": "Fighter", "level": 5}],
        "ability_scores": {"str": 16, "dex": 14, "con": 15, "int": 10, "wis": 12, "cha": 13},
        "armor_class": "16 (chain mail)",
        "hit_points": {"average": 44, "formula": "5d10+15"},
        "speed": {"walk": "30 ft."},
    }


@pytest.fixture
def sample_monster():
    """Return a valid monster stat block."""
    return {
        "name": "Ash Wyrmling",
        "description": "A soot-black dragon hatchling that nests in cooling lava tubes.",
        "size": "Medium",
        "creature_type": "dragon",
        "challenge_rating": "2",
        "armor_class": 17,
        "hit_points": {"average": 38, "formula": "7d8+7"},
        "speed": {"walk": "30 ft.", "fly": "60 ft."},
        "ability_scores": {"str": 15, "dex": 10, "con": 13, "int": 10, "wis": 11, "cha": 13},
        "actions": [{"name": "Bite", "description": "Melee Weapon Attack: +4 to hit."}],
    }


@pytest.fixture
def sample_location():
    """Return a valid simple location whose geometry has no conflicts."""
    return {
        "name": "The Gilded Tankard",
        "location_type": "tavern",
        "spaces": [
            {
                "id": "common_room",
                "name": "Common Room",
                "geometry": {
                    "dimensions": {"width": 40, "height": 30},
                    "connections": [{"to": "kitchen", "type": "door"}],
                },
            },
            {
                "id": "kitchen",
                "name": "Kitchen",
                "geometry": {
                    "dimensions": {"width": 20, "height": 20},
                    "connections": [{"to": "common_room", "type": "door"}],
                },
            },
        ],
    }


@pytest.fixture
def hall_and_kitchen():
    """Return a 40 ft wide hall with one south door into a 20 ft wide kitchen."""
    return [
        {
            "name": "Hall",
            "code": "H1",
            "size_ft": {"width": 40, "height": 30},
            "doors": [
                {
                    "wall": "south",
                    "position_on_wall_ft": 30,
                    "width_ft": 4,
                    "leads_to": "Kitchen",
                    "style": "wooden",
                    "state": "closed",
                },
            ],
        },
        {
            "name": "Kitchen",
            "code": "K1",
            "size_ft": {"width": 20, "height": 20},
            "doors": [],
        },
    ]
