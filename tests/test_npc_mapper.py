"""
Tests for contentcraft/npc_mapper.py -- NPC field-variant mapping.

Validates:
    - Ability score variants map to lowercase keys; missing scores are errors
    - traits/features, gear, magic_items and top-level personality variants
    - schema_version normalization with a warning
    - map_and_validate_npc reports mapping and schema failures separately
"""

import copy

import pytest

from contentcraft.npc_mapper import (
    map_and_validate_npc,
    map_to_canonical_structure,
    normalize_ability_scores,
    normalize_equipment,
    normalize_magic_items,
    normalize_personality,
)
from contentcraft.validators import SchemaValidator


@pytest.fixture
def npc_validator(registry):
    return SchemaValidator(registry, "npc")


@pytest.fixture
def variant_npc():
    """A v1.1 record using several non-canonical field names."""
    return {
        "schema_version": "npc/v1.1",
        "canonical_name": "Sister Wren",
        "description": "A soft-spoken healer who keeps the shrine of the drowned saint.",
        "ability_scores": {
            "STR": 9, "Dexterity": 12, "con": 11, "INT": 13, "wisdom": 17, "Cha": 14,
        },
        "traits": [{"name": "Lay on Hands", "description": "Heals 10 hp per day."}],
        "equipment": {"carried": ["staff", "prayer beads"]},
        "magic_items": [{"name": "Periapt of Health"}],
        "ideals": "Mercy",
        "bonds": ["The shrine"],
        "flaws": ["Trusts too easily"],
    }


# ---------------------------------------------------------------------------
# Normalizers
# ---------------------------------------------------------------------------

class TestNormalizers:
    """Tests for the per-field normalizers."""

    def test_ability_score_variants(self):
        """Upper, title and long-form keys map to lowercase keys."""
        scores = normalize_ability_scores(
            {"STR": 9, "Dexterity": 12, "con": 11, "INT": 13, "wisdom": 17, "CHARISMA": 14}
        )
        assert scores == {"str": 9, "dex": 12, "con": 11, "int": 13, "wis": 17, "cha": 14}

    def test_canonical_key_wins_and_non_numbers_ignored(self):
        """A canonical key beats its variant; strings and booleans are not scores."""
        scores = normalize_ability_scores({"str": 10, "STR": 18, "dex": "12", "con": True})
        assert scores == {"str": 10}

    def test_equipment_shapes(self):
        """Nested carried lists, flat lists and gear all become flat lists."""
        assert normalize_equipment({"equipment": {"carried": ["rope", 3]}}) == ["rope"]
        assert normalize_equipment({"equipment": ["rope"]}) == ["rope"]
        assert normalize_equipment({"gear": ["lantern"]}) == ["lantern"]
        assert normalize_equipment({}) == []

    def test_magic_items_shapes(self):
        """Object entries contribute their names; string lists pass through."""
        assert normalize_magic_items({"magic_items": [{"name": "Ring"}, {"bonus": 1}]}) == ["Ring"]
        assert normalize_magic_items({"magical_items": ["Wand"]}) == ["Wand"]
        assert normalize_magic_items({"magicItems": ["Wand"]}) == []

    def test_personality_from_top_level(self):
        """Top-level variants fill the nested object; single strings become lists."""
        personality = normalize_personality(
            {"personality_traits": ["Curious"], "ideals": "Freedom", "flaws": "Greedy"}
        )
        assert personality == {
            "traits": ["Curious"], "ideals": ["Freedom"], "bonds": [], "flaws": ["Greedy"],
        }

    def test_nested_personality_wins(self):
        """Nested values are kept; only empty keys fall back to variants."""
        personality = normalize_personality(
            {"personality": {"traits": ["Calm"], "bonds": []}, "bonds": ["Her brother"],
             "personality_traits": ["Loud"]}
        )
        assert personality["traits"] == ["Calm"]
        assert personality["bonds"] == ["Her brother"]


# ---------------------------------------------------------------------------
# map_to_canonical_structure
# ---------------------------------------------------------------------------

class TestMapToCanonicalStructure:
    """Tests for the full mapping step."""

    def test_maps_every_variant(self, variant_npc):
        """Each known variant lands on its canonical field."""
        result = map_to_canonical_structure(variant_npc)
        mapped = result.mapped

        assert result.success
        assert mapped["schema_version"] == "1.1"
        assert mapped["name"] == "Sister Wren"
        assert mapped["ability_scores"] == {
            "str": 9, "dex": 12, "con": 11, "int": 13, "wis": 17, "cha": 14,
        }
        assert mapped["abilities"] == variant_npc["traits"]
        assert mapped["equipment"] == ["staff", "prayer beads"]
        assert mapped["magicItems"] == ["Periapt of Health"]
        assert mapped["personality"] == {
            "traits": [], "ideals": ["Mercy"], "bonds": ["The shrine"],
            "flaws": ["Trusts too easily"],
        }

    def test_warnings_describe_each_mapping(self, variant_npc):
        """Every applied mapping leaves a warning."""
        warnings = map_to_canonical_structure(variant_npc).warnings
        assert 'Normalized schema_version from "npc/v1.1" to "1.1"' in warnings
        assert 'Mapped "traits" field to canonical "abilities" field' in warnings
        assert "Normalized nested equipment.carried to flat equipment array" in warnings
        assert "Extracted magic item names from object array" in warnings
        assert "Normalized top-level personality fields into personality object" in warnings
        assert 'Mapped "canonical_name" to "name"' in warnings

    def test_input_not_modified(self, variant_npc):
        """Mapping works on a copy."""
        before = copy.deepcopy(variant_npc)
        map_to_canonical_structure(variant_npc)
        assert variant_npc == before

    def test_missing_ability_is_an_error(self, variant_npc):
        """Scores are never defaulted."""
        del variant_npc["ability_scores"]["Cha"]
        result = map_to_canonical_structure(variant_npc)
        assert not result.success
        assert result.errors == ["Missing ability scores: cha"]

    def test_unknown_version_left_alone(self, variant_npc):
        """An unregistered schema_version is not rewritten."""
        variant_npc["schema_version"] = "7.0"
        result = map_to_canonical_structure(variant_npc)
        assert result.mapped["schema_version"] == "7.0"

    def test_unmapped_fields_listed(self, variant_npc):
        """Fields outside the mapping table are kept and reported."""
        variant_npc["favorite_color"] = "teal"
        result = map_to_canonical_structure(variant_npc)
        assert result.mapped["favorite_color"] == "teal"
        assert "favorite_color" in result.unmapped_fields
        assert "description" in result.unmapped_fields
        assert "traits" not in result.unmapped_fields

    def test_non_object_input(self):
        """A non-dict record is a mapping error."""
        result = map_to_canonical_structure(["Wren"])
        assert not result.success
        assert result.errors == ["NPC data must be an object, got list"]


# ---------------------------------------------------------------------------
# map_and_validate_npc
# ---------------------------------------------------------------------------

class TestMapAndValidateNpc:
    """Tests for mapping followed by strict validation."""

    def test_mapped_record_validates(self, npc_validator, variant_npc):
        """A variant-laden record passes once mapped."""
        result = map_and_validate_npc(npc_validator, variant_npc)
        assert result.success, result.validation_errors
        assert result.schema_version == "1.1"
        assert result.data["name"] == "Sister Wren"
        assert result.errors == []

    def test_mapping_failure(self, npc_validator, variant_npc):
        """Mapping errors stop before validation."""
        del variant_npc["ability_scores"]["STR"]
        result = map_and_validate_npc(npc_validator, variant_npc)
        assert not result.success
        assert result.data is None
        assert result.errors == ["Mapping failed", "Missing ability scores: str"]
        assert "validation_errors" not in result.to_dict()

    def test_schema_failure(self, npc_validator, variant_npc):
        """A mapped record that still fails the schema reports the details."""
        variant_npc["description"] = "Short."
        result = map_and_validate_npc(npc_validator, variant_npc)
        assert not result.success
        assert result.errors == ["Schema validation failed"]
        assert "Description" in result.validation_errors
        payload = result.to_dict()
        assert payload["schema_version"] == "1.1"
        assert payload["raw_errors"][0]["keyword"] == "minLength"
