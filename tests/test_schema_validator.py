"""
Tests for contentcraft/validators.py -- SchemaValidator and family helpers.

Validates:
    - Version detection routes records to the right schema
    - Unknown or missing versions fail closed to the legacy schema
    - Reports carry raw errors and a human-readable report
    - Raising entry points raise the right exception types
    - Records are never modified by validation
    - Content heuristics for monsters and locations
"""

import copy

import pytest

from contentcraft.errors import (
    GeometryConflictError,
    SchemaNotFoundError,
    SchemaValidationError,
)
from contentcraft.location_pipeline import validate_location_with_geometry
from contentcraft.validators import (
    SchemaValidator,
    ValidationReport,
    is_location_content,
    is_monster_content,
    is_valid_npc,
    validate_location_or_raise,
    validate_location_strict,
    validate_monster_or_raise,
    validate_monster_strict,
    validate_npc_safe,
    validate_npc_strict,
)


# ---------------------------------------------------------------------------
# SchemaValidator
# ---------------------------------------------------------------------------

class TestSchemaValidator:
    """Tests for the generic validator."""

    def test_unknown_family_fails_at_construction(self, registry):
        """A validator cannot be built for an unregistered family."""
        with pytest.raises(SchemaNotFoundError):
            SchemaValidator(registry, "dragon")

    def test_unknown_version_raises(self, registry, sample_legacy_npc):
        """validate() with an unregistered version key raises."""
        with pytest.raises(SchemaNotFoundError):
            SchemaValidator(registry, "npc").validate("3.0", sample_legacy_npc)

    def test_legacy_record_passes(self, registry, sample_legacy_npc):
        """A record without schema_version is validated against 1.0."""
        report = SchemaValidator(registry, "npc").validate_document(sample_legacy_npc)
        assert isinstance(report, ValidationReport)
        assert report.valid
        assert report.schema_version == "1.0"
        assert report.errors == []
        assert report.details == ""

    def test_v11_record_passes(self, registry, sample_npc_v11):
        """A v1.1 record with both proposal shapes is valid."""
        report = SchemaValidator(registry, "npc").validate_document(sample_npc_v11)
        assert report.valid
        assert report.schema_version == "1.1"

    def test_unregistered_version_uses_legacy_schema(self, registry, sample_npc_v11):
        """schema_version 1.7 is not repaired; the legacy schema applies."""
        sample_npc_v11["schema_version"] = "1.7"
        report = SchemaValidator(registry, "npc").validate_document(sample_npc_v11)
        assert not report.valid
        assert report.schema_version == "1.0"
        assert 'missing required field "race"' in report.details

    def test_namespaced_version_fails_const(self, registry, sample_npc_v11):
        """"npc/v1.1" routes to 1.1 but does not satisfy its const."""
        sample_npc_v11["schema_version"] = "npc/v1.1"
        report = SchemaValidator(registry, "npc").validate_document(sample_npc_v11)
        assert not report.valid
        assert report.schema_version == "1.1"
        assert report.details.startswith(
            '1. Schema Version: must be equal to constant. Allowed values: 1.1. '
            'Received: "npc/v1.1".'
        )

    def test_validation_does_not_modify_record(self, registry, sample_legacy_npc):
        """The record is identical before and after validation."""
        sample_legacy_npc["armor_class"] = "very tough"
        before = copy.deepcopy(sample_legacy_npc)
        SchemaValidator(registry, "npc").validate_document(sample_legacy_npc)
        assert sample_legacy_npc == before

    def test_errors_sorted_root_first(self, registry, sample_legacy_npc):
        """Root-level errors come before field errors in the report."""
        del sample_legacy_npc["race"]
        sample_legacy_npc["armor_class"] = "very tough"
        report = SchemaValidator(registry, "npc").validate_document(sample_legacy_npc)
        lines = report.details.splitlines()
        assert lines[0].startswith("1. root object: missing required field")
        assert lines[1].startswith("2. Armor Class: invalid format.")

    def test_errors_sorted_by_numeric_index(self, registry, sample_location):
        """Array indices order numerically, so spaces.2 precedes spaces.10."""
        sample_location["spaces"].extend(
            {"id": f"room_{i}", "name": f"Room {i}"} for i in range(2, 12)
        )
        sample_location["spaces"][10]["name"] = 10
        sample_location["spaces"][2]["name"] = 2
        report = SchemaValidator(registry, "location").validate_document(sample_location)
        assert [e.path for e in report.errors] == [("spaces", 2, "name"), ("spaces", 10, "name")]
        lines = report.details.splitlines()
        assert lines[0].startswith("1. spaces.2.name:")
        assert lines[1].startswith("2. spaces.10.name:")

    def test_report_to_dict(self, registry, sample_legacy_npc):
        """to_dict exposes raw errors with JSON pointer paths."""
        sample_legacy_npc["ability_scores"]["STR"] = 16
        report = SchemaValidator(registry, "npc").validate_document(sample_legacy_npc)
        payload = report.to_dict()
        assert payload["valid"] is False
        assert payload["schema_version"] == "1.0"
        assert payload["errors"][0]["instance_path"] == "/ability_scores"
        assert payload["errors"][0]["params"] == {"additionalProperty": "STR"}
        assert 'Ability Scores: unexpected field "STR"' in payload["details"]

    def test_validate_or_raise(self, registry, sample_legacy_npc):
        """The raised error carries the same details as the report."""
        del sample_legacy_npc["hit_points"]
        with pytest.raises(SchemaValidationError) as excinfo:
            SchemaValidator(registry, "npc").validate_or_raise(sample_legacy_npc)
        err = excinfo.value
        assert err.family == "npc"
        assert err.schema_version == "1.0"
        assert str(err).startswith("Npc validation failed (schema 1.0):")
        assert 'missing required field "hit_points"' in err.details
        assert err.errors[0].keyword == "required"


# ---------------------------------------------------------------------------
# NPC helpers
# ---------------------------------------------------------------------------

class TestNpcEntryPoints:
    """Tests for validate_npc_safe, validate_npc_strict and is_valid_npc."""

    def test_safe_returns_report(self, registry, sample_npc_v11):
        """The safe variant never raises."""
        sample_npc_v11["name"] = 42
        report = validate_npc_safe(registry, sample_npc_v11)
        assert not report.valid
        assert report.details == (
            "1. Name: must be string (expected string, got number: 42). "
            "Fix: Make sure this is a string."
        )

    def test_strict_raises(self, registry, sample_npc_v11):
        """The strict variant raises SchemaValidationError."""
        sample_npc_v11["description"] = "Too short."
        with pytest.raises(SchemaValidationError):
            validate_npc_strict(registry, sample_npc_v11)

    def test_strict_passes_silently(self, registry, sample_npc_v11):
        """A valid record returns None."""
        assert validate_npc_strict(registry, sample_npc_v11) is None

    def test_is_valid_npc(self, registry, sample_legacy_npc):
        """is_valid_npc mirrors the report."""
        assert is_valid_npc(registry, sample_legacy_npc)
        sample_legacy_npc["ability_scores"]["str"] = 31
        assert not is_valid_npc(registry, sample_legacy_npc)


# ---------------------------------------------------------------------------
# Monster helpers
# ---------------------------------------------------------------------------

class TestMonsterEntryPoints:
    """Tests for the monster validation helpers."""

    def test_valid_monster(self, registry, sample_monster):
        """The sample stat block is valid."""
        assert validate_monster_strict(registry, sample_monster).valid
        assert validate_monster_or_raise(registry, sample_monster) is None

    def test_bad_size_reports_allowed_values(self, registry, sample_monster):
        """An enum failure lists the allowed sizes and the fix hint."""
        sample_monster["size"] = "huge"
        report = validate_monster_strict(registry, sample_monster)
        assert not report.valid
        assert "Allowed values: Tiny, Small, Medium, Large, Huge, Gargantuan" in report.details
        assert 'Received: "huge"' in report.details
        assert "Fix: Use one of the six standard sizes, capitalised." in report.details

    def test_numeric_challenge_rating_rejected(self, registry, sample_monster):
        """challenge_rating must be text, not a number."""
        sample_monster["challenge_rating"] = 2
        with pytest.raises(SchemaValidationError, match="Challenge Rating"):
            validate_monster_or_raise(registry, sample_monster)

    def test_is_monster_content(self, sample_monster):
        """Monster records need an explicit deliverable or type marker."""
        assert not is_monster_content(sample_monster)
        sample_monster["deliverable"] = "monster"
        assert is_monster_content(sample_monster)
        assert not is_monster_content(["not", "a", "dict"])


# ---------------------------------------------------------------------------
# Location helpers
# ---------------------------------------------------------------------------

class TestLocationEntryPoints:
    """Tests for the location validation helpers."""

    def test_valid_location(self, registry, sample_location):
        """A clean simple location passes both stages."""
        assert validate_location_strict(registry, sample_location).valid
        assert validate_location_or_raise(registry, sample_location) is None

    def test_schema_failure_raises_schema_error(self, registry, sample_location):
        """A missing location_type is a structural failure."""
        del sample_location["location_type"]
        with pytest.raises(SchemaValidationError):
            validate_location_or_raise(registry, sample_location)

    def test_geometry_not_checked_by_schema_helper(self, registry, sample_location):
        """A schema-valid complex location with a dangling connection passes the schema helper."""
        sample_location["scale"] = "complex"
        sample_location["spaces"][1]["geometry"]["connections"].append({"to": "cellar"})
        assert validate_location_or_raise(registry, sample_location) is None

    def test_blocking_geometry_raises_conflict_error(self, registry, sample_location):
        """A dangling connection in a complex location blocks the geometry gate."""
        sample_location["scale"] = "complex"
        sample_location["spaces"][1]["geometry"]["connections"].append({"to": "cellar"})
        result = validate_location_with_geometry(registry, sample_location)
        with pytest.raises(GeometryConflictError) as excinfo:
            result.raise_for_errors()
        assert excinfo.value.conflicts
        assert len(excinfo.value.proposals) == len(excinfo.value.conflicts)

    @pytest.mark.parametrize("record, expected", [
        ({"name": "Keep", "location_type": "castle"}, True),
        ({"name": "Bog", "location_type": "swamp"}, False),
        ({"name": "Bog", "location_type": "swamp", "type": "location"}, True),
        ({"name": "Bog", "location_type": "swamp", "deliverable": "location"}, True),
        ({"location_type": "castle"}, False),
        ("castle", False),
    ])
    def test_is_location_content(self, record, expected):
        """Known types or an explicit marker identify a location."""
        assert is_location_content(record) is expected
