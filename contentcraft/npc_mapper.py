"""
contentcraft/npc_mapper.py -- Map NPC field variants onto canonical names.

Generated NPC records often use close-but-wrong field names: ``STR`` or
``Strength`` instead of ``str``, ``traits`` instead of ``abilities``,
equipment nested under ``carried``, top-level ``ideals``/``bonds``.  This
module maps the known variants onto the canonical structure and leaves the
rest of the record alone.  It does not invent values: a record that lacks
an ability score is a mapping error, not a record with a default of 10.

Mapping is a separate step from validation.  The validator stays strict;
callers that want variants accepted call :func:`map_and_validate_npc`.

Usage::

    from contentcraft.npc_mapper import map_and_validate_npc
    from contentcraft.validators import SchemaValidator

    validator = SchemaValidator(registry, "npc")
    result = map_and_validate_npc(validator, raw_npc)
    if result.success:
        store(result.data)
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from contentcraft.error_formatter import SchemaError
from contentcraft.validators import SchemaValidator
from contentcraft.versioning import normalize_schema_version

logger = logging.getLogger(__name__)

ABILITY_KEYS = ("str", "dex", "con", "int", "wis", "cha")

# canonical field -> accepted variants
FIELD_MAPPINGS: dict[str, list[str]] = {
    "ability_scores.str": ["STR", "Str", "strength", "Strength", "STRENGTH"],
    "ability_scores.dex": ["DEX", "Dex", "dexterity", "Dexterity", "DEXTERITY"],
    "ability_scores.con": ["CON", "Con", "constitution", "Constitution", "CONSTITUTION"],
    "ability_scores.int": ["INT", "Int", "intelligence", "Intelligence", "INTELLIGENCE"],
    "ability_scores.wis": ["WIS", "Wis", "wisdom", "Wisdom", "WISDOM"],
    "ability_scores.cha": ["CHA", "Cha", "charisma", "Charisma", "CHARISMA"],
    "abilities": ["traits", "Traits", "special_abilities", "features"],
    "personality.traits": ["personality_traits", "character_traits"],
    "personality.ideals": ["ideals"],
    "personality.bonds": ["bonds"],
    "personality.flaws": ["flaws"],
    "name": ["canonical_name", "character_name", "npc_name"],
    "equipment": ["equipment.carried", "gear", "possessions"],
    "magicItems": ["magic_items", "magical_items"],
}

_PERSONALITY_KEYS = ("traits", "ideals", "bonds", "flaws")


@dataclass
class MappingResult:
    """Outcome of :func:`map_to_canonical_structure`.

    ``success`` is ``False`` when any mapping error was recorded; ``mapped``
    still holds the partially mapped record for inspection.
    """

    success: bool = False
    mapped: dict[str, Any] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    unmapped_fields: list[str] = field(default_factory=list)


@dataclass
class NpcProcessingResult:
    """Outcome of :func:`map_and_validate_npc`."""

    success: bool
    data: Optional[dict[str, Any]]
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    validation_errors: Optional[str] = None
    raw_errors: list[SchemaError] = field(default_factory=list)
    schema_version: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "success": self.success,
            "data": self.data,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
        }
        if self.validation_errors is not None:
            result["validation_errors"] = self.validation_errors
            result["raw_errors"] = [e.to_dict() for e in self.raw_errors]
        if self.schema_version is not None:
            result["schema_version"] = self.schema_version
        return result


# ---------------------------------------------------------------------------
# Field normalizers
# ---------------------------------------------------------------------------

def _strings(values: Any) -> list[str]:
    return [v for v in values if isinstance(v, str)] if isinstance(values, list) else []


def _is_score(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def normalize_ability_scores(source: dict[str, Any]) -> dict[str, Any]:
    """Collect the six scores from canonical or variant keys.

    Only numeric values count.  Missing abilities are simply absent from
    the returned dict.
    """
    scores: dict[str, Any] = {}
    for ability in ABILITY_KEYS:
        if _is_score(source.get(ability)):
            scores[ability] = source[ability]
            continue
        for variant in FIELD_MAPPINGS[f"ability_scores.{ability}"]:
            if _is_score(source.get(variant)):
                scores[ability] = source[variant]
                break
    return scores


def normalize_equipment(source: dict[str, Any]) -> list[str]:
    equipment = source.get("equipment")
    if isinstance(equipment, dict) and "carried" in equipment:
        return _strings(equipment["carried"])
    if isinstance(equipment, list):
        return _strings(equipment)
    for variant in ("gear", "possessions"):
        if isinstance(source.get(variant), list):
            return _strings(source[variant])
    return []


def normalize_magic_items(source: dict[str, Any]) -> list[str]:
    """Return magic item names; object entries contribute their ``name``."""
    items = source.get("magic_items") or source.get("magical_items")
    if not isinstance(items, list):
        return []
    if items and isinstance(items[0], dict):
        return [str(item["name"]) for item in items if isinstance(item, dict) and "name" in item]
    return _strings(items)


def normalize_personality(source: dict[str, Any]) -> dict[str, list[str]]:
    """Build ``{traits, ideals, bonds, flaws}`` from the nested object or top-level variants.

    The nested ``personality`` object wins per key; an empty key falls back
    to the top-level variant.  A top-level ideal or flaw given as a single
    string becomes a one-item list.
    """
    result: dict[str, list[str]] = {key: [] for key in _PERSONALITY_KEYS}

    nested = source.get("personality")
    if isinstance(nested, dict):
        for key in _PERSONALITY_KEYS:
            result[key] = _strings(nested.get(key))

    for key in _PERSONALITY_KEYS:
        if result[key]:
            continue
        for variant in FIELD_MAPPINGS[f"personality.{key}"]:
            value = source.get(variant)
            if isinstance(value, list):
                result[key] = _strings(value)
            elif isinstance(value, str) and value.strip() and key in ("ideals", "flaws"):
                result[key] = [value.strip()]
            if result[key]:
                break

    return result


# ---------------------------------------------------------------------------
# Mapping
# ---------------------------------------------------------------------------

def map_to_canonical_structure(
    raw: dict[str, Any],
    known_versions: tuple[str, ...] = ("1.0", "1.1"),
) -> MappingResult:
    """Map known field variants in *raw* onto canonical NPC names.

    The input is not modified.  Fields that are neither canonical nor a
    known variant are kept as-is and listed in ``unmapped_fields``.

    Parameters
    ----------
    raw : dict
        The NPC record as generated.
    known_versions : tuple[str, ...]
        Versions ``schema_version`` may be normalized to.
    """
    result = MappingResult()
    if not isinstance(raw, dict):
        result.errors.append(f"NPC data must be an object, got {type(raw).__name__}")
        return result

    mapped = copy.deepcopy(raw)

    # schema_version variants ("npc/v1.1", 1.1, "v1.1.0")
    raw_version = raw.get("schema_version", raw.get("schemaVersion"))
    version = normalize_schema_version(raw_version, known_versions)
    if version is not None:
        mapped["schema_version"] = version
        if raw_version != version:
            result.warnings.append(f'Normalized schema_version from "{raw_version}" to "{version}"')

    if isinstance(raw.get("ability_scores"), dict):
        scores = normalize_ability_scores(raw["ability_scores"])
        missing = [ability for ability in ABILITY_KEYS if ability not in scores]
        if missing:
            result.errors.append(f"Missing ability scores: {', '.join(missing)}")
        else:
            mapped["ability_scores"] = scores

    if not raw.get("abilities"):
        for variant in FIELD_MAPPINGS["abilities"]:
            if isinstance(raw.get(variant), list):
                mapped["abilities"] = copy.deepcopy(raw[variant])
                result.warnings.append(f'Mapped "{variant}" field to canonical "abilities" field')
                break

    equipment = normalize_equipment(raw)
    if equipment:
        mapped["equipment"] = equipment
        if isinstance(raw.get("equipment"), dict):
            result.warnings.append("Normalized nested equipment.carried to flat equipment array")

    magic_items = normalize_magic_items(raw)
    if magic_items:
        mapped["magicItems"] = magic_items
        items = raw.get("magic_items")
        if isinstance(items, list) and items and isinstance(items[0], dict):
            result.warnings.append("Extracted magic item names from object array")

    mapped["personality"] = normalize_personality(raw)
    if any(raw.get(variant) for variant in ("personality_traits", "ideals", "bonds", "flaws")):
        result.warnings.append("Normalized top-level personality fields into personality object")

    if not raw.get("name"):
        for variant in FIELD_MAPPINGS["name"]:
            if raw.get(variant):
                mapped["name"] = raw[variant]
                result.warnings.append(f'Mapped "{variant}" to "name"')
                break

    result.unmapped_fields = _unmapped_fields(raw)
    result.mapped = mapped
    result.success = not result.errors
    return result


def _unmapped_fields(raw: dict[str, Any]) -> list[str]:
    known = {path.split(".")[0] for path in FIELD_MAPPINGS}
    for variants in FIELD_MAPPINGS.values():
        known.update(v.split(".")[0] for v in variants)
    known.update(("schema_version", "schemaVersion", "personality"))
    return [key for key in raw if key not in known]


def map_and_validate_npc(validator: SchemaValidator, raw: dict[str, Any]) -> NpcProcessingResult:
    """Map *raw* to canonical names, then validate the mapped record.

    Parameters
    ----------
    validator : SchemaValidator
        A validator for the ``npc`` family.
    raw : dict
        The NPC record as generated.
    """
    mapping = map_to_canonical_structure(raw, tuple(validator.known_versions))
    if not mapping.success:
        logger.warning("NPC mapping failed: %s", "; ".join(mapping.errors))
        return NpcProcessingResult(
            success=False,
            data=None,
            errors=["Mapping failed", *mapping.errors],
            warnings=mapping.warnings,
        )

    report = validator.validate_document(mapping.mapped)
    if not report.valid:
        return NpcProcessingResult(
            success=False,
            data=mapping.mapped,
            errors=["Schema validation failed"],
            warnings=mapping.warnings,
            validation_errors=report.details or "Unknown validation error",
            raw_errors=report.errors,
            schema_version=report.schema_version,
        )

    return NpcProcessingResult(
        success=True,
        data=mapping.mapped,
        warnings=mapping.warnings,
        schema_version=report.schema_version,
    )
