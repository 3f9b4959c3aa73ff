"""
contentcraft/schema_registry.py -- Compiled JSON Schema registry.

Loads every versioned schema listed in ``schema_registry.json`` and
compiles one ``jsonschema`` validator per (family, version) pair.  The
registry is built once at process startup and passed by reference into the
validation functions; nothing in this package keeps a module-level
validator cache.

``schema_registry.json`` looks like::

    {
        "schemas": [
            {"family": "npc", "version": "1.0", "file": "npc/v1-flat.json"},
            {"family": "npc", "version": "1.1", "file": "npc/v1.1-server.json"}
        ]
    }

Schema files may carry two ContentCraft annotations on any property:

    x-label   Human label used in error reports ("Armor Class").
    x-fix     Field-specific remediation hint appended as "Fix: ...".

Annotations are collected into the :class:`CompiledSchema` and stripped
before compilation.

Usage::

    from contentcraft.schema_registry import SchemaRegistry

    registry = SchemaRegistry.from_directory()          # bundled schemas
    compiled = registry.get("npc", "1.1")
    errors = list(compiled.validator.iter_errors(data))
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

try:
    import jsonschema
    from jsonschema.validators import validator_for
except ImportError:
    raise ImportError(
        "The 'jsonschema' package is required but not installed. "
        "Install it with: pip install jsonschema"
    )

from contentcraft.errors import SchemaNotFoundError
from contentcraft.paths import get_schema_dir
from contentcraft.utils import clean_schema_for_validation, collect_schema_annotations
from contentcraft.utils import safe_read_json as _safe_read_json
from contentcraft.versioning import oldest_version

logger = logging.getLogger(__name__)

REGISTRY_FILENAME = "schema_registry.json"


@dataclass(frozen=True)
class CompiledSchema:
    """One compiled (family, version) schema and its annotations."""

    family: str
    version: str
    schema: dict
    validator: Any
    labels: dict[str, str] = field(default_factory=dict)
    fix_hints: dict[str, str] = field(default_factory=dict)
    source: str = ""


# ---------------------------------------------------------------------------
# SchemaRegistry
# ---------------------------------------------------------------------------

class SchemaRegistry:
    """Holds compiled validators keyed by ``(family, version)``.

    Parameters
    ----------
    schema_dir : str, optional
        Directory the registry was loaded from.  Informational only.
    """

    def __init__(self, schema_dir: str = ""):
        self.schema_dir = schema_dir
        self._entries: dict[tuple[str, str], CompiledSchema] = {}

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_directory(cls, schema_dir: str | os.PathLike | None = None) -> "SchemaRegistry":
        """Build a registry from ``schema_registry.json`` in *schema_dir*.

        Defaults to :func:`contentcraft.paths.get_schema_dir`.

        Raises
        ------
        SchemaNotFoundError
            If the registry file or any listed schema file is missing or
            unreadable.
        jsonschema.exceptions.SchemaError
            If a schema file is not a valid JSON Schema.
        """
        root = Path(schema_dir) if schema_dir is not None else Path(get_schema_dir())
        registry_path = root / REGISTRY_FILENAME
        manifest = _safe_read_json(str(registry_path))
        if not isinstance(manifest, dict):
            raise SchemaNotFoundError(f"Schema registry not found or unreadable: {registry_path}")

        registry = cls(str(root))
        for entry in manifest.get("schemas", []):
            family = entry.get("family", "")
            version = str(entry.get("version", ""))
            rel_path = entry.get("file", "")
            if not family or not version or not rel_path:
                raise SchemaNotFoundError(f"Incomplete schema registry entry: {entry!r}")

            schema_path = root / rel_path
            schema = _safe_read_json(str(schema_path))
            if not isinstance(schema, dict):
                raise SchemaNotFoundError(
                    f"Schema file for {family} v{version} not found or unreadable: {schema_path}"
                )
            registry.register(family, version, schema, source=str(schema_path))

        logger.info("Loaded %d schema(s) from %s", len(registry._entries), root)
        return registry

    def register(self, family: str, version: str, schema: dict, source: str = "") -> CompiledSchema:
        """Compile *schema* and register it under ``(family, version)``.

        Re-registering an existing pair replaces it.
        """
        clean = clean_schema_for_validation(schema)
        validator_cls = validator_for(clean, default=jsonschema.Draft202012Validator)
        validator_cls.check_schema(clean)
        validator = validator_cls(clean, format_checker=validator_cls.FORMAT_CHECKER)

        compiled = CompiledSchema(
            family=family,
            version=version,
            schema=schema,
            validator=validator,
            labels=collect_schema_annotations(schema, "x-label"),
            fix_hints=collect_schema_annotations(schema, "x-fix"),
            source=source,
        )
        self._entries[(family, version)] = compiled
        logger.debug("Compiled %s schema v%s (%s)", family, version, source or "in-memory")
        return compiled

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, family: str, version: str) -> CompiledSchema:
        """Return the compiled schema for ``(family, version)``.

        Raises
        ------
        SchemaNotFoundError
            If the pair is not registered.
        """
        try:
            return self._entries[(family, version)]
        except KeyError:
            known = ", ".join(self.versions(family)) or "none"
            raise SchemaNotFoundError(
                f"No schema registered for '{family}' version {version} "
                f"(known versions: {known})."
            ) from None

    def families(self) -> list[str]:
        """Return every registered family name, sorted."""
        return sorted({family for family, _ in self._entries})

    def versions(self, family: str) -> list[str]:
        """Return the registered versions of *family*, sorted."""
        return sorted(version for fam, version in self._entries if fam == family)

    def oldest_version(self, family: str) -> str:
        """Return the legacy (oldest) version of *family*."""
        versions = self.versions(family)
        if not versions:
            raise SchemaNotFoundError(f"Unknown entity family '{family}'.")
        return oldest_version(versions)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
