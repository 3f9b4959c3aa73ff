"""
contentcraft/versioning.py -- Schema version parsing and resolution.

Entity records carry a ``schema_version`` discriminator that upstream
generators emit in several shapes: ``"1.1"``, ``1.1`` (a number),
``"v1.1"``, ``"1.1.0"`` or a namespaced ``"npc/v1.1"``.  This module turns
any of those into a :class:`SchemaVersion`, or an :class:`UnparseableVersion`
explaining why it could not.

Resolution against a family's registered versions is a separate step: a
parsed version that does not name a registered ``<major>.<minor>`` resolves
to the family's oldest version.  Records without a usable version are
therefore validated against the legacy schema rather than being repaired.

Usage::

    from contentcraft.versioning import parse_version, resolve_version

    parsed = parse_version("npc/v1.1")      # SchemaVersion(1, 1)
    key = resolve_version(parsed, ["1.0", "1.1"])  # "1.1"
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Iterable, Union

logger = logging.getLogger(__name__)

# Optional namespace ("npc/"), optional "v", major.minor, optional .patch.
_VERSION_RE = re.compile(r"(?:^|\b|/)v?(\d+)\.(\d+)(?:\.(\d+))?(?:$|\b)")


@dataclass(frozen=True)
class SchemaVersion:
    """A successfully parsed ``major.minor[.patch]`` version."""

    major: int
    minor: int
    patch: int | None = None

    @property
    def key(self) -> str:
        """The ``"<major>.<minor>"`` key used to look up compiled schemas."""
        return f"{self.major}.{self.minor}"

    def __str__(self) -> str:
        return self.key


@dataclass(frozen=True)
class UnparseableVersion:
    """A version marker that could not be parsed."""

    raw: Any
    reason: str


ParsedVersion = Union[SchemaVersion, UnparseableVersion]


def parse_version(raw: Any) -> ParsedVersion:
    """Parse a raw ``schema_version`` value.

    Numbers are read through their decimal text (``1`` and ``1.0`` both
    become ``1.0``).  Strings are trimmed and lower-cased before matching.
    Booleans, ``None`` and every other type are unparseable.
    """
    if raw is None:
        return UnparseableVersion(raw, "no schema_version present")

    if isinstance(raw, bool):
        return UnparseableVersion(raw, "boolean is not a version")

    if isinstance(raw, (int, float)):
        if not math.isfinite(raw):
            return UnparseableVersion(raw, "version number is not finite")
        text = str(float(raw))
    elif isinstance(raw, str):
        text = raw.strip().lower()
        if not text:
            return UnparseableVersion(raw, "empty version string")
    else:
        return UnparseableVersion(raw, f"unsupported type {type(raw).__name__}")

    match = _VERSION_RE.search(text)
    if match is None:
        return UnparseableVersion(raw, "no <major>.<minor> pattern found")

    major, minor, patch = match.groups()
    return SchemaVersion(int(major), int(minor), int(patch) if patch is not None else None)


def _version_sort_key(key: str) -> tuple[float, float]:
    parsed = parse_version(key)
    if isinstance(parsed, SchemaVersion):
        return (parsed.major, parsed.minor)
    return (math.inf, math.inf)


def oldest_version(known_versions: Iterable[str]) -> str:
    """Return the oldest of *known_versions* (``"1.0"`` before ``"1.1"``)."""
    ordered = sorted(known_versions, key=_version_sort_key)
    if not ordered:
        raise ValueError("No known schema versions to choose from.")
    return ordered[0]


def resolve_version(parsed: ParsedVersion, known_versions: Iterable[str]) -> str:
    """Map a parsed version onto one of *known_versions*.

    A :class:`SchemaVersion` whose key is registered resolves to that key.
    Everything else, including unparseable markers and unknown minor
    versions, resolves to the oldest known version.
    """
    known = list(known_versions)
    if isinstance(parsed, SchemaVersion) and parsed.key in known:
        return parsed.key

    fallback = oldest_version(known)
    if isinstance(parsed, UnparseableVersion):
        logger.debug("Unparseable schema_version %r (%s); using %s",
                     parsed.raw, parsed.reason, fallback)
    else:
        logger.debug("Schema version %s is not registered; using %s", parsed.key, fallback)
    return fallback


def detect_schema_version(data: Any, known_versions: Iterable[str]) -> str:
    """Read ``schema_version`` from a record and resolve it.

    Non-dict records and records without the key resolve to the oldest
    known version.
    """
    raw = data.get("schema_version") if isinstance(data, dict) else None
    return resolve_version(parse_version(raw), known_versions)


def normalize_schema_version(raw: Any, known_versions: Iterable[str]) -> str | None:
    """Return the canonical ``"<major>.<minor>"`` string for *raw*.

    Unlike :func:`resolve_version` this never falls back: ``None`` is
    returned when *raw* does not name one of *known_versions*, so callers
    can leave the original value untouched.
    """
    parsed = parse_version(raw)
    if isinstance(parsed, SchemaVersion) and parsed.key in set(known_versions):
        return parsed.key
    return None
