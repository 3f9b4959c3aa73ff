"""
Shared utility functions for the ContentCraft validation core.

Groups the small helpers that several modules need: JSON file I/O for the
session migration, and the schema cleaning step that strips ContentCraft's
custom ``x-*`` annotations before a schema is handed to ``jsonschema``.

All JSON writes use atomic temp-file-then-os.replace() so that a crash in
the middle of a migration never leaves a half-written session file.
"""

import json
import logging
import os
import tempfile

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# JSON I/O (atomic writes)
# ---------------------------------------------------------------------------

def safe_read_json(path, default=None):
    """Read a JSON file, returning *default* if the file is missing or corrupt.

    Parameters
    ----------
    path : str or pathlib.Path
        Absolute path to the JSON file.
    default
        Value returned when the file cannot be read (default ``None``).

    Returns
    -------
    object
        Parsed JSON content, or *default* on failure.
    """
    try:
        with open(path, "r", encoding="utf-8") as fh:
            return json.load(fh)
    except (FileNotFoundError, json.JSONDecodeError, OSError) as exc:
        logger.debug("Could not read JSON from %s: %s", path, exc)
        return default


def safe_write_json(path, data, *, indent=2):
    """Atomically write *data* as JSON to *path*.

    Uses a temporary file in the same directory followed by
    ``os.replace()`` so that readers never see a partially-written file.
    Parent directories are created if they do not exist.

    Parameters
    ----------
    path : str or pathlib.Path
        Absolute path to the target JSON file.
    data
        JSON-serialisable object to write.
    indent : int, optional
        JSON indentation level (default 2).
    """
    path = str(path)
    parent = os.path.dirname(path) or "."
    os.makedirs(parent, exist_ok=True)

    fd, tmp_path = tempfile.mkstemp(dir=parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(data, fh, indent=indent, ensure_ascii=False)
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


# ---------------------------------------------------------------------------
# Schema cleaning (strips custom annotations for jsonschema validation)
# ---------------------------------------------------------------------------

_SCHEMA_SKIP_KEYS = {"$id"}

_ANNOTATION_PREFIX = "x-"


def clean_schema_for_validation(schema):
    """Return a copy of *schema* stripped of ContentCraft annotations.

    Removes the top-level ``$id`` and every ``x-*`` key at any depth
    (``x-label``, ``x-fix``) so that the compiled validator only sees
    standard JSON Schema keywords.

    Parameters
    ----------
    schema : dict
        The raw JSON Schema loaded from a schema file.

    Returns
    -------
    dict
        A cleaned copy safe for ``jsonschema`` compilation.
    """
    top = {k: v for k, v in schema.items() if k not in _SCHEMA_SKIP_KEYS}
    return _clean_schema_deep(top)


# Keywords whose value maps arbitrary names to sub-schemas.  The names are
# kept as-is even if they happen to start with "x-".
_NAMED_SUBSCHEMA_KEYS = {"properties", "patternProperties", "$defs", "definitions"}


def _clean_value(value):
    if isinstance(value, dict):
        return _clean_schema_deep(value)
    if isinstance(value, list):
        return [_clean_value(item) for item in value]
    return value


def _clean_schema_deep(obj):
    """Recursively remove ``x-*`` annotation keywords from nested schema objects."""
    result = {}
    for key, value in obj.items():
        if key.startswith(_ANNOTATION_PREFIX):
            continue
        if key in _NAMED_SUBSCHEMA_KEYS and isinstance(value, dict):
            result[key] = {name: _clean_value(sub) for name, sub in value.items()}
        else:
            result[key] = _clean_value(value)
    return result


# ---------------------------------------------------------------------------
# Annotation collection
# ---------------------------------------------------------------------------

def collect_schema_annotations(schema, keyword):
    """Collect ``keyword`` annotations from every named property in *schema*.

    Walks ``properties``, ``items``, ``oneOf``/``anyOf``/``allOf`` and
    ``$defs`` recursively.  Each property that carries *keyword* is recorded
    twice: under its dotted path from the root (array items are skipped in
    the path, so ``spaces.geometry.dimensions``) and under its bare name.
    The dotted entry wins on lookup because it is more specific.

    Returns
    -------
    dict[str, str]
        Mapping of dotted path or bare property name to annotation value.
    """
    found = {}
    _walk_annotations(schema, keyword, "", found)
    return found


def _walk_annotations(node, keyword, prefix, found):
    if not isinstance(node, dict):
        return

    for name, sub in (node.get("properties") or {}).items():
        if not isinstance(sub, dict):
            continue
        dotted = f"{prefix}.{name}" if prefix else name
        value = sub.get(keyword)
        if isinstance(value, str):
            found[dotted] = value
            found.setdefault(name, value)
        _walk_annotations(sub, keyword, dotted, found)

    items = node.get("items")
    if isinstance(items, dict):
        _walk_annotations(items, keyword, prefix, found)

    for combinator in ("oneOf", "anyOf", "allOf"):
        for branch in node.get(combinator) or []:
            _walk_annotations(branch, keyword, prefix, found)

    for sub in (node.get("$defs") or {}).values():
        _walk_annotations(sub, keyword, prefix, found)
