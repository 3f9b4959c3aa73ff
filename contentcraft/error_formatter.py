r"""
contentcraft/error_formatter.py -- Human-actionable schema error reports.

Converts ``jsonschema.ValidationError`` objects into flat
:class:`SchemaError` records and renders them as a numbered report.

Flattening
    ``jsonschema`` nests the per-branch failures of ``oneOf``/``anyOf``
    inside ``error.context``.  They are hoisted next to the combinator
    error so that all failures on one field can be grouped.  Each missing
    ``required`` property and each unexpected ``additionalProperties`` key
    becomes its own record.

Formatting
    Records are grouped by instance path in first-seen order.  A group that
    holds a ``oneOf`` failure together with ``type`` failures collapses to a
    single line naming every candidate type, the actual type, a preview of
    the value and a fix hint.  All other records get one line each from a
    keyword-specific template.

Example output::

    1. Armor Class: invalid format. Expected integer or string matching ^\d+(\s*\(.+\))?$ or object, got string ("very tough"). Fix: Enter a number like 18, or use parentheses like 18 (plate armor). Avoid free-form text.
    2. root object: missing required field "race". Fix: add this field.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Iterable

VALUE_PREVIEW_LENGTH = 60

_COMBINATORS = ("oneOf", "anyOf")

_REQUIRED_RE = re.compile(r"""^(['"])(.*)\1 is a required property""")


# ---------------------------------------------------------------------------
# Raw error records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SchemaError:
    """One structural violation, independent of the validator library.

    Attributes
    ----------
    keyword : str
        The failing JSON Schema keyword (``type``, ``required``, ...).
    path : tuple
        Path of the offending value from the document root.
    message : str
        Short message (``"must be integer"``).
    params : dict
        Keyword parameters (``type``, ``missingProperty``, ``allowedValues``,
        ``pattern``, ``additionalProperty``, ``limit``).
    data : Any
        The offending value (the parent object for ``required``).
    """

    keyword: str
    path: tuple = ()
    message: str = ""
    params: dict = field(default_factory=dict)
    data: Any = None

    @property
    def instance_path(self) -> str:
        """JSON pointer to the offending value (``""`` for the root)."""
        return "".join(f"/{part}" for part in self.path)

    def to_dict(self) -> dict[str, Any]:
        return {
            "keyword": self.keyword,
            "instance_path": self.instance_path,
            "message": self.message,
            "params": dict(self.params),
        }


def flatten_errors(errors: Iterable[Any]) -> list[SchemaError]:
    """Convert ``jsonschema`` errors (and their nested context) to records."""
    records: list[SchemaError] = []
    for error in errors:
        _flatten_into(error, records)
    return records


def _flatten_into(error: Any, records: list[SchemaError]) -> None:
    if error.validator in _COMBINATORS and error.context:
        for sub in error.context:
            _flatten_into(sub, records)
    records.extend(_records_for(error))


def _records_for(error: Any) -> list[SchemaError]:
    keyword = str(error.validator)
    path = tuple(error.absolute_path)
    value = error.validator_value
    instance = error.instance

    if keyword == "required":
        missing = _missing_property(error)
        return [SchemaError(
            keyword, path,
            f"must have required property '{missing}'",
            {"missingProperty": missing}, instance,
        )]

    if keyword == "additionalProperties":
        extras = _additional_properties(instance, error.schema)
        return [
            SchemaError(
                keyword, path, "must NOT have additional properties",
                {"additionalProperty": extra}, instance,
            )
            for extra in extras
        ] or [SchemaError(keyword, path, "must NOT have additional properties", {}, instance)]

    if keyword == "type":
        types = value if isinstance(value, list) else [value]
        expected = ",".join(str(t) for t in types)
        return [SchemaError(keyword, path, f"must be {expected}", {"type": expected}, instance)]

    if keyword == "enum":
        return [SchemaError(
            keyword, path, "must be equal to one of the allowed values",
            {"allowedValues": list(value)}, instance,
        )]

    if keyword == "const":
        return [SchemaError(
            keyword, path, "must be equal to constant",
            {"allowedValues": [value]}, instance,
        )]

    if keyword == "pattern":
        return [SchemaError(
            keyword, path, f'must match pattern "{value}"', {"pattern": value}, instance,
        )]

    if keyword in _LIMIT_MESSAGES:
        return [SchemaError(
            keyword, path, _LIMIT_MESSAGES[keyword].format(limit=value),
            {"limit": value}, instance,
        )]

    if keyword == "oneOf":
        return [SchemaError(keyword, path, "must match exactly one schema in oneOf", {}, instance)]

    if keyword == "anyOf":
        return [SchemaError(keyword, path, "must match a schema in anyOf", {}, instance)]

    return [SchemaError(keyword, path, _truncate(error.message, 120), {}, instance)]


_LIMIT_MESSAGES = {
    "minimum": "must be >= {limit}",
    "maximum": "must be <= {limit}",
    "exclusiveMinimum": "must be > {limit}",
    "exclusiveMaximum": "must be < {limit}",
    "minLength": "must NOT have fewer than {limit} characters",
    "maxLength": "must NOT have more than {limit} characters",
    "minItems": "must NOT have fewer than {limit} items",
    "maxItems": "must NOT have more than {limit} items",
}


def _missing_property(error: Any) -> str:
    match = _REQUIRED_RE.match(error.message)
    if match:
        return match.group(2)
    # Fall back to the first listed property absent from the instance.
    instance = error.instance if isinstance(error.instance, dict) else {}
    for name in error.validator_value or []:
        if name not in instance:
            return str(name)
    return "unknown"


def _additional_properties(instance: Any, schema: dict) -> list[str]:
    if not isinstance(instance, dict):
        return []
    properties = schema.get("properties", {})
    patterns = list(schema.get("patternProperties", {}))
    return [
        key for key in instance
        if key not in properties and not any(re.search(p, key) for p in patterns)
    ]


# ---------------------------------------------------------------------------
# Value description helpers
# ---------------------------------------------------------------------------

def describe_type(value: Any) -> str:
    """Return the JSON type name of *value* (``"array"``, ``"null"``, ...)."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def summarize_value(value: Any) -> str:
    """Return a short preview of *value* for an error line.

    Strings are trimmed, quoted and cut at 60 characters; containers are
    summarised by shape only.
    """
    if isinstance(value, str):
        return f'"{_truncate(value.strip(), VALUE_PREVIEW_LENGTH)}"'
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if value is None:
        return "null"
    if isinstance(value, list):
        return f"[array({len(value)})]"
    if isinstance(value, dict):
        return "[object]"
    return str(value)


def _truncate(text: str, limit: int) -> str:
    return f"{text[:limit]}..." if len(text) > limit else text


# ---------------------------------------------------------------------------
# Report formatting
# ---------------------------------------------------------------------------

def field_name_for(path: tuple) -> str:
    """Dotted field name for *path* (``"spaces.0.geometry"``)."""
    return ".".join(str(part) for part in path)


def _schema_path_for(path: tuple) -> str:
    """Dotted path with array indices dropped (``"spaces.geometry"``)."""
    return ".".join(str(part) for part in path if not isinstance(part, int))


def _label_for(path: tuple, labels: dict[str, str]) -> str:
    name = field_name_for(path)
    return labels.get(name) or name or "root object"


def _hint_for(path: tuple, fix_hints: dict[str, str]) -> str | None:
    if not path:
        return None
    names = [part for part in path if not isinstance(part, int)]
    if not names:
        return None
    return fix_hints.get(_schema_path_for(path)) or fix_hints.get(str(names[-1]))


def _with_free_text_warning(hint: str, actual_type: str) -> str:
    if actual_type == "string":
        return f"{hint.rstrip('.')}. Avoid free-form text."
    return hint


def format_validation_errors(
    errors: list[SchemaError],
    labels: dict[str, str] | None = None,
    fix_hints: dict[str, str] | None = None,
) -> str:
    """Render *errors* as a numbered, newline-joined report.

    Parameters
    ----------
    errors : list[SchemaError]
        Flattened records, usually from :func:`flatten_errors`.
    labels : dict, optional
        Dotted field name -> human label.
    fix_hints : dict, optional
        Dotted schema path or bare property name -> remediation hint.
    """
    labels = labels or {}
    fix_hints = fix_hints or {}

    groups: dict[tuple, list[SchemaError]] = {}
    for error in errors:
        groups.setdefault(error.path, []).append(error)

    lines: list[str] = []

    for path, group in groups.items():
        label = _label_for(path, labels)
        hint = _hint_for(path, fix_hints)

        has_one_of = any(e.keyword in _COMBINATORS for e in group)
        type_errors = [e for e in group if e.keyword == "type"]

        if has_one_of and type_errors:
            expected: list[str] = []
            for e in group:
                if e.keyword == "type":
                    candidates = e.params.get("type", "").split(",")
                elif e.keyword == "pattern":
                    candidates = [f"string matching {e.params.get('pattern')}"]
                else:
                    continue
                for candidate in candidates:
                    if candidate and candidate not in expected:
                        expected.append(candidate)
            sample = type_errors[0].data
            actual_type = describe_type(sample)
            fix = (_with_free_text_warning(hint, actual_type) if hint
                   else "Use the correct format for this field.")
            expected_text = " or ".join(expected) if expected else "one of the allowed formats"
            lines.append(
                f"{len(lines) + 1}. {label}: invalid format. Expected {expected_text}, "
                f"got {actual_type} ({summarize_value(sample)}). Fix: {fix}"
            )
            continue

        for error in group:
            lines.append(f"{len(lines) + 1}. {_format_single(error, label, hint)}")

    return "\n".join(lines)


def _format_single(error: SchemaError, label: str, hint: str | None) -> str:
    keyword = error.keyword
    params = error.params

    if keyword in _COMBINATORS:
        return (
            f"{label}: invalid format. Value is {describe_type(error.data)} "
            f"({summarize_value(error.data)}). Fix: "
            f"{hint or 'Choose one of the supported formats for this field.'}"
        )

    if keyword == "required":
        return (
            f'{label}: missing required field "{params.get("missingProperty", "unknown")}". '
            f"Fix: add this field."
        )

    if keyword == "additionalProperties":
        return (
            f'{label}: unexpected field "{params.get("additionalProperty", "unknown")}". '
            f"Fix: remove it or correct the spelling."
        )

    if keyword == "type":
        expected = params.get("type", "unknown").replace(",", " or ")
        actual_type = describe_type(error.data)
        fix = _with_free_text_warning(hint, actual_type) if hint else f"Make sure this is a {expected}."
        return (
            f"{label}: {error.message} (expected {expected}, got {actual_type}: "
            f"{summarize_value(error.data)}). Fix: {fix}"
        )

    if keyword in ("enum", "const"):
        allowed = ", ".join(str(v) for v in params.get("allowedValues", [])) or "see schema"
        return (
            f"{label}: {error.message}. Allowed values: {allowed}. "
            f"Received: {summarize_value(error.data)}. "
            f"Fix: {hint or 'Use one of the allowed values listed above.'}"
        )

    if keyword == "pattern":
        return (
            f"{label}: {error.message}. Required pattern: {params.get('pattern', 'unknown pattern')}. "
            f"Received: {summarize_value(error.data)}. "
            f"Fix: {hint or 'Rewrite the value to match the pattern.'}"
        )

    line = f"{label}: {error.message} (got {summarize_value(error.data)})"
    return f"{line}. Fix: {hint}" if hint else line
