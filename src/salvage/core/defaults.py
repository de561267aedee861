"""Schema-driven default values and type coercion.

default_for() is the single source of defaults for both partial recovery
inside the cascade and full fallback records. conform() enforces the record
invariant: every required field present, every declared field holding a
value of its declared type.
"""
import copy
import re
from typing import Any

from salvage.core.domain import Record, Schema

TYPE_DEFAULTS: dict[str, Any] = {
    "string": "",
    "number": 0,
    "boolean": False,
    "array": [],
    "object": {},
}

_NUMBER = re.compile(r"-?\d+(?:\.\d+)?(?:[eE][-+]?\d+)?")
_FRACTION = re.compile(r"(-?\d+(?:\.\d+)?)\s*/\s*(\d+(?:\.\d+)?)")


def default_for(prop: dict[str, Any] | None) -> Any:
    """Return the default value for a property descriptor.

    An explicit ``default`` (even ``None``) wins. Otherwise the declared type
    decides; unknown or missing types yield ``None``. Mutable defaults are
    fresh copies on every call.
    """
    if not prop:
        return None
    if "default" in prop:
        return copy.deepcopy(prop["default"])
    return copy.deepcopy(TYPE_DEFAULTS.get(prop.get("type")))


def properties_of(schema: Schema | None) -> dict[str, dict[str, Any]]:
    """Return the ``properties`` mapping of a schema, or an empty dict."""
    if not isinstance(schema, dict):
        return {}
    properties = schema.get("properties")
    return properties if isinstance(properties, dict) else {}


def is_required(schema: Schema | None, key: str) -> bool:
    """True if ``key`` is required by its own descriptor or by the schema-level list."""
    prop = properties_of(schema).get(key)
    if isinstance(prop, dict) and prop.get("required") is True:
        return True
    required = schema.get("required") if isinstance(schema, dict) else None
    return isinstance(required, (list, tuple)) and key in required


def parse_number(text: str) -> int | float:
    """Parse a numeric literal or a simple fraction such as ``3/4``.

    Raises:
        ValueError: If the text is not a number.
    """
    text = text.strip()
    if _NUMBER.fullmatch(text):
        return float(text) if any(c in text for c in ".eE") else int(text)
    match = _FRACTION.fullmatch(text)
    if match and float(match.group(2)) != 0:
        return float(match.group(1)) / float(match.group(2))
    raise ValueError(f"Not a number: {text!r}")


def coerce(value: Any, prop: dict[str, Any] | None) -> Any:
    """Coerce a value to the type declared by a property descriptor.

    Args:
        value: The extracted value.
        prop: The property descriptor. Undeclared types pass values through.

    Returns:
        The value converted to the declared type.

    Raises:
        ValueError: If the value cannot represent the declared type.
    """
    declared = (prop or {}).get("type")
    if declared == "string":
        if isinstance(value, str):
            return value
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (int, float)):
            return str(value)
    elif declared == "number":
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return value
        if isinstance(value, str):
            return parse_number(value)
    elif declared == "boolean":
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in ("true", "false"):
            return value.strip().lower() == "true"
        if isinstance(value, (int, float)) and value in (0, 1):
            return bool(value)
    elif declared == "array":
        if isinstance(value, list):
            return value
    elif declared == "object":
        if isinstance(value, dict):
            return value
    else:
        return value
    raise ValueError(f"Cannot coerce {type(value).__name__} to {declared}")


def conform(record: Record, schema: Schema | None) -> Record:
    """Return a copy of ``record`` that satisfies the schema invariant.

    Declared fields holding values of the wrong type are coerced, or replaced
    by their default when coercion fails. Missing required fields are filled
    with their default. Fields the schema does not declare are kept as-is.
    """
    result = dict(record)
    for key, prop in properties_of(schema).items():
        prop = prop if isinstance(prop, dict) else {}
        if key in result:
            try:
                result[key] = coerce(result[key], prop)
            except ValueError:
                result[key] = default_for(prop)
        elif is_required(schema, key):
            result[key] = default_for(prop)
    return result
