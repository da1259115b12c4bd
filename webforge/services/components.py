"""
Component Property Validation

Checks instance properties against a component's properties_schema, a
small JSON-Schema subset:

    {"properties": {"size": {"type": "string", "enum": ["sm", "lg"]},
                    "count": {"type": "integer", "minimum": 0}},
     "required": ["size"]}

A schema without a "properties" key is read as the properties mapping
itself. Supported keywords: type, required, enum, minimum, maximum,
properties.
"""
import copy
from typing import Any, Dict, List, Tuple

from sqlalchemy.orm import Session

from webforge.models.component import Component

JSON_TYPES = {
    "string": lambda v: isinstance(v, str),
    "number": lambda v: isinstance(v, (int, float)) and not isinstance(v, bool),
    "integer": lambda v: isinstance(v, int) and not isinstance(v, bool),
    "boolean": lambda v: isinstance(v, bool),
    "array": lambda v: isinstance(v, list),
    "object": lambda v: isinstance(v, dict),
    "null": lambda v: v is None,
}


def _object_parts(schema: Dict[str, Any]) -> Tuple[Dict[str, Any], List[str]]:
    if "properties" in schema and isinstance(schema["properties"], dict):
        return schema["properties"], list(schema.get("required") or [])
    # Shorthand: {"title": {...}, "size": {...}} with per-field required flags
    required = [name for name, rule in schema.items() if isinstance(rule, dict) and rule.get("required") is True]
    return schema, required


def _check_value(path: str, value: Any, rule: Dict[str, Any], errors: List[str]) -> None:
    expected = rule.get("type")
    if expected:
        types = expected if isinstance(expected, list) else [expected]
        if not any(JSON_TYPES.get(t, lambda v: False)(value) for t in types):
            errors.append(f"{path}: expected {' or '.join(types)}")
            return

    if "enum" in rule and value not in rule["enum"]:
        errors.append(f"{path}: must be one of {rule['enum']}")

    if JSON_TYPES["number"](value):
        if "minimum" in rule and value < rule["minimum"]:
            errors.append(f"{path}: must be >= {rule['minimum']}")
        if "maximum" in rule and value > rule["maximum"]:
            errors.append(f"{path}: must be <= {rule['maximum']}")

    if isinstance(value, dict) and isinstance(rule.get("properties"), dict):
        _check_object(path, value, rule, errors)


def _check_object(prefix: str, value: Dict[str, Any], schema: Dict[str, Any], errors: List[str]) -> None:
    properties, required = _object_parts(schema)
    for name in required:
        if name not in value or value[name] is None:
            errors.append(f"{prefix}.{name}: is required" if prefix else f"{name}: is required")
    for name, item in value.items():
        rule = properties.get(name)
        if isinstance(rule, dict) and item is not None:
            _check_value(f"{prefix}.{name}" if prefix else name, item, rule, errors)


def validate_properties(
    schema: Dict[str, Any],
    defaults: Dict[str, Any],
    properties: Dict[str, Any],
) -> Tuple[Dict[str, Any], List[str]]:
    """
    Merge properties over the defaults and validate the result.

    Returns (merged, errors); an empty error list means valid. Unknown
    properties are allowed.
    """
    merged = copy.deepcopy(defaults or {})
    merged.update(copy.deepcopy(properties or {}))

    errors: List[str] = []
    _check_object("", merged, schema or {}, errors)
    return merged, errors


def component_tag_map(db: Session) -> Dict[str, str]:
    """Component name -> HTML tag, from each component's render_info."""
    rows = db.query(Component.name, Component.render_info).all()
    return {name: (info or {}).get("tag_name") or "div" for name, info in rows}
