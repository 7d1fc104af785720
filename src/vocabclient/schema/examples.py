"""Example payload synthesis from resolved schemas."""

from __future__ import annotations

from typing import Any

from vocabclient.schema.resolver import RefResolver

# Deeper nesting yields None so self-referential schemas terminate.
MAX_EXAMPLE_DEPTH = 6


def build_example(
    schema: dict[str, Any] | None,
    depth: int = 0,
    resolver: RefResolver | None = None,
) -> Any:
    """Produce a representative value for a schema.

    An explicit ``example`` wins, then the first ``enum`` literal. Objects
    get every declared property, arrays a single item. Numbers become 0,
    booleans False and everything else an empty string.

    Args:
        schema: A resolved schema node.
        depth: Current nesting level.
        resolver: When given, nested $ref/allOf nodes are resolved before
            recursing; otherwise they are treated as untyped.

    Returns:
        The example value, or None past MAX_EXAMPLE_DEPTH.

    Example:
        >>> build_example({"type": "object", "properties": {"term": {"type": "string"},
        ...                                                  "level": {"enum": ["A1", "A2"]}}})
        {'term': '', 'level': 'A1'}
    """
    if resolver is not None and isinstance(schema, dict):
        schema = resolver.resolve_schema(schema)
    if not isinstance(schema, dict) or depth > MAX_EXAMPLE_DEPTH:
        return None

    if "example" in schema:
        return schema["example"]
    enum = schema.get("enum")
    if isinstance(enum, list) and enum:
        return enum[0]

    schema_type = schema.get("type")
    if schema_type == "object" or isinstance(schema.get("properties"), dict):
        properties = schema.get("properties")
        if not isinstance(properties, dict):
            properties = {}
        return {
            name: build_example(sub, depth + 1, resolver) for name, sub in properties.items()
        }

    if schema_type == "array":
        return [build_example(schema.get("items") or {}, depth + 1, resolver)]

    if schema_type in ("integer", "number"):
        return 0
    if schema_type == "boolean":
        return False
    return ""


__all__ = ["MAX_EXAMPLE_DEPTH", "build_example"]
