"""Resolve $ref pointers and allOf compositions in an API description.

Only the two constructs needed to build example payloads are handled.
oneOf/anyOf and every other keyword pass through untouched; this is not a
schema validator.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from vocabclient.discovery.catalog import OperationRecord

# Pointer chains and nested compositions deeper than this resolve to None.
MAX_RESOLVE_DEPTH = 32

JSON_CONTENT_TYPES = ("application/json", "application/*+json")


def _missing(value: Any) -> bool:
    return value is None or (not value and not isinstance(value, (dict, list)))


class RefResolver:
    """Resolves internal JSON pointers within one API description document.

    Example::

        resolver = RefResolver(document)
        user = resolver.resolve_schema({"$ref": "#/components/schemas/User"})

    Args:
        document: The full API description as a dict. Never mutated.
    """

    def __init__(self, document: dict[str, Any]) -> None:
        self._document = document
        self._cache: dict[str, Any] = {}

    def dereference(self, ref: str) -> Any | None:
        """Look up the target of a "#/a/b/c" pointer.

        Returns:
            The target node, or None if any segment is missing or the
            target is empty.
        """
        if not isinstance(ref, str) or not ref:
            return None
        if ref in self._cache:
            return self._cache[ref]

        parts = ref
        if parts.startswith("#/"):
            parts = parts[2:]
        current: Any = self._document
        for part in parts.split("/"):
            part = part.replace("~1", "/").replace("~0", "~")
            if isinstance(current, dict):
                current = current.get(part)
            elif isinstance(current, list) and part.isdigit() and int(part) < len(current):
                current = current[int(part)]
            else:
                current = None
            if _missing(current):
                self._cache[ref] = None
                return None

        self._cache[ref] = current
        return current

    def resolve_schema(self, node: Any, depth: int = 0) -> dict[str, Any] | None:
        """Eliminate $ref and allOf from a schema node.

        A pointer node is replaced by its resolved target. An allOf node
        becomes an object schema whose properties are merged left to right
        (later entries win) and whose required names are unioned; parts
        that fail to resolve are skipped. Anything else is returned as is.
        """
        if not isinstance(node, dict) or depth > MAX_RESOLVE_DEPTH:
            return None

        if "$ref" in node:
            target = self.dereference(node["$ref"])
            return self.resolve_schema(target, depth + 1) if target is not None else None

        if isinstance(node.get("allOf"), list):
            properties: dict[str, Any] = {}
            required: list[str] = []
            for part in node["allOf"]:
                resolved = self.resolve_schema(part, depth + 1)
                if resolved is None:
                    continue
                if isinstance(resolved.get("properties"), dict):
                    properties = {**properties, **resolved["properties"]}
                for name in resolved.get("required") or []:
                    if name not in required:
                        required.append(name)
            return {"type": "object", "properties": properties, "required": required}

        return node


def resolve_schema(document: dict[str, Any], node: Any) -> dict[str, Any] | None:
    """Resolve a schema node against document. See RefResolver.resolve_schema."""
    return RefResolver(document).resolve_schema(node)


def get_request_body_schema(
    document: dict[str, Any], operation: OperationRecord
) -> dict[str, Any] | None:
    """Return the resolved JSON request-body schema of an operation, if any."""
    request_body = operation.raw.get("requestBody")
    resolver = RefResolver(document)
    if isinstance(request_body, dict) and "$ref" in request_body:
        request_body = resolver.dereference(request_body["$ref"])
    if not isinstance(request_body, dict):
        return None

    content = request_body.get("content")
    if not isinstance(content, dict):
        return None

    for content_type in JSON_CONTENT_TYPES:
        media = content.get(content_type)
        if isinstance(media, dict) and media.get("schema"):
            return resolver.resolve_schema(media["schema"])
    return None


__all__ = ["MAX_RESOLVE_DEPTH", "RefResolver", "get_request_body_schema", "resolve_schema"]
