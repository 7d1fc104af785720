"""Operation catalog - flattens an API description into operation records."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

from vocabclient.errors import DocumentShapeError

logger = logging.getLogger(__name__)

HTTP_METHODS = ("get", "post", "put", "patch", "delete", "options", "head")

DEFAULT_TAG = "default"

_PATH_PARAM = re.compile(r"\{([^}]+)\}")


@dataclass(frozen=True)
class OperationRecord:
    """One method + path endpoint from the API description.

    Records are rebuilt from scratch on every catalog build and never
    mutated afterwards.

    Attributes:
        id: Declared operationId, else "<method>_<path>". Unique per catalog.
        method: HTTP method in uppercase.
        path: Path template, may contain {name} placeholders.
        tags: Category labels; ("default",) when none are declared.
        summary: Short description ("" when absent).
        description: Long description ("" when absent).
        raw: The untouched operation object, used for parameter and
            request-body lookups.
    """

    id: str
    method: str
    path: str
    tags: tuple[str, ...] = (DEFAULT_TAG,)
    summary: str = ""
    description: str = ""
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def operation_id(self) -> str:
        return str(self.raw.get("operationId") or self.id)

    @property
    def path_params(self) -> list[str]:
        return get_path_params(self.path)

    @property
    def sort_key(self) -> str:
        return f"{self.method} {self.path}"

    @property
    def text(self) -> str:
        """Lowercased id, summary, description, path and tags for keyword search."""
        return " ".join(
            [self.operation_id, self.summary, self.description, self.path, " ".join(self.tags)]
        ).lower()

    def __str__(self) -> str:
        return f"{self.method} {self.path}"


def flatten_operations(document: Any) -> list[OperationRecord]:
    """Turn paths -> methods -> operation into a flat list in declaration order.

    Methods outside HTTP_METHODS and malformed entries are skipped. A
    document without a "paths" section yields an empty list.

    Raises:
        DocumentShapeError: If document is not a mapping.
    """
    if not isinstance(document, dict):
        raise DocumentShapeError(
            f"API description must be an object, got {type(document).__name__}"
        )

    paths = document.get("paths")
    if not isinstance(paths, dict):
        return []

    operations: list[OperationRecord] = []
    seen_ids: set[str] = set()

    for path, path_item in paths.items():
        if not isinstance(path_item, dict):
            continue
        for method in HTTP_METHODS:
            raw = path_item.get(method)
            if not isinstance(raw, dict):
                continue

            op_id = str(raw.get("operationId") or f"{method}_{path}")
            if op_id in seen_ids:
                unique_id = f"{op_id}_{method}_{path}"
                logger.warning(f"Duplicate operation id '{op_id}', using '{unique_id}'")
                op_id = unique_id
            seen_ids.add(op_id)

            tags = raw.get("tags")
            operations.append(
                OperationRecord(
                    id=op_id,
                    method=method.upper(),
                    path=str(path),
                    tags=tuple(str(t) for t in tags) if isinstance(tags, list) and tags else (DEFAULT_TAG,),
                    summary=str(raw.get("summary") or ""),
                    description=str(raw.get("description") or ""),
                    raw=raw,
                )
            )

    return operations


def group_by_tag(operations: list[OperationRecord]) -> dict[str, list[OperationRecord]]:
    """Group operations by tag; an operation with N tags lands in N groups.

    Each group is sorted by "<METHOD> <path>".
    """
    groups: dict[str, list[OperationRecord]] = {}
    for op in operations:
        for tag in op.tags or (DEFAULT_TAG,):
            groups.setdefault(tag, []).append(op)

    for ops in groups.values():
        ops.sort(key=lambda op: op.sort_key)
    return groups


def get_path_params(path: str) -> list[str]:
    """Placeholder names of a path template, in order of appearance."""
    return _PATH_PARAM.findall(str(path or ""))


def build_path(path_template: str, path_params: dict[str, Any] | None = None) -> str:
    """Substitute every {name} placeholder with its URL-encoded value.

    Missing values are substituted as empty strings.
    """
    params = path_params or {}
    result = path_template
    for name in get_path_params(path_template):
        raw = params.get(name)
        value = "" if raw is None else str(raw)
        result = result.replace(f"{{{name}}}", quote(value, safe=""), 1)
    return result


def get_operation_parameters(operation: OperationRecord, location: str) -> list[dict[str, Any]]:
    """Declared parameters of an operation for one location ("path", "query", ...)."""
    parameters = operation.raw.get("parameters")
    if not isinstance(parameters, list):
        return []
    return [p for p in parameters if isinstance(p, dict) and p.get("in") == location]


def find_operation(operations: list[OperationRecord], key: str) -> OperationRecord | None:
    """Find an operation by id, or by "METHOD /path"."""
    for op in operations:
        if op.id == key or op.sort_key == key:
            return op
    return None


__all__ = [
    "DEFAULT_TAG",
    "HTTP_METHODS",
    "OperationRecord",
    "build_path",
    "find_operation",
    "flatten_operations",
    "get_operation_parameters",
    "get_path_params",
    "group_by_tag",
]
