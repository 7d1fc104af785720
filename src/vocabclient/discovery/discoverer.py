"""Capability discovery - match each capability to its best endpoint."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from vocabclient.discovery.catalog import OperationRecord, flatten_operations
from vocabclient.discovery.rules import CAPABILITY_RULES, CapabilityRule, find_best

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Discovery:
    """Result of one discovery pass over an API description.

    Attributes:
        operations: Every operation in declaration order.
        capabilities: Capability name -> winning operation. Capabilities
            without a match are absent, never mapped to None.
        scores: Capability name -> winning score.
    """

    operations: tuple[OperationRecord, ...] = ()
    capabilities: Mapping[str, OperationRecord] = field(default_factory=dict)
    scores: Mapping[str, int] = field(default_factory=dict)

    def has(self, name: str) -> bool:
        return name in self.capabilities

    @property
    def missing(self) -> list[str]:
        return [name for name in CAPABILITY_RULES if name not in self.capabilities]


def match_capabilities(
    operations: list[OperationRecord],
    rules: Mapping[str, tuple[CapabilityRule, ...]] = CAPABILITY_RULES,
) -> tuple[dict[str, OperationRecord], dict[str, int]]:
    """Pick the winning operation for every capability in rules.

    Operations are scored in "<METHOD> <path>" order so ties resolve the
    same way whatever order the document declares its paths in.
    """
    ordered = sorted(operations, key=lambda op: (op.sort_key, op.id))
    capabilities: dict[str, OperationRecord] = {}
    scores: dict[str, int] = {}

    for name, capability_rules in rules.items():
        best = find_best(ordered, capability_rules)
        if best is None:
            logger.debug(f"{name}: no matching operation")
            continue
        op, score = best
        capabilities[name] = op
        scores[name] = score
        logger.debug(f"{name} -> {op} (score {score})")

    return capabilities, scores


def discover(
    document: Any,
    rules: Mapping[str, tuple[CapabilityRule, ...]] = CAPABILITY_RULES,
) -> Discovery:
    """Flatten document and match every capability against it.

    Raises:
        DocumentShapeError: If document is not a mapping.
    """
    operations = flatten_operations(document)
    capabilities, scores = match_capabilities(operations, rules)
    logger.info(
        f"Discovered {len(capabilities)}/{len(rules)} capabilities "
        f"across {len(operations)} operations"
    )
    return Discovery(operations=tuple(operations), capabilities=capabilities, scores=scores)


__all__ = ["Discovery", "discover", "match_capabilities"]
