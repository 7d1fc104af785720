"""Capability rules and the scoring function that applies them.

A capability is an application-level operation ("add a vocabulary item")
that has to be matched to at most one backend endpoint. Each capability
owns an ordered list of CapabilityRule rows; a rule either disqualifies an
operation or awards it an additive score:

    method match          +3
    path keyword          +5
    tag keyword           +3
    free-text keyword     +2
    exact path            +8
    operationId keyword   +3

New capabilities are added by appending rows to CAPABILITY_RULES.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from vocabclient.discovery.catalog import OperationRecord

NO_MATCH = -1

METHOD_WEIGHT = 3
PATH_WEIGHT = 5
TAG_WEIGHT = 3
TEXT_WEIGHT = 2
EXACT_PATH_WEIGHT = 8
OPERATION_ID_WEIGHT = 3


@dataclass(frozen=True)
class CapabilityRule:
    """One scoring rule for one capability.

    Keyword lists match when ANY keyword is a case-insensitive substring.

    Attributes:
        method: Required HTTP method.
        path_includes: The path must contain one of these.
        path_excludes: The path must contain none of these.
        tag_includes: The joined tags must contain one of these.
        text_includes: id/summary/description/path/tags must contain one of these.
        prefer_path_exact: Bonus when the path equals this exactly.
        prefer_operation_id: Bonus when the operationId contains this.
    """

    method: str | None = None
    path_includes: tuple[str, ...] | None = None
    path_excludes: tuple[str, ...] | None = None
    tag_includes: tuple[str, ...] | None = None
    text_includes: tuple[str, ...] | None = None
    prefer_path_exact: str | None = None
    prefer_operation_id: str | None = None


def includes_any(text: str, keywords: Iterable[str] | None) -> bool:
    lowered = str(text or "").lower()
    return any(k.lower() in lowered for k in keywords or ())


def score_operation(op: OperationRecord, rule: CapabilityRule) -> int:
    """Score op against rule; NO_MATCH when a constraint is violated."""
    if rule.method and op.method.lower() != rule.method.lower():
        return NO_MATCH
    if rule.path_includes and not includes_any(op.path, rule.path_includes):
        return NO_MATCH
    if rule.path_excludes and includes_any(op.path, rule.path_excludes):
        return NO_MATCH
    if rule.tag_includes and not includes_any(" ".join(op.tags), rule.tag_includes):
        return NO_MATCH
    if rule.text_includes and not includes_any(op.text, rule.text_includes):
        return NO_MATCH

    score = 0
    if rule.method:
        score += METHOD_WEIGHT
    if rule.path_includes:
        score += PATH_WEIGHT
    if rule.tag_includes:
        score += TAG_WEIGHT
    if rule.text_includes:
        score += TEXT_WEIGHT
    if rule.prefer_path_exact and op.path.lower() == rule.prefer_path_exact.lower():
        score += EXACT_PATH_WEIGHT
    if rule.prefer_operation_id and includes_any(op.operation_id, [rule.prefer_operation_id]):
        score += OPERATION_ID_WEIGHT
    return score


def find_best(
    operations: Iterable[OperationRecord], rules: Iterable[CapabilityRule]
) -> tuple[OperationRecord, int] | None:
    """Best (operation, score) across all operations and rules.

    Only a strictly greater score replaces the current best, so the first
    operation to reach the maximum wins ties. Returns None when nothing
    scores zero or more.
    """
    rules = tuple(rules)
    best: OperationRecord | None = None
    best_score = NO_MATCH

    for op in operations:
        for rule in rules:
            score = score_operation(op, rule)
            if score > best_score:
                best = op
                best_score = score

    if best is None:
        return None
    return best, best_score


# Item endpoints must carry a placeholder; "/vocab" alone would also match the
# collection route and win ties against it.
_VOCAB_ITEM = {"path_includes": ("{",), "text_includes": ("vocab",)}

CAPABILITY_RULES: dict[str, tuple[CapabilityRule, ...]] = {
    "health": (
        CapabilityRule(method="GET", prefer_path_exact="/health", path_includes=("health",)),
    ),
    "addVocab": (
        CapabilityRule(
            method="POST", tag_includes=("vocab",), path_includes=("/vocab",), path_excludes=("upsert",)
        ),
        CapabilityRule(method="POST", path_includes=("/vocab",), path_excludes=("upsert",)),
    ),
    "upsertVocab": (
        CapabilityRule(method="POST", tag_includes=("vocab",), path_includes=("upsert",)),
        CapabilityRule(method="POST", text_includes=("upsert", "ai"), path_includes=("vocab",)),
    ),
    "listVocab": (
        CapabilityRule(
            method="GET",
            tag_includes=("vocab",),
            path_includes=("/vocab",),
            path_excludes=("{",),
            prefer_path_exact="/vocab",
        ),
        CapabilityRule(method="GET", path_includes=("/vocab",), path_excludes=("{",)),
    ),
    "getVocab": (
        CapabilityRule(method="GET", tag_includes=("vocab",), **_VOCAB_ITEM),
    ),
    "updateVocab": (
        CapabilityRule(method="PUT", tag_includes=("vocab",), **_VOCAB_ITEM),
        CapabilityRule(method="PATCH", tag_includes=("vocab",), **_VOCAB_ITEM),
    ),
    "deleteVocab": (
        CapabilityRule(method="DELETE", tag_includes=("vocab",), **_VOCAB_ITEM),
    ),
    "sessionToday": (
        CapabilityRule(method="GET", path_includes=("session", "today")),
        CapabilityRule(method="GET", tag_includes=("session",), text_includes=("today",)),
    ),
    "submitReview": (
        CapabilityRule(method="POST", path_includes=("review",), path_excludes=("logs",)),
    ),
    "aiEnrich": (
        CapabilityRule(method="POST", path_includes=("ai", "enrich")),
        CapabilityRule(method="POST", tag_includes=("ai",), text_includes=("enrich",)),
    ),
    "aiJudge": (
        CapabilityRule(method="POST", path_includes=("judge",)),
        CapabilityRule(method="POST", tag_includes=("ai",), text_includes=("equivalence", "judge")),
    ),
    "syncExport": (
        CapabilityRule(method="GET", path_includes=("sync", "export")),
    ),
    "syncImport": (
        CapabilityRule(method="POST", path_includes=("sync", "import")),
    ),
}

CAPABILITY_NAMES: tuple[str, ...] = tuple(CAPABILITY_RULES)


__all__ = [
    "CAPABILITY_NAMES",
    "CAPABILITY_RULES",
    "CapabilityRule",
    "NO_MATCH",
    "find_best",
    "includes_any",
    "score_operation",
]
