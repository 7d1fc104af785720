"""Tests for capability rules and the discoverer."""

from __future__ import annotations

import random

import pytest

from vocabclient.discovery import (
    CAPABILITY_NAMES,
    NO_MATCH,
    CapabilityRule,
    OperationRecord,
    discover,
    find_best,
    flatten_operations,
    score_operation,
)


def make_op(method: str, path: str, tags=("default",), op_id: str = "", summary: str = "") -> OperationRecord:
    return OperationRecord(
        id=op_id or f"{method.lower()}_{path}",
        method=method,
        path=path,
        tags=tuple(tags),
        summary=summary,
        raw={"operationId": op_id} if op_id else {},
    )


class TestScoreOperation:
    def test_weights_are_additive(self):
        op = make_op("GET", "/health", tags=["system"], op_id="health_check")
        rule = CapabilityRule(
            method="GET",
            path_includes=("health",),
            tag_includes=("system",),
            text_includes=("check",),
            prefer_path_exact="/health",
            prefer_operation_id="health",
        )

        assert score_operation(op, rule) == 3 + 5 + 3 + 2 + 8 + 3

    def test_method_mismatch_disqualifies(self):
        rule = CapabilityRule(method="POST", path_includes=("vocab",))

        assert score_operation(make_op("GET", "/vocab"), rule) == NO_MATCH

    def test_path_exclude_disqualifies(self):
        rule = CapabilityRule(method="POST", path_includes=("/vocab",), path_excludes=("upsert",))

        assert score_operation(make_op("POST", "/vocab/upsert"), rule) == NO_MATCH
        assert score_operation(make_op("POST", "/vocab"), rule) == 8

    def test_keywords_are_case_insensitive(self):
        rule = CapabilityRule(tag_includes=("VOCAB",), text_includes=("Today",))
        op = make_op("GET", "/x", tags=["Vocab"], summary="Cards due TODAY")

        assert score_operation(op, rule) == 3 + 2

    def test_empty_rule_scores_zero(self):
        assert score_operation(make_op("GET", "/anything"), CapabilityRule()) == 0

    def test_operation_id_bonus_does_not_disqualify(self):
        rule = CapabilityRule(method="GET", prefer_operation_id="listVocab")

        assert score_operation(make_op("GET", "/v", op_id="listVocab"), rule) == 6
        assert score_operation(make_op("GET", "/v", op_id="other"), rule) == 3


class TestFindBest:
    def test_strictly_greater_keeps_first_on_tie(self):
        first = make_op("GET", "/a/export")
        second = make_op("GET", "/b/export")
        rules = [CapabilityRule(method="GET", path_includes=("export",))]

        assert find_best([first, second], rules) == (first, 8)
        assert find_best([second, first], rules) == (second, 8)

    def test_higher_score_from_later_rule_wins(self):
        plain = make_op("GET", "/vocab")
        exact = make_op("GET", "/health")
        rules = [
            CapabilityRule(method="GET"),
            CapabilityRule(method="GET", prefer_path_exact="/health"),
        ]

        assert find_best([plain, exact], rules) == (exact, 11)

    def test_no_candidate(self):
        rules = [CapabilityRule(method="DELETE")]

        assert find_best([make_op("GET", "/vocab")], rules) is None
        assert find_best([], rules) is None


class TestDiscover:
    def test_every_capability_found(self, vocab_document):
        discovery = discover(vocab_document)

        assert discovery.missing == []
        expected = {
            "health": ("GET /health", 16),
            "addVocab": ("POST /api/v1/vocab", 11),
            "upsertVocab": ("POST /api/v1/vocab/upsert", 11),
            "listVocab": ("GET /api/v1/vocab", 11),
            "getVocab": ("GET /api/v1/vocab/{vocab_id}", 13),
            "updateVocab": ("PUT /api/v1/vocab/{vocab_id}", 13),
            "deleteVocab": ("DELETE /api/v1/vocab/{vocab_id}", 13),
            "sessionToday": ("GET /api/v1/session/today", 8),
            "submitReview": ("POST /api/v1/review", 8),
            "aiEnrich": ("POST /api/v1/ai/enrich", 8),
            "aiJudge": ("POST /api/v1/ai/judge", 8),
            "syncExport": ("GET /api/v1/sync/export", 8),
            "syncImport": ("POST /api/v1/sync/import", 8),
        }
        for name, (endpoint, score) in expected.items():
            assert str(discovery.capabilities[name]) == endpoint, name
            assert discovery.scores[name] == score, name

    def test_upsert_path_dominates_plain_vocab_path(self, document_factory):
        document = document_factory(
            ("post", "/api/v1/vocab", {"operationId": "create", "tags": ["vocab"]}),
            ("post", "/api/v1/vocab/upsert", {"operationId": "upsert", "tags": ["vocab"]}),
        )

        discovery = discover(document)

        assert discovery.capabilities["upsertVocab"].path == "/api/v1/vocab/upsert"
        assert discovery.capabilities["addVocab"].path == "/api/v1/vocab"

    def test_review_logs_never_match_submit_review(self, document_factory):
        document = document_factory(("post", "/api/v1/review/logs", {"tags": ["review"]}))

        assert not discover(document).has("submitReview")

    def test_item_routes_need_placeholder(self, document_factory):
        document = document_factory(
            ("get", "/vocab", {"operationId": "list", "tags": ["vocab"]}),
            ("delete", "/vocab", {"operationId": "purge", "tags": ["vocab"]}),
        )

        discovery = discover(document)

        assert discovery.capabilities["listVocab"].id == "list"
        assert discovery.scores["listVocab"] == 3 + 3 + 5 + 8
        assert not discovery.has("getVocab")
        assert not discovery.has("deleteVocab")

    def test_empty_document_has_no_capabilities(self):
        discovery = discover({"paths": {}})

        assert discovery.operations == ()
        assert dict(discovery.capabilities) == {}
        assert not discovery.has("addVocab")
        assert discovery.missing == list(CAPABILITY_NAMES)

    def test_result_independent_of_declaration_order(self, vocab_document):
        baseline = discover(vocab_document)
        items = list(vocab_document["paths"].items())

        for seed in range(5):
            random.Random(seed).shuffle(items)
            shuffled = {**vocab_document, "paths": dict(items)}
            discovery = discover(shuffled)

            assert {n: str(op) for n, op in discovery.capabilities.items()} == {
                n: str(op) for n, op in baseline.capabilities.items()
            }
            assert dict(discovery.scores) == dict(baseline.scores)

    def test_tie_resolved_by_method_and_path_order(self, document_factory):
        document = document_factory(
            ("get", "/b/sync/export", {"operationId": "second"}),
            ("get", "/a/sync/export", {"operationId": "first"}),
        )

        assert discover(document).capabilities["syncExport"].id == "first"

    def test_custom_rules(self, vocab_document):
        rules = {"reviewLogs": (CapabilityRule(method="POST", path_includes=("logs",)),)}

        discovery = discover(vocab_document, rules)

        assert list(discovery.capabilities) == ["reviewLogs"]
        assert discovery.capabilities["reviewLogs"].id == "query_review_logs"

    def test_operations_keep_declaration_order(self, vocab_document):
        discovery = discover(vocab_document)

        assert list(discovery.operations) == flatten_operations(vocab_document)

    @pytest.mark.parametrize("name", CAPABILITY_NAMES)
    def test_winner_never_negative(self, vocab_document, name):
        assert discover(vocab_document).scores[name] >= 0
