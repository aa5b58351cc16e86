from __future__ import annotations

import copy

import pytest

from briefsys.briefing.merger import (
    PLACEHOLDER_BULLET,
    SummaryMerger,
    clip,
    compact_summaries,
    local_fallback_document,
    sanitize_document,
)
from briefsys.briefing.models import ArticleSummary, UsageRecord
from briefsys.briefing.prompts import SLIDE_TITLES
from briefsys.briefing.schema import validate_document

from tests.utils import AlwaysFailingClient, ScriptedClient, valid_document


def _assert_shape(document: dict) -> None:
    assert validate_document(document).valid
    assert [slide["slide_title"] for slide in document["slides"]] == list(SLIDE_TITLES)
    assert [slide["slide_number"] for slide in document["slides"]] == [1, 2, 3]
    assert all(len(slide["bullet_points"]) == 3 for slide in document["slides"])


def test_merge_passes_valid_document_through(acme_summaries: list[ArticleSummary]) -> None:
    expected = valid_document("Acme")
    client = ScriptedClient([expected])

    result = SummaryMerger(client).merge("Acme", acme_summaries[:1], top_k=3)

    assert result.used_fallback is False
    assert result.error is None
    assert result.document.to_dict() == expected
    assert len(client.calls) == 1
    assert client.calls[0]["max_tokens"] == 2200


def test_merge_always_throwing_client_uses_fallback(acme_summaries: list[ArticleSummary]) -> None:
    client = AlwaysFailingClient()
    records: list[UsageRecord] = []

    result = SummaryMerger(client, usage_sink=records.append).merge("Acme", acme_summaries, top_k=3)

    assert result.used_fallback is True
    assert result.error == "call_failed:TimeoutError"
    assert result.attempt_errors == ("call_failed:TimeoutError", "call_failed:TimeoutError")
    assert client.calls == 2
    assert [record.source for record in records] == ["merge:initial", "merge:repair"]

    document = result.document.to_dict()
    _assert_shape(document)
    assert document["slides"][1]["bullet_points"] == ["Sales angle 1", "Sales angle 2", "Sales angle 3"]
    assert document["slides"][0]["bullet_points"] == [
        "Acme development 1.",
        "Acme development 2.",
        "Acme development 3.",
    ]
    assert document["slides"][2]["bullet_points"] == ["Question 1?", "Question 2?", "Question 3?"]
    assert document["company_overview"] == "Acme: Acme development 1. Acme development 2."
    assert [item["title"] for item in document["highlights"]] == [
        "Acme headline 1",
        "Acme headline 2",
        "Acme headline 3",
    ]


def test_merge_repair_succeeds_after_parse_failure(acme_summaries: list[ArticleSummary]) -> None:
    client = ScriptedClient(["I cannot produce JSON today.", valid_document("Acme")])

    result = SummaryMerger(client).merge("Acme", acme_summaries, top_k=3)

    assert result.used_fallback is False
    assert result.attempt_errors == ("json_parse_failed",)
    assert client.calls[1]["max_tokens"] == 1200
    assert "failed validation" in client.calls[1]["messages"][1]["content"]


@pytest.mark.parametrize(
    ("replies", "error"),
    [
        (["", ""], "empty_content"),
        (["nope", "still nope"], "json_parse_failed"),
        (["[1, 2]", "[3]"], "schema_invalid"),
        (["", "[3]"], "schema_invalid"),
    ],
)
def test_merge_fallback_error_codes(
    acme_summaries: list[ArticleSummary], replies: list, error: str
) -> None:
    result = SummaryMerger(ScriptedClient(replies)).merge("Acme", acme_summaries, top_k=3)

    assert result.used_fallback is True
    assert result.error == error
    _assert_shape(result.document.to_dict())


def test_merge_forces_canonical_titles_and_bullet_counts(acme_summaries: list[ArticleSummary]) -> None:
    payload = valid_document("Acme")
    payload["slides"] = [
        {"slide_number": 7, "slide_title": "Whatever", "bullet_points": ["a", "b", "c", "d", "e"]},
        {"slide_title": "Opportunities", "bullet_points": ["only one"]},
    ]

    result = SummaryMerger(ScriptedClient([payload])).merge("Acme", acme_summaries, top_k=3)
    document = result.document.to_dict()

    assert result.used_fallback is False
    _assert_shape(document)
    assert document["slides"][0]["bullet_points"] == ["a", "b", "c"]
    assert document["slides"][1]["bullet_points"] == ["only one", PLACEHOLDER_BULLET, PLACEHOLDER_BULLET]
    # The missing third slide is derived from the highlights' suggested questions.
    assert document["slides"][2]["bullet_points"][0] == "Question 1?"


def test_merge_is_deterministic_when_degraded(acme_summaries: list[ArticleSummary]) -> None:
    first = SummaryMerger(ScriptedClient(["garbage", "garbage"])).merge("Acme", acme_summaries, top_k=3)
    second = SummaryMerger(ScriptedClient(["garbage", "garbage"])).merge("Acme", acme_summaries, top_k=3)

    assert first.used_fallback and second.used_fallback
    assert first.document == second.document
    assert first.document.to_dict() == second.document.to_dict()


def test_merge_rejects_invalid_arguments(acme_summaries: list[ArticleSummary]) -> None:
    client = ScriptedClient()
    with pytest.raises(ValueError):
        SummaryMerger(client).merge("  ", acme_summaries)
    with pytest.raises(ValueError):
        SummaryMerger(client).merge("Acme", acme_summaries, top_k=0)
    assert client.calls == []


def test_merge_truncates_to_top_k(acme_summaries: list[ArticleSummary]) -> None:
    result = SummaryMerger(AlwaysFailingClient()).merge("Acme", acme_summaries, top_k=2)
    document = result.document.to_dict()

    assert len(document["highlights"]) == 2
    assert document["slides"][1]["bullet_points"] == [
        "Sales angle 1",
        "Sales angle 2",
        "Check risk and compliance drivers",
    ]


def test_sanitize_document_fills_missing_fields() -> None:
    sanitized = sanitize_document("Acme", {"highlights": "nonsense", "slides": None}, top_k=3)

    _assert_shape(sanitized)
    assert sanitized["company"] == "Acme"
    assert sanitized["company_overview"].startswith("Acme: ")
    assert len(sanitized["highlights"]) == 1
    assert sanitized["highlights"][0]["title"] == "Acme"


def test_sanitize_document_does_not_mutate_payload() -> None:
    payload = valid_document("Acme")
    snapshot = copy.deepcopy(payload)

    sanitize_document("Acme", payload, top_k=3)

    assert payload == snapshot


def test_local_fallback_without_summaries() -> None:
    document = local_fallback_document("Acme", [], top_k=3).to_dict()

    _assert_shape(document)
    assert document["company_overview"] == "Acme: recent developments with potential commercial impact."
    assert len(document["highlights"]) == 1


def test_compact_summaries_clips_long_fields(acme_summaries: list[ArticleSummary]) -> None:
    long_summary = ArticleSummary(
        id="x",
        title="T" * 500,
        url="u",
        one_line_summary="o",
        short_summary="s" * 1000,
        sales_bullet="b",
        suggested_question="q",
    )

    compact = compact_summaries([long_summary, *acme_summaries], top_k=2)

    assert len(compact) == 2
    assert compact[0]["title"] == "T" * 220 + "…"
    assert compact[0]["short_summary"] == "s" * 520 + "…"
    assert compact[1]["title"] == "Acme headline 1"
    assert clip("short", 10) == "short"


def test_merge_deeply_nested_reply_uses_fallback(acme_summaries: list[ArticleSummary]) -> None:
    nested = "[" * 100_000 + "]" * 100_000
    client = ScriptedClient([nested, nested])

    result = SummaryMerger(client).merge("Acme", acme_summaries, top_k=3)

    assert result.used_fallback is True
    assert result.attempt_errors == ("json_parse_failed", "json_parse_failed")
    _assert_shape(result.document.to_dict())


def test_sanitize_document_truncates_highlights_and_drops_non_objects() -> None:
    payload = valid_document("Acme")
    items = [
        {**payload["highlights"][0], "title": f"Acme headline {index}", "url": f"https://news.example.com/{index}"}
        for index in range(1, 6)
    ]
    payload["highlights"] = ["not a highlight", items[0], 7, None, *items[1:]]

    sanitized = sanitize_document("Acme", payload, top_k=2)

    assert [item["title"] for item in sanitized["highlights"]] == ["Acme headline 1", "Acme headline 2"]
    assert sanitized["highlights"][1]["url"] == "https://news.example.com/2"


def test_merge_keeps_only_top_k_model_highlights(acme_summaries: list[ArticleSummary]) -> None:
    reply = valid_document("Acme")
    reply["highlights"] = [
        {**reply["highlights"][0], "title": f"Acme headline {index}"} for index in range(1, 6)
    ]

    result = SummaryMerger(ScriptedClient([reply])).merge("Acme", acme_summaries, top_k=2)

    assert result.used_fallback is False
    assert [item["title"] for item in result.document.to_dict()["highlights"]] == [
        "Acme headline 1",
        "Acme headline 2",
    ]
