from __future__ import annotations

import pytest

from crag.errors import LanguageModelError
from doubles import ScriptedLanguageModel, chunk, chunks
from retrieval.merge import SourceMerger
from retrieval import refine
from retrieval.query_expansion import QueryExpander
from retrieval.refine import KnowledgeRefiner, lexical_overlap


def test_expansion_keeps_up_to_three_meaningful_lines() -> None:
    llm = ScriptedLanguageModel(
        expansion="warranty length for laptops\n\n  ok  \nhow long is the guarantee\nrepair coverage period\nextra one\n"
    )
    expanded = QueryExpander(llm).expand("warranty?")
    assert expanded == [
        "warranty length for laptops",
        "how long is the guarantee",
        "repair coverage period",
    ]
    assert llm.calls["expansion"] == 1
    assert llm.settings[0] == ("expansion", 0.7, 150)
    assert "Original query: warranty?" in llm.prompts[0]


def test_expansion_drops_lines_of_five_chars_or_less() -> None:
    llm = ScriptedLanguageModel(expansion="12345\n123456\n")
    assert QueryExpander(llm).expand("q") == ["123456"]


@pytest.mark.parametrize("error", [LanguageModelError("down"), RuntimeError("boom")])
def test_expansion_failure_returns_empty_list(error: Exception) -> None:
    assert QueryExpander(ScriptedLanguageModel(expansion=error)).expand("q") == []


def test_lexical_overlap_counts_long_words_over_all_words() -> None:
    query = "How does warranty coverage work"
    assert lexical_overlap(query, "The WARRANTY coverage lasts two years") == pytest.approx(2 / 5)
    assert lexical_overlap(query, "how") == 0.0
    assert lexical_overlap("", "anything") == 0.0


def test_refine_is_noop_for_two_or_fewer_chunks() -> None:
    items = chunks(0.5, 0.4)
    assert KnowledgeRefiner().refine("How does warranty coverage work", items) is items


def test_refine_rescores_and_reorders() -> None:
    query = "How does warranty coverage work"
    items = [
        chunk(0.50, doc_id="a", text="The warranty coverage lasts for two years"),
        chunk(0.55, doc_id="b", text="Shipping times vary"),
        chunk(0.45, doc_id="c", text="How does it work? Warranty."),
    ]
    refined = KnowledgeRefiner().refine(query, items)

    assert [c.doc_id for c in refined] == ["c", "a", "b"]
    scores = {c.doc_id: c.relevance_score for c in refined}
    assert scores["c"] == pytest.approx(0.45 * 0.7 + 0.6 * 0.3)
    assert scores["a"] == pytest.approx(0.50 * 0.7 + 0.4 * 0.3)
    assert scores["b"] == pytest.approx(0.55 * 0.7)
    # inputs are left untouched
    assert items[0].relevance_score == 0.50
    assert refined[0].text == items[2].text


def test_merge_dedups_and_keeps_higher_score() -> None:
    original = [chunk(0.40, doc_id="a"), chunk(0.30, doc_id="b")]
    per_query = {
        "q1": [chunk(0.35, doc_id="a"), chunk(0.50, doc_id="c")],
        "q2": [chunk(0.45, doc_id="b"), chunk(0.20, doc_id="d")],
    }
    merged = SourceMerger().merge(original, ["q1", "q2"], lambda q: per_query[q], top_k=10)

    keys = [c.key for c in merged]
    assert len(keys) == len(set(keys))
    scores = {c.doc_id: c.relevance_score for c in merged}
    assert scores == {"a": 0.40, "b": 0.45, "c": 0.50, "d": 0.20}
    assert [c.doc_id for c in merged] == ["c", "b", "a", "d"]


def test_merge_identity_includes_chunk_index() -> None:
    original = [chunk(0.4, doc_id="a", idx=0)]
    merged = SourceMerger().merge(original, ["q"], lambda q: [chunk(0.3, doc_id="a", idx=1)], top_k=5)
    assert [c.key for c in merged] == [("a", 0), ("a", 1)]


def test_merge_equal_score_keeps_first_seen() -> None:
    first = chunk(0.4, doc_id="a", text="first")
    merged = SourceMerger().merge([first], ["q"], lambda q: [chunk(0.4, doc_id="a", text="second")], top_k=5)
    assert merged[0].text == "first"


def test_merge_truncates_to_top_k() -> None:
    fresh = [chunk(0.1 * i, doc_id=f"d{i}") for i in range(1, 8)]
    merged = SourceMerger().merge([], ["q"], lambda q: fresh, top_k=3)
    assert [c.doc_id for c in merged] == ["d7", "d6", "d5"]


def test_refine_module_is_documented() -> None:
    assert refine.__doc__ is not None
    assert refine.__doc__.startswith("Knowledge refinement.")
