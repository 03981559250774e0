from __future__ import annotations

from typing import Callable, Dict, List, Optional, Union

from crag.errors import RetrievalError
from schemas.response import SourceChunk


def chunk(score: float, doc_id: str = "doc", idx: int = 0, text: str = "", title: Optional[str] = None) -> SourceChunk:
    return SourceChunk(
        doc_id=doc_id,
        chunk_index=idx,
        relevance_score=score,
        text=text or f"{doc_id} chunk {idx}",
        title=title,
    )


def chunks(*scores: float, doc_id: str = "doc") -> List[SourceChunk]:
    return [chunk(s, doc_id=doc_id, idx=i) for i, s in enumerate(scores)]


class ScriptedBackend:
    """Returns canned results per query; unknown queries fall back to `default`."""

    def __init__(
        self,
        results: Optional[Dict[str, List[SourceChunk]]] = None,
        default: Optional[List[SourceChunk]] = None,
        failing: Optional[List[str]] = None,
    ) -> None:
        self.results = results or {}
        self.default = default or []
        self.failing = set(failing or [])
        self.calls: List[tuple] = []

    def search(self, query: str, top_k: int, category_filter: Optional[str]) -> List[SourceChunk]:
        self.calls.append((query, top_k, category_filter))
        if query in self.failing:
            raise RetrievalError(f"backend down for {query!r}")
        return list(self.results.get(query, self.default))


Reply = Union[str, Exception, Callable[[str], str]]


class ScriptedLanguageModel:
    """Answers by prompt kind and counts calls per kind."""

    def __init__(self, rating: Reply = "5", expansion: Reply = "", answer: Reply = "The answer.") -> None:
        self.replies = {"rating": rating, "expansion": expansion, "answer": answer}
        self.calls: Dict[str, int] = {"rating": 0, "expansion": 0, "answer": 0}
        self.prompts: List[str] = []
        self.settings: List[tuple] = []

    @staticmethod
    def kind(prompt: str) -> str:
        if prompt.startswith("You are evaluating the relevance"):
            return "rating"
        if prompt.startswith("You are helping improve a search query"):
            return "expansion"
        return "answer"

    def complete(self, prompt: str, temperature: float, max_tokens: int) -> str:
        kind = self.kind(prompt)
        self.calls[kind] += 1
        self.prompts.append(prompt)
        self.settings.append((kind, temperature, max_tokens))
        reply = self.replies[kind]
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return reply(prompt)
        return reply


class RecordingMetrics:
    def __init__(self) -> None:
        self.events: List[tuple] = []

    def record_crag_query(self, duration_ms: int, category: str, retries: int, used_expansion: bool) -> None:
        self.events.append((duration_ms, category, retries, used_expansion))

