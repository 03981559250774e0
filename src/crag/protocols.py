"""Interfaces of the collaborators the engine calls but does not implement."""

from __future__ import annotations

from typing import Protocol

from schemas.response import SourceChunk


class RetrievalBackend(Protocol):
    # Ranked best-first; scores are similarity-like values in [0, 1].
    # Raise RetrievalError on failure.
    def search(self, query: str, top_k: int, category_filter: str | None) -> list[SourceChunk]: ...


class LanguageModelClient(Protocol):
    # Single-shot completion. Raise LanguageModelError on failure.
    def complete(self, prompt: str, temperature: float, max_tokens: int) -> str: ...


class MetricsSink(Protocol):
    # Fire-and-forget; must not raise.
    def record_crag_query(self, duration_ms: int, category: str, retries: int, used_expansion: bool) -> None: ...
