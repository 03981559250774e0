from __future__ import annotations

from typing import Iterable, List

from schemas.response import SourceChunk


def sort_by_score(chunks: Iterable[SourceChunk]) -> List[SourceChunk]:
    """Best-first ordering; ties keep their incoming order."""
    return sorted(chunks, key=lambda c: float(c.relevance_score), reverse=True)
