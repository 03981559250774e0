"""Knowledge refinement.

Re-scores an already retrieved chunk set with a cheap lexical signal instead
of going back to the retrieval backend.
"""

from __future__ import annotations

from typing import List

from retrieval.rerank import sort_by_score
from schemas.response import SourceChunk

RETRIEVAL_WEIGHT = 0.7
LEXICAL_WEIGHT = 0.3
MIN_WORD_CHARS = 4


def lexical_overlap(query: str, text: str) -> float:
    # Only words of 4+ chars can match, but every query word counts in the denominator.
    words = query.lower().split()
    if not words:
        return 0.0
    haystack = text.lower()
    matches = sum(1 for w in words if len(w) >= MIN_WORD_CHARS and w in haystack)
    return matches / len(words)


class KnowledgeRefiner:
    def refine(self, query: str, sources: List[SourceChunk]) -> List[SourceChunk]:
        if len(sources) <= 2:
            return sources

        rescored = [
            c.model_copy(
                update={
                    "relevance_score": float(c.relevance_score) * RETRIEVAL_WEIGHT
                    + lexical_overlap(query, c.text) * LEXICAL_WEIGHT
                }
            )
            for c in sources
        ]
        return sort_by_score(rescored)
