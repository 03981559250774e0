from __future__ import annotations

from typing import Callable, Dict, List, Tuple

from retrieval.rerank import sort_by_score
from schemas.response import SourceChunk
from utils.logging import get_logger

log = get_logger(__name__)

RetrievalFn = Callable[[str], List[SourceChunk]]


class SourceMerger:
    """Union of chunk sets from several query variants, one entry per (doc_id, chunk_index)."""

    def merge(
        self,
        original: List[SourceChunk],
        expanded_queries: List[str],
        retrieval_fn: RetrievalFn,
        top_k: int,
    ) -> List[SourceChunk]:
        unique: Dict[Tuple[str, int], SourceChunk] = {}
        for chunk in original:
            unique[chunk.key] = chunk

        for q in expanded_queries:
            for chunk in retrieval_fn(q):
                existing = unique.get(chunk.key)
                if existing is None or chunk.relevance_score > existing.relevance_score:
                    unique[chunk.key] = chunk

        merged = sort_by_score(unique.values())[:top_k]
        log.debug("crag.merge", candidates=len(unique), kept=len(merged))
        return merged
