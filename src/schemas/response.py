from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from schemas.common import ConfidenceCategory


class SourceChunk(BaseModel):
    model_config = ConfigDict(frozen=True)

    doc_id: str
    chunk_index: int
    relevance_score: float = Field(ge=0.0, le=1.0)
    text: str
    title: str | None = None

    @property
    def key(self) -> tuple[str, int]:
        return (self.doc_id, self.chunk_index)


class QueryResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    question: str
    answer: str
    sources: list[SourceChunk]


class CragMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    confidence_score: float = Field(ge=0.0, le=1.0)
    category: ConfidenceCategory
    evaluation_reason: str
    applied_strategies: list[str] = Field(default_factory=list)
    retries_performed: int = 0
    original_query: str
    expanded_queries: list[str] = Field(default_factory=list)
    knowledge_refined: bool = False


class CragQueryResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    question: str
    answer: str
    sources: list[SourceChunk]
    crag_metadata: CragMetadata

    def to_query_result(self) -> QueryResult:
        return QueryResult(question=self.question, answer=self.answer, sources=self.sources)
