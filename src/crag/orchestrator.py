"""Corrective RAG orchestration.

One ``ask_with_crag`` call runs: initial retrieval, confidence evaluation,
a corrective branch chosen by the confidence category, an optional refusal,
then answer generation. Everything a call accumulates lives in a ``_Run``
local to that call and is frozen into a ``CragQueryResult`` at the end.
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass, field
from typing import List, Optional

from crag.errors import RetrievalError
from crag.evaluator import ConfidenceEvaluator, EvaluationMetrics, EvaluationResult
from crag.protocols import LanguageModelClient, MetricsSink, RetrievalBackend
from generation.answerer import NO_INFORMATION_ANSWER, AnswerGenerator
from monitoring.metrics import NullMetricsSink
from retrieval.merge import SourceMerger
from retrieval.query_expansion import QueryExpander
from retrieval.refine import KnowledgeRefiner
from retrieval.rerank import sort_by_score
from schemas.common import ConfidenceCategory
from schemas.response import CragMetadata, CragQueryResult, SourceChunk
from utils.logging import get_logger
from utils.settings import CragConfig, GenerationConfig

log = get_logger(__name__)

DIRECT_USE = "direct_use"
AMBIGUOUS_HANDLING = "ambiguous_handling"
KNOWLEDGE_REFINEMENT = "knowledge_refinement"
CORRECTION_TRIGGERED = "correction_triggered"
QUERY_EXPANSION_SUCCESS = "query_expansion_success"
SOURCE_MERGING = "source_merging"
LOW_RELEVANCE_REFUSAL = "low_relevance_refusal"
UNCERTAINTY_MARKER_ADDED = "uncertainty_marker_added"
LOW_CONFIDENCE_DISCLAIMER = "low_confidence_disclaimer"

LOW_RELEVANCE_REFUSAL_ANSWER = (
    "I don't have specific information about that in the knowledge base. "
    "The retrieved documents discuss related topics but don't directly address your question."
)
UNCERTAINTY_PREFIX = "Based on the available information: "
LOW_CONFIDENCE_PREFIX = "I couldn't find highly relevant information to answer this question. "
DISCLAIMER_CONFIDENCE_CEILING = 0.3

_REFUSAL_OPENINGS = ("I don't", "I couldn't")
_HEDGING = re.compile(r"\b(may|might|possibly|it appears)\b", re.IGNORECASE)

DISABLED_EVALUATION = EvaluationResult(
    confidence_score=1.0,
    category=ConfidenceCategory.CORRECT,
    reason="CRAG disabled",
    metrics=EvaluationMetrics(0.0, 0.0, 0.0, 0.0, 0, None),
)


@dataclass
class _Run:
    question: str
    sources: List[SourceChunk]
    evaluation: EvaluationResult
    strategies: List[str] = field(default_factory=list)
    expanded_queries: List[str] = field(default_factory=list)
    retries: int = 0
    answer: str = ""

    def freeze(self) -> CragQueryResult:
        metadata = CragMetadata(
            confidence_score=self.evaluation.confidence_score,
            category=self.evaluation.category,
            evaluation_reason=self.evaluation.reason,
            applied_strategies=list(self.strategies),
            retries_performed=self.retries,
            original_query=self.question,
            expanded_queries=list(self.expanded_queries),
            knowledge_refined=KNOWLEDGE_REFINEMENT in self.strategies,
        )
        return CragQueryResult(
            question=self.question,
            answer=self.answer,
            sources=list(self.sources),
            crag_metadata=metadata,
        )


def add_uncertainty_marker(answer: str) -> Optional[str]:
    """Prefixed answer, or None when it already refuses or hedges."""
    if answer.startswith(_REFUSAL_OPENINGS) or _HEDGING.search(answer):
        return None
    return UNCERTAINTY_PREFIX + answer


class CorrectiveOrchestrator:
    def __init__(
        self,
        config: CragConfig,
        backend: RetrievalBackend,
        llm: LanguageModelClient,
        metrics: MetricsSink | None = None,
        *,
        evaluator: ConfidenceEvaluator | None = None,
        expander: QueryExpander | None = None,
        refiner: KnowledgeRefiner | None = None,
        merger: SourceMerger | None = None,
        generator: AnswerGenerator | None = None,
        generation: GenerationConfig | None = None,
    ) -> None:
        self.config = config
        self.backend = backend
        self.metrics = metrics or NullMetricsSink()
        self.evaluator = evaluator or ConfidenceEvaluator(config, llm)
        self.expander = expander or QueryExpander(llm)
        self.refiner = refiner or KnowledgeRefiner()
        self.merger = merger or SourceMerger()
        self.generator = generator or AnswerGenerator(llm, generation)
        log.info("crag.initialized", **config.stats())

    def stats(self) -> dict:
        return self.config.stats()

    def ask_with_crag(self, question: str, top_k: int, category: str | None = None) -> CragQueryResult:
        if not self.config.enabled:
            return self._ask_without_crag(question, top_k, category)

        start = time.perf_counter()
        sources = self.backend.search(question, top_k, category)
        run = _Run(question=question, sources=sources, evaluation=self.evaluator.evaluate(question, sources))
        log.info(
            "crag.initial_evaluation",
            confidence=round(run.evaluation.confidence_score, 3),
            category=run.evaluation.category.value,
        )

        initial = run.evaluation.category
        if initial is ConfidenceCategory.CORRECT:
            run.strategies.append(DIRECT_USE)
        elif initial is ConfidenceCategory.AMBIGUOUS:
            self._handle_ambiguous(run)
        else:
            self._correct(run, top_k, category)

        self._answer(run)

        duration_ms = int((time.perf_counter() - start) * 1000)
        log.info(
            "crag.completed",
            duration_ms=duration_ms,
            confidence=round(run.evaluation.confidence_score, 3),
            category=run.evaluation.category.value,
            strategies=run.strategies,
        )
        self.metrics.record_crag_query(
            duration_ms, run.evaluation.category.value, run.retries, bool(run.expanded_queries)
        )
        return run.freeze()

    def _ask_without_crag(self, question: str, top_k: int, category: str | None) -> CragQueryResult:
        log.debug("crag.disabled")
        run = _Run(
            question=question,
            sources=sort_by_score(self.backend.search(question, top_k, category)),
            evaluation=DISABLED_EVALUATION,
        )
        run.answer = self.generator.generate(question, run.sources, run.evaluation)
        return run.freeze()

    def _handle_ambiguous(self, run: _Run) -> None:
        run.strategies.append(AMBIGUOUS_HANDLING)
        if self.config.knowledge_refinement_enabled:
            run.sources = self.refiner.refine(run.question, run.sources)
            run.strategies.append(KNOWLEDGE_REFINEMENT)
        run.evaluation = self.evaluator.evaluate(run.question, run.sources)

    def _correct(self, run: _Run, top_k: int, category: str | None) -> None:
        run.strategies.append(CORRECTION_TRIGGERED)
        original = run.sources
        tried: List[str] = []

        if self.config.query_expansion_enabled and run.retries < self.config.max_retry_attempts:
            run.expanded_queries.extend(self.expander.expand(run.question))
            for query in run.expanded_queries:
                run.retries += 1
                tried.append(query)
                candidates = self._search_quietly(query, top_k, category)
                candidate_eval = self.evaluator.evaluate(query, candidates)
                log.info(
                    "crag.retry",
                    attempt=run.retries,
                    query=query,
                    confidence=round(candidate_eval.confidence_score, 3),
                )
                if candidate_eval.confidence_score > run.evaluation.confidence_score:
                    run.sources = candidates
                    run.evaluation = candidate_eval
                    run.strategies.append(QUERY_EXPANSION_SUCCESS)
                    if candidate_eval.category is not ConfidenceCategory.INCORRECT:
                        break
                if run.retries >= self.config.max_retry_attempts:
                    break

        if run.evaluation.category is ConfidenceCategory.INCORRECT and tried:
            run.sources = self.merger.merge(
                original, tried, lambda q: self._search_quietly(q, top_k, category), top_k
            )
            run.evaluation = self.evaluator.evaluate(run.question, run.sources)
            run.strategies.append(SOURCE_MERGING)

    def _search_quietly(self, query: str, top_k: int, category: str | None) -> List[SourceChunk]:
        # Retries are best-effort; only the initial search may fail the call.
        try:
            return self.backend.search(query, top_k, category)
        except RetrievalError as e:
            log.warning("crag.retry_search_failed", query=query, error=str(e))
            return []

    def _answer(self, run: _Run) -> None:
        top_relevance = run.sources[0].relevance_score if run.sources else 0.0
        category = run.evaluation.category

        if top_relevance < self.config.min_relevance_for_answer and category is not ConfidenceCategory.CORRECT:
            run.answer = LOW_RELEVANCE_REFUSAL_ANSWER if run.sources else NO_INFORMATION_ANSWER
            run.strategies.append(LOW_RELEVANCE_REFUSAL)
            log.info("crag.refused", top_score=top_relevance)
            return

        answer = self.generator.generate(run.question, run.sources, run.evaluation)

        if category is ConfidenceCategory.AMBIGUOUS:
            marked = add_uncertainty_marker(answer)
            if marked is not None:
                answer = marked
                run.strategies.append(UNCERTAINTY_MARKER_ADDED)

        if category is ConfidenceCategory.INCORRECT and (
            not run.sources or run.evaluation.confidence_score < DISCLAIMER_CONFIDENCE_CEILING
        ):
            answer = LOW_CONFIDENCE_PREFIX + answer
            run.strategies.append(LOW_CONFIDENCE_DISCLAIMER)

        run.answer = answer
