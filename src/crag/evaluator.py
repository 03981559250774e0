"""Retrieval confidence estimation.

The score is driven by the retrieval scores themselves (top score, spread,
gap between the first two hits, number of hits). For borderline scores the
language model can optionally be asked to rate the top passages; its rating
is blended in and never replaces the heuristic outright.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional

from crag.protocols import LanguageModelClient
from generation.prompts import RELEVANCE_RATING_TEMPLATE
from schemas.common import ConfidenceCategory
from schemas.response import SourceChunk
from utils.logging import get_logger
from utils.settings import CragConfig

log = get_logger(__name__)

NEUTRAL_LLM_SCORE = 0.5
LLM_EVAL_TOP_N = 3
LLM_EVAL_MAX_CHARS = 500
LLM_EVAL_TEMPERATURE = 0.1
LLM_EVAL_MAX_TOKENS = 10

_NUMBER = re.compile(r"-?\d+(?:\.\d+)?")


@dataclass(frozen=True)
class EvaluationMetrics:
    top_score: float
    average_score: float
    score_variance: float
    top_to_second_gap: float
    total_results: int
    llm_score: Optional[float] = None


@dataclass(frozen=True)
class EvaluationResult:
    confidence_score: float
    category: ConfidenceCategory
    reason: str
    metrics: EvaluationMetrics


class UnparseableRatingError(ValueError):
    pass


def _clamp(x: float) -> float:
    return max(0.0, min(1.0, x))


def _variance(scores: List[float]) -> float:
    if len(scores) < 2:
        return 0.0
    mean = sum(scores) / len(scores)
    return sum((s - mean) ** 2 for s in scores) / len(scores)


def parse_rating(text: str) -> float:
    """Parse a 0-10 rating into [0, 1]; the reply must hold exactly one number."""
    tokens = _NUMBER.findall(text.strip())
    if len(tokens) != 1:
        raise UnparseableRatingError(f"expected a single number, got {text!r}")
    return _clamp(float(tokens[0]) / 10.0)


class ConfidenceEvaluator:
    def __init__(self, config: CragConfig, llm: LanguageModelClient | None = None) -> None:
        self.config = config
        self.llm = llm
        log.info(
            "crag.evaluator_initialized",
            llm_eval=config.llm_evaluation_enabled and llm is not None,
            high_threshold=config.high_confidence_threshold,
            low_threshold=config.low_confidence_threshold,
            gap_threshold=config.score_gap_threshold,
        )

    def evaluate(self, query: str, results: List[SourceChunk]) -> EvaluationResult:
        if not results:
            return EvaluationResult(
                confidence_score=0.0,
                category=ConfidenceCategory.INCORRECT,
                reason="No results retrieved",
                metrics=EvaluationMetrics(0.0, 0.0, 0.0, 0.0, 0, None),
            )

        scores = [float(c.relevance_score) for c in results]
        top = scores[0]
        avg = sum(scores) / len(scores)
        variance = _variance(scores)
        gap = top - scores[1] if len(scores) > 1 else top

        heuristic = self._heuristic_confidence(top, avg, variance, gap, len(scores))

        llm_score: Optional[float] = None
        if self.config.llm_evaluation_enabled and self.llm is not None and self._in_ambiguous_band(heuristic):
            llm_score = self._rate_with_llm(query, results)

        final = heuristic * 0.6 + llm_score * 0.4 if llm_score is not None else heuristic
        category = self.categorize(final)
        reason = self._build_reason(top, avg, variance, category, llm_score)

        log.info(
            "crag.evaluation",
            confidence=round(final, 3),
            category=category.value,
            top_score=round(top, 3),
            avg_score=round(avg, 3),
            variance=round(variance, 4),
            llm_score=llm_score,
        )
        return EvaluationResult(
            confidence_score=final,
            category=category,
            reason=reason,
            metrics=EvaluationMetrics(top, avg, variance, gap, len(scores), llm_score),
        )

    def categorize(self, score: float) -> ConfidenceCategory:
        if score >= self.config.high_confidence_threshold:
            return ConfidenceCategory.CORRECT
        if score >= self.config.low_confidence_threshold:
            return ConfidenceCategory.AMBIGUOUS
        return ConfidenceCategory.INCORRECT

    def _in_ambiguous_band(self, score: float) -> bool:
        return self.config.low_confidence_threshold <= score < self.config.high_confidence_threshold

    def _heuristic_confidence(self, top: float, avg: float, variance: float, gap: float, count: int) -> float:
        gap_bonus = min(0.1, gap * 0.3) if gap > self.config.score_gap_threshold else 0.0
        variance_penalty = min(0.2, variance * 0.5)
        consistency_bonus = 0.05 if avg > 0.6 and variance < 0.05 else 0.0
        count_penalty = 0.05 if count < 3 else 0.0
        return _clamp(top + gap_bonus - variance_penalty + consistency_bonus - count_penalty)

    def _rate_with_llm(self, query: str, results: List[SourceChunk]) -> float:
        documents = "".join(
            f"Document {i}:\n{c.text[:LLM_EVAL_MAX_CHARS]}\n\n"
            for i, c in enumerate(results[:LLM_EVAL_TOP_N], start=1)
        )
        prompt = RELEVANCE_RATING_TEMPLATE.format(query=query, documents=documents)
        try:
            text = self.llm.complete(prompt, LLM_EVAL_TEMPERATURE, LLM_EVAL_MAX_TOKENS)
            score = parse_rating(text)
        except Exception as e:
            # Any failure here degrades to a neutral rating.
            log.warning("crag.llm_evaluation_failed", error=str(e))
            return NEUTRAL_LLM_SCORE
        log.debug("crag.llm_evaluation", llm_score=score)
        return score

    @staticmethod
    def _build_reason(
        top: float,
        avg: float,
        variance: float,
        category: ConfidenceCategory,
        llm_score: Optional[float],
    ) -> str:
        parts = [f"Top relevance score: {top:.3f}, Average: {avg:.3f}"]
        if variance > 0.05:
            parts.append(" (high variance indicates inconsistent results)")
        if llm_score is not None:
            parts.append(f", LLM verification: {llm_score * 10:.1f}/10")
        if category is ConfidenceCategory.CORRECT:
            parts.append(" - Retrieved documents appear highly relevant.")
        elif category is ConfidenceCategory.AMBIGUOUS:
            parts.append(" - Relevance is uncertain, results may be partially applicable.")
        else:
            parts.append(" - Retrieved documents do not appear relevant to the query.")
        return "".join(parts)
