from __future__ import annotations

from typing import List

from crag.errors import LanguageModelError
from crag.evaluator import EvaluationResult
from crag.protocols import LanguageModelClient
from generation.prompts import ANSWER_TEMPLATE, CONFIDENCE_HINTS
from schemas.response import SourceChunk
from utils.logging import get_logger
from utils.settings import GenerationConfig

log = get_logger(__name__)

NO_INFORMATION_ANSWER = "I don't have information about that in the knowledge base."
CONTEXT_SEPARATOR = "\n\n---\n\n"


def build_context(sources: List[SourceChunk]) -> str:
    return CONTEXT_SEPARATOR.join(c.text for c in sources)


class AnswerGenerator:
    def __init__(self, llm: LanguageModelClient, config: GenerationConfig | None = None) -> None:
        self.llm = llm
        self.config = config or GenerationConfig()

    def build_prompt(self, question: str, sources: List[SourceChunk], evaluation: EvaluationResult) -> str:
        return ANSWER_TEMPLATE.format(
            hint=CONFIDENCE_HINTS[evaluation.category],
            context=build_context(sources),
            question=question,
        )

    def generate(self, question: str, sources: List[SourceChunk], evaluation: EvaluationResult) -> str:
        if not sources:
            return NO_INFORMATION_ANSWER

        prompt = self.build_prompt(question, sources, evaluation)
        try:
            return self.llm.complete(prompt, self.config.temperature, self.config.max_output_tokens)
        except LanguageModelError:
            log.exception("crag.generate_failed")
            raise
        except Exception as e:
            log.exception("crag.generate_failed")
            raise LanguageModelError(f"answer generation failed: {e}") from e
