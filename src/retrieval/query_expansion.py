from __future__ import annotations

from crag.protocols import LanguageModelClient
from generation.prompts import QUERY_EXPANSION_TEMPLATE
from utils.logging import get_logger

log = get_logger(__name__)

MAX_EXPANSIONS = 3
MIN_QUERY_CHARS = 6
EXPANSION_TEMPERATURE = 0.7
EXPANSION_MAX_TOKENS = 150


class QueryExpander:
    """Asks the language model for alternative phrasings of a query."""

    def __init__(self, llm: LanguageModelClient) -> None:
        self.llm = llm

    def expand(self, query: str) -> list[str]:
        prompt = QUERY_EXPANSION_TEMPLATE.format(query=query)
        try:
            text = self.llm.complete(prompt, EXPANSION_TEMPERATURE, EXPANSION_MAX_TOKENS)
        except Exception as e:
            log.warning("crag.expansion_failed", error=str(e))
            return []

        lines = (line.strip() for line in text.splitlines())
        expanded = [line for line in lines if len(line) >= MIN_QUERY_CHARS][:MAX_EXPANSIONS]
        log.debug("crag.expansion", query=query, expanded=expanded)
        return expanded
