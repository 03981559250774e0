from __future__ import annotations

from schemas.common import ConfidenceCategory

RELEVANCE_RATING_TEMPLATE = """You are evaluating the relevance of retrieved documents to a user's query.

Query: {query}

Retrieved Documents:
{documents}
Rate the overall relevance of these documents to the query on a scale of 0 to 10:
- 0-3: Documents are not relevant to the query
- 4-6: Documents are somewhat relevant but may not fully answer the query
- 7-10: Documents are highly relevant and likely contain the answer

Respond with ONLY a single number from 0 to 10, nothing else.
"""

QUERY_EXPANSION_TEMPLATE = """You are helping improve a search query. Given the original query, generate 2-3 alternative
phrasings or related queries that might help find relevant information.

Original query: {query}

Generate alternative queries, one per line. Do not include numbering or bullets.
Focus on:
1. Rephrasing with different keywords
2. More specific versions of the query
3. Related concepts that might contain the answer

Respond with ONLY the alternative queries, one per line, nothing else.
"""

CONFIDENCE_HINTS: dict[ConfidenceCategory, str] = {
    ConfidenceCategory.CORRECT: (
        "The retrieved context appears highly relevant. Answer confidently based on the context."
    ),
    ConfidenceCategory.AMBIGUOUS: (
        "WARNING: The retrieved context may only be PARTIALLY relevant to the question.\n"
        "- If the context does not DIRECTLY address the specific question asked, say "
        "\"I don't have specific information about that in the knowledge base.\"\n"
        "- Do NOT extrapolate or combine unrelated information to construct an answer.\n"
        "- Only answer if you find EXPLICIT information about what was asked."
    ),
    ConfidenceCategory.INCORRECT: (
        "The retrieved context has LOW relevance. Say 'I don't have information about that in "
        "the knowledge base.' unless you find exact matches."
    ),
}

ANSWER_TEMPLATE = """You are a helpful assistant answering questions based on the provided documentation.

RELEVANCE NOTE: {hint}

RULES:
1. ONLY use information that is EXPLICITLY stated in the context below.
2. Do NOT make up, infer, or extrapolate information that is not directly in the context.
3. If the context does not contain information that DIRECTLY answers the question, say "I don't have information about that in the knowledge base."
4. If the context talks about a RELATED but DIFFERENT topic, acknowledge this limitation.
5. Be conservative - it's better to say you don't know than to provide incorrect information.

FORMAT:
- Respond in plain, natural language.
- If asked about steps or processes, use numbered steps.

Context:
{context}

Question: {question}

Answer:"""
