"""Exception types for the corrective retrieval engine.

Only two failures are ever surfaced to a caller of ``ask_with_crag``: the
initial retrieval and the final answer generation. Every other failure is
absorbed by the strategy that hit it and shows up only as a shorter list of
applied strategies.
"""


class CragError(Exception):
    """Base class for engine failures."""


class RetrievalError(CragError):
    """Raised by a retrieval backend when a search cannot be completed."""


class LanguageModelError(CragError):
    """Raised by a language model client when a completion cannot be produced."""
