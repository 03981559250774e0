from __future__ import annotations

from enum import Enum


class ConfidenceCategory(str, Enum):
    """How far the retrieved context can be trusted, best first."""

    CORRECT = "CORRECT"
    AMBIGUOUS = "AMBIGUOUS"
    INCORRECT = "INCORRECT"
