"""Keyword classifier for listing text.

Pure and deterministic: the verdict depends only on the text and the
prohibited-term list handed in (policy lives in config.yaml).
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

_POINTS_PER_TERM = 25
_MAX_SCORE = 100


@dataclass(frozen=True)
class ClassificationResult:
    flagged: bool
    prohibited_terms: list[str] = field(default_factory=list)
    score: int = 0

    @property
    def reasons(self) -> list[str]:
        return [f'Contains prohibited term: "{term}"' for term in self.prohibited_terms]


def find_prohibited_terms(text: str, terms: Sequence[str]) -> list[str]:
    """Case-insensitive substring scan; returns matches in policy-list order."""
    if not text:
        return []
    lowered = text.lower()
    return [term for term in terms if term.lower() in lowered]


def classify(title: str, description: str, terms: Sequence[str]) -> ClassificationResult:
    """Scan title and description, returning every distinct match."""
    found = set(find_prohibited_terms(title, terms)) | set(find_prohibited_terms(description, terms))
    matched = [t for t in dict.fromkeys(terms) if t in found]
    score = min(len(matched) * _POINTS_PER_TERM, _MAX_SCORE)
    return ClassificationResult(flagged=bool(matched), prohibited_terms=matched, score=score)


def flagged_notes(result: ClassificationResult) -> str:
    """Moderation note listing every matched term."""
    return "Automatically flagged for prohibited content: " + ", ".join(result.prohibited_terms)
