"""Candidate scoring and selection."""

from __future__ import annotations

from typing import Optional, Sequence

from jobtext.config import Settings
from jobtext.scraper.models import TextCandidate


def keyword_hits(text: str, keywords: Sequence[str]) -> int:
    """Count how many distinct *keywords* occur in *text* (case-insensitive)."""
    lowered = text.lower()
    return sum(1 for keyword in keywords if keyword.lower() in lowered)


def score(text: str, settings: Settings) -> int:
    """``len(text) + keyword_weight * keyword_hits(text)``."""
    return len(text) + settings.keyword_weight * keyword_hits(text, settings.keywords)


def pick_best(
    candidates: Sequence[TextCandidate], settings: Settings
) -> Optional[TextCandidate]:
    """Return the highest-scoring candidate, or ``None`` for an empty list.

    Ties go to the higher-priority strategy, then to the earlier candidate.
    """
    best: Optional[TextCandidate] = None
    best_key: Optional[tuple[int, int]] = None
    for candidate in candidates:
        key = (score(candidate.text, settings), -int(candidate.strategy))
        # Strict comparison keeps the first-seen candidate on a full tie.
        if best_key is None or key > best_key:
            best, best_key = candidate, key
    return best
